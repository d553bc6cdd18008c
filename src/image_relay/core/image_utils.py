"""Image decoding, transformation and encoding utilities for the relay."""

import io
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import DecodeError, EncodeError
from .models import TransformKind

# Modes the transforms operate on without conversion
NATIVE_MODES = ("1", "L", "LA", "RGB", "RGBA")
# Modes the PNG encoder can write
PNG_MODES = ("1", "L", "LA", "I;16", "P", "RGB", "RGBA")


@dataclass(frozen=True)
class PixelImage:
    """A decoded raster owned by a single invocation."""

    image: Image.Image
    source_format: Optional[str] = None

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def mode(self) -> str:
        return self.image.mode

    @property
    def has_alpha(self) -> bool:
        return self.image.mode in ("LA", "RGBA", "PA")


def decode_image(data: bytes) -> PixelImage:
    """
    Decode raw bytes into a PixelImage, auto-detecting the raster format.

    Args:
        data: Encoded image bytes (PNG, JPEG, or anything Pillow reads)

    Returns:
        Decoded image with its detected format

    Raises:
        DecodeError: If the bytes are empty, corrupt, or not an image
    """
    if not data:
        raise DecodeError("Cannot decode an empty object")

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (
        IOError,
        SyntaxError,
        Image.DecompressionBombError,
        UnidentifiedImageError,
    ) as img_err:
        raise DecodeError(f"Image decoding failed: {img_err}") from img_err

    return PixelImage(image=image, source_format=image.format)


def _normalize(image: Image.Image) -> Image.Image:
    """Bring exotic modes (P, CMYK, I;16, ...) to RGB or RGBA."""
    if image.mode in NATIVE_MODES:
        return image
    if image.mode in ("PA", "La") or "transparency" in image.info:
        return image.convert("RGBA")
    return image.convert("RGB")


def grayscale(image: Image.Image) -> Image.Image:
    """Replace color channels with ITU-R 601 luma, keeping the channel layout."""
    image = _normalize(image)
    if image.mode in ("1", "L", "LA"):
        return image.copy()

    luma = image.convert("RGB").convert("L")
    if image.mode == "RGBA":
        alpha = image.getchannel("A")
        return Image.merge("RGBA", (luma, luma, luma, alpha))
    return Image.merge("RGB", (luma, luma, luma))


def invert(image: Image.Image) -> Image.Image:
    """Replace every color sample v with 255 - v; alpha is left alone."""
    image = _normalize(image)
    if image.mode == "1":
        image = image.convert("L")

    bands = image.split()
    if image.mode in ("LA", "RGBA"):
        color, alpha = bands[:-1], bands[-1:]
    else:
        color, alpha = bands, ()

    inverted = tuple(ImageOps.invert(band) for band in color)
    return Image.merge(image.mode, inverted + tuple(alpha))


def flip_horizontal(image: Image.Image) -> Image.Image:
    """Mirror left-right."""
    return ImageOps.mirror(image)


def flip_vertical(image: Image.Image) -> Image.Image:
    """Mirror top-bottom."""
    return ImageOps.flip(image)


def identity(image: Image.Image) -> Image.Image:
    return image.copy()


_TRANSFORMS = {
    TransformKind.GRAYSCALE: grayscale,
    TransformKind.INVERT: invert,
    TransformKind.FLIP_HORIZONTAL: flip_horizontal,
    TransformKind.FLIP_VERTICAL: flip_vertical,
    TransformKind.IDENTITY: identity,
}


def apply_transformation(
    img: PixelImage, transformation: Union[TransformKind, str, None]
) -> PixelImage:
    """
    Apply the specified transformation to an image.

    The input is never modified; a new PixelImage is returned with the same
    dimensions and source format.

    Args:
        img: Decoded image to transform
        transformation: Kind of transformation. Unrecognized or empty values
            select the identity transform.

    Returns:
        Transformed image
    """
    kind = TransformKind.parse(transformation)
    transformed = _TRANSFORMS[kind](img.image)
    return PixelImage(image=transformed, source_format=img.source_format)


def encode_png(img: PixelImage) -> bytes:
    """
    Serialize an image as lossless PNG.

    Raises:
        EncodeError: If Pillow cannot write the image
    """
    output_stream = io.BytesIO()
    try:
        image = img.image
        if image.mode not in PNG_MODES:
            image = _normalize(image)
        image.save(output_stream, format="PNG")
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"PNG encoding failed: {exc}") from exc
    return output_stream.getvalue()


def extract_image_info(img: PixelImage) -> Dict[str, Any]:
    """
    Describe a decoded image for logging.

    Args:
        img: Decoded image

    Returns:
        Dictionary with dimensions, format, mode and alpha flag
    """
    return {
        "width": img.width,
        "height": img.height,
        "format": img.source_format or "unknown",
        "mode": img.mode,
        "has_alpha": img.has_alpha,
    }


def calculate_dest_key(
    object_key: str, transformation: Union[TransformKind, str, None]
) -> str:
    """
    Calculate the destination key for a relayed object.

    The key is the transformation name and the source key joined by a hyphen,
    so ``("image.png", "grayscale")`` gives ``"grayscale-image.png"`` and the
    identity transform gives ``"-image.png"``.
    """
    if isinstance(transformation, TransformKind):
        prefix = transformation.value
    else:
        prefix = transformation or ""
    return f"{prefix}-{object_key}"
