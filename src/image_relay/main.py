"""Main module for the image relay CLI."""

import os
import sys
import json
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .core import (
    ConfigurationError,
    ImageRelayError,
    RelayConfig,
    StageError,
    TransformKind,
    get_logger,
    setup_logger,
)
from .core.config import DEST_BUCKET_ENV, MODIFICATION_TYPE_ENV
from .core.factories import LoggerFactory, RelayPipelineFactory
from .core.services import ImageProcessorService

MODIFICATION_CHOICES = [kind.value for kind in TransformKind if kind.value]


def build_s3_event(bucket: str, key: str) -> Dict[str, Any]:
    """Build a minimal object-created notification for one object."""
    return {
        "Records": [
            {
                "eventName": "ObjectCreated:Put",
                "s3": {"bucket": {"name": bucket}, "object": {"key": key}},
            }
        ]
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-relay",
        description="Image Relay - transform S3 images and relay them to another bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Relay one object, inverting it
  image-relay process --source-bucket src --key photo.png \\
                      --dest-bucket dst --modification-type invert

  # Transform a local file
  image-relay transform --input photo.png --output gray.png \\
                        --modification-type grayscale

  # Show version
  image-relay version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process", help="Relay one S3 object through the transform pipeline"
    )
    process_parser.add_argument("--source-bucket", required=True, help="Source S3 bucket")
    process_parser.add_argument("--key", required=True, help="Source object key")
    process_parser.add_argument(
        "--dest-bucket",
        default=None,
        help=f"Destination S3 bucket (default: ${DEST_BUCKET_ENV})",
    )
    process_parser.add_argument(
        "--modification-type",
        type=str,
        default=None,
        choices=MODIFICATION_CHOICES,
        help="Transformation to apply (default: $MODIFICATION_TYPE, else none)",
    )
    process_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    transform_parser = subparsers.add_parser(
        "transform", help="Transform a local image file and write it as PNG"
    )
    transform_parser.add_argument("--input", required=True, type=Path, help="Input image")
    transform_parser.add_argument("--output", required=True, type=Path, help="Output PNG")
    transform_parser.add_argument(
        "--modification-type",
        type=str,
        default="",
        choices=MODIFICATION_CHOICES,
        help="Transformation to apply (default: none)",
    )

    subparsers.add_parser("version", help="Show version information")

    return parser


def _load_config(args: argparse.Namespace) -> RelayConfig:
    """Environment config with command-line overrides applied."""
    env = dict(os.environ)
    if args.dest_bucket is not None:
        env[DEST_BUCKET_ENV] = args.dest_bucket
    if args.modification_type is not None:
        env[MODIFICATION_TYPE_ENV] = args.modification_type
    return RelayConfig.from_env(env)


def run_process(args: argparse.Namespace) -> int:
    level = "DEBUG" if args.debug else None
    logger = setup_logger("relay", level=level)

    try:
        config = _load_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    handler = RelayPipelineFactory.create_handler(
        config=config, logger=LoggerFactory.create_logger("image-relay", level=level)
    )

    try:
        result = handler.handle(build_s3_event(args.source_bucket, args.key))
    except StageError as e:
        logger.error(f"Relay failed at {e.stage.value}: {e}")
        print(json.dumps(e.result.model_dump()))
        return 1
    except ImageRelayError as e:
        logger.error(f"Relay failed: {e}")
        return 1

    print(json.dumps(result.model_dump()))
    return 0


def run_transform(args: argparse.Namespace) -> int:
    logger = get_logger("relay")
    processor = ImageProcessorService()

    try:
        output = processor.apply_transformation(
            args.input.read_bytes(), args.modification_type
        )
        args.output.write_bytes(output)
    except OSError as e:
        logger.error(f"File error: {e}")
        return 1
    except StageError as e:
        logger.error(f"Transform failed at {e.stage.value}: {e}")
        return 1

    logger.info(f"Wrote {len(output)} bytes to {args.output}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the image relay command-line interface.

    Commands:
        process: run one relay invocation against S3
        transform: transform a local file without S3
        version: print version information
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "process":
        sys.exit(run_process(args))

    elif args.command == "transform":
        sys.exit(run_transform(args))

    elif args.command == "version":
        print("Image Relay CLI")
        print(f"Version {__version__}")
        print("Event-triggered S3 image transformation")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
