"""Event-triggered S3 image transformation relay."""

__version__ = "0.1.0"
