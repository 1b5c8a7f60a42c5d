"""QR image generation stage: render, bundle, upload and record batch status."""

__version__ = "0.1.0"
