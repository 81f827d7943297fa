"""Lossy DCT-based compression of BMP images into the SAMS format and back."""

__version__ = "0.1.0"
__all__ = ["bmp", "sams", "blocks", "coder", "cli"]