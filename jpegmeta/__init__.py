"""Extract metadata from JPEG images and print it as JSON."""

__version__ = '1.0.0'
