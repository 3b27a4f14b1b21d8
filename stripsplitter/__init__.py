"""Join page images into a tall strip, slice it for preview and export it in parts."""

__version__ = "0.1.0"
__all__ = ["processor", "service"]