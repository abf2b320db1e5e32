"""Read-only FAT32 disk image reader and the small tools kept alongside it."""

__version__ = "0.1.0"

__all__ = ["crosscheck", "fs", "gpio", "helpers", "layout", "picat", "printf", "utf8"]