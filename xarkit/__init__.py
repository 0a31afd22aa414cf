"""Table of contents tree, heap I/O and data modules for the xar archive format."""

__version__ = "1.7.0"