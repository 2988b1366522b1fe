"""A small single-process IRC server with channels, operators and channel modes."""

__version__ = "0.1.0"
__all__ = ["__version__"]