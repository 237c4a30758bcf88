"""A small video-sharing WSGI server with SQLite storage, asset serving and video helpers."""

__version__ = "0.1.0"

__all__ = ["__version__"]