"""Tabby Grabby: snapshot and restore browser tabs and bookmarks."""

__version__ = "1.0.0"
