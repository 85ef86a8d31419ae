"""Repackage the Cursor IDE AppImage as a Debian package."""

__version__ = "1.0.0"
