"""Resized, content-addressed images for static sites."""

__version__ = "0.1.0"
