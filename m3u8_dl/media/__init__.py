"""
Media Transfer Layer.

This package is responsible for fetching manifests and media segments over
HTTP and writing them to disk.
"""

from .downloader import Downloader

__all__ = ["Downloader"]
