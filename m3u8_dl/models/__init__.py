"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application: configuration, download jobs,
parsed playlists and session statistics.
"""

from .config import DownloadConfig
from .job import Job, JobStatus
from .playlist import Playlist, SegmentEntry
from .stats import DownloadStats

__all__ = [
    "DownloadConfig",
    "DownloadStats",
    "Job",
    "JobStatus",
    "Playlist",
    "SegmentEntry",
]
