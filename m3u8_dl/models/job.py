"""
Pydantic model describing a single playlist download job and its lifecycle state.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

MANIFEST_FILENAME = "main.m3u8"
SEGMENT_SUFFIX = ".ts"


class JobStatus(str, Enum):
    """Lifecycle states of a download job.

    Flow: READY_TO_DOWNLOAD -> DOWNLOADING -> (DOWNLOADED | FAILED)
    """

    READY_TO_DOWNLOAD = "READY_TO_DOWNLOAD"  # Manifest stored, nothing parsed yet
    DOWNLOADING = "DOWNLOADING"  # Segments are being fetched
    DOWNLOADED = "DOWNLOADED"  # Every segment persisted
    FAILED = "FAILED"  # Stopped on an error, prefix kept

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DOWNLOADED, JobStatus.FAILED)


def segment_filename(index: int) -> str:
    """Returns the on-disk name of the segment at a given playlist index."""
    return f"{index}{SEGMENT_SUFFIX}"


class Job(BaseModel):
    """One playlist-to-local-files download task."""

    id: str
    source_url: str
    storage_location: str
    status: JobStatus = JobStatus.READY_TO_DOWNLOAD
    segments: list[str] = Field(default_factory=list)
    total_segments: int = 0
    downloaded_segments: int = 0
    manifest_file: str = MANIFEST_FILENAME
    version: int | None = None
    bytes_downloaded: int = 0
    failure_kind: str | None = None
    failure_reason: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_progress_counts(self) -> "Job":
        """Keeps the segment counters consistent with the segment list."""
        if self.total_segments != len(self.segments):
            raise ValueError(
                f"total_segments ({self.total_segments}) does not match the "
                f"number of segments ({len(self.segments)})."
            )
        if not 0 <= self.downloaded_segments <= self.total_segments:
            raise ValueError(
                f"downloaded_segments ({self.downloaded_segments}) must be "
                f"between 0 and {self.total_segments}."
            )
        if self.bytes_downloaded < 0:
            raise ValueError("bytes_downloaded cannot be negative.")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def manifest_path(self) -> Path:
        return Path(self.storage_location) / self.manifest_file

    def segment_path(self, index: int) -> Path:
        return Path(self.storage_location) / segment_filename(index)

    @property
    def progress(self) -> float:
        """Fraction of segments downloaded (0.0 to 1.0)."""
        if self.total_segments == 0:
            return 1.0 if self.status == JobStatus.DOWNLOADED else 0.0
        return self.downloaded_segments / self.total_segments

    def to_dict(self) -> dict[str, Any]:
        """Returns a JSON-ready snapshot of the job."""
        return self.model_dump(mode="json")
