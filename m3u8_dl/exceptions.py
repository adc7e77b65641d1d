"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class M3u8DlError(Exception):
    """Base exception for all application-specific errors."""


class UnreadableSourceError(M3u8DlError):
    """Raised when a manifest or segment cannot be fetched (transport error or non-2xx)."""

    def __init__(self, url: str, reason: str, status: int | None = None):
        self.url = url
        self.status = status
        super().__init__(f"Could not fetch '{url}': {reason}")


class PlaylistError(M3u8DlError):
    """Base exception for manifest parsing failures."""


class UnreadableInputError(PlaylistError):
    """Raised when the manifest bytes cannot be read or decoded."""


class UnsupportedVersionError(PlaylistError):
    """Raised when the manifest declares a version other than the supported one."""

    def __init__(self, line: str, version: int):
        self.line = line
        self.version = version
        super().__init__(f"Unsupported playlist version {version} in line '{line}'")


class MalformedTagError(PlaylistError):
    """Raised when a known tag is present but its payload cannot be parsed."""

    def __init__(self, line: str, line_number: int):
        self.line = line
        self.line_number = line_number
        super().__init__(f"Malformed tag on line {line_number}: '{line}'")


class MalformedBaseUrlError(M3u8DlError):
    """Raised when a job's source URL cannot be used as a base for resolution."""


class StorageWriteError(M3u8DlError):
    """Raised when a manifest copy or segment file cannot be written to disk."""


class JobNotFoundError(M3u8DlError):
    """Raised when a job identifier is unknown to the job store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"No download job with id '{job_id}'")


class JobCancelledError(M3u8DlError):
    """Recorded as the failure kind of a job whose download was cancelled."""


class ConfigurationError(M3u8DlError):
    """Raised for issues related to configuration loading or validation."""
