"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_OUTPUT_DIR = "downloads"


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Storage
    output_dir: str = DEFAULT_OUTPUT_DIR

    # Network
    request_timeout: float = 30.0
    connect_timeout: float = 15.0
    max_attempts: int = 1  # 1 means no retry
    retry_delay: float = 1.5
    chunk_size: int = 131072  # 128 KB

    # Scheduling
    max_concurrent_jobs: int = 4

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)
    source_urls: list[str] = Field(default_factory=list, repr=False)

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Output directory cannot be empty.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        """Each request must be bounded, but not absurdly long."""
        if v <= 0 or v > 600:
            raise ValueError("Request timeout must be between 0 and 600 seconds.")
        return v

    @field_validator("connect_timeout")
    @classmethod
    def validate_connect_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Connect timeout must be positive.")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Ensures retries stay bounded."""
        if v < 1 or v > 10:
            raise ValueError("Max attempts must be between 1 and 10.")
        return v

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Retry delay cannot be negative.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 1024:
            raise ValueError("Chunk size must be at least 1024 bytes.")
        return v

    @field_validator("max_concurrent_jobs")
    @classmethod
    def validate_concurrent_jobs(cls, v: int) -> int:
        """Ensures a reasonable number of parallel jobs."""
        if v < 1 or v > 32:
            raise ValueError("Max concurrent jobs must be between 1 and 32.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "source_urls"}
        return {key for key in cls.model_fields if key not in internal_fields}
