"""
Job event logging: one line per lifecycle event on the console logger, and
optionally the same events as JSON lines for later analysis.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO

EVENTS_LOGGER = "m3u8_dl.events"


class JsonLinesSink:
    """Appends one JSON object per event to `m3u8_dl_<timestamp>.jsonl`."""

    def __init__(self, log_dir: Path):
        log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.path = log_dir / f"m3u8_dl_{stamp}.jsonl"
        self._file: TextIO | None = open(self.path, "a", encoding="utf-8")  # noqa: SIM115

    def write(self, record: dict[str, Any]) -> None:
        if self._file is None:
            return
        try:
            self._file.write(json.dumps(record, default=str) + "\n")
            self._file.flush()
        except (OSError, TypeError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


class StructuredLogger:
    """
    Emits named events with keyword context.

    On the console an event renders as `[event] key=value ...` through the
    standard `logging` module; with a sink attached it is also stored as JSON
    together with the session context.
    """

    def __init__(self, name: str = EVENTS_LOGGER, sink: JsonLinesSink | None = None):
        self._logger = logging.getLogger(name)
        self.sink = sink
        self.context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Adds fields that are attached to every stored event."""
        self.context.update(kwargs)

    def _log(self, level: int, event: str, **fields) -> None:
        rendered = " ".join([f"[{event}]", *(f"{k}={v}" for k, v in fields.items())])
        self._logger.log(level, rendered, extra={"markup": False})
        if self.sink is not None:
            self.sink.write(
                {
                    "timestamp": datetime.now().isoformat(),
                    "level": logging.getLevelName(level),
                    "event": event,
                    **self.context,
                    **fields,
                }
            )

    def debug(self, event: str, **fields) -> None:
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields) -> None:
        self._log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields) -> None:
        self._log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields) -> None:
        self._log(logging.ERROR, event, **fields)

    def close(self) -> None:
        if self.sink is not None:
            self.sink.close()


class JobLogger:
    """Lifecycle events of download jobs."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def job_created(self, job_id: str, source_url: str, manifest_bytes: int):
        self.logger.info(
            "job_created",
            job_id=job_id,
            source_url=source_url,
            manifest_bytes=manifest_bytes,
        )

    def playlist_unterminated(self, job_id: str, total_segments: int):
        """The manifest has no #EXT-X-ENDLIST; only the listed segments are fetched."""
        self.logger.warning(
            "playlist_unterminated", job_id=job_id, total_segments=total_segments
        )

    def job_started(self, job_id: str, total_segments: int, version: int | None):
        self.logger.info(
            "job_started",
            job_id=job_id,
            total_segments=total_segments,
            version=version,
        )

    def segment_downloaded(
        self, job_id: str, index: int, url: str, size_bytes: int, duration_s: float
    ):
        self.logger.debug(
            "segment_downloaded",
            job_id=job_id,
            index=index,
            url=url,
            size_bytes=size_bytes,
            duration_s=round(duration_s, 3),
        )

    def job_failed(
        self, job_id: str, failure_kind: str, error: str, downloaded_segments: int
    ):
        self.logger.error(
            "job_failed",
            job_id=job_id,
            failure_kind=failure_kind,
            error=error,
            downloaded_segments=downloaded_segments,
        )

    def job_completed(
        self, job_id: str, total_segments: int, size_bytes: int, duration_s: float
    ):
        self.logger.info(
            "job_completed",
            job_id=job_id,
            total_segments=total_segments,
            size_bytes=size_bytes,
            size_mb=round(size_bytes / (1024 * 1024), 2),
            duration_s=round(duration_s, 2),
        )


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, JobLogger]:
    """
    Create the event loggers.

    Returns:
        Tuple of (base_logger, job_logger)
    """
    sink = JsonLinesSink(log_dir) if enable_json and log_dir is not None else None
    base = StructuredLogger(EVENTS_LOGGER, sink=sink)
    return base, JobLogger(base)
