"""
The main orchestrator: creates download jobs and drives each one from manifest
to local segment files, writing progress back to the job store as it goes.
"""

import asyncio
import logging
import time
from contextlib import suppress
from functools import partial
from pathlib import Path

from rich.markup import escape

from m3u8_dl.exceptions import (
    JobCancelledError,
    M3u8DlError,
    PlaylistError,
    StorageWriteError,
)
from m3u8_dl.media.downloader import Downloader
from m3u8_dl.models.config import DownloadConfig
from m3u8_dl.models.job import Job, JobStatus
from m3u8_dl.models.playlist import Playlist
from m3u8_dl.models.stats import DownloadStats
from m3u8_dl.storage.job_store import JobStore
from m3u8_dl.utils.path import create_dir, resolve_segment_url, validate_base_url
from m3u8_dl.utils.playlist import parse_playlist_file
from m3u8_dl.utils.structured_logger import JobLogger, create_structured_logger

log = logging.getLogger(__name__)


def _record_playlist(job: Job, playlist: Playlist) -> None:
    job.segments = playlist.segments
    job.total_segments = len(playlist)
    job.version = playlist.version


def _start_downloading(job: Job) -> None:
    job.status = JobStatus.DOWNLOADING
    job.downloaded_segments = 0


def _record_segment(job: Job, index: int, size: int) -> None:
    job.downloaded_segments = index + 1
    job.bytes_downloaded += size


def _finish(job: Job) -> None:
    job.status = JobStatus.DOWNLOADED


def _mark_failed(job: Job, error: BaseException) -> None:
    if job.is_terminal:
        return
    job.status = JobStatus.FAILED
    job.failure_kind = type(error).__name__
    job.failure_reason = str(error)


class DownloadManager:
    """
    Orchestrates the download of HLS playlists.

    Each job runs as its own unit of work (see `start_job`); inside a job the
    segments are fetched strictly in playlist order, so `downloaded_segments`
    always means "the first N segments are on disk".
    """

    def __init__(
        self,
        config: DownloadConfig,
        store: JobStore | None = None,
        downloader: Downloader | None = None,
        job_logger: JobLogger | None = None,
        stats: DownloadStats | None = None,
    ):
        self.config = config
        self.store = store or JobStore(Path(config.output_dir))
        self.downloader = downloader or Downloader.from_config(config)
        self.job_logger = job_logger or create_structured_logger()[1]
        self.stats = stats or DownloadStats()
        self.semaphore = asyncio.Semaphore(config.max_concurrent_jobs)
        self._tasks: dict[str, asyncio.Task] = {}
        self._running: set[str] = set()

    async def __aenter__(self) -> "DownloadManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Cancels unfinished jobs and releases the HTTP session."""
        for job_id, task in list(self._tasks.items()):
            if not task.done():
                await self.cancel_job(job_id)
        await self.downloader.close()

    async def create_job(self, source_url: str) -> Job:
        """
        Fetches the manifest, stores a verbatim copy and registers a new job.

        Raises:
            MalformedBaseUrlError: If `source_url` is not an absolute http(s) URL.
            UnreadableSourceError: If the manifest cannot be fetched. No job is
                created in that case.
            StorageWriteError: If the manifest copy cannot be written. The job
                exists and is marked FAILED.
        """
        validate_base_url(source_url)
        log.info(f"Fetching manifest [dim]{escape(source_url)}[/dim]")
        manifest = await self.downloader.fetch_bytes(source_url)

        job = await self.store.create(source_url)
        try:
            create_dir(Path(job.storage_location))
            job.manifest_path.write_bytes(manifest)
        except OSError as e:
            error = StorageWriteError(f"Cannot store manifest for job {job.id}: {e}")
            await self._fail(job.id, error)
            raise error from e

        self.job_logger.job_created(job.id, source_url, len(manifest))
        return self.store.get(job.id)

    def get_status(self, job_id: str) -> Job:
        """Non-blocking poll of a job's current state."""
        return self.store.get(job_id)

    async def run_job(self, job_id: str) -> Job:
        """
        Drives a READY_TO_DOWNLOAD job to DOWNLOADED or FAILED and returns the
        final snapshot. A job that is already running or finished is returned
        as it is.

        Raises:
            JobNotFoundError: If the job id is unknown.
        """
        job = self.store.get(job_id)
        if job.status != JobStatus.READY_TO_DOWNLOAD or job_id in self._running:
            return job

        self._running.add(job_id)
        try:
            async with self.semaphore:
                await self._drive(job)
        except asyncio.CancelledError:
            await self._fail(job_id, JobCancelledError("Download cancelled."))
            raise
        except Exception as e:
            log.debug("Unexpected error while downloading:", exc_info=True)
            await self._fail(job_id, e)
            raise
        finally:
            self._running.discard(job_id)

        return self.store.get(job_id)

    async def download(self, source_url: str) -> Job:
        """Creates a job for `source_url` and runs it to completion."""
        job = await self.create_job(source_url)
        return await self.run_job(job.id)

    def start_job(self, job_id: str) -> asyncio.Task:
        """Schedules `run_job` as an independent task and returns it."""
        self.store.get(job_id)
        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            return task

        task = asyncio.create_task(self.run_job(job_id), name=f"job-{job_id}")
        self._tasks[job_id] = task
        return task

    async def cancel_job(self, job_id: str) -> Job:
        """Cancels a running job; it ends FAILED with its prefix kept."""
        job = self.store.get(job_id)
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return job

        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

        # Cancelled before the task got to run at all
        if not self.store.get(job_id).is_terminal:
            await self._fail(job_id, JobCancelledError("Download cancelled."))
        return self.store.get(job_id)

    async def wait_all(self) -> list[Job]:
        """Waits for every started job and returns their final snapshots."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return [self.store.get(job_id) for job_id in self._tasks]

    async def _drive(self, job: Job) -> None:
        started = time.monotonic()

        try:
            playlist = parse_playlist_file(job.manifest_path)
        except PlaylistError as e:
            await self._fail(job.id, e)
            return

        job = await self.store.update(
            job.id, partial(_record_playlist, playlist=playlist)
        )
        if not playlist.ended:
            self.job_logger.playlist_unterminated(job.id, job.total_segments)
        job = await self.store.update(job.id, _start_downloading)
        self.job_logger.job_started(job.id, job.total_segments, job.version)

        for index, reference in enumerate(job.segments):
            segment_started = time.monotonic()
            try:
                url = resolve_segment_url(reference, job.source_url)
                log.debug(f"Downloading #{index} {escape(url)}")
                size = await self.downloader.download_file(
                    url, job.segment_path(index), on_progress=self.stats.add_bytes
                )
            except M3u8DlError as e:
                await self._fail(job.id, e)
                return

            job = await self.store.update(
                job.id, partial(_record_segment, index=index, size=size)
            )
            self.stats.segments_downloaded += 1
            self.job_logger.segment_downloaded(
                job.id, index, url, size, time.monotonic() - segment_started
            )

        job = await self.store.update(job.id, _finish)
        self.stats.jobs_downloaded += 1
        self.job_logger.job_completed(
            job.id, job.total_segments, job.bytes_downloaded, time.monotonic() - started
        )
        log.info(
            f"[green]✓ Downloaded[/green] {job.total_segments} segments to "
            f"[dim]{escape(job.storage_location)}[/dim]"
        )

    async def _fail(self, job_id: str, error: BaseException) -> Job:
        before = self.store.get(job_id)
        job = await self.store.update(job_id, partial(_mark_failed, error=error))
        if before.is_terminal:
            return job

        self.stats.jobs_failed += 1
        log.error(f"[red]✗ Job {job_id} failed:[/red] {escape(str(error))}")
        self.job_logger.job_failed(
            job_id, type(error).__name__, str(error), job.downloaded_segments
        )
        return job
