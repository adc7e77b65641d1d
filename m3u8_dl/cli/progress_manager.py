"""
Manages a Rich Live display that polls the job store and shows one progress
bar per download job, plus an overall segment counter.
"""

import asyncio
import logging

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from m3u8_dl.core.download_manager import DownloadManager
from m3u8_dl.models.job import Job, JobStatus
from m3u8_dl.utils.formatting import short_id

log = logging.getLogger(__name__)

STATUS_ICONS = {
    JobStatus.READY_TO_DOWNLOAD: "[cyan]…[/cyan]",
    JobStatus.DOWNLOADING: "[blue]↓[/blue]",
    JobStatus.DOWNLOADED: "[green]✓[/green]",
    JobStatus.FAILED: "[red]✗[/red]",
}


class ProgressManager:
    """Live view of running jobs, refreshed by polling their snapshots."""

    def __init__(self, console: Console, refresh_interval: float = 0.2):
        self.console = console
        self.refresh_interval = refresh_interval

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            MofNCompleteColumn(),
            TextColumn("segments"),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self.overall_progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            console=console,
        )

        self._live: Live | None = None
        self._job_tasks: dict[str, TaskID] = {}
        self._overall_task_id: TaskID | None = None

    async def __aenter__(self) -> "ProgressManager":
        self._overall_task_id = self.overall_progress.add_task(
            "All segments", total=0
        )
        self._live = Live(
            Group(self.overall_progress, self.progress),
            console=self.console,
            refresh_per_second=10,
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            self._live.stop()
            self._live = None

    def _describe(self, job: Job) -> str:
        return f"{STATUS_ICONS[job.status]} {short_id(job.id)} {escape(job.source_url)}"

    def add_job(self, job: Job) -> TaskID:
        task_id = self.progress.add_task(
            self._describe(job), total=job.total_segments or None, start=True
        )
        self._job_tasks[job.id] = task_id
        return task_id

    def update_job(self, job: Job) -> None:
        task_id = self._job_tasks.get(job.id)
        if task_id is None:
            task_id = self.add_job(job)
        total = None
        if job.status != JobStatus.READY_TO_DOWNLOAD:
            total = job.total_segments
        self.progress.update(
            task_id,
            description=self._describe(job),
            total=total,
            completed=job.downloaded_segments,
        )
        if job.is_terminal:
            self.progress.stop_task(task_id)

    def _update_overall(self, jobs: list[Job]) -> None:
        if self._overall_task_id is None:
            return
        self.overall_progress.update(
            self._overall_task_id,
            total=sum(job.total_segments for job in jobs),
            completed=sum(job.downloaded_segments for job in jobs),
        )

    def refresh(self, jobs: list[Job]) -> None:
        for job in jobs:
            self.update_job(job)
        self._update_overall(jobs)

    async def track(self, manager: DownloadManager, job_ids: list[str]) -> list[Job]:
        """Polls the given jobs until every one of them is DOWNLOADED or FAILED."""
        while True:
            jobs = [manager.get_status(job_id) for job_id in job_ids]
            self.refresh(jobs)
            if all(job.is_terminal for job in jobs):
                return jobs
            await asyncio.sleep(self.refresh_interval)
