"""
In-memory registry of download jobs with per-job atomic updates.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from m3u8_dl.exceptions import JobNotFoundError
from m3u8_dl.models.job import Job, JobStatus

log = logging.getLogger(__name__)

JobMutator = Callable[[Job], None]


class JobStore:
    """
    Holds every Job record for the lifetime of the process.

    Readers always receive copies, so a polled job is a consistent snapshot.
    Writers go through `update`, which serialises mutations of the same job
    behind that job's own lock; jobs never share a lock with each other.
    """

    def __init__(self, storage_root: Path):
        self.storage_root = Path(storage_root)
        self._jobs: dict[str, Job] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    async def create(self, source_url: str) -> Job:
        """Allocates a fresh identifier and stores a READY_TO_DOWNLOAD job."""
        async with self._registry_lock:
            job_id = str(uuid.uuid4())
            while job_id in self._jobs:
                job_id = str(uuid.uuid4())

            job = Job(
                id=job_id,
                source_url=source_url,
                storage_location=str(self.storage_root / job_id),
            )
            self._locks[job_id] = asyncio.Lock()
            self._jobs[job_id] = job

        log.debug(f"Created job {job_id} for {source_url}")
        return job.model_copy(deep=True)

    def get(self, job_id: str) -> Job:
        """Returns a snapshot of the job. Never blocks."""
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job.model_copy(deep=True)

    def list_jobs(self) -> list[Job]:
        """Snapshots of all jobs, in creation order."""
        return [job.model_copy(deep=True) for job in self._jobs.values()]

    async def update(self, job_id: str, mutator: JobMutator) -> Job:
        """
        Applies `mutator` to a copy of the job and stores the result atomically.

        The mutated copy is re-validated before it replaces the stored record,
        so a rejected mutation leaves the job exactly as it was.

        Raises:
            JobNotFoundError: If the job does not exist.
            ValueError: If the mutation breaks a job invariant.
        """
        lock = self._locks.get(job_id)
        if lock is None:
            raise JobNotFoundError(job_id)

        async with lock:
            current = self._jobs[job_id]
            draft = current.model_copy(deep=True)
            mutator(draft)
            draft.updated_at = datetime.now()

            updated = Job.model_validate(draft.model_dump())
            self._check_transition(current, updated)
            self._jobs[job_id] = updated

        return updated.model_copy(deep=True)

    @staticmethod
    def _check_transition(current: Job, updated: Job) -> None:
        for field_name in ("id", "source_url", "storage_location", "created_at"):
            if getattr(current, field_name) != getattr(updated, field_name):
                raise ValueError(f"Job field '{field_name}' is write-once.")

        # The segment list is fixed once the job has left READY_TO_DOWNLOAD
        if current.status != JobStatus.READY_TO_DOWNLOAD and (
            updated.segments != current.segments
            or updated.total_segments != current.total_segments
        ):
            raise ValueError(
                f"Segments of job {current.id} are fixed once it is "
                f"{current.status.value}."
            )

        if current.is_terminal and updated.status != current.status:
            raise ValueError(
                f"Job {current.id} is already {current.status.value} and cannot "
                f"move to {updated.status.value}."
            )

        if updated.downloaded_segments < current.downloaded_segments:
            raise ValueError(
                f"Progress of job {current.id} cannot go backwards "
                f"({current.downloaded_segments} -> {updated.downloaded_segments})."
            )
