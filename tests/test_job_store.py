"""Unit tests for the in-memory job store."""

import asyncio
from pathlib import Path

import pytest

from m3u8_dl.exceptions import JobNotFoundError
from m3u8_dl.models.job import Job, JobStatus
from m3u8_dl.storage.job_store import JobStore

URL = "https://cdn.example.com/show/index.m3u8"


def run(coro):
    return asyncio.run(coro)


def set_segments(job: Job, segments: list[str]) -> None:
    job.segments = segments
    job.total_segments = len(segments)


class TestCreateAndGet:
    def test_create_sets_initial_state(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            return await store.create(URL)

        job = run(scenario())

        assert job.status == JobStatus.READY_TO_DOWNLOAD
        assert job.source_url == URL
        assert job.segments == []
        assert job.total_segments == 0
        assert job.downloaded_segments == 0
        assert Path(job.storage_location) == tmp_path / job.id

    def test_ids_are_unique(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            jobs = [await store.create(URL) for _ in range(20)]
            return store, jobs

        store, jobs = run(scenario())

        assert len({job.id for job in jobs}) == 20
        assert len(store) == 20
        assert [job.id for job in store.list_jobs()] == [job.id for job in jobs]

    def test_get_unknown_id(self, tmp_path):
        store = JobStore(tmp_path)
        with pytest.raises(JobNotFoundError) as exc_info:
            store.get("nope")
        assert exc_info.value.job_id == "nope"
        assert "nope" not in store

    def test_get_returns_a_snapshot(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            snapshot = store.get(job.id)
            snapshot.segments.append("tampered.ts")
            snapshot.status = JobStatus.FAILED
            return store.get(job.id)

        job = run(scenario())
        assert job.segments == []
        assert job.status == JobStatus.READY_TO_DOWNLOAD


class TestUpdate:
    def test_update_applies_mutator(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            await store.update(job.id, lambda j: set_segments(j, ["a.ts", "b.ts"]))
            updated = await store.update(
                job.id, lambda j: setattr(j, "downloaded_segments", 1)
            )
            return store, updated

        store, updated = run(scenario())

        assert updated.total_segments == 2
        assert updated.downloaded_segments == 1
        assert store.get(updated.id) == updated

    def test_update_unknown_id(self, tmp_path):
        store = JobStore(tmp_path)
        with pytest.raises(JobNotFoundError):
            run(store.update("nope", lambda j: None))

    def test_count_mismatch_is_rejected_and_record_kept(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            with pytest.raises(ValueError):
                await store.update(job.id, lambda j: setattr(j, "segments", ["a.ts"]))
            return store.get(job.id)

        job = run(scenario())
        assert job.segments == []

    def test_progress_beyond_total_is_rejected(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            await store.update(job.id, lambda j: set_segments(j, ["a.ts"]))
            with pytest.raises(ValueError):
                await store.update(
                    job.id, lambda j: setattr(j, "downloaded_segments", 2)
                )

        run(scenario())

    def test_progress_cannot_go_backwards(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            await store.update(job.id, lambda j: set_segments(j, ["a.ts", "b.ts"]))
            await store.update(job.id, lambda j: setattr(j, "downloaded_segments", 2))
            with pytest.raises(ValueError):
                await store.update(
                    job.id, lambda j: setattr(j, "downloaded_segments", 1)
                )
            return store.get(job.id)

        assert run(scenario()).downloaded_segments == 2

    @pytest.mark.parametrize("field_name", ["id", "source_url", "storage_location"])
    def test_write_once_fields(self, tmp_path, field_name):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            with pytest.raises(ValueError):
                await store.update(job.id, lambda j: setattr(j, field_name, "other"))

        run(scenario())

    def test_terminal_status_is_final(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            await store.update(job.id, lambda j: setattr(j, "status", JobStatus.FAILED))
            with pytest.raises(ValueError):
                await store.update(
                    job.id, lambda j: setattr(j, "status", JobStatus.DOWNLOADED)
                )
            return store.get(job.id)

        assert run(scenario()).status == JobStatus.FAILED

    def test_segments_are_fixed_once_downloading(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            await store.update(job.id, lambda j: set_segments(j, ["a.ts", "b.ts"]))
            await store.update(job.id, lambda j: set_segments(j, ["c.ts"]))
            await store.update(
                job.id, lambda j: setattr(j, "status", JobStatus.DOWNLOADING)
            )
            with pytest.raises(ValueError, match="fixed"):
                await store.update(job.id, lambda j: set_segments(j, ["d.ts", "e.ts"]))
            return store.get(job.id)

        job = run(scenario())
        assert job.segments == ["c.ts"]
        assert job.total_segments == 1


class TestConcurrency:
    def test_concurrent_updates_to_one_job_serialise(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            job = await store.create(URL)
            segments = [f"{i}.ts" for i in range(50)]
            await store.update(job.id, lambda j: set_segments(j, segments))

            def bump(j: Job) -> None:
                j.downloaded_segments += 1

            await asyncio.gather(*(store.update(job.id, bump) for _ in range(50)))
            return store.get(job.id)

        assert run(scenario()).downloaded_segments == 50

    def test_other_jobs_are_not_blocked(self, tmp_path):
        async def scenario():
            store = JobStore(tmp_path)
            first = await store.create(URL)
            second = await store.create(URL)

            async with store._locks[first.id]:
                updated = await asyncio.wait_for(
                    store.update(
                        second.id, lambda j: setattr(j, "status", JobStatus.DOWNLOADING)
                    ),
                    timeout=1,
                )
                assert store.get(first.id).status == JobStatus.READY_TO_DOWNLOAD
            return updated

        assert run(scenario()).status == JobStatus.DOWNLOADING
