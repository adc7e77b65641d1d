"""
Shared pytest fixtures for the m3u8-dl test suite.

Async code is driven with `asyncio.run` from plain test functions.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from m3u8_dl.core.download_manager import DownloadManager
from m3u8_dl.exceptions import UnreadableSourceError
from m3u8_dl.models.config import DownloadConfig
from m3u8_dl.storage.job_store import JobStore

SOURCE_URL = "https://cdn.example.com/show/index.m3u8"

TWO_SEGMENT_MANIFEST = (
    "#EXT-X-VERSION:3\n"
    "#EXTINF:10,\n"
    "a.ts\n"
    "#EXTINF:10,\n"
    "b.ts\n"
    "#EXT-X-ENDLIST\n"
)


def make_manifest(count: int, version: int = 3) -> str:
    lines = ["#EXTM3U", f"#EXT-X-VERSION:{version}", "#EXT-X-TARGETDURATION:10"]
    for index in range(count):
        lines.append("#EXTINF:10.0,")
        lines.append(f"seg{index}.ts")
    lines.append("#EXT-X-ENDLIST")
    return "\n".join(lines) + "\n"


class FakeDownloader:
    """
    Stands in for `Downloader`: serves bodies from a dict and records calls.

    A response may be `bytes` or an exception instance to raise. `before_fetch`
    is invoked with each segment URL before its body is written.
    """

    def __init__(self, responses: dict[str, object] | None = None):
        self.responses: dict[str, object] = responses or {}
        self.fetched: list[str] = []
        self.before_fetch: Callable[[str], object] | None = None
        self.closed = False

    def _lookup(self, url: str) -> bytes:
        response = self.responses.get(url)
        if response is None:
            raise UnreadableSourceError(url, "HTTP 404", 404)
        if isinstance(response, BaseException):
            raise response
        return response

    async def fetch_bytes(self, url: str) -> bytes:
        self.fetched.append(url)
        return self._lookup(url)

    async def download_file(self, url, destination_path, on_progress=None) -> int:
        self.fetched.append(url)
        if self.before_fetch is not None:
            result = self.before_fetch(url)
            if asyncio.iscoroutine(result):
                await result
        body = self._lookup(url)
        Path(destination_path).write_bytes(body)
        if on_progress:
            await on_progress(len(body))
        return len(body)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config(tmp_path) -> DownloadConfig:
    return DownloadConfig(output_dir=str(tmp_path / "downloads"))


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def make_manager(config, fake_downloader):
    """Builds a DownloadManager wired to the fake downloader.

    Must be called inside a running event loop.
    """

    def _make() -> DownloadManager:
        store = JobStore(Path(config.output_dir))
        return DownloadManager(config, store=store, downloader=fake_downloader)

    return _make


def serve_playlist(
    downloader: FakeDownloader, manifest: str, source_url: str = SOURCE_URL
) -> None:
    """Registers a manifest and a body for each of its relative segments."""
    downloader.responses[source_url] = manifest.encode()
    base = source_url.rsplit("/", 1)[0]
    for line in manifest.splitlines():
        if line and not line.startswith("#"):
            downloader.responses[f"{base}/{line}"] = f"body of {line}".encode()
