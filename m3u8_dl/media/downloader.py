"""
Handles the low-level fetching of manifests and segments over HTTP.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path

import aiofiles
import aiohttp

from m3u8_dl import __version__
from m3u8_dl.exceptions import StorageWriteError, UnreadableSourceError
from m3u8_dl.models.config import DownloadConfig

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Awaitable[None]]

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class Downloader:
    """An HTTP fetcher with bounded retry, per-request timeouts and a pooled session."""

    def __init__(
        self,
        max_attempts: int = 1,
        base_delay: float = 1.5,
        request_timeout: float = 30.0,
        connect_timeout: float = 15.0,
        chunk_size: int = 131072,
        max_connections: int = 8,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.chunk_size = chunk_size
        self.max_connections = max_connections
        self.timeout = aiohttp.ClientTimeout(
            total=request_timeout, sock_connect=connect_timeout
        )
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: DownloadConfig) -> "Downloader":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.retry_delay,
            request_timeout=config.request_timeout,
            connect_timeout=config.connect_timeout,
            chunk_size=config.chunk_size,
            max_connections=config.max_concurrent_jobs * 2,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Gets or lazily creates the shared ClientSession."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                return self._session

            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers={"User-Agent": f"m3u8-dl/{__version__}"},
            )
            log.debug(f"Created HTTP session with limit={self.max_connections}")
        return self._session

    async def close(self) -> None:
        """Closes the pooled session."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                log.debug("Downloader session closed.")
            self._session = None

    async def __aenter__(self) -> "Downloader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @staticmethod
    def _check_status(url: str, response: aiohttp.ClientResponse) -> None:
        """Rejects anything but 2xx, including redirects that were not followed."""
        response.raise_for_status()
        if not 200 <= response.status < 300:
            raise UnreadableSourceError(
                url, f"HTTP {response.status}", response.status
            )

    async def _with_retry(self, url: str, operation: Callable[[], Awaitable]):
        """Runs `operation`, retrying transient HTTP failures with backoff."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except aiohttp.ClientResponseError as e:
                error = UnreadableSourceError(url, f"HTTP {e.status}", e.status)
                retryable = e.status in RETRYABLE_STATUSES
                cause = e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                error = UnreadableSourceError(url, str(e) or type(e).__name__)
                retryable = True
                cause = e

            if not retryable or attempt == self.max_attempts:
                raise error from cause

            delay = self.base_delay * (2 ** (attempt - 1))
            log.debug(
                f"Attempt {attempt}/{self.max_attempts} for '{url}' failed: "
                f"{cause}. Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    async def fetch_bytes(self, url: str) -> bytes:
        """Fetches a whole response body, e.g. a manifest."""

        async def _fetch() -> bytes:
            session = await self._get_session()
            async with session.get(url, allow_redirects=True) as response:
                self._check_status(url, response)
                return await response.read()

        return await self._with_retry(url, _fetch)

    async def download_file(
        self,
        url: str,
        destination_path: Path,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """
        Streams a response body to `destination_path` and returns its size.

        The body is written to a `.part` file first and renamed only once it is
        complete, so `destination_path` never holds a truncated segment.
        """
        destination_path = Path(destination_path)
        temp_path = destination_path.with_name(destination_path.name + ".part")

        async def _download() -> int:
            session = await self._get_session()
            async with session.get(url, allow_redirects=True) as response:
                self._check_status(url, response)
                bytes_written = 0
                try:
                    async with aiofiles.open(temp_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(
                            self.chunk_size
                        ):
                            await f.write(chunk)
                            bytes_written += len(chunk)
                            if on_progress:
                                await on_progress(len(chunk))
                except (aiohttp.ClientError, asyncio.TimeoutError):
                    raise
                except OSError as e:
                    raise StorageWriteError(
                        f"Cannot write '{temp_path}': {e}"
                    ) from e
                return bytes_written

        try:
            size = await self._with_retry(url, _download)
            try:
                os.replace(temp_path, destination_path)
            except OSError as e:
                raise StorageWriteError(
                    f"Cannot move segment into place at '{destination_path}': {e}"
                ) from e
            return size
        finally:
            if temp_path.exists():
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
