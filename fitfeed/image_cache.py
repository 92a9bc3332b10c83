"""On-disk cache of remote feed images.

The cache maps a source URL to a file it owns inside a dedicated
directory. Readers only ever see complete files: a download is written to a
hidden ``.part`` file next to its destination and moved into place with
``os.replace``. Concurrent requests for the same URL share one download
(single-flight), and a sweep at startup deletes files older than the
maximum age.

File names follow ``{timestamp_ms}_{url_digest}_{original_filename}``, so
two URLs ending in the same file name never collide.
"""

import asyncio
import hashlib
import logging
import os
import re
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlsplit

import httpx

from fitfeed.exceptions import DownloadError
from fitfeed.models import CachedImage

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_MAX_NAME_LENGTH = 80


def _original_filename(url: str) -> str:
    name = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    name = _UNSAFE_CHARS.sub("_", name).lstrip(".")
    return name[-_MAX_NAME_LENGTH:] or "image"


class DiskImageCache:
    """URL-keyed image cache backed by a directory.

    Attributes:
        cache_dir: Directory holding cached files (created on first write).
        max_age: Default age limit for evict_expired.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Directory holding cached files.
            client: HTTP client used for downloads; one is created (and owned)
                when omitted.
            transport: Transport for the owned client (e.g. MockTransport).
            timeout: Download timeout in seconds for the owned client.
            max_age: Default age limit for evict_expired.
            clock: Returns the current time as a POSIX timestamp.
        """
        self.cache_dir = Path(cache_dir)
        self.max_age = max_age
        self._clock = clock
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        )
        self._entries: dict[str, CachedImage] = {}
        self._in_flight: dict[str, asyncio.Task[Path]] = {}

    @property
    def entries(self) -> dict[str, CachedImage]:
        """Snapshot of the current entries keyed by source URL."""
        return dict(self._entries)

    @property
    def in_flight(self) -> set[str]:
        """URLs with a download in progress."""
        return set(self._in_flight)

    async def aclose(self) -> None:
        """Close the HTTP client if the cache created it."""
        if self._owns_client:
            await self._client.aclose()

    def lookup(self, url: str) -> Path | None:
        """Return the cached file for ``url``, or None.

        None means "load the remote URL directly". No download is started.
        """
        entry = self._entries.get(url)
        if entry is None or not entry.local_path.is_file():
            return None
        return entry.local_path

    def is_cached(self, url: str) -> bool:
        return self.lookup(url) is not None

    async def ensure_cached(self, url: str, force: bool = False) -> Path:
        """Make sure ``url`` is on disk and return its local path.

        Concurrent calls for the same URL await the same download. With
        ``force`` an existing entry is re-downloaded and atomically replaced.

        Args:
            url: Remote image URL.
            force: Re-download even when the URL is already cached.

        Returns:
            Path to the cached file.

        Raises:
            DownloadError: If the fetch fails, returns a non-success status,
                or the file cannot be written. The URL is not left in flight.
        """
        if not force:
            cached = self.lookup(url)
            if cached is not None:
                logger.debug("Image cache hit: %s", url)
                return cached

        task = self._in_flight.get(url)
        if task is None:
            task = asyncio.create_task(self._download(url))
            self._in_flight[url] = task
        else:
            logger.debug("Joining in-flight download: %s", url)
        # a cancelled waiter must not cancel the shared download
        return await asyncio.shield(task)

    async def _download(self, url: str) -> Path:
        try:
            try:
                response = await self._client.get(url)
            except httpx.HTTPError as e:
                raise DownloadError(f"Image download failed: {e}", url=url) from e
            if not response.is_success:
                raise DownloadError(
                    "Image download failed", url=url, status_code=response.status_code
                )

            now = self._clock()
            final_path = self.cache_dir / (
                f"{int(now * 1000)}_"
                f"{hashlib.sha1(url.encode()).hexdigest()[:12]}_"
                f"{_original_filename(url)}"
            )
            try:
                await asyncio.to_thread(self._write_atomic, final_path, response.content)
            except OSError as e:
                raise DownloadError(f"Could not write cached image: {e}", url=url) from e

            previous = self._entries.get(url)
            self._entries[url] = CachedImage(
                source_url=url,
                local_path=final_path,
                cached_at=datetime.fromtimestamp(now, tz=timezone.utc),
            )
            if previous is not None and previous.local_path != final_path:
                await asyncio.to_thread(self._discard, previous.local_path)

            logger.info("Cached image %s -> %s", url, final_path.name)
            return final_path
        finally:
            self._in_flight.pop(url, None)

    def _write_atomic(self, final_path: Path, content: bytes) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        part_path = final_path.with_name(f".{final_path.name}.part")
        try:
            part_path.write_bytes(content)
            os.replace(part_path, final_path)
        except OSError:
            part_path.unlink(missing_ok=True)
            raise

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove replaced cache file %s: %s", path.name, e)

    async def evict_expired(self, max_age: timedelta | None = None) -> int:
        """Delete cached files older than ``max_age``.

        Age is measured from each file's modification time. A file that
        cannot be inspected or deleted is logged and skipped; the sweep
        always runs to completion.

        Args:
            max_age: Age limit; defaults to the cache's max_age (24 hours).

        Returns:
            Number of files deleted.
        """
        limit = (max_age or self.max_age).total_seconds()
        removed = await asyncio.to_thread(self._sweep, limit)

        removed_set = set(removed)
        for url, entry in list(self._entries.items()):
            if entry.local_path in removed_set:
                del self._entries[url]

        if removed:
            logger.info("Evicted %d expired cached image(s)", len(removed))
        return len(removed)

    def _sweep(self, max_age_seconds: float) -> list[Path]:
        if not self.cache_dir.is_dir():
            return []
        try:
            paths = list(self.cache_dir.iterdir())
        except OSError as e:
            logger.error("Could not scan image cache %s: %s", self.cache_dir, e)
            return []

        now = self._clock()
        removed = []
        for path in paths:
            try:
                if not path.is_file():
                    continue
                if now - path.stat().st_mtime > max_age_seconds:
                    path.unlink()
                    removed.append(path)
                    logger.debug("Evicted cached image %s", path.name)
            except OSError as e:
                logger.warning("Skipping cache entry %s during eviction: %s", path.name, e)
        return removed
