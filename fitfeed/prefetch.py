"""Prefetch scheduling for feed images.

The scheduler pushes the images of upcoming posts through the disk cache so
the renderer finds them locally. It never raises: a URL that fails to
prefetch simply stays uncached and is loaded remotely at render time.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from fitfeed.image_cache import DiskImageCache
from fitfeed.models import FeedPost

logger = logging.getLogger(__name__)

DEFAULT_PREFETCH_LIMIT = 10
VERTICAL_PREFETCH_LIMIT = 5


@dataclass
class PrefetchResult:
    """Outcome of one prefetch batch.

    Attributes:
        requested: Distinct URLs in the batch.
        skipped: URLs already cached before the batch started.
        cached: URLs that are on disk after the batch.
        failed: URLs whose download failed.
    """

    requested: int = 0
    skipped: int = 0
    cached: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class PrefetchScheduler:
    """Issues cache downloads for the images of feed posts.

    Args:
        cache: The disk cache downloads go through.
        default_limit: Posts considered by prefetch_for_posts when no limit
            is given.
    """

    def __init__(self, cache: DiskImageCache, default_limit: int = DEFAULT_PREFETCH_LIMIT) -> None:
        self.cache = cache
        self.default_limit = default_limit

    async def prefetch_for_posts(
        self, posts: Iterable[FeedPost], limit: int | None = None
    ) -> PrefetchResult:
        """Prefetch every image of the first ``limit`` posts in parallel.

        Waits for all downloads to settle and never raises.
        """
        limit = self.default_limit if limit is None else limit
        selected = list(posts)[: max(limit, 0)]
        urls = [url for post in selected for url in post.images]
        return await self._prefetch_urls(urls)

    async def prefetch_for_post(self, post: FeedPost) -> PrefetchResult:
        """Prefetch all images of a single post (e.g. when it is focused)."""
        return await self._prefetch_urls(post.images)

    async def _prefetch_urls(self, urls: Iterable[str]) -> PrefetchResult:
        unique = list(dict.fromkeys(urls))
        result = PrefetchResult(requested=len(unique))

        pending = []
        for url in unique:
            if self.cache.is_cached(url):
                result.skipped += 1
                result.cached.append(url)
            else:
                pending.append(url)

        outcomes = await asyncio.gather(
            *(self.cache.ensure_cached(url) for url in pending),
            return_exceptions=True,
        )
        for url, outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Prefetch failed for %s: %s", url, outcome)
                result.failed.append(url)
            else:
                result.cached.append(url)

        logger.debug(
            "Prefetched %d/%d image(s), %d already cached, %d failed",
            len(result.cached) - result.skipped,
            len(pending),
            result.skipped,
            len(result.failed),
        )
        return result
