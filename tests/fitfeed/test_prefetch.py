"""Unit tests for PrefetchScheduler.

The scheduler is exercised against a real DiskImageCache whose downloads
go through an httpx.MockTransport, so skipping, joining and failure
handling are tested end to end.
"""

import asyncio

import httpx
import pytest

from fitfeed.image_cache import DiskImageCache
from fitfeed.prefetch import DEFAULT_PREFETCH_LIMIT, VERTICAL_PREFETCH_LIMIT, PrefetchScheduler
from tests.fixtures.posts import create_feed_post, image_url


class RecordingHandler:
    """MockTransport handler that records requests and fails chosen URLs."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.requests: list[str] = []
        self.failing = failing or set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.failing:
            return httpx.Response(500)
        return httpx.Response(200, content=b"img")


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
async def cache(tmp_path, handler):
    cache = DiskImageCache(tmp_path / "cache", transport=httpx.MockTransport(handler))
    yield cache
    await cache.aclose()


@pytest.fixture
def scheduler(cache) -> PrefetchScheduler:
    return PrefetchScheduler(cache)


def make_posts(count: int, image_count: int = 2):
    return [
        create_feed_post(post_id=f"p{index}", image_count=image_count) for index in range(count)
    ]


class TestPolicyConstants:
    def test_limits(self):
        assert DEFAULT_PREFETCH_LIMIT == 10
        assert VERTICAL_PREFETCH_LIMIT == 5


class TestPrefetchForPosts:
    """Tests for prefetch_for_posts()."""

    async def test_default_limit_is_ten_posts(self, scheduler, handler):
        posts = make_posts(12, image_count=1)

        result = await scheduler.prefetch_for_posts(posts)

        assert result.requested == 10
        assert sorted(handler.requests) == sorted(image_url(f"p{i}", 0) for i in range(10))

    async def test_explicit_limit(self, scheduler, handler):
        posts = make_posts(8, image_count=3)

        result = await scheduler.prefetch_for_posts(posts, limit=5)

        assert result.requested == 15
        assert len(result.cached) == 15
        assert len(handler.requests) == 15

    async def test_zero_limit_does_nothing(self, scheduler, handler):
        result = await scheduler.prefetch_for_posts(make_posts(3), limit=0)

        assert result.requested == 0
        assert handler.requests == []

    async def test_shared_urls_are_fetched_once(self, scheduler, handler):
        shared = "http://test/images/shared.jpg"
        posts = [
            create_feed_post(post_id="a", images=[shared, image_url("a", 1)]),
            create_feed_post(post_id="b", images=[shared]),
        ]

        result = await scheduler.prefetch_for_posts(posts)

        assert result.requested == 2
        assert handler.requests.count(shared) == 1

    async def test_cached_urls_are_skipped(self, scheduler, cache, handler):
        posts = make_posts(2, image_count=1)
        await cache.ensure_cached(image_url("p0", 0))
        handler.requests.clear()

        result = await scheduler.prefetch_for_posts(posts)

        assert result.skipped == 1
        assert handler.requests == [image_url("p1", 0)]

    async def test_failures_are_swallowed(self, tmp_path):
        failing = {image_url("p1", 0)}
        handler = RecordingHandler(failing=failing)
        cache = DiskImageCache(tmp_path / "cache", transport=httpx.MockTransport(handler))
        scheduler = PrefetchScheduler(cache)

        result = await scheduler.prefetch_for_posts(make_posts(3, image_count=1))

        assert result.failed == [image_url("p1", 0)]
        assert len(result.cached) == 2
        assert cache.lookup(image_url("p1", 0)) is None
        assert cache.lookup(image_url("p2", 0)) is not None
        await cache.aclose()

    async def test_overlapping_batches_share_downloads(self, tmp_path):
        release = asyncio.Event()
        requests = []

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            await release.wait()
            return httpx.Response(200, content=b"img")

        cache = DiskImageCache(tmp_path / "cache", transport=httpx.MockTransport(slow_handler))
        scheduler = PrefetchScheduler(cache)
        posts = make_posts(2, image_count=2)

        first = asyncio.create_task(scheduler.prefetch_for_posts(posts))
        second = asyncio.create_task(scheduler.prefetch_for_posts(posts))
        await asyncio.sleep(0.01)
        release.set()
        results = await asyncio.gather(first, second)

        assert len(requests) == 4
        assert all(len(result.cached) == 4 for result in results)
        await cache.aclose()


class TestPrefetchForPost:
    """Tests for prefetch_for_post()."""

    async def test_all_images_of_one_post(self, scheduler, handler):
        post = create_feed_post(post_id="focus", image_count=4)

        result = await scheduler.prefetch_for_post(post)

        assert result.requested == 4
        assert sorted(handler.requests) == sorted(post.images)
