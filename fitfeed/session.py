"""Per-session wiring of the feed core.

FeedSession is the composition root: it builds the API client, the image
cache, the prefetch scheduler, the feed store, the view controller and the
cart from one FeedSettings and one token getter. Nothing is shared between
sessions.
"""

import asyncio
import logging
from typing import Any

import httpx

from fitfeed.cart import Cart
from fitfeed.composer import PostDraft
from fitfeed.config import FeedSettings
from fitfeed.image_cache import DiskImageCache
from fitfeed.prefetch import PrefetchScheduler
from fitfeed.store import FeedStore, UserPostsSource
from fitfeed.view_state import Sleep, ViewController
from onlyfits import AsyncOnlyFitsClient
from onlyfits._http import AsyncTokenGetter

logger = logging.getLogger(__name__)


class FeedSession:
    """Everything one signed-in feed screen needs.

    Example:
        async with FeedSession(FeedSettings.from_env(), get_token) as session:
            await session.controller.start()
            for post in session.controller.visible_posts():
                ...

    Attributes:
        settings: The settings the session was built from.
        client: Authenticated OnlyFits API client.
        cache: Disk image cache.
        prefetcher: Prefetch scheduler over the cache.
        store: Home feed store.
        controller: View controller for the home feed.
        cart: The session's cart.
    """

    def __init__(
        self,
        settings: FeedSettings,
        token_getter: AsyncTokenGetter,
        api_transport: httpx.AsyncBaseTransport | None = None,
        image_transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Build the session.

        Args:
            settings: Session configuration.
            token_getter: Returns the current bearer token (sync or async).
            api_transport: Transport for API requests (e.g. ASGITransport).
            image_transport: Transport for image downloads (e.g. MockTransport).
            sleep: Awaitable sleep used for transitions and image retries.
        """
        self.settings = settings
        self.client = AsyncOnlyFitsClient(
            base_url=settings.api_base_url,
            token_getter=token_getter,
            timeout=settings.request_timeout,
            retry_enabled=settings.retry_enabled,
            transport=api_transport,
        )
        self.cache = DiskImageCache(
            settings.cache_dir,
            transport=image_transport,
            timeout=settings.request_timeout,
            max_age=settings.cache_max_age,
        )
        self.prefetcher = PrefetchScheduler(self.cache, default_limit=settings.prefetch_limit)
        self.store = FeedStore(self.client, page_size=settings.page_size)
        self.controller = ViewController(
            self.store,
            self.prefetcher,
            transition_duration=settings.transition_duration,
            max_image_retries=settings.max_image_retries,
            retry_base_delay=settings.retry_base_delay,
            prefetch_limit=settings.prefetch_limit,
            vertical_prefetch_limit=settings.vertical_prefetch_limit,
            sleep=sleep,
        )
        self.cart = Cart()

    async def __aenter__(self) -> "FeedSession":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cancel image retries and close both HTTP clients once prefetches settle."""
        self.controller.reset_image_states()
        await self.controller.drain()
        await self.cache.aclose()
        await self.client.close()
        logger.debug("Feed session closed")

    def user_posts_store(self, user_id: str = "me") -> FeedStore:
        """A store paging one user's posts with the feed's pagination rules."""
        return FeedStore(
            self.client,
            source=UserPostsSource(self.client, user_id),
            page_size=self.settings.page_size,
        )

    async def submit(self, draft: PostDraft) -> bool:
        """Upload a draft and reload the feed so the new post shows up.

        Raises:
            ValidationError: If the draft is incomplete.
            NetworkError: If the upload fails.
        """
        await draft.submit(self.client)
        return await self.controller.refresh()
