"""Feed screen view state and the controller that drives it.

The feed is shown either as a grid of first images or as a vertical,
one-post-per-screen list in which each post pages horizontally through its
images. Selecting a post from the grid isolates it in vertical mode.

Mode changes and focus changes are the prefetch triggers: entering vertical
mode prefetches the first few posts, focusing a post prefetches its images,
and items that become viewable in vertical mode are prefetched as they
scroll in.

Every (post, image index) slot also has a render lifecycle::

    idle -> loading -> loaded
                    -> error -> (after 1s, 2s, 3s) loading -> ...

After three retries the slot stays in ``error`` until a full reload.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Coroutine, Optional

from pydantic import BaseModel, Field

from fitfeed.image_cache import DiskImageCache
from fitfeed.models import FeedPost, ImageKey, ImageLoadState, ViewMode
from fitfeed.prefetch import DEFAULT_PREFETCH_LIMIT, VERTICAL_PREFETCH_LIMIT, PrefetchScheduler
from fitfeed.store import FeedStore

logger = logging.getLogger(__name__)

DEFAULT_TRANSITION_DURATION = 0.2  # seconds
MAX_IMAGE_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds

# An item counts as viewable once it is at least half on screen for 100ms
VIEWABILITY_THRESHOLD_PERCENT = 50.0
VIEWABILITY_MIN_DURATION = 0.1  # seconds

Sleep = Callable[[float], Awaitable[None]]


class ViewState(BaseModel):
    """Presentation state of one feed screen.

    Args:
        mode: Grid or vertical presentation.
        focused_post_id: Post isolated in vertical mode (lookup only).
        transitioning: True while the grid/vertical transition runs.
        current_image_index: Horizontal page per post in vertical mode.
        load_state: Render lifecycle per image slot.
        retry_count: Automatic retries issued per image slot (at most the cap).
    """

    mode: ViewMode = ViewMode.GRID
    focused_post_id: Optional[str] = None
    transitioning: bool = False
    current_image_index: dict[str, int] = Field(default_factory=dict)
    load_state: dict[ImageKey, ImageLoadState] = Field(default_factory=dict)
    retry_count: dict[ImageKey, int] = Field(default_factory=dict)


@dataclass
class ViewableItem:
    """A post reported by the list's viewability callback.

    Attributes:
        post: The post.
        visible_percent: Share of the item on screen, 0-100.
        visible_for: Seconds the item has been at least that visible.
    """

    post: FeedPost
    visible_percent: float
    visible_for: float

    @property
    def is_viewable(self) -> bool:
        return (
            self.visible_percent >= VIEWABILITY_THRESHOLD_PERCENT
            and self.visible_for >= VIEWABILITY_MIN_DURATION
        )


class ViewController:
    """Drives the feed screen's view state.

    Prefetches run as background tasks so that mode changes return as soon
    as the transition finishes; ``drain`` waits for them.

    Args:
        store: Source of posts.
        prefetcher: Scheduler used for all prefetch triggers.
        cache: Cache consulted by image_source; defaults to the prefetcher's.
        transition_duration: Length of a grid/vertical transition, seconds.
        max_image_retries: Automatic retries per image slot.
        retry_base_delay: Linear backoff base, seconds.
        prefetch_limit: Posts prefetched after a first-page load.
        vertical_prefetch_limit: Posts prefetched when entering vertical mode.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        store: FeedStore,
        prefetcher: PrefetchScheduler,
        cache: DiskImageCache | None = None,
        transition_duration: float = DEFAULT_TRANSITION_DURATION,
        max_image_retries: int = MAX_IMAGE_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
        prefetch_limit: int = DEFAULT_PREFETCH_LIMIT,
        vertical_prefetch_limit: int = VERTICAL_PREFETCH_LIMIT,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.prefetcher = prefetcher
        self.cache = cache or prefetcher.cache
        self.transition_duration = transition_duration
        self.max_image_retries = max_image_retries
        self.retry_base_delay = retry_base_delay
        self.prefetch_limit = prefetch_limit
        self.vertical_prefetch_limit = vertical_prefetch_limit
        self._sleep = sleep

        self.state = ViewState()
        self._background: set[asyncio.Task] = set()
        self._retry_tasks: dict[ImageKey, asyncio.Task] = {}

    # ===== Lifecycle =====

    async def start(self) -> bool:
        """Sweep expired cache files once, then load the first page."""
        await self.cache.evict_expired()
        return await self.refresh()

    async def refresh(self) -> bool:
        """Reload the first page and reset per-image state.

        A full reload is the only way out of a settled image error.
        """
        loaded = await self.store.load_first_page()
        if loaded:
            self.reset_image_states()
            self._spawn(self.prefetcher.prefetch_for_posts(self.store.posts, self.prefetch_limit))
        return loaded

    async def load_more(self) -> bool:
        return await self.store.load_more()

    async def search(self, query: str) -> list[FeedPost]:
        """Filter the feed; a blank query reloads like ``refresh``."""
        if not query or not query.strip():
            await self.store.search("")
            if self.store.load_error is None:
                self.reset_image_states()
                self._spawn(
                    self.prefetcher.prefetch_for_posts(self.store.posts, self.prefetch_limit)
                )
            return self.store.posts
        return await self.store.search(query)

    async def drain(self) -> None:
        """Wait until background prefetches and scheduled retries settle."""
        while self._background or self._retry_tasks:
            pending = list(self._background) + list(self._retry_tasks.values())
            await asyncio.gather(*pending, return_exceptions=True)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # ===== Mode transitions =====

    async def _transition(self, target: ViewMode) -> None:
        self.state.transitioning = True
        try:
            await self._sleep(self.transition_duration)
        finally:
            self.state.transitioning = False
        self.state.mode = target
        logger.debug("View mode is now %s", target.value)

    async def toggle_mode(self) -> ViewMode:
        """Switch between grid and vertical presentation.

        Entering vertical mode prefetches the first few posts; leaving it
        clears the focused post.
        """
        if self.state.mode == ViewMode.GRID:
            await self._transition(ViewMode.VERTICAL)
            self._spawn(
                self.prefetcher.prefetch_for_posts(
                    self.store.posts, self.vertical_prefetch_limit
                )
            )
        else:
            await self.back()
        return self.state.mode

    async def select_post(self, post_id: str) -> bool:
        """Open one post in isolation in vertical mode.

        Returns:
            False if the post is not in the store.
        """
        post = self.store.get_post(post_id)
        if post is None:
            logger.warning("Cannot focus unknown post %s", post_id)
            return False

        self.state.focused_post_id = post_id
        self._spawn(self.prefetcher.prefetch_for_post(post))
        await self._transition(ViewMode.VERTICAL)
        return True

    async def back(self) -> None:
        """Return to grid mode, dropping the focused post."""
        self.state.focused_post_id = None
        if self.state.mode == ViewMode.GRID:
            return
        await self._transition(ViewMode.GRID)

    def visible_posts(self) -> list[FeedPost]:
        """Posts the current mode renders, in order."""
        focused_id = self.state.focused_post_id
        if self.state.mode == ViewMode.VERTICAL and focused_id is not None:
            post = self.store.get_post(focused_id)
            if post is not None:
                return [post]
        return self.store.posts

    async def on_viewable_items_changed(self, items: list[ViewableItem]) -> None:
        """Prefetch posts that scrolled into view in vertical mode."""
        if self.state.mode != ViewMode.VERTICAL:
            return
        posts = [item.post for item in items if item.is_viewable]
        if posts:
            self._spawn(self.prefetcher.prefetch_for_posts(posts, len(posts)))

    # ===== Horizontal paging =====

    def current_image_index(self, post_id: str) -> int:
        return self.state.current_image_index.get(post_id, 0)

    def on_page_scroll_end(self, post_id: str, offset: float, page_width: float) -> int:
        """Snap to the nearest image page when a horizontal scroll settles.

        Returns:
            The new image index for the post.
        """
        post = self.store.get_post(post_id)
        if post is None or page_width <= 0:
            return self.current_image_index(post_id)

        index = round(offset / page_width)
        index = max(0, min(len(post.images) - 1, index))
        self.state.current_image_index[post_id] = index
        return index

    # ===== Image load lifecycle =====

    def load_state(self, post_id: str, image_index: int) -> ImageLoadState:
        return self.state.load_state.get(ImageKey(post_id, image_index), ImageLoadState.IDLE)

    def retry_count(self, post_id: str, image_index: int) -> int:
        return self.state.retry_count.get(ImageKey(post_id, image_index), 0)

    def _is_settled_error(self, key: ImageKey) -> bool:
        return (
            self.state.load_state.get(key) == ImageLoadState.ERROR
            and self.state.retry_count.get(key, 0) >= self.max_image_retries
        )

    def begin_image_load(self, post_id: str, image_index: int) -> ImageLoadState:
        """Mark an image slot as loading, unless it has settled in error."""
        key = ImageKey(post_id, image_index)
        if not self._is_settled_error(key):
            self.state.load_state[key] = ImageLoadState.LOADING
        return self.state.load_state[key]

    def image_loaded(self, post_id: str, image_index: int) -> None:
        key = ImageKey(post_id, image_index)
        self.state.load_state[key] = ImageLoadState.LOADED
        task = self._retry_tasks.pop(key, None)
        if task is not None:
            task.cancel()

    def image_failed(self, post_id: str, image_index: int) -> bool:
        """Record a render failure and schedule a retry if allowed.

        The n-th retry (1-based) waits ``retry_base_delay * n`` seconds.

        Returns:
            True if a retry is scheduled.
        """
        key = ImageKey(post_id, image_index)
        self.state.load_state[key] = ImageLoadState.ERROR

        if key in self._retry_tasks:
            return True

        attempts = self.state.retry_count.get(key, 0)
        if attempts >= self.max_image_retries:
            logger.warning(
                "Image %d of post %s failed after %d retries", image_index, post_id, attempts
            )
            return False

        delay = self.retry_base_delay * (attempts + 1)
        self.state.retry_count[key] = attempts + 1
        self._retry_tasks[key] = asyncio.create_task(self._retry_after(key, delay))
        logger.debug(
            "Retrying image %d of post %s in %.1fs (attempt %d)",
            image_index, post_id, delay, attempts + 1,
        )
        return True

    async def _retry_after(self, key: ImageKey, delay: float) -> None:
        try:
            await self._sleep(delay)
            if self.state.load_state.get(key) == ImageLoadState.ERROR:
                self.state.load_state[key] = ImageLoadState.LOADING
        finally:
            if self._retry_tasks.get(key) is asyncio.current_task():
                del self._retry_tasks[key]

    def reset_image_states(self) -> None:
        """Forget all per-image load, retry and paging state."""
        for task in self._retry_tasks.values():
            task.cancel()
        self._retry_tasks.clear()
        self.state.load_state.clear()
        self.state.retry_count.clear()
        self.state.current_image_index.clear()

    def image_source(self, post_id: str, image_index: int) -> str | None:
        """URI the renderer should load for an image slot.

        A cached file wins; otherwise the remote URL is used directly.
        Returns None for an unknown post or index.
        """
        post = self.store.get_post(post_id)
        if post is None or not 0 <= image_index < len(post.images):
            return None
        url = post.images[image_index]
        local = self.cache.lookup(url)
        if local is None:
            return url
        return local.resolve().as_uri()
