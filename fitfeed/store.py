"""Paginated post store with optimistic like/unlike.

The store owns the loaded post collection and its cursor. It never loses
loaded posts to a failure: a failed page load leaves the collection as it
was and records a retryable notice instead.

Reload ordering:
    Every ``load_first_page`` call gets a generation number. Responses are
    applied in issue order; a response that arrives after a newer one has
    been applied is discarded. A ``load_more`` result is discarded when a
    reload was issued while it was in flight.

Like ordering:
    Toggles on the same post are serialized with a per-post asyncio.Lock.
    A toggle in flight makes the next toggle on that post wait until it has
    settled, so a revert can never clobber a later successful toggle.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal, Protocol

from pydantic import ValidationError as ModelValidationError

from fitfeed.exceptions import NetworkError
from fitfeed.models import FeedPage, FeedPost
from onlyfits import AsyncOnlyFitsClient, OnlyFitsClientError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

NoticeKind = Literal["load", "load_more", "like"]


class PageSource(Protocol):
    """Anything that can fetch one cursor-paged page of posts."""

    async def fetch_page(self, limit: int, cursor: str | None) -> FeedPage:
        ...


class FeedSource:
    """Pages of the home feed (``GET /feed``)."""

    def __init__(self, client: AsyncOnlyFitsClient) -> None:
        self._client = client

    async def fetch_page(self, limit: int, cursor: str | None) -> FeedPage:
        response = await self._client.feed.get_feed(limit=limit, cursor=cursor)
        return FeedPage.from_api(response.feed, response.next_cursor)


class UserPostsSource:
    """Pages of one user's posts (``GET /users/{id}/posts``)."""

    def __init__(self, client: AsyncOnlyFitsClient, user_id: str = "me") -> None:
        self._client = client
        self.user_id = user_id

    async def fetch_page(self, limit: int, cursor: str | None) -> FeedPage:
        response = await self._client.posts.get_user_posts(
            self.user_id, limit=limit, cursor=cursor
        )
        return FeedPage.from_api(response.posts, response.next_cursor)


@dataclass(eq=False)
class Notice:
    """A dismissable, user-visible error.

    Attributes:
        kind: What failed.
        message: Text to show.
        retryable: Whether offering "try again" makes sense.
        error: The underlying error.
    """

    kind: NoticeKind
    message: str
    retryable: bool
    error: NetworkError


def _dedupe(posts: list[FeedPost], seen: set[str]) -> list[FeedPost]:
    unique = []
    for post in posts:
        if post.id in seen:
            logger.debug("Skipping duplicate post %s", post.id)
            continue
        seen.add(post.id)
        unique.append(post)
    return unique


class FeedStore:
    """Holds paginated posts and applies optimistic mutations.

    Attributes:
        page_size: Default number of posts per page.
        notices: Pending user-visible errors, oldest first.
        load_error: Notice of the last failed page load, cleared by the next
            successful one.
    """

    def __init__(
        self,
        client: AsyncOnlyFitsClient,
        source: PageSource | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._source = source or FeedSource(client)
        self.page_size = page_size

        self._all_posts: list[FeedPost] = []
        self._next_cursor: str | None = None
        self._query: str | None = None
        self._has_loaded = False

        self._issued_generation = 0
        self._applied_generation = 0
        self._reloads_in_flight = 0
        self._loading_more = False
        self._like_locks: dict[str, asyncio.Lock] = {}

        self.notices: list[Notice] = []
        self.load_error: Notice | None = None

    # ===== Read access =====

    @property
    def posts(self) -> list[FeedPost]:
        """Posts to render, filtered by the active search query if any."""
        if self._query is None:
            return list(self._all_posts)
        return [post for post in self._all_posts if post.matches(self._query)]

    @property
    def next_cursor(self) -> str | None:
        return self._next_cursor

    @property
    def has_more(self) -> bool:
        return self._next_cursor is not None

    @property
    def has_loaded(self) -> bool:
        """Whether any first page has been applied."""
        return self._has_loaded

    @property
    def is_loading(self) -> bool:
        return self._reloads_in_flight > 0 or self._loading_more

    @property
    def is_reloading(self) -> bool:
        return self._reloads_in_flight > 0

    @property
    def query(self) -> str | None:
        return self._query

    def get_post(self, post_id: str) -> FeedPost | None:
        for post in self._all_posts:
            if post.id == post_id:
                return post
        return None

    # ===== Pagination =====

    async def load_first_page(self, page_size: int | None = None) -> bool:
        """Replace the collection with a fresh first page.

        Clears any active search filter on success.

        Args:
            page_size: Posts to request; defaults to ``page_size``.

        Returns:
            True if this call's page was applied. False when the load failed
            (see ``load_error``) or a newer reload had already been applied.
        """
        self._issued_generation += 1
        generation = self._issued_generation
        self._reloads_in_flight += 1
        try:
            page = await self._source.fetch_page(page_size or self.page_size, None)
        except (OnlyFitsClientError, ModelValidationError) as e:
            if generation < self._applied_generation:
                logger.debug(
                    "Ignoring failure of superseded reload (generation %d): %s", generation, e
                )
                return False
            self._report_load_failure("load", "Failed to load feed. Please try again.", e)
            return False
        finally:
            self._reloads_in_flight -= 1

        if generation < self._applied_generation:
            logger.debug(
                "Discarding stale reload (generation %d, applied %d)",
                generation, self._applied_generation,
            )
            return False

        self._applied_generation = generation
        self._all_posts = _dedupe(page.items, set())
        self._prune_like_locks()
        self._next_cursor = page.next_cursor
        self._query = None
        self._has_loaded = True
        self.load_error = None
        logger.info(
            "Loaded first page: %d post(s), has_more=%s", len(self._all_posts), self.has_more
        )
        return True

    async def load_more(self, page_size: int | None = None) -> bool:
        """Append the next page to the collection.

        Does nothing while any load is in flight, while a search filter is
        active, or when there is no further page.

        Returns:
            True if a page was appended.
        """
        if self.is_loading or self._next_cursor is None or self._query is not None:
            return False

        issued = self._issued_generation
        cursor = self._next_cursor
        self._loading_more = True
        try:
            page = await self._source.fetch_page(page_size or self.page_size, cursor)
        except (OnlyFitsClientError, ModelValidationError) as e:
            self._report_load_failure(
                "load_more", "Failed to load more posts. Please try again.", e
            )
            return False
        finally:
            self._loading_more = False

        if issued != self._issued_generation:
            logger.debug("Discarding page %s: a reload was issued meanwhile", cursor)
            return False

        new_posts = _dedupe(page.items, {post.id for post in self._all_posts})
        self._all_posts.extend(new_posts)
        self._next_cursor = page.next_cursor
        self.load_error = None
        logger.info(
            "Loaded %d more post(s), total %d, has_more=%s",
            len(new_posts), len(self._all_posts), self.has_more,
        )
        return True

    # ===== Search =====

    async def search(self, query: str) -> list[FeedPost]:
        """Filter loaded posts by author handle or tag substring.

        Matching is case-insensitive and only covers posts already loaded.
        A blank query clears the filter and reloads the first page.

        Returns:
            The posts now visible.
        """
        if not query or not query.strip():
            self._query = None
            await self.load_first_page()
            return self.posts

        self._query = query.strip()
        visible = self.posts
        logger.debug("Search %r matched %d post(s)", self._query, len(visible))
        return visible

    # ===== Optimistic likes =====

    async def toggle_like(self, post_id: str) -> bool:
        """Flip the like state of a post, optimistically.

        The flip is applied before the first suspension point so a renderer
        sees it immediately. On API failure the exact pre-toggle values are
        restored and a notice is recorded.

        Returns:
            True if the toggle was confirmed by the API. False for an unknown
            post or a reverted toggle.
        """
        if self.get_post(post_id) is None:
            return False

        lock = self._like_locks.setdefault(post_id, asyncio.Lock())
        async with lock:
            post = self.get_post(post_id)
            if post is None:
                return False

            was_liked, previous_count = post.liked_by_me, post.like_count
            post.liked_by_me = not was_liked
            post.like_count = max(previous_count + (-1 if was_liked else 1), 0)

            try:
                if was_liked:
                    await self._client.posts.unlike(post_id)
                else:
                    await self._client.posts.like(post_id)
            except OnlyFitsClientError as e:
                post.liked_by_me = was_liked
                post.like_count = previous_count
                logger.error("Failed to toggle like on post %s: %s", post_id, e)
                self._push_notice(
                    Notice(
                        kind="like",
                        message="Failed to update like. Please try again.",
                        retryable=False,
                        error=NetworkError("Like update failed", cause=e),
                    )
                )
                return False
        return True

    def _prune_like_locks(self) -> None:
        # a toggle on a post that is no longer loaded returns before locking
        loaded = {post.id for post in self._all_posts}
        self._like_locks = {
            post_id: lock for post_id, lock in self._like_locks.items() if post_id in loaded
        }

    # ===== Notices =====

    def dismiss_notice(self, notice: Notice) -> None:
        if notice in self.notices:
            self.notices.remove(notice)
        if self.load_error is notice:
            self.load_error = None

    def _push_notice(self, notice: Notice) -> None:
        self.notices.append(notice)

    def _report_load_failure(self, kind: NoticeKind, message: str, cause: Exception) -> None:
        logger.error("%s: %s", message, cause)
        notice = Notice(
            kind=kind,
            message=message,
            retryable=True,
            error=NetworkError(message, cause=cause),
        )
        self.load_error = notice
        self._push_notice(notice)
