"""Feed sub-client for the OnlyFits API.

This module provides FeedClient and AsyncFeedClient for the cursor-paged
home feed (``GET /feed``).

This is an internal module. Import from `onlyfits` instead.
"""

from onlyfits._base import AsyncBaseClient, BaseClient
from onlyfits.models import FeedResponse

DEFAULT_PAGE_SIZE = 20


class FeedClient(BaseClient):
    """Synchronous client for the home feed endpoint.

    Example:
        with OnlyFitsClient(token_getter=get_token) as client:
            page = client.feed.get_feed(limit=20)
            while page.next_cursor:
                page = client.feed.get_feed(cursor=page.next_cursor)
    """

    _BASE_PATH = "/feed"

    def get_feed(self, limit: int = DEFAULT_PAGE_SIZE, cursor: str | None = None) -> FeedResponse:
        """Fetch one page of the home feed.

        Args:
            limit: Maximum number of posts on the page.
            cursor: Opaque cursor from the previous page, or None for the first.

        Returns:
            The page of posts and the cursor for the next one.

        Raises:
            AuthenticationError: If no bearer token is available.
            APIError: If the request fails.
        """
        data = self._get(self._BASE_PATH, params={"limit": limit, "cursor": cursor})
        return FeedResponse(**data)


class AsyncFeedClient(AsyncBaseClient):
    """Asynchronous client for the home feed endpoint."""

    _BASE_PATH = "/feed"

    async def get_feed(
        self, limit: int = DEFAULT_PAGE_SIZE, cursor: str | None = None
    ) -> FeedResponse:
        """Fetch one page of the home feed.

        See FeedClient.get_feed for details.
        """
        data = await self._get(self._BASE_PATH, params={"limit": limit, "cursor": cursor})
        return FeedResponse(**data)
