"""Main OnlyFits client classes.

This module provides the main entry points for talking to the OnlyFits API:
- OnlyFitsClient: Synchronous client
- AsyncOnlyFitsClient: Asynchronous client

Both clients provide namespaced access to the API through sub-client
properties (``client.feed``, ``client.posts``, ``client.profiles``). A client
is constructed explicitly per authenticated session with the identity
provider's token getter; there is no module-level instance.

Example:
    Synchronous usage::

        from onlyfits import OnlyFitsClient

        with OnlyFitsClient(token_getter=session.get_token) as client:
            page = client.feed.get_feed(limit=20)
            client.posts.like(page.feed[0].id)

    Asynchronous usage::

        from onlyfits import AsyncOnlyFitsClient

        async with AsyncOnlyFitsClient(token_getter=session.get_token) as client:
            page = await client.feed.get_feed()
"""

from typing import Any

from onlyfits._feed import AsyncFeedClient, FeedClient
from onlyfits._http import (
    DEFAULT_BASE_URL,
    AsyncHTTPClient,
    AsyncTokenGetter,
    HTTPClient,
    TokenGetter,
)
from onlyfits._posts import AsyncPostsClient, PostsClient
from onlyfits._profiles import AsyncProfilesClient, ProfilesClient


class OnlyFitsClient:
    """Synchronous client for the OnlyFits REST API.

    Attributes:
        base_url: The base URL of the API.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token_getter: TokenGetter | None = None,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The base URL of the API.
            token_getter: Callable returning the session's bearer token.
                Every request fails with AuthenticationError without one.
            timeout: Request timeout in seconds (default: 30.0).
            retry_enabled: Whether to retry connection errors, timeouts and
                HTTP 502/503/504 with exponential backoff.
            max_retries: Maximum number of retry attempts.
            transport: Custom HTTP transport (e.g., MockTransport for testing).
        """
        self.base_url = base_url
        self.timeout = timeout

        self._http = HTTPClient(
            base_url=base_url,
            token_getter=token_getter,
            timeout=timeout,
            retry_enabled=retry_enabled,
            max_retries=max_retries,
            transport=transport,
        )

        self._feed: FeedClient | None = None
        self._posts: PostsClient | None = None
        self._profiles: ProfilesClient | None = None

    def __enter__(self) -> "OnlyFitsClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the client and release resources."""
        self._http.close()

    @property
    def feed(self) -> FeedClient:
        """Access the home feed endpoint (/feed)."""
        if self._feed is None:
            self._feed = FeedClient(self._http)
        return self._feed

    @property
    def posts(self) -> PostsClient:
        """Access post endpoints (likes, views, user posts, upload)."""
        if self._posts is None:
            self._posts = PostsClient(self._http)
        return self._posts

    @property
    def profiles(self) -> ProfilesClient:
        """Access profile endpoints (/profiles/*)."""
        if self._profiles is None:
            self._profiles = ProfilesClient(self._http)
        return self._profiles


class AsyncOnlyFitsClient:
    """Asynchronous client for the OnlyFits REST API.

    The token getter may be a coroutine function; it is awaited before
    every request.

    Example:
        Concurrent page and profile fetch::

            async with AsyncOnlyFitsClient(token_getter=get_token) as client:
                page, me = await asyncio.gather(
                    client.feed.get_feed(),
                    client.profiles.get(),
                )
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token_getter: AsyncTokenGetter | None = None,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: Any = None,
    ) -> None:
        """Initialize the async client.

        Args:
            base_url: The base URL of the API.
            token_getter: Callable (sync or async) returning the bearer token.
            timeout: Request timeout in seconds (default: 30.0).
            retry_enabled: Whether to retry transient failures.
            max_retries: Maximum number of retry attempts.
            transport: Custom async transport (e.g., ASGITransport for testing).
        """
        self.base_url = base_url
        self.timeout = timeout

        self._http = AsyncHTTPClient(
            base_url=base_url,
            token_getter=token_getter,
            timeout=timeout,
            retry_enabled=retry_enabled,
            max_retries=max_retries,
            transport=transport,
        )

        self._feed: AsyncFeedClient | None = None
        self._posts: AsyncPostsClient | None = None
        self._profiles: AsyncProfilesClient | None = None

    async def __aenter__(self) -> "AsyncOnlyFitsClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._http.close()

    @property
    def feed(self) -> AsyncFeedClient:
        """Access the home feed endpoint (/feed)."""
        if self._feed is None:
            self._feed = AsyncFeedClient(self._http)
        return self._feed

    @property
    def posts(self) -> AsyncPostsClient:
        """Access post endpoints (likes, views, user posts, upload)."""
        if self._posts is None:
            self._posts = AsyncPostsClient(self._http)
        return self._posts

    @property
    def profiles(self) -> AsyncProfilesClient:
        """Access profile endpoints (/profiles/*)."""
        if self._profiles is None:
            self._profiles = AsyncProfilesClient(self._http)
        return self._profiles
