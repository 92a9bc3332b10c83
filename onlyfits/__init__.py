"""OnlyFits API Client Library.

This module provides a type-safe Python client for the OnlyFits REST API
(feed, posts, likes, profiles, post upload). It supports both synchronous
and asynchronous usage patterns. Every request is authenticated with a
bearer token obtained from a caller-supplied token getter.

Example:
    Synchronous usage::

        from onlyfits import OnlyFitsClient

        with OnlyFitsClient(token_getter=lambda: token) as client:
            page = client.feed.get_feed(limit=20)

    Asynchronous usage::

        from onlyfits import AsyncOnlyFitsClient

        async with AsyncOnlyFitsClient(token_getter=get_token) as client:
            await client.posts.like("post-1")

Exports:
    OnlyFitsClient: Synchronous client for the OnlyFits REST API.
    AsyncOnlyFitsClient: Asynchronous client for the OnlyFits REST API.

    Exceptions:
        OnlyFitsClientError: Base exception for all client errors.
        AuthenticationError: No bearer token available.
        ConnectionError: Failed to connect to the server.
        TimeoutError: Request timed out.
        APIError: Server returned an error response.
        ValidationError: Request validation failed (HTTP 422).
        NotFoundError: Resource not found (HTTP 404).
        ConflictError: State conflict (HTTP 409).
        ServerError: Server-side error (HTTP 5xx).
"""

from onlyfits._feed import AsyncFeedClient, FeedClient
from onlyfits._posts import AsyncPostsClient, PostsClient
from onlyfits._profiles import AsyncProfilesClient, ProfilesClient
from onlyfits.exceptions import (
    APIError,
    AuthenticationError,
    ConflictError,
    ConnectionError,
    NotFoundError,
    OnlyFitsClientError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from onlyfits.models import (
    ApiAuthor,
    ApiClothingItem,
    ApiPost,
    CreatedPost,
    FeedResponse,
    Profile,
    ProfileResponse,
    UploadPostResponse,
    UserPostsResponse,
)
from onlyfits.client import AsyncOnlyFitsClient, OnlyFitsClient

__all__ = [
    # Main clients
    "OnlyFitsClient",
    "AsyncOnlyFitsClient",
    # Sub-clients
    "FeedClient",
    "AsyncFeedClient",
    "PostsClient",
    "AsyncPostsClient",
    "ProfilesClient",
    "AsyncProfilesClient",
    # Exceptions
    "OnlyFitsClientError",
    "AuthenticationError",
    "ConnectionError",
    "TimeoutError",
    "APIError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    # Response models
    "ApiAuthor",
    "ApiClothingItem",
    "ApiPost",
    "FeedResponse",
    "UserPostsResponse",
    "Profile",
    "ProfileResponse",
    "CreatedPost",
    "UploadPostResponse",
]
