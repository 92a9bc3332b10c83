"""Posts sub-client for the OnlyFits API.

This module provides PostsClient and AsyncPostsClient for per-post actions
(like, unlike, view recording), per-user post listings and multipart post
upload.

This is an internal module. Import from `onlyfits` instead.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from onlyfits._base import AsyncBaseClient, BaseClient
from onlyfits._feed import DEFAULT_PAGE_SIZE
from onlyfits.models import UploadPostResponse, UserPostsResponse

logger = logging.getLogger(__name__)


def _image_part(index: int, path: Path, content: bytes) -> tuple[str, tuple[str, bytes, str]]:
    """Build the multipart part for one image.

    The part name follows ``image_{index}.{ext}``; ``jpg`` is sent as
    ``image/jpeg``.
    """
    extension = path.suffix.lstrip(".").lower() or "jpg"
    mime_type = f"image/{'jpeg' if extension == 'jpg' else extension}"
    return ("images", (f"image_{index}.{extension}", content, mime_type))


def _upload_form(
    title: str, description: str, items: list[dict[str, Any]] | None
) -> dict[str, str]:
    form = {"title": title, "description": description}
    if items:
        form["items"] = json.dumps(items)
    return form


class PostsClient(BaseClient):
    """Synchronous client for post endpoints.

    Example:
        with OnlyFitsClient(token_getter=get_token) as client:
            client.posts.like("post-1")
            mine = client.posts.get_user_posts("me")
    """

    def get_user_posts(
        self,
        user_id: str = "me",
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
    ) -> UserPostsResponse:
        """Fetch one page of posts authored by a user.

        Args:
            user_id: The author's user id, or "me" for the caller.
            limit: Maximum number of posts on the page.
            cursor: Opaque cursor from the previous page.

        Returns:
            The page of posts and the cursor for the next one.

        Raises:
            NotFoundError: If the user does not exist.
            APIError: If the request fails.
        """
        data = self._get(f"/users/{user_id}/posts", params={"limit": limit, "cursor": cursor})
        return UserPostsResponse(**data)

    def like(self, post_id: str) -> None:
        """Like a post on behalf of the caller."""
        self._post(f"/posts/{post_id}/like")

    def unlike(self, post_id: str) -> None:
        """Remove the caller's like from a post."""
        self._delete(f"/posts/{post_id}/like")

    def record_view(self, post_id: str) -> None:
        """Record that the caller viewed a post."""
        self._post(f"/posts/{post_id}/view")

    def upload(
        self,
        images: list[str | Path],
        title: str,
        description: str,
        items: list[dict[str, Any]] | None = None,
    ) -> UploadPostResponse:
        """Upload images and create a post with tagged clothing items.

        Args:
            images: Local image file paths, in display order.
            title: Post title.
            description: Post description.
            items: Clothing items already mapped to the API field names
                (``item_name``, ``price`` in cents, ``x``/``y`` fractions...).

        Returns:
            The created post's identity and the uploaded media URLs.

        Raises:
            OSError: If an image file cannot be read.
            APIError: If the request fails.
        """
        files = []
        for index, image in enumerate(images):
            path = Path(image)
            files.append(_image_part(index, path, path.read_bytes()))

        logger.info(
            "Uploading post %r with %d image(s) and %d item(s)",
            title, len(files), len(items or []),
        )
        data = self._post(
            "/upload-post",
            data=_upload_form(title, description, items),
            files=files,
        )
        return UploadPostResponse(**data)


class AsyncPostsClient(AsyncBaseClient):
    """Asynchronous client for post endpoints."""

    async def get_user_posts(
        self,
        user_id: str = "me",
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
    ) -> UserPostsResponse:
        """Fetch one page of posts authored by a user.

        See PostsClient.get_user_posts for details.
        """
        data = await self._get(
            f"/users/{user_id}/posts", params={"limit": limit, "cursor": cursor}
        )
        return UserPostsResponse(**data)

    async def like(self, post_id: str) -> None:
        """Like a post on behalf of the caller."""
        await self._post(f"/posts/{post_id}/like")

    async def unlike(self, post_id: str) -> None:
        """Remove the caller's like from a post."""
        await self._delete(f"/posts/{post_id}/like")

    async def record_view(self, post_id: str) -> None:
        """Record that the caller viewed a post."""
        await self._post(f"/posts/{post_id}/view")

    async def upload(
        self,
        images: list[str | Path],
        title: str,
        description: str,
        items: list[dict[str, Any]] | None = None,
    ) -> UploadPostResponse:
        """Upload images and create a post with tagged clothing items.

        Image files are read off the event loop. See PostsClient.upload.
        """
        files = []
        for index, image in enumerate(images):
            path = Path(image)
            content = await asyncio.to_thread(path.read_bytes)
            files.append(_image_part(index, path, content))

        logger.info(
            "Uploading post %r with %d image(s) and %d item(s)",
            title, len(files), len(items or []),
        )
        data = await self._post(
            "/upload-post",
            data=_upload_form(title, description, items),
            files=files,
        )
        return UploadPostResponse(**data)
