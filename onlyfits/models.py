"""Wire-format response models for the OnlyFits API.

These models mirror the JSON the API returns. They are deliberately
lenient: optional fields default, unknown fields are ignored, and a page
response skips a post it cannot parse instead of failing as a whole.
Conversion into the feed's domain types happens in ``fitfeed.models``.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as ModelValidationError

logger = logging.getLogger(__name__)


class ApiAuthor(BaseModel):
    """Author block embedded in every post.

    Attributes:
        id: User id of the author (may be missing on legacy posts).
        handle: Public handle.
        avatar_url: Avatar image URL.
    """

    id: str | None = None
    handle: str | None = None
    avatar_url: str | None = None


class ApiClothingItem(BaseModel):
    """A tagged clothing item as stored by the API.

    Positions are decimal fractions of the image size; prices are integer
    minor units with an explicit currency.
    """

    id: str | None = None
    item_name: str | None = None
    name: str | None = None
    brand: str | None = None
    price_cents: int | None = None
    currency: str | None = None
    link: str | None = None
    user_desc: str | None = None
    description: str | None = None
    sizes: list[str] = Field(default_factory=list)
    x: Any = None
    y: Any = None

    @field_validator("sizes", mode="before")
    @classmethod
    def coerce_sizes(cls, v: Any) -> Any:
        """Treat a null size list as empty."""
        return [] if v is None else v


class ApiPost(BaseModel):
    """A post as returned by the feed and user-posts endpoints.

    ``x``/``y`` on items and ``likes`` may be missing or malformed on older
    posts; normalization happens when the post enters the feed store.
    """

    id: str
    title: str | None = None
    description: str | None = None
    author: ApiAuthor = Field(default_factory=ApiAuthor)
    created_at: str | None = None
    images: list[str] = Field(default_factory=list)
    likes: int | None = None
    liked_by_me: bool | None = None
    tags: list[str] | None = None
    items: list[ApiClothingItem] | None = None

    @field_validator("images", mode="before")
    @classmethod
    def coerce_images(cls, v: Any) -> Any:
        """Treat a null image list as empty; the post is dropped later."""
        return [] if v is None else v


def _parse_posts(raw: Any) -> Any:
    """Parse a list of posts, logging and skipping entries that do not validate."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        return raw
    posts = []
    for entry in raw:
        try:
            posts.append(ApiPost.model_validate(entry))
        except ModelValidationError as e:
            post_id = entry.get("id") if isinstance(entry, dict) else None
            logger.warning("Skipping malformed post %s: %s", post_id, e)
    return posts


class FeedResponse(BaseModel):
    """Response of ``GET /feed``.

    Attributes:
        feed: Posts on this page, in ranking order.
        next_cursor: Token for the next page, or None on the last page.
    """

    feed: list[ApiPost] = Field(default_factory=list)
    next_cursor: str | None = None

    @field_validator("feed", mode="before")
    @classmethod
    def skip_invalid_posts(cls, v: Any) -> Any:
        return _parse_posts(v)


class UserPostsResponse(BaseModel):
    """Response of ``GET /users/{id}/posts``."""

    posts: list[ApiPost] = Field(default_factory=list)
    next_cursor: str | None = None

    @field_validator("posts", mode="before")
    @classmethod
    def skip_invalid_posts(cls, v: Any) -> Any:
        return _parse_posts(v)


class Profile(BaseModel):
    """A user profile.

    Attributes:
        user_id: Identity-provider user id.
        username: Public handle.
        avatar_url: Avatar image URL.
        bio: Free-form bio.
        height_cm: Body height in centimetres.
        chest_cm: Chest measurement in centimetres.
        waist_cm: Waist measurement in centimetres.
    """

    user_id: str
    username: str
    avatar_url: str | None = None
    bio: str | None = None
    height_cm: float | None = None
    chest_cm: float | None = None
    waist_cm: float | None = None


class ProfileResponse(BaseModel):
    """Envelope returned by the profile endpoints."""

    profile: Profile


class CreatedPost(BaseModel):
    """Identity of a newly created post."""

    id: str
    user_id: str
    created_at: str


class UploadPostResponse(BaseModel):
    """Response of ``POST /upload-post``.

    Attributes:
        post: The created post's identity.
        media: URLs of the uploaded images, in upload order.
    """

    post: CreatedPost
    media: list[str] = Field(default_factory=list)
