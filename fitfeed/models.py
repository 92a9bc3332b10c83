"""Domain models for the feed core.

This module contains the feed's own view of posts and tagged items, the
per-image view state types, and the conversion from the API's wire models.
The conversion is the single place where API quirks are normalized:

- missing titles and handles get display defaults
- item positions arrive as fractions and are stored as percentages
- prices arrive as integer minor units and get a display string
- posts without images are rejected
"""

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as ModelValidationError

from fitfeed.tagging import CENTER_PCT, from_api_fraction
from onlyfits.models import ApiClothingItem, ApiPost

logger = logging.getLogger(__name__)

UNTITLED_POST = "Untitled Outfit"
UNKNOWN_HANDLE = "unknown"
UNKNOWN_ITEM = "Unknown Item"
UNKNOWN_BRAND = "Unknown"


class ViewMode(str, Enum):
    """Presentation mode of the feed screen."""

    GRID = "grid"
    VERTICAL = "vertical"


class ImageLoadState(str, Enum):
    """Render lifecycle of one image of one post."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class ImageKey(NamedTuple):
    """Identifies one image slot of one post in the view state."""

    post_id: str
    image_index: int


class Position(BaseModel):
    """Dot position on an image, in percent of width/height.

    Args:
        x: Horizontal position, 0 (left) to 100 (right).
        y: Vertical position, 0 (top) to 100 (bottom).
    """

    x: float = Field(default=CENTER_PCT, ge=0, le=100)
    y: float = Field(default=CENTER_PCT, ge=0, le=100)


class Author(BaseModel):
    """Post author as shown in the feed."""

    id: Optional[str] = None
    handle: str = UNKNOWN_HANDLE
    avatar_url: Optional[str] = None


def format_price(price_cents: int, currency: str) -> str:
    """Display string for an item price.

    Yen amounts are shown with ``¥``, everything else with ``$``.
    """
    symbol = "¥" if currency == "JPY" else "$"
    return f"{symbol}{price_cents}"


class TaggedItem(BaseModel):
    """A clothing item anchored to a position on a post's first image.

    Args:
        id: Item identifier.
        name: Item name.
        brand: Brand name.
        price: Display price (e.g. "¥2999").
        price_cents: Price in integer minor units.
        currency: ISO currency code.
        sizes: Sizes on offer, in display order.
        link: Shop link.
        description: Poster's note about the item.
        position: Dot position in percent.
    """

    id: str
    name: str
    brand: str = UNKNOWN_BRAND
    price: str
    price_cents: int = Field(default=0, ge=0)
    currency: str = "JPY"
    sizes: list[str] = Field(default_factory=list)
    link: Optional[str] = None
    description: Optional[str] = None
    position: Position = Field(default_factory=Position)

    @classmethod
    def from_api(cls, item: ApiClothingItem, fallback_id: str) -> "TaggedItem":
        """Build a TaggedItem from its wire form.

        Args:
            item: The API item.
            fallback_id: Identifier used when the API item has none.
        """
        price_cents = max(item.price_cents or 0, 0)
        currency = item.currency or "JPY"
        x = from_api_fraction(item.x)
        y = from_api_fraction(item.y)
        # fractions outside [0, 1] are malformed
        if not 0 <= x <= 100:
            x = CENTER_PCT
        if not 0 <= y <= 100:
            y = CENTER_PCT
        return cls(
            id=item.id or fallback_id,
            name=item.item_name or item.name or UNKNOWN_ITEM,
            brand=item.brand or UNKNOWN_BRAND,
            price=format_price(price_cents, currency),
            price_cents=price_cents,
            currency=currency,
            sizes=list(item.sizes),
            link=item.link or None,
            description=item.user_desc or item.description or "",
            position=Position(x=x, y=y),
        )


class FeedPost(BaseModel):
    """A post held by the feed store.

    ``like_count`` and ``liked_by_me`` are mutated in place, and only by the
    store's optimistic like protocol.

    Args:
        id: Server-assigned post id.
        title: Post title.
        description: Post description.
        author: Post author.
        created_at: Creation timestamp as sent by the API.
        images: Image URLs in display order (never empty).
        like_count: Number of likes.
        liked_by_me: Whether the session user liked the post.
        tags: Free-form tags.
        clothing_items: Tagged items in display order.
    """

    id: str
    title: str = UNTITLED_POST
    description: Optional[str] = None
    author: Author = Field(default_factory=Author)
    created_at: Optional[str] = None
    images: list[str] = Field(min_length=1)
    like_count: int = Field(default=0, ge=0)
    liked_by_me: bool = False
    tags: list[str] = Field(default_factory=list)
    clothing_items: list[TaggedItem] = Field(default_factory=list)

    model_config = {"validate_assignment": True}

    @field_validator("images")
    @classmethod
    def validate_images(cls, v: list[str]) -> list[str]:
        """Reject blank image URLs.

        Raises:
            ValueError: If any URL is empty or whitespace.
        """
        if any(not url or not url.strip() for url in v):
            raise ValueError("image URLs cannot be empty")
        return v

    @classmethod
    def from_api(cls, post: ApiPost) -> "FeedPost":
        """Build a FeedPost from its wire form.

        Raises:
            pydantic.ValidationError: If the post has no images.
        """
        return cls(
            id=post.id,
            title=post.title or UNTITLED_POST,
            description=post.description,
            author=Author(
                id=post.author.id,
                handle=post.author.handle or UNKNOWN_HANDLE,
                avatar_url=post.author.avatar_url,
            ),
            created_at=post.created_at,
            images=post.images,
            like_count=max(post.likes or 0, 0),
            liked_by_me=bool(post.liked_by_me),
            tags=post.tags or [],
            clothing_items=[
                TaggedItem.from_api(item, fallback_id=f"{post.id}-item-{index}")
                for index, item in enumerate(post.items or [])
            ],
        )

    def image_key(self, index: int) -> ImageKey:
        return ImageKey(self.id, index)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on author handle or any tag."""
        needle = query.strip().lower()
        if needle in self.author.handle.lower():
            return True
        return any(needle in tag.lower() for tag in self.tags)


class FeedPage(BaseModel):
    """One page of posts and the cursor that follows it.

    ``next_cursor`` is None exactly when there is no further page.
    """

    items: list[FeedPost] = Field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    @classmethod
    def from_api(cls, posts: list[ApiPost], next_cursor: Optional[str]) -> "FeedPage":
        """Convert a page of wire posts, dropping posts that cannot be shown.

        Posts without images, or that otherwise fail validation (e.g. a
        blank image URL), are logged and skipped rather than failing the
        whole page.
        """
        items = []
        for post in posts:
            if not post.images:
                logger.warning("Dropping post %s from page: no images", post.id)
                continue
            try:
                items.append(FeedPost.from_api(post))
            except ModelValidationError as e:
                logger.warning("Dropping post %s from page: %s", post.id, e)
        return cls(items=items, next_cursor=next_cursor or None)


class CachedImage(BaseModel):
    """A remote image held in the disk cache.

    Args:
        source_url: Remote URL, the identity key.
        local_path: File owned by the cache.
        cached_at: When the download completed.
    """

    source_url: str
    local_path: Path
    cached_at: datetime
