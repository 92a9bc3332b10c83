"""Post composer: drafts for new outfit posts and their tagged items.

A draft collects up to six local images, a title, a description and the
clothing items worn in the outfit. Each item gets a dot on the first image;
new items start at a deterministic default position and are moved with a
DragSession. Submitting validates the draft locally, maps the items to the
upload wire format and sends one multipart request.
"""

import logging
import re
import uuid
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, PrivateAttr

from fitfeed.exceptions import NetworkError, ValidationError
from fitfeed.models import UNKNOWN_BRAND, Position
from fitfeed.tagging import DragSession, default_position, to_api_fraction
from onlyfits import AsyncOnlyFitsClient, OnlyFitsClientError, UploadPostResponse

logger = logging.getLogger(__name__)

MAX_IMAGES = 6
DEFAULT_CURRENCY = "JPY"
EMPTY_DESCRIPTION = "No description"

_NON_DIGITS = re.compile(r"[^0-9]")


def parse_price(price: str) -> int:
    """Integer minor units from a typed price, e.g. ``"$29.99"`` -> 2999.

    Non-digits are dropped; text without digits is 0.
    """
    digits = _NON_DIGITS.sub("", price or "")
    return int(digits) if digits else 0


class ItemDraft(BaseModel):
    """A clothing item being tagged on a new post.

    Args:
        id: Local identifier, unique within the draft.
        name: Item name (required).
        price: Price as typed (required).
        link: Shop link.
        brand: Brand name.
        description: Poster's note about the item.
        sizes: Sizes on offer (at least one required).
        position: Dot position in percent; assigned when added to a post.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    price: str = ""
    link: str = ""
    brand: str = ""
    description: str = ""
    sizes: list[str] = Field(default_factory=list)
    position: Optional[Position] = None

    def add_size(self, size: str) -> bool:
        """Add a size after trimming it. Blank and duplicate sizes are ignored.

        Returns:
            True if the size was added.
        """
        size = size.strip()
        if not size or size in self.sizes:
            return False
        self.sizes.append(size)
        return True

    def remove_size(self, size: str) -> None:
        self.sizes = [s for s in self.sizes if s != size]

    def to_upload_item(self) -> dict[str, Any]:
        """Map to the upload wire format.

        Brand defaults to "Unknown", the price is sent as integer minor
        units in JPY, and the dot position as fractions of the image size.
        """
        position = self.position or Position()
        return {
            "item_name": self.name,
            "brand": self.brand or UNKNOWN_BRAND,
            "price": parse_price(self.price),
            "currency": DEFAULT_CURRENCY,
            "link": self.link or None,
            "user_desc": self.description or None,
            "sizes": list(self.sizes),
            "x": to_api_fraction(position.x),
            "y": to_api_fraction(position.y),
        }


class PostDraft(BaseModel):
    """A new post being composed.

    Args:
        images: Local image files in display order (at most six).
        title: Post title (required to submit).
        description: Post description; sent as "No description" when blank.
        items: Tagged clothing items (at least one required to submit).
    """

    images: list[Path] = Field(default_factory=list)
    title: str = ""
    description: str = ""
    items: list[ItemDraft] = Field(default_factory=list)

    _drag: Optional[DragSession] = PrivateAttr(default=None)

    # ===== Images =====

    def add_image(self, path: str | Path) -> None:
        """Append an image.

        Raises:
            ValidationError: If the draft already holds six images.
        """
        if len(self.images) >= MAX_IMAGES:
            raise ValidationError(
                f"You can only add up to {MAX_IMAGES} images per post.", field="images"
            )
        self.images.append(Path(path))

    def remove_image(self, index: int) -> None:
        if 0 <= index < len(self.images):
            del self.images[index]

    # ===== Items =====

    def add_item(self, item: ItemDraft) -> ItemDraft:
        """Tag a clothing item and place its dot at the default position.

        Raises:
            ValidationError: If the name, the price or every size is missing.
        """
        if not item.name.strip() or not item.price.strip() or not item.sizes:
            raise ValidationError(
                "Please fill in the name, price, and at least one size.", field="item"
            )
        if self.get_item(item.id) is not None:
            raise ValidationError(f"Item {item.id} is already tagged", field="item")

        x, y = default_position(len(self.items))
        item.position = Position(x=x, y=y)
        self.items.append(item)
        return item

    def remove_item(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.id != item_id]
        if self._drag is not None and self._drag.item_id == item_id:
            self._drag = None

    def get_item(self, item_id: str) -> ItemDraft | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    # ===== Dot dragging =====

    def begin_drag(
        self, item_id: str, container_width: float, container_height: float
    ) -> DragSession:
        """Start dragging an item's dot over an image of the given pixel size.

        Raises:
            ValidationError: If the item is not tagged on this draft.
        """
        item = self.get_item(item_id)
        if item is None:
            raise ValidationError(f"Unknown item {item_id}", field="item")
        position = item.position or Position()
        self._drag = DragSession(
            item_id=item_id,
            origin=(position.x, position.y),
            container_width=container_width,
            container_height=container_height,
        )
        return self._drag

    def end_drag(self) -> Position | None:
        """Finish the active drag and store the dot's final position."""
        session, self._drag = self._drag, None
        if session is None:
            return None
        x, y = session.end()
        item = self.get_item(session.item_id)
        if item is None:
            return None
        item.position = Position(x=x, y=y)
        return item.position

    # ===== Submission =====

    def validate(self) -> None:
        """Check the draft can be submitted.

        Raises:
            ValidationError: If there is no image, no title or no item.
        """
        if not self.images:
            raise ValidationError(
                "Please select at least one image for your outfit post.", field="images"
            )
        if not self.title.strip():
            raise ValidationError("Please add a title for your outfit post.", field="title")
        if not self.items:
            raise ValidationError("Please add at least one clothing item.", field="items")

    def to_upload_items(self) -> list[dict[str, Any]]:
        return [item.to_upload_item() for item in self.items]

    async def submit(self, client: AsyncOnlyFitsClient) -> UploadPostResponse:
        """Validate the draft and upload it as a new post.

        Raises:
            ValidationError: If the draft is incomplete; nothing is sent.
            NetworkError: If the upload fails.
        """
        self.validate()
        title = self.title.strip()
        try:
            result = await client.posts.upload(
                images=list(self.images),
                title=title,
                description=self.description.strip() or EMPTY_DESCRIPTION,
                items=self.to_upload_items(),
            )
        except (OnlyFitsClientError, OSError) as e:
            logger.error("Failed to upload post %r: %s", title, e)
            raise NetworkError("Failed to upload your post. Please try again.", cause=e) from e

        logger.info("Created post %s with %d item(s)", result.post.id, len(self.items))
        return result
