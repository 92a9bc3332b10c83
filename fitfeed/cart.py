"""Local shopping cart for items tagged in feed posts.

Lines are keyed by (item id, size): adding the same item in the same size
again bumps the quantity. Checkout is not handled here.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from fitfeed.exceptions import ValidationError
from fitfeed.models import TaggedItem

logger = logging.getLogger(__name__)


class CartItem(BaseModel):
    """One cart line.

    Args:
        id: Tagged item id.
        name: Item name.
        price: Display price.
        price_number: Price in integer minor units.
        link: Shop link.
        size: Chosen size.
        brand: Brand name.
        description: Poster's note about the item.
        image: Image of the post the item was picked from.
        post_id: Post the item was picked from.
        quantity: Units of this line.
    """

    id: str
    name: str
    price: str
    price_number: int = Field(ge=0)
    link: Optional[str] = None
    size: str
    brand: str = ""
    description: str = ""
    image: str = ""
    post_id: str = ""
    quantity: int = Field(default=1, ge=1)

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.size)


class Cart:
    """Cart lines in the order they were first added."""

    def __init__(self) -> None:
        self._items: list[CartItem] = []

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def count(self) -> int:
        """Total units across all lines."""
        return sum(item.quantity for item in self._items)

    @property
    def total(self) -> int:
        """Sum of price times quantity, in minor units."""
        return sum(item.price_number * item.quantity for item in self._items)

    def _find(self, item_id: str, size: str) -> CartItem | None:
        for item in self._items:
            if item.key == (item_id, size):
                return item
        return None

    def add(self, item: CartItem) -> CartItem:
        """Add one unit of an item, merging with an existing line."""
        existing = self._find(item.id, item.size)
        if existing is not None:
            existing.quantity += 1
            return existing
        line = item.model_copy(update={"quantity": 1})
        self._items.append(line)
        logger.debug("Added %s (%s) to cart", line.name, line.size)
        return line

    def remove(self, item_id: str, size: str) -> None:
        self._items = [item for item in self._items if item.key != (item_id, size)]

    def update_quantity(self, item_id: str, size: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove(item_id, size)
            return
        existing = self._find(item_id, size)
        if existing is not None:
            existing.quantity = quantity

    def clear(self) -> None:
        self._items.clear()


def add_tagged_item(
    cart: Cart,
    item: TaggedItem,
    post_id: str,
    image: str,
    size: str | None = None,
) -> CartItem:
    """Add an item tagged on a post to the cart.

    An item offered in a single size needs no explicit size.

    Raises:
        ValidationError: If no size was chosen for an item with several, the
            chosen size is not offered, or the item lists no sizes at all.
    """
    if not item.sizes:
        raise ValidationError(f"{item.name} has no sizes to choose from.", field="size")
    if size is None:
        if len(item.sizes) > 1:
            raise ValidationError("Please select a size before adding to cart.", field="size")
        size = item.sizes[0]
    elif size not in item.sizes:
        raise ValidationError(f"Size {size} is not available for {item.name}.", field="size")

    return cart.add(
        CartItem(
            id=item.id,
            name=item.name,
            price=item.price,
            price_number=item.price_cents,
            link=item.link,
            size=size,
            brand=item.brand,
            description=item.description or "",
            image=image,
            post_id=post_id,
        )
    )
