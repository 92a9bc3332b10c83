"""Coordinate model for shopping dots on post images.

Positions are percentages of the image size in ``[0, 100]`` on the UI side
and decimal fractions in ``[0, 1]`` on the API side. Dragging converts pixel
deltas to percentages and keeps the dot inside bounds that leave its label
card on screen near the right and bottom edges.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)

Axis = Literal["x", "y"]

CENTER_PCT = 50.0
CENTER_FRACTION = 0.5

# Drag bounds, percent of container
X_BOUNDS = (2.0, 93.0)
Y_BOUNDS = (2.0, 83.0)

DEFAULT_LAYOUT_COLUMNS = 3


def _bounds(axis: Axis) -> tuple[float, float]:
    return X_BOUNDS if axis == "x" else Y_BOUNDS


def _as_number(value: Any) -> float | None:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def to_api_fraction(pct: Any) -> float:
    """Convert a UI percentage to the API's decimal fraction.

    Missing or non-numeric values map to the image center (0.5).
    """
    number = _as_number(pct)
    if number is None:
        return CENTER_FRACTION
    return number / 100


def from_api_fraction(frac: Any) -> float:
    """Convert an API decimal fraction to a UI percentage.

    Missing or non-numeric values map to the image center (50).
    """
    number = _as_number(frac)
    if number is None:
        return CENTER_PCT
    return number * 100


def apply_drag_delta(
    current_pct: float,
    delta_px: float,
    container_px: float,
    axis: Axis = "x",
) -> float:
    """Move a dot by a pixel delta along one axis.

    ``new = clamp(current + delta / container * 100, bounds(axis))``. A
    container with no size cannot express a delta, so the current value is
    only clamped.
    """
    lower, upper = _bounds(axis)
    if container_px <= 0:
        return clamp(current_pct, lower, upper)
    return clamp(current_pct + (delta_px / container_px) * 100, lower, upper)


def default_position(index: int) -> tuple[float, float]:
    """Deterministic starting spot for the index-th item before any drag.

    Items spread diagonally: ``x = 25 + 25 * i`` wrapping every three
    columns, ``y = 25 + 20 * i``; both clamped into the drag bounds.
    """
    x = 25.0 + 25.0 * (index % DEFAULT_LAYOUT_COLUMNS)
    y = 25.0 + 20.0 * index
    return clamp(x, *X_BOUNDS), clamp(y, *Y_BOUNDS)


@dataclass
class DragSession:
    """One drag gesture on one dot.

    Gesture deltas are cumulative from where the finger went down, so each
    move is applied to the origin captured at the start, not to the last
    reported position.

    Attributes:
        item_id: The dragged item.
        origin: Position (x, y) in percent when the gesture started.
        container_width: Image container width in pixels.
        container_height: Image container height in pixels.
        position: Current position in percent.
    """

    item_id: str
    origin: tuple[float, float]
    container_width: float
    container_height: float
    position: tuple[float, float] = field(init=False)
    active: bool = field(default=True, init=False)

    def __post_init__(self) -> None:
        self.position = self.origin

    def move(self, dx: float, dy: float) -> tuple[float, float]:
        """Apply cumulative gesture deltas (pixels) and return the new position."""
        if not self.active:
            return self.position
        x = apply_drag_delta(self.origin[0], dx, self.container_width, "x")
        y = apply_drag_delta(self.origin[1], dy, self.container_height, "y")
        self.position = (x, y)
        return self.position

    def end(self) -> tuple[float, float]:
        """Finish the gesture; later moves are ignored."""
        self.active = False
        logger.debug("Dot %s dropped at (%.1f, %.1f)", self.item_id, *self.position)
        return self.position
