"""
Move, resize and nudge operations on selection rectangles

All functions are pure: they take the rectangle at the start of an
interaction plus a delta in image pixels and return the replacement.
"""

from enum import Enum
from typing import Optional

from ..geometry.models import Rect, validate_aspect_ratio, validate_dimensions
from ..geometry.smart_crop import fit_to_aspect


class Handle(Enum):
    """Resize handles around a selection."""
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"

    @property
    def is_corner(self) -> bool:
        return len(self.value) == 2

    @property
    def moves_left(self) -> bool:
        return 'w' in self.value

    @property
    def moves_right(self) -> bool:
        return 'e' in self.value

    @property
    def moves_top(self) -> bool:
        return 'n' in self.value

    @property
    def moves_bottom(self) -> bool:
        return 's' in self.value


class Direction(Enum):
    """Arrow-key nudge directions as (dx, dy) unit steps."""
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @classmethod
    def from_key(cls, key: str) -> Optional['Direction']:
        """Map DOM-style key names ('ArrowUp', ...) to a direction."""
        return {
            'ArrowUp': cls.UP,
            'ArrowDown': cls.DOWN,
            'ArrowLeft': cls.LEFT,
            'ArrowRight': cls.RIGHT,
        }.get(key)


def move_rect(rect: Rect, dx: float, dy: float,
              image_width: int, image_height: int) -> Rect:
    """
    Translate a rectangle, keeping it inside the image

    Args:
        rect: Rectangle at the start of the move
        dx: Horizontal delta in image pixels
        dy: Vertical delta in image pixels
        image_width: Image width
        image_height: Image height

    Returns:
        Moved rectangle within [0, W - width] x [0, H - height]
    """
    image_width, image_height = validate_dimensions(image_width, image_height)
    width = min(rect.width, image_width)
    height = min(rect.height, image_height)
    x = min(max(rect.x + dx, 0.0), image_width - width)
    y = min(max(rect.y + dy, 0.0), image_height - height)
    return Rect.from_float(x, y, width, height).clamp_to(image_width, image_height)


def nudge_rect(rect: Rect, direction: Direction, image_width: int, image_height: int,
               step: int = 1) -> Rect:
    """Arrow-key move by a fixed step with the same clamp as a drag."""
    unit_x, unit_y = direction.value
    return move_rect(rect, unit_x * step, unit_y * step, image_width, image_height)


def resize_rect(rect: Rect, handle: Handle, dx: float, dy: float,
                image_width: int, image_height: int,
                aspect_ratio: Optional[float] = None,
                min_size: int = 20) -> Rect:
    """
    Drag one of the eight handles of a rectangle

    The edges opposite the dragged handle stay anchored. With an aspect
    constraint, single-edge handles derive the perpendicular dimension and
    corner handles follow the dominant drag axis.

    Args:
        rect: Rectangle at the start of the resize
        handle: Handle being dragged
        dx: Horizontal delta in image pixels
        dy: Vertical delta in image pixels
        image_width: Image width
        image_height: Image height
        aspect_ratio: Width/height constraint, or None for free resize
        min_size: Minimum width and height in pixels

    Returns:
        Resized rectangle inside the image
    """
    image_width, image_height = validate_dimensions(image_width, image_height)
    aspect_ratio = validate_aspect_ratio(aspect_ratio)
    min_w = max(1.0, min(float(min_size), float(image_width)))
    min_h = max(1.0, min(float(min_size), float(image_height)))

    left, top = float(rect.x), float(rect.y)
    right, bottom = float(rect.right), float(rect.bottom)

    if handle.moves_right:
        right += dx
    if handle.moves_left:
        left += dx
    if handle.moves_bottom:
        bottom += dy
    if handle.moves_top:
        top += dy

    # Dragged edges cannot cross the image border
    left = max(left, 0.0)
    top = max(top, 0.0)
    right = min(right, float(image_width))
    bottom = min(bottom, float(image_height))

    # Space available from the anchored edges
    max_w = max(1.0, right if handle.moves_left else image_width - left)
    max_h = max(1.0, bottom if handle.moves_top else image_height - top)

    width = max(right - left, min_w)
    height = max(bottom - top, min_h)

    if aspect_ratio is not None:
        if handle.is_corner:
            width_drives = abs(dx) >= abs(dy)
        else:
            width_drives = handle in (Handle.E, Handle.W)

        if width_drives:
            height = width / aspect_ratio
        else:
            width = height * aspect_ratio

        # Enforce the minimum without breaking the ratio
        grow = max(min_w / width, min_h / height, 1.0)
        width *= grow
        height *= grow

        if width > max_w:
            width = max_w
            height = width / aspect_ratio
        if height > max_h:
            height = max_h
            width = height * aspect_ratio

    width = min(width, max_w)
    height = min(height, max_h)

    if handle.moves_left:
        left = right - width
    else:
        right = left + width
    if handle.moves_top:
        top = bottom - height
    else:
        bottom = top + height

    return Rect.from_edges(left, top, right, bottom).clamp_to(image_width, image_height)


def recenter_to_aspect(rect: Rect, aspect_ratio: Optional[float],
                       image_width: int, image_height: int) -> Rect:
    """
    Re-fit an idle selection to a new aspect ratio around its center

    Args:
        rect: Current selection
        aspect_ratio: New width/height, or None to keep the selection
        image_width: Image width
        image_height: Image height

    Returns:
        Selection at the new ratio, shifted inside the image if needed
    """
    image_width, image_height = validate_dimensions(image_width, image_height)
    if aspect_ratio is None:
        return rect.clamp_to(image_width, image_height)
    return fit_to_aspect(rect.x, rect.y, rect.width, rect.height,
                         aspect_ratio, image_width, image_height)
