"""
Data models shared by the geometry engine.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple
import math

import numpy as np

from ...errors import DegenerateInputError


class SelectionFrame(Enum):
    """How a selection relates to the rotated image on screen."""
    UPRIGHT = "upright"    # Selection stays axis-aligned, image rotates beneath it
    ROTATED = "rotated"    # Selection rotates together with the image


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def validate_dimensions(width: float, height: float) -> Tuple[int, int]:
    """Reject zero or negative image dimensions."""
    if width is None or height is None or width <= 0 or height <= 0:
        raise DegenerateInputError(f"Invalid image dimensions: {width}x{height}")
    return int(width), int(height)


def validate_aspect_ratio(aspect_ratio: Optional[float]) -> Optional[float]:
    """Check an aspect constraint; None means free-form."""
    if aspect_ratio is None:
        return None
    if not math.isfinite(aspect_ratio) or aspect_ratio <= 0:
        raise DegenerateInputError(f"Aspect ratio must be positive, got {aspect_ratio}")
    return float(aspect_ratio)


def image_dimensions(image: np.ndarray) -> Tuple[int, int]:
    """
    Get (width, height) of an image array

    Args:
        image: Image array of shape (H, W) or (H, W, C)

    Returns:
        Tuple of (width, height)
    """
    if image is None or image.ndim not in (2, 3):
        raise DegenerateInputError("Image must be a 2D or 3D array")
    h, w = image.shape[:2]
    return validate_dimensions(w, h)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in image pixel space."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise DegenerateInputError(
                f"Rectangle must have positive size, got {self.width}x{self.height}"
            )

    @classmethod
    def from_float(cls, x: float, y: float, width: float, height: float) -> 'Rect':
        """Build a rect from fractional coordinates, rounding each field."""
        if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
            raise DegenerateInputError(
                f"Rectangle must have positive size, got {width}x{height}"
            )
        if not (math.isfinite(x) and math.isfinite(y)):
            raise DegenerateInputError(f"Rectangle origin must be finite, got ({x}, {y})")
        # Sub-pixel sizes still cover one pixel
        return cls(round_half_up(x), round_half_up(y),
                   max(1, round_half_up(width)), max(1, round_half_up(height)))

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> 'Rect':
        return cls.from_float(left, top, right - left, bottom - top)

    @classmethod
    def full(cls, width: int, height: int) -> 'Rect':
        """The rectangle covering a whole image."""
        width, height = validate_dimensions(width, height)
        return cls(0, 0, width, height)

    @classmethod
    def union_of(cls, rects: Iterable['Rect']) -> 'Rect':
        """Smallest rectangle containing all given rectangles."""
        rects = list(rects)
        if not rects:
            raise DegenerateInputError("Cannot compute the union of no rectangles")
        left = min(r.x for r in rects)
        top = min(r.y for r in rects)
        right = max(r.right for r in rects)
        bottom = max(r.bottom for r in rects)
        return cls(left, top, right - left, bottom - top)

    @classmethod
    def from_percent(cls, x: float, y: float, width: float, height: float,
                     image_width: int, image_height: int) -> 'Rect':
        """Convert percentage-of-image coordinates (0-100) to pixels."""
        return cls.from_float(
            x / 100.0 * image_width,
            y / 100.0 * image_height,
            width / 100.0 * image_width,
            height / 100.0 * image_height,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'Rect':
        return cls.from_float(data['x'], data['y'], data['width'], data['height'])

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def fits_within(self, image_width: int, image_height: int) -> bool:
        """Check the image-bounds invariant."""
        return (self.x >= 0 and self.y >= 0 and
                self.right <= image_width and self.bottom <= image_height)

    def contains_point(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def intersection(self, other: 'Rect') -> Optional['Rect']:
        """Overlapping area of two rectangles, or None if they do not overlap."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right - left, bottom - top)

    def clamp_to(self, image_width: int, image_height: int) -> 'Rect':
        """
        Fit the rectangle inside the image, shrinking only when it is
        larger than the image and otherwise shifting it back inside.
        """
        width = min(self.width, image_width)
        height = min(self.height, image_height)
        x = max(0, min(self.x, image_width - width))
        y = max(0, min(self.y, image_height - height))
        return Rect(x, y, width, height)

    def translate(self, dx: int, dy: int) -> 'Rect':
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def to_percent(self, image_width: int, image_height: int) -> Dict[str, float]:
        return {
            'x': self.x / image_width * 100.0,
            'y': self.y / image_height * 100.0,
            'width': self.width / image_width * 100.0,
            'height': self.height / image_height * 100.0,
        }

    def to_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)
