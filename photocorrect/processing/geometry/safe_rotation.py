"""
Largest centered axis-aligned rectangle that survives a rotation

The rectangle is guaranteed to be fully covered by the rotated image, so a
crop taken from it never exposes empty background in the corners.
"""

import math
from typing import Tuple

from .models import Rect, round_half_up, validate_dimensions

# Below this |cos^2 - sin^2| the linear system is ill-conditioned (near 45 deg)
_DENOM_EPSILON = 1e-6


def reduce_angle(angle: float) -> float:
    """Fold any angle into [0, 90] degrees; the safe rect is symmetric."""
    a = abs(angle) % 180.0
    if a > 90.0:
        a = 180.0 - a
    return a


def _half_constrained(width: float, height: float, s: float, c: float) -> Tuple[float, float]:
    """
    Half-sizes when only the short side of the image limits the rectangle.
    Two opposite corners touch the long edges of the rotated image.
    """
    half_short = 0.5 * min(width, height)
    if width >= height:
        return half_short / s / 2.0, half_short / c / 2.0
    return half_short / c / 2.0, half_short / s / 2.0


def safe_rotation_rect(width: int, height: int, angle: float) -> Rect:
    """
    Compute the largest centered rectangle covered by the rotated image

    Args:
        width: Image width in pixels
        height: Image height in pixels
        angle: Rotation in degrees (any sign or range)

    Returns:
        Centered Rect within [0, width] x [0, height]
    """
    width, height = validate_dimensions(width, height)

    a = math.radians(reduce_angle(angle))
    c = math.cos(a)
    s = math.sin(a)
    denom = c * c - s * s

    if abs(denom) < _DENOM_EPSILON:
        if width == height:
            side = width / (c + s)
            rx = ry = side / 2.0
        else:
            rx, ry = _half_constrained(width, height, s, c)
    elif min(width, height) <= 2.0 * s * c * max(width, height):
        rx, ry = _half_constrained(width, height, s, c)
    else:
        rx = (c * width / 2.0 - s * height / 2.0) / denom
        ry = (c * height / 2.0 - s * width / 2.0) / denom

    rect_w = min(max(2.0 * rx, 0.0), float(width))
    rect_h = min(max(2.0 * ry, 0.0), float(height))

    rect_w = max(1, min(width, round_half_up(rect_w)))
    rect_h = max(1, min(height, round_half_up(rect_h)))
    x = round_half_up((width - rect_w) / 2.0)
    y = round_half_up((height - rect_h) / 2.0)

    # Rounding the offset up must not push the far edge outside the image
    x = min(x, width - rect_w)
    y = min(y, height - rect_h)
    return Rect(x, y, rect_w, rect_h)


def fit_inside_safe_zone(rect: Rect, width: int, height: int, angle: float) -> Rect:
    """
    Restrict a selection to the area that stays covered after rotation

    Args:
        rect: Current selection
        width: Image width
        height: Image height
        angle: Rotation in degrees

    Returns:
        Intersection of the selection with the safe rectangle, or the safe
        rectangle itself if they do not overlap
    """
    safe = safe_rotation_rect(width, height, angle)
    inter = rect.intersection(safe)
    return inter if inter is not None else safe
