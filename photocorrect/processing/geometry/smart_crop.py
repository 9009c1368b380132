"""
Subject-aware cropping for PhotoCorrect

Frames externally detected subjects in a crop of a requested aspect ratio,
falling back to a center crop when nothing was detected.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union
import logging

from .models import Rect, validate_aspect_ratio, validate_dimensions
from .safe_rotation import fit_inside_safe_zone
from .suggestions import SubjectBox, boxes_to_pixels
from ...config import get_config_value

logger = logging.getLogger(__name__)


@dataclass
class CropSuggestion:
    """Represents a suggested crop and how it was derived"""
    rect: Rect
    reasoning: str
    subject_count: int = 0
    subject_bounds: Optional[Rect] = None


def center_crop(width: int, height: int, aspect_ratio: float) -> Rect:
    """
    Largest centered rectangle of the given aspect ratio

    Args:
        width: Image width
        height: Image height
        aspect_ratio: Target width/height

    Returns:
        Centered crop rectangle
    """
    width, height = validate_dimensions(width, height)
    aspect_ratio = validate_aspect_ratio(aspect_ratio)

    crop_w = float(width)
    crop_h = crop_w / aspect_ratio
    if crop_h > height:
        crop_h = float(height)
        crop_w = crop_h * aspect_ratio

    rect = Rect.from_float((width - crop_w) / 2.0, (height - crop_h) / 2.0, crop_w, crop_h)
    return rect.clamp_to(width, height)


def fit_to_aspect(x: float, y: float, box_w: float, box_h: float,
                  aspect_ratio: float, width: int, height: int) -> Rect:
    """
    Grow a box to an aspect ratio around its center, staying inside the image

    The shorter dimension is expanded symmetrically; whatever would cross an
    image edge is shifted to the opposite side. If the expanded dimension
    cannot fit in the image at all it is clamped and the other dimension is
    re-derived from the ratio.

    Args:
        x, y, box_w, box_h: Box to expand (pixels, may be fractional)
        aspect_ratio: Target width/height
        width: Image width
        height: Image height

    Returns:
        Rectangle at (as close as possible to) the target aspect ratio
    """
    aspect_ratio = validate_aspect_ratio(aspect_ratio)
    box_w = max(box_w, 1.0)
    box_h = max(box_h, 1.0)
    center_x = x + box_w / 2.0
    center_y = y + box_h / 2.0

    if box_w / box_h < aspect_ratio:
        crop_w, crop_h = box_h * aspect_ratio, box_h
    else:
        crop_w, crop_h = box_w, box_w / aspect_ratio

    # Hard image limits win over subject coverage
    if crop_w > width:
        crop_w = float(width)
        crop_h = crop_w / aspect_ratio
    if crop_h > height:
        crop_h = float(height)
        crop_w = crop_h * aspect_ratio

    left = center_x - crop_w / 2.0
    top = center_y - crop_h / 2.0
    left = min(max(left, 0.0), width - crop_w)
    top = min(max(top, 0.0), height - crop_h)

    return Rect.from_float(left, top, crop_w, crop_h).clamp_to(width, height)


class SmartCropComposer:
    """Subject-aware crop composition"""

    def __init__(self, padding: float = 0.2):
        """
        Initialize smart crop composer

        Args:
            padding: Fraction of the subject union added on each side
        """
        self.padding = padding

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'SmartCropComposer':
        return cls(padding=get_config_value(config, 'smart_crop.padding', 0.2))

    def compose(self, width: int, height: int,
                subjects: Sequence[Union[Rect, SubjectBox]],
                aspect_ratio: float,
                rotation: Optional[float] = None) -> Rect:
        """
        Suggest a crop that frames all subjects

        Args:
            width: Image width
            height: Image height
            subjects: Detected subject boxes
            aspect_ratio: Target width/height
            rotation: Optional rotation the crop must survive

        Returns:
            Crop rectangle
        """
        return self.suggest(width, height, subjects, aspect_ratio, rotation).rect

    def suggest(self, width: int, height: int,
                subjects: Sequence[Union[Rect, SubjectBox]],
                aspect_ratio: float,
                rotation: Optional[float] = None) -> CropSuggestion:
        """Like compose(), also reporting how the crop was chosen."""
        width, height = validate_dimensions(width, height)
        aspect_ratio = validate_aspect_ratio(aspect_ratio)
        boxes = boxes_to_pixels(subjects, width, height)

        if not boxes:
            logger.debug("No subjects detected, using center crop")
            suggestion = CropSuggestion(
                rect=center_crop(width, height, aspect_ratio),
                reasoning="Center crop, no subjects detected",
            )
        else:
            union = Rect.union_of(boxes)
            pad_x = union.width * self.padding
            pad_y = union.height * self.padding
            left = max(0.0, union.x - pad_x)
            top = max(0.0, union.y - pad_y)
            right = min(float(width), union.right + pad_x)
            bottom = min(float(height), union.bottom + pad_y)

            rect = fit_to_aspect(left, top, right - left, bottom - top,
                                 aspect_ratio, width, height)
            suggestion = CropSuggestion(
                rect=rect,
                reasoning=f"Framed {len(boxes)} subject(s) with {self.padding:.0%} padding",
                subject_count=len(boxes),
                subject_bounds=union,
            )

        if rotation:
            safe_rect = fit_inside_safe_zone(suggestion.rect, width, height, rotation)
            if safe_rect != suggestion.rect:
                suggestion.rect = safe_rect
                suggestion.reasoning += f"; limited to safe zone for {rotation:.1f} deg"

        logger.debug(f"Smart crop: {suggestion.rect} ({suggestion.reasoning})")
        return suggestion
