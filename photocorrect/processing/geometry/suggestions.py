"""
Boundary contracts for external detectors and AI correction suggestions

Detection models and the remote suggestion service live outside the engine.
Everything they hand over is converted to pixel Rects and clamped here before
any geometry runs on it.
"""

import json
import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union
import logging

import numpy as np

from .models import Rect, validate_dimensions
from .safe_rotation import fit_inside_safe_zone
from ...config import get_config_value
from ...errors import SuggestionFormatError

logger = logging.getLogger(__name__)


class BoxUnits(Enum):
    """Coordinate units of a detector bounding box."""
    PIXELS = "pixels"
    PERCENT = "percent"


@dataclass(frozen=True)
class SubjectBox:
    """Bounding box reported by a detector"""
    x: float
    y: float
    width: float
    height: float
    units: BoxUnits = BoxUnits.PIXELS
    label: Optional[str] = None
    confidence: Optional[float] = None

    def to_pixels(self, image_width: int, image_height: int):
        """Return (left, top, right, bottom) in pixels, unclamped."""
        if self.units == BoxUnits.PERCENT:
            left = self.x / 100.0 * image_width
            top = self.y / 100.0 * image_height
            right = left + self.width / 100.0 * image_width
            bottom = top + self.height / 100.0 * image_height
        else:
            left, top = self.x, self.y
            right, bottom = self.x + self.width, self.y + self.height
        return left, top, right, bottom


class SubjectDetector(Protocol):
    """Anything that can locate subjects or faces in an image."""

    def detect(self, image: np.ndarray) -> Sequence[SubjectBox]:
        ...


def boxes_to_pixels(boxes: Sequence[Union[Rect, SubjectBox]],
                    image_width: int, image_height: int) -> List[Rect]:
    """
    Convert detector boxes to pixel Rects clamped to the image

    Args:
        boxes: Rects (already pixels) or SubjectBoxes in either unit
        image_width: Image width
        image_height: Image height

    Returns:
        Pixel rectangles; boxes lying entirely outside the image are dropped
    """
    image_width, image_height = validate_dimensions(image_width, image_height)
    rects = []
    for box in boxes:
        if isinstance(box, Rect):
            left, top, right, bottom = box.x, box.y, box.right, box.bottom
        else:
            left, top, right, bottom = box.to_pixels(image_width, image_height)

        left = max(0.0, float(left))
        top = max(0.0, float(top))
        right = min(float(image_width), float(right))
        bottom = min(float(image_height), float(bottom))
        if right - left < 1 or bottom - top < 1:
            logger.debug(f"Dropping detection outside image: {box}")
            continue
        rects.append(Rect.from_edges(left, top, right, bottom).clamp_to(image_width, image_height))
    return rects


def face_boxes_to_blur_rects(boxes: Sequence[Union[Rect, SubjectBox]],
                             image_width: int, image_height: int,
                             padding_x: float = 0.1,
                             padding_y: float = 0.2) -> List[Rect]:
    """
    Pad detected faces so a blur also covers hairline and chin

    Args:
        boxes: Detected face boxes
        image_width: Image width
        image_height: Image height
        padding_x: Horizontal padding per side, fraction of face width
        padding_y: Vertical padding per side, fraction of face height

    Returns:
        Padded face rectangles clamped to the image
    """
    padded = []
    for face in boxes_to_pixels(boxes, image_width, image_height):
        pad_w = face.width * padding_x
        pad_h = face.height * padding_y
        left = max(0.0, face.x - pad_w)
        top = max(0.0, face.y - pad_h)
        width = min(image_width - left, face.width + pad_w * 2)
        height = min(image_height - top, face.height + pad_h * 2)
        padded.append(Rect.from_float(left, top, width, height).clamp_to(image_width, image_height))
    return padded


def _is_number(value: Any) -> bool:
    # json.loads accepts NaN and Infinity
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class AutoCorrection:
    """Rotation and crop suggested by the AI service, already sanitized"""
    rotation: float
    crop_percent: Dict[str, float]

    @classmethod
    def from_response(cls, payload: Union[str, Mapping[str, Any]],
                      max_rotation: float = 15.0) -> 'AutoCorrection':
        """
        Validate and clamp a suggestion payload

        Args:
            payload: JSON text or mapping with 'rotation' and 'crop' keys
            max_rotation: Rotation magnitude limit in degrees

        Returns:
            Sanitized AutoCorrection

        Raises:
            SuggestionFormatError: If the payload does not have the expected shape
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise SuggestionFormatError(f"Suggestion is not valid JSON: {e}") from e

        if not isinstance(payload, Mapping):
            raise SuggestionFormatError("Suggestion must be an object")

        rotation = payload.get('rotation')
        crop = payload.get('crop')
        if not _is_number(rotation) or not isinstance(crop, Mapping):
            raise SuggestionFormatError("Suggestion needs numeric 'rotation' and a 'crop' object")
        for key in ('x', 'y', 'width', 'height'):
            if not _is_number(crop.get(key)):
                raise SuggestionFormatError(f"Crop field '{key}' must be a number")

        sanitized = cls(
            rotation=_clamp(float(rotation), -max_rotation, max_rotation),
            crop_percent={
                'x': _clamp(float(crop['x']), 0.0, 100.0),
                'y': _clamp(float(crop['y']), 0.0, 100.0),
                'width': _clamp(float(crop['width']), 1.0, 100.0),
                'height': _clamp(float(crop['height']), 1.0, 100.0),
            },
        )
        if sanitized.rotation != rotation:
            logger.info(f"Clamped suggested rotation {rotation} to {sanitized.rotation}")
        return sanitized

    def crop_rect(self, image_width: int, image_height: int) -> Rect:
        """
        Suggested crop in pixels, cut to the image

        Args:
            image_width: Image width
            image_height: Image height

        Returns:
            Pixel rectangle inside the image
        """
        image_width, image_height = validate_dimensions(image_width, image_height)
        p = self.crop_percent
        rect = Rect.from_percent(p['x'], p['y'], p['width'], p['height'],
                                 image_width, image_height)
        inside = rect.intersection(Rect.full(image_width, image_height))
        return inside if inside is not None else Rect.full(image_width, image_height)

    def safe_crop(self, image_width: int, image_height: int) -> Rect:
        """Suggested crop limited to the area that stays covered after rotating."""
        return fit_inside_safe_zone(self.crop_rect(image_width, image_height),
                                    image_width, image_height, self.rotation)


def parse_suggestion(payload: Union[str, Mapping[str, Any]],
                     config: Optional[Dict[str, Any]] = None) -> AutoCorrection:
    """Sanitize a suggestion using the configured rotation limit."""
    return AutoCorrection.from_response(
        payload, max_rotation=get_config_value(config, 'suggestions.max_rotation', 15.0))


def face_blur_rects_from_config(boxes: Sequence[Union[Rect, SubjectBox]],
                                image_width: int, image_height: int,
                                config: Optional[Dict[str, Any]] = None) -> List[Rect]:
    """face_boxes_to_blur_rects with the configured padding."""
    return face_boxes_to_blur_rects(
        boxes, image_width, image_height,
        padding_x=get_config_value(config, 'suggestions.face_padding_x', 0.1),
        padding_y=get_config_value(config, 'suggestions.face_padding_y', 0.2),
    )
