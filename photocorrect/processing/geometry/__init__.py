"""
Geometry processing modules for PhotoCorrect

Includes edge extraction, skew detection, safe rotation and smart cropping.
AutoStraightener lives in this package but is exported from
photocorrect.processing because it depends on the render package.
"""

from .models import Rect, SelectionFrame, round_half_up
from .edge_extractor import EdgeExtractor, EdgeMap
from .skew_detector import SkewDetector, SkewMethod, SkewResult
from .safe_rotation import safe_rotation_rect, fit_inside_safe_zone
from .smart_crop import SmartCropComposer, CropSuggestion, center_crop, fit_to_aspect
from .suggestions import (
    AutoCorrection,
    BoxUnits,
    SubjectBox,
    SubjectDetector,
    boxes_to_pixels,
    face_boxes_to_blur_rects,
    face_blur_rects_from_config,
    parse_suggestion,
)

__all__ = [
    "Rect",
    "SelectionFrame",
    "round_half_up",
    "EdgeExtractor",
    "EdgeMap",
    "SkewDetector",
    "SkewMethod",
    "SkewResult",
    "safe_rotation_rect",
    "fit_inside_safe_zone",
    "SmartCropComposer",
    "CropSuggestion",
    "center_crop",
    "fit_to_aspect",
    "AutoCorrection",
    "BoxUnits",
    "SubjectBox",
    "SubjectDetector",
    "boxes_to_pixels",
    "face_boxes_to_blur_rects",
    "face_blur_rects_from_config",
    "parse_suggestion",
]
