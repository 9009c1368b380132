"""
Automatic image straightening based on the detected reference line
"""

import numpy as np
from typing import Any, Dict, Optional, Tuple
import logging

from .models import Rect, image_dimensions
from .safe_rotation import fit_inside_safe_zone, safe_rotation_rect
from .skew_detector import SkewDetector
from ..render.compositor import Compositor
from ..render.surface import RasterSurface

logger = logging.getLogger(__name__)


class AutoStraightener:
    """
    Straighten images from their dominant near-axis line and keep the
    selection inside the area that remains covered after rotating
    """

    def __init__(self,
                 skew_detector: Optional[SkewDetector] = None,
                 compositor: Optional[Compositor] = None,
                 min_rotation: float = 0.1):
        """
        Initialize auto straightener

        Args:
            skew_detector: Detector used to estimate the correction
            compositor: Renderer used by apply_straightening
            min_rotation: Corrections smaller than this are not worth applying
        """
        self.skew_detector = skew_detector or SkewDetector()
        self.compositor = compositor or Compositor()
        self.min_rotation = min_rotation

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'AutoStraightener':
        return cls(skew_detector=SkewDetector.from_config(config),
                   compositor=Compositor.from_config(config))

    def analyze_image(self, image: np.ndarray) -> Dict:
        """
        Analyze image and suggest a straightening angle

        Args:
            image: RGB image array

        Returns:
            Dictionary with analysis results, suggested rotation and the
            safe crop for that rotation
        """
        width, height = image_dimensions(image)
        result = self.skew_detector.detect_with_details(image)
        angle = result.angle

        return {
            'needs_straightening': result.confident and abs(angle) >= self.min_rotation,
            'suggested_angle': angle,
            'detection_method': result.method.value,
            'detection_details': result.to_dict(),
            'safe_crop': safe_rotation_rect(width, height, angle),
        }

    def straighten_selection(self, selection: Rect, width: int, height: int,
                             angle: float) -> Rect:
        """
        Keep an existing selection within the safe zone of a new rotation

        Args:
            selection: Current crop selection
            width: Image width
            height: Image height
            angle: Rotation that is about to be applied

        Returns:
            Adjusted selection
        """
        adjusted = fit_inside_safe_zone(selection, width, height, angle)
        if adjusted != selection:
            logger.debug(f"Selection {selection} trimmed to safe zone {adjusted}")
        return adjusted

    def apply_straightening(self,
                            image: np.ndarray,
                            angle: Optional[float] = None,
                            crop_to_valid: bool = True) -> Tuple[RasterSurface, Dict]:
        """
        Rotate an image to straighten it

        Args:
            image: RGB image array
            angle: Rotation in degrees; detected automatically when None
            crop_to_valid: Whether to crop to the safe rectangle

        Returns:
            Tuple of (rendered surface, transformation info)
        """
        width, height = image_dimensions(image)
        if angle is None:
            angle = self.skew_detector.detect(image)

        if crop_to_valid:
            crop = safe_rotation_rect(width, height, angle)
        else:
            crop = Rect.full(width, height)

        surface = self.compositor.rotate_and_crop(image, angle, crop)
        return surface, {
            'applied_angle': angle,
            'original_size': (width, height),
            'crop_bounds': crop.to_tuple(),
            'cropped': crop_to_valid and crop != Rect.full(width, height),
        }
