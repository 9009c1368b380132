"""
Sobel edge extraction on a bounded working resolution
"""

import numpy as np
import cv2
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from .models import image_dimensions, round_half_up
from ...config import get_config_value

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@dataclass
class EdgeMap:
    """Edge evidence for one analysis pass"""
    width: int
    height: int
    scale: float                # working size / original size
    magnitude: np.ndarray       # float64, (height, width)
    direction: np.ndarray       # gradient direction in degrees, (-180, 180]
    mask: np.ndarray            # bool, magnitude above threshold
    edge_count: int

    def edge_points(self):
        """Return (xs, ys) coordinates of all edge pixels."""
        ys, xs = np.nonzero(self.mask)
        return xs, ys


class EdgeExtractor:
    """Grayscale conversion and Sobel gradients on a downsampled raster"""

    def __init__(self,
                 working_size: int = 512,
                 magnitude_threshold: float = 50.0):
        """
        Initialize edge extractor

        Args:
            working_size: Cap for the longest side of the analysis raster
            magnitude_threshold: Minimum gradient magnitude for an edge pixel
        """
        self.working_size = working_size
        self.magnitude_threshold = magnitude_threshold

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'EdgeExtractor':
        return cls(
            working_size=get_config_value(config, 'edges.working_size', 512),
            magnitude_threshold=get_config_value(config, 'edges.magnitude_threshold', 50.0),
        )

    def downsample(self, image: np.ndarray) -> np.ndarray:
        """
        Shrink the image so its longest side is at most working_size

        Args:
            image: Image array

        Returns:
            Downsampled image (the input itself if already small enough)
        """
        w, h = image_dimensions(image)
        longest = max(w, h)
        if longest <= self.working_size:
            return image

        scale = self.working_size / float(longest)
        new_w = max(1, round_half_up(w * scale))
        new_h = max(1, round_half_up(h * scale))
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)

    @staticmethod
    def to_luminance(image: np.ndarray) -> np.ndarray:
        """Convert to float luminance; alpha channels are ignored."""
        if image.ndim == 2:
            return image.astype(np.float64)
        rgb = image[..., :3].astype(np.float64)
        if rgb.shape[2] < 3:
            return rgb[..., 0]
        return rgb @ LUMA_WEIGHTS

    def extract(self, image: np.ndarray) -> EdgeMap:
        """
        Extract the edge map of an image

        Args:
            image: RGB/RGBA/grayscale image array

        Returns:
            EdgeMap at working resolution
        """
        orig_w, _ = image_dimensions(image)
        small = self.downsample(image)
        gray = self.to_luminance(small)
        h, w = gray.shape

        gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
        gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
        magnitude = np.sqrt(gx * gx + gy * gy)

        # Only pixels with a full 3x3 neighbourhood count
        magnitude[0, :] = 0
        magnitude[-1, :] = 0
        magnitude[:, 0] = 0
        magnitude[:, -1] = 0

        direction = np.degrees(np.arctan2(gy, gx))
        mask = magnitude > self.magnitude_threshold
        edge_count = int(np.count_nonzero(mask))

        logger.debug(f"Extracted {edge_count} edge points at {w}x{h}")

        return EdgeMap(
            width=w,
            height=h,
            scale=w / float(orig_w),
            magnitude=magnitude,
            direction=direction,
            mask=mask,
            edge_count=edge_count,
        )
