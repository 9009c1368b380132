"""
Skew estimation from the dominant near-axis straight line

The default method votes edge pixels into a Hough accumulator restricted to
angles near 0, 90 and 180 degrees. Diagonal compositions are never scanned,
so they cannot produce false corrections.
"""

import math
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import logging

from .edge_extractor import EdgeExtractor, EdgeMap
from ...config import get_config_value

logger = logging.getLogger(__name__)


class SkewMethod(Enum):
    """Available skew estimators."""
    HOUGH = "hough"
    GRADIENT_HISTOGRAM = "gradient_histogram"


@dataclass
class SkewResult:
    """Outcome of a skew estimation."""
    angle: float                 # Correction to apply, degrees
    confident: bool
    method: SkewMethod
    edge_count: int
    votes: float = 0.0
    theta: Optional[float] = None
    deviation: float = 0.0
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'angle': self.angle,
            'confident': self.confident,
            'method': self.method.value,
            'edge_count': self.edge_count,
            'votes': self.votes,
            'theta': self.theta,
            'deviation': self.deviation,
            'reason': self.reason,
        }


class SkewDetector:
    """Estimate the rotation needed to straighten an image"""

    # Gradient-histogram estimator constants
    HISTOGRAM_BUCKET = 0.5
    HISTOGRAM_SMOOTHING = 2
    HISTOGRAM_MAX_SKEW = 25.0

    def __init__(self,
                 extractor: Optional[EdgeExtractor] = None,
                 method: SkewMethod = SkewMethod.HOUGH,
                 band: float = 20.0,
                 angle_step: float = 0.5,
                 min_edge_points: int = 100,
                 min_vote_ratio: float = 0.2,
                 max_correction: float = 20.0):
        """
        Initialize skew detector

        Args:
            extractor: Edge extractor used to build the edge map
            method: Estimation method
            band: Half-width in degrees of each scanned band around 0/90/180
            angle_step: Theta resolution in degrees
            min_edge_points: Fewer edge pixels than this means no confident line
            min_vote_ratio: Winning line votes needed, as a fraction of image width
            max_correction: Larger deviations are treated as intentional composition
        """
        self.extractor = extractor or EdgeExtractor()
        self.method = SkewMethod(method)
        self.band = band
        self.angle_step = angle_step
        self.min_edge_points = min_edge_points
        self.min_vote_ratio = min_vote_ratio
        self.max_correction = max_correction
        self._thetas = self._build_thetas()

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'SkewDetector':
        return cls(
            extractor=EdgeExtractor.from_config(config),
            method=SkewMethod(get_config_value(config, 'skew.method', 'hough')),
            band=get_config_value(config, 'skew.band', 20.0),
            angle_step=get_config_value(config, 'skew.angle_step', 0.5),
            min_edge_points=get_config_value(config, 'skew.min_edge_points', 100),
            min_vote_ratio=get_config_value(config, 'skew.min_vote_ratio', 0.2),
            max_correction=get_config_value(config, 'skew.max_correction', 20.0),
        )

    def _build_thetas(self) -> np.ndarray:
        """Scanned angles in degrees, all within [0, 180)."""
        step = self.angle_step
        eps = step / 2.0
        near_zero = np.arange(0.0, self.band + eps, step)
        near_ninety = np.arange(90.0 - self.band, 90.0 + self.band + eps, step)
        near_180 = np.arange(180.0 - self.band, 180.0 - eps, step)
        thetas = np.concatenate([near_zero, near_ninety, near_180])
        return np.unique(np.round(thetas, 6))

    @staticmethod
    def theta_to_deviation(theta: float) -> float:
        """Deviation of a line's normal angle from the nearest axis."""
        if theta <= 45.0:
            return theta
        if theta >= 135.0:
            return theta - 180.0
        return theta - 90.0

    def detect(self, image: np.ndarray) -> float:
        """
        Estimate the straightening angle

        Args:
            image: RGB image array

        Returns:
            Counter-rotation in degrees, 0.0 when no confident line is found
        """
        return self.detect_with_details(image).angle

    def detect_with_details(self, image: np.ndarray) -> SkewResult:
        edge_map = self.extractor.extract(image)
        if self.method == SkewMethod.GRADIENT_HISTOGRAM:
            return self.histogram_skew(edge_map)
        return self.hough_skew(edge_map)

    def hough_skew(self, edge_map: EdgeMap) -> SkewResult:
        """
        Find the strongest near-axis line in an edge map

        Args:
            edge_map: Output of EdgeExtractor

        Returns:
            SkewResult with the counter-rotation angle
        """
        if edge_map.edge_count < self.min_edge_points:
            logger.debug(f"Not enough edge evidence ({edge_map.edge_count} points)")
            return SkewResult(angle=0.0, confident=False, method=SkewMethod.HOUGH,
                              edge_count=edge_map.edge_count, reason='insufficient_edges')

        xs, ys = edge_map.edge_points()
        xs = xs.astype(np.float64)
        ys = ys.astype(np.float64)

        max_rho = int(math.ceil(math.sqrt(edge_map.width ** 2 + edge_map.height ** 2)))
        n_rho = 2 * max_rho + 1

        best_votes = 0
        best_theta = None
        best_rho = 0
        for theta in self._thetas:
            rad = math.radians(theta)
            rho = xs * math.cos(rad) + ys * math.sin(rad)
            rho_index = np.rint(rho).astype(np.int64) + max_rho
            counts = np.bincount(rho_index, minlength=n_rho)
            peak = int(np.argmax(counts))
            if counts[peak] > best_votes:
                best_votes = int(counts[peak])
                best_theta = float(theta)
                best_rho = peak - max_rho

        min_votes = self.min_vote_ratio * edge_map.width
        if best_theta is None or best_votes < min_votes:
            logger.debug(f"Strongest line has {best_votes} votes, need {min_votes:.0f}")
            return SkewResult(angle=0.0, confident=False, method=SkewMethod.HOUGH,
                              edge_count=edge_map.edge_count, votes=best_votes,
                              theta=best_theta, reason='weak_line')

        deviation = self.theta_to_deviation(best_theta)
        if abs(deviation) > self.max_correction:
            return SkewResult(angle=0.0, confident=False, method=SkewMethod.HOUGH,
                              edge_count=edge_map.edge_count, votes=best_votes,
                              theta=best_theta, deviation=deviation,
                              reason='intentional_composition')

        angle = -deviation if deviation != 0 else 0.0
        logger.info(f"Detected skew {deviation:.2f} deg (theta={best_theta}, "
                    f"rho={best_rho}, votes={best_votes})")
        return SkewResult(angle=angle, confident=True, method=SkewMethod.HOUGH,
                          edge_count=edge_map.edge_count, votes=best_votes,
                          theta=best_theta, deviation=deviation)

    def histogram_skew(self, edge_map: EdgeMap) -> SkewResult:
        """
        Vote gradient directions into a deviation histogram

        Args:
            edge_map: Output of EdgeExtractor

        Returns:
            SkewResult with the counter-rotation angle
        """
        method = SkewMethod.GRADIENT_HISTOGRAM
        if edge_map.edge_count == 0:
            return SkewResult(angle=0.0, confident=False, method=method,
                              edge_count=0, reason='insufficient_edges')

        deg = edge_map.direction[edge_map.mask]
        weights = edge_map.magnitude[edge_map.mask]

        # Fold to [-90, 90], then to deviation from the nearest axis
        deg = np.where(deg < -90.0, deg + 180.0, deg)
        deg = np.where(deg > 90.0, deg - 180.0, deg)
        deviation = np.where(deg > 45.0, deg - 90.0, deg)
        deviation = np.where(deviation < -45.0, deviation + 90.0, deviation)

        n_buckets = int(math.ceil(90.0 / self.HISTOGRAM_BUCKET))
        buckets = np.rint((deviation + 45.0) / self.HISTOGRAM_BUCKET).astype(np.int64)
        valid = (buckets >= 0) & (buckets < n_buckets)
        histogram = np.bincount(buckets[valid], weights=weights[valid], minlength=n_buckets)

        radius = self.HISTOGRAM_SMOOTHING
        window = np.ones(2 * radius + 1) / (2 * radius + 1)
        smoothed = np.convolve(histogram, window, mode='valid')
        if smoothed.size == 0 or smoothed.max() <= 0:
            return SkewResult(angle=0.0, confident=False, method=method,
                              edge_count=edge_map.edge_count, reason='no_peak')

        # A sharp spike makes a plateau in the moving average; take the
        # strongest raw bucket inside the winning window
        window_start = int(np.argmax(smoothed))
        segment = histogram[window_start:window_start + 2 * radius + 1]
        peak_index = window_start + int(np.argmax(segment))
        detected = peak_index * self.HISTOGRAM_BUCKET - 45.0
        if abs(detected) > self.HISTOGRAM_MAX_SKEW:
            return SkewResult(angle=0.0, confident=False, method=method,
                              edge_count=edge_map.edge_count, votes=float(smoothed.max()),
                              deviation=detected, reason='intentional_composition')

        return SkewResult(angle=-detected if detected != 0 else 0.0, confident=True,
                          method=method, edge_count=edge_map.edge_count,
                          votes=float(smoothed.max()), deviation=detected)
