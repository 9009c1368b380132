"""
Rectangular blur regions for PhotoCorrect

Regions are composited by the render package in creation order.
"""

from .models import BlurRegion, BlurRegionSet, MIN_BLUR_AMOUNT, MAX_BLUR_AMOUNT

__all__ = [
    'BlurRegion',
    'BlurRegionSet',
    'MIN_BLUR_AMOUNT',
    'MAX_BLUR_AMOUNT',
]
