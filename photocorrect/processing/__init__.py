"""
Image correction modules for PhotoCorrect

Includes geometry analysis, selection editing, blur regions and rendering.
"""

from .geometry import Rect, SelectionFrame, SkewDetector, SmartCropComposer, safe_rotation_rect
from .geometry.auto_straighten import AutoStraightener
from .selection import SelectionStateMachine
from .blur import BlurRegion, BlurRegionSet
from .render import Compositor, EditMode, RenderRequest

__all__ = [
    "Rect",
    "SelectionFrame",
    "SkewDetector",
    "SmartCropComposer",
    "safe_rotation_rect",
    "AutoStraightener",
    "SelectionStateMachine",
    "BlurRegion",
    "BlurRegionSet",
    "Compositor",
    "EditMode",
    "RenderRequest",
]
