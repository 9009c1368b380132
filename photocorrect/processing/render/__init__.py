"""
Rendering for PhotoCorrect exports
"""

from .surface import RasterSurface, bounding_size
from .compositor import (
    Compositor,
    EditMode,
    ExportResult,
    RenderRequest,
    ResizeMode,
    resize_dimensions,
)

__all__ = [
    "RasterSurface",
    "bounding_size",
    "Compositor",
    "EditMode",
    "ExportResult",
    "RenderRequest",
    "ResizeMode",
    "resize_dimensions",
]
