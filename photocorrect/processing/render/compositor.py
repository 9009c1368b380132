"""
Compositor that renders the corrected, resized or blurred output raster
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from .surface import Color, RasterSurface, bounding_size
from ..blur.models import BlurRegion
from ..geometry.models import (
    Rect, SelectionFrame, image_dimensions, round_half_up, validate_dimensions
)
from ...config import get_config_value
from ...errors import DegenerateInputError
from ...utils.logging import StructuredLogger

logger = StructuredLogger(__name__)


class EditMode(Enum):
    """Active editing mode, which selects the render path."""
    CROP_ROTATE = "crop-rotate"
    RESIZE = "resize"
    BLUR = "blur"


class ResizeMode(Enum):
    """How the source fills a resize target."""
    STRETCH = "stretch"
    CONTAIN = "contain"


@dataclass
class RenderRequest:
    """Parameters for one export."""
    mode: EditMode
    rotation: float = 0.0
    crop: Optional[Rect] = None
    frame: SelectionFrame = SelectionFrame.UPRIGHT
    target_size: Optional[Tuple[int, int]] = None
    resize_mode: ResizeMode = ResizeMode.STRETCH
    background: Optional[Color] = None
    blur_regions: Sequence[BlurRegion] = field(default_factory=tuple)
    mime_type: Optional[str] = None
    quality: Optional[float] = None


@dataclass
class ExportResult:
    """Encoded output raster."""
    data: bytes
    width: int
    height: int
    mime_type: str


def resize_dimensions(src_width: int, src_height: int,
                      width: Optional[int] = None,
                      height: Optional[int] = None) -> Tuple[int, int]:
    """
    Fill in a missing resize dimension from the source aspect ratio

    Args:
        src_width: Source width
        src_height: Source height
        width: Requested width, or None
        height: Requested height, or None

    Returns:
        Tuple of (width, height)
    """
    src_width, src_height = validate_dimensions(src_width, src_height)
    if width is None and height is None:
        return src_width, src_height
    if height is None:
        width, _ = validate_dimensions(width, 1)
        return width, max(1, round_half_up(width * src_height / src_width))
    if width is None:
        _, height = validate_dimensions(1, height)
        return max(1, round_half_up(height * src_width / src_height)), height
    return validate_dimensions(width, height)


class Compositor:
    """Render paths for rotate+crop, resize and blur exports"""

    def __init__(self, mime_type: str = 'image/png', quality: float = 0.95):
        """
        Initialize compositor

        Args:
            mime_type: Default output MIME type
            quality: Default quality for lossy formats (0-1)
        """
        self.mime_type = mime_type
        self.quality = quality

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'Compositor':
        return cls(
            mime_type=get_config_value(config, 'export.mime_type', 'image/png'),
            quality=get_config_value(config, 'export.quality', 0.95),
        )

    def rotate_and_crop(self, image: np.ndarray, rotation: float, crop: Rect,
                        frame: SelectionFrame = SelectionFrame.UPRIGHT) -> RasterSurface:
        """
        Rotate the image and cut out the crop selection

        Args:
            image: Source image array
            rotation: Degrees, positive is clockwise
            crop: Selection in unrotated image pixels
            frame: Whether the selection stayed upright or rotated with the image

        Returns:
            Surface sized to the crop
        """
        w, h = image_dimensions(image)
        crop = crop.clamp_to(w, h)
        frame = SelectionFrame(frame)
        source = RasterSurface.from_image(image)
        output = RasterSurface.create(crop.width, crop.height)

        if frame == SelectionFrame.ROTATED:
            # The selection turned with the image: rotate the cropped pixels
            region = source.crop(crop)
            output.draw_rotated(region, rotation, crop.width / 2.0, crop.height / 2.0)
        else:
            bounding_w, bounding_h = bounding_size(w, h, rotation)
            rotated = RasterSurface.create(bounding_w, bounding_h)
            rotated.draw_rotated(source, rotation, bounding_w / 2.0, bounding_h / 2.0)

            # Top-left of the unrotated image inside the bounding canvas
            offset_x = (bounding_w - w) / 2.0
            offset_y = (bounding_h - h) / 2.0
            output.draw_scaled(
                rotated,
                (offset_x + crop.x, offset_y + crop.y, crop.width, crop.height),
                (0, 0, crop.width, crop.height),
            )

        logger.debug("Rendered rotate+crop", rotation=rotation, crop=crop.to_tuple(),
                     frame=frame.value)
        return output

    def resize(self, image: np.ndarray, width: int, height: int,
               mode: ResizeMode = ResizeMode.STRETCH,
               background: Optional[Color] = None) -> RasterSurface:
        """
        Scale the image to a target size

        Args:
            image: Source image array
            width: Target width
            height: Target height
            mode: STRETCH fills the target, CONTAIN letterboxes
            background: Letterbox color for CONTAIN; transparent when None

        Returns:
            Surface of the target size
        """
        src_w, src_h = image_dimensions(image)
        width, height = validate_dimensions(width, height)
        mode = ResizeMode(mode)
        source = RasterSurface.from_image(image)
        output = RasterSurface.create(width, height)

        if mode == ResizeMode.STRETCH:
            output.draw_scaled(source, (0, 0, src_w, src_h), (0, 0, width, height))
        else:
            if background is not None:
                output.fill(background)
            ratio = min(width / src_w, height / src_h)
            draw_w = src_w * ratio
            draw_h = src_h * ratio
            output.draw_scaled(
                source,
                (0, 0, src_w, src_h),
                ((width - draw_w) / 2.0, (height - draw_h) / 2.0, draw_w, draw_h),
            )

        logger.debug("Rendered resize", mode=mode.value, width=width, height=height)
        return output

    def blur_composite(self, image: np.ndarray,
                       regions: Iterable[BlurRegion]) -> RasterSurface:
        """
        Paint blurred copies of the image inside each region

        Args:
            image: Source image array
            regions: Blur regions in creation order; later ones win on overlap

        Returns:
            Surface the size of the source
        """
        w, h = image_dimensions(image)
        source = RasterSurface.from_image(image)
        output = RasterSurface(source.data.copy())

        # Blurred copies depend only on the amount, so share them per call
        scratch: Dict[float, RasterSurface] = {}
        for region in regions:
            rect = region.rect.intersection(Rect.full(w, h))
            if rect is None:
                logger.debug("Skipping blur region outside image", region=region.id)
                continue
            if region.blur_amount not in scratch:
                scratch[region.blur_amount] = source.blurred(region.blur_amount)
            box = (rect.x, rect.y, rect.width, rect.height)
            output.draw_scaled(scratch[region.blur_amount], box, box)

        return output

    def export(self, surface: RasterSurface, mime_type: Optional[str] = None,
               quality: Optional[float] = None) -> ExportResult:
        """
        Encode a rendered surface

        Args:
            surface: Rendered output
            mime_type: Output type, defaults to the configured one
            quality: Lossy quality, defaults to the configured one

        Returns:
            ExportResult with encoded bytes and pixel dimensions
        """
        mime_type = mime_type or self.mime_type
        quality = self.quality if quality is None else quality
        data = surface.encode(mime_type, quality)
        logger.info("Exported image", mime_type=mime_type, width=surface.width,
                    height=surface.height, bytes=len(data))
        return ExportResult(data=data, width=surface.width, height=surface.height,
                            mime_type=mime_type)

    def render_surface(self, image: np.ndarray, request: RenderRequest) -> RasterSurface:
        """Run the render path selected by the request's edit mode."""
        mode = EditMode(request.mode)
        if mode == EditMode.CROP_ROTATE:
            w, h = image_dimensions(image)
            crop = request.crop or Rect.full(w, h)
            return self.rotate_and_crop(image, request.rotation, crop, request.frame)
        if mode == EditMode.RESIZE:
            if request.target_size is None:
                raise DegenerateInputError("Resize requires a target size")
            width, height = request.target_size
            return self.resize(image, width, height, request.resize_mode, request.background)
        return self.blur_composite(image, request.blur_regions)

    def render(self, image: np.ndarray, request: RenderRequest) -> ExportResult:
        """
        Render and encode an export

        Args:
            image: Source image array
            request: Render parameters

        Returns:
            Encoded output
        """
        surface = self.render_surface(image, request)
        return self.export(surface, request.mime_type, request.quality)
