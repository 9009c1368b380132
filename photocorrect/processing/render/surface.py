"""
Minimal 2D raster surface used by the compositor.

Mirrors the small subset of canvas operations the render paths need:
create, scaled/rotated drawing with source-over alpha, blur and encoding.
"""

import io
import math
from typing import Sequence, Tuple, Union

import numpy as np
import cv2
from PIL import Image

from ..geometry.models import Rect, image_dimensions, round_half_up, validate_dimensions
from ...errors import RenderingUnavailableError

Color = Union[Sequence[int], Tuple[int, int, int], Tuple[int, int, int, int]]
Box = Tuple[float, float, float, float]

MIME_FORMATS = {
    'image/png': 'PNG',
    'image/jpeg': 'JPEG',
    'image/jpg': 'JPEG',
    'image/webp': 'WEBP',
}


def _to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert an image array of any supported layout to RGBA uint8."""
    if image.dtype != np.uint8:
        if image.dtype == np.uint16:
            image = (image // 257).astype(np.uint8)
        else:
            image = (np.clip(image.astype(np.float32), 0, 1) * 255.0 + 0.5).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(np.ascontiguousarray(image), cv2.COLOR_GRAY2RGBA)
    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(np.ascontiguousarray(image[..., 0]), cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(np.ascontiguousarray(image), cv2.COLOR_RGB2RGBA)
    if channels == 4:
        return image.copy()
    raise RenderingUnavailableError(f"Unsupported channel count: {channels}")


class RasterSurface:
    """RGBA pixel buffer with canvas-like drawing operations"""

    def __init__(self, data: np.ndarray):
        self.data = data

    @classmethod
    def create(cls, width: int, height: int) -> 'RasterSurface':
        """
        Allocate a transparent surface

        Raises:
            DegenerateInputError: For non-positive dimensions
            RenderingUnavailableError: If the buffer cannot be allocated
        """
        width, height = validate_dimensions(width, height)
        try:
            data = np.zeros((height, width, 4), dtype=np.uint8)
        except (MemoryError, ValueError) as e:
            raise RenderingUnavailableError(
                f"Could not allocate a {width}x{height} surface: {e}"
            ) from e
        return cls(data)

    @classmethod
    def from_image(cls, image: np.ndarray) -> 'RasterSurface':
        """Wrap a copy of an RGB/RGBA/grayscale image."""
        image_dimensions(image)
        return cls(_to_rgba(image))

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def fill(self, color: Color):
        """Paint every pixel with a solid RGB or RGBA color."""
        rgba = tuple(color) + (255,) if len(color) == 3 else tuple(color)
        self.data[...] = np.array(rgba, dtype=np.uint8)

    def clear(self):
        self.data[...] = 0

    def crop(self, rect: Rect) -> 'RasterSurface':
        """Copy of the pixels inside a rectangle."""
        return RasterSurface(self.data[rect.y:rect.bottom, rect.x:rect.right].copy())

    def blurred(self, radius: float) -> 'RasterSurface':
        """Gaussian-blurred copy of the whole surface (sigma = radius)."""
        if radius <= 0:
            return RasterSurface(self.data.copy())
        blurred = cv2.GaussianBlur(self.data, (0, 0), sigmaX=float(radius),
                                   borderType=cv2.BORDER_REPLICATE)
        return RasterSurface(blurred)

    def _composite(self, pixels: np.ndarray, dx: int, dy: int):
        """Source-over blend of an RGBA patch with its top-left at (dx, dy)."""
        h, w = pixels.shape[:2]
        x0, y0 = max(dx, 0), max(dy, 0)
        x1, y1 = min(dx + w, self.width), min(dy + h, self.height)
        if x1 <= x0 or y1 <= y0:
            return

        src = pixels[y0 - dy:y1 - dy, x0 - dx:x1 - dx]
        dst = self.data[y0:y1, x0:x1]

        src_alpha = src[..., 3]
        if np.all(src_alpha == 255):
            dst[...] = src
            return

        sa = src_alpha.astype(np.float32)[..., None] / 255.0
        da = dst[..., 3].astype(np.float32)[..., None] / 255.0
        out_a = sa + da * (1.0 - sa)
        src_rgb = src[..., :3].astype(np.float32)
        dst_rgb = dst[..., :3].astype(np.float32)
        with np.errstate(invalid='ignore', divide='ignore'):
            out_rgb = (src_rgb * sa + dst_rgb * da * (1.0 - sa)) / out_a
        out_rgb = np.where(out_a > 0, out_rgb, 0.0)

        dst[..., :3] = np.clip(out_rgb + 0.5, 0, 255).astype(np.uint8)
        dst[..., 3] = np.clip(out_a[..., 0] * 255.0 + 0.5, 0, 255).astype(np.uint8)

    def draw_scaled(self, source: 'RasterSurface', src_box: Box, dst_box: Box):
        """
        Draw a region of another surface scaled into a region of this one

        Args:
            source: Surface to read from
            src_box: (x, y, width, height) in source pixels
            dst_box: (x, y, width, height) in destination pixels
        """
        sx, sy, sw, sh = src_box
        dx, dy, dw, dh = dst_box
        if sw <= 0 or sh <= 0 or dw <= 0 or dh <= 0:
            return

        scale_x = dw / float(sw)
        scale_y = dh / float(sh)

        # Clip the source box; the destination shrinks proportionally
        csx0, csy0 = max(sx, 0.0), max(sy, 0.0)
        csx1, csy1 = min(sx + sw, float(source.width)), min(sy + sh, float(source.height))
        if csx1 <= csx0 or csy1 <= csy0:
            return

        src_x0, src_y0 = round_half_up(csx0), round_half_up(csy0)
        src_x1, src_y1 = round_half_up(csx1), round_half_up(csy1)
        patch = source.data[src_y0:src_y1, src_x0:src_x1]
        if patch.size == 0:
            return

        dst_x0 = round_half_up(dx + (csx0 - sx) * scale_x)
        dst_y0 = round_half_up(dy + (csy0 - sy) * scale_y)
        dst_x1 = round_half_up(dx + (csx1 - sx) * scale_x)
        dst_y1 = round_half_up(dy + (csy1 - sy) * scale_y)
        out_w, out_h = dst_x1 - dst_x0, dst_y1 - dst_y0
        if out_w <= 0 or out_h <= 0:
            return

        if (out_w, out_h) != (patch.shape[1], patch.shape[0]):
            shrinking = out_w < patch.shape[1] and out_h < patch.shape[0]
            interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
            patch = cv2.resize(patch, (out_w, out_h), interpolation=interpolation)

        self._composite(patch, dst_x0, dst_y0)

    def draw_rotated(self, source: 'RasterSurface', angle: float,
                     center_x: float, center_y: float):
        """
        Draw a surface rotated about its own center

        Args:
            source: Surface to draw
            angle: Degrees, positive is clockwise on screen
            center_x: Destination x of the source center
            center_y: Destination y of the source center
        """
        src_cx, src_cy = source.width / 2.0, source.height / 2.0
        # OpenCV works on pixel indices, whose centers sit half a pixel in.
        # Positive OpenCV angles are counter-clockwise.
        matrix = cv2.getRotationMatrix2D((src_cx - 0.5, src_cy - 0.5), -angle, 1.0)
        matrix[0, 2] += center_x - src_cx
        matrix[1, 2] += center_y - src_cy

        warped = cv2.warpAffine(
            source.data,
            matrix,
            (self.width, self.height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )
        self._composite(warped, 0, 0)

    def to_array(self, alpha: bool = True) -> np.ndarray:
        """Copy of the pixels as RGBA (or RGB with alpha dropped)."""
        return self.data.copy() if alpha else self.data[..., :3].copy()

    def encode(self, mime_type: str = 'image/png', quality: float = 0.95) -> bytes:
        """
        Encode the surface

        Args:
            mime_type: Output MIME type
            quality: 0-1 quality for lossy formats

        Returns:
            Encoded image bytes

        Raises:
            RenderingUnavailableError: For unsupported types or encoder failures
        """
        fmt = MIME_FORMATS.get(mime_type.lower())
        if fmt is None:
            raise RenderingUnavailableError(f"Unsupported output type: {mime_type}")

        pil_image = Image.fromarray(np.ascontiguousarray(self.data))
        save_kwargs = {}
        if fmt == 'JPEG':
            # JPEG has no alpha; flatten onto black like a browser canvas does
            background = Image.new('RGBA', pil_image.size, (0, 0, 0, 255))
            pil_image = Image.alpha_composite(background, pil_image).convert('RGB')
        if fmt in ('JPEG', 'WEBP'):
            save_kwargs['quality'] = int(round(min(max(quality, 0.0), 1.0) * 100))

        buffer = io.BytesIO()
        try:
            pil_image.save(buffer, format=fmt, **save_kwargs)
        except (OSError, ValueError, KeyError) as e:
            raise RenderingUnavailableError(f"Failed to encode {mime_type}: {e}") from e
        return buffer.getvalue()


def bounding_size(width: int, height: int, angle: float) -> Tuple[int, int]:
    """Size of the axis-aligned box enclosing a rotated width x height image."""
    rad = math.radians(angle)
    cos = abs(math.cos(rad))
    sin = abs(math.sin(rad))
    # Rounding first keeps float noise (cos 90 = 6e-17) from adding a pixel
    bounding_w = int(math.ceil(round(width * cos + height * sin, 6)))
    bounding_h = int(math.ceil(round(width * sin + height * cos, 6)))
    return max(1, bounding_w), max(1, bounding_h)
