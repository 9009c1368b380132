"""
Tests for the raster surface and the export compositor.
"""

import io

import pytest
import numpy as np
from PIL import Image

from photocorrect.errors import DegenerateInputError, RenderingUnavailableError
from photocorrect.processing.blur.models import BlurRegion
from photocorrect.processing.geometry.models import Rect, SelectionFrame
from photocorrect.processing.geometry.safe_rotation import safe_rotation_rect
from photocorrect.processing.render import (
    Compositor, EditMode, RasterSurface, RenderRequest, ResizeMode,
    bounding_size, resize_dimensions
)


@pytest.fixture
def noise_image():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(60, 100, 3), dtype=np.uint8)


@pytest.fixture
def red_image():
    image = np.zeros((60, 100, 3), dtype=np.uint8)
    image[..., 0] = 255
    return image


class TestRasterSurface:
    """Test surface creation and conversion."""

    def test_create_transparent(self):
        surface = RasterSurface.create(10, 5)
        assert surface.size == (10, 5)
        assert surface.data.shape == (5, 10, 4)
        assert not surface.data.any()

    def test_create_degenerate(self):
        with pytest.raises(DegenerateInputError):
            RasterSurface.create(0, 10)

    def test_from_grayscale_and_float(self):
        gray = RasterSurface.from_image(np.full((4, 6), 200, dtype=np.uint8))
        assert gray.size == (6, 4)
        assert tuple(gray.data[0, 0]) == (200, 200, 200, 255)

        floating = RasterSurface.from_image(np.ones((4, 6, 3), dtype=np.float32))
        assert tuple(floating.data[0, 0]) == (255, 255, 255, 255)

    def test_bounding_size(self):
        assert bounding_size(100, 60, 0) == (100, 60)
        assert bounding_size(100, 60, 90) == (60, 100)
        assert bounding_size(100, 60, 45) == (114, 114)

    def test_half_pixel_source_box_copies_without_resampling(self, noise_image):
        source = RasterSurface.from_image(noise_image)
        target = RasterSurface.create(3, 1)
        # 2.5 and 5.5 both round up, so three source columns meet three destination columns
        target.draw_scaled(source, (2.5, 0, 3, 1), (0, 0, 3, 1))
        np.testing.assert_array_equal(target.data[0], source.data[0, 3:6])

    def test_encode_formats(self, red_image):
        surface = RasterSurface.from_image(red_image)
        assert surface.encode('image/png').startswith(b'\x89PNG')
        assert surface.encode('image/jpeg', 0.8).startswith(b'\xff\xd8')
        assert surface.encode('image/webp').startswith(b'RIFF')

    def test_encode_unsupported(self, red_image):
        with pytest.raises(RenderingUnavailableError):
            RasterSurface.from_image(red_image).encode('image/gif')


class TestRotateAndCrop:
    """Test the crop+rotate render path."""

    def test_unrotated_crop_copies_pixels(self, noise_image):
        surface = Compositor().rotate_and_crop(noise_image, 0, Rect(10, 10, 30, 20))
        assert surface.size == (30, 20)
        np.testing.assert_array_equal(surface.data[..., :3], noise_image[10:30, 10:40])
        assert (surface.data[..., 3] == 255).all()

    def test_rotated_frame_without_rotation_matches(self, noise_image):
        compositor = Compositor()
        crop = Rect(10, 10, 30, 20)
        upright = compositor.rotate_and_crop(noise_image, 0, crop)
        rotated = compositor.rotate_and_crop(noise_image, 0, crop, SelectionFrame.ROTATED)
        np.testing.assert_array_equal(upright.data, rotated.data)

    def test_quarter_turn_full_crop_exposes_background(self, noise_image):
        surface = Compositor().rotate_and_crop(noise_image, 90, Rect(0, 0, 100, 60))
        assert surface.size == (100, 60)
        assert (surface.data[:, :20, 3] == 0).all()
        assert (surface.data[:, 20:80, 3] == 255).all()

    def test_quarter_turn_safe_crop_is_opaque(self, noise_image):
        crop = safe_rotation_rect(100, 60, 90)
        surface = Compositor().rotate_and_crop(noise_image, 90, crop)

        assert surface.size == (60, 60)
        assert (surface.data[..., 3] == 255).all()
        # Clockwise: the bottom-left of the source ends up top-left of the crop
        np.testing.assert_allclose(surface.data[0, 0, :3].astype(int),
                                   noise_image[59, 20].astype(int), atol=2)

    def test_crop_clamped_to_image(self, red_image):
        surface = Compositor().rotate_and_crop(red_image, 0, Rect(80, 50, 50, 50))
        assert surface.size == (50, 50)


class TestResize:
    """Test the resize render path."""

    def test_stretch(self, noise_image):
        surface = Compositor().resize(noise_image, 50, 30)
        assert surface.size == (50, 30)
        assert (surface.data[..., 3] == 255).all()

    def test_contain_letterbox(self, red_image):
        surface = Compositor().resize(red_image, 60, 60, ResizeMode.CONTAIN,
                                      background=(255, 255, 255))
        assert tuple(surface.data[0, 30]) == (255, 255, 255, 255)
        assert tuple(surface.data[30, 30]) == (255, 0, 0, 255)

    def test_contain_transparent_letterbox(self, red_image):
        surface = Compositor().resize(red_image, 60, 60, ResizeMode.CONTAIN)
        assert surface.data[0, 30, 3] == 0
        assert surface.data[30, 30, 3] == 255

    def test_resize_dimensions(self):
        assert resize_dimensions(100, 60) == (100, 60)
        assert resize_dimensions(100, 60, width=50) == (50, 30)
        assert resize_dimensions(100, 60, height=30) == (50, 30)
        assert resize_dimensions(100, 60, 10, 10) == (10, 10)
        with pytest.raises(DegenerateInputError):
            resize_dimensions(100, 60, width=0)


class TestBlurComposite:
    """Test the blur render path."""

    def test_blur_only_inside_region(self, noise_image):
        region = BlurRegion('a', Rect(10, 10, 30, 30), blur_amount=20)
        surface = Compositor().blur_composite(noise_image, [region])
        blurred = RasterSurface.from_image(noise_image).blurred(20)

        np.testing.assert_array_equal(surface.data[:10, :, :3], noise_image[:10])
        np.testing.assert_array_equal(surface.data[10:40, 10:40], blurred.data[10:40, 10:40])
        assert surface.data[10:40, 10:40, :3].std() < noise_image[10:40, 10:40].std()

    def test_last_region_wins(self, noise_image):
        regions = [
            BlurRegion('a', Rect(10, 10, 30, 30), blur_amount=10),
            BlurRegion('b', Rect(10, 10, 30, 30), blur_amount=50),
        ]
        surface = Compositor().blur_composite(noise_image, regions)
        blurred = RasterSurface.from_image(noise_image).blurred(50)
        np.testing.assert_array_equal(surface.data[10:40, 10:40], blurred.data[10:40, 10:40])

    def test_region_cut_to_image(self, noise_image):
        region = BlurRegion('edge', Rect(90, 50, 30, 30))
        surface = Compositor().blur_composite(noise_image, [region])
        blurred = RasterSurface.from_image(noise_image).blurred(20)

        np.testing.assert_array_equal(surface.data[50:60, 90:100], blurred.data[50:60, 90:100])
        np.testing.assert_array_equal(surface.data[:50, :, :3], noise_image[:50])

    def test_region_outside_image_ignored(self, noise_image):
        region = BlurRegion('gone', Rect(200, 200, 10, 10))
        surface = Compositor().blur_composite(noise_image, [region])
        np.testing.assert_array_equal(surface.data[..., :3], noise_image)


class TestRender:
    """Test full render requests."""

    def test_render_resize_png(self, noise_image):
        result = Compositor().render(
            noise_image, RenderRequest(mode=EditMode.RESIZE, target_size=(50, 30))
        )
        assert (result.width, result.height) == (50, 30)
        assert result.mime_type == 'image/png'
        assert Image.open(io.BytesIO(result.data)).size == (50, 30)

    def test_render_crop_defaults_to_full_image(self, noise_image):
        result = Compositor().render(noise_image, RenderRequest(mode='crop-rotate'))
        assert (result.width, result.height) == (100, 60)

    def test_render_blur_jpeg(self, noise_image):
        request = RenderRequest(
            mode=EditMode.BLUR,
            blur_regions=[BlurRegion('a', Rect(0, 0, 20, 20))],
            mime_type='image/jpeg',
            quality=0.5,
        )
        result = Compositor().render(noise_image, request)
        assert result.mime_type == 'image/jpeg'
        assert Image.open(io.BytesIO(result.data)).format == 'JPEG'

    def test_resize_requires_target(self, noise_image):
        with pytest.raises(DegenerateInputError):
            Compositor().render(noise_image, RenderRequest(mode=EditMode.RESIZE))

    def test_from_config(self, noise_image):
        compositor = Compositor.from_config({'export': {'mime_type': 'image/webp', 'quality': 0.7}})
        result = compositor.render(noise_image, RenderRequest(mode=EditMode.CROP_ROTATE))
        assert result.mime_type == 'image/webp'
        assert compositor.quality == 0.7
