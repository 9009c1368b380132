"""
Tests for selection move/resize operations and the interaction state machine.
"""

import pytest

from photocorrect.errors import DegenerateInputError
from photocorrect.processing.blur.models import BlurRegion
from photocorrect.processing.geometry.models import Rect, SelectionFrame
from photocorrect.processing.selection import (
    Direction, Handle, SelectionState, SelectionStateMachine,
    move_rect, nudge_rect, recenter_to_aspect, resize_rect
)

IMAGE_W, IMAGE_H = 1000, 500


class TestMoveRect:
    """Test clamped translation."""

    def test_move(self):
        assert move_rect(Rect(100, 100, 200, 100), 20, -30, IMAGE_W, IMAGE_H) == Rect(120, 70, 200, 100)

    def test_move_clamped_to_image(self):
        rect = Rect(100, 100, 200, 100)
        assert move_rect(rect, 5000, 5000, IMAGE_W, IMAGE_H) == Rect(800, 400, 200, 100)
        assert move_rect(rect, -5000, -5000, IMAGE_W, IMAGE_H) == Rect(0, 0, 200, 100)

    def test_nudge(self):
        rect = Rect(10, 0, 50, 50)
        assert nudge_rect(rect, Direction.LEFT, IMAGE_W, IMAGE_H) == Rect(9, 0, 50, 50)
        assert nudge_rect(rect, Direction.RIGHT, IMAGE_W, IMAGE_H, step=10) == Rect(20, 0, 50, 50)
        # Already at the top edge
        assert nudge_rect(rect, Direction.UP, IMAGE_W, IMAGE_H) == rect

    def test_direction_from_key(self):
        assert Direction.from_key('ArrowDown') == Direction.DOWN
        assert Direction.from_key('Enter') is None


class TestResizeRect:
    """Test the eight resize handles."""

    def test_north_handle_anchors_bottom(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.N, 0, -50, IMAGE_W, IMAGE_H)
        assert rect == Rect(100, 50, 200, 150)

    def test_south_east_corner(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.SE, 100, 50, IMAGE_W, IMAGE_H)
        assert rect == Rect(100, 100, 300, 150)

    def test_minimum_size_east(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.E, -190, 0, IMAGE_W, IMAGE_H)
        assert rect == Rect(100, 100, 20, 100)

    def test_minimum_size_west_keeps_right_edge(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.W, 190, 0, IMAGE_W, IMAGE_H)
        assert rect == Rect(280, 100, 20, 100)

    def test_edge_stops_at_image_border(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.W, -500, 0, IMAGE_W, IMAGE_H)
        assert rect == Rect(0, 100, 300, 100)

    def test_minimum_capped_at_image_size(self):
        rect = resize_rect(Rect(0, 0, 10, 10), Handle.E, -5, 0, 10, 10, min_size=20)
        assert rect == Rect(0, 0, 10, 10)

    def test_edge_handle_derives_height_from_ratio(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.E, 100, 0, IMAGE_W, IMAGE_H,
                           aspect_ratio=2.0)
        assert rect == Rect(100, 100, 300, 150)

    def test_north_handle_derives_width_from_ratio(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.N, 0, -50, IMAGE_W, IMAGE_H,
                           aspect_ratio=2.0)
        assert rect == Rect(100, 50, 300, 150)

    def test_corner_uses_dominant_axis(self):
        rect = resize_rect(Rect(100, 100, 100, 100), Handle.SE, 50, 10, IMAGE_W, IMAGE_H,
                           aspect_ratio=1.0)
        assert rect == Rect(100, 100, 150, 150)

    def test_ratio_respected_at_image_border(self):
        rect = resize_rect(Rect(100, 300, 100, 100), Handle.SE, 300, 0, IMAGE_W, IMAGE_H,
                           aspect_ratio=1.0)
        assert rect == Rect(100, 300, 200, 200)

    @pytest.mark.parametrize("handle", [Handle.NE, Handle.NW, Handle.SE, Handle.SW])
    @pytest.mark.parametrize("ratio", [2.0, 0.75])
    @pytest.mark.parametrize("delta", [(60, 10), (-40, -90), (25, -7), (300, 300), (-2000, -2000)])
    def test_corner_drag_keeps_ratio(self, handle, ratio, delta):
        rect = resize_rect(Rect(400, 200, 200, 100), handle, delta[0], delta[1],
                           IMAGE_W, IMAGE_H, aspect_ratio=ratio)
        # Each edge rounds to whole pixels
        assert abs(rect.width - rect.height * ratio) <= 1 + ratio
        assert rect.fits_within(IMAGE_W, IMAGE_H)

    def test_zero_minimum_still_one_pixel(self):
        rect = resize_rect(Rect(100, 100, 200, 100), Handle.E, -500, 0, IMAGE_W, IMAGE_H,
                           min_size=0)
        assert rect == Rect(100, 100, 1, 100)

    @pytest.mark.parametrize("handle", list(Handle))
    @pytest.mark.parametrize("delta", [(-2000, -2000), (2000, 2000), (37, -91)])
    def test_result_always_inside_image(self, handle, delta):
        rect = resize_rect(Rect(400, 200, 200, 100), handle, delta[0], delta[1],
                           IMAGE_W, IMAGE_H, aspect_ratio=1.5)
        assert rect.fits_within(IMAGE_W, IMAGE_H)
        assert rect.width >= 20
        assert rect.height >= 20

    def test_recenter_to_aspect(self):
        rect = recenter_to_aspect(Rect(100, 100, 200, 100), 1.0, IMAGE_W, IMAGE_H)
        assert rect == Rect(100, 50, 200, 200)
        assert recenter_to_aspect(Rect(100, 100, 200, 100), None, IMAGE_W, IMAGE_H) == \
            Rect(100, 100, 200, 100)


class TestSelectionStateMachine:
    """Test pointer interactions with display-to-image mapping."""

    @pytest.fixture
    def machine(self):
        # Image shown at half size
        return SelectionStateMachine(IMAGE_W, IMAGE_H, 500, 250)

    def test_starts_idle(self, machine):
        assert machine.state == SelectionState.IDLE
        assert machine.interaction is None

    def test_move_drag(self, machine):
        machine.begin('crop', Rect(100, 100, 200, 100), (100, 60))
        assert machine.state == SelectionState.MOVING

        assert machine.update((110, 70)) == Rect(120, 120, 200, 100)
        assert machine.update((1000, 1000)) == Rect(800, 400, 200, 100)

        assert machine.end() == Rect(800, 400, 200, 100)
        assert machine.state == SelectionState.IDLE

    def test_resize_drag(self, machine):
        machine.begin('crop', Rect(100, 100, 200, 100), (150, 100), handle='se')
        assert machine.state == SelectionState.RESIZING
        assert machine.interaction.handle == Handle.SE

        assert machine.end((200, 125)) == Rect(100, 100, 300, 150)

    def test_begin_while_active(self, machine):
        machine.begin('crop', Rect(100, 100, 200, 100), (100, 60))
        with pytest.raises(RuntimeError):
            machine.begin('crop', Rect(100, 100, 200, 100), (100, 60))

    def test_update_while_idle(self, machine):
        with pytest.raises(RuntimeError):
            machine.update((10, 10))

    def test_end_while_idle(self, machine):
        assert machine.end() is None

    def test_cancel(self, machine):
        machine.begin('crop', Rect(100, 100, 200, 100), (100, 60))
        machine.update((110, 70))
        machine.cancel()
        assert machine.state == SelectionState.IDLE
        assert machine.end() is None

    def test_hit_handle(self, machine):
        hit = machine.hit_test({'a': Rect(100, 100, 200, 100)}, (50, 50))
        assert hit.region_id == 'a'
        assert hit.handle == Handle.NW

    def test_hit_body(self, machine):
        hit = machine.hit_test({'a': Rect(100, 100, 200, 100)}, (100, 75))
        assert hit.region_id == 'a'
        assert hit.handle is None

    def test_miss(self, machine):
        assert machine.pointer_down({'a': Rect(100, 100, 200, 100)}, (400, 200)) is None
        assert machine.state == SelectionState.IDLE

    def test_topmost_body_wins(self, machine):
        regions = [('a', Rect(0, 0, 400, 400)), ('b', Rect(100, 100, 100, 100))]
        assert machine.hit_test(regions, (75, 75)).region_id == 'b'

    def test_handles_before_bodies(self, machine):
        regions = [('a', Rect(100, 100, 100, 100)), ('b', Rect(0, 0, 400, 400))]
        hit = machine.hit_test(regions, (50, 50))
        assert hit.region_id == 'a'
        assert hit.handle == Handle.NW

    def test_pointer_down_starts_drag_on_blur_region(self, machine):
        region = BlurRegion('face', Rect(100, 100, 200, 100))
        hit = machine.pointer_down([region], (100, 75))

        assert hit.region_id == 'face'
        assert machine.state == SelectionState.MOVING
        assert machine.update((110, 75)) == Rect(120, 100, 200, 100)

    def test_rotated_frame_maps_pointer(self):
        machine = SelectionStateMachine(100, 100, 100, 100, rotation=90,
                                        frame=SelectionFrame.ROTATED)
        # The image top edge is shown on the right after a clockwise quarter turn
        x, y = machine.to_image((100, 50))
        assert x == pytest.approx(50.0, abs=1e-9)
        assert y == pytest.approx(0.0, abs=1e-9)

    def test_upright_frame_ignores_rotation(self):
        machine = SelectionStateMachine(100, 100, 100, 100, rotation=90)
        assert machine.to_image((100, 50)) == (100.0, 50.0)

    def test_mapping_changes_rejected_mid_drag(self, machine):
        machine.begin('crop', Rect(100, 100, 200, 100), (100, 60))
        with pytest.raises(RuntimeError):
            machine.set_rotation(5)
        with pytest.raises(RuntimeError):
            machine.resize_display(1000, 500)
        with pytest.raises(RuntimeError):
            machine.change_aspect_ratio(Rect(100, 100, 200, 100), 1.0)

    def test_resize_display_changes_scale(self, machine):
        machine.resize_display(1000, 500)
        assert machine.to_image((100, 100)) == (100.0, 100.0)

    def test_nudge(self, machine):
        rect = Rect(100, 100, 50, 50)
        assert machine.nudge(rect, 'ArrowLeft') == Rect(99, 100, 50, 50)
        assert machine.nudge(rect, Direction.DOWN, large=True) == Rect(100, 110, 50, 50)
        assert machine.nudge(rect, 'right') == Rect(101, 100, 50, 50)

    def test_nudge_unknown_key(self, machine):
        with pytest.raises(ValueError):
            machine.nudge(Rect(100, 100, 50, 50), 'Enter')

    def test_change_aspect_ratio(self, machine):
        rect = machine.change_aspect_ratio(Rect(100, 100, 200, 100), 1.0)
        assert rect == Rect(100, 50, 200, 200)
        assert machine.aspect_ratio == 1.0

        assert machine.change_aspect_ratio(rect, None) == rect
        assert machine.aspect_ratio is None

    def test_aspect_constraint_applies_to_drags(self, machine):
        machine.change_aspect_ratio(Rect(100, 100, 200, 100), 2.0)
        machine.begin('crop', Rect(100, 100, 200, 100), (150, 75), handle=Handle.E)
        assert machine.update((200, 75)) == Rect(100, 100, 300, 150)

    def test_invalid_dimensions(self):
        with pytest.raises(DegenerateInputError):
            SelectionStateMachine(0, 100, 100, 100)

    def test_from_config(self):
        config = {'selection': {'min_size': 5, 'frame': 'rotated', 'nudge_step_large': 25}}
        machine = SelectionStateMachine.from_config(config, 100, 100, 100, 100)
        assert machine.min_size == 5
        assert machine.frame == SelectionFrame.ROTATED
        assert machine.nudge_step_large == 25
        assert machine.handle_radius == 8
