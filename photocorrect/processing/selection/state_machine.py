"""
Pointer-driven selection editing

Tracks one move or resize drag at a time, maps display pointers into image
pixels and delegates the geometry to the pure functions in operations.py.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .operations import (
    Direction,
    Handle,
    move_rect,
    nudge_rect,
    recenter_to_aspect,
    resize_rect,
)
from ..geometry.models import (
    Rect,
    SelectionFrame,
    validate_aspect_ratio,
    validate_dimensions,
)
from ...config import get_config_value
from ...utils.logging import StructuredLogger

logger = StructuredLogger(__name__)

Point = Tuple[float, float]


class SelectionState(Enum):
    IDLE = "idle"
    MOVING = "moving"
    RESIZING = "resizing"


@dataclass(frozen=True)
class Interaction:
    """An active drag: what is being edited and where it started."""
    mode: SelectionState
    handle: Optional[Handle]
    region_id: Any
    start_pointer: Point
    start_rect: Rect


@dataclass(frozen=True)
class HitResult:
    """Region and handle under the pointer; handle is None for a body hit."""
    region_id: Any
    rect: Rect
    handle: Optional[Handle] = None


def _handle_points(rect: Rect) -> Dict[Handle, Point]:
    cx, cy = rect.center
    return {
        Handle.NW: (rect.x, rect.y),
        Handle.N: (cx, rect.y),
        Handle.NE: (rect.right, rect.y),
        Handle.E: (rect.right, cy),
        Handle.SE: (rect.right, rect.bottom),
        Handle.S: (cx, rect.bottom),
        Handle.SW: (rect.x, rect.bottom),
        Handle.W: (rect.x, cy),
    }


def _region_items(regions) -> Iterable[Tuple[Any, Rect]]:
    """Accept a mapping of id -> Rect, (id, Rect) pairs or objects with id/rect."""
    if isinstance(regions, Mapping):
        return list(regions.items())
    items = []
    for region in regions:
        if hasattr(region, 'rect'):
            items.append((region.id, region.rect))
        else:
            region_id, rect = region
            items.append((region_id, rect))
    return items


class SelectionStateMachine:
    """
    Move/resize interaction state for crop and blur selections.

    Pointers arrive in display pixels. The machine converts them to image
    pixels so selections never depend on the on-screen scale.
    """

    def __init__(self,
                 image_width: int,
                 image_height: int,
                 display_width: int,
                 display_height: int,
                 rotation: float = 0.0,
                 aspect_ratio: Optional[float] = None,
                 frame: Union[SelectionFrame, str] = SelectionFrame.UPRIGHT,
                 min_size: int = 20,
                 handle_radius: float = 8,
                 nudge_step: int = 1,
                 nudge_step_large: int = 10):
        """
        Initialize the state machine

        Args:
            image_width: Image width in pixels
            image_height: Image height in pixels
            display_width: Width of the on-screen image
            display_height: Height of the on-screen image
            rotation: Display rotation in degrees, positive is clockwise
            aspect_ratio: Width/height constraint for resizes, None for free
            frame: Whether selections rotate with the image on screen
            min_size: Minimum selection width and height in image pixels
            handle_radius: Handle hit radius in display pixels
            nudge_step: Arrow-key step in image pixels
            nudge_step_large: Arrow-key step with the modifier held
        """
        self.image_width, self.image_height = validate_dimensions(image_width, image_height)
        self.display_width, self.display_height = validate_dimensions(display_width,
                                                                      display_height)
        self.rotation = float(rotation)
        self.aspect_ratio = validate_aspect_ratio(aspect_ratio)
        self.frame = SelectionFrame(frame)
        self.min_size = min_size
        self.handle_radius = handle_radius
        self.nudge_step = nudge_step
        self.nudge_step_large = nudge_step_large

        self.state = SelectionState.IDLE
        self.interaction: Optional[Interaction] = None
        self._current: Optional[Rect] = None

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]],
                    image_width: int, image_height: int,
                    display_width: int, display_height: int,
                    rotation: float = 0.0,
                    aspect_ratio: Optional[float] = None) -> 'SelectionStateMachine':
        return cls(
            image_width, image_height, display_width, display_height,
            rotation=rotation,
            aspect_ratio=aspect_ratio,
            frame=get_config_value(config, 'selection.frame', 'upright'),
            min_size=get_config_value(config, 'selection.min_size', 20),
            handle_radius=get_config_value(config, 'selection.handle_radius', 8),
            nudge_step=get_config_value(config, 'selection.nudge_step', 1),
            nudge_step_large=get_config_value(config, 'selection.nudge_step_large', 10),
        )

    @property
    def is_active(self) -> bool:
        return self.interaction is not None

    @property
    def current_rect(self) -> Optional[Rect]:
        """Latest rect of the active drag."""
        return self._current

    def _require_idle(self, action: str):
        if self.is_active:
            raise RuntimeError(f"Cannot {action} while a selection drag is active")

    def set_rotation(self, angle: float):
        self._require_idle("change rotation")
        self.rotation = float(angle)

    def resize_display(self, width: int, height: int):
        self._require_idle("resize the display")
        self.display_width, self.display_height = validate_dimensions(width, height)

    def set_aspect_ratio(self, aspect_ratio: Optional[float]):
        self._require_idle("change the aspect ratio")
        self.aspect_ratio = validate_aspect_ratio(aspect_ratio)

    def to_image(self, pointer: Point) -> Point:
        """
        Map a display-space pointer into image pixels

        Args:
            pointer: (x, y) in display pixels

        Returns:
            (x, y) in image pixels, not clamped to the image
        """
        px, py = float(pointer[0]), float(pointer[1])

        if self.frame == SelectionFrame.ROTATED and self.rotation:
            # Undo the on-screen clockwise rotation about the display center
            cx, cy = self.display_width / 2.0, self.display_height / 2.0
            rad = math.radians(-self.rotation)
            cos, sin = math.cos(rad), math.sin(rad)
            ox, oy = px - cx, py - cy
            px = cx + ox * cos - oy * sin
            py = cy + ox * sin + oy * cos

        return (px * self.image_width / self.display_width,
                py * self.image_height / self.display_height)

    def hit_test(self, regions, pointer: Point) -> Optional[HitResult]:
        """
        Find the handle or region body under a pointer

        Handles of every region are checked before any body, and later
        regions are on top of earlier ones.

        Args:
            regions: Mapping id -> Rect, (id, Rect) pairs or blur regions
            pointer: (x, y) in display pixels

        Returns:
            HitResult, or None if nothing is under the pointer
        """
        items = list(_region_items(regions))
        ix, iy = self.to_image(pointer)
        radius_x = self.handle_radius * self.image_width / self.display_width
        radius_y = self.handle_radius * self.image_height / self.display_height

        for region_id, rect in reversed(items):
            for handle, (hx, hy) in _handle_points(rect).items():
                if ((ix - hx) / radius_x) ** 2 + ((iy - hy) / radius_y) ** 2 <= 1.0:
                    return HitResult(region_id, rect, handle)

        for region_id, rect in reversed(items):
            if rect.contains_point(ix, iy):
                return HitResult(region_id, rect)

        return None

    def begin(self, region_id: Any, rect: Rect, pointer: Point,
              handle: Optional[Union[Handle, str]] = None):
        """
        Start moving (no handle) or resizing a selection

        Raises:
            RuntimeError: If a drag is already active
        """
        self._require_idle("begin a new drag")
        handle = Handle(handle) if handle is not None else None
        mode = SelectionState.MOVING if handle is None else SelectionState.RESIZING

        self.interaction = Interaction(
            mode=mode,
            handle=handle,
            region_id=region_id,
            start_pointer=self.to_image(pointer),
            start_rect=rect,
        )
        self.state = mode
        self._current = rect
        logger.debug("Selection drag started", region=str(region_id), mode=mode.value,
                     handle=handle.value if handle else None)

    def pointer_down(self, regions, pointer: Point) -> Optional[HitResult]:
        """Hit-test and start a drag on whatever is under the pointer."""
        hit = self.hit_test(regions, pointer)
        if hit is not None:
            self.begin(hit.region_id, hit.rect, pointer, hit.handle)
        return hit

    def update(self, pointer: Point) -> Rect:
        """
        Apply a pointer move to the active drag

        Args:
            pointer: (x, y) in display pixels

        Returns:
            Replacement rect for the region being dragged

        Raises:
            RuntimeError: If no drag is active
        """
        if self.interaction is None:
            raise RuntimeError("No selection drag is active")

        interaction = self.interaction
        ix, iy = self.to_image(pointer)
        dx = ix - interaction.start_pointer[0]
        dy = iy - interaction.start_pointer[1]

        if interaction.mode == SelectionState.MOVING:
            rect = move_rect(interaction.start_rect, dx, dy,
                             self.image_width, self.image_height)
        else:
            rect = resize_rect(interaction.start_rect, interaction.handle, dx, dy,
                               self.image_width, self.image_height,
                               aspect_ratio=self.aspect_ratio,
                               min_size=self.min_size)

        self._current = rect
        return rect

    def end(self, pointer: Optional[Point] = None) -> Optional[Rect]:
        """
        Finish the active drag

        Args:
            pointer: Final pointer position, applied before finishing

        Returns:
            Final rect, or None if no drag was active
        """
        if self.interaction is None:
            return None
        if pointer is not None:
            self.update(pointer)

        result = self._current
        logger.debug("Selection drag finished", region=str(self.interaction.region_id),
                     rect=result.to_tuple() if result else None)
        self._reset()
        return result

    def cancel(self):
        """Drop the active drag without producing a result."""
        self._reset()

    def _reset(self):
        self.state = SelectionState.IDLE
        self.interaction = None
        self._current = None

    def nudge(self, rect: Rect, direction: Union[Direction, str],
              large: bool = False) -> Rect:
        """
        Move a selection by one arrow-key step

        Args:
            rect: Selection to move
            direction: Direction or DOM key name such as 'ArrowLeft'
            large: Use the large step (modifier held)

        Returns:
            Moved selection, clamped to the image

        Raises:
            ValueError: If direction is not an arrow key or direction name
        """
        if not isinstance(direction, Direction):
            key = direction
            direction = Direction.from_key(key)
            if direction is None:
                try:
                    direction = Direction[str(key).upper()]
                except KeyError:
                    raise ValueError(f"Unknown nudge direction: {key!r}") from None
        step = self.nudge_step_large if large else self.nudge_step
        return nudge_rect(rect, direction, self.image_width, self.image_height, step)

    def change_aspect_ratio(self, rect: Rect, aspect_ratio: Optional[float]) -> Rect:
        """
        Set a new aspect constraint and re-fit an idle selection to it

        Raises:
            RuntimeError: If a drag is active
        """
        self.set_aspect_ratio(aspect_ratio)
        return recenter_to_aspect(rect, self.aspect_ratio,
                                  self.image_width, self.image_height)
