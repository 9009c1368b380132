"""
Interactive selection editing for crop and blur regions
"""

from .operations import (
    Direction,
    Handle,
    move_rect,
    nudge_rect,
    recenter_to_aspect,
    resize_rect,
)
from .state_machine import HitResult, Interaction, SelectionState, SelectionStateMachine

__all__ = [
    "Direction",
    "Handle",
    "HitResult",
    "Interaction",
    "SelectionState",
    "SelectionStateMachine",
    "move_rect",
    "nudge_rect",
    "recenter_to_aspect",
    "resize_rect",
]
