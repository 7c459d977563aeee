"""Terminal-based cube ray caster."""

from .engine import CubeEngine, OrientationState, Vec3, drag_rotation_matrix
from .terminal import MouseEvent, TerminalController, parse_sgr_mouse

__all__ = [
    "CubeEngine",
    "OrientationState",
    "Vec3",
    "drag_rotation_matrix",
    "MouseEvent",
    "TerminalController",
    "parse_sgr_mouse",
]
