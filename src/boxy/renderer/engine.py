"""Core math utilities and ray-cast shading engine for the terminal cube.

Axis convention: ``x`` runs down the screen (rows), ``y`` runs right
(columns) and ``z`` points out of the screen towards the viewer.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True, slots=True)
class Vec3:
    """Lightweight immutable 3D vector."""

    x: float
    y: float
    z: float

    def __mul__(self, scalar: float) -> "Vec3":
        if not isinstance(scalar, (int, float)):
            raise TypeError("Vec3 can only be multiplied by a scalar")
        return Vec3(self.x * scalar, self.y * scalar, self.z * scalar)

    def __truediv__(self, scalar: float) -> "Vec3":
        if scalar == 0:
            raise ZeroDivisionError("Division by zero in Vec3")
        return Vec3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> "Vec3":
        return Vec3(-self.x, -self.y, -self.z)

    def dot(self, other: "Vec3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self) -> "Vec3":
        length = self.length()
        if length <= 1e-8:
            return Vec3(0.0, 0.0, 0.0)
        return self / length


Matrix3 = Tuple[Tuple[float, float, float], Tuple[float, float, float], Tuple[float, float, float]]
FrameMatrix = List[List[str]]

WORLD_AXES: Tuple[Vec3, Vec3, Vec3] = (
    Vec3(1.0, 0.0, 0.0),
    Vec3(0.0, 1.0, 0.0),
    Vec3(0.0, 0.0, 1.0),
)

# Drag length, in column-width cells, that turns the cube half a revolution.
DRAG_PIXELS_PER_HALF_TURN = 50.0

BOX_EXTENT = 0.5
PARALLEL_EPSILON = 1e-6
LIGHT_MIN_LENGTH = 1e-3
AMBIENT_OFFSET = 0.1

# Per-face multipliers so adjacent faces never shade identically.
BASE_LIGHTNESS: Tuple[float, float, float] = (0.8, 0.9, 1.0)

BRIGHTNESS_RAMP = (
    "```````.''''::_,,,^^^===;>>><!rc/zzzLv)|i{3lnZya2wwwwww6dVObXXXXH8R#BgMMNQQQ%%&&"
    "@@@@@@@@@@@@@@@@@@@"
)

DEFAULT_LIGHT = Vec3(0.0, 1.0, 0.0)


def drag_rotation_matrix(dx: float, dy: float) -> Optional[Matrix3]:
    """Build the rotation for a screen-space drag, or ``None`` for no drag.

    The axis lies in the screen plane, perpendicular to the drag, and the
    angle grows linearly with the drag length.
    """

    length = math.sqrt(dx * dx + dy * dy)
    if length == 0:
        return None

    cos_theta = dy / length
    sin_theta = -dx / length
    phi = length / DRAG_PIXELS_PER_HALF_TURN * math.pi
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    one_minus_cos = 1.0 - cos_phi

    return (
        (
            1.0 - one_minus_cos * sin_theta * sin_theta,
            one_minus_cos * sin_theta * cos_theta,
            -sin_phi * sin_theta,
        ),
        (
            one_minus_cos * sin_theta * cos_theta,
            1.0 - one_minus_cos * cos_theta * cos_theta,
            sin_phi * cos_theta,
        ),
        (
            sin_phi * sin_theta,
            -sin_phi * cos_theta,
            cos_phi,
        ),
    )


def apply_matrix(matrix: Matrix3, vector: Vec3) -> Vec3:
    row0, row1, row2 = matrix
    return Vec3(
        row0[0] * vector.x + row0[1] * vector.y + row0[2] * vector.z,
        row1[0] * vector.x + row1[1] * vector.y + row1[2] * vector.z,
        row2[0] * vector.x + row2[1] * vector.y + row2[2] * vector.z,
    )


class OrientationState:
    """The cube's three local axes expressed in world space.

    The axes only ever change through :meth:`apply`, which rotates all three
    rigidly, so they stay orthonormal.
    """

    def __init__(self, axes: Sequence[Vec3] = WORLD_AXES) -> None:
        if len(axes) != 3:
            raise ValueError("OrientationState requires exactly three axes")
        self._axes: Tuple[Vec3, Vec3, Vec3] = (axes[0], axes[1], axes[2])

    @property
    def axes(self) -> Tuple[Vec3, Vec3, Vec3]:
        return self._axes

    def __getitem__(self, index: int) -> Vec3:
        return self._axes[index]

    def __iter__(self):
        return iter(self._axes)

    def apply(self, matrix: Matrix3) -> None:
        self._axes = (
            apply_matrix(matrix, self._axes[0]),
            apply_matrix(matrix, self._axes[1]),
            apply_matrix(matrix, self._axes[2]),
        )

    def diagonal(self) -> Tuple[float, float, float]:
        return (self._axes[0].x, self._axes[1].y, self._axes[2].z)

    def reset(self) -> None:
        self._axes = WORLD_AXES


class CubeEngine:
    """Orthographic ray caster for a single unit cube centred at the origin."""

    _RAY_DIRECTION = Vec3(0.0, 0.0, -1.0)

    def __init__(
        self,
        *,
        light_direction: Vec3 = DEFAULT_LIGHT,
        ramp: str = BRIGHTNESS_RAMP,
    ) -> None:
        if not ramp:
            raise ValueError("CubeEngine requires a non-empty brightness ramp")
        self._orientation = OrientationState()
        self._light = DEFAULT_LIGHT
        self._ramp = ramp
        self.set_light(light_direction)

    @property
    def axes(self) -> Tuple[Vec3, Vec3, Vec3]:
        return self._orientation.axes

    @property
    def light(self) -> Vec3:
        return self._light

    @property
    def ramp(self) -> str:
        return self._ramp

    def rotate(self, dx: float, dy: float) -> None:
        matrix = drag_rotation_matrix(dx, dy)
        if matrix is None:
            return
        self._orientation.apply(matrix)

    spin = rotate

    def reset(self) -> None:
        self._orientation.reset()

    def set_light(self, vector: Union[Vec3, Sequence[float]]) -> None:
        if not isinstance(vector, Vec3):
            vector = Vec3(*vector)
        length = vector.length()
        if length <= LIGHT_MIN_LENGTH:
            return
        self._light = vector / length

    def is_hit(self, x: float, y: float) -> Tuple[bool, Optional[int]]:
        """Slab test of the ray through screen point ``(x, y)`` against the box.

        Returns ``(True, face)`` where ``face`` indexes the axis whose slab the
        ray enters last, or ``(False, None)`` on a miss.
        """

        origin = Vec3(x, y, 0.0)
        direction = self._RAY_DIRECTION
        extent = BOX_EXTENT

        t_entry = -math.inf
        t_exit = math.inf
        entry_face: Optional[int] = None

        for index, axis in enumerate(self._orientation):
            denom = direction.dot(axis)
            nom = origin.dot(axis)
            if abs(denom) < PARALLEL_EPSILON:
                if -nom - extent > 0 or -nom + extent < 0:
                    return False, None
                continue

            t1 = (extent - nom) / denom
            t2 = (-extent - nom) / denom
            near = min(t1, t2)
            far = max(t1, t2)

            if near > t_entry:
                t_entry = near
                entry_face = index
            if far < t_exit:
                t_exit = far

        if t_entry >= t_exit or entry_face is None:
            return False, None
        return True, entry_face

    def face_normal(self, face: int) -> Vec3:
        normal = self._orientation[face]
        if normal.z < 0:
            normal = -normal
        return normal

    def brightness(self, face: int, noise: float = 0.0) -> float:
        normal = self.face_normal(face)
        return BASE_LIGHTNESS[face] * (self._light.dot(normal) + AMBIENT_OFFSET) + noise

    def glyph_index(self, brightness: float) -> int:
        levels = len(self._ramp)
        if brightness < 0.0:
            brightness = 0.0
        if brightness >= 1.0:
            brightness = 0.999
        return min(int(brightness * levels), levels - 1)

    def shade(self, face: int, noise: float = 0.0) -> str:
        return self._ramp[self.glyph_index(self.brightness(face, noise))]

    def render(
        self,
        rows: int,
        cols: int,
        *,
        output_format: str = "matrix",
    ) -> Union[str, FrameMatrix]:
        if output_format not in ("matrix", "text"):
            raise ValueError(f"Unsupported output_format '{output_format}'")

        frame = self._render_matrix(rows, cols)

        if output_format == "matrix":
            return frame
        return "\n".join("".join(row) for row in frame)

    # Internal helpers -------------------------------------------------

    def _render_matrix(self, rows: int, cols: int) -> FrameMatrix:
        if rows < 0 or cols < 0:
            return []
        if rows == 0 or cols == 0:
            return [[] for _ in range(rows)]

        step = 2.0 / min(rows, cols)
        rng = self._dither_generator()
        levels = len(self._ramp)
        half_rows = rows / 2.0
        half_cols = cols / 2.0
        is_hit = self.is_hit
        shade = self.shade

        frame: FrameMatrix = []
        for i in range(rows):
            x = step * (i + 0.5 - half_rows)
            row: List[str] = []
            for j in range(cols):
                y = step * (j + 0.5 - half_cols) / 2.0
                hit, face = is_hit(x, y)
                if not hit or face is None:
                    row.append(" ")
                    continue
                noise = rng.random() / levels - 0.5 / levels
                row.append(shade(face, noise))
            frame.append(row)
        return frame

    def _dither_generator(self) -> random.Random:
        a00, a11, a22 = self._orientation.diagonal()
        seed = int(a00 * 10237 + a11 * 126 + a22 * 1236876)
        return random.Random(seed)
