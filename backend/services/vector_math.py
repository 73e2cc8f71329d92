"""
Vector math helpers for gesture direction calculations.

All functions are pure and never divide by zero: degenerate inputs produce
zero vectors or zero angles instead of NaN.
"""
from __future__ import annotations

import math
from typing import Optional

from domain.models import Point2D, Vector3D


def distance_2d(a: Point2D, b: Point2D) -> float:
    """Euclidean distance between two 2D points."""
    return math.hypot(a.x - b.x, a.y - b.y)


def distance_3d(a: Vector3D, b: Vector3D) -> float:
    """Euclidean distance between two 3D points."""
    dx = a.x - b.x
    dy = a.y - b.y
    dz = a.z - b.z
    return math.sqrt(dx * dx + dy * dy + dz * dz)


def length_3d(v: Vector3D) -> float:
    return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)


def normalize_2d(v: Point2D) -> Point2D:
    length = math.hypot(v.x, v.y)
    if length == 0:
        return Point2D(0.0, 0.0)
    return Point2D(v.x / length, v.y / length)


def normalize_3d(v: Vector3D) -> Vector3D:
    length = length_3d(v)
    if length == 0:
        return Vector3D(0.0, 0.0, 0.0)
    return Vector3D(v.x / length, v.y / length, v.z / length)


def dot_3d(a: Vector3D, b: Vector3D) -> float:
    return a.x * b.x + a.y * b.y + a.z * b.z


def angle_between_3d(a: Vector3D, b: Vector3D) -> float:
    """
    Angle between two vectors in radians.

    A zero-length operand yields 0.0 rather than NaN.
    """
    mag_a = length_3d(a)
    mag_b = length_3d(b)
    if mag_a == 0 or mag_b == 0:
        return 0.0
    cos_theta = dot_3d(a, b) / (mag_a * mag_b)
    return math.acos(max(-1.0, min(1.0, cos_theta)))


def project_to_screen(
    direction: Vector3D,
    screen_width: float,
    screen_height: float,
    fov: float = 60.0,
) -> Optional[Point2D]:
    """
    Project a camera-space direction onto screen pixels.

    Simple perspective projection without calibrated intrinsics. Returns None
    for directions at or behind the camera plane (z <= 0).
    """
    if direction.z <= 0:
        return None
    f = screen_height / (2 * math.tan(math.radians(fov) / 2))
    x = (direction.x / direction.z) * f + screen_width / 2
    y = (direction.y / direction.z) * f + screen_height / 2
    return Point2D(x, y)


def is_finite_point(p: Optional[Point2D]) -> bool:
    return p is not None and math.isfinite(p.x) and math.isfinite(p.y)


def is_finite_vector(v: Optional[Vector3D]) -> bool:
    return v is not None and math.isfinite(v.x) and math.isfinite(v.y) and math.isfinite(v.z)
