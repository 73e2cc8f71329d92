import math

import pytest

from domain.models import Point2D, Vector3D
from services.vector_math import (
    angle_between_3d,
    distance_2d,
    distance_3d,
    dot_3d,
    is_finite_point,
    is_finite_vector,
    length_3d,
    normalize_2d,
    normalize_3d,
    project_to_screen,
)


def test_distance_2d():
    assert distance_2d(Point2D(0, 0), Point2D(3, 4)) == pytest.approx(5.0)


def test_distance_3d():
    assert distance_3d(Vector3D(1, 2, 3), Vector3D(1, 2, 3)) == 0.0
    assert distance_3d(Vector3D(0, 0, 0), Vector3D(2, 3, 6)) == pytest.approx(7.0)


def test_unit_length():
    v = normalize_3d(Vector3D(3, 0, 4))
    assert length_3d(v) == pytest.approx(1.0)
    assert v.x == pytest.approx(0.6)


def test_zero_vectors_stay_zero():
    """Degenerate input never produces NaN."""
    assert normalize_2d(Point2D(0, 0)) == Point2D(0.0, 0.0)
    assert normalize_3d(Vector3D(0, 0, 0)) == Vector3D(0.0, 0.0, 0.0)


def test_dot():
    assert dot_3d(Vector3D(1, 2, 3), Vector3D(4, 5, 6)) == 32


def test_orthogonal():
    assert angle_between_3d(Vector3D(1, 0, 0), Vector3D(0, 0, 1)) == pytest.approx(math.pi / 2)


def test_parallel_vectors_clamped():
    v = Vector3D(0.1, 0.2, 0.3)
    assert angle_between_3d(v, v) == pytest.approx(0.0, abs=1e-6)


def test_opposite():
    assert angle_between_3d(Vector3D(0, 0, 1), Vector3D(0, 0, -2)) == pytest.approx(math.pi)


def test_zero_length_operand():
    assert angle_between_3d(Vector3D(0, 0, 0), Vector3D(1, 0, 0)) == 0.0


def test_straight_ahead_hits_center():
    p = project_to_screen(Vector3D(0, 0, 1), 1000, 800)
    assert p == Point2D(500, 400)


def test_behind_camera_is_none():
    assert project_to_screen(Vector3D(0, 0, 0), 1000, 800) is None
    assert project_to_screen(Vector3D(0.1, 0, -1), 1000, 800) is None


def test_right_of_center():
    p = project_to_screen(Vector3D(0.5, 0, 1), 1000, 800)
    assert p.x > 500


def test_points():
    assert is_finite_point(Point2D(0.1, 0.2))
    assert not is_finite_point(None)
    assert not is_finite_point(Point2D(float("nan"), 0.2))


def test_vectors():
    assert is_finite_vector(Vector3D(0, 0, 1))
    assert not is_finite_vector(Vector3D(0, float("inf"), 1))
