"""Great-circle distance, bearings and tap-to-direction projection."""
from __future__ import annotations

import math

from domain.models import Point2D, Vector3D

EARTH_RADIUS_M = 6371000.0

# Pinhole approximation: a small lateral component and a dominant forward one.
TAP_LATERAL_SCALE = 0.1
TAP_FORWARD_Z = 0.95


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance in meters between two lat/lon points."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlon / 2) ** 2
    )
    # Rounding can push a just past 1 for near-antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def initial_bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compass bearing from point 1 to point 2, in degrees within (-180, 180]."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlon = math.radians(lon2 - lon1)
    y = math.sin(dlon) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlon)
    return math.degrees(math.atan2(y, x))


def direction_bearing_degrees(direction: Vector3D, heading_degrees: float | None = None) -> float:
    """
    Bearing of a camera-space direction (x right, z forward).

    Without a compass heading the camera is assumed to face north.
    """
    bearing = math.degrees(math.atan2(direction.x, direction.z))
    if heading_degrees is not None and math.isfinite(heading_degrees):
        bearing += heading_degrees
    return bearing


def bearing_difference(a: float, b: float) -> float:
    """Absolute angular difference between two bearings, in [0, 180]."""
    diff = abs(a - b) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


def tap_to_direction(tap: Point2D, fov_degrees: float = 60.0) -> Vector3D:
    """
    Convert a normalized tap position into a forward-biased direction vector.

    Screen center (0.5, 0.5) maps to straight ahead. Screen Y grows downward,
    hence the sign flip on the vertical component. This is an approximation,
    not a calibrated camera model.
    """
    fov_rad = math.radians(fov_degrees)
    offset_x = (tap.x - 0.5) * 2
    offset_y = (tap.y - 0.5) * 2
    return Vector3D(
        x=math.sin(offset_x * fov_rad / 2) * TAP_LATERAL_SCALE,
        y=-math.sin(offset_y * fov_rad / 2) * TAP_LATERAL_SCALE,
        z=TAP_FORWARD_Z,
    )
