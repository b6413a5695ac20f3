from __future__ import annotations

from math import asin, cos, radians, sin, sqrt

from geo_engine.models import GeoPoint

EARTH_RADIUS_METERS = 6_371_000.0


def haversine_distance_meters(start: GeoPoint, end: GeoPoint) -> float:
    """Great-circle distance on a spherical Earth."""
    phi_start, phi_end = radians(start.lat), radians(end.lat)
    half_dphi = (phi_end - phi_start) / 2
    half_dlambda = radians(end.lng - start.lng) / 2
    h = sin(half_dphi) ** 2 + cos(phi_start) * cos(phi_end) * sin(half_dlambda) ** 2
    # rounding can push h a hair past 1 for near-antipodal points
    return 2 * EARTH_RADIUS_METERS * asin(sqrt(min(1.0, h)))
