from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from geo_engine.distance import haversine_distance_meters
from geo_engine.models import GeoPoint

T = TypeVar("T")


def is_point_inside_radius(center: GeoPoint, point: GeoPoint, radius_meters: float) -> bool:
    if radius_meters < 0:
        raise ValueError("radius_meters must be >= 0")
    return haversine_distance_meters(center, point) <= radius_meters


def within_radius(
    center: GeoPoint,
    items: Iterable[T],
    radius_meters: float,
    locate: Callable[[T], GeoPoint],
) -> list[tuple[T, float]]:
    """Return ``(item, distance)`` pairs inside the radius, nearest first."""
    if radius_meters < 0:
        raise ValueError("radius_meters must be >= 0")
    matched: list[tuple[T, float]] = []
    for item in items:
        distance = haversine_distance_meters(center, locate(item))
        if distance <= radius_meters:
            matched.append((item, distance))
    matched.sort(key=lambda pair: pair[1])
    return matched
