"""Geo engine core package."""

from geo_engine.distance import haversine_distance_meters
from geo_engine.geofence import is_point_inside_radius, within_radius
from geo_engine.models import GeoPoint

__all__ = [
    "GeoPoint",
    "haversine_distance_meters",
    "is_point_inside_radius",
    "within_radius",
]
