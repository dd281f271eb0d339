"""Geospatial helpers: great-circle distance and bounding-box prefilters."""
from dataclasses import dataclass
from math import asin, cos, degrees, radians, sin, sqrt

from andex.errors import ValidationError

EARTH_RADIUS_M = 6_371_000
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute great-circle distance in meters between two points (haversine)."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dphi = radians(lat2 - lat1)
    dlmb = radians(lon2 - lon1)

    h = sin(dphi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlmb / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def bounding_box(lat: float, lon: float, radius_km: float) -> BoundingBox:
    """Approximate a circle of ``radius_km`` around (lat, lon) with a lat/lon box.

    Small-angle approximation: corners of the box lie outside the circle, so
    callers get a superset of the true radius.
    """
    lat_change = degrees(radius_km / EARTH_RADIUS_KM)
    lon_change = degrees(radius_km / (EARTH_RADIUS_KM * cos(radians(lat))))
    return BoundingBox(
        min_lat=lat - lat_change,
        max_lat=lat + lat_change,
        min_lon=lon - lon_change,
        max_lon=lon + lon_change,
    )


def covering_box(lat: float, lon: float, radius_m: float) -> BoundingBox:
    """Smallest lat/lon box that contains every point within ``radius_m`` of (lat, lon).

    Unlike ``bounding_box`` this never cuts into the circle, so it is safe as a
    store-side prefilter ahead of an exact ``distance_meters`` check. Boxes
    reaching a pole or wrapping the antimeridian widen to the full longitude range.
    """
    delta = radius_m / EARTH_RADIUS_M
    min_lat = lat - degrees(delta)
    max_lat = lat + degrees(delta)
    if min_lat <= -90 or max_lat >= 90:
        return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0)

    ratio = sin(delta) / cos(radians(lat))
    if ratio >= 1:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)
    lon_change = degrees(asin(ratio))
    min_lon = lon - lon_change
    max_lon = lon + lon_change
    if min_lon < -180 or max_lon > 180:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)
    return BoundingBox(min_lat, max_lat, min_lon, max_lon)


def validate_coordinates(lat: float, lon: float) -> None:
    if lat is None or lon is None:
        raise ValidationError("Both latitude and longitude are required")
    if not -90 <= lat <= 90:
        raise ValidationError(f"Latitude out of range: {lat}")
    if not -180 <= lon <= 180:
        raise ValidationError(f"Longitude out of range: {lon}")


def geodetic_point(lat: float, lon: float) -> str:
    """EWKT point (WGS 84) for the given coordinates, longitude first."""
    return f"SRID=4326;POINT({lon} {lat})"
