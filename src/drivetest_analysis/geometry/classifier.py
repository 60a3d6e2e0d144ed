"""
Geometry classifier for drawn shapes.

Turns a Shape into a point-membership predicate that is cheap to reuse in
the filter and grid hot loops:
- Polygons use the even-odd (ray casting) rule; hole rings subtract
- Rectangles compare bounds inclusively (no antimeridian wraparound)
- Circles use haversine great-circle distance
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from pyproj import Geod

from .models import CircleShape, Coordinate, PolygonShape, RectangleShape

# Sphere radius used for great-circle distance (matches web map libraries)
EARTH_RADIUS_M = 6378137.0

# Meters per degree of latitude used for grid and bounds approximations
METERS_PER_DEGREE = 111320.0

_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude bounding box (inclusive)."""
    south: float
    west: float
    north: float
    east: float

    @property
    def center_lat(self) -> float:
        return (self.south + self.north) / 2.0

    def mask(self, lats: np.ndarray, lngs: np.ndarray) -> np.ndarray:
        """Vectorised inclusive containment test."""
        return (
            (lats >= self.south) & (lats <= self.north)
            & (lngs >= self.west) & (lngs <= self.east)
        )

    def to_dict(self) -> dict:
        return {
            "south": self.south,
            "west": self.west,
            "north": self.north,
            "east": self.east,
        }


class ShapePredicate:
    """Stateless point-in-shape test.

    Call with a Coordinate for a single point, or use ``mask`` for arrays.
    """

    def __init__(self, shape):
        self.shape = shape

        if isinstance(shape, PolygonShape):
            self._outer = _ring_arrays(shape.vertices)
            self._holes = [_ring_arrays(h) for h in shape.holes if len(h) >= 3]
            self._mask = self._polygon_mask
        elif isinstance(shape, RectangleShape):
            self._bounds = BoundingBox(
                south=shape.south_west.lat,
                west=shape.south_west.lng,
                north=shape.north_east.lat,
                east=shape.north_east.lng,
            )
            self._mask = self._bounds.mask
        elif isinstance(shape, CircleShape):
            self._center = (shape.center.lat, shape.center.lng)
            self._radius = shape.radius_meters
            self._mask = self._circle_mask
        else:
            raise TypeError(f"Unsupported shape type: {type(shape).__name__}")

    def __call__(self, coordinate: Coordinate) -> bool:
        return self.contains(coordinate.lat, coordinate.lng)

    def contains(self, lat: float, lng: float) -> bool:
        return bool(self.mask(np.array([lat], dtype=float), np.array([lng], dtype=float))[0])

    def mask(self, lats, lngs) -> np.ndarray:
        """Return a boolean array marking points inside the shape."""
        lats = np.asarray(lats, dtype=float)
        lngs = np.asarray(lngs, dtype=float)
        return self._mask(lats, lngs)

    def _polygon_mask(self, lats: np.ndarray, lngs: np.ndarray) -> np.ndarray:
        inside = _even_odd(self._outer, lats, lngs)
        for hole in self._holes:
            inside &= ~_even_odd(hole, lats, lngs)
        return inside

    def _circle_mask(self, lats: np.ndarray, lngs: np.ndarray) -> np.ndarray:
        distance = haversine_distance(self._center[0], self._center[1], lats, lngs)
        return np.isfinite(distance) & (distance <= self._radius)


def from_shape(shape) -> ShapePredicate:
    """Build the membership predicate for a shape.

    Args:
        shape: PolygonShape, RectangleShape or CircleShape

    Returns:
        ShapePredicate usable as ``Coordinate -> bool``

    Raises:
        TypeError: If the shape type is not supported
    """
    return ShapePredicate(shape)


def haversine_distance(lat1, lng1, lat2, lng2):
    """Great-circle distance in meters (scalars or numpy arrays)."""
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dphi = phi2 - phi1
    dlmb = np.radians(np.asarray(lng2, dtype=float) - lng1)

    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def shape_bounds(shape) -> BoundingBox:
    """Bounding box enclosing a shape."""
    if isinstance(shape, PolygonShape):
        lats = [c.lat for c in shape.vertices]
        lngs = [c.lng for c in shape.vertices]
        return BoundingBox(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))

    if isinstance(shape, RectangleShape):
        return BoundingBox(
            south=shape.south_west.lat,
            west=shape.south_west.lng,
            north=shape.north_east.lat,
            east=shape.north_east.lng,
        )

    if isinstance(shape, CircleShape):
        lat, lng = shape.center.lat, shape.center.lng
        dlat = math.degrees(shape.radius_meters / EARTH_RADIUS_M)
        cos_lat = math.cos(math.radians(lat))
        if cos_lat > 1e-12:
            dlng = min(180.0, math.degrees(shape.radius_meters / (EARTH_RADIUS_M * cos_lat)))
        else:
            dlng = 180.0
        return BoundingBox(
            south=max(-90.0, lat - dlat),
            west=max(-180.0, lng - dlng),
            north=min(90.0, lat + dlat),
            east=min(180.0, lng + dlng),
        )

    raise TypeError(f"Unsupported shape type: {type(shape).__name__}")


def shape_area(shape) -> float:
    """Area of a shape in square meters.

    Polygons and rectangles use the geodesic area on the WGS84 ellipsoid;
    circles use pi * r^2.
    """
    if isinstance(shape, PolygonShape):
        area = _ring_area(shape.vertices)
        for hole in shape.holes:
            if len(hole) >= 3:
                area -= _ring_area(hole)
        return max(area, 0.0)

    if isinstance(shape, RectangleShape):
        return _ring_area(shape_to_ring(shape))

    if isinstance(shape, CircleShape):
        return math.pi * shape.radius_meters ** 2

    raise TypeError(f"Unsupported shape type: {type(shape).__name__}")


def shape_to_ring(shape, circle_segments: int = 64) -> List[Coordinate]:
    """Outline of a shape as an open ring of coordinates.

    Rectangles give their four corners (NE, NW, SW, SE); circles are
    approximated with ``circle_segments`` vertices.
    """
    if isinstance(shape, PolygonShape):
        return list(shape.vertices)

    if isinstance(shape, RectangleShape):
        ne, sw = shape.north_east, shape.south_west
        return [
            Coordinate(lat=ne.lat, lng=ne.lng),
            Coordinate(lat=ne.lat, lng=sw.lng),
            Coordinate(lat=sw.lat, lng=sw.lng),
            Coordinate(lat=sw.lat, lng=ne.lng),
        ]

    if isinstance(shape, CircleShape):
        ring = []
        for i in range(circle_segments):
            bearing = 360.0 * i / circle_segments
            lat, lng = _destination(shape.center.lat, shape.center.lng, bearing, shape.radius_meters)
            ring.append(Coordinate(lat=lat, lng=lng))
        return ring

    raise TypeError(f"Unsupported shape type: {type(shape).__name__}")


def _ring_arrays(ring: Sequence[Coordinate]) -> Tuple[np.ndarray, np.ndarray]:
    lats = np.array([c.lat for c in ring], dtype=float)
    lngs = np.array([c.lng for c in ring], dtype=float)
    return lats, lngs


def _even_odd(ring: Tuple[np.ndarray, np.ndarray], lats: np.ndarray, lngs: np.ndarray) -> np.ndarray:
    """Ray casting along +longitude; an odd crossing count means inside."""
    ring_lats, ring_lngs = ring
    inside = np.zeros(lats.shape, dtype=bool)
    n = len(ring_lats)
    j = n - 1
    for i in range(n):
        yi, xi = ring_lats[i], ring_lngs[i]
        yj, xj = ring_lats[j], ring_lngs[j]
        if yi != yj:
            straddles = (yi > lats) != (yj > lats)
            x_cross = (xj - xi) * (lats - yi) / (yj - yi) + xi
            inside ^= straddles & (lngs < x_cross)
        j = i
    return inside


def _ring_area(ring: Sequence[Coordinate]) -> float:
    lats = [c.lat for c in ring]
    lngs = [c.lng for c in ring]
    area, _ = _GEOD.polygon_area_perimeter(lngs, lats)
    return abs(area)


def _destination(lat: float, lng: float, bearing_deg: float, distance_m: float) -> Tuple[float, float]:
    """Point reached from (lat, lng) along a great circle."""
    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    phi1 = math.radians(lat)
    lmb1 = math.radians(lng)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lmb2 = lmb1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    lng2 = (math.degrees(lmb2) + 540.0) % 360.0 - 180.0
    return math.degrees(phi2), lng2
