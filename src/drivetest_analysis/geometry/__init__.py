"""
Geometry primitives for drawn selections.

Provides:
- Coordinate / ring / shape models
- WKT codec for saved project regions
- Point-in-shape classification, bounds and area
"""

from .models import (
    CircleShape,
    Coordinate,
    MultiPolygon,
    Polygon,
    PolygonShape,
    RectangleShape,
    Ring,
    Shape,
    parse_shape,
)
from .classifier import (
    BoundingBox,
    ShapePredicate,
    from_shape,
    haversine_distance,
    shape_area,
    shape_bounds,
    shape_to_ring,
)
from .wkt_codec import decode, encode, encode_polygons, encode_shape

__all__ = [
    'BoundingBox',
    'CircleShape',
    'Coordinate',
    'MultiPolygon',
    'Polygon',
    'PolygonShape',
    'RectangleShape',
    'Ring',
    'Shape',
    'ShapePredicate',
    'decode',
    'encode',
    'encode_polygons',
    'encode_shape',
    'from_shape',
    'haversine_distance',
    'parse_shape',
    'shape_area',
    'shape_bounds',
    'shape_to_ring',
]
