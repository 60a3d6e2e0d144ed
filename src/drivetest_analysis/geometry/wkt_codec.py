"""
WKT codec for project regions.

Parses POLYGON / MULTIPOLYGON text into latitude-first coordinate rings and
serializes rings back to WKT. WKT stores pairs longitude-first.

Decoding never raises: saved regions come from external storage, so
malformed text degrades to an empty geometry.
"""

import logging
import math
import re
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from .classifier import shape_to_ring
from .models import (
    CircleShape,
    Coordinate,
    MultiPolygon,
    Polygon,
    PolygonShape,
    RectangleShape,
)

logger = logging.getLogger(__name__)

_KEYWORD_PATTERN = re.compile(r'^\s*(MULTIPOLYGON|POLYGON)\s*(\(.*\))\s*$', re.IGNORECASE | re.DOTALL)

MIN_RING_VERTICES = 3


def decode(text: Any) -> MultiPolygon:
    """Decode POLYGON or MULTIPOLYGON WKT.

    Args:
        text: WKT string (keyword is case-insensitive)

    Returns:
        List of Polygon; empty if the input is not usable
    """
    if not isinstance(text, str) or not text.strip():
        return []

    match = _KEYWORD_PATTERN.match(text)
    if match is None:
        logger.warning(f"Unrecognised WKT, expected POLYGON or MULTIPOLYGON: {text[:60]!r}")
        return []

    keyword = match.group(1).upper()
    body = _strip_outer_parens(match.group(2))
    if body is None:
        logger.warning("Unbalanced parentheses in WKT")
        return []

    if keyword == 'MULTIPOLYGON':
        groups = _split_top_level(body)
        if groups is None:
            logger.warning("Unbalanced parentheses in MULTIPOLYGON")
            return []
        polygons = []
        for group in groups:
            inner = _strip_outer_parens(group)
            polygon = _parse_polygon_body(inner) if inner is not None else None
            if polygon is not None:
                polygons.append(polygon)
        return polygons

    polygon = _parse_polygon_body(body)
    return [polygon] if polygon is not None else []


def encode(vertices: Sequence[Any]) -> Optional[str]:
    """Encode a single ring as ``POLYGON((lng lat, ...))``.

    The first vertex is always repeated at the end, whether or not the
    input was already closed.

    Args:
        vertices: Coordinates (models, mappings with lat/lng, or (lat, lng) tuples)

    Returns:
        WKT string, or None when fewer than 3 vertices are given or a
        vertex is not a valid coordinate
    """
    try:
        coords = [_as_coordinate(v) for v in vertices]
    except (ValidationError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Cannot encode ring with invalid vertex: {e}")
        return None
    if len(coords) < MIN_RING_VERTICES:
        return None

    ring = coords + [coords[0]]
    return f"POLYGON(({_format_ring(ring)}))"


def encode_polygons(polygons: MultiPolygon) -> Optional[str]:
    """Encode decoded geometry back to WKT.

    One polygon is written as POLYGON (with holes), several as MULTIPOLYGON.
    Rings are closed only when they aren't already.

    Args:
        polygons: List of Polygon

    Returns:
        WKT string, or None if no polygon has a usable outer ring
    """
    bodies = []
    for polygon in polygons:
        if len(polygon.outer) < MIN_RING_VERTICES:
            continue
        rings = [polygon.outer] + [h for h in polygon.holes if len(h) >= MIN_RING_VERTICES]
        bodies.append(",".join(f"({_format_ring(_close_ring(r))})" for r in rings))

    if not bodies:
        return None
    if len(bodies) == 1:
        return f"POLYGON({bodies[0]})"
    return "MULTIPOLYGON(" + ",".join(f"({b})" for b in bodies) + ")"


def encode_shape(shape, circle_segments: int = 64) -> Optional[str]:
    """Encode any drawn shape as POLYGON WKT for saving.

    Args:
        shape: PolygonShape, RectangleShape or CircleShape
        circle_segments: Number of vertices used to approximate circles

    Returns:
        WKT string or None if the shape has fewer than 3 vertices
    """
    if isinstance(shape, PolygonShape) and shape.holes:
        return encode_polygons([Polygon(outer=shape.vertices, holes=shape.holes)])
    if isinstance(shape, (PolygonShape, RectangleShape, CircleShape)):
        return encode(shape_to_ring(shape, circle_segments=circle_segments))
    raise TypeError(f"Unsupported shape type: {type(shape).__name__}")


def _parse_polygon_body(body: str) -> Optional[Polygon]:
    """Parse ``(ring),(ring),...`` into a Polygon (first ring is the outer)."""
    ring_texts = _split_top_level(body)
    if not ring_texts:
        return None

    rings = []
    for ring_text in ring_texts:
        inner = _strip_outer_parens(ring_text)
        if inner is None:
            continue
        rings.append(_parse_ring(inner))

    if not rings or len(rings[0]) < MIN_RING_VERTICES:
        return None

    holes = [r for r in rings[1:] if len(r) >= MIN_RING_VERTICES]
    return Polygon(outer=rings[0], holes=holes)


def _parse_ring(text: str) -> List[Coordinate]:
    """Parse ``lng lat, lng lat, ...`` dropping unusable pairs."""
    coords = []
    for pair in text.split(','):
        parts = pair.split()
        if len(parts) < 2:
            continue
        try:
            lng = float(parts[0])
            lat = float(parts[1])
        except ValueError:
            continue
        if not (math.isfinite(lat) and math.isfinite(lng)):
            continue
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            continue
        coords.append(Coordinate(lat=lat, lng=lng))
    return coords


def _split_top_level(text: str) -> Optional[List[str]]:
    """Split on commas at parenthesis depth zero.

    Returns None if parentheses don't balance.
    """
    parts = []
    depth = 0
    current = []
    for ch in text:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                return None
        if ch == ',' and depth == 0:
            parts.append(''.join(current).strip())
            current = []
        else:
            current.append(ch)

    if depth != 0:
        return None

    tail = ''.join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def _strip_outer_parens(text: str) -> Optional[str]:
    """Remove one enclosing pair of parentheses."""
    text = text.strip()
    if len(text) < 2 or text[0] != '(' or text[-1] != ')':
        return None
    return text[1:-1].strip()


def _close_ring(ring: List[Coordinate]) -> List[Coordinate]:
    if ring[0].lat == ring[-1].lat and ring[0].lng == ring[-1].lng:
        return list(ring)
    return list(ring) + [ring[0]]


def _format_ring(ring: Sequence[Coordinate]) -> str:
    return ", ".join(f"{c.lng} {c.lat}" for c in ring)


def _as_coordinate(value: Any) -> Coordinate:
    if isinstance(value, Coordinate):
        return value
    if isinstance(value, dict):
        return Coordinate(lat=value['lat'], lng=value['lng'])
    lat, lng = value
    return Coordinate(lat=lat, lng=lng)
