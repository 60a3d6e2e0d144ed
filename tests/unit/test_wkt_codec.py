"""
Unit tests for the WKT codec.
"""

import pytest

from drivetest_analysis.geometry import (
    CircleShape,
    Coordinate,
    Polygon,
    PolygonShape,
    RectangleShape,
    decode,
    encode,
    encode_polygons,
    encode_shape,
)


@pytest.fixture
def triangle():
    """Three vertices as (lat, lng) pairs."""
    return [
        Coordinate(lat=32.5, lng=-97.25),
        Coordinate(lat=32.75, lng=-97.0),
        Coordinate(lat=32.25, lng=-96.5),
    ]


class TestDecode:
    """Test WKT decoding."""

    def test_simple_polygon(self):
        """Test pairs are read longitude-first."""
        polygons = decode("POLYGON((10 20, 30 20, 30 40, 10 20))")

        assert len(polygons) == 1
        outer = polygons[0].outer
        assert len(outer) == 4
        assert outer[0].lat == 20
        assert outer[0].lng == 10
        assert outer[2].as_tuple() == (40, 30)
        assert polygons[0].holes == []

    def test_keyword_case_insensitive(self):
        """Test lower-case keyword and extra whitespace are accepted."""
        polygons = decode("  polygon ( (0 0, 1 0, 1 1, 0 0) )  ")
        assert len(polygons) == 1
        assert len(polygons[0].outer) == 4

    def test_polygon_with_hole(self):
        """Test second ring becomes a hole."""
        polygons = decode(
            "POLYGON((0 0, 10 0, 10 10, 0 10, 0 0),(2 2, 4 2, 4 4, 2 4, 2 2))"
        )
        assert len(polygons) == 1
        assert len(polygons[0].holes) == 1
        assert len(polygons[0].holes[0]) == 5

    def test_multipolygon(self):
        """Test every polygon of a MULTIPOLYGON is returned."""
        polygons = decode(
            "MULTIPOLYGON(((0 0, 1 0, 1 1, 0 0)),((5 5, 6 5, 6 6, 5 5),(5.2 5.2, 5.4 5.2, 5.4 5.4, 5.2 5.2)))"
        )
        assert len(polygons) == 2
        assert polygons[1].outer[0].lng == 5
        assert len(polygons[1].holes) == 1

    def test_decoded_coordinates_in_range(self):
        """Test out-of-range pairs are dropped."""
        polygons = decode("POLYGON((200 0, 0 0, 10 0, 10 95, 10 10, 0 0))")

        outer = polygons[0].outer
        assert len(outer) == 4
        for c in outer:
            assert -90 <= c.lat <= 90
            assert -180 <= c.lng <= 180

    def test_non_numeric_pairs_dropped(self):
        """Test unparseable pairs are skipped, not fatal."""
        polygons = decode("POLYGON((0 0, abc def, 10 0, 10 10, nan 5, 0 0))")
        assert len(polygons[0].outer) == 4

    def test_short_ring_dropped(self):
        """Test a ring with fewer than 3 usable vertices yields nothing."""
        assert decode("POLYGON((0 0, 1 1))") == []

    @pytest.mark.parametrize("text", [
        None,
        "",
        "   ",
        "POINT(1 2)",
        "LINESTRING(0 0, 1 1)",
        "POLYGON((0 0, 1 0, 1 1, 0 0)",
        "POLYGON 0 0, 1 0, 1 1",
        "MULTIPOLYGON(((0 0, 1 0, 1 1, 0 0))",
        12345,
    ])
    def test_malformed_returns_empty(self, text):
        """Test malformed input decodes to an empty geometry."""
        assert decode(text) == []


class TestEncode:
    """Test WKT encoding."""

    def test_encode_format(self):
        """Test longitude-first output with the first vertex repeated."""
        wkt = encode([
            Coordinate(lat=1.5, lng=2.5),
            Coordinate(lat=3.5, lng=4.5),
            Coordinate(lat=5.5, lng=6.5),
        ])
        assert wkt == "POLYGON((2.5 1.5, 4.5 3.5, 6.5 5.5, 2.5 1.5))"

    def test_encode_accepts_tuples_and_dicts(self):
        """Test (lat, lng) tuples and lat/lng mappings are accepted."""
        from_tuples = encode([(1.5, 2.5), (3.5, 4.5), (5.5, 6.5)])
        from_dicts = encode([
            {'lat': 1.5, 'lng': 2.5},
            {'lat': 3.5, 'lng': 4.5},
            {'lat': 5.5, 'lng': 6.5},
        ])
        assert from_tuples == from_dicts
        assert from_tuples.startswith("POLYGON((2.5 1.5")

    def test_encode_too_few_vertices(self):
        """Test fewer than 3 vertices encode to None."""
        assert encode([]) is None
        assert encode([(0.5, 0.5), (1.5, 1.5)]) is None

    @pytest.mark.parametrize("vertices", [
        [(95, 0), (1, 1), (2, 2)],
        [(0, 200), (1, 1), (2, 2)],
        [{'lat': 1}, (1, 1), (2, 2)],
        [(1, 2, 3), (1, 1), (2, 2)],
    ])
    def test_encode_invalid_vertex(self, vertices):
        """Test a ring with an unusable vertex encodes to None."""
        assert encode(vertices) is None

    def test_encode_always_closes(self, triangle):
        """Test the first vertex is appended even for a closed input."""
        closed = triangle + [triangle[0]]
        wkt = encode(closed)
        assert len(decode(wkt)[0].outer) == 5

    def test_round_trip(self, triangle):
        """Test decode(encode(v)) returns v plus the closing vertex."""
        outer = decode(encode(triangle))[0].outer

        assert len(outer) == len(triangle) + 1
        assert outer[:-1] == triangle
        assert outer[-1] == triangle[0]

    def test_encode_polygons_single_with_hole(self):
        """Test one polygon with a hole is written as POLYGON."""
        polygons = decode("POLYGON((0 0, 10 0, 10 10, 0 10, 0 0),(2 2, 4 2, 4 4, 2 2))")
        wkt = encode_polygons(polygons)

        assert wkt.startswith("POLYGON(")
        again = decode(wkt)
        assert len(again[0].outer) == 5
        assert len(again[0].holes[0]) == 4

    def test_encode_polygons_multi(self):
        """Test several polygons are written as MULTIPOLYGON."""
        polygons = [
            Polygon(outer=[Coordinate(lat=0, lng=0), Coordinate(lat=0, lng=1), Coordinate(lat=1, lng=1)]),
            Polygon(outer=[Coordinate(lat=5, lng=5), Coordinate(lat=5, lng=6), Coordinate(lat=6, lng=6)]),
        ]
        wkt = encode_polygons(polygons)

        assert wkt.startswith("MULTIPOLYGON(")
        assert len(decode(wkt)) == 2

    def test_encode_polygons_empty(self):
        """Test nothing usable encodes to None."""
        assert encode_polygons([]) is None


class TestEncodeShape:
    """Test encoding drawn shapes."""

    def test_rectangle(self):
        """Test a rectangle is written as its four corners plus closure."""
        shape = RectangleShape(
            north_east=Coordinate(lat=2, lng=3),
            south_west=Coordinate(lat=1, lng=1),
        )
        outer = decode(encode_shape(shape))[0].outer
        assert len(outer) == 5
        assert outer[0].as_tuple() == (2, 3)

    def test_circle(self):
        """Test a circle is approximated by a 64-gon."""
        shape = CircleShape(center=Coordinate(lat=40, lng=-100), radius_meters=500)
        outer = decode(encode_shape(shape))[0].outer
        assert len(outer) == 65

    def test_polygon_with_holes(self):
        """Test polygon holes survive encoding."""
        shape = PolygonShape(
            vertices=[Coordinate(lat=0, lng=0), Coordinate(lat=0, lng=10), Coordinate(lat=10, lng=10), Coordinate(lat=10, lng=0)],
            holes=[[Coordinate(lat=2, lng=2), Coordinate(lat=2, lng=4), Coordinate(lat=4, lng=4)]],
        )
        decoded = decode(encode_shape(shape))
        assert len(decoded[0].holes) == 1

    def test_unsupported(self):
        """Test unsupported shapes raise TypeError."""
        with pytest.raises(TypeError):
            encode_shape("not a shape")
