"""
Pydantic models for coordinates, rings and drawn shapes.
"""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class Coordinate(BaseModel):
    """A latitude/longitude pair in degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def as_tuple(self) -> tuple:
        """Return (lat, lng)."""
        return (self.lat, self.lng)


Ring = List[Coordinate]


class Polygon(BaseModel):
    """Outer ring plus zero or more hole rings."""

    outer: List[Coordinate]
    holes: List[List[Coordinate]] = Field(default_factory=list)

    def to_shape(self) -> "PolygonShape":
        """Turn a decoded polygon into a drawable shape."""
        return PolygonShape(vertices=self.outer, holes=self.holes)

    def to_shapely(self):
        """Convert to a shapely Polygon (x=lng, y=lat)."""
        from shapely.geometry import Polygon as ShapelyPolygon

        return ShapelyPolygon(
            [(c.lng, c.lat) for c in self.outer],
            [[(c.lng, c.lat) for c in hole] for hole in self.holes],
        )


MultiPolygon = List[Polygon]


class PolygonShape(BaseModel):
    """Free-form polygon drawn by the user."""

    kind: Literal["polygon"] = "polygon"
    vertices: List[Coordinate] = Field(..., min_length=3)
    holes: List[List[Coordinate]] = Field(default_factory=list)


class RectangleShape(BaseModel):
    """Axis-aligned rectangle given by its corners."""

    kind: Literal["rectangle"] = "rectangle"
    north_east: Coordinate
    south_west: Coordinate


class CircleShape(BaseModel):
    """Circle given by a centre and a radius in meters."""

    kind: Literal["circle"] = "circle"
    center: Coordinate
    radius_meters: float = Field(..., gt=0)


Shape = Annotated[
    Union[PolygonShape, RectangleShape, CircleShape],
    Field(discriminator="kind"),
]


_shape_adapter = TypeAdapter(Shape)


def parse_shape(data: Dict[str, Any]) -> Union[PolygonShape, RectangleShape, CircleShape]:
    """Validate a serialized shape dictionary into its model.

    Args:
        data: Dictionary with a ``kind`` discriminator

    Returns:
        PolygonShape, RectangleShape or CircleShape

    Raises:
        pydantic.ValidationError: If the payload doesn't describe a valid shape
    """
    return _shape_adapter.validate_python(data)
