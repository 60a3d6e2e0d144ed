"""
Unit tests for the grid rasterizer.
"""

import numpy as np
import pandas as pd
import pytest

from drivetest_analysis.engine import rasterize
from drivetest_analysis.engine.grid import (
    EMPTY_CELL_COLOR,
    UNCOLORED_CELL_COLOR,
    grid_dimensions,
    grid_steps,
)
from drivetest_analysis.geometry import (
    BoundingBox,
    CircleShape,
    Coordinate,
    RectangleShape,
    from_shape,
    shape_bounds,
)
from drivetest_analysis.utils.metrics import MetricThreshold

CELL = 100.0


@pytest.fixture
def steps():
    """Lat/lng step for 100 m cells just north of the equator."""
    lat_step = CELL / 111320.0
    _, lng_step = grid_steps(BoundingBox(south=0, west=0, north=10 * lat_step, east=1), CELL)
    return lat_step, lng_step


@pytest.fixture
def square(steps):
    """Rectangle exactly 10x10 cells."""
    lat_step, lng_step = steps
    shape = RectangleShape(
        north_east=Coordinate(lat=10 * lat_step, lng=10 * lng_step),
        south_west=Coordinate(lat=0, lng=0),
    )
    return shape, shape_bounds(shape), from_shape(shape)


def _cell_centre(steps, row, col):
    lat_step, lng_step = steps
    return (row + 0.5) * lat_step, (col + 0.5) * lng_step


class TestGridDimensions:
    """Test grid sizing."""

    def test_exact_multiple(self, square):
        """Test a box that is an exact multiple of the cell size."""
        _, bounds, _ = square
        assert grid_dimensions(bounds, CELL) == (10, 10)

    def test_longitude_step_widens_with_latitude(self):
        """Test the longitude step grows away from the equator."""
        _, equator = grid_steps(BoundingBox(south=-0.1, west=0, north=0.1, east=1), CELL)
        _, north = grid_steps(BoundingBox(south=59.9, west=0, north=60.1, east=1), CELL)
        assert north == pytest.approx(equator * 2, rel=1e-3)

    def test_box_mask_inclusive(self):
        """Test the bounding box pre-filter keeps points on its edges."""
        box = BoundingBox(south=1, west=2, north=3, east=4)
        lats = np.array([1.0, 3.0, 2.0, 0.999, 2.0])
        lngs = np.array([2.0, 4.0, 3.0, 3.0, 4.001])

        assert box.mask(lats, lngs).tolist() == [True, True, True, False, False]
        assert box.center_lat == 2.0


class TestRasterize:
    """Test rasterization and per-cell aggregation."""

    def test_all_cells_retained(self, square):
        """Test every cell centre of a rectangle is inside it."""
        _, bounds, predicate = square
        result = rasterize(bounds, predicate, pd.DataFrame(), CELL, max_cells=1500)

        assert not result.aborted
        assert result.candidate_cells == 100
        assert result.cell_count == 100
        assert result.cells_with_points == 0
        assert all(cell.fill_color == EMPTY_CELL_COLOR for cell in result.cells)

    def test_abort_when_over_cap(self, square):
        """Test exceeding max_cells aborts with no cells."""
        _, bounds, predicate = square
        result = rasterize(bounds, predicate, pd.DataFrame(), CELL, max_cells=50)

        assert result.aborted
        assert result.candidate_cells == 100
        assert result.cells == []
        assert result.to_dict()['aborted'] is True

    def test_cap_is_inclusive(self, square):
        """Test exactly max_cells candidates is allowed."""
        _, bounds, predicate = square
        assert not rasterize(bounds, predicate, pd.DataFrame(), CELL, max_cells=100).aborted

    def test_invalid_arguments(self, square):
        """Test non-positive cell size or cap is rejected."""
        _, bounds, predicate = square
        with pytest.raises(ValueError):
            rasterize(bounds, predicate, pd.DataFrame(), 0, max_cells=100)
        with pytest.raises(ValueError):
            rasterize(bounds, predicate, pd.DataFrame(), CELL, max_cells=0)

    def test_point_aggregation(self, square, steps):
        """Test counts and metric averages per cell."""
        _, bounds, predicate = square
        a = _cell_centre(steps, 0, 0)
        b = _cell_centre(steps, 9, 9)
        points = pd.DataFrame({
            'latitude': [a[0], a[0], b[0]],
            'longitude': [a[1], a[1], b[1]],
            'rsrp': [-80.0, -100.0, None],
        })

        result = rasterize(bounds, predicate, points, CELL, max_cells=1500, metric_key='rsrp')
        cells = {(c.row, c.col): c for c in result.cells}

        assert cells[(0, 0)].point_count == 2
        assert cells[(0, 0)].metric_average == pytest.approx(-90.0)
        assert cells[(9, 9)].point_count == 1
        assert cells[(9, 9)].metric_average is None
        assert cells[(9, 9)].fill_color == EMPTY_CELL_COLOR
        assert result.cells_with_points == 2
        assert result.total_grid_area == pytest.approx(2 * CELL ** 2)

    def test_north_east_edge_clipped(self, square, steps):
        """Test points on the far edges land in the last row/column."""
        _, bounds, predicate = square
        points = pd.DataFrame({'latitude': [bounds.north], 'longitude': [bounds.east]})

        result = rasterize(bounds, predicate, points, CELL, max_cells=1500)
        occupied = [(c.row, c.col) for c in result.cells if c.point_count]
        assert occupied == [(9, 9)]

    def test_colors(self, square, steps):
        """Test threshold colours and the uncoloured mode."""
        _, bounds, predicate = square
        lat, lng = _cell_centre(steps, 3, 4)
        points = pd.DataFrame({'latitude': [lat], 'longitude': [lng], 'rsrp': [-90.0]})
        thresholds = {'rsrp': [MetricThreshold(min=-95, max=-85, color='#00ff00')]}

        colored = rasterize(bounds, predicate, points, CELL, 1500, metric_key='rsrp', thresholds=thresholds)
        plain = rasterize(bounds, predicate, points, CELL, 1500, metric_key='rsrp', thresholds=thresholds, colorize=False)

        assert [c.fill_color for c in colored.cells if c.point_count] == ['#00ff00']
        assert [c.fill_color for c in plain.cells if c.point_count] == [UNCOLORED_CELL_COLOR]

    def test_circle_drops_corner_cells(self):
        """Test cells whose centre falls outside a circle are not retained."""
        shape = CircleShape(center=Coordinate(lat=10, lng=10), radius_meters=500)
        result = rasterize(shape_bounds(shape), from_shape(shape), pd.DataFrame(), CELL, max_cells=1500)

        assert not result.aborted
        assert 0 < result.cell_count < result.candidate_cells
