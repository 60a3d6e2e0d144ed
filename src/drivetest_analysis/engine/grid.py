"""
Grid rasterizer for drawn selections.

Overlays a uniform grid of square cells on the shape's bounding box and
aggregates points per cell. A cell belongs to the shape when its centre
does (area approximation, not exact cell/polygon intersection).

The candidate cell count is capped: if the grid would exceed ``max_cells``
rasterization is aborted instead of stalling on a huge grid.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..geometry.classifier import METERS_PER_DEGREE, BoundingBox
from ..utils.metrics import normalize_metric_key, pick_color

logger = logging.getLogger(__name__)

EMPTY_CELL_COLOR = "#808080"
UNCOLORED_CELL_COLOR = "#9ca3af"

# Absorbs float noise when the box is an exact multiple of the cell size
_EPSILON = 1e-9


@dataclass
class GridCell:
    """One retained grid cell."""
    row: int
    col: int
    bounds: BoundingBox
    point_count: int = 0
    metric_average: Optional[float] = None
    fill_color: str = EMPTY_CELL_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "col": self.col,
            "bounds": self.bounds.to_dict(),
            "point_count": self.point_count,
            "metric_average": self.metric_average,
            "fill_color": self.fill_color,
        }


@dataclass
class GridResult:
    """Result of a rasterization run; ``aborted`` marks an exceeded cap."""
    cell_size_meters: float
    max_cells: int
    candidate_cells: int
    rows: int = 0
    cols: int = 0
    aborted: bool = False
    cells: List[GridCell] = field(default_factory=list)
    cells_with_points: int = 0
    total_grid_area: float = 0.0

    @property
    def cell_count(self) -> int:
        return len(self.cells)

    def to_dict(self, include_cells: bool = True) -> Dict[str, Any]:
        data = {
            "aborted": self.aborted,
            "cell_size_meters": self.cell_size_meters,
            "max_cells": self.max_cells,
            "candidate_cells": self.candidate_cells,
            "rows": self.rows,
            "cols": self.cols,
            "cells": self.cell_count,
            "cells_with_points": self.cells_with_points,
            "total_grid_area": self.total_grid_area,
        }
        if include_cells:
            data["grid_cells"] = [cell.to_dict() for cell in self.cells]
        return data


def grid_steps(bounds: BoundingBox, cell_size_meters: float):
    """Latitude/longitude step in degrees for square cells.

    The longitude step is corrected for the bounding box's centre latitude.
    """
    lat_step = cell_size_meters / METERS_PER_DEGREE
    meters_per_lng_degree = METERS_PER_DEGREE * math.cos(math.radians(bounds.center_lat))
    if meters_per_lng_degree <= 0:
        meters_per_lng_degree = METERS_PER_DEGREE
    lng_step = cell_size_meters / meters_per_lng_degree
    return lat_step, lng_step


def grid_dimensions(bounds: BoundingBox, cell_size_meters: float):
    """Number of (rows, cols) needed to cover the bounding box."""
    lat_step, lng_step = grid_steps(bounds, cell_size_meters)
    rows = max(1, math.ceil(abs(bounds.north - bounds.south) / lat_step - _EPSILON))
    cols = max(1, math.ceil(abs(bounds.east - bounds.west) / lng_step - _EPSILON))
    return rows, cols


def rasterize(
    bounds: BoundingBox,
    predicate,
    points: pd.DataFrame,
    cell_size_meters: float,
    max_cells: int,
    metric_key: Optional[str] = None,
    thresholds: Optional[Dict[str, Any]] = None,
    colorize: bool = True,
) -> GridResult:
    """Rasterize a shape into square cells and aggregate points per cell.

    Args:
        bounds: Bounding box of the shape
        predicate: ShapePredicate used to test cell centres
        points: Telemetry DataFrame (normally already filtered to the shape)
        cell_size_meters: Cell edge length in meters
        max_cells: Hard cap on candidate cells
        metric_key: Metric to average per cell (optional)
        thresholds: Metric colour thresholds for cell fill colours
        colorize: Colour cells from thresholds (otherwise neutral grey)

    Returns:
        GridResult (``aborted=True`` with no cells when the cap is exceeded)

    Raises:
        ValueError: If cell size or max_cells is not positive
    """
    if cell_size_meters <= 0:
        raise ValueError(f"cell_size_meters must be positive, got {cell_size_meters}")
    if max_cells <= 0:
        raise ValueError(f"max_cells must be positive, got {max_cells}")

    rows, cols = grid_dimensions(bounds, cell_size_meters)
    candidate_cells = rows * cols

    if candidate_cells > max_cells:
        logger.warning(
            f"Grid too dense ({candidate_cells} cells at {cell_size_meters}m, "
            f"max {max_cells}); skipping grid"
        )
        return GridResult(
            cell_size_meters=cell_size_meters,
            max_cells=max_cells,
            candidate_cells=candidate_cells,
            rows=rows,
            cols=cols,
            aborted=True,
        )

    lat_step, lng_step = grid_steps(bounds, cell_size_meters)

    # Cell centres, row-major
    row_idx, col_idx = np.divmod(np.arange(candidate_cells), cols)
    center_lats = bounds.south + (row_idx + 0.5) * lat_step
    center_lngs = bounds.west + (col_idx + 0.5) * lng_step
    retained = predicate.mask(center_lats, center_lngs)

    cell_stats = _bin_points(points, bounds, lat_step, lng_step, rows, cols, metric_key)
    metric = normalize_metric_key(metric_key) if metric_key else None

    cells = []
    cells_with_points = 0
    for flat in np.flatnonzero(retained):
        row, col = int(row_idx[flat]), int(col_idx[flat])
        south = bounds.south + row * lat_step
        west = bounds.west + col * lng_step
        cell = GridCell(
            row=row,
            col=col,
            bounds=BoundingBox(south=south, west=west, north=south + lat_step, east=west + lng_step),
        )

        stats = cell_stats.get(int(flat))
        if stats is not None:
            cell.point_count = stats[0]
            cell.metric_average = stats[1]
            cells_with_points += 1
            if cell.metric_average is not None and metric is not None:
                cell.fill_color = (
                    pick_color(cell.metric_average, metric, thresholds)
                    if colorize else UNCOLORED_CELL_COLOR
                )
        cells.append(cell)

    result = GridResult(
        cell_size_meters=cell_size_meters,
        max_cells=max_cells,
        candidate_cells=candidate_cells,
        rows=rows,
        cols=cols,
        cells=cells,
        cells_with_points=cells_with_points,
        total_grid_area=cells_with_points * cell_size_meters ** 2,
    )
    logger.info(
        f"Grid: {result.cell_count} cells in shape ({rows}x{cols} candidates), "
        f"{cells_with_points} with points"
    )
    return result


def _bin_points(
    points: pd.DataFrame,
    bounds: BoundingBox,
    lat_step: float,
    lng_step: float,
    rows: int,
    cols: int,
    metric_key: Optional[str],
) -> Dict[int, tuple]:
    """Map flat cell index -> (point_count, metric_average or None)."""
    if points.empty:
        return {}

    lats = pd.to_numeric(points['latitude'], errors='coerce').to_numpy(dtype=float)
    lngs = pd.to_numeric(points['longitude'], errors='coerce').to_numpy(dtype=float)
    in_box = bounds.mask(lats, lngs)
    if not in_box.any():
        return {}

    # Points on the far north/east edge belong to the last row/column
    row = np.clip(np.floor((lats[in_box] - bounds.south) / lat_step), 0, rows - 1).astype(int)
    col = np.clip(np.floor((lngs[in_box] - bounds.west) / lng_step), 0, cols - 1).astype(int)

    binned = pd.DataFrame({'cell': row * cols + col})
    column = normalize_metric_key(metric_key) if metric_key else None
    if column is not None and column in points.columns:
        values = pd.to_numeric(points[column], errors='coerce').to_numpy(dtype=float)[in_box]
        binned['value'] = np.where(np.isfinite(values), values, np.nan)
    else:
        binned['value'] = np.nan

    grouped = binned.groupby('cell')['value'].agg(['size', 'mean'])
    return {
        int(cell): (int(row_stats['size']), None if pd.isna(row_stats['mean']) else float(row_stats['mean']))
        for cell, row_stats in grouped.iterrows()
    }
