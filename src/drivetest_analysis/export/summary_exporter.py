"""
Exporter for analysis summaries.

Writes the outputs consumed downstream of a selection analysis:
- Aggregate statistics (flat metric/value rows, CSV)
- Raw points inside the selection (fixed column order, CSV)
- Grid cells (GeoJSON FeatureCollection for web maps / GIS)
- Full summary (JSON)
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import geopandas as gpd
import pandas as pd
from shapely.geometry import box

from ..engine.orchestrator import AnalysisSummary
from ..utils.metrics import METRIC_ALIASES, metric_label
from ..utils.time_utils import to_iso

logger = logging.getLogger(__name__)

RAW_COLUMNS = [
    'latitude',
    'longitude',
    'rsrp',
    'rsrq',
    'sinr',
    'dl_throughput',
    'ul_throughput',
    'mos',
    'lte_bler',
    'timestamp',
    'carrier',
    'technology',
]


def _fmt(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "N/A"


def stats_rows(summary: AnalysisSummary) -> List[List[Any]]:
    """Flatten a summary into ``[label, value]`` rows (header first)."""
    stats = summary.stats
    rows: List[List[Any]] = [
        ["Metric", "Value"],
        ["Shape Type", summary.shape_type],
        ["Area (sq m)", f"{summary.area_sq_meters:.2f}"],
        ["Total Points Inside", summary.total_count],
        ["Points With Metric", stats.valid_count],
        ["Mean", _fmt(stats.mean)],
        ["Median", _fmt(stats.median)],
        ["Min", _fmt(stats.min)],
        ["Max", _fmt(stats.max)],
        ["Selected Metric", metric_label(summary.metric)],
    ]

    grid = summary.grid
    if grid is not None:
        if grid.aborted:
            rows.append(["Grid Status", f"aborted ({grid.candidate_cells} cells > {grid.max_cells})"])
        else:
            rows.extend([
                ["Grid Cells", grid.cell_count],
                ["Cells With Points", grid.cells_with_points],
                ["Cell Size (meters)", grid.cell_size_meters],
                ["Total Grid Area (sq m)", f"{grid.total_grid_area:.2f}"],
            ])

    if summary.time_filter is not None:
        rows.extend([
            ["Points Before Time Filter", summary.time_filter.count_before],
            ["Points After Time Filter", summary.time_filter.count_after],
        ])

    if summary.temporal_patterns is not None:
        rows.extend([
            ["Peak Hour", summary.temporal_patterns.peak_hour],
            ["Peak Day", summary.temporal_patterns.peak_day_name],
        ])

    return rows


def raw_points_frame(summary: AnalysisSummary, timezone: str = "UTC") -> pd.DataFrame:
    """Points inside the selection with the fixed raw-export columns.

    Missing columns are exported empty; ``timestamp`` is ISO 8601 derived
    from ``timestamp_ms`` when available.
    """
    points = summary.points
    out = pd.DataFrame(index=points.index)

    for col in RAW_COLUMNS:
        if col == 'timestamp' and 'timestamp_ms' in points.columns and points['timestamp_ms'].notna().any():
            out[col] = to_iso(points['timestamp_ms'], timezone)
        elif col in points.columns:
            out[col] = points[col]
        else:
            alias = next((a for a in METRIC_ALIASES.get(col, []) if a in points.columns), None)
            out[col] = points[alias] if alias else None

    return out[RAW_COLUMNS].reset_index(drop=True)


def grid_to_geodataframe(summary: AnalysisSummary) -> gpd.GeoDataFrame:
    """Grid cells as polygons in EPSG:4326 (empty if no grid)."""
    cells = summary.grid.cells if summary.grid is not None and not summary.grid.aborted else []
    if not cells:
        return gpd.GeoDataFrame(
            {'row': [], 'col': [], 'point_count': [], 'metric_average': [], 'fill_color': []},
            geometry=[],
            crs='EPSG:4326',
        )

    return gpd.GeoDataFrame(
        {
            'row': [c.row for c in cells],
            'col': [c.col for c in cells],
            'point_count': [c.point_count for c in cells],
            'metric_average': [c.metric_average for c in cells],
            'fill_color': [c.fill_color for c in cells],
        },
        geometry=[box(c.bounds.west, c.bounds.south, c.bounds.east, c.bounds.north) for c in cells],
        crs='EPSG:4326',
    )


class SummaryExporter:
    """Export analysis summaries as CSV, JSON and GeoJSON."""

    def __init__(self, output_dir: Path, timezone: str = "UTC"):
        """Initialize summary exporter.

        Args:
            output_dir: Directory for output files
            timezone: Timezone for exported timestamps
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.timezone = timezone

    def export_stats_csv(self, summary: AnalysisSummary, output_name: Optional[str] = None) -> Path:
        """Write aggregate statistics rows.

        Returns:
            Path to CSV file
        """
        output_name = output_name or self._dated_name("selection_stats", summary.metric, "csv")
        rows = stats_rows(summary)
        df = pd.DataFrame(rows[1:], columns=rows[0])

        output_path = self.output_dir / output_name
        df.to_csv(output_path, index=False)
        logger.info(f"Wrote stats CSV to {output_path}")
        return output_path

    def export_raw_csv(self, summary: AnalysisSummary, output_name: Optional[str] = None) -> Optional[Path]:
        """Write the raw points inside the selection.

        Returns:
            Path to CSV file, or None if the selection holds no points
        """
        if summary.total_count == 0:
            logger.warning("No points inside selection; raw CSV not written")
            return None

        output_name = output_name or self._dated_name("selection_raw_points", summary.metric, "csv")
        df = raw_points_frame(summary, self.timezone)

        output_path = self.output_dir / output_name
        df.to_csv(output_path, index=False)
        logger.info(f"Wrote {len(df)} raw points to {output_path}")
        return output_path

    def export_grid_geojson(self, summary: AnalysisSummary, output_name: str = "grid.geojson") -> Path:
        """Write grid cells as a GeoJSON FeatureCollection.

        Returns:
            Path to GeoJSON file
        """
        gdf = grid_to_geodataframe(summary)
        geojson = json.loads(gdf.to_json(drop_id=True))
        grid = summary.grid
        geojson['metadata'] = {
            'type': 'selection_grid',
            'metric': summary.metric,
            'cell_size_m': grid.cell_size_meters if grid else None,
            'aborted': grid.aborted if grid else None,
            'count': len(gdf),
            'generated': datetime.now().isoformat(),
        }

        output_path = self.output_dir / output_name
        with open(output_path, 'w') as f:
            json.dump(geojson, f, indent=2)
        return output_path

    def export_summary_json(self, summary: AnalysisSummary, output_name: str = "summary.json") -> Path:
        """Write the summary (without raw points) as JSON.

        Returns:
            Path to JSON file
        """
        output_path = self.output_dir / output_name
        with open(output_path, 'w') as f:
            json.dump(summary.to_dict(include_cells=True), f, indent=2)
        return output_path

    @staticmethod
    def _dated_name(prefix: str, metric: str, ext: str) -> str:
        return f"{prefix}_{metric}_{datetime.now().strftime('%Y-%m-%d')}.{ext}"
