"""
Export module for downstream consumption of analysis results.

Provides:
- Aggregate statistics rows (CSV)
- Raw points inside a selection (CSV)
- Grid cells (GeoJSON)
- Summary (JSON)
"""

from .summary_exporter import (
    RAW_COLUMNS,
    SummaryExporter,
    grid_to_geodataframe,
    raw_points_frame,
    stats_rows,
)

__all__ = [
    'RAW_COLUMNS',
    'SummaryExporter',
    'grid_to_geodataframe',
    'raw_points_frame',
    'stats_rows',
]
