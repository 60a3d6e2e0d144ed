"""
Selection analysis engine.

Provides:
- Point filtering (shape membership, hour/weekday filter)
- Metric statistics
- Grid rasterization
- Temporal pattern detection
- Orchestration of the above per user interaction
"""

from .grid import GridCell, GridResult, rasterize
from .orchestrator import (
    AnalysisOrchestrator,
    AnalysisSettings,
    AnalysisState,
    AnalysisSummary,
    PreparedShape,
    TimeFilterReport,
    prepare_shape,
    run_analysis,
)
from .point_filter import AllHours, FilterResult, HourRange, SingleHour, TimeFilter, filter_points
from .statistics import MetricStats, summarize, summarize_values
from .temporal import TemporalPatterns, analyze

__all__ = [
    'AllHours',
    'AnalysisOrchestrator',
    'AnalysisSettings',
    'AnalysisState',
    'AnalysisSummary',
    'FilterResult',
    'GridCell',
    'GridResult',
    'HourRange',
    'MetricStats',
    'PreparedShape',
    'SingleHour',
    'TemporalPatterns',
    'TimeFilter',
    'TimeFilterReport',
    'analyze',
    'filter_points',
    'prepare_shape',
    'rasterize',
    'run_analysis',
    'summarize',
    'summarize_values',
]
