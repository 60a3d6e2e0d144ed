"""
Geometric selection and spatial-temporal aggregation for drive-test telemetry.

Draw a polygon, rectangle or circle over a set of telemetry points and get
back statistics, an optional grid and hour/weekday usage patterns. Saved
regions are stored and reloaded as WKT.
"""

from .config_manager import AnalysisConfig, ConfigManager
from .engine import AnalysisOrchestrator, AnalysisSettings, AnalysisSummary, TimeFilter, run_analysis
from .geometry import (
    CircleShape,
    Coordinate,
    PolygonShape,
    RectangleShape,
    decode,
    encode,
    encode_shape,
    from_shape,
)

__version__ = "0.1.0"

__all__ = [
    'AnalysisConfig',
    'AnalysisOrchestrator',
    'AnalysisSettings',
    'AnalysisSummary',
    'CircleShape',
    'ConfigManager',
    'Coordinate',
    'PolygonShape',
    'RectangleShape',
    'TimeFilter',
    'decode',
    'encode',
    'encode_shape',
    'from_shape',
    'run_analysis',
]
