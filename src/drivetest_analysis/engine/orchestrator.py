"""
Analysis orchestrator for drawn selections.

Sequences the engine for each user interaction:

    shape complete -> classifier -> point filter
        -> statistics, grid (optional), temporal patterns (optional)
        -> AnalysisSummary -> subscribers

Metric / time filter / grid changes re-run from the point filter using the
cached shape predicate. An increasing clear signal drops everything and
returns to IDLE.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from ..config_manager import AnalysisConfig
from ..geometry.classifier import BoundingBox, ShapePredicate, from_shape, shape_area, shape_bounds
from ..utils.metrics import normalize_metric_key
from ..utils.telemetry_loader import points_to_frame
from .grid import GridResult, rasterize
from .point_filter import FilterResult, TimeFilter, filter_points
from .statistics import MetricStats, summarize
from .temporal import TemporalPatterns, analyze

logger = logging.getLogger(__name__)

Listener = Callable[[Optional["AnalysisSummary"]], None]


class AnalysisState(str, Enum):
    """Orchestrator state."""
    IDLE = "IDLE"
    DRAWING = "DRAWING"
    ANALYZED = "ANALYZED"


@dataclass(frozen=True)
class PreparedShape:
    """A shape with its predicate, bounds and area computed once."""
    shape: Any
    predicate: ShapePredicate
    bounds: BoundingBox
    area_sq_meters: float

    @property
    def shape_type(self) -> str:
        return self.shape.kind


@dataclass
class AnalysisSettings:
    """Per-run knobs; everything a run depends on besides shape and points."""
    metric: str = "rsrp"
    time_filter: Optional[TimeFilter] = None
    grid_enabled: bool = False
    cell_size_meters: float = 100.0
    max_cells: int = 1500
    max_points: int = 50000
    colorize_cells: bool = True
    timezone: str = "UTC"
    thresholds: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "AnalysisSettings":
        return cls(
            metric=config.default_metric,
            grid_enabled=config.grid_enabled,
            cell_size_meters=config.cell_size_meters,
            max_cells=config.max_cells,
            max_points=config.max_points,
            colorize_cells=config.colorize_cells,
            timezone=config.timezone,
            thresholds=dict(config.thresholds),
        )


@dataclass
class TimeFilterReport:
    """The time filter applied in a run and its effect on the count."""
    time_filter: TimeFilter
    count_before: int
    count_after: int

    def to_dict(self) -> Dict[str, Any]:
        data = self.time_filter.to_dict()
        data["count_before"] = self.count_before
        data["count_after"] = self.count_after
        return data


@dataclass
class AnalysisSummary:
    """Everything one analysis run produces."""
    shape_type: str
    area_sq_meters: float
    total_count: int
    metric: str
    stats: MetricStats
    points: pd.DataFrame
    geometry: Dict[str, Any]
    filter_counts: Dict[str, int]
    grid: Optional[GridResult] = None
    time_filter: Optional[TimeFilterReport] = None
    temporal_patterns: Optional[TemporalPatterns] = None
    truncated: bool = False
    created_at: str = ""

    def to_dict(self, include_cells: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (points excluded)."""
        return {
            "shape_type": self.shape_type,
            "area_sq_meters": self.area_sq_meters,
            "total_count": self.total_count,
            "metric": self.metric,
            "stats": self.stats.to_dict(),
            "geometry": self.geometry,
            "filter_counts": self.filter_counts,
            "grid": self.grid.to_dict(include_cells=include_cells) if self.grid else None,
            "time_filter": self.time_filter.to_dict() if self.time_filter else None,
            "temporal_patterns": self.temporal_patterns.to_dict() if self.temporal_patterns else None,
            "truncated": self.truncated,
            "created_at": self.created_at,
        }


def prepare_shape(shape) -> PreparedShape:
    """Derive predicate, bounds and area for a shape.

    Raises:
        TypeError: If the shape type is not supported
    """
    return PreparedShape(
        shape=shape,
        predicate=from_shape(shape),
        bounds=shape_bounds(shape),
        area_sq_meters=shape_area(shape),
    )


def run_analysis(
    prepared: PreparedShape,
    points: pd.DataFrame,
    settings: AnalysisSettings,
) -> AnalysisSummary:
    """Run one analysis: a pure function of shape, points and settings.

    Args:
        prepared: PreparedShape from ``prepare_shape``
        points: Telemetry DataFrame
        settings: AnalysisSettings

    Returns:
        AnalysisSummary
    """
    metric = normalize_metric_key(settings.metric)

    truncated = len(points) > settings.max_points
    if truncated:
        logger.warning(
            f"Point set has {len(points)} rows, analysing the first {settings.max_points}"
        )
        points = points.iloc[:settings.max_points]

    filtered: FilterResult = filter_points(
        points,
        prepared.predicate,
        time_filter=settings.time_filter,
        timezone=settings.timezone,
    )
    inside = filtered.points

    stats = summarize(inside, metric)

    grid = None
    if settings.grid_enabled:
        grid = rasterize(
            prepared.bounds,
            prepared.predicate,
            inside,
            cell_size_meters=settings.cell_size_meters,
            max_cells=settings.max_cells,
            metric_key=metric,
            thresholds=settings.thresholds,
            colorize=settings.colorize_cells,
        )

    time_report = None
    patterns = None
    if settings.time_filter is not None:
        time_report = TimeFilterReport(
            time_filter=settings.time_filter,
            count_before=filtered.count_before_time_filter,
            count_after=filtered.count_after_time_filter,
        )
        patterns = analyze(inside, timezone=settings.timezone)

    summary = AnalysisSummary(
        shape_type=prepared.shape_type,
        area_sq_meters=prepared.area_sq_meters,
        total_count=len(inside),
        metric=metric,
        stats=stats,
        points=inside,
        geometry=prepared.shape.model_dump(),
        filter_counts=filtered.to_dict(),
        grid=grid,
        time_filter=time_report,
        temporal_patterns=patterns,
        truncated=truncated,
        created_at=datetime.now().isoformat(),
    )

    logger.info(
        f"Analysed {prepared.shape_type}: {summary.total_count} of {len(points)} points inside, "
        f"{metric} mean={stats.mean}"
    )
    return summary


class AnalysisOrchestrator:
    """Drives analysis runs from discrete user interaction events."""

    def __init__(
        self,
        points: Any = None,
        config: Optional[AnalysisConfig] = None,
        settings: Optional[AnalysisSettings] = None,
    ):
        """Initialize orchestrator.

        Args:
            points: Telemetry DataFrame or TelemetryPoint records (optional)
            config: AnalysisConfig providing default settings
            settings: Explicit settings (overrides config); copied, never mutated
        """
        self.config = config or AnalysisConfig()
        if settings is not None:
            self.settings = replace(settings, thresholds=dict(settings.thresholds))
        else:
            self.settings = AnalysisSettings.from_config(self.config)
        self.points = points_to_frame(points if points is not None else [])

        self.state = AnalysisState.IDLE
        self.prepared: Optional[PreparedShape] = None
        self.summary: Optional[AnalysisSummary] = None

        self._listeners: List[Listener] = []
        self._clear_signal = 0
        self._generation = 0

    @property
    def shape(self):
        return self.prepared.shape if self.prepared else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with each new summary (None on clear).

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def begin_drawing(self) -> None:
        """User started drawing a shape."""
        self.state = AnalysisState.DRAWING

    def complete_shape(self, shape) -> Optional[AnalysisSummary]:
        """Analyse a finished shape, replacing any previous one.

        Args:
            shape: PolygonShape, RectangleShape or CircleShape

        Returns:
            The new AnalysisSummary
        """
        self.prepared = prepare_shape(shape)
        return self._run()

    def set_points(self, points: Any) -> Optional[AnalysisSummary]:
        """Replace the point set; re-runs if a shape is analysed."""
        self.points = points_to_frame(points)
        return self._rerun()

    def set_metric(self, metric: str) -> Optional[AnalysisSummary]:
        """Change the analysed metric; re-runs if a shape is analysed."""
        self.settings.metric = normalize_metric_key(metric)
        return self._rerun()

    def set_time_filter(self, time_filter: Optional[TimeFilter]) -> Optional[AnalysisSummary]:
        """Change the time filter (None disables it); re-runs if analysed."""
        self.settings.time_filter = time_filter
        return self._rerun()

    def set_grid(
        self,
        enabled: bool,
        cell_size_meters: Optional[float] = None,
    ) -> Optional[AnalysisSummary]:
        """Toggle the grid and optionally change its cell size."""
        self.settings.grid_enabled = enabled
        if cell_size_meters is not None:
            self.settings.cell_size_meters = cell_size_meters
        return self._rerun()

    def clear(self, signal: int) -> bool:
        """Discard shape and results when ``signal`` advances.

        Args:
            signal: Monotonically increasing clear counter

        Returns:
            True if the state was cleared
        """
        if signal <= self._clear_signal:
            return False

        self._clear_signal = signal
        self._generation += 1
        self.prepared = None
        self.summary = None
        self.state = AnalysisState.IDLE
        logger.info("Selection cleared")
        self._notify(None)
        return True

    def _rerun(self) -> Optional[AnalysisSummary]:
        if self.state != AnalysisState.ANALYZED or self.prepared is None:
            return None
        return self._run()

    def _run(self) -> Optional[AnalysisSummary]:
        self._generation += 1
        generation = self._generation

        summary = run_analysis(self.prepared, self.points, self.settings)

        if generation != self._generation:
            # Superseded by a clear or a newer run
            return None

        self.summary = summary
        self.state = AnalysisState.ANALYZED
        self._notify(summary)
        return summary

    def _notify(self, summary: Optional[AnalysisSummary]) -> None:
        generation = self._generation
        for listener in list(self._listeners):
            if generation != self._generation:
                break
            listener(summary)
