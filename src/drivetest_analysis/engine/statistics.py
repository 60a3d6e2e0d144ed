"""
Statistics aggregator for metric values inside a selection.

Computes count / mean / median / min / max. Missing statistics stay None
(never zero) so "no data" is distinguishable from a real zero reading.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from ..utils.metrics import normalize_metric_key


@dataclass
class MetricStats:
    """Summary statistics for one metric."""
    count: int = 0
    valid_count: int = 0
    mean: Optional[float] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def has_values(self) -> bool:
        return self.valid_count > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting absent statistics."""
        data = {"count": self.count, "valid_count": self.valid_count}
        for key in ("mean", "median", "min", "max"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


def summarize_values(values: Iterable[Any], count: Optional[int] = None) -> MetricStats:
    """Summarize a sequence of metric values.

    Non-numeric and non-finite values are ignored for the statistics.

    Args:
        values: Metric values
        count: Number of points the values came from (default: len(values))

    Returns:
        MetricStats
    """
    raw = pd.to_numeric(pd.Series(list(values), dtype=object), errors='coerce').astype(float)
    finite = np.sort(raw[np.isfinite(raw)].to_numpy())
    total = len(raw) if count is None else count

    if finite.size == 0:
        return MetricStats(count=total, valid_count=0)

    return MetricStats(
        count=total,
        valid_count=int(finite.size),
        mean=float(finite.mean()),
        median=float(np.median(finite)),
        min=float(finite[0]),
        max=float(finite[-1]),
    )


def summarize(points: pd.DataFrame, metric_key: str) -> MetricStats:
    """Summarize one metric over a point set.

    ``count`` is the number of points; only finite metric values contribute
    to mean, median, min and max.

    Args:
        points: Telemetry DataFrame
        metric_key: Metric name (aliases are resolved)

    Returns:
        MetricStats
    """
    column = normalize_metric_key(metric_key)
    if column not in points.columns:
        return MetricStats(count=len(points), valid_count=0)
    return summarize_values(points[column], count=len(points))
