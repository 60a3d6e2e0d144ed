"""
Temporal pattern analysis for a selection.

Builds two independent histograms from the same points (24 hour-of-day
buckets and 7 weekday buckets) and reports each histogram's peak.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..utils.time_utils import local_time_parts

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


@dataclass
class TemporalPatterns:
    """Hour-of-day and weekday usage patterns."""
    peak_hour: int
    peak_day: int
    hourly_counts: List[int]
    daily_counts: List[int]
    sample_count: int

    @property
    def peak_day_name(self) -> str:
        return WEEKDAY_NAMES[self.peak_day]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peak_hour": self.peak_hour,
            "peak_day": self.peak_day,
            "peak_day_name": self.peak_day_name,
            "hourly_counts": self.hourly_counts,
            "daily_counts": self.daily_counts,
            "sample_count": self.sample_count,
        }


def analyze(points: pd.DataFrame, timezone: str = "UTC") -> Optional[TemporalPatterns]:
    """Find the busiest local hour and weekday.

    Ties go to the lowest hour / weekday index.

    Args:
        points: Telemetry DataFrame with ``timestamp_ms``
        timezone: Timezone used for local time

    Returns:
        TemporalPatterns, or None if no point has a usable timestamp
    """
    if points.empty or 'timestamp_ms' not in points.columns:
        return None

    parts = local_time_parts(points['timestamp_ms'], timezone).dropna()
    if parts.empty:
        return None

    hourly = np.bincount(parts['hour'].astype(int).to_numpy(), minlength=24)
    daily = np.bincount(parts['weekday'].astype(int).to_numpy(), minlength=7)

    return TemporalPatterns(
        peak_hour=int(np.argmax(hourly)),
        peak_day=int(np.argmax(daily)),
        hourly_counts=[int(c) for c in hourly],
        daily_counts=[int(c) for c in daily],
        sample_count=len(parts),
    )
