"""
Point filter for drawn selections.

Applies, in order:
1. Coordinate sanity (finite, lat in [-90, 90], lng in [-180, 180])
2. Shape membership
3. Time-of-day / day-of-week filter
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, FrozenSet, Literal, Optional, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field, model_validator

from ..utils.time_utils import local_time_parts

logger = logging.getLogger(__name__)

ALL_DAYS: FrozenSet[int] = frozenset(range(7))


class AllHours(BaseModel):
    """Every hour of the day passes."""
    mode: Literal["all"] = "all"

    def hour_mask(self, hours: pd.Series) -> pd.Series:
        return pd.Series(True, index=hours.index)


class SingleHour(BaseModel):
    """Only points logged during one local hour pass."""
    mode: Literal["single"] = "single"
    hour: int = Field(..., ge=0, le=23)

    def hour_mask(self, hours: pd.Series) -> pd.Series:
        return hours == self.hour


class HourRange(BaseModel):
    """Inclusive hour range; wraps past midnight when from_hour > to_hour."""
    mode: Literal["range"] = "range"
    from_hour: int = Field(..., ge=0, le=23)
    to_hour: int = Field(..., ge=0, le=23)

    def hour_mask(self, hours: pd.Series) -> pd.Series:
        if self.from_hour <= self.to_hour:
            return (hours >= self.from_hour) & (hours <= self.to_hour)
        return (hours >= self.from_hour) | (hours <= self.to_hour)


HourSelection = Annotated[
    Union[AllHours, SingleHour, HourRange],
    Field(discriminator="mode"),
]


class TimeFilter(BaseModel):
    """Hour selection plus the set of allowed weekdays (0=Monday)."""

    hours: HourSelection = Field(default_factory=AllHours)
    selected_days: FrozenSet[int] = ALL_DAYS

    @model_validator(mode="after")
    def _check_days(self) -> "TimeFilter":
        bad = [d for d in self.selected_days if d not in ALL_DAYS]
        if bad:
            raise ValueError(f"selected_days must be within 0-6, got {sorted(bad)}")
        return self

    @property
    def is_restrictive(self) -> bool:
        """True if the filter can reject any point."""
        return not isinstance(self.hours, AllHours) or self.selected_days != ALL_DAYS

    def to_dict(self) -> Dict[str, Any]:
        data = self.hours.model_dump()
        data["selected_days"] = sorted(self.selected_days)
        return data


@dataclass
class FilterResult:
    """Points that survived the filter plus per-step counts."""
    points: pd.DataFrame
    total_input: int
    valid_coordinates: int
    count_before_time_filter: int
    count_after_time_filter: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (without the points themselves)."""
        return {
            "total_input": self.total_input,
            "valid_coordinates": self.valid_coordinates,
            "dropped_invalid": self.total_input - self.valid_coordinates,
            "count_before_time_filter": self.count_before_time_filter,
            "count_after_time_filter": self.count_after_time_filter,
        }


def valid_coordinate_mask(points: pd.DataFrame) -> pd.Series:
    """Rows whose latitude/longitude are finite and within range."""
    lats = pd.to_numeric(points['latitude'], errors='coerce')
    lngs = pd.to_numeric(points['longitude'], errors='coerce')
    return (
        np.isfinite(lats) & np.isfinite(lngs)
        & lats.between(-90, 90) & lngs.between(-180, 180)
    )


def apply_time_filter(
    points: pd.DataFrame,
    time_filter: Optional[TimeFilter],
    timezone: str = "UTC",
) -> pd.DataFrame:
    """Keep points whose local hour and weekday pass the filter.

    Points without a usable timestamp fail any restrictive filter.
    """
    if time_filter is None or not time_filter.is_restrictive or points.empty:
        return points
    if 'timestamp_ms' not in points.columns:
        return points.iloc[0:0]

    parts = local_time_parts(points['timestamp_ms'], timezone)
    known = parts['hour'].notna() & parts['weekday'].notna()
    keep = (
        known
        & time_filter.hours.hour_mask(parts['hour'])
        & parts['weekday'].isin(list(time_filter.selected_days))
    )
    return points[keep.to_numpy()]


def filter_points(
    points: pd.DataFrame,
    predicate,
    time_filter: Optional[TimeFilter] = None,
    timezone: str = "UTC",
) -> FilterResult:
    """Apply coordinate sanity, shape membership and the time filter.

    Args:
        points: Telemetry DataFrame (latitude, longitude, timestamp_ms, ...)
        predicate: ShapePredicate (or any object with ``mask(lats, lngs)``)
        time_filter: Optional TimeFilter
        timezone: Timezone used for local hour/weekday

    Returns:
        FilterResult with the kept points and counts before/after the time filter
    """
    total = len(points)
    if total == 0:
        return FilterResult(points.copy(), 0, 0, 0, 0)

    valid = points[valid_coordinate_mask(points).to_numpy()]
    dropped = total - len(valid)
    if dropped:
        logger.warning(f"Dropped {dropped} point(s) with missing or out-of-range coordinates")

    inside_mask = predicate.mask(
        valid['latitude'].to_numpy(dtype=float),
        valid['longitude'].to_numpy(dtype=float),
    )
    inside = valid[inside_mask]

    timed = apply_time_filter(inside, time_filter, timezone)

    logger.debug(
        f"Point filter: {total} input, {len(valid)} valid, "
        f"{len(inside)} inside shape, {len(timed)} after time filter"
    )

    return FilterResult(
        points=timed.copy(),
        total_input=total,
        valid_coordinates=len(valid),
        count_before_time_filter=len(inside),
        count_after_time_filter=len(timed),
    )
