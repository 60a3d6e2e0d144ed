"""
Local-time helpers for epoch-millisecond timestamps.
"""

import pandas as pd

# Larger magnitudes overflow pandas' nanosecond timestamps
_MAX_ABS_MS = 9.0e15


def local_time_parts(timestamps_ms: pd.Series, timezone: str = "UTC") -> pd.DataFrame:
    """Split epoch-ms timestamps into local hour-of-day and weekday.

    Args:
        timestamps_ms: Series of epoch milliseconds (non-numeric -> missing)
        timezone: IANA timezone name used for "local" time

    Returns:
        DataFrame indexed like the input with float columns ``hour`` (0-23)
        and ``weekday`` (0=Monday .. 6=Sunday); NaN where unusable
    """
    ms = pd.to_numeric(timestamps_ms, errors='coerce').astype(float)
    ms = ms.where(ms.abs() < _MAX_ABS_MS)

    stamps = pd.to_datetime(ms, unit='ms', utc=True, errors='coerce')
    local = stamps.dt.tz_convert(timezone)

    return pd.DataFrame(
        {
            'hour': local.dt.hour.astype(float),
            'weekday': local.dt.dayofweek.astype(float),
        },
        index=timestamps_ms.index,
    )


def to_iso(timestamps_ms: pd.Series, timezone: str = "UTC") -> pd.Series:
    """Format epoch-ms timestamps as ISO 8601 strings (None when missing)."""
    ms = pd.to_numeric(timestamps_ms, errors='coerce').astype(float)
    ms = ms.where(ms.abs() < _MAX_ABS_MS)
    stamps = pd.to_datetime(ms, unit='ms', utc=True, errors='coerce').dt.tz_convert(timezone)
    return stamps.apply(lambda ts: ts.isoformat() if pd.notna(ts) else None)
