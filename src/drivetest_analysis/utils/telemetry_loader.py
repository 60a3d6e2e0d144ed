"""
Telemetry data loader utilities.

Supports loading drive-test logs from:
- Single CSV/Excel files
- Directories of log files combined into a single dataset
- In-memory TelemetryPoint records or dictionaries

All sources end up as one DataFrame with ``latitude``, ``longitude``,
``timestamp_ms``, one column per canonical metric and the text attributes.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from .metrics import METRIC_ALIASES, normalize_metric_key

logger = logging.getLogger(__name__)

LATITUDE_ALIASES = ['latitude', 'lat', 'start_lat', 'lat_deg']
LONGITUDE_ALIASES = ['longitude', 'lng', 'lon', 'long', 'start_lon', 'lon_deg']
TIMESTAMP_ALIASES = ['timestamp', 'time', 'datetime', 'created_at', 'log_time']
ATTRIBUTE_ALIASES = {
    'carrier': ['carrier', 'operator', 'provider', 'm_alpha_long'],
    'technology': ['technology', 'network', 'network_type', 'tech'],
}

BASE_COLUMNS = ['latitude', 'longitude', 'timestamp_ms']


class TelemetryPoint(BaseModel):
    """One drive-test measurement record."""

    lat: float
    lng: float
    timestamp_ms: Optional[float] = None
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict)
    attributes: Dict[str, str] = Field(default_factory=dict)


class TelemetryLoader:
    """Loads telemetry logs from files and normalizes their columns."""

    SUPPORTED_EXTENSIONS = {'.csv', '.xlsx', '.xls'}

    def __init__(self, normalize_columns: bool = True):
        """Initialize telemetry loader.

        Args:
            normalize_columns: Whether to normalize column names (default: True)
        """
        self.normalize_columns = normalize_columns

    def load(self, path: Union[str, Path]) -> pd.DataFrame:
        """Load telemetry from a file or directory.

        Args:
            path: Path to a single file or a directory containing log files

        Returns:
            DataFrame with all telemetry

        Raises:
            FileNotFoundError: If path doesn't exist
            ValueError: If no valid log files found
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Telemetry path not found: {path}")

        if path.is_file():
            return self._load_file(path)
        elif path.is_dir():
            return self._load_directory(path)
        else:
            raise ValueError(f"Invalid path type: {path}")

    def _load_directory(self, directory: Path) -> pd.DataFrame:
        log_files = []
        for ext in self.SUPPORTED_EXTENSIONS:
            log_files.extend(directory.rglob(f"*{ext}"))

        log_files = [
            f for f in log_files
            if not any(part.startswith('.') for part in f.relative_to(directory).parts)
        ]

        if not log_files:
            raise ValueError(f"No telemetry files found in {directory}")

        logger.info(f"Found {len(log_files)} telemetry file(s) in {directory}")

        dfs = []
        for file_path in sorted(log_files):
            try:
                df = self._load_file(file_path)
            except (ValueError, OSError, pd.errors.ParserError) as e:
                logger.warning(f"Failed to load {file_path.name}: {e}")
                continue
            df['_source_file'] = str(file_path.relative_to(directory))
            dfs.append(df)
            logger.info(f"Loaded {len(df)} points from {file_path.name}")

        if not dfs:
            raise ValueError(f"No valid telemetry loaded from {directory}")

        combined_df = pd.concat(dfs, ignore_index=True)
        logger.info(f"Combined total: {len(combined_df)} points from {len(dfs)} file(s)")
        return combined_df

    def _load_file(self, file_path: Path) -> pd.DataFrame:
        """Load a single CSV or Excel log.

        Raises:
            ValueError: If file format not supported
        """
        ext = file_path.suffix.lower()

        if ext == '.csv':
            df = pd.read_csv(file_path)
        elif ext in {'.xlsx', '.xls'}:
            df = pd.read_excel(file_path)
        else:
            raise ValueError(f"Unsupported file format: {ext}")

        if self.normalize_columns:
            df = normalize_frame(df)

        return df


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw telemetry table.

    Lower-cases column names, resolves coordinate/metric/attribute aliases,
    derives ``timestamp_ms`` and coerces numeric columns (bad values -> NaN).

    Args:
        df: Raw telemetry DataFrame

    Returns:
        New DataFrame with canonical columns
    """
    df = df.copy()
    df.columns = [
        str(col).strip().lower().replace(' ', '_')
        for col in df.columns
    ]

    renames = {}
    _claim_alias(df.columns, LATITUDE_ALIASES, 'latitude', renames)
    _claim_alias(df.columns, LONGITUDE_ALIASES, 'longitude', renames)
    for canonical, aliases in METRIC_ALIASES.items():
        _claim_alias(df.columns, aliases, canonical, renames)
    for canonical, aliases in ATTRIBUTE_ALIASES.items():
        _claim_alias(df.columns, aliases, canonical, renames)
    df = df.rename(columns=renames)

    if 'timestamp_ms' not in df.columns:
        source = next((c for c in TIMESTAMP_ALIASES if c in df.columns), None)
        if source is not None:
            df['timestamp_ms'] = _to_epoch_ms(df[source])
        else:
            df['timestamp_ms'] = np.nan

    for col in ['latitude', 'longitude', 'timestamp_ms'] + list(METRIC_ALIASES):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')
        elif col in BASE_COLUMNS:
            df[col] = np.nan

    return df


def points_to_frame(points: Union[pd.DataFrame, Iterable[Any]]) -> pd.DataFrame:
    """Coerce any supported point collection into a telemetry DataFrame.

    Args:
        points: DataFrame, or iterable of TelemetryPoint / dict records

    Returns:
        DataFrame with canonical columns (a copy; the input is untouched)
    """
    if isinstance(points, pd.DataFrame):
        if set(BASE_COLUMNS).issubset(points.columns):
            return points.copy()
        return normalize_frame(points)

    rows: List[Dict[str, Any]] = []
    for record in points:
        point = record if isinstance(record, TelemetryPoint) else TelemetryPoint.model_validate(record)
        row: Dict[str, Any] = {
            'latitude': point.lat,
            'longitude': point.lng,
            'timestamp_ms': point.timestamp_ms,
        }
        for name, value in point.metrics.items():
            row[normalize_metric_key(name)] = value
        row.update(point.attributes)
        rows.append(row)

    if not rows:
        return pd.DataFrame({col: pd.Series(dtype=float) for col in BASE_COLUMNS})

    df = pd.DataFrame(rows)
    for col in ['latitude', 'longitude', 'timestamp_ms'] + list(METRIC_ALIASES):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')
    return df


def _claim_alias(columns, aliases: List[str], canonical: str, renames: Dict[str, str]) -> None:
    """Rename the first alias present to ``canonical`` unless it already exists."""
    if canonical in columns:
        return
    for alias in aliases:
        if alias in columns and alias not in renames:
            renames[alias] = canonical
            return


def _to_epoch_ms(values: pd.Series) -> pd.Series:
    """Convert timestamps (epoch seconds/ms or date strings) to epoch ms."""
    numeric = pd.to_numeric(values, errors='coerce')
    if numeric.notna().any() and numeric.notna().sum() >= values.notna().sum():
        # Heuristic: epoch seconds are < 1e11 until the year 5138
        return numeric.where(numeric.abs() >= 1e11, numeric * 1000.0)

    parsed = pd.to_datetime(values, utc=True, errors='coerce', format='mixed')
    ms = pd.Series(np.nan, index=values.index, dtype=float)
    valid = parsed.notna()
    ms[valid] = (parsed[valid] - pd.Timestamp(0, tz='UTC')) // pd.Timedelta(milliseconds=1)
    return ms
