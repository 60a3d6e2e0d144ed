"""
Metric registry for drive-test telemetry.

Maps the many field names seen in exported logs and UI selectors onto a
canonical metric key, and picks display colours from configured thresholds.
"""

import math
from typing import Dict, List, Optional

from pydantic import BaseModel

DEFAULT_METRIC = "rsrp"

# Canonical key -> field names seen in raw logs and UI selectors
METRIC_ALIASES: Dict[str, List[str]] = {
    "rsrp": ["rsrp", "lte_rsrp", "rsrp_dbm"],
    "rsrq": ["rsrq"],
    "sinr": ["sinr"],
    "dl_throughput": ["dl_throughput", "dl-throughput", "dl_thpt", "dl_tpt", "download_mbps"],
    "ul_throughput": ["ul_throughput", "ul-throughput", "ul_thpt", "ul_tpt", "upload_mbps"],
    "mos": ["mos", "voice_mos"],
    "lte_bler": ["lte_bler", "lte-bler", "bler"],
}

METRIC_LABELS: Dict[str, Dict[str, str]] = {
    "rsrp": {"label": "RSRP", "unit": "dBm"},
    "rsrq": {"label": "RSRQ", "unit": "dB"},
    "sinr": {"label": "SINR", "unit": "dB"},
    "dl_throughput": {"label": "DL Throughput", "unit": "Mbps"},
    "ul_throughput": {"label": "UL Throughput", "unit": "Mbps"},
    "mos": {"label": "MOS", "unit": ""},
    "lte_bler": {"label": "LTE BLER", "unit": "%"},
}

FALLBACK_COLOR = "#93c5fd"

_ALIAS_LOOKUP = {
    alias: canonical
    for canonical, aliases in METRIC_ALIASES.items()
    for alias in aliases
}


class MetricThreshold(BaseModel):
    """One colour band for a metric.

    Either ``value`` (matches values <= value) or a ``min``/``max`` range.
    """
    color: str = "#4ade80"
    min: Optional[float] = None
    max: Optional[float] = None
    value: Optional[float] = None

    def matches(self, value: float) -> bool:
        if self.value is not None and math.isfinite(self.value):
            return value <= self.value
        low = self.min if self.min is not None else -math.inf
        high = self.max if self.max is not None else math.inf
        return low <= value <= high


def normalize_metric_key(metric: Optional[str]) -> str:
    """Resolve a UI or log field name to its canonical metric key.

    Unknown names are lower-cased and returned as-is so custom metric
    columns still work.
    """
    if not metric:
        return DEFAULT_METRIC
    key = str(metric).strip().lower()
    return _ALIAS_LOOKUP.get(key, key)


def metric_label(metric: str) -> str:
    """Human readable label with unit, e.g. ``RSRP (dBm)``."""
    key = normalize_metric_key(metric)
    info = METRIC_LABELS.get(key)
    if info is None:
        return key
    return f"{info['label']} ({info['unit']})" if info['unit'] else info['label']


def pick_color(
    value: float,
    metric: str,
    thresholds: Optional[Dict[str, List[MetricThreshold]]],
) -> str:
    """Pick the colour of the first threshold band that matches.

    Args:
        value: Metric value
        metric: Metric key (aliases allowed)
        thresholds: Mapping of metric key to ordered threshold bands

    Returns:
        Hex colour string
    """
    bands = _thresholds_for(metric, thresholds)
    for band in bands:
        if band.matches(value):
            return band.color
    return FALLBACK_COLOR


def _thresholds_for(metric, thresholds) -> List[MetricThreshold]:
    if not thresholds:
        return []
    key = normalize_metric_key(metric)
    for name, bands in thresholds.items():
        if normalize_metric_key(name) == key:
            return [b if isinstance(b, MetricThreshold) else MetricThreshold(**b) for b in bands]
    return []
