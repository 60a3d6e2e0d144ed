"""
Configuration manager for analysis settings.

Loads analysis configuration from YAML files, validates settings,
and provides environment variable substitution.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .utils.metrics import DEFAULT_METRIC, MetricThreshold, normalize_metric_key

logger = logging.getLogger(__name__)


@dataclass
class AnalysisConfig:
    """Validated analysis configuration."""
    name: str = "drivetest_analysis"
    default_metric: str = DEFAULT_METRIC
    grid_enabled: bool = False
    cell_size_meters: float = 100.0
    max_cells: int = 1500
    max_points: int = 50000
    colorize_cells: bool = True
    timezone: str = "UTC"
    thresholds: Dict[str, List[MetricThreshold]] = field(default_factory=dict)
    output_dir: Path = Path("outputs")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "default_metric": self.default_metric,
            "grid_enabled": self.grid_enabled,
            "cell_size_meters": self.cell_size_meters,
            "max_cells": self.max_cells,
            "max_points": self.max_points,
            "colorize_cells": self.colorize_cells,
            "timezone": self.timezone,
            "thresholds": {
                metric: [band.model_dump(exclude_none=True) for band in bands]
                for metric, bands in self.thresholds.items()
            },
            "output_dir": str(self.output_dir),
        }


class ConfigManager:
    """Manages analysis configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration YAML file (optional)
        """
        self.config_path = config_path
        self._config: Optional[Dict[str, Any]] = None

    def load(self, config_path: Optional[Path] = None) -> AnalysisConfig:
        """Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file (overrides init path)

        Returns:
            AnalysisConfig with validated settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        path = config_path or self.config_path
        if path is None:
            raise ValueError("No configuration path provided")

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ValueError(f"Configuration root must be a mapping: {path}")

        config = self._substitute_env_vars(config)
        self._validate_config(config)
        self._config = config

        logger.info(f"Loaded analysis configuration from {path}")
        return self._create_analysis_config(config)

    def load_dict(self, config: Dict[str, Any]) -> AnalysisConfig:
        """Validate an in-memory configuration mapping."""
        config = self._substitute_env_vars(dict(config))
        self._validate_config(config)
        self._config = config
        return self._create_analysis_config(config)

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in configuration.

        Supports syntax: ${VAR_NAME} or ${VAR_NAME:default_value}
        """
        if isinstance(config, dict):
            return {
                key: self._substitute_env_vars(value)
                for key, value in config.items()
            }
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_string(config)
        else:
            return config

    def _substitute_env_var_string(self, value: str) -> str:
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        grid = config.get("grid", {}) or {}
        if not isinstance(grid, dict):
            raise ValueError("grid must be a dictionary")

        cell_size = _as_number(grid.get("cell_size_meters", 100), "grid.cell_size_meters")
        if cell_size <= 0:
            raise ValueError("grid.cell_size_meters must be positive")

        max_cells = _as_number(grid.get("max_cells", 1500), "grid.max_cells")
        if max_cells < 1:
            raise ValueError("grid.max_cells must be at least 1")

        max_points = _as_number(config.get("max_points", 50000), "max_points")
        if max_points < 1:
            raise ValueError("max_points must be at least 1")

        timezone = config.get("timezone", "UTC")
        try:
            ZoneInfo(str(timezone))
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {timezone}")

        thresholds = config.get("thresholds", {}) or {}
        if not isinstance(thresholds, dict):
            raise ValueError("thresholds must be a dictionary of metric -> list")
        for metric, bands in thresholds.items():
            if not isinstance(bands, list):
                raise ValueError(f"Thresholds for {metric} must be a list")
            for band in bands:
                if not isinstance(band, dict) or "color" not in band:
                    raise ValueError(f"Threshold for {metric} missing required field: color")

    def _create_analysis_config(self, config: Dict[str, Any]) -> AnalysisConfig:
        """Create AnalysisConfig from validated configuration."""
        grid = config.get("grid", {}) or {}

        thresholds = {
            normalize_metric_key(metric): [MetricThreshold(**band) for band in bands]
            for metric, bands in (config.get("thresholds", {}) or {}).items()
        }

        return AnalysisConfig(
            name=config.get("name", "drivetest_analysis"),
            default_metric=normalize_metric_key(config.get("default_metric", DEFAULT_METRIC)),
            grid_enabled=_as_bool(grid.get("enabled", False)),
            cell_size_meters=float(grid.get("cell_size_meters", 100)),
            max_cells=int(float(grid.get("max_cells", 1500))),
            max_points=int(float(config.get("max_points", 50000))),
            colorize_cells=_as_bool(grid.get("colorize_cells", True)),
            timezone=str(config.get("timezone", "UTC")),
            thresholds=thresholds,
            output_dir=Path(config.get("output_dir", "outputs")).expanduser(),
        )

    def get_thresholds(self, metric: str) -> List[Dict[str, Any]]:
        """Get raw threshold bands for a metric.

        Raises:
            ValueError: If configuration has not been loaded
        """
        if self._config is None:
            raise ValueError("Configuration not loaded - call load() first")

        key = normalize_metric_key(metric)
        for name, bands in (self._config.get("thresholds", {}) or {}).items():
            if normalize_metric_key(name) == key:
                return bands
        return []

    def save_example_config(self, output_path: Path) -> None:
        """Save an example configuration file.

        Args:
            output_path: Path where to save example config
        """
        example_config = {
            "name": "drivetest_analysis",
            "default_metric": "rsrp",
            "timezone": "${ANALYSIS_TZ:UTC}",
            "max_points": 50000,
            "output_dir": "outputs",
            "grid": {
                "enabled": True,
                "cell_size_meters": 100,
                "max_cells": 1500,
                "colorize_cells": True,
            },
            "thresholds": {
                "rsrp": [
                    {"min": -140, "max": -110, "color": "#ef4444"},
                    {"min": -110, "max": -95, "color": "#f59e0b"},
                    {"min": -95, "max": -80, "color": "#84cc16"},
                    {"min": -80, "max": -40, "color": "#22c55e"},
                ],
                "sinr": [
                    {"min": -20, "max": 0, "color": "#ef4444"},
                    {"min": 0, "max": 13, "color": "#f59e0b"},
                    {"min": 13, "max": 40, "color": "#22c55e"},
                ],
            },
        }

        with open(output_path, 'w') as f:
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved example configuration to {output_path}")


def _as_number(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
