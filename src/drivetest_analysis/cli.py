#!/usr/bin/env python3
"""
Drive-test selection analysis CLI

Runs one selection analysis over a telemetry log and writes the summary,
statistics, raw points and (optionally) grid outputs.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from .config_manager import AnalysisConfig, ConfigManager
from .engine.orchestrator import AnalysisSettings, prepare_shape, run_analysis
from .engine.point_filter import ALL_DAYS, AllHours, HourRange, SingleHour, TimeFilter
from .export.summary_exporter import SummaryExporter
from .geometry.models import parse_shape
from .geometry.wkt_codec import decode
from .utils.telemetry_loader import TelemetryLoader

logger = logging.getLogger(__name__)


def parse_hours(text: str):
    """Parse ``H`` or ``A-B`` into an hour selection."""
    text = text.strip().lower()
    if text in {"", "all"}:
        return AllHours()
    if '-' in text:
        start, end = text.split('-', 1)
        return HourRange(from_hour=int(start), to_hour=int(end))
    return SingleHour(hour=int(text))


def parse_days(text: str) -> List[int]:
    """Parse a comma separated weekday list (0=Monday)."""
    return [int(part) for part in text.split(',') if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive-test selection analysis - statistics, grid and time patterns for a drawn region",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyse RSRP inside a saved project polygon
  %(prog)s logs.csv --wkt project.wkt

  # Circle selection from JSON, SINR, 50 m grid
  %(prog)s logs.csv --shape circle.json --metric sinr --grid --cell-size 50

  # Night-time weekday traffic only
  %(prog)s logs.csv --wkt project.wkt --hours 22-4 --days 0,1,2,3,4
        """
    )

    parser.add_argument(
        'points',
        type=Path,
        help='Telemetry CSV/Excel file or directory of log files'
    )

    shape_group = parser.add_mutually_exclusive_group(required=True)
    shape_group.add_argument(
        '--wkt',
        type=Path,
        help='File containing POLYGON/MULTIPOLYGON WKT (first polygon is analysed)'
    )
    shape_group.add_argument(
        '--shape',
        type=Path,
        help='JSON file with a shape ({"kind": "polygon"|"rectangle"|"circle", ...})'
    )

    parser.add_argument('-c', '--config', type=Path, help='Analysis configuration YAML file')
    parser.add_argument('-m', '--metric', help='Metric to analyse (default: from config, rsrp)')
    parser.add_argument('--grid', action='store_true', help='Rasterize the selection into a grid')
    parser.add_argument('--cell-size', type=float, help='Grid cell size in meters')
    parser.add_argument('--max-cells', type=int, help='Maximum grid cells before the grid is skipped')
    parser.add_argument('--hours', help='Hour filter: H, A-B (wraps past midnight) or all')
    parser.add_argument('--days', help='Weekdays to keep, comma separated (0=Monday)')
    parser.add_argument('--timezone', help='Timezone for hour/weekday filters (default: UTC)')
    parser.add_argument('-o', '--output-dir', type=Path, help='Output directory (default: outputs)')

    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('-q', '--quiet', action='store_true', help='Minimal output (errors only)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    try:
        config = ConfigManager(args.config).load() if args.config else AnalysisConfig()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error loading configuration: {e}", file=sys.stderr)
        return 1

    settings = AnalysisSettings.from_config(config)
    if args.metric:
        settings.metric = args.metric
    if args.grid:
        settings.grid_enabled = True
    if args.cell_size is not None:
        if args.cell_size <= 0:
            print(f"❌ Error: --cell-size must be positive, got {args.cell_size}", file=sys.stderr)
            return 1
        settings.cell_size_meters = args.cell_size
    if args.max_cells is not None:
        if args.max_cells < 1:
            print(f"❌ Error: --max-cells must be at least 1, got {args.max_cells}", file=sys.stderr)
            return 1
        settings.max_cells = args.max_cells
    if args.timezone is not None:
        try:
            ZoneInfo(args.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            print(f"❌ Error: unknown timezone: {args.timezone}", file=sys.stderr)
            return 1
        settings.timezone = args.timezone

    try:
        if args.hours or args.days:
            settings.time_filter = TimeFilter(
                hours=parse_hours(args.hours or "all"),
                selected_days=parse_days(args.days) if args.days else ALL_DAYS,
            )
    except (ValueError, ValidationError) as e:
        print(f"❌ Error: invalid time filter: {e}", file=sys.stderr)
        return 1

    try:
        shape = _load_shape(args)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        print(f"❌ Error loading shape: {e}", file=sys.stderr)
        return 1

    try:
        points = TelemetryLoader(normalize_columns=True).load(args.points)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error loading telemetry: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"📊 Loaded {len(points)} points from {args.points}")

    summary = run_analysis(prepare_shape(shape), points, settings)

    exporter = SummaryExporter(args.output_dir or config.output_dir, timezone=settings.timezone)
    written = [
        exporter.export_summary_json(summary),
        exporter.export_stats_csv(summary, output_name="stats.csv"),
        exporter.export_raw_csv(summary, output_name="raw_points.csv"),
    ]
    if summary.grid is not None and not summary.grid.aborted:
        written.append(exporter.export_grid_geojson(summary))

    if not args.quiet:
        stats = summary.stats
        print(f"✅ {summary.shape_type}: {summary.total_count} points inside "
              f"({summary.area_sq_meters:,.0f} m²)")
        if stats.has_values:
            print(f"   {summary.metric}: mean={stats.mean:.2f} median={stats.median:.2f} "
                  f"min={stats.min:.2f} max={stats.max:.2f}")
        if summary.grid is not None and summary.grid.aborted:
            print(f"⚠️  Grid skipped: {summary.grid.candidate_cells} cells exceeds {summary.grid.max_cells}")
        for path in written:
            if path is not None:
                print(f"   wrote {path}")

    return 0


def _load_shape(args):
    if args.wkt:
        text = args.wkt.read_text()
        polygons = decode(text)
        if not polygons:
            raise ValueError(f"No usable polygon in {args.wkt}")
        if len(polygons) > 1:
            logger.warning(f"{args.wkt} holds {len(polygons)} polygons; analysing the first only")
        return polygons[0].to_shape()

    with open(args.shape) as f:
        data = json.load(f)
    return parse_shape(data)


if __name__ == "__main__":
    sys.exit(main())
