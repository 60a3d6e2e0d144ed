"""
Shared fixtures for drive-test analysis tests.
"""

import numpy as np
import pandas as pd
import pytest

from drivetest_analysis.geometry import Coordinate, RectangleShape


def epoch_ms(text: str) -> int:
    """Epoch milliseconds for a UTC timestamp string."""
    return int(pd.Timestamp(text, tz="UTC").value // 1_000_000)


@pytest.fixture
def uniform_points():
    """1000 points spread uniformly over a 1x1 degree square."""
    rng = np.random.default_rng(42)
    n = 1000
    return pd.DataFrame({
        'latitude': rng.uniform(0.0, 1.0, n),
        'longitude': rng.uniform(0.0, 1.0, n),
        'timestamp_ms': [epoch_ms("2024-01-01 00:00") + int(h) * 3_600_000 for h in rng.integers(0, 24 * 7, n)],
        'rsrp': rng.uniform(-120.0, -70.0, n),
        'sinr': rng.uniform(-5.0, 25.0, n),
        'carrier': rng.choice(['CarrierA', 'CarrierB'], n),
    })


@pytest.fixture
def central_quarter():
    """Rectangle covering the central quarter of the unit square."""
    return RectangleShape(
        north_east=Coordinate(lat=0.75, lng=0.75),
        south_west=Coordinate(lat=0.25, lng=0.25),
    )
