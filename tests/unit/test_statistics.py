"""
Unit tests for the statistics aggregator.
"""

import numpy as np
import pandas as pd
import pytest

from drivetest_analysis.engine import MetricStats, summarize, summarize_values


class TestSummarizeValues:
    """Test statistics over raw values."""

    def test_simple(self):
        """Test mean/median/min/max of a small sequence."""
        stats = summarize_values([1, 2, 3, 4])

        assert stats.count == 4
        assert stats.valid_count == 4
        assert stats.mean == pytest.approx(2.5)
        assert stats.median == pytest.approx(2.5)
        assert stats.min == 1
        assert stats.max == 4

    def test_odd_median(self):
        """Test median of an odd-length unsorted sequence."""
        assert summarize_values([9, 1, 5]).median == 5

    def test_empty(self):
        """Test no values gives zero count and absent statistics."""
        stats = summarize_values([])

        assert stats.count == 0
        assert stats.mean is None
        assert stats.median is None
        assert stats.min is None
        assert stats.max is None
        assert not stats.has_values

    def test_non_finite_ignored(self):
        """Test missing and non-numeric values don't contribute."""
        stats = summarize_values([1, None, "abc", float('nan'), np.inf, 3])

        assert stats.count == 6
        assert stats.valid_count == 2
        assert stats.mean == pytest.approx(2.0)

    def test_negative_and_zero_kept(self):
        """Test negative readings (dBm) and zeros are real values."""
        stats = summarize_values([-100, -90, 0])
        assert stats.valid_count == 3
        assert stats.min == -100
        assert stats.max == 0

    def test_to_dict_omits_absent(self):
        """Test absent statistics are omitted, not zeroed."""
        assert MetricStats(count=3).to_dict() == {'count': 3, 'valid_count': 0}
        data = summarize_values([2.0]).to_dict()
        assert data['mean'] == 2.0
        assert data['min'] == 2.0


class TestSummarize:
    """Test statistics over a point frame."""

    def test_metric_alias(self):
        """Test metric aliases resolve to the canonical column."""
        points = pd.DataFrame({'rsrp': [-80.0, -100.0, np.nan]})
        stats = summarize(points, 'LTE_RSRP')

        assert stats.count == 3
        assert stats.valid_count == 2
        assert stats.mean == pytest.approx(-90.0)

    def test_missing_column(self):
        """Test a metric absent from the data counts points but has no values."""
        points = pd.DataFrame({'rsrp': [-80.0, -100.0]})
        stats = summarize(points, 'sinr')

        assert stats.count == 2
        assert stats.valid_count == 0
        assert stats.mean is None
