"""
Unit tests for the metric registry.
"""

import pytest

from drivetest_analysis.utils.metrics import (
    FALLBACK_COLOR,
    MetricThreshold,
    metric_label,
    normalize_metric_key,
    pick_color,
)


@pytest.mark.parametrize("name,expected", [
    (None, 'rsrp'),
    ('', 'rsrp'),
    ('RSRP', 'rsrp'),
    ('lte_rsrp', 'rsrp'),
    ('dl-throughput', 'dl_throughput'),
    ('DL_TPT', 'dl_throughput'),
    ('bler', 'lte_bler'),
    ('Custom_KPI', 'custom_kpi'),
])
def test_normalize_metric_key(name, expected):
    """Test aliases resolve to canonical keys."""
    assert normalize_metric_key(name) == expected


def test_metric_label():
    """Test labels include units where defined."""
    assert metric_label('rsrp') == 'RSRP (dBm)'
    assert metric_label('mos') == 'MOS'
    assert metric_label('custom') == 'custom'


class TestPickColor:
    """Test threshold colour selection."""

    def test_range_bands(self):
        """Test the first matching range band wins."""
        thresholds = {
            'rsrp': [
                {'min': -140, 'max': -100, 'color': '#red'},
                {'min': -100, 'max': -40, 'color': '#green'},
            ]
        }
        assert pick_color(-120, 'rsrp', thresholds) == '#red'
        assert pick_color(-100, 'lte_rsrp', thresholds) == '#red'
        assert pick_color(-70, 'rsrp', thresholds) == '#green'

    def test_value_band(self):
        """Test value bands match values at or below the value."""
        thresholds = {'sinr': [MetricThreshold(value=0, color='#bad'), MetricThreshold(value=50, color='#ok')]}
        assert pick_color(-3, 'sinr', thresholds) == '#bad'
        assert pick_color(0, 'sinr', thresholds) == '#bad'
        assert pick_color(10, 'sinr', thresholds) == '#ok'

    def test_fallback(self):
        """Test unmatched values and unknown metrics use the fallback colour."""
        thresholds = {'rsrp': [{'min': -100, 'max': -90, 'color': '#mid'}]}
        assert pick_color(-50, 'rsrp', thresholds) == FALLBACK_COLOR
        assert pick_color(5, 'sinr', thresholds) == FALLBACK_COLOR
        assert pick_color(5, 'sinr', None) == FALLBACK_COLOR
