"""Tests for the signal taxonomy — weight tiers, labels and dwell boosts."""

import pytest

from services.recommender.signals.taxonomy import (
    DWELL_BOOSTS,
    HIGH,
    LOW,
    MEDIUM,
    VERY_HIGH,
    WEIGHT_TIERS,
    boosted_weight,
    clamp_unit,
    dwell_boost,
    get_weight_label,
)


class TestWeightTiers:
    def test_four_fixed_tiers(self):
        assert WEIGHT_TIERS == {"LOW": 0.05, "MEDIUM": 0.10, "HIGH": 0.15, "VERY_HIGH": 0.20}

    @pytest.mark.parametrize("weight,label", [
        (LOW, "Low"),
        (MEDIUM, "Medium"),
        (HIGH, "High"),
        (VERY_HIGH, "Very High"),
        (0.12, "Medium"),
        (0.0, "Low"),
    ])
    def test_weight_label(self, weight, label):
        assert get_weight_label(weight) == label


class TestClampUnit:
    @pytest.mark.parametrize("value,expected", [(-0.5, 0.0), (0.4, 0.4), (1.7, 1.0)])
    def test_clamps_into_unit_interval(self, value, expected):
        assert clamp_unit(value) == expected


class TestDwellBoost:
    def test_thresholds_ordered_highest_first(self):
        thresholds = [t for t, _ in DWELL_BOOSTS]
        assert thresholds == sorted(thresholds, reverse=True)

    @pytest.mark.parametrize("dwell_ms,boost", [
        (0, 0.0),
        (29_999, 0.0),
        (30_000, 0.02),
        (60_000, 0.04),
        (120_000, 0.06),
        (300_000, 0.08),
        (900_000, 0.08),
    ])
    def test_boost_for_highest_crossed_threshold(self, dwell_ms, boost):
        assert dwell_boost(dwell_ms) == boost

    def test_boost_replaces_rather_than_accumulates(self):
        # 30s then 60s then 120s: result depends only on the final dwell time
        assert boosted_weight(LOW, 120_000) == pytest.approx(LOW + 0.06)
        assert boosted_weight(LOW, 120_000) != pytest.approx(LOW + 0.02 + 0.04 + 0.06)

    def test_boost_capped_at_very_high(self):
        assert boosted_weight(HIGH, 300_000) == VERY_HIGH
