"""Tests for dual-confidence reconciliation — generation/confidence.py."""

import pytest

from services.recommender.generation.confidence import (
    ConfidenceSources,
    is_comparison_query,
    reconcile_confidence,
)
from services.recommender.generation.schemas import Confidence


class TestConfidenceSources:
    def test_no_sources_is_one(self):
        assert ConfidenceSources().external() == 1.0

    def test_minimum_of_available(self):
        assert ConfidenceSources(intent_classifier=0.8, profile=0.3).external() == 0.3

    def test_values_clamped(self):
        assert ConfidenceSources(signal_interpretation=-1.0).external() == 0.0


class TestIsComparisonQuery:
    @pytest.mark.parametrize("query,expected", [
        ("X5 vs X4", True),
        ("which is better for soup", True),
        ("best blender for smoothies", True),
        ("X5 or A3500 for a family", True),
        ("how do I clean my blender", False),
        ("", False),
        (None, False),
    ])
    def test_detection(self, query, expected):
        assert is_comparison_query(query) is expected


class TestReconcile:
    def test_without_sources_reasoning_values_kept(self):
        reasoning = Confidence(intent=0.9, product_match=0.85)
        assert reconcile_confidence(reasoning) == reasoning

    def test_external_pulls_down(self):
        result = reconcile_confidence(
            Confidence(intent=0.9, product_match=0.9),
            ConfidenceSources(intent_classifier=0.6),
        )
        assert result == Confidence(intent=0.6, product_match=0.6)

    def test_floors_stop_external_pull(self):
        result = reconcile_confidence(
            Confidence(intent=0.9, product_match=0.9),
            ConfidenceSources(profile=0.1),
        )
        assert result.intent == 0.5
        assert result.product_match == 0.4

    def test_explicit_comparison_raises_product_match_floor(self):
        result = reconcile_confidence(
            Confidence(intent=0.9, product_match=0.9),
            ConfidenceSources(profile=0.1),
            query="X5 vs X4",
        )
        assert result.product_match == 0.55

    def test_never_raises_reasoning_values(self):
        reasoning = Confidence(intent=0.2, product_match=0.1)
        result = reconcile_confidence(reasoning, ConfidenceSources(profile=0.9), query="X5 vs X4")
        assert result == reasoning
