"""Tests for the rules-based signal interpretation — signals/interpreter.py."""

import pytest

from services.recommender.signals.interpreter import (
    BASE_CONFIDENCE,
    INTERPRETED_CONFIDENCE,
    PER_SIGNAL_CONFIDENCE,
    interpret_signals,
    products_considered,
)
from services.recommender.tests.helpers.factories import (
    baby_recipe_log,
    click,
    make_signal,
    page_view,
    search,
)


class TestInterpretSignals:
    def test_empty_log_has_no_interpretation(self):
        assert interpret_signals([]) is None

    def test_baby_food_search(self):
        result = interpret_signals(baby_recipe_log())
        assert result.primary_intent == "Make homemade baby food"
        assert result.use_cases == ["baby_food", "purees"]
        assert result.journey_stage == "exploring"
        assert result.intent_type == "discovery"
        assert result.confidence == pytest.approx(INTERPRETED_CONFIDENCE)

    def test_first_matching_need_wins(self):
        result = interpret_signals([make_signal(search("smoothie for my picky kids"))])
        assert result.use_cases == ["kids_recipes", "family_meals"]

    def test_two_products_means_comparing(self):
        result = interpret_signals([make_signal(search("x5 vs a3500"))])
        assert result.products == ["X5", "A3500"]
        assert result.journey_stage == "comparing"
        assert result.intent_type == "comparison"
        assert result.confidence == pytest.approx(INTERPRETED_CONFIDENCE)

    def test_add_to_cart_means_deciding(self):
        result = interpret_signals([
            make_signal(search("x5 vs a3500")),
            make_signal(click(text="Add to cart")),
        ])
        assert result.journey_stage == "deciding"

    @pytest.mark.parametrize("count", [1, 3, 10])
    def test_weak_evidence_scales_with_log_and_caps(self, count):
        signals = [make_signal(page_view("/about-us")) for _ in range(count)]
        result = interpret_signals(signals)
        expected = min(INTERPRETED_CONFIDENCE, BASE_CONFIDENCE + count * PER_SIGNAL_CONFIDENCE)
        assert result.confidence == pytest.approx(expected)
        assert result.use_cases == []

    def test_to_dict_is_camel_case(self):
        data = interpret_signals(baby_recipe_log()).to_dict()
        assert data["primaryIntent"] == "Make homemade baby food"
        assert data["journeyStage"] == "exploring"
        assert 0.0 <= data["confidence"] <= 1.0


class TestProductsConsidered:
    def test_first_seen_order_without_duplicates(self):
        signals = [
            make_signal(page_view("/shop/blenders/ascent-x5")),
            make_signal(search("x5 vs a3500")),
        ]
        assert products_considered(signals) == ["X5", "A3500"]
