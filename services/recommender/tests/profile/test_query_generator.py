"""Tests for the synthetic query generator — profile/query_generator.py."""

import pytest

from services.recommender.profile.engine import ProfileEngine
from services.recommender.profile.query_generator import (
    MIN_QUERY_CONFIDENCE,
    fill_template,
    generate_query,
    query_complexity,
    select_template,
)
from services.recommender.profile.types import Profile
from services.recommender.tests.helpers.factories import baby_recipe_log


def _profile(**kwargs) -> Profile:
    return Profile(**kwargs)


class TestGenerateQuery:
    def test_below_threshold_returns_none(self):
        assert generate_query(_profile(confidence_score=MIN_QUERY_CONFIDENCE - 0.01)) is None

    def test_baby_food_visitor(self):
        engine = ProfileEngine()
        signals = baby_recipe_log()
        for signal in signals:
            engine.add_signal(signal)

        result = generate_query(engine.profile, engine.signals)

        assert result is not None
        assert result.template == "simple"
        assert result.query == "Make homemade baby food and make smooth purees. What are my options?"
        assert result.complexity == "Minimal"

    def test_gift_template(self):
        profile = _profile(
            segments=["gift_buyer"],
            occasion="gift",
            use_cases=["gift"],
            products_considered=["X5"],
            confidence_score=0.8,
        )
        result = generate_query(profile)
        assert result.template == "gift"
        assert result.query.startswith("I'm looking for a blender as a gift")
        assert "I've been looking at the X5" in result.query

    def test_falls_back_to_search_text_for_intent(self):
        profile = _profile(confidence_score=0.5)
        signals = [
            *baby_recipe_log()[3:],
        ]
        result = generate_query(profile, signals)
        assert result.components["intent"] == "find information about baby food blender"


class TestSelectTemplate:
    @pytest.mark.parametrize("kwargs,template", [
        ({"segments": ["gift_buyer", "existing_owner"]}, "gift"),
        ({"segments": ["upgrade_intent"]}, "upgrader"),
        ({"segments": ["comparison_shopper"], "products_considered": ["X5", "X4"]}, "comparison"),
        ({"segments": ["comparison_shopper"], "products_considered": ["X5"],
          "confidence_score": 0.6}, "use_case"),
        ({"confidence_score": 0.5}, "simple"),
        ({"confidence_score": 0.9}, "use_case"),
    ])
    def test_first_match_wins(self, kwargs, template):
        assert select_template(_profile(**kwargs)) == template


class TestFillTemplate:
    def test_missing_components_are_dropped_cleanly(self):
        query = fill_template("use_case", {
            "intent": "make smoothies",
            "context": None,
            "products": None,
            "constraints": None,
            "action": "What do you recommend?",
        })
        assert query == "I want to make smoothies. What do you recommend?"

    def test_statement_gets_period(self):
        query = fill_template("gift", {
            "intent": None,
            "context": "as a gift",
            "products": None,
            "constraints": "I'm on a budget",
            "action": None,
        })
        assert query == "I'm looking for a blender as a gift. I'm on a budget."


class TestComplexity:
    @pytest.mark.parametrize("confidence,label", [
        (0.5, "Minimal"),
        (0.56, "Standard"),
        (0.71, "Rich"),
        (0.86, "Comprehensive"),
    ])
    def test_bands(self, confidence, label):
        assert query_complexity(confidence) == label
