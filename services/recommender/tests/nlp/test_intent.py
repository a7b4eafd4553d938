"""Tests for the keyword intent classifier — nlp/intent.py."""

import pytest

from services.recommender.nlp.intent import (
    DEFAULT_CONFIDENCE,
    INTENT_TYPES,
    KEYWORD_CONFIDENCE,
    PROFILE_CONFIDENCE,
    IntentContext,
    classify_from_profile,
    classify_intent,
    extract_entities,
)
from services.recommender.profile.types import Profile


class TestClassifyIntent:
    @pytest.mark.parametrize("query,intent_type", [
        ("my blender is leaking", "support"),
        ("X5 vs A3500", "comparison"),
        ("blender for dysphagia puree diet", "medical"),
        ("easy to use blender for arthritis", "accessibility"),
        ("wedding gift ideas", "gift"),
        ("wholesale pricing for my restaurant", "partnership"),
        ("how much does it cost", "price"),
        ("what is the wattage", "specs"),
        ("is it worth it", "reviews"),
        ("what is the best blender", "recommendation"),
        ("green smoothies every morning", "use-case"),
    ])
    def test_keyword_intents(self, query, intent_type):
        intent = classify_intent(query)
        assert intent.intent_type == intent_type
        assert intent.confidence == KEYWORD_CONFIDENCE

    def test_support_beats_comparison(self):
        assert classify_intent("compare warranty repair options").intent_type == "support"

    def test_two_products_without_cues_is_comparison(self):
        intent = classify_intent("X5 and A3500")
        assert intent.intent_type == "comparison"
        assert intent.journey_stage == "comparing"

    def test_one_product_is_product_detail(self):
        assert classify_intent("tell me about the X5").intent_type == "product-detail"

    def test_no_match_is_discovery(self):
        intent = classify_intent("hello there")
        assert intent.intent_type == "discovery"
        assert intent.confidence == DEFAULT_CONFIDENCE

    def test_empty_query(self):
        assert classify_intent("").intent_type == "discovery"

    def test_all_results_use_known_types(self):
        for query in ("leak", "vs", "gift", "price", "spec", "best", "soup", "x5", "zzz"):
            assert classify_intent(query).intent_type in INTENT_TYPES


class TestExtractEntities:
    def test_products_and_terms(self):
        entities = extract_entities("X5 for kale smoothies and self-cleaning, quiet please")
        assert entities["products"] == ["X5"]
        assert entities["use_cases"] == ["smoothies"]
        assert "self-cleaning" in entities["features"]
        assert "noise level" in entities["features"]
        assert entities["ingredients"] == ["kale"]

    def test_no_entities(self):
        assert extract_entities("hello") == {
            "products": [], "use_cases": [], "features": [], "ingredients": [],
        }


class TestClassifyFromProfile:
    def test_gift_buyer(self):
        intent = classify_from_profile(Profile(segments=["gift_buyer"], products_considered=["X5", "X4"]))
        assert intent.intent_type == "gift"
        assert intent.confidence == PROFILE_CONFIDENCE

    def test_two_products_is_comparison(self):
        intent = classify_from_profile(Profile(products_considered=["X5", "X4"]))
        assert intent.intent_type == "comparison"
        assert intent.entities["products"] == ["X5", "X4"]

    def test_high_readiness_is_recommendation(self):
        assert classify_from_profile(Profile(purchase_readiness="high")).intent_type == "recommendation"

    def test_one_product_is_product_detail(self):
        assert classify_from_profile(Profile(products_considered=["X5"])).intent_type == "product-detail"

    def test_empty_profile_is_discovery(self):
        intent = classify_from_profile(Profile(use_cases=["soups"]))
        assert intent.intent_type == "discovery"
        assert intent.entities["use_cases"] == ["soups"]


class TestIntentContext:
    def test_to_dict_is_camel_case(self):
        data = IntentContext(
            intent_type="comparison",
            entities={"products": ["X5"], "use_cases": ["soups"], "features": [], "ingredients": []},
        ).to_dict()
        assert data["intentType"] == "comparison"
        assert data["entities"]["useCases"] == ["soups"]
        assert data["journeyStage"] == "exploring"
