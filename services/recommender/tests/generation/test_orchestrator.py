"""
Unit tests for the confidence-gated orchestrator — generation/orchestrator.py.

Covers:
- productMatch bands: product-recommendation substitution, best-pick removal
- Low intent + productMatch discovery insertion
- Excluded removal and required insertion at hinted positions
- Required blocks the confidence band forbids are skipped, not inserted
- Structural invariants on every output
- Static fallback path
- Every change recorded in actions
"""

import pytest

from services.recommender.generation.blocks import HERO_LIKE, BlockType as B
from services.recommender.generation.confidence import ConfidenceSources
from services.recommender.generation.orchestrator import (
    apply_thresholds,
    finalize,
    forbidden_blocks,
    insertion_index,
)
from services.recommender.generation.schemas import Confidence, parse_reasoning_payload
from services.recommender.nlp.intent import IntentContext, classify_intent
from services.recommender.rules.engine import evaluate_rules
from services.recommender.rules.types import MergedBlockRequirements, SequenceHint
from services.recommender.tests.helpers.factories import reasoning_payload


def _proposal(blocks, intent=0.9, product_match=0.9):
    return parse_reasoning_payload(reasoning_payload(blocks=blocks, intent=intent, product_match=product_match))


def _assert_structure(result):
    blocks = result.block_types
    assert [b.priority for b in result.selected_blocks] == list(range(1, len(blocks) + 1))
    assert blocks.count(B.FOLLOW_UP) == 1 and blocks[-1] is B.FOLLOW_UP
    for left, right in zip(blocks, blocks[1:]):
        assert not (left in HERO_LIKE and right in HERO_LIKE)


# ---------------------------------------------------------------------------
# Threshold gating
# ---------------------------------------------------------------------------

class TestApplyThresholds:
    def test_high_product_match_keeps_recommendation(self):
        actions = []
        blocks = [B.HERO, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP]
        assert apply_thresholds(blocks, Confidence(intent=0.9, product_match=0.8), actions) == blocks
        assert actions == []

    def test_mid_product_match_substitutes_after_hero(self):
        actions = []
        result = apply_thresholds(
            [B.HERO, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP],
            Confidence(intent=0.9, product_match=0.6),
            actions,
        )
        assert result == [B.HERO, B.COMPARISON_TABLE, B.PRODUCT_CARDS, B.FOLLOW_UP]
        assert actions[0] == "Removed product-recommendation (productMatch 0.60 < 0.70)"
        assert len(actions) == 3

    def test_substitution_skips_blocks_already_present(self):
        result = apply_thresholds(
            [B.HERO, B.PRODUCT_CARDS, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP],
            Confidence(intent=0.9, product_match=0.6),
            [],
        )
        assert result.count(B.PRODUCT_CARDS) == 1
        assert B.COMPARISON_TABLE in result

    def test_substitution_without_hero_goes_near_top(self):
        result = apply_thresholds(
            [B.FAQ, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP],
            Confidence(intent=0.9, product_match=0.6),
            [],
        )
        assert result == [B.FAQ, B.COMPARISON_TABLE, B.PRODUCT_CARDS, B.FOLLOW_UP]

    def test_low_product_match_removes_best_pick(self):
        actions = []
        result = apply_thresholds(
            [B.HERO, B.BEST_PICK, B.COMPARISON_TABLE, B.FOLLOW_UP],
            Confidence(intent=0.9, product_match=0.45),
            actions,
        )
        assert result == [B.HERO, B.COMPARISON_TABLE, B.FOLLOW_UP]
        assert actions == ["Removed best-pick (productMatch 0.45 < 0.50)"]

    def test_very_low_product_match_no_substitution(self):
        result = apply_thresholds(
            [B.HERO, B.PRODUCT_RECOMMENDATION, B.FEATURE_HIGHLIGHTS, B.FOLLOW_UP],
            Confidence(intent=0.9, product_match=0.2),
            [],
        )
        assert result == [B.HERO, B.FEATURE_HIGHLIGHTS, B.FOLLOW_UP]

    def test_low_confidence_inserts_discovery_after_hero(self):
        actions = []
        result = apply_thresholds(
            [B.HERO, B.PRODUCT_RECOMMENDATION, B.BEST_PICK, B.FOLLOW_UP],
            Confidence(intent=0.3, product_match=0.3),
            actions,
        )
        assert result == [B.HERO, B.USE_CASE_CARDS, B.FOLLOW_UP]
        assert actions[-1].startswith("Inserted use-case-cards for low confidence")

    def test_low_confidence_with_discovery_block_present(self):
        blocks = [B.HERO, B.FEATURE_HIGHLIGHTS, B.FOLLOW_UP]
        assert apply_thresholds(blocks, Confidence(intent=0.3, product_match=0.3), []) == blocks

    @pytest.mark.parametrize("pm,expected", [
        (0.9, set()),
        (0.6, {B.PRODUCT_RECOMMENDATION}),
        (0.4, {B.PRODUCT_RECOMMENDATION, B.BEST_PICK}),
    ])
    def test_forbidden_blocks(self, pm, expected):
        assert forbidden_blocks(Confidence(intent=0.9, product_match=pm)) == expected


# ---------------------------------------------------------------------------
# Insertion positions
# ---------------------------------------------------------------------------

class TestInsertionIndex:
    def _req(self, *hints):
        return MergedBlockRequirements(sequence_hints=list(hints))

    def test_early_goes_after_hero(self):
        blocks = [B.HERO, B.FAQ, B.FOLLOW_UP]
        req = self._req(SequenceHint(B.QUICK_ANSWER, "early"))
        assert insertion_index(blocks, B.QUICK_ANSWER, req) == 1

    def test_early_without_hero_goes_first(self):
        req = self._req(SequenceHint(B.QUICK_ANSWER, "early"))
        assert insertion_index([B.FAQ, B.FOLLOW_UP], B.QUICK_ANSWER, req) == 0

    def test_early_hero_like_goes_first(self):
        req = self._req(SequenceHint(B.HERO, "early"))
        assert insertion_index([B.BEST_PICK, B.FOLLOW_UP], B.HERO, req) == 0

    def test_after_anchor_wins_over_early(self):
        blocks = [B.HERO, B.COMPARISON_TABLE, B.FOLLOW_UP]
        req = self._req(SequenceHint(B.BEST_PICK, "early", after=B.HERO))
        assert insertion_index(blocks, B.BEST_PICK, req) == 1

    def test_late_goes_before_follow_up(self):
        req = self._req(SequenceHint(B.RECIPE_CARDS, "late"))
        assert insertion_index([B.HERO, B.FAQ, B.FOLLOW_UP], B.RECIPE_CARDS, req) == 2

    def test_after_missing_anchor_appends(self):
        req = self._req(SequenceHint(B.COMPARISON_TABLE, "middle", after=B.BEST_PICK))
        assert insertion_index([B.HERO, B.FOLLOW_UP], B.COMPARISON_TABLE, req) == 2

    def test_no_hint_goes_before_follow_up(self):
        assert insertion_index([B.HERO, B.FAQ, B.FOLLOW_UP], B.TESTIMONIALS, self._req()) == 2

    def test_no_hint_no_follow_up_goes_after_hero(self):
        assert insertion_index([B.HERO, B.FAQ], B.TESTIMONIALS, self._req()) == 1


# ---------------------------------------------------------------------------
# finalize
# ---------------------------------------------------------------------------

class TestFinalize:
    def test_comparison_query_with_confident_proposal(self):
        query = "X5 vs X4"
        intent = classify_intent(query)
        result = finalize(
            evaluate_rules(query, intent),
            _proposal(["hero", "product-recommendation", "follow-up"]),
            intent=intent,
            sources=ConfidenceSources(intent_classifier=intent.confidence),
            query=query,
        )
        assert result.source == "reasoning"
        assert result.confidence == Confidence(intent=0.75, product_match=0.75)
        assert result.block_types == [
            B.HERO,
            B.FEATURE_HIGHLIGHTS,
            B.BEST_PICK,
            B.COMPARISON_TABLE,
            B.PRODUCT_RECOMMENDATION,
            B.FOLLOW_UP,
        ]
        _assert_structure(result)

    def test_support_removes_excluded_blocks(self):
        query = "my blender is leaking"
        result = finalize(
            evaluate_rules(query, classify_intent(query)),
            _proposal(["hero", "product-cards", "faq", "follow-up"]),
            query=query,
        )
        assert B.PRODUCT_CARDS not in result.block_types
        assert B.SUPPORT_TRIAGE in result.block_types
        assert "Removed product-cards (excluded by rules)" in result.actions
        _assert_structure(result)

    def test_forbidden_required_block_is_skipped(self):
        requirements = MergedBlockRequirements(
            required=[B.BEST_PICK, B.FOLLOW_UP],
            sequence_hints=[SequenceHint(B.BEST_PICK, "early", after=B.HERO)],
        )
        result = finalize(requirements, _proposal(["hero", "faq", "follow-up"], product_match=0.45))
        assert B.BEST_PICK not in result.block_types
        assert "Skipped required best-pick (not allowed at current confidence)" in result.actions

    def test_inserted_blocks_get_rule_rationale(self):
        requirements = MergedBlockRequirements(required=[B.FAQ, B.FOLLOW_UP])
        result = finalize(requirements, _proposal(["hero", "follow-up"]))
        by_type = {s.type: s for s in result.selected_blocks}
        assert by_type[B.FAQ].rationale == "Required by triggered rules"
        assert by_type[B.HERO].rationale == "because hero"
        assert "Inserted required faq at position 2" in result.actions

    def test_separator_between_hero_like_blocks(self):
        result = finalize(
            MergedBlockRequirements(),
            _proposal(["hero", "product-recommendation", "follow-up"]),
        )
        assert result.block_types == [B.HERO, B.FEATURE_HIGHLIGHTS, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP]
        separator = result.selected_blocks[1]
        assert separator.rationale == "Inserted to satisfy page constraints"

    def test_missing_follow_up_appended(self):
        result = finalize(MergedBlockRequirements(), _proposal(["hero", "faq"]))
        assert result.block_types[-1] is B.FOLLOW_UP
        assert "Appended missing follow-up block" in result.actions

    def test_reconciliation_recorded(self):
        result = finalize(
            MergedBlockRequirements(),
            _proposal(["hero", "follow-up"], intent=0.9, product_match=0.9),
            sources=ConfidenceSources(profile=0.6),
        )
        assert result.confidence == Confidence(intent=0.6, product_match=0.6)
        assert result.actions[0].startswith("Reconciled confidence")

    def test_proposal_products_and_journey_carried(self):
        proposal = parse_reasoning_payload(reasoning_payload(
            selectedProducts=[{"id": "x5", "isPrimary": True}],
        ))
        result = finalize(MergedBlockRequirements(), proposal)
        assert result.selected_products[0].id == "x5"
        assert result.user_journey.suggested_follow_ups == ["Compare models"]


class TestFinalizeFallback:
    def test_support_fallback(self):
        query = "my blender is leaking"
        intent = classify_intent(query)
        result = finalize(evaluate_rules(query, intent), None, intent=intent, query=query)
        assert result.source == "fallback"
        assert result.block_types == [B.SUPPORT_TRIAGE, B.FAQ, B.FOLLOW_UP]
        assert result.confidence == Confidence(intent=0.6, product_match=0.4)
        assert result.actions[0] == "Using static fallback layout for support intent"

    def test_recommendation_fallback_never_pushes_single_product(self):
        intent = IntentContext(intent_type="recommendation")
        result = finalize(MergedBlockRequirements(), None, intent=intent)
        assert B.PRODUCT_RECOMMENDATION not in result.block_types
        assert result.block_types == [B.COMPARISON_TABLE, B.PRODUCT_CARDS, B.FOLLOW_UP]

    def test_fallback_still_removes_excluded(self):
        requirements = MergedBlockRequirements(excluded=[B.PRODUCT_CARDS])
        result = finalize(requirements, None, intent=IntentContext(intent_type="discovery"))
        assert B.PRODUCT_CARDS not in result.block_types
        _assert_structure(result)

    def test_fallback_without_intent(self):
        result = finalize(MergedBlockRequirements(), None)
        assert result.actions[0] == "Using static fallback layout for discovery intent"
        _assert_structure(result)
