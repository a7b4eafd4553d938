"""Tests for static fallback layouts — generation/fallbacks.py."""

import pytest

from services.recommender.generation.blocks import BlockType as B
from services.recommender.generation.fallbacks import (
    FALLBACK_BLOCKS,
    FALLBACK_CONFIDENCE,
    fallback_blocks,
    fallback_proposal,
)
from services.recommender.nlp.intent import INTENT_TYPES, IntentContext


class TestFallbackBlocks:
    def test_every_intent_has_a_layout(self):
        assert set(FALLBACK_BLOCKS) == set(INTENT_TYPES)

    @pytest.mark.parametrize("intent_type", INTENT_TYPES)
    def test_every_layout_ends_with_follow_up(self, intent_type):
        assert fallback_blocks(intent_type)[-1] is B.FOLLOW_UP

    def test_unknown_intent_uses_discovery(self):
        assert fallback_blocks("astrology") == list(FALLBACK_BLOCKS["discovery"])
        assert fallback_blocks(None) == list(FALLBACK_BLOCKS["discovery"])

    def test_returns_a_copy(self):
        blocks = fallback_blocks("support")
        blocks.append(B.HERO)
        assert B.HERO not in fallback_blocks("support")


class TestFallbackProposal:
    def test_conservative_confidence(self):
        proposal = fallback_proposal(IntentContext(intent_type="comparison"))
        assert proposal.confidence == FALLBACK_CONFIDENCE
        assert proposal.confidence.product_match < 0.5

    def test_blocks_and_rationale(self):
        proposal = fallback_proposal(IntentContext(intent_type="support", journey_stage="deciding"))
        assert [b.type for b in proposal.blocks] == [B.SUPPORT_TRIAGE, B.FAQ, B.FOLLOW_UP]
        assert proposal.blocks[0].rationale == "Default block for support intent"
        assert proposal.user_journey.current_stage == "deciding"
        assert proposal.reasoning.final_decision == "Using fallback layout due to reasoning engine error"

    def test_no_intent(self):
        proposal = fallback_proposal(None)
        assert [b.type for b in proposal.blocks] == list(FALLBACK_BLOCKS["discovery"])
        assert proposal.user_journey.current_stage == "exploring"

    def test_unknown_intent_type(self):
        proposal = fallback_proposal(IntentContext(intent_type="astrology"))
        assert proposal.blocks[0].rationale == "Default block for discovery intent"
