"""
Static per-intent fallback layouts.

Used when the reasoning collaborator times out, errors, or returns a
payload that fails validation. The whole proposal is replaced, never
partially salvaged. Confidence is deliberately conservative
(intent 0.6, productMatch 0.4) so the fallback never pushes a single
product.

Unknown intent types use the discovery layout.
"""

from __future__ import annotations

from services.recommender.generation.blocks import BlockType as B
from services.recommender.generation.schemas import (
    Confidence,
    ProposedBlock,
    ReasoningProposal,
    ReasoningTrace,
    UserJourney,
)
from services.recommender.nlp.intent import DEFAULT_INTENT, IntentContext

FALLBACK_CONFIDENCE = Confidence(intent=0.6, product_match=0.4)

FALLBACK_FOLLOW_UPS: tuple[str, ...] = (
    "Tell me more about Vitamix blenders",
    "What can I make?",
    "Compare models",
)

FALLBACK_BLOCKS: dict[str, tuple[B, ...]] = {
    "discovery": (B.HERO, B.USE_CASE_CARDS, B.PRODUCT_CARDS, B.FOLLOW_UP),
    "comparison": (B.HERO, B.COMPARISON_TABLE, B.PRODUCT_CARDS, B.FOLLOW_UP),
    "product-detail": (B.PRODUCT_RECOMMENDATION, B.SPECS_TABLE, B.RECIPE_CARDS, B.FOLLOW_UP),
    "use-case": (B.HERO, B.FEATURE_HIGHLIGHTS, B.RECIPE_CARDS, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP),
    "specs": (B.HERO, B.SPECS_TABLE, B.COMPARISON_TABLE, B.FOLLOW_UP),
    "reviews": (B.HERO, B.TESTIMONIALS, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP),
    "price": (B.HERO, B.BUDGET_BREAKDOWN, B.PRODUCT_CARDS, B.FOLLOW_UP),
    "recommendation": (B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP),
    "support": (B.SUPPORT_TRIAGE, B.FAQ, B.FOLLOW_UP),
    "partnership": (B.HERO, B.FEATURE_HIGHLIGHTS, B.TESTIMONIALS, B.FOLLOW_UP),
    "gift": (B.HERO, B.PRODUCT_RECOMMENDATION, B.PRODUCT_CARDS, B.FOLLOW_UP),
    "medical": (B.EMPATHY_HERO, B.ACCESSIBILITY_SPECS, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP),
    "accessibility": (B.EMPATHY_HERO, B.ACCESSIBILITY_SPECS, B.PRODUCT_RECOMMENDATION, B.FOLLOW_UP),
}


def fallback_blocks(intent_type: str | None) -> list[B]:
    """Default layout for an intent type; unknown types get the discovery layout."""
    return list(FALLBACK_BLOCKS.get(intent_type or DEFAULT_INTENT, FALLBACK_BLOCKS[DEFAULT_INTENT]))


def fallback_proposal(intent: IntentContext | None) -> ReasoningProposal:
    """Build a proposal-shaped fallback so it flows through the same gating code."""
    intent_type = intent.intent_type if intent else DEFAULT_INTENT
    if intent_type not in FALLBACK_BLOCKS:
        intent_type = DEFAULT_INTENT
    blocks = fallback_blocks(intent_type)

    return ReasoningProposal(
        blocks=[
            ProposedBlock(
                type=block,
                rationale=f"Default block for {intent_type} intent",
                content_guidance=f"Generate appropriate {block.value} content",
            )
            for block in blocks
        ],
        reasoning=ReasoningTrace(
            intent_analysis=f"User intent classified as {intent_type}",
            user_needs_assessment="Using default assessment based on intent classification",
            block_selection_rationale=[
                {
                    "blockType": block.value,
                    "reason": "Default selection for intent type",
                    "contentFocus": "Standard content approach",
                }
                for block in blocks
            ],
            alternatives_considered=["Fallback mode - no alternatives analyzed"],
            final_decision="Using fallback layout due to reasoning engine error",
        ),
        user_journey=UserJourney(
            current_stage=intent.journey_stage if intent else "exploring",
            next_best_action="continue_exploration",
            suggested_follow_ups=list(FALLBACK_FOLLOW_UPS),
        ),
        confidence=FALLBACK_CONFIDENCE.model_copy(),
    )
