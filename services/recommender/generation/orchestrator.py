"""
Confidence-gated orchestrator — the only writer of the final block list.

finalize() combines the rule engine's MergedBlockRequirements with the
reasoning collaborator's validated proposal (or the static fallback):

  1. Reconcile dual confidence against external sources (see confidence.py)
  2. Threshold gating on productMatch:
       < 0.70  drop product-recommendation; if >= 0.35 substitute
               comparison-table + product-cards after the last hero / best-pick
       < 0.50  drop best-pick
       intent and productMatch both < 0.35 with no discovery block:
               insert use-case-cards after the hero
  3. Rule enforcement: drop excluded blocks, insert missing required blocks
     at their hinted position (never a block the confidence band forbids)
  4. Structure: separators between hero-like neighbours, one trailing
     follow-up, dense priorities

Every change is appended to `actions` and logged, in order.

The fallback path skips confidence reconciliation and required-block
insertion; it still goes through gating, exclusions and structure.
"""

from __future__ import annotations

import logging

from services.recommender.generation.blocks import (
    DISCOVERY_BLOCKS,
    HERO_LIKE,
    BlockType,
)
from services.recommender.generation.confidence import ConfidenceSources, reconcile_confidence
from services.recommender.generation.fallbacks import fallback_proposal
from services.recommender.generation.schemas import (
    BlockSelection,
    Confidence,
    ReasoningProposal,
    ReasoningResult,
)
from services.recommender.generation.structure import enforce_structure
from services.recommender.nlp.intent import IntentContext
from services.recommender.rules.types import MergedBlockRequirements

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Confidence bands
# ---------------------------------------------------------------------------

SINGLE_PRODUCT_THRESHOLD = 0.70
BEST_PICK_THRESHOLD = 0.50
LOW_CONFIDENCE_THRESHOLD = 0.35

SUBSTITUTE_BLOCKS: tuple[BlockType, ...] = (BlockType.COMPARISON_TABLE, BlockType.PRODUCT_CARDS)
DISCOVERY_INSERT = BlockType.USE_CASE_CARDS


def forbidden_blocks(confidence: Confidence) -> set[BlockType]:
    """Blocks the confidence band does not allow on the page."""
    forbidden: set[BlockType] = set()
    if confidence.product_match < SINGLE_PRODUCT_THRESHOLD:
        forbidden.add(BlockType.PRODUCT_RECOMMENDATION)
    if confidence.product_match < BEST_PICK_THRESHOLD:
        forbidden.add(BlockType.BEST_PICK)
    return forbidden


def _first_index(blocks: list[BlockType], candidates: frozenset[BlockType] | set[BlockType]) -> int | None:
    return next((i for i, b in enumerate(blocks) if b in candidates), None)


def _last_index(blocks: list[BlockType], candidates: frozenset[BlockType] | set[BlockType]) -> int | None:
    found = None
    for i, b in enumerate(blocks):
        if b in candidates:
            found = i
    return found


def _trailing_follow_up_index(blocks: list[BlockType]) -> int | None:
    if blocks and blocks[-1] is BlockType.FOLLOW_UP:
        return len(blocks) - 1
    return None


# ---------------------------------------------------------------------------
# Gating steps
# ---------------------------------------------------------------------------

def apply_thresholds(
    blocks: list[BlockType], confidence: Confidence, actions: list[str]
) -> list[BlockType]:
    blocks = list(blocks)
    pm = confidence.product_match

    if pm < SINGLE_PRODUCT_THRESHOLD and BlockType.PRODUCT_RECOMMENDATION in blocks:
        blocks = [b for b in blocks if b is not BlockType.PRODUCT_RECOMMENDATION]
        actions.append(
            f"Removed product-recommendation (productMatch {pm:.2f} < {SINGLE_PRODUCT_THRESHOLD:.2f})"
        )
        if pm >= LOW_CONFIDENCE_THRESHOLD:
            anchor = _last_index(blocks, HERO_LIKE)
            index = anchor + 1 if anchor is not None else min(1, len(blocks))
            for block in SUBSTITUTE_BLOCKS:
                if block in blocks:
                    continue
                blocks.insert(index, block)
                actions.append(f"Inserted {block.value} in place of product-recommendation")
                index += 1

    if pm < BEST_PICK_THRESHOLD and BlockType.BEST_PICK in blocks:
        blocks = [b for b in blocks if b is not BlockType.BEST_PICK]
        actions.append(f"Removed best-pick (productMatch {pm:.2f} < {BEST_PICK_THRESHOLD:.2f})")

    if (
        confidence.intent < LOW_CONFIDENCE_THRESHOLD
        and pm < LOW_CONFIDENCE_THRESHOLD
        and not any(b in DISCOVERY_BLOCKS for b in blocks)
    ):
        hero = _first_index(blocks, HERO_LIKE)
        blocks.insert(hero + 1 if hero is not None else 0, DISCOVERY_INSERT)
        actions.append(
            f"Inserted {DISCOVERY_INSERT.value} for low confidence "
            f"(intent {confidence.intent:.2f}, productMatch {pm:.2f})"
        )

    return blocks


def insertion_index(
    blocks: list[BlockType], block: BlockType, requirements: MergedBlockRequirements
) -> int:
    """Where a missing required block goes, following its sequence hint."""
    hint = requirements.hint_for(block)
    follow_up = _trailing_follow_up_index(blocks)
    hero = _first_index(blocks, HERO_LIKE)

    # An anchor on the page outranks the coarse position
    if hint is not None and hint.after is not None and hint.after in blocks:
        return blocks.index(hint.after) + 1
    if hint is not None and hint.before is not None and hint.before in blocks:
        return blocks.index(hint.before)

    if hint is not None and hint.position == "early":
        if block in HERO_LIKE or hero is None:
            return 0
        return hero + 1
    if hint is not None and hint.position == "late":
        return follow_up if follow_up is not None else len(blocks)
    if hint is not None and hint.after is not None:
        return len(blocks)

    if follow_up is not None:
        return follow_up
    if hero is not None:
        return hero + 1
    return len(blocks)


def enforce_rules(
    blocks: list[BlockType],
    requirements: MergedBlockRequirements,
    forbidden: set[BlockType],
    actions: list[str],
    insert_required: bool = True,
) -> list[BlockType]:
    excluded = set(requirements.excluded)
    removed = [b for b in blocks if b in excluded]
    blocks = [b for b in blocks if b not in excluded]
    for block in removed:
        actions.append(f"Removed {block.value} (excluded by rules)")

    if not insert_required:
        return blocks

    for block in requirements.required:
        if block in blocks:
            continue
        if block in forbidden:
            actions.append(f"Skipped required {block.value} (not allowed at current confidence)")
            continue
        index = insertion_index(blocks, block, requirements)
        blocks.insert(index, block)
        actions.append(f"Inserted required {block.value} at position {index + 1}")

    return blocks


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def finalize(
    requirements: MergedBlockRequirements,
    proposal: ReasoningProposal | None,
    intent: IntentContext | None = None,
    sources: ConfidenceSources | None = None,
    query: str | None = None,
) -> ReasoningResult:
    """
    Produce the final ReasoningResult.

    Args:
        requirements: Merged block rules for the query.
        proposal:     Validated reasoning proposal, or None when the
                      collaborator failed (static fallback is used).
        intent:       Classified intent (selects the fallback layout).
        sources:      External confidence inputs for reconciliation.
        query:        Query text (comparison detection for the floor).
    """
    actions: list[str] = []
    is_fallback = proposal is None

    if is_fallback:
        proposal = fallback_proposal(intent)
        confidence = proposal.confidence
        actions.append(
            f"Using static fallback layout for {intent.intent_type if intent else 'discovery'} intent"
        )
    else:
        confidence = reconcile_confidence(proposal.confidence, sources, query)
        if confidence != proposal.confidence:
            actions.append(
                "Reconciled confidence "
                f"intent {proposal.confidence.intent:.2f}->{confidence.intent:.2f}, "
                f"productMatch {proposal.confidence.product_match:.2f}->{confidence.product_match:.2f}"
            )

    proposed = {b.type: b for b in proposal.blocks}
    blocks = [b.type for b in proposal.blocks]

    blocks = apply_thresholds(blocks, confidence, actions)
    blocks = enforce_rules(
        blocks,
        requirements,
        forbidden_blocks(confidence),
        actions,
        insert_required=not is_fallback,
    )
    blocks = enforce_structure(blocks, requirements.excluded, actions)

    selected = []
    for priority, block in enumerate(blocks, start=1):
        source = proposed.get(block)
        if source is not None:
            selected.append(BlockSelection(
                type=block,
                priority=priority,
                rationale=source.rationale,
                content_guidance=source.content_guidance,
                variant=source.variant,
            ))
        else:
            rationale = (
                "Required by triggered rules" if block in requirements.required
                else "Inserted to satisfy page constraints"
            )
            selected.append(BlockSelection(type=block, priority=priority, rationale=rationale))

    for action in actions:
        logger.info("Orchestrator: %s", action)

    return ReasoningResult(
        selected_blocks=selected,
        reasoning=proposal.reasoning,
        user_journey=proposal.user_journey,
        confidence=confidence,
        selected_products=proposal.selected_products,
        product_selection_rationale=proposal.product_selection_rationale,
        actions=actions,
        source="fallback" if is_fallback else "reasoning",
    )
