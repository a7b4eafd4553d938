"""
Block constraint rule engine.

evaluate_rules() folds every triggered BlockRule into one
MergedBlockRequirements:

  1. Evaluate each rule's triggers (OR semantics, negative patterns veto first)
  2. Sort triggered rules by descending priority (stable: catalog order breaks ties)
  3. Union requires / excludes / enhances / sequence hints; collect guidance
  4. excluded beats required and enhanced; required beats enhanced
  5. Keep only hints whose block survived into required or enhanced

build_block_list() turns requirements into an ordered, structurally valid
block list without any reasoning input (the rules-only page).
"""

from __future__ import annotations

import logging
from typing import Iterable

from services.recommender.generation.blocks import BlockType
from services.recommender.generation.schemas import BlockSelection
from services.recommender.generation.structure import enforce_structure
from services.recommender.nlp.intent import IntentContext
from services.recommender.rules.catalog import BLOCK_RULES
from services.recommender.rules.types import (
    BlockRule,
    MergedBlockRequirements,
    SequenceHint,
    TriggerCondition,
)

logger = logging.getLogger(__name__)

CONTENT_GUIDANCE_HEADER = "## Content Guidance from Triggered Rules"


# ---------------------------------------------------------------------------
# Trigger evaluation
# ---------------------------------------------------------------------------

def condition_matches(
    condition: TriggerCondition, query: str, intent: IntentContext | None = None
) -> bool:
    if any(neg.search(query) for neg in condition.negative_patterns):
        return False

    if condition.kind in ("keyword", "pattern"):
        return condition.pattern is not None and condition.pattern.search(query) is not None
    if condition.kind == "intent":
        return intent is not None and intent.intent_type == condition.intent_type
    if condition.kind == "entity":
        if intent is None or condition.entity_type is None:
            return False
        return len(intent.entities.get(condition.entity_type, ())) >= condition.min_count
    return False


def rule_triggers(rule: BlockRule, query: str, intent: IntentContext | None = None) -> bool:
    return any(condition_matches(c, query, intent) for c in rule.triggers)


def _add_unique(target: list[BlockType], blocks: Iterable[BlockType]) -> None:
    for block in blocks:
        if block not in target:
            target.append(block)


def evaluate_rules(
    query: str,
    intent: IntentContext | None = None,
    rules: Iterable[BlockRule] = BLOCK_RULES,
) -> MergedBlockRequirements:
    """
    Evaluate the catalog against a query and merge the triggered rules.

    Args:
        query:  Free-text user query.
        intent: Optional classified intent (enables intent / entity triggers).
        rules:  Rule catalog; defaults to the static BLOCK_RULES.
    """
    query = query or ""
    triggered = [r for r in rules if rule_triggers(r, query, intent)]
    # sorted() is stable, so equal priorities keep declared order
    triggered = sorted(triggered, key=lambda r: r.priority, reverse=True)

    merged = MergedBlockRequirements()
    for rule in triggered:
        merged.triggered_rules.append(rule.id)
        _add_unique(merged.required, rule.requires)
        _add_unique(merged.excluded, rule.excludes)
        _add_unique(merged.enhanced, rule.enhances)
        merged.sequence_hints.extend(rule.sequence_hints)
        if rule.content_guidance:
            merged.content_guidance.append(f"[{rule.name}] {rule.content_guidance}")

    excluded = set(merged.excluded)
    merged.required = [b for b in merged.required if b not in excluded]
    required = set(merged.required)
    merged.enhanced = [b for b in merged.enhanced if b not in excluded and b not in required]

    surviving = required | set(merged.enhanced)
    merged.sequence_hints = [h for h in merged.sequence_hints if h.block in surviving]

    logger.debug(
        "Rules triggered for %r: %s (required=%s excluded=%s)",
        query[:80],
        merged.triggered_rules,
        [b.value for b in merged.required],
        [b.value for b in merged.excluded],
    )
    return merged


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def _block_score(block: BlockType, hints: list[SequenceHint]) -> int:
    """Early hints win with the lowest score, otherwise late wins with the highest."""
    scores = [h.score for h in hints if h.block == block]
    if not scores:
        return 0
    lowest = min(scores)
    return lowest if lowest < 0 else max(scores)


def _move(blocks: list[BlockType], block: BlockType, index: int) -> None:
    blocks.remove(block)
    blocks.insert(index, block)


def order_blocks(blocks: list[BlockType], hints: list[SequenceHint]) -> list[BlockType]:
    """
    Order blocks by hint position, then repair explicit after/before pairs.

    The coarse sort is stable. An after/before constraint only applies when
    both blocks are present; the constrained block is moved directly next
    to its anchor. Repair repeats until nothing moves, bounded by the number
    of constraints so conflicting hints cannot loop forever.
    """
    ordered = sorted(blocks, key=lambda b: _block_score(b, hints))
    constraints = [h for h in hints if h.after is not None or h.before is not None]

    for _ in range(len(constraints) + 1):
        moved = False
        for hint in constraints:
            if hint.block not in ordered:
                continue
            if hint.after is not None and hint.after in ordered:
                if ordered.index(hint.block) < ordered.index(hint.after):
                    ordered.remove(hint.block)
                    ordered.insert(ordered.index(hint.after) + 1, hint.block)
                    moved = True
            if hint.before is not None and hint.before in ordered:
                if ordered.index(hint.block) > ordered.index(hint.before):
                    _move(ordered, hint.block, ordered.index(hint.before))
                    moved = True
        if not moved:
            break
    else:
        logger.warning("Sequence hints did not settle; using last ordering: %s", ordered)

    return ordered


def build_block_list(requirements: MergedBlockRequirements) -> list[BlockSelection]:
    """Rules-only page: required + enhanced, ordered, structurally valid, dense priorities."""
    blocks: list[BlockType] = []
    _add_unique(blocks, requirements.required)
    _add_unique(blocks, requirements.enhanced)

    ordered = order_blocks(blocks, requirements.sequence_hints)
    ordered = enforce_structure(ordered, requirements.excluded)

    required = set(requirements.required)
    return [
        BlockSelection(
            type=block,
            priority=i,
            rationale="Required by triggered rules" if block in required else "Enhances triggered rules",
        )
        for i, block in enumerate(ordered, start=1)
    ]


def format_content_guidance(requirements: MergedBlockRequirements) -> str:
    if not requirements.content_guidance:
        return ""
    return f"{CONTENT_GUIDANCE_HEADER}\n\n" + "\n\n".join(requirements.content_guidance)
