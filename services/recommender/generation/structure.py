"""
Structural invariants shared by the rule engine's block list and the
orchestrator's final selection:

  1. No two hero-like blocks adjacent (a neutral separator goes between)
  2. Exactly one follow-up block, and it is last
  3. Priorities are dense, 1..N

All helpers take and return plain lists of BlockType; an optional `actions`
list collects a human-readable record of every change.
"""

from __future__ import annotations

from typing import Iterable

from services.recommender.generation.blocks import (
    HERO_LIKE,
    SEPARATOR_CANDIDATES,
    BlockType,
)


def pick_separator(
    blocks: list[BlockType], excluded: Iterable[BlockType] = ()
) -> BlockType | None:
    """First separator candidate that is not excluded. Prefers one not already on the page."""
    banned = set(excluded)
    allowed = [c for c in SEPARATOR_CANDIDATES if c not in banned]
    for candidate in allowed:
        if candidate not in blocks:
            return candidate
    return allowed[0] if allowed else None


def ensure_single_trailing_follow_up(
    blocks: list[BlockType], actions: list[str] | None = None
) -> list[BlockType]:
    """Remove every follow-up and append exactly one at the end."""
    count = blocks.count(BlockType.FOLLOW_UP)
    result = [b for b in blocks if b is not BlockType.FOLLOW_UP]
    result.append(BlockType.FOLLOW_UP)
    if actions is not None:
        if count == 0:
            actions.append("Appended missing follow-up block")
        elif count > 1:
            actions.append(f"Collapsed {count} follow-up blocks into one trailing follow-up")
        elif blocks[-1] is not BlockType.FOLLOW_UP:
            actions.append("Moved follow-up block to the end")
    return result


def separate_hero_like(
    blocks: list[BlockType],
    excluded: Iterable[BlockType] = (),
    actions: list[str] | None = None,
) -> list[BlockType]:
    """Insert a neutral separator between every adjacent pair of hero-like blocks."""
    excluded = tuple(excluded)
    result: list[BlockType] = []
    for block in blocks:
        if result and result[-1] in HERO_LIKE and block in HERO_LIKE:
            separator = pick_separator(result + [block], excluded)
            if separator is not None:
                result.append(separator)
                if actions is not None:
                    actions.append(
                        f"Inserted {separator.value} between {result[-2].value} and {block.value}"
                    )
        result.append(block)
    return result


def enforce_structure(
    blocks: list[BlockType],
    excluded: Iterable[BlockType] = (),
    actions: list[str] | None = None,
) -> list[BlockType]:
    """Apply the trailing follow-up and hero separation invariants, in that order."""
    blocks = ensure_single_trailing_follow_up(blocks, actions)
    return separate_hero_like(blocks, excluded, actions)
