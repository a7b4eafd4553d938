"""
Block rule types.

A BlockRule is static data: when ANY of its trigger conditions matches the
query (after negative-pattern vetoes), its requires / excludes / enhances
sets and sequence hints are merged into MergedBlockRequirements.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from services.recommender.generation.blocks import BlockType

TriggerKind = Literal["keyword", "pattern", "intent", "entity"]
EntityType = Literal["products", "use_cases", "features", "ingredients"]
Position = Literal["early", "middle", "late"]
RuleCategory = Literal["structure", "context", "enhancement"]


class RuleCatalogError(ValueError):
    """A block rule in the catalog is malformed (bad regex, missing field)."""


@dataclass(frozen=True)
class TriggerCondition:
    kind: TriggerKind
    pattern: re.Pattern[str] | None = None
    """Compiled for keyword / pattern conditions."""

    intent_type: str | None = None
    entity_type: EntityType | None = None
    min_count: int = 1
    negative_patterns: tuple[re.Pattern[str], ...] = ()
    """Any match vetoes this condition, checked before the positive match."""


@dataclass(frozen=True)
class SequenceHint:
    block: BlockType
    position: Position = "middle"
    after: BlockType | None = None
    before: BlockType | None = None

    @property
    def score(self) -> int:
        return POSITION_SCORES[self.position]


POSITION_SCORES: dict[str, int] = {"early": -10, "middle": 0, "late": 10}


@dataclass(frozen=True)
class BlockRule:
    id: str
    name: str
    category: RuleCategory
    triggers: tuple[TriggerCondition, ...]
    requires: tuple[BlockType, ...] = ()
    excludes: tuple[BlockType, ...] = ()
    enhances: tuple[BlockType, ...] = ()
    sequence_hints: tuple[SequenceHint, ...] = ()
    content_guidance: str = ""
    priority: int = 0


@dataclass
class MergedBlockRequirements:
    """Per-query merge of every triggered rule. Lists keep first-seen order."""

    required: list[BlockType] = field(default_factory=list)
    excluded: list[BlockType] = field(default_factory=list)
    enhanced: list[BlockType] = field(default_factory=list)
    sequence_hints: list[SequenceHint] = field(default_factory=list)
    content_guidance: list[str] = field(default_factory=list)
    triggered_rules: list[str] = field(default_factory=list)

    def hint_for(self, block: BlockType) -> SequenceHint | None:
        """First (highest-priority) hint for ``block``."""
        return next((h for h in self.sequence_hints if h.block == block), None)

    def to_dict(self) -> dict:
        return {
            "required": [b.value for b in self.required],
            "excluded": [b.value for b in self.excluded],
            "enhanced": [b.value for b in self.enhanced],
            "sequenceHints": [
                {
                    "block": h.block.value,
                    "position": h.position,
                    **({"after": h.after.value} if h.after else {}),
                    **({"before": h.before.value} if h.before else {}),
                }
                for h in self.sequence_hints
            ],
            "contentGuidance": list(self.content_guidance),
            "triggeredRules": list(self.triggered_rules),
        }
