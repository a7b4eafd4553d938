"""
Profile dataclass and attribute merge strategies.

Two merge strategies, selected per attribute kind:
  SCALAR  first-writer-wins: once set (non-empty), later writes are ignored
  SET     ordered de-duplicated union

Every write from the inference rules goes through merge_attribute(); nothing
else mutates inferred attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class AttributeKind(str, Enum):
    SCALAR = "scalar"
    SET = "set"


@dataclass
class Profile:
    """Accumulated inference about an anonymous visitor."""

    segments: list[str] = field(default_factory=list)
    """Segment tags, e.g. 'new_parent', 'gift_buyer'. Unique, insertion order."""

    life_stage: str | None = None
    price_sensitivity: str | None = None
    decision_style: str | None = None
    purchase_readiness: str | None = None
    shopping_for: str | None = None
    occasion: str | None = None
    brand_relationship: str | None = None
    current_product: str | None = None
    content_engagement: str | None = None
    time_sensitive: bool | None = None

    use_cases: list[str] = field(default_factory=list)
    """Inferred use cases, e.g. 'smoothies', 'baby_food'."""

    products_considered: list[str] = field(default_factory=list)
    """Products seen on signals, insertion order."""

    confidence_score: float = 0.0
    """Derived from the signal log; always in [0, 1]."""

    signals_count: int = 0
    session_count: int = 0
    first_visit: int | None = None
    """Epoch ms of the first ingested signal."""

    last_visit: int | None = None
    """Epoch ms of the latest ingested signal."""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _copy(getattr(self, f.name)) for f in fields(self)}


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


# ---------------------------------------------------------------------------
# Merge strategies: attribute name -> kind
# ---------------------------------------------------------------------------

MERGE_STRATEGIES: dict[str, AttributeKind] = {
    "segments": AttributeKind.SET,
    "use_cases": AttributeKind.SET,
    "products_considered": AttributeKind.SET,
    "life_stage": AttributeKind.SCALAR,
    "price_sensitivity": AttributeKind.SCALAR,
    "decision_style": AttributeKind.SCALAR,
    "purchase_readiness": AttributeKind.SCALAR,
    "shopping_for": AttributeKind.SCALAR,
    "occasion": AttributeKind.SCALAR,
    "brand_relationship": AttributeKind.SCALAR,
    "current_product": AttributeKind.SCALAR,
    "content_engagement": AttributeKind.SCALAR,
    "time_sensitive": AttributeKind.SCALAR,
}


def merge_attribute(profile: Profile, name: str, value: Any) -> bool:
    """
    Merge ``value`` into ``profile.<name>`` using the attribute's strategy.

    Returns:
        True if the profile changed.

    Raises:
        KeyError for attributes without a merge strategy.
    """
    kind = MERGE_STRATEGIES[name]
    current = getattr(profile, name)

    if kind is AttributeKind.SET:
        items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        changed = False
        for item in items:
            if item in (None, "") or item in current:
                continue
            current.append(item)
            changed = True
        return changed

    if current not in (None, "") or value in (None, ""):
        return False
    setattr(profile, name, value)
    return True
