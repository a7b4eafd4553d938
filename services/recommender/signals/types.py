"""
Signal dataclass — the canonical unit of classified behavior.

Signals are immutable once created. The single permitted revision (dwell-time
re-weighting of a page view) produces a NEW Signal via with_dwell(); the
profile engine swaps it into the log at the same position.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from services.recommender.signals.taxonomy import (
    DWELL_ELIGIBLE_TYPES,
    boosted_weight,
    clamp_unit,
    get_weight_label,
)


@dataclass(frozen=True)
class Signal:
    """A single classified unit of observed user behavior."""

    id: str
    """Unique id: '<type>_<epoch ms>_<8 hex>'."""

    type: str
    """Raw event type, e.g. 'page_view', 'click', 'search'."""

    category: str
    """Classified category, e.g. 'recipe', 'compare', 'nav_to_product'."""

    label: str
    """Human-readable description of the behavior."""

    weight: float
    """Current weight (0.05 - 0.20 tiers, dwell-boosted page views in between)."""

    timestamp: int
    """Epoch milliseconds at classification time."""

    data: dict[str, Any] = field(default_factory=dict)
    """Stripped event context (no None / empty-string values)."""

    product: str | None = None
    """Product name when the behavior is about a single product."""

    compared_products: tuple[str, ...] = ()
    """Products named together (e.g. 'X5 vs A3500' search)."""

    base_weight: float | None = None
    """Weight at creation. Dwell boosts are always computed from this value."""

    dwell_ms: int = 0
    """Highest dwell time reported for this signal."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "weight", clamp_unit(self.weight))
        if self.base_weight is None:
            object.__setattr__(self, "base_weight", self.weight)

    @property
    def weight_label(self) -> str:
        return get_weight_label(self.weight)

    def with_dwell(self, dwell_ms: int) -> "Signal":
        """Return a copy re-weighted for ``dwell_ms`` on page.

        Non page-view signals and dwell times below the already-recorded one
        return ``self`` unchanged; weights never move backwards.
        """
        if self.type not in DWELL_ELIGIBLE_TYPES or dwell_ms <= self.dwell_ms:
            return self
        new_weight = boosted_weight(self.base_weight or 0.0, dwell_ms)
        return replace(self, weight=max(new_weight, self.weight), dwell_ms=dwell_ms)

    # ------------------------------------------------------------------
    # Persistence shape (camelCase, JSON-safe)
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "label": self.label,
            "weight": self.weight,
            "weightLabel": self.weight_label,
            "timestamp": self.timestamp,
            "data": self.data,
            "baseWeight": self.base_weight,
        }
        if self.product:
            out["product"] = self.product
        if self.compared_products:
            out["comparedProducts"] = list(self.compared_products)
        if self.dwell_ms:
            out["dwellMs"] = self.dwell_ms
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Signal":
        """Rebuild a Signal from its persisted shape. Missing fields get defaults."""
        weight = float(raw.get("weight") or 0.0)
        base = raw.get("baseWeight")
        return cls(
            id=str(raw.get("id") or ""),
            type=str(raw.get("type") or "unknown"),
            category=str(raw.get("category") or "other"),
            label=str(raw.get("label") or ""),
            weight=weight,
            timestamp=int(raw.get("timestamp") or 0),
            data=dict(raw.get("data") or {}),
            product=raw.get("product") or None,
            compared_products=tuple(raw.get("comparedProducts") or ()),
            base_weight=clamp_unit(base) if base is not None else None,
            dwell_ms=int(raw.get("dwellMs") or 0),
        )
