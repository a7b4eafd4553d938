"""
Signal interpretation — a rules-based read of the whole signal log.

Reduces a session's signals to what the visitor seems to be doing (primary
intent, use cases, journey stage, products in play) and how sure that read
is. The confidence is one of the external sources the orchestrator uses to
pull the reasoning collaborator's own estimate down.

Confidence:
  - explicit evidence (a search that matched a known need, or >= 2 products
    considered) -> INTERPRETED_CONFIDENCE
  - otherwise it grows with the log: min(INTERPRETED_CONFIDENCE,
    BASE_CONFIDENCE + n * PER_SIGNAL_CONFIDENCE)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from services.recommender.signals.taxonomy import clamp_unit
from services.recommender.signals.types import Signal

INTERPRETED_CONFIDENCE = 0.5
BASE_CONFIDENCE = 0.2
PER_SIGNAL_CONFIDENCE = 0.05
MAX_PRODUCTS = 10

DEFAULT_INTENT = "Find the right blender"

# (keywords, primary intent, use cases), first match wins
QUERY_NEEDS: list[tuple[tuple[str, ...], str, tuple[str, ...]]] = [
    (("kid", "child", "family", "picky"),
     "Find family-friendly recipes and blender options", ("kids_recipes", "family_meals")),
    (("baby", "puree", "infant"),
     "Make homemade baby food", ("baby_food", "purees")),
    (("smoothie",), "Make great smoothies", ("smoothies",)),
    (("soup",), "Make hot soups", ("soups", "hot_blending")),
    (("gift", "wedding"), "Find the perfect blender as a gift", ("gift",)),
]

COMPARING_CATEGORIES = {"compare"}
DECIDING_CATEGORIES = {"add_to_cart", "shipping"}


@dataclass
class SignalInterpretation:
    primary_intent: str = DEFAULT_INTENT
    use_cases: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)
    journey_stage: str = "exploring"
    intent_type: str = "discovery"
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "primaryIntent": self.primary_intent,
            "useCases": list(self.use_cases),
            "products": list(self.products),
            "journeyStage": self.journey_stage,
            "intentType": self.intent_type,
            "confidence": self.confidence,
        }


def products_considered(signals: Sequence[Signal]) -> list[str]:
    """Distinct products in first-seen order, including compared pairs."""
    seen: list[str] = []
    for signal in signals:
        for product in (signal.product, *signal.compared_products):
            if product and product not in seen:
                seen.append(product)
    return seen[:MAX_PRODUCTS]


def _search_queries(signals: Sequence[Signal]) -> list[str]:
    queries = []
    for signal in signals:
        query = signal.data.get("query") or signal.data.get("searchQuery")
        if query:
            queries.append(str(query).lower())
    return queries


def _journey_stage(signals: Sequence[Signal], products: list[str]) -> str:
    categories = {s.category for s in signals}
    if categories & DECIDING_CATEGORIES:
        return "deciding"
    if len(products) >= 2 or categories & COMPARING_CATEGORIES:
        return "comparing"
    return "exploring"


def interpret_signals(signals: Sequence[Signal]) -> SignalInterpretation | None:
    """Interpret a signal log. Returns None for an empty log."""
    if not signals:
        return None

    products = products_considered(signals)
    queries = _search_queries(signals)

    interpretation = SignalInterpretation(
        products=products,
        journey_stage=_journey_stage(signals, products),
        intent_type="comparison" if len(products) >= 2 else "discovery",
    )

    matched = False
    for keywords, primary_intent, use_cases in QUERY_NEEDS:
        if any(k in q for q in queries for k in keywords):
            interpretation.primary_intent = primary_intent
            interpretation.use_cases = list(use_cases)
            matched = True
            break

    if matched or len(products) >= 2:
        confidence = INTERPRETED_CONFIDENCE
    else:
        confidence = min(INTERPRETED_CONFIDENCE, BASE_CONFIDENCE + len(signals) * PER_SIGNAL_CONFIDENCE)
    interpretation.confidence = round(clamp_unit(confidence), 4)
    return interpretation
