"""
Dual-confidence reconciliation.

The reasoning collaborator reports its own {intent, productMatch}. Passive
signals (intent classifier, signal interpretation, profile confidence) may
pull those numbers down, but never below a floor:

    external      = min(available sources), or 1.0 when none are known
    intent        = min(reasoning.intent,       max(external, 0.5))
    product_match = min(reasoning.productMatch, max(external, pm_floor))

pm_floor is 0.55 for explicit comparison / recommendation queries, else 0.4.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from services.recommender.generation.schemas import Confidence
from services.recommender.signals.classifier import models_in_text
from services.recommender.signals.taxonomy import clamp_unit

INTENT_FLOOR = 0.5
PRODUCT_MATCH_FLOOR = 0.4
EXPLICIT_PRODUCT_MATCH_FLOOR = 0.55

COMPARISON_PATTERN = re.compile(
    r"\b(vs|versus|compare|comparison|difference between|which is better|which one"
    r"|should i choose|should i get)\b",
    re.IGNORECASE,
)
RECOMMENDATION_PATTERN = re.compile(
    r"\b(best|recommend\w*|top|quietest|most powerful|which should|what should i buy)\b",
    re.IGNORECASE,
)


@dataclass
class ConfidenceSources:
    """External confidence inputs. None means the source is unavailable."""

    intent_classifier: float | None = None
    signal_interpretation: float | None = None
    profile: float | None = None

    def external(self) -> float:
        values = [
            clamp_unit(v)
            for v in (self.intent_classifier, self.signal_interpretation, self.profile)
            if v is not None
        ]
        return min(values) if values else 1.0


def is_comparison_query(query: str | None) -> bool:
    """Explicit comparison or recommendation intent in the query text."""
    if not query:
        return False
    if COMPARISON_PATTERN.search(query) or RECOMMENDATION_PATTERN.search(query):
        return True
    return len(models_in_text(query)) >= 2


def reconcile_confidence(
    reasoning: Confidence,
    sources: ConfidenceSources | None = None,
    query: str | None = None,
) -> Confidence:
    external = (sources or ConfidenceSources()).external()
    pm_floor = EXPLICIT_PRODUCT_MATCH_FLOOR if is_comparison_query(query) else PRODUCT_MATCH_FLOOR
    return Confidence(
        intent=min(reasoning.intent, max(external, INTENT_FLOOR)),
        product_match=min(reasoning.product_match, max(external, pm_floor)),
    )
