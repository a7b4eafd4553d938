"""
NLP utilities for the recommender.

Keyword intent classification for block rule evaluation and fallbacks.
No I/O in this package: pure text-in / IntentContext-out.
"""

from services.recommender.nlp.intent import (
    IntentContext,
    classify_from_profile,
    classify_intent,
)

__all__ = [
    "IntentContext",
    "classify_from_profile",
    "classify_intent",
]
