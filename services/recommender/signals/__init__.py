"""
Signals package — raw interaction events into weighted, typed Signals.

Modules
-------
taxonomy     Weight tiers, weight labels, dwell-time boosts
patterns     Ordered page / click classifier specs, product and referrer tables
types        Signal dataclass (immutable, persistence shape)
classifier   classify(raw_event) -> Signal
interpreter  interpret_signals(signals) -> SignalInterpretation (rules-based read of the log)
"""

from services.recommender.signals.classifier import classify
from services.recommender.signals.types import Signal

__all__ = ["Signal", "classify"]
