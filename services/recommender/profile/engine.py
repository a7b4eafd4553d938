"""
ProfileEngine — incremental profile + confidence inference over a signal log.

Flow for add_signal():
  1. Append the signal to the ordered log (never removed individually)
  2. Record its product in products_considered (and current_product for
     product pages, first-writer-wins)
  3. Re-run the WHOLE inference catalog against the full log + current profile
  4. Sum the confidence of every rule that fired in this pass
  5. confidence = min(1, rule_total + sum(weights) * 0.3), floored by the
     signal-count floor min(0.3, n * 0.05) for non-empty logs

The engine is synchronous and owns no locks. Serialisation of concurrent
submissions is the session context's job (profile.session).

Persistence boundary: export_for_storage() / load_from_storage() exchange an
opaque {"profile": {...}, "signals": [...]} blob. Loading replays the log so
derived state and confidence are rebuilt from raw signals, never trusted
from the blob.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from services.recommender.profile.rules import INFERENCE_RULES, InferenceRule
from services.recommender.profile.types import MERGE_STRATEGIES, Profile, merge_attribute
from services.recommender.signals.taxonomy import clamp_unit
from services.recommender.signals.types import Signal

logger = logging.getLogger(__name__)

SIGNAL_CONFIDENCE_FACTOR = 0.3
CONFIDENCE_FLOOR_PER_SIGNAL = 0.05
CONFIDENCE_FLOOR_CAP = 0.3

# Confidence level labels (lower bound, label), highest first
CONFIDENCE_LEVELS: tuple[tuple[float, str], ...] = (
    (0.76, "Very High"),
    (0.56, "High"),
    (0.31, "Medium"),
)


def confidence_level(score: float) -> str:
    """Human-readable label for a profile confidence score."""
    for lower_bound, label in CONFIDENCE_LEVELS:
        if score >= lower_bound:
            return label
    return "Low"


def compute_confidence(rule_total: float, signals: Sequence[Signal]) -> float:
    """Combine the pass's rule total with the signal log weights."""
    if not signals:
        return clamp_unit(rule_total)
    signal_confidence = sum(s.weight for s in signals)
    score = min(1.0, rule_total + signal_confidence * SIGNAL_CONFIDENCE_FACTOR)
    # Signal-count floor. Applied whenever the score sits under it (not only
    # under 0.1) so adding a signal can never lower the score.
    floor = min(CONFIDENCE_FLOOR_CAP, len(signals) * CONFIDENCE_FLOOR_PER_SIGNAL)
    return round(clamp_unit(max(score, floor)), 4)


class ProfileEngine:
    """
    Owns one Profile and its signal log.

    Usage:
        engine = ProfileEngine()
        engine.add_signal(classify({"type": "search", "data": {"query": "baby food"}}))
        engine.profile.segments        # ["new_parent"]
        engine.profile.confidence_score
    """

    def __init__(self, rules: Sequence[InferenceRule] = INFERENCE_RULES) -> None:
        self._rules = tuple(rules)
        self.profile = Profile()
        self.signals: list[Signal] = []
        self.applied_rules: list[str] = []
        self.rule_confidence = 0.0

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_signal(self, signal: Signal) -> Profile:
        """Append one signal and re-run inference over the full log."""
        self.signals.append(signal)
        self.profile.signals_count = len(self.signals)
        self.profile.last_visit = signal.timestamp
        if self.profile.first_visit is None:
            self.profile.first_visit = signal.timestamp

        if signal.product:
            merge_attribute(self.profile, "products_considered", signal.product.strip())
            if signal.category == "product":
                merge_attribute(self.profile, "current_product", signal.product.strip())

        self.run_inference()
        return self.profile

    def record_dwell(self, signal_id: str, dwell_ms: int) -> Signal | None:
        """
        Revise a page-view signal's weight for ``dwell_ms`` on page.

        The signal is replaced in place (same log position). Confidence is
        recomputed from the current rule total; no new inference pass runs,
        since no new behavior was observed.

        Returns:
            The (possibly unchanged) signal, or None for an unknown id.
        """
        for index, existing in enumerate(self.signals):
            if existing.id != signal_id:
                continue
            updated = existing.with_dwell(dwell_ms)
            if updated is not existing:
                self.signals[index] = updated
                self.profile.confidence_score = compute_confidence(
                    self.rule_confidence, self.signals
                )
                logger.debug(
                    "Dwell re-weight: signal=%s dwell_ms=%d weight %.2f -> %.2f",
                    signal_id, dwell_ms, existing.weight, updated.weight,
                )
            return updated
        return None

    def run_inference(self) -> list[str]:
        """
        Evaluate every rule in declared order and merge what fires.

        A rule whose predicate raises is logged and skipped; the rest of the
        pass continues and the profile is not touched by the failing rule.

        Returns:
            Ids of the rules that fired in this pass.
        """
        total = 0.0
        applied: list[str] = []

        for rule in self._rules:
            try:
                fired = bool(rule.condition(self.profile, self.signals))
            except Exception:
                logger.warning("Inference rule %s raised; skipping", rule.id, exc_info=True)
                continue
            if not fired:
                continue
            for name, value in rule.infer.items():
                merge_attribute(self.profile, name, value)
            total += rule.confidence
            applied.append(rule.id)

        self.rule_confidence = total
        self.applied_rules = applied
        self.profile.confidence_score = compute_confidence(total, self.signals)
        return applied

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> Profile:
        """Return to an empty profile and clear the signal log."""
        self.profile = Profile()
        self.signals = []
        self.applied_rules = []
        self.rule_confidence = 0.0
        return self.profile

    def replay(self, signals: Sequence[Signal]) -> Profile:
        """Rebuild profile state from scratch by re-ingesting ``signals`` in order."""
        self.reset()
        for signal in signals:
            self.add_signal(signal)
        return self.profile

    # ------------------------------------------------------------------
    # Persistence boundary
    # ------------------------------------------------------------------

    def export_for_storage(self) -> dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "signals": [s.to_dict() for s in self.signals],
        }

    def load_from_storage(self, blob: dict[str, Any] | None) -> Profile:
        """
        Restore from a persisted blob. Partial or missing fields are tolerated.

        The signal log is replayed to rebuild inferred attributes and
        confidence; persisted attributes are then merged on top with the same
        merge strategies, so they can only fill gaps. session_count is
        incremented to mark the new session.
        """
        blob = blob or {}
        signals: list[Signal] = []
        for raw in blob.get("signals") or []:
            if not isinstance(raw, dict):
                continue
            try:
                signals.append(Signal.from_dict(raw))
            except (TypeError, ValueError):
                logger.warning("Dropping unreadable persisted signal: %r", raw, exc_info=True)

        self.replay(signals)

        stored = blob.get("profile") or {}
        if isinstance(stored, dict):
            for name in MERGE_STRATEGIES:
                if name in stored:
                    merge_attribute(self.profile, name, stored[name])
            if isinstance(stored.get("first_visit"), int):
                self.profile.first_visit = stored["first_visit"]
            previous_sessions = stored.get("session_count")
            if isinstance(previous_sessions, int):
                self.profile.session_count = previous_sessions

        self.profile.session_count += 1
        return self.profile
