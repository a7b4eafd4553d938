"""
Block generation engine — query to final page layout.

Flow:
  1. Classify intent (unless the caller supplies one)
  2. Evaluate block rules -> MergedBlockRequirements
  3. Ask the reasoning collaborator for a proposal (one atomic call)
  4. Validate the proposal; any failure means the static fallback
  5. Finalize: confidence gating (intent, signal interpretation and profile
     confidence as external sources), rule enforcement, structure
  6. Return the outcome with timing for audit logging
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import anthropic

from services.recommender.generation.confidence import ConfidenceSources
from services.recommender.generation.orchestrator import finalize
from services.recommender.generation.reasoning import propose_blocks
from services.recommender.generation.schemas import (
    ReasoningProposal,
    ReasoningResult,
    parse_reasoning_payload,
)
from services.recommender.nlp.intent import IntentContext, classify_intent
from services.recommender.profile.session import SessionContext
from services.recommender.rules.engine import evaluate_rules
from services.recommender.rules.types import MergedBlockRequirements
from services.recommender.signals.interpreter import SignalInterpretation, interpret_signals

logger = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    result: ReasoningResult
    requirements: MergedBlockRequirements
    intent: IntentContext
    latency_ms: int
    log_meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.result.model_dump(by_alias=True, mode="json"),
            "intent": self.intent.to_dict(),
            "requirements": self.requirements.to_dict(),
            "latencyMs": self.latency_ms,
        }


class GenerationEngine:
    """
    Runs the block generation pipeline.

    The Anthropic client is injected; None means reasoning is unavailable and
    every request uses the static fallback layout.
    """

    def __init__(self, anthropic_client: anthropic.AsyncAnthropic | None) -> None:
        self._anthropic = anthropic_client

    async def _propose(
        self,
        query: str,
        intent: IntentContext,
        requirements: MergedBlockRequirements,
        profile: dict[str, Any] | None,
        log_meta: dict[str, Any],
    ) -> ReasoningProposal | None:
        if self._anthropic is None:
            logger.warning("No reasoning client configured, using fallback layout")
            return None
        try:
            raw_text, llm_log = await propose_blocks(
                query=query,
                intent=intent,
                requirements=requirements,
                profile=profile,
                client=self._anthropic,
            )
            log_meta.update(llm_log)
            return parse_reasoning_payload(raw_text)
        except asyncio.TimeoutError:
            logger.warning("Reasoning call timed out, falling back to static layout")
        except (anthropic.APIError, anthropic.APIConnectionError, ValueError) as exc:
            logger.warning("Reasoning call failed (%s), falling back to static layout", exc)
        return None

    async def generate(
        self,
        query: str,
        session: SessionContext | None = None,
        intent: IntentContext | None = None,
    ) -> GenerationOutcome:
        """
        Generate the block layout for ``query``.

        Args:
            query:   Visitor query (or a synthetic query built from the profile).
            session: Session whose profile informs reasoning and confidence.
            intent:  Pre-classified intent; classified from the query when None.
        """
        start = time.monotonic()
        log_meta: dict[str, Any] = {"promptVersion": None, "model": None, "latencyMs": None}

        intent = intent or classify_intent(query)
        requirements = evaluate_rules(query, intent)

        profile_snapshot: dict[str, Any] | None = None
        profile_confidence: float | None = None
        interpretation: SignalInterpretation | None = None
        if session is not None and session.signals:
            profile_snapshot = session.profile.to_dict()
            profile_confidence = session.profile.confidence_score
            interpretation = interpret_signals(session.signals)
            log_meta["signalInterpretation"] = interpretation.to_dict()

        proposal = await self._propose(query, intent, requirements, profile_snapshot, log_meta)

        result = finalize(
            requirements,
            proposal,
            intent=intent,
            sources=ConfidenceSources(
                intent_classifier=intent.confidence,
                signal_interpretation=interpretation.confidence if interpretation else None,
                profile=profile_confidence,
            ),
            query=query,
        )

        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Generation complete: intent=%s source=%s blocks=%s rules=%s in %dms",
            intent.intent_type,
            result.source,
            [b.type.value for b in result.selected_blocks],
            requirements.triggered_rules,
            latency_ms,
        )

        return GenerationOutcome(
            result=result,
            requirements=requirements,
            intent=intent,
            latency_ms=latency_ms,
            log_meta=log_meta,
        )
