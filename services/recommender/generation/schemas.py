"""
Typed shapes for the block-selection pipeline and the reasoning payload.

The reasoning collaborator returns loosely structured JSON. It is parsed and
validated here, at the boundary, before any gating logic touches it:

  - selectedBlocks (list), reasoning (object) and userJourney (object) are
    required; anything else missing is defaulted
  - confidence may be the dual object {intent, productMatch}, a legacy
    single number n (-> {intent: n, productMatch: 0.5}) or absent
    (-> {intent: 0.8, productMatch: 0.5})
  - every confidence is clamped into [0, 1]
  - block names are normalised into BlockType; unmappable names are dropped

Any structural failure raises ReasoningPayloadError and the whole proposal
is discarded: partially trusting unvalidated structured output is unsafe.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from services.recommender.generation.blocks import BlockType, normalize_block_type
from services.recommender.signals.taxonomy import clamp_unit

logger = logging.getLogger(__name__)

DEFAULT_INTENT_CONFIDENCE = 0.8
DEFAULT_PRODUCT_MATCH_CONFIDENCE = 0.5

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ReasoningPayloadError(ValueError):
    """The reasoning collaborator's response is unparsable or structurally invalid."""


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Output units
# ---------------------------------------------------------------------------

class Confidence(_CamelModel):
    intent: float = DEFAULT_INTENT_CONFIDENCE
    product_match: float = DEFAULT_PRODUCT_MATCH_CONFIDENCE

    @field_validator("intent", "product_match", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> float:
        try:
            return clamp_unit(float(v))
        except (TypeError, ValueError):
            raise ValueError(f"confidence must be numeric, got {v!r}")


class BlockSelection(_CamelModel):
    type: BlockType
    priority: int = Field(ge=1)
    rationale: str = ""
    content_guidance: str = ""
    variant: str | None = None


class UserJourney(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    current_stage: str = "exploring"
    next_best_action: str = ""
    suggested_follow_ups: list[str] = Field(default_factory=list)


class ReasoningTrace(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    intent_analysis: str = ""
    user_needs_assessment: str = ""
    block_selection_rationale: list[dict[str, Any]] = Field(default_factory=list)
    alternatives_considered: list[str] = Field(default_factory=list)
    final_decision: str = ""


class ProductSelection(_CamelModel):
    id: str
    rationale: str = ""
    is_primary: bool = False
    context_type: str = "either"

    @field_validator("context_type", mode="before")
    @classmethod
    def valid_context(cls, v: Any) -> str:
        return v if v in ("commercial", "consumer", "either") else "either"


class ReasoningResult(_CamelModel):
    """Final pipeline output consumed by the page renderer."""

    selected_blocks: list[BlockSelection]
    reasoning: ReasoningTrace = Field(default_factory=ReasoningTrace)
    user_journey: UserJourney = Field(default_factory=UserJourney)
    confidence: Confidence = Field(default_factory=Confidence)
    selected_products: list[ProductSelection] = Field(default_factory=list)
    product_selection_rationale: str | None = None
    actions: list[str] = Field(default_factory=list)
    """Ordered audit trail of every gating substitution / insertion / removal."""

    source: str = "reasoning"
    """'reasoning' when built from the collaborator's proposal, 'fallback' otherwise."""

    @property
    def block_types(self) -> list[BlockType]:
        return [b.type for b in self.selected_blocks]


# ---------------------------------------------------------------------------
# Collaborator proposal
# ---------------------------------------------------------------------------

class ProposedBlock(BaseModel):
    """A normalised block from the proposal, before priorities are assigned."""

    type: BlockType
    rationale: str = ""
    content_guidance: str = ""
    variant: str | None = None


class _RawProposal(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    selected_blocks: list[dict[str, Any]] = Field(alias="selectedBlocks")
    reasoning: ReasoningTrace
    user_journey: UserJourney = Field(alias="userJourney")
    confidence: Any = None
    selected_products: list[Any] | None = Field(default=None, alias="selectedProducts")
    product_selection_rationale: str | None = Field(default=None, alias="productSelectionRationale")


class ReasoningProposal(BaseModel):
    """Validated, normalised reasoning proposal."""

    blocks: list[ProposedBlock]
    reasoning: ReasoningTrace
    user_journey: UserJourney
    confidence: Confidence
    selected_products: list[ProductSelection] = Field(default_factory=list)
    product_selection_rationale: str | None = None
    dropped_blocks: list[str] = Field(default_factory=list)


def _parse_confidence(raw: Any) -> Confidence:
    if isinstance(raw, dict):
        return Confidence(
            intent=raw.get("intent", DEFAULT_INTENT_CONFIDENCE)
            if raw.get("intent") is not None else DEFAULT_INTENT_CONFIDENCE,
            product_match=raw.get("productMatch", DEFAULT_PRODUCT_MATCH_CONFIDENCE)
            if raw.get("productMatch") is not None else DEFAULT_PRODUCT_MATCH_CONFIDENCE,
        )
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        logger.info("Legacy single-number confidence %.2f converted to dual form", raw)
        return Confidence(intent=raw, product_match=DEFAULT_PRODUCT_MATCH_CONFIDENCE)
    return Confidence()


def _parse_products(raw: list[Any] | None) -> list[ProductSelection]:
    products: list[ProductSelection] = []
    for item in raw or []:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        products.append(ProductSelection(
            id=str(item["id"]),
            rationale=str(item.get("rationale") or ""),
            is_primary=bool(item.get("isPrimary")),
            context_type=item.get("contextType") or "either",
        ))
    return products


def parse_reasoning_payload(payload: str | dict[str, Any]) -> ReasoningProposal:
    """
    Validate and normalise a reasoning collaborator response.

    Args:
        payload: Raw model text (JSON possibly wrapped in prose / fences) or
                 an already-decoded dict.

    Raises:
        ReasoningPayloadError for unparsable JSON or missing required fields.
    """
    if isinstance(payload, str):
        match = _JSON_OBJECT.search(payload)
        if not match:
            raise ReasoningPayloadError("No JSON object found in reasoning response")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ReasoningPayloadError(f"Malformed reasoning JSON: {exc}") from exc
    else:
        data = payload

    if not isinstance(data, dict):
        raise ReasoningPayloadError("Reasoning response is not a JSON object")
    if not isinstance(data.get("selectedBlocks"), list):
        raise ReasoningPayloadError("Missing or invalid selectedBlocks")
    if not isinstance(data.get("reasoning"), dict):
        raise ReasoningPayloadError("Missing reasoning")
    if not isinstance(data.get("userJourney"), dict):
        raise ReasoningPayloadError("Missing userJourney")

    try:
        raw = _RawProposal.model_validate(data)
        confidence = _parse_confidence(raw.confidence)
    except (ValidationError, ValueError) as exc:
        raise ReasoningPayloadError(f"Invalid reasoning payload: {exc}") from exc

    blocks: list[ProposedBlock] = []
    dropped: list[str] = []
    seen: set[BlockType] = set()
    for entry in raw.selected_blocks:
        name = entry.get("type")
        if not isinstance(name, str):
            raise ReasoningPayloadError(f"Block entry without a string type: {entry!r}")
        block_type = normalize_block_type(name)
        if block_type is None:
            dropped.append(name)
            continue
        if block_type in seen:
            continue
        seen.add(block_type)
        blocks.append(ProposedBlock(
            type=block_type,
            rationale=str(entry.get("rationale") or ""),
            content_guidance=str(entry.get("contentGuidance") or ""),
            variant=entry.get("variant") if isinstance(entry.get("variant"), str) else None,
        ))

    if dropped:
        logger.info("Dropped unrecognised blocks from proposal: %s", dropped)

    return ReasoningProposal(
        blocks=blocks,
        reasoning=raw.reasoning,
        user_journey=raw.user_journey,
        confidence=confidence,
        selected_products=_parse_products(raw.selected_products),
        product_selection_rationale=raw.product_selection_rationale,
        dropped_blocks=dropped,
    )
