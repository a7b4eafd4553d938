"""
POST /generate — block layout for a query (or a profile-derived query).

Body: {query?, sessionId?, intent?}
  - query given: rules + reasoning + gating on that query
  - no query, sessionId given: a synthetic query is generated from the
    session profile; 422 when the profile is not confident enough
  - intent: optional pre-classified intent type (skips keyword classification)

Rate limit: uses the llm bucket.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from services.recommender.generation.engine import GenerationEngine
from services.recommender.nlp.intent import (
    INTENT_TYPES,
    KEYWORD_CONFIDENCE,
    IntentContext,
    classify_from_profile,
    extract_entities,
)
from services.recommender.profile.query_generator import generate_query
from services.recommender.routers.sessions import SESSION_ID_PATTERN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generation"])

QUERY_MAX_LEN = 500


# ---------------------------------------------------------------------------
# Request model
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    query: str | None = Field(default=None, max_length=QUERY_MAX_LEN)
    sessionId: str | None = Field(default=None, pattern=SESSION_ID_PATTERN.pattern)
    intent: str | None = None

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("intent")
    @classmethod
    def known_intent(cls, v: str | None) -> str | None:
        if v is not None and v not in INTENT_TYPES:
            raise ValueError(f"Unknown intent type: {v!r}")
        return v


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.post("")
async def generate_layout(body: GenerateRequest, request: Request) -> dict:
    """
    Run the generation pipeline.

    HTTP errors:
    - 422 if there is no query and no usable synthetic query
    """
    request_id: str = request.state.request_id
    session = None
    if body.sessionId:
        session = await request.app.state.sessions.get(body.sessionId)

    query = body.query
    intent: IntentContext | None = None
    synthetic = None

    if query is None and session is not None:
        synthetic = generate_query(session.profile, session.signals)
        if synthetic is not None:
            query = synthetic.query
            intent = classify_from_profile(session.profile)

    if query is None:
        raise HTTPException(
            status_code=422,
            detail={
                "code": "QUERY_REQUIRED",
                "message": "Provide a query, or a sessionId whose profile is confident enough to infer one.",
            },
        )

    if body.intent is not None:
        intent = IntentContext(
            intent_type=body.intent,
            confidence=KEYWORD_CONFIDENCE,
            entities=extract_entities(query),
        )

    engine = GenerationEngine(anthropic_client=request.app.state.anthropic)
    outcome = await engine.generate(query, session=session, intent=intent)

    data = outcome.to_dict()
    data["query"] = query
    data["syntheticQuery"] = synthetic is not None

    return {"success": True, "data": data, "requestId": request_id}
