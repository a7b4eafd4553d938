"""
Session signal ingestion and profile endpoints.

POST   /sessions/{session_id}/signals                      classify + ingest one raw event
POST   /sessions/{session_id}/signals/{signal_id}/dwell    revise a page view for dwell time
GET    /sessions/{session_id}/profile                      profile, confidence, synthetic query
DELETE /sessions/{session_id}                              explicit start-over

All mutations go through the session's SessionContext, so events from
several tabs are applied one at a time in arrival order.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from services.recommender.profile.engine import confidence_level
from services.recommender.profile.query_generator import generate_query
from services.recommender.profile.session import SessionContext, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class SignalEvent(BaseModel):
    type: str = Field(..., min_length=1, max_length=64)
    data: dict[str, Any] = Field(default_factory=dict)


class DwellUpdate(BaseModel):
    dwellMs: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def _validate_session_id(session_id: str) -> None:
    if not SESSION_ID_PATTERN.match(session_id):
        raise HTTPException(
            status_code=422,
            detail={"code": "INVALID_SESSION_ID", "message": "Session id must be 1-128 url-safe characters."},
        )


def profile_summary(ctx: SessionContext) -> dict[str, Any]:
    profile = ctx.profile
    return {
        "profile": profile.to_dict(),
        "confidenceLevel": confidence_level(profile.confidence_score),
        "signalsCount": len(ctx.signals),
    }


def _envelope(request: Request, data: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, "data": data, "requestId": request.state.request_id}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/{session_id}/signals")
async def ingest_signal(session_id: str, body: SignalEvent, request: Request) -> dict:
    _validate_session_id(session_id)
    ctx = await _registry(request).get(session_id)
    signal = await ctx.ingest({"type": body.type, "data": body.data})
    logger.debug("Session %s ingested %s (%s)", session_id, signal.id, signal.category)
    return _envelope(request, {"signal": signal.to_dict(), **profile_summary(ctx)})


@router.post("/{session_id}/signals/{signal_id}/dwell")
async def record_dwell(session_id: str, signal_id: str, body: DwellUpdate, request: Request) -> dict:
    _validate_session_id(session_id)
    ctx = await _registry(request).get(session_id)
    signal = await ctx.record_dwell(signal_id, body.dwellMs)
    if signal is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "SIGNAL_NOT_FOUND", "message": f"Signal {signal_id!r} not found in session."},
        )
    return _envelope(request, {"signal": signal.to_dict(), **profile_summary(ctx)})


@router.get("/{session_id}/profile")
async def get_profile(session_id: str, request: Request) -> dict:
    _validate_session_id(session_id)
    ctx = await _registry(request).get(session_id)
    synthetic = generate_query(ctx.profile, ctx.signals)
    return _envelope(request, {
        **profile_summary(ctx),
        "syntheticQuery": None if synthetic is None else {
            "query": synthetic.query,
            "template": synthetic.template,
            "confidence": synthetic.confidence,
            "complexity": synthetic.complexity,
        },
    })


@router.delete("/{session_id}")
async def reset_session(session_id: str, request: Request) -> dict:
    _validate_session_id(session_id)
    ctx = await _registry(request).reset(session_id)
    return _envelope(request, profile_summary(ctx))
