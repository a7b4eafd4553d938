"""
Session context — one ProfileEngine per visitor session, serialised access.

Key format:  gensite_profile:{session_id}
TTL:         settings.session_ttl_s, sliding on each write

Every mutation (ingest, record_dwell, reset) for a session runs under that
session's asyncio.Lock. asyncio.Lock wakes waiters in FIFO order, so signals
submitted concurrently from several tabs reach the engine in arrival order,
and a reset can never interleave with an in-flight ingest.

Graceful degradation: ProfileStore operations are no-ops when redis is None,
and Redis failures are logged, never raised. The in-memory context keeps
working either way.

The registry holds contexts in memory only while they are in use: idle or
least recently used contexts are dropped and restored from the store on the
next request, and a reset drops the context outright.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from services.recommender.profile.engine import ProfileEngine
from services.recommender.profile.types import Profile
from services.recommender.signals.classifier import classify
from services.recommender.signals.types import Signal

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60
_DEFAULT_MAX_SESSIONS = 10_000


def _redis_key(session_id: str) -> str:
    return f"gensite_profile:{session_id}"


class ProfileStore:
    """Redis JSON blob persistence for {profile, signals}."""

    def __init__(self, redis: Any, ttl_seconds: int = _DEFAULT_TTL_SECONDS) -> None:
        """
        Args:
            redis: An async Redis client (redis.asyncio compatible).
                   May be None — all operations degrade gracefully.
            ttl_seconds: Sliding expiry applied on every save.
        """
        self._redis = redis
        self._ttl = ttl_seconds

    async def load(self, session_id: str) -> dict[str, Any] | None:
        if self._redis is None:
            return None
        key = _redis_key(session_id)
        try:
            raw = await self._redis.get(key)
            if raw is None:
                return None
            if isinstance(raw, bytes):
                raw = raw.decode()
            blob = json.loads(raw)
            return blob if isinstance(blob, dict) else None
        except Exception:
            logger.warning("profile_store load failed: key=%s", key, exc_info=True)
            return None

    async def save(self, session_id: str, blob: dict[str, Any]) -> None:
        if self._redis is None:
            return
        key = _redis_key(session_id)
        try:
            await self._redis.set(key, json.dumps(blob, ensure_ascii=False), ex=self._ttl)
        except Exception:
            logger.warning("profile_store save failed: key=%s", key, exc_info=True)

    async def delete(self, session_id: str) -> None:
        if self._redis is None:
            return
        key = _redis_key(session_id)
        try:
            await self._redis.delete(key)
        except Exception:
            logger.warning("profile_store delete failed: key=%s", key, exc_info=True)


class SessionContext:
    """
    Owns the ProfileEngine for one session.

    Usage:
        ctx = await registry.get("sess-123")
        signal = await ctx.ingest({"type": "search", "data": {"query": "x5 vs a3500"}})
        ctx.profile.confidence_score
    """

    def __init__(self, session_id: str, store: ProfileStore | None = None) -> None:
        self.session_id = session_id
        self.engine = ProfileEngine()
        self._store = store
        self._lock = asyncio.Lock()
        self.last_confidence: float | None = None
        self._pending = 0

    @property
    def profile(self) -> Profile:
        return self.engine.profile

    @property
    def signals(self) -> list[Signal]:
        return self.engine.signals

    async def restore(self) -> None:
        """Load any persisted blob for this session (called once on creation)."""
        if self._store is None:
            return
        async with self._serialised():
            blob = await self._store.load(self.session_id)
            if blob is not None:
                self.engine.load_from_storage(blob)
                self.last_confidence = self.engine.profile.confidence_score

    async def ingest(self, raw_event: dict[str, Any]) -> Signal:
        """Classify and add one raw event, in arrival order."""
        async with self._serialised():
            signal = classify(raw_event)
            self.engine.add_signal(signal)
            self.last_confidence = self.engine.profile.confidence_score
            await self._persist()
            return signal

    async def add_signal(self, signal: Signal) -> Profile:
        """Add an already-classified signal, in arrival order."""
        async with self._serialised():
            profile = self.engine.add_signal(signal)
            self.last_confidence = profile.confidence_score
            await self._persist()
            return profile

    async def record_dwell(self, signal_id: str, dwell_ms: int) -> Signal | None:
        async with self._serialised():
            signal = self.engine.record_dwell(signal_id, dwell_ms)
            if signal is not None:
                self.last_confidence = self.engine.profile.confidence_score
                await self._persist()
            return signal

    async def reset(self) -> Profile:
        """Clear profile, signal log, cached confidence and the persisted blob."""
        async with self._serialised():
            profile = self.engine.reset()
            self.last_confidence = None
            if self._store is not None:
                await self._store.delete(self.session_id)
            logger.info("Session %s reset", self.session_id)
            return profile

    @property
    def busy(self) -> bool:
        """A mutation is running or queued on this context."""
        return self._pending > 0

    @asynccontextmanager
    async def _serialised(self) -> AsyncIterator[None]:
        self._pending += 1
        try:
            async with self._lock:
                yield
        finally:
            self._pending -= 1

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the current state."""
        return self.engine.export_for_storage()

    async def _persist(self) -> None:
        if self._store is not None:
            await self._store.save(self.session_id, self.engine.export_for_storage())


class SessionRegistry:
    """
    Session id -> SessionContext. Owned by app.state, never module-level.

    Bounded: contexts idle for longer than ``idle_ttl_s`` are dropped, and the
    least recently used ones go once ``max_sessions`` is reached. The Redis
    blob stays the durable copy, so a dropped session is restored from the
    store on its next request. A context whose lock is held is never dropped.
    """

    def __init__(
        self,
        store: ProfileStore | None = None,
        idle_ttl_s: float = _DEFAULT_TTL_SECONDS,
        max_sessions: int = _DEFAULT_MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._idle_ttl_s = idle_ttl_s
        self._max_sessions = max_sessions
        self._clock = clock
        # Least recently used first
        self._contexts: OrderedDict[str, tuple[SessionContext, float]] = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, session_id: str) -> SessionContext:
        async with self._lock:
            now = self._clock()
            self._evict(now)
            entry = self._contexts.get(session_id)
            if entry is None:
                ctx = SessionContext(session_id, self._store)
                await ctx.restore()
            else:
                ctx = entry[0]
            self._contexts[session_id] = (ctx, now)
            self._contexts.move_to_end(session_id)
            return ctx

    async def reset(self, session_id: str) -> SessionContext:
        """Reset the session and drop its context; the next request starts fresh."""
        ctx = await self.get(session_id)
        await ctx.reset()
        async with self._lock:
            entry = self._contexts.get(session_id)
            if entry is not None and entry[0] is ctx and not ctx.busy:
                del self._contexts[session_id]
        return ctx

    def peek(self, session_id: str) -> SessionContext | None:
        """Existing context without creating one."""
        entry = self._contexts.get(session_id)
        return entry[0] if entry is not None else None

    def _evict(self, now: float) -> None:
        for session_id, (ctx, last_access) in list(self._contexts.items()):
            idle = now - last_access >= self._idle_ttl_s
            full = len(self._contexts) >= self._max_sessions
            if not (idle or full):
                break
            if ctx.busy:
                continue
            del self._contexts[session_id]
            logger.debug("Session %s evicted (idle=%s)", session_id, idle)

    def __len__(self) -> int:
        return len(self._contexts)
