"""Conversation session storage.

Sessions are keyed by session_id, owned by exactly one company and expire
after an idle window (30 minutes by default). An expired or unknown session
silently restarts at the entry step; a session presented under the wrong
company is refused.

Usage:
    from paintquote.sessions.store import build_session_store

    store = build_session_store()
    async with store.lock(session_id):
        session = await store.get(session_id, company_id, IntakeFlow.QUOTE)
        ...
        await store.put(session_id, SessionDelta(step_pointer="walls_sqft"))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from paintquote.config import settings
from paintquote.conversation.machine import merge_delta
from paintquote.db.engine import get_redis
from paintquote.errors import SessionNotFoundError, SessionOwnershipError
from paintquote.schemas.enums import IntakeFlow
from paintquote.schemas.session import ConversationSession, SessionDelta

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class SessionStore(ABC):
    """Interface shared by the in-memory and Redis stores."""

    def __init__(self, idle_minutes: int = 30, clock: Clock = utcnow) -> None:
        self.idle_window = timedelta(minutes=idle_minutes)
        self._clock = clock

    # ── Backend hooks ────────────────────────────────────────────────

    @abstractmethod
    async def _load(self, session_id: str) -> ConversationSession | None: ...

    @abstractmethod
    async def _save(self, session: ConversationSession) -> None: ...

    @abstractmethod
    async def _delete(self, session_id: str) -> None: ...

    @abstractmethod
    def lock(self, session_id: str) -> contextlib.AbstractAsyncContextManager[Any]:
        """Serialize turns for one session."""

    # ── Public API ───────────────────────────────────────────────────

    def is_expired(self, session: ConversationSession) -> bool:
        return self._clock() - session.last_activity_at > self.idle_window

    def _new_session(self, session_id: str, company_id: int, flow: IntakeFlow) -> ConversationSession:
        now = self._clock()
        return ConversationSession(
            session_id=session_id,
            company_id=company_id,
            flow=flow,
            created_at=now,
            last_activity_at=now,
        )

    async def get(
        self,
        session_id: str,
        company_id: int,
        flow: IntakeFlow = IntakeFlow.QUOTE,
    ) -> ConversationSession:
        """Fetch a session, creating a fresh one if absent or expired.

        Raises:
            SessionOwnershipError: If the session belongs to another company.
        """
        session = await self._load(session_id)

        if session is not None and session.company_id != company_id:
            logger.warning(
                "Session %s requested by company %s but owned by company %s",
                session_id,
                company_id,
                session.company_id,
            )
            raise SessionOwnershipError("Session not found", {"session_id": session_id})

        if session is not None and self.is_expired(session):
            logger.info(
                "Session %s expired after %s idle, starting over",
                session_id,
                self._clock() - session.last_activity_at,
            )
            session = None
        elif session is not None and session.flow != flow:
            logger.info("Session %s switched from %s to %s, starting over", session_id, session.flow.value, flow.value)
            session = None

        if session is None:
            session = self._new_session(session_id, company_id, flow)
            await self._save(session)
        return session

    async def put(self, session_id: str, delta: SessionDelta) -> ConversationSession:
        """Merge a delta into a stored session and refresh its idle timer."""
        session = await self._load(session_id)
        if session is None:
            raise SessionNotFoundError("Session not found", {"session_id": session_id})

        if delta.reset_pointer:
            session.step_pointer = None
        elif delta.step_pointer is not None:
            session.step_pointer = delta.step_pointer
        merge_delta(session.partial_state, delta.partial_state)
        if delta.company_defaults is not None:
            session.company_defaults = delta.company_defaults
        if delta.unparsed is not None:
            session.unparsed = list(delta.unparsed)
        session.turn_count += delta.turn_increment
        session.last_activity_at = self._clock()

        await self._save(session)
        return session

    async def clear(self, session_id: str) -> None:
        await self._delete(session_id)
        logger.debug("Session %s cleared", session_id)


class InMemorySessionStore(SessionStore):
    """Process-local store; locks are plain asyncio locks.

    Sessions idle past the window are swept on every save and a session's
    lock is dropped once no turn holds or waits on it, so memory tracks the
    live sessions only.
    """

    def __init__(self, idle_minutes: int = 30, clock: Clock = utcnow) -> None:
        super().__init__(idle_minutes, clock)
        self._sessions: dict[str, str] = {}
        self._last_seen: dict[str, datetime] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    async def _load(self, session_id: str) -> ConversationSession | None:
        raw = self._sessions.get(session_id)
        return ConversationSession.model_validate_json(raw) if raw is not None else None

    async def _save(self, session: ConversationSession) -> None:
        self._sessions[session.session_id] = session.model_dump_json()
        self._last_seen[session.session_id] = session.last_activity_at
        self._sweep(keep=session.session_id)

    async def _delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)

    def _sweep(self, keep: str) -> None:
        now = self._clock()
        stale = [sid for sid, seen in self._last_seen.items() if sid != keep and now - seen > self.idle_window]
        for session_id in stale:
            self._sessions.pop(session_id, None)
            del self._last_seen[session_id]
        if stale:
            logger.debug("Swept %d idle sessions", len(stale))

    @contextlib.asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            users = self._lock_users.pop(session_id) - 1
            if users:
                self._lock_users[session_id] = users
            else:
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Sessions as JSON strings with a TTL equal to the idle window."""

    def __init__(
        self,
        redis: Any,
        idle_minutes: int = 30,
        lock_timeout: int = 10,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(idle_minutes, clock)
        self._redis = redis
        self._lock_timeout = lock_timeout

    @staticmethod
    def _key(session_id: str) -> str:
        return f"session:{session_id}"

    async def _load(self, session_id: str) -> ConversationSession | None:
        raw = await self._redis.get(self._key(session_id))
        return ConversationSession.model_validate_json(raw) if raw else None

    async def _save(self, session: ConversationSession) -> None:
        await self._redis.set(
            self._key(session.session_id),
            session.model_dump_json(),
            ex=int(self.idle_window.total_seconds()),
        )

    async def _delete(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))

    def lock(self, session_id: str) -> contextlib.AbstractAsyncContextManager[Any]:
        return self._redis.lock(
            f"lock:session:{session_id}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )


def build_session_store(backend: str | None = None) -> SessionStore:
    """Store for the configured backend ("memory" or "redis")."""
    backend = backend or settings.sessions.session_backend
    idle = settings.sessions.session_idle_minutes
    if backend == "redis":
        return RedisSessionStore(get_redis(), idle_minutes=idle, lock_timeout=settings.sessions.session_lock_timeout)
    return InMemorySessionStore(idle_minutes=idle)
