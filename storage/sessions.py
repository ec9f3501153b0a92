"""In-memory session repository with optimistic versioning."""
from __future__ import annotations

import asyncio
import weakref
from typing import Dict

from services.errors import SessionConflictError, SessionNotFoundError

from .models import InterviewSession


class InMemorySessionRepository:
    """Stores deep copies so callers never share mutable session state.

    ``save`` bumps ``version`` and refuses a write whose expected version
    no longer matches. ``lock`` hands out one ``asyncio.Lock`` per session
    for callers that need a read-modify-write section; a lock lives only
    while some caller still references it.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, InterviewSession] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def add(self, session: InterviewSession) -> InterviewSession:
        if session.id in self._sessions:
            raise SessionConflictError(f"Session {session.id} already exists.")
        stored = session.model_copy(deep=True)
        stored.version = 1
        self._sessions[stored.id] = stored
        return stored.model_copy(deep=True)

    def get(self, session_id: str) -> InterviewSession:
        stored = self._sessions.get(session_id)
        if stored is None:
            raise SessionNotFoundError()
        return stored.model_copy(deep=True)

    def save(self, session: InterviewSession, *, expected_version: int) -> InterviewSession:
        current = self._sessions.get(session.id)
        if current is None:
            raise SessionNotFoundError()
        if current.version != expected_version:
            raise SessionConflictError(
                f"Session {session.id} changed (expected version {expected_version}, found {current.version})."
            )
        stored = session.model_copy(deep=True)
        stored.version = expected_version + 1
        self._sessions[stored.id] = stored
        return stored.model_copy(deep=True)


__all__ = ["InMemorySessionRepository"]
