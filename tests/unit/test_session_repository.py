import asyncio
import gc
import weakref

import pytest

from services.errors import SessionConflictError, SessionNotFoundError
from storage.models import InterviewSession
from storage.sessions import InMemorySessionRepository


def test_save_checks_version_and_returns_copies():
    repository = InMemorySessionRepository()
    stored = repository.add(InterviewSession(category="HR"))
    assert stored.version == 1

    stored.status = "completed"
    assert repository.get(stored.id).status == "in_progress"

    saved = repository.save(stored, expected_version=1)
    assert saved.version == 2
    with pytest.raises(SessionConflictError):
        repository.save(stored, expected_version=1)
    with pytest.raises(SessionNotFoundError):
        repository.get("missing")


def test_lock_is_shared_while_held_and_released_afterwards():
    repository = InMemorySessionRepository()

    async def hold():
        async with repository.lock("sess-1"):
            assert repository.lock("sess-1").locked()

    asyncio.run(hold())
    lock = repository.lock("sess-1")
    assert repository.lock("sess-1") is lock
    released = weakref.ref(lock)
    del lock
    gc.collect()
    assert released() is None


def test_locks_do_not_accumulate_across_sessions():
    repository = InMemorySessionRepository()

    async def touch(session_id):
        async with repository.lock(session_id):
            await asyncio.sleep(0)

    async def run_all():
        await asyncio.gather(*(touch(f"sess-{index}") for index in range(50)))

    asyncio.run(run_all())
    gc.collect()
    assert len(repository._locks) == 0
