from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

from gated_notes.config import settings
from gated_notes.models.review import StudyMode
from gated_notes.services.deck_store import DeckStore
from gated_notes.services.indicators import get_due_indicator, get_gate_indicator
from gated_notes.services.review_session import ReviewSession

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    session: ReviewSession
    last_active: float      # time.monotonic()


_sessions: dict[str, _Entry] = {}


async def evict_idle(now: float | None = None) -> int:
    """Abandon sessions idle past the configured limit, then trim to the size cap.

    Returns the number of sessions evicted.
    """
    if now is None:
        now = time.monotonic()
    idle_limit = settings.session_idle_minutes * 60
    doomed = [sid for sid, e in _sessions.items() if now - e.last_active > idle_limit]

    overflow = len(_sessions) - len(doomed) - settings.max_review_sessions
    if overflow > 0:
        survivors = sorted(
            (sid for sid in _sessions if sid not in doomed),
            key=lambda sid: _sessions[sid].last_active,
        )
        doomed.extend(survivors[:overflow])

    for session_id in doomed:
        logger.info("Evicting idle review session %s", session_id)
        await close_session(session_id)
    return len(doomed)


async def start_session(
    store: DeckStore, mode: StudyMode, document_path: str
) -> tuple[str, ReviewSession]:
    """Create a review session, register it and move it to its first card."""
    session = ReviewSession(
        store,
        mode,
        document_path,
        on_gate=get_gate_indicator().recompute,
        on_due_count=get_due_indicator().refresh,
    )
    session_id = str(uuid.uuid4())
    await session.next_card()
    if not session.finished:
        # make room before registering so the new session is never the one evicted
        _sessions[session_id] = _Entry(session, float("inf"))
        await evict_idle()
        _sessions[session_id].last_active = time.monotonic()
        logger.info("Review session %s started for %s", session_id, document_path)
    return session_id, session


async def get_session(session_id: str) -> ReviewSession | None:
    await evict_idle()
    entry = _sessions.get(session_id)
    if entry is None:
        return None
    entry.last_active = time.monotonic()
    return entry.session


def active_count() -> int:
    return len(_sessions)


async def advance(session_id: str, session: ReviewSession) -> None:
    await session.next_card()
    if session.finished:
        _sessions.pop(session_id, None)


async def close_session(session_id: str) -> bool:
    entry = _sessions.pop(session_id, None)
    if entry is None:
        return False
    await entry.session.abandon()
    return True


async def close_all() -> None:
    for session_id in list(_sessions):
        await close_session(session_id)
