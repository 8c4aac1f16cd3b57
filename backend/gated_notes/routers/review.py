"""
Review session router.

Endpoints:
  POST   /review/sessions               — start a session, returns the first due card
  POST   /review/sessions/{id}/rate     — rate the card on offer, save, advance
  POST   /review/sessions/{id}/skip     — advance without touching the card
  POST   /review/sessions/{id}/bury     — push the card back by the bury delay, save, advance
  DELETE /review/sessions/{id}          — abandon the session
  GET    /review/due-counts             — due cards across the vault (learning / review)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from gated_notes.models.review import (
    DueCounts,
    RateRequest,
    ReviewSessionCreate,
    ReviewSessionState,
)
from gated_notes.services import session_registry
from gated_notes.services.deck_store import DeckStore, get_deck_store
from gated_notes.services.indicators import get_due_indicator
from gated_notes.services.review_session import (
    PendingReview,
    ReviewAlreadyRated,
    ReviewSession,
)

router = APIRouter()


def _state(session_id: str, session: ReviewSession, saved: bool = True) -> ReviewSessionState:
    current = session.current
    return ReviewSessionState(
        session_id=session_id,
        mode=session.mode,
        position=current.position if current else 0,
        total=session.total,
        card=current.card if current else None,
        finished=session.finished,
        reviewed=session.reviewed,
        saved=saved,
    )


async def _pending(session_id: str) -> tuple[ReviewSession, PendingReview]:
    session = await session_registry.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Review session not found")
    if session.current is None:
        raise HTTPException(status_code=409, detail="No card on offer")
    return session, session.current


@router.post("/sessions", response_model=ReviewSessionState, status_code=201)
async def start_review(
    body: ReviewSessionCreate,
    store: DeckStore = Depends(get_deck_store),
) -> ReviewSessionState:
    session_id, session = await session_registry.start_session(
        store, body.mode, body.document_path
    )
    return _state(session_id, session)


@router.post("/sessions/{session_id}/rate", response_model=ReviewSessionState)
async def rate_card(session_id: str, body: RateRequest) -> ReviewSessionState:
    session, pending = await _pending(session_id)
    try:
        saved = await pending.rate(body.rating)
    except ReviewAlreadyRated:
        raise HTTPException(status_code=409, detail="Card already rated")
    await session_registry.advance(session_id, session)
    return _state(session_id, session, saved)


@router.post("/sessions/{session_id}/skip", response_model=ReviewSessionState)
async def skip_card(session_id: str) -> ReviewSessionState:
    session, pending = await _pending(session_id)
    try:
        pending.skip()
    except ReviewAlreadyRated:
        raise HTTPException(status_code=409, detail="Card already rated")
    await session_registry.advance(session_id, session)
    return _state(session_id, session)


@router.post("/sessions/{session_id}/bury", response_model=ReviewSessionState)
async def bury_card(session_id: str) -> ReviewSessionState:
    session, pending = await _pending(session_id)
    try:
        saved = await pending.bury()
    except ReviewAlreadyRated:
        raise HTTPException(status_code=409, detail="Card already rated")
    await session_registry.advance(session_id, session)
    return _state(session_id, session, saved)


@router.delete("/sessions/{session_id}", status_code=204)
async def abandon_review(session_id: str) -> None:
    if not await session_registry.close_session(session_id):
        raise HTTPException(status_code=404, detail="Review session not found")


@router.get("/due-counts", response_model=DueCounts)
async def due_counts() -> DueCounts:
    return get_due_indicator().totals()
