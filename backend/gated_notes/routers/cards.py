"""
Card management router.

Every card lives in the deck of its note's folder, so card routes take the
owning note as ``?chapter=``.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from gated_notes.models.flashcard import (
    ChapterMoveRequest,
    ChapterMoveResult,
    Flashcard,
    FlashcardCreate,
    FlashcardGraph,
    FlashcardList,
    FlashcardUpdate,
)
from gated_notes.models.review import ChapterStatus
from gated_notes.services.deck_store import DeckStore, get_deck_store
from gated_notes.services.indicators import get_due_indicator, get_gate_indicator
from gated_notes.services.scheduler import create_card, reset_card_progress

logger = logging.getLogger(__name__)
router = APIRouter()


async def _save(store: DeckStore, chapter: str, graph: FlashcardGraph) -> None:
    deck_path = store.path_for(chapter)
    if not await store.write(deck_path, graph):
        raise HTTPException(status_code=503, detail="Deck could not be saved")
    await get_gate_indicator().recompute(chapter, graph)
    await get_due_indicator().refresh(deck_path, graph)


async def _load_card(
    store: DeckStore, chapter: str, card_id: str
) -> tuple[FlashcardGraph, Flashcard]:
    graph = await store.read(store.path_for(chapter))
    card = graph.get(card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return graph, card


@router.get("/", response_model=FlashcardList)
async def list_cards(
    chapter: str = Query(...),
    store: DeckStore = Depends(get_deck_store),
) -> FlashcardList:
    """Cards of one note, in paragraph order."""
    graph = await store.read(store.path_for(chapter))
    items = sorted(
        (c for c in graph.values() if c.chapter == chapter),
        key=lambda c: (c.para_idx is None, c.para_idx or 0),
    )
    return FlashcardList(items=items, total=len(items))


@router.get("/chapter-state", response_model=ChapterStatus)
async def chapter_state(
    chapter: str = Query(...),
    store: DeckStore = Depends(get_deck_store),
) -> ChapterStatus:
    graph = await store.read(store.path_for(chapter))
    return await get_gate_indicator().recompute(chapter, graph)


@router.post("/", response_model=Flashcard, status_code=201)
async def add_card(
    body: FlashcardCreate,
    store: DeckStore = Depends(get_deck_store),
) -> Flashcard:
    graph = await store.read(store.path_for(body.chapter))
    card = create_card(body)
    graph[card.id] = card
    await _save(store, body.chapter, graph)
    return card


@router.post("/move", response_model=ChapterMoveResult)
async def move_chapter(
    body: ChapterMoveRequest,
    store: DeckStore = Depends(get_deck_store),
) -> ChapterMoveResult:
    """Follow a note or folder rename so its cards keep their chapter and deck."""
    result = await store.move_chapter(body.old_path, body.new_path)
    due_indicator = get_due_indicator()
    for deck_path, graph in result.decks.items():
        await due_indicator.refresh(deck_path, graph)
    if not result.saved:
        raise HTTPException(status_code=503, detail="Deck could not be saved")
    for graph in result.decks.values():
        chapters = {
            c.chapter
            for c in graph.values()
            if c.chapter == body.new_path or c.chapter.startswith(body.new_path + "/")
        }
        for chapter in chapters:
            await get_gate_indicator().recompute(chapter, graph)
    return ChapterMoveResult(moved=result.moved, decks=sorted(result.decks))


@router.patch("/{card_id}", response_model=Flashcard)
async def edit_card(
    card_id: str,
    body: FlashcardUpdate,
    chapter: str = Query(...),
    store: DeckStore = Depends(get_deck_store),
) -> Flashcard:
    graph, card = await _load_card(store, chapter, card_id)
    for field, value in body.model_dump(exclude_none=True).items():
        setattr(card, field, value)
    await _save(store, chapter, graph)
    return card


@router.post("/{card_id}/reset", response_model=Flashcard)
async def reset_card(
    card_id: str,
    chapter: str = Query(...),
    store: DeckStore = Depends(get_deck_store),
) -> Flashcard:
    graph, card = await _load_card(store, chapter, card_id)
    reset_card_progress(card)
    await _save(store, chapter, graph)
    logger.info("Card %s reset to new", card_id)
    return card


@router.delete("/{card_id}", status_code=204)
async def remove_card(
    card_id: str,
    chapter: str = Query(...),
    store: DeckStore = Depends(get_deck_store),
) -> None:
    graph, _ = await _load_card(store, chapter, card_id)
    del graph[card_id]
    await _save(store, chapter, graph)


@router.delete("/")
async def remove_chapter_cards(
    chapter: str = Query(...),
    store: DeckStore = Depends(get_deck_store),
) -> dict:
    """Delete every card belonging to one note."""
    graph = await store.read(store.path_for(chapter))
    doomed = [card_id for card_id, c in graph.items() if c.chapter == chapter]
    if not doomed:
        raise HTTPException(status_code=404, detail="No cards found for this chapter")
    for card_id in doomed:
        del graph[card_id]
    await _save(store, chapter, graph)
    store.notices.notify(f"Deleted {len(doomed)} cards from this chapter.")
    return {"deleted": len(doomed)}
