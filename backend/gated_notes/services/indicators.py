"""
Refresh hooks run after every persisted rating.

``DueCardIndicator`` backs the "N learning, M review" status indicator.
``ChapterGateIndicator`` summarises the gating signals of one note (its
blocked cards and the first paragraph they hold back). Deciding which
paragraphs to reveal is left to the renderer that reads these signals.
"""
from __future__ import annotations

import logging

from gated_notes.models.flashcard import CardStatus, Flashcard, FlashcardGraph
from gated_notes.models.review import ChapterState, ChapterStatus, DueCounts
from gated_notes.services.deck_store import DeckStore
from gated_notes.services.scheduler import now_ms

logger = logging.getLogger(__name__)

_LEARNING_LIKE = (CardStatus.NEW, CardStatus.LEARNING, CardStatus.RELEARN)


def count_due(graph: FlashcardGraph, now: int) -> DueCounts:
    counts = DueCounts()
    for card in graph.values():
        if card.due > now:
            continue
        if card.status in _LEARNING_LIKE:
            counts.learning += 1
        else:
            counts.review += 1
    return counts


def chapter_state(cards: list[Flashcard], now: int) -> ChapterState | None:
    if not cards:
        return None
    if any(c.blocked for c in cards):
        return ChapterState.BLOCKED
    if any(c.due <= now for c in cards):
        return ChapterState.DUE
    return ChapterState.DONE


def first_blocked_para(cards: list[Flashcard]) -> int | None:
    indices = [c.para_idx for c in cards if c.blocked and c.para_idx is not None]
    return min(indices) if indices else None


class DueCardIndicator:
    def __init__(self, store: DeckStore) -> None:
        self.store = store
        self._per_deck: dict[str, DueCounts] = {}

    async def refresh(self, deck_path: str, graph: FlashcardGraph) -> DueCounts:
        self._per_deck[deck_path] = count_due(graph, now_ms())
        return self.totals()

    async def rebuild(self) -> DueCounts:
        """Recount every deck in the vault."""
        now = now_ms()
        self._per_deck = {}
        for path in await self.store.list_decks():
            self._per_deck[path] = count_due(await self.store.read(path), now)
        totals = self.totals()
        logger.info("Due cards: %d learning, %d review", totals.learning, totals.review)
        return totals

    def totals(self) -> DueCounts:
        return DueCounts(
            learning=sum(c.learning for c in self._per_deck.values()),
            review=sum(c.review for c in self._per_deck.values()),
        )


class ChapterGateIndicator:
    def __init__(self) -> None:
        self._chapters: dict[str, ChapterStatus] = {}

    async def recompute(self, chapter: str, graph: FlashcardGraph) -> ChapterStatus:
        cards = [c for c in graph.values() if c.chapter == chapter]
        status = ChapterStatus(
            chapter=chapter,
            state=chapter_state(cards, now_ms()),
            first_blocked_para=first_blocked_para(cards),
        )
        previous = self._chapters.get(chapter)
        if status.first_blocked_para is not None and (
            previous is None or previous.first_blocked_para != status.first_blocked_para
        ):
            logger.info(
                "Gating after paragraph %d for %s", status.first_blocked_para, chapter
            )
        self._chapters[chapter] = status
        return status


due_indicator: DueCardIndicator | None = None
gate_indicator = ChapterGateIndicator()


def init_indicators(store: DeckStore) -> DueCardIndicator:
    global due_indicator
    due_indicator = DueCardIndicator(store)
    return due_indicator


def get_due_indicator() -> DueCardIndicator:
    assert due_indicator is not None, "Indicators not initialized"
    return due_indicator


def get_gate_indicator() -> ChapterGateIndicator:
    return gate_indicator
