"""
Review sessions.

A session loads the deck of the requested note, picks the cards that are due
in the requested scope and offers them one at a time. Each offered card is a
``PendingReview``; rating it runs the scheduler, saves the whole deck and then
calls the refresh hooks, all before the next card is handed out. Leaving a
card unrated and asking for the next one skips it untouched.

Only one write per deck is ever in flight because the next card is not offered
until the previous save has been awaited.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from gated_notes.config import settings
from gated_notes.models.flashcard import CardRating, CardStatus, Flashcard, FlashcardGraph
from gated_notes.models.review import StudyMode
from gated_notes.services.deck_store import DeckStore, subject_of
from gated_notes.services.notices import NoticeBoard
from gated_notes.services.scheduler import apply_rating, bury_card, iso_timestamp, now_ms

logger = logging.getLogger(__name__)

GateHook = Callable[[str, FlashcardGraph], Awaitable[Any]]
DueCountHook = Callable[[str, FlashcardGraph], Awaitable[Any]]

NO_CARDS_MESSAGES = {
    StudyMode.CHAPTER: "No cards due for review in this chapter.",
    StudyMode.SUBJECT: "No cards due for review in this subject.",
    StudyMode.REVIEW: "No cards due for review (review-only mode).",
    StudyMode.ALL: "No cards due for review.",
}


class ReviewAlreadyRated(Exception):
    """Raised when a card that was already rated, buried or skipped is acted on again."""


def in_scope(card: Flashcard, mode: StudyMode, document_path: str) -> bool:
    if mode == StudyMode.CHAPTER:
        return card.chapter == document_path
    if mode == StudyMode.SUBJECT:
        return subject_of(card.chapter) == subject_of(document_path)
    if mode == StudyMode.REVIEW:
        return card.status != CardStatus.NEW
    return True


def review_order_key(card: Flashcard) -> tuple[bool, int]:
    # Learning cards run on minute-scale steps and go first.
    return (card.status != CardStatus.LEARNING, card.due)


def select_due_cards(
    graph: FlashcardGraph, mode: StudyMode, document_path: str, now: int
) -> list[Flashcard]:
    """Due cards of ``graph`` in scope, in presentation order."""
    due = [
        card
        for card in graph.values()
        if card.due <= now and in_scope(card, mode, document_path)
    ]
    return sorted(due, key=review_order_key)


class PendingReview:
    """One card on offer. Exactly one of rate/bury/skip may be applied."""

    def __init__(self, session: ReviewSession, card: Flashcard, position: int) -> None:
        self.session = session
        self.card = card
        self.position = position
        self.settled = False

    async def rate(self, rating: CardRating) -> bool:
        """Rate the card and persist the deck. Returns whether the save went through."""
        return await self.session._rate(self, rating)

    async def bury(self, hours: float | None = None) -> bool:
        return await self.session._bury(self, hours)

    def skip(self) -> None:
        self._settle()

    def _settle(self) -> None:
        if self.settled:
            raise ReviewAlreadyRated(self.card.id)
        self.settled = True


class ReviewSession:
    def __init__(
        self,
        store: DeckStore,
        mode: StudyMode,
        document_path: str,
        *,
        notices: NoticeBoard | None = None,
        on_gate: GateHook | None = None,
        on_due_count: DueCountHook | None = None,
        clock: Callable[[], int] = now_ms,
        bury_hours: float | None = None,
    ) -> None:
        self.store = store
        self.mode = mode
        self.document_path = document_path
        self.deck_path = store.path_for(document_path)
        self.notices = notices or store.notices
        self.on_gate = on_gate
        self.on_due_count = on_due_count
        self.clock = clock
        self.bury_hours = settings.bury_delay_hours if bury_hours is None else bury_hours

        self.graph: FlashcardGraph = {}
        self.total = 0
        self.reviewed = 0
        self.current: PendingReview | None = None
        self.finished = False
        self._iterator: AsyncIterator[PendingReview] | None = None

    def __aiter__(self) -> AsyncIterator[PendingReview]:
        return self.cards()

    async def cards(self) -> AsyncIterator[PendingReview]:
        self.graph = await self.store.read(self.deck_path)
        queue = select_due_cards(self.graph, self.mode, self.document_path, self.clock())
        self.total = len(queue)

        if not queue:
            self.notices.notify(NO_CARDS_MESSAGES[self.mode])
            return

        logger.info(
            "Review session for %s (%s): %d due cards",
            self.document_path,
            self.mode.value,
            self.total,
        )
        for position, card in enumerate(queue, start=1):
            pending = PendingReview(self, card, position)
            yield pending
            if not pending.settled:
                logger.debug("Card %s skipped", card.id)

        self.notices.notify(
            f"Review session complete! {self.reviewed} cards reviewed."
        )

    async def next_card(self) -> PendingReview | None:
        """Advance to the next card; None once the queue is exhausted."""
        if self.finished:
            return None
        if self._iterator is None:
            self._iterator = self.cards()
        try:
            self.current = await self._iterator.__anext__()
        except StopAsyncIteration:
            self.current = None
            self.finished = True
        return self.current

    async def abandon(self) -> None:
        if self._iterator is not None:
            await self._iterator.aclose()
        if not self.finished:
            self.finished = True
            self.current = None
            self.notices.notify("Review session aborted.")

    async def _rate(self, pending: PendingReview, rating: CardRating) -> bool:
        pending._settle()
        card = pending.card
        apply_rating(card, rating, now=self.clock())
        self.reviewed += 1
        logger.info(
            "Card %s rated %s: status=%s interval=%s due=%s ease=%.2f",
            card.id,
            rating.value,
            card.status.value,
            card.interval,
            iso_timestamp(card.due),
            card.ease_factor,
        )
        return await self._persist(card)

    async def _bury(self, pending: PendingReview, hours: float | None) -> bool:
        pending._settle()
        card = pending.card
        bury_card(card, self.bury_hours if hours is None else hours, now=self.clock())
        logger.info("Card %s buried until %s", card.id, iso_timestamp(card.due))
        return await self._persist(card)

    async def _persist(self, card: Flashcard) -> bool:
        if not await self.store.write(self.deck_path, self.graph):
            return False
        if self.on_gate is not None:
            await self.on_gate(card.chapter, self.graph)
        if self.on_due_count is not None:
            await self.on_due_count(self.deck_path, self.graph)
        return True
