"""
Card scheduling.

A modified SM-2: new cards pass through minute-scale learning steps, then move
to day-scale review intervals driven by the ease factor. Every function here
mutates the card it is given and does no I/O.

Branch decisions in ``apply_rating`` test the status the card had *before* the
call. A brand-new card therefore takes the interval-arithmetic branch on its
first Hard/Good/Easy rating (interval 0 stays 0, so it is due again at once)
rather than entering the first learning step.
"""
from __future__ import annotations

import math
import time
import uuid
from datetime import datetime, timedelta, timezone

from gated_notes.models.flashcard import (
    CardRating,
    CardStatus,
    Flashcard,
    FlashcardCreate,
    ReviewLog,
)

DAY_MS = 86_400_000
HOUR_MS = 3_600_000
MINUTE_MS = 60_000

EASE_FLOOR = 1.3
DEFAULT_EASE = 2.5
LEARNING_STEPS = (1, 10)    # minutes
HARD_LEARNING_DELAY = 6     # minutes

AGAIN_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.15
HARD_INTERVAL_FACTOR = 1.2
EASY_INTERVAL_FACTOR = 1.3
GRADUATING_INTERVAL = 1     # days
EASY_INTERVAL = 4           # days


def now_ms() -> int:
    return int(time.time() * 1000)


def new_card_id() -> str:
    return str(uuid.uuid4())


def iso_timestamp(ms: int) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    seconds, millis = divmod(ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _days_from(now: int, interval: float) -> int:
    return now + round(interval * DAY_MS)


def apply_rating(card: Flashcard, rating: CardRating, now: int | None = None) -> Flashcard:
    """Apply one rating to ``card`` in place and append its review log entry."""
    if now is None:
        now = now_ms()

    original_status = card.status
    card.review_history.append(
        ReviewLog(
            timestamp=now,
            rating=rating,
            state=original_status,
            interval=card.interval,
            ease_factor=card.ease_factor,
        )
    )

    if original_status == CardStatus.NEW:
        card.status = CardStatus.LEARNING

    in_learning = original_status in (CardStatus.LEARNING, CardStatus.RELEARN)

    if rating == CardRating.AGAIN:
        if original_status == CardStatus.REVIEW:
            card.status = CardStatus.RELEARN
        card.learning_step_index = 0
        card.interval = 0.0
        card.ease_factor = max(EASE_FLOOR, card.ease_factor - AGAIN_EASE_PENALTY)
        card.due = now
        card.blocked = True

    elif rating == CardRating.HARD:
        if original_status == CardStatus.LEARNING:
            card.learning_step_index = 0
            card.due = now + HARD_LEARNING_DELAY * MINUTE_MS
        else:
            card.ease_factor = max(EASE_FLOOR, card.ease_factor - HARD_EASE_PENALTY)
            card.interval = float(math.ceil(card.interval * HARD_INTERVAL_FACTOR))
            card.due = _days_from(now, card.interval)

    elif rating == CardRating.GOOD:
        if in_learning:
            step = card.learning_step_index or 0
            if step < len(LEARNING_STEPS) - 1:
                card.learning_step_index = step + 1
                card.due = now + LEARNING_STEPS[step + 1] * MINUTE_MS
            else:
                _graduate(card, now, GRADUATING_INTERVAL)
        else:
            card.interval = float(math.ceil(card.interval * card.ease_factor))
            card.due = _days_from(now, card.interval)

    elif rating == CardRating.EASY:
        if in_learning:
            _graduate(card, now, EASY_INTERVAL)
        else:
            card.ease_factor += EASY_EASE_BONUS
            card.interval = float(
                math.ceil(card.interval * card.ease_factor * EASY_INTERVAL_FACTOR)
            )
            card.due = _days_from(now, card.interval)

    card.last_reviewed = iso_timestamp(now)
    return card


def _graduate(card: Flashcard, now: int, interval_days: int) -> None:
    card.status = CardStatus.REVIEW
    card.interval = float(interval_days)
    card.due = _days_from(now, interval_days)
    card.learning_step_index = None


def reset_card_progress(card: Flashcard, now: int | None = None) -> Flashcard:
    """Return ``card`` to the new state. The review history is discarded."""
    card.status = CardStatus.NEW
    card.last_reviewed = None
    card.interval = 0.0
    card.ease_factor = DEFAULT_EASE
    card.due = now_ms() if now is None else now
    card.blocked = True
    card.review_history = []
    card.learning_step_index = None
    return card


def create_card(data: FlashcardCreate, now: int | None = None) -> Flashcard:
    return Flashcard(
        id=new_card_id(),
        front=data.front,
        back=data.back,
        tag=data.tag,
        chapter=data.chapter,
        para_idx=data.para_idx,
        status=CardStatus.NEW,
        last_reviewed=None,
        interval=0.0,
        ease_factor=DEFAULT_EASE,
        due=now_ms() if now is None else now,
        blocked=True,
        review_history=[],
        suspended=False,
    )


def bury_card(card: Flashcard, hours: float, now: int | None = None) -> Flashcard:
    """Push the card out of today's reviews without rating it."""
    if now is None:
        now = now_ms()
    card.due = now + round(hours * HOUR_MS)
    return card
