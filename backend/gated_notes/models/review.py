from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from gated_notes.models.flashcard import CardRating, Flashcard


class StudyMode(str, Enum):
    CHAPTER = "chapter"     # cards of the requested note only
    SUBJECT = "subject"     # cards sharing the note's top-level folder
    REVIEW = "review"       # anything already seen
    ALL = "all"


class ChapterState(str, Enum):
    BLOCKED = "blocked"
    DUE = "due"
    DONE = "done"


class DueCounts(BaseModel):
    learning: int = 0
    review: int = 0


class ReviewSessionCreate(BaseModel):
    mode: StudyMode = StudyMode.CHAPTER
    document_path: str


class RateRequest(BaseModel):
    rating: CardRating


class ReviewSessionState(BaseModel):
    session_id: str
    mode: StudyMode
    position: int           # 1-based index of the card on offer, 0 when none
    total: int
    card: Flashcard | None
    finished: bool
    reviewed: int
    saved: bool = True     # whether the last rating or bury reached disk


class ChapterStatus(BaseModel):
    chapter: str
    state: ChapterState | None
    first_blocked_para: int | None
