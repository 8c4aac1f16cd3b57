from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, TypeAdapter, model_validator


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    RELEARN = "relearn"
    REVIEW = "review"


class CardRating(str, Enum):
    AGAIN = "Again"
    HARD = "Hard"
    GOOD = "Good"
    EASY = "Easy"


LEARNING_STATES = (CardStatus.LEARNING, CardStatus.RELEARN)


class ReviewLog(BaseModel):
    """Scheduling values a card had just before one rating was applied."""

    timestamp: int          # ms since epoch, moment of rating
    rating: CardRating
    state: CardStatus
    interval: float
    ease_factor: float


class Flashcard(BaseModel):
    id: str
    front: str
    back: str
    tag: str = ""
    chapter: str            # vault path of the owning note
    para_idx: int | None = Field(default=None, alias="paraIdx")
    status: CardStatus = CardStatus.NEW
    last_reviewed: str | None = None
    interval: float = 0     # days
    ease_factor: float = 2.5
    due: int                # ms since epoch
    learning_step_index: int | None = None
    blocked: bool = True
    review_history: list[ReviewLog] = []
    flagged: bool = False
    suspended: bool = False

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _drop_stale_step(self) -> Flashcard:
        # A step index only means something while a card is in learning.
        if self.status not in LEARNING_STATES:
            self.learning_step_index = None
        return self


# card id -> card; one graph per deck file
FlashcardGraph = dict[str, Flashcard]

deck_adapter: TypeAdapter[FlashcardGraph] = TypeAdapter(FlashcardGraph)


class FlashcardCreate(BaseModel):
    front: str
    back: str
    tag: str = ""
    chapter: str
    para_idx: int | None = Field(default=None, alias="paraIdx")

    model_config = {"populate_by_name": True}


class FlashcardUpdate(BaseModel):
    front: str | None = None
    back: str | None = None
    tag: str | None = None
    flagged: bool | None = None
    suspended: bool | None = None


class FlashcardList(BaseModel):
    items: list[Flashcard]
    total: int


class ChapterMoveRequest(BaseModel):
    old_path: str
    new_path: str


class ChapterMoveResult(BaseModel):
    moved: int
    decks: list[str]
