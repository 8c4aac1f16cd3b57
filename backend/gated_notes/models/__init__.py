from gated_notes.models.flashcard import (
    CardRating,
    CardStatus,
    ChapterMoveRequest,
    ChapterMoveResult,
    Flashcard,
    FlashcardCreate,
    FlashcardGraph,
    FlashcardList,
    FlashcardUpdate,
    ReviewLog,
)
from gated_notes.models.notice import Notice
from gated_notes.models.review import (
    ChapterState,
    ChapterStatus,
    DueCounts,
    RateRequest,
    ReviewSessionCreate,
    ReviewSessionState,
    StudyMode,
)

__all__ = [
    "CardRating",
    "CardStatus",
    "ChapterMoveRequest",
    "ChapterMoveResult",
    "ChapterState",
    "ChapterStatus",
    "DueCounts",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardGraph",
    "FlashcardList",
    "FlashcardUpdate",
    "Notice",
    "RateRequest",
    "ReviewLog",
    "ReviewSessionCreate",
    "ReviewSessionState",
    "StudyMode",
]
