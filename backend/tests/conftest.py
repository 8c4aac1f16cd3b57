import pytest

from gated_notes.db.vault import VaultAdapter
from gated_notes.models.flashcard import CardStatus, Flashcard
from gated_notes.services.deck_store import DeckStore
from gated_notes.services.notices import NoticeBoard

T0 = 1_700_000_000_000  # 2023-11-14T22:13:20.000Z


@pytest.fixture
def vault(tmp_path):
    return VaultAdapter(tmp_path)


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def store(vault, notices):
    return DeckStore(vault, notices, deck_filename="_flashcards.json")


@pytest.fixture
def make_card():
    """Build a card with sensible defaults; keyword overrides win."""
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> Flashcard:
        n = next(counter)
        fields = {
            "id": f"card-{n}",
            "front": f"Question {n}",
            "back": f"Answer {n}",
            "tag": f"tag-{n}",
            "chapter": "Biology/cells.md",
            "status": CardStatus.NEW,
            "due": T0,
        }
        fields.update(overrides)
        return Flashcard(**fields)

    return _make
