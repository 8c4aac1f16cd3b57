"""
Deck persistence.

One deck file per note folder, holding every card of the notes in that folder
as a pretty-printed JSON object keyed by card id. Reads and writes always move
the whole deck. Nothing here raises for a missing, corrupt, or unwritable deck:
reads degrade to an empty deck and writes report ``False``.

There is no locking. A deck read before a long external operation and written
afterwards overwrites whatever another writer saved in between.
"""
from __future__ import annotations

import json
import logging
import posixpath
from dataclasses import dataclass, field

from pydantic import ValidationError

from gated_notes.config import settings
from gated_notes.db.vault import VaultAdapter, get_vault
from gated_notes.models.flashcard import FlashcardGraph, deck_adapter
from gated_notes.services.notices import NoticeBoard, get_notice_board

logger = logging.getLogger(__name__)


def deck_path_for_chapter(chapter: str, deck_filename: str | None = None) -> str:
    """Vault path of the deck that holds the cards of note ``chapter``."""
    name = deck_filename or settings.deck_filename
    folder = posixpath.dirname(chapter)
    return posixpath.join(folder, name) if folder else name


def subject_of(path: str) -> str:
    """Top-level folder of a vault path ("Biology/Cells/1.md" -> "Biology")."""
    return path.split("/")[0]


def encode_deck(graph: FlashcardGraph) -> bytes:
    """Pretty-printed deck JSON. Cards outside learning carry no step index."""
    data = deck_adapter.dump_python(graph, mode="json", by_alias=True)
    for card in data.values():
        if card.get("learning_step_index") is None:
            card.pop("learning_step_index", None)
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def _renamed(chapter: str, old_path: str, new_path: str) -> str | None:
    """New chapter path after moving ``old_path``, or None when unaffected."""
    if chapter == old_path:
        return new_path
    if chapter.startswith(old_path + "/"):
        return new_path + chapter[len(old_path):]
    return None


@dataclass
class ChapterMove:
    moved: int = 0
    decks: dict[str, FlashcardGraph] = field(default_factory=dict)  # written decks
    saved: bool = True


class DeckStore:
    def __init__(
        self,
        vault: VaultAdapter,
        notices: NoticeBoard,
        deck_filename: str | None = None,
    ) -> None:
        self.vault = vault
        self.notices = notices
        self.deck_filename = deck_filename or settings.deck_filename

    def path_for(self, chapter: str) -> str:
        return deck_path_for_chapter(chapter, self.deck_filename)

    async def read(self, path: str) -> FlashcardGraph:
        if not await self.vault.exists(path):
            return {}
        try:
            content = await self.vault.read(path)
            return deck_adapter.validate_json(content)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to parse deck at %s: %s", path, e)
            self.notices.notify(
                f"Warning: Could not read flashcard file at {path}. File may be corrupt.",
                level="warning",
            )
            return {}

    async def write(self, path: str, graph: FlashcardGraph) -> bool:
        """Replace the deck stored at ``path``. Returns False if the write was rejected."""
        if await self.vault.is_dir(path):
            logger.warning("Deck path is a folder, cannot write file: %s", path)
            self.notices.notify(
                "Error: Cannot save flashcards, path is a folder.", level="error"
            )
            return False

        content = encode_deck(graph)
        try:
            await self.vault.write(path, content)
        except OSError as e:
            logger.warning("Failed to write deck to %s: %s", path, e)
            self.notices.notify(
                f"Error: Failed to save flashcards to {path}.", level="error"
            )
            return False
        return True

    async def list_decks(self) -> list[str]:
        return await self.vault.find(self.deck_filename)

    async def move_chapter(self, old_path: str, new_path: str) -> ChapterMove:
        """Repoint cards after a note or folder moved from ``old_path`` to ``new_path``.

        Cards of the note (or of any note below the folder) get their new
        ``chapter``; cards whose deck changes are taken out of the old deck and
        added to the new one. Receiving decks are written before the decks
        cards left, so a rejected write never drops a card.
        """
        to_scan = [self.path_for(old_path), self.path_for(new_path)]
        for prefix in (old_path + "/", new_path + "/"):
            to_scan += [p for p in await self.list_decks() if p.startswith(prefix)]

        loaded: dict[str, FlashcardGraph] = {}

        async def _load(path: str) -> FlashcardGraph:
            if path not in loaded:
                loaded[path] = await self.read(path)
            return loaded[path]

        result = ChapterMove()
        receiving: set[str] = set()
        changed: set[str] = set()
        for deck_path in dict.fromkeys(to_scan):
            if not await self.vault.exists(deck_path):
                continue
            graph = await _load(deck_path)
            for card in list(graph.values()):
                chapter = _renamed(card.chapter, old_path, new_path)
                if chapter is None:
                    continue
                card.chapter = chapter
                result.moved += 1
                changed.add(deck_path)
                target = self.path_for(chapter)
                if target != deck_path:
                    del graph[card.id]
                    (await _load(target))[card.id] = card
                    receiving.add(target)
                    changed.add(target)

        ordered = [p for p in loaded if p in receiving]
        ordered += [p for p in loaded if p in changed and p not in receiving]
        for path in ordered:
            if not await self.write(path, loaded[path]):
                result.saved = False
                return result
            result.decks[path] = loaded[path]

        if result.moved:
            logger.info(
                "Moved %d cards from %s to %s across %d decks",
                result.moved,
                old_path,
                new_path,
                len(result.decks),
            )
        return result


def get_deck_store() -> DeckStore:
    return DeckStore(get_vault(), get_notice_board())
