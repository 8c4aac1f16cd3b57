import json

import pytest

from gated_notes.db.vault import VaultPathError
from gated_notes.models.flashcard import CardRating, CardStatus
from gated_notes.services.deck_store import deck_path_for_chapter, subject_of
from gated_notes.services.scheduler import apply_rating

from conftest import T0

DECK = "Biology/_flashcards.json"


class TestRead:
    async def test_missing_deck_reads_as_empty(self, store, notices):
        assert await store.read(DECK) == {}
        assert notices.recent() == []

    async def test_corrupt_deck_reads_as_empty_and_warns(self, store, notices, tmp_path):
        target = tmp_path / DECK
        target.parent.mkdir(parents=True)
        target.write_text("{not json", encoding="utf-8")

        assert await store.read(DECK) == {}

        [notice] = notices.recent()
        assert notice.level == "warning"
        assert DECK in notice.message
        # left as found for manual recovery
        assert target.read_text(encoding="utf-8") == "{not json"

    async def test_schema_mismatch_counts_as_corrupt(self, store, notices, tmp_path):
        target = tmp_path / DECK
        target.parent.mkdir(parents=True)
        target.write_text(
            json.dumps({"c1": {"id": "c1", "front": "Q", "status": "graduated"}}),
            encoding="utf-8",
        )

        assert await store.read(DECK) == {}
        assert len(notices.recent()) == 1

    async def test_directory_at_deck_path_reads_as_empty(self, store, tmp_path):
        (tmp_path / DECK).mkdir(parents=True)

        assert await store.read(DECK) == {}

    async def test_step_index_is_dropped_for_review_cards(self, store, tmp_path):
        target = tmp_path / DECK
        target.parent.mkdir(parents=True)
        target.write_text(
            json.dumps(
                {
                    "c1": {
                        "id": "c1",
                        "front": "Q",
                        "back": "A",
                        "chapter": "Biology/cells.md",
                        "status": "review",
                        "due": T0,
                        "learning_step_index": 1,
                    }
                }
            ),
            encoding="utf-8",
        )

        graph = await store.read(DECK)

        assert graph["c1"].learning_step_index is None


class TestWrite:
    async def test_round_trip(self, store, make_card):
        learning = make_card(status=CardStatus.LEARNING, learning_step_index=1, para_idx=4)
        reviewed = make_card(status=CardStatus.REVIEW, interval=6, ease_factor=2.1)
        apply_rating(reviewed, CardRating.HARD, now=T0)
        graph = {learning.id: learning, reviewed.id: reviewed}

        assert await store.write(DECK, graph) is True

        assert await store.read(DECK) == graph

    async def test_file_is_pretty_printed_with_original_field_names(
        self, store, make_card, tmp_path
    ):
        card = make_card(para_idx=2)

        await store.write(DECK, {card.id: card})

        text = (tmp_path / DECK).read_text(encoding="utf-8")
        assert text.startswith('{\n  "')
        stored = json.loads(text)[card.id]
        assert stored["paraIdx"] == 2
        assert stored["status"] == "new"
        assert "learning_step_index" not in stored
        assert stored["last_reviewed"] is None

    async def test_learning_cards_keep_their_step_index_on_disk(
        self, store, make_card, tmp_path
    ):
        learning = make_card(status=CardStatus.LEARNING, learning_step_index=1)
        reviewed = make_card(status=CardStatus.REVIEW, interval=3)

        await store.write(DECK, {learning.id: learning, reviewed.id: reviewed})

        stored = json.loads((tmp_path / DECK).read_text(encoding="utf-8"))
        assert stored[learning.id]["learning_step_index"] == 1
        assert "learning_step_index" not in stored[reviewed.id]

    async def test_write_replaces_the_whole_deck(self, store, make_card):
        a, b = make_card(), make_card()
        await store.write(DECK, {a.id: a, b.id: b})

        await store.write(DECK, {b.id: b})

        assert list(await store.read(DECK)) == [b.id]

    async def test_write_to_folder_is_rejected(self, store, notices, make_card, tmp_path):
        (tmp_path / DECK).mkdir(parents=True)
        card = make_card()
        graph = {card.id: card}

        assert await store.write(DECK, graph) is False

        assert graph == {card.id: card}
        [notice] = notices.recent()
        assert notice.level == "error"
        assert "folder" in notice.message

    async def test_write_creates_missing_folders(self, store, make_card, tmp_path):
        card = make_card(chapter="Physics/Waves/sound.md")
        path = store.path_for(card.chapter)

        assert await store.write(path, {card.id: card}) is True
        assert (tmp_path / "Physics" / "Waves" / "_flashcards.json").is_file()


class TestPaths:
    @pytest.mark.parametrize(
        "chapter,expected",
        [
            ("Biology/cells.md", "Biology/_flashcards.json"),
            ("Biology/Unit 1/cells.md", "Biology/Unit 1/_flashcards.json"),
            ("inbox.md", "_flashcards.json"),
        ],
    )
    def test_deck_path_for_chapter(self, chapter, expected):
        assert deck_path_for_chapter(chapter, "_flashcards.json") == expected

    def test_subject_is_top_level_folder(self):
        assert subject_of("Biology/Unit 1/cells.md") == "Biology"
        assert subject_of("inbox.md") == "inbox.md"

    async def test_list_decks(self, store, make_card):
        for chapter in ("A/1.md", "B/C/2.md"):
            card = make_card(chapter=chapter)
            await store.write(store.path_for(chapter), {card.id: card})

        assert await store.list_decks() == ["A/_flashcards.json", "B/C/_flashcards.json"]

    async def test_paths_outside_the_vault_are_refused(self, store):
        with pytest.raises(VaultPathError):
            await store.read("../elsewhere/_flashcards.json")


class TestMoveChapter:
    async def test_rename_within_folder_keeps_the_deck(self, store, make_card):
        moved = make_card(chapter="Bio/a.md", para_idx=1)
        sibling = make_card(chapter="Bio/c.md")
        await store.write("Bio/_flashcards.json", {moved.id: moved, sibling.id: sibling})

        result = await store.move_chapter("Bio/a.md", "Bio/b.md")

        assert result.moved == 1
        assert result.saved is True
        assert list(result.decks) == ["Bio/_flashcards.json"]
        graph = await store.read("Bio/_flashcards.json")
        assert graph[moved.id].chapter == "Bio/b.md"
        assert graph[moved.id].para_idx == 1
        assert graph[sibling.id].chapter == "Bio/c.md"

    async def test_move_across_folders_changes_deck(self, store, make_card):
        moved = make_card(chapter="Bio/a.md", status=CardStatus.LEARNING, learning_step_index=1)
        stays = make_card(chapter="Bio/c.md")
        resident = make_card(chapter="Chem/x.md")
        await store.write("Bio/_flashcards.json", {moved.id: moved, stays.id: stays})
        await store.write("Chem/_flashcards.json", {resident.id: resident})

        result = await store.move_chapter("Bio/a.md", "Chem/a.md")

        assert result.moved == 1
        assert set(result.decks) == {"Bio/_flashcards.json", "Chem/_flashcards.json"}
        bio = await store.read("Bio/_flashcards.json")
        chem = await store.read("Chem/_flashcards.json")
        assert list(bio) == [stays.id]
        assert set(chem) == {resident.id, moved.id}
        assert chem[moved.id].chapter == "Chem/a.md"
        assert chem[moved.id].learning_step_index == 1

    async def test_folder_rename_moves_nested_decks(self, store, make_card, tmp_path):
        top = make_card(chapter="Bio/a.md")
        nested = make_card(chapter="Bio/Cells/b.md")
        await store.write("Bio/_flashcards.json", {top.id: top})
        await store.write("Bio/Cells/_flashcards.json", {nested.id: nested})

        result = await store.move_chapter("Bio", "Biology")

        assert result.moved == 2
        assert (await store.read("Biology/_flashcards.json"))[top.id].chapter == "Biology/a.md"
        cells = await store.read("Biology/Cells/_flashcards.json")
        assert cells[nested.id].chapter == "Biology/Cells/b.md"
        assert await store.read("Bio/_flashcards.json") == {}
        assert await store.read("Bio/Cells/_flashcards.json") == {}

    async def test_prefix_of_another_name_is_untouched(self, store, make_card):
        card = make_card(chapter="Bio/ab.md")
        await store.write("Bio/_flashcards.json", {card.id: card})

        result = await store.move_chapter("Bio/a", "Bio/z")

        assert result.moved == 0
        assert (await store.read("Bio/_flashcards.json"))[card.id].chapter == "Bio/ab.md"

    async def test_no_cards_writes_nothing(self, store, tmp_path):
        result = await store.move_chapter("Bio/a.md", "Chem/a.md")

        assert result.moved == 0
        assert result.decks == {}
        assert not (tmp_path / "Chem").exists()

    async def test_rejected_write_keeps_the_source_deck(
        self, store, make_card, notices, tmp_path
    ):
        card = make_card(chapter="Bio/a.md")
        await store.write("Bio/_flashcards.json", {card.id: card})
        (tmp_path / "Chem" / "_flashcards.json").mkdir(parents=True)

        result = await store.move_chapter("Bio/a.md", "Chem/a.md")

        assert result.saved is False
        assert result.decks == {}
        source = await store.read("Bio/_flashcards.json")
        assert source[card.id].chapter == "Bio/a.md"
        assert notices.recent()[0].level == "error"
