"""Tests for the note collection."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from lecturenotes.errors import StoreError
from lecturenotes.notes.collection import NoteCollection, filter_notes
from lecturenotes.notes.models import TITLE_PREFIX


FIXED_NOW = datetime(2026, 10, 17, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def collection(note_store, audio_root):
    """Create a collection over a real store in the temp directory."""
    return NoteCollection(note_store, audio_root, clock=lambda: FIXED_NOW)


@pytest.fixture
def loaded_collection(collection, note_store, sample_notes):
    """A collection whose store already holds the sample notes."""
    note_store.save(sample_notes)
    asyncio.run(collection.load_notes())
    return collection


class TestFilterNotes:
    """Tests for filter_notes."""

    def test_no_filters(self, sample_notes):
        assert filter_notes(sample_notes) == sample_notes

    def test_title_query_case_insensitive(self, sample_notes):
        result = filter_notes(sample_notes, "LINEAR")
        assert [n.title for n in result] == ["Linear Algebra", "Linear Regression"]

    def test_only_with_transcript(self, sample_notes):
        result = filter_notes(sample_notes, only_with_transcript=True)
        assert all(n.has_transcript for n in result)
        assert len(result) == 2

    def test_query_and_transcript_combined(self, sample_notes):
        result = filter_notes(sample_notes, "chem", only_with_transcript=True)
        assert result == []

    def test_query_does_not_match_transcript(self, sample_notes):
        assert filter_notes(sample_notes, "matrices") == []


class TestLoadNotes:
    """Tests for NoteCollection.load_notes."""

    def test_load_sorts_newest_first(self, collection, note_store, sample_notes):
        """Test loaded notes are sorted by date descending."""
        note_store.save(list(reversed(sample_notes)))
        asyncio.run(collection.load_notes())

        assert collection.notes == sample_notes
        assert collection.error_message is None
        assert not collection.is_loading

    def test_load_missing_file(self, collection):
        """Test an empty store gives an empty collection."""
        asyncio.run(collection.load_notes())

        assert collection.notes == []
        assert collection.error_message is None

    def test_load_failure_sets_error(self, collection, note_store):
        """Test a corrupt store empties the list and reports an error."""
        note_store.path.write_text("garbage")
        asyncio.run(collection.load_notes())

        assert collection.notes == []
        assert collection.error_message.startswith("Failed to load notes:")

    def test_load_notifies_listeners(self, collection):
        """Test listeners see the loading flag toggle."""
        states = []
        collection.add_listener(states.append)

        asyncio.run(collection.load_notes())

        assert states[0].is_loading is True
        assert states[-1].is_loading is False


class TestAddNote:
    """Tests for NoteCollection.add_note."""

    def test_add_note_defaults(self, collection, audio_root, note_store):
        """Test a new note has the default title and no transcript."""
        note = asyncio.run(collection.add_note(audio_root / "Recording-1.wav"))

        assert note.title.startswith(TITLE_PREFIX)
        assert note.transcript_text is None
        assert note.date == FIXED_NOW
        assert note.audio_file_path == "Recording-1.wav"
        assert collection.notes[0] == note
        assert note_store.load() == [note]

    def test_add_note_with_transcript(self, collection, audio_root):
        note = asyncio.run(collection.add_note(audio_root / "r.wav", "Hello."))
        assert note.transcript_text == "Hello."

    def test_add_note_keeps_order(self, loaded_collection, audio_root):
        """Test the newest note goes first."""
        note = asyncio.run(loaded_collection.add_note(audio_root / "new.wav"))

        notes = loaded_collection.notes
        assert notes[0] == note
        assert [n.date for n in notes] == sorted((n.date for n in notes), reverse=True)

    def test_add_note_save_failure_raises(self, audio_root):
        """Test a failed save surfaces to the caller."""
        store = MagicMock()
        store.save.side_effect = StoreError("read-only")
        collection = NoteCollection(store, audio_root)

        with pytest.raises(StoreError):
            asyncio.run(collection.add_note(audio_root / "r.wav"))

    def test_relative_audio_path_outside_root(self, collection, temp_dir):
        """Test locations outside the audio root reduce to the file name."""
        assert collection.relative_audio_path(temp_dir / "elsewhere" / "x.wav") == "x.wav"

    def test_relative_audio_path_nested(self, collection, audio_root):
        assert collection.relative_audio_path(audio_root / "2026" / "x.wav") == "2026/x.wav"


class TestPersist:
    """Tests for NoteCollection.persist."""

    def test_persist_existing_keeps_size(self, loaded_collection, sample_notes, note_store):
        """Test updating an existing note replaces it in place."""
        updated = sample_notes[1].with_title("Renamed")
        asyncio.run(loaded_collection.persist(updated))

        assert len(loaded_collection.notes) == 3
        assert loaded_collection.get_note(updated.id).title == "Renamed"
        assert note_store.load()[1].title == "Renamed"

    def test_persist_unknown_inserts(self, loaded_collection, make_note):
        """Test persisting a note not in the list adds it."""
        asyncio.run(loaded_collection.persist(make_note(title="Extra", hours_ago=2)))

        assert len(loaded_collection.notes) == 4
        assert loaded_collection.notes[1].title == "Extra"

    def test_persist_failure_keeps_change(self, audio_root, sample_notes):
        """Test a failed save sets the error but keeps the edit."""
        store = MagicMock()
        store.load.return_value = list(sample_notes)
        collection = NoteCollection(store, audio_root)

        async def run():
            await collection.load_notes()
            store.save.side_effect = StoreError("disk full")
            await collection.persist(sample_notes[0].with_title("Kept"))

        asyncio.run(run())

        assert collection.notes[0].title == "Kept"
        assert collection.error_message == "Failed to save notes: disk full"


class TestDeleteNotes:
    """Tests for NoteCollection.delete_notes."""

    def test_delete_removes_notes_and_files(self, loaded_collection, sample_notes, audio_root, note_store):
        """Test deleting removes the audio file and persists."""
        audio = audio_root / "a.wav"
        audio.write_bytes(b"RIFF")

        asyncio.run(loaded_collection.delete_notes([sample_notes[0].id]))

        assert not audio.exists()
        assert loaded_collection.get_note(sample_notes[0].id) is None
        assert note_store.load() == sample_notes[1:]

    def test_delete_with_missing_file(self, loaded_collection, sample_notes, note_store):
        """Test a failed file removal still removes the note."""
        asyncio.run(loaded_collection.delete_notes([sample_notes[1].id]))

        assert [n.id for n in loaded_collection.notes] == [sample_notes[0].id, sample_notes[2].id]
        assert len(note_store.load()) == 2
        assert loaded_collection.error_message is None

    def test_delete_multiple(self, loaded_collection, sample_notes):
        ids = [n.id for n in sample_notes]
        asyncio.run(loaded_collection.delete_notes(ids))
        assert loaded_collection.notes == []

    def test_delete_unknown_id(self, loaded_collection, sample_notes):
        import uuid
        asyncio.run(loaded_collection.delete_notes([uuid.uuid4()]))
        assert loaded_collection.notes == sample_notes


class TestFilteredNotes:
    """Tests for the collection's filter properties."""

    def test_filtered_notes(self, loaded_collection):
        loaded_collection.search_query = "linear"
        loaded_collection.show_only_with_transcript = True

        assert [n.title for n in loaded_collection.filtered_notes] == [
            "Linear Algebra",
            "Linear Regression",
        ]

    def test_filter_change_notifies(self, collection):
        states = []
        collection.add_listener(states.append)

        collection.search_query = "bio"

        assert states[-1].search_query == "bio"

    def test_remove_listener(self, collection):
        states = []
        remove = collection.add_listener(states.append)
        remove()

        collection.search_query = "bio"

        assert states == []
