"""Tests for the JSON note store."""

import json
from unittest.mock import patch

import pytest

from lecturenotes.errors import StoreError
from lecturenotes.notes.store import NoteStore


class TestNoteStoreLoad:
    """Tests for NoteStore.load."""

    def test_missing_file_is_empty(self, note_store):
        """Test loading before anything was saved."""
        assert note_store.load() == []

    def test_corrupt_file_raises(self, note_store):
        """Test undecodable content raises StoreError."""
        note_store.path.write_text("{not json")

        with pytest.raises(StoreError):
            note_store.load()

    def test_wrong_shape_raises(self, note_store):
        """Test a non-list document raises StoreError."""
        note_store.path.write_text('{"id": "x"}')

        with pytest.raises(StoreError):
            note_store.load()

    def test_missing_field_raises(self, note_store):
        """Test a record without required fields raises StoreError."""
        note_store.path.write_text('[{"title": "No id"}]')

        with pytest.raises(StoreError):
            note_store.load()

    def test_non_string_date_raises(self, note_store):
        """Test a record with a numeric date raises StoreError."""
        note_store.path.write_text(
            '[{"id": "0F6C4D5A-3B57-4C07-9E38-2A1B7E3C9D10", "title": "x", '
            '"date": 5, "audioFilePath": "a.wav", "transcriptText": null}]'
        )

        with pytest.raises(StoreError):
            note_store.load()


class TestNoteStoreSave:
    """Tests for NoteStore.save."""

    def test_save_then_load(self, note_store, sample_notes):
        """Test saved notes load back in order."""
        note_store.save(sample_notes)
        assert note_store.load() == sample_notes

    def test_save_writes_json_list(self, note_store, sample_notes):
        """Test the on-disk format."""
        note_store.save(sample_notes)

        with open(note_store.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        assert isinstance(data, list)
        assert len(data) == 3
        assert data[0]["title"] == "Linear Algebra"
        assert data[1]["transcriptText"] is None

    def test_save_replaces_previous(self, note_store, sample_notes):
        """Test each save replaces the whole list."""
        note_store.save(sample_notes)
        note_store.save(sample_notes[:1])

        assert note_store.load() == sample_notes[:1]

    def test_save_creates_parent(self, temp_dir, sample_notes):
        """Test the parent directory is created."""
        store = NoteStore(temp_dir / "nested" / "lectures.json")
        store.save(sample_notes)

        assert store.path.exists()

    def test_save_leaves_no_temp_files(self, note_store, sample_notes):
        """Test only the target file remains after a save."""
        note_store.save(sample_notes)

        assert [p.name for p in note_store.path.parent.iterdir()] == ["lectures.json"]

    def test_failed_replace_keeps_old_file(self, note_store, sample_notes):
        """Test an interrupted save leaves the previous content intact."""
        note_store.save(sample_notes)

        with patch("lecturenotes.notes.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreError, match="disk full"):
                note_store.save(sample_notes[:1])

        assert note_store.load() == sample_notes
        assert [p.name for p in note_store.path.parent.iterdir()] == ["lectures.json"]

    def test_unicode_titles(self, note_store, make_note):
        """Test non-ASCII text round-trips."""
        notes = [make_note(title="Lecture – Thermodynamik", transcript="Entropie ΔS ≥ 0")]
        note_store.save(notes)

        assert note_store.load() == notes
        assert "Thermodynamik" in note_store.path.read_text(encoding="utf-8")
