"""In-memory note collection backed by the note store."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..errors import user_message
from ..observable import Observable
from .models import LectureNote
from .store import NoteStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionState:
    """Snapshot of the collection as seen by listeners."""
    notes: tuple[LectureNote, ...] = ()
    error_message: Optional[str] = None
    is_loading: bool = False
    search_query: str = ""
    show_only_with_transcript: bool = False


def filter_notes(
    notes: Iterable[LectureNote],
    query: str = "",
    only_with_transcript: bool = False,
) -> list[LectureNote]:
    """Title substring match (case-insensitive) AND optional transcript filter."""
    needle = query.strip().casefold()
    result = []
    for note in notes:
        if needle and needle not in note.title.casefold():
            continue
        if only_with_transcript and not note.has_transcript:
            continue
        result.append(note)
    return result


class NoteCollection(Observable[CollectionState]):
    """Owns the canonical note list and writes it through to the store."""

    def __init__(
        self,
        store: NoteStore,
        audio_root: str | Path,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        super().__init__()
        self.store = store
        self.audio_root = Path(audio_root)
        self._clock = clock

        self._notes: list[LectureNote] = []
        self._error_message: Optional[str] = None
        self._is_loading = False
        self._search_query = ""
        self._show_only_with_transcript = False

        # Saves are serialized so the newest snapshot lands last
        self._save_lock = asyncio.Lock()

    # ==================== State ====================

    @property
    def notes(self) -> list[LectureNote]:
        return list(self._notes)

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def search_query(self) -> str:
        return self._search_query

    @search_query.setter
    def search_query(self, value: str) -> None:
        self._search_query = value
        self._changed()

    @property
    def show_only_with_transcript(self) -> bool:
        return self._show_only_with_transcript

    @show_only_with_transcript.setter
    def show_only_with_transcript(self, value: bool) -> None:
        self._show_only_with_transcript = value
        self._changed()

    @property
    def filtered_notes(self) -> list[LectureNote]:
        """Notes matching the current search query and transcript filter."""
        return filter_notes(
            self._notes,
            self._search_query,
            self._show_only_with_transcript,
        )

    @property
    def state(self) -> CollectionState:
        return CollectionState(
            notes=tuple(self._notes),
            error_message=self._error_message,
            is_loading=self._is_loading,
            search_query=self._search_query,
            show_only_with_transcript=self._show_only_with_transcript,
        )

    def get_note(self, note_id: uuid.UUID) -> Optional[LectureNote]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def _changed(self) -> None:
        self._notify(self.state)

    def _sort(self) -> None:
        self._notes.sort(key=lambda n: n.date, reverse=True)

    # ==================== Operations ====================

    async def load_notes(self) -> None:
        """Replace the collection with the stored notes, newest first."""
        self._is_loading = True
        self._changed()

        try:
            loaded = await asyncio.to_thread(self.store.load)
            self._notes = sorted(loaded, key=lambda n: n.date, reverse=True)
            self._error_message = None
            logger.info(f"Loaded {len(self._notes)} notes")
        except Exception as e:
            logger.error(f"Failed to load notes: {e}")
            self._notes = []
            self._error_message = f"Failed to load notes: {user_message(e)}"
        finally:
            self._is_loading = False
            self._changed()

    async def add_note(
        self,
        audio_location: str | Path,
        transcript_text: Optional[str] = None,
    ) -> LectureNote:
        """
        Create a note for a finished recording and persist the collection.

        Args:
            audio_location: Absolute location of the recording
            transcript_text: Optional initial transcript

        Returns:
            The new note

        Raises:
            StoreError: If the collection could not be saved
        """
        note = LectureNote.create(
            audio_file_path=self.relative_audio_path(audio_location),
            transcript_text=transcript_text,
            now=self._clock(),
        )

        self._notes.insert(0, note)
        self._sort()
        self._changed()
        logger.info(f"Added note {note.id} ({note.audio_file_path})")

        await self._save()
        self._error_message = None
        self._changed()
        return note

    def apply_updated(self, note: LectureNote) -> None:
        """Replace the note with the same id, or insert it."""
        for index, existing in enumerate(self._notes):
            if existing.id == note.id:
                self._notes[index] = note
                break
        else:
            self._notes.insert(0, note)

        self._sort()
        self._changed()

    async def persist(self, note: LectureNote) -> None:
        """Apply ``note`` and save; a failed save keeps the in-memory change."""
        self.apply_updated(note)
        try:
            await self._save()
            self._error_message = None
        except Exception as e:
            logger.error(f"Failed to persist note {note.id}: {e}")
            self._error_message = f"Failed to save notes: {user_message(e)}"
        self._changed()

    async def delete_notes(self, identifiers: Iterable[uuid.UUID]) -> None:
        """Remove notes and their recordings, then save."""
        ids = set(identifiers)
        doomed = [note for note in self._notes if note.id in ids]

        for note in doomed:
            audio_path = self.audio_path(note)
            try:
                await asyncio.to_thread(audio_path.unlink)
            except OSError as e:
                logger.warning(f"Could not delete audio file {audio_path}: {e}")

        self._notes = [note for note in self._notes if note.id not in ids]
        self._changed()
        logger.info(f"Deleted {len(doomed)} notes")

        try:
            await self._save()
            self._error_message = None
        except Exception as e:
            logger.error(f"Failed to save after delete: {e}")
            self._error_message = f"Failed to save notes: {user_message(e)}"
        self._changed()

    # ==================== Helpers ====================

    async def _save(self) -> None:
        async with self._save_lock:
            snapshot = list(self._notes)
            await asyncio.to_thread(self.store.save, snapshot)

    def audio_path(self, note: LectureNote) -> Path:
        """Absolute location of a note's recording."""
        return self.audio_root / note.audio_file_path

    def relative_audio_path(self, location: str | Path) -> str:
        """Path relative to the audio root, or the bare file name if outside it."""
        location = Path(location)
        try:
            relative = location.resolve().relative_to(self.audio_root.resolve())
        except ValueError:
            return location.name
        return relative.as_posix() or location.name
