"""JSON file storage for the lecture note list."""

import json
import logging
import os
import tempfile
from pathlib import Path

from ..errors import StoreError
from .models import LectureNote

logger = logging.getLogger(__name__)


class NoteStore:
    """Loads and saves the full note list as a single JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> list[LectureNote]:
        """
        Load all notes.

        Returns:
            Notes in file order, or an empty list if the file does not exist

        Raises:
            StoreError: If the file cannot be read or decoded
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("expected a list of notes")
            notes = [LectureNote.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load notes from {self.path}: {e}")
            raise StoreError(str(e)) from e

        logger.debug(f"Loaded {len(notes)} notes from {self.path}")
        return notes

    def save(self, notes: list[LectureNote]) -> None:
        """
        Replace the stored list with ``notes``.

        The list is written to a temporary file in the same directory and
        renamed over the target, so readers never see a partial file.

        Raises:
            StoreError: If the file cannot be written
        """
        payload = [note.to_dict() for note in notes]
        temp_path = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save notes to {self.path}: {e}")
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise StoreError(str(e)) from e

        logger.debug(f"Saved {len(notes)} notes to {self.path}")
