"""Lecture note model, JSON store and in-memory collection."""

from .collection import NoteCollection
from .models import LectureNote, SummaryResult
from .store import NoteStore

__all__ = ["LectureNote", "SummaryResult", "NoteStore", "NoteCollection"]
