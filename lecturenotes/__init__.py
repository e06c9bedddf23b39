"""Lecture notes recorder: record, transcribe, summarize and export lectures."""

__version__ = "0.1.0"
