"""Heuristic study summaries of lecture transcripts."""

import logging
import re
from typing import Optional, Protocol

from ..config import SummaryConfig
from ..notes.models import SummaryResult

logger = logging.getLogger(__name__)

SENTENCE_DELIMITERS = re.compile(r"[.!?]")


class SummaryProvider(Protocol):
    def summarize(self, text: str) -> SummaryResult:
        ...


def split_sentences(text: str) -> list[str]:
    """Split on sentence punctuation, dropping empty pieces."""
    pieces = (piece.strip() for piece in SENTENCE_DELIMITERS.split(text))
    return [piece for piece in pieces if piece]


def word_count(sentence: str) -> int:
    """Count space-separated words; tabs and newlines do not separate words."""
    return len([word for word in sentence.split(" ") if word])


class HeuristicSummarizer:
    """
    Deterministic summarizer.

    The summary is the opening sentences of the transcript; key points are
    its short sentences, falling back to the opening sentences when every
    sentence is long.
    """

    def __init__(self, config: Optional[SummaryConfig] = None):
        self.config = config or SummaryConfig()

    def summarize(self, text: str) -> SummaryResult:
        sentences = split_sentences(text)
        summary = " ".join(sentences[: self.config.summary_sentences])
        key_points = self._select_key_points(sentences)

        logger.debug(f"Summarized {len(sentences)} sentences into {len(key_points)} key points")
        return SummaryResult(summary=summary or text, key_points=key_points)

    def _select_key_points(self, sentences: list[str]) -> list[str]:
        if not sentences:
            return []

        short = [s for s in sentences if word_count(s) <= self.config.key_point_max_words]
        if not short:
            return sentences[: self.config.fallback_key_points]
        return short[: self.config.max_key_points]
