"""Study features derived from transcripts."""

from .exporter import PDFExporter
from .summarizer import HeuristicSummarizer

__all__ = ["HeuristicSummarizer", "PDFExporter"]
