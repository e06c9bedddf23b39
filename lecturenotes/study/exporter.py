"""PDF export of lecture transcripts."""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Protocol
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from ..errors import ExportError
from ..notes.models import format_medium_datetime

logger = logging.getLogger(__name__)

MARGIN = 36  # points


class ExportProvider(Protocol):
    def render_document(self, title: str, date: datetime, text: str) -> Path:
        ...


class PDFExporter:
    """Renders a transcript as a US Letter PDF."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def render_document(self, title: str, date: datetime, text: str) -> Path:
        """
        Write a PDF with the title, the date and the transcript body.

        Args:
            title: Lecture title
            date: Lecture date, shown as medium date and short time
            text: Transcript text; blank-line separated blocks become paragraphs

        Returns:
            Location of the rendered document

        Raises:
            ExportError: If the document cannot be written
        """
        output_path = self.output_dir / f"Lecture-Export-{str(uuid.uuid4()).upper()}.pdf"

        styles = getSampleStyleSheet()
        subtitle_style = ParagraphStyle(
            "Subtitle",
            parent=styles["Normal"],
            fontSize=10,
            textColor="grey",
        )

        story = [
            Paragraph(escape(title), styles["Heading2"]),
            Spacer(1, 8),
            Paragraph(escape(format_medium_datetime(date)), subtitle_style),
            Spacer(1, 16),
        ]

        for block in text.strip().split("\n\n"):
            if block.strip():
                body = escape(block.strip()).replace("\n", "<br/>")
                story.append(Paragraph(body, styles["BodyText"]))
                story.append(Spacer(1, 6))

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            doc = SimpleDocTemplate(
                str(output_path),
                pagesize=letter,
                leftMargin=MARGIN,
                rightMargin=MARGIN,
                topMargin=MARGIN,
                bottomMargin=MARGIN,
                title=title,
            )
            doc.build(story)
        except Exception as e:
            logger.error(f"Error exporting to PDF: {e}")
            raise ExportError() from e

        logger.info(f"Exported to PDF: {output_path}")
        return output_path
