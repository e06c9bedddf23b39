"""Tests for PDF export."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from lecturenotes.errors import ExportError
from lecturenotes.study.exporter import PDFExporter


DATE = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


class TestPDFExporter:
    """Tests for PDFExporter."""

    def test_render_document(self, temp_dir):
        """Test a PDF file is written to the export directory."""
        exporter = PDFExporter(temp_dir / "exports")

        path = exporter.render_document("Thermodynamics", DATE, "First paragraph.\n\nSecond paragraph.")

        assert path.exists()
        assert path.parent == temp_dir / "exports"
        assert path.name.startswith("Lecture-Export-")
        assert path.suffix == ".pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_unique_names(self, temp_dir):
        exporter = PDFExporter(temp_dir)

        first = exporter.render_document("A", DATE, "Text.")
        second = exporter.render_document("A", DATE, "Text.")

        assert first != second

    def test_markup_is_escaped(self, temp_dir):
        """Test characters that look like markup do not break rendering."""
        exporter = PDFExporter(temp_dir)

        path = exporter.render_document("<b>Fish & Chips</b>", DATE, "x < y & y > z")

        assert path.exists()

    def test_build_failure(self, temp_dir):
        exporter = PDFExporter(temp_dir)

        with patch("lecturenotes.study.exporter.SimpleDocTemplate.build", side_effect=OSError("disk full")):
            with pytest.raises(ExportError):
                exporter.render_document("A", DATE, "Text.")
