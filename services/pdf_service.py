"""
PDF Service for Digitale Kleiderkammer.

Renders tabular lists (issue lists, helmet alert reports) to PDF with
reportlab. Every page carries a small footer with the generation time and
page number.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, A5, LETTER, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from config.constants import APP_NAME
from domain.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)


PAGE_SIZES = {
    "A4": A4,
    "A5": A5,
    "LETTER": LETTER,
}

FOOTER_FONT = "Helvetica"
FOOTER_FONT_SIZE = 6


class PDFService:
    """
    Service for PDF list generation using reportlab platypus.

    Example:
        >>> service = create_pdf_service()
        >>> service.render_table(Path("liste.pdf"), "Ausgabeliste",
        ...                      ["Artikel", "Größe"], [["Helm", "M"]])
    """

    def __init__(self, page_size: str = "A4", landscape_mode: bool = False):
        """
        Initialize PDF service.

        Args:
            page_size: "A4", "A5" or "LETTER"
            landscape_mode: Rotate pages to landscape

        Raises:
            ValueError: If the page size is unknown
        """
        if page_size.upper() not in PAGE_SIZES:
            raise ValueError(f"Unknown page size: {page_size}")

        size = PAGE_SIZES[page_size.upper()]
        self.page_size = landscape(size) if landscape_mode else size
        self.styles = getSampleStyleSheet()
        self._generated_at = datetime.now()

    def _draw_footer(self, canv, doc):
        """Generation stamp bottom left, page number bottom right (light grey)."""
        page_width, _ = self.page_size
        canv.saveState()
        canv.setFont(FOOTER_FONT, FOOTER_FONT_SIZE)
        canv.setFillColorRGB(0.7, 0.7, 0.7)

        canv.drawString(10, 10, f"{APP_NAME} - {self._generated_at:%d.%m.%Y %H:%M}")

        page_text = f"Page {doc.page}"
        text_width = canv.stringWidth(page_text, FOOTER_FONT, FOOTER_FONT_SIZE)
        canv.drawString(page_width - text_width - 10, 10, page_text)
        canv.restoreState()

    def _build_table(self, headers: Sequence[str], rows: List[Sequence[Any]]) -> Table:
        cell_style = self.styles["BodyText"]
        data = [list(headers)]
        for row in rows:
            data.append([
                Paragraph("" if value is None else escape(str(value)), cell_style)
                for value in row
            ])

        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2f4f6f")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, 0), 9),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f2f2f2")]),
        ]))
        return table

    def render_table(
        self,
        output_path: Path,
        title: str,
        headers: Sequence[str],
        rows: List[Sequence[Any]],
        subtitle: Optional[str] = None,
        empty_message: str = "No entries.",
    ) -> Path:
        """
        Render a titled table to a PDF file.

        Args:
            output_path: Target .pdf path (parent directories are created)
            title: Document heading
            headers: Column headers
            rows: Table rows (None cells render empty)
            subtitle: Optional line below the heading
            empty_message: Shown instead of the table when rows is empty

        Returns:
            Path to the written PDF

        Raises:
            ReportGenerationError: If reportlab fails to build the document
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self._generated_at = datetime.now()

        story = [Paragraph(escape(title), self.styles["Title"])]
        if subtitle:
            story.append(Paragraph(escape(subtitle), self.styles["Normal"]))
        story.append(Spacer(1, 6 * mm))

        if rows:
            story.append(self._build_table(headers, rows))
        else:
            story.append(Paragraph(empty_message, self.styles["Italic"]))

        doc = SimpleDocTemplate(
            str(output_path),
            pagesize=self.page_size,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
            title=title,
            author=APP_NAME,
        )

        try:
            doc.build(story, onFirstPage=self._draw_footer, onLaterPages=self._draw_footer)
        except Exception as e:
            logger.exception(f"PDF generation failed: {output_path}")
            raise ReportGenerationError(
                f"Failed to generate PDF: {e}",
                details={"output_path": str(output_path)},
            )

        logger.info(f"PDF written: {output_path} ({len(rows)} rows)")
        return output_path


def create_pdf_service(page_size: str = "A4", landscape_mode: bool = False) -> PDFService:
    """
    Factory function to create PDFService.

    Example:
        >>> service = create_pdf_service(page_size="A4")
    """
    return PDFService(page_size=page_size, landscape_mode=landscape_mode)
