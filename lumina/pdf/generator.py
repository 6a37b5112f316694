"""PDF handouts for generated textbook sections."""

import io
import logging
import re
import string
from datetime import datetime
from pathlib import Path
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    PageBreak,
    Preformatted,
    KeepTogether,
)
from reportlab.lib.enums import TA_CENTER

from ..config import EXPORT_FOLDER
from ..content.citation import CitationStyle, format_citation
from ..content.models import QuizQuestion, TextbookStructure

logger = logging.getLogger("lumina.pdf")


def option_label(index: int) -> str:
    """Letter for an answer option: A, B, ... Z, then AA, AB, ..."""
    label = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        label = string.ascii_uppercase[remainder] + label
    return label


class HandoutGenerator:
    """Render one section, and optionally its quiz, as a printable PDF."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Set up custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='HandoutTitle',
            parent=self.styles['Heading1'],
            fontSize=22,
            spaceAfter=12,
            alignment=TA_CENTER
        ))
        self.styles.add(ParagraphStyle(
            name='Breadcrumb',
            parent=self.styles['Normal'],
            fontSize=10,
            textColor=colors.gray,
            alignment=TA_CENTER,
            spaceAfter=6
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeading',
            parent=self.styles['Heading2'],
            fontSize=16,
            spaceBefore=15,
            spaceAfter=10,
            textColor=colors.darkblue
        ))
        self.styles.add(ParagraphStyle(
            name='SubHeading',
            parent=self.styles['Heading3'],
            fontSize=13,
            spaceBefore=10,
            spaceAfter=6
        ))
        self.styles.add(ParagraphStyle(
            name='ListItem',
            parent=self.styles['Normal'],
            fontSize=11,
            leftIndent=20,
            spaceAfter=3
        ))
        self.styles.add(ParagraphStyle(
            name='CodeBlock',
            parent=self.styles['Code'],
            fontSize=9,
            leftIndent=15,
            backColor=colors.whitesmoke,
            borderPadding=6,
            spaceBefore=6,
            spaceAfter=10
        ))
        self.styles.add(ParagraphStyle(
            name='Question',
            parent=self.styles['Normal'],
            fontSize=12,
            spaceBefore=10,
            spaceAfter=4
        ))
        self.styles.add(ParagraphStyle(
            name='Option',
            parent=self.styles['Normal'],
            fontSize=11,
            leftIndent=30,
            spaceAfter=2
        ))
        self.styles.add(ParagraphStyle(
            name='Citation',
            parent=self.styles['Normal'],
            fontSize=9,
            textColor=colors.darkslategray,
            spaceBefore=20
        ))

    def _escape(self, text: str) -> str:
        return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')

    def _inline_markup(self, text: str) -> str:
        """Convert inline markdown to ReportLab-compatible HTML."""
        text = self._escape(text)

        # Pull code spans out first so emphasis markers inside them are left alone
        code_spans = []

        def stash(match):
            code_spans.append(match.group(1))
            return f"\x00{len(code_spans) - 1}\x00"

        text = re.sub(r'`([^`]+)`', stash, text)

        # Convert **bold** to <b>bold</b>
        text = re.sub(r'\*\*([^<>]+?)\*\*', r'<b>\1</b>', text)

        # Convert *italic* to <i>italic</i>; it may not cross a tag
        text = re.sub(r'(?<!\*)\*(?!\*)([^<>*]+?)\*(?!\*)', r'<i>\1</i>', text)

        return re.sub(
            r'\x00(\d+)\x00',
            lambda match: f'<font face="Courier">{code_spans[int(match.group(1))]}</font>',
            text,
        )

    def _paragraph(self, text: str, style: str, prefix: str = "") -> Paragraph:
        """Build a paragraph from markdown text, falling back to plain text if ReportLab rejects the markup."""
        try:
            return Paragraph(f"{prefix}{self._inline_markup(text)}", self.styles[style])
        except ValueError:
            logger.warning("Could not render markup, using plain text: %.60r", text)
            return Paragraph(f"{prefix}{self._escape(text)}", self.styles[style])

    def _markdown_to_flowables(self, markdown: str) -> list:
        """Convert section Markdown into platypus flowables.

        Handles the subset sections are written in: ## and ### headings,
        bullet and numbered lists, fenced code blocks and paragraphs.
        """
        elements = []
        paragraph_lines = []
        code_lines = None

        def flush_paragraph():
            if paragraph_lines:
                text = " ".join(line.strip() for line in paragraph_lines)
                elements.append(self._paragraph(text, "Normal"))
                elements.append(Spacer(1, 0.08*inch))
                paragraph_lines.clear()

        for line in markdown.splitlines():
            stripped = line.strip()

            # Fenced code blocks are kept verbatim
            if stripped.startswith("```"):
                if code_lines is None:
                    flush_paragraph()
                    code_lines = []
                else:
                    elements.append(Preformatted("\n".join(code_lines), self.styles['CodeBlock']))
                    code_lines = None
                continue
            if code_lines is not None:
                code_lines.append(line)
                continue

            if not stripped:
                flush_paragraph()
                continue

            heading = re.match(r'^(#{1,6})\s+(.*)$', stripped)
            if heading:
                flush_paragraph()
                style = 'SectionHeading' if len(heading.group(1)) <= 2 else 'SubHeading'
                elements.append(self._paragraph(heading.group(2), style))
                continue

            bullet = re.match(r'^[-*+]\s+(.*)$', stripped)
            if bullet and not stripped.startswith('**'):
                flush_paragraph()
                elements.append(self._paragraph(bullet.group(1), "ListItem", prefix="• "))
                continue

            numbered = re.match(r'^(\d+)[.)]\s+(.*)$', stripped)
            if numbered:
                flush_paragraph()
                elements.append(self._paragraph(numbered.group(2), "ListItem", prefix=f"{numbered.group(1)}. "))
                continue

            paragraph_lines.append(line)

        # Unterminated fence: keep what was collected
        if code_lines:
            elements.append(Preformatted("\n".join(code_lines), self.styles['CodeBlock']))
        flush_paragraph()

        return elements

    def _add_header(self, elements: list, structure: TextbookStructure, chapter_title: str, section_title: str):
        """Add header with topic, breadcrumb and divider."""
        elements.append(self._paragraph(section_title, "HandoutTitle"))
        elements.append(Paragraph(
            f"{self._escape(structure.topic)} &gt; {self._escape(chapter_title)}",
            self.styles['Breadcrumb']
        ))
        elements.append(Paragraph(
            f"Written for: {self._escape(structure.target_audience)}",
            self.styles['Breadcrumb']
        ))
        elements.append(Spacer(1, 0.15*inch))

        # Divider line
        divider = Table([['']], colWidths=[7*inch])
        divider.setStyle(TableStyle([
            ('LINEBELOW', (0, 0), (-1, -1), 1, colors.darkblue),
        ]))
        elements.append(divider)
        elements.append(Spacer(1, 0.2*inch))

    def _add_quiz(self, elements: list, questions: list[QuizQuestion]):
        """Add quiz questions, then an answer key on its own page."""
        elements.append(PageBreak())
        elements.append(Paragraph("Check Your Understanding", self.styles['SectionHeading']))

        for number, question in enumerate(questions, 1):
            block = [self._paragraph(question.question, "Question", prefix=f"<b>{number}.</b> ")]
            for index, option in enumerate(question.options):
                block.append(self._paragraph(option, "Option", prefix=f"{option_label(index)}) "))
            elements.append(KeepTogether(block))

        elements.append(PageBreak())
        elements.append(Paragraph("Answer Key", self.styles['SectionHeading']))
        for number, question in enumerate(questions, 1):
            elements.append(self._paragraph(
                question.explanation,
                "Normal",
                prefix=f"<b>{number}. {option_label(question.correct_index)}</b>: ",
            ))
            elements.append(Spacer(1, 0.08*inch))

    def build(
        self,
        structure: TextbookStructure,
        chapter_id: str,
        section_id: str,
        content: str,
        quiz: Optional[list[QuizQuestion]] = None,
        when: Optional[datetime] = None,
    ) -> bytes:
        """Render a section handout and return the PDF bytes.

        Raises:
            ValueError: the section is not part of the structure.
        """
        chapter = structure.get_chapter(chapter_id)
        section = structure.get_section(chapter_id, section_id)
        if chapter is None or section is None:
            raise ValueError(f"Unknown section {chapter_id}/{section_id}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
            title=f"{structure.topic}: {section.title}",
            author="Lumina AI",
        )

        elements = []
        self._add_header(elements, structure, chapter.title, section.title)
        elements.extend(self._markdown_to_flowables(content))

        citation = format_citation(CitationStyle.APA, structure.topic, chapter.title, section.title, when=when)
        elements.append(Paragraph(f"<b>Cite as:</b> {self._escape(citation)}", self.styles['Citation']))

        if quiz:
            self._add_quiz(elements, quiz)

        doc.build(elements)
        return buffer.getvalue()

    def save(
        self,
        structure: TextbookStructure,
        chapter_id: str,
        section_id: str,
        content: str,
        quiz: Optional[list[QuizQuestion]] = None,
        folder: Optional[Path] = None,
    ) -> Path:
        """Render a section handout into the export folder and return its path."""
        folder = Path(folder or EXPORT_FOLDER)
        folder.mkdir(parents=True, exist_ok=True)

        filename = f"handout_{section_id}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf"
        filepath = folder / filename
        filepath.write_bytes(self.build(structure, chapter_id, section_id, content, quiz=quiz))

        logger.info("Wrote handout %s", filepath)
        return filepath
