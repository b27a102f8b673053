# ABOUTME: Renders document sections to PDF bytes with reportlab
# ABOUTME: One bold title per section, body paragraphs and indented bullets

import io
import logging
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from backend.exporters.markdown_utils import detect_text_formatting, process_bullet_point, process_section

logger = logging.getLogger(__name__)

PAGE_MARGIN = 30
TITLE_STYLE = ParagraphStyle("SectionTitle", fontName="Helvetica-Bold", fontSize=16, leading=20, spaceAfter=10)
DOCUMENT_TITLE_STYLE = ParagraphStyle("DocumentTitle", parent=TITLE_STYLE, fontSize=20, leading=24, spaceAfter=16)
BODY_STYLE = ParagraphStyle("Body", fontName="Helvetica", fontSize=12, leading=18)
BULLET_INDENT = 20
BULLET_LEVEL_INDENT = 10


def _bullet_style(level: int) -> ParagraphStyle:
    indent = BULLET_INDENT + level * BULLET_LEVEL_INDENT
    return ParagraphStyle(
        f"Bullet{level}", parent=BODY_STYLE, leftIndent=indent, bulletIndent=indent - 10
    )


def _markup(formatting: Dict[str, Any]) -> str:
    text = escape(formatting["text"])
    if formatting["bold"]:
        text = f"<b>{text}</b>"
    if formatting["italic"]:
        text = f"<i>{text}</i>"
    return text


def build_flowables(sections: List[Dict[str, Any]], title: Optional[str] = None) -> list:
    flowables = []
    if title:
        flowables.append(Paragraph(escape(title), DOCUMENT_TITLE_STYLE))

    for section in sections:
        processed = process_section(section)
        flowables.append(Paragraph(escape(processed["title"]), TITLE_STYLE))
        for line in processed["content"].split("\n"):
            text, is_bullet, level = process_bullet_point(line.rstrip())
            formatting = detect_text_formatting(text)
            if not formatting["text"].strip():
                continue
            if is_bullet:
                flowables.append(Paragraph(_markup(formatting), _bullet_style(level), bulletText="•"))
            else:
                flowables.append(Paragraph(_markup(formatting), BODY_STYLE))
        flowables.append(Spacer(1, 20))
    return flowables


def render_pdf(sections: List[Dict[str, Any]], title: Optional[str] = None) -> bytes:
    """Render sections to an A4 PDF and return its bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=title or "",
    )
    doc.build(build_flowables(sections, title))
    logger.info(f"Rendered PDF with {len(sections)} sections")
    return buffer.getvalue()
