# ABOUTME: Renders document sections to DOCX bytes with python-docx
# ABOUTME: Heading 1 per section, bullet styles by indent level and bold/italic runs

import io
import logging
from typing import Any, Dict, List

from docx import Document
from docx.shared import Pt

from backend.exporters.markdown_utils import detect_text_formatting, process_bullet_point, process_section

logger = logging.getLogger(__name__)

PARAGRAPH_SPACING = Pt(10)
BULLET_STYLES = ["List Bullet", "List Bullet 2", "List Bullet 3"]


def _bullet_style(level: int) -> str:
    return BULLET_STYLES[min(level, len(BULLET_STYLES) - 1)]


def build_document(sections: List[Dict[str, Any]]) -> Document:
    doc = Document()
    for section in sections:
        processed = process_section(section)
        heading = doc.add_heading(processed["title"], level=1)
        heading.paragraph_format.space_after = PARAGRAPH_SPACING

        for line in processed["content"].split("\n"):
            if not line:
                continue
            text, is_bullet, level = process_bullet_point(line)
            formatting = detect_text_formatting(text)

            paragraph = doc.add_paragraph(style=_bullet_style(level)) if is_bullet else doc.add_paragraph()
            run = paragraph.add_run(formatting["text"])
            run.bold = formatting["bold"]
            run.italic = formatting["italic"]
            paragraph.paragraph_format.space_after = PARAGRAPH_SPACING
    return doc


def render_docx(sections: List[Dict[str, Any]]) -> bytes:
    """Render sections to a DOCX file and return its bytes."""
    buffer = io.BytesIO()
    build_document(sections).save(buffer)
    logger.info(f"Rendered DOCX with {len(sections)} sections")
    return buffer.getvalue()
