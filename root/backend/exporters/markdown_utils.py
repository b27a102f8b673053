# ABOUTME: Markdown clean-up helpers shared by the PDF and DOCX exporters
# ABOUTME: Strips markup, detects bullets and emphasis, and drops a section's repeated title

import re
from typing import Any, Dict, Tuple

_EMOJI = re.compile("[\U0001F300-\U0001F6FF\U0001F900-\U0001F9FF☀-⛿✀-➿]")

_STRIP_RULES = [
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*\*\*\*(.*?)\*\*\*\*"), r"\1"),
    (re.compile(r"\*\*\*(.*?)\*\*\*"), r"\1"),
    (re.compile(r"__(.*?)__"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"_(.*?)_"), r"\1"),
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"`{1,3}(.*?)`{1,3}"), r"\1"),
]

_BULLET = re.compile(r"^(\s*)[-*+•]\s+(.*)$")
_NUMBERED = re.compile(r"^(\s*)\d+\.\s+(.*)$")

_BOLD = (re.compile(r"\*\*(.*?)\*\*"), re.compile(r"__(.*?)__"))
_ITALIC = (
    re.compile(r"(?<!\*)\*(?!\*)(.*?)(?<!\*)\*(?!\*)"),
    re.compile(r"(?<!_)_(?!_)(.*?)(?<!_)_(?!_)"),
)


def strip_markdown(text: str) -> str:
    """Remove headings, emphasis, links, inline code and emoji, keeping the text."""
    for pattern, replacement in _STRIP_RULES:
        text = pattern.sub(replacement, text)
    return _EMOJI.sub("", text)


def process_bullet_point(line: str) -> Tuple[str, bool, int]:
    """
    Detect a bullet or numbered list item.

    Returns:
        (item text, is_bullet, indent level) where every two leading spaces
        count as one level
    """
    match = _BULLET.match(line) or _NUMBERED.match(line)
    if match:
        return match.group(2), True, len(match.group(1)) // 2
    return line, False, 0


def detect_text_formatting(text: str) -> Dict[str, Any]:
    """Bold/italic flags of a line plus its markdown-free text."""
    return {
        "text": strip_markdown(text),
        "bold": any(p.search(text) for p in _BOLD),
        "italic": any(p.search(text) for p in _ITALIC),
    }


def process_section(section: Dict[str, Any]) -> Dict[str, str]:
    """Drop a leading repeat of the section title from its content."""
    title = section.get("title") or ""
    content = section.get("content") or ""
    escaped = re.escape(title)

    patterns = [
        rf"^\s*#\s*{escaped}\s*(?:\n|$)",
        rf"^\s*##\s*{escaped}\s*(?:\n|$)",
        rf"^\s*###\s*{escaped}\s*(?:\n|$)",
        rf"^\s*{escaped}\s*\n=+\s*(?:\n|$)",
        rf"^\s*{escaped}\s*\n-+\s*(?:\n|$)",
        rf"^\s*(?:[*_]\s*){{1,2}}{escaped}(?:[*_]\s*){{1,2}}\s*(?:\n|$)",
    ]
    if title:
        for pattern in patterns:
            compiled = re.compile(pattern, re.IGNORECASE)
            if compiled.search(content):
                content = compiled.sub("", content, count=1)
                break

    return {"title": title, "content": content.lstrip()}


def export_filename(project_name: str, document_type: str, fmt: str) -> str:
    """e.g. ("Acme Bakery", "marketing_plan", "pdf") -> "acme-bakery-marketing_plan.pdf"."""
    slug = re.sub(r"\s+", "-", (project_name or "document").strip().lower())
    return f"{slug}-{document_type}.{fmt}"
