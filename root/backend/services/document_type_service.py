# ABOUTME: Document type catalog service backed by the document_types table
# ABOUTME: Normalizes rows, caches the catalog and extracts section titles from prompt templates

import re
import time
import logging
from typing import Any, Dict, List, Optional

from backend.config.settings import DOCUMENT_TYPE_CACHE_SECONDS
from backend.config.supabase_client import get_supabase_client
from backend.models.schemas import DocumentType
from backend.prompts.document_types import BUILTIN_DOCUMENT_TYPES

logger = logging.getLogger(__name__)

_NUMBERED_LINE = re.compile(r"^\d+\.\s*(.*)$")
_INCLUDE_MARKER = re.compile(r"include:", re.IGNORECASE)


def _numbered_run(lines: List[str]) -> List[str]:
    """Titles of the first run of consecutive numbered lines."""
    titles = []
    for line in lines:
        match = _NUMBERED_LINE.match(line.strip())
        if match:
            title = match.group(1).strip()
            if title:
                titles.append(title)
        elif titles and line.strip():
            break
    return titles


def extract_sections(prompt_template: str) -> List[str]:
    """
    Extract section titles from a prompt template.

    The numbered list following "Include:" wins; otherwise the first numbered
    list anywhere in the template is used. Returns [] when there is none.
    """
    if not prompt_template:
        return []

    marker = _INCLUDE_MARKER.search(prompt_template)
    if marker:
        sections = _numbered_run(prompt_template[marker.end():].splitlines())
        if sections:
            return sections
        logger.warning("No numbered items after 'Include:' in template, trying any numbered list")

    sections = _numbered_run(prompt_template.splitlines())
    if not sections:
        logger.warning("No numbered list found in prompt template")
    return sections


def normalize_document_type(row: Dict[str, Any]) -> DocumentType:
    """Build a DocumentType from a table row using either snake_case or camelCase columns."""
    required_info = row.get("required_info", row.get("requiredInfo"))
    if required_info and not required_info.get("questions"):
        required_info = None
    return DocumentType(
        id=row["id"],
        name=row.get("name") or row["id"],
        description=row.get("description") or "",
        icon=row.get("icon"),
        prompt_template=row.get("prompt_template") or row.get("promptTemplate") or "",
        document_order=row.get("document_order", row.get("documentOrder")) or 0,
        required_info=required_info,
    )


def builtin_document_types() -> List[DocumentType]:
    return [normalize_document_type(row) for row in BUILTIN_DOCUMENT_TYPES]


class DocumentTypeService:
    """Loads the document type catalog, falling back to the built-in list."""

    def __init__(self, supabase_client=None, cache_seconds: float = DOCUMENT_TYPE_CACHE_SECONDS):
        self.supabase = supabase_client or get_supabase_client()
        self.cache_seconds = cache_seconds
        self._cache: Optional[List[DocumentType]] = None
        self._cached_at = 0.0

    async def get_latest_document_types(self, refresh: bool = False) -> List[DocumentType]:
        """Return the catalog ordered by document_order."""
        if not refresh and self._cache is not None and time.monotonic() - self._cached_at < self.cache_seconds:
            return self._cache

        types: List[DocumentType] = []
        try:
            result = self.supabase.table("document_types").select("*").order("document_order").execute()
            for row in result.data or []:
                try:
                    types.append(normalize_document_type(row))
                except (KeyError, ValueError) as e:
                    logger.warning(f"Skipping malformed document type row {row.get('id')}: {e}")
        except Exception as e:
            logger.error(f"Failed to load document types: {e}")

        if not types:
            logger.info("Using built-in document type catalog")
            types = builtin_document_types()

        types.sort(key=lambda t: t.document_order)
        self._cache = types
        self._cached_at = time.monotonic()
        return types

    async def get_document_type(self, type_id: str) -> Optional[DocumentType]:
        for doc_type in await self.get_latest_document_types():
            if doc_type.id == type_id:
                return doc_type
        return None

    async def get_type_ids(self) -> List[str]:
        return [t.id for t in await self.get_latest_document_types()]
