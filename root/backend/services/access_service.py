# ABOUTME: Document access rules and preview gating for locked projects
# ABOUTME: Combines project unlock flags with purchases and truncates content to the preview share

import logging
from typing import Any, Dict, List, Optional, Tuple

from backend.config.supabase_client import get_supabase_client
from backend.models.schemas import DocumentType, ProductId

logger = logging.getLogger(__name__)

ELLIPSIS = "…"


def has_document_access(project_id: str, purchases: List[Dict[str, Any]], is_unlocked: bool) -> bool:
    """
    Whether a user may read a project's full documents.

    A complete guide with no recorded projects covers every project; single
    plans and agency packs only cover the projects they were applied to.
    """
    if is_unlocked:
        return True

    for purchase in purchases:
        if purchase.get("status") != "active":
            continue
        used_for = purchase.get("used_for_projects")
        product = purchase.get("product_id")
        if product == ProductId.COMPLETE_GUIDE.value and (used_for is None or project_id in used_for):
            return True
        if product in (ProductId.SINGLE_PLAN.value, ProductId.AGENCY_PACK.value) and used_for and project_id in used_for:
            return True
    return False


def get_preview_percentage(document_type: str, catalog: List[DocumentType]) -> int:
    """Share of a locked document shown as preview: 15% for the first document, 10% otherwise."""
    for doc_type in catalog:
        if doc_type.id == document_type:
            return 15 if doc_type.document_order == 1 else 10
    return 0


def build_preview(sections: List[Dict[str, Any]], percentage: float) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Keep the first `percentage` percent of the document's characters.

    Section titles are always kept; the section where the budget runs out is
    cut at a word boundary and later sections are emptied.

    Returns:
        (preview sections, whether anything was cut)
    """
    total = sum(len(s.get("content") or "") for s in sections)
    budget = int(total * max(0.0, min(percentage, 100.0)) / 100)
    truncated = budget < total

    preview = []
    remaining = budget
    for section in sections:
        content = section.get("content") or ""
        if len(content) <= remaining:
            kept = content
        elif remaining > 0:
            cut = content[:remaining]
            if " " in cut and not content[remaining].isspace():
                cut = cut.rsplit(" ", 1)[0]
            kept = cut.rstrip() + ELLIPSIS
        else:
            kept = ""
        remaining = max(0, remaining - len(content))
        preview.append({"title": section.get("title", ""), "content": kept})

    return preview, truncated


class AccessService:
    """Server-side counterpart of the client payment context."""

    def __init__(self, supabase_client=None, project_manager=None, document_type_service=None):
        self.supabase = supabase_client or get_supabase_client()
        self.project_manager = project_manager
        self.document_type_service = document_type_service

    async def get_active_purchases(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("purchases").select("*").eq("user_id", user_id).eq("status", "active").execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to load purchases for user {user_id}: {e}")
            return []

    async def check_document_access(self, user_id: Optional[str], project_id: str) -> bool:
        if await self.project_manager.is_project_unlocked(project_id):
            return True
        if not user_id:
            return False
        purchases = await self.get_active_purchases(user_id)
        return has_document_access(project_id, purchases, False)

    async def preview_percentage(self, document_type: str) -> int:
        catalog = await self.document_type_service.get_latest_document_types()
        return get_preview_percentage(document_type, catalog)

    async def _locked_view(self, document: Dict[str, Any]) -> Dict[str, Any]:
        percentage = await self.preview_percentage(document.get("type", ""))
        content = dict(document.get("content") or {})
        content["sections"], _ = build_preview(content.get("sections") or [], percentage)
        return {**document, "content": content, "locked": True, "previewPercentage": percentage}

    async def gate_document(self, document: Dict[str, Any], user_id: Optional[str]) -> Dict[str, Any]:
        """Return the document as the user may see it, flagged with locked/previewPercentage."""
        if await self.check_document_access(user_id, document["project_id"]):
            return {**document, "locked": False}
        return await self._locked_view(document)

    async def gate_project(self, project: Dict[str, Any], user_id: Optional[str]) -> Tuple[Dict[str, Any], bool]:
        """Gate every document of a project with a single access check."""
        documents = project.get("documents") or []
        if await self.check_document_access(user_id, project["id"]):
            return {**project, "documents": [{**d, "locked": False} for d in documents]}, True
        return {**project, "documents": [await self._locked_view(d) for d in documents]}, False
