# ABOUTME: Tests for document access rules and preview truncation
# ABOUTME: Covers purchase coverage, preview percentages and gating of locked documents

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.services.access_service import (
    AccessService,
    build_preview,
    get_preview_percentage,
    has_document_access,
)
from backend.services.document_type_service import DocumentTypeService, builtin_document_types


class TestHasDocumentAccess:

    def test_unlocked_project(self):
        assert has_document_access("p1", [], True) is True

    def test_no_purchases(self):
        assert has_document_access("p1", [], False) is False

    def test_unscoped_complete_guide_covers_everything(self):
        purchases = [{"product_id": "complete_guide", "status": "active", "used_for_projects": None}]
        assert has_document_access("any", purchases, False) is True

    def test_scoped_purchases_cover_listed_projects_only(self):
        purchases = [
            {"product_id": "agency_pack", "status": "active", "used_for_projects": ["p1"]},
            {"product_id": "single_plan", "status": "active", "used_for_projects": ["p2"]},
        ]
        assert has_document_access("p1", purchases, False) is True
        assert has_document_access("p2", purchases, False) is True
        assert has_document_access("p3", purchases, False) is False

    def test_inactive_purchases_are_ignored(self):
        purchases = [{"product_id": "complete_guide", "status": "refunded", "used_for_projects": None}]
        assert has_document_access("p1", purchases, False) is False


class TestPreview:

    def test_percentages_follow_document_order(self):
        catalog = builtin_document_types()
        assert get_preview_percentage("marketing_plan", catalog) == 15
        assert get_preview_percentage("brand_guidelines", catalog) == 10
        assert get_preview_percentage("unknown", catalog) == 0

    def test_cuts_at_word_boundary(self):
        sections = [{"title": "Intro", "content": "alpha beta gamma delta"}]

        preview, truncated = build_preview(sections, 50)

        assert truncated is True
        assert preview == [{"title": "Intro", "content": "alpha beta…"}]

    def test_later_sections_keep_titles_only(self):
        sections = [
            {"title": "One", "content": "a" * 90},
            {"title": "Two", "content": "b" * 10},
        ]

        preview, truncated = build_preview(sections, 10)

        assert truncated is True
        assert preview[0]["content"] == "a" * 10 + "…"
        assert preview[1] == {"title": "Two", "content": ""}

    def test_full_percentage_is_not_truncated(self):
        sections = [{"title": "One", "content": "hello world"}]
        assert build_preview(sections, 100) == (sections, False)

    def test_empty_document(self):
        assert build_preview([], 10) == ([], False)


class TestAccessService:

    def make_service(self, db, unlocked=False):
        project_manager = MagicMock()
        project_manager.is_project_unlocked = AsyncMock(return_value=unlocked)
        return AccessService(db, project_manager, DocumentTypeService(db))

    def test_unlocked_project_is_readable(self, fake_supabase):
        service = self.make_service(fake_supabase, unlocked=True)
        assert asyncio.run(service.check_document_access(None, "p1")) is True

    def test_purchase_grants_access(self, fake_supabase):
        fake_supabase.tables["purchases"] = [
            {"user_id": "u1", "product_id": "single_plan", "status": "active", "used_for_projects": ["p1"]},
        ]
        service = self.make_service(fake_supabase)

        assert asyncio.run(service.check_document_access("u1", "p1")) is True
        assert asyncio.run(service.check_document_access("u2", "p1")) is False
        assert asyncio.run(service.check_document_access(None, "p1")) is False

    def test_gate_document_truncates_locked_content(self, fake_supabase):
        service = self.make_service(fake_supabase)
        document = {
            "id": "d1", "project_id": "p1", "type": "marketing_plan",
            "content": {"sections": [{"title": "Summary", "content": "word " * 40}]},
        }

        gated = asyncio.run(service.gate_document(document, "u1"))

        assert gated["locked"] is True
        assert gated["previewPercentage"] == 15
        assert len(gated["content"]["sections"][0]["content"]) < 40
        assert document["content"]["sections"][0]["content"] == "word " * 40

    def test_gate_document_passes_through_when_unlocked(self, fake_supabase):
        service = self.make_service(fake_supabase, unlocked=True)
        document = {"id": "d1", "project_id": "p1", "type": "marketing_plan",
                    "content": {"sections": [{"title": "A", "content": "full text"}]}}

        gated = asyncio.run(service.gate_document(document, "u1"))

        assert gated["locked"] is False
        assert gated["content"] == document["content"]

    def test_gate_project_checks_access_once(self, fake_supabase):
        service = self.make_service(fake_supabase)
        project = {"id": "p1", "documents": [
            {"id": "d1", "project_id": "p1", "type": "marketing_plan",
             "content": {"sections": [{"title": "Summary", "content": "word " * 40}]}},
            {"id": "d2", "project_id": "p1", "type": "brand_guidelines", "content": {"sections": []}},
        ]}

        gated, has_access = asyncio.run(service.gate_project(project, "u1"))

        assert has_access is False
        assert [d["previewPercentage"] for d in gated["documents"]] == [15, 10]
        assert all(d["locked"] for d in gated["documents"])
        service.project_manager.is_project_unlocked.assert_awaited_once_with("p1")
        assert project["documents"][0]["content"]["sections"][0]["content"] == "word " * 40

    def test_gate_project_marks_documents_unlocked(self, fake_supabase):
        service = self.make_service(fake_supabase, unlocked=True)
        project = {"id": "p1", "documents": [{"id": "d1", "project_id": "p1", "type": "marketing_plan", "content": {}}]}

        gated, has_access = asyncio.run(service.gate_project(project, "u1"))

        assert has_access is True
        assert gated["documents"][0]["locked"] is False
        assert "previewPercentage" not in gated["documents"][0]
