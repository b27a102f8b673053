# ABOUTME: Unit tests for SupabaseProjectManager against the in-memory Supabase fake
# ABOUTME: Covers project creation with documents, backfill, status recomputation and usage logging

import asyncio

import pytest

from backend.services.document_type_service import DocumentTypeService
from backend.services.supabase_project_manager import SupabaseProjectManager


@pytest.fixture
def project_manager(fake_supabase):
    return SupabaseProjectManager(fake_supabase, DocumentTypeService(fake_supabase))


@pytest.fixture
def created_project(project_manager, sample_project_data):
    return asyncio.run(project_manager.create_project(sample_project_data, user_id="user-1"))


class TestProjectCrud:

    def test_create_project_creates_pending_document_per_type(self, created_project, fake_supabase):
        assert created_project["status"] == "draft"
        assert created_project["is_unlocked"] is False
        assert created_project["user_id"] == "user-1"

        documents = fake_supabase.rows("documents")
        assert len(documents) == 12
        assert {d["status"] for d in documents} == {"pending"}
        assert {d["version"] for d in documents} == {1}
        assert all(d["content"] == {"sections": []} for d in documents)
        assert len(created_project["documents"]) == 12

    def test_list_projects_filters_by_owner(self, project_manager, created_project, sample_project_data):
        asyncio.run(project_manager.create_project(sample_project_data, user_id="user-2"))

        projects = asyncio.run(project_manager.list_projects(user_id="user-1"))

        assert [p["id"] for p in projects] == [created_project["id"]]

    def test_get_project_respects_owner(self, project_manager, created_project):
        assert asyncio.run(project_manager.get_project(created_project["id"], user_id="someone-else")) is None
        project = asyncio.run(project_manager.get_project(created_project["id"], user_id="user-1"))
        assert project["name"] == "Crumb & Co"

    def test_get_project_backfills_missing_document_types(self, project_manager, created_project, fake_supabase):
        fake_supabase.tables["documents"] = [
            d for d in fake_supabase.rows("documents") if d["type"] != "kpi_tracking"
        ]

        project = asyncio.run(project_manager.get_project(created_project["id"]))

        assert "kpi_tracking" in {d["type"] for d in project["documents"]}
        assert len(fake_supabase.rows("documents")) == 12

    def test_delete_project_removes_documents(self, project_manager, created_project, fake_supabase):
        assert asyncio.run(project_manager.delete_project(created_project["id"], user_id="user-1")) is True
        assert fake_supabase.rows("projects") == []
        assert fake_supabase.rows("documents") == []

    def test_delete_unknown_project_returns_false(self, project_manager):
        assert asyncio.run(project_manager.delete_project("nope")) is False

    def test_unlock_project(self, project_manager, created_project):
        assert asyncio.run(project_manager.is_project_unlocked(created_project["id"])) is False
        assert asyncio.run(project_manager.unlock_project(created_project["id"])) is True
        assert asyncio.run(project_manager.is_project_unlocked(created_project["id"])) is True

    def test_unlock_missing_project_returns_false(self, project_manager):
        assert asyncio.run(project_manager.unlock_project("missing")) is False


class TestDocumentUpdates:

    def test_update_document_keeps_progress_when_none(self, project_manager, created_project):
        doc = created_project["documents"][0]
        asyncio.run(project_manager.update_document_progress(doc["id"], 40, "Working", "half way"))

        updated = asyncio.run(project_manager.update_document(doc["id"], {"status": "generating", "progress": None}))

        assert updated["progress"] == {"percent": 40, "stage": "Working", "message": "half way"}
        assert updated["status"] == "generating"

    def test_project_completes_when_all_documents_complete(self, project_manager, created_project, fake_supabase):
        documents = created_project["documents"]
        for doc in documents[:-1]:
            asyncio.run(project_manager.update_document(doc["id"], {"status": "completed"}))
        assert fake_supabase.rows("projects")[0]["status"] == "draft"

        asyncio.run(project_manager.update_document(documents[-1]["id"], {"status": "completed"}))

        assert fake_supabase.rows("projects")[0]["status"] == "completed"

    def test_update_missing_document_returns_none(self, project_manager):
        assert asyncio.run(project_manager.update_document("missing", {"status": "error"})) is None

    def test_progress_failures_are_swallowed(self, project_manager, fake_supabase):
        fake_supabase.failing_tables.add("documents")
        asyncio.run(project_manager.update_document_progress("doc", 10, "Stage"))


class TestApiUsage:

    def test_long_prompts_are_truncated_in_snippet(self, project_manager, fake_supabase):
        usage = {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}
        assert asyncio.run(project_manager.track_api_usage("gpt-4o-mini", usage, "x" * 150)) is True

        row = fake_supabase.rows("api_usage")[0]
        assert row["prompt_snippet"] == "x" * 100 + "..."
        assert row["total_tokens"] == 30

    def test_usage_logging_failure_is_non_fatal(self, project_manager, fake_supabase):
        fake_supabase.failing_tables.add("api_usage")
        assert asyncio.run(project_manager.track_api_usage("m", {}, "short")) is False
