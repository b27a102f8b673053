# ABOUTME: Tests for the document generation graph, section retries and the agent entry points
# ABOUTME: Runs the real LangGraph workflow against the in-memory Supabase fake and a scripted model

import asyncio

import pytest

from backend.agents.document_generator.section_writer import generate_section_content
from backend.agents.document_generator_agent import DocumentGeneratorAgent
from backend.models.generation_config import DocumentGenerationConfig
from backend.services.document_type_service import DocumentTypeService
from backend.services.supabase_project_manager import SupabaseProjectManager

USAGE = {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42}


class FakeModel:
    """Scripted stand-in for OpenAIModel.achat; list items are returned or raised in order."""

    model_name = "fake-model"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def achat(self, prompt, system_prompt=None, max_tokens=None, temperature=None, model_name=None):
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response, USAGE
        return f"## Section body {len(self.calls)}\n- point", USAGE


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def project_manager(fake_supabase):
    return SupabaseProjectManager(fake_supabase, DocumentTypeService(fake_supabase))


@pytest.fixture
def project(project_manager, sample_project_data):
    return asyncio.run(project_manager.create_project(sample_project_data, user_id="user-1"))


def document_of_type(project, doc_type):
    return next(d for d in project["documents"] if d["type"] == doc_type)


def make_agent(model, project_manager, sleep=None):
    return DocumentGeneratorAgent(model, project_manager, project_manager.document_types, sleep=sleep or RecordingSleep())


class TestSectionWriter:

    def test_returns_stripped_content(self):
        model = FakeModel(["  ## Summary\ntext  "])
        config = DocumentGenerationConfig.for_document_type("marketing_plan")

        content = asyncio.run(generate_section_content(model, "Executive Summary", "PROMPT", config))

        assert content == "## Summary\ntext"
        call = model.calls[0]
        assert call["max_tokens"] == 500
        assert call["prompt"].startswith("PROMPT")
        assert "Executive Summary" in call["prompt"]

    def test_whole_document_uses_document_limits(self):
        model = FakeModel(["body"])
        config = DocumentGenerationConfig.for_document_type("pricing_strategy")

        asyncio.run(generate_section_content(model, "Complete Document", "PROMPT", config))

        assert model.calls[0]["max_tokens"] == 2500

    def test_retries_errors_with_exponential_backoff(self):
        model = FakeModel([RuntimeError("rate limited"), RuntimeError("timeout"), "finally"])
        sleep = RecordingSleep()
        config = DocumentGenerationConfig.for_document_type("marketing_plan")

        content = asyncio.run(generate_section_content(model, "Budget", "P", config, sleep=sleep))

        assert content == "finally"
        assert sleep.delays == [2.0, 4.0]

    def test_exhausted_retries_return_failure_placeholder(self):
        model = FakeModel([RuntimeError("down")] * 3)
        sleep = RecordingSleep()
        config = DocumentGenerationConfig.for_document_type("marketing_plan")

        content = asyncio.run(generate_section_content(model, "Budget", "P", config, sleep=sleep))

        assert content == '[Content generation for "Budget" failed after 3 attempts. Please try regenerating this document.]'
        assert len(model.calls) == 3
        assert sleep.delays == [2.0, 4.0]

    def test_empty_responses_retry_without_delay(self):
        model = FakeModel(["", "   ", ""])
        sleep = RecordingSleep()
        config = DocumentGenerationConfig.for_document_type("marketing_plan")

        content = asyncio.run(generate_section_content(model, "Budget", "P", config, sleep=sleep))

        assert content == '[Content could not be generated for "Budget"]'
        assert sleep.delays == []


class TestGenerationGraph:

    def test_section_by_section_document(self, project_manager, project, fake_supabase):
        model = FakeModel()
        doc = document_of_type(project, "marketing_plan")

        result = asyncio.run(make_agent(model, project_manager).generate_document(doc["id"]))

        assert result["status"] == "completed"
        assert result["version"] == 2
        titles = [s["title"] for s in result["content"]["sections"]]
        assert titles == [
            "Executive Summary", "Market Analysis", "Target Market Segmentation",
            "Marketing Channels & Tactics", "Budget Allocation", "Implementation Timeline", "Success Metrics",
        ]
        assert all(s["content"].startswith("## Section body") for s in result["content"]["sections"])
        assert result["progress"]["percent"] == 100
        assert result["progress"]["stage"] == "Complete"
        assert len(model.calls) == 7
        assert "Crumb & Co" in model.calls[0]["prompt"]

    def test_whole_document_type_generates_once(self, project_manager, project):
        model = FakeModel(["# Pricing\nAll of it"])
        doc = document_of_type(project, "pricing_strategy")

        result = asyncio.run(make_agent(model, project_manager).generate_document(doc["id"]))

        assert result["content"]["sections"] == [{"title": "Complete Document", "content": "# Pricing\nAll of it"}]
        assert len(model.calls) == 1

    def test_progress_is_reported_per_section(self, project_manager, project, fake_supabase):
        doc = document_of_type(project, "marketing_plan")

        asyncio.run(make_agent(FakeModel(), project_manager).generate_document(doc["id"]))

        stages = [
            payload["progress"]["stage"]
            for table, op, payload, _ in fake_supabase.calls
            if table == "documents" and op == "update" and payload.get("progress")
        ]
        assert stages[:4] == ["Initializing...", "Research Phase", "Content Planning", "Generating Executive Summary"]
        assert stages[-1] == "Complete"
        percents = [
            payload["progress"]["percent"]
            for table, op, payload, _ in fake_supabase.calls
            if table == "documents" and op == "update" and payload.get("progress")
        ]
        assert percents == sorted(percents)

    def test_failed_sections_do_not_fail_the_document(self, project_manager, project):
        model = FakeModel([RuntimeError("boom")] * 3)
        doc = document_of_type(project, "brand_guidelines")

        result = asyncio.run(make_agent(model, project_manager).generate_document(doc["id"]))

        assert result["status"] == "completed"
        assert "failed after 3 attempts" in result["content"]["sections"][0]["content"]

    def test_missing_document_returns_none(self, project_manager):
        assert asyncio.run(make_agent(FakeModel(), project_manager).generate_document("missing")) is None

    def test_unknown_type_marks_document_as_error(self, project_manager, project, fake_supabase):
        doc = asyncio.run(project_manager.create_document(project["id"], "not_in_catalog"))

        result = asyncio.run(make_agent(FakeModel(), project_manager).generate_document(doc["id"]))

        assert result is None
        stored = next(d for d in fake_supabase.rows("documents") if d["id"] == doc["id"])
        assert stored["status"] == "error"
        assert stored["progress"]["stage"] == "Error"

    def test_project_completes_after_last_document(self, project_manager, project, fake_supabase):
        agent = make_agent(FakeModel(), project_manager)
        for doc in project["documents"]:
            asyncio.run(agent.generate_document(doc["id"]))

        assert fake_supabase.rows("projects")[0]["status"] == "completed"


class TestRequiredInfo:

    def test_answers_flow_into_prompt_and_survive_regeneration(self, project_manager, project, fake_supabase):
        model = FakeModel()
        agent = make_agent(model, project_manager)
        doc = document_of_type(project, "brand_guidelines")

        asyncio.run(agent.save_required_info(doc["id"], {"brand_colors": "Forest green", "brand_personality": ""}))
        result = asyncio.run(agent.generate_document(doc["id"]))

        assert "Forest green" in model.calls[0]["prompt"]
        assert "[Not provided]" in model.calls[0]["prompt"]
        assert result["content"]["required_info"] == {"answers": {"brand_colors": "Forest green"}, "skipped": False}

    def test_skipped_questionnaire(self, project_manager, project):
        model = FakeModel()
        agent = make_agent(model, project_manager)
        doc = document_of_type(project, "pricing_strategy")

        saved = asyncio.run(agent.save_required_info(doc["id"], {"current_pricing": "ignored"}, skipped=True))
        asyncio.run(agent.generate_document(doc["id"]))

        assert saved["content"]["required_info"] == {"answers": {}, "skipped": True}
        assert "chosen to skip" in model.calls[0]["prompt"]

    def test_unknown_document(self, project_manager):
        agent = make_agent(FakeModel(), project_manager)
        assert asyncio.run(agent.save_required_info("missing", {})) is None


class TestGenerateContent:

    def test_tracks_usage(self, project_manager, fake_supabase):
        agent = make_agent(FakeModel(["hello"]), project_manager)

        result, usage = asyncio.run(agent.generate_content("Say hello"))

        assert result == "hello"
        assert usage == USAGE
        row = fake_supabase.rows("api_usage")[0]
        assert row["model"] == "fake-model"
        assert row["total_tokens"] == 42
