# ABOUTME: Tests for the OpenAIModel wrapper and the generation config defaults
# ABOUTME: The LangChain client is replaced so no network calls are made

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from backend.models.generation_config import DocumentGenerationConfig
from backend.models.openai_model import OpenAIModel


class TestOpenAIModel:

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError):
            OpenAIModel()

    def test_clients_are_cached_per_settings(self):
        model = OpenAIModel({"api_key": "sk-test", "model_name": "gpt-4o-mini"})
        assert model._client("gpt-4o-mini", None, 0.7) is model.llm
        assert model._client("gpt-4o-mini", 500, 0.7) is not model.llm

    def test_achat_sends_system_and_user_messages(self):
        model = OpenAIModel({"api_key": "sk-test"})
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=SimpleNamespace(
            content="Plan text",
            response_metadata={"token_usage": {"prompt_tokens": 5, "completion_tokens": 7, "total_tokens": 12}},
        ))
        model._client = MagicMock(return_value=llm)

        text, usage = asyncio.run(model.achat("Write", system_prompt="You are helpful", max_tokens=500, temperature=0.2))

        assert text == "Plan text"
        assert usage == {"prompt_tokens": 5, "completion_tokens": 7, "total_tokens": 12}
        model._client.assert_called_once_with(model.model_name, 500, 0.2)
        messages = llm.ainvoke.call_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)

    def test_usage_falls_back_to_usage_metadata(self):
        response = SimpleNamespace(response_metadata={}, usage_metadata={"input_tokens": 3, "output_tokens": 4, "total_tokens": 7})
        assert OpenAIModel._usage(response) == {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}

    def test_errors_are_wrapped(self):
        model = OpenAIModel({"api_key": "sk-test"})
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=RuntimeError("429"))
        model._client = MagicMock(return_value=llm)

        with pytest.raises(Exception, match="OpenAI API call failed"):
            asyncio.run(model.achat("Write"))


class TestGenerationConfig:

    def test_marketing_plan_is_section_by_section(self):
        config = DocumentGenerationConfig.for_document_type("marketing_plan")
        assert config.section_by_section is True
        assert config.max_tokens == 500
        assert config.max_attempts == 3

    def test_other_types_generate_whole_document(self):
        config = DocumentGenerationConfig.for_document_type("kpi_tracking", temperature=0.3)
        assert config.section_by_section is False
        assert config.max_tokens == 2500
        assert config.temperature == 0.3

    def test_blank_type_rejected(self):
        with pytest.raises(ValueError):
            DocumentGenerationConfig(document_type="  ")
