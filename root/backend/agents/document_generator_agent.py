# -*- coding: utf-8 -*-
"""
Agent responsible for generating marketing documents using a LangGraph workflow.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from backend.agents.document_generator.graph import create_document_graph
from backend.agents.document_generator.state import DocumentGenerationState
from backend.models.generation_config import DocumentGenerationConfig
from backend.models.schemas import DocumentStatus

logger = logging.getLogger(__name__)


class DocumentGeneratorAgent:
    """
    Generates the sections of a project document and persists status,
    progress and content on the document row as it goes.
    """

    def __init__(self, model: Any, project_manager: Any, document_type_service: Any, sleep=None):
        """
        Args:
            model: OpenAIModel (or any object exposing achat)
            project_manager: SupabaseProjectManager used for reads and progress writes
            document_type_service: Catalog lookups
            sleep: Optional awaitable sleep used for retry backoff
        """
        self.model = model
        self.project_manager = project_manager
        self.document_type_service = document_type_service
        self.sleep = sleep
        self.graph = None
        self._initialized = False
        logger.info(f"DocumentGeneratorAgent instantiated with model: {type(model).__name__}")

    async def initialize(self):
        """Creates and compiles the LangGraph."""
        if self._initialized:
            return
        try:
            self.graph = await create_document_graph()
            self._initialized = True
            logger.info("DocumentGeneratorAgent initialized successfully with graph.")
        except Exception as e:
            logger.exception("Failed to initialize DocumentGeneratorAgent graph.")
            raise RuntimeError(f"DocumentGeneratorAgent initialization failed: {e}") from e

    async def generate_document(self, document_id: str,
                                config: Optional[DocumentGenerationConfig] = None) -> Optional[Dict[str, Any]]:
        """
        Run the full generation workflow for one document.

        Returns:
            The completed document row, or None when generation failed
            (the failure is recorded on the document).
        """
        await self.initialize()
        logger.info(f"Starting document generation for {document_id}")

        initial_state = DocumentGenerationState(
            document_id=document_id,
            config=config,
            model=self.model,
            project_manager=self.project_manager,
            document_type_service=self.document_type_service,
            sleep=self.sleep,
        )

        try:
            final_state = await self.graph.ainvoke(initial_state)
        except Exception as e:
            logger.exception(f"Unexpected error while running the document graph: {e}")
            await self.project_manager.update_document(document_id, {
                "status": DocumentStatus.ERROR.value,
                "progress": {"percent": 0, "stage": "Error", "message": str(e)},
            })
            return None

        final_state_dict = final_state if isinstance(final_state, dict) else final_state.model_dump()
        if final_state_dict.get("error"):
            logger.error(f"Document {document_id} generation failed: {final_state_dict['error']}")
            return None

        logger.info(f"Document {document_id} generated successfully")
        return final_state_dict.get("document")

    async def save_required_info(self, document_id: str, answers: Optional[Dict[str, str]] = None,
                                 skipped: bool = False) -> Optional[Dict[str, Any]]:
        """Store questionnaire answers (or the skip decision) on the document content."""
        document = await self.project_manager.get_document(document_id)
        if not document:
            return None

        content = dict(document.get("content") or {})
        content.setdefault("sections", [])
        content["required_info"] = {
            "answers": {} if skipped else {k: v for k, v in (answers or {}).items() if v},
            "skipped": skipped,
        }
        return await self.project_manager.update_document(document_id, {"content": content})

    async def generate_content(self, prompt: str, model_name: Optional[str] = None,
                               max_tokens: Optional[int] = None) -> Tuple[str, Dict[str, int]]:
        """Single completion passthrough used by the generate-content endpoint."""
        result, usage = await self.model.achat(
            prompt,
            max_tokens=max_tokens,
            temperature=0.7,
            model_name=model_name,
        )
        await self.project_manager.track_api_usage(model_name or self.model.model_name, usage, prompt)
        return result, usage
