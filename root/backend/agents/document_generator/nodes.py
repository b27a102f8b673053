# -*- coding: utf-8 -*-
"""
Node functions for the Document Generator Agent's LangGraph.

Each node persists its progress on the document row so clients polling or
streaming the document see the generation advance.
"""
import logging
from typing import Dict, Any

from backend.agents.document_generator.state import DocumentGenerationState
from backend.agents.document_generator.prompt_builder import prepare_prompt, resolve_section_titles
from backend.agents.document_generator.section_writer import generate_section_content
from backend.models.generation_config import DocumentGenerationConfig
from backend.models.schemas import DocumentSection, DocumentStatus

logger = logging.getLogger(__name__)


def _content(state: DocumentGenerationState, sections) -> Dict[str, Any]:
    content = {"sections": [s.model_dump() for s in sections]}
    if state.required_info:
        content["required_info"] = state.required_info
    return content


async def load_document_node(state: DocumentGenerationState) -> Dict[str, Any]:
    """Load the document, its project and catalog entry, and mark it generating."""
    logger.info(f"Node: load_document_node ({state.document_id})")
    if state.error: return {"error": state.error}

    try:
        pm = state.project_manager
        document = await pm.get_document(state.document_id)
        if not document:
            return {"error": f"Document {state.document_id} not found"}

        project = await pm.get_project(document["project_id"])
        if not project:
            return {"error": f"Project {document['project_id']} not found"}

        doc_type = await state.document_type_service.get_document_type(document["type"])
        if not doc_type:
            return {"error": f"Document type {document['type']} not found"}
        if not doc_type.prompt_template:
            return {"error": f"No prompt template found for document type {document['type']}"}

        required_info = (document.get("content") or {}).get("required_info")
        updated = await pm.update_document(state.document_id, {
            "status": DocumentStatus.GENERATING.value,
            "version": (document.get("version") or 0) + 1,
            "content": {"sections": [], **({"required_info": required_info} if required_info else {})},
            "progress": {"percent": 0, "stage": "Initializing..."},
        })

        return {
            "document": updated or document,
            "project": project,
            "doc_type": doc_type,
            "config": state.config or DocumentGenerationConfig.for_document_type(document["type"]),
            "required_info": required_info,
        }
    except Exception as e:
        logger.exception("Error in load_document_node")
        return {"error": f"Failed to load document: {str(e)}"}


async def research_node(state: DocumentGenerationState) -> Dict[str, Any]:
    """Prepare the prompt from the business profile."""
    logger.info("Node: research_node")
    if state.error: return {"error": state.error}

    try:
        await state.project_manager.update_document_progress(
            state.document_id, 15, "Research Phase", "Analyzing industry data and trends"
        )
        prompt = prepare_prompt(state.doc_type.prompt_template, state.project, state.document, state.doc_type)
        return {"prompt": prompt}
    except Exception as e:
        logger.exception("Error in research_node")
        return {"error": f"Prompt preparation failed: {str(e)}"}


async def plan_sections_node(state: DocumentGenerationState) -> Dict[str, Any]:
    """Decide the section titles and store the empty outline."""
    logger.info("Node: plan_sections_node")
    if state.error: return {"error": state.error}

    try:
        await state.project_manager.update_document_progress(
            state.document_id, 25, "Content Planning", "Structuring document sections"
        )
        titles = resolve_section_titles(state.doc_type.id, state.doc_type.prompt_template)
        logger.info(f"Planned {len(titles)} sections for {state.doc_type.id}: {', '.join(titles)}")
        sections = [DocumentSection(title=title) for title in titles]
        await state.project_manager.update_document(state.document_id, {"content": _content(state, sections)})
        return {"section_titles": titles, "sections": sections}
    except Exception as e:
        logger.exception("Error in plan_sections_node")
        return {"error": f"Section planning failed: {str(e)}"}


async def generate_sections_node(state: DocumentGenerationState) -> Dict[str, Any]:
    """Generate every section in order, reporting progress before each one."""
    logger.info("Node: generate_sections_node")
    if state.error: return {"error": state.error}

    sections = []
    total = len(state.section_titles)
    for index, title in enumerate(state.section_titles):
        await state.project_manager.update_document_progress(
            state.document_id,
            25 + (index * 75 / total),
            f"Generating {title}",
            f"Creating content for section {index + 1} of {total}",
        )
        try:
            content = await generate_section_content(
                state.model, title, state.prompt, state.config, sleep=state.sleep
            )
        except Exception as e:
            logger.error(f"Error in section '{title}': {e}")
            content = f"[Error generating content: {str(e)}]"
        sections.append(DocumentSection(title=title, content=content))

    return {"sections": sections}


async def finalize_document_node(state: DocumentGenerationState) -> Dict[str, Any]:
    """Store the generated sections and mark the document completed."""
    logger.info("Node: finalize_document_node")
    if state.error: return {"error": state.error}

    try:
        updated = await state.project_manager.update_document(state.document_id, {
            "status": DocumentStatus.COMPLETED.value,
            "content": _content(state, state.sections),
            "progress": {"percent": 100, "stage": "Complete", "message": "Document generation complete"},
        })
        return {"document": updated or state.document}
    except Exception as e:
        logger.exception("Error in finalize_document_node")
        return {"error": f"Failed to save generated document: {str(e)}"}


async def handle_error_node(state: DocumentGenerationState) -> Dict[str, Any]:
    """Record a failed generation on the document."""
    logger.error(f"Node: handle_error_node ({state.document_id}): {state.error}")
    try:
        await state.project_manager.update_document(state.document_id, {
            "status": DocumentStatus.ERROR.value,
            "progress": {"percent": 0, "stage": "Error", "message": state.error},
        })
    except Exception as e:
        logger.error(f"Failed to record generation error for {state.document_id}: {e}")
    return {"error": state.error}
