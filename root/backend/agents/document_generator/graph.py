# -*- coding: utf-8 -*-
"""
LangGraph definition for the Document Generator Agent.
Imports node functions from nodes.py and defines the graph structure.
"""
import logging
from langgraph.graph import StateGraph, END

from backend.agents.document_generator.state import DocumentGenerationState
from backend.agents.document_generator.nodes import (
    load_document_node,
    research_node,
    plan_sections_node,
    generate_sections_node,
    finalize_document_node,
    handle_error_node,
)

logger = logging.getLogger(__name__)


def should_continue(state: DocumentGenerationState) -> str:
    """Determines whether to continue to the next step or divert to error handling."""
    if state.error:
        logger.error(f"Error detected in state, ending generation: {state.error}")
        return "error"
    return "continue"


async def create_document_graph():
    """Creates the LangGraph StateGraph for document generation."""
    graph = StateGraph(DocumentGenerationState)

    graph.add_node("load_document", load_document_node)
    graph.add_node("research", research_node)
    graph.add_node("plan_sections", plan_sections_node)
    graph.add_node("generate_sections", generate_sections_node)
    graph.add_node("finalize_document", finalize_document_node)
    graph.add_node("handle_error", handle_error_node)

    graph.set_entry_point("load_document")
    steps = ["load_document", "research", "plan_sections", "generate_sections", "finalize_document"]
    for current, following in zip(steps, steps[1:] + [END]):
        graph.add_conditional_edges(
            current,
            should_continue,
            {"continue": following, "error": "handle_error"}
        )
    graph.add_edge("handle_error", END)

    app = graph.compile()
    logger.info("Document Generator Graph compiled successfully.")
    return app
