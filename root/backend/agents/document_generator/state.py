# ABOUTME: This file defines the state model for the document generator agent's graph.
# ABOUTME: It carries the loaded rows, the prepared prompt, section titles and generated sections between nodes.
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional

from backend.models.generation_config import DocumentGenerationConfig
from backend.models.schemas import DocumentSection, DocumentType


class DocumentGenerationState(BaseModel):
    """Represents the state managed by the DocumentGeneratorAgent's graph."""
    document_id: str
    document: Optional[Dict[str, Any]] = None
    project: Optional[Dict[str, Any]] = None
    doc_type: Optional[DocumentType] = None
    config: Optional[DocumentGenerationConfig] = None

    prompt: Optional[str] = None
    section_titles: List[str] = Field(default_factory=list)
    sections: List[DocumentSection] = Field(default_factory=list)
    required_info: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Questionnaire answers carried over from the previous version"
    )

    error: Optional[str] = None

    # Collaborators injected by the agent
    model: Optional[Any] = Field(default=None, repr=False)
    project_manager: Optional[Any] = Field(default=None, repr=False)
    document_type_service: Optional[Any] = Field(default=None, repr=False)
    sleep: Optional[Any] = Field(default=None, repr=False)
