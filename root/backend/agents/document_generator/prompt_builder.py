# -*- coding: utf-8 -*-
# ABOUTME: Builds generation prompts from a document type template and the project's business profile.
# ABOUTME: Also decides which section titles a document is generated with.
import logging
from typing import Any, Dict, List, Optional

from backend.config.settings import SECTION_BY_SECTION_TYPES
from backend.models.schemas import DocumentType
from backend.prompts.document_prompts import (
    BUSINESS_CONTEXT,
    COMPLETE_DOCUMENT_SECTION,
    DEFAULT_MARKETING_PLAN_SECTIONS,
    FINAL_REMINDER,
    IMPORTANT_INSTRUCTIONS,
    SKIPPED_REQUIRED_INFO,
)
from backend.services.document_type_service import extract_sections

logger = logging.getLogger(__name__)

EXCLUDED_PROJECT_FIELDS = ("id", "user_id", "created_at", "updated_at")


def requires_section_by_section(document_type: str) -> bool:
    return document_type in SECTION_BY_SECTION_TYPES


def get_default_sections(document_type: str) -> List[str]:
    if document_type == "marketing_plan":
        return list(DEFAULT_MARKETING_PLAN_SECTIONS)
    return [COMPLETE_DOCUMENT_SECTION]


def resolve_section_titles(document_type: str, prompt_template: str) -> List[str]:
    """Section titles for a generation run."""
    if not requires_section_by_section(document_type):
        return [COMPLETE_DOCUMENT_SECTION]

    titles = extract_sections(prompt_template)
    if not titles:
        logger.warning(f"No sections found in prompt template for {document_type}, using defaults")
        titles = get_default_sections(document_type)
    return titles


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _required_info_block(doc_type: Optional[DocumentType], document: Dict[str, Any]) -> str:
    if not doc_type or not doc_type.required_info or not doc_type.required_info.questions:
        return ""

    required_info = (document.get("content") or {}).get("required_info") or {}
    answers = required_info.get("answers") or {}
    skipped = required_info.get("skipped", False)

    block = "\n===DOCUMENT SPECIFIC INFORMATION===\n"
    if answers and not skipped:
        for question in doc_type.required_info.questions:
            answer = answers.get(question.id)
            block += f"{question.question} {answer if answer else '[Not provided]'}\n"
    else:
        block += SKIPPED_REQUIRED_INFO
    return block


def prepare_prompt(template: str, project: Dict[str, Any], document: Dict[str, Any],
                   doc_type: Optional[DocumentType] = None) -> str:
    """
    Fill a prompt template with project data and append the generation instructions.

    Args:
        template: Document type prompt template with {placeholders}
        project: Project row
        document: Document row (its content may hold required_info answers)
        doc_type: Catalog entry, used for the required-info questionnaire

    Returns:
        The complete user prompt
    """
    project_info = {
        "business_name": _text(project.get("name")),
        "business_type": _text(project.get("business_type")),
        "target_audience": _text(project.get("target_audience")),
        "budget": _text(project.get("budget")),
        "goals": _text(project.get("goals")),
        "challenges": _text(project.get("challenges")),
    }

    other_fields = [
        f"{key.replace('_', ' ')}: {value}"
        for key, value in project.items()
        if key not in EXCLUDED_PROJECT_FIELDS
        and key not in project_info
        and isinstance(value, str)
        and value.strip()
    ]

    prompt = template
    for key, value in project_info.items():
        prompt = prompt.replace("{" + key + "}", value)

    prompt += IMPORTANT_INSTRUCTIONS.format(business_name=project_info["business_name"])
    prompt += BUSINESS_CONTEXT.format(**project_info)
    if other_fields:
        prompt += "Additional Information:\n" + "\n".join(other_fields) + "\n"
    prompt += _required_info_block(doc_type, document)
    prompt += FINAL_REMINDER.format(business_name=project_info["business_name"])
    return prompt
