# ABOUTME: Configuration model controlling how each document type is generated
# ABOUTME: Encodes token limits, temperature and retry policy for section-by-section vs whole-document runs

from pydantic import BaseModel, Field, validator
from typing import Optional
import logging

from backend.config.settings import SECTION_BY_SECTION_TYPES

logger = logging.getLogger(__name__)

SECTION_MAX_TOKENS = 500
DOCUMENT_MAX_TOKENS = 2500


class DocumentGenerationConfig(BaseModel):
    """Generation settings for a single document type."""

    document_type: str = Field(..., description="Catalog id of the document type")

    section_by_section: bool = Field(
        default=False,
        description="Generate one LLM call per section instead of one for the whole document"
    )

    max_tokens: int = Field(
        default=DOCUMENT_MAX_TOKENS,
        ge=100,
        le=8000,
        description="Completion token limit per LLM call"
    )

    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )

    max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries after the first attempt of each call"
    )

    backoff_base_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay for exponential backoff after a failed call"
    )

    model_name: Optional[str] = Field(
        default=None,
        description="Override of the configured OpenAI model"
    )

    @validator('document_type')
    def validate_document_type(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("document_type must not be empty")
        return v

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def for_document_type(cls, document_type: str, **overrides) -> "DocumentGenerationConfig":
        """Build the default configuration for a catalog document type."""
        section_by_section = document_type in SECTION_BY_SECTION_TYPES
        values = {
            "document_type": document_type,
            "section_by_section": section_by_section,
            "max_tokens": SECTION_MAX_TOKENS if section_by_section else DOCUMENT_MAX_TOKENS,
        }
        values.update(overrides)
        return cls(**values)
