# ABOUTME: Pydantic models for projects, documents, the document-type catalog and API payloads
# ABOUTME: Shared by services, the generation agent and the FastAPI routers

from enum import Enum
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, validator


class ProjectStatus(Enum):
    """Project status enumeration."""
    DRAFT = "draft"
    COMPLETED = "completed"


class DocumentStatus(Enum):
    """Document status enumeration."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class ProductId(Enum):
    """Purchasable products."""
    SINGLE_PLAN = "single_plan"
    COMPLETE_GUIDE = "complete_guide"
    AGENCY_PACK = "agency_pack"


# --- Catalog ---

class RequiredInfoQuestion(BaseModel):
    id: str
    question: str
    placeholder: Optional[str] = None


class RequiredInfoSpec(BaseModel):
    questions: List[RequiredInfoQuestion] = Field(default_factory=list)


class DocumentType(BaseModel):
    """A catalog entry describing one kind of generated document."""
    id: str
    name: str
    description: str = ""
    icon: Optional[str] = None
    prompt_template: str
    document_order: int = 0
    required_info: Optional[RequiredInfoSpec] = None


# --- Documents ---

class DocumentSection(BaseModel):
    title: str
    content: str = ""


class DocumentProgress(BaseModel):
    percent: float = Field(default=0, ge=0, le=100)
    stage: str
    message: Optional[str] = None


class RequiredInfoAnswers(BaseModel):
    answers: Dict[str, str] = Field(default_factory=dict)
    skipped: bool = False


# --- Requests ---

class ProjectCreate(BaseModel):
    """Project creation request collected by the new-project wizard."""
    name: str = Field(..., description="Business name")
    business_type: str
    target_audience: str
    goals: str
    budget: str
    challenges: str
    description: Optional[str] = None

    @validator('name', 'business_type', 'target_audience', 'goals', 'budget', 'challenges')
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("field must not be empty")
        return v.strip()


class GenerateContentRequest(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = Field(default=None, ge=1, le=8000)


class CheckoutRequest(BaseModel):
    priceId: Optional[str] = None
    productId: Optional[str] = None
    projectId: Optional[str] = None
    userId: Optional[str] = None


class ApplyCreditRequest(BaseModel):
    customerId: Optional[str] = None
    projectId: Optional[str] = None


class ApplyPackRequest(BaseModel):
    userId: Optional[str] = None
    projectId: Optional[str] = None
