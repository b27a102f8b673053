# ABOUTME: FastAPI dependency providers for the backend services
# ABOUTME: Services are created lazily once per process; tests swap them via app.dependency_overrides

import logging

from backend.agents.document_generator_agent import DocumentGeneratorAgent
from backend.models.openai_model import OpenAIModel
from backend.services.access_service import AccessService
from backend.services.credit_service import CreditService
from backend.services.document_type_service import DocumentTypeService
from backend.services.payment_service import PaymentService
from backend.services.supabase_project_manager import SupabaseProjectManager

logger = logging.getLogger(__name__)

_instances = {}


def _singleton(name, factory):
    if name not in _instances:
        _instances[name] = factory()
        logger.info(f"Initialized {type(_instances[name]).__name__}")
    return _instances[name]


def get_document_type_service() -> DocumentTypeService:
    return _singleton("document_types", DocumentTypeService)


def get_project_manager() -> SupabaseProjectManager:
    return _singleton(
        "project_manager",
        lambda: SupabaseProjectManager(document_type_service=get_document_type_service()),
    )


def get_credit_service() -> CreditService:
    return _singleton("credits", lambda: CreditService(project_manager=get_project_manager()))


def get_access_service() -> AccessService:
    return _singleton(
        "access",
        lambda: AccessService(
            project_manager=get_project_manager(),
            document_type_service=get_document_type_service(),
        ),
    )


def get_payment_service() -> PaymentService:
    return _singleton(
        "payments",
        lambda: PaymentService(credit_service=get_credit_service(), project_manager=get_project_manager()),
    )


def get_generator_agent() -> DocumentGeneratorAgent:
    return _singleton(
        "generator",
        lambda: DocumentGeneratorAgent(
            model=OpenAIModel(),
            project_manager=get_project_manager(),
            document_type_service=get_document_type_service(),
        ),
    )
