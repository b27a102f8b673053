# ABOUTME: Environment-driven application settings and product constants
# ABOUTME: Centralizes credit values, pack sizes, URLs and Stripe price-to-plan mapping

import os
import logging
from typing import Dict
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

APP_URL = os.getenv("APP_URL", "http://localhost:8501").rstrip("/")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:8501").split(",")
    if origin.strip()
]

# Credits granted per purchased product
PRODUCT_CREDIT_VALUES: Dict[str, int] = {
    "complete_guide": 1,
    "agency_pack": 10,
}

AGENCY_PACK_USES = 10

SECTION_BY_SECTION_TYPES = ["marketing_plan"]

DOCUMENT_TYPE_CACHE_SECONDS = 300
DOCUMENT_EVENTS_POLL_SECONDS = 1.0
DOCUMENT_EVENTS_TIMEOUT_SECONDS = 600
# A document still "generating" after this long without a progress write is assumed orphaned
GENERATION_STALE_SECONDS = 900


def get_stripe_webhook_secret() -> str:
    return os.getenv("STRIPE_WEBHOOK_SECRET", "")


def get_admin_api_key() -> str:
    return os.getenv("ADMIN_API_KEY", "")


def get_price_to_plan() -> Dict[str, str]:
    """Map Stripe price ids to subscription tiers."""
    mapping = {}
    for tier in ("basic", "pro", "enterprise"):
        price_id = os.getenv(f"STRIPE_PRICE_{tier.upper()}")
        if price_id:
            mapping[price_id] = tier
    return mapping


def plan_for_price(price_id: str) -> str:
    return get_price_to_plan().get(price_id, "basic")
