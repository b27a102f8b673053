"""
FastAPI application for MarketingGuide AI: projects, document generation and payments.
"""

import sys
import logging
from pathlib import Path

# Configure Python path for absolute imports from root
backend_dir = Path(__file__).parent
root_dir = backend_dir.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config.settings import CORS_ORIGINS, LOG_LEVEL
from backend.api_projects import router as projects_router
from backend.api_payments import (
    admin_router,
    create_checkout,
    router as payments_router,
    stripe_webhook,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("MarketingGuideAPI")

app = FastAPI(title="MarketingGuide AI API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(projects_router)
app.include_router(payments_router)
app.include_router(admin_router)

# Top-level aliases kept for existing Stripe dashboard and client configuration
app.add_api_route("/api/create-checkout-session", create_checkout, methods=["POST"], tags=["payments"])
app.add_api_route("/api/stripe-webhook", stripe_webhook, methods=["POST"], tags=["payments"])
app.add_api_route("/api/webhook/stripe", stripe_webhook, methods=["POST"], tags=["payments"])


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(content={"error": "Internal server error"}, status_code=500)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"})


logger.info(f"Routes loaded: {len(app.routes)}")
