# ABOUTME: Payment, credit and admin endpoints
# ABOUTME: Stripe checkout and webhooks, credit balance/apply, agency packs, purchases and customer repair

"""
Payment API endpoints.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from backend.dependencies.auth import ensure_same_user, get_current_user, get_optional_user, require_admin_api_key
from backend.dependencies.services import get_access_service, get_credit_service, get_payment_service
from backend.models.schemas import ApplyCreditRequest, ApplyPackRequest, CheckoutRequest
from backend.services.access_service import AccessService
from backend.services.credit_service import (
    CreditConflictError,
    CreditService,
    CustomerNotFoundError,
    InsufficientCreditsError,
    UnlockFailedError,
)
from backend.services.payment_service import PaymentService, WebhookConfigurationError, WebhookSignatureError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


async def create_checkout(
    request: CheckoutRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    payments: PaymentService = Depends(get_payment_service),
) -> JSONResponse:
    """Create a Stripe Checkout Session for a product purchase."""
    if not request.priceId or not request.productId or not request.userId:
        return JSONResponse(content={"error": "Missing required fields"}, status_code=400)
    ensure_same_user(user, request.userId)

    try:
        session = await payments.create_checkout_session(
            request.priceId, request.productId, request.userId, project_id=request.projectId
        )
        return JSONResponse(content=session)
    except Exception as e:
        logger.error(f"Error creating checkout session: {e}")
        return JSONResponse(content={"error": str(e) or "Failed to create checkout session"}, status_code=500)


async def stripe_webhook(
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
) -> JSONResponse:
    """
    Stripe webhook receiver.

    Verification failures are rejected; once verified the event is
    acknowledged with 200 even when processing fails, so Stripe does not retry.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = payments.construct_event(payload, signature)
    except WebhookConfigurationError as e:
        logger.error(str(e))
        return JSONResponse(content={"error": "Webhook secret not configured"}, status_code=500)
    except WebhookSignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return JSONResponse(content={"error": f"Webhook Error: {str(e)}"}, status_code=400)

    status = await payments.handle_webhook_event(event)
    logger.info(f"Webhook {event.get('id')} ({event.get('type')}): {status}")
    return JSONResponse(content={"received": True, "status": status})


router.add_api_route("/create-checkout", create_checkout, methods=["POST"])
router.add_api_route("/webhook", stripe_webhook, methods=["POST"])


@router.get("/credits/{user_id}")
async def get_credits(
    user_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    credits: CreditService = Depends(get_credit_service),
) -> JSONResponse:
    ensure_same_user(user, user_id)
    try:
        return JSONResponse(content=await credits.get_credit_balance(user_id))
    except Exception as e:
        logger.error(f"Error fetching credit balance for {user_id}: {e}")
        return JSONResponse(content={"success": False, "error": str(e)}, status_code=500)


@router.post("/apply-credit")
async def apply_credit(
    request: ApplyCreditRequest,
    credits: CreditService = Depends(get_credit_service),
) -> JSONResponse:
    if not request.customerId or not request.projectId:
        return JSONResponse(
            content={"success": False, "error": "Customer ID and Project ID are required"}, status_code=400
        )

    try:
        balance = await credits.apply_credit(request.customerId, request.projectId)
    except CustomerNotFoundError:
        return JSONResponse(content={"success": False, "error": "Customer not found"}, status_code=404)
    except InsufficientCreditsError as e:
        return JSONResponse(
            content={"success": False, "message": "Insufficient credits", "creditBalance": e.credit_balance},
            status_code=400,
        )
    except (UnlockFailedError, CreditConflictError) as e:
        return JSONResponse(content={"success": False, "error": str(e)}, status_code=500)

    return JSONResponse(content={
        "success": True,
        "creditBalance": balance,
        "message": "Project unlocked successfully",
    })


@router.get("/access/{project_id}")
async def project_access(
    project_id: str,
    credits: CreditService = Depends(get_credit_service),
) -> JSONResponse:
    return JSONResponse(content={"access": await credits.check_project_access(project_id)})


@router.get("/document-access/{project_id}")
async def document_access(
    project_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    access: AccessService = Depends(get_access_service),
) -> JSONResponse:
    """Access for the calling user, counting purchases as well as the unlock flag."""
    return JSONResponse(content={"access": await access.check_document_access(user["sub"], project_id)})


@router.post("/apply-pack")
async def apply_pack(
    request: ApplyPackRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    payments: PaymentService = Depends(get_payment_service),
) -> JSONResponse:
    if not request.userId or not request.projectId:
        return JSONResponse(content={"error": "Missing required fields"}, status_code=400)
    ensure_same_user(user, request.userId)

    success = await payments.apply_agency_pack_to_project(request.userId, request.projectId)
    return JSONResponse(content={"success": success})


@router.get("/purchases/{user_id}")
async def get_purchases(
    user_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    payments: PaymentService = Depends(get_payment_service),
) -> JSONResponse:
    ensure_same_user(user, user_id)
    try:
        purchases = await payments.get_user_purchases(user_id)
        return JSONResponse(content={"success": True, "purchases": purchases})
    except Exception as e:
        logger.error(f"Error fetching purchases for {user_id}: {e}")
        return JSONResponse(content={"error": "Failed to fetch purchases"}, status_code=500)


@router.get("/products")
async def list_products(payments: PaymentService = Depends(get_payment_service)) -> JSONResponse:
    return JSONResponse(content={"success": True, "products": await payments.list_products()})


@admin_router.post("/fix-stripe-customers")
async def fix_stripe_customers(
    _: str = Depends(require_admin_api_key),
    payments: PaymentService = Depends(get_payment_service),
) -> JSONResponse:
    try:
        return JSONResponse(content=await payments.fix_stripe_customers())
    except Exception as e:
        logger.error(f"Error in fix-stripe-customers: {e}")
        raise HTTPException(status_code=500, detail=str(e))
