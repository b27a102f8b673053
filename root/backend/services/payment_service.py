# ABOUTME: Stripe checkout, webhook reconciliation and purchase bookkeeping backed by Supabase
# ABOUTME: Records every webhook event once, then updates purchases, purchase history, credits and subscriptions

"""
Payment service: Stripe customers, checkout sessions, webhook handling and purchases.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime

from backend.config import settings
from backend.config.stripe_client import configure_stripe
from backend.config.supabase_client import get_supabase_client
from backend.models.schemas import ProductId

logger = logging.getLogger(__name__)


class WebhookConfigurationError(Exception):
    """The webhook signing secret is not configured."""


class WebhookSignatureError(Exception):
    """The webhook payload or signature failed verification."""


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Item access that works for dicts and Stripe objects alike."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, AttributeError):
        return default
    return default if value is None else value


def _format_amount(amount_total: int) -> str:
    """Cents to a major-unit string without a trailing .0 (4900 -> "49", 4999 -> "49.99")."""
    amount = amount_total / 100
    return str(int(amount)) if amount == int(amount) else str(amount)


class PaymentService:
    """Wraps the Stripe SDK and the payment tables."""

    def __init__(self, supabase_client=None, credit_service=None, project_manager=None, stripe_module=None):
        self.supabase = supabase_client or get_supabase_client()
        self.credit_service = credit_service
        self.project_manager = project_manager
        self.stripe = stripe_module or configure_stripe()

    # ==================== Customers ====================

    def _customer_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("stripe_customers").select("*").eq("user_id", user_id).limit(1).execute()
        return result.data[0] if result.data else None

    def _lookup_user_identity(self, user_id: str) -> Dict[str, str]:
        """Email and display name for a user: auth admin API, then profiles, then a placeholder."""
        try:
            response = self.supabase.auth.admin.get_user_by_id(user_id)
            user = getattr(response, "user", None)
            if user and user.email:
                metadata = user.user_metadata or {}
                return {"email": user.email, "name": metadata.get("full_name") or user.email.split("@")[0]}
        except Exception as e:
            logger.info(f"Auth admin lookup unavailable for {user_id}: {e}")

        try:
            result = self.supabase.table("profiles").select("email, full_name").eq("id", user_id).limit(1).execute()
            if result.data and result.data[0].get("email"):
                profile = result.data[0]
                return {"email": profile["email"], "name": profile.get("full_name") or profile["email"].split("@")[0]}
        except Exception as e:
            logger.info(f"Could not read profile for {user_id}: {e}")

        logger.info(f"Using placeholder identity for user {user_id}")
        return {"email": f"user-{user_id[:8]}@example.com", "name": f"User {user_id[:6]}"}

    async def get_or_create_customer(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Return the user's stripe_customers row, creating the Stripe customer if needed.

        Falls back to an unsaved minimal record when the database write fails,
        and returns None only when Stripe itself is unreachable.
        """
        try:
            existing = self._customer_row(user_id)
            if existing and existing.get("stripe_customer_id"):
                logger.info(f"Found existing Stripe customer {existing['stripe_customer_id']} for user {user_id}")
                return existing

            identity = self._lookup_user_identity(user_id)
            customer = self.stripe.Customer.create(
                email=identity["email"],
                name=identity["name"],
                metadata={"userId": user_id},
            )
            logger.info(f"Created Stripe customer {customer.id} for user {user_id}")

            if existing:
                result = self.supabase.table("stripe_customers").update({
                    "stripe_customer_id": customer.id,
                    "customer_id": customer.id,
                    "needs_stripe_customer": False,
                }).eq("user_id", user_id).execute()
            else:
                result = self.supabase.table("stripe_customers").insert({
                    "user_id": user_id,
                    "stripe_customer_id": customer.id,
                    "customer_id": customer.id,
                    "credit_balance": 0,
                    "purchase_history": [],
                }).execute()

            if not result.data:
                raise Exception("stripe_customers write returned no data")
            return result.data[0]

        except Exception as e:
            logger.error(f"Error in get_or_create_customer for {user_id}: {e}")
            try:
                customer = self.stripe.Customer.create(
                    email=f"emergency-{user_id[:8]}@example.com",
                    name="Emergency User",
                    metadata={"userId": user_id},
                )
                logger.warning(f"Created emergency fallback customer {customer.id}")
                return {"user_id": user_id, "stripe_customer_id": customer.id}
            except Exception as final_error:
                logger.error(f"Complete failure in customer creation: {final_error}")
                return None

    # ==================== Checkout ====================

    async def create_checkout_session(self, price_id: str, product_id: str, user_id: str,
                                      project_id: Optional[str] = None) -> Dict[str, str]:
        """
        Create a one-time payment Checkout Session.

        Returns:
            {"sessionId": ..., "url": ...}

        Raises:
            Exception: customer creation or the Stripe call failed
        """
        customer = await self.get_or_create_customer(user_id)
        if not customer:
            raise Exception("Failed to create or retrieve customer")

        if project_id:
            base = f"{settings.APP_URL}/app/projects/{project_id}/documents"
            success_url = f"{base}?success=true&session_id={{CHECKOUT_SESSION_ID}}"
            cancel_url = f"{base}?canceled=true"
        else:
            success_url = f"{settings.APP_URL}/success?session_id={{CHECKOUT_SESSION_ID}}"
            cancel_url = f"{settings.APP_URL}/pricing"

        session = self.stripe.checkout.Session.create(
            customer=customer["stripe_customer_id"],
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"userId": user_id, "productId": product_id, "projectId": project_id or ""},
        )
        logger.info(f"Created checkout session {session.id} for user {user_id} ({product_id})")

        try:
            self.supabase.table("stripe_customers").update({
                "last_checkout_session": session.id,
                "last_checkout_time": datetime.utcnow().isoformat(),
            }).eq("user_id", user_id).execute()
        except Exception as e:
            logger.warning(f"Could not record checkout session for {user_id}: {e}")

        return {"sessionId": session.id, "url": session.url}

    # ==================== Webhooks ====================

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify a webhook payload and return the event as a plain dict."""
        secret = settings.get_stripe_webhook_secret()
        if not secret:
            raise WebhookConfigurationError("Stripe webhook secret is not configured")
        try:
            self.stripe.Webhook.construct_event(payload, signature, secret)
        except (ValueError, self.stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError(str(e)) from e
        return json.loads(payload)

    def _claim_event(self, event: Dict[str, Any]) -> bool:
        """
        Insert the event row if it is new, then move it to processing.

        Only one delivery can win the conditional update, so an event that is
        processing or processed in another worker is reported as not claimed.
        """
        event_id = event.get("id")
        self.supabase.table("stripe_webhook_events").upsert({
            "id": event_id,
            "type": event.get("type"),
            "status": "received",
            "payload": event,
            "received_at": datetime.utcnow().isoformat(),
        }, on_conflict="id", ignore_duplicates=True).execute()

        result = (
            self.supabase.table("stripe_webhook_events")
            .update({"status": "processing", "error": None})
            .eq("id", event_id)
            .not_.in_("status", ["processing", "processed"])
            .execute()
        )
        return bool(result.data)

    def _finish_event(self, event: Dict[str, Any], status: str, error: Optional[str] = None) -> None:
        if not event.get("id"):
            return
        try:
            self.supabase.table("stripe_webhook_events").update({
                "status": status,
                "error": error,
                "processed_at": datetime.utcnow().isoformat(),
            }).eq("id", event["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to record webhook event {event.get('id')}: {e}")

    async def handle_webhook_event(self, event: Dict[str, Any]) -> str:
        """
        Process a verified webhook event once.

        Returns:
            The recorded status: processed, ignored, failed or duplicate
        """
        event_id = event.get("id")
        event_type = event.get("type")
        if event_id:
            try:
                claimed = self._claim_event(event)
            except Exception as e:
                logger.error(f"Failed to claim webhook event {event_id}: {e}")
                return "failed"
            if not claimed:
                logger.info(f"Webhook event {event_id} already processed or in progress, skipping")
                return "duplicate"

        obj = (event.get("data") or {}).get("object") or {}

        try:
            if event_type == "checkout.session.completed":
                await self.handle_completed_checkout(obj)
            elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
                await self.handle_subscription_change(obj)
            else:
                logger.info(f"Unhandled webhook event type {event_type}")
                self._finish_event(event, "ignored")
                return "ignored"
        except Exception as e:
            logger.exception(f"Webhook event {event_id} ({event_type}) failed: {e}")
            self._finish_event(event, "failed", str(e))
            return "failed"

        self._finish_event(event, "processed")
        return "processed"

    async def handle_completed_checkout(self, session: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Record the purchase of a completed Checkout Session and grant what it bought."""
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        product_id = metadata.get("productId")
        project_id = metadata.get("projectId") or None

        if session.get("mode") == "subscription" and session.get("subscription") and user_id:
            subscription = self.stripe.Subscription.retrieve(session["subscription"])
            await self._store_subscription(user_id, session.get("customer"), subscription)
            return None

        if not user_id or not product_id:
            raise ValueError(f"Missing userId or productId in session {session.get('id')} metadata")

        remaining_uses = None
        used_for_projects: List[str] = []
        if product_id == ProductId.AGENCY_PACK.value:
            remaining_uses = settings.AGENCY_PACK_USES
            if project_id:
                remaining_uses -= 1
                used_for_projects = [project_id]
        if product_id in (ProductId.COMPLETE_GUIDE.value, ProductId.SINGLE_PLAN.value) and project_id:
            used_for_projects = [project_id]

        amount_total = session.get("amount_total")
        result = self.supabase.table("purchases").insert({
            "user_id": user_id,
            "product_id": product_id,
            "status": "active",
            "stripe_transaction_id": session.get("payment_intent"),
            "stripe_price_id": _format_amount(amount_total) if amount_total else "",
            "remaining_uses": remaining_uses,
            "used_for_projects": used_for_projects or None,
            "purchase_date": datetime.utcnow().isoformat(),
        }).execute()
        if not result.data:
            raise Exception(f"Failed to record purchase for session {session.get('id')}")
        purchase = result.data[0]
        logger.info(f"Recorded purchase {purchase.get('id')} of {product_id} for user {user_id}")

        await self.update_purchase_history(user_id, {
            "product_id": product_id,
            "purchase_date": datetime.utcnow().isoformat(),
            "amount": amount_total / 100 if amount_total else 0,
            "transaction_id": session.get("payment_intent"),
        })

        customer_id = session.get("customer")
        if self.credit_service and customer_id:
            await self.credit_service.add_credits(customer_id, product_id, user_id=user_id)

        if project_id and product_id in (ProductId.COMPLETE_GUIDE.value, ProductId.SINGLE_PLAN.value) and self.project_manager:
            await self.project_manager.unlock_project(project_id)

        return purchase

    async def update_purchase_history(self, user_id: str, purchase_info: Dict[str, Any]) -> bool:
        try:
            customer = self._customer_row(user_id)
            if not customer:
                logger.warning(f"No stripe_customers row for user {user_id}, purchase history not updated")
                return False
            history = list(customer.get("purchase_history") or [])
            history.append(purchase_info)
            self.supabase.table("stripe_customers").update({"purchase_history": history}).eq("user_id", user_id).execute()
            logger.info(f"Purchase history updated for user {user_id}")
            return True
        except Exception as e:
            logger.error(f"Error updating purchase history for {user_id}: {e}")
            return False

    def _user_for_customer(self, customer_id: str) -> Optional[str]:
        try:
            customer = self.stripe.Customer.retrieve(customer_id)
            user_id = _get(_get(customer, "metadata", {}), "userId")
            if user_id:
                return user_id
        except Exception as e:
            logger.warning(f"Could not retrieve Stripe customer {customer_id}: {e}")

        result = self.supabase.table("profiles").select("id").eq("stripe_customer_id", customer_id).limit(1).execute()
        return result.data[0]["id"] if result.data else None

    async def _store_subscription(self, user_id: str, customer_id: Optional[str], subscription: Any) -> None:
        items = _get(_get(subscription, "items", {}), "data", [])
        price_id = _get(_get(items[0], "price", {}), "id") if items else None
        period_end = _get(subscription, "current_period_end")
        now = datetime.utcnow().isoformat()

        self.supabase.table("subscriptions").upsert({
            "user_id": user_id,
            "stripe_customer_id": customer_id,
            "stripe_subscription_id": _get(subscription, "id"),
            "status": _get(subscription, "status"),
            "price_id": price_id,
            "current_period_end": datetime.utcfromtimestamp(period_end).isoformat() if period_end else None,
            "cancel_at_period_end": bool(_get(subscription, "cancel_at_period_end", False)),
            "updated_at": now,
        }, on_conflict="user_id").execute()

        self.supabase.table("profiles").update({
            "subscription_status": _get(subscription, "status"),
            "subscription_tier": settings.plan_for_price(price_id),
            "updated_at": now,
        }).eq("id", user_id).execute()
        logger.info(f"Subscription updated for user {user_id}")

    async def handle_subscription_change(self, subscription: Dict[str, Any]) -> None:
        customer_id = subscription.get("customer")
        user_id = self._user_for_customer(customer_id)
        if not user_id:
            raise ValueError(f"Could not find user for customer {customer_id}")
        await self._store_subscription(user_id, customer_id, subscription)

    # ==================== Purchases ====================

    async def apply_agency_pack_to_project(self, user_id: str, project_id: str) -> bool:
        """Spend one agency pack use on a project; re-applying to the same project is free."""
        try:
            result = self.supabase.table("purchases").select("*") \
                .eq("user_id", user_id) \
                .eq("product_id", ProductId.AGENCY_PACK.value) \
                .eq("status", "active").execute()
            packs = result.data or []

            if any(project_id in (pack.get("used_for_projects") or []) for pack in packs):
                logger.info(f"Project {project_id} already uses an agency pack")
                return True

            available = [pack for pack in packs if (pack.get("remaining_uses") or 0) > 0]
            if not available:
                logger.info(f"No available agency packs for user {user_id}")
                return False

            pack = available[0]
            used_for = list(pack.get("used_for_projects") or []) + [project_id]
            remaining = pack["remaining_uses"] - 1

            # Guard against a concurrent use of the same pack
            update = self.supabase.table("purchases").update({
                "used_for_projects": used_for,
                "remaining_uses": remaining,
            }).eq("id", pack["id"]).eq("remaining_uses", pack["remaining_uses"]).execute()
            if not update.data:
                logger.warning(f"Agency pack {pack['id']} changed concurrently")
                return False

            logger.info(f"Agency pack applied to project {project_id}, {remaining} uses remaining")
            return True

        except Exception as e:
            logger.error(f"Error applying agency pack for {user_id}: {e}")
            return False

    async def get_user_purchases(self, user_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("purchases").select("*") \
            .eq("user_id", user_id).eq("status", "active") \
            .order("purchase_date", desc=True).execute()
        return result.data or []

    async def list_products(self) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("products").select("*").order("price").execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to load products: {e}")
            return []

    # ==================== Admin ====================

    async def fix_stripe_customers(self, limit: int = 100) -> Dict[str, Any]:
        """Create or attach Stripe customers for rows that lack one."""
        missing = self.supabase.table("stripe_customers").select("*") \
            .is_("stripe_customer_id", "null").limit(limit).execute().data or []
        flagged = self.supabase.table("stripe_customers").select("*") \
            .eq("needs_stripe_customer", True).limit(limit).execute().data or []

        rows: Dict[str, Dict[str, Any]] = {}
        for row in missing + flagged:
            rows.setdefault(row["user_id"], row)
        rows_to_fix = list(rows.values())[:limit]

        emails: Dict[str, str] = {}
        try:
            users = self.supabase.auth.admin.list_users()
            emails = {str(u.id): u.email for u in users if getattr(u, "email", None)}
        except Exception as e:
            logger.warning(f"Could not list auth users: {e}")

        report = {"total": len(rows_to_fix), "processed": 0, "success": 0, "failed": 0, "details": []}
        for row in rows_to_fix:
            user_id = row["user_id"]
            report["processed"] += 1
            try:
                email = emails.get(user_id) or f"user-{user_id[:8]}@example.com"
                existing = self.stripe.Customer.list(email=email, limit=1)
                if existing.data:
                    customer_id = existing.data[0].id
                    action = "linked"
                else:
                    customer_id = self.stripe.Customer.create(email=email, metadata={"userId": user_id}).id
                    action = "created"

                self.supabase.table("stripe_customers").update({
                    "stripe_customer_id": customer_id,
                    "customer_id": customer_id,
                    "needs_stripe_customer": False,
                    "updated_at": datetime.utcnow().isoformat(),
                }).eq("user_id", user_id).execute()

                report["success"] += 1
                report["details"].append({"user_id": user_id, "status": action, "stripe_customer_id": customer_id})
            except Exception as e:
                logger.error(f"Failed to fix Stripe customer for {user_id}: {e}")
                report["failed"] += 1
                report["details"].append({"user_id": user_id, "status": "failed", "error": str(e)})

        logger.info(f"Fixed Stripe customers: {report['success']} ok, {report['failed']} failed")
        return report
