# ABOUTME: Credit bookkeeping on stripe_customers.credit_balance and project unlocking
# ABOUTME: Balance changes run under a per-customer lock and are written compare-and-set against the read value

import asyncio
import logging
from typing import Any, Dict, Optional
from datetime import datetime

from backend.config.settings import PRODUCT_CREDIT_VALUES
from backend.config.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)


class CreditError(Exception):
    """Base class for credit operation failures."""


class CustomerNotFoundError(CreditError):
    pass


class InsufficientCreditsError(CreditError):
    def __init__(self, credit_balance: int):
        super().__init__("Insufficient credits")
        self.credit_balance = credit_balance


class CreditConflictError(CreditError):
    """The balance kept changing underneath every compare-and-set attempt."""


class UnlockFailedError(CreditError):
    pass


class CreditService:
    """Reads and mutates customer credit balances."""

    def __init__(self, supabase_client=None, project_manager=None, max_attempts: int = 5):
        self.supabase = supabase_client or get_supabase_client()
        self.project_manager = project_manager
        self.max_attempts = max_attempts
        self.customer_locks = {}  # Per-customer async locks

    async def _get_lock(self, customer_id: str) -> asyncio.Lock:
        if customer_id not in self.customer_locks:
            self.customer_locks[customer_id] = asyncio.Lock()
        return self.customer_locks[customer_id]

    def _find_customer(self, column: str, value: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("stripe_customers").select("*").eq(column, value).limit(1).execute()
        return result.data[0] if result.data else None

    def _compare_and_set(self, customer_id: str, expected: Optional[int], new_balance: int) -> bool:
        """Write new_balance only if the stored balance still equals expected."""
        query = self.supabase.table("stripe_customers").update({
            "credit_balance": new_balance,
            "updated_at": datetime.utcnow().isoformat(),
        }).eq("customer_id", customer_id)
        if expected is None:
            query = query.is_("credit_balance", "null")
        else:
            query = query.eq("credit_balance", expected)
        return bool(query.execute().data)

    async def _adjust_balance(self, customer_id: str, delta: int, minimum: Optional[int] = None) -> int:
        """
        Add delta to the balance and return the new value.

        Raises:
            CustomerNotFoundError: no row for customer_id
            InsufficientCreditsError: the result would drop below minimum
            CreditConflictError: every compare-and-set attempt lost a race
        """
        for attempt in range(self.max_attempts):
            customer = self._find_customer("customer_id", customer_id)
            if not customer:
                raise CustomerNotFoundError(f"Customer {customer_id} not found")

            stored = customer.get("credit_balance")
            current = stored or 0
            new_balance = current + delta
            if minimum is not None and new_balance < minimum:
                raise InsufficientCreditsError(current)

            if self._compare_and_set(customer_id, stored, new_balance):
                logger.info(f"Credit balance for {customer_id}: {current} -> {new_balance}")
                return new_balance

            logger.warning(f"Credit balance for {customer_id} changed concurrently (attempt {attempt + 1}), retrying")

        raise CreditConflictError(f"Could not update credit balance for {customer_id}")

    async def add_credits(self, customer_id: str, product_id: str, user_id: Optional[str] = None) -> int:
        """
        Grant the credits a product is worth.

        When no row is keyed by the Stripe customer id yet, the user's row is
        adopted and stamped with it.

        Returns:
            Credits added (0 for products that carry none)
        """
        credits = PRODUCT_CREDIT_VALUES.get(product_id, 0)
        if credits <= 0:
            return 0

        if user_id and not self._find_customer("customer_id", customer_id):
            user_row = self._find_customer("user_id", user_id)
            if user_row:
                self.supabase.table("stripe_customers").update({
                    "customer_id": customer_id,
                }).eq("user_id", user_id).execute()

        async with await self._get_lock(customer_id):
            try:
                await self._adjust_balance(customer_id, credits)
            except CustomerNotFoundError:
                if not user_id:
                    raise
                logger.info(f"Creating credit row for user {user_id}")
                self.supabase.table("stripe_customers").insert({
                    "user_id": user_id,
                    "customer_id": customer_id,
                    "stripe_customer_id": customer_id,
                    "credit_balance": credits,
                    "purchase_history": [],
                }).execute()

        logger.info(f"Added {credits} credits to customer {customer_id} for {product_id}")
        return credits

    async def get_credit_balance(self, user_id: str) -> Dict[str, Any]:
        customer = self._find_customer("user_id", user_id)
        if not customer:
            return {"creditBalance": 0}
        return {
            "creditBalance": customer.get("credit_balance") or 0,
            "customerId": customer.get("customer_id"),
        }

    async def apply_credit(self, customer_id: str, project_id: str) -> int:
        """
        Spend one credit to unlock a project.

        Returns:
            The remaining credit balance

        Raises:
            CustomerNotFoundError, InsufficientCreditsError, CreditConflictError,
            UnlockFailedError (the credit is refunded first)
        """
        async with await self._get_lock(customer_id):
            new_balance = await self._adjust_balance(customer_id, -1, minimum=0)

            unlocked = await self.project_manager.unlock_project(project_id)
            if not unlocked:
                logger.error(f"Unlock of project {project_id} failed, refunding credit to {customer_id}")
                await self._adjust_balance(customer_id, 1)
                raise UnlockFailedError(f"Failed to unlock project {project_id}")

        logger.info(f"Customer {customer_id} unlocked project {project_id}, {new_balance} credits left")
        return new_balance

    async def check_project_access(self, project_id: str) -> bool:
        return await self.project_manager.is_project_unlocked(project_id)
