# ABOUTME: Tests for CreditService balance bookkeeping and credit-based project unlocking
# ABOUTME: Includes concurrent spends and compare-and-set conflicts simulated via query hooks

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.services.credit_service import (
    CreditConflictError,
    CreditService,
    CustomerNotFoundError,
    InsufficientCreditsError,
    UnlockFailedError,
)


def make_service(db, unlock_result=True):
    project_manager = MagicMock()
    project_manager.unlock_project = AsyncMock(return_value=unlock_result)
    project_manager.is_project_unlocked = AsyncMock(return_value=False)
    return CreditService(db, project_manager=project_manager)


def customer_row(balance, customer_id="cus_1", user_id="user-1"):
    return {"user_id": user_id, "customer_id": customer_id, "stripe_customer_id": customer_id,
            "credit_balance": balance, "purchase_history": []}


class TestAddCredits:

    def test_agency_pack_adds_ten(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(2)]
        service = make_service(fake_supabase)

        added = asyncio.run(service.add_credits("cus_1", "agency_pack"))

        assert added == 10
        assert fake_supabase.rows("stripe_customers")[0]["credit_balance"] == 12

    def test_complete_guide_adds_one_to_null_balance(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(None)]
        service = make_service(fake_supabase)

        asyncio.run(service.add_credits("cus_1", "complete_guide"))

        assert fake_supabase.rows("stripe_customers")[0]["credit_balance"] == 1

    def test_single_plan_adds_nothing(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(3)]
        service = make_service(fake_supabase)

        assert asyncio.run(service.add_credits("cus_1", "single_plan")) == 0
        assert fake_supabase.rows("stripe_customers")[0]["credit_balance"] == 3

    def test_adopts_user_row_for_new_customer_id(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(1, customer_id="cus_old")]
        service = make_service(fake_supabase)

        asyncio.run(service.add_credits("cus_new", "complete_guide", user_id="user-1"))

        row = fake_supabase.rows("stripe_customers")[0]
        assert row["customer_id"] == "cus_new"
        assert row["credit_balance"] == 2

    def test_creates_row_when_user_has_none(self, fake_supabase):
        service = make_service(fake_supabase)

        asyncio.run(service.add_credits("cus_9", "agency_pack", user_id="user-9"))

        rows = fake_supabase.rows("stripe_customers")
        assert len(rows) == 1
        assert rows[0]["user_id"] == "user-9"
        assert rows[0]["credit_balance"] == 10

    def test_unknown_customer_without_user_raises(self, fake_supabase):
        service = make_service(fake_supabase)
        with pytest.raises(CustomerNotFoundError):
            asyncio.run(service.add_credits("cus_x", "agency_pack"))


class TestBalance:

    def test_balance_for_known_user(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(4)]
        service = make_service(fake_supabase)

        assert asyncio.run(service.get_credit_balance("user-1")) == {"creditBalance": 4, "customerId": "cus_1"}

    def test_balance_for_unknown_user_is_zero(self, fake_supabase):
        service = make_service(fake_supabase)
        assert asyncio.run(service.get_credit_balance("nobody")) == {"creditBalance": 0}

    def test_row_without_credit_key_has_no_customer_id(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [{"user_id": "user-1", "stripe_customer_id": "cus_9", "credit_balance": None}]
        service = make_service(fake_supabase)

        assert asyncio.run(service.get_credit_balance("user-1")) == {"creditBalance": 0, "customerId": None}


class TestApplyCredit:

    def test_spends_one_credit_and_unlocks(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(2)]
        service = make_service(fake_supabase)

        remaining = asyncio.run(service.apply_credit("cus_1", "proj-1"))

        assert remaining == 1
        service.project_manager.unlock_project.assert_awaited_once_with("proj-1")

    def test_zero_balance_is_rejected(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(0)]
        service = make_service(fake_supabase)

        with pytest.raises(InsufficientCreditsError) as exc_info:
            asyncio.run(service.apply_credit("cus_1", "proj-1"))

        assert exc_info.value.credit_balance == 0
        service.project_manager.unlock_project.assert_not_awaited()

    def test_unknown_customer(self, fake_supabase):
        service = make_service(fake_supabase)
        with pytest.raises(CustomerNotFoundError):
            asyncio.run(service.apply_credit("cus_missing", "proj-1"))

    def test_failed_unlock_refunds_credit(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(1)]
        service = make_service(fake_supabase, unlock_result=False)

        with pytest.raises(UnlockFailedError):
            asyncio.run(service.apply_credit("cus_1", "proj-1"))

        assert fake_supabase.rows("stripe_customers")[0]["credit_balance"] == 1

    @pytest.mark.concurrency
    def test_concurrent_spends_never_overdraw(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(1)]
        service = make_service(fake_supabase)

        async def spend_twice():
            return await asyncio.gather(
                service.apply_credit("cus_1", "proj-1"),
                service.apply_credit("cus_1", "proj-2"),
                return_exceptions=True,
            )

        results = asyncio.run(spend_twice())

        assert sorted(type(r).__name__ for r in results) == ["InsufficientCreditsError", "int"]
        assert fake_supabase.rows("stripe_customers")[0]["credit_balance"] == 0

    @pytest.mark.concurrency
    def test_compare_and_set_retries_after_external_write(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(5)]
        service = make_service(fake_supabase)
        interfered = []

        def other_writer(query):
            # Another process spends a credit between our read and our write.
            if query.table == "stripe_customers" and query.op == "update" and not interfered:
                interfered.append(True)
                fake_supabase.tables["stripe_customers"][0]["credit_balance"] = 4

        fake_supabase.hooks.append(other_writer)

        remaining = asyncio.run(service.apply_credit("cus_1", "proj-1"))

        assert remaining == 3
        assert fake_supabase.rows("stripe_customers")[0]["credit_balance"] == 3

    @pytest.mark.concurrency
    def test_gives_up_after_repeated_conflicts(self, fake_supabase):
        fake_supabase.tables["stripe_customers"] = [customer_row(5)]
        service = make_service(fake_supabase)

        def always_interfere(query):
            if query.table == "stripe_customers" and query.op == "update":
                fake_supabase.tables["stripe_customers"][0]["credit_balance"] += 1

        fake_supabase.hooks.append(always_interfere)

        with pytest.raises(CreditConflictError):
            asyncio.run(service.apply_credit("cus_1", "proj-1"))
        service.project_manager.unlock_project.assert_not_awaited()
