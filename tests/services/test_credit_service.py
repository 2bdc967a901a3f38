"""
Tests for the CreditService.

Tests cover:
- Pool creation and the owner/staff split
- Staff allocations carved out of the staff pool
- Owner usage with overflow into the staff pool
- Staff usage against allocations
- Availability checks
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from shop_ledger.actions import run_action
from shop_ledger.exceptions import InsufficientCreditsError, NotFoundError
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.schemas.credits import (
    CreditPoolCreate,
    StaffAllocationCreate,
    TrackUsageRequest,
)
from shop_ledger.schemas.ledger import RecordTransactionRequest
from shop_ledger.services.credit_service import CreditService, credits_for_tokens

SHOP_ID = "shop-1"
OWNER_ID = "owner-1"


@pytest.fixture
def service(db_session):
    return CreditService(db_session, SHOP_ID, OWNER_ID)


@pytest.fixture
def pool(service):
    pool = service.create_credit_pool(CreditPoolCreate(
        period_start=date(2024, 6, 1),
        period_end=date(2024, 6, 30),
        total_credits=100,
        owner_credits=40,
        staff_pool_credits=60,
    ))
    service.db.commit()
    return pool


def use(service, pool, user_id, credits, is_owner=False, tokens=None):
    return service.track_usage(TrackUsageRequest(
        pool_id=pool.id,
        user_id=user_id,
        is_owner=is_owner,
        operation_type="chat",
        tokens_used=tokens if tokens is not None else credits * 1000,
        credits_charged=credits,
    ))


class TestPools:

    def test_shares_must_add_up(self):
        with pytest.raises(ValidationError, match="add up"):
            CreditPoolCreate(
                period_start=date(2024, 6, 1),
                period_end=date(2024, 6, 30),
                total_credits=100,
                owner_credits=50,
                staff_pool_credits=60,
            )

    @pytest.mark.parametrize("tokens, credits", [(0, 0), (1, 1), (1000, 1), (1001, 2)])
    def test_credits_for_tokens(self, tokens, credits):
        assert credits_for_tokens(tokens) == credits


class TestStaffAllocations:

    def test_allocations_limited_by_staff_pool(self, service, pool):
        service.allocate_staff_credits(StaffAllocationCreate(
            pool_id=pool.id, user_id="ana", allocated_credits=40,
        ))
        service.db.commit()

        with pytest.raises(InsufficientCreditsError, match="20 credits unallocated"):
            service.allocate_staff_credits(StaffAllocationCreate(
                pool_id=pool.id, user_id="ben", allocated_credits=30,
            ))

    def test_reallocation_replaces_share(self, service, pool):
        for credits in (40, 60):
            allocation = service.allocate_staff_credits(StaffAllocationCreate(
                pool_id=pool.id, user_id="ana", allocated_credits=credits,
            ))
        service.db.commit()

        assert allocation.allocated_credits == 60


class TestTrackUsage:

    def test_owner_uses_own_credits_first(self, service, pool):
        use(service, pool, OWNER_ID, 30, is_owner=True)
        service.db.commit()

        assert pool.owner_used == 30
        assert pool.owner_overflow_used == 0
        assert pool.total_used == Decimal("30")
        entry = service.ledger.get_entries(AccountKind.CREDIT_POOL, pool.id)[0]
        assert entry.transaction_type == TransactionType.TOKEN_USAGE
        assert entry.debit_amount == Decimal("30")

    def test_owner_overflows_into_staff_pool(self, service, pool):
        use(service, pool, OWNER_ID, 50, is_owner=True)
        service.db.commit()

        assert pool.owner_used == 40
        assert pool.owner_overflow_used == 10
        assert pool.staff_pool_remaining == 50

    def test_owner_beyond_everything_rejected(self, db_session, service, pool):
        result = run_action(db_session, lambda: use(service, pool, OWNER_ID, 101, is_owner=True))

        assert result.code == "insufficient_credits"
        assert service.ledger.get_entries(AccountKind.CREDIT_POOL, pool.id) == []

    def test_manual_posting_cannot_bypass_owner_and_staff_counters(
        self, db_session, service, pool
    ):
        result = run_action(db_session, lambda: service.ledger.record_transaction(
            RecordTransactionRequest(
                account_kind=AccountKind.CREDIT_POOL,
                account_id=pool.id,
                amount=Decimal("50"),
                direction=EntryType.DEBIT,
            )
        ))

        assert result.code == "validation_error"
        assert result.error == "Credit pool usage must be recorded through usage tracking"
        assert service.ledger.get_entries(AccountKind.CREDIT_POOL, pool.id) == []

        use(service, pool, OWNER_ID, 100, is_owner=True)
        service.db.commit()

        assert pool.total_used == Decimal("100")
        assert pool.total_used <= pool.total_credits

    def test_staff_needs_allocation(self, service, pool):
        with pytest.raises(NotFoundError) as exc:
            use(service, pool, "ana", 1)
        assert exc.value.code == "allocation_not_found"

    def test_staff_usage_within_allocation(self, service, pool):
        allocation = service.allocate_staff_credits(StaffAllocationCreate(
            pool_id=pool.id, user_id="ana", allocated_credits=20,
        ))
        use(service, pool, "ana", 15)
        service.db.commit()

        assert allocation.used_credits == 15
        assert pool.staff_pool_used == 15

        with pytest.raises(InsufficientCreditsError, match="5 available"):
            use(service, pool, "ana", 6)

    def test_owner_overflow_limits_staff(self, service, pool):
        service.allocate_staff_credits(StaffAllocationCreate(
            pool_id=pool.id, user_id="ana", allocated_credits=60,
        ))
        use(service, pool, OWNER_ID, 90, is_owner=True)
        service.db.commit()

        available = service.get_credits(pool.id, "ana", is_owner=False)
        assert available.available == 10


class TestAvailability:

    def test_check_credits_available(self, service, pool):
        check = service.check_credits_available(
            pool.id, OWNER_ID, is_owner=True, estimated_tokens=120_500
        )

        assert check.available == 100
        assert check.required == 121
        assert check.sufficient is False

    def test_staff_without_allocation_has_nothing(self, service, pool):
        check = service.check_credits_available(
            pool.id, "ana", is_owner=False, estimated_tokens=10
        )
        assert check.available == 0
        assert check.sufficient is False
