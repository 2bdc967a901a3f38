"""
AI credit service.

A credit pool is split into owner credits and a staff pool.
The owner spends owner credits first and then overflows into
the staff pool. Staff users spend from their own allocation,
which is carved out of the staff pool.

Every charge is a debit on the pool's ledger, so total_used is
always the sum of the pool's token_usage entries.
"""

import logging
import math

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import InsufficientCreditsError, NotFoundError
from shop_ledger.models.credit_pool import CreditAllocation, CreditPool
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.schemas.credits import (
    CreditPoolCreate,
    CreditsAvailable,
    StaffAllocationCreate,
    TrackUsageRequest,
)
from shop_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

TOKENS_PER_CREDIT = 1000


def credits_for_tokens(tokens: int) -> int:
    """1 credit per 1000 tokens, rounded up."""
    return math.ceil(tokens / TOKENS_PER_CREDIT)


class CreditService:

    def __init__(
        self,
        db: Session,
        shop_id: str,
        actor_id: str | None = None,
        invalidator: CacheInvalidator | None = None,
    ):
        self.db = db
        self.shop_id = shop_id
        self.actor_id = actor_id
        self.invalidator = invalidator or CacheInvalidator()
        self.ledger = LedgerService(db, shop_id, actor_id, self.invalidator)

    def create_credit_pool(self, request: CreditPoolCreate) -> CreditPool:
        pool = CreditPool(
            shop_id=self.shop_id,
            period_start=request.period_start,
            period_end=request.period_end,
            total_credits=request.total_credits,
            owner_credits=request.owner_credits,
            staff_pool_credits=request.staff_pool_credits,
            owner_used=0,
            staff_pool_used=0,
            owner_overflow_used=0,
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(pool)
        self.db.flush()

        self.invalidator.mark(self.shop_id, "ai", "settings/billing")
        return pool

    def get_allocation(self, pool_id: int, user_id: str) -> CreditAllocation | None:
        return self.db.execute(
            select(CreditAllocation).where(
                CreditAllocation.pool_id == pool_id,
                CreditAllocation.user_id == user_id,
            )
        ).scalar_one_or_none()

    def allocate_staff_credits(self, request: StaffAllocationCreate) -> CreditAllocation:
        """
        Give a staff user a share of the staff pool.

        Re-allocating to the same user replaces their share. The
        shares of all staff users may not exceed the staff pool.
        """
        pool = self.ledger.lock_account(AccountKind.CREDIT_POOL, request.pool_id)
        allocation = self.get_allocation(pool.id, request.user_id)

        others = self.db.execute(
            select(func.coalesce(func.sum(CreditAllocation.allocated_credits), 0)).where(
                CreditAllocation.pool_id == pool.id,
                CreditAllocation.user_id != request.user_id,
            )
        ).scalar()
        if others + request.allocated_credits > pool.staff_pool_credits:
            raise InsufficientCreditsError(
                f"Staff allocations would exceed the staff pool "
                f"({pool.staff_pool_credits - others} credits unallocated)"
            )

        if allocation is None:
            allocation = CreditAllocation(
                shop_id=self.shop_id,
                pool_id=pool.id,
                user_id=request.user_id,
                allocated_credits=request.allocated_credits,
                used_credits=0,
            )
            self.db.add(allocation)
        else:
            if request.allocated_credits < allocation.used_credits:
                raise InsufficientCreditsError(
                    f"User has already used {allocation.used_credits} credits"
                )
            allocation.allocated_credits = request.allocated_credits
        self.db.flush()

        self.invalidator.mark(self.shop_id, "ai", "settings/team")
        return allocation

    def track_usage(self, request: TrackUsageRequest) -> CreditPool:
        """
        Charge credits for one AI operation.

        Rejected with insufficient_credits, and nothing written,
        when the caller cannot cover the whole charge.
        """
        pool = self.ledger.lock_account(AccountKind.CREDIT_POOL, request.pool_id)
        charged = request.credits_charged

        if request.is_owner:
            from_owner = min(charged, max(pool.owner_remaining, 0))
            overflow = charged - from_owner
            if overflow > pool.staff_pool_remaining:
                raise InsufficientCreditsError(
                    f"Insufficient credits ({pool.owner_remaining + pool.staff_pool_remaining} "
                    f"available, {charged} required)"
                )
            pool.owner_used = pool.owner_used + from_owner
            pool.owner_overflow_used = pool.owner_overflow_used + overflow
        else:
            allocation = self.get_allocation(pool.id, request.user_id)
            if allocation is None:
                raise NotFoundError(
                    "Credit allocation for user", request.user_id,
                    code="allocation_not_found",
                )
            available = min(allocation.available_credits, pool.staff_pool_remaining)
            if charged > available:
                raise InsufficientCreditsError(
                    f"Insufficient credits ({available} available, {charged} required)"
                )
            pool.staff_pool_used = pool.staff_pool_used + charged
            allocation.used_credits = allocation.used_credits + charged

        self.ledger.post(
            pool,
            EntryType.DEBIT,
            charged,
            transaction_type=TransactionType.TOKEN_USAGE,
            description=(
                f"{request.operation_type}: {request.tokens_used} tokens "
                f"by {request.user_id}"
            )[:255],
        )
        return pool

    def get_credits(self, pool_id: int, user_id: str, is_owner: bool) -> CreditsAvailable:
        pool = self.ledger.get_account(AccountKind.CREDIT_POOL, pool_id)
        if is_owner:
            available = pool.owner_remaining + pool.staff_pool_remaining
        else:
            allocation = self.get_allocation(pool.id, user_id)
            available = 0
            if allocation is not None:
                available = min(allocation.available_credits, pool.staff_pool_remaining)
        return CreditsAvailable(
            pool_id=pool.id,
            user_id=user_id,
            is_owner=is_owner,
            available=max(0, available),
        )

    def check_credits_available(
        self, pool_id: int, user_id: str, is_owner: bool, estimated_tokens: int
    ) -> CreditsAvailable:
        credits = self.get_credits(pool_id, user_id, is_owner)
        credits.required = credits_for_tokens(estimated_tokens)
        credits.sufficient = credits.available >= credits.required
        return credits
