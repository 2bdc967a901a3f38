"""
Budget service.

A budget allocation is a credit-normal ledger account: its
allocated_amount only moves through ledger entries, a credit
raises it and a debit lowers it. used_amount follows recorded
expenses, and remaining_amount is always
allocated + rollover - used.

Transfers lock both allocations in id order and post both legs
in the caller's transaction, so either both legs land or neither.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import (
    DuplicateError,
    HasOpenRecordsError,
    InactiveError,
    InsufficientBudgetError,
    NotFoundError,
    OverlappingAllocationError,
    ValidationFailedError,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.budget import BudgetAllocation, BudgetCategory
from shop_ledger.models.enums import (
    AccountKind, AllocationStatus, EntryType, TransactionType,
)
from shop_ledger.money import ZERO, validate_amount
from shop_ledger.schemas.budget import (
    AdjustAllocationRequest,
    AllocateBudgetRequest,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetSummary,
    ExpenseCreate,
    TransferRequest,
)
from shop_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

BUDGET_VIEWS = ("budgets", "expenses", "reports")


class BudgetService:

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

    # --- Categories ---

    def _check_unique_category(self, name: str, exclude_id: int | None = None) -> None:
        query = select(BudgetCategory.id).where(
            BudgetCategory.shop_id == self.shop_id,
            BudgetCategory.deleted_at.is_(None),
            func.lower(BudgetCategory.category_name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(BudgetCategory.id != exclude_id)
        if self.db.execute(query).first():
            raise DuplicateError("A budget category with this name already exists")

    def create_budget_category(self, request: BudgetCategoryCreate) -> BudgetCategory:
        name = request.category_name.strip()
        self._check_unique_category(name)

        category = BudgetCategory(
            shop_id=self.shop_id,
            category_name=name,
            budget_type=request.budget_type,
            description=request.description,
            default_amount=request.default_amount,
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(category)
        self.db.flush()

        self.invalidator.mark(self.shop_id, *BUDGET_VIEWS)
        return category

    def get_budget_category(self, category_id: int, code: str | None = None) -> BudgetCategory:
        category = self.db.execute(
            select(BudgetCategory).where(
                BudgetCategory.id == category_id,
                BudgetCategory.shop_id == self.shop_id,
                BudgetCategory.deleted_at.is_(None),
            )
        ).scalar_one_or_none()
        if category is None:
            raise NotFoundError("Budget category", category_id, code=code)
        return category

    def update_budget_category(
        self, category_id: int, request: BudgetCategoryUpdate
    ) -> BudgetCategory:
        """
        Edit a category. Existing allocations keep their amounts;
        default_amount only seeds new ones.
        """
        category = self.get_budget_category(category_id)

        changes = {
            field: value
            for field, value in request.model_dump(exclude_unset=True).items()
            if value is not None or field == "description"
        }
        if "category_name" in changes:
            changes["category_name"] = changes["category_name"].strip()
            self._check_unique_category(changes["category_name"], exclude_id=category.id)
        for field, value in changes.items():
            setattr(category, field, value)
        category.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *BUDGET_VIEWS)
        return category

    def delete_budget_category(self, category_id: int) -> BudgetCategory:
        """Soft delete a category that has no active allocations."""
        category = self.get_budget_category(category_id)

        active = self.db.execute(
            select(func.count(BudgetAllocation.id)).where(
                BudgetAllocation.budget_category_id == category.id,
                BudgetAllocation.deleted_at.is_(None),
                BudgetAllocation.status == AllocationStatus.ACTIVE,
            )
        ).scalar()
        if active:
            raise HasOpenRecordsError(
                "Cannot delete category with active budget allocations",
                code="has_active_allocations",
            )

        category.deleted_at = datetime.utcnow()
        category.is_active = False
        category.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *BUDGET_VIEWS)
        return category

    # --- Allocations ---

    def allocate_budget(self, request: AllocateBudgetRequest) -> BudgetAllocation:
        """
        Open an allocation for a category and period.

        The allocation is created empty and its amount is posted
        as an "allocation" credit, so the ledger alone explains
        every allocated_amount.
        """
        category = self.get_budget_category(
            request.budget_category_id, code="category_not_found"
        )
        if not category.is_active:
            raise InactiveError(
                "Budget category is not active", code="category_inactive"
            )

        overlap = self.db.execute(
            select(BudgetAllocation.id).where(
                BudgetAllocation.shop_id == self.shop_id,
                BudgetAllocation.budget_category_id == category.id,
                BudgetAllocation.deleted_at.is_(None),
                BudgetAllocation.status != AllocationStatus.CANCELLED,
                BudgetAllocation.user_id.is_(None)
                if request.user_id is None
                else BudgetAllocation.user_id == request.user_id,
                BudgetAllocation.period_start <= request.period_end,
                BudgetAllocation.period_end >= request.period_start,
            )
        ).first()
        if overlap:
            raise OverlappingAllocationError(
                "An allocation already exists for this category and period"
            )

        allocation = BudgetAllocation(
            shop_id=self.shop_id,
            budget_category_id=category.id,
            user_id=request.user_id,
            period_start=request.period_start,
            period_end=request.period_end,
            allocated_amount=ZERO,
            used_amount=ZERO,
            rollover_amount=ZERO,
            remaining_amount=ZERO,
            rollover_enabled=request.rollover_enabled,
            status=AllocationStatus.ACTIVE,
            notes=request.notes,
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(allocation)
        self.db.flush()

        if request.allocated_amount > 0:
            self.ledger.post(
                allocation,
                EntryType.CREDIT,
                request.allocated_amount,
                transaction_type=TransactionType.ALLOCATION,
                description=f"Initial allocation: {category.category_name}"[:255],
            )

        self.invalidator.mark(self.shop_id, *BUDGET_VIEWS)
        return allocation

    def _lock_active_allocation(self, allocation_id: int, label: str = "Active budget allocation"):
        allocation = self.ledger.lock_account(AccountKind.BUDGET_ALLOCATION, allocation_id)
        if allocation.status != AllocationStatus.ACTIVE:
            raise NotFoundError(label, allocation_id)
        return allocation

    def adjust_allocation_amount(self, request: AdjustAllocationRequest) -> BudgetAllocation:
        """
        Raise or lower an allocation by a signed delta.

        Rejected without any write when the allocation would go
        below zero.
        """
        allocation = self._lock_active_allocation(request.allocation_id)

        new_allocated = allocation.allocated_amount + request.delta
        if new_allocated < 0:
            raise ValidationFailedError(
                "Adjustment would result in negative budget allocation"
            )

        increase = request.delta > 0
        self.ledger.post(
            allocation,
            EntryType.CREDIT if increase else EntryType.DEBIT,
            abs(request.delta),
            transaction_type=TransactionType.ADJUSTMENT,
            description=f"{'Increase' if increase else 'Decrease'}: {request.reason}"[:255],
        )
        return allocation

    def transfer_between_allocations(
        self, request: TransferRequest
    ) -> tuple[BudgetAllocation, BudgetAllocation]:
        """
        Move budget from one allocation to another.

        The source must have at least the amount remaining.
        Returns (source, destination).
        """
        locked = self.ledger.lock_accounts(
            AccountKind.BUDGET_ALLOCATION,
            [request.from_allocation_id, request.to_allocation_id],
        )
        source = locked[request.from_allocation_id]
        destination = locked[request.to_allocation_id]

        if source.status != AllocationStatus.ACTIVE:
            raise NotFoundError("Source allocation", source.id)
        if destination.status != AllocationStatus.ACTIVE:
            raise NotFoundError("Destination allocation", destination.id)

        if source.remaining_amount < request.amount:
            raise InsufficientBudgetError(
                f"Insufficient budget. Source allocation has only "
                f"{source.remaining_amount:.2f} remaining"
            )
        if source.allocated_amount < request.amount:
            raise InsufficientBudgetError(
                f"Insufficient budget. Source allocation has only "
                f"{source.allocated_amount:.2f} allocated"
            )

        self.ledger.post(
            source,
            EntryType.DEBIT,
            request.amount,
            transaction_type=TransactionType.TRANSFER_OUT,
            description=f"Transfer out: {request.reason}"[:255],
            reference_type="budget_allocation",
            reference_id=destination.id,
        )
        self.ledger.post(
            destination,
            EntryType.CREDIT,
            request.amount,
            transaction_type=TransactionType.TRANSFER_IN,
            description=f"Transfer in: {request.reason}"[:255],
            reference_type="budget_allocation",
            reference_id=source.id,
        )

        self.db.add(AuditLog(
            shop_id=self.shop_id,
            actor_id=self.actor_id,
            event_type="budget.transfer",
            details=json.dumps({
                "from_allocation_id": source.id,
                "to_allocation_id": destination.id,
                "amount": str(request.amount),
                "reason": request.reason,
            }),
        ))
        self.db.flush()

        logger.info(
            "Transferred %s from allocation %s to %s",
            request.amount, source.id, destination.id,
        )
        return source, destination

    def record_expense(self, request: ExpenseCreate) -> BudgetAllocation:
        """
        Count an expense against an allocation.

        Expenses may overdraw an allocation; the summary reports
        such allocations as over budget.
        """
        amount = validate_amount(request.amount)
        allocation = self._lock_active_allocation(request.allocation_id)

        allocation.used_amount = allocation.used_amount + amount
        allocation.refresh_remaining()
        allocation.updated_by = self.actor_id
        self.db.flush()

        if allocation.remaining_amount < 0:
            logger.warning(
                "Allocation %s is over budget by %s",
                allocation.id, -allocation.remaining_amount,
            )
        self.invalidator.mark(self.shop_id, *BUDGET_VIEWS)
        return allocation

    def get_budget_summary(
        self,
        period_start: date,
        period_end: date,
        category_id: int | None = None,
    ) -> BudgetSummary:
        """Totals over every non-cancelled allocation overlapping the period."""
        if period_start > period_end:
            raise ValidationFailedError(
                "Period start must be before or equal to period end"
            )

        query = select(BudgetAllocation).where(
            BudgetAllocation.shop_id == self.shop_id,
            BudgetAllocation.deleted_at.is_(None),
            BudgetAllocation.status != AllocationStatus.CANCELLED,
            BudgetAllocation.period_start <= period_end,
            BudgetAllocation.period_end >= period_start,
        )
        if category_id is not None:
            query = query.where(BudgetAllocation.budget_category_id == category_id)
        allocations = self.db.execute(query).scalars().all()

        total_allocated = sum((a.allocated_amount for a in allocations), ZERO)
        total_used = sum((a.used_amount for a in allocations), ZERO)
        total_remaining = sum((a.remaining_amount for a in allocations), ZERO)
        over = sum(1 for a in allocations if a.remaining_amount < 0)

        utilization = ZERO
        if total_allocated > 0:
            utilization = (total_used / total_allocated * 100).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )

        return BudgetSummary(
            total_allocated=total_allocated,
            total_used=total_used,
            total_remaining=total_remaining,
            overall_variance=total_allocated - total_used,
            category_count=len(allocations),
            over_budget_count=over,
            under_budget_count=len(allocations) - over,
            utilization_percentage=utilization,
        )
