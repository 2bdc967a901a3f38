"""
Pydantic schemas for budget categories and allocations.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from shop_ledger.models.enums import AllocationStatus, BudgetType
from shop_ledger.money import CURRENCY_PLACES, NonNegativeMoney, PositiveMoney


# --- Category Schemas ---

class BudgetCategoryCreate(BaseModel):
    category_name: str = Field(min_length=1, max_length=255)
    budget_type: BudgetType = BudgetType.OTHER
    description: str | None = None
    default_amount: NonNegativeMoney = Decimal("0")


class BudgetCategoryUpdate(BaseModel):
    category_name: str | None = Field(default=None, min_length=1, max_length=255)
    budget_type: BudgetType | None = None
    description: str | None = None
    default_amount: NonNegativeMoney | None = None
    is_active: bool | None = None


class BudgetCategoryResponse(BaseModel):
    id: int
    shop_id: str
    category_name: str
    budget_type: BudgetType
    default_amount: Decimal
    is_active: bool

    model_config = {"from_attributes": True}


# --- Allocation Schemas ---

class AllocateBudgetRequest(BaseModel):
    budget_category_id: int
    period_start: date
    period_end: date
    allocated_amount: NonNegativeMoney
    user_id: str | None = None
    rollover_enabled: bool = False
    notes: str | None = None

    @model_validator(mode="after")
    def period_in_order(self):
        if self.period_start > self.period_end:
            raise ValueError("Period start must be before or equal to period end")
        return self


class AdjustAllocationRequest(BaseModel):
    """Signed change to an allocation. Zero is not a change."""
    allocation_id: int
    delta: Decimal = Field(max_digits=17, decimal_places=CURRENCY_PLACES)
    reason: str = Field(min_length=1, max_length=200)

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("Adjustment amount cannot be zero")
        return v

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Adjustment reason is required")
        return v


class TransferRequest(BaseModel):
    from_allocation_id: int
    to_allocation_id: int
    amount: PositiveMoney
    reason: str = Field(min_length=1, max_length=200)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Transfer reason is required")
        return v

    @model_validator(mode="after")
    def distinct_allocations(self):
        if self.from_allocation_id == self.to_allocation_id:
            raise ValueError("Cannot transfer to the same allocation")
        return self


class ExpenseCreate(BaseModel):
    """An expense drawn against an allocation."""
    allocation_id: int
    amount: PositiveMoney
    description: str | None = Field(default=None, max_length=255)


class BudgetAllocationResponse(BaseModel):
    id: int
    shop_id: str
    budget_category_id: int
    user_id: str | None
    period_start: date
    period_end: date
    allocated_amount: Decimal
    used_amount: Decimal
    rollover_amount: Decimal
    remaining_amount: Decimal
    status: AllocationStatus
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class TransferResponse(BaseModel):
    from_allocation: BudgetAllocationResponse
    to_allocation: BudgetAllocationResponse


class BudgetSummary(BaseModel):
    total_allocated: Decimal
    total_used: Decimal
    total_remaining: Decimal
    overall_variance: Decimal
    category_count: int
    over_budget_count: int
    under_budget_count: int
    utilization_percentage: Decimal
