"""
Pydantic schemas for AI assistant credits.
"""

from datetime import date

from pydantic import BaseModel, Field, model_validator


class CreditPoolCreate(BaseModel):
    period_start: date
    period_end: date
    total_credits: int = Field(gt=0)
    owner_credits: int = Field(ge=0)
    staff_pool_credits: int = Field(ge=0)

    @model_validator(mode="after")
    def shares_add_up(self):
        if self.owner_credits + self.staff_pool_credits != self.total_credits:
            raise ValueError(
                "Owner and staff credits must add up to the total credits"
            )
        if self.period_start > self.period_end:
            raise ValueError("Period start must be before or equal to period end")
        return self


class CreditPoolResponse(BaseModel):
    id: int
    shop_id: str
    period_start: date
    period_end: date
    total_credits: int
    owner_credits: int
    staff_pool_credits: int
    owner_used: int
    staff_pool_used: int
    owner_overflow_used: int
    owner_remaining: int
    staff_pool_remaining: int
    total_remaining: int
    version: int

    model_config = {"from_attributes": True}


class StaffAllocationCreate(BaseModel):
    pool_id: int
    user_id: str = Field(min_length=1, max_length=36)
    allocated_credits: int = Field(gt=0)


class CreditAllocationResponse(BaseModel):
    id: int
    pool_id: int
    user_id: str
    allocated_credits: int
    used_credits: int
    available_credits: int

    model_config = {"from_attributes": True}


class TrackUsageRequest(BaseModel):
    """One AI operation charged against the pool."""
    pool_id: int
    user_id: str = Field(min_length=1, max_length=36)
    is_owner: bool = False
    operation_type: str = Field(min_length=1, max_length=50)
    tokens_used: int = Field(ge=0)
    credits_charged: int = Field(gt=0)


class CreditsAvailable(BaseModel):
    pool_id: int
    user_id: str
    is_owner: bool
    available: int
    required: int = 0
    sufficient: bool = True
