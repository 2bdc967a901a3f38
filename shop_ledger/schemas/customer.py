"""
Pydantic schemas for customers.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from shop_ledger.money import PositiveMoney


class CustomerCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)


class CustomerUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    expected_version: int | None = None


class CustomerResponse(BaseModel):
    id: int
    shop_id: str
    full_name: str
    phone: str | None
    email: str | None
    current_balance: Decimal
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CustomerChargeCreate(BaseModel):
    """A sale on credit, or a payment received from the customer."""
    customer_id: int
    amount: PositiveMoney
    sale_id: int | None = None
    description: str | None = Field(default=None, max_length=255)
