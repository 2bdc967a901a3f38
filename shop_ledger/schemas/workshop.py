"""
Pydantic schemas for workshops and workshop orders.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from shop_ledger.models.enums import OrderStatus, PaymentStatus
from shop_ledger.money import NonNegativeMoney, PositiveMoney


# --- Workshop Schemas ---

class WorkshopCreate(BaseModel):
    workshop_name: str = Field(min_length=1, max_length=255)
    is_internal: bool = False
    contact_person: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    specialization: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class WorkshopUpdate(BaseModel):
    workshop_name: str | None = Field(default=None, min_length=1, max_length=255)
    is_internal: bool | None = None
    contact_person: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    specialization: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None
    notes: str | None = None
    expected_version: int | None = None


class WorkshopResponse(BaseModel):
    id: int
    shop_id: str
    workshop_name: str
    is_internal: bool
    specialization: str | None
    is_active: bool
    current_balance: Decimal
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Order Schemas ---

class WorkshopOrderCreate(BaseModel):
    workshop_id: int
    order_type: str = Field(default="repair", min_length=1, max_length=50)
    description: str | None = None
    estimated_cost: NonNegativeMoney | None = None
    notes: str | None = None


class OrderStatusUpdate(BaseModel):
    """Request to move an order to a new status."""
    new_status: OrderStatus
    actual_cost: NonNegativeMoney | None = None
    notes: str | None = None
    expected_version: int | None = None


class WorkshopOrderResponse(BaseModel):
    id: int
    shop_id: str
    workshop_id: int
    order_number: str
    order_type: str
    status: OrderStatus
    estimated_cost: Decimal | None
    actual_cost: Decimal | None
    paid_amount: Decimal
    payment_status: PaymentStatus
    completed_date: datetime | None
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class WorkshopPaymentCreate(BaseModel):
    """A payment made to a workshop, optionally for one of its orders."""
    workshop_id: int
    order_id: int | None = None
    amount: PositiveMoney
    payment_type: str = Field(default="cash", min_length=1, max_length=50)
    notes: str | None = Field(default=None, max_length=255)
