"""
Pydantic schemas for suppliers and purchases.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from shop_ledger.models.enums import PaymentStatus
from shop_ledger.money import NonNegativeMoney, PositiveMoney


# --- Supplier Schemas ---

class SupplierCreate(BaseModel):
    company_name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = None

    @field_validator("company_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Company name is required")
        return v

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email address")
        return v


class SupplierUpdate(BaseModel):
    """
    Partial supplier update.

    expected_version, when given, must equal the supplier's
    current version or the update is rejected.
    """
    company_name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    expected_version: int | None = None


class SupplierResponse(BaseModel):
    id: int
    shop_id: str
    company_name: str
    contact_person: str | None
    email: str | None
    phone: str | None
    current_balance: Decimal
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SupplierPaymentCreate(BaseModel):
    """A payment made to a supplier, optionally against one purchase."""
    supplier_id: int
    amount: PositiveMoney
    payment_type: str = Field(default="cash", min_length=1, max_length=50)
    purchase_id: int | None = None
    notes: str | None = Field(default=None, max_length=255)


# --- Purchase Schemas ---

class PurchaseCreate(BaseModel):
    supplier_id: int
    purchase_date: date
    invoice_number: str | None = Field(default=None, max_length=100)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    total_amount: PositiveMoney
    paid_amount: NonNegativeMoney = Decimal("0")
    notes: str | None = None

    @model_validator(mode="after")
    def paid_within_total(self):
        if self.paid_amount > self.total_amount:
            raise ValueError("Paid amount cannot exceed total amount")
        return self


class PurchaseUpdate(BaseModel):
    """
    Descriptive purchase fields. Amounts only change through
    payments and cancellation.
    """
    invoice_number: str | None = Field(default=None, max_length=100)
    purchase_date: date | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = None
    expected_version: int | None = None


class PurchasePaymentCreate(BaseModel):
    purchase_id: int
    amount: PositiveMoney
    payment_type: str = Field(default="cash", min_length=1, max_length=50)
    notes: str | None = Field(default=None, max_length=255)
    expected_version: int | None = None


class PurchaseCancel(BaseModel):
    reason: str = Field(min_length=1, max_length=255)
    expected_version: int | None = None


class PurchaseResponse(BaseModel):
    id: int
    shop_id: str
    supplier_id: int
    purchase_number: str
    invoice_number: str | None
    purchase_date: date
    currency: str
    total_amount: Decimal
    paid_amount: Decimal
    payment_status: PaymentStatus
    notes: str | None
    version: int
    deleted_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
