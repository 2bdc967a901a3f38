"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountKind(str, enum.Enum):
    """Entities that carry a cached running balance."""
    SUPPLIER = "SUPPLIER"
    WORKSHOP = "WORKSHOP"
    CUSTOMER = "CUSTOMER"
    BUDGET_ALLOCATION = "BUDGET_ALLOCATION"
    CREDIT_POOL = "CREDIT_POOL"


class EntryType(str, enum.Enum):
    """Direction of a ledger entry."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class TransactionType(str, enum.Enum):
    """Business event recorded by a ledger entry."""
    PURCHASE = "purchase"
    PAYMENT = "payment"
    PURCHASE_CANCELLATION = "purchase_cancellation"
    ORDER_CHARGE = "order_charge"
    ORDER_PAYMENT = "order_payment"
    SALE = "sale"
    ALLOCATION = "allocation"
    ADJUSTMENT = "adjustment"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    TOKEN_USAGE = "token_usage"
    MANUAL = "manual"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AllocationStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class BudgetType(str, enum.Enum):
    OPERATIONAL = "operational"
    CAPITAL = "capital"
    MARKETING = "marketing"
    SALARY = "salary"
    INVENTORY = "inventory"
    MAINTENANCE = "maintenance"
    OTHER = "other"
