"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from shop_ledger.models.base import Base
from shop_ledger.models.enums import (
    AccountKind,
    EntryType,
    TransactionType,
    PaymentStatus,
    OrderStatus,
    AllocationStatus,
    BudgetType,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.ledger_entry import LedgerEntry
from shop_ledger.models.supplier import Supplier
from shop_ledger.models.purchase import Purchase
from shop_ledger.models.workshop import Workshop, WorkshopOrder
from shop_ledger.models.customer import Customer
from shop_ledger.models.budget import BudgetCategory, BudgetAllocation
from shop_ledger.models.credit_pool import CreditPool, CreditAllocation

__all__ = [
    "Base",
    "AccountKind",
    "EntryType",
    "TransactionType",
    "PaymentStatus",
    "OrderStatus",
    "AllocationStatus",
    "BudgetType",
    "AuditLog",
    "LedgerEntry",
    "Supplier",
    "Purchase",
    "Workshop",
    "WorkshopOrder",
    "Customer",
    "BudgetCategory",
    "BudgetAllocation",
    "CreditPool",
    "CreditAllocation",
]
