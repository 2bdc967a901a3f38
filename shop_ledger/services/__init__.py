"""Business logic services."""

from shop_ledger.services.ledger_service import LedgerService
from shop_ledger.services.supplier_service import SupplierService
from shop_ledger.services.purchase_service import PurchaseService
from shop_ledger.services.workshop_service import WorkshopService
from shop_ledger.services.customer_service import CustomerService
from shop_ledger.services.budget_service import BudgetService
from shop_ledger.services.credit_service import CreditService

__all__ = [
    "LedgerService",
    "SupplierService",
    "PurchaseService",
    "WorkshopService",
    "CustomerService",
    "BudgetService",
    "CreditService",
]
