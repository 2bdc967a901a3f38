"""
Supplier service.

Handles the supplier lifecycle and payments to suppliers.
Balance changes go through LedgerService; this service never
writes current_balance itself.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import (
    DuplicateError,
    HasBalanceError,
    NotFoundError,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.models.ledger_entry import LedgerEntry
from shop_ledger.models.supplier import Supplier
from shop_ledger.schemas.supplier import (
    SupplierCreate,
    SupplierUpdate,
    SupplierPaymentCreate,
)
from shop_ledger.services.ledger_service import LedgerService
from shop_ledger.services.purchase_service import PurchaseService

logger = logging.getLogger(__name__)

SUPPLIER_VIEWS = ("suppliers", "purchases")


class SupplierService:

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

    def _check_unique(self, company_name: str | None, email: str | None, exclude_id=None):
        if company_name:
            query = select(Supplier.id).where(
                Supplier.shop_id == self.shop_id,
                Supplier.deleted_at.is_(None),
                func.lower(Supplier.company_name) == company_name.lower(),
            )
            if exclude_id is not None:
                query = query.where(Supplier.id != exclude_id)
            if self.db.execute(query).first():
                raise DuplicateError(
                    f"A supplier named '{company_name}' already exists",
                    code="duplicate_company_name",
                )
        if email:
            query = select(Supplier.id).where(
                Supplier.shop_id == self.shop_id,
                Supplier.deleted_at.is_(None),
                func.lower(Supplier.email) == email.lower(),
            )
            if exclude_id is not None:
                query = query.where(Supplier.id != exclude_id)
            if self.db.execute(query).first():
                raise DuplicateError(
                    f"A supplier with email '{email}' already exists",
                    code="duplicate_email",
                )

    def create_supplier(self, request: SupplierCreate) -> Supplier:
        """Create a supplier with a zero balance."""
        self._check_unique(request.company_name, request.email)

        supplier = Supplier(
            shop_id=self.shop_id,
            company_name=request.company_name,
            contact_person=request.contact_person,
            email=request.email,
            phone=request.phone,
            notes=request.notes,
            current_balance=Decimal("0"),
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(supplier)
        self.db.flush()

        logger.info("Created supplier %s (%s)", supplier.id, supplier.company_name)
        self.invalidator.mark(self.shop_id, *SUPPLIER_VIEWS)
        return supplier

    def get_supplier(self, supplier_id: int) -> Supplier:
        return self.ledger.get_account(AccountKind.SUPPLIER, supplier_id)

    def update_supplier(self, supplier_id: int, request: SupplierUpdate) -> Supplier:
        """
        Update profile fields.

        When expected_version is supplied the update only goes
        through if nobody changed the supplier in between.
        """
        supplier = self.ledger.lock_account(AccountKind.SUPPLIER, supplier_id)

        self.ledger.check_version(supplier, request.expected_version, "Supplier")

        changes = request.model_dump(exclude_unset=True, exclude={"expected_version"})
        self._check_unique(
            changes.get("company_name"), changes.get("email"), exclude_id=supplier.id
        )
        for field, value in changes.items():
            setattr(supplier, field, value)
        supplier.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *SUPPLIER_VIEWS)
        return supplier

    def delete_supplier(self, supplier_id: int) -> Supplier:
        """Soft delete. Only allowed once nothing is owed either way."""
        supplier = self.ledger.lock_account(AccountKind.SUPPLIER, supplier_id)

        if supplier.current_balance != 0:
            raise HasBalanceError(
                f"Cannot delete supplier with outstanding balance "
                f"{supplier.current_balance:.2f}"
            )

        supplier.deleted_at = datetime.utcnow()
        supplier.updated_by = self.actor_id
        self.db.add(AuditLog(
            shop_id=self.shop_id,
            actor_id=self.actor_id,
            event_type="supplier.deleted",
            details=json.dumps({"supplier_id": supplier.id}),
        ))
        self.db.flush()

        self.invalidator.mark(self.shop_id, *SUPPLIER_VIEWS)
        return supplier

    def get_supplier_balance(self, supplier_id: int) -> dict:
        """Balance with totals purchased and paid, from the ledger."""
        supplier = self.ledger.get_account(
            AccountKind.SUPPLIER, supplier_id, include_deleted=True
        )
        total_debits, total_credits, count = self.db.execute(
            select(
                func.coalesce(func.sum(LedgerEntry.debit_amount), 0),
                func.coalesce(func.sum(LedgerEntry.credit_amount), 0),
                func.count(LedgerEntry.id),
            ).where(
                LedgerEntry.account_kind == AccountKind.SUPPLIER,
                LedgerEntry.account_id == supplier.id,
            )
        ).one()

        return {
            "supplier_id": supplier.id,
            "current_balance": Decimal(str(supplier.current_balance)),
            "total_purchases": Decimal(str(total_debits)),
            "total_payments": Decimal(str(total_credits)),
            "transaction_count": count,
        }

    def record_supplier_payment(self, request: SupplierPaymentCreate) -> LedgerEntry:
        """
        Record a payment to a supplier.

        With a purchase_id the payment is applied to that purchase,
        which must belong to the same supplier.
        """
        if request.purchase_id is not None:
            purchases = PurchaseService(
                self.db, self.shop_id, self.actor_id, self.invalidator
            )
            purchase = purchases.get_purchase(request.purchase_id, lock=True)
            if purchase.supplier_id != request.supplier_id:
                raise NotFoundError(
                    "Purchase", request.purchase_id, code="purchase_not_found"
                )
            return purchases.apply_payment(
                purchase, request.amount, request.payment_type, request.notes
            )

        supplier = self.ledger.lock_account(AccountKind.SUPPLIER, request.supplier_id)
        description = f"Payment ({request.payment_type})"
        if request.notes:
            description = f"{description}: {request.notes}"
        return self.ledger.post(
            supplier,
            EntryType.CREDIT,
            request.amount,
            transaction_type=TransactionType.PAYMENT,
            description=description[:255],
        )
