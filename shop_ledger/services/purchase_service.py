"""
Purchase service.

A purchase debits its supplier by the total amount. Payments
against it credit the supplier and move paid_amount and
payment_status. Cancelling a purchase credits back whatever was
still unpaid, so the supplier's balance only ever changes through
new ledger entries.

Lock order is purchase first, then supplier.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import (
    NotFoundError,
    ValidationFailedError,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.models.ledger_entry import LedgerEntry
from shop_ledger.models.purchase import Purchase, determine_payment_status
from shop_ledger.schemas.supplier import (
    PurchaseCancel,
    PurchaseCreate,
    PurchasePaymentCreate,
    PurchaseUpdate,
)
from shop_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

PURCHASE_VIEWS = ("purchases", "suppliers", "inventory")


class PurchaseService:

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

    def generate_purchase_number(self, on_date: date | None = None) -> str:
        """Next number of the form PO-YYYYMMDD-NNNN for the given day."""
        on_date = on_date or date.today()
        prefix = f"PO-{on_date:%Y%m%d}-"
        numbers = self.db.execute(
            select(Purchase.purchase_number).where(
                Purchase.shop_id == self.shop_id,
                Purchase.purchase_number.like(f"{prefix}%"),
            )
        ).scalars().all()

        last = 0
        for number in numbers:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                last = max(last, int(suffix))
        return f"{prefix}{last + 1:04d}"

    def get_purchase(self, purchase_id: int, lock: bool = False) -> Purchase:
        query = select(Purchase).where(
            Purchase.id == purchase_id,
            Purchase.shop_id == self.shop_id,
            Purchase.deleted_at.is_(None),
        )
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        purchase = self.db.execute(query).scalar_one_or_none()
        if purchase is None:
            raise NotFoundError("Purchase", purchase_id)
        return purchase

    def create_purchase(self, request: PurchaseCreate) -> Purchase:
        """
        Create a purchase and debit the supplier by its total.

        An amount already paid at creation is posted as a payment
        in the same transaction.
        """
        supplier = self.ledger.lock_account(AccountKind.SUPPLIER, request.supplier_id)

        purchase = Purchase(
            shop_id=self.shop_id,
            supplier_id=supplier.id,
            purchase_number=self.generate_purchase_number(request.purchase_date),
            invoice_number=request.invoice_number,
            purchase_date=request.purchase_date,
            currency=request.currency,
            total_amount=request.total_amount,
            paid_amount=Decimal("0"),
            payment_status=determine_payment_status(Decimal("0"), request.total_amount),
            notes=request.notes,
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(purchase)
        self.db.flush()

        self.ledger.post(
            supplier,
            EntryType.DEBIT,
            request.total_amount,
            transaction_type=TransactionType.PURCHASE,
            description=f"Purchase {purchase.purchase_number}",
            reference_type="purchase",
            reference_id=purchase.id,
        )

        if request.paid_amount > 0:
            self.apply_payment(purchase, request.paid_amount, "cash", None)

        logger.info(
            "Created purchase %s for supplier %s: %s",
            purchase.purchase_number, supplier.id, request.total_amount,
        )
        self.invalidator.mark(self.shop_id, *PURCHASE_VIEWS)
        return purchase

    def apply_payment(
        self,
        purchase: Purchase,
        amount: Decimal,
        payment_type: str,
        notes: str | None,
    ) -> LedgerEntry:
        """Credit the supplier and move the purchase's paid amount."""
        outstanding = purchase.total_amount - purchase.paid_amount
        if amount > outstanding:
            raise ValidationFailedError(
                f"Payment amount exceeds outstanding balance of {outstanding:.2f}"
            )

        supplier = self.ledger.lock_account(
            AccountKind.SUPPLIER, purchase.supplier_id, include_deleted=True
        )
        description = f"Payment for {purchase.purchase_number} ({payment_type})"
        if notes:
            description = f"{description}: {notes}"
        entry = self.ledger.post(
            supplier,
            EntryType.CREDIT,
            amount,
            transaction_type=TransactionType.PAYMENT,
            description=description[:255],
            reference_type="purchase",
            reference_id=purchase.id,
        )

        purchase.paid_amount = purchase.paid_amount + amount
        purchase.payment_status = determine_payment_status(
            purchase.paid_amount, purchase.total_amount
        )
        purchase.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *PURCHASE_VIEWS)
        return entry

    def update_purchase(self, purchase_id: int, request: PurchaseUpdate) -> Purchase:
        """Edit descriptive fields under the caller's expected version."""
        purchase = self.get_purchase(purchase_id, lock=True)
        self.ledger.check_version(purchase, request.expected_version, "Purchase")

        changes = request.model_dump(exclude_unset=True, exclude={"expected_version"})
        for field, value in changes.items():
            if value is None and field in ("purchase_date", "currency"):
                continue
            setattr(purchase, field, value)
        purchase.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *PURCHASE_VIEWS)
        return purchase

    def record_purchase_payment(self, request: PurchasePaymentCreate) -> Purchase:
        purchase = self.get_purchase(request.purchase_id, lock=True)
        self.ledger.check_version(purchase, request.expected_version, "Purchase")
        self.apply_payment(purchase, request.amount, request.payment_type, request.notes)
        return purchase

    def cancel_purchase(self, purchase_id: int, request: PurchaseCancel) -> Purchase:
        """
        Soft delete a purchase.

        The unpaid remainder is credited back to the supplier with
        a purchase_cancellation entry. Amounts already paid stay
        on the ledger as they were.
        """
        purchase = self.get_purchase(purchase_id, lock=True)
        self.ledger.check_version(purchase, request.expected_version, "Purchase")

        unpaid = purchase.total_amount - purchase.paid_amount
        if unpaid > 0:
            supplier = self.ledger.lock_account(
                AccountKind.SUPPLIER, purchase.supplier_id, include_deleted=True
            )
            self.ledger.post(
                supplier,
                EntryType.CREDIT,
                unpaid,
                transaction_type=TransactionType.PURCHASE_CANCELLATION,
                description=f"Cancelled {purchase.purchase_number}: {request.reason}"[:255],
                reference_type="purchase",
                reference_id=purchase.id,
            )

        note = f"Cancelled: {request.reason}"
        purchase.notes = f"{purchase.notes}\n{note}" if purchase.notes else note
        purchase.deleted_at = datetime.utcnow()
        purchase.updated_by = self.actor_id
        self.db.add(AuditLog(
            shop_id=self.shop_id,
            actor_id=self.actor_id,
            event_type="purchase.cancelled",
            details=json.dumps({
                "purchase_id": purchase.id,
                "purchase_number": purchase.purchase_number,
                "credited": str(unpaid),
                "reason": request.reason,
            }),
        ))
        self.db.flush()

        logger.info("Cancelled purchase %s", purchase.purchase_number)
        self.invalidator.mark(self.shop_id, *PURCHASE_VIEWS)
        return purchase
