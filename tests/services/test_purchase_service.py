"""
Tests for the PurchaseService.

Tests cover:
- Purchase numbering
- Debit on creation, payment at creation
- Payments against a purchase and the overpayment rule
- Cancellation crediting back the unpaid remainder
"""

import json
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from shop_ledger.actions import run_action
from shop_ledger.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    ValidationFailedError,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.enums import AccountKind, PaymentStatus, TransactionType
from shop_ledger.models.supplier import Supplier
from shop_ledger.schemas.supplier import (
    PurchaseCancel,
    PurchaseCreate,
    PurchasePaymentCreate,
    PurchaseUpdate,
)
from shop_ledger.services.purchase_service import PurchaseService

SHOP_ID = "shop-1"
ACTOR_ID = "user-1"
MAY_DAY = date(2024, 5, 1)


@pytest.fixture
def supplier(db_session):
    supplier = Supplier(shop_id=SHOP_ID, company_name="Silver Co", current_balance=Decimal("0"))
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture
def service(db_session):
    return PurchaseService(db_session, SHOP_ID, ACTOR_ID)


def buy(service, supplier, total, paid=0, on_date=MAY_DAY):
    purchase = service.create_purchase(PurchaseCreate(
        supplier_id=supplier.id,
        purchase_date=on_date,
        total_amount=Decimal(str(total)),
        paid_amount=Decimal(str(paid)),
    ))
    service.db.commit()
    return purchase


class TestCreatePurchase:

    def test_numbers_are_sequential_per_day(self, service, supplier):
        first = buy(service, supplier, 10)
        second = buy(service, supplier, 10)
        other_day = buy(service, supplier, 10, on_date=date(2024, 5, 2))

        assert first.purchase_number == "PO-20240501-0001"
        assert second.purchase_number == "PO-20240501-0002"
        assert other_day.purchase_number == "PO-20240502-0001"

    def test_debits_supplier(self, service, supplier):
        purchase = buy(service, supplier, 500)

        assert supplier.current_balance == Decimal("500")
        assert purchase.payment_status == PaymentStatus.UNPAID
        entries = service.ledger.get_entries(AccountKind.SUPPLIER, supplier.id)
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionType.PURCHASE
        assert entries[0].reference_type == "purchase"
        assert entries[0].reference_id == purchase.id

    def test_paid_at_creation_is_posted(self, service, supplier):
        purchase = buy(service, supplier, 500, paid=200)

        assert purchase.paid_amount == Decimal("200")
        assert purchase.payment_status == PaymentStatus.PARTIAL
        assert supplier.current_balance == Decimal("300")
        entries = service.ledger.get_entries(AccountKind.SUPPLIER, supplier.id)
        assert [e.balance_after for e in entries] == [Decimal("500"), Decimal("300")]

    def test_paid_above_total_rejected(self):
        with pytest.raises(ValidationError, match="cannot exceed total"):
            PurchaseCreate(
                supplier_id=1,
                purchase_date=MAY_DAY,
                total_amount=Decimal("10"),
                paid_amount=Decimal("11"),
            )

    def test_unknown_supplier(self, service):
        with pytest.raises(NotFoundError):
            service.create_purchase(PurchaseCreate(
                supplier_id=999, purchase_date=MAY_DAY, total_amount=Decimal("10"),
            ))


class TestPurchasePayments:

    def test_partial_then_full(self, service, supplier):
        purchase = buy(service, supplier, 500)

        service.record_purchase_payment(PurchasePaymentCreate(
            purchase_id=purchase.id, amount=Decimal("100"),
        ))
        service.db.commit()
        assert purchase.payment_status == PaymentStatus.PARTIAL

        service.record_purchase_payment(PurchasePaymentCreate(
            purchase_id=purchase.id, amount=Decimal("400"),
        ))
        service.db.commit()
        assert purchase.payment_status == PaymentStatus.PAID
        assert supplier.current_balance == Decimal("0")

    def test_overpayment_rejected(self, service, supplier):
        purchase = buy(service, supplier, 500, paid=450)

        with pytest.raises(ValidationFailedError, match="outstanding balance of 50.00"):
            service.record_purchase_payment(PurchasePaymentCreate(
                purchase_id=purchase.id, amount=Decimal("60"),
            ))

    def test_stale_version_rejected(self, service, supplier):
        purchase = buy(service, supplier, 500)
        stale_version = purchase.version
        service.record_purchase_payment(PurchasePaymentCreate(
            purchase_id=purchase.id, amount=Decimal("100"),
        ))
        service.db.commit()

        with pytest.raises(ConcurrentModificationError):
            service.record_purchase_payment(PurchasePaymentCreate(
                purchase_id=purchase.id,
                amount=Decimal("100"),
                expected_version=stale_version,
            ))

    def test_stale_payment_writes_nothing_but_the_audit_record(
        self, db_session, service, supplier
    ):
        purchase = buy(service, supplier, 500)
        service.record_purchase_payment(PurchasePaymentCreate(
            purchase_id=purchase.id, amount=Decimal("100"),
        ))
        service.db.commit()

        result = run_action(db_session, lambda: service.record_purchase_payment(
            PurchasePaymentCreate(
                purchase_id=purchase.id, amount=Decimal("100"), expected_version=1,
            )
        ))

        assert result.code == "concurrent_modification"
        db_session.refresh(purchase)
        assert purchase.paid_amount == Decimal("100")
        assert len(service.ledger.get_entries(AccountKind.SUPPLIER, supplier.id)) == 2
        audit = db_session.execute(
            select(AuditLog).where(AuditLog.event_type == "purchase.concurrent_modification")
        ).scalar_one()
        assert json.loads(audit.details)["id"] == purchase.id
        assert json.loads(audit.details)["expected_version"] == 1


class TestUpdatePurchase:

    def test_descriptive_fields_change_under_current_version(self, service, supplier):
        purchase = buy(service, supplier, 500)

        service.update_purchase(purchase.id, PurchaseUpdate(
            invoice_number="INV-77", notes="Checked", expected_version=purchase.version,
        ))
        service.db.commit()

        assert purchase.invoice_number == "INV-77"
        assert purchase.notes == "Checked"
        assert purchase.version == 2
        assert purchase.total_amount == Decimal("500")
        assert supplier.current_balance == Decimal("500")

    def test_stale_version_rejected(self, service, supplier):
        purchase = buy(service, supplier, 500)
        service.update_purchase(purchase.id, PurchaseUpdate(notes="First"))
        service.db.commit()

        with pytest.raises(ConcurrentModificationError, match="Purchase was modified"):
            service.update_purchase(
                purchase.id, PurchaseUpdate(notes="Second", expected_version=1)
            )

    def test_amounts_are_not_editable(self):
        assert "total_amount" not in PurchaseUpdate.model_fields
        assert "paid_amount" not in PurchaseUpdate.model_fields

    def test_cancelled_purchase_not_found(self, service, supplier):
        purchase = buy(service, supplier, 500)
        service.cancel_purchase(purchase.id, PurchaseCancel(reason="Duplicate"))
        service.db.commit()

        with pytest.raises(NotFoundError):
            service.update_purchase(purchase.id, PurchaseUpdate(notes="Late"))


class TestCancelPurchase:

    def test_cancel_credits_unpaid_remainder(self, db_session, service, supplier):
        purchase = buy(service, supplier, 500, paid=200)

        service.cancel_purchase(purchase.id, PurchaseCancel(reason="Wrong stones"))
        db_session.commit()

        assert purchase.is_deleted
        assert purchase.notes.endswith("Cancelled: Wrong stones")
        assert supplier.current_balance == Decimal("0")

        last = service.ledger.get_entries(AccountKind.SUPPLIER, supplier.id)[-1]
        assert last.transaction_type == TransactionType.PURCHASE_CANCELLATION
        assert last.credit_amount == Decimal("300")

        audit = db_session.execute(
            select(AuditLog).where(AuditLog.event_type == "purchase.cancelled")
        ).scalar_one()
        assert '"credited": "300' in audit.details

    def test_cancel_paid_purchase_posts_nothing(self, service, supplier):
        purchase = buy(service, supplier, 100, paid=100)

        service.cancel_purchase(purchase.id, PurchaseCancel(reason="Returned"))
        service.db.commit()

        entries = service.ledger.get_entries(AccountKind.SUPPLIER, supplier.id)
        assert len(entries) == 2

    def test_cancelled_purchase_cannot_be_paid(self, service, supplier):
        purchase = buy(service, supplier, 100)
        service.cancel_purchase(purchase.id, PurchaseCancel(reason="Duplicate"))
        service.db.commit()

        with pytest.raises(NotFoundError):
            service.record_purchase_payment(PurchasePaymentCreate(
                purchase_id=purchase.id, amount=Decimal("10"),
            ))
