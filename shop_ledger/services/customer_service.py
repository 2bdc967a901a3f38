"""
Customer service.

A customer's balance is what they owe the shop. Sales on
credit debit it and payments received credit it.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import DuplicateError, HasBalanceError
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.customer import Customer
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.models.ledger_entry import LedgerEntry
from shop_ledger.schemas.customer import (
    CustomerChargeCreate,
    CustomerCreate,
    CustomerUpdate,
)
from shop_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

CUSTOMER_VIEWS = ("customers",)


class CustomerService:

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

    def _check_unique_phone(self, phone: str | None, exclude_id: int | None = None) -> None:
        if not phone:
            return
        query = select(Customer.id).where(
            Customer.shop_id == self.shop_id,
            Customer.deleted_at.is_(None),
            Customer.phone == phone,
        )
        if exclude_id is not None:
            query = query.where(Customer.id != exclude_id)
        if self.db.execute(query).first():
            raise DuplicateError(
                "A customer with this phone number already exists",
                code="duplicate_phone",
            )

    def create_customer(self, request: CustomerCreate) -> Customer:
        self._check_unique_phone(request.phone)

        customer = Customer(
            shop_id=self.shop_id,
            full_name=request.full_name.strip(),
            phone=request.phone,
            email=request.email,
            current_balance=Decimal("0"),
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(customer)
        self.db.flush()

        self.invalidator.mark(self.shop_id, *CUSTOMER_VIEWS)
        return customer

    def update_customer(self, customer_id: int, request: CustomerUpdate) -> Customer:
        customer = self.ledger.lock_account(AccountKind.CUSTOMER, customer_id)
        self.ledger.check_version(customer, request.expected_version, "Customer")

        changes = request.model_dump(exclude_unset=True, exclude={"expected_version"})
        self._check_unique_phone(changes.get("phone"), exclude_id=customer.id)
        if changes.get("full_name"):
            changes["full_name"] = changes["full_name"].strip()
        elif "full_name" in changes:
            del changes["full_name"]
        for field, value in changes.items():
            setattr(customer, field, value)
        customer.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *CUSTOMER_VIEWS)
        return customer

    def delete_customer(self, customer_id: int) -> Customer:
        customer = self.ledger.lock_account(AccountKind.CUSTOMER, customer_id)
        if customer.current_balance != 0:
            raise HasBalanceError(
                f"Cannot delete customer with outstanding balance "
                f"{customer.current_balance:.2f}"
            )

        customer.deleted_at = datetime.utcnow()
        customer.updated_by = self.actor_id
        self.db.add(AuditLog(
            shop_id=self.shop_id,
            actor_id=self.actor_id,
            event_type="customer.deleted",
            details=json.dumps({"customer_id": customer.id}),
        ))
        self.db.flush()

        self.invalidator.mark(self.shop_id, *CUSTOMER_VIEWS)
        return customer

    def get_customer_balance(self, customer_id: int) -> Decimal:
        return self.ledger.get_balance(AccountKind.CUSTOMER, customer_id)

    def record_sale_charge(self, request: CustomerChargeCreate) -> LedgerEntry:
        """A sale on credit: the customer now owes more."""
        customer = self.ledger.lock_account(AccountKind.CUSTOMER, request.customer_id)
        return self.ledger.post(
            customer,
            EntryType.DEBIT,
            request.amount,
            transaction_type=TransactionType.SALE,
            description=request.description or "Sale on credit",
            reference_type="sale" if request.sale_id is not None else None,
            reference_id=request.sale_id,
        )

    def record_customer_payment(self, request: CustomerChargeCreate) -> LedgerEntry:
        customer = self.ledger.lock_account(AccountKind.CUSTOMER, request.customer_id)
        return self.ledger.post(
            customer,
            EntryType.CREDIT,
            request.amount,
            transaction_type=TransactionType.PAYMENT,
            description=request.description or "Payment received",
            reference_type="sale" if request.sale_id is not None else None,
            reference_id=request.sale_id,
        )
