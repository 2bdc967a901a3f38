"""
Workshop service.

Workshops are external or in-house craftsmen the shop sends
orders to. Completing an order with an actual cost debits the
workshop; payments credit it.

Order status transitions:
    pending     -> in_progress, cancelled
    in_progress -> completed, cancelled, pending
    cancelled   -> pending
    completed   -> (final)

Lock order is order first, then workshop.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import (
    DuplicateError,
    HasBalanceError,
    HasOpenRecordsError,
    InactiveError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.enums import (
    AccountKind, EntryType, OrderStatus, TransactionType,
)
from shop_ledger.models.ledger_entry import LedgerEntry
from shop_ledger.models.purchase import determine_payment_status
from shop_ledger.models.workshop import (
    OPEN_ORDER_STATUSES, Workshop, WorkshopOrder,
)
from shop_ledger.schemas.workshop import (
    OrderStatusUpdate,
    WorkshopCreate,
    WorkshopOrderCreate,
    WorkshopPaymentCreate,
    WorkshopUpdate,
)
from shop_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

WORKSHOP_VIEWS = ("workshops", "workshops/orders")


class WorkshopService:

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

    # --- Workshops ---

    def _check_unique_name(self, name: str, exclude_id: int | None = None) -> None:
        query = select(Workshop.id).where(
            Workshop.shop_id == self.shop_id,
            Workshop.deleted_at.is_(None),
            func.lower(Workshop.workshop_name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Workshop.id != exclude_id)
        if self.db.execute(query).first():
            raise DuplicateError(
                "A workshop with this name already exists",
                code="duplicate_workshop_name",
            )

    def create_workshop(self, request: WorkshopCreate) -> Workshop:
        name = request.workshop_name.strip()
        self._check_unique_name(name)

        workshop = Workshop(
            shop_id=self.shop_id,
            workshop_name=name,
            is_internal=request.is_internal,
            contact_person=request.contact_person,
            phone=request.phone,
            email=request.email,
            specialization=request.specialization,
            notes=request.notes,
            current_balance=Decimal("0"),
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(workshop)
        self.db.flush()

        logger.info("Created workshop %s (%s)", workshop.id, workshop.workshop_name)
        self.invalidator.mark(self.shop_id, *WORKSHOP_VIEWS)
        return workshop

    def update_workshop(self, workshop_id: int, request: WorkshopUpdate) -> Workshop:
        """Edit profile fields under the caller's expected version."""
        workshop = self.ledger.lock_account(AccountKind.WORKSHOP, workshop_id)
        self.ledger.check_version(workshop, request.expected_version, "Workshop")

        changes = request.model_dump(exclude_unset=True, exclude={"expected_version"})
        if changes.get("workshop_name"):
            changes["workshop_name"] = changes["workshop_name"].strip()
            self._check_unique_name(changes["workshop_name"], exclude_id=workshop.id)
        for field, value in changes.items():
            if value is None and field in ("workshop_name", "is_internal", "is_active"):
                continue
            setattr(workshop, field, value)
        workshop.updated_by = self.actor_id
        self.db.flush()

        self.invalidator.mark(self.shop_id, *WORKSHOP_VIEWS)
        return workshop

    def delete_workshop(self, workshop_id: int) -> Workshop:
        """Soft delete a workshop with no balance and no open orders."""
        workshop = self.ledger.lock_account(AccountKind.WORKSHOP, workshop_id)

        if workshop.current_balance != 0:
            raise HasBalanceError(
                f"Cannot delete workshop with outstanding balance "
                f"{workshop.current_balance:.2f}"
            )

        open_orders = self.db.execute(
            select(func.count(WorkshopOrder.id)).where(
                WorkshopOrder.workshop_id == workshop.id,
                WorkshopOrder.deleted_at.is_(None),
                WorkshopOrder.status.in_(OPEN_ORDER_STATUSES),
            )
        ).scalar()
        if open_orders:
            raise HasOpenRecordsError(
                "Cannot delete workshop with pending or in-progress orders",
                code="has_pending_orders",
            )

        workshop.deleted_at = datetime.utcnow()
        workshop.is_active = False
        workshop.updated_by = self.actor_id
        self.db.add(AuditLog(
            shop_id=self.shop_id,
            actor_id=self.actor_id,
            event_type="workshop.deleted",
            details=json.dumps({"workshop_id": workshop.id}),
        ))
        self.db.flush()

        self.invalidator.mark(self.shop_id, *WORKSHOP_VIEWS)
        return workshop

    # --- Orders ---

    def generate_order_number(self, on_date: date | None = None) -> str:
        """Next number of the form WO-YYYYMMDD-NNN for the given day."""
        on_date = on_date or date.today()
        prefix = f"WO-{on_date:%Y%m%d}-"
        numbers = self.db.execute(
            select(WorkshopOrder.order_number).where(
                WorkshopOrder.shop_id == self.shop_id,
                WorkshopOrder.order_number.like(f"{prefix}%"),
            )
        ).scalars().all()

        last = 0
        for number in numbers:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                last = max(last, int(suffix))
        return f"{prefix}{last + 1:03d}"

    def get_order(self, order_id: int, lock: bool = False) -> WorkshopOrder:
        query = select(WorkshopOrder).where(
            WorkshopOrder.id == order_id,
            WorkshopOrder.shop_id == self.shop_id,
            WorkshopOrder.deleted_at.is_(None),
        )
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        order = self.db.execute(query).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def create_order(self, request: WorkshopOrderCreate) -> WorkshopOrder:
        workshop = self.ledger.get_account(AccountKind.WORKSHOP, request.workshop_id)
        if not workshop.is_active:
            raise InactiveError(
                "Cannot create order for inactive workshop",
                code="workshop_inactive",
            )

        order = WorkshopOrder(
            shop_id=self.shop_id,
            workshop_id=workshop.id,
            order_number=self.generate_order_number(),
            order_type=request.order_type,
            description=request.description,
            estimated_cost=request.estimated_cost,
            notes=request.notes,
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        self.db.add(order)
        self.db.flush()

        logger.info("Created order %s for workshop %s", order.order_number, workshop.id)
        self.invalidator.mark(self.shop_id, *WORKSHOP_VIEWS)
        return order

    def update_order_status(self, order_id: int, request: OrderStatusUpdate) -> WorkshopOrder:
        """
        Move an order along its state machine.

        Completing an order with an actual cost debits the
        workshop by that cost.
        """
        order = self.get_order(order_id, lock=True)

        self.ledger.check_version(order, request.expected_version, "Workshop order")

        if not order.can_transition_to(request.new_status):
            raise InvalidTransitionError(
                f"Cannot change status from {order.status.value} "
                f"to {request.new_status.value}"
            )

        previous = order.status
        order.status = request.new_status

        if request.new_status == OrderStatus.COMPLETED:
            order.completed_date = datetime.utcnow()
            if request.actual_cost is not None:
                order.actual_cost = request.actual_cost
            if order.actual_cost:
                workshop = self.ledger.lock_account(
                    AccountKind.WORKSHOP, order.workshop_id
                )
                self.ledger.post(
                    workshop,
                    EntryType.DEBIT,
                    order.actual_cost,
                    transaction_type=TransactionType.ORDER_CHARGE,
                    description=f"Order {order.order_number} completed",
                    reference_type="workshop_order",
                    reference_id=order.id,
                )
                order.payment_status = determine_payment_status(
                    order.paid_amount, order.actual_cost
                )
        elif request.new_status == OrderStatus.PENDING:
            order.completed_date = None

        if request.notes is not None:
            order.notes = request.notes.strip() or None
        order.updated_by = self.actor_id
        self.db.flush()

        logger.info(
            "Order %s: %s -> %s",
            order.order_number, previous.value, order.status.value,
        )
        self.invalidator.mark(self.shop_id, *WORKSHOP_VIEWS)
        return order

    # --- Payments ---

    def record_workshop_payment(self, request: WorkshopPaymentCreate) -> LedgerEntry:
        """
        Record a payment to a workshop.

        An order_id, when given, must belong to the same workshop;
        the payment then also counts toward that order.
        """
        order = None
        if request.order_id is not None:
            order = self.db.execute(
                select(WorkshopOrder)
                .where(
                    WorkshopOrder.id == request.order_id,
                    WorkshopOrder.shop_id == self.shop_id,
                    WorkshopOrder.workshop_id == request.workshop_id,
                    WorkshopOrder.deleted_at.is_(None),
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if order is None:
                raise NotFoundError(
                    "Order", request.order_id, code="order_not_found"
                )
            if order.status == OrderStatus.CANCELLED:
                raise ValidationFailedError("Cannot record payment for a cancelled order")

        workshop = self.ledger.lock_account(AccountKind.WORKSHOP, request.workshop_id)

        description = f"Payment ({request.payment_type})"
        if order is not None:
            description = f"Payment for {order.order_number} ({request.payment_type})"
        if request.notes:
            description = f"{description}: {request.notes}"

        entry = self.ledger.post(
            workshop,
            EntryType.CREDIT,
            request.amount,
            transaction_type=TransactionType.ORDER_PAYMENT,
            description=description[:255],
            reference_type="workshop_order" if order is not None else None,
            reference_id=order.id if order is not None else None,
        )

        if order is not None:
            order.paid_amount = order.paid_amount + request.amount
            cost = order.actual_cost or order.estimated_cost
            if cost:
                order.payment_status = determine_payment_status(order.paid_amount, cost)
            order.updated_by = self.actor_id
            self.db.flush()

        self.invalidator.mark(self.shop_id, *WORKSHOP_VIEWS)
        return entry
