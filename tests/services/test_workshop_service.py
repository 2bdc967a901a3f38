"""
Tests for the WorkshopService.

Tests cover:
- Workshop creation and deletion rules
- Order numbering and the status state machine
- Order charges on completion
- Payments to workshops, with and without an order
"""

from decimal import Decimal

import pytest

from shop_ledger.exceptions import (
    ConcurrentModificationError,
    DuplicateError,
    HasBalanceError,
    HasOpenRecordsError,
    InactiveError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from shop_ledger.models.enums import (
    AccountKind, OrderStatus, PaymentStatus, TransactionType,
)
from shop_ledger.schemas.workshop import (
    OrderStatusUpdate,
    WorkshopCreate,
    WorkshopOrderCreate,
    WorkshopPaymentCreate,
    WorkshopUpdate,
)
from shop_ledger.services.workshop_service import WorkshopService

SHOP_ID = "shop-1"
ACTOR_ID = "user-1"


@pytest.fixture
def service(db_session):
    return WorkshopService(db_session, SHOP_ID, ACTOR_ID)


@pytest.fixture
def workshop(service):
    workshop = service.create_workshop(WorkshopCreate(workshop_name="Stone Setters"))
    service.db.commit()
    return workshop


def order_for(service, workshop, estimated_cost=None):
    order = service.create_order(WorkshopOrderCreate(
        workshop_id=workshop.id, estimated_cost=estimated_cost,
    ))
    service.db.commit()
    return order


def move(service, order, status, **extra):
    service.update_order_status(order.id, OrderStatusUpdate(new_status=status, **extra))
    service.db.commit()
    return order


class TestWorkshops:

    def test_duplicate_name(self, service, workshop):
        with pytest.raises(DuplicateError) as exc:
            service.create_workshop(WorkshopCreate(workshop_name="stone setters"))
        assert exc.value.code == "duplicate_workshop_name"

    def test_update_profile(self, service, workshop):
        service.update_workshop(workshop.id, WorkshopUpdate(
            workshop_name=" Stone Setters Ltd ",
            specialization="Pave",
            expected_version=workshop.version,
        ))
        service.db.commit()

        assert workshop.workshop_name == "Stone Setters Ltd"
        assert workshop.specialization == "Pave"
        assert workshop.version == 2

    def test_rename_to_existing_name_rejected(self, service, workshop):
        other = service.create_workshop(WorkshopCreate(workshop_name="Polishers"))
        service.db.commit()

        with pytest.raises(DuplicateError) as exc:
            service.update_workshop(other.id, WorkshopUpdate(workshop_name="STONE SETTERS"))
        assert exc.value.code == "duplicate_workshop_name"

    def test_keeping_own_name_allowed(self, service, workshop):
        service.update_workshop(workshop.id, WorkshopUpdate(workshop_name="Stone Setters"))
        service.db.commit()

        assert workshop.workshop_name == "Stone Setters"

    def test_stale_update_rejected(self, service, workshop):
        service.update_workshop(workshop.id, WorkshopUpdate(notes="First"))
        service.db.commit()

        with pytest.raises(ConcurrentModificationError, match="Workshop was modified"):
            service.update_workshop(
                workshop.id, WorkshopUpdate(notes="Second", expected_version=1)
            )

    def test_delete_with_open_order_rejected(self, service, workshop):
        order_for(service, workshop)

        with pytest.raises(HasOpenRecordsError) as exc:
            service.delete_workshop(workshop.id)
        assert exc.value.code == "has_pending_orders"

    def test_delete_with_balance_rejected(self, service, workshop):
        order = order_for(service, workshop)
        move(service, order, OrderStatus.IN_PROGRESS)
        move(service, order, OrderStatus.COMPLETED, actual_cost=Decimal("80"))

        with pytest.raises(HasBalanceError):
            service.delete_workshop(workshop.id)

    def test_delete_idle_workshop(self, service, workshop):
        service.delete_workshop(workshop.id)
        service.db.commit()

        assert workshop.is_deleted
        assert workshop.is_active is False

    def test_order_for_inactive_workshop_rejected(self, service, workshop):
        workshop.is_active = False
        service.db.commit()

        with pytest.raises(InactiveError) as exc:
            service.create_order(WorkshopOrderCreate(workshop_id=workshop.id))
        assert exc.value.code == "workshop_inactive"


class TestOrderStatus:

    def test_order_numbers(self, service, workshop):
        first = order_for(service, workshop)
        second = order_for(service, workshop)

        assert first.order_number.startswith("WO-")
        assert first.order_number.endswith("-001")
        assert second.order_number.endswith("-002")
        assert first.status == OrderStatus.PENDING

    def test_complete_charges_actual_cost(self, service, workshop):
        order = order_for(service, workshop, estimated_cost=Decimal("100"))
        move(service, order, OrderStatus.IN_PROGRESS)
        move(service, order, OrderStatus.COMPLETED, actual_cost=Decimal("120"))

        assert order.completed_date is not None
        assert order.payment_status == PaymentStatus.UNPAID
        assert workshop.current_balance == Decimal("120")
        entry = service.ledger.get_entries(AccountKind.WORKSHOP, workshop.id)[-1]
        assert entry.transaction_type == TransactionType.ORDER_CHARGE
        assert entry.reference_id == order.id

    def test_complete_without_cost_posts_nothing(self, service, workshop):
        order = order_for(service, workshop)
        move(service, order, OrderStatus.IN_PROGRESS)
        move(service, order, OrderStatus.COMPLETED)

        assert service.ledger.get_entries(AccountKind.WORKSHOP, workshop.id) == []

    def test_pending_cannot_jump_to_completed(self, service, workshop):
        order = order_for(service, workshop)
        with pytest.raises(InvalidTransitionError, match="from pending to completed"):
            service.update_order_status(
                order.id, OrderStatusUpdate(new_status=OrderStatus.COMPLETED)
            )

    def test_completed_is_final(self, service, workshop):
        order = order_for(service, workshop)
        move(service, order, OrderStatus.IN_PROGRESS)
        move(service, order, OrderStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            service.update_order_status(
                order.id, OrderStatusUpdate(new_status=OrderStatus.PENDING)
            )

    def test_cancelled_can_reopen(self, service, workshop):
        order = order_for(service, workshop)
        move(service, order, OrderStatus.CANCELLED)
        move(service, order, OrderStatus.PENDING)

        assert order.status == OrderStatus.PENDING
        assert order.completed_date is None


class TestWorkshopPayments:

    def test_payment_for_order(self, service, workshop):
        order = order_for(service, workshop)
        move(service, order, OrderStatus.IN_PROGRESS)
        move(service, order, OrderStatus.COMPLETED, actual_cost=Decimal("120"))

        entry = service.record_workshop_payment(WorkshopPaymentCreate(
            workshop_id=workshop.id, order_id=order.id, amount=Decimal("50"),
        ))
        service.db.commit()

        assert entry.transaction_type == TransactionType.ORDER_PAYMENT
        assert entry.description.startswith(f"Payment for {order.order_number}")
        assert order.paid_amount == Decimal("50")
        assert order.payment_status == PaymentStatus.PARTIAL
        assert workshop.current_balance == Decimal("70")

    def test_payment_without_order(self, service, workshop):
        entry = service.record_workshop_payment(WorkshopPaymentCreate(
            workshop_id=workshop.id, amount=Decimal("25"), notes="Advance",
        ))
        service.db.commit()

        assert entry.description == "Payment (cash): Advance"
        assert workshop.current_balance == Decimal("-25")

    def test_order_of_other_workshop_not_found(self, service, workshop):
        other = service.create_workshop(WorkshopCreate(workshop_name="Engravers"))
        order = order_for(service, other)

        with pytest.raises(NotFoundError) as exc:
            service.record_workshop_payment(WorkshopPaymentCreate(
                workshop_id=workshop.id, order_id=order.id, amount=Decimal("10"),
            ))
        assert exc.value.code == "order_not_found"

    def test_cancelled_order_cannot_be_paid(self, service, workshop):
        order = order_for(service, workshop)
        move(service, order, OrderStatus.CANCELLED)

        with pytest.raises(ValidationFailedError):
            service.record_workshop_payment(WorkshopPaymentCreate(
                workshop_id=workshop.id, order_id=order.id, amount=Decimal("10"),
            ))
