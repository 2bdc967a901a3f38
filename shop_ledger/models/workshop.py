"""
Workshop and workshop order models.

A workshop's current_balance is what the shop owes it for work
done. Completed orders with an actual cost debit the balance,
payments credit it.

Orders have a small state machine. Invalid transitions are
rejected by WorkshopService.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, Integer, Text, ForeignKey,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop_ledger.models.base import Base, AuditedMixin
from shop_ledger.models.enums import OrderStatus, PaymentStatus


# Valid order transitions. Completed orders are final.
VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.PENDING,
    },
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: {OrderStatus.PENDING},
}

OPEN_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.IN_PROGRESS)


class Workshop(AuditedMixin, Base):
    __tablename__ = "workshops"

    balance_attribute = "current_balance"

    id: Mapped[int] = mapped_column(primary_key=True)
    workshop_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_internal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    contact_person: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    specialization: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    orders: Mapped[list["WorkshopOrder"]] = relationship(
        back_populates="workshop"
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def display_name(self) -> str:
        return self.workshop_name

    def __repr__(self) -> str:
        return f"<Workshop {self.workshop_name} balance={self.current_balance}>"


class WorkshopOrder(AuditedMixin, Base):
    __tablename__ = "workshop_orders"
    __table_args__ = (
        UniqueConstraint("shop_id", "order_number", name="uq_workshop_orders_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    workshop_id: Mapped[int] = mapped_column(
        ForeignKey("workshops.id"), nullable=False, index=True
    )
    order_number: Mapped[str] = mapped_column(String(30), nullable=False)
    order_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="repair"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    actual_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, name="order_payment_status_enum"),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, name="order_status_enum"),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    completed_date: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    workshop: Mapped["Workshop"] = relationship(back_populates="orders")

    __mapper_args__ = {"version_id_col": version}

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return f"<WorkshopOrder {self.order_number} ({self.status.value})>"
