"""
Purchase model.

A purchase is the business document behind a supplier debit.
paid_amount and payment_status follow the payments recorded
against it. version guards concurrent edits.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import (
    String, Date, Numeric, Integer, Text, ForeignKey,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop_ledger.models.base import Base, AuditedMixin
from shop_ledger.models.enums import PaymentStatus


class Purchase(AuditedMixin, Base):
    __tablename__ = "purchases"
    __table_args__ = (
        UniqueConstraint("shop_id", "purchase_number", name="uq_purchases_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    supplier_id: Mapped[int] = mapped_column(
        ForeignKey("suppliers.id"), nullable=False, index=True
    )
    purchase_number: Mapped[str] = mapped_column(String(30), nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD"
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, name="purchase_payment_status_enum"),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    supplier: Mapped["Supplier"] = relationship()

    __mapper_args__ = {"version_id_col": version}

    @property
    def outstanding_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount

    def __repr__(self) -> str:
        return (
            f"<Purchase {self.purchase_number} {self.total_amount} "
            f"({self.payment_status.value})>"
        )


def determine_payment_status(paid: Decimal, total: Decimal) -> PaymentStatus:
    """Map a paid/total pair onto unpaid, partial or paid."""
    if paid <= 0:
        return PaymentStatus.UNPAID
    if paid >= total:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL
