"""
Customer model.

Represents a shop customer. current_balance is what the
customer owes the shop: sales on credit debit it, payments
received credit it.
"""

from decimal import Decimal

from sqlalchemy import String, Numeric, Integer
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.models.base import Base, AuditedMixin


class Customer(AuditedMixin, Base):
    __tablename__ = "customers"

    balance_attribute = "current_balance"

    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def display_name(self) -> str:
        return self.full_name

    def __repr__(self) -> str:
        return f"<Customer {self.full_name}>"
