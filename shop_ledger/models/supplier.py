"""
Supplier model.

A supplier's current_balance is what the shop owes it. Purchases
debit the balance, payments credit it. The balance is only ever
changed by LedgerService while posting an entry.
"""

from decimal import Decimal

from sqlalchemy import String, Numeric, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.models.base import Base, AuditedMixin


class Supplier(AuditedMixin, Base):
    __tablename__ = "suppliers"

    balance_attribute = "current_balance"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def display_name(self) -> str:
        return self.company_name

    def __repr__(self) -> str:
        return f"<Supplier {self.company_name} balance={self.current_balance}>"
