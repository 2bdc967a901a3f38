"""
AI assistant credit pool models.

A pool holds a shop's credits for one period, split between the
owner and a staff pool that staff users draw from through their
individual allocations. The ledger balance of a pool is
total_used: token usage debits it.

Owner usage beyond the owner's share overflows into the staff
pool and is tracked separately in owner_overflow_used.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import (
    String, Date, Integer, Numeric, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop_ledger.models.base import Base, AuditedMixin


class CreditPool(AuditedMixin, Base):
    __tablename__ = "ai_credit_pools"

    balance_attribute = "total_used"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    staff_pool_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    staff_pool_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    owner_overflow_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_used: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    allocations: Mapped[list["CreditAllocation"]] = relationship(
        back_populates="pool"
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def owner_remaining(self) -> int:
        return self.owner_credits - self.owner_used

    @property
    def staff_pool_remaining(self) -> int:
        return (
            self.staff_pool_credits
            - self.staff_pool_used
            - self.owner_overflow_used
        )

    @property
    def total_remaining(self) -> int:
        return self.total_credits - int(self.total_used or 0)

    @property
    def display_name(self) -> str:
        return f"credit pool {self.period_start}..{self.period_end}"

    def __repr__(self) -> str:
        return f"<CreditPool {self.id} used={self.total_used}/{self.total_credits}>"


class CreditAllocation(Base):
    """A staff user's share of a pool's staff credits."""

    __tablename__ = "ai_credit_allocations"
    __table_args__ = (
        UniqueConstraint("pool_id", "user_id", name="uq_credit_allocation_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    pool_id: Mapped[int] = mapped_column(
        ForeignKey("ai_credit_pools.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    allocated_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    used_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    pool: Mapped["CreditPool"] = relationship(back_populates="allocations")

    @property
    def available_credits(self) -> int:
        return max(0, self.allocated_credits - self.used_credits)
