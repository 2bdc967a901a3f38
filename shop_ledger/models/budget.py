"""
Budget category and budget allocation models.

An allocation's ledger balance is allocated_amount. Unlike the
payable accounts it is credit-normal: a credit entry increases
the allocation and a debit entry decreases it.

remaining_amount is always allocated + rollover - used and is
recomputed whenever any of the three changes.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, Numeric, Integer, Text, ForeignKey,
    CheckConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop_ledger.models.base import Base, AuditedMixin
from shop_ledger.models.enums import AllocationStatus, BudgetType


class BudgetCategory(AuditedMixin, Base):
    __tablename__ = "budget_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    budget_type: Mapped[BudgetType] = mapped_column(
        SAEnum(BudgetType, name="budget_type_enum"),
        nullable=False,
        default=BudgetType.OTHER,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    allocations: Mapped[list["BudgetAllocation"]] = relationship(
        back_populates="category"
    )

    def __repr__(self) -> str:
        return f"<BudgetCategory {self.category_name}>"


class BudgetAllocation(AuditedMixin, Base):
    __tablename__ = "budget_allocations"
    __table_args__ = (
        CheckConstraint(
            "allocated_amount >= 0",
            name="ck_budget_allocations_allocated_non_negative",
        ),
    )

    balance_attribute = "allocated_amount"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_category_id: Mapped[int] = mapped_column(
        ForeignKey("budget_categories.id"), nullable=False, index=True
    )
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    allocated_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    used_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    rollover_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    rollover_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    remaining_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    status: Mapped[AllocationStatus] = mapped_column(
        SAEnum(AllocationStatus, name="allocation_status_enum"),
        nullable=False,
        default=AllocationStatus.ACTIVE,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    category: Mapped["BudgetCategory"] = relationship(
        back_populates="allocations"
    )

    __mapper_args__ = {"version_id_col": version}

    def refresh_remaining(self) -> None:
        self.remaining_amount = (
            (self.allocated_amount or Decimal("0"))
            + (self.rollover_amount or Decimal("0"))
            - (self.used_amount or Decimal("0"))
        )

    def set_balance(self, value: Decimal) -> None:
        self.allocated_amount = value
        self.refresh_remaining()

    @property
    def display_name(self) -> str:
        return f"allocation {self.id} ({self.period_start}..{self.period_end})"

    def __repr__(self) -> str:
        return (
            f"<BudgetAllocation {self.id} allocated={self.allocated_amount} "
            f"remaining={self.remaining_amount}>"
        )
