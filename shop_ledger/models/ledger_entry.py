"""
Ledger entry model.

One row per financial event against one account (supplier,
workshop, customer, budget allocation or credit pool). Entries
are immutable: once flushed they are never modified or deleted.
The ORM listeners at the bottom of this module refuse both.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, Integer,
    CheckConstraint, Index, UniqueConstraint,
    Enum as SAEnum, event,
)
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.exceptions import ImmutableEntryError
from shop_ledger.models.base import Base
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType


class LedgerEntry(Base):
    """
    An immutable debit or credit against a single account.

    balance_after is the account's balance immediately after this
    entry, computed while the account row was locked. Replaying the
    entries in sequence_number order reproduces every balance_after.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "account_kind", "account_id", "sequence_number",
            name="uq_ledger_entries_account_sequence",
        ),
        CheckConstraint(
            "debit_amount >= 0 AND credit_amount >= 0",
            name="ck_ledger_entries_amounts_non_negative",
        ),
        CheckConstraint(
            "(debit_amount > 0 AND credit_amount = 0) "
            "OR (credit_amount > 0 AND debit_amount = 0)",
            name="ck_ledger_entries_one_side",
        ),
        Index("ix_ledger_entries_account", "account_kind", "account_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    account_kind: Mapped[AccountKind] = mapped_column(
        SAEnum(AccountKind, name="account_kind_enum"),
        nullable=False,
    )
    account_id: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type_enum"),
        nullable=False,
    )
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    description: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    reference_type: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    reference_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    created_by: Mapped[str | None] = mapped_column(
        String(36), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    @property
    def entry_type(self) -> EntryType:
        if self.debit_amount and self.debit_amount > 0:
            return EntryType.DEBIT
        return EntryType.CREDIT

    @property
    def amount(self) -> Decimal:
        return self.debit_amount if self.entry_type == EntryType.DEBIT else self.credit_amount

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.account_kind.value}:{self.account_id} "
            f"#{self.sequence_number} {self.entry_type.value} {self.amount}>"
        )


@event.listens_for(LedgerEntry, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableEntryError(
        f"Ledger entry {target.id} is immutable and cannot be updated"
    )


@event.listens_for(LedgerEntry, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableEntryError(
        f"Ledger entry {target.id} is immutable and cannot be deleted"
    )
