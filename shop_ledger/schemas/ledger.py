"""
Pydantic schemas for ledger operations.

These define the contract of the ledger component: what a
posting request looks like and what entries, balances and
reconciliation reports look like when they go back out.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.money import PositiveMoney


# --- Request Schemas ---

class RecordTransactionRequest(BaseModel):
    """
    One financial event against one account.

    DEBIT and CREDIT are interpreted by the account kind: for
    suppliers, workshops and customers a debit increases what is
    owed, for budget allocations a credit increases the allocation.
    """
    account_kind: AccountKind
    account_id: int
    amount: PositiveMoney
    direction: EntryType
    transaction_type: TransactionType = TransactionType.MANUAL
    description: str | None = Field(default=None, max_length=255)
    reference_type: str | None = Field(default=None, max_length=50)
    reference_id: int | None = None


# --- Response Schemas ---

class LedgerEntryResponse(BaseModel):
    """Single entry in API responses."""
    id: int
    account_kind: AccountKind
    account_id: int
    sequence_number: int
    transaction_type: TransactionType
    entry_type: EntryType
    debit_amount: Decimal
    credit_amount: Decimal
    balance_after: Decimal
    description: str | None
    reference_type: str | None
    reference_id: int | None
    created_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    """Cached balance next to the balance derived from entries."""
    account_kind: AccountKind
    account_id: int
    balance: Decimal
    derived_balance: Decimal


class ReconciliationReport(BaseModel):
    """
    Result of re-summing one account's entries.

    drift is cached_balance - derived_balance. chain_ok is False
    when some entry's balance_after does not equal the running
    sum at that entry.
    """
    account_kind: AccountKind
    account_id: int
    cached_balance: Decimal
    derived_balance: Decimal
    drift: Decimal
    entry_count: int
    chain_ok: bool
    repaired: bool = False

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0 and self.chain_ok
