"""
Ledger service: the accounting core of the shop.

This service enforces the fundamental rules:
1. Entries are immutable (append-only)
2. Accounts must exist, belong to the shop and not be deleted
3. A posting locks the account row, appends exactly one entry
   and moves the cached balance in the same transaction
4. Replaying an account's entries reproduces its cached balance

No other service writes ledger entries or cached balances
directly. Suppliers, workshops, customers, budget allocations
and credit pools all post through post().
"""

import json
import logging
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    ValidationFailedError,
)
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.models.enums import AccountKind, EntryType, TransactionType
from shop_ledger.models.ledger_entry import LedgerEntry
from shop_ledger.money import ZERO, validate_amount
from shop_ledger.schemas.ledger import (
    RecordTransactionRequest,
    ReconciliationReport,
)
from shop_ledger.services.accounts import (
    ACCOUNT_SPECS,
    get_balance,
    get_spec,
    set_balance,
    signed_amount,
    spec_for,
)

logger = logging.getLogger(__name__)


class LedgerService:
    """
    All ledger operations pass through this service.

    The service takes a database session as a constructor
    argument. This means the caller controls the transaction
    boundary: they decide when to commit or rollback.
    """

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

    # --- Accounts ---

    def get_account(self, kind: AccountKind, account_id: int, include_deleted=False):
        """Read an account of this shop without locking it."""
        spec = get_spec(kind)
        account = self.db.execute(
            select(spec.model).where(
                spec.model.id == account_id,
                spec.model.shop_id == self.shop_id,
            )
        ).scalar_one_or_none()

        if account is None or (account.is_deleted and not include_deleted):
            raise NotFoundError(spec.label, account_id)
        return account

    def lock_account(self, kind: AccountKind, account_id: int, include_deleted=False):
        """
        Load an account with SELECT ... FOR UPDATE.

        populate_existing makes the session overwrite any copy it
        already holds, so the balance read under the lock is the
        committed one and not a stale identity-map value.
        """
        spec = get_spec(kind)
        account = self.db.execute(
            select(spec.model)
            .where(
                spec.model.id == account_id,
                spec.model.shop_id == self.shop_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if account is None or (account.is_deleted and not include_deleted):
            raise NotFoundError(spec.label, account_id)
        return account

    def lock_accounts(self, kind: AccountKind, account_ids) -> dict:
        """
        Lock several accounts of one kind.

        Rows are always locked in ascending id order so that two
        writers touching the same pair cannot deadlock.
        """
        return {
            account_id: self.lock_account(kind, account_id)
            for account_id in sorted(set(account_ids))
        }

    # --- Version checks ---

    def check_version(self, record, expected_version: int | None, label: str) -> None:
        """
        Reject a write made against an outdated copy of record.

        Nothing is checked when expected_version is None. The action
        boundary audits the rejection as <label>.concurrent_modification.
        """
        if expected_version is None or record.version == expected_version:
            return
        logger.warning(
            "Version mismatch on %s %s: expected %s, found %s",
            label.lower(), record.id, expected_version, record.version,
        )
        raise ConcurrentModificationError(
            f"{label} was modified by another user. Reload and try again.",
            shop_id=self.shop_id,
            actor_id=self.actor_id,
            event_type=f"{label.lower().replace(' ', '_')}.concurrent_modification",
            details={
                "id": record.id,
                "expected_version": expected_version,
                "current_version": record.version,
            },
        )

    # --- Posting ---

    def record_transaction(self, request: RecordTransactionRequest) -> LedgerEntry:
        """
        Lock the account and post one entry against it.

        The caller commits. If anything fails before the commit
        the entry and the balance change are rolled back together.

        Credit pools are excluded: their owner and staff counters
        only move through CreditService.track_usage().
        """
        if request.account_kind == AccountKind.CREDIT_POOL:
            raise ValidationFailedError(
                "Credit pool usage must be recorded through usage tracking"
            )
        account = self.lock_account(request.account_kind, request.account_id)
        return self.post(
            account,
            request.direction,
            request.amount,
            transaction_type=request.transaction_type,
            description=request.description,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
        )

    def post(
        self,
        account,
        direction: EntryType,
        amount,
        transaction_type: TransactionType = TransactionType.MANUAL,
        description: str | None = None,
        reference_type: str | None = None,
        reference_id: int | None = None,
    ) -> LedgerEntry:
        """
        Append one entry to a locked account and move its balance.

        The account must have been loaded with lock_account() in
        the current transaction.
        """
        amount = validate_amount(amount)
        direction = EntryType(direction)
        spec = spec_for(account)

        new_balance = get_balance(account) + signed_amount(spec, direction, amount)
        if spec.normal_side == EntryType.CREDIT and new_balance < 0:
            raise ValidationFailedError(
                f"Posting would result in negative {spec.label.lower()}"
            )
        sequence_number = self._next_sequence_number(spec.kind, account.id)

        entry = LedgerEntry(
            shop_id=self.shop_id,
            account_kind=spec.kind,
            account_id=account.id,
            sequence_number=sequence_number,
            transaction_type=transaction_type,
            debit_amount=amount if direction == EntryType.DEBIT else ZERO,
            credit_amount=amount if direction == EntryType.CREDIT else ZERO,
            balance_after=new_balance,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=self.actor_id,
        )
        self.db.add(entry)

        set_balance(account, new_balance)
        account.updated_by = self.actor_id
        self.db.flush()

        logger.info(
            "Posted %s %s to %s %s #%d, balance_after=%s",
            direction.value, amount, spec.kind.value, account.id,
            sequence_number, new_balance,
        )
        self.invalidator.mark(self.shop_id, *spec.views)
        return entry

    def _next_sequence_number(self, kind: AccountKind, account_id: int) -> int:
        # Safe because the account row is locked by the caller.
        current = self.db.execute(
            select(func.coalesce(func.max(LedgerEntry.sequence_number), 0)).where(
                LedgerEntry.account_kind == kind,
                LedgerEntry.account_id == account_id,
            )
        ).scalar()
        return int(current) + 1

    # --- Queries ---

    def derive_balance(self, kind: AccountKind, account_id: int) -> Decimal:
        """
        Calculate an account's balance from its entries alone.

        DEBIT-normal accounts: balance = debits - credits
        CREDIT-normal accounts: balance = credits - debits
        """
        spec = get_spec(kind)
        total_debits, total_credits = self.db.execute(
            select(
                func.coalesce(func.sum(LedgerEntry.debit_amount), 0),
                func.coalesce(func.sum(LedgerEntry.credit_amount), 0),
            ).where(
                LedgerEntry.account_kind == spec.kind,
                LedgerEntry.account_id == account_id,
            )
        ).one()

        total_debits = Decimal(str(total_debits))
        total_credits = Decimal(str(total_credits))
        if spec.normal_side == EntryType.DEBIT:
            return total_debits - total_credits
        return total_credits - total_debits

    def get_balance(self, kind: AccountKind, account_id: int) -> Decimal:
        return get_balance(self.get_account(kind, account_id, include_deleted=True))

    def get_entries(self, kind: AccountKind, account_id: int) -> list[LedgerEntry]:
        """Return all entries for an account in posting order."""
        self.get_account(kind, account_id, include_deleted=True)
        entries = self.db.execute(
            select(LedgerEntry)
            .where(
                LedgerEntry.account_kind == AccountKind(kind),
                LedgerEntry.account_id == account_id,
            )
            .order_by(LedgerEntry.sequence_number)
        ).scalars().all()
        return list(entries)

    # --- Reconciliation ---

    def reconcile_account(
        self, kind: AccountKind, account_id: int, repair: bool = False
    ) -> ReconciliationReport:
        """
        Re-sum an account's entries and compare with its cached balance.

        With repair=True a drifting cached balance is overwritten
        with the derived one and the repair is written to the
        audit log. Entries themselves are never touched.
        """
        spec = get_spec(kind)
        if repair:
            account = self.lock_account(kind, account_id, include_deleted=True)
        else:
            account = self.get_account(kind, account_id, include_deleted=True)

        entries = self.get_entries(kind, account_id)
        running = ZERO
        chain_ok = True
        for entry in entries:
            running += signed_amount(spec, entry.entry_type, entry.amount)
            if running != entry.balance_after:
                chain_ok = False

        cached = get_balance(account)
        derived = self.derive_balance(kind, account_id)
        report = ReconciliationReport(
            account_kind=spec.kind,
            account_id=account_id,
            cached_balance=cached,
            derived_balance=derived,
            drift=cached - derived,
            entry_count=len(entries),
            chain_ok=chain_ok,
        )

        if report.drift != 0:
            logger.warning(
                "Balance drift on %s %s: cached=%s derived=%s",
                spec.kind.value, account_id, cached, derived,
            )
        if not chain_ok:
            logger.warning(
                "balance_after chain broken on %s %s", spec.kind.value, account_id
            )

        if repair and report.drift != 0:
            set_balance(account, derived)
            account.updated_by = self.actor_id
            self.db.add(AuditLog(
                shop_id=self.shop_id,
                actor_id=self.actor_id,
                event_type="ledger.reconciliation_repair",
                details=json.dumps({
                    "account_kind": spec.kind.value,
                    "account_id": account_id,
                    "cached_balance": str(cached),
                    "derived_balance": str(derived),
                }),
            ))
            self.db.flush()
            self.invalidator.mark(self.shop_id, *spec.views)
            report.repaired = True

        return report

    def reconcile_shop(
        self, repair: bool = False, only_drifting: bool = False
    ) -> list[ReconciliationReport]:
        """Reconcile every account of every kind in this shop."""
        reports = []
        for kind, spec in ACCOUNT_SPECS.items():
            account_ids = self.db.execute(
                select(spec.model.id)
                .where(spec.model.shop_id == self.shop_id)
                .order_by(spec.model.id)
            ).scalars().all()
            for account_id in account_ids:
                report = self.reconcile_account(kind, account_id, repair=repair)
                if only_drifting and report.is_consistent:
                    continue
                reports.append(report)
        return reports
