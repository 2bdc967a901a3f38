"""
Ledger API endpoints.

These endpoints expose the ledger component directly: posting a
transaction against any account kind, reading an account's
entries and balance, and reconciling cached balances against
the entries. The API layer is thin; all business logic lives in
LedgerService and the action boundary.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_ledger.actions import run_action
from shop_ledger.api.deps import ShopContext, get_shop_context, respond
from shop_ledger.cache import CacheInvalidator
from shop_ledger.models.base import get_db
from shop_ledger.models.enums import AccountKind
from shop_ledger.schemas.ledger import (
    AccountBalanceResponse,
    LedgerEntryResponse,
    RecordTransactionRequest,
)
from shop_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/shops/{shop_id}/ledger", tags=["Ledger"])


def _service(db: Session, ctx: ShopContext, invalidator=None) -> LedgerService:
    return LedgerService(db, ctx.shop_id, ctx.user_id, invalidator)


@router.post("/transactions", status_code=201)
def record_transaction(
    request: RecordTransactionRequest,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """
    Post one debit or credit against an account.

    The account row is locked while the entry is appended and the
    cached balance moved, so concurrent postings serialize.
    """
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.record_transaction(request),
        response_model=LedgerEntryResponse,
        message="Transaction recorded",
        invalidator=invalidator,
        name="record_transaction",
    )
    return respond(result, 201)


@router.get("/{account_kind}/{account_id}/entries")
def get_account_entries(
    account_kind: AccountKind,
    account_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """All entries for an account, in posting order."""
    service = _service(db, ctx)
    result = run_action(
        db,
        lambda: service.get_entries(account_kind, account_id),
        response_model=LedgerEntryResponse,
        name="get_account_entries",
    )
    return respond(result)


@router.get("/{account_kind}/{account_id}/balance")
def get_account_balance(
    account_kind: AccountKind,
    account_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Cached balance alongside the balance re-derived from entries."""
    service = _service(db, ctx)

    def balance():
        return AccountBalanceResponse(
            account_kind=account_kind,
            account_id=account_id,
            balance=service.get_balance(account_kind, account_id),
            derived_balance=service.derive_balance(account_kind, account_id),
        )

    return respond(run_action(db, balance, name="get_account_balance"))


@router.post("/{account_kind}/{account_id}/reconcile")
def reconcile_account(
    account_kind: AccountKind,
    account_id: int,
    repair: bool = False,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.reconcile_account(account_kind, account_id, repair=repair),
        invalidator=invalidator,
        name="reconcile_account",
    )
    return respond(result)


@router.post("/reconcile")
def reconcile_shop(
    repair: bool = False,
    only_drifting: bool = True,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Reconcile every account in the shop."""
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.reconcile_shop(repair=repair, only_drifting=only_drifting),
        message=lambda reports: f"{len(reports)} account(s) reported",
        invalidator=invalidator,
        name="reconcile_shop",
    )
    return respond(result)
