"""
Shared API dependencies.

Caller identity comes from two headers set by the gateway in
front of this service:

    X-User-Id   the acting user
    X-Shop-Ids  comma-separated shops the user may act on

Every route lives under /shops/{shop_id}; a caller that is not
identified or has no access to that shop gets "unauthorized".
"""

from dataclasses import dataclass, field

from fastapi import Depends, Header
from fastapi.responses import JSONResponse

from shop_ledger.exceptions import UnauthorizedError
from shop_ledger.schemas.result import ActionResult

CONFLICT_CODES = {
    "has_balance",
    "has_pending_orders",
    "has_active_allocations",
    "has_open_records",
    "insufficient_budget",
    "insufficient_credits",
    "concurrent_modification",
    "overlapping_allocation",
    "invalid_status_transition",
    "immutable_entry",
}


@dataclass
class Caller:
    user_id: str
    shop_ids: set[str] = field(default_factory=set)


@dataclass
class ShopContext:
    shop_id: str
    user_id: str


def get_caller(
    x_user_id: str | None = Header(default=None),
    x_shop_ids: str | None = Header(default=None),
) -> Caller:
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError()
    shop_ids = {s.strip() for s in (x_shop_ids or "").split(",") if s.strip()}
    return Caller(user_id=x_user_id.strip(), shop_ids=shop_ids)


def get_shop_context(shop_id: str, caller: Caller = Depends(get_caller)) -> ShopContext:
    if shop_id not in caller.shop_ids:
        raise UnauthorizedError()
    return ShopContext(shop_id=shop_id, user_id=caller.user_id)


def status_for_code(code: str) -> int:
    if code == "unauthorized":
        return 401
    if code == "not_found" or code.endswith("_not_found"):
        return 404
    if code == "validation_error":
        return 422
    if (
        code in CONFLICT_CODES
        or code.startswith("duplicate_")
        or code.endswith("_inactive")
        or code == "inactive"
    ):
        return 409
    return 500


def respond(result: ActionResult, success_status: int = 200) -> JSONResponse:
    """Render an ActionResult with the HTTP status its code maps to."""
    if result.success:
        status_code = success_status
    else:
        status_code = status_for_code(result.code)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
