"""
AI credit API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_ledger.actions import run_action
from shop_ledger.api.deps import ShopContext, get_shop_context, respond
from shop_ledger.cache import CacheInvalidator
from shop_ledger.models.base import get_db
from shop_ledger.schemas.credits import (
    CreditAllocationResponse,
    CreditPoolCreate,
    CreditPoolResponse,
    StaffAllocationCreate,
    TrackUsageRequest,
)
from shop_ledger.services.credit_service import CreditService

router = APIRouter(prefix="/shops/{shop_id}/credits", tags=["AI Credits"])


@router.post("/pools", status_code=201)
def create_credit_pool(
    request: CreditPoolCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CreditService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.create_credit_pool(request),
        response_model=CreditPoolResponse,
        message="Credit pool created",
        invalidator=invalidator,
        name="create_credit_pool",
    )
    return respond(result, 201)


@router.post("/allocations", status_code=201)
def allocate_staff_credits(
    request: StaffAllocationCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CreditService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.allocate_staff_credits(request),
        response_model=CreditAllocationResponse,
        message="Credits allocated",
        invalidator=invalidator,
        name="allocate_staff_credits",
    )
    return respond(result, 201)


@router.post("/usage", status_code=201)
def track_usage(
    request: TrackUsageRequest,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CreditService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.track_usage(request),
        response_model=CreditPoolResponse,
        invalidator=invalidator,
        name="track_usage",
    )
    return respond(result, 201)


@router.get("/pools/{pool_id}/available")
def check_credits_available(
    pool_id: int,
    is_owner: bool = False,
    estimated_tokens: int = 0,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Credits the calling user can still spend from a pool."""
    service = CreditService(db, ctx.shop_id, ctx.user_id)
    result = run_action(
        db,
        lambda: service.check_credits_available(
            pool_id, ctx.user_id, is_owner, estimated_tokens
        ),
        name="check_credits_available",
    )
    return respond(result)
