"""
Workshop and workshop order API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_ledger.actions import run_action
from shop_ledger.api.deps import ShopContext, get_shop_context, respond
from shop_ledger.cache import CacheInvalidator
from shop_ledger.models.base import get_db
from shop_ledger.schemas.ledger import LedgerEntryResponse
from shop_ledger.schemas.workshop import (
    OrderStatusUpdate,
    WorkshopCreate,
    WorkshopOrderCreate,
    WorkshopOrderResponse,
    WorkshopPaymentCreate,
    WorkshopResponse,
    WorkshopUpdate,
)
from shop_ledger.services.workshop_service import WorkshopService

router = APIRouter(prefix="/shops/{shop_id}/workshops", tags=["Workshops"])


@router.post("", status_code=201)
def create_workshop(
    request: WorkshopCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = WorkshopService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.create_workshop(request),
        response_model=WorkshopResponse,
        message="Workshop created successfully",
        invalidator=invalidator,
        name="create_workshop",
    )
    return respond(result, 201)


@router.patch("/{workshop_id}")
def update_workshop(
    workshop_id: int,
    request: WorkshopUpdate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = WorkshopService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.update_workshop(workshop_id, request),
        response_model=WorkshopResponse,
        message="Workshop updated successfully",
        invalidator=invalidator,
        name="update_workshop",
    )
    return respond(result)


@router.delete("/{workshop_id}")
def delete_workshop(
    workshop_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = WorkshopService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.delete_workshop(workshop_id),
        response_model=WorkshopResponse,
        message="Workshop deleted successfully",
        invalidator=invalidator,
        name="delete_workshop",
    )
    return respond(result)


@router.post("/orders", status_code=201)
def create_order(
    request: WorkshopOrderCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = WorkshopService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.create_order(request),
        response_model=WorkshopOrderResponse,
        message="Order created successfully",
        invalidator=invalidator,
        name="create_order",
    )
    return respond(result, 201)


@router.post("/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    request: OrderStatusUpdate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = WorkshopService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.update_order_status(order_id, request),
        response_model=WorkshopOrderResponse,
        message=f"Order status updated to {request.new_status.value}",
        invalidator=invalidator,
        name="update_order_status",
    )
    return respond(result)


@router.post("/payments", status_code=201)
def record_workshop_payment(
    request: WorkshopPaymentCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Record a payment to a workshop; credits the workshop's balance."""
    invalidator = CacheInvalidator()
    service = WorkshopService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.record_workshop_payment(request),
        response_model=LedgerEntryResponse,
        message="Payment recorded successfully",
        invalidator=invalidator,
        name="record_workshop_payment",
    )
    return respond(result, 201)
