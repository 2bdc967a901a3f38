"""
Supplier and purchase API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_ledger.actions import run_action
from shop_ledger.api.deps import ShopContext, get_shop_context, respond
from shop_ledger.cache import CacheInvalidator
from shop_ledger.models.base import get_db
from shop_ledger.schemas.ledger import LedgerEntryResponse
from shop_ledger.schemas.supplier import (
    PurchaseCancel,
    PurchaseCreate,
    PurchasePaymentCreate,
    PurchaseResponse,
    PurchaseUpdate,
    SupplierCreate,
    SupplierPaymentCreate,
    SupplierResponse,
    SupplierUpdate,
)
from shop_ledger.services.purchase_service import PurchaseService
from shop_ledger.services.supplier_service import SupplierService

router = APIRouter(prefix="/shops/{shop_id}", tags=["Suppliers"])


# --- Supplier Endpoints ---

@router.post("/suppliers", status_code=201)
def create_supplier(
    request: SupplierCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = SupplierService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.create_supplier(request),
        response_model=SupplierResponse,
        message="Supplier created successfully",
        invalidator=invalidator,
        name="create_supplier",
    )
    return respond(result, 201)


@router.patch("/suppliers/{supplier_id}")
def update_supplier(
    supplier_id: int,
    request: SupplierUpdate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = SupplierService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.update_supplier(supplier_id, request),
        response_model=SupplierResponse,
        message="Supplier updated successfully",
        invalidator=invalidator,
        name="update_supplier",
    )
    return respond(result)


@router.delete("/suppliers/{supplier_id}")
def delete_supplier(
    supplier_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = SupplierService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.delete_supplier(supplier_id),
        response_model=SupplierResponse,
        message="Supplier deleted successfully",
        invalidator=invalidator,
        name="delete_supplier",
    )
    return respond(result)


@router.get("/suppliers/{supplier_id}/balance")
def get_supplier_balance(
    supplier_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    service = SupplierService(db, ctx.shop_id, ctx.user_id)
    result = run_action(
        db,
        lambda: service.get_supplier_balance(supplier_id),
        name="get_supplier_balance",
    )
    return respond(result)


@router.post("/suppliers/payments", status_code=201)
def record_supplier_payment(
    request: SupplierPaymentCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Record a payment to a supplier; credits the supplier's balance."""
    invalidator = CacheInvalidator()
    service = SupplierService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.record_supplier_payment(request),
        response_model=LedgerEntryResponse,
        message="Payment recorded successfully",
        invalidator=invalidator,
        name="record_supplier_payment",
    )
    return respond(result, 201)


# --- Purchase Endpoints ---

@router.post("/purchases", status_code=201)
def create_purchase(
    request: PurchaseCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Create a purchase; debits the supplier by its total."""
    invalidator = CacheInvalidator()
    service = PurchaseService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.create_purchase(request),
        response_model=PurchaseResponse,
        message="Purchase created successfully",
        invalidator=invalidator,
        name="create_purchase",
    )
    return respond(result, 201)


@router.patch("/purchases/{purchase_id}")
def update_purchase(
    purchase_id: int,
    request: PurchaseUpdate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = PurchaseService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.update_purchase(purchase_id, request),
        response_model=PurchaseResponse,
        message="Purchase updated successfully",
        invalidator=invalidator,
        name="update_purchase",
    )
    return respond(result)


@router.post("/purchases/payments", status_code=201)
def record_purchase_payment(
    request: PurchasePaymentCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = PurchaseService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.record_purchase_payment(request),
        response_model=PurchaseResponse,
        message="Payment recorded successfully",
        invalidator=invalidator,
        name="record_purchase_payment",
    )
    return respond(result, 201)


@router.post("/purchases/{purchase_id}/cancel")
def cancel_purchase(
    purchase_id: int,
    request: PurchaseCancel,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = PurchaseService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.cancel_purchase(purchase_id, request),
        response_model=PurchaseResponse,
        message="Purchase cancelled",
        invalidator=invalidator,
        name="cancel_purchase",
    )
    return respond(result)
