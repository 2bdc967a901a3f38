"""
Customer API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_ledger.actions import run_action
from shop_ledger.api.deps import ShopContext, get_shop_context, respond
from shop_ledger.cache import CacheInvalidator
from shop_ledger.models.base import get_db
from shop_ledger.schemas.customer import (
    CustomerChargeCreate,
    CustomerCreate,
    CustomerResponse,
    CustomerUpdate,
)
from shop_ledger.schemas.ledger import LedgerEntryResponse
from shop_ledger.services.customer_service import CustomerService

router = APIRouter(prefix="/shops/{shop_id}/customers", tags=["Customers"])


@router.post("", status_code=201)
def create_customer(
    request: CustomerCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CustomerService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.create_customer(request),
        response_model=CustomerResponse,
        message="Customer created successfully",
        invalidator=invalidator,
        name="create_customer",
    )
    return respond(result, 201)


@router.patch("/{customer_id}")
def update_customer(
    customer_id: int,
    request: CustomerUpdate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CustomerService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.update_customer(customer_id, request),
        response_model=CustomerResponse,
        message="Customer updated successfully",
        invalidator=invalidator,
        name="update_customer",
    )
    return respond(result)


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CustomerService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.delete_customer(customer_id),
        response_model=CustomerResponse,
        message="Customer deleted successfully",
        invalidator=invalidator,
        name="delete_customer",
    )
    return respond(result)


@router.get("/{customer_id}/balance")
def get_customer_balance(
    customer_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    service = CustomerService(db, ctx.shop_id, ctx.user_id)
    result = run_action(
        db,
        lambda: service.get_customer_balance(customer_id),
        name="get_customer_balance",
    )
    return respond(result)


@router.post("/charges", status_code=201)
def record_sale_charge(
    request: CustomerChargeCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CustomerService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.record_sale_charge(request),
        response_model=LedgerEntryResponse,
        message="Charge recorded successfully",
        invalidator=invalidator,
        name="record_sale_charge",
    )
    return respond(result, 201)


@router.post("/payments", status_code=201)
def record_customer_payment(
    request: CustomerChargeCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = CustomerService(db, ctx.shop_id, ctx.user_id, invalidator)
    result = run_action(
        db,
        lambda: service.record_customer_payment(request),
        response_model=LedgerEntryResponse,
        message="Payment recorded successfully",
        invalidator=invalidator,
        name="record_customer_payment",
    )
    return respond(result, 201)
