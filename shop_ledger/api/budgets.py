"""
Budget API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_ledger.actions import run_action
from shop_ledger.api.deps import ShopContext, get_shop_context, respond
from shop_ledger.cache import CacheInvalidator
from shop_ledger.models.base import get_db
from shop_ledger.schemas.budget import (
    AdjustAllocationRequest,
    AllocateBudgetRequest,
    BudgetAllocationResponse,
    BudgetCategoryCreate,
    BudgetCategoryResponse,
    BudgetCategoryUpdate,
    ExpenseCreate,
    TransferRequest,
    TransferResponse,
)
from shop_ledger.services.budget_service import BudgetService

router = APIRouter(prefix="/shops/{shop_id}/budgets", tags=["Budgets"])


def _service(db: Session, ctx: ShopContext, invalidator=None) -> BudgetService:
    return BudgetService(db, ctx.shop_id, ctx.user_id, invalidator)


# --- Category Endpoints ---

@router.post("/categories", status_code=201)
def create_budget_category(
    request: BudgetCategoryCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.create_budget_category(request),
        response_model=BudgetCategoryResponse,
        message="Budget category created successfully",
        invalidator=invalidator,
        name="create_budget_category",
    )
    return respond(result, 201)


@router.patch("/categories/{category_id}")
def update_budget_category(
    category_id: int,
    request: BudgetCategoryUpdate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.update_budget_category(category_id, request),
        response_model=BudgetCategoryResponse,
        message="Budget category updated successfully",
        invalidator=invalidator,
        name="update_budget_category",
    )
    return respond(result)


@router.delete("/categories/{category_id}")
def delete_budget_category(
    category_id: int,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.delete_budget_category(category_id),
        response_model=BudgetCategoryResponse,
        message="Budget category deleted successfully",
        invalidator=invalidator,
        name="delete_budget_category",
    )
    return respond(result)


# --- Allocation Endpoints ---

@router.post("/allocations", status_code=201)
def allocate_budget(
    request: AllocateBudgetRequest,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.allocate_budget(request),
        response_model=BudgetAllocationResponse,
        message="Budget allocated successfully",
        invalidator=invalidator,
        name="allocate_budget",
    )
    return respond(result, 201)


@router.post("/allocations/adjust")
def adjust_allocation_amount(
    request: AdjustAllocationRequest,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    direction = "increased" if request.delta > 0 else "decreased"
    result = run_action(
        db,
        lambda: service.adjust_allocation_amount(request),
        response_model=BudgetAllocationResponse,
        message=f"Budget {direction} successfully",
        invalidator=invalidator,
        name="adjust_allocation_amount",
    )
    return respond(result)


@router.post("/transfers")
def transfer_between_allocations(
    request: TransferRequest,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    """Move budget between two allocations; both legs or neither."""
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)

    def transfer():
        source, destination = service.transfer_between_allocations(request)
        return TransferResponse(
            from_allocation=BudgetAllocationResponse.model_validate(source),
            to_allocation=BudgetAllocationResponse.model_validate(destination),
        )

    result = run_action(
        db,
        transfer,
        message=f"Successfully transferred {request.amount:.2f} between budget allocations",
        invalidator=invalidator,
        name="transfer_between_allocations",
    )
    return respond(result)


@router.post("/expenses", status_code=201)
def record_expense(
    request: ExpenseCreate,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    invalidator = CacheInvalidator()
    service = _service(db, ctx, invalidator)
    result = run_action(
        db,
        lambda: service.record_expense(request),
        response_model=BudgetAllocationResponse,
        message="Expense recorded",
        invalidator=invalidator,
        name="record_expense",
    )
    return respond(result, 201)


@router.get("/summary")
def get_budget_summary(
    period_start: date,
    period_end: date,
    category_id: int | None = None,
    ctx: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
):
    service = _service(db, ctx)
    result = run_action(
        db,
        lambda: service.get_budget_summary(period_start, period_end, category_id),
        name="get_budget_summary",
    )
    return respond(result)
