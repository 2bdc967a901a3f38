"""
Shop Ledger: FastAPI application.

This is the entry point for the application.
All routers and exception handlers are registered here.
"""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from shop_ledger.actions import first_error_message
from shop_ledger.api.budgets import router as budgets_router
from shop_ledger.api.credits import router as credits_router
from shop_ledger.api.customers import router as customers_router
from shop_ledger.api.deps import respond
from shop_ledger.api.health import router as health_router
from shop_ledger.api.ledger import router as ledger_router
from shop_ledger.api.suppliers import router as suppliers_router
from shop_ledger.api.workshops import router as workshops_router
from shop_ledger.config import get_settings
from shop_ledger.exceptions import LedgerError
from shop_ledger.logging_config import configure_logging
from shop_ledger.schemas.result import ActionFailure

settings = get_settings()
configure_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Ledger and balance accounting for jewelry shops",
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    # Raised outside run_action, e.g. by the caller dependencies.
    return respond(ActionFailure(error=exc.message, code=exc.code))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    failure = ActionFailure(
        error=first_error_message(exc.errors()), code="validation_error"
    )
    return respond(failure)


# Register routers
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(suppliers_router)
app.include_router(workshops_router)
app.include_router(customers_router)
app.include_router(budgets_router)
app.include_router(credits_router)


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    uvicorn.run(
        "shop_ledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
