"""
Action boundary.

run_action() executes one unit of work and converts its outcome
into the result envelope. Nothing raised by a service crosses
this boundary: every failure rolls the whole unit of work back
and comes out as {"success": false, "error", "code"}.

Cache invalidation is only sent after the commit succeeded. Writes
refused by a version check are audited once the rollback is done.
"""

import json
import logging
from typing import Any, Callable

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from shop_ledger.cache import CacheInvalidator
from shop_ledger.exceptions import ConcurrentModificationError, LedgerError
from shop_ledger.models.audit_log import AuditLog
from shop_ledger.schemas.result import ActionFailure, ActionResult, ActionSuccess

logger = logging.getLogger(__name__)

UNEXPECTED_MESSAGE = "An unexpected error occurred"

# Unique constraint name fragment -> failure code
DUPLICATE_CODES = {
    "purchase_number": "duplicate_purchase_number",
    "order_number": "duplicate_order_number",
    "credit_allocation_user": "duplicate_allocation",
    "sequence": "concurrent_modification",
}


def first_error_message(errors: list) -> str:
    """
    Message of the first violated rule, without pydantic's
    "Value error, " prefix. Field constraint messages are prefixed
    with the field name.
    """
    if not errors:
        return "Validation failed"
    message = errors[0].get("msg", "Validation failed")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    location = [str(part) for part in errors[0].get("loc") or () if part != "body"]
    if location and errors[0].get("type") != "value_error":
        return f"{location[-1]}: {message}"
    return message


def integrity_failure(error: IntegrityError) -> ActionFailure:
    text = str(error.orig).lower()
    for fragment, code in DUPLICATE_CODES.items():
        if fragment in text:
            if code == "concurrent_modification":
                return ActionFailure(
                    error="The account was modified concurrently",
                    code=code,
                )
            return ActionFailure(error="Record already exists", code=code)
    if "unique" in text or "duplicate" in text:
        return ActionFailure(error="Record already exists", code="duplicate_record")
    return ActionFailure(error="Database constraint violated", code="database_error")


def serialize(result: Any, response_model: type[BaseModel] | None) -> Any:
    if response_model is None or result is None:
        return result
    if isinstance(result, (list, tuple)):
        return [response_model.model_validate(item) for item in result]
    return response_model.model_validate(result)


def record_rejected_write(db: Session, error: ConcurrentModificationError) -> None:
    """
    Audit a write refused by a version check.

    Runs in its own transaction after the unit of work was rolled
    back. A failure here is logged and does not change the result.
    """
    try:
        db.add(AuditLog(
            shop_id=error.shop_id,
            actor_id=error.actor_id,
            event_type=error.event_type,
            details=json.dumps(error.details),
        ))
        db.commit()
    except SQLAlchemyError:
        logger.exception("Could not audit rejected write %s", error.event_type)
        db.rollback()


def run_action(
    db: Session,
    operation: Callable[[], Any],
    *,
    response_model: type[BaseModel] | None = None,
    message: str | Callable[[Any], str] | None = None,
    invalidator: CacheInvalidator | None = None,
    name: str | None = None,
) -> ActionResult:
    """
    Run operation() as one atomic unit of work.

    On success the session is committed, the stale views are
    sent and the (optionally serialized) result is returned as
    data. On any failure the session is rolled back and the
    failure envelope is returned.
    """
    name = name or getattr(operation, "__name__", "action")
    rejected = None

    try:
        result = operation()
        data = serialize(result, response_model)
        db.commit()
    except LedgerError as e:
        if isinstance(e, ConcurrentModificationError) and e.event_type:
            rejected = e
        failure = ActionFailure(error=e.message, code=e.code)
    except ValidationError as e:
        failure = ActionFailure(
            error=first_error_message(e.errors()), code="validation_error"
        )
    except StaleDataError:
        failure = ActionFailure(
            error="The record was modified by another user. Reload and try again.",
            code="concurrent_modification",
        )
    except IntegrityError as e:
        failure = integrity_failure(e)
    except SQLAlchemyError:
        logger.exception("[%s] Database error", name)
        failure = ActionFailure(error="Database operation failed", code="database_error")
    except Exception:
        logger.exception("[%s] Unexpected error", name)
        failure = ActionFailure(error=UNEXPECTED_MESSAGE, code="unexpected_error")
    else:
        if invalidator is not None:
            invalidator.flush()
        if callable(message):
            message = message(result)
        return ActionSuccess(data=data, message=message)

    db.rollback()
    if invalidator is not None:
        invalidator.discard()
    if rejected is not None:
        record_rejected_write(db, rejected)
    if failure.code not in ("database_error", "unexpected_error"):
        logger.warning("[%s] Rejected (%s): %s", name, failure.code, failure.error)
    return failure
