"""
Typed exceptions raised by the services.

Each exception carries a stable, machine-readable ``code``.
The action boundary (shop_ledger.actions) turns them into the
failure envelope; callers never parse messages.
"""


class LedgerError(Exception):
    """Base class for every expected business failure."""

    code: str = "unexpected_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class UnauthorizedError(LedgerError):
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationFailedError(LedgerError):
    code = "validation_error"


class NotFoundError(LedgerError):
    code = "not_found"

    def __init__(self, resource: str, resource_id=None, code: str | None = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message, code)


class DuplicateError(LedgerError):
    code = "duplicate_name"


class InactiveError(LedgerError):
    code = "inactive"


class HasBalanceError(LedgerError):
    code = "has_balance"


class HasOpenRecordsError(LedgerError):
    code = "has_open_records"


class InsufficientBudgetError(LedgerError):
    code = "insufficient_budget"


class InsufficientCreditsError(LedgerError):
    code = "insufficient_credits"


class OverlappingAllocationError(LedgerError):
    code = "overlapping_allocation"


class InvalidTransitionError(LedgerError):
    code = "invalid_status_transition"


class ConcurrentModificationError(LedgerError):
    """
    A version check failed.

    When event_type is set the action boundary writes an audit
    record for the rejected write after rolling back.
    """

    code = "concurrent_modification"

    def __init__(
        self,
        message: str,
        *,
        shop_id: str | None = None,
        actor_id: str | None = None,
        event_type: str | None = None,
        details: dict | None = None,
    ):
        self.shop_id = shop_id
        self.actor_id = actor_id
        self.event_type = event_type
        self.details = details or {}
        super().__init__(message)


class ImmutableEntryError(LedgerError):
    """Raised when something tries to change a written ledger row."""

    code = "immutable_entry"
