"""Domain exception hierarchy for MyJantes.

All domain-specific exceptions inherit from MyJantesError so the API layer
can render any of them with a single handler. Validation failures and stale
references are kept in separate branches (ValidationError vs NotFoundError)
so callers can tell bad input from a missing record.
"""

from typing import Any
from uuid import UUID


class MyJantesError(Exception):
    """Base exception for all MyJantes errors.

    Includes an error_code and HTTP status for API responses plus extra
    context for structured logs.
    """

    error_code: str = "MYJ_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(MyJantesError):
    """Base exception for input that breaks a domain rule."""

    error_code = "VALIDATION_ERROR"
    status_code = 422


class MissingFieldError(ValidationError):
    error_code = "MISSING_FIELD"

    def __init__(self, field_name: str) -> None:
        super().__init__(
            f"Missing required field: {field_name}",
            context={"field": field_name},
        )


class InvalidAmountError(ValidationError):
    """Raised when a quantity, price or rate is malformed or out of range."""

    error_code = "INVALID_AMOUNT"

    def __init__(self, field_name: str, value: Any, reason: str) -> None:
        super().__init__(
            f"Invalid {field_name} '{value}': {reason}",
            context={"field": field_name, "value": str(value), "reason": reason},
        )


class InvalidSettingError(ValidationError):
    error_code = "INVALID_SETTING"

    def __init__(self, field_name: str, reason: str) -> None:
        super().__init__(
            f"Invalid setting {field_name}: {reason}",
            context={"field": field_name, "reason": reason},
        )


class InsufficientImagesError(ValidationError):
    """Raised when fewer images than required are attached to a document."""

    error_code = "INSUFFICIENT_IMAGES"

    def __init__(self, required: int, provided: int) -> None:
        self.required = required
        self.provided = provided
        self.shortfall = required - provided
        super().__init__(
            f"At least {required} images are required ({provided}/{required} provided, "
            f"{self.shortfall} missing)",
            context={
                "required": required,
                "provided": provided,
                "shortfall": self.shortfall,
            },
        )


class InvalidStatusTransitionError(ValidationError):
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, document: str, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot move {document} from '{current}' to '{requested}'",
            context={"document": document, "current": current, "requested": requested},
        )


class QuoteNotInvoiceableError(ValidationError):
    """Raised when an invoice is requested from a quote that was not approved."""

    error_code = "QUOTE_NOT_INVOICEABLE"

    def __init__(self, quote_id: UUID | str, status: str) -> None:
        super().__init__(
            f"Quote {quote_id} cannot be invoiced while '{status}'",
            context={"quote_id": str(quote_id), "status": status},
        )


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(MyJantesError):
    """Base exception for references that do not resolve."""

    error_code = "NOT_FOUND"
    status_code = 404
    resource = "Record"

    def __init__(self, record_id: UUID | str) -> None:
        self.record_id = record_id
        super().__init__(
            f"{self.resource} not found: {record_id}",
            context={"id": str(record_id)},
        )


class QuoteNotFoundError(NotFoundError):
    error_code = "QUOTE_NOT_FOUND"
    resource = "Quote"


class InvoiceNotFoundError(NotFoundError):
    error_code = "INVOICE_NOT_FOUND"
    resource = "Invoice"


class LineItemNotFoundError(NotFoundError):
    error_code = "LINE_ITEM_NOT_FOUND"
    resource = "Line item"


class ReservationNotFoundError(NotFoundError):
    error_code = "RESERVATION_NOT_FOUND"
    resource = "Reservation"


class ServiceNotFoundError(NotFoundError):
    error_code = "SERVICE_NOT_FOUND"
    resource = "Service"


class NotificationNotFoundError(NotFoundError):
    error_code = "NOTIFICATION_NOT_FOUND"
    resource = "Notification"


# =============================================================================
# Conflict and Database Errors
# =============================================================================


class ConflictError(MyJantesError):
    error_code = "CONFLICT"
    status_code = 409


class DuplicateInvoiceNumberError(ConflictError):
    """Raised when the store rejects an invoice number that is already taken."""

    error_code = "DUPLICATE_INVOICE_NUMBER"

    def __init__(self, invoice_number: str) -> None:
        super().__init__(
            f"Invoice number already issued: {invoice_number}",
            context={"invoice_number": invoice_number},
        )


class DatabaseError(MyJantesError):
    error_code = "DATABASE_ERROR"
    status_code = 500
