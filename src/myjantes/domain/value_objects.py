from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from myjantes.exceptions import InvalidAmountError

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


class DocumentKind(str, Enum):
    QUOTE = "quote"
    INVOICE = "invoice"


class PaymentMethod(str, Enum):
    CASH = "cash"
    WIRE_TRANSFER = "wire_transfer"
    CARD = "card"


class QuoteStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class RoundingMode(str, Enum):
    """How document aggregates are rounded.

    PER_LINE sums the two-decimal amounts already stored on each line and
    rounds the aggregate again, which reproduces historical totals. SINGLE
    recomputes every line at full precision and rounds once at the end.
    """

    PER_LINE = "per_line"
    SINGLE = "single"


class NotificationType(str, Enum):
    QUOTE = "quote"
    INVOICE = "invoice"
    RESERVATION = "reservation"
    SERVICE = "service"


def quantize_money(value: Decimal) -> Decimal:
    """Round to currency minor units (two decimals, half up)."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_decimal(
    value: Decimal | str | int | float | None,
    field_name: str,
    *,
    minimum: Decimal | None = None,
    maximum: Decimal | None = None,
) -> Decimal:
    """Parse a user supplied number into a Decimal and check its bounds.

    Floats go through ``str`` first so 0.1 stays 0.1.
    """
    if value is None or value == "":
        raise InvalidAmountError(field_name, value, "value is required")
    if isinstance(value, bool):
        raise InvalidAmountError(field_name, value, "not a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise InvalidAmountError(field_name, value, "not a number") from e
    if not result.is_finite():
        raise InvalidAmountError(field_name, value, "not a finite number")
    if minimum is not None and result < minimum:
        raise InvalidAmountError(field_name, value, f"must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise InvalidAmountError(field_name, value, f"must be <= {maximum}")
    return result


def parse_optional_decimal(
    value: Decimal | str | int | float | None, field_name: str
) -> Decimal | None:
    if value is None or value == "":
        return None
    return parse_decimal(value, field_name)


__all__ = [
    "CENTS",
    "HUNDRED",
    "ZERO",
    "DocumentKind",
    "InvoiceStatus",
    "MediaType",
    "NotificationType",
    "PaymentMethod",
    "QuoteStatus",
    "ReservationStatus",
    "RoundingMode",
    "parse_decimal",
    "parse_optional_decimal",
    "quantize_money",
]
