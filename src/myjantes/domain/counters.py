from dataclasses import dataclass, field
from datetime import UTC, datetime

from myjantes.domain.value_objects import PaymentMethod

INVOICE_NUMBER_ROOT = "MY-INV-"
DEFAULT_NUMBER_WIDTH = 8

METHOD_CODES: dict[str, str] = {
    PaymentMethod.CASH.value: "ESP",
    PaymentMethod.WIRE_TRANSFER.value: "VIR",
    PaymentMethod.CARD.value: "CBL",
}
OTHER_METHOD_CODE = "OTH"


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class InvoiceCounter:
    payment_type: str
    current_number: int = 0
    updated_at: datetime = field(default_factory=_utc_now)


def invoice_number_prefix(payment_type: PaymentMethod | str) -> str:
    key = payment_type.value if isinstance(payment_type, PaymentMethod) else payment_type
    return INVOICE_NUMBER_ROOT + METHOD_CODES.get(key, OTHER_METHOD_CODE)


def format_invoice_number(
    payment_type: PaymentMethod | str,
    number: int,
    width: int = DEFAULT_NUMBER_WIDTH,
) -> str:
    """Render an invoice number, e.g. ``MY-INV-VIR00000042``."""
    if number < 1:
        raise ValueError(f"Invoice sequence numbers start at 1, got {number}")
    return f"{invoice_number_prefix(payment_type)}{number:0{width}d}"


__all__ = [
    "DEFAULT_NUMBER_WIDTH",
    "INVOICE_NUMBER_ROOT",
    "InvoiceCounter",
    "METHOD_CODES",
    "OTHER_METHOD_CODE",
    "format_invoice_number",
    "invoice_number_prefix",
]
