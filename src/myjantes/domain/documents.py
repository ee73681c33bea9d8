from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from myjantes.domain.aggregates import DocumentTotals, LegacyAmounts
from myjantes.domain.value_objects import (
    InvoiceStatus,
    PaymentMethod,
    QuoteStatus,
    ReservationStatus,
)
from myjantes.exceptions import InvalidStatusTransitionError


def _utc_now() -> datetime:
    return datetime.now(UTC)


QUOTE_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.PENDING: frozenset({QuoteStatus.APPROVED, QuoteStatus.REJECTED}),
    QuoteStatus.APPROVED: frozenset({QuoteStatus.COMPLETED}),
    QuoteStatus.REJECTED: frozenset(),
    QuoteStatus.COMPLETED: frozenset(),
}

INVOICE_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.PENDING: frozenset(
        {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}
    ),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.OVERDUE: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}

RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}

# Quotes in these states can be turned into an invoice.
INVOICEABLE_QUOTE_STATUSES = frozenset({QuoteStatus.APPROVED, QuoteStatus.COMPLETED})


@dataclass
class Quote:
    client_id: str
    service_id: UUID | None = None
    status: QuoteStatus = QuoteStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.WIRE_TRANSFER
    request_details: dict[str, Any] | None = None
    wheel_count: int | None = None
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    valid_until: datetime | None = None
    legacy: LegacyAmounts = field(default_factory=LegacyAmounts)
    totals: DocumentTotals = field(default_factory=DocumentTotals)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def quote_amount(self) -> Decimal:
        return self.totals.total_including_tax

    @property
    def is_invoiceable(self) -> bool:
        return self.status in INVOICEABLE_QUOTE_STATUSES

    def transition_to(self, status: QuoteStatus) -> None:
        if status not in QUOTE_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError("quote", self.status.value, status.value)
        self.status = status
        self.updated_at = _utc_now()


@dataclass
class Invoice:
    client_id: str
    invoice_number: str
    quote_id: UUID | None = None
    status: InvoiceStatus = InvoiceStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.WIRE_TRANSFER
    wheel_count: int | None = None
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    due_date: datetime | None = None
    paid_at: datetime | None = None
    legacy: LegacyAmounts = field(default_factory=LegacyAmounts)
    totals: DocumentTotals = field(default_factory=DocumentTotals)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def amount(self) -> Decimal:
        return self.totals.total_including_tax

    def transition_to(self, status: InvoiceStatus) -> None:
        if status not in INVOICE_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(
                "invoice", self.status.value, status.value
            )
        self.status = status
        self.updated_at = _utc_now()
        if status == InvoiceStatus.PAID:
            self.paid_at = self.updated_at


@dataclass
class Reservation:
    client_id: str
    scheduled_date: datetime
    service_id: UUID | None = None
    quote_id: UUID | None = None
    status: ReservationStatus = ReservationStatus.PENDING
    wheel_count: int | None = None
    diameter: str | None = None
    price_excluding_tax: Decimal | None = None
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None
    product_details: str | None = None
    notes: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def transition_to(self, status: ReservationStatus) -> None:
        if status not in RESERVATION_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(
                "reservation", self.status.value, status.value
            )
        self.status = status
        self.updated_at = _utc_now()


Document = Quote | Invoice


__all__ = [
    "Document",
    "INVOICEABLE_QUOTE_STATUSES",
    "INVOICE_TRANSITIONS",
    "Invoice",
    "QUOTE_TRANSITIONS",
    "Quote",
    "RESERVATION_TRANSITIONS",
    "Reservation",
]
