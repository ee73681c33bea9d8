from myjantes.domain.aggregates import (
    Aggregates,
    DocumentTotals,
    FromLegacyFields,
    FromLineItems,
    LegacyAmounts,
    resolve_aggregates,
)
from myjantes.domain.catalog import Service
from myjantes.domain.counters import InvoiceCounter, format_invoice_number
from myjantes.domain.documents import Document, Invoice, Quote, Reservation
from myjantes.domain.line_items import LineItem, LineItemDraft, compute_line_totals
from myjantes.domain.media import MediaFile, MediaReference
from myjantes.domain.notifications import EventType, Notification, PushEvent
from myjantes.domain.shop_settings import ShopSettings
from myjantes.domain.value_objects import (
    DocumentKind,
    InvoiceStatus,
    MediaType,
    NotificationType,
    PaymentMethod,
    QuoteStatus,
    ReservationStatus,
    RoundingMode,
)

__all__ = [
    "Aggregates",
    "Document",
    "DocumentKind",
    "DocumentTotals",
    "EventType",
    "FromLegacyFields",
    "FromLineItems",
    "Invoice",
    "InvoiceCounter",
    "InvoiceStatus",
    "LegacyAmounts",
    "LineItem",
    "LineItemDraft",
    "MediaFile",
    "MediaReference",
    "MediaType",
    "Notification",
    "NotificationType",
    "PaymentMethod",
    "PushEvent",
    "Quote",
    "QuoteStatus",
    "Reservation",
    "ReservationStatus",
    "RoundingMode",
    "Service",
    "ShopSettings",
    "compute_line_totals",
    "format_invoice_number",
    "resolve_aggregates",
]
