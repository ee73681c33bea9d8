from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from myjantes.domain.catalog import Service
from myjantes.domain.counters import InvoiceCounter
from myjantes.domain.documents import Document, Reservation
from myjantes.domain.line_items import LineItem, LineItemDraft
from myjantes.domain.media import MediaReference
from myjantes.domain.notifications import Notification, PushEvent
from myjantes.domain.shop_settings import ShopSettings
from myjantes.domain.value_objects import (
    DocumentKind,
    PaymentMethod,
    ReservationStatus,
)

Amount = Decimal | str | int | float


@dataclass
class ServiceLine:
    """One requested service on a quote form, turned into a line item."""

    description: str | None = None
    unit_price_excluding_tax: Amount | None = None
    quantity: Amount = 1
    service_id: UUID | None = None


@dataclass
class QuoteDraft:
    client_id: str
    service_id: UUID | None = None
    payment_method: PaymentMethod = PaymentMethod.WIRE_TRANSFER
    request_details: dict[str, Any] | None = None
    wheel_count: int | None = None
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    valid_until: datetime | None = None
    price_excluding_tax: Amount | None = None
    tax_rate: Amount | None = None
    tax_amount: Amount | None = None
    quote_amount: Amount | None = None


@dataclass
class InvoiceDraft:
    client_id: str
    quote_id: UUID | None = None
    payment_method: PaymentMethod = PaymentMethod.WIRE_TRANSFER
    wheel_count: int | None = None
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    due_date: datetime | None = None
    price_excluding_tax: Amount | None = None
    tax_rate: Amount | None = None
    tax_amount: Amount | None = None
    amount: Amount | None = None


@dataclass
class ReservationDraft:
    client_id: str
    scheduled_date: datetime
    service_id: UUID | None = None
    quote_id: UUID | None = None
    wheel_count: int | None = None
    diameter: str | None = None
    price_excluding_tax: Amount | None = None
    tax_rate: Amount | None = None
    product_details: str | None = None
    notes: str | None = None
    status: ReservationStatus = ReservationStatus.PENDING


@dataclass
class CreationOutcome:
    """Result of creating a quote or invoice.

    ``incomplete_steps`` lists the best-effort steps (media, notification)
    that failed after the document itself was committed.
    """

    document: Document
    line_items: list[LineItem] = field(default_factory=list)
    media: list[MediaReference] = field(default_factory=list)
    incomplete_steps: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.incomplete_steps


class LineItemService(ABC):
    kind: DocumentKind

    @abstractmethod
    def list_items(self, parent_id: UUID) -> list[LineItem]:
        pass

    @abstractmethod
    def get_item(self, item_id: UUID) -> LineItem | None:
        pass

    @abstractmethod
    def create_item(self, parent_id: UUID, draft: LineItemDraft) -> LineItem:
        pass

    @abstractmethod
    def update_item(self, item_id: UUID, **changes: Any) -> LineItem:
        pass

    @abstractmethod
    def delete_item(self, item_id: UUID) -> LineItem:
        pass


class TotalsService(ABC):
    @abstractmethod
    def recalculate(self, parent_id: UUID) -> Document:
        pass


class InvoiceNumberingService(ABC):
    @abstractmethod
    def next_number(self, payment_type: PaymentMethod | str) -> InvoiceCounter:
        pass

    @abstractmethod
    def format_number(self, payment_type: PaymentMethod | str, number: int) -> str:
        pass

    @abstractmethod
    def allocate(self, payment_type: PaymentMethod | str) -> str:
        pass

    @abstractmethod
    def current(self, payment_type: PaymentMethod | str) -> int:
        pass

    @abstractmethod
    def list_counters(self) -> list[InvoiceCounter]:
        pass


class NotificationService(ABC):
    @abstractmethod
    def emit(
        self,
        user_id: str,
        notification: Notification | None = None,
        event: PushEvent | None = None,
    ) -> bool:
        pass

    @abstractmethod
    def retry_failed(self) -> int:
        pass

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[Notification]:
        pass

    @abstractmethod
    def mark_read(self, notification_id: UUID) -> Notification:
        pass


class ReservationService(ABC):
    @abstractmethod
    def create_reservation(self, draft: ReservationDraft) -> Reservation:
        pass

    @abstractmethod
    def get_reservation(self, reservation_id: UUID) -> Reservation:
        pass

    @abstractmethod
    def list_reservations(self, client_id: str | None = None) -> list[Reservation]:
        pass

    @abstractmethod
    def update_status(
        self, reservation_id: UUID, status: ReservationStatus
    ) -> Reservation:
        pass


class CatalogService(ABC):
    @abstractmethod
    def create_service(
        self,
        name: str,
        description: str = "",
        base_price: Amount | None = None,
        category: str | None = None,
    ) -> Service:
        pass

    @abstractmethod
    def get_service(self, service_id: UUID) -> Service:
        pass

    @abstractmethod
    def list_services(self, include_inactive: bool = False) -> list[Service]:
        pass

    @abstractmethod
    def update_service(self, service_id: UUID, **changes: Any) -> Service:
        pass

    @abstractmethod
    def deactivate_service(self, service_id: UUID) -> Service:
        pass


class ShopSettingsService(ABC):
    @abstractmethod
    def get_settings(self) -> ShopSettings:
        pass

    @abstractmethod
    def update_settings(self, **changes: Any) -> ShopSettings:
        pass


__all__ = [
    "Amount",
    "CatalogService",
    "CreationOutcome",
    "InvoiceDraft",
    "InvoiceNumberingService",
    "LineItemService",
    "NotificationService",
    "QuoteDraft",
    "ReservationDraft",
    "ReservationService",
    "ServiceLine",
    "ShopSettingsService",
    "TotalsService",
]
