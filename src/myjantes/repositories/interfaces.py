from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from myjantes.domain.aggregates import DocumentTotals
from myjantes.domain.catalog import Service
from myjantes.domain.counters import InvoiceCounter
from myjantes.domain.documents import Document, Invoice, Quote, Reservation
from myjantes.domain.line_items import LineItem
from myjantes.domain.media import MediaReference
from myjantes.domain.notifications import Notification
from myjantes.domain.shop_settings import ShopSettings
from myjantes.domain.value_objects import DocumentKind


class DocumentRepository(ABC):
    """Operations the totals engine needs on a parent document."""

    kind: DocumentKind

    @abstractmethod
    def get(self, document_id: UUID) -> Document | None:
        pass

    @abstractmethod
    def save_totals(self, document_id: UUID, totals: DocumentTotals) -> None:
        pass


class QuoteRepository(DocumentRepository):
    kind = DocumentKind.QUOTE

    @abstractmethod
    def add(self, quote: Quote) -> None:
        pass

    @abstractmethod
    def get(self, quote_id: UUID) -> Quote | None:
        pass

    @abstractmethod
    def list_all(self, client_id: str | None = None) -> Iterable[Quote]:
        pass

    @abstractmethod
    def update(self, quote: Quote) -> None:
        pass


class InvoiceRepository(DocumentRepository):
    kind = DocumentKind.INVOICE

    @abstractmethod
    def add(self, invoice: Invoice) -> None:
        pass

    @abstractmethod
    def get(self, invoice_id: UUID) -> Invoice | None:
        pass

    @abstractmethod
    def get_by_number(self, invoice_number: str) -> Invoice | None:
        pass

    @abstractmethod
    def list_all(self, client_id: str | None = None) -> Iterable[Invoice]:
        pass

    @abstractmethod
    def update(self, invoice: Invoice) -> None:
        pass


class LineItemRepository(ABC):
    """Line items of one document kind (quote items or invoice items)."""

    kind: DocumentKind

    @abstractmethod
    def add(self, item: LineItem) -> None:
        pass

    @abstractmethod
    def get(self, item_id: UUID) -> LineItem | None:
        pass

    @abstractmethod
    def list_by_parent(self, parent_id: UUID) -> Iterable[LineItem]:
        """Items of a parent in creation order; empty for unknown parents."""

    @abstractmethod
    def update(self, item: LineItem) -> None:
        pass

    @abstractmethod
    def delete(self, item_id: UUID) -> None:
        pass


class InvoiceCounterRepository(ABC):
    @abstractmethod
    def get(self, payment_type: str) -> InvoiceCounter | None:
        pass

    @abstractmethod
    def increment(self, payment_type: str) -> InvoiceCounter:
        """Atomically create the counter at 1 or add 1 to it, returning the result."""

    @abstractmethod
    def list_all(self) -> Iterable[InvoiceCounter]:
        pass


class MediaRepository(ABC):
    @abstractmethod
    def add(self, media: MediaReference) -> None:
        pass

    @abstractmethod
    def list_for_document(
        self, document_kind: DocumentKind, document_id: UUID
    ) -> Iterable[MediaReference]:
        pass


class NotificationRepository(ABC):
    @abstractmethod
    def add(self, notification: Notification) -> None:
        pass

    @abstractmethod
    def get(self, notification_id: UUID) -> Notification | None:
        pass

    @abstractmethod
    def list_for_user(self, user_id: str) -> Iterable[Notification]:
        pass

    @abstractmethod
    def mark_read(self, notification_id: UUID) -> None:
        pass


class ReservationRepository(ABC):
    @abstractmethod
    def add(self, reservation: Reservation) -> None:
        pass

    @abstractmethod
    def get(self, reservation_id: UUID) -> Reservation | None:
        pass

    @abstractmethod
    def list_all(self, client_id: str | None = None) -> Iterable[Reservation]:
        pass

    @abstractmethod
    def update(self, reservation: Reservation) -> None:
        pass


class ServiceRepository(ABC):
    @abstractmethod
    def add(self, service: Service) -> None:
        pass

    @abstractmethod
    def get(self, service_id: UUID) -> Service | None:
        pass

    @abstractmethod
    def list_active(self) -> Iterable[Service]:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Service]:
        pass

    @abstractmethod
    def update(self, service: Service) -> None:
        pass


class ShopSettingsRepository(ABC):
    """Storage for the single workshop settings record."""

    @abstractmethod
    def get(self) -> ShopSettings | None:
        pass

    @abstractmethod
    def save(self, settings: ShopSettings) -> None:
        """Insert the record, or replace it when it already exists."""
        pass
