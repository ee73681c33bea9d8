from dataclasses import dataclass
from typing import Any

from myjantes.domain.value_objects import DocumentKind
from myjantes.repositories.interfaces import (
    DocumentRepository,
    InvoiceCounterRepository,
    InvoiceRepository,
    LineItemRepository,
    MediaRepository,
    NotificationRepository,
    QuoteRepository,
    ReservationRepository,
    ServiceRepository,
    ShopSettingsRepository,
)
from myjantes.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteInvoiceCounterRepository,
    SQLiteInvoiceRepository,
    SQLiteLineItemRepository,
    SQLiteMediaRepository,
    SQLiteNotificationRepository,
    SQLiteQuoteRepository,
    SQLiteReservationRepository,
    SQLiteServiceRepository,
    SQLiteShopSettingsRepository,
)


@dataclass
class RepositoryBundle:
    """Every repository the services need, built over one database."""

    quotes: QuoteRepository
    invoices: InvoiceRepository
    quote_items: LineItemRepository
    invoice_items: LineItemRepository
    counters: InvoiceCounterRepository
    media: MediaRepository
    notifications: NotificationRepository
    reservations: ReservationRepository
    services: ServiceRepository
    settings: ShopSettingsRepository

    def documents(self, kind: DocumentKind) -> DocumentRepository:
        return self.quotes if kind == DocumentKind.QUOTE else self.invoices

    def line_items(self, kind: DocumentKind) -> LineItemRepository:
        return self.quote_items if kind == DocumentKind.QUOTE else self.invoice_items


def create_repositories(database: Any) -> RepositoryBundle:
    """Build the repository bundle matching the database backend."""
    if isinstance(database, SQLiteDatabase):
        return RepositoryBundle(
            quotes=SQLiteQuoteRepository(database),
            invoices=SQLiteInvoiceRepository(database),
            quote_items=SQLiteLineItemRepository(database, DocumentKind.QUOTE),
            invoice_items=SQLiteLineItemRepository(database, DocumentKind.INVOICE),
            counters=SQLiteInvoiceCounterRepository(database),
            media=SQLiteMediaRepository(database),
            notifications=SQLiteNotificationRepository(database),
            reservations=SQLiteReservationRepository(database),
            services=SQLiteServiceRepository(database),
            settings=SQLiteShopSettingsRepository(database),
        )

    from myjantes.repositories.postgres import (
        PostgresDatabase,
        PostgresInvoiceCounterRepository,
        PostgresInvoiceRepository,
        PostgresLineItemRepository,
        PostgresMediaRepository,
        PostgresNotificationRepository,
        PostgresQuoteRepository,
        PostgresReservationRepository,
        PostgresServiceRepository,
        PostgresShopSettingsRepository,
    )

    if not isinstance(database, PostgresDatabase):
        raise TypeError(f"Unsupported database: {type(database).__name__}")
    return RepositoryBundle(
        quotes=PostgresQuoteRepository(database),
        invoices=PostgresInvoiceRepository(database),
        quote_items=PostgresLineItemRepository(database, DocumentKind.QUOTE),
        invoice_items=PostgresLineItemRepository(database, DocumentKind.INVOICE),
        counters=PostgresInvoiceCounterRepository(database),
        media=PostgresMediaRepository(database),
        notifications=PostgresNotificationRepository(database),
        reservations=PostgresReservationRepository(database),
        services=PostgresServiceRepository(database),
        settings=PostgresShopSettingsRepository(database),
    )


__all__ = [
    "DocumentRepository",
    "InvoiceCounterRepository",
    "InvoiceRepository",
    "LineItemRepository",
    "MediaRepository",
    "NotificationRepository",
    "QuoteRepository",
    "RepositoryBundle",
    "ReservationRepository",
    "SQLiteDatabase",
    "SQLiteInvoiceCounterRepository",
    "SQLiteInvoiceRepository",
    "SQLiteLineItemRepository",
    "SQLiteMediaRepository",
    "SQLiteNotificationRepository",
    "SQLiteQuoteRepository",
    "SQLiteReservationRepository",
    "SQLiteServiceRepository",
    "SQLiteShopSettingsRepository",
    "ServiceRepository",
    "ShopSettingsRepository",
    "create_repositories",
]
