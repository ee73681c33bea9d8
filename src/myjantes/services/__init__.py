from myjantes.services.catalog import CatalogServiceImpl
from myjantes.services.interfaces import (
    CatalogService,
    CreationOutcome,
    InvoiceDraft,
    InvoiceNumberingService,
    LineItemService,
    NotificationService,
    QuoteDraft,
    ReservationDraft,
    ReservationService,
    ServiceLine,
    ShopSettingsService,
    TotalsService,
)
from myjantes.services.lifecycle import DocumentLifecycleService
from myjantes.services.line_items import LineItemServiceImpl
from myjantes.services.notifications import (
    InMemoryPushChannel,
    NotificationDispatcher,
    PushChannel,
)
from myjantes.services.numbering import InvoiceNumberingServiceImpl
from myjantes.services.reservations import ReservationServiceImpl
from myjantes.services.shop_settings import ShopSettingsServiceImpl
from myjantes.services.totals import TotalsServiceImpl

__all__ = [
    "CatalogService",
    "CatalogServiceImpl",
    "CreationOutcome",
    "DocumentLifecycleService",
    "InMemoryPushChannel",
    "InvoiceDraft",
    "InvoiceNumberingService",
    "InvoiceNumberingServiceImpl",
    "LineItemService",
    "LineItemServiceImpl",
    "NotificationDispatcher",
    "NotificationService",
    "PushChannel",
    "QuoteDraft",
    "ReservationDraft",
    "ReservationService",
    "ReservationServiceImpl",
    "ServiceLine",
    "ShopSettingsService",
    "ShopSettingsServiceImpl",
    "TotalsService",
    "TotalsServiceImpl",
]
