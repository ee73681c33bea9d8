"""API routes for MyJantes."""

from decimal import Decimal
from typing import Annotated, cast
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from myjantes import __version__
from myjantes.api.schemas import (
    CounterResponse,
    HealthResponse,
    InvoiceCreate,
    InvoiceCreatedResponse,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    LineItemCreate,
    LineItemMutationResponse,
    LineItemResponse,
    LineItemUpdate,
    MediaResponse,
    NotificationResponse,
    NotificationRetryResponse,
    QuoteCreate,
    QuoteCreatedResponse,
    QuoteResponse,
    QuoteStatusUpdate,
    QuoteUpdate,
    ReservationCreate,
    ReservationResponse,
    ReservationStatusUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    ShopSettingsResponse,
    ShopSettingsUpdate,
    TotalsResponse,
)
from myjantes.container import Container, get_container
from myjantes.domain.catalog import Service
from myjantes.domain.counters import InvoiceCounter
from myjantes.domain.documents import Document, Invoice, Quote, Reservation
from myjantes.domain.line_items import LineItem, LineItemDraft
from myjantes.domain.media import MediaFile, MediaReference
from myjantes.domain.notifications import Notification
from myjantes.domain.shop_settings import ShopSettings
from myjantes.domain.value_objects import DocumentKind
from myjantes.services.interfaces import (
    InvoiceDraft,
    QuoteDraft,
    ReservationDraft,
    ServiceLine,
)

ContainerDep = Annotated[Container, Depends(get_container)]

# Create routers
health_router = APIRouter(tags=["health"])
service_router = APIRouter(prefix="/services", tags=["services"])
quote_router = APIRouter(prefix="/quotes", tags=["quotes"])
quote_item_router = APIRouter(prefix="/quote-items", tags=["quotes"])
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])
invoice_item_router = APIRouter(prefix="/invoice-items", tags=["invoices"])
reservation_router = APIRouter(prefix="/reservations", tags=["reservations"])
notification_router = APIRouter(prefix="/notifications", tags=["notifications"])
counter_router = APIRouter(prefix="/counters", tags=["counters"])
settings_router = APIRouter(prefix="/settings", tags=["settings"])


def _dec(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _service_to_response(service: Service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        name=service.name,
        description=service.description,
        base_price=_dec(service.base_price),
        category=service.category,
        is_active=service.is_active,
        created_at=service.created_at,
        updated_at=service.updated_at,
    )


def _media_to_response(media: MediaReference) -> MediaResponse:
    return MediaResponse(
        id=media.id,
        file_path=media.file_path,
        file_type=media.file_type.value,
        file_name=media.file_name,
        created_at=media.created_at,
    )


def _item_to_response(item: LineItem) -> LineItemResponse:
    return LineItemResponse(
        id=item.id,
        parent_id=item.parent_id,
        description=item.description,
        quantity=str(item.quantity),
        unit_price_excluding_tax=str(item.unit_price_excluding_tax),
        tax_rate=str(item.tax_rate),
        total_excluding_tax=str(item.total_excluding_tax),
        tax_amount=str(item.tax_amount),
        total_including_tax=str(item.total_including_tax),
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _totals_to_response(document: Document) -> TotalsResponse:
    return TotalsResponse(
        document_id=document.id,
        price_excluding_tax=str(document.totals.price_excluding_tax),
        tax_amount=str(document.totals.tax_amount),
        total_including_tax=str(document.totals.total_including_tax),
        tax_rate=str(document.totals.tax_rate),
    )


def _quote_to_response(quote: Quote) -> QuoteResponse:
    return QuoteResponse(
        id=quote.id,
        client_id=quote.client_id,
        service_id=quote.service_id,
        status=quote.status.value,
        payment_method=quote.payment_method.value,
        request_details=quote.request_details,
        wheel_count=quote.wheel_count,
        diameter=quote.diameter,
        product_details=quote.product_details,
        notes=quote.notes,
        valid_until=quote.valid_until,
        price_excluding_tax=str(quote.totals.price_excluding_tax),
        tax_amount=str(quote.totals.tax_amount),
        quote_amount=str(quote.quote_amount),
        tax_rate=str(quote.totals.tax_rate),
        created_at=quote.created_at,
        updated_at=quote.updated_at,
    )


def _invoice_to_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        quote_id=invoice.quote_id,
        client_id=invoice.client_id,
        status=invoice.status.value,
        payment_method=invoice.payment_method.value,
        wheel_count=invoice.wheel_count,
        diameter=invoice.diameter,
        product_details=invoice.product_details,
        notes=invoice.notes,
        due_date=invoice.due_date,
        paid_at=invoice.paid_at,
        price_excluding_tax=str(invoice.totals.price_excluding_tax),
        tax_amount=str(invoice.totals.tax_amount),
        amount=str(invoice.amount),
        tax_rate=str(invoice.totals.tax_rate),
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    return ReservationResponse(
        id=reservation.id,
        client_id=reservation.client_id,
        quote_id=reservation.quote_id,
        service_id=reservation.service_id,
        scheduled_date=reservation.scheduled_date,
        status=reservation.status.value,
        wheel_count=reservation.wheel_count,
        diameter=reservation.diameter,
        price_excluding_tax=_dec(reservation.price_excluding_tax),
        tax_rate=_dec(reservation.tax_rate),
        tax_amount=_dec(reservation.tax_amount),
        product_details=reservation.product_details,
        notes=reservation.notes,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
    )


def _notification_to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        user_id=notification.user_id,
        type=notification.type.value,
        title=notification.title,
        message=notification.message,
        related_id=notification.related_id,
        is_read=notification.is_read,
        created_at=notification.created_at,
    )


def _settings_to_response(settings: ShopSettings) -> ShopSettingsResponse:
    return ShopSettingsResponse(
        id=settings.id,
        default_wheel_count=settings.default_wheel_count,
        default_diameter=settings.default_diameter,
        default_tax_rate=str(settings.default_tax_rate),
        wheel_count_options=settings.wheel_count_options,
        diameter_options=settings.diameter_options,
        company_name=settings.company_name,
        company_address=settings.company_address,
        company_phone=settings.company_phone,
        company_email=settings.company_email,
        company_siret=settings.company_siret,
        company_tva_number=settings.company_tva_number,
        created_at=settings.created_at,
        updated_at=settings.updated_at,
    )


def _counter_to_response(counter: InvoiceCounter) -> CounterResponse:
    return CounterResponse(
        payment_type=counter.payment_type,
        current_number=counter.current_number,
        updated_at=counter.updated_at,
    )


def _line_item_draft(payload: LineItemCreate) -> LineItemDraft:
    return LineItemDraft(
        description=payload.description,
        unit_price_excluding_tax=payload.unit_price_excluding_tax,
        tax_rate=payload.tax_rate,
        quantity=payload.quantity,
    )


def _unprocessable(error: ValueError) -> HTTPException:
    return HTTPException(
        status_code=422, detail=str(error)
    )


# Health endpoint
@health_router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


# Catalog endpoints
@service_router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(payload: ServiceCreate, container: ContainerDep) -> ServiceResponse:
    service = container.catalog_service.create_service(
        name=payload.name,
        description=payload.description,
        base_price=payload.base_price,
        category=payload.category,
    )
    return _service_to_response(service)


@service_router.get("", response_model=list[ServiceResponse])
def list_services(
    container: ContainerDep,
    include_inactive: bool = Query(default=False),
) -> list[ServiceResponse]:
    services = container.catalog_service.list_services(include_inactive=include_inactive)
    return [_service_to_response(s) for s in services]


@service_router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: UUID, container: ContainerDep) -> ServiceResponse:
    return _service_to_response(container.catalog_service.get_service(service_id))


@service_router.patch("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: UUID, payload: ServiceUpdate, container: ContainerDep
) -> ServiceResponse:
    changes = payload.model_dump(exclude_unset=True)
    service = container.catalog_service.update_service(service_id, **changes)
    return _service_to_response(service)


@service_router.delete("/{service_id}", response_model=ServiceResponse)
def deactivate_service(service_id: UUID, container: ContainerDep) -> ServiceResponse:
    """Deactivate a catalog service; existing quotes keep their reference."""
    return _service_to_response(container.catalog_service.deactivate_service(service_id))


# Quote endpoints
@quote_router.post(
    "", response_model=QuoteCreatedResponse, status_code=status.HTTP_201_CREATED
)
def create_quote(payload: QuoteCreate, container: ContainerDep) -> QuoteCreatedResponse:
    """Create a quote from a client request with its media and requested services."""
    draft = QuoteDraft(
        client_id=payload.client_id,
        service_id=payload.service_id,
        payment_method=payload.payment_method,
        request_details=payload.request_details,
        wheel_count=payload.wheel_count,
        diameter=payload.diameter,
        product_details=payload.product_details,
        notes=payload.notes,
        valid_until=payload.valid_until,
        price_excluding_tax=payload.price_excluding_tax,
        tax_rate=payload.tax_rate,
        tax_amount=payload.tax_amount,
        quote_amount=payload.quote_amount,
    )
    media_files = [MediaFile(key=m.key, type=m.type, name=m.name) for m in payload.media_files]
    services = [
        ServiceLine(
            description=s.description,
            unit_price_excluding_tax=s.unit_price_excluding_tax,
            quantity=s.quantity,
            service_id=s.service_id,
        )
        for s in payload.services
    ]
    outcome = container.lifecycle_service.create_quote(
        draft, media_files, services=services, services_tax_rate=payload.services_tax_rate
    )
    return QuoteCreatedResponse(
        quote=_quote_to_response(cast(Quote, outcome.document)),
        line_items=[_item_to_response(i) for i in outcome.line_items],
        media=[_media_to_response(m) for m in outcome.media],
        incomplete_steps=outcome.incomplete_steps,
    )


@quote_router.get("", response_model=list[QuoteResponse])
def list_quotes(
    container: ContainerDep,
    client_id: str | None = Query(default=None),
) -> list[QuoteResponse]:
    quotes = container.lifecycle_service.list_quotes(client_id)
    return [_quote_to_response(q) for q in quotes]


@quote_router.get("/{quote_id}", response_model=QuoteResponse)
def get_quote(quote_id: UUID, container: ContainerDep) -> QuoteResponse:
    return _quote_to_response(container.lifecycle_service.get_quote(quote_id))


@quote_router.patch("/{quote_id}", response_model=QuoteResponse)
def update_quote(
    quote_id: UUID, payload: QuoteUpdate, container: ContainerDep
) -> QuoteResponse:
    changes = payload.model_dump(exclude_unset=True)
    try:
        quote = container.lifecycle_service.update_quote(quote_id, **changes)
    except ValueError as e:
        raise _unprocessable(e) from e
    return _quote_to_response(quote)


@quote_router.post("/{quote_id}/status", response_model=QuoteResponse)
def update_quote_status(
    quote_id: UUID, payload: QuoteStatusUpdate, container: ContainerDep
) -> QuoteResponse:
    quote = container.lifecycle_service.update_quote_status(quote_id, payload.status)
    return _quote_to_response(quote)


@quote_router.get("/{quote_id}/items", response_model=list[LineItemResponse])
def list_quote_items(quote_id: UUID, container: ContainerDep) -> list[LineItemResponse]:
    items = container.lifecycle_service.list_line_items(DocumentKind.QUOTE, quote_id)
    return [_item_to_response(i) for i in items]


@quote_router.post(
    "/{quote_id}/items",
    response_model=LineItemMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_quote_item(
    quote_id: UUID, payload: LineItemCreate, container: ContainerDep
) -> LineItemMutationResponse:
    item, quote = container.lifecycle_service.add_line_item(
        DocumentKind.QUOTE, quote_id, _line_item_draft(payload)
    )
    return LineItemMutationResponse(
        item=_item_to_response(item), totals=_totals_to_response(quote)
    )


@quote_router.get("/{quote_id}/media", response_model=list[MediaResponse])
def list_quote_media(quote_id: UUID, container: ContainerDep) -> list[MediaResponse]:
    media = container.lifecycle_service.list_media(DocumentKind.QUOTE, quote_id)
    return [_media_to_response(m) for m in media]


@quote_router.post("/{quote_id}/recalculate", response_model=TotalsResponse)
def recalculate_quote(quote_id: UUID, container: ContainerDep) -> TotalsResponse:
    quote = container.lifecycle_service.recalculate(DocumentKind.QUOTE, quote_id)
    return _totals_to_response(quote)


@quote_item_router.patch("/{item_id}", response_model=LineItemMutationResponse)
def update_quote_item(
    item_id: UUID, payload: LineItemUpdate, container: ContainerDep
) -> LineItemMutationResponse:
    changes = payload.model_dump(exclude_unset=True)
    item, quote = container.lifecycle_service.update_line_item(
        DocumentKind.QUOTE, item_id, **changes
    )
    return LineItemMutationResponse(
        item=_item_to_response(item), totals=_totals_to_response(quote)
    )


@quote_item_router.delete("/{item_id}", response_model=TotalsResponse)
def delete_quote_item(item_id: UUID, container: ContainerDep) -> TotalsResponse:
    quote = container.lifecycle_service.delete_line_item(DocumentKind.QUOTE, item_id)
    return _totals_to_response(quote)


# Invoice endpoints
@invoice_router.post(
    "", response_model=InvoiceCreatedResponse, status_code=status.HTTP_201_CREATED
)
def create_invoice(
    payload: InvoiceCreate, container: ContainerDep
) -> InvoiceCreatedResponse:
    """Issue an invoice, optionally from an approved quote."""
    draft = InvoiceDraft(
        client_id=payload.client_id,
        quote_id=payload.quote_id,
        payment_method=payload.payment_method,
        wheel_count=payload.wheel_count,
        diameter=payload.diameter,
        product_details=payload.product_details,
        notes=payload.notes,
        due_date=payload.due_date,
        price_excluding_tax=payload.price_excluding_tax,
        tax_rate=payload.tax_rate,
        tax_amount=payload.tax_amount,
        amount=payload.amount,
    )
    media_files = [MediaFile(key=m.key, type=m.type, name=m.name) for m in payload.media_files]
    outcome = container.lifecycle_service.create_invoice(
        draft,
        media_files,
        line_items=[_line_item_draft(item) for item in payload.line_items],
    )
    return InvoiceCreatedResponse(
        invoice=_invoice_to_response(cast(Invoice, outcome.document)),
        line_items=[_item_to_response(i) for i in outcome.line_items],
        media=[_media_to_response(m) for m in outcome.media],
        incomplete_steps=outcome.incomplete_steps,
    )


@invoice_router.get("", response_model=list[InvoiceResponse])
def list_invoices(
    container: ContainerDep,
    client_id: str | None = Query(default=None),
) -> list[InvoiceResponse]:
    invoices = container.lifecycle_service.list_invoices(client_id)
    return [_invoice_to_response(i) for i in invoices]


@invoice_router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: UUID, container: ContainerDep) -> InvoiceResponse:
    return _invoice_to_response(container.lifecycle_service.get_invoice(invoice_id))


@invoice_router.patch("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: UUID, payload: InvoiceUpdate, container: ContainerDep
) -> InvoiceResponse:
    changes = payload.model_dump(exclude_unset=True)
    try:
        invoice = container.lifecycle_service.update_invoice(invoice_id, **changes)
    except ValueError as e:
        raise _unprocessable(e) from e
    return _invoice_to_response(invoice)


@invoice_router.post("/{invoice_id}/status", response_model=InvoiceResponse)
def update_invoice_status(
    invoice_id: UUID, payload: InvoiceStatusUpdate, container: ContainerDep
) -> InvoiceResponse:
    invoice = container.lifecycle_service.update_invoice_status(invoice_id, payload.status)
    return _invoice_to_response(invoice)


@invoice_router.get("/{invoice_id}/items", response_model=list[LineItemResponse])
def list_invoice_items(
    invoice_id: UUID, container: ContainerDep
) -> list[LineItemResponse]:
    items = container.lifecycle_service.list_line_items(DocumentKind.INVOICE, invoice_id)
    return [_item_to_response(i) for i in items]


@invoice_router.post(
    "/{invoice_id}/items",
    response_model=LineItemMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_invoice_item(
    invoice_id: UUID, payload: LineItemCreate, container: ContainerDep
) -> LineItemMutationResponse:
    item, invoice = container.lifecycle_service.add_line_item(
        DocumentKind.INVOICE, invoice_id, _line_item_draft(payload)
    )
    return LineItemMutationResponse(
        item=_item_to_response(item), totals=_totals_to_response(invoice)
    )


@invoice_router.get("/{invoice_id}/media", response_model=list[MediaResponse])
def list_invoice_media(invoice_id: UUID, container: ContainerDep) -> list[MediaResponse]:
    media = container.lifecycle_service.list_media(DocumentKind.INVOICE, invoice_id)
    return [_media_to_response(m) for m in media]


@invoice_router.post("/{invoice_id}/recalculate", response_model=TotalsResponse)
def recalculate_invoice(invoice_id: UUID, container: ContainerDep) -> TotalsResponse:
    invoice = container.lifecycle_service.recalculate(DocumentKind.INVOICE, invoice_id)
    return _totals_to_response(invoice)


@invoice_item_router.patch("/{item_id}", response_model=LineItemMutationResponse)
def update_invoice_item(
    item_id: UUID, payload: LineItemUpdate, container: ContainerDep
) -> LineItemMutationResponse:
    changes = payload.model_dump(exclude_unset=True)
    item, invoice = container.lifecycle_service.update_line_item(
        DocumentKind.INVOICE, item_id, **changes
    )
    return LineItemMutationResponse(
        item=_item_to_response(item), totals=_totals_to_response(invoice)
    )


@invoice_item_router.delete("/{item_id}", response_model=TotalsResponse)
def delete_invoice_item(item_id: UUID, container: ContainerDep) -> TotalsResponse:
    invoice = container.lifecycle_service.delete_line_item(DocumentKind.INVOICE, item_id)
    return _totals_to_response(invoice)


# Reservation endpoints
@reservation_router.post(
    "", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED
)
def create_reservation(
    payload: ReservationCreate, container: ContainerDep
) -> ReservationResponse:
    draft = ReservationDraft(
        client_id=payload.client_id,
        scheduled_date=payload.scheduled_date,
        service_id=payload.service_id,
        quote_id=payload.quote_id,
        wheel_count=payload.wheel_count,
        diameter=payload.diameter,
        price_excluding_tax=payload.price_excluding_tax,
        tax_rate=payload.tax_rate,
        product_details=payload.product_details,
        notes=payload.notes,
        status=payload.status,
    )
    try:
        reservation = container.reservation_service.create_reservation(draft)
    except ValueError as e:
        raise _unprocessable(e) from e
    return _reservation_to_response(reservation)


@reservation_router.get("", response_model=list[ReservationResponse])
def list_reservations(
    container: ContainerDep,
    client_id: str | None = Query(default=None),
) -> list[ReservationResponse]:
    reservations = container.reservation_service.list_reservations(client_id)
    return [_reservation_to_response(r) for r in reservations]


@reservation_router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(reservation_id: UUID, container: ContainerDep) -> ReservationResponse:
    reservation = container.reservation_service.get_reservation(reservation_id)
    return _reservation_to_response(reservation)


@reservation_router.post("/{reservation_id}/status", response_model=ReservationResponse)
def update_reservation_status(
    reservation_id: UUID, payload: ReservationStatusUpdate, container: ContainerDep
) -> ReservationResponse:
    reservation = container.reservation_service.update_status(
        reservation_id, payload.status
    )
    return _reservation_to_response(reservation)


# Notification endpoints
@notification_router.get("", response_model=list[NotificationResponse])
def list_notifications(
    container: ContainerDep,
    user_id: str = Query(..., min_length=1),
) -> list[NotificationResponse]:
    notifications = container.notification_dispatcher.list_for_user(user_id)
    return [_notification_to_response(n) for n in notifications]


@notification_router.post("/retry", response_model=NotificationRetryResponse)
def retry_notifications(container: ContainerDep) -> NotificationRetryResponse:
    """Redeliver notifications that could not be stored or pushed earlier."""
    dispatcher = container.notification_dispatcher
    delivered = dispatcher.retry_failed()
    return NotificationRetryResponse(delivered=delivered, pending=len(dispatcher.outbox))


@notification_router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: UUID, container: ContainerDep
) -> NotificationResponse:
    notification = container.notification_dispatcher.mark_read(notification_id)
    return _notification_to_response(notification)


# Counter endpoints
@counter_router.get("", response_model=list[CounterResponse])
def list_counters(container: ContainerDep) -> list[CounterResponse]:
    """Current value of every invoice numbering sequence (read-only)."""
    return [_counter_to_response(c) for c in container.numbering_service.list_counters()]


# Workshop settings endpoints
@settings_router.get("", response_model=ShopSettingsResponse)
def get_shop_settings(container: ContainerDep) -> ShopSettingsResponse:
    """Workshop settings, created with defaults on first read."""
    return _settings_to_response(container.shop_settings_service.get_settings())


@settings_router.patch("", response_model=ShopSettingsResponse)
def update_shop_settings(
    payload: ShopSettingsUpdate, container: ContainerDep
) -> ShopSettingsResponse:
    changes = payload.model_dump(exclude_unset=True)
    settings = container.shop_settings_service.update_settings(**changes)
    return _settings_to_response(settings)


__all__ = [
    "counter_router",
    "health_router",
    "invoice_item_router",
    "invoice_router",
    "notification_router",
    "quote_item_router",
    "quote_router",
    "reservation_router",
    "service_router",
    "settings_router",
]
