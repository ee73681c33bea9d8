"""Quote and invoice lifecycle.

Creation runs a fixed sequence: validate attached media and line items,
persist the document, persist its line items, persist media references,
recalculate totals, notify the client. Everything up to and including
line items must succeed. Media references and notifications are best-effort;
their failures are reported on the returned ``CreationOutcome`` and logged as
``reconciliation_required`` instead of undoing the committed document.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from myjantes.domain.aggregates import (
    DEFAULT_TAX_RATE,
    FromLegacyFields,
    LegacyAmounts,
)
from myjantes.domain.documents import Document, Invoice, Quote
from myjantes.domain.line_items import LineItem, LineItemDraft
from myjantes.domain.media import MediaFile, MediaReference, count_images
from myjantes.domain.notifications import EventType, Notification, PushEvent
from myjantes.domain.value_objects import (
    HUNDRED,
    DocumentKind,
    InvoiceStatus,
    NotificationType,
    QuoteStatus,
    RoundingMode,
    parse_decimal,
    parse_optional_decimal,
)
from myjantes.exceptions import (
    InsufficientImagesError,
    InvoiceNotFoundError,
    MissingFieldError,
    QuoteNotFoundError,
    QuoteNotInvoiceableError,
    ServiceNotFoundError,
)
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import (
    InvoiceRepository,
    LineItemRepository,
    MediaRepository,
    QuoteRepository,
    ServiceRepository,
)
from myjantes.services.interfaces import (
    CreationOutcome,
    InvoiceDraft,
    InvoiceNumberingService,
    NotificationService,
    QuoteDraft,
    ServiceLine,
)
from myjantes.services.line_items import LineItemServiceImpl
from myjantes.services.totals import TotalsServiceImpl

logger = get_logger(__name__)

DEFAULT_MIN_IMAGE_COUNT = 3

QUOTE_EDITABLE_FIELDS = frozenset(
    {
        "service_id",
        "request_details",
        "wheel_count",
        "diameter",
        "product_details",
        "notes",
        "valid_until",
    }
)
INVOICE_EDITABLE_FIELDS = frozenset(
    {"wheel_count", "diameter", "product_details", "notes", "due_date"}
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _check_wheel_count(wheel_count: int | None) -> None:
    if wheel_count is not None and not 1 <= wheel_count <= 4:
        raise ValueError(f"wheel_count must be between 1 and 4, got {wheel_count}")


@dataclass
class _LegacyInput:
    price_excluding_tax: Any = None
    tax_rate: Any = None
    tax_amount: Any = None
    amount: Any = None

    def parse(self) -> LegacyAmounts:
        return LegacyAmounts(
            price_excluding_tax=parse_optional_decimal(
                self.price_excluding_tax, "price_excluding_tax"
            ),
            tax_amount=parse_optional_decimal(self.tax_amount, "tax_amount"),
            amount=parse_optional_decimal(self.amount, "amount"),
            tax_rate=parse_optional_decimal(self.tax_rate, "tax_rate"),
        )


class DocumentLifecycleService:
    def __init__(
        self,
        quote_repo: QuoteRepository,
        invoice_repo: InvoiceRepository,
        quote_item_repo: LineItemRepository,
        invoice_item_repo: LineItemRepository,
        media_repo: MediaRepository,
        service_repo: ServiceRepository,
        numbering: InvoiceNumberingService,
        notifier: NotificationService,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
        rounding_mode: RoundingMode = RoundingMode.PER_LINE,
        min_image_count: int = DEFAULT_MIN_IMAGE_COUNT,
    ) -> None:
        self._quote_repo = quote_repo
        self._invoice_repo = invoice_repo
        self._media_repo = media_repo
        self._service_repo = service_repo
        self._numbering = numbering
        self._notifier = notifier
        self._default_tax_rate = default_tax_rate
        self._min_image_count = min_image_count
        self._line_items = {
            DocumentKind.QUOTE: LineItemServiceImpl(DocumentKind.QUOTE, quote_item_repo),
            DocumentKind.INVOICE: LineItemServiceImpl(
                DocumentKind.INVOICE, invoice_item_repo
            ),
        }
        self._totals = {
            DocumentKind.QUOTE: TotalsServiceImpl(
                quote_repo, quote_item_repo, default_tax_rate, rounding_mode
            ),
            DocumentKind.INVOICE: TotalsServiceImpl(
                invoice_repo, invoice_item_repo, default_tax_rate, rounding_mode
            ),
        }

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_quote(
        self,
        draft: QuoteDraft,
        media_files: list[MediaFile],
        services: list[ServiceLine] | None = None,
        services_tax_rate: Decimal | str | int | float | None = None,
    ) -> CreationOutcome:
        self._check_images(media_files)
        _check_wheel_count(draft.wheel_count)
        if not draft.client_id:
            raise MissingFieldError("client_id")
        if draft.service_id is not None and self._service_repo.get(draft.service_id) is None:
            raise ServiceNotFoundError(draft.service_id)

        legacy = _LegacyInput(
            draft.price_excluding_tax, draft.tax_rate, draft.tax_amount, draft.quote_amount
        ).parse()
        item_drafts = self._drafts_from_services(services or [], services_tax_rate)

        quote = Quote(
            client_id=draft.client_id,
            service_id=draft.service_id,
            payment_method=draft.payment_method,
            request_details=draft.request_details,
            wheel_count=draft.wheel_count,
            diameter=draft.diameter,
            product_details=draft.product_details,
            notes=draft.notes,
            valid_until=draft.valid_until,
            legacy=legacy,
            totals=FromLegacyFields(legacy).totals(self._default_tax_rate),
        )
        self._quote_repo.add(quote)

        store = self._line_items[DocumentKind.QUOTE]
        items = [store.create_item(quote.id, item_draft) for item_draft in item_drafts]

        outcome = CreationOutcome(document=quote, line_items=items)
        outcome.media = self._attach_media(DocumentKind.QUOTE, quote.id, media_files, outcome)
        if items:
            outcome.document = self._totals[DocumentKind.QUOTE].recalculate(quote.id)

        notified = self._notifier.emit(
            quote.client_id,
            Notification(
                user_id=quote.client_id,
                type=NotificationType.QUOTE,
                title="Nouveau devis",
                message="Un devis a été créé pour vous",
                related_id=quote.id,
            ),
            PushEvent(EventType.QUOTE_UPDATED, quote.id, quote.status.value),
        )
        if not notified:
            outcome.incomplete_steps.append("notification")

        self._log_creation(DocumentKind.QUOTE, outcome)
        return outcome

    def create_invoice(
        self,
        draft: InvoiceDraft,
        media_files: list[MediaFile],
        line_items: list[LineItemDraft] | None = None,
    ) -> CreationOutcome:
        self._check_images(media_files)
        _check_wheel_count(draft.wheel_count)
        if not draft.client_id:
            raise MissingFieldError("client_id")

        legacy_input = _LegacyInput(
            draft.price_excluding_tax, draft.tax_rate, draft.tax_amount, draft.amount
        )
        payment_method = draft.payment_method
        wheel_count = draft.wheel_count
        diameter = draft.diameter
        product_details = draft.product_details

        if draft.quote_id is not None:
            quote = self._quote_repo.get(draft.quote_id)
            if quote is None:
                raise QuoteNotFoundError(draft.quote_id)
            if not quote.is_invoiceable:
                raise QuoteNotInvoiceableError(quote.id, quote.status.value)
            payment_method = quote.payment_method
            wheel_count = quote.wheel_count
            diameter = quote.diameter
            product_details = quote.product_details
            legacy_input.price_excluding_tax = quote.totals.price_excluding_tax
            legacy_input.tax_rate = quote.totals.tax_rate
            legacy_input.tax_amount = quote.totals.tax_amount
            if legacy_input.amount is None:
                legacy_input.amount = quote.totals.total_including_tax

        legacy = legacy_input.parse()
        store = self._line_items[DocumentKind.INVOICE]
        # Every line must be valid before a number is consumed.
        for item_draft in line_items or []:
            store.check_draft(item_draft)

        invoice_number = self._numbering.allocate(payment_method)
        invoice = Invoice(
            client_id=draft.client_id,
            invoice_number=invoice_number,
            quote_id=draft.quote_id,
            payment_method=payment_method,
            wheel_count=wheel_count,
            diameter=diameter,
            product_details=product_details,
            notes=draft.notes,
            due_date=draft.due_date,
            legacy=legacy,
            totals=FromLegacyFields(legacy).totals(self._default_tax_rate),
        )
        self._invoice_repo.add(invoice)

        items = [store.create_item(invoice.id, item_draft) for item_draft in line_items or []]

        outcome = CreationOutcome(document=invoice, line_items=items)
        outcome.media = self._attach_media(
            DocumentKind.INVOICE, invoice.id, media_files, outcome
        )
        if items:
            outcome.document = self._totals[DocumentKind.INVOICE].recalculate(invoice.id)

        notified = self._notifier.emit(
            invoice.client_id,
            Notification(
                user_id=invoice.client_id,
                type=NotificationType.INVOICE,
                title="Nouvelle facture",
                message=f"La facture {invoice.invoice_number} a été émise",
                related_id=invoice.id,
            ),
            PushEvent(EventType.INVOICE_CREATED, invoice.id, invoice.status.value),
        )
        if not notified:
            outcome.incomplete_steps.append("notification")

        self._log_creation(DocumentKind.INVOICE, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def list_line_items(self, kind: DocumentKind, parent_id: UUID) -> list[LineItem]:
        return self._line_items[kind].list_items(parent_id)

    def add_line_item(
        self, kind: DocumentKind, parent_id: UUID, draft: LineItemDraft
    ) -> tuple[LineItem, Document]:
        self._get_document(kind, parent_id)
        item = self._line_items[kind].create_item(parent_id, draft)
        document = self._totals[kind].recalculate(parent_id)
        return item, document

    def update_line_item(
        self, kind: DocumentKind, item_id: UUID, **changes: Any
    ) -> tuple[LineItem, Document]:
        item = self._line_items[kind].update_item(item_id, **changes)
        document = self._totals[kind].recalculate(item.parent_id)
        return item, document

    def delete_line_item(self, kind: DocumentKind, item_id: UUID) -> Document:
        item = self._line_items[kind].delete_item(item_id)
        return self._totals[kind].recalculate(item.parent_id)

    def recalculate(self, kind: DocumentKind, document_id: UUID) -> Document:
        return self._totals[kind].recalculate(document_id)

    # ------------------------------------------------------------------
    # Status and admin edits
    # ------------------------------------------------------------------

    def update_quote_status(self, quote_id: UUID, status: QuoteStatus) -> Quote:
        quote = self.get_quote(quote_id)
        previous = quote.status
        quote.transition_to(status)
        self._quote_repo.update(quote)
        logger.info(
            "quote_status_changed",
            quote_id=str(quote.id),
            previous=previous.value,
            status=status.value,
        )
        self._notifier.emit(
            quote.client_id,
            Notification(
                user_id=quote.client_id,
                type=NotificationType.QUOTE,
                title="Devis mis à jour",
                message=f"Votre devis est maintenant : {status.value}",
                related_id=quote.id,
            ),
            PushEvent(EventType.QUOTE_UPDATED, quote.id, status.value),
        )
        return quote

    def update_invoice_status(self, invoice_id: UUID, status: InvoiceStatus) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        previous = invoice.status
        invoice.transition_to(status)
        self._invoice_repo.update(invoice)
        logger.info(
            "invoice_status_changed",
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            previous=previous.value,
            status=status.value,
        )
        self._notifier.emit(
            invoice.client_id,
            Notification(
                user_id=invoice.client_id,
                type=NotificationType.INVOICE,
                title="Facture mise à jour",
                message=f"La facture {invoice.invoice_number} est maintenant : {status.value}",
                related_id=invoice.id,
            ),
            PushEvent(EventType.INVOICE_UPDATED, invoice.id, status.value),
        )
        return invoice

    def update_quote(self, quote_id: UUID, **changes: Any) -> Quote:
        quote = self.get_quote(quote_id)
        unknown = set(changes) - QUOTE_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update quote fields: {sorted(unknown)}")
        if "wheel_count" in changes:
            _check_wheel_count(changes["wheel_count"])
        if changes.get("service_id") is not None:
            if self._service_repo.get(changes["service_id"]) is None:
                raise ServiceNotFoundError(changes["service_id"])
        for name, value in changes.items():
            setattr(quote, name, value)
        quote.updated_at = _utc_now()
        self._quote_repo.update(quote)
        return quote

    def update_invoice(self, invoice_id: UUID, **changes: Any) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        unknown = set(changes) - INVOICE_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update invoice fields: {sorted(unknown)}")
        if "wheel_count" in changes:
            _check_wheel_count(changes["wheel_count"])
        for name, value in changes.items():
            setattr(invoice, name, value)
        invoice.updated_at = _utc_now()
        self._invoice_repo.update(invoice)
        return invoice

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_quote(self, quote_id: UUID) -> Quote:
        quote = self._quote_repo.get(quote_id)
        if quote is None:
            raise QuoteNotFoundError(quote_id)
        return quote

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self._invoice_repo.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def list_quotes(self, client_id: str | None = None) -> list[Quote]:
        return list(self._quote_repo.list_all(client_id))

    def list_invoices(self, client_id: str | None = None) -> list[Invoice]:
        return list(self._invoice_repo.list_all(client_id))

    def list_media(self, kind: DocumentKind, document_id: UUID) -> list[MediaReference]:
        return list(self._media_repo.list_for_document(kind, document_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_document(self, kind: DocumentKind, document_id: UUID) -> Document:
        if kind == DocumentKind.QUOTE:
            return self.get_quote(document_id)
        return self.get_invoice(document_id)

    def _check_images(self, media_files: list[MediaFile]) -> None:
        provided = count_images(media_files)
        if provided < self._min_image_count:
            raise InsufficientImagesError(self._min_image_count, provided)

    def _drafts_from_services(
        self,
        services: list[ServiceLine],
        services_tax_rate: Decimal | str | int | float | None,
    ) -> list[LineItemDraft]:
        if services_tax_rate is None:
            tax_rate = self._default_tax_rate
        else:
            tax_rate = parse_decimal(
                services_tax_rate, "tax_rate", minimum=Decimal("0"), maximum=HUNDRED
            )

        drafts: list[LineItemDraft] = []
        for line in services:
            description = line.description
            unit_price = line.unit_price_excluding_tax
            if line.service_id is not None:
                catalog_entry = self._service_repo.get(line.service_id)
                if catalog_entry is None:
                    raise ServiceNotFoundError(line.service_id)
                description = description or catalog_entry.name
                if unit_price is None:
                    unit_price = catalog_entry.base_price
            if not description:
                raise MissingFieldError("description")
            if unit_price is None:
                raise MissingFieldError("unit_price_excluding_tax")
            drafts.append(
                LineItemDraft(
                    description=description,
                    unit_price_excluding_tax=unit_price,
                    tax_rate=tax_rate,
                    quantity=line.quantity,
                )
            )
        store = self._line_items[DocumentKind.QUOTE]
        for item_draft in drafts:
            store.check_draft(item_draft)
        return drafts

    def _attach_media(
        self,
        kind: DocumentKind,
        document_id: UUID,
        media_files: list[MediaFile],
        outcome: CreationOutcome,
    ) -> list[MediaReference]:
        attached: list[MediaReference] = []
        for media in media_files:
            reference = MediaReference.from_file(kind, document_id, media)
            try:
                self._media_repo.add(reference)
            except Exception as e:
                logger.warning(
                    "media_reference_failed",
                    kind=kind.value,
                    document_id=str(document_id),
                    file_path=media.key,
                    error=str(e),
                )
                if "media" not in outcome.incomplete_steps:
                    outcome.incomplete_steps.append("media")
                continue
            attached.append(reference)
        return attached

    def _log_creation(self, kind: DocumentKind, outcome: CreationOutcome) -> None:
        document = outcome.document
        logger.info(
            f"{kind.value}_created",
            document_id=str(document.id),
            client_id=document.client_id,
            item_count=len(outcome.line_items),
            media_count=len(outcome.media),
            total_including_tax=str(document.totals.total_including_tax),
        )
        if outcome.incomplete_steps:
            logger.warning(
                "reconciliation_required",
                kind=kind.value,
                document_id=str(document.id),
                incomplete_steps=outcome.incomplete_steps,
            )
