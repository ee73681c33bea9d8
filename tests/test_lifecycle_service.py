"""Tests for quote and invoice creation, status changes and item edits."""

from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest
from conftest import make_media

from myjantes.domain.catalog import Service
from myjantes.domain.documents import Invoice, Quote
from myjantes.domain.line_items import LineItemDraft
from myjantes.domain.media import MediaReference
from myjantes.domain.notifications import Notification
from myjantes.domain.value_objects import (
    DocumentKind,
    InvoiceStatus,
    MediaType,
    PaymentMethod,
    QuoteStatus,
)
from myjantes.exceptions import (
    InsufficientImagesError,
    InvalidAmountError,
    InvalidStatusTransitionError,
    InvoiceNotFoundError,
    MissingFieldError,
    QuoteNotFoundError,
    QuoteNotInvoiceableError,
    ServiceNotFoundError,
)
from myjantes.repositories import RepositoryBundle
from myjantes.services.interfaces import InvoiceDraft, QuoteDraft, ServiceLine
from myjantes.services.lifecycle import DocumentLifecycleService
from myjantes.services.notifications import (
    InMemoryPushChannel,
    NotificationDispatcher,
    PushChannel,
)
from myjantes.services.numbering import InvoiceNumberingServiceImpl


class BrokenPushChannel(PushChannel):
    def publish(self, user_id: str, payload: dict[str, Any]) -> None:
        raise ConnectionError("realtime gateway unavailable")


class BrokenMediaRepository:
    def add(self, media: MediaReference) -> None:
        raise OSError("media table unavailable")

    def list_for_document(self, document_kind, document_id):
        return []


class CountingNumbering(InvoiceNumberingServiceImpl):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    def allocate(self, payment_type):
        self.calls += 1
        return super().allocate(payment_type)


def _lifecycle(repos: RepositoryBundle, **overrides: Any) -> DocumentLifecycleService:
    kwargs: dict[str, Any] = {
        "quote_repo": repos.quotes,
        "invoice_repo": repos.invoices,
        "quote_item_repo": repos.quote_items,
        "invoice_item_repo": repos.invoice_items,
        "media_repo": repos.media,
        "service_repo": repos.services,
        "numbering": InvoiceNumberingServiceImpl(repos.counters),
        "notifier": NotificationDispatcher(repos.notifications, InMemoryPushChannel()),
    }
    kwargs.update(overrides)
    return DocumentLifecycleService(**kwargs)


def _approved_quote(
    lifecycle: DocumentLifecycleService, draft: QuoteDraft, **kwargs: Any
) -> Quote:
    outcome = lifecycle.create_quote(draft, make_media(3), **kwargs)
    return lifecycle.update_quote_status(outcome.document.id, QuoteStatus.APPROVED)


class TestCreateQuote:
    def test_creates_quote_with_media_and_notification(
        self,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        repos: RepositoryBundle,
        push_channel: InMemoryPushChannel,
    ) -> None:
        outcome = lifecycle.create_quote(quote_draft, make_media(3, videos=1))

        quote = outcome.document
        assert outcome.is_complete
        assert quote.status == QuoteStatus.PENDING
        assert repos.quotes.get(quote.id) is not None
        assert len(outcome.media) == 4
        stored_media = lifecycle.list_media(DocumentKind.QUOTE, quote.id)
        assert [m.file_type for m in stored_media].count(MediaType.IMAGE) == 3
        assert [m.file_type for m in stored_media].count(MediaType.VIDEO) == 1

        notifications = repos.notifications.list_for_user("client-42")
        assert len(notifications) == 1
        assert notifications[0].title == "Nouveau devis"
        assert notifications[0].related_id == quote.id
        assert push_channel.events_for("client-42") == [
            {"type": "quote_updated", "documentId": str(quote.id), "status": "pending"}
        ]

    def test_insufficient_images_writes_nothing(
        self,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        repos: RepositoryBundle,
    ) -> None:
        with pytest.raises(InsufficientImagesError) as exc_info:
            lifecycle.create_quote(quote_draft, make_media(1, videos=5))

        assert exc_info.value.required == 3
        assert exc_info.value.provided == 1
        assert exc_info.value.shortfall == 2
        assert lifecycle.list_quotes() == []
        assert repos.notifications.list_for_user("client-42") == []

    def test_min_image_count_is_configurable(
        self, repos: RepositoryBundle, quote_draft: QuoteDraft
    ) -> None:
        lifecycle = _lifecycle(repos, min_image_count=6)

        with pytest.raises(InsufficientImagesError) as exc_info:
            lifecycle.create_quote(quote_draft, make_media(5))

        assert exc_info.value.shortfall == 1

    def test_wheel_count_out_of_range(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote_draft.wheel_count = 5

        with pytest.raises(ValueError, match="wheel_count"):
            lifecycle.create_quote(quote_draft, make_media(3))

    def test_unknown_service_rejected(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote_draft.service_id = uuid4()

        with pytest.raises(ServiceNotFoundError):
            lifecycle.create_quote(quote_draft, make_media(3))

    def test_legacy_amounts_without_services(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote_draft.price_excluding_tax = "150"
        quote_draft.tax_amount = "30"

        outcome = lifecycle.create_quote(quote_draft, make_media(3))

        assert outcome.line_items == []
        assert outcome.document.totals.price_excluding_tax == Decimal("150.00")
        assert outcome.document.totals.total_including_tax == Decimal("180.00")
        assert outcome.document.totals.tax_rate == Decimal("20.00")

    def test_services_become_line_items(
        self,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        sample_service: Service,
    ) -> None:
        services = [
            ServiceLine(service_id=sample_service.id, quantity=4),
            ServiceLine(description="Pneus neufs", unit_price_excluding_tax="80.50"),
        ]

        outcome = lifecycle.create_quote(
            quote_draft, make_media(3), services=services, services_tax_rate="20"
        )

        descriptions = [i.description for i in outcome.line_items]
        assert descriptions == ["Rénovation jante", "Pneus neufs"]
        assert outcome.line_items[0].unit_price_excluding_tax == Decimal("120.00")
        totals = outcome.document.totals
        assert totals.price_excluding_tax == Decimal("560.50")
        assert totals.tax_amount == Decimal("112.10")
        assert totals.total_including_tax == Decimal("672.60")

    def test_service_line_without_price_rejected_before_write(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        with pytest.raises(MissingFieldError):
            lifecycle.create_quote(
                quote_draft, make_media(3), services=[ServiceLine(description="Valves")]
            )

        assert lifecycle.list_quotes() == []

    def test_service_line_with_negative_quantity_rejected_before_write(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        services = [
            ServiceLine(description="Peinture", unit_price_excluding_tax="90", quantity="-2")
        ]

        with pytest.raises(InvalidAmountError):
            lifecycle.create_quote(quote_draft, make_media(3), services=services)

        assert lifecycle.list_quotes() == []

    def test_failing_push_channel_still_creates_quote(
        self, repos: RepositoryBundle, quote_draft: QuoteDraft
    ) -> None:
        dispatcher = NotificationDispatcher(repos.notifications, BrokenPushChannel())
        lifecycle = _lifecycle(repos, notifier=dispatcher)

        outcome = lifecycle.create_quote(quote_draft, make_media(3))

        assert outcome.incomplete_steps == ["notification"]
        assert repos.quotes.get(outcome.document.id) is not None
        assert len(dispatcher.outbox) == 1

    def test_failing_media_store_still_creates_quote(
        self, repos: RepositoryBundle, quote_draft: QuoteDraft
    ) -> None:
        lifecycle = _lifecycle(repos, media_repo=BrokenMediaRepository())

        outcome = lifecycle.create_quote(quote_draft, make_media(3))

        assert outcome.incomplete_steps == ["media"]
        assert outcome.media == []
        assert repos.quotes.get(outcome.document.id) is not None


class TestCreateInvoice:
    def test_standalone_invoice_gets_number(
        self, lifecycle: DocumentLifecycleService, repos: RepositoryBundle
    ) -> None:
        draft = InvoiceDraft(client_id="client-7", payment_method=PaymentMethod.CASH)

        outcome = lifecycle.create_invoice(draft, make_media(3))

        invoice = outcome.document
        assert isinstance(invoice, Invoice)
        assert invoice.invoice_number == "MY-INV-ESP00000001"
        assert repos.invoices.get_by_number("MY-INV-ESP00000001") is not None

    def test_invoice_from_approved_quote_copies_fields(
        self,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        sample_service: Service,
    ) -> None:
        quote_draft.payment_method = PaymentMethod.CARD
        quote = _approved_quote(
            lifecycle, quote_draft, services=[ServiceLine(service_id=sample_service.id)]
        )

        outcome = lifecycle.create_invoice(
            InvoiceDraft(client_id="client-42", quote_id=quote.id), make_media(3)
        )

        invoice = outcome.document
        assert isinstance(invoice, Invoice)
        assert invoice.quote_id == quote.id
        assert invoice.payment_method == PaymentMethod.CARD
        assert invoice.invoice_number == "MY-INV-CBL00000001"
        assert invoice.wheel_count == 4
        assert invoice.diameter == "18"
        assert invoice.totals.price_excluding_tax == Decimal("120.00")
        assert invoice.totals.total_including_tax == Decimal("144.00")

    def test_pending_quote_cannot_be_invoiced(
        self,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        numbering: InvoiceNumberingServiceImpl,
    ) -> None:
        quote = lifecycle.create_quote(quote_draft, make_media(3)).document

        with pytest.raises(QuoteNotInvoiceableError):
            lifecycle.create_invoice(
                InvoiceDraft(client_id="client-42", quote_id=quote.id), make_media(3)
            )

        assert numbering.current(PaymentMethod.WIRE_TRANSFER) == 0

    def test_unknown_quote_rejected(self, lifecycle: DocumentLifecycleService) -> None:
        with pytest.raises(QuoteNotFoundError):
            lifecycle.create_invoice(
                InvoiceDraft(client_id="client-42", quote_id=uuid4()), make_media(3)
            )

    def test_number_allocated_exactly_once(self, repos: RepositoryBundle) -> None:
        numbering = CountingNumbering(repos.counters)
        lifecycle = _lifecycle(repos, numbering=numbering)
        items = [LineItemDraft("Pose", "40", "20"), LineItemDraft("Équilibrage", "15", "20")]

        outcome = lifecycle.create_invoice(
            InvoiceDraft(client_id="client-1"), make_media(3), line_items=items
        )

        assert numbering.calls == 1
        assert numbering.current(PaymentMethod.WIRE_TRANSFER) == 1
        assert outcome.document.totals.total_including_tax == Decimal("66.00")

    def test_images_checked_before_numbering(
        self, lifecycle: DocumentLifecycleService, numbering: InvoiceNumberingServiceImpl
    ) -> None:
        with pytest.raises(InsufficientImagesError):
            lifecycle.create_invoice(InvoiceDraft(client_id="client-1"), make_media(2))

        assert numbering.current(PaymentMethod.WIRE_TRANSFER) == 0

    @pytest.mark.parametrize(
        ("bad_item", "field"),
        [
            (LineItemDraft("Pose", "10", "20", quantity="-1"), "quantity"),
            (LineItemDraft("Pose", "-5", "20"), "unit_price_excluding_tax"),
            (LineItemDraft("Pose", "10", "150"), "tax_rate"),
            (LineItemDraft("Pose", "dix", "20"), "unit_price_excluding_tax"),
        ],
    )
    def test_invalid_line_item_writes_nothing(
        self,
        lifecycle: DocumentLifecycleService,
        numbering: InvoiceNumberingServiceImpl,
        repos: RepositoryBundle,
        bad_item: LineItemDraft,
        field: str,
    ) -> None:
        items = [LineItemDraft("Peinture", "80", "20"), bad_item]

        with pytest.raises(InvalidAmountError) as exc_info:
            lifecycle.create_invoice(
                InvoiceDraft(client_id="client-1", payment_method=PaymentMethod.CASH),
                make_media(3),
                line_items=items,
            )

        assert exc_info.value.context["field"] == field
        assert lifecycle.list_invoices() == []
        assert numbering.current(PaymentMethod.CASH) == 0
        assert repos.notifications.list_for_user("client-1") == []

    def test_blank_line_description_writes_nothing(
        self, lifecycle: DocumentLifecycleService, numbering: InvoiceNumberingServiceImpl
    ) -> None:
        with pytest.raises(MissingFieldError):
            lifecycle.create_invoice(
                InvoiceDraft(client_id="client-1"),
                make_media(3),
                line_items=[LineItemDraft("  ", "10", "20")],
            )

        assert lifecycle.list_invoices() == []
        assert numbering.current(PaymentMethod.WIRE_TRANSFER) == 0

    def test_number_follows_rejected_attempt(
        self, lifecycle: DocumentLifecycleService
    ) -> None:
        draft = InvoiceDraft(client_id="client-1", payment_method=PaymentMethod.CASH)
        with pytest.raises(InvalidAmountError):
            lifecycle.create_invoice(
                draft, make_media(3), line_items=[LineItemDraft("Pose", "10", "-20")]
            )

        outcome = lifecycle.create_invoice(
            draft, make_media(3), line_items=[LineItemDraft("Pose", "10", "20")]
        )

        assert outcome.document.invoice_number == "MY-INV-ESP00000001"

    def test_failing_notification_store_still_creates_invoice(
        self, repos: RepositoryBundle
    ) -> None:
        class BrokenNotificationRepository:
            def add(self, notification: Notification) -> None:
                raise OSError("disk full")

        dispatcher = NotificationDispatcher(BrokenNotificationRepository(), InMemoryPushChannel())
        lifecycle = _lifecycle(repos, notifier=dispatcher)

        outcome = lifecycle.create_invoice(InvoiceDraft(client_id="client-1"), make_media(3))

        assert outcome.incomplete_steps == ["notification"]
        assert repos.invoices.get(outcome.document.id) is not None


class TestStatusChanges:
    def test_quote_approval_notifies(
        self,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        push_channel: InMemoryPushChannel,
    ) -> None:
        quote = _approved_quote(lifecycle, quote_draft)

        assert lifecycle.get_quote(quote.id).status == QuoteStatus.APPROVED
        last_event = push_channel.events_for("client-42")[-1]
        assert last_event == {
            "type": "quote_updated",
            "documentId": str(quote.id),
            "status": "approved",
        }

    def test_rejected_quote_is_final(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote = lifecycle.create_quote(quote_draft, make_media(3)).document
        lifecycle.update_quote_status(quote.id, QuoteStatus.REJECTED)

        with pytest.raises(InvalidStatusTransitionError):
            lifecycle.update_quote_status(quote.id, QuoteStatus.APPROVED)

    def test_paid_invoice_records_payment_time(
        self, lifecycle: DocumentLifecycleService
    ) -> None:
        invoice = lifecycle.create_invoice(
            InvoiceDraft(client_id="client-1"), make_media(3)
        ).document

        paid = lifecycle.update_invoice_status(invoice.id, InvoiceStatus.PAID)

        assert paid.paid_at is not None
        assert lifecycle.get_invoice(invoice.id).paid_at is not None

    def test_unknown_invoice(self, lifecycle: DocumentLifecycleService) -> None:
        with pytest.raises(InvoiceNotFoundError):
            lifecycle.update_invoice_status(uuid4(), InvoiceStatus.PAID)


class TestAdminEdits:
    def test_update_quote_fields(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote = lifecycle.create_quote(quote_draft, make_media(3)).document

        lifecycle.update_quote(quote.id, notes="Rayures profondes", wheel_count=2)

        stored = lifecycle.get_quote(quote.id)
        assert stored.notes == "Rayures profondes"
        assert stored.wheel_count == 2

    def test_update_quote_rejects_status_and_totals(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote = lifecycle.create_quote(quote_draft, make_media(3)).document

        with pytest.raises(ValueError):
            lifecycle.update_quote(quote.id, status=QuoteStatus.APPROVED)
        with pytest.raises(ValueError):
            lifecycle.update_quote(quote.id, totals=None)

    def test_update_invoice_notes(self, lifecycle: DocumentLifecycleService) -> None:
        invoice = lifecycle.create_invoice(
            InvoiceDraft(client_id="client-1"), make_media(3)
        ).document

        lifecycle.update_invoice(invoice.id, notes="Payée au comptoir")

        assert lifecycle.get_invoice(invoice.id).notes == "Payée au comptoir"


class TestLineItemEdits:
    def test_add_update_delete_keep_totals_current(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote_draft.price_excluding_tax = "10"
        quote = lifecycle.create_quote(quote_draft, make_media(3)).document

        item, document = lifecycle.add_line_item(
            DocumentKind.QUOTE, quote.id, LineItemDraft("Peinture", "100", "20", quantity="2")
        )
        assert document.totals.total_including_tax == Decimal("240.00")

        _, document = lifecycle.update_line_item(DocumentKind.QUOTE, item.id, quantity="1")
        assert document.totals.total_including_tax == Decimal("120.00")
        assert lifecycle.get_quote(quote.id).quote_amount == Decimal("120.00")

        document = lifecycle.delete_line_item(DocumentKind.QUOTE, item.id)
        assert document.totals.price_excluding_tax == Decimal("10.00")
        assert lifecycle.list_line_items(DocumentKind.QUOTE, quote.id) == []

    def test_add_item_to_unknown_document(self, lifecycle: DocumentLifecycleService) -> None:
        with pytest.raises(InvoiceNotFoundError):
            lifecycle.add_line_item(
                DocumentKind.INVOICE, uuid4(), LineItemDraft("Pose", "10", "20")
            )

    def test_invoice_items(self, lifecycle: DocumentLifecycleService) -> None:
        invoice = lifecycle.create_invoice(
            InvoiceDraft(client_id="client-1"), make_media(3)
        ).document

        lifecycle.add_line_item(
            DocumentKind.INVOICE, invoice.id, LineItemDraft("Pose", "100", "20")
        )
        lifecycle.add_line_item(
            DocumentKind.INVOICE, invoice.id, LineItemDraft("Pneus", "50", "10")
        )

        stored = lifecycle.get_invoice(invoice.id)
        assert stored.amount == Decimal("175.00")
        assert stored.totals.tax_rate == Decimal("20.00")
