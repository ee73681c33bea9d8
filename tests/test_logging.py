"""Tests for structured logging configuration and the events services emit."""

import logging
from collections.abc import Iterator
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest
import structlog
from conftest import make_media
from structlog.testing import capture_logs

from myjantes.config import Settings
from myjantes.domain.line_items import LineItemDraft
from myjantes.domain.value_objects import DocumentKind
from myjantes.logging_config import (
    NOISY_LOGGERS,
    LogContext,
    _render_plain_values,
    bind_context,
    clear_context,
    configure_logging,
)
from myjantes.repositories import RepositoryBundle
from myjantes.services.interfaces import QuoteDraft
from myjantes.services.lifecycle import DocumentLifecycleService
from myjantes.services.notifications import NotificationDispatcher, PushChannel
from myjantes.services.numbering import InvoiceNumberingServiceImpl


class DownPushChannel(PushChannel):
    def publish(self, user_id: str, payload: dict[str, Any]) -> None:
        raise ConnectionError("offline")


@pytest.fixture
def reset_structlog() -> Iterator[None]:
    yield
    clear_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_console_configuration(self, reset_structlog: None) -> None:
        configure_logging(Settings(log_format="console", log_level="DEBUG"))

        assert structlog.is_configured()

    def test_json_configuration_renders_json(self, reset_structlog: None) -> None:
        configure_logging(Settings(log_format="json"))

        assert any(
            isinstance(p, structlog.processors.JSONRenderer)
            for p in structlog.get_config()["processors"]
        )

    def test_http_loggers_stay_at_info(
        self, reset_structlog: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        for name in NOISY_LOGGERS:
            monkeypatch.setattr(logging.getLogger(name), "level", logging.NOTSET)

        configure_logging(Settings(log_format="console", log_level="DEBUG"))

        assert logging.getLogger("httpx").level == logging.INFO
        assert logging.getLogger("uvicorn.access").level == logging.INFO


class TestRenderPlainValues:
    def test_decimals_and_uuids_become_strings(self) -> None:
        document_id = uuid4()

        event = _render_plain_values(
            logging.getLogger(__name__),
            "info",
            {"event": "x", "amount": Decimal("12.50"), "document_id": document_id, "count": 3},
        )

        assert event["amount"] == "12.50"
        assert event["document_id"] == str(document_id)
        assert event["count"] == 3


class TestContextBinding:
    def test_bound_context_is_visible(self, reset_structlog: None) -> None:
        bind_context(request_id="req-1")

        assert structlog.contextvars.get_contextvars()["request_id"] == "req-1"

    def test_log_context_unbinds_on_exit(self, reset_structlog: None) -> None:
        with LogContext(quote_id="q-1"):
            assert structlog.contextvars.get_contextvars()["quote_id"] == "q-1"

        assert "quote_id" not in structlog.contextvars.get_contextvars()


class TestServiceEvents:
    def test_totals_recalculated_event(
        self, lifecycle: DocumentLifecycleService, quote_draft: QuoteDraft
    ) -> None:
        quote = lifecycle.create_quote(quote_draft, make_media(3)).document

        with capture_logs() as logs:
            lifecycle.add_line_item(
                DocumentKind.QUOTE, quote.id, LineItemDraft("Peinture", "100", "20")
            )

        event = next(e for e in logs if e["event"] == "totals_recalculated")
        assert event["document_id"] == str(quote.id)
        assert event["source"] == "line_items"
        assert event["total_including_tax"] == "120.00"

    def test_reconciliation_required_when_notification_fails(
        self, repos: RepositoryBundle, quote_draft: QuoteDraft
    ) -> None:
        lifecycle = DocumentLifecycleService(
            quote_repo=repos.quotes,
            invoice_repo=repos.invoices,
            quote_item_repo=repos.quote_items,
            invoice_item_repo=repos.invoice_items,
            media_repo=repos.media,
            service_repo=repos.services,
            numbering=InvoiceNumberingServiceImpl(repos.counters),
            notifier=NotificationDispatcher(repos.notifications, DownPushChannel()),
        )

        with capture_logs() as logs:
            outcome = lifecycle.create_quote(quote_draft, make_media(3))

        events = [e["event"] for e in logs]
        assert "notification_delivery_failed" in events
        assert "quote_created" in events
        reconciliation = next(e for e in logs if e["event"] == "reconciliation_required")
        assert reconciliation["log_level"] == "warning"
        assert reconciliation["document_id"] == str(outcome.document.id)
        assert reconciliation["incomplete_steps"] == ["notification"]
