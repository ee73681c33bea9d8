"""Tests for document totals recalculation."""

from decimal import Decimal
from uuid import uuid4

import pytest

from myjantes.domain.aggregates import LegacyAmounts
from myjantes.domain.documents import Invoice, Quote
from myjantes.domain.line_items import LineItemDraft
from myjantes.domain.value_objects import DocumentKind, RoundingMode
from myjantes.exceptions import InvoiceNotFoundError, QuoteNotFoundError
from myjantes.repositories import RepositoryBundle
from myjantes.services.line_items import LineItemServiceImpl
from myjantes.services.totals import TotalsServiceImpl


@pytest.fixture
def quote(repos: RepositoryBundle) -> Quote:
    quote = Quote(
        client_id="client-1",
        legacy=LegacyAmounts(
            price_excluding_tax=Decimal("150.00"),
            tax_amount=Decimal("30.00"),
            amount=Decimal("180.00"),
            tax_rate=Decimal("20.00"),
        ),
    )
    repos.quotes.add(quote)
    return quote


@pytest.fixture
def store(repos: RepositoryBundle) -> LineItemServiceImpl:
    return LineItemServiceImpl(DocumentKind.QUOTE, repos.quote_items)


@pytest.fixture
def totals(repos: RepositoryBundle) -> TotalsServiceImpl:
    return TotalsServiceImpl(repos.quotes, repos.quote_items)


class TestRecalculate:
    def test_end_to_end_scenario(
        self,
        quote: Quote,
        store: LineItemServiceImpl,
        totals: TotalsServiceImpl,
        repos: RepositoryBundle,
    ) -> None:
        a = store.create_item(quote.id, LineItemDraft("A", "100.00", "20", quantity="2"))
        assert (a.total_excluding_tax, a.tax_amount, a.total_including_tax) == (
            Decimal("200.00"),
            Decimal("40.00"),
            Decimal("240.00"),
        )
        b = store.create_item(quote.id, LineItemDraft("B", "50.00", "10"))
        assert (b.total_excluding_tax, b.tax_amount, b.total_including_tax) == (
            Decimal("50.00"),
            Decimal("5.00"),
            Decimal("55.00"),
        )

        document = totals.recalculate(quote.id)

        assert document.totals.price_excluding_tax == Decimal("250.00")
        assert document.totals.tax_amount == Decimal("45.00")
        assert document.totals.total_including_tax == Decimal("295.00")
        assert document.totals.tax_rate == Decimal("20.00")
        stored = repos.quotes.get(quote.id)
        assert stored is not None
        assert stored.quote_amount == Decimal("295.00")

    def test_idempotent(
        self, quote: Quote, store: LineItemServiceImpl, totals: TotalsServiceImpl
    ) -> None:
        store.create_item(quote.id, LineItemDraft("A", "19.99", "20", quantity="3"))
        store.create_item(quote.id, LineItemDraft("B", "7.35", "5.5"))

        first = totals.recalculate(quote.id).totals
        second = totals.recalculate(quote.id).totals

        assert first == second

    def test_sum_invariant(
        self, quote: Quote, store: LineItemServiceImpl, totals: TotalsServiceImpl
    ) -> None:
        drafts = [
            LineItemDraft("A", "33.33", "20", quantity="3"),
            LineItemDraft("B", "12.49", "5.5", quantity="7"),
            LineItemDraft("C", "0.99", "10"),
        ]
        items = [store.create_item(quote.id, d) for d in drafts]

        document = totals.recalculate(quote.id)

        assert document.totals.price_excluding_tax == sum(i.total_excluding_tax for i in items)
        assert document.totals.tax_amount == sum(i.tax_amount for i in items)
        assert document.totals.total_including_tax == (
            document.totals.price_excluding_tax + document.totals.tax_amount
        )

    def test_representative_rate_is_first_item_rate(
        self, quote: Quote, store: LineItemServiceImpl, totals: TotalsServiceImpl
    ) -> None:
        store.create_item(quote.id, LineItemDraft("A", "10", "10"))
        store.create_item(quote.id, LineItemDraft("B", "1000", "20"))

        document = totals.recalculate(quote.id)

        assert document.totals.tax_rate == Decimal("10.00")

    def test_deleting_last_item_falls_back_to_legacy_fields(
        self, quote: Quote, store: LineItemServiceImpl, totals: TotalsServiceImpl
    ) -> None:
        item = store.create_item(quote.id, LineItemDraft("A", "999", "10"))
        assert totals.recalculate(quote.id).totals.price_excluding_tax == Decimal("999.00")

        removed = store.delete_item(item.id)
        document = totals.recalculate(removed.parent_id)

        assert document.totals.price_excluding_tax == Decimal("150.00")
        assert document.totals.tax_amount == Decimal("30.00")
        assert document.totals.total_including_tax == Decimal("180.00")
        assert document.totals.tax_rate == Decimal("20.00")

    def test_no_items_no_legacy_writes_default_rate(
        self, repos: RepositoryBundle, totals: TotalsServiceImpl
    ) -> None:
        quote = Quote(client_id="client-2")
        repos.quotes.add(quote)

        document = totals.recalculate(quote.id)

        assert document.totals.price_excluding_tax == Decimal("0.00")
        assert document.totals.total_including_tax == Decimal("0.00")
        assert document.totals.tax_rate == Decimal("20.00")

    def test_unknown_quote_raises_and_creates_nothing(
        self, totals: TotalsServiceImpl, repos: RepositoryBundle
    ) -> None:
        missing = uuid4()

        with pytest.raises(QuoteNotFoundError):
            totals.recalculate(missing)

        assert repos.quotes.get(missing) is None

    def test_unknown_invoice_raises(self, repos: RepositoryBundle) -> None:
        totals = TotalsServiceImpl(repos.invoices, repos.invoice_items)

        with pytest.raises(InvoiceNotFoundError):
            totals.recalculate(uuid4())

    def test_invoice_amount_updated(self, repos: RepositoryBundle) -> None:
        invoice = Invoice(client_id="client-1", invoice_number="MY-INV-VIR00000001")
        repos.invoices.add(invoice)
        store = LineItemServiceImpl(DocumentKind.INVOICE, repos.invoice_items)
        store.create_item(invoice.id, LineItemDraft("Pose", "80", "20"))

        TotalsServiceImpl(repos.invoices, repos.invoice_items).recalculate(invoice.id)

        stored = repos.invoices.get(invoice.id)
        assert stored is not None
        assert stored.amount == Decimal("96.00")


class TestRoundingModes:
    def test_single_rounding_mode(
        self, quote: Quote, store: LineItemServiceImpl, repos: RepositoryBundle
    ) -> None:
        for _ in range(3):
            store.create_item(quote.id, LineItemDraft("Valve", "0.125", "20"))

        per_line = TotalsServiceImpl(repos.quotes, repos.quote_items).recalculate(quote.id)
        assert per_line.totals.total_including_tax == Decimal("0.48")

        single = TotalsServiceImpl(
            repos.quotes, repos.quote_items, rounding_mode=RoundingMode.SINGLE
        ).recalculate(quote.id)
        assert single.totals.price_excluding_tax == Decimal("0.38")
        assert single.totals.tax_amount == Decimal("0.08")
        assert single.totals.total_including_tax == Decimal("0.46")

    def test_custom_default_rate_for_empty_documents(self, repos: RepositoryBundle) -> None:
        quote = Quote(client_id="client-3")
        repos.quotes.add(quote)

        document = TotalsServiceImpl(
            repos.quotes, repos.quote_items, default_tax_rate=Decimal("8.5")
        ).recalculate(quote.id)

        assert document.totals.tax_rate == Decimal("8.50")
