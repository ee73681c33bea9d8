from decimal import Decimal
from uuid import uuid4

from myjantes.domain.aggregates import (
    FromLegacyFields,
    FromLineItems,
    LegacyAmounts,
    resolve_aggregates,
)
from myjantes.domain.line_items import LineItem, LineItemDraft
from myjantes.domain.value_objects import DocumentKind, RoundingMode


def _item(price: str, rate: str = "20", quantity: str = "1") -> LineItem:
    return LineItem.build(
        uuid4(), DocumentKind.QUOTE, LineItemDraft("line", price, rate, quantity)
    )


class TestResolveAggregates:
    def test_items_win_over_legacy_fields(self) -> None:
        items = [_item("10")]
        aggregates = resolve_aggregates(items, LegacyAmounts(price_excluding_tax=Decimal("99")))

        assert isinstance(aggregates, FromLineItems)

    def test_no_items_uses_legacy_fields(self) -> None:
        aggregates = resolve_aggregates([], LegacyAmounts())

        assert isinstance(aggregates, FromLegacyFields)


class TestFromLineItems:
    def test_sums_and_first_rate(self) -> None:
        totals = FromLineItems((_item("100", "20", "2"), _item("50", "10"))).totals()

        assert totals.price_excluding_tax == Decimal("250.00")
        assert totals.tax_amount == Decimal("45.00")
        assert totals.total_including_tax == Decimal("295.00")
        assert totals.tax_rate == Decimal("20.00")

    def test_per_line_rounding_keeps_historical_drift(self) -> None:
        items = tuple(_item("0.125") for _ in range(3))

        per_line = FromLineItems(items).totals(rounding=RoundingMode.PER_LINE)
        single = FromLineItems(items).totals(rounding=RoundingMode.SINGLE)

        # per line: HT 0.125 -> 0.13, tax 0.026 -> 0.03, three times
        assert per_line.price_excluding_tax == Decimal("0.39")
        assert per_line.tax_amount == Decimal("0.09")
        # single: HT 0.375 -> 0.38, tax 0.075 -> 0.08
        assert single.price_excluding_tax == Decimal("0.38")
        assert single.tax_amount == Decimal("0.08")
        assert single.total_including_tax == Decimal("0.46")

    def test_modes_agree_on_whole_cent_inputs(self) -> None:
        items = (_item("100", "20", "2"), _item("50", "10"))

        assert FromLineItems(items).totals(rounding=RoundingMode.SINGLE) == FromLineItems(
            items
        ).totals(rounding=RoundingMode.PER_LINE)


class TestFromLegacyFields:
    def test_all_fields_present(self) -> None:
        legacy = LegacyAmounts(
            price_excluding_tax=Decimal("100"),
            tax_amount=Decimal("5.5"),
            amount=Decimal("105.5"),
            tax_rate=Decimal("5.5"),
        )

        totals = FromLegacyFields(legacy).totals()

        assert totals.price_excluding_tax == Decimal("100.00")
        assert totals.tax_amount == Decimal("5.50")
        assert totals.total_including_tax == Decimal("105.50")
        assert totals.tax_rate == Decimal("5.50")

    def test_empty_legacy_defaults_to_zero_and_default_rate(self) -> None:
        totals = FromLegacyFields(LegacyAmounts()).totals()

        assert totals.price_excluding_tax == Decimal("0.00")
        assert totals.tax_amount == Decimal("0.00")
        assert totals.total_including_tax == Decimal("0.00")
        assert totals.tax_rate == Decimal("20.00")

    def test_missing_total_is_ht_plus_tax(self) -> None:
        legacy = LegacyAmounts(price_excluding_tax=Decimal("80"), tax_amount=Decimal("16"))

        totals = FromLegacyFields(legacy).totals(default_tax_rate=Decimal("10"))

        assert totals.total_including_tax == Decimal("96.00")
        assert totals.tax_rate == Decimal("10.00")

    def test_is_empty(self) -> None:
        assert LegacyAmounts().is_empty
        assert not LegacyAmounts(tax_rate=Decimal("20")).is_empty
