"""Document-level monetary aggregates.

A document's totals come from one of two sources: the sum of its line items,
or the single-value amounts it was created with before itemization existed.
Both sources are modelled explicitly so the choice is visible and testable.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from myjantes.domain.line_items import LineItem
from myjantes.domain.value_objects import (
    HUNDRED,
    ZERO,
    RoundingMode,
    quantize_money,
)

DEFAULT_TAX_RATE = Decimal("20.00")


@dataclass(frozen=True)
class DocumentTotals:
    price_excluding_tax: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total_including_tax: Decimal = ZERO
    tax_rate: Decimal = DEFAULT_TAX_RATE


@dataclass(frozen=True)
class LegacyAmounts:
    """Single-value amounts supplied when the document was created."""

    price_excluding_tax: Decimal | None = None
    tax_amount: Decimal | None = None
    amount: Decimal | None = None
    tax_rate: Decimal | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.price_excluding_tax,
                self.tax_amount,
                self.amount,
                self.tax_rate,
            )
        )


@dataclass(frozen=True)
class FromLineItems:
    items: tuple[LineItem, ...]

    def totals(
        self,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
        rounding: RoundingMode = RoundingMode.PER_LINE,
    ) -> DocumentTotals:
        if rounding == RoundingMode.SINGLE:
            total_ht = sum(
                (item.quantity * item.unit_price_excluding_tax for item in self.items),
                Decimal("0"),
            )
            total_tax = sum(
                (
                    item.quantity * item.unit_price_excluding_tax * item.tax_rate / HUNDRED
                    for item in self.items
                ),
                Decimal("0"),
            )
        else:
            total_ht = sum((item.total_excluding_tax for item in self.items), Decimal("0"))
            total_tax = sum((item.tax_amount for item in self.items), Decimal("0"))

        price_ht = quantize_money(total_ht)
        tax = quantize_money(total_tax)
        # The representative rate is the first line's rate, not a weighted average.
        return DocumentTotals(
            price_excluding_tax=price_ht,
            tax_amount=tax,
            total_including_tax=price_ht + tax,
            tax_rate=quantize_money(self.items[0].tax_rate),
        )


@dataclass(frozen=True)
class FromLegacyFields:
    legacy: LegacyAmounts

    def totals(
        self,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
        rounding: RoundingMode = RoundingMode.PER_LINE,
    ) -> DocumentTotals:
        price_ht = quantize_money(self.legacy.price_excluding_tax or Decimal("0"))
        tax = quantize_money(self.legacy.tax_amount or Decimal("0"))
        if self.legacy.amount is not None:
            total = quantize_money(self.legacy.amount)
        else:
            total = price_ht + tax
        rate = self.legacy.tax_rate if self.legacy.tax_rate is not None else default_tax_rate
        return DocumentTotals(
            price_excluding_tax=price_ht,
            tax_amount=tax,
            total_including_tax=total,
            tax_rate=quantize_money(rate),
        )


Aggregates = FromLineItems | FromLegacyFields


def resolve_aggregates(
    items: Sequence[LineItem], legacy: LegacyAmounts
) -> Aggregates:
    if items:
        return FromLineItems(tuple(items))
    return FromLegacyFields(legacy)


__all__ = [
    "Aggregates",
    "DEFAULT_TAX_RATE",
    "DocumentTotals",
    "FromLegacyFields",
    "FromLineItems",
    "LegacyAmounts",
    "resolve_aggregates",
]
