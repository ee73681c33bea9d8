from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from myjantes.domain.value_objects import (
    HUNDRED,
    DocumentKind,
    parse_decimal,
    quantize_money,
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class LineTotals:
    total_excluding_tax: Decimal
    tax_amount: Decimal
    total_including_tax: Decimal


def compute_line_totals(
    quantity: Decimal, unit_price_excluding_tax: Decimal, tax_rate: Decimal
) -> LineTotals:
    """Derive the HT, tax and TTC amounts of one line, each rounded to cents.

    Tax is computed from the rounded HT total so the three stored values
    always satisfy ``ht + tax == ttc``.
    """
    total_ht = quantize_money(quantity * unit_price_excluding_tax)
    tax = quantize_money(total_ht * tax_rate / HUNDRED)
    return LineTotals(
        total_excluding_tax=total_ht,
        tax_amount=tax,
        total_including_tax=total_ht + tax,
    )


@dataclass(frozen=True)
class LineItemDraft:
    """Caller input for a new line; amounts may arrive as strings or numbers."""

    description: str
    unit_price_excluding_tax: Decimal | str | int | float
    tax_rate: Decimal | str | int | float
    quantity: Decimal | str | int | float = Decimal("1")


def parse_line_amounts(draft: LineItemDraft) -> tuple[Decimal, Decimal, Decimal]:
    """Parse and bound-check the quantity, unit price and tax rate of a draft."""
    quantity = parse_decimal(draft.quantity, "quantity", minimum=Decimal("0"))
    unit_price = parse_decimal(
        draft.unit_price_excluding_tax,
        "unit_price_excluding_tax",
        minimum=Decimal("0"),
    )
    tax_rate = parse_decimal(
        draft.tax_rate, "tax_rate", minimum=Decimal("0"), maximum=HUNDRED
    )
    return quantity, unit_price, tax_rate


@dataclass
class LineItem:
    parent_id: UUID
    document_kind: DocumentKind
    description: str
    unit_price_excluding_tax: Decimal
    tax_rate: Decimal
    total_excluding_tax: Decimal
    tax_amount: Decimal
    total_including_tax: Decimal
    quantity: Decimal = Decimal("1")
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def build(
        cls,
        parent_id: UUID,
        document_kind: DocumentKind,
        draft: LineItemDraft,
    ) -> "LineItem":
        quantity, unit_price, tax_rate = parse_line_amounts(draft)
        totals = compute_line_totals(quantity, unit_price, tax_rate)
        return cls(
            parent_id=parent_id,
            document_kind=document_kind,
            description=draft.description,
            quantity=quantity,
            unit_price_excluding_tax=unit_price,
            tax_rate=tax_rate,
            total_excluding_tax=totals.total_excluding_tax,
            tax_amount=totals.tax_amount,
            total_including_tax=totals.total_including_tax,
        )

    def refresh_totals(self) -> None:
        totals = compute_line_totals(
            self.quantity, self.unit_price_excluding_tax, self.tax_rate
        )
        self.total_excluding_tax = totals.total_excluding_tax
        self.tax_amount = totals.tax_amount
        self.total_including_tax = totals.total_including_tax
        self.updated_at = _utc_now()


__all__ = [
    "LineItem",
    "LineItemDraft",
    "LineTotals",
    "compute_line_totals",
    "parse_line_amounts",
]
