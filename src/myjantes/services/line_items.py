from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from myjantes.domain.line_items import LineItem, LineItemDraft, parse_line_amounts
from myjantes.domain.value_objects import HUNDRED, DocumentKind, parse_decimal
from myjantes.exceptions import LineItemNotFoundError, MissingFieldError
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import LineItemRepository
from myjantes.services.interfaces import LineItemService

logger = get_logger(__name__)

# Fields a caller may change; everything else on an item is derived or fixed.
EDITABLE_FIELDS = frozenset(
    {"description", "quantity", "unit_price_excluding_tax", "tax_rate"}
)


class LineItemServiceImpl(LineItemService):
    """CRUD over the line items of one document kind.

    Mutations never touch the parent's aggregates; callers follow them with a
    totals recalculation.
    """

    def __init__(self, kind: DocumentKind, line_item_repo: LineItemRepository) -> None:
        self.kind = kind
        self._line_item_repo = line_item_repo

    def list_items(self, parent_id: UUID) -> list[LineItem]:
        return list(self._line_item_repo.list_by_parent(parent_id))

    def get_item(self, item_id: UUID) -> LineItem | None:
        return self._line_item_repo.get(item_id)

    def check_draft(self, draft: LineItemDraft) -> None:
        """Raise the error ``create_item`` would raise for ``draft``, without writing."""
        if not draft.description or not draft.description.strip():
            raise MissingFieldError("description")
        parse_line_amounts(draft)

    def create_item(self, parent_id: UUID, draft: LineItemDraft) -> LineItem:
        self.check_draft(draft)
        item = LineItem.build(parent_id, self.kind, draft)
        self._line_item_repo.add(item)
        logger.debug(
            "line_item_created",
            kind=self.kind.value,
            item_id=str(item.id),
            parent_id=str(parent_id),
            total_excluding_tax=str(item.total_excluding_tax),
        )
        return item

    def update_item(self, item_id: UUID, **changes: Any) -> LineItem:
        item = self._line_item_repo.get(item_id)
        if item is None:
            raise LineItemNotFoundError(item_id)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update line item fields: {sorted(unknown)}")

        if changes.get("description") is not None:
            description = str(changes["description"])
            if not description.strip():
                raise MissingFieldError("description")
            item.description = description
        if changes.get("quantity") is not None:
            item.quantity = parse_decimal(
                changes["quantity"], "quantity", minimum=Decimal("0")
            )
        if changes.get("unit_price_excluding_tax") is not None:
            item.unit_price_excluding_tax = parse_decimal(
                changes["unit_price_excluding_tax"],
                "unit_price_excluding_tax",
                minimum=Decimal("0"),
            )
        if changes.get("tax_rate") is not None:
            item.tax_rate = parse_decimal(
                changes["tax_rate"], "tax_rate", minimum=Decimal("0"), maximum=HUNDRED
            )

        item.refresh_totals()
        self._line_item_repo.update(item)
        logger.debug(
            "line_item_updated",
            kind=self.kind.value,
            item_id=str(item.id),
            fields=sorted(k for k, v in changes.items() if v is not None),
        )
        return item

    def delete_item(self, item_id: UUID) -> LineItem:
        item = self._line_item_repo.get(item_id)
        if item is None:
            raise LineItemNotFoundError(item_id)
        self._line_item_repo.delete(item_id)
        logger.debug(
            "line_item_deleted",
            kind=self.kind.value,
            item_id=str(item_id),
            parent_id=str(item.parent_id),
        )
        return item
