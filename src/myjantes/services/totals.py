"""Document totals recalculation.

The aggregate fields of a quote or invoice (HT, tax, TTC and representative
rate) are derived state. They are rebuilt from the document's line items
whenever the items change, or from the single-value amounts the document was
created with when it has no items at all.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from myjantes.domain.aggregates import DEFAULT_TAX_RATE, resolve_aggregates
from myjantes.domain.documents import Document
from myjantes.domain.value_objects import DocumentKind, RoundingMode
from myjantes.exceptions import InvoiceNotFoundError, QuoteNotFoundError
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import DocumentRepository, LineItemRepository
from myjantes.services.interfaces import TotalsService

logger = get_logger(__name__)


class TotalsServiceImpl(TotalsService):
    def __init__(
        self,
        document_repo: DocumentRepository,
        line_item_repo: LineItemRepository,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
        rounding_mode: RoundingMode = RoundingMode.PER_LINE,
    ) -> None:
        self._document_repo = document_repo
        self._line_item_repo = line_item_repo
        self._default_tax_rate = default_tax_rate
        self._rounding_mode = rounding_mode

    @property
    def kind(self) -> DocumentKind:
        return self._document_repo.kind

    def recalculate(self, parent_id: UUID) -> Document:
        """Rebuild and persist the aggregates of one document.

        Running it twice with no change in between writes the same values.
        Raises the kind's not-found error when the document does not exist;
        a missing parent is never created.
        """
        document = self._document_repo.get(parent_id)
        if document is None:
            if self.kind == DocumentKind.QUOTE:
                raise QuoteNotFoundError(parent_id)
            raise InvoiceNotFoundError(parent_id)

        items = list(self._line_item_repo.list_by_parent(parent_id))
        aggregates = resolve_aggregates(items, document.legacy)
        totals = aggregates.totals(self._default_tax_rate, self._rounding_mode)

        self._document_repo.save_totals(parent_id, totals)
        document.totals = totals

        logger.info(
            "totals_recalculated",
            kind=self.kind.value,
            document_id=str(parent_id),
            source="line_items" if items else "legacy_fields",
            item_count=len(items),
            price_excluding_tax=str(totals.price_excluding_tax),
            tax_amount=str(totals.tax_amount),
            total_including_tax=str(totals.total_including_tax),
            tax_rate=str(totals.tax_rate),
        )
        return document
