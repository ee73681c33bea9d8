from __future__ import annotations

from myjantes.domain.counters import (
    DEFAULT_NUMBER_WIDTH,
    InvoiceCounter,
    format_invoice_number,
)
from myjantes.domain.value_objects import PaymentMethod
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import InvoiceCounterRepository
from myjantes.services.interfaces import InvoiceNumberingService

logger = get_logger(__name__)


def _payment_key(payment_type: PaymentMethod | str) -> str:
    return payment_type.value if isinstance(payment_type, PaymentMethod) else payment_type


class InvoiceNumberingServiceImpl(InvoiceNumberingService):
    """Hands out invoice numbers, one gap-free sequence per payment method.

    The increment is delegated to the repository as a single atomic upsert,
    so concurrent callers always receive distinct numbers.
    """

    def __init__(
        self,
        counter_repo: InvoiceCounterRepository,
        width: int = DEFAULT_NUMBER_WIDTH,
    ) -> None:
        self._counter_repo = counter_repo
        self._width = width

    def next_number(self, payment_type: PaymentMethod | str) -> InvoiceCounter:
        return self._counter_repo.increment(_payment_key(payment_type))

    def format_number(self, payment_type: PaymentMethod | str, number: int) -> str:
        return format_invoice_number(payment_type, number, self._width)

    def allocate(self, payment_type: PaymentMethod | str) -> str:
        counter = self.next_number(payment_type)
        invoice_number = self.format_number(payment_type, counter.current_number)
        logger.info(
            "invoice_number_allocated",
            payment_type=counter.payment_type,
            sequence=counter.current_number,
            invoice_number=invoice_number,
        )
        return invoice_number

    def current(self, payment_type: PaymentMethod | str) -> int:
        counter = self._counter_repo.get(_payment_key(payment_type))
        return counter.current_number if counter else 0

    def list_counters(self) -> list[InvoiceCounter]:
        return list(self._counter_repo.list_all())
