from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from myjantes.domain.documents import Reservation
from myjantes.domain.notifications import EventType, Notification, PushEvent
from myjantes.domain.value_objects import (
    HUNDRED,
    NotificationType,
    ReservationStatus,
    parse_optional_decimal,
    quantize_money,
)
from myjantes.exceptions import (
    InvalidAmountError,
    MissingFieldError,
    QuoteNotFoundError,
    ReservationNotFoundError,
    ServiceNotFoundError,
)
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import (
    QuoteRepository,
    ReservationRepository,
    ServiceRepository,
)
from myjantes.services.interfaces import (
    NotificationService,
    ReservationDraft,
    ReservationService,
)

logger = get_logger(__name__)


class ReservationServiceImpl(ReservationService):
    def __init__(
        self,
        reservation_repo: ReservationRepository,
        quote_repo: QuoteRepository,
        service_repo: ServiceRepository,
        notifier: NotificationService,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._quote_repo = quote_repo
        self._service_repo = service_repo
        self._notifier = notifier

    def create_reservation(self, draft: ReservationDraft) -> Reservation:
        if not draft.client_id:
            raise MissingFieldError("client_id")
        if draft.status not in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
            raise ValueError(f"New reservations cannot start as '{draft.status.value}'")
        if draft.service_id is not None and self._service_repo.get(draft.service_id) is None:
            raise ServiceNotFoundError(draft.service_id)

        price = parse_optional_decimal(draft.price_excluding_tax, "price_excluding_tax")
        tax_rate = parse_optional_decimal(draft.tax_rate, "tax_rate")
        if tax_rate is not None and not Decimal("0") <= tax_rate <= HUNDRED:
            raise InvalidAmountError("tax_rate", tax_rate, f"must be between 0 and {HUNDRED}")
        wheel_count = draft.wheel_count
        diameter = draft.diameter
        product_details = draft.product_details
        service_id = draft.service_id

        if draft.quote_id is not None:
            quote = self._quote_repo.get(draft.quote_id)
            if quote is None:
                raise QuoteNotFoundError(draft.quote_id)
            wheel_count = wheel_count if wheel_count is not None else quote.wheel_count
            diameter = diameter or quote.diameter
            product_details = product_details or quote.product_details
            service_id = service_id or quote.service_id
            if price is None:
                price = quote.totals.price_excluding_tax
                tax_rate = quote.totals.tax_rate

        tax_amount = None
        if price is not None and tax_rate is not None:
            tax_amount = quantize_money(price * tax_rate / HUNDRED)

        reservation = Reservation(
            client_id=draft.client_id,
            scheduled_date=draft.scheduled_date,
            service_id=service_id,
            quote_id=draft.quote_id,
            status=draft.status,
            wheel_count=wheel_count,
            diameter=diameter,
            price_excluding_tax=price,
            tax_rate=tax_rate,
            tax_amount=tax_amount,
            product_details=product_details,
            notes=draft.notes,
        )
        self._reservation_repo.add(reservation)
        logger.info(
            "reservation_created",
            reservation_id=str(reservation.id),
            client_id=reservation.client_id,
            scheduled_date=reservation.scheduled_date.isoformat(),
            status=reservation.status.value,
        )
        self._notify(reservation, created=True)
        return reservation

    def get_reservation(self, reservation_id: UUID) -> Reservation:
        reservation = self._reservation_repo.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    def list_reservations(self, client_id: str | None = None) -> list[Reservation]:
        return list(self._reservation_repo.list_all(client_id))

    def update_status(
        self, reservation_id: UUID, status: ReservationStatus
    ) -> Reservation:
        reservation = self.get_reservation(reservation_id)
        previous = reservation.status
        reservation.transition_to(status)
        self._reservation_repo.update(reservation)
        logger.info(
            "reservation_status_changed",
            reservation_id=str(reservation.id),
            previous=previous.value,
            status=status.value,
        )
        self._notify(reservation, created=False)
        return reservation

    def _notify(self, reservation: Reservation, created: bool) -> None:
        if reservation.status == ReservationStatus.CONFIRMED:
            event_type = EventType.RESERVATION_CONFIRMED
            title = "Réservation confirmée"
            message = "Votre réservation a été confirmée"
        elif created:
            event_type = EventType.RESERVATION_CREATED
            title = "Nouvelle réservation"
            message = "Votre demande de réservation a été enregistrée"
        else:
            event_type = EventType.RESERVATION_UPDATED
            title = "Réservation mise à jour"
            message = f"Votre réservation est maintenant : {reservation.status.value}"

        self._notifier.emit(
            reservation.client_id,
            Notification(
                user_id=reservation.client_id,
                type=NotificationType.RESERVATION,
                title=title,
                message=message,
                related_id=reservation.id,
            ),
            PushEvent(event_type, reservation.id, reservation.status.value),
        )
