from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from conftest import make_media

from myjantes.domain.catalog import Service
from myjantes.domain.value_objects import QuoteStatus, ReservationStatus
from myjantes.exceptions import (
    InvalidAmountError,
    InvalidStatusTransitionError,
    QuoteNotFoundError,
    ReservationNotFoundError,
    ServiceNotFoundError,
)
from myjantes.repositories import RepositoryBundle
from myjantes.services.interfaces import QuoteDraft, ReservationDraft, ServiceLine
from myjantes.services.lifecycle import DocumentLifecycleService
from myjantes.services.notifications import InMemoryPushChannel
from myjantes.services.reservations import ReservationServiceImpl

SCHEDULED = datetime(2026, 11, 3, 9, 30, tzinfo=UTC)


class TestCreateReservation:
    def test_pending_reservation(
        self,
        reservations: ReservationServiceImpl,
        repos: RepositoryBundle,
        push_channel: InMemoryPushChannel,
    ) -> None:
        reservation = reservations.create_reservation(
            ReservationDraft(
                client_id="client-5",
                scheduled_date=SCHEDULED,
                price_excluding_tax="200",
                tax_rate="20",
            )
        )

        assert reservation.status == ReservationStatus.PENDING
        assert reservation.tax_amount == Decimal("40.00")
        stored = reservations.get_reservation(reservation.id)
        assert stored.scheduled_date == SCHEDULED
        assert stored.price_excluding_tax == Decimal("200")
        events = push_channel.events_for("client-5")
        assert events[0]["type"] == "reservation_created"
        assert repos.notifications.list_for_user("client-5")[0].title == "Nouvelle réservation"

    def test_confirmed_on_creation_sends_confirmation(
        self, reservations: ReservationServiceImpl, push_channel: InMemoryPushChannel
    ) -> None:
        reservations.create_reservation(
            ReservationDraft(
                client_id="client-5",
                scheduled_date=SCHEDULED,
                status=ReservationStatus.CONFIRMED,
            )
        )

        assert push_channel.events_for("client-5")[0]["type"] == "reservation_confirmed"

    def test_cannot_start_completed(self, reservations: ReservationServiceImpl) -> None:
        with pytest.raises(ValueError):
            reservations.create_reservation(
                ReservationDraft(
                    client_id="client-5",
                    scheduled_date=SCHEDULED,
                    status=ReservationStatus.COMPLETED,
                )
            )

    def test_tax_rate_out_of_range(self, reservations: ReservationServiceImpl) -> None:
        with pytest.raises(InvalidAmountError):
            reservations.create_reservation(
                ReservationDraft(client_id="client-5", scheduled_date=SCHEDULED, tax_rate="150")
            )

    def test_unknown_service(self, reservations: ReservationServiceImpl) -> None:
        with pytest.raises(ServiceNotFoundError):
            reservations.create_reservation(
                ReservationDraft(
                    client_id="client-5", scheduled_date=SCHEDULED, service_id=uuid4()
                )
            )

    def test_unknown_quote(self, reservations: ReservationServiceImpl) -> None:
        with pytest.raises(QuoteNotFoundError):
            reservations.create_reservation(
                ReservationDraft(client_id="client-5", scheduled_date=SCHEDULED, quote_id=uuid4())
            )

    def test_copies_details_from_quote(
        self,
        reservations: ReservationServiceImpl,
        lifecycle: DocumentLifecycleService,
        quote_draft: QuoteDraft,
        sample_service: Service,
    ) -> None:
        quote_draft.service_id = sample_service.id
        quote = lifecycle.create_quote(
            quote_draft,
            make_media(3),
            services=[ServiceLine(service_id=sample_service.id, quantity=4)],
        ).document
        lifecycle.update_quote_status(quote.id, QuoteStatus.APPROVED)

        reservation = reservations.create_reservation(
            ReservationDraft(client_id="client-42", scheduled_date=SCHEDULED, quote_id=quote.id)
        )

        assert reservation.quote_id == quote.id
        assert reservation.service_id == sample_service.id
        assert reservation.wheel_count == 4
        assert reservation.diameter == "18"
        assert reservation.price_excluding_tax == Decimal("480.00")
        assert reservation.tax_rate == Decimal("20.00")
        assert reservation.tax_amount == Decimal("96.00")


class TestReservationStatus:
    def test_confirm_then_complete(
        self, reservations: ReservationServiceImpl, push_channel: InMemoryPushChannel
    ) -> None:
        reservation = reservations.create_reservation(
            ReservationDraft(client_id="client-5", scheduled_date=SCHEDULED)
        )

        reservations.update_status(reservation.id, ReservationStatus.CONFIRMED)
        done = reservations.update_status(reservation.id, ReservationStatus.COMPLETED)

        assert done.status == ReservationStatus.COMPLETED
        types = [e["type"] for e in push_channel.events_for("client-5")]
        assert types == ["reservation_created", "reservation_confirmed", "reservation_updated"]

    def test_cancelled_is_final(self, reservations: ReservationServiceImpl) -> None:
        reservation = reservations.create_reservation(
            ReservationDraft(client_id="client-5", scheduled_date=SCHEDULED)
        )
        reservations.update_status(reservation.id, ReservationStatus.CANCELLED)

        with pytest.raises(InvalidStatusTransitionError):
            reservations.update_status(reservation.id, ReservationStatus.CONFIRMED)

    def test_unknown_reservation(self, reservations: ReservationServiceImpl) -> None:
        with pytest.raises(ReservationNotFoundError):
            reservations.update_status(uuid4(), ReservationStatus.CONFIRMED)

    def test_list_by_client(self, reservations: ReservationServiceImpl) -> None:
        reservations.create_reservation(
            ReservationDraft(client_id="client-5", scheduled_date=SCHEDULED)
        )
        reservations.create_reservation(
            ReservationDraft(client_id="client-6", scheduled_date=SCHEDULED)
        )

        assert len(reservations.list_reservations()) == 2
        assert [r.client_id for r in reservations.list_reservations("client-6")] == ["client-6"]
