"""Tests for notification storage, push delivery and the retry outbox."""

from typing import Any
from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from myjantes.domain.notifications import EventType, Notification, PushEvent
from myjantes.domain.value_objects import NotificationType
from myjantes.exceptions import NotificationNotFoundError
from myjantes.repositories import RepositoryBundle
from myjantes.services.notifications import (
    InMemoryPushChannel,
    NotificationDispatcher,
    PushChannel,
)


class FlakyPushChannel(PushChannel):
    """Fails the first ``failures`` publishes, then delivers."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.delivered: list[tuple[str, dict[str, Any]]] = []

    def publish(self, user_id: str, payload: dict[str, Any]) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("channel closed")
        self.delivered.append((user_id, payload))


def _notification(user_id: str = "client-1") -> Notification:
    return Notification(
        user_id=user_id,
        type=NotificationType.QUOTE,
        title="Nouveau devis",
        message="Un devis a été créé pour vous",
        related_id=uuid4(),
    )


class TestPushEvent:
    def test_payload_shape(self) -> None:
        document_id = uuid4()

        payload = PushEvent(EventType.INVOICE_CREATED, document_id, "pending").to_payload()

        assert payload == {
            "type": "invoice_created",
            "documentId": str(document_id),
            "status": "pending",
        }

    def test_status_omitted_when_unset(self) -> None:
        payload = PushEvent(EventType.QUOTE_UPDATED, uuid4()).to_payload()

        assert "status" not in payload


class TestEmit:
    def test_stores_and_pushes(
        self,
        dispatcher: NotificationDispatcher,
        push_channel: InMemoryPushChannel,
    ) -> None:
        notification = _notification()
        event = PushEvent(EventType.QUOTE_UPDATED, notification.related_id, "pending")

        assert dispatcher.emit("client-1", notification, event) is True

        assert [n.id for n in dispatcher.list_for_user("client-1")] == [notification.id]
        assert push_channel.events_for("client-1") == [event.to_payload()]
        assert len(dispatcher.outbox) == 0

    def test_subscribers_receive_events(
        self, dispatcher: NotificationDispatcher, push_channel: InMemoryPushChannel
    ) -> None:
        received: list[dict[str, Any]] = []
        push_channel.subscribe("client-1", received.append)

        dispatcher.emit("client-1", event=PushEvent(EventType.INVOICE_UPDATED, uuid4(), "paid"))

        assert received[0]["status"] == "paid"
        assert push_channel.events_for("client-2") == []

    def test_without_push_channel_only_stores(self, repos: RepositoryBundle) -> None:
        dispatcher = NotificationDispatcher(repos.notifications)

        delivered = dispatcher.emit(
            "client-1", _notification(), PushEvent(EventType.QUOTE_UPDATED, uuid4())
        )

        assert delivered is True
        assert len(dispatcher.list_for_user("client-1")) == 1

    def test_push_failure_is_queued_not_raised(self, repos: RepositoryBundle) -> None:
        channel = FlakyPushChannel(failures=1)
        dispatcher = NotificationDispatcher(repos.notifications, channel)

        delivered = dispatcher.emit(
            "client-1", _notification(), PushEvent(EventType.QUOTE_UPDATED, uuid4())
        )

        assert delivered is False
        assert len(dispatcher.outbox) == 1
        message = dispatcher.outbox.pending[0]
        assert message.stored is True
        assert message.pushed is False
        assert message.last_error == "channel closed"


class TestRetryFailed:
    def test_retry_delivers_and_does_not_duplicate_storage(
        self, repos: RepositoryBundle
    ) -> None:
        channel = FlakyPushChannel(failures=1)
        dispatcher = NotificationDispatcher(repos.notifications, channel)
        dispatcher.emit("client-1", _notification(), PushEvent(EventType.QUOTE_UPDATED, uuid4()))

        delivered = dispatcher.retry_failed()

        assert delivered == 1
        assert len(dispatcher.outbox) == 0
        assert len(channel.delivered) == 1
        assert len(dispatcher.list_for_user("client-1")) == 1

    def test_still_failing_messages_stay_queued(self, repos: RepositoryBundle) -> None:
        channel = FlakyPushChannel(failures=5)
        dispatcher = NotificationDispatcher(repos.notifications, channel)
        dispatcher.emit("client-1", event=PushEvent(EventType.QUOTE_UPDATED, uuid4()))

        assert dispatcher.retry_failed() == 0
        assert dispatcher.outbox.pending[0].attempts == 2

    def test_empty_outbox(self, dispatcher: NotificationDispatcher) -> None:
        assert dispatcher.retry_failed() == 0

    def test_emit_drains_earlier_messages_first(self, repos: RepositoryBundle) -> None:
        channel = FlakyPushChannel(failures=1)
        dispatcher = NotificationDispatcher(repos.notifications, channel)
        first = PushEvent(EventType.QUOTE_UPDATED, uuid4(), "pending")
        second = PushEvent(EventType.QUOTE_UPDATED, uuid4(), "approved")

        assert dispatcher.emit("client-1", event=first) is False
        assert dispatcher.emit("client-1", event=second) is True

        assert len(dispatcher.outbox) == 0
        assert [payload for _, payload in channel.delivered] == [
            first.to_payload(),
            second.to_payload(),
        ]

    def test_message_dropped_after_max_attempts(self, repos: RepositoryBundle) -> None:
        channel = FlakyPushChannel(failures=10)
        dispatcher = NotificationDispatcher(repos.notifications, channel, max_attempts=2)
        dispatcher.emit("client-1", event=PushEvent(EventType.INVOICE_CREATED, uuid4()))

        with capture_logs() as logs:
            assert dispatcher.retry_failed() == 0

        assert len(dispatcher.outbox) == 0
        dropped = next(e for e in logs if e["event"] == "notification_dropped")
        assert dropped["reason"] == "max_attempts"
        assert dropped["attempts"] == 2
        assert dropped["log_level"] == "error"

    def test_full_outbox_drops_oldest(self, repos: RepositoryBundle) -> None:
        channel = FlakyPushChannel(failures=100)
        dispatcher = NotificationDispatcher(
            repos.notifications, channel, max_attempts=10, outbox_size=2
        )
        events = [PushEvent(EventType.QUOTE_UPDATED, uuid4()) for _ in range(3)]

        for event in events:
            dispatcher.emit("client-1", event=event)

        assert [m.event for m in dispatcher.outbox.pending] == events[1:]

    @pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"outbox_size": 0}])
    def test_limits_must_be_positive(
        self, repos: RepositoryBundle, kwargs: dict[str, int]
    ) -> None:
        with pytest.raises(ValueError):
            NotificationDispatcher(repos.notifications, **kwargs)


class TestMarkRead:
    def test_mark_read(self, dispatcher: NotificationDispatcher) -> None:
        notification = _notification()
        dispatcher.emit("client-1", notification)

        result = dispatcher.mark_read(notification.id)

        assert result.is_read is True
        assert dispatcher.list_for_user("client-1")[0].is_read is True

    def test_unknown_notification(self, dispatcher: NotificationDispatcher) -> None:
        with pytest.raises(NotificationNotFoundError):
            dispatcher.mark_read(uuid4())
