"""Client notifications and real-time push events.

Both outputs are best-effort: a document change that has been committed is
never rolled back or reported as failed because a client could not be told
about it. Undelivered messages stay in a bounded outbox; it is drained before
each new message and on demand through ``retry_failed``. A message that has
used up its attempts, or is pushed out by a full outbox, is dropped and
logged.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from myjantes.domain.notifications import Notification, PushEvent
from myjantes.exceptions import NotificationNotFoundError
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import NotificationRepository
from myjantes.services.interfaces import NotificationService

logger = get_logger(__name__)

Subscriber = Callable[[dict[str, Any]], None]

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_OUTBOX_SIZE = 500


class PushChannel(ABC):
    """Delivers JSON payloads to a connected client."""

    @abstractmethod
    def publish(self, user_id: str, payload: dict[str, Any]) -> None:
        pass


class InMemoryPushChannel(PushChannel):
    """Per-user event log with optional subscriber callbacks."""

    def __init__(self) -> None:
        self._events: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, user_id: str, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers[user_id].append(callback)

    def publish(self, user_id: str, payload: dict[str, Any]) -> None:
        with self._lock:
            self._events[user_id].append(payload)
            subscribers = list(self._subscribers[user_id])
        for callback in subscribers:
            callback(payload)

    def events_for(self, user_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._events[user_id])


@dataclass
class OutboundMessage:
    user_id: str
    notification: Notification | None = None
    event: PushEvent | None = None
    stored: bool = False
    pushed: bool = False
    attempts: int = 0
    last_error: str | None = None

    @property
    def delivered(self) -> bool:
        stored = self.stored or self.notification is None
        pushed = self.pushed or self.event is None
        return stored and pushed


@dataclass
class Outbox:
    pending: list[OutboundMessage] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pending)


class NotificationDispatcher(NotificationService):
    def __init__(
        self,
        notification_repo: NotificationRepository,
        push_channel: PushChannel | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        outbox_size: int = DEFAULT_OUTBOX_SIZE,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if outbox_size < 1:
            raise ValueError(f"outbox_size must be at least 1, got {outbox_size}")
        self._notification_repo = notification_repo
        self._push_channel = push_channel
        self._max_attempts = max_attempts
        self._outbox_size = outbox_size
        self._outbox = Outbox()
        self._lock = threading.Lock()

    @property
    def outbox(self) -> Outbox:
        return self._outbox

    def emit(
        self,
        user_id: str,
        notification: Notification | None = None,
        event: PushEvent | None = None,
    ) -> bool:
        """Store and push one message; returns False if any part is queued for retry.

        Earlier undelivered messages are retried first so they go out ahead
        of this one.
        """
        if self._outbox.pending:
            self.retry_failed()
        message = OutboundMessage(user_id=user_id, notification=notification, event=event)
        self._deliver(message)
        if not message.delivered:
            self._requeue([message])
        return message.delivered

    def retry_failed(self) -> int:
        """Retry queued messages and return how many were delivered."""
        with self._lock:
            pending = list(self._outbox.pending)
            self._outbox.pending.clear()

        delivered = 0
        still_pending: list[OutboundMessage] = []
        for message in pending:
            self._deliver(message)
            if message.delivered:
                delivered += 1
            else:
                still_pending.append(message)

        self._requeue(still_pending)
        if pending:
            logger.info(
                "notification_retry_completed",
                delivered=delivered,
                still_pending=len(self._outbox),
            )
        return delivered

    def _requeue(self, messages: list[OutboundMessage]) -> None:
        dropped: list[tuple[OutboundMessage, str]] = []
        with self._lock:
            for message in messages:
                if message.attempts >= self._max_attempts:
                    dropped.append((message, "max_attempts"))
                else:
                    self._outbox.pending.append(message)
            while len(self._outbox.pending) > self._outbox_size:
                dropped.append((self._outbox.pending.pop(0), "outbox_full"))
        for message, reason in dropped:
            logger.error(
                "notification_dropped",
                user_id=message.user_id,
                reason=reason,
                attempts=message.attempts,
                stored=message.stored,
                pushed=message.pushed,
                last_error=message.last_error,
            )

    def list_for_user(self, user_id: str) -> list[Notification]:
        return list(self._notification_repo.list_for_user(user_id))

    def mark_read(self, notification_id: UUID) -> Notification:
        notification = self._notification_repo.get(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        self._notification_repo.mark_read(notification_id)
        notification.is_read = True
        return notification

    def _deliver(self, message: OutboundMessage) -> None:
        message.attempts += 1

        if message.notification is not None and not message.stored:
            try:
                self._notification_repo.add(message.notification)
                message.stored = True
            except Exception as e:
                message.last_error = str(e)
                logger.warning(
                    "notification_delivery_failed",
                    channel="store",
                    user_id=message.user_id,
                    notification_id=str(message.notification.id),
                    attempts=message.attempts,
                    error=str(e),
                )

        if message.event is not None and not message.pushed:
            if self._push_channel is None:
                message.pushed = True
                return
            try:
                self._push_channel.publish(message.user_id, message.event.to_payload())
                message.pushed = True
            except Exception as e:
                message.last_error = str(e)
                logger.warning(
                    "notification_delivery_failed",
                    channel="push",
                    user_id=message.user_id,
                    event_type=message.event.type,
                    attempts=message.attempts,
                    error=str(e),
                )
