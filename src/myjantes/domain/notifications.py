from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from myjantes.domain.value_objects import NotificationType


def _utc_now() -> datetime:
    return datetime.now(UTC)


class EventType:
    QUOTE_UPDATED = "quote_updated"
    INVOICE_CREATED = "invoice_created"
    INVOICE_UPDATED = "invoice_updated"
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_CONFIRMED = "reservation_confirmed"
    RESERVATION_UPDATED = "reservation_updated"


@dataclass
class Notification:
    """A persisted message shown in the client's notification list."""

    user_id: str
    type: NotificationType
    title: str
    message: str
    related_id: UUID | None = None
    is_read: bool = False
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class PushEvent:
    """A real-time event pushed on the client's channel."""

    type: str
    document_id: UUID
    status: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type,
            "documentId": str(self.document_id),
        }
        if self.status is not None:
            payload["status"] = self.status
        return payload


__all__ = ["EventType", "Notification", "PushEvent"]
