from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Service:
    """A workshop service offered in the client-facing catalog."""

    name: str
    description: str = ""
    base_price: Decimal | None = None
    category: str | None = None
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utc_now()


__all__ = ["Service"]
