from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

DEFAULT_WHEEL_COUNT_OPTIONS = (1, 2, 3, 4)
DEFAULT_DIAMETER_OPTIONS = ("14", "15", "16", "17", "18", "19", "20", "21", "22")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def join_options(values: tuple[object, ...] | list[object]) -> str:
    """Serialize an option list to its comma-separated storage form."""
    return ",".join(str(v) for v in values)


def split_options(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class ShopSettings:
    """Workshop-wide defaults edited from the admin back office.

    Only one record exists. The form defaults it holds (wheel count, diameter,
    tax rate) pre-fill new requests; the company block is printed on
    documents.
    """

    default_wheel_count: int = 4
    default_diameter: str = "17"
    default_tax_rate: Decimal = Decimal("20.00")
    wheel_count_options: list[int] = field(
        default_factory=lambda: list(DEFAULT_WHEEL_COUNT_OPTIONS)
    )
    diameter_options: list[str] = field(
        default_factory=lambda: list(DEFAULT_DIAMETER_OPTIONS)
    )
    company_name: str = "MyJantes"
    company_address: str | None = None
    company_phone: str | None = None
    company_email: str | None = None
    company_siret: str | None = None
    company_tva_number: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)


__all__ = [
    "DEFAULT_DIAMETER_OPTIONS",
    "DEFAULT_WHEEL_COUNT_OPTIONS",
    "ShopSettings",
    "join_options",
    "split_options",
]
