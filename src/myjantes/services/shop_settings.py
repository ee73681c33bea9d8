from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from myjantes.domain.aggregates import DEFAULT_TAX_RATE
from myjantes.domain.shop_settings import ShopSettings
from myjantes.domain.value_objects import CENTS, HUNDRED, parse_decimal
from myjantes.exceptions import InvalidSettingError, MissingFieldError
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import ShopSettingsRepository
from myjantes.services.interfaces import ShopSettingsService

logger = get_logger(__name__)

SETTINGS_EDITABLE_FIELDS = frozenset(
    {
        "default_wheel_count",
        "default_diameter",
        "default_tax_rate",
        "wheel_count_options",
        "diameter_options",
        "company_name",
        "company_address",
        "company_phone",
        "company_email",
        "company_siret",
        "company_tva_number",
    }
)
OPTIONAL_TEXT_FIELDS = frozenset(
    {"company_address", "company_phone", "company_email", "company_tva_number"}
)
SIRET_LENGTH = 14
TVA_NUMBER_MAX_LENGTH = 20


def _wheel_count(value: Any, field_name: str) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidSettingError(field_name, f"'{value}' is not a whole number") from e
    if not 1 <= count <= 4:
        raise InvalidSettingError(field_name, f"{count} is not between 1 and 4")
    return count


def _options(value: Any, field_name: str) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    options = [str(v).strip() for v in value or [] if str(v).strip()]
    if not options:
        raise InvalidSettingError(field_name, "at least one option is required")
    return options


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ShopSettingsServiceImpl(ShopSettingsService):
    """Read and edit the workshop settings record.

    The record is created with defaults the first time it is read, so callers
    never see an empty configuration.
    """

    def __init__(
        self,
        settings_repo: ShopSettingsRepository,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
    ) -> None:
        self._settings_repo = settings_repo
        self._default_tax_rate = default_tax_rate

    def get_settings(self) -> ShopSettings:
        settings = self._settings_repo.get()
        if settings is None:
            settings = ShopSettings(default_tax_rate=self._default_tax_rate.quantize(CENTS))
            self._settings_repo.save(settings)
            logger.info("shop_settings_created", settings_id=str(settings.id))
        return settings

    def update_settings(self, **changes: Any) -> ShopSettings:
        unknown = set(changes) - SETTINGS_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update settings fields: {sorted(unknown)}")

        settings = self.get_settings()
        if "default_wheel_count" in changes:
            settings.default_wheel_count = _wheel_count(
                changes["default_wheel_count"], "default_wheel_count"
            )
        if "wheel_count_options" in changes:
            settings.wheel_count_options = sorted(
                {
                    _wheel_count(v, "wheel_count_options")
                    for v in _options(changes["wheel_count_options"], "wheel_count_options")
                }
            )
        if "default_diameter" in changes:
            diameter = _optional_text(changes["default_diameter"])
            if diameter is None:
                raise MissingFieldError("default_diameter")
            settings.default_diameter = diameter
        if "diameter_options" in changes:
            settings.diameter_options = _options(
                changes["diameter_options"], "diameter_options"
            )
        if "default_tax_rate" in changes:
            settings.default_tax_rate = parse_decimal(
                changes["default_tax_rate"],
                "default_tax_rate",
                minimum=Decimal("0"),
                maximum=HUNDRED,
            ).quantize(CENTS)
        if "company_name" in changes:
            name = _optional_text(changes["company_name"])
            if name is None:
                raise MissingFieldError("company_name")
            settings.company_name = name
        if "company_siret" in changes:
            siret = _optional_text(changes["company_siret"])
            if siret is not None:
                siret = siret.replace(" ", "")
                if len(siret) != SIRET_LENGTH or not siret.isdigit():
                    raise InvalidSettingError(
                        "company_siret", f"must be {SIRET_LENGTH} digits"
                    )
            settings.company_siret = siret
        for name in OPTIONAL_TEXT_FIELDS & set(changes):
            setattr(settings, name, _optional_text(changes[name]))
        if (
            settings.company_tva_number is not None
            and len(settings.company_tva_number) > TVA_NUMBER_MAX_LENGTH
        ):
            raise InvalidSettingError(
                "company_tva_number", f"longer than {TVA_NUMBER_MAX_LENGTH} characters"
            )
        if settings.default_wheel_count not in settings.wheel_count_options:
            raise InvalidSettingError(
                "default_wheel_count",
                f"{settings.default_wheel_count} is not one of the wheel count options",
            )

        settings.updated_at = datetime.now(UTC)
        self._settings_repo.save(settings)
        logger.info("shop_settings_updated", fields=sorted(changes))
        return settings
