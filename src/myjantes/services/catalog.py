from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from myjantes.domain.catalog import Service
from myjantes.domain.value_objects import parse_decimal
from myjantes.exceptions import MissingFieldError, ServiceNotFoundError
from myjantes.logging_config import get_logger
from myjantes.repositories.interfaces import ServiceRepository
from myjantes.services.interfaces import Amount, CatalogService

logger = get_logger(__name__)

SERVICE_EDITABLE_FIELDS = frozenset({"name", "description", "base_price", "category"})


def _parse_price(value: Amount | None) -> Decimal | None:
    if value is None or value == "":
        return None
    return parse_decimal(value, "base_price", minimum=Decimal("0"))


class CatalogServiceImpl(CatalogService):
    def __init__(self, service_repo: ServiceRepository) -> None:
        self._service_repo = service_repo

    def create_service(
        self,
        name: str,
        description: str = "",
        base_price: Amount | None = None,
        category: str | None = None,
    ) -> Service:
        if not name or not name.strip():
            raise MissingFieldError("name")
        service = Service(
            name=name.strip(),
            description=description,
            base_price=_parse_price(base_price),
            category=category,
        )
        self._service_repo.add(service)
        logger.info("service_created", service_id=str(service.id), name=service.name)
        return service

    def get_service(self, service_id: UUID) -> Service:
        service = self._service_repo.get(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    def list_services(self, include_inactive: bool = False) -> list[Service]:
        if include_inactive:
            return list(self._service_repo.list_all())
        return list(self._service_repo.list_active())

    def update_service(self, service_id: UUID, **changes: Any) -> Service:
        service = self.get_service(service_id)
        unknown = set(changes) - SERVICE_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update service fields: {sorted(unknown)}")
        if "name" in changes:
            if not changes["name"] or not str(changes["name"]).strip():
                raise MissingFieldError("name")
            service.name = str(changes["name"]).strip()
        if "description" in changes:
            service.description = changes["description"] or ""
        if "base_price" in changes:
            service.base_price = _parse_price(changes["base_price"])
        if "category" in changes:
            service.category = changes["category"]
        service.updated_at = datetime.now(UTC)
        self._service_repo.update(service)
        return service

    def deactivate_service(self, service_id: UUID) -> Service:
        service = self.get_service(service_id)
        service.deactivate()
        self._service_repo.update(service)
        logger.info("service_deactivated", service_id=str(service.id))
        return service
