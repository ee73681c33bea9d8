"""Dependency injection container for MyJantes.

Builds the database, repositories and services from settings, lazily and
once per container. The API resolves the container through ``get_container``
so tests can substitute one built over an in-memory database:

    container = Container(settings=Settings(sqlite_path=":memory:"))
    app.dependency_overrides[get_container] = lambda: container
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING, Any

from myjantes.config import DatabaseType, Settings, get_settings
from myjantes.logging_config import get_logger

if TYPE_CHECKING:
    from myjantes.repositories import RepositoryBundle
    from myjantes.services.catalog import CatalogServiceImpl
    from myjantes.services.lifecycle import DocumentLifecycleService
    from myjantes.services.notifications import NotificationDispatcher, PushChannel
    from myjantes.services.numbering import InvoiceNumberingServiceImpl
    from myjantes.services.reservations import ReservationServiceImpl
    from myjantes.services.shop_settings import ShopSettingsServiceImpl

logger = get_logger(__name__)


class Container:
    """Lazy access to every application service.

    Services are built on first access and cached. A ready-made database or
    push channel can be passed in; otherwise they come from settings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        database: Any | None = None,
        push_channel: "PushChannel | None" = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._database = database
        self._push_channel = push_channel
        logger.debug(
            "container_created",
            database_type=self._settings.database_type.value,
            environment=self._settings.environment.value,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def database(self) -> Any:
        """The database, created and initialized on first access."""
        if self._database is None:
            if self._settings.database_type == DatabaseType.POSTGRES:
                self._database = self._create_postgres_database()
            else:
                self._database = self._create_sqlite_database()
        return self._database

    def _create_sqlite_database(self) -> Any:
        from myjantes.repositories.sqlite import SQLiteDatabase

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)

        # FastAPI runs sync endpoints in a thread pool; access is serialized
        # by the database's own lock.
        db = SQLiteDatabase(db_path, check_same_thread=False)
        db.initialize()
        return db

    def _create_postgres_database(self) -> Any:
        from myjantes.repositories.postgres import PostgresDatabase

        url = self._settings.database_url
        if not url:
            raise ValueError("database_url must be set when database_type is postgres")

        logger.info(
            "initializing_postgres_database",
            # Don't log the full URL as it may contain credentials
            host=url.split("@")[-1].split("/")[0] if "@" in url else "localhost",
        )

        db = PostgresDatabase(url)
        db.initialize()
        return db

    @cached_property
    def repositories(self) -> "RepositoryBundle":
        from myjantes.repositories import create_repositories

        return create_repositories(self.database)

    @property
    def push_channel(self) -> "PushChannel":
        if self._push_channel is None:
            from myjantes.services.notifications import InMemoryPushChannel

            self._push_channel = InMemoryPushChannel()
        return self._push_channel

    @cached_property
    def notification_dispatcher(self) -> "NotificationDispatcher":
        from myjantes.services.notifications import NotificationDispatcher

        return NotificationDispatcher(
            self.repositories.notifications,
            self.push_channel,
            max_attempts=self._settings.notification_max_attempts,
            outbox_size=self._settings.notification_outbox_size,
        )

    @cached_property
    def numbering_service(self) -> "InvoiceNumberingServiceImpl":
        from myjantes.services.numbering import InvoiceNumberingServiceImpl

        return InvoiceNumberingServiceImpl(
            self.repositories.counters, width=self._settings.invoice_number_width
        )

    @cached_property
    def lifecycle_service(self) -> "DocumentLifecycleService":
        from myjantes.services.lifecycle import DocumentLifecycleService

        repos = self.repositories
        return DocumentLifecycleService(
            quote_repo=repos.quotes,
            invoice_repo=repos.invoices,
            quote_item_repo=repos.quote_items,
            invoice_item_repo=repos.invoice_items,
            media_repo=repos.media,
            service_repo=repos.services,
            numbering=self.numbering_service,
            notifier=self.notification_dispatcher,
            default_tax_rate=self._settings.default_tax_rate,
            rounding_mode=self._settings.rounding_mode,
            min_image_count=self._settings.min_image_count,
        )

    @cached_property
    def reservation_service(self) -> "ReservationServiceImpl":
        from myjantes.services.reservations import ReservationServiceImpl

        repos = self.repositories
        return ReservationServiceImpl(
            repos.reservations, repos.quotes, repos.services, self.notification_dispatcher
        )

    @cached_property
    def catalog_service(self) -> "CatalogServiceImpl":
        from myjantes.services.catalog import CatalogServiceImpl

        return CatalogServiceImpl(self.repositories.services)

    @cached_property
    def shop_settings_service(self) -> "ShopSettingsServiceImpl":
        from myjantes.services.shop_settings import ShopSettingsServiceImpl

        return ShopSettingsServiceImpl(
            self.repositories.settings, default_tax_rate=self._settings.default_tax_rate
        )

    def close(self) -> None:
        """Close the database connection, if one was opened."""
        if self._database is not None:
            logger.info("closing_database_connection")
            self._database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container, created on first use from default settings."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Close and forget the global container."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()
