from decimal import Decimal

import pytest

from myjantes.domain.catalog import Service
from myjantes.domain.media import MediaFile
from myjantes.repositories import RepositoryBundle, create_repositories
from myjantes.repositories.sqlite import SQLiteDatabase
from myjantes.services.catalog import CatalogServiceImpl
from myjantes.services.interfaces import QuoteDraft
from myjantes.services.lifecycle import DocumentLifecycleService
from myjantes.services.notifications import InMemoryPushChannel, NotificationDispatcher
from myjantes.services.numbering import InvoiceNumberingServiceImpl
from myjantes.services.reservations import ReservationServiceImpl


def make_media(images: int, videos: int = 0) -> list[MediaFile]:
    files = [
        MediaFile(key=f"uploads/wheel-{i}.jpg", type="image/jpeg", name=f"wheel-{i}.jpg")
        for i in range(images)
    ]
    files += [
        MediaFile(key=f"uploads/clip-{i}.mp4", type="video/mp4") for i in range(videos)
    ]
    return files


@pytest.fixture
def db() -> SQLiteDatabase:
    database = SQLiteDatabase(":memory:")
    database.initialize()
    return database


@pytest.fixture
def repos(db: SQLiteDatabase) -> RepositoryBundle:
    return create_repositories(db)


@pytest.fixture
def push_channel() -> InMemoryPushChannel:
    return InMemoryPushChannel()


@pytest.fixture
def dispatcher(
    repos: RepositoryBundle, push_channel: InMemoryPushChannel
) -> NotificationDispatcher:
    return NotificationDispatcher(repos.notifications, push_channel)


@pytest.fixture
def numbering(repos: RepositoryBundle) -> InvoiceNumberingServiceImpl:
    return InvoiceNumberingServiceImpl(repos.counters)


@pytest.fixture
def lifecycle(
    repos: RepositoryBundle,
    numbering: InvoiceNumberingServiceImpl,
    dispatcher: NotificationDispatcher,
) -> DocumentLifecycleService:
    return DocumentLifecycleService(
        quote_repo=repos.quotes,
        invoice_repo=repos.invoices,
        quote_item_repo=repos.quote_items,
        invoice_item_repo=repos.invoice_items,
        media_repo=repos.media,
        service_repo=repos.services,
        numbering=numbering,
        notifier=dispatcher,
    )


@pytest.fixture
def catalog(repos: RepositoryBundle) -> CatalogServiceImpl:
    return CatalogServiceImpl(repos.services)


@pytest.fixture
def reservations(
    repos: RepositoryBundle, dispatcher: NotificationDispatcher
) -> ReservationServiceImpl:
    return ReservationServiceImpl(
        repos.reservations, repos.quotes, repos.services, dispatcher
    )


@pytest.fixture
def sample_service(repos: RepositoryBundle) -> Service:
    service = Service(
        name="Rénovation jante",
        description="Décapage, redressage et peinture",
        base_price=Decimal("120.00"),
        category="renovation",
    )
    repos.services.add(service)
    return service


@pytest.fixture
def quote_draft() -> QuoteDraft:
    return QuoteDraft(
        client_id="client-42",
        wheel_count=4,
        diameter="18",
        product_details="Jantes alu, finition diamantée",
    )
