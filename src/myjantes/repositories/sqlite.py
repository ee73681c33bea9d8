"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

from myjantes.domain.aggregates import DocumentTotals, LegacyAmounts
from myjantes.domain.catalog import Service
from myjantes.domain.counters import InvoiceCounter
from myjantes.domain.documents import Invoice, Quote, Reservation
from myjantes.domain.line_items import LineItem
from myjantes.domain.media import MediaReference
from myjantes.domain.notifications import Notification
from myjantes.domain.shop_settings import ShopSettings, join_options, split_options
from myjantes.domain.value_objects import (
    DocumentKind,
    InvoiceStatus,
    MediaType,
    NotificationType,
    PaymentMethod,
    QuoteStatus,
    ReservationStatus,
)
from myjantes.exceptions import DuplicateInvoiceNumberError
from myjantes.repositories.interfaces import (
    InvoiceCounterRepository,
    InvoiceRepository,
    LineItemRepository,
    MediaRepository,
    NotificationRepository,
    QuoteRepository,
    ReservationRepository,
    ServiceRepository,
    ShopSettingsRepository,
)

LINE_ITEM_TABLES: dict[DocumentKind, tuple[str, str]] = {
    DocumentKind.QUOTE: ("quote_items", "quote_id"),
    DocumentKind.INVOICE: ("invoice_items", "invoice_id"),
}

MEDIA_TABLES: dict[DocumentKind, tuple[str, str]] = {
    DocumentKind.QUOTE: ("quote_media", "quote_id"),
    DocumentKind.INVOICE: ("invoice_media", "invoice_id"),
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _dec(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _to_dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _to_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _to_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value is not None else None


class SQLiteDatabase:
    """SQLite database connection manager.

    One connection is shared by every repository built on this database.
    Access is serialized with a re-entrant lock so the connection can be
    used from FastAPI's worker threads, and writes run inside ``BEGIN
    IMMEDIATE`` transactions so that separate processes on the same file
    also take turns.
    """

    def __init__(
        self,
        path: str | Path = ":memory:",
        check_same_thread: bool = True,
        timeout: float = 5.0,
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._timeout = timeout
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def path(self) -> str:
        return self._path

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path,
                check_same_thread=self._check_same_thread,
                timeout=self._timeout,
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of writes atomically; nested calls join the outer one."""
        with self._lock:
            conn = self.get_connection()
            if conn.in_transaction:
                yield conn
                return
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        with self._lock:
            row: sqlite3.Row | None = (
                self.get_connection().execute(sql, params).fetchone()
            )
            return row

    def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.get_connection().execute(sql, params).fetchall()

    def initialize(self) -> None:
        """Create all database tables."""
        with self._lock:
            conn = self.get_connection()
            conn.executescript(
                """
                -- Catalog services
                CREATE TABLE IF NOT EXISTS services (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    base_price TEXT,
                    category TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                -- Quotes
                CREATE TABLE IF NOT EXISTS quotes (
                    id TEXT PRIMARY KEY,
                    client_id TEXT NOT NULL,
                    service_id TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    payment_method TEXT NOT NULL DEFAULT 'wire_transfer',
                    request_details TEXT,
                    wheel_count INTEGER,
                    diameter TEXT,
                    product_details TEXT,
                    notes TEXT,
                    valid_until TEXT,
                    legacy_price_excluding_tax TEXT,
                    legacy_tax_amount TEXT,
                    legacy_amount TEXT,
                    legacy_tax_rate TEXT,
                    price_excluding_tax TEXT NOT NULL,
                    tax_amount TEXT NOT NULL,
                    quote_amount TEXT NOT NULL,
                    tax_rate TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (service_id) REFERENCES services(id)
                );
                CREATE INDEX IF NOT EXISTS idx_quotes_client ON quotes(client_id);

                -- Quote line items
                CREATE TABLE IF NOT EXISTS quote_items (
                    id TEXT PRIMARY KEY,
                    quote_id TEXT NOT NULL,
                    description TEXT NOT NULL,
                    quantity TEXT NOT NULL DEFAULT '1',
                    unit_price_excluding_tax TEXT NOT NULL,
                    total_excluding_tax TEXT NOT NULL,
                    tax_rate TEXT NOT NULL,
                    tax_amount TEXT NOT NULL,
                    total_including_tax TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (quote_id) REFERENCES quotes(id) ON DELETE CASCADE
                );
                CREATE INDEX IF NOT EXISTS idx_quote_items_quote ON quote_items(quote_id);

                -- Invoices
                CREATE TABLE IF NOT EXISTS invoices (
                    id TEXT PRIMARY KEY,
                    quote_id TEXT,
                    client_id TEXT NOT NULL,
                    invoice_number TEXT NOT NULL UNIQUE,
                    status TEXT NOT NULL DEFAULT 'pending',
                    payment_method TEXT NOT NULL DEFAULT 'wire_transfer',
                    wheel_count INTEGER,
                    diameter TEXT,
                    product_details TEXT,
                    notes TEXT,
                    due_date TEXT,
                    paid_at TEXT,
                    legacy_price_excluding_tax TEXT,
                    legacy_tax_amount TEXT,
                    legacy_amount TEXT,
                    legacy_tax_rate TEXT,
                    price_excluding_tax TEXT NOT NULL,
                    tax_amount TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    tax_rate TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (quote_id) REFERENCES quotes(id) ON DELETE SET NULL
                );
                CREATE INDEX IF NOT EXISTS idx_invoices_client ON invoices(client_id);

                -- Invoice line items
                CREATE TABLE IF NOT EXISTS invoice_items (
                    id TEXT PRIMARY KEY,
                    invoice_id TEXT NOT NULL,
                    description TEXT NOT NULL,
                    quantity TEXT NOT NULL DEFAULT '1',
                    unit_price_excluding_tax TEXT NOT NULL,
                    total_excluding_tax TEXT NOT NULL,
                    tax_rate TEXT NOT NULL,
                    tax_amount TEXT NOT NULL,
                    total_including_tax TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
                );
                CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(invoice_id);

                -- One numbering sequence per payment method
                CREATE TABLE IF NOT EXISTS invoice_counters (
                    payment_type TEXT PRIMARY KEY,
                    current_number INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                );

                -- Media references (uploads live in object storage)
                CREATE TABLE IF NOT EXISTS quote_media (
                    id TEXT PRIMARY KEY,
                    quote_id TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_size INTEGER,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (quote_id) REFERENCES quotes(id) ON DELETE CASCADE
                );
                CREATE TABLE IF NOT EXISTS invoice_media (
                    id TEXT PRIMARY KEY,
                    invoice_id TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_size INTEGER,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
                );

                -- Reservations
                CREATE TABLE IF NOT EXISTS reservations (
                    id TEXT PRIMARY KEY,
                    quote_id TEXT,
                    client_id TEXT NOT NULL,
                    service_id TEXT,
                    scheduled_date TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    wheel_count INTEGER,
                    diameter TEXT,
                    price_excluding_tax TEXT,
                    tax_rate TEXT,
                    tax_amount TEXT,
                    product_details TEXT,
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (quote_id) REFERENCES quotes(id) ON DELETE SET NULL,
                    FOREIGN KEY (service_id) REFERENCES services(id)
                );
                CREATE INDEX IF NOT EXISTS idx_reservations_client ON reservations(client_id);

                -- Client notifications
                CREATE TABLE IF NOT EXISTS notifications (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    message TEXT NOT NULL,
                    related_id TEXT,
                    is_read INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);

                -- Workshop settings (single row)
                CREATE TABLE IF NOT EXISTS application_settings (
                    id TEXT PRIMARY KEY,
                    default_wheel_count INTEGER NOT NULL,
                    default_diameter TEXT NOT NULL,
                    default_tax_rate TEXT NOT NULL,
                    wheel_count_options TEXT NOT NULL,
                    diameter_options TEXT NOT NULL,
                    company_name TEXT NOT NULL,
                    company_address TEXT,
                    company_phone TEXT,
                    company_email TEXT,
                    company_siret TEXT,
                    company_tva_number TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


def _legacy_params(legacy: LegacyAmounts) -> tuple[str | None, ...]:
    return (
        _dec(legacy.price_excluding_tax),
        _dec(legacy.tax_amount),
        _dec(legacy.amount),
        _dec(legacy.tax_rate),
    )


def _totals_params(totals: DocumentTotals) -> tuple[str, ...]:
    return (
        str(totals.price_excluding_tax),
        str(totals.tax_amount),
        str(totals.total_including_tax),
        str(totals.tax_rate),
    )


def _row_to_legacy(row: sqlite3.Row) -> LegacyAmounts:
    return LegacyAmounts(
        price_excluding_tax=_to_dec(row["legacy_price_excluding_tax"]),
        tax_amount=_to_dec(row["legacy_tax_amount"]),
        amount=_to_dec(row["legacy_amount"]),
        tax_rate=_to_dec(row["legacy_tax_rate"]),
    )


def _row_to_totals(row: sqlite3.Row, total_column: str) -> DocumentTotals:
    return DocumentTotals(
        price_excluding_tax=Decimal(row["price_excluding_tax"]),
        tax_amount=Decimal(row["tax_amount"]),
        total_including_tax=Decimal(row[total_column]),
        tax_rate=Decimal(row["tax_rate"]),
    )


class SQLiteQuoteRepository(QuoteRepository):
    """SQLite implementation of QuoteRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, quote: Quote) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO quotes (id, client_id, service_id, status, payment_method,
                                    request_details, wheel_count, diameter, product_details,
                                    notes, valid_until, legacy_price_excluding_tax,
                                    legacy_tax_amount, legacy_amount, legacy_tax_rate,
                                    price_excluding_tax, tax_amount, quote_amount, tax_rate,
                                    created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(quote.id),
                    quote.client_id,
                    str(quote.service_id) if quote.service_id else None,
                    quote.status.value,
                    quote.payment_method.value,
                    json.dumps(quote.request_details)
                    if quote.request_details is not None
                    else None,
                    quote.wheel_count,
                    quote.diameter,
                    quote.product_details,
                    quote.notes,
                    _iso(quote.valid_until),
                    *_legacy_params(quote.legacy),
                    *_totals_params(quote.totals),
                    quote.created_at.isoformat(),
                    quote.updated_at.isoformat(),
                ),
            )

    def get(self, quote_id: UUID) -> Quote | None:
        row = self._db.fetch_one("SELECT * FROM quotes WHERE id = ?", (str(quote_id),))
        if row is None:
            return None
        return self._row_to_quote(row)

    def list_all(self, client_id: str | None = None) -> Iterable[Quote]:
        if client_id is not None:
            rows = self._db.fetch_all(
                "SELECT * FROM quotes WHERE client_id = ? ORDER BY created_at DESC",
                (client_id,),
            )
        else:
            rows = self._db.fetch_all("SELECT * FROM quotes ORDER BY created_at DESC")
        return [self._row_to_quote(row) for row in rows]

    def update(self, quote: Quote) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE quotes SET
                    service_id = ?,
                    status = ?,
                    payment_method = ?,
                    request_details = ?,
                    wheel_count = ?,
                    diameter = ?,
                    product_details = ?,
                    notes = ?,
                    valid_until = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    str(quote.service_id) if quote.service_id else None,
                    quote.status.value,
                    quote.payment_method.value,
                    json.dumps(quote.request_details)
                    if quote.request_details is not None
                    else None,
                    quote.wheel_count,
                    quote.diameter,
                    quote.product_details,
                    quote.notes,
                    _iso(quote.valid_until),
                    quote.updated_at.isoformat(),
                    str(quote.id),
                ),
            )

    def save_totals(self, document_id: UUID, totals: DocumentTotals) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE quotes SET
                    price_excluding_tax = ?,
                    tax_amount = ?,
                    quote_amount = ?,
                    tax_rate = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (*_totals_params(totals), _utc_now().isoformat(), str(document_id)),
            )

    def _row_to_quote(self, row: sqlite3.Row) -> Quote:
        return Quote(
            id=UUID(row["id"]),
            client_id=row["client_id"],
            service_id=_to_uuid(row["service_id"]),
            status=QuoteStatus(row["status"]),
            payment_method=PaymentMethod(row["payment_method"]),
            request_details=json.loads(row["request_details"])
            if row["request_details"]
            else None,
            wheel_count=row["wheel_count"],
            diameter=row["diameter"],
            product_details=row["product_details"],
            notes=row["notes"],
            valid_until=_to_dt(row["valid_until"]),
            legacy=_row_to_legacy(row),
            totals=_row_to_totals(row, "quote_amount"),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteInvoiceRepository(InvoiceRepository):
    """SQLite implementation of InvoiceRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, invoice: Invoice) -> None:
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO invoices (id, quote_id, client_id, invoice_number, status,
                                          payment_method, wheel_count, diameter,
                                          product_details, notes, due_date, paid_at,
                                          legacy_price_excluding_tax, legacy_tax_amount,
                                          legacy_amount, legacy_tax_rate,
                                          price_excluding_tax, tax_amount, amount, tax_rate,
                                          created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(invoice.id),
                        str(invoice.quote_id) if invoice.quote_id else None,
                        invoice.client_id,
                        invoice.invoice_number,
                        invoice.status.value,
                        invoice.payment_method.value,
                        invoice.wheel_count,
                        invoice.diameter,
                        invoice.product_details,
                        invoice.notes,
                        _iso(invoice.due_date),
                        _iso(invoice.paid_at),
                        *_legacy_params(invoice.legacy),
                        *_totals_params(invoice.totals),
                        invoice.created_at.isoformat(),
                        invoice.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            if "invoice_number" in str(e):
                raise DuplicateInvoiceNumberError(invoice.invoice_number) from e
            raise

    def get(self, invoice_id: UUID) -> Invoice | None:
        row = self._db.fetch_one(
            "SELECT * FROM invoices WHERE id = ?", (str(invoice_id),)
        )
        if row is None:
            return None
        return self._row_to_invoice(row)

    def get_by_number(self, invoice_number: str) -> Invoice | None:
        row = self._db.fetch_one(
            "SELECT * FROM invoices WHERE invoice_number = ?", (invoice_number,)
        )
        if row is None:
            return None
        return self._row_to_invoice(row)

    def list_all(self, client_id: str | None = None) -> Iterable[Invoice]:
        if client_id is not None:
            rows = self._db.fetch_all(
                "SELECT * FROM invoices WHERE client_id = ? ORDER BY created_at DESC",
                (client_id,),
            )
        else:
            rows = self._db.fetch_all("SELECT * FROM invoices ORDER BY created_at DESC")
        return [self._row_to_invoice(row) for row in rows]

    def update(self, invoice: Invoice) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE invoices SET
                    status = ?,
                    wheel_count = ?,
                    diameter = ?,
                    product_details = ?,
                    notes = ?,
                    due_date = ?,
                    paid_at = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    invoice.status.value,
                    invoice.wheel_count,
                    invoice.diameter,
                    invoice.product_details,
                    invoice.notes,
                    _iso(invoice.due_date),
                    _iso(invoice.paid_at),
                    invoice.updated_at.isoformat(),
                    str(invoice.id),
                ),
            )

    def save_totals(self, document_id: UUID, totals: DocumentTotals) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE invoices SET
                    price_excluding_tax = ?,
                    tax_amount = ?,
                    amount = ?,
                    tax_rate = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (*_totals_params(totals), _utc_now().isoformat(), str(document_id)),
            )

    def _row_to_invoice(self, row: sqlite3.Row) -> Invoice:
        return Invoice(
            id=UUID(row["id"]),
            quote_id=_to_uuid(row["quote_id"]),
            client_id=row["client_id"],
            invoice_number=row["invoice_number"],
            status=InvoiceStatus(row["status"]),
            payment_method=PaymentMethod(row["payment_method"]),
            wheel_count=row["wheel_count"],
            diameter=row["diameter"],
            product_details=row["product_details"],
            notes=row["notes"],
            due_date=_to_dt(row["due_date"]),
            paid_at=_to_dt(row["paid_at"]),
            legacy=_row_to_legacy(row),
            totals=_row_to_totals(row, "amount"),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteLineItemRepository(LineItemRepository):
    """Line items stored in ``quote_items`` or ``invoice_items``."""

    def __init__(self, database: SQLiteDatabase, kind: DocumentKind) -> None:
        self._db = database
        self.kind = kind
        self._table, self._parent_column = LINE_ITEM_TABLES[kind]

    def add(self, item: LineItem) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO {self._table} (id, {self._parent_column}, description, quantity,
                                           unit_price_excluding_tax, total_excluding_tax,
                                           tax_rate, tax_amount, total_including_tax,
                                           created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(item.id),
                    str(item.parent_id),
                    item.description,
                    str(item.quantity),
                    str(item.unit_price_excluding_tax),
                    str(item.total_excluding_tax),
                    str(item.tax_rate),
                    str(item.tax_amount),
                    str(item.total_including_tax),
                    item.created_at.isoformat(),
                    item.updated_at.isoformat(),
                ),
            )

    def get(self, item_id: UUID) -> LineItem | None:
        row = self._db.fetch_one(
            f"SELECT * FROM {self._table} WHERE id = ?", (str(item_id),)
        )
        if row is None:
            return None
        return self._row_to_item(row)

    def list_by_parent(self, parent_id: UUID) -> Iterable[LineItem]:
        # rowid breaks ties between items created within the same instant
        rows = self._db.fetch_all(
            f"SELECT * FROM {self._table} WHERE {self._parent_column} = ? "
            "ORDER BY created_at, rowid",
            (str(parent_id),),
        )
        return [self._row_to_item(row) for row in rows]

    def update(self, item: LineItem) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                f"""
                UPDATE {self._table} SET
                    description = ?,
                    quantity = ?,
                    unit_price_excluding_tax = ?,
                    total_excluding_tax = ?,
                    tax_rate = ?,
                    tax_amount = ?,
                    total_including_tax = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    item.description,
                    str(item.quantity),
                    str(item.unit_price_excluding_tax),
                    str(item.total_excluding_tax),
                    str(item.tax_rate),
                    str(item.tax_amount),
                    str(item.total_including_tax),
                    item.updated_at.isoformat(),
                    str(item.id),
                ),
            )

    def delete(self, item_id: UUID) -> None:
        with self._db.transaction() as conn:
            conn.execute(f"DELETE FROM {self._table} WHERE id = ?", (str(item_id),))

    def _row_to_item(self, row: sqlite3.Row) -> LineItem:
        return LineItem(
            id=UUID(row["id"]),
            parent_id=UUID(row[self._parent_column]),
            document_kind=self.kind,
            description=row["description"],
            quantity=Decimal(row["quantity"]),
            unit_price_excluding_tax=Decimal(row["unit_price_excluding_tax"]),
            total_excluding_tax=Decimal(row["total_excluding_tax"]),
            tax_rate=Decimal(row["tax_rate"]),
            tax_amount=Decimal(row["tax_amount"]),
            total_including_tax=Decimal(row["total_including_tax"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteInvoiceCounterRepository(InvoiceCounterRepository):
    """Invoice counters backed by an upsert inside an immediate transaction."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def get(self, payment_type: str) -> InvoiceCounter | None:
        row = self._db.fetch_one(
            "SELECT * FROM invoice_counters WHERE payment_type = ?", (payment_type,)
        )
        if row is None:
            return None
        return self._row_to_counter(row)

    def increment(self, payment_type: str) -> InvoiceCounter:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO invoice_counters (payment_type, current_number, updated_at)
                VALUES (?, 1, ?)
                ON CONFLICT(payment_type) DO UPDATE SET
                    current_number = current_number + 1,
                    updated_at = excluded.updated_at
                """,
                (payment_type, _utc_now().isoformat()),
            )
            row = conn.execute(
                "SELECT * FROM invoice_counters WHERE payment_type = ?",
                (payment_type,),
            ).fetchone()
        return self._row_to_counter(row)

    def list_all(self) -> Iterable[InvoiceCounter]:
        rows = self._db.fetch_all(
            "SELECT * FROM invoice_counters ORDER BY payment_type"
        )
        return [self._row_to_counter(row) for row in rows]

    def _row_to_counter(self, row: sqlite3.Row) -> InvoiceCounter:
        return InvoiceCounter(
            payment_type=row["payment_type"],
            current_number=int(row["current_number"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteMediaRepository(MediaRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, media: MediaReference) -> None:
        table, parent_column = MEDIA_TABLES[media.document_kind]
        with self._db.transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO {table} (id, {parent_column}, file_type, file_path, file_name,
                                     file_size, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(media.id),
                    str(media.document_id),
                    media.file_type.value,
                    media.file_path,
                    media.file_name,
                    media.file_size,
                    media.created_at.isoformat(),
                ),
            )

    def list_for_document(
        self, document_kind: DocumentKind, document_id: UUID
    ) -> Iterable[MediaReference]:
        table, parent_column = MEDIA_TABLES[document_kind]
        rows = self._db.fetch_all(
            f"SELECT * FROM {table} WHERE {parent_column} = ? ORDER BY created_at, rowid",
            (str(document_id),),
        )
        return [
            MediaReference(
                id=UUID(row["id"]),
                document_kind=document_kind,
                document_id=UUID(row[parent_column]),
                file_path=row["file_path"],
                file_type=MediaType(row["file_type"]),
                file_name=row["file_name"],
                file_size=row["file_size"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]


class SQLiteNotificationRepository(NotificationRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, notification: Notification) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO notifications (id, user_id, type, title, message, related_id,
                                           is_read, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(notification.id),
                    notification.user_id,
                    notification.type.value,
                    notification.title,
                    notification.message,
                    str(notification.related_id) if notification.related_id else None,
                    1 if notification.is_read else 0,
                    notification.created_at.isoformat(),
                ),
            )

    def get(self, notification_id: UUID) -> Notification | None:
        row = self._db.fetch_one(
            "SELECT * FROM notifications WHERE id = ?", (str(notification_id),)
        )
        if row is None:
            return None
        return self._row_to_notification(row)

    def list_for_user(self, user_id: str) -> Iterable[Notification]:
        rows = self._db.fetch_all(
            "SELECT * FROM notifications WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            (user_id,),
        )
        return [self._row_to_notification(row) for row in rows]

    def mark_read(self, notification_id: UUID) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE id = ?",
                (str(notification_id),),
            )

    def _row_to_notification(self, row: sqlite3.Row) -> Notification:
        return Notification(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            type=NotificationType(row["type"]),
            title=row["title"],
            message=row["message"],
            related_id=_to_uuid(row["related_id"]),
            is_read=bool(row["is_read"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteReservationRepository(ReservationRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, reservation: Reservation) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO reservations (id, quote_id, client_id, service_id, scheduled_date,
                                          status, wheel_count, diameter, price_excluding_tax,
                                          tax_rate, tax_amount, product_details, notes,
                                          created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(reservation.id),
                    str(reservation.quote_id) if reservation.quote_id else None,
                    reservation.client_id,
                    str(reservation.service_id) if reservation.service_id else None,
                    reservation.scheduled_date.isoformat(),
                    reservation.status.value,
                    reservation.wheel_count,
                    reservation.diameter,
                    _dec(reservation.price_excluding_tax),
                    _dec(reservation.tax_rate),
                    _dec(reservation.tax_amount),
                    reservation.product_details,
                    reservation.notes,
                    reservation.created_at.isoformat(),
                    reservation.updated_at.isoformat(),
                ),
            )

    def get(self, reservation_id: UUID) -> Reservation | None:
        row = self._db.fetch_one(
            "SELECT * FROM reservations WHERE id = ?", (str(reservation_id),)
        )
        if row is None:
            return None
        return self._row_to_reservation(row)

    def list_all(self, client_id: str | None = None) -> Iterable[Reservation]:
        if client_id is not None:
            rows = self._db.fetch_all(
                "SELECT * FROM reservations WHERE client_id = ? ORDER BY scheduled_date",
                (client_id,),
            )
        else:
            rows = self._db.fetch_all(
                "SELECT * FROM reservations ORDER BY scheduled_date"
            )
        return [self._row_to_reservation(row) for row in rows]

    def update(self, reservation: Reservation) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE reservations SET
                    scheduled_date = ?,
                    status = ?,
                    notes = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    reservation.scheduled_date.isoformat(),
                    reservation.status.value,
                    reservation.notes,
                    reservation.updated_at.isoformat(),
                    str(reservation.id),
                ),
            )

    def _row_to_reservation(self, row: sqlite3.Row) -> Reservation:
        return Reservation(
            id=UUID(row["id"]),
            quote_id=_to_uuid(row["quote_id"]),
            client_id=row["client_id"],
            service_id=_to_uuid(row["service_id"]),
            scheduled_date=datetime.fromisoformat(row["scheduled_date"]),
            status=ReservationStatus(row["status"]),
            wheel_count=row["wheel_count"],
            diameter=row["diameter"],
            price_excluding_tax=_to_dec(row["price_excluding_tax"]),
            tax_rate=_to_dec(row["tax_rate"]),
            tax_amount=_to_dec(row["tax_amount"]),
            product_details=row["product_details"],
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteServiceRepository(ServiceRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, service: Service) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO services (id, name, description, base_price, category,
                                      is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(service.id),
                    service.name,
                    service.description,
                    _dec(service.base_price),
                    service.category,
                    1 if service.is_active else 0,
                    service.created_at.isoformat(),
                    service.updated_at.isoformat(),
                ),
            )

    def get(self, service_id: UUID) -> Service | None:
        row = self._db.fetch_one(
            "SELECT * FROM services WHERE id = ?", (str(service_id),)
        )
        if row is None:
            return None
        return self._row_to_service(row)

    def list_active(self) -> Iterable[Service]:
        rows = self._db.fetch_all(
            "SELECT * FROM services WHERE is_active = 1 ORDER BY created_at DESC"
        )
        return [self._row_to_service(row) for row in rows]

    def list_all(self) -> Iterable[Service]:
        rows = self._db.fetch_all("SELECT * FROM services ORDER BY created_at DESC")
        return [self._row_to_service(row) for row in rows]

    def update(self, service: Service) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE services SET
                    name = ?,
                    description = ?,
                    base_price = ?,
                    category = ?,
                    is_active = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    service.name,
                    service.description,
                    _dec(service.base_price),
                    service.category,
                    1 if service.is_active else 0,
                    service.updated_at.isoformat(),
                    str(service.id),
                ),
            )

    def _row_to_service(self, row: sqlite3.Row) -> Service:
        return Service(
            id=UUID(row["id"]),
            name=row["name"],
            description=row["description"],
            base_price=_to_dec(row["base_price"]),
            category=row["category"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


SETTINGS_COLUMNS = (
    "id",
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
    "created_at",
    "updated_at",
)


def settings_params(settings: ShopSettings) -> tuple[Any, ...]:
    """Column values for ``SETTINGS_COLUMNS``, in order."""
    return (
        str(settings.id),
        settings.default_wheel_count,
        settings.default_diameter,
        str(settings.default_tax_rate),
        join_options(settings.wheel_count_options),
        join_options(settings.diameter_options),
        settings.company_name,
        settings.company_address,
        settings.company_phone,
        settings.company_email,
        settings.company_siret,
        settings.company_tva_number,
        settings.created_at.isoformat(),
        settings.updated_at.isoformat(),
    )


def row_to_settings(row: Any) -> ShopSettings:
    return ShopSettings(
        id=UUID(row["id"]),
        default_wheel_count=row["default_wheel_count"],
        default_diameter=row["default_diameter"],
        default_tax_rate=Decimal(row["default_tax_rate"]),
        wheel_count_options=[int(v) for v in split_options(row["wheel_count_options"])],
        diameter_options=split_options(row["diameter_options"]),
        company_name=row["company_name"],
        company_address=row["company_address"],
        company_phone=row["company_phone"],
        company_email=row["company_email"],
        company_siret=row["company_siret"],
        company_tva_number=row["company_tva_number"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SQLiteShopSettingsRepository(ShopSettingsRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def get(self) -> ShopSettings | None:
        row = self._db.fetch_one(
            "SELECT * FROM application_settings ORDER BY created_at LIMIT 1"
        )
        if row is None:
            return None
        return row_to_settings(row)

    def save(self, settings: ShopSettings) -> None:
        columns = ", ".join(SETTINGS_COLUMNS)
        placeholders = ", ".join("?" for _ in SETTINGS_COLUMNS)
        updates = ", ".join(
            f"{c} = excluded.{c}" for c in SETTINGS_COLUMNS if c not in ("id", "created_at")
        )
        with self._db.transaction() as conn:
            conn.execute(
                f"INSERT INTO application_settings ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT(id) DO UPDATE SET {updates}",
                settings_params(settings),
            )
