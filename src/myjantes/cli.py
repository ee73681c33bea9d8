"""Command-line interface for MyJantes."""

import argparse
import os
import sys
from pathlib import Path
from uuid import UUID

from myjantes import __version__
from myjantes.config import get_settings
from myjantes.container import Container
from myjantes.domain.counters import format_invoice_number
from myjantes.domain.value_objects import DocumentKind
from myjantes.exceptions import MyJantesError
from myjantes.repositories.sqlite import SQLiteDatabase


def get_default_db_path() -> Path:
    """Database path from settings (``MYJ_SQLITE_PATH``)."""
    return Path(get_settings().sqlite_path)


def _db_path(args: argparse.Namespace) -> Path:
    return Path(args.database) if args.database else get_default_db_path()


def open_container(db_path: Path) -> Container:
    """Open an existing SQLite database and wire the services over it."""
    db = SQLiteDatabase(str(db_path))
    db.initialize()
    return Container(database=db)


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    db_path = _db_path(args)

    if db_path.exists() and not args.force:
        print(f"Database already exists at {db_path}")
        print("Use --force to reinitialize (WARNING: will delete existing data)")
        return 1

    if db_path.exists() and args.force:
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = SQLiteDatabase(str(db_path))
    db.initialize()
    db.close()

    print(f"Initialized database at {db_path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show database status."""
    db_path = _db_path(args)

    if not db_path.exists():
        print(f"No database found at {db_path}")
        print("Run 'myjantes init' to create a new database")
        return 1

    with open_container(db_path) as container:
        repos = container.repositories
        quotes = list(repos.quotes.list_all())
        invoices = list(repos.invoices.list_all())
        reservations = list(repos.reservations.list_all())
        services = list(repos.services.list_all())

        print(f"Database: {db_path}")
        print(f"Services: {len(services)} ({sum(1 for s in services if s.is_active)} active)")
        print(f"Quotes: {len(quotes)}")
        for status in sorted({q.status.value for q in quotes}):
            print(f"  - {status}: {sum(1 for q in quotes if q.status.value == status)}")
        print(f"Invoices: {len(invoices)}")
        for status in sorted({i.status.value for i in invoices}):
            print(f"  - {status}: {sum(1 for i in invoices if i.status.value == status)}")
        print(f"Reservations: {len(reservations)}")

    return 0


def cmd_counters(args: argparse.Namespace) -> int:
    """Show invoice numbering counters."""
    db_path = _db_path(args)

    if not db_path.exists():
        print(f"No database found at {db_path}")
        return 1

    with open_container(db_path) as container:
        counters = container.numbering_service.list_counters()
        if not counters:
            print("No invoice numbers issued yet")
            return 0

        width = container.settings.invoice_number_width
        print(f"{'Payment type':<16} {'Current':>8}  Last number")
        print("-" * 48)
        for counter in counters:
            last = format_invoice_number(
                counter.payment_type, counter.current_number, width
            ) if counter.current_number > 0 else "-"
            print(f"{counter.payment_type:<16} {counter.current_number:>8}  {last}")

    return 0


def cmd_recalculate(args: argparse.Namespace) -> int:
    """Recalculate the totals of one quote or invoice."""
    db_path = _db_path(args)

    if not db_path.exists():
        print(f"No database found at {db_path}")
        return 1

    try:
        document_id = UUID(args.id)
    except ValueError:
        print(f"Error: invalid document id '{args.id}'")
        return 1

    kind = DocumentKind(args.kind)
    with open_container(db_path) as container:
        try:
            document = container.lifecycle_service.recalculate(kind, document_id)
        except MyJantesError as e:
            print(f"Error: {e.message}")
            return 1

        totals = document.totals
        print(f"Recalculated {kind.value} {document.id}")
        print(f"  Total HT:  {totals.price_excluding_tax}")
        print(f"  TVA:       {totals.tax_amount} ({totals.tax_rate}%)")
        print(f"  Total TTC: {totals.total_including_tax}")

    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    if args.database:
        os.environ["MYJ_SQLITE_PATH"] = str(args.database)
        get_settings.cache_clear()

    settings = get_settings()
    host = args.host or settings.api_host
    port = args.port or settings.api_port
    uvicorn.run("myjantes.api.app:app", host=host, port=port, reload=args.reload)
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"MyJantes v{__version__}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="myjantes",
        description="MyJantes - quotes, invoices and reservations for wheel refurbishing",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize a new database")
    init_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Force reinitialization (deletes existing data)",
    )
    init_parser.set_defaults(func=cmd_init)

    # status command
    status_parser = subparsers.add_parser("status", help="Show database status")
    status_parser.set_defaults(func=cmd_status)

    # counters command
    counters_parser = subparsers.add_parser(
        "counters", help="Show invoice numbering counters"
    )
    counters_parser.set_defaults(func=cmd_counters)

    # recalculate command
    recalculate_parser = subparsers.add_parser(
        "recalculate", help="Recalculate a document's totals from its line items"
    )
    recalculate_parser.add_argument(
        "--kind",
        "-k",
        choices=[kind.value for kind in DocumentKind],
        required=True,
        help="Document kind",
    )
    recalculate_parser.add_argument("--id", required=True, help="Document id")
    recalculate_parser.set_defaults(func=cmd_recalculate)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes"
    )
    serve_parser.set_defaults(func=cmd_serve)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
