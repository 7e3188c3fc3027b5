"""CLI for the ``ledger_ingest`` package.

Command handlers (``cmd_*``) are plain callables returning a process exit
status; the Typer app below wraps them. The root callback loads a local
``.env`` with ``python-dotenv`` (existing variables win) and configures
logging before any command runs. Errors are written to stderr with a
non-zero exit status.

Commands
--------
- ``init-db``: create the ledger tables.
- ``formats``: list supported export formats.
- ``import``: import one export file into an account (``--dry-run`` previews).
- ``rules list|add|remove|apply``: manage category rules.
- ``encrypt-plaintext``: encrypt legacy plaintext transaction fields.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from typer.models import OptionInfo

from ledger_db.client import create_schema, session_scope

from . import cipher
from .config import ConfigError, Settings
from .errors import LedgerIngestError
from .logging_setup import configure_logging, get_logger

_logger = get_logger("ledger_ingest.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _database_url(settings: Settings, override: str | None) -> str:
    url = override or settings.database_url
    if not url:
        raise ConfigError("DATABASE_URL is not set (use --database-url or the environment)")
    return url


def _init_cipher(settings: Settings) -> None:
    cipher.init_key(settings.require_encryption_key())


def _read_export(path: Path) -> str:
    return path.read_text(encoding="utf-8")


# ---- Command handlers ---------------------------------------------------------


def cmd_init_db(*, database_url: str | None = None) -> int:
    try:
        url = _database_url(Settings.from_env(), database_url)
        create_schema(database_url=url)
    except (ConfigError, SQLAlchemyError) as e:
        return _fail(f"could not create schema: {e}")
    print("Ledger tables are ready.")
    return 0


def cmd_formats() -> int:
    from .ingest import default_registry

    for format_id in default_registry().list_parser_ids():
        print(format_id)
    return 0


def cmd_import(
    csv_path: Path,
    *,
    account_id: str,
    format_id: str,
    dry_run: bool = False,
    database_url: str | None = None,
) -> int:
    """Import (or preview) one export file for ``account_id``.

    Prints ``imported=<n> skipped=<m>`` on success; with ``dry_run`` prints one
    tab-separated line per parsed row followed by a summary, and writes nothing.
    """

    from .importer import ImportFlag, TransactionImporter
    from .persistence import SqlTransactionStore
    from .rule_store import list_rules

    try:
        content = _read_export(csv_path)
    except FileNotFoundError:
        return _fail(f"File not found: {csv_path}")
    except PermissionError:
        return _fail(f"Permission denied: {csv_path}")
    except UnicodeDecodeError as e:
        return _fail(f"{csv_path} is not UTF-8 text: {e}")

    try:
        settings = Settings.from_env()
        url = _database_url(settings, database_url)
        if not dry_run:
            _init_cipher(settings)
        with session_scope(database_url=url) as session:
            importer = TransactionImporter(
                SqlTransactionStore(session),
                ImportFlag(),
                max_rows=settings.max_import_rows,
            )
            rules = list_rules(session)
            if dry_run:
                preview = importer.preview_batch(account_id, format_id, content, rules)
            else:
                result = importer.import_batch(account_id, format_id, content, rules)
    except (ConfigError, LedgerIngestError) as e:
        return _fail(str(e))
    except SQLAlchemyError as e:
        _logger.exception("database error during import")
        return _fail(f"database error: {e}")

    if dry_run:
        for row in preview.rows:
            print(
                "\t".join(
                    [
                        row.date.isoformat(),
                        str(row.amount),
                        row.category or "",
                        "duplicate" if row.is_duplicate else "new",
                        row.description,
                    ]
                )
            )
        print(
            f"rows={preview.total_rows} new={preview.new_rows} "
            f"duplicates={preview.duplicate_count} categorized={preview.categorized_count}"
        )
        return 0

    print(f"imported={result.imported} skipped={result.skipped}")
    return 0


def cmd_rules_list(*, database_url: str | None = None) -> int:
    from .rule_store import list_rules

    try:
        url = _database_url(Settings.from_env(), database_url)
        with session_scope(database_url=url) as session:
            rules = list_rules(session)
    except (ConfigError, SQLAlchemyError) as e:
        return _fail(str(e))
    for rule in rules:
        print(f"{rule.id}\t{rule.priority}\t{rule.match_type}\t{rule.pattern}\t{rule.category}")
    return 0


def cmd_rules_add(
    *,
    pattern: str,
    match_type: str,
    category: str,
    priority: int | None = None,
    apply_existing: bool = False,
    database_url: str | None = None,
) -> int:
    from pydantic import ValidationError

    from .persistence import apply_rule_to_transactions
    from .rule_store import create_rule

    try:
        settings = Settings.from_env()
        url = _database_url(settings, database_url)
        if apply_existing:
            _init_cipher(settings)
        with session_scope(database_url=url) as session:
            rule = create_rule(
                session,
                pattern=pattern,
                match_type=match_type,
                category=category,
                priority=priority,
            )
            applied = apply_rule_to_transactions(session, rule) if apply_existing else None
    except ValidationError as e:
        return _fail(f"invalid rule: {e}")
    except (ConfigError, LedgerIngestError, SQLAlchemyError) as e:
        return _fail(str(e))

    print(f"Created rule {rule.id} (priority {rule.priority}).")
    if applied is not None:
        print(f"Applied to {applied} existing transaction(s).")
    return 0


def cmd_rules_remove(rule_id: int, *, database_url: str | None = None) -> int:
    from .rule_store import delete_rule

    try:
        url = _database_url(Settings.from_env(), database_url)
        with session_scope(database_url=url) as session:
            deleted = delete_rule(session, rule_id)
    except (ConfigError, SQLAlchemyError) as e:
        return _fail(str(e))
    if not deleted:
        return _fail(f"rule {rule_id} not found")
    print(f"Deleted rule {rule_id}.")
    return 0


def cmd_rules_apply(rule_id: int, *, database_url: str | None = None) -> int:
    from .persistence import apply_rule_to_transactions
    from .rule_store import get_rule

    try:
        settings = Settings.from_env()
        url = _database_url(settings, database_url)
        _init_cipher(settings)
        with session_scope(database_url=url) as session:
            rule = get_rule(session, rule_id)
            applied = apply_rule_to_transactions(session, rule) if rule is not None else None
    except (ConfigError, LedgerIngestError, SQLAlchemyError) as e:
        return _fail(str(e))
    if applied is None:
        return _fail(f"rule {rule_id} not found")
    print(f"Applied rule {rule_id} to {applied} transaction(s).")
    return 0


def cmd_encrypt_plaintext(*, database_url: str | None = None) -> int:
    from .maintenance import encrypt_plaintext_fields

    try:
        settings = Settings.from_env()
        url = _database_url(settings, database_url)
        _init_cipher(settings)
        with session_scope(database_url=url) as session:
            changed = encrypt_plaintext_fields(session)
    except (ConfigError, LedgerIngestError, SQLAlchemyError) as e:
        return _fail(str(e))
    print(f"Encrypted fields in {changed} transaction(s).")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank and brokerage exports into the encrypted ledger. "
        "Loads DATABASE_URL and ENCRYPTION_KEY from a local .env before running."
    ),
)
rules_app = typer.Typer(no_args_is_help=True, help="Manage category rules.")
app.add_typer(rules_app, name="rules")


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to the exported CSV/TSV file",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a friendlier error
    readable=True,
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("init-db")
def init_db_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Create the ledger tables if they do not exist."""

    _exit(cmd_init_db(database_url=database_url))


@app.command("formats")
def formats_cmd() -> None:
    """List the supported export format ids."""

    _exit(cmd_formats())


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    account: Annotated[str, typer.Option("--account", help="Target account id.")],
    format_id: Annotated[str, typer.Option("--format", help="Export format id (see `formats`).")],
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Preview parsing, dedupe and categories only.")
    ] = False,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Import an export file into an account."""

    _exit(
        cmd_import(
            csv_path,
            account_id=account,
            format_id=format_id,
            dry_run=dry_run,
            database_url=database_url,
        )
    )


@rules_app.command("list")
def rules_list_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """List rules in evaluation order."""

    _exit(cmd_rules_list(database_url=database_url))


@rules_app.command("add")
def rules_add_cmd(
    pattern: Annotated[str, typer.Option("--pattern", help="Text to match in descriptions.")],
    category: Annotated[str, typer.Option("--category", help="Category to assign.")],
    match_type: Annotated[
        str, typer.Option("--match-type", help="'exact' or 'contains'.")
    ] = "contains",
    priority: Annotated[
        int | None, typer.Option("--priority", help="Lower runs first (default by match type).")
    ] = None,
    apply_existing: Annotated[
        bool, typer.Option("--apply", help="Also re-categorize stored transactions.")
    ] = False,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Add a category rule."""

    _exit(
        cmd_rules_add(
            pattern=pattern,
            match_type=match_type,
            category=category,
            priority=priority,
            apply_existing=apply_existing,
            database_url=database_url,
        )
    )


@rules_app.command("remove")
def rules_remove_cmd(
    rule_id: Annotated[int, typer.Argument(help="Rule id (see `rules list`).")],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Delete a category rule."""

    _exit(cmd_rules_remove(rule_id, database_url=database_url))


@rules_app.command("apply")
def rules_apply_cmd(
    rule_id: Annotated[int, typer.Argument(help="Rule id (see `rules list`).")],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Apply a rule to already-stored transactions."""

    _exit(cmd_rules_apply(rule_id, database_url=database_url))


@app.command("encrypt-plaintext")
def encrypt_plaintext_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Encrypt transaction fields still stored as plaintext."""

    _exit(cmd_encrypt_plaintext(database_url=database_url))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
