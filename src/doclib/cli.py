# src/doclib/cli.py
"""doclib Command Line Interface.

Operator tooling for inspecting and nudging processing flags on documents.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from doclib import __version__
from doclib.contracts import DocumentNotFoundError, FlagRecord, NotStartedError, UpdatedResult
from doclib.core.config import DoclibSettings, load_settings
from doclib.core.logging import configure_logging
from doclib.core.store import DoclibDB, FlagStore, SchemaCompatibilityError
from doclib.flags import FlagContext

__all__ = ["app"]

app = typer.Typer(
    name="doclib",
    help="doclib: processing-status flags for shared documents.",
    no_args_is_help=True,
)

flags_app = typer.Typer(help="Inspect and change flags on a document.", no_args_is_help=True)
app.add_typer(flags_app, name="flags")

documents_app = typer.Typer(help="Manage documents in the flag store.", no_args_is_help=True)
app.add_typer(documents_app, name="documents")

_SETTINGS_OPTION = typer.Option(
    Path("settings.yaml"),
    "--settings",
    "-s",
    help="Path to settings YAML file.",
)
_KEY_OPTION = typer.Option(
    None,
    "--key",
    "-k",
    help="Flag key to act on (default: flags.key from settings).",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"doclib version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """doclib: processing-status flags for shared documents."""


def _fail(message: str) -> typer.Exit:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    return typer.Exit(1)


def _load(settings_path: Path) -> DoclibSettings:
    try:
        settings = load_settings(settings_path)
    except FileNotFoundError as e:
        raise _fail(str(e)) from None
    except ValidationError as e:
        raise _fail(f"Invalid settings in {settings_path}:\n{e}") from None
    configure_logging(
        json_output=settings.logging.json_output,
        level=settings.logging.level,
        sql_echo=settings.database.echo,
    )
    return settings


def _open_store(settings: DoclibSettings) -> tuple[DoclibDB, FlagStore]:
    try:
        # Statement echo is routed through configure_logging
        db = DoclibDB.from_url(settings.database.url)
    except (SQLAlchemyError, SchemaCompatibilityError) as e:
        raise _fail(f"Store error: {e}") from None
    return db, FlagStore(db)


def _context(settings: DoclibSettings, store: FlagStore, key: str | None) -> FlagContext:
    context = FlagContext.from_settings(settings.flags, store)
    if key is not None and key != context.key:
        context = FlagContext(key, context.version, store, tolerance=context.tolerance)
    return context


def _flag_to_dict(flag: FlagRecord) -> dict[str, Any]:
    def _ts(value: Any) -> str | None:
        return value.isoformat() if value is not None else None

    return {
        "key": flag.key,
        "version": str(flag.version),
        "started": _ts(flag.started),
        "ended": _ts(flag.ended),
        "errored": _ts(flag.errored),
        "reset": _ts(flag.reset),
        "queued": flag.queued,
        "summary": flag.summary.value if flag.summary is not None else None,
        "state": None if flag.state is None else {"value": flag.state.value, "updated": _ts(flag.state.updated)},
    }


@flags_app.command("show")
def show(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON."),
) -> None:
    """List every flag on a document, in collection order."""
    settings = _load(settings_path)
    db, store = _open_store(settings)
    with db:
        try:
            document = store.get_document(document_id)
        except DocumentNotFoundError as e:
            raise _fail(str(e)) from None
        except SQLAlchemyError as e:
            raise _fail(f"Store error: {e}") from None

    flags = [_flag_to_dict(flag) for flag in document.flags]
    if json_output:
        typer.echo(json.dumps({"document_id": document.id, "flags": flags}, indent=2))
        return

    typer.echo(f"Document: {document.id} ({document.source})")
    if not flags:
        typer.echo("  no flags")
    for flag in flags:
        status = flag["summary"] or ("queued" if flag["queued"] else "-")
        typer.echo(f"  {flag['key']} [{status}] version={flag['version']} queued={flag['queued']} started={flag['started']}")


def _run_transition(
    settings_path: Path,
    key: str | None,
    document_id: str,
    action: Callable[[FlagContext], UpdatedResult],
) -> None:
    settings = _load(settings_path)
    db, store = _open_store(settings)
    with db:
        context = _context(settings, store, key)
        try:
            result = action(context)
        except NotStartedError as e:
            raise _fail(str(e)) from None
        except SQLAlchemyError as e:
            raise _fail(f"Store error: {e}") from None
    typer.echo(f"{context.key} on {document_id}: modified {result.modified_count}")


@flags_app.command("queue")
def queue(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    key: str | None = _KEY_OPTION,
) -> None:
    """Queue the stage on a document."""
    _run_transition(settings_path, key, document_id, lambda ctx: ctx.queue(document_id))


@flags_app.command("start")
def start(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    key: str | None = _KEY_OPTION,
) -> None:
    """Start (or restart) the stage on a document."""
    _run_transition(settings_path, key, document_id, lambda ctx: ctx.start(document_id))


@flags_app.command("end")
def end(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    key: str | None = _KEY_OPTION,
    no_check: bool = typer.Option(False, "--no-check", help="Do not require an existing flag."),
) -> None:
    """Mark the stage as ended on a document."""
    _run_transition(settings_path, key, document_id, lambda ctx: ctx.end(document_id, no_check=no_check))


@flags_app.command("error")
def error(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    key: str | None = _KEY_OPTION,
    no_check: bool = typer.Option(False, "--no-check", help="Do not require an existing flag."),
) -> None:
    """Mark the stage as errored on a document."""
    _run_transition(settings_path, key, document_id, lambda ctx: ctx.error(document_id, no_check=no_check))


@flags_app.command("reset")
def reset(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    key: str | None = _KEY_OPTION,
) -> None:
    """Reset the stage on a document so it is picked up again."""
    _run_transition(settings_path, key, document_id, lambda ctx: ctx.reset(document_id))


@flags_app.command("recent")
def recent(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
    key: str | None = _KEY_OPTION,
) -> None:
    """Check whether the stage was started within the tolerance window.

    Exits 0 if it was, 1 if not.
    """
    settings = _load(settings_path)
    db, store = _open_store(settings)
    with db:
        context = _context(settings, store, key)
        try:
            ran = context.is_run_recently(document_id)
        except SQLAlchemyError as e:
            raise _fail(f"Store error: {e}") from None
    typer.echo(f"{context.key} on {document_id}: {'ran recently' if ran else 'not run recently'}")
    if not ran:
        raise typer.Exit(1)


@documents_app.command("delete")
def delete_document(
    document_id: str = typer.Argument(..., help="Document identifier."),
    settings_path: Path = _SETTINGS_OPTION,
) -> None:
    """Remove a document and every flag on it."""
    settings = _load(settings_path)
    db, store = _open_store(settings)
    with db:
        try:
            deleted = store.delete_document(document_id)
        except SQLAlchemyError as e:
            raise _fail(f"Store error: {e}") from None
    if deleted == 0:
        raise _fail(str(DocumentNotFoundError(document_id)))
    typer.echo(f"Deleted document {document_id}")


if __name__ == "__main__":
    app()
