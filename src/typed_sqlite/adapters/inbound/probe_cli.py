"""Command-line feature probe.

Prints the linked engine's probe stream on stdout: version number,
threading mode, a blank line, then one compile-time option per line.
Build tooling reads this to decide which optional features to enable.

Exit status is 0 on success. When the library cannot be loaded or
initialized, a diagnostic goes to stderr and the exit status is 1.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from typed_sqlite.adapters.outbound.ctypes_sqlite import CtypesSQLite
from typed_sqlite.application.features import Features
from typed_sqlite.domain.errors import TypedSQLiteError
from typed_sqlite.infrastructure.container import resolve_engine
from typed_sqlite.infrastructure.logging import get_logger
from typed_sqlite.infrastructure.observability import setup_observability

app = typer.Typer(add_completion=False)

logger = get_logger(__name__)


@app.command()
def probe(
    library: Optional[Path] = typer.Option(
        None, "--library", "-l", help="Path to libsqlite3 (default: search)"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for diagnostics"),
) -> None:
    """Print the SQLite version, threading mode and compile options."""
    setup_observability(log_level=log_level)

    try:
        engine = CtypesSQLite(str(library)) if library else resolve_engine()
        features = Features.probe(engine)
    except TypedSQLiteError as e:
        logger.error("probe_failed", error=str(e))
        typer.echo(f"typed-sqlite-probe: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(features.render(), nl=False)


def main() -> None:
    """Entry point for the typed-sqlite-probe script."""
    app()
