# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

import typer

from lockward.cli.commands import audit as audit_cmd
from lockward.cli.commands import evidence, rules
from lockward.cli.commands.health import health_command

app = typer.Typer(
    name="lockward",
    help="AppLocker rule compilation, policy health, and compliance evidence",
    no_args_is_help=True,
)

app.add_typer(rules.app, name="rules", help="Compile AppLocker rules")
app.add_typer(evidence.app, name="evidence", help="Check and package compliance evidence")
app.add_typer(audit_cmd.app, name="audit", help="Export and summarise the audit trail")
app.command(name="health")(health_command)


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    workers: int = typer.Option(1, "--workers", "-w", help="Worker count"),
) -> None:
    """Start the lockward API server."""
    import uvicorn

    from lockward.core.config import get_settings
    from lockward.core.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    uvicorn.run(
        "lockward.api.app:create_app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        workers=workers,
        factory=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from lockward import __version__

    typer.echo(f"lockward v{__version__}")
