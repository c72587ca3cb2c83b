# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for the audit trail."""

from __future__ import annotations

import sys
from typing import Annotated

import typer

from lockward.cli.formatters.console import console
from lockward.cli.runner import run_or_exit

app = typer.Typer()


@app.command()
def export(
    stdout: Annotated[
        bool, typer.Option("--stdout", help="Print CSV instead of writing the export directory")
    ] = False,
) -> None:
    """Export the audit trail as CSV."""
    if stdout:
        sys.stdout.write(run_or_exit("audit:exportCSV"))
        return
    path = run_or_exit("compliance:exportAuditLog")
    typer.echo(f"Audit log exported to {path}")


@app.command()
def stats() -> None:
    """Show audit totals by severity and the success rate."""
    data = run_or_exit("audit:getStats")
    console.print(f"Total entries: {data['total']}  success rate: {data['success_rate']:.2f}%")
    for severity, count in sorted(data["by_severity"].items()):
        console.print(f"  {severity:8} {count}")
