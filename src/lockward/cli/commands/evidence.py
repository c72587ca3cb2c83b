# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for compliance evidence."""

from __future__ import annotations

import typer

from lockward.cli.formatters.console import (
    print_evidence_status,
    print_package,
    print_reports,
    print_validation,
)
from lockward.cli.runner import run_or_exit

app = typer.Typer()


@app.command()
def status() -> None:
    """Show freshness of each evidence category."""
    print_evidence_status(run_or_exit("compliance:getEvidenceStatus"))


@app.command()
def validate() -> None:
    """Check evidence completeness; exit 1 when something is missing."""
    data = run_or_exit("compliance:validateEvidence")
    print_validation(data)
    if not data["is_valid"]:
        raise typer.Exit(1)


@app.command()
def package() -> None:
    """Build an evidence package in the evidence directory."""
    print_package(run_or_exit("compliance:generateEvidence"))


@app.command()
def history() -> None:
    """List previously built evidence packages, newest first."""
    print_reports(run_or_exit("compliance:getHistoricalReports"))
