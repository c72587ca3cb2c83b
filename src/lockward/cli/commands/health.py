# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI command for policy health checks."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from lockward.cli.formatters.console import print_health
from lockward.cli.runner import load_json, run_or_exit


def health_command(
    phase: Annotated[str, typer.Argument(help="Rollout phase: 1-4 or a phase label")],
    rules: Annotated[
        Path | None, typer.Option("--rules", "-r", help="JSON file holding a list of rules")
    ] = None,
    publishers: Annotated[
        Path | None,
        typer.Option("--publishers", "-p", help="JSON file holding trusted publishers"),
    ] = None,
    min_score: Annotated[
        int | None,
        typer.Option("--min-score", help="Exit 1 when the score is below this value"),
    ] = None,
) -> None:
    """Score a rule set against the categories enforced by a phase."""
    rule_list = load_json(rules) if rules else []
    publisher_list = load_json(publishers) if publishers else []
    data = run_or_exit("policy:runHealthCheck", phase, rule_list, publisher_list)
    print_health(data)
    if min_score is not None and data["score"] < min_score:
        raise typer.Exit(1)
