# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Rich console output for command results."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lockward.commands import CommandResult

console = Console()

STATE_COLORS = {
    "COMPLETE": "bold green",
    "SYNCED": "bold green",
    "STALE": "yellow",
    "INCOMPLETE": "bold red",
    "MISSING": "bold red",
}

LEVEL_COLORS = {
    "critical": "bold red",
    "warning": "yellow",
    "info": "cyan",
}


def _score_color(score: int) -> str:
    if score >= 90:
        return "bold green"
    if score >= 70:
        return "yellow"
    return "bold red"


def print_error(result: CommandResult) -> None:
    error = result.error
    if error is None:
        console.print("[red]Command failed.[/red]")
        return
    console.print(f"[bold red]{error.code}[/bold red]: {error.message}")
    failures = (result.data or {}).get("failures") if isinstance(result.data, dict) else None
    for failure in failures or []:
        console.print(f"  [dim]-[/dim] {failure['item']}: {failure['error']}")


def print_batch_result(data: dict[str, Any]) -> None:
    console.print(
        f"[bold green]Wrote {data['rule_count']} rule(s)[/bold green] to {data['output_path']}"
    )
    if data.get("failures"):
        table = Table(title="Skipped Items")
        table.add_column("Item", style="yellow")
        table.add_column("Reason")
        for failure in data["failures"]:
            table.add_row(failure["item"], failure["error"])
        console.print(table)


def print_templates(templates: list[dict[str, Any]]) -> None:
    if not templates:
        console.print("[dim]No templates found.[/dim]")
        return
    table = Table(title="Rule Templates")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Action", style="bold")
    table.add_column("Type")
    table.add_column("Category", style="dim")
    for t in templates:
        table.add_row(t["id"], t["name"], t["action"], t["rule_type"], t["category"])
    console.print(table)


def print_health(data: dict[str, Any]) -> None:
    color = _score_color(data["score"])
    console.print(
        Panel(
            f"[{color}]SCORE: {data['score']}/100[/{color}]"
            f"  (coverage: {data['coverage']:.0f}%)\n"
            f"{data['phase']}",
            title="Policy Health",
            style=color,
        )
    )
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("level", style="dim")
    summary.add_column("count", justify="right")
    for level in ("critical", "warning", "info"):
        summary.add_row(level, str(data[level]))
    console.print(summary)

    for finding in data.get("findings", []):
        style = LEVEL_COLORS.get(finding["level"], "white")
        console.print(f"  [{style}]{finding['level'].upper():8}[/{style}] {finding['message']}")


def print_evidence_status(data: dict[str, Any]) -> None:
    table = Table(title="Evidence Status")
    table.add_column("Category", style="bold")
    table.add_column("State")
    for label, key in (
        ("Policy definitions", "policy_definitions"),
        ("Audit logs", "audit_logs"),
        ("System snapshots", "system_snapshots"),
    ):
        state = data[key]
        style = STATE_COLORS.get(state, "white")
        table.add_row(label, f"[{style}]{state}[/{style}]")
    console.print(table)
    console.print(f"[dim]Last update: {data.get('last_update') or 'never'}[/dim]")


def print_validation(data: dict[str, Any]) -> None:
    if data["is_valid"]:
        console.print("[bold green]Evidence is complete.[/bold green]")
    else:
        console.print("[bold red]Evidence is incomplete.[/bold red]")
    for item in data["missing_items"]:
        console.print(f"  [red]missing[/red]  {item}")
    for warning in data["warnings"]:
        console.print(f"  [yellow]warning[/yellow]  {warning}")


def print_package(data: dict[str, Any]) -> None:
    console.print(f"[bold green]Evidence package written:[/bold green] {data['path']}")
    console.print(f"[dim]{len(data['artifacts'])} artifact(s)[/dim]")
    for failure in data["failed"]:
        console.print(f"  [yellow]not included[/yellow] {failure['name']}: {failure['error']}")


def print_reports(reports: list[dict[str, Any]]) -> None:
    if not reports:
        console.print("[dim]No evidence packages found.[/dim]")
        return
    table = Table(title="Evidence Packages")
    table.add_column("Created", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    for report in reports:
        table.add_row(report["created_at"], report["name"], f"{report['size_bytes']:,}")
    console.print(table)
