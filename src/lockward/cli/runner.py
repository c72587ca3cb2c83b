# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Run named commands from the CLI and exit non-zero on failure."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer

from lockward.cli.formatters.console import print_error
from lockward.commands import CommandResult, get_router


def dispatch(name: str, *args: Any) -> CommandResult:
    return asyncio.run(get_router().dispatch(name, *args))


def run_or_exit(name: str, *args: Any) -> Any:
    """Dispatch *name* and return its data, or print the error and exit 1."""
    result = dispatch(name, *args)
    if not result.success:
        print_error(result)
        raise typer.Exit(1)
    return result.data


def load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        typer.echo(f"Cannot read {path}: {exc}", err=True)
        raise typer.Exit(2) from exc
