# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for compiling AppLocker rules."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from lockward.cli.formatters.console import console, print_batch_result, print_templates
from lockward.cli.runner import load_json, run_or_exit
from lockward.core.constants import EnforcementMode, RuleAction, RuleCategory, RuleType

app = typer.Typer()


@app.command()
def generate(
    inventory: Annotated[Path, typer.Argument(help="JSON file holding a list of inventory items")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Policy document to write")],
    action: Annotated[RuleAction, typer.Option("--action", help="Rule action")] = RuleAction.ALLOW,
    rule_type: Annotated[RuleType, typer.Option("--type", help="Preferred rule type")] = RuleType.PUBLISHER,
    group: Annotated[str | None, typer.Option("--group", "-g", help="Target user or group")] = None,
    collection: Annotated[
        RuleCategory | None,
        typer.Option("--collection", help="Force every rule into one collection"),
    ] = None,
    no_grouping: Annotated[
        bool, typer.Option("--no-group-by-publisher", help="Emit one rule per item")
    ] = False,
    mode: Annotated[
        EnforcementMode | None, typer.Option("--mode", help="Enforcement mode")
    ] = None,
) -> None:
    """Compile an inventory into a policy document."""
    items = load_json(inventory)
    options: dict[str, object] = {
        "rule_action": action.value,
        "rule_type": rule_type.value,
        "target_group": group,
        "collection_type": collection.value if collection else None,
        "group_by_publisher": not no_grouping,
    }
    if mode is not None:
        options["enforcement_mode"] = mode.value
    data = run_or_exit("policy:batchGenerateRules", items, str(output), options)
    print_batch_result(data)


@app.command()
def publisher(
    publishers: Annotated[list[str], typer.Argument(help="Signer DN(s), e.g. 'O=ACME, L=X, S=Y, C=US'")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Policy document to write")],
    action: Annotated[RuleAction, typer.Option("--action", help="Rule action")] = RuleAction.ALLOW,
    group: Annotated[str | None, typer.Option("--group", "-g", help="Target user or group")] = None,
    collection: Annotated[
        RuleCategory, typer.Option("--collection", help="Rule collection")
    ] = RuleCategory.EXE,
) -> None:
    """Write publisher rules for one or more signers."""
    options = {"action": action.value, "target_group": group, "collection_type": collection.value}
    if len(publishers) == 1:
        data = run_or_exit("policy:createPublisherRule", publishers[0], str(output), options)
    else:
        data = run_or_exit("policy:batchCreatePublisherRules", publishers, str(output), options)
    print_batch_result(data)


@app.command()
def templates(
    category: Annotated[str | None, typer.Option("--category", "-c", help="Filter by category")] = None,
) -> None:
    """List available rule templates."""
    print_templates(run_or_exit("policy:getRuleTemplates", category))


@app.command(name="from-template")
def from_template(
    template_id: Annotated[str, typer.Argument(help="Template id, e.g. deny-temp")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Policy document to write")],
    group: Annotated[str | None, typer.Option("--group", "-g", help="Target user or group")] = None,
) -> None:
    """Write the rule described by a template."""
    data = run_or_exit("policy:createRuleFromTemplate", template_id, str(output), {"target_group": group})
    print_batch_result(data)


@app.command()
def duplicates(
    inventory: Annotated[Path, typer.Argument(help="JSON file holding a list of inventory items")],
) -> None:
    """Report inventory items that share a path or publisher and name."""
    data = run_or_exit("policy:detectDuplicates", load_json(inventory))
    console.print(
        f"{data['total_items']} item(s): "
        f"{data['path_dup_count']} duplicate path(s), "
        f"{data['pub_dup_count']} duplicate publisher/name pair(s)"
    )
    for key, items in {**data["path_duplicates"], **data["publisher_duplicates"]}.items():
        console.print(f"  [yellow]{key}[/yellow] x{len(items)}")
