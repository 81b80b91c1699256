# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Extension module discovery command."""

import sys

import click
from rich.markup import escape
from rich.table import Table

from ..constants import ExitCode
from ..utils import console, lensmith_error_exit


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verify", "-v", is_flag=True, help="Instantiate each module to check it loads")
@click.pass_obj
def modules(config, verify: bool) -> None:
    """List discovered extension modules in the order they are applied.

    Modules come from code registrations, the 'modules' setting, the module
    manifest and installed entry points. --verify constructs each module
    without calling apply_options() or register_components().
    """
    from lensmith._state import build_default_discovery
    from lensmith.exceptions import DiscoveryError, InstantiationError

    discovery = build_default_discovery(config)
    try:
        found = discovery.list_sources()
    except DiscoveryError as e:
        lensmith_error_exit(e)

    if not found:
        console.print("[yellow]No extension modules discovered.[/yellow]")
        manifest = config.effective_manifest_path
        console.print(f"Manifest: {manifest if manifest else '(none)'}")
        return

    table = Table(title="Extension Modules")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Module", style="cyan")
    table.add_column("Source", style="white")
    if verify:
        table.add_column("Status", justify="center")
        table.add_column("Type", style="white")

    failures = {}
    for position, (identifier, source) in enumerate(found, start=1):
        row = [str(position), identifier, source]
        if verify:
            try:
                unit = discovery.instantiate(identifier)
                row += ["[green]✓[/green]", type(unit).__qualname__]
            except InstantiationError as e:
                failures[identifier] = str(e)
                row += ["[red]✗[/red]", ""]
        table.add_row(*row)

    console.print(table)

    for identifier, message in failures.items():
        console.print(f"[red]{escape(identifier)}[/red]: {escape(message)}")
    if failures:
        sys.exit(ExitCode.ERROR)
