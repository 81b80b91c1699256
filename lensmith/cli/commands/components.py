# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pipeline initialization and component listing command."""

import click
from rich.markup import escape
from rich.table import Table

from ..utils import console, lensmith_error_exit, type_name


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--options/--no-options", default=True, help="Show the frozen pipeline options")
@click.pass_obj
def components(config, options: bool) -> None:
    """Initialize the pipeline and list registered components.

    Runs the full initialization: every discovered module applies its
    options and registers its components exactly once.
    """
    from lensmith._state import build_default_discovery
    from lensmith.context import AppContext
    from lensmith.exceptions import LensmithError
    from lensmith.lifecycle import SingletonLifecycle

    lifecycle = SingletonLifecycle(
        build_default_discovery(config),
        AppContext.from_config(config),
        defaults=config.pipeline,
    )
    try:
        pipeline = lifecycle.get()
    except LensmithError as e:
        lensmith_error_exit(e)

    console.print(
        f"[green]Pipeline ready[/green]: {len(lifecycle.units)} modules, "
        f"{len(pipeline.registry)} components"
    )

    if options:
        table = Table(title="Pipeline Options")
        table.add_column("Option", style="cyan")
        table.add_column("Value", style="white")
        for name, value in pipeline.options.as_dict().items():
            table.add_row(name, escape(str(value)))
        console.print(table)

    if len(pipeline.registry):
        table = Table(title="Components")
        table.add_column("Model", style="cyan")
        table.add_column("Data", style="cyan")
        table.add_column("Factory", style="white")
        for (model_type, data_type), factory in pipeline.registry.items():
            table.add_row(type_name(model_type), type_name(data_type), escape(repr(factory)))
        console.print(table)
    else:
        console.print("[dim]No components registered.[/dim]")
