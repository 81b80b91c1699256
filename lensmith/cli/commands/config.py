# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Effective configuration display."""

import click
from rich.markup import escape
from rich.table import Table

from ..utils import console


def _format_value(value) -> str:
    if isinstance(value, (list, tuple)):
        return escape(", ".join(str(v) for v in value)) if value else "[dim](none)[/dim]"
    if value is None:
        return "[dim](none)[/dim]"
    return escape(str(value))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_obj
def config(config) -> None:
    """Display the effective configuration and default pipeline options."""
    settings = Table(title="Settings")
    settings.add_column("Setting", style="cyan")
    settings.add_column("Value", style="white")

    settings.add_row("project_dir", _format_value(config.project_dir))
    settings.add_row("project_file", _format_value(config.project_file))
    settings.add_row("modules", _format_value(config.modules))
    settings.add_row("manifest", _format_value(config.effective_manifest_path))
    settings.add_row("discover_entry_points", _format_value(config.discover_entry_points))
    settings.add_row("entry_point_group", _format_value(config.entry_point_group))
    settings.add_row("excluded_modules", _format_value(config.excluded_modules))
    settings.add_row("logging.level", _format_value(config.logging.level))
    console.print(settings)

    options = Table(title="Default Pipeline Options")
    options.add_column("Option", style="cyan")
    options.add_column("Value", style="white")
    for name, value in config.pipeline.as_dict().items():
        options.add_row(name, _format_value(value))
    console.print(options)
