# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import importlib
import logging
import sys
from pathlib import Path

import click

from .constants import CLI_NAME, PACKAGE_NAME, ExitCode
from .utils import console

logger = logging.getLogger(__name__)


def _version_callback(ctx, param, value):
    if not value:
        return
    import importlib.metadata
    try:
        version = importlib.metadata.version(PACKAGE_NAME)
    except importlib.metadata.PackageNotFoundError:
        from lensmith import __version__ as version
    console.print(f"[bold]{CLI_NAME}[/bold], version {version}")
    ctx.exit()


class LazyGroup(click.Group):
    """Group whose subcommands are imported on first lookup.

    ``lazy_commands`` maps a command name to a "module:attribute" string.
    A loaded command is added to the group, so each import happens once.
    """

    def __init__(self, *args, lazy_commands: dict[str, str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.lazy_commands = dict(lazy_commands or {})

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted({*self.commands, *self.lazy_commands})

    def get_command(self, ctx: click.Context, name: str) -> click.Command | None:
        if name not in self.commands and name in self.lazy_commands:
            self.add_command(self._load(name), name)
        return super().get_command(ctx, name)

    def _load(self, name: str) -> click.Command:
        module_path, _, attr_name = self.lazy_commands[name].partition(":")
        command = getattr(importlib.import_module(module_path), attr_name)
        if not isinstance(command, click.Command):
            raise TypeError(f"Lazy command {name!r} resolved to {command!r}, not a click command")
        return command


def create_cli() -> click.Group:
    from lensmith.cli.commands import COMMAND_MAP

    @click.pass_context
    def callback(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
        # Settings are only loaded when a command runs, keeping --help fast
        from lensmith._internal.logging import setup_logging
        from lensmith.settings import load_config

        overrides = {"logging": {"level": log_level}} if log_level else {}
        ctx.obj = load_config(project_file=config, **overrides)
        setup_logging(ctx.obj.logging.level)
        logger.debug(f"Loaded configuration for project {ctx.obj.project_dir}")

    cli = LazyGroup(
        name=CLI_NAME,
        callback=callback,
        context_settings={"help_option_names": ["-h", "--help"]},
        lazy_commands=COMMAND_MAP,
    )

    cli.params.append(click.Option(
        ["-c", "--config"],
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Use this project config file instead of lensmith.yaml"
    ))
    cli.params.append(click.Option(
        ["-l", "--log-level"],
        type=click.Choice(["quiet", "normal", "verbose", "debug"]),
        default=None,
        metavar="LEVEL",
        help="Set log verbosity (quiet|normal|verbose|debug)"
    ))
    cli.params.append(click.Option(
        ["--version"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_version_callback,
        help="Show the version and exit."
    ))

    cli.help = """Lensmith - inspect extension modules and the shared pipeline they configure.

\b
Use --help with any command for detailed options."""

    return cli


def main() -> None:
    """Run CLI with consistent error handling."""
    from lensmith.exceptions import LensmithError
    from .utils import lensmith_error_exit

    try:
        cli = create_cli()
        cli(standalone_mode=True)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(ExitCode.INTERRUPTED)
    except LensmithError as e:
        lensmith_error_exit(e)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logging.exception(f"Unexpected error in {CLI_NAME} CLI")
        sys.exit(ExitCode.SOFTWARE)


if __name__ == "__main__":
    main()
