# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI utility functions for output formatting and error reporting."""

import sys
from typing import NoReturn

from rich.console import Console
from rich.markup import escape

from lensmith.exceptions import (
    ConfigurationError,
    DiscoveryError,
    InstantiationError,
    LensmithError,
    RegistrationError,
)

from .constants import ExitCode

console = Console()


def exit_code_for(error: LensmithError) -> int:
    """Map a lensmith error to an exit code."""
    if isinstance(error, (DiscoveryError, ConfigurationError)):
        return ExitCode.CONFIG
    if isinstance(error, (InstantiationError, RegistrationError)):
        return ExitCode.DATAERR
    return ExitCode.SOFTWARE


def _cause_chain(error: BaseException) -> list[BaseException]:
    chain = []
    cause = error.__cause__
    while cause is not None and cause not in chain:
        chain.append(cause)
        cause = cause.__cause__
    return chain


def lensmith_error_exit(error: LensmithError) -> NoReturn:
    """Print a lensmith error with its module and causes, then exit with its code."""
    console.print(f"[red]Error:[/red] {escape(type(error).__name__)}: {escape(str(error))}")

    identifier = getattr(error, "identifier", None)
    details = [f"Module: {identifier}"] if identifier else []
    details += [f"Caused by {type(cause).__name__}: {cause}" for cause in _cause_chain(error)]
    if details:
        console.print("")
    for detail in details:
        console.print(f"  • {escape(detail)}")

    sys.exit(exit_code_for(error))


def type_name(t: object) -> str:
    module = getattr(t, "__module__", None)
    qualname = getattr(t, "__qualname__", None)
    if qualname is None:
        return repr(t)
    return qualname if module in (None, "builtins") else f"{module}.{qualname}"
