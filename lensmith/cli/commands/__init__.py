# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Lensmith CLI commands.

Each command lives in its own module and is imported only when invoked,
so ``lensmith --help`` never loads settings, Rich tables or discovery.
"""

# Command name -> "module:attribute" under this package
COMMAND_MAP = {
    name: f"{__name__}.{name}:{name}"
    for name in ("modules", "config", "components")
}

__all__ = ["COMMAND_MAP"]
