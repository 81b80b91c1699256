# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Simple logging configuration using Python's standard logging with Rich.

Lensmith modules log through ``logging.getLogger(__name__)``; this module
only installs a Rich handler on the root logger for CLI use.

Usage:
    from lensmith._internal.logging import setup_logging

    # In CLI setup
    setup_logging(level="verbose")

    # In application code
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Pipeline ready")
"""

import logging

# Console verbosity names (settings/CLI) and plain level names both accepted
LEVEL_MAP = {
    'quiet': logging.ERROR,
    'normal': logging.WARNING,
    'verbose': logging.INFO,
    'error': logging.ERROR,
    'warning': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG,
}


def resolve_level(level: str) -> int:
    """Map a verbosity or level name to a logging constant (default WARNING)."""
    return LEVEL_MAP.get(level.lower(), logging.WARNING)


def setup_logging(level: str = "normal") -> None:
    """Configure Python logging with Rich handler.

    Maps string level ('quiet', 'normal', 'verbose', 'debug', or a plain
    level name) to logging constants.
    """
    from rich.logging import RichHandler

    log_level = resolve_level(level)

    root = logging.getLogger()
    root.setLevel(log_level)

    if not root.handlers:
        handler = RichHandler(
            rich_tracebacks=(log_level == logging.DEBUG),
            show_path=False,
            markup=True,
            show_time=False
        )
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setLevel(log_level)
