# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Loading, caching and reporting for lensmith settings.

``get_config()`` is what discovery and the CLI read; it loads once per
process until ``reset_config()``. ``load_config()`` always reads the
sources again and is what tests and the CLI callback use directly.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from rich.console import Console

from .schema import SystemConfig

console = Console(stderr=True)

# Shorthand for LSMITH_LOGGING__LEVEL
_LOG_LEVEL_ENV = "LSMITH_LOG_LEVEL"


def _anchor_override_paths(overrides: dict[str, Any]) -> dict[str, Any]:
    """Make relative paths given as overrides absolute against the CWD.

    Paths from lensmith.yaml resolve against the project directory, but a
    path typed on the command line means what the shell means by it.
    """
    cwd = Path.cwd()

    def anchor(value: Any) -> Any:
        if isinstance(value, (str, Path)) and not Path(value).is_absolute():
            return (cwd / value).resolve()
        return value

    anchored = dict(overrides)
    if anchored.get("manifest_path") is not None:
        anchored["manifest_path"] = anchor(anchored["manifest_path"])

    pipeline = anchored.get("pipeline")
    if isinstance(pipeline, dict) and pipeline.get("disk_cache_dir") is not None:
        anchored["pipeline"] = {**pipeline, "disk_cache_dir": anchor(pipeline["disk_cache_dir"])}

    return anchored


def _report_validation_error(error: ValidationError) -> None:
    console.print("[bold red]Configuration validation failed:[/bold red]")
    for detail in error.errors():
        field = " → ".join(str(part) for part in detail["loc"]) or "(root)"
        console.print(f"  [red]{field}: {detail['msg']}[/red]")


def load_config(project_file: Path | None = None, **overrides) -> SystemConfig:
    """Read settings from every source.

    Overrides beat LSMITH_* variables, which beat the project file, which
    beats built-in defaults. LSMITH_LOG_LEVEL sets ``logging.level`` unless
    an override already does.

    Args:
        project_file: Project config file to use instead of searching for
            lensmith.yaml
        **overrides: Top-level SystemConfig fields

    Raises:
        ValidationError: After printing each failing field to stderr
    """
    overrides = _anchor_override_paths(overrides)

    if "logging" not in overrides and _LOG_LEVEL_ENV in os.environ:
        overrides["logging"] = {"level": os.environ[_LOG_LEVEL_ENV]}
    if project_file is not None:
        overrides["project_file"] = Path(project_file)

    try:
        return SystemConfig(**overrides)
    except ValidationError as e:
        _report_validation_error(e)
        raise


@lru_cache(maxsize=1)
def get_config() -> SystemConfig:
    """Process-wide settings, loaded on first use."""
    return load_config()


def reset_config() -> None:
    """Forget the cached settings so the next ``get_config()`` reloads."""
    get_config.cache_clear()


class _DefaultsOnlyConfig(SystemConfig):
    """SystemConfig that reads constructor arguments and nothing else."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)


def get_default_config() -> SystemConfig:
    """Settings built from defaults only, ignoring lensmith.yaml and LSMITH_* variables."""
    return _DefaultsOnlyConfig()
