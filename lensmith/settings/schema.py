# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Lensmith configuration schema using Pydantic.

Configuration Priority
----------------------
Settings are loaded from multiple sources with the following priority (highest to lowest):
1. Constructor / CLI arguments (passed to SystemConfig)
2. Environment variables (LSMITH_* prefix, ``__`` for nesting)
3. Project config file (lensmith.yaml)
4. Built-in defaults (Field defaults in SystemConfig)

Examples:
    YAML: pipeline: {memory_cache_size: 1048576}
    Env:  LSMITH_PIPELINE__MEMORY_CACHE_SIZE=1048576
    Env:  LSMITH_MODULES='["acme.images:FlickrModule"]'

Path Resolution
---------------
Relative paths (manifest_path, pipeline.disk_cache_dir) resolve to the
project directory: the directory holding the project file that was used,
else LSMITH_PROJECT_DIR, else the first ancestor of the CWD holding
lensmith.yaml, else the CWD itself.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from lensmith._internal.logging import LEVEL_MAP
from lensmith._internal.io.yaml import deep_merge, format_yaml_error, load_yaml
from lensmith.builder import PipelineOptions
from lensmith.constants import DEFAULT_DISK_CACHE_DIR, DEFAULT_MANIFEST_FILE, ENTRY_POINT_GROUP

# Private constants for config file discovery
_PROJECT_CONFIG_FILE = "lensmith.yaml"
_PROJECT_DIR_ENV = "LSMITH_PROJECT_DIR"
_STATE_DIR = ".lensmith"


def _find_project_config() -> Path | None:
    """Find project configuration file with upward directory walk.

    Search order:
    1. If LSMITH_PROJECT_DIR is set, check that directory only
    2. Otherwise, walk up from CWD to find lensmith.yaml

    Returns:
        Path to config file, or None if not found
    """
    if project_dir_override := os.environ.get(_PROJECT_DIR_ENV):
        candidate = Path(project_dir_override).resolve() / _PROJECT_CONFIG_FILE
        # Explicit location: don't fall through to the upward walk
        return candidate if candidate.exists() else None

    current = Path.cwd().resolve()
    while current != current.parent:
        candidate = current / _PROJECT_CONFIG_FILE
        if candidate.exists():
            return candidate
        current = current.parent

    return None


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Settings source reading the project YAML file."""

    def __init__(self, settings_cls: type[BaseSettings], project_file: Path | None = None):
        super().__init__(settings_cls)
        self.yaml_files = []
        self.project_file_used = None

        if project_file is not None:
            # Explicit file: use it only if it exists (e.g. /dev/null disables files)
            if project_file.is_file():
                self.yaml_files.append(project_file)
                self.project_file_used = project_file
        else:
            found = _find_project_config()
            if found:
                self.yaml_files.append(found)
                self.project_file_used = found

        self._data = self._load_and_merge_yaml_files()

    def _load_and_merge_yaml_files(self) -> dict[str, Any]:
        """Load and merge YAML configuration files.

        Raises:
            yaml.YAMLError: If any config file has syntax errors
            ValueError: If a config file does not contain a mapping
        """
        merged_data: dict[str, Any] = {}

        for yaml_file in self.yaml_files:
            try:
                data = load_yaml(yaml_file)
            except yaml.YAMLError as e:
                raise yaml.YAMLError(
                    f"\n\n{format_yaml_error(e, yaml_file)}\n\nFix the syntax error and try again."
                ) from e

            if not isinstance(data, dict):
                raise ValueError(f"Config file {yaml_file} must contain a mapping")

            merged_data = deep_merge(merged_data, data)

        return merged_data

    def get_field_value(self, field_name: str, field_info: Any) -> tuple[Any, str, bool]:
        """Get field value from YAML source."""
        if field_name in self._data:
            return self._data[field_name], field_name, True
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        data = self._data.copy()
        if self.project_file_used:
            data.setdefault("project_file", self.project_file_used)
        return data


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="normal", description="Console verbosity level: quiet | normal | verbose | debug"
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.lower() not in LEVEL_MAP:
            raise ValueError(f"Unknown log level '{v}'. Choose from: {', '.join(LEVEL_MAP)}")
        return v.lower()


class SystemConfig(BaseSettings):
    """Configuration schema with hierarchical priority.

    Priority order (highest to lowest):
    1. Constructor arguments
    2. Environment variables (LSMITH_* prefix)
    3. Project config (lensmith.yaml)
    4. Built-in defaults
    """

    project_file: Path | None = Field(
        default=None, description="Project config file in use (set automatically when found)"
    )
    # project_dir is computed in model_post_init, not user-configurable
    project_dir: Path | None = Field(default=None, exclude=True)

    modules: list[str] = Field(
        default_factory=list,
        description=(
            "Extension units to load, as import strings ('package.module:ClassName'). "
            "Applied after units registered in code and before manifest and entry point units."
        ),
    )
    manifest_path: Path | None = Field(
        default=None,
        description=(
            f"YAML manifest listing extension units. Defaults to {DEFAULT_MANIFEST_FILE} "
            "in the project directory when that file exists."
        ),
    )
    discover_entry_points: bool = Field(
        default=True, description="Load extension units advertised by installed packages"
    )
    entry_point_group: str = Field(
        default=ENTRY_POINT_GROUP, description="Entry point group scanned for extension units"
    )
    excluded_modules: list[str] = Field(
        default_factory=list,
        description="Identifiers of discovered extension units to skip",
    )

    pipeline: PipelineOptions = Field(
        default_factory=PipelineOptions,
        description="Default pipeline options, applied before any extension unit",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="LSMITH_",
        env_nested_delimiter="__",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False,
        env_file=None,  # Config files are handled by YamlSettingsSource
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources.

        Priority order (first source wins):
        1. Init settings (constructor args)
        2. Environment variables (LSMITH_*)
        3. YAML project file (custom source)
        4. Field defaults (built into pydantic)
        """
        project_file = init_settings().get("project_file")
        if project_file is not None:
            project_file = Path(project_file)

        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls, project_file=project_file),
        )

    def model_post_init(self, __context: Any) -> None:
        """Detect the project directory and resolve relative paths against it."""
        self.project_dir = self._detect_project_root()

        if self.manifest_path is not None:
            self.manifest_path = self._resolve(self.manifest_path, self.project_dir)

        disk_cache_dir = self.pipeline.disk_cache_dir
        if disk_cache_dir is None:
            disk_cache_dir = self.state_dir / DEFAULT_DISK_CACHE_DIR
        self.pipeline = self.pipeline.model_copy(
            update={"disk_cache_dir": self._resolve(Path(disk_cache_dir), self.project_dir)}
        )

    def _detect_project_root(self) -> Path:
        """Detect project root.

        Priority:
        1. Directory of the project file in use (explicit or found)
        2. LSMITH_PROJECT_DIR env var
        3. Current working directory
        """
        if self.project_file is not None and Path(self.project_file).is_file():
            return Path(self.project_file).parent.resolve()

        if _PROJECT_DIR_ENV in os.environ:
            return Path(os.environ[_PROJECT_DIR_ENV]).resolve()

        return Path.cwd().resolve()

    @property
    def state_dir(self) -> Path:
        """Per-project state directory (.lensmith/)."""
        return self.project_dir / _STATE_DIR

    @property
    def effective_manifest_path(self) -> Path | None:
        """Manifest to read: the configured one, else the project default if present."""
        if self.manifest_path is not None:
            return self.manifest_path
        default = self.project_dir / DEFAULT_MANIFEST_FILE
        return default if default.exists() else None

    @staticmethod
    def _resolve(path: Path, base: Path) -> Path:
        """Resolve relative paths to absolute using base."""
        return path if path.is_absolute() else (base / path).resolve()
