# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""YAML reading shared by settings and manifest discovery."""

import os
from pathlib import Path
from typing import Any

import yaml


def load_yaml(file_path: str | Path, expand_env: bool = True) -> Any:
    """Read one YAML document; an empty file reads as ``{}``.

    With ``expand_env``, ``$VAR`` and ``${VAR}`` in string values are
    replaced from the environment. Unknown variables stay as written.

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the YAML is invalid
    """
    with open(file_path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    return expand_env_vars(data) if expand_env else data


def expand_env_vars(data: Any) -> Any:
    if isinstance(data, str):
        return os.path.expandvars(data)
    if isinstance(data, dict):
        return {key: expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return list(map(expand_env_vars, data))
    return data


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge ``overlay`` into a copy of ``base``; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


def format_yaml_error(error: yaml.YAMLError, source: str | Path) -> str:
    """Describe a YAML error on one line, with its line and column when known."""
    mark = getattr(error, "problem_mark", None)
    location = f"line {mark.line + 1}, column {mark.column + 1}" if mark else "unknown location"
    problem = getattr(error, "problem", None) or str(error)
    return f"Invalid YAML in {source} at {location}: {problem}"
