# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Default context handed to extension units.

Units receive the context unchanged in apply_options() and
register_components(). Any object may serve as context; AppContext is what
get_pipeline() uses when the caller supplies none.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .settings import SystemConfig, get_config


@dataclass(frozen=True)
class AppContext:
    """Process environment visible to extension units.

    Attributes:
        config: Effective lensmith configuration
        extras: Free-form values supplied by the application
    """

    config: SystemConfig
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: SystemConfig | None = None, **extras: Any) -> "AppContext":
        return cls(config=config or get_config(), extras=dict(extras))

    @property
    def project_dir(self) -> Path:
        return self.config.project_dir

    @property
    def state_dir(self) -> Path:
        return self.config.state_dir
