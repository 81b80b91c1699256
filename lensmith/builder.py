# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Option accumulation for the configure phase.

Extension units receive a ConfigBuilder in apply_options() and set named
options on it. Once every unit has run, the lifecycle freezes the builder
into an immutable PipelineOptions from which the pipeline core is built.

Conflict policy: the last write for a given option name wins. Units are
applied in discovery order, so under a fixed order the last unit wins.
Only individual known options are validated (at freeze time); consistency
between options is never checked.
"""

import copy
import logging
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    DEFAULT_BITMAP_POOL_SIZE,
    DEFAULT_DISK_CACHE_SIZE,
    DEFAULT_DISK_CACHE_THREADS,
    DEFAULT_MEMORY_CACHE_SIZE,
    DEFAULT_SOURCE_THREADS,
)
from .exceptions import AlreadyFrozenError, ConfigurationError

logger = logging.getLogger(__name__)


class DecodeFormat(str, Enum):
    """Preferred in-memory pixel format for decoded images.

    Attributes:
        PREFER_RGB_565: Use 16-bit RGB when the image has no alpha channel
        PREFER_ARGB_8888: Prefer 32-bit ARGB, allow decoders to fall back
        ALWAYS_ARGB_8888: Always decode to 32-bit ARGB
    """

    PREFER_RGB_565 = "prefer_rgb_565"
    PREFER_ARGB_8888 = "prefer_argb_8888"
    ALWAYS_ARGB_8888 = "always_argb_8888"

    def __str__(self) -> str:
        return self.value


class PipelineOptions(BaseModel):
    """Immutable pipeline configuration.

    Known options are declared as fields and validated individually. Any
    other option name set by a unit is kept verbatim as an extra value, so
    the surrounding system can define options lensmith knows nothing about.

    Options are readable as attributes (known names) or by item access
    (any name):
        >>> options['decode_format']
        <DecodeFormat.PREFER_RGB_565: 'prefer_rgb_565'>
        >>> options.get('decodeMode', 'FAST')
        'FAST'
    """

    decode_format: DecodeFormat = Field(
        default=DecodeFormat.PREFER_RGB_565, description="Preferred decoded pixel format"
    )
    memory_cache_size: int = Field(
        default=DEFAULT_MEMORY_CACHE_SIZE, ge=0, description="Memory cache size in bytes"
    )
    bitmap_pool_size: int = Field(
        default=DEFAULT_BITMAP_POOL_SIZE, ge=0, description="Bitmap pool size in bytes"
    )
    disk_cache_size: int = Field(
        default=DEFAULT_DISK_CACHE_SIZE, ge=0, description="Disk cache size in bytes"
    )
    disk_cache_dir: Path | None = Field(
        default=None, description="Disk cache directory (resolved against the project)"
    )
    source_threads: int = Field(
        default=DEFAULT_SOURCE_THREADS, ge=1, description="Threads fetching source data"
    )
    disk_cache_threads: int = Field(
        default=DEFAULT_DISK_CACHE_THREADS, ge=1, description="Threads serving the disk cache"
    )

    model_config = ConfigDict(frozen=True, extra="allow")

    def __getitem__(self, name: str) -> Any:
        if name in type(self).model_fields:
            return getattr(self, name)
        extra = self.model_extra or {}
        if name in extra:
            return extra[name]
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return name in type(self).model_fields or name in (self.model_extra or {})

    def get(self, name: str, default: Any = None) -> Any:
        """Return option ``name``, or ``default`` when it was never set."""
        try:
            return self[name]
        except KeyError:
            return default

    def names(self) -> list[str]:
        """Return all option names: known options first, then extras."""
        return list(type(self).model_fields) + list(self.model_extra or {})

    def as_dict(self) -> dict[str, Any]:
        """Return a plain dict of every option (values are not serialized)."""
        return {name: self[name] for name in self.names()}


class ConfigBuilder:
    """Mutable accumulator of pipeline options.

    Populated by every unit's apply_options() during the configure phase,
    then frozen exactly once. The builder is not thread-safe; the lifecycle
    runs all apply_options() calls on the initializing thread.

    Setters return the builder so calls can be chained:
        >>> builder.set_decode_format(DecodeFormat.ALWAYS_ARGB_8888).set_source_threads(2)
    """

    def __init__(self, defaults: PipelineOptions | Mapping[str, Any] | None = None):
        if isinstance(defaults, PipelineOptions):
            self._defaults = defaults.as_dict()
        else:
            self._defaults = dict(defaults or {})
        self._options: dict[str, Any] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def options(self) -> Mapping[str, Any]:
        """Read-only view of defaults merged with the options set so far."""
        return MappingProxyType({**self._defaults, **self._options})

    def set_option(self, name: str, value: Any) -> "ConfigBuilder":
        """Set option ``name``; a later call for the same name replaces it.

        Raises:
            AlreadyFrozenError: If the builder has been frozen
        """
        if self._frozen:
            raise AlreadyFrozenError(
                f"Cannot set option '{name}': configuration is already frozen"
            )
        if name in self._options and self._options[name] != value:
            logger.debug(f"Option '{name}' overwritten: {self._options[name]!r} -> {value!r}")
        self._options[name] = value
        return self

    def get_option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    def __iter__(self) -> Iterator[str]:
        return iter(self.options)

    def set_decode_format(self, decode_format: DecodeFormat | str) -> "ConfigBuilder":
        return self.set_option("decode_format", decode_format)

    def set_memory_cache_size(self, size: int) -> "ConfigBuilder":
        return self.set_option("memory_cache_size", size)

    def set_bitmap_pool_size(self, size: int) -> "ConfigBuilder":
        return self.set_option("bitmap_pool_size", size)

    def set_disk_cache_size(self, size: int) -> "ConfigBuilder":
        return self.set_option("disk_cache_size", size)

    def set_disk_cache_dir(self, path: str | Path) -> "ConfigBuilder":
        return self.set_option("disk_cache_dir", Path(path))

    def set_source_threads(self, count: int) -> "ConfigBuilder":
        return self.set_option("source_threads", count)

    def set_disk_cache_threads(self, count: int) -> "ConfigBuilder":
        return self.set_option("disk_cache_threads", count)

    def freeze(self) -> PipelineOptions:
        """Freeze the builder into immutable PipelineOptions.

        Callable exactly once. The builder rejects mutation from the moment
        freeze() is entered, even if validation then fails.

        Raises:
            AlreadyFrozenError: If freeze() was already called
            ConfigurationError: If a known option has an invalid value
        """
        if self._frozen:
            raise AlreadyFrozenError("Configuration builder can only be frozen once")
        self._frozen = True

        # Frozen options hold copies, never the objects units passed in
        merged = copy.deepcopy({**self._defaults, **self._options})
        try:
            options = PipelineOptions.model_validate(merged)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(f"Invalid pipeline options: {problems}") from e

        logger.debug(
            f"Froze pipeline options ({len(self._options)} set by modules, "
            f"{len(options.names())} total)"
        )
        return options
