# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Process-wide pipeline state.

Holds the default SingletonLifecycle and the units registered in code.
The lifecycle is created lazily from get_config() on first use:

    units registered in code  (register_unit / @extension_unit)
    config.modules            (import strings)
    module manifest           (config.manifest_path or lensmith_modules.yaml)
    entry points              (config.entry_point_group)

minus config.excluded_modules, applied in that order.
"""

import logging
import threading
from typing import Any, Callable, TypeVar

from .lifecycle import SingletonLifecycle
from .modules import (
    ChainedDiscovery,
    EntryPointDiscovery,
    ImportDiscovery,
    ManifestDiscovery,
    StaticDiscovery,
    UnitDiscovery,
    UnitFactory,
)
from .pipeline import Pipeline

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Units registered in code - the explicit registration list
_static_units = StaticDiscovery()

# Default lifecycle, created on first access
_lifecycle: SingletonLifecycle | None = None
_lifecycle_lock = threading.Lock()


def build_default_discovery(config=None) -> ChainedDiscovery:
    """Build the discovery used by the default lifecycle from configuration."""
    if config is None:
        from lensmith.settings import get_config
        config = get_config()

    discoveries: list[UnitDiscovery] = [_static_units]
    if config.modules:
        discoveries.append(ImportDiscovery(config.modules))
    manifest = config.effective_manifest_path
    if manifest is not None:
        discoveries.append(ManifestDiscovery(manifest))
    if config.discover_entry_points:
        discoveries.append(EntryPointDiscovery(config.entry_point_group))

    return ChainedDiscovery(discoveries, exclude=config.excluded_modules)


def get_lifecycle() -> SingletonLifecycle:
    """Return the process-wide lifecycle, creating it from configuration on first call."""
    global _lifecycle

    lifecycle = _lifecycle
    if lifecycle is not None:
        return lifecycle

    with _lifecycle_lock:
        if _lifecycle is None:
            from lensmith.context import AppContext
            from lensmith.settings import get_config

            config = get_config()
            _lifecycle = SingletonLifecycle(
                build_default_discovery(config),
                AppContext.from_config(config),
                defaults=config.pipeline,
            )
            logger.debug(f"Created default pipeline lifecycle (project: {config.project_dir})")
        return _lifecycle


def get_pipeline(context: Any = None) -> Pipeline:
    """Return the shared pipeline, initializing it on first access.

    Args:
        context: Context handed to extension units. Only used by the call
            that performs initialization; defaults to an AppContext built
            from the current configuration.
    """
    return get_lifecycle().get(context)


def is_initialized() -> bool:
    """Check if the shared pipeline is ready."""
    lifecycle = _lifecycle
    return lifecycle is not None and lifecycle.is_ready


def reset_pipeline() -> None:
    """Discard the shared pipeline and its lifecycle.

    The next get_pipeline() re-reads configuration, rediscovers units and
    initializes from scratch. Units registered in code are kept.
    Primarily used for testing and for an explicit retry after a failure.
    """
    global _lifecycle

    with _lifecycle_lock:
        if _lifecycle is not None:
            _lifecycle.reset()
        _lifecycle = None


def register_unit(identifier: str, factory: UnitFactory) -> None:
    """Register an extension unit factory under ``identifier``.

    Units registered in code are applied before configured, manifest and
    entry point units. Registering after the pipeline is ready only affects
    the next initialization (after reset_pipeline()).
    """
    if is_initialized():
        logger.warning(
            f"Module '{identifier}' registered after the pipeline was initialized; "
            "it takes effect only after reset_pipeline()"
        )
    _static_units.add(identifier, factory)
    logger.debug(f"Registered module {identifier}")


def unregister_unit(identifier: str) -> bool:
    """Remove a unit registered in code. Returns True if it was registered."""
    return _static_units.remove(identifier)


def extension_unit(identifier: str | None = None) -> Callable[[T], T]:
    """Class decorator registering a zero-argument unit class.

    The identifier defaults to the class's 'module:QualifiedName'.

    Example:
        >>> @extension_unit()
        ... class FlickrModule:
        ...     def apply_options(self, context, builder): ...
        ...     def register_components(self, context, pipeline): ...
    """

    def decorator(cls: T) -> T:
        name = identifier or f"{cls.__module__}:{cls.__qualname__}"
        register_unit(name, cls)
        return cls

    return decorator


def registered_units() -> list[str]:
    """Identifiers of units registered in code, in registration order."""
    return _static_units.list_unit_identifiers()
