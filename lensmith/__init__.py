# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Lensmith: extension-configured shared image pipeline

Independently authored extension units ("modules") configure one
process-wide pipeline before any client can use it.

Main Features:
    - Module discovery (code, configuration, YAML manifest, entry points)
    - Two-phase configuration: options before the pipeline is built,
      components after
    - Exactly-once, thread-safe lazy initialization with failure propagation

Quick Start:
    >>> from lensmith import DecodeFormat, extension_unit, get_pipeline
    >>> @extension_unit()
    ... class FlickrModule:
    ...     def apply_options(self, context, builder):
    ...         builder.set_decode_format(DecodeFormat.ALWAYS_ARGB_8888)
    ...     def register_components(self, context, pipeline):
    ...         pipeline.register(FlickrPhoto, bytes, FlickrLoaderFactory())
    >>> pipeline = get_pipeline()
    >>> pipeline.lookup(FlickrPhoto, bytes)

Explicit lifecycle (no process-wide state):
    >>> from lensmith import SingletonLifecycle, StaticDiscovery
    >>> lifecycle = SingletonLifecycle(StaticDiscovery({'flickr': FlickrModule}))
    >>> pipeline = lifecycle.get()
"""

__version__ = "0.1.0"

from .builder import ConfigBuilder, DecodeFormat, PipelineOptions
from .exceptions import (
    AlreadyFrozenError,
    ComponentNotFoundError,
    ConfigurationError,
    DiscoveryError,
    InstantiationError,
    LensmithError,
    LifecycleError,
    RegistrationError,
)
from .lifecycle import LifecycleState, SingletonLifecycle
from .modules import (
    ChainedDiscovery,
    EntryPointDiscovery,
    ExtensionUnit,
    ImportDiscovery,
    ManifestDiscovery,
    StaticDiscovery,
    UnitDiscovery,
)
from .pipeline import Pipeline
from .registry import ComponentRegistry, ModelLoaderFactory, ReadOnlyRegistry
from ._state import (
    extension_unit,
    get_lifecycle,
    get_pipeline,
    is_initialized,
    register_unit,
    registered_units,
    reset_pipeline,
    unregister_unit,
)

__all__ = [
    # Process-wide pipeline
    "get_pipeline",
    "get_lifecycle",
    "is_initialized",
    "reset_pipeline",
    "register_unit",
    "unregister_unit",
    "registered_units",
    "extension_unit",
    # Lifecycle
    "SingletonLifecycle",
    "LifecycleState",
    "Pipeline",
    # Configuration
    "ConfigBuilder",
    "PipelineOptions",
    "DecodeFormat",
    # Components
    "ComponentRegistry",
    "ReadOnlyRegistry",
    "ModelLoaderFactory",
    # Modules
    "ExtensionUnit",
    "UnitDiscovery",
    "StaticDiscovery",
    "ImportDiscovery",
    "ManifestDiscovery",
    "EntryPointDiscovery",
    "ChainedDiscovery",
    # Errors
    "LensmithError",
    "DiscoveryError",
    "InstantiationError",
    "ConfigurationError",
    "RegistrationError",
    "AlreadyFrozenError",
    "LifecycleError",
    "ComponentNotFoundError",
]
