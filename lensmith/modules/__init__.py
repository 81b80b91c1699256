# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Lensmith extension units ("modules") and their discovery.

Unit authors implement two methods; no base class is needed:

    class FlickrModule:
        def apply_options(self, context, builder):
            builder.set_memory_cache_size(64 * 1024 * 1024)

        def register_components(self, context, pipeline):
            pipeline.register(FlickrPhoto, bytes, FlickrLoaderFactory())

Units are found by a UnitDiscovery:

    from lensmith.modules import ChainedDiscovery, ManifestDiscovery, StaticDiscovery

    discovery = ChainedDiscovery([
        StaticDiscovery({'flickr': FlickrModule}),
        ManifestDiscovery('lensmith_modules.yaml'),
    ])
"""

from ._discovery import (
    ChainedDiscovery,
    EntryPointDiscovery,
    ImportDiscovery,
    ManifestDiscovery,
    StaticDiscovery,
    UnitDiscovery,
    describe_source,
)
from ._unit import (
    ExtensionUnit,
    UnitFactory,
    construct_unit,
    is_extension_unit,
    resolve_import_string,
)

__all__ = [
    # Capability
    "ExtensionUnit",
    "UnitFactory",
    "is_extension_unit",
    "construct_unit",
    "resolve_import_string",
    # Discovery
    "UnitDiscovery",
    "StaticDiscovery",
    "ImportDiscovery",
    "ManifestDiscovery",
    "EntryPointDiscovery",
    "ChainedDiscovery",
    "describe_source",
]
