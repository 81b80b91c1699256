# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Extension unit discovery.

A discovery produces an ordered list of unit identifiers and turns each
identifier into a unit instance. The order is the order units are applied
in; it carries no meaning beyond "the last applied unit wins a conflict".

Discoveries:
- StaticDiscovery: explicit identifier -> factory list built in code
- ImportDiscovery: identifiers are import strings ('pkg.mod:Class')
- ManifestDiscovery: import strings listed in a YAML manifest
- EntryPointDiscovery: units advertised by installed packages
- ChainedDiscovery: several discoveries combined, deduplicated

Logging Strategy:
    - DEBUG: Individual identifiers found, duplicates and exclusions skipped
    - INFO: Not used in this module (the lifecycle reports totals)
    - WARNING: Manifest entries with an unexpected value
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from importlib.metadata import EntryPoint, entry_points
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from .._internal.io.yaml import format_yaml_error, load_yaml
from ..constants import (
    ENTRY_POINT_GROUP,
    MANIFEST_MARKER,
    SOURCE_CONFIG,
    SOURCE_ENTRY_POINT,
    SOURCE_MANIFEST,
    SOURCE_STATIC,
)
from ..exceptions import DiscoveryError, InstantiationError
from ._unit import ExtensionUnit, UnitFactory, construct_unit, resolve_import_string

logger = logging.getLogger(__name__)


@runtime_checkable
class UnitDiscovery(Protocol):
    """Source of extension units."""

    def list_unit_identifiers(self) -> Sequence[str]:
        """Return unit identifiers in application order.

        Raises:
            DiscoveryError: If the backing source is unreadable or malformed
        """
        ...

    def instantiate(self, identifier: str) -> ExtensionUnit:
        """Construct the unit for ``identifier``.

        Raises:
            InstantiationError: If the unit cannot be constructed
        """
        ...


class StaticDiscovery:
    """Units registered explicitly as identifier -> zero-argument factory.

    Identifiers are listed in insertion order.

    Example:
        >>> discovery = StaticDiscovery({'acme.flickr': FlickrModule})
        >>> discovery.add('acme.cdn', lambda: CdnModule(region='eu'))
    """

    source = SOURCE_STATIC

    def __init__(self, factories: Mapping[str, UnitFactory] | Iterable[tuple[str, UnitFactory]] = ()):
        self._factories: dict[str, UnitFactory] = {}
        items = factories.items() if isinstance(factories, Mapping) else factories
        for identifier, factory in items:
            self.add(identifier, factory)

    def add(self, identifier: str, factory: UnitFactory) -> "StaticDiscovery":
        if identifier in self._factories:
            logger.debug(f"Replacing factory for module {identifier}")
        self._factories[identifier] = factory
        return self

    def remove(self, identifier: str) -> bool:
        return self._factories.pop(identifier, None) is not None

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def list_unit_identifiers(self) -> list[str]:
        return list(self._factories)

    def instantiate(self, identifier: str) -> ExtensionUnit:
        try:
            factory = self._factories[identifier]
        except KeyError:
            raise InstantiationError(f"No factory registered for module '{identifier}'", identifier)
        return construct_unit(identifier, factory)


class ImportDiscovery:
    """Units named by import strings, e.g. 'acme.images:FlickrModule'."""

    source = SOURCE_CONFIG

    def __init__(self, identifiers: Iterable[str] = ()):
        self._identifiers = list(identifiers)

    def list_unit_identifiers(self) -> list[str]:
        return list(self._identifiers)

    def instantiate(self, identifier: str) -> ExtensionUnit:
        return construct_unit(identifier, resolve_import_string(identifier))


class ManifestDiscovery(ImportDiscovery):
    """Units listed in a YAML manifest.

    The manifest maps identifiers to values; only entries whose value is
    the module marker are units, other entries are ignored:

        modules:
          acme.images.flickr:FlickrModule: LensmithModule
          acme.images.cdn:CdnModule: LensmithModule
          acme.build_flavor: release        # not a module

    A list of identifiers is accepted as shorthand for marking them all.
    The manifest is read on every list_unit_identifiers() call.
    """

    source = SOURCE_MANIFEST

    def __init__(self, path: str | Path, marker: str = MANIFEST_MARKER):
        super().__init__()
        self.path = Path(path)
        self.marker = marker

    def __repr__(self) -> str:
        return f"ManifestDiscovery({str(self.path)!r})"

    def list_unit_identifiers(self) -> list[str]:
        try:
            data = load_yaml(self.path)
        except FileNotFoundError as e:
            raise DiscoveryError(f"Module manifest not found: {self.path}") from e
        except OSError as e:
            raise DiscoveryError(f"Module manifest unreadable: {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise DiscoveryError(format_yaml_error(e, self.path)) from e

        if not isinstance(data, dict):
            raise DiscoveryError(
                f"Malformed module manifest {self.path}: expected a mapping, "
                f"got {type(data).__name__}"
            )

        entries = data.get("modules", {})
        if entries is None:
            return []
        if isinstance(entries, list):
            entries = {identifier: self.marker for identifier in entries}
        if not isinstance(entries, dict):
            raise DiscoveryError(
                f"Malformed module manifest {self.path}: 'modules' must be a mapping "
                f"or a list, got {type(entries).__name__}"
            )

        identifiers = []
        for identifier, value in entries.items():
            if not isinstance(identifier, str) or not identifier.strip():
                raise DiscoveryError(
                    f"Malformed module manifest {self.path}: invalid identifier {identifier!r}"
                )
            if value == self.marker:
                identifiers.append(identifier.strip())
            elif isinstance(value, str) and value.lower() == self.marker.lower():
                logger.warning(
                    f"Manifest entry '{identifier}' has value '{value}'; "
                    f"did you mean '{self.marker}'? Entry ignored."
                )
            else:
                logger.debug(f"Ignoring manifest entry '{identifier}' (value {value!r})")

        logger.debug(f"Found {len(identifiers)} modules in manifest {self.path}")
        return identifiers


class EntryPointDiscovery:
    """Units advertised by installed packages through entry points.

    Packages declare units in their packaging metadata:

        [project.entry-points."lensmith.modules"]
        flickr = "acme.images.flickr:FlickrModule"

    The entry point name is the unit identifier.
    """

    source = SOURCE_ENTRY_POINT

    def __init__(self, group: str = ENTRY_POINT_GROUP):
        self.group = group
        self._entry_points: dict[str, EntryPoint] = {}

    def __repr__(self) -> str:
        return f"EntryPointDiscovery({self.group!r})"

    def list_unit_identifiers(self) -> list[str]:
        try:
            eps = entry_points(group=self.group)
        except Exception as e:
            raise DiscoveryError(f"Entry point discovery failed for group '{self.group}': {e}") from e

        self._entry_points = {}
        for ep in eps:
            if ep.name in self._entry_points:
                logger.debug(f"Duplicate entry point '{ep.name}' ({ep.value}) ignored")
                continue
            self._entry_points[ep.name] = ep
            logger.debug(f"Found entry point module {ep.name} -> {ep.value}")
        return list(self._entry_points)

    def instantiate(self, identifier: str) -> ExtensionUnit:
        ep = self._entry_points.get(identifier)
        if ep is None:
            raise InstantiationError(
                f"No entry point named '{identifier}' in group '{self.group}'", identifier
            )
        try:
            target = ep.load()
        except Exception as e:
            raise InstantiationError(
                f"Entry point '{identifier}' ({ep.value}) failed to load: {e}", identifier
            ) from e
        return construct_unit(identifier, target)


class ChainedDiscovery:
    """Several discoveries combined into one.

    Identifiers are listed source by source. An identifier found in more
    than one source is kept only at its first occurrence, and identifiers
    in ``exclude`` are dropped.
    """

    def __init__(self, discoveries: Iterable[UnitDiscovery], exclude: Iterable[str] = ()):
        self.discoveries = list(discoveries)
        self.exclude = frozenset(exclude)
        self._owners: dict[str, UnitDiscovery] = {}

    def __repr__(self) -> str:
        return f"ChainedDiscovery({self.discoveries!r})"

    def list_sources(self) -> list[tuple[str, str]]:
        """Return (identifier, source name) pairs in application order."""
        identifiers = self.list_unit_identifiers()
        return [(identifier, describe_source(self._owners[identifier])) for identifier in identifiers]

    def list_unit_identifiers(self) -> list[str]:
        owners: dict[str, UnitDiscovery] = {}
        for discovery in self.discoveries:
            try:
                identifiers = discovery.list_unit_identifiers()
            except DiscoveryError:
                raise
            except Exception as e:
                raise DiscoveryError(f"{discovery!r} failed to list modules: {e}") from e

            for identifier in identifiers:
                if identifier in self.exclude:
                    logger.debug(f"Module {identifier} excluded by configuration")
                    continue
                if identifier in owners:
                    logger.debug(f"Module {identifier} already discovered, skipping duplicate")
                    continue
                owners[identifier] = discovery

        self._owners = owners
        return list(owners)

    def instantiate(self, identifier: str) -> ExtensionUnit:
        if not self._owners:
            self.list_unit_identifiers()
        owner = self._owners.get(identifier)
        if owner is None:
            raise InstantiationError(f"Module '{identifier}' was not discovered", identifier)
        return owner.instantiate(identifier)


def describe_source(discovery: Any) -> str:
    """Return the source name a discovery reports for its units."""
    return getattr(discovery, "source", type(discovery).__name__)
