# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Component registry mapping (model type, data type) pairs to loader factories.

The registry is open only while extension units run register_components().
The lifecycle then freezes it into a ReadOnlyRegistry that the pipeline
consults at request time.

Conflict policy: registering an existing key silently replaces the previous
factory (last write wins). The displaced factory is returned so the
pipeline can tear it down.

Logging Strategy:
    - DEBUG: Individual registrations, replacements and removals
    - INFO: Not used in this module (registration is low-level)
"""

import logging
from collections.abc import Iterator, Mapping
from typing import Any, Callable, Protocol, Union, runtime_checkable

from .exceptions import AlreadyFrozenError, ComponentNotFoundError

logger = logging.getLogger(__name__)

ComponentKey = tuple[Any, Any]


@runtime_checkable
class ModelLoaderFactory(Protocol):
    """Factory producing a model loader for one (model, data) pair.

    Factories are opaque to the registry. The pipeline calls build() to
    create the loader and, when the factory defines it, teardown() once the
    factory is replaced or removed. Plain callables taking the context are
    accepted in place of a factory.
    """

    def build(self, context: Any, pipeline: Any) -> Any:
        ...


Factory = Union[ModelLoaderFactory, Callable[[Any], Any]]


def _type_name(t: Any) -> str:
    return getattr(t, "__qualname__", None) or repr(t)


def format_key(model_type: Any, data_type: Any) -> str:
    """Format a registry key for messages, e.g. '(Photo, bytes)'."""
    return f"({_type_name(model_type)}, {_type_name(data_type)})"


class ComponentRegistry:
    """Mutable-then-frozen registry of loader factories."""

    def __init__(self) -> None:
        self._factories: dict[ComponentKey, Factory] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_open(self, action: str) -> None:
        if self._frozen:
            raise AlreadyFrozenError(
                f"Cannot {action}: component registry is frozen. "
                "Components can only be registered from register_components()."
            )

    def register(self, model_type: Any, data_type: Any, factory: Factory) -> Factory | None:
        """Register ``factory`` for (model_type, data_type).

        Returns:
            The factory previously registered for the key, or None

        Raises:
            AlreadyFrozenError: If the registry has been frozen
        """
        self._check_open(f"register {format_key(model_type, data_type)}")
        key = (model_type, data_type)
        previous = self._factories.get(key)
        self._factories[key] = factory
        if previous is not None and previous is not factory:
            logger.debug(f"Replaced factory for {format_key(*key)}: {previous!r} -> {factory!r}")
        else:
            logger.debug(f"Registered factory for {format_key(*key)}: {factory!r}")
        return previous

    def unregister(self, model_type: Any, data_type: Any) -> Factory | None:
        """Remove the factory for (model_type, data_type), returning it (or None)."""
        self._check_open(f"unregister {format_key(model_type, data_type)}")
        removed = self._factories.pop((model_type, data_type), None)
        if removed is not None:
            logger.debug(f"Unregistered factory for {format_key(model_type, data_type)}")
        return removed

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def freeze(self) -> "ReadOnlyRegistry":
        """Freeze the registry. Callable exactly once.

        Raises:
            AlreadyFrozenError: If freeze() was already called
        """
        if self._frozen:
            raise AlreadyFrozenError("Component registry can only be frozen once")
        self._frozen = True
        logger.debug(f"Froze component registry with {len(self._factories)} factories")
        return ReadOnlyRegistry(self._factories)


class ReadOnlyRegistry(Mapping):
    """Frozen view of registered factories, keyed by (model type, data type).

    Iteration follows registration order.
    """

    def __init__(self, factories: Mapping[ComponentKey, Any]):
        self._factories = dict(factories)

    def __getitem__(self, key: ComponentKey) -> Any:
        return self._factories[key]

    def __iter__(self) -> Iterator[ComponentKey]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    def __repr__(self) -> str:
        keys = ", ".join(format_key(*key) for key in self._factories)
        return f"ReadOnlyRegistry([{keys}])"

    def model_types(self) -> list[Any]:
        """Return registered model types, in registration order, without duplicates."""
        return list(dict.fromkeys(model for model, _ in self._factories))

    def data_types_for(self, model_type: Any) -> list[Any]:
        """Return data types registered for exactly ``model_type``."""
        return [data for model, data in self._factories if model == model_type]

    def resolve_key(self, model_type: Any, data_type: Any) -> ComponentKey | None:
        """Find the registered key serving (model_type, data_type).

        An exact match wins. Otherwise, when ``model_type`` is a class, its
        base classes are tried in MRO order with the same data type.
        """
        key = (model_type, data_type)
        if key in self._factories:
            return key
        if isinstance(model_type, type):
            for base in model_type.__mro__[1:]:
                if (base, data_type) in self._factories:
                    return (base, data_type)
        return None

    def lookup(self, model_type: Any, data_type: Any) -> Any:
        """Return the factory registered for (model_type, data_type).

        Raises:
            ComponentNotFoundError: If no factory serves the pair
        """
        key = self.resolve_key(model_type, data_type)
        if key is None:
            raise ComponentNotFoundError(self._format_not_found(model_type, data_type))
        return self._factories[key]

    def _format_not_found(self, model_type: Any, data_type: Any) -> str:
        msg = f"No factory registered for {format_key(model_type, data_type)}.\n"
        same_model = self.data_types_for(model_type)
        if same_model:
            names = ", ".join(_type_name(t) for t in same_model)
            msg += f"\nHint: {_type_name(model_type)} is registered for data types: {names}\n"
        else:
            msg += "\nCheck that a module registers it from register_components().\n"
        available = [format_key(*key) for key in self._factories]
        msg += f"\nRegistered: {', '.join(available[:10]) or '(none)'}"
        if len(available) > 10:
            msg += f" ... and {len(available) - 10} more"
        return msg
