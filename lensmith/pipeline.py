# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pipeline core - the shared singleton configured by extension units.

A Pipeline is built once from frozen PipelineOptions. Its component
registry stays open while units run register_components() and is frozen
by the lifecycle before the pipeline is published. After that, the
pipeline is read-only apart from its model loader cache.
"""

import logging
import threading
from typing import Any

from .builder import PipelineOptions
from .exceptions import LifecycleError
from .registry import (
    ComponentKey,
    ComponentRegistry,
    Factory,
    ModelLoaderFactory,
    ReadOnlyRegistry,
    format_key,
)

logger = logging.getLogger(__name__)


class Pipeline:
    """Shared image pipeline core.

    Args:
        options: Frozen options produced by ConfigBuilder.freeze()
    """

    def __init__(self, options: PipelineOptions):
        self._options = options
        self._registry = ComponentRegistry()
        self._components: ReadOnlyRegistry | None = None
        self._loaders: dict[ComponentKey, Any] = {}
        self._loader_lock = threading.Lock()

    def __repr__(self) -> str:
        state = "frozen" if self._components is not None else "open"
        return f"<Pipeline components={len(self._registry)} registry={state}>"

    @property
    def options(self) -> PipelineOptions:
        return self._options

    @property
    def registry(self) -> ComponentRegistry | ReadOnlyRegistry:
        """The frozen registry once sealed, the open registry before."""
        return self._components if self._components is not None else self._registry

    @property
    def sealed(self) -> bool:
        return self._components is not None

    # ------------------------------------------------------------------
    # Register phase
    # ------------------------------------------------------------------

    def register(self, model_type: Any, data_type: Any, factory: Factory) -> None:
        """Register ``factory`` for (model_type, data_type), replacing any previous one.

        A replaced factory is torn down when it provides teardown().

        Raises:
            AlreadyFrozenError: If the registry has been frozen
        """
        previous = self._registry.register(model_type, data_type, factory)
        if previous is not None and previous is not factory:
            _teardown(previous)

    def unregister(self, model_type: Any, data_type: Any) -> None:
        """Remove and tear down the factory for (model_type, data_type), if any."""
        removed = self._registry.unregister(model_type, data_type)
        if removed is not None:
            _teardown(removed)

    def freeze_registry(self) -> ReadOnlyRegistry:
        """Freeze the component registry. Called by the lifecycle when registration ends."""
        self._components = self._registry.freeze()
        return self._components

    # ------------------------------------------------------------------
    # Request time
    # ------------------------------------------------------------------

    def _frozen_components(self) -> ReadOnlyRegistry:
        if self._components is None:
            raise LifecycleError(
                "Pipeline components are not available until registration has finished"
            )
        return self._components

    def lookup(self, model_type: Any, data_type: Any) -> Any:
        """Return the factory serving (model_type, data_type).

        Raises:
            LifecycleError: If called before the registry is frozen
            ComponentNotFoundError: If no factory serves the pair
        """
        return self._frozen_components().lookup(model_type, data_type)

    def build_model_loader(self, model_type: Any, data_type: Any, context: Any = None) -> Any:
        """Build (once) and return the model loader for (model_type, data_type).

        Factories providing build() are called as ``factory.build(context, self)``;
        plain callables are called as ``factory(context)``. Loaders are cached
        per resolved registry key.
        """
        components = self._frozen_components()
        key = components.resolve_key(model_type, data_type)
        if key is None:
            # Raises ComponentNotFoundError with the full message
            components.lookup(model_type, data_type)

        with self._loader_lock:
            if key in self._loaders:
                return self._loaders[key]

            factory = components[key]
            if isinstance(factory, ModelLoaderFactory):
                loader = factory.build(context, self)
            elif callable(factory):
                loader = factory(context)
            else:
                raise TypeError(
                    f"Factory for {format_key(*key)} is neither a ModelLoaderFactory "
                    f"nor callable: {factory!r}"
                )
            self._loaders[key] = loader
            logger.debug(f"Built model loader for {format_key(*key)}")
            return loader


def _teardown(factory: Factory) -> None:
    teardown = getattr(factory, "teardown", None)
    if callable(teardown):
        teardown()
