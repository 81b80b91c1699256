# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Exactly-once initialization of the shared pipeline.

SingletonLifecycle runs the initialization sequence on first access:

    UNINITIALIZED -> DISCOVERING -> CONFIGURING -> BUILT -> REGISTERING -> READY

1. DISCOVERING: list unit identifiers and instantiate every unit
2. CONFIGURING: call apply_options(context, builder) on every unit, freeze
   the builder and build the pipeline core from the frozen options
3. BUILT -> REGISTERING: call register_components(context, pipeline) on
   every unit, then freeze the pipeline's component registry
4. READY: publish the pipeline

Any failure moves the lifecycle to FAILED. Nothing is published, and the
same exception is raised to every caller until reset() is called; there is
no automatic retry.

Exactly one thread runs the sequence. Concurrent callers block on the
lifecycle's lock and, once released, observe the published pipeline or the
stored failure. Once READY, get() returns without locking.

Logging Strategy:
    - DEBUG: State transitions, per-unit calls
    - INFO: Initialization start and completion
    - ERROR: Initialization failure
"""

import logging
import os
import threading
import time
from contextlib import contextmanager
from enum import Enum, auto
from types import TracebackType
from typing import Any, Callable

from .builder import ConfigBuilder, PipelineOptions
from .exceptions import (
    ConfigurationError,
    DiscoveryError,
    InstantiationError,
    LensmithError,
    LifecycleError,
    RegistrationError,
)
from .modules import ExtensionUnit, UnitDiscovery, is_extension_unit
from .pipeline import Pipeline

logger = logging.getLogger(__name__)


@contextmanager
def _measure_phase(phase: str):
    """Time and log an initialization phase (only when LSMITH_PROFILE is set)."""
    if not os.environ.get('LSMITH_PROFILE'):
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"{phase}: {duration_ms:.1f}ms")


class LifecycleState(Enum):
    """Initialization state of a SingletonLifecycle."""

    UNINITIALIZED = auto()
    DISCOVERING = auto()
    CONFIGURING = auto()
    BUILT = auto()
    REGISTERING = auto()
    READY = auto()
    FAILED = auto()

    def __str__(self) -> str:
        return self.name.lower()


class SingletonLifecycle:
    """Lazily builds one Pipeline from discovered extension units.

    Args:
        discovery: Source of extension units
        context: Opaque handle passed unchanged to every unit method
        defaults: Option defaults the builder starts from
        pipeline_factory: Builds the pipeline core from frozen options

    Example:
        >>> lifecycle = SingletonLifecycle(StaticDiscovery({'flickr': FlickrModule}))
        >>> pipeline = lifecycle.get()
        >>> pipeline is lifecycle.get()
        True
    """

    def __init__(
        self,
        discovery: UnitDiscovery,
        context: Any = None,
        *,
        defaults: PipelineOptions | dict[str, Any] | None = None,
        pipeline_factory: Callable[[PipelineOptions], Pipeline] = Pipeline,
    ):
        self._discovery = discovery
        self._context = context
        self._defaults = defaults
        self._pipeline_factory = pipeline_factory

        self._lock = threading.Lock()
        self._state = LifecycleState.UNINITIALIZED
        self._instance: Pipeline | None = None
        self._error: LensmithError | None = None
        self._error_tb: TracebackType | None = None
        self._units: list[tuple[str, ExtensionUnit]] = []
        self._initializer: int | None = None

    def __repr__(self) -> str:
        return f"<SingletonLifecycle state={self._state} modules={len(self._units)}>"

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._instance is not None

    @property
    def error(self) -> LensmithError | None:
        """The failure raised by the last initialization, if it failed."""
        return self._error

    @property
    def discovery(self) -> UnitDiscovery:
        return self._discovery

    @property
    def context(self) -> Any:
        return self._context

    @property
    def units(self) -> list[tuple[str, ExtensionUnit]]:
        """(identifier, unit) pairs instantiated by the current initialization."""
        return list(self._units)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, context: Any = None) -> Pipeline:
        """Return the pipeline, initializing it on first access.

        Args:
            context: Overrides the lifecycle's context for the initializing
                call. Ignored once initialization has started.

        Raises:
            DiscoveryError, InstantiationError, ConfigurationError,
            RegistrationError: The failure of this or an earlier initialization
            LifecycleError: If called from the initializing thread while
                initialization is in progress
            BaseException: Propagated unchanged to the initializing caller;
                later callers get a LifecycleError
        """
        instance = self._instance
        if instance is not None:
            return instance

        if self._initializer == threading.get_ident():
            raise LifecycleError(
                "Pipeline requested while it is being initialized. Modules must use the "
                "builder and pipeline passed to apply_options() and register_components() "
                "instead of requesting the pipeline."
            )

        with self._lock:
            if self._state is LifecycleState.READY:
                return self._instance
            if self._state is LifecycleState.FAILED:
                # Same object for every caller, raised with its original traceback
                raise self._error.with_traceback(self._error_tb)

            self._initializer = threading.get_ident()
            try:
                pipeline = self._initialize(self._context if context is None else context)
            except LensmithError as e:
                self._fail(e)
                raise
            except Exception as e:
                error = LifecycleError(f"Pipeline initialization failed: {e}")
                self._fail(error)
                raise error from e
            except BaseException as e:
                # Interrupts and aborts also leave the lifecycle FAILED
                error = LifecycleError(
                    f"Pipeline initialization aborted: {type(e).__name__}: {e}"
                )
                error.__cause__ = e
                self._fail(error)
                raise
            finally:
                self._initializer = None

            self._transition(LifecycleState.READY)
            self._instance = pipeline
            return pipeline

    def reset(self) -> None:
        """Return the lifecycle to UNINITIALIZED so the next get() starts over.

        Units discovered by the next initialization are instantiated afresh.

        Raises:
            LifecycleError: If called while initialization is in progress on
                this thread
        """
        if self._initializer == threading.get_ident():
            raise LifecycleError("Cannot reset the pipeline while it is being initialized")

        with self._lock:
            logger.debug(f"Resetting pipeline lifecycle (was {self._state})")
            self._instance = None
            self._error = None
            self._error_tb = None
            self._units = []
            self._state = LifecycleState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Initialization sequence (runs under self._lock)
    # ------------------------------------------------------------------

    def _transition(self, state: LifecycleState) -> None:
        logger.debug(f"Pipeline lifecycle: {self._state} -> {state}")
        self._state = state

    def _fail(self, error: LensmithError) -> None:
        logger.error(f"Pipeline initialization failed during {self._state}: {error}")
        self._error = error
        self._error_tb = error.__traceback__
        self._transition(LifecycleState.FAILED)

    def _initialize(self, context: Any) -> Pipeline:
        logger.info("Initializing pipeline...")

        self._transition(LifecycleState.DISCOVERING)
        with _measure_phase('discover'):
            self._units = self._discover()

        self._transition(LifecycleState.CONFIGURING)
        with _measure_phase('configure'):
            pipeline = self._configure(context)

        self._transition(LifecycleState.BUILT)

        self._transition(LifecycleState.REGISTERING)
        with _measure_phase('register'):
            self._register(context, pipeline)
            components = pipeline.freeze_registry()

        logger.info(
            f"Pipeline ready: {len(self._units)} modules, {len(components)} components"
        )
        return pipeline

    def _discover(self) -> list[tuple[str, ExtensionUnit]]:
        try:
            identifiers = list(self._discovery.list_unit_identifiers())
        except DiscoveryError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Failed to list modules: {e}") from e

        units: list[tuple[str, ExtensionUnit]] = []
        seen: set[str] = set()
        for identifier in identifiers:
            if identifier in seen:
                logger.debug(f"Module {identifier} listed twice, instantiating once")
                continue
            seen.add(identifier)

            try:
                unit = self._discovery.instantiate(identifier)
            except InstantiationError:
                raise
            except Exception as e:
                raise InstantiationError(
                    f"Module '{identifier}' could not be instantiated: {e}", identifier
                ) from e

            if not is_extension_unit(unit):
                raise InstantiationError(
                    f"Module '{identifier}' produced {type(unit).__qualname__}, which does not "
                    f"implement apply_options() and register_components()",
                    identifier,
                )
            units.append((identifier, unit))

        logger.debug(f"Discovered {len(units)} modules: {[identifier for identifier, _ in units]}")
        return units

    def _configure(self, context: Any) -> Pipeline:
        builder = ConfigBuilder(self._defaults)
        for identifier, unit in self._units:
            logger.debug(f"Applying options from module {identifier}")
            try:
                unit.apply_options(context, builder)
            except Exception as e:
                raise ConfigurationError(
                    f"Module '{identifier}' failed in apply_options(): {e}", identifier
                ) from e

        options = builder.freeze()

        try:
            return self._pipeline_factory(options)
        except LensmithError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to build pipeline from options: {e}") from e

    def _register(self, context: Any, pipeline: Pipeline) -> None:
        for identifier, unit in self._units:
            logger.debug(f"Registering components from module {identifier}")
            try:
                unit.register_components(context, pipeline)
            except Exception as e:
                raise RegistrationError(
                    f"Module '{identifier}' failed in register_components(): {e}", identifier
                ) from e
