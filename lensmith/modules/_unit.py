# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Extension unit capability and construction helpers.

An extension unit (a "module") is any object providing two methods:

    class FlickrModule:
        def apply_options(self, context, builder):
            builder.set_decode_format(DecodeFormat.ALWAYS_ARGB_8888)

        def register_components(self, context, pipeline):
            pipeline.register(FlickrPhoto, bytes, FlickrLoaderFactory())

No base class is required. Units hold no state the lifecycle relies on;
each method is called exactly once per lifecycle, apply_options() before
register_components().

There is no defined order between units. Units should avoid applying
conflicting settings; when they do, the unit applied last wins.
"""

import importlib
import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..exceptions import InstantiationError

if TYPE_CHECKING:
    from ..builder import ConfigBuilder
    from ..pipeline import Pipeline

logger = logging.getLogger(__name__)

UnitFactory = Callable[[], Any]


@runtime_checkable
class ExtensionUnit(Protocol):
    """Capability implemented by every extension unit."""

    def apply_options(self, context: Any, builder: "ConfigBuilder") -> None:
        """Apply options to the builder immediately before the pipeline is created."""
        ...

    def register_components(self, context: Any, pipeline: "Pipeline") -> None:
        """Register components immediately after the pipeline is created."""
        ...


def is_extension_unit(obj: Any) -> bool:
    """Return True if ``obj`` provides callable apply_options() and register_components()."""
    return (
        isinstance(obj, ExtensionUnit)
        and callable(getattr(obj, "apply_options", None))
        and callable(getattr(obj, "register_components", None))
    )


def resolve_import_string(identifier: str) -> Any:
    """Resolve 'pkg.module:Attr' or 'pkg.module.Attr' to the named object.

    Raises:
        InstantiationError: If the module cannot be imported or lacks the attribute
    """
    if ":" in identifier:
        module_path, _, attr_path = identifier.partition(":")
    else:
        module_path, _, attr_path = identifier.rpartition(".")

    if not module_path or not attr_path:
        raise InstantiationError(
            f"Invalid module identifier '{identifier}'. "
            f"Expected 'package.module:ClassName' or 'package.module.ClassName'.",
            identifier,
        )

    try:
        obj = importlib.import_module(module_path)
    except ImportError as e:
        raise InstantiationError(
            f"Module '{identifier}' failed to load: cannot import '{module_path}': {e}",
            identifier,
        ) from e
    except Exception as e:
        raise InstantiationError(
            f"Module '{identifier}' failed to load: importing '{module_path}' raised "
            f"{type(e).__name__}: {e}",
            identifier,
        ) from e

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise InstantiationError(
                f"Module '{identifier}' not found: '{module_path}' has no attribute '{attr_path}'",
                identifier,
            ) from e
    return obj


def _zero_argument_mismatch(target: Any) -> inspect.Signature | None:
    """Return the signature of ``target`` if it cannot be called without arguments."""
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        # Not introspectable (some builtins); the call itself decides
        return None
    try:
        signature.bind()
    except TypeError:
        return signature
    return None


def construct_unit(identifier: str, target: Any) -> Any:
    """Turn a resolved target into a unit instance.

    ``target`` may be a class or zero-argument factory (called with no
    arguments) or an already constructed unit (used as-is).

    Raises:
        InstantiationError: If construction fails or the result is not a unit
    """
    if is_extension_unit(target) and not isinstance(target, type):
        unit = target
    elif callable(target):
        signature = _zero_argument_mismatch(target)
        if signature is not None:
            raise InstantiationError(
                f"Module '{identifier}' could not be constructed: it must be "
                f"constructible with no arguments, but its signature is {signature}",
                identifier,
            )
        try:
            unit = target()
        except Exception as e:
            raise InstantiationError(
                f"Module '{identifier}' raised during construction: {e}",
                identifier,
            ) from e
    else:
        raise InstantiationError(
            f"Module '{identifier}' resolved to {target!r}, which is neither a "
            f"class, a factory, nor a module instance",
            identifier,
        )

    if not is_extension_unit(unit):
        raise InstantiationError(
            f"Module '{identifier}' produced {type(unit).__qualname__}, which does not "
            f"implement apply_options(context, builder) and "
            f"register_components(context, pipeline)",
            identifier,
        )

    logger.debug(f"Instantiated module {identifier}: {type(unit).__qualname__}")
    return unit
