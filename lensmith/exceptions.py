# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Lensmith Exceptions

Exceptions raised while discovering extension units and initializing the
shared pipeline. Every error raised during initialization aborts it; no
partially configured pipeline is ever published.
"""


class LensmithError(Exception):
    """Base exception for all lensmith errors."""
    pass


class DiscoveryError(LensmithError):
    """Raised when the list of extension units cannot be obtained."""
    pass


class _UnitError(LensmithError):
    """Error attributed to a single extension unit."""

    def __init__(self, message: str, identifier: str | None = None):
        self.identifier = identifier
        super().__init__(message)


class InstantiationError(_UnitError):
    """Raised when an extension unit cannot be constructed.

    Either no zero-argument construction is possible, or the constructed
    object does not provide apply_options() and register_components().
    """


class ConfigurationError(_UnitError):
    """Raised when the configure phase fails.

    Covers a unit's apply_options() raising, frozen options failing
    validation, and the pipeline core failing to build.
    """


class RegistrationError(_UnitError):
    """Raised when a unit's register_components() fails."""


class AlreadyFrozenError(LensmithError):
    """Raised on mutation, or a second freeze, after freeze()."""
    pass


class LifecycleError(LensmithError):
    """Raised when the initialization protocol is misused."""
    pass


class ComponentNotFoundError(LensmithError, KeyError):
    """Raised when no factory is registered for a (model, data) pair."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep multi-line messages readable
        return str(self.args[0]) if self.args else ''
