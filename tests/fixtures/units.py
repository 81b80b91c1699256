# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Extension units used across the test suite.

Every unit appends (identifier, method) to CALLS so tests can assert on
call counts and ordering. Tests reset CALLS through the conftest fixtures.
Import strings such as 'tests.fixtures.units:FlickrModule' resolve here.
"""

import threading
import time

CALLS: list[tuple[str, str]] = []
_calls_lock = threading.Lock()


def record(identifier: str, method: str) -> None:
    with _calls_lock:
        CALLS.append((identifier, method))


def calls_for(method: str) -> list[str]:
    return [identifier for identifier, m in CALLS if m == method]


class Photo:
    pass


class FlickrPhoto(Photo):
    pass


class LoaderFactory:
    """Factory returning a tagged loader and counting teardowns."""

    def __init__(self, tag: str):
        self.tag = tag
        self.torn_down = 0
        self.builds = 0

    def __repr__(self) -> str:
        return f"LoaderFactory({self.tag!r})"

    def build(self, context, pipeline):
        self.builds += 1
        return (self.tag, context)

    def teardown(self) -> None:
        self.torn_down += 1


class RecordingUnit:
    """Base for units that record their calls under ``name``."""

    name = "recording"
    option = None
    component = None

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        if self.option is not None:
            builder.set_option(*self.option)

    def register_components(self, context, pipeline):
        record(self.name, "register_components")
        if self.component is not None:
            model, data, tag = self.component
            pipeline.register(model, data, LoaderFactory(tag))


class FastDecodeModule(RecordingUnit):
    name = "A"
    option = ("decodeMode", "FAST")
    component = (Photo, bytes, "F1")


class AccurateDecodeModule(RecordingUnit):
    name = "B"
    option = ("decodeMode", "ACCURATE")
    component = (Photo, bytes, "F2")


class FlickrModule(RecordingUnit):
    name = "flickr"
    component = (FlickrPhoto, bytes, "flickr")

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        builder.set_memory_cache_size(1024)


class SlowModule(RecordingUnit):
    """Holds the initializing thread long enough for callers to pile up."""

    name = "slow"
    component = (Photo, str, "slow")

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        time.sleep(0.05)


class FailingOptionsModule(RecordingUnit):
    name = "failing_options"

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        raise RuntimeError("options exploded")


class FailingRegistrationModule(RecordingUnit):
    name = "failing_registration"

    def register_components(self, context, pipeline):
        record(self.name, "register_components")
        raise ValueError("registration exploded")


class NeedsArgumentModule(RecordingUnit):
    name = "needs_argument"

    def __init__(self, region):
        self.region = region


class ExplodingConstructorModule(RecordingUnit):
    name = "exploding_constructor"

    def __init__(self):
        raise RuntimeError("constructor exploded")


class NotAModule:
    """Has only one of the two required methods."""

    def apply_options(self, context, builder):
        pass


class ContextCapturingModule(RecordingUnit):
    name = "context"
    seen: list = []

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        self.seen.append(("apply_options", context))

    def register_components(self, context, pipeline):
        record(self.name, "register_components")
        self.seen.append(("register_components", context))


# Instance usable directly as an import-string target
flickr_instance = FlickrModule()


def make_accurate_module():
    return AccurateDecodeModule()


class ModuleAbort(BaseException):
    """Abort signal that is not an Exception, like KeyboardInterrupt."""


class AbortingModule(RecordingUnit):
    name = "aborting"

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        raise ModuleAbort("stop everything")


class TypeErrorInConstructorModule(RecordingUnit):
    """Zero-argument constructor that fails with a TypeError of its own."""

    name = "type_error_constructor"

    def __init__(self):
        raise TypeError("unsupported cache backend")


class DefaultedArgumentModule(RecordingUnit):
    name = "defaulted"

    def __init__(self, region="eu"):
        self.region = region


class MutatingOptionsModule(RecordingUnit):
    """Keeps the dict it set as an option and changes it afterwards."""

    name = "mutating"

    def __init__(self):
        self.headers = {"a": 1}

    def apply_options(self, context, builder):
        record(self.name, "apply_options")
        builder.set_option("headers", self.headers)

    def register_components(self, context, pipeline):
        record(self.name, "register_components")
        self.headers["a"] = 2
