# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Essential tests for logging configuration."""

import logging

import pytest

from lensmith import SingletonLifecycle, StaticDiscovery
from lensmith._internal.logging import resolve_level, setup_logging
from tests.fixtures import units


@pytest.fixture
def reset_logging():
    """Reset logging system between tests."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    for handler in saved_handlers:
        root.removeHandler(handler)
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.mark.fast
def test_verbosity_names(reset_logging):
    setup_logging(level="quiet")
    assert logging.getLogger().level == logging.ERROR

    setup_logging(level="normal")
    assert logging.getLogger().level == logging.WARNING

    setup_logging(level="verbose")
    assert logging.getLogger().level == logging.INFO

    setup_logging(level="debug")
    assert logging.getLogger().level == logging.DEBUG


@pytest.mark.fast
def test_rich_handler_installed_once(reset_logging):
    from rich.logging import RichHandler

    # pytest attaches its capture handlers after fixtures run
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    setup_logging(level="normal")
    setup_logging(level="debug")

    rich_handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
    assert len(rich_handlers) == 1
    assert rich_handlers[0].level == logging.DEBUG


@pytest.mark.fast
def test_existing_handlers_are_reused(reset_logging):
    from rich.logging import RichHandler

    root = logging.getLogger()
    existing = logging.StreamHandler()
    root.addHandler(existing)

    setup_logging(level="verbose")

    assert existing.level == logging.INFO
    assert not any(isinstance(h, RichHandler) for h in root.handlers)


@pytest.mark.fast
def test_resolve_level():
    assert resolve_level("INFO") == logging.INFO
    assert resolve_level("error") == logging.ERROR
    assert resolve_level("unheard-of") == logging.WARNING


@pytest.mark.fast
def test_lifecycle_logs_completion(caplog):
    lifecycle = SingletonLifecycle(StaticDiscovery({"flickr": units.FlickrModule}))

    with caplog.at_level(logging.INFO, logger="lensmith"):
        lifecycle.get()

    assert "Pipeline ready: 1 modules, 1 components" in caplog.text


@pytest.mark.fast
def test_lifecycle_logs_failure(caplog):
    lifecycle = SingletonLifecycle(StaticDiscovery({"failing": units.FailingOptionsModule}))

    with caplog.at_level(logging.ERROR, logger="lensmith"):
        with pytest.raises(Exception):
            lifecycle.get()

    assert "failed during configuring" in caplog.text


@pytest.mark.fast
def test_phase_timings_when_profiling(caplog, monkeypatch):
    monkeypatch.setenv("LSMITH_PROFILE", "1")
    lifecycle = SingletonLifecycle(StaticDiscovery())

    with caplog.at_level(logging.DEBUG, logger="lensmith"):
        lifecycle.get()

    for phase in ("discover", "configure", "register"):
        assert f"{phase}: " in caplog.text
