# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Tests for the process-wide pipeline accessor.

Uses the isolated_env and empty_env fixtures from conftest.py: real
lensmith.yaml files, real manifests, real settings.
"""

import logging

import pytest

import lensmith
from lensmith import (
    extension_unit,
    get_lifecycle,
    get_pipeline,
    is_initialized,
    register_unit,
    registered_units,
    reset_pipeline,
    unregister_unit,
)
from lensmith._state import build_default_discovery
from lensmith.context import AppContext
from lensmith.settings import get_config, reset_config
from tests.fixtures import units
from tests.fixtures.units import CALLS, Photo, calls_for


@pytest.mark.fast
class TestDefaultPipeline:

    def test_configured_and_manifest_units_applied_in_order(self, isolated_env):
        pipeline = get_pipeline()

        assert calls_for("apply_options") == ["A", "B"]
        assert pipeline.options["decodeMode"] == "ACCURATE"
        assert pipeline.lookup(Photo, bytes).tag == "F2"

    def test_project_pipeline_defaults_applied(self, isolated_env):
        assert get_pipeline().options.source_threads == 2

    def test_disk_cache_dir_defaults_under_state_dir(self, empty_env):
        options = get_pipeline().options
        assert options.disk_cache_dir == empty_env.resolve() / ".lensmith" / "image_manager_disk_cache"

    def test_same_pipeline_every_call(self, empty_env):
        assert not is_initialized()
        assert get_pipeline() is get_pipeline()
        assert is_initialized()
        assert get_lifecycle() is get_lifecycle()

    def test_default_context_is_app_context(self, empty_env):
        register_unit("context", units.ContextCapturingModule)
        get_pipeline()

        (_, context), _ = units.ContextCapturingModule.seen
        assert isinstance(context, AppContext)
        assert context.project_dir == empty_env.resolve()
        assert context.state_dir == empty_env.resolve() / ".lensmith"

    def test_explicit_context(self, empty_env):
        register_unit("context", units.ContextCapturingModule)
        get_pipeline(context="custom")

        assert units.ContextCapturingModule.seen[0] == ("apply_options", "custom")

    def test_excluded_modules(self, isolated_env, monkeypatch):
        monkeypatch.setenv("LSMITH_EXCLUDED_MODULES", '["tests.fixtures.units:AccurateDecodeModule"]')
        reset_config()

        pipeline = get_pipeline()

        assert calls_for("apply_options") == ["A"]
        assert pipeline.options["decodeMode"] == "FAST"

    def test_reset_pipeline_rereads_configuration(self, isolated_env):
        first = get_pipeline()
        (isolated_env / "lensmith_modules.yaml").write_text("modules: {}\n")
        reset_config()
        reset_pipeline()

        second = get_pipeline()

        assert second is not first
        assert second.options["decodeMode"] == "FAST"

    def test_failure_reported_until_reset(self, empty_env):
        register_unit("failing_options", units.FailingOptionsModule)

        with pytest.raises(lensmith.ConfigurationError) as first:
            get_pipeline()
        with pytest.raises(lensmith.ConfigurationError) as second:
            get_pipeline()
        assert first.value is second.value

        unregister_unit("failing_options")
        reset_pipeline()
        assert get_pipeline().sealed


@pytest.mark.fast
class TestCodeRegistration:

    def test_register_unit_applied_before_configured_units(self, isolated_env):
        register_unit("flickr", units.FlickrModule)
        get_pipeline()

        assert calls_for("apply_options") == ["flickr", "A", "B"]

    def test_extension_unit_decorator(self, empty_env):
        @extension_unit("acme.watermark")
        class WatermarkModule:
            def apply_options(self, context, builder):
                builder.set_option("watermark", "acme")

            def register_components(self, context, pipeline):
                pass

        assert registered_units() == ["acme.watermark"]
        assert get_pipeline().options["watermark"] == "acme"

    def test_extension_unit_default_identifier(self, empty_env):
        @extension_unit()
        class CdnModule:
            def apply_options(self, context, builder):
                pass

            def register_components(self, context, pipeline):
                pass

        (identifier,) = registered_units()
        assert identifier == f"{__name__}:{CdnModule.__qualname__}"

    def test_register_after_initialization_warns(self, empty_env, caplog):
        get_pipeline()

        with caplog.at_level(logging.WARNING, logger="lensmith"):
            register_unit("flickr", units.FlickrModule)

        assert "after the pipeline was initialized" in caplog.text
        assert CALLS == []

    def test_unregister_unit(self, empty_env):
        register_unit("flickr", units.FlickrModule)

        assert unregister_unit("flickr")
        assert not unregister_unit("flickr")
        assert registered_units() == []


@pytest.mark.fast
class TestDefaultDiscovery:

    def test_sources_follow_configuration(self, isolated_env):
        register_unit("flickr", units.FlickrModule)

        sources = build_default_discovery(get_config()).list_sources()

        assert sources == [
            ("flickr", "static"),
            ("tests.fixtures.units:FastDecodeModule", "config"),
            ("tests.fixtures.units:AccurateDecodeModule", "manifest"),
        ]

    def test_entry_points_included_when_enabled(self, empty_env, monkeypatch):
        monkeypatch.setenv("LSMITH_DISCOVER_ENTRY_POINTS", "true")
        reset_config()

        discovery = build_default_discovery()

        assert type(discovery.discoveries[-1]).__name__ == "EntryPointDiscovery"
