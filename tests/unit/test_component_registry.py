# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Tests for ComponentRegistry and its frozen view."""

import pytest

from lensmith import AlreadyFrozenError, ComponentNotFoundError, ComponentRegistry
from tests.fixtures.units import FlickrPhoto, Photo


class Video:
    pass


@pytest.mark.fast
class TestComponentRegistry:

    def test_register_then_lookup(self):
        registry = ComponentRegistry()
        registry.register(Photo, bytes, "F1")

        assert registry.freeze().lookup(Photo, bytes) == "F1"

    def test_last_registration_wins(self):
        registry = ComponentRegistry()
        assert registry.register(Photo, bytes, "F1") is None
        assert registry.register(Photo, bytes, "F2") == "F1"

        frozen = registry.freeze()
        assert frozen.lookup(Photo, bytes) == "F2"
        assert len(frozen) == 1

    def test_register_after_freeze_rejected(self):
        registry = ComponentRegistry()
        registry.freeze()

        with pytest.raises(AlreadyFrozenError, match=r"\(Photo, bytes\)"):
            registry.register(Photo, bytes, "F1")
        with pytest.raises(AlreadyFrozenError):
            registry.unregister(Photo, bytes)

    def test_second_freeze_rejected(self):
        registry = ComponentRegistry()
        registry.freeze()

        with pytest.raises(AlreadyFrozenError):
            registry.freeze()

    def test_unregister_returns_removed_factory(self):
        registry = ComponentRegistry()
        registry.register(Photo, bytes, "F1")

        assert registry.unregister(Photo, bytes) == "F1"
        assert registry.unregister(Photo, bytes) is None
        assert (Photo, bytes) not in registry

    def test_frozen_view_is_a_snapshot(self):
        registry = ComponentRegistry()
        registry.register(Photo, bytes, "F1")
        frozen = registry.freeze()

        assert dict(frozen) == {(Photo, bytes): "F1"}
        assert list(frozen) == [(Photo, bytes)]


@pytest.mark.fast
class TestLookup:

    @pytest.fixture
    def frozen(self):
        registry = ComponentRegistry()
        registry.register(Photo, bytes, "photo-bytes")
        registry.register(Photo, str, "photo-url")
        registry.register(Video, bytes, "video-bytes")
        return registry.freeze()

    def test_subclass_falls_back_to_base_registration(self, frozen):
        assert frozen.lookup(FlickrPhoto, bytes) == "photo-bytes"
        assert frozen.resolve_key(FlickrPhoto, str) == (Photo, str)

    def test_exact_match_preferred_over_base(self):
        registry = ComponentRegistry()
        registry.register(Photo, bytes, "base")
        registry.register(FlickrPhoto, bytes, "exact")

        assert registry.freeze().lookup(FlickrPhoto, bytes) == "exact"

    def test_missing_pair_raises_helpful_error(self, frozen):
        with pytest.raises(ComponentNotFoundError) as exc_info:
            frozen.lookup(Photo, int)

        message = str(exc_info.value)
        assert "No factory registered for (Photo, int)" in message
        assert "registered for data types: bytes, str" in message

    def test_missing_error_is_a_key_error(self, frozen):
        with pytest.raises(KeyError):
            frozen.lookup(int, int)

    def test_model_and_data_type_listing(self, frozen):
        assert frozen.model_types() == [Photo, Video]
        assert frozen.data_types_for(Photo) == [bytes, str]
        assert frozen.data_types_for(FlickrPhoto) == []
