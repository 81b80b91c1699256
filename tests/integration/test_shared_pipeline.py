# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""End-to-end: several module sources configure one shared pipeline.

No mocking. Real project files, real settings, real discovery, and many
client threads requesting the pipeline at once.
"""

import threading

import pytest

from lensmith import get_pipeline, register_unit
from tests.fixtures import units
from tests.fixtures.units import FlickrPhoto, Photo, calls_for


@pytest.mark.fast
def test_clients_share_one_configured_pipeline(isolated_env):
    register_unit("slow", units.SlowModule)
    register_unit("flickr", units.FlickrModule)

    barrier = threading.Barrier(50)
    seen = []
    lock = threading.Lock()

    def client():
        barrier.wait()
        pipeline = get_pipeline()
        loader = pipeline.build_model_loader(FlickrPhoto, bytes, context="client")
        with lock:
            seen.append((pipeline, loader))

    threads = [threading.Thread(target=client) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(seen) == 50
    pipeline, loader = seen[0]
    assert all(p is pipeline and l is loader for p, l in seen)

    # Code registrations first, then configuration, then the manifest
    assert calls_for("apply_options") == ["slow", "flickr", "A", "B"]
    assert calls_for("register_components") == ["slow", "flickr", "A", "B"]

    options = pipeline.options
    assert options.memory_cache_size == 1024
    assert options.source_threads == 2
    assert options["decodeMode"] == "ACCURATE"

    assert pipeline.lookup(Photo, bytes).tag == "F2"
    assert pipeline.lookup(Photo, str).tag == "slow"
    assert loader == ("flickr", "client")
