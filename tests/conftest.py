"""Global pytest configuration and fixtures.

Every test runs against a throwaway project directory: LSMITH_PROJECT_DIR
points at it, the cached configuration and the process-wide pipeline are
reset, and units registered in code are cleared afterwards.
"""

import pytest

import lensmith._state as pipeline_state
from lensmith import reset_pipeline
from lensmith.settings import reset_config
from tests.fixtures import units


def pytest_configure(config):
    config.addinivalue_line("markers", "fast: Pure Python tests with no filesystem setup beyond tmp_path")


def _write_project(project_dir, body: str):
    project_dir.mkdir(parents=True, exist_ok=True)
    (project_dir / ".lensmith").mkdir(exist_ok=True)
    (project_dir / "lensmith.yaml").write_text(body)
    return project_dir


def _clear_state():
    for identifier in pipeline_state.registered_units():
        pipeline_state.unregister_unit(identifier)
    reset_pipeline()
    reset_config()
    units.CALLS.clear()
    units.ContextCapturingModule.seen.clear()


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep the developer's environment out of every test."""
    for name in ("LSMITH_LOG_LEVEL", "LSMITH_PROFILE", "LSMITH_MODULES", "LSMITH_MANIFEST_PATH"):
        monkeypatch.delenv(name, raising=False)
    _clear_state()
    yield
    _clear_state()


@pytest.fixture
def empty_env(tmp_path, monkeypatch):
    """Project with no configured modules and entry point discovery disabled.

    Creates:
    - tmp_path/test_project/.lensmith/
    - Real lensmith.yaml
    - LSMITH_PROJECT_DIR env var
    """
    project_dir = _write_project(
        tmp_path / "test_project",
        """
discover_entry_points: false
modules: []
""",
    )
    monkeypatch.setenv("LSMITH_PROJECT_DIR", str(project_dir))
    reset_config()
    yield project_dir
    reset_config()


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Project configuring modules from settings and from a manifest.

    Creates:
    - lensmith.yaml listing FastDecodeModule in 'modules'
    - lensmith_modules.yaml marking AccurateDecodeModule as a module
    - LSMITH_PROJECT_DIR env var
    """
    project_dir = _write_project(
        tmp_path / "test_project",
        """
discover_entry_points: false
modules:
  - tests.fixtures.units:FastDecodeModule
pipeline:
  source_threads: 2
""",
    )
    (project_dir / "lensmith_modules.yaml").write_text(
        """
modules:
  tests.fixtures.units:AccurateDecodeModule: LensmithModule
  build_flavor: release
"""
    )
    monkeypatch.setenv("LSMITH_PROJECT_DIR", str(project_dir))
    reset_config()
    yield project_dir
    reset_config()


@pytest.fixture
def write_manifest(tmp_path):
    """Write a manifest file and return its path."""

    def _write(body: str, name: str = "lensmith_modules.yaml"):
        path = tmp_path / name
        path.write_text(body)
        return path

    return _write
