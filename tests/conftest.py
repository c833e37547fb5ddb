import time

import platformdirs
import pytest
import requests

from modsloader.catalog.store import CatalogStore
from modsloader.download.files import ContentStore

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used by the test modules."""
    for marker, description in (
        ("unit", "fast isolated tests"),
        ("core_downloads", "release sources, downloads and the content store"),
        ("catalog", "catalog store, canary state and reconciliation"),
        ("configuration", "configuration loading and validation"),
        ("integration", "tests wiring several components together"),
        ("cli", "command-line interface"),
    ):
        config.addinivalue_line("markers", f"{marker}: {description}")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point XDG variables and platformdirs lookups at a temporary directory tree.

    Keeps tests from reading a real user configuration or writing into the
    real data directory.
    """
    base = tmp_path_factory.mktemp("modsloader")
    cache_dir = base / "cache"
    state_dir = base / "state"
    config_dir = base / "config"
    data_dir = base / "data"
    log_dir = state_dir / "log"

    for path in (cache_dir, state_dir, config_dir, data_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_STATE_HOME", str(state_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_state_dir", lambda *_args, **_kwargs: str(state_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_data_dir", lambda *_args, **_kwargs: str(data_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )


def pytest_runtest_setup():
    """Replace the requests entry points with a function that refuses network access."""
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.delete = _block_network
    requests.head = _block_network
    requests.patch = _block_network
    requests.options = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.

    Tests that require real timing behavior should monkeypatch sleep back to
    the real implementation within the test.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


# =============================================================================
# Catalog fixtures
# =============================================================================


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def catalog_store(store_dir):
    store = CatalogStore(str(store_dir / "mods.sqlite"), public_base_url="https://cdn.example")
    yield store
    store.close()


@pytest.fixture
def content_store(store_dir):
    return ContentStore(str(store_dir))
