"""
Pytest configuration for cloudkit tests.

Why: Force AnyIO to use the asyncio backend, keep CloudKit env vars from the
developer shell out of the tests, and provide a client factory wired to an
in-process httpx.MockTransport so no test touches the network.
"""
import os
import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

# Ensure the repo root (cloudkit/, scripts/) is importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cloudkit.client import CloudKitClient  # noqa: E402
from cloudkit.config import CloudKitConfig  # noqa: E402


TEST_CONTAINER = "iCloud.com.example.notes"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_cloudkit_env(monkeypatch: pytest.MonkeyPatch):
    """Drop CLOUDKIT_* variables so config tests start from a clean slate."""
    for name in list(os.environ):
        if name.startswith("CLOUDKIT_"):
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def config() -> CloudKitConfig:
    return CloudKitConfig(container=TEST_CONTAINER, base_url="https://api.cloudkit.test")


@pytest.fixture
def make_client(config: CloudKitConfig):
    """
    Build a CloudKitClient whose HTTP traffic is served by `handler`.

    Parameters:
        handler: sync or async callable (httpx.Request) -> httpx.Response.
        cfg: optional config override.
    """

    def _make(handler: Callable, cfg: CloudKitConfig | None = None) -> CloudKitClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return CloudKitClient(http, cfg or config)

    return _make
