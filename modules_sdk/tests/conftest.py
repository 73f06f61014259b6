"""
modules_sdk test configuration.

All tests run against the in-memory backend by default; no platform
services or network access required.
"""
from __future__ import annotations

import os

import pytest

# ── Force the in-memory backend for all tests ─────────────────────────────
# These must be set before any modules_sdk modules are imported.

os.environ.setdefault("MODULES_BACKEND", "memory")
os.environ.setdefault("MODULES_LOG_LEVEL", "WARNING")

_IDENTITY_VARS = (
    "GAE_SERVICE", "GAE_VERSION", "GAE_INSTANCE", "GAE_PROJECT",
    "GOOGLE_CLOUD_PROJECT", "GAE_APPLICATION", "MODULES_PROJECT_ID",
    "MODULES_USE_ADMIN_API", "DEFAULT_VERSION_HOSTNAME",
)

DOMAIN = "myapp.example.com"


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_module_singletons(monkeypatch):
    """
    Clear deployment identity from the environment and reset cached
    config/backend/service singletons so no state bleeds between tests.
    """
    from modules_sdk.tier0_core.config import _reset_config
    from modules_sdk.tier3_platform.backends import _reset_backend
    from modules_sdk.tier3_platform.modules import _reset_service

    for name in _IDENTITY_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MODULES_BACKEND", "memory")

    _reset_config()
    _reset_backend()
    _reset_service()
    yield
    _reset_config()
    _reset_backend()
    _reset_service()


@pytest.fixture
def backend():
    """Multi-module topology: module1 (manual, 5 instances), module2 (auto)."""
    from modules_sdk.tier3_platform.backends import InMemoryBackend

    b = InMemoryBackend(default_hostname=DOMAIN)
    b.add_version("default", "v1")
    b.add_version("module1", "v1", instances=5)
    b.add_version("module1", "v2", instances=2)
    b.add_version("module2", "v1", manual=False)
    b.add_version("other-module", "v2")
    return b


@pytest.fixture
def legacy_backend():
    """Legacy application: only the "default" module exists."""
    from modules_sdk.tier3_platform.backends import InMemoryBackend

    b = InMemoryBackend(default_hostname=DOMAIN)
    b.add_version("default", "v1")
    b.add_version("default", "v2")
    return b


@pytest.fixture
def identity():
    """Running as instance 0 of module1/v1."""
    from modules_sdk.tier0_core.identity import StaticIdentity
    return StaticIdentity(module="module1", version="v1.123456", instance="0", project="test-project")


@pytest.fixture
def service(backend, identity):
    from modules_sdk.tier3_platform.modules import ModulesService
    return ModulesService(backend, identity)
