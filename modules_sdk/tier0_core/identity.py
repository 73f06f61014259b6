"""
modules_sdk.tier0_core.identity
────────────────────────────────
Deployment identity of the running process: which module, version and
instance this is, and which project it belongs to. Values come from the
runtime environment the platform populates (GAE_SERVICE, GAE_VERSION,
GAE_INSTANCE, GAE_APPLICATION, ...).

Backends: env (default) | static (tests, scripts running off-platform)
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

DEFAULT_MODULE = "default"


# ── Accessor protocol ─────────────────────────────────────────────────────────

@runtime_checkable
class IdentityAccessor(Protocol):
    """Read-only view of the caller's own deployment identity."""

    def current_module(self) -> str: ...

    def current_version(self) -> str: ...

    def current_instance(self) -> str: ...

    def project_id(self) -> str | None: ...


# ── Environment accessor ──────────────────────────────────────────────────────

class EnvIdentity:
    """
    Identity read from environment variables.

    ``environ`` defaults to ``os.environ`` and is read on every call, so
    changes made after construction are visible. ``project_override`` takes
    precedence over everything in the environment (MODULES_PROJECT_ID).
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        project_override: str | None = None,
    ) -> None:
        self._environ = environ if environ is not None else os.environ
        self._project_override = project_override

    def current_module(self) -> str:
        return self._environ.get("GAE_SERVICE") or DEFAULT_MODULE

    def current_version(self) -> str:
        # GAE_VERSION is "<version>.<deployment id>"
        return self._environ.get("GAE_VERSION", "").split(".", 1)[0]

    def current_instance(self) -> str:
        return self._environ.get("GAE_INSTANCE", "")

    def project_id(self) -> str | None:
        if self._project_override:
            return self._project_override

        project = (
            self._environ.get("GAE_PROJECT")
            or self._environ.get("GOOGLE_CLOUD_PROJECT")
        )
        if project:
            return project

        app_id = self._environ.get("GAE_APPLICATION")
        if app_id:
            # Application ids may carry a partition prefix, e.g. "s~my-app".
            return app_id.split("~", 1)[-1]
        return None


# ── Static accessor (tests / off-platform) ────────────────────────────────────

@dataclass(frozen=True)
class StaticIdentity:
    """Fixed identity. Safe for unit tests, never reads the environment."""
    module: str = DEFAULT_MODULE
    version: str = ""
    instance: str = ""
    project: str | None = None

    def current_module(self) -> str:
        return self.module

    def current_version(self) -> str:
        return self.version.split(".", 1)[0]

    def current_instance(self) -> str:
        return self.instance

    def project_id(self) -> str | None:
        return self.project


# ── Default accessor ──────────────────────────────────────────────────────────

def get_identity() -> IdentityAccessor:
    """Return an environment-backed accessor honouring MODULES_PROJECT_ID."""
    from modules_sdk.tier0_core.config import get_config
    return EnvIdentity(project_override=get_config().project_id)


def get_current_module_name() -> str:
    """Name of the running module, e.g. "module5" for version v1 of module5."""
    return get_identity().current_module()


def get_current_version_name() -> str:
    """Version of the running module, without the deployment id suffix."""
    return get_identity().current_version()


def get_current_instance_id() -> str:
    """
    Id of the running instance: "2" for instance 2 of a manually scaled
    version, a hex token for automatically scaled ones.
    """
    return get_identity().current_instance()


__all__ = [
    "IdentityAccessor", "EnvIdentity", "StaticIdentity", "get_identity",
    "get_current_module_name", "get_current_version_name",
    "get_current_instance_id", "DEFAULT_MODULE",
]
