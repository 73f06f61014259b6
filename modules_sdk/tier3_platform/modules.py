"""
modules_sdk.tier3_platform.modules
───────────────────────────────────
Public operations on modules, versions and instances: enumerate them, find
a module's default version, read and set instance counts, start and stop
versions, and build hostnames.

Omitted module/version arguments resolve to the running deployment's own
identity. Arguments are validated before any backend call; backend failures
surface as ModulesError subclasses. Nothing is cached and nothing is retried.

Usage::

    from modules_sdk import get_hostname, set_num_instances

    host = get_hostname("worker", instance=0)
    set_num_instances(3, module="worker", version="v2")
"""
from __future__ import annotations

from modules_sdk.tier0_core.errors import UnsupportedOperationError
from modules_sdk.tier0_core.identity import IdentityAccessor, get_identity
from modules_sdk.tier0_core.logging import get_logger
from modules_sdk.tier1_runtime.validate import (
    HostnameArgs,
    InstancesArgs,
    ModuleArgs,
    VersionArgs,
    validate_input,
)
from modules_sdk.tier3_platform.backends import (
    ModulesBackend,
    ServingStatus,
    get_backend,
)
from modules_sdk.tier3_platform.hostname import HostnameResolver
from modules_sdk.tier3_platform.traffic import select_default_version

log = get_logger(__name__)


class ModulesService:
    """Modules operations bound to one backend and one identity accessor."""

    def __init__(self, backend: ModulesBackend, identity: IdentityAccessor) -> None:
        self.backend = backend
        self.identity = identity
        self._resolver = HostnameResolver(backend, identity)

    def _module(self, module: str | None) -> str:
        return module or self.identity.current_module()

    def _version(self, version: str | None) -> str:
        return version or self.identity.current_version()

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_modules(self) -> list[str]:
        """Names of all modules of the application."""
        return self.backend.list_modules()

    def get_versions(self, module: str | None = None) -> list[str]:
        """Versions of ``module`` (default: the current module)."""
        args = validate_input(ModuleArgs, {"module": module})
        return self.backend.list_versions(self._module(args.module))

    def get_default_version(self, module: str | None = None) -> str:
        """Version receiving the dominant share of ``module``'s traffic."""
        args = validate_input(ModuleArgs, {"module": module})
        name = self._module(args.module)
        return select_default_version(self.backend.get_traffic_split(name), module=name)

    def get_num_instances(
        self, module: str | None = None, version: str | None = None
    ) -> int:
        """
        Instance count of a manually scaled version. Raises
        UnsupportedOperationError for automatically scaled versions.
        """
        args = validate_input(VersionArgs, {"module": module, "version": version})
        detail = self.backend.get_version(
            self._module(args.module), self._version(args.version)
        )
        if not detail.manual:
            raise UnsupportedOperationError(
                "Instance counts are only available for manually scaled services.",
                module=detail.module,
                version=detail.version,
            )
        return detail.instances or 0

    def get_hostname(
        self,
        module: str | None = None,
        version: str | None = None,
        instance: int | str | None = None,
    ) -> str:
        """
        Canonical hostname for a module/version/instance, e.g.
        "0.v1.module5.myapp.appspot.com". See tier3_platform.hostname.
        """
        args = validate_input(
            HostnameArgs, {"module": module, "version": version, "instance": instance}
        )
        return self._resolver.resolve(args.module, args.version, args.instance)

    # ── Mutations ────────────────────────────────────────────────────────────

    def set_num_instances(
        self,
        instances: int,
        module: str | None = None,
        version: str | None = None,
    ) -> None:
        """Set the instance count of a manually scaled version."""
        args = validate_input(
            InstancesArgs,
            {"instances": instances, "module": module, "version": version},
        )
        name, ver = self._module(args.module), self._version(args.version)
        self.backend.set_num_instances(name, ver, args.instances)
        log.info("modules.set_num_instances", module=name, version=ver, instances=args.instances)

    def start_version(self, module: str, version: str) -> None:
        """
        Start serving ``version`` of ``module``. Raises UnexpectedStateError
        if it is already started.
        """
        self._set_serving_status(module, version, ServingStatus.SERVING)

    def stop_version(
        self, module: str | None = None, version: str | None = None
    ) -> None:
        """
        Stop serving a version (default: the current one). Raises
        UnexpectedStateError if it is already stopped.
        """
        self._set_serving_status(module, version, ServingStatus.STOPPED)

    def _set_serving_status(
        self, module: str | None, version: str | None, status: ServingStatus
    ) -> None:
        args = validate_input(VersionArgs, {"module": module, "version": version})
        name, ver = self._module(args.module), self._version(args.version)
        self.backend.set_serving_status(name, ver, status)
        event = "modules.start_version" if status is ServingStatus.SERVING else "modules.stop_version"
        log.info(event, module=name, version=ver)


# ── Default service ───────────────────────────────────────────────────────────

_service: ModulesService | None = None


def get_service() -> ModulesService:
    """
    Return the process-wide service built from config, created on first use.
    Construct ModulesService directly to pass a specific backend.
    """
    global _service
    if _service is None:
        _service = ModulesService(get_backend(), get_identity())
    return _service


def _reset_service() -> None:
    """For tests — drop the default service so env changes take effect."""
    global _service
    _service = None


# ── Public API ────────────────────────────────────────────────────────────────

def get_modules() -> list[str]:
    """Names of all modules of the application."""
    return get_service().get_modules()


def get_versions(module: str | None = None) -> list[str]:
    """Versions of ``module`` (default: the current module)."""
    return get_service().get_versions(module)


def get_default_version(module: str | None = None) -> str:
    """Default version of ``module`` (default: the current module)."""
    return get_service().get_default_version(module)


def get_num_instances(module: str | None = None, version: str | None = None) -> int:
    """Instance count of a manually scaled version."""
    return get_service().get_num_instances(module, version)


def set_num_instances(
    instances: int, module: str | None = None, version: str | None = None
) -> None:
    """Set the instance count of a manually scaled version."""
    get_service().set_num_instances(instances, module, version)


def start_version(module: str, version: str) -> None:
    get_service().start_version(module, version)


def stop_version(module: str | None = None, version: str | None = None) -> None:
    get_service().stop_version(module, version)


def get_hostname(
    module: str | None = None,
    version: str | None = None,
    instance: int | str | None = None,
) -> str:
    """Canonical hostname for a module/version/instance."""
    return get_service().get_hostname(module, version, instance)


__all__ = [
    "ModulesService", "get_service", "get_modules", "get_versions",
    "get_default_version", "get_num_instances", "set_num_instances",
    "start_version", "stop_version", "get_hostname",
]
