"""
modules_sdk.tier3_platform.hostname
────────────────────────────────────
Canonical hostname construction for a module/version/instance.

Shapes, by topology:
  legacy app (single "default" module)  [<instance>.]<version>.<domain>
  instance of a manually scaled version  <instance>.<version>.<module>.<domain>
  inferred version present in module     <version>.<module>.<domain>
  inferred version absent from module    <module>.<domain>
  explicit version                       <version>.<module>.<domain>
"""
from __future__ import annotations

from modules_sdk.tier0_core.errors import (
    ConfigurationError,
    InstanceNotFoundError,
    UnknownModuleError,
    UnsupportedOperationError,
)
from modules_sdk.tier0_core.identity import DEFAULT_MODULE, IdentityAccessor
from modules_sdk.tier0_core.logging import get_logger
from modules_sdk.tier1_runtime.validate import parse_instance
from modules_sdk.tier3_platform.backends import ModulesBackend

log = get_logger(__name__)


def construct_hostname(*parts: str) -> str:
    return ".".join(parts)


def _require_version(version: str) -> None:
    if not version:
        raise ConfigurationError(
            "Current version is unknown; pass a version explicitly.",
            detail="GAE_VERSION is unset or empty",
        )


class HostnameResolver:
    """
    Resolves hostnames against a backend. Omitted module and version fall
    back to the caller's own identity; an omitted instance means the
    load-balanced hostname.
    """

    def __init__(self, backend: ModulesBackend, identity: IdentityAccessor) -> None:
        self._backend = backend
        self._identity = identity

    def resolve(
        self,
        module: str | None = None,
        version: str | None = None,
        instance: int | str | None = None,
    ) -> str:
        index = parse_instance(instance) if instance is not None else None

        req_module = module or self._identity.current_module()
        req_version = version or self._identity.current_version()

        modules = self._backend.list_modules()
        domain = self._backend.get_default_hostname()

        if modules == [DEFAULT_MODULE]:
            _require_version(req_version)
            hostname = self._legacy(req_module, req_version, instance, domain)
        elif index is not None:
            _require_version(req_version)
            hostname = self._for_instance(req_module, req_version, instance, index, domain)
        elif not version:
            hostname = self._for_inferred_version(req_module, req_version, domain)
        else:
            # An explicit version is trusted and not checked for existence.
            hostname = construct_hostname(req_version, req_module, domain)

        log.debug(
            "modules.hostname_resolved",
            module=req_module,
            version=req_version,
            instance=instance,
            hostname=hostname,
        )
        return hostname

    def _legacy(
        self, module: str, version: str, instance: int | str | None, domain: str
    ) -> str:
        if module != DEFAULT_MODULE:
            raise UnknownModuleError(f"Module '{module}' not found.", module=module)
        if instance is not None:
            return construct_hostname(str(instance), version, domain)
        return construct_hostname(version, domain)

    def _for_instance(
        self, module: str, version: str, instance: int | str, index: int, domain: str
    ) -> str:
        try:
            detail = self._backend.get_version(module, version)
        except UnknownModuleError as exc:
            raise UnknownModuleError(
                f"Module '{module}' or version '{version}' not found.",
                detail=exc.detail,
                module=module,
                version=version,
            ) from exc

        if not detail.manual:
            raise UnsupportedOperationError(
                "Instance-specific hostnames are only available for manually "
                "scaled services.",
                module=module,
                version=version,
            )
        if index >= (detail.instances or 0):
            raise InstanceNotFoundError(
                "The specified instance does not exist for this module/version.",
                module=module,
                version=version,
                instance=index,
            )
        return construct_hostname(str(instance), version, module, domain)

    def _for_inferred_version(self, module: str, version: str, domain: str) -> str:
        try:
            versions = self._backend.list_versions(module)
        except UnknownModuleError as exc:
            raise UnknownModuleError(
                f"Module '{module}' not found.", detail=exc.detail, module=module
            ) from exc

        if version in versions:
            return construct_hostname(version, module, domain)
        # The caller's own version does not exist under the target module.
        return construct_hostname(module, domain)


__all__ = ["HostnameResolver", "construct_hostname"]
