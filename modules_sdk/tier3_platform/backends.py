"""
modules_sdk.tier3_platform.backends
────────────────────────────────────
Backend capability used by the modules service: list modules and versions,
read a module's traffic split, read/patch a version's scaling and serving
status, and read the project's default hostname. The selector and hostname
resolver are written once against ModulesBackend; transports plug in here.

Minimal stack: httpx (sync) for both remote transports
Select via:    MODULES_BACKEND=rpc|admin|memory
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from modules_sdk.tier0_core.errors import (
    ConfigurationError,
    InvalidArgumentError,
    ModulesError,
    TransientError,
    UnexpectedStateError,
    UnknownModuleError,
)
from modules_sdk.tier0_core.logging import get_logger

log = get_logger(__name__)


# ── Domain model ─────────────────────────────────────────────────────────────

class ServingStatus(str, enum.Enum):
    SERVING = "SERVING"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class VersionDetail:
    """Scaling and serving state of one version of a module."""
    module: str
    version: str
    manual: bool = False
    instances: int | None = None
    serving_status: ServingStatus | None = None


# ── Backend protocol ──────────────────────────────────────────────────────────

@runtime_checkable
class ModulesBackend(Protocol):
    """Implement this protocol to add a new modules transport."""

    def list_modules(self) -> list[str]: ...

    def list_versions(self, module: str) -> list[str]: ...

    def get_traffic_split(self, module: str) -> dict[str, float]: ...

    def get_version(self, module: str, version: str) -> VersionDetail: ...

    def set_num_instances(self, module: str, version: str, instances: int) -> None: ...

    def set_serving_status(
        self, module: str, version: str, status: ServingStatus
    ) -> None: ...

    def get_default_hostname(self) -> str: ...


# ── In-memory backend (tests / local dev) ─────────────────────────────────────

@dataclass
class _Version:
    manual: bool = True
    instances: int | None = 1
    serving_status: ServingStatus = ServingStatus.SERVING


@dataclass
class InMemoryBackend:
    """
    Deterministic dict-backed backend. Never calls external services.

    Usage::

        backend = InMemoryBackend(default_hostname="myapp.example.com")
        backend.add_version("module1", "v1", instances=5)
        backend.set_traffic_split("module1", {"v1": 1.0})
    """
    default_hostname: str = "localhost"
    _modules: dict[str, dict[str, _Version]] = field(default_factory=dict, init=False)
    _splits: dict[str, dict[str, float]] = field(default_factory=dict, init=False)

    # ── Seeding ──────────────────────────────────────────────────────────────

    def add_version(
        self,
        module: str,
        version: str,
        *,
        manual: bool = True,
        instances: int | None = 1,
        serving_status: ServingStatus = ServingStatus.SERVING,
    ) -> None:
        self._modules.setdefault(module, {})[version] = _Version(
            manual=manual,
            instances=instances if manual else None,
            serving_status=serving_status,
        )

    def set_traffic_split(self, module: str, allocations: dict[str, float]) -> None:
        self._require_module(module)
        self._splits[module] = dict(allocations)

    # ── ModulesBackend ───────────────────────────────────────────────────────

    def list_modules(self) -> list[str]:
        return list(self._modules)

    def list_versions(self, module: str) -> list[str]:
        return list(self._require_module(module))

    def get_traffic_split(self, module: str) -> dict[str, float]:
        self._require_module(module)
        return dict(self._splits.get(module, {}))

    def get_version(self, module: str, version: str) -> VersionDetail:
        v = self._require_version(module, version)
        return VersionDetail(
            module=module,
            version=version,
            manual=v.manual,
            instances=v.instances,
            serving_status=v.serving_status,
        )

    def set_num_instances(self, module: str, version: str, instances: int) -> None:
        v = self._require_version(module, version)
        if not v.manual:
            raise UnexpectedStateError(
                "Instance count can only be set on manually scaled versions.",
                module=module,
                version=version,
            )
        v.instances = instances

    def set_serving_status(
        self, module: str, version: str, status: ServingStatus
    ) -> None:
        v = self._require_version(module, version)
        if v.serving_status == status:
            raise UnexpectedStateError(
                "Module in an unexpected state",
                detail=f"{module}/{version} is already {status.value}",
            )
        v.serving_status = status

    def get_default_hostname(self) -> str:
        return self.default_hostname

    def _require_module(self, module: str) -> dict[str, _Version]:
        if module not in self._modules:
            raise UnknownModuleError("Invalid module.", module=module)
        return self._modules[module]

    def _require_version(self, module: str, version: str) -> _Version:
        versions = self._require_module(module)
        if version not in versions:
            raise UnknownModuleError("Invalid version.", module=module, version=version)
        return versions[version]


# ── RPC backend (legacy request/response channel) ─────────────────────────────

class RpcErrorCode(enum.IntEnum):
    OK = 0
    INVALID_MODULE = 1
    INVALID_VERSION = 2
    INVALID_INSTANCES = 3
    TRANSIENT_ERROR = 4
    UNEXPECTED_STATE = 5


def error_for_rpc_code(code: int, detail: str | None = None) -> ModulesError:
    """Translate a modules RPC application error code into the taxonomy."""
    if code == RpcErrorCode.INVALID_MODULE:
        return UnknownModuleError("Invalid module.", detail=detail)
    if code == RpcErrorCode.INVALID_VERSION:
        return UnknownModuleError("Invalid version.", detail=detail)
    if code == RpcErrorCode.INVALID_INSTANCES:
        return InvalidArgumentError("Invalid instances.", detail=detail)
    if code == RpcErrorCode.TRANSIENT_ERROR:
        return TransientError("Temporary error, please re-try", detail=detail)
    if code == RpcErrorCode.UNEXPECTED_STATE:
        return UnexpectedStateError("Module in an unexpected state", detail=detail)
    return ModulesError(f"Error Code: {code}", detail=detail, rpc_code=code)


class RpcBackend:
    """
    Synchronous RPC to the modules service through a JSON-over-HTTP adapter.

    The envelope below is this SDK's own adapter contract, not a platform
    wire format: the runtime's API proxy speaks protobuf, so an adapter
    (or a test double) must sit at MODULES_RPC_URL and translate. The
    default URL is a local development placeholder.

    Request:  POST <rpc_url> {"service": "modules", "method": ..., "request": {...}}
    Response: {"response": {...}} or {"error": {"code": <int>, "detail": <str>}}

    The RPC surface has no traffic-split or hostname-domain call: the split is
    reported as {default version: 1.0} and the domain comes from
    DEFAULT_VERSION_HOSTNAME.
    """

    SERVICE = "modules"

    def __init__(
        self,
        rpc_url: str,
        *,
        default_hostname: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._default_hostname = default_hostname
        self._http = client or httpx.Client(timeout=timeout)

    def call(self, method: str, request: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = {"service": self.SERVICE, "method": method, "request": request or {}}
        try:
            resp = self._http.post(self._rpc_url, json=payload)
        except httpx.HTTPError as exc:
            log.warning("modules.rpc_failed", method=method, error=str(exc))
            raise ModulesError(
                f"RPC {self.SERVICE}.{method} failed.", detail=str(exc)
            ) from exc

        body = _json_body(resp)
        error = body.get("error")
        if error is not None:
            if not isinstance(error, dict):
                raise ModulesError(
                    f"RPC {self.SERVICE}.{method} returned a malformed error.",
                    detail=repr(error),
                )
            try:
                code = int(error.get("code", -1))
            except (TypeError, ValueError) as exc:
                raise ModulesError(
                    f"RPC {self.SERVICE}.{method} returned a malformed error code.",
                    detail=repr(error),
                ) from exc
            log.warning("modules.rpc_application_error", method=method, code=code)
            raise error_for_rpc_code(code, error.get("detail"))
        if resp.is_error:
            raise ModulesError(
                f"RPC {self.SERVICE}.{method} failed with HTTP {resp.status_code}.",
                detail=resp.text or None,
            )
        return body.get("response") or {}

    def list_modules(self) -> list[str]:
        return list(self.call("GetModules").get("module", []))

    def list_versions(self, module: str) -> list[str]:
        return list(self.call("GetVersions", {"module": module}).get("version", []))

    def get_traffic_split(self, module: str) -> dict[str, float]:
        version = self.call("GetDefaultVersion", {"module": module}).get("version")
        return {version: 1.0} if version else {}

    def get_version(self, module: str, version: str) -> VersionDetail:
        resp = self.call("GetNumInstances", {"module": module, "version": version})
        instances = resp.get("instances")
        return VersionDetail(
            module=module,
            version=version,
            manual=instances is not None,
            instances=int(instances) if instances is not None else None,
        )

    def set_num_instances(self, module: str, version: str, instances: int) -> None:
        self.call(
            "SetNumInstances",
            {"module": module, "version": version, "instances": instances},
        )

    def set_serving_status(
        self, module: str, version: str, status: ServingStatus
    ) -> None:
        method = "StartModule" if status is ServingStatus.SERVING else "StopModule"
        self.call(method, {"module": module, "version": version})

    def get_default_hostname(self) -> str:
        if not self._default_hostname:
            raise ConfigurationError(
                "Default hostname is not configured.",
                detail="Set DEFAULT_VERSION_HOSTNAME to use the rpc backend for hostnames.",
            )
        return self._default_hostname


# ── Admin API backend (management REST API) ───────────────────────────────────

_TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


class AdminApiBackend:
    """
    App Engine Admin API (v1) backend.

    Resources: apps/{project}, apps/{project}/services[/{module}],
    apps/{project}/services/{module}/versions[/{version}].
    Auth: bearer token from MODULES_ADMIN_ACCESS_TOKEN, otherwise fetched
    from the metadata server on first use and kept for the backend's lifetime.
    """

    def __init__(
        self,
        project_id: str | None,
        *,
        base_url: str = "https://appengine.googleapis.com/v1",
        access_token: str | None = None,
        metadata_token_url: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not project_id:
            raise ConfigurationError(
                "Project id could not be determined.",
                detail=(
                    "Set MODULES_PROJECT_ID, GAE_PROJECT, GOOGLE_CLOUD_PROJECT "
                    "or GAE_APPLICATION to use the admin backend."
                ),
            )
        self._project = project_id
        self._base_url = base_url.rstrip("/")
        self._token = access_token
        self._metadata_token_url = metadata_token_url
        self._http = client or httpx.Client(timeout=timeout)

    # ── HTTP plumbing ────────────────────────────────────────────────────────

    def _access_token(self) -> str | None:
        if self._token is None and self._metadata_token_url:
            try:
                resp = self._http.get(
                    self._metadata_token_url,
                    headers={"Metadata-Flavor": "Google"},
                )
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                raise ModulesError(
                    "Could not obtain an access token.", detail=str(exc)
                ) from exc
            try:
                self._token = resp.json()["access_token"]
            except (ValueError, KeyError, TypeError) as exc:
                raise ModulesError(
                    "Could not obtain an access token.",
                    detail=f"Malformed metadata server response: {exc!r}",
                ) from exc
        return self._token

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/apps/{self._project}/{path.lstrip('/')}".rstrip("/")
        headers: dict[str, str] = {}
        token = self._access_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = self._http.request(method, url, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            log.warning("modules.admin_api_failed", method=method, path=path, error=str(exc))
            raise ModulesError(f"Request to {url} failed.", detail=str(exc)) from exc

        if resp.is_error:
            log.warning(
                "modules.admin_api_error", method=method, path=path, status=resp.status_code
            )
            raise _error_for_status(resp)
        return _json_body(resp)

    def _list(self, path: str, key: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        params: dict[str, Any] = {}
        while True:
            page = self._request("GET", path, params=params)
            items.extend(page.get(key) or [])
            token = page.get("nextPageToken")
            if not token:
                return items
            params = {"pageToken": token}

    # ── ModulesBackend ───────────────────────────────────────────────────────

    def list_modules(self) -> list[str]:
        return [s["id"] for s in self._list("services", "services")]

    def list_versions(self, module: str) -> list[str]:
        return [v["id"] for v in self._list(f"services/{module}/versions", "versions")]

    def get_traffic_split(self, module: str) -> dict[str, float]:
        service = self._request("GET", f"services/{module}")
        allocations = (service.get("split") or {}).get("allocations") or {}
        return {version: float(weight) for version, weight in allocations.items()}

    def get_version(self, module: str, version: str) -> VersionDetail:
        v = self._request(
            "GET", f"services/{module}/versions/{version}", params={"view": "FULL"}
        )
        manual = v.get("manualScaling")
        status = v.get("servingStatus")
        return VersionDetail(
            module=module,
            version=version,
            manual=manual is not None,
            instances=int(manual.get("instances", 0)) if manual is not None else None,
            serving_status=ServingStatus(status) if status in ServingStatus.__members__ else None,
        )

    def set_num_instances(self, module: str, version: str, instances: int) -> None:
        self._request(
            "PATCH",
            f"services/{module}/versions/{version}",
            params={"updateMask": "manualScaling.instances"},
            json={"manualScaling": {"instances": instances}},
        )

    def set_serving_status(
        self, module: str, version: str, status: ServingStatus
    ) -> None:
        self._request(
            "PATCH",
            f"services/{module}/versions/{version}",
            params={"updateMask": "servingStatus"},
            json={"servingStatus": status.value},
        )

    def get_default_hostname(self) -> str:
        hostname = self._request("GET", "").get("defaultHostname")
        if not hostname:
            raise ModulesError(
                "Could not determine the default hostname.",
                detail=f"apps/{self._project} has no defaultHostname",
            )
        return hostname


def _json_body(resp: httpx.Response) -> dict[str, Any]:
    if not resp.content:
        return {}
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_for_status(resp: httpx.Response) -> ModulesError:
    """Map an Admin API error response to the taxonomy, keeping its message."""
    error = _json_body(resp).get("error")
    if not isinstance(error, dict):
        error = {}
    message = error.get("message") or resp.text or f"HTTP {resp.status_code}"
    status = resp.status_code
    if status == 404:
        return UnknownModuleError(message, http_status=status)
    if status == 409:
        return UnexpectedStateError(message, http_status=status)
    if status in _TRANSIENT_STATUSES:
        return TransientError(message, http_status=status)
    return ModulesError(message, http_status=status)


# ── Backend registry ──────────────────────────────────────────────────────────

_backend: ModulesBackend | None = None


def _build_backend() -> ModulesBackend:
    from modules_sdk.tier0_core.config import get_config
    from modules_sdk.tier0_core.identity import get_identity

    config = get_config()
    name = config.resolved_backend
    if name == "memory":
        return InMemoryBackend(default_hostname=config.default_hostname or "localhost")
    if name == "rpc":
        return RpcBackend(
            config.rpc_url,
            default_hostname=config.default_hostname,
            timeout=config.request_timeout,
        )
    if name == "admin":
        token = config.admin_access_token
        return AdminApiBackend(
            get_identity().project_id(),
            base_url=config.admin_api_url,
            access_token=token.get_secret_value() if token else None,
            metadata_token_url=config.metadata_token_url,
            timeout=config.request_timeout,
        )
    raise ConfigurationError(
        f"Unknown modules backend {name!r}.",
        detail="Valid options: rpc, admin, memory",
    )


def get_backend() -> ModulesBackend:
    global _backend
    if _backend is None:
        _backend = _build_backend()
    return _backend


def _reset_backend() -> None:
    """For tests — reset backend so env changes take effect."""
    global _backend
    _backend = None


__all__ = [
    "ModulesBackend", "VersionDetail", "ServingStatus", "InMemoryBackend",
    "RpcBackend", "RpcErrorCode", "AdminApiBackend", "error_for_rpc_code",
    "get_backend",
]
