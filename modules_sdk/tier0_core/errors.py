"""
modules_sdk.tier0_core.errors
──────────────────────────────
Error taxonomy for module/version/instance operations. Every failure raised
by the SDK is a ModulesError subclass, so callers can catch the base class
or a single kind. Backend messages are kept verbatim in ``detail``.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class ModulesError(Exception):
    """
    Base class for all modules errors, and the catch-all for backend failures
    that have no more specific kind. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: safe to surface to end users
    - detail: internal context (the backend message when there is one)
    - status_code: HTTP status code for API responses
    """

    status_code: int = 500
    code: str = "modules_error"

    def __init__(
        self,
        user_message: str = "Modules backend error.",
        detail: str | None = None,
        code: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class InvalidArgumentError(ModulesError):
    """A caller-supplied value failed a type or range check."""
    status_code = 400
    code = "invalid_argument"

    def __init__(
        self,
        user_message: str = "Invalid argument.",
        fields: dict | None = None,
        **metadata: Any,
    ) -> None:
        self.fields = fields or {}
        super().__init__(user_message, **metadata)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.fields:
            d["error"]["fields"] = self.fields
        return d


class UnknownModuleError(ModulesError):
    """The backend does not know the requested module or version."""
    status_code = 404
    code = "unknown_module"


class NoDefaultVersionError(ModulesError):
    """The module's traffic split is empty."""
    status_code = 404
    code = "no_default_version"


class UnsupportedOperationError(ModulesError):
    """Operation not available for the version's scaling type."""
    status_code = 400
    code = "unsupported_operation"


class InstanceNotFoundError(ModulesError):
    """Instance index is outside the version's configured instance count."""
    status_code = 404
    code = "instance_not_found"


class TransientError(ModulesError):
    """Backend reported a retryable condition. The SDK never retries itself."""
    status_code = 503
    code = "transient_error"


class UnexpectedStateError(ModulesError):
    """Version is in a state that forbids the request (e.g. already started)."""
    status_code = 409
    code = "unexpected_state"


class ConfigurationError(ModulesError):
    """Misconfiguration detected (missing project id, unknown backend)."""
    status_code = 500
    code = "configuration_error"


__all__ = [
    "ModulesError", "InvalidArgumentError", "UnknownModuleError",
    "NoDefaultVersionError", "UnsupportedOperationError",
    "InstanceNotFoundError", "TransientError", "UnexpectedStateError",
    "ConfigurationError",
]
