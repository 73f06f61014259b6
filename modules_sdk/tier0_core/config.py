"""
modules_sdk.tier0_core.config
──────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic.

Minimal stack: pydantic-settings + python-dotenv
Backend select: MODULES_BACKEND=rpc|admin|memory (MODULES_USE_ADMIN_API=true
                forces admin)
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKENDS = frozenset({"rpc", "admin", "memory"})


class ModulesConfig(BaseSettings):
    """
    Typed SDK configuration. Deployment identity (GAE_SERVICE, GAE_VERSION,
    ...) is not read here; see tier0_core.identity.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Backend selection ─────────────────────────────────────────────────────
    backend: str = Field(default="rpc", alias="MODULES_BACKEND")
    use_admin_api: bool = Field(default=False, alias="MODULES_USE_ADMIN_API")

    # ── Project ───────────────────────────────────────────────────────────────
    project_id: str | None = Field(default=None, alias="MODULES_PROJECT_ID")

    # ── RPC transport ─────────────────────────────────────────────────────────
    rpc_url: str = Field(
        default="http://localhost:8089/rpc_http", alias="MODULES_RPC_URL"
    )
    default_hostname: str | None = Field(
        default=None, alias="DEFAULT_VERSION_HOSTNAME"
    )

    # ── Admin API transport ───────────────────────────────────────────────────
    admin_api_url: str = Field(
        default="https://appengine.googleapis.com/v1",
        alias="MODULES_ADMIN_API_URL",
    )
    admin_access_token: SecretStr | None = Field(
        default=None, alias="MODULES_ADMIN_ACCESS_TOKEN"
    )
    metadata_token_url: str = Field(
        default=(
            "http://metadata.google.internal/computeMetadata/v1/instance/"
            "service-accounts/default/token"
        ),
        alias="MODULES_METADATA_TOKEN_URL",
    )

    request_timeout: float = Field(default=10.0, alias="MODULES_REQUEST_TIMEOUT")

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="MODULES_LOG_LEVEL")
    log_format: str = Field(default="json", alias="MODULES_LOG_FORMAT")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v.lower() not in BACKENDS:
            raise ValueError(f"backend must be one of {sorted(BACKENDS)}, got {v!r}")
        return v.lower()

    @property
    def resolved_backend(self) -> str:
        """Backend name after applying the MODULES_USE_ADMIN_API switch."""
        if self.use_admin_api:
            return "admin"
        return self.backend


@lru_cache(maxsize=1)
def get_config() -> ModulesConfig:
    """
    Return the singleton config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return ModulesConfig()


def _reset_config() -> None:
    """For tests — clear the config cache."""
    get_config.cache_clear()


__all__ = ["ModulesConfig", "get_config", "BACKENDS"]
