"""
modules_sdk.tier0_core.logging
───────────────────────────────
structlog loggers for the SDK. Output goes to the "modules_sdk" stdlib
logger only, so applications keep control of the root logger. Admin API
credentials are masked before any renderer sees them.

Configure via: MODULES_LOG_LEVEL, MODULES_LOG_FORMAT=json|console
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

SDK_LOGGER = "modules_sdk"

_CREDENTIAL_KEYS = frozenset({
    "token", "access_token", "authorization", "credential", "api_key",
})


def _mask_credentials(logger: Any, method: str, event_dict: dict) -> dict:
    for key in event_dict.keys() & _CREDENTIAL_KEYS:
        event_dict[key] = "[REDACTED]"
    return event_dict


def _setup() -> None:
    from modules_sdk.tier0_core.config import get_config

    config = get_config()
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    pre_chain: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _mask_credentials,
    ]
    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.log_format.lower() == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))
    sdk_logger = logging.getLogger(SDK_LOGGER)
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(level)


_configured = False


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Structured logger for an SDK module, e.g.
    ``get_logger(__name__).info("modules.stop_version", module="api", version="v3")``.
    """
    global _configured
    if not _configured:
        _setup()
        _configured = True
    return structlog.get_logger(name or SDK_LOGGER)


__all__ = ["get_logger"]
