"""
modules_sdk.tier3_platform.traffic
───────────────────────────────────
Default-version selection from a module's traffic split.
"""
from __future__ import annotations

from collections.abc import Mapping

from modules_sdk.tier0_core.errors import NoDefaultVersionError
from modules_sdk.tier0_core.logging import get_logger

log = get_logger(__name__)


def select_default_version(
    allocations: Mapping[str, float], module: str | None = None
) -> str:
    """
    Return the version that serves as default for a traffic split.

    A version carrying all traffic (weight 1.0) wins outright. Otherwise the
    highest weight wins, and equal weights resolve to the lexicographically
    smallest version id, so the result does not depend on mapping order.

    Raises NoDefaultVersionError when ``allocations`` is empty.
    """
    best: str | None = None
    best_weight = -1.0

    for version, weight in allocations.items():
        if weight == 1.0:
            best = version
            break
        if weight > best_weight:
            best, best_weight = version, weight
        elif weight == best_weight and best is not None and version < best:
            best = version

    if best is None:
        label = f" for module '{module}'" if module else ""
        raise NoDefaultVersionError(
            f"Could not determine default version{label}.", module=module
        )

    log.debug("modules.default_version_selected", module=module, version=best)
    return best


__all__ = ["select_default_version"]
