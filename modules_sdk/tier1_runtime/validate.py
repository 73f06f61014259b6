"""
modules_sdk.tier1_runtime.validate
───────────────────────────────────
Argument validation via Pydantic v2 strict models. Raises InvalidArgumentError
(not raw Pydantic errors) before any backend call is made.
"""
from __future__ import annotations

import re
from typing import Any, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

T = TypeVar("T", bound=BaseModel)

_DIGITS = re.compile(r"[0-9]+")


def validate_input(model: Type[T], data: Any) -> T:
    """
    Validate raw data against a Pydantic model.
    Raises modules_sdk InvalidArgumentError (not Pydantic's) on failure.

    Usage:
        args = validate_input(VersionArgs, {"module": module, "version": version})
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        from modules_sdk.tier0_core.errors import InvalidArgumentError

        fields = {
            ".".join(str(loc) for loc in err["loc"]): err["msg"]
            for err in exc.errors()
        }
        names = ", ".join(fields) or model.__name__
        raise InvalidArgumentError(
            f"Invalid argument: {names}.",
            fields=fields,
        ) from exc


# ── Argument models ───────────────────────────────────────────────────────────

class _Strict(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)


class ModuleArgs(_Strict):
    module: str | None = None


class VersionArgs(_Strict):
    module: str | None = None
    version: str | None = None


class InstancesArgs(VersionArgs):
    instances: int = Field(ge=0)


class HostnameArgs(VersionArgs):
    instance: Union[int, str, None] = None


def parse_instance(instance: int | str) -> int:
    """
    Normalise an instance id given as int or a string of ASCII digits to a
    non-negative int. Strings are rendered verbatim in hostnames, so signs,
    whitespace and underscores are rejected.
    """
    from modules_sdk.tier0_core.errors import InvalidArgumentError

    if isinstance(instance, str) and not _DIGITS.fullmatch(instance):
        raise InvalidArgumentError(
            "Instance must be a non-negative integer.",
            fields={"instance": f"not an integer: {instance!r}"},
        )
    try:
        index = int(instance)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(
            "Instance must be a non-negative integer.",
            fields={"instance": f"not an integer: {instance!r}"},
        ) from exc
    if index < 0:
        raise InvalidArgumentError(
            "Instance must be a non-negative integer.",
            fields={"instance": f"negative: {instance!r}"},
        )
    return index


__all__ = [
    "validate_input", "parse_instance", "ModuleArgs", "VersionArgs",
    "InstancesArgs", "HostnameArgs",
]
