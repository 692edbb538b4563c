"""Typed environment variable lookup.

Usage:
    from llmsweep.utils.env import get_env

    level = get_env("LLMSWEEP_LOG_LEVEL", default="INFO")
    engine = get_env("LLMSWEEP_ENGINE", log=True)
    interval = get_env("LLMSWEEP_SAMPLE_INTERVAL", default=1.0, as_type=float)
"""

from __future__ import annotations

import os
from typing import Any, TypeVar, cast, overload

T = TypeVar("T")


class EnvVarError(Exception):
    """Base exception for environment variable errors."""

    pass


class EnvVarTypeError(EnvVarError):
    """Raised when an environment variable cannot be converted to the expected type."""

    def __init__(self, name: str, value: str, expected_type: type) -> None:
        self.name = name
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Cannot convert {name}='{value}' to {expected_type.__name__}")


def _coerce_type(name: str, value: str, as_type: type) -> Any:
    """Convert a string value to the specified type.

    Raises:
        EnvVarTypeError: If conversion fails.
    """
    try:
        if as_type is bool:
            return value.strip().lower() not in ("false", "0", "", "no", "off")
        if as_type is list:
            return [item.strip() for item in value.split(",") if item.strip()]
        return as_type(value)
    except (ValueError, TypeError) as e:
        raise EnvVarTypeError(name, value, as_type) from e


def _log_access(name: str, value: str | None) -> None:
    """Log the lookup at DEBUG if the logger is configured."""
    from llmsweep.utils.logger import Logger

    if Logger.is_configured():
        Logger.get("env").debug(f"ENV GET {name}={value}")


@overload
def get_env(name: str, *, default: T, as_type: type[T], log: bool = ...) -> T:
    ...


@overload
def get_env(name: str, *, default: T, log: bool = ...) -> T:
    ...


@overload
def get_env(name: str, *, as_type: type[T], log: bool = ...) -> T | None:
    ...


@overload
def get_env(name: str, *, log: bool = ...) -> str | None:
    ...


def get_env(
    name: str,
    *,
    default: T | None = None,
    as_type: type[T] | None = None,
    log: bool = False,
) -> T | str | None:
    """Get an environment variable with optional type coercion.

    Empty values are treated as unset, so ``LLMSWEEP_ENGINE=`` falls back
    to the default rather than producing an empty command.

    Args:
        name: Environment variable name.
        default: Returned when the variable is unset or empty.
        as_type: bool, int, float, str, list (comma-separated) or any
            callable type accepting a string.
        log: If True, log the access at DEBUG.

    Raises:
        EnvVarTypeError: If as_type is specified and conversion fails.

    Examples:
        >>> get_env("LLMSWEEP_SAMPLE_INTERVAL", default=1.0, as_type=float)
        1.0
    """
    value = os.environ.get(name)

    if log:
        _log_access(name, value)

    if value is None or value == "":
        return default

    if as_type is not None:
        return cast(T, _coerce_type(name, value, as_type))

    return value
