"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from enum import StrEnum


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(f"Missing configuration for: {missing_list}")

    return values


def env_choice[TChoice: StrEnum](name: str, choices: type[TChoice], default: TChoice) -> TChoice:
    """Return the enum member named by an environment variable, or ``default``."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return choices(value.strip())
    except ValueError:
        allowed = ", ".join(member.value for member in choices)
        raise ConfigurationError(f"Invalid {name}={value!r}; expected one of: {allowed}") from None
