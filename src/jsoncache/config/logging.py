"""Logging setup shared by the CLI and embedding applications."""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import ConfigurationError

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_LEVELS: Final[dict[str, int]] = logging.getLevelNamesMapping()


def get_log_level(default: int = logging.INFO) -> int:
    """Return the level named by ``JSONCACHE_LOG_LEVEL`` (e.g. ``DEBUG``)."""

    value = os.getenv("JSONCACHE_LOG_LEVEL")
    if value is None or not value.strip():
        return default
    try:
        return _LEVELS[value.strip().upper()]
    except KeyError:
        raise ConfigurationError(f"Invalid JSONCACHE_LOG_LEVEL={value!r}") from None


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger for CLI output.

    ``level`` defaults to ``JSONCACHE_LOG_LEVEL`` or INFO. SQLAlchemy's engine
    logger stays at WARNING unless DEBUG is requested, so merge summaries are
    not drowned in SQL echo. Pass ``force=True`` to reconfigure in tests.
    """

    resolved = get_log_level() if level is None else level
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if resolved <= logging.DEBUG else logging.WARNING
    )
