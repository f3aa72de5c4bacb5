from __future__ import annotations

from importlib import metadata

from jsoncache.app import JSONCache
from jsoncache.config import CacheConfig
from jsoncache.domain import (
    Aborted,
    BadState,
    Casing,
    Committed,
    DateFormat,
    Failure,
    JSONCacheError,
    ModelInitializationError,
    ModelNotFound,
    NoSuchEntity,
    StoreError,
    StoreUnavailable,
    Success,
)

try:
    __version__ = metadata.version("jsoncache")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "Aborted",
    "BadState",
    "CacheConfig",
    "Casing",
    "Committed",
    "DateFormat",
    "Failure",
    "JSONCache",
    "JSONCacheError",
    "ModelInitializationError",
    "ModelNotFound",
    "NoSuchEntity",
    "StoreError",
    "StoreUnavailable",
    "Success",
]
