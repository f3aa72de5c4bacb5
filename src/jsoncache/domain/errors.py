"""Error kinds surfaced by the cache."""

from __future__ import annotations


class JSONCacheError(Exception):
    """Base class for every error the cache reports to callers."""


class ModelNotFound(JSONCacheError):
    """Raised when the schema source for a model cannot be located."""

    def __init__(self, model_name: str) -> None:
        super().__init__(f"Model not found: {model_name}")
        self.model_name = model_name


class ModelInitializationError(JSONCacheError):
    """Raised when a schema source exists but cannot be turned into a model."""

    def __init__(self, source: str, reason: str | None = None) -> None:
        message = f"Could not initialise model from {source}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source = source
        self.reason = reason


class StoreUnavailable(JSONCacheError):
    """Raised when the object store is used before it has been started."""

    def __init__(self, message: str = "Object store not initialised") -> None:
        super().__init__(message)


class NoSuchEntity(JSONCacheError):
    """Raised when an entity name is absent from the schema."""

    def __init__(self, entity_name: str) -> None:
        super().__init__(f"No such entity: {entity_name}")
        self.entity_name = entity_name


class BadState(JSONCacheError):
    """Raised when a payload or schema violates an internal invariant."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StoreError(JSONCacheError):
    """Wraps a failure raised by the underlying store (I/O, transaction)."""

    def __init__(self, wrapped: BaseException) -> None:
        super().__init__(f"Store error: {wrapped}")
        self.wrapped = wrapped
