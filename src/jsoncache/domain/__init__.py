"""Domain core: schema, casing, staging, merging and serialization."""

from __future__ import annotations

from .casing import Casing, CasingConverter, Conversion
from .dates import DateCodec, DateFormat
from .errors import (
    BadState,
    JSONCacheError,
    ModelInitializationError,
    ModelNotFound,
    NoSuchEntity,
    StoreError,
    StoreUnavailable,
)
from .merge import Aborted, ApplyResult, Committed, MergeEngine, MergeState
from .result import Failure, Result, Success
from .schema import (
    AttributeDescriptor,
    AttributeType,
    EntitySchema,
    ModelSchema,
    RelationshipDescriptor,
)
from .serialization import Serializer
from .staging import StagingBuffer

__all__ = [
    "Aborted",
    "ApplyResult",
    "AttributeDescriptor",
    "AttributeType",
    "BadState",
    "Casing",
    "CasingConverter",
    "Committed",
    "Conversion",
    "DateCodec",
    "DateFormat",
    "EntitySchema",
    "Failure",
    "JSONCacheError",
    "MergeEngine",
    "MergeState",
    "ModelInitializationError",
    "ModelNotFound",
    "ModelSchema",
    "NoSuchEntity",
    "RelationshipDescriptor",
    "Result",
    "Serializer",
    "StagingBuffer",
    "StoreError",
    "StoreUnavailable",
    "Success",
]
