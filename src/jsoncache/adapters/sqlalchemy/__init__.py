"""SQLAlchemy adapter package for jsoncache."""

from __future__ import annotations

from .mappings import SchemaMapping, StoredObject, build_mappings, create_all_tables
from .store import SqlAlchemyObjectStore
from .unit_of_work import (
    SqlAlchemyChildContext,
    SqlAlchemyMainContext,
    StartupError,
    create_store_engine,
    enable_sqlite_savepoints,
)

__all__ = [
    "SchemaMapping",
    "SqlAlchemyChildContext",
    "SqlAlchemyMainContext",
    "SqlAlchemyObjectStore",
    "StartupError",
    "StoredObject",
    "build_mappings",
    "create_all_tables",
    "create_store_engine",
    "enable_sqlite_savepoints",
]
