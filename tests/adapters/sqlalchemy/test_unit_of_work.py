from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from jsoncache.adapters.sqlalchemy import (
    SqlAlchemyChildContext,
    SqlAlchemyObjectStore,
    create_store_engine,
    enable_sqlite_savepoints,
)
from jsoncache.adapters.sqlalchemy.unit_of_work import _emit_begin
from jsoncache.config.storage import IN_MEMORY_URI

if TYPE_CHECKING:
    from pathlib import Path

    from jsoncache.domain.schema import ModelSchema


def _stage_band(store: SqlAlchemyObjectStore, context: SqlAlchemyChildContext, name: str) -> None:
    band = store.insert_new("Band", context)
    store.set_attributes(band, {"name": name})


def test_in_memory_engine_shares_one_connection() -> None:
    engine = create_store_engine(IN_MEMORY_URI)
    try:
        assert isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_file_engine_uses_regular_pool(tmp_path: Path) -> None:
    engine = create_store_engine(f"sqlite+pysqlite:///{tmp_path / 'cache.db'}")
    try:
        assert not isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_child_rollback_discards_only_child_changes(sqlite_store: SqlAlchemyObjectStore) -> None:
    main = sqlite_store.main_context()
    kept = sqlite_store.new_child_context()
    _stage_band(sqlite_store, kept, "Japan")
    kept.save()
    kept.close()

    discarded = sqlite_store.new_child_context()
    _stage_band(sqlite_store, discarded, "Roxy Music")
    discarded.rollback()
    discarded.close()

    assert sqlite_store.fetch_by_key("Band", "Japan", main) is not None
    assert sqlite_store.fetch_by_key("Band", "Roxy Music", main) is None


def test_saved_child_is_not_durable_until_main_saves(sqlite_store: SqlAlchemyObjectStore) -> None:
    main = sqlite_store.main_context()
    child = sqlite_store.new_child_context()
    _stage_band(sqlite_store, child, "Japan")
    sqlite_store.save(child)
    child.close()

    assert main.has_changes
    main.rollback()

    assert sqlite_store.fetch_by_key("Band", "Japan", main) is None


def test_closing_unsaved_child_rolls_back(sqlite_store: SqlAlchemyObjectStore) -> None:
    child = sqlite_store.new_child_context()
    _stage_band(sqlite_store, child, "Japan")

    child.close()

    assert not child.has_changes
    assert sqlite_store.fetch_by_key("Band", "Japan", sqlite_store.main_context()) is None


def test_main_save_is_durable(music_schema: ModelSchema, tmp_path: Path) -> None:
    uri = f"sqlite+pysqlite:///{tmp_path / 'cache.db'}"
    store = SqlAlchemyObjectStore(music_schema)
    store.startup(database_uri=uri)
    child = store.new_child_context()
    _stage_band(store, child, "Japan")
    store.save(child)
    child.close()
    store.save(store.main_context())
    store.shutdown()

    reopened = SqlAlchemyObjectStore(music_schema)
    reopened.startup(database_uri=uri)
    try:
        band = reopened.fetch_by_key("Band", "Japan", reopened.main_context())
        assert band is not None
        assert reopened.identifier_of(band) == "Japan"
    finally:
        reopened.shutdown()


def test_savepoint_hooks_are_installed_once() -> None:
    engine = create_store_engine(IN_MEMORY_URI)
    try:
        enable_sqlite_savepoints(engine)

        assert event.contains(engine, "begin", _emit_begin)
        with engine.connect() as connection, connection.begin():
            connection.exec_driver_sql("SELECT 1")
    finally:
        engine.dispose()


def test_caller_supplied_engine_supports_child_rollback(
    music_schema: ModelSchema, tmp_path: Path
) -> None:
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'cache.db'}",
        connect_args={"check_same_thread": False},
    )
    store = SqlAlchemyObjectStore(music_schema)
    store.startup(engine=engine)
    try:
        assert event.contains(engine, "begin", _emit_begin)
        main = store.main_context()
        kept = store.new_child_context()
        _stage_band(store, kept, "Japan")
        store.save(kept)
        kept.close()

        discarded = store.new_child_context()
        _stage_band(store, discarded, "Roxy Music")
        discarded.session.flush()
        discarded.rollback()
        discarded.close()
        store.save(main)

        assert store.fetch_by_key("Band", "Japan", main) is not None
        assert store.fetch_by_key("Band", "Roxy Music", main) is None
    finally:
        store.shutdown()
