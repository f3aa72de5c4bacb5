from __future__ import annotations

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING, cast

import pytest

from jsoncache.adapters.model_file import load_model
from jsoncache.adapters.sqlalchemy import SqlAlchemyObjectStore
from jsoncache.app import JSONCache
from jsoncache.config import CacheConfig
from jsoncache.config.storage import IN_MEMORY_URI
from jsoncache.domain.casing import Casing
from jsoncache.domain.dates import DateFormat
from tests.helpers.music import MusicPayload, stage_music

os.environ.setdefault("DATABASE_URI", IN_MEMORY_URI)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from jsoncache.domain.schema import ModelSchema

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(scope="session")
def model_dir() -> Path:
    return DATA_DIR / "models"


@pytest.fixture(scope="session")
def music_payload() -> MusicPayload:
    with (DATA_DIR / "bands.json").open(encoding="utf-8") as handle:
        return cast("MusicPayload", json.load(handle))


@pytest.fixture
def music_schema(model_dir: Path) -> ModelSchema:
    return load_model("Music", model_dir)


@pytest.fixture
def travel_schema(model_dir: Path) -> ModelSchema:
    return load_model("Travel", model_dir)


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(casing=Casing.SNAKE_CASE, date_format=DateFormat.ISO_WITH_SEPARATORS)


@pytest.fixture
def sqlite_store(music_schema: ModelSchema, cache_config: CacheConfig) -> Iterator[SqlAlchemyObjectStore]:
    store = SqlAlchemyObjectStore(music_schema, dates=cache_config.dates)
    store.startup(database_uri=IN_MEMORY_URI)
    try:
        yield store
    finally:
        store.shutdown()


@pytest.fixture
def travel_store(travel_schema: ModelSchema) -> Iterator[SqlAlchemyObjectStore]:
    store = SqlAlchemyObjectStore(travel_schema)
    store.startup(database_uri=IN_MEMORY_URI)
    try:
        yield store
    finally:
        store.shutdown()


@pytest.fixture
def cache(cache_config: CacheConfig, model_dir: Path) -> Iterator[JSONCache]:
    json_cache = JSONCache(cache_config)
    json_cache.bootstrap("Music", model_dir=model_dir, in_memory=True).unwrap()
    try:
        yield json_cache
    finally:
        json_cache.shutdown()


@pytest.fixture
def loaded_cache(cache: JSONCache, music_payload: MusicPayload) -> JSONCache:
    stage_music(cache, music_payload)
    cache.apply_changes_sync().unwrap()
    return cache
