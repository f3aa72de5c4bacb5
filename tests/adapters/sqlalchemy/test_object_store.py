from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from jsoncache.adapters.sqlalchemy import SqlAlchemyObjectStore, StartupError
from jsoncache.config.storage import IN_MEMORY_URI
from jsoncache.domain.errors import BadState, NoSuchEntity, StoreError, StoreUnavailable

if TYPE_CHECKING:
    from jsoncache.domain.schema import ModelSchema


def _insert(store: SqlAlchemyObjectStore, entity_name: str, values: dict[str, object]) -> object:
    obj = store.insert_new(entity_name, store.main_context())
    store.set_attributes(obj, values)
    return obj


def test_store_requires_startup(music_schema: ModelSchema) -> None:
    store = SqlAlchemyObjectStore(music_schema)

    assert not store.is_started
    with pytest.raises(StoreUnavailable):
        store.main_context()
    with pytest.raises(StoreUnavailable):
        store.new_child_context()


def test_startup_requires_force_for_reconfiguration(music_schema: ModelSchema) -> None:
    store = SqlAlchemyObjectStore(music_schema)
    store.startup(database_uri=IN_MEMORY_URI)
    first_engine = store.engine
    try:
        with pytest.raises(StartupError):
            store.startup(database_uri=IN_MEMORY_URI)

        store.startup(database_uri=IN_MEMORY_URI, force=True)
        assert store.engine is not first_engine
    finally:
        store.shutdown()
    assert not store.is_started


def test_startup_with_malformed_uri_raises_store_error(music_schema: ModelSchema) -> None:
    store = SqlAlchemyObjectStore(music_schema)

    with pytest.raises(StoreError):
        store.startup(database_uri="garbage")
    assert not store.is_started


def test_integer_bounds_are_accepted(sqlite_store: SqlAlchemyObjectStore) -> None:
    oldest = _insert(sqlite_store, "Musician", {"name": "Oldest", "born": -(2**63)})
    youngest = _insert(sqlite_store, "Musician", {"name": "Youngest", "born": 2**63 - 1})
    context = sqlite_store.main_context()
    sqlite_store.save(context)

    assert sqlite_store.get_value(oldest, "born") == -(2**63)
    assert sqlite_store.get_value(youngest, "born") == 2**63 - 1


def test_fetch_by_key_and_keys(sqlite_store: SqlAlchemyObjectStore) -> None:
    for name in ("Bryan Ferry", "Brian Eno", "David Sylvian"):
        _insert(sqlite_store, "Musician", {"name": name})
    context = sqlite_store.main_context()
    sqlite_store.save(context)

    ferry = sqlite_store.fetch_by_key("Musician", "Bryan Ferry", context)
    found = sqlite_store.fetch_by_keys("Musician", ["Brian Eno", "David Sylvian", "Mick Karn"], context)

    assert ferry is not None
    assert sqlite_store.identifier_of(ferry) == "Bryan Ferry"
    assert sorted(str(sqlite_store.identifier_of(obj)) for obj in found) == [
        "Brian Eno",
        "David Sylvian",
    ]
    assert sqlite_store.fetch_by_key("Musician", "Mick Karn", context) is None
    assert sqlite_store.fetch_by_keys("Musician", [], context) == []
    with pytest.raises(NoSuchEntity):
        sqlite_store.fetch_by_key("Artist", "Bryan Ferry", context)


def test_set_attributes_coerces_declared_types(sqlite_store: SqlAlchemyObjectStore) -> None:
    album = _insert(
        sqlite_store,
        "Album",
        {"name": "Avalon", "released": "1982-05-28T00:00:00Z", "rating": 5, "producer": "Rhett Davies"},
    )
    musician = _insert(
        sqlite_store, "Musician", {"name": "Mick Karn", "born": "1958", "deceased": "yes"}
    )

    assert sqlite_store.get_value(album, "released") == datetime(1982, 5, 28, tzinfo=UTC)
    assert sqlite_store.get_value(album, "rating") == 5.0
    assert not hasattr(album, "producer")
    assert sqlite_store.get_value(musician, "born") == 1958
    assert sqlite_store.get_value(musician, "deceased") is True


def test_set_attributes_accepts_null(sqlite_store: SqlAlchemyObjectStore) -> None:
    album = _insert(sqlite_store, "Album", {"name": "Siren", "label": "Island"})

    sqlite_store.set_attributes(album, {"label": None})

    assert sqlite_store.get_value(album, "label") is None


@pytest.mark.parametrize(
    ("entity_name", "values"),
    [
        ("Musician", {"name": "Brian Eno", "born": 1948.5}),
        ("Musician", {"name": "Brian Eno", "born": 10**20}),
        ("Musician", {"name": "Brian Eno", "born": -(2**63) - 1}),
        ("Musician", {"name": "Brian Eno", "born": True}),
        ("Musician", {"name": "Brian Eno", "deceased": "maybe"}),
        ("Musician", {"name": ["Brian", "Eno"]}),
        ("Album", {"name": "Siren", "released": "October 1975"}),
        ("Album", {"name": "Siren", "rating": "great"}),
    ],
)
def test_set_attributes_rejects_uncoercible_values(
    sqlite_store: SqlAlchemyObjectStore, entity_name: str, values: dict[str, object]
) -> None:
    obj = sqlite_store.insert_new(entity_name, sqlite_store.main_context())

    with pytest.raises(BadState):
        sqlite_store.set_attributes(obj, values)


def test_set_relationship_validates_destination(sqlite_store: SqlAlchemyObjectStore) -> None:
    album = _insert(sqlite_store, "Album", {"name": "Siren"})
    musician = _insert(sqlite_store, "Musician", {"name": "Bryan Ferry"})

    with pytest.raises(BadState):
        sqlite_store.set_relationship(album, "band", musician)
    with pytest.raises(BadState):
        sqlite_store.set_relationship(album, "producer", musician)


def test_relationships_of_lists_schema_relationships(sqlite_store: SqlAlchemyObjectStore) -> None:
    member = _insert(sqlite_store, "BandMember", {"id": "Roxy Music/Bryan Ferry"})

    names = [relationship.name for relationship in sqlite_store.relationships_of(member)]

    assert names == ["band", "musician"]
    assert sqlite_store.identifier_attribute("BandMember") == "id"
    assert sqlite_store.entity_schema_of(member).name == "BandMember"
