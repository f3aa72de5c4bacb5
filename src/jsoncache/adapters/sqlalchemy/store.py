"""Object store adapter backed by SQLAlchemy sessions."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from jsoncache.adapters.sqlalchemy.mappings import (
    StoredObject,
    build_mappings,
    create_all_tables,
)
from jsoncache.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyChildContext,
    SqlAlchemyMainContext,
    StartupError,
    _AdapterState,
    create_store_engine,
    enable_sqlite_savepoints,
)
from jsoncache.domain.dates import DateCodec
from jsoncache.domain.errors import BadState, StoreError
from jsoncache.domain.schema import AttributeType

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Mapping

    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session

    from jsoncache.adapters.sqlalchemy.mappings import SchemaMapping
    from jsoncache.domain.ports.store import PersistenceContext
    from jsoncache.domain.schema import (
        AttributeDescriptor,
        EntitySchema,
        ModelSchema,
        RelationshipDescriptor,
    )

log = getLogger(__name__)

_TRUE_STRINGS = frozenset({"true", "yes", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "0"})
# INTEGER columns are signed 64-bit on every supported backend
_INTEGER_MIN = -(2**63)
_INTEGER_MAX = 2**63 - 1


class SqlAlchemyObjectStore:
    """Schema-driven object store over one SQLAlchemy engine."""

    def __init__(self, schema: ModelSchema, *, dates: DateCodec | None = None) -> None:
        self.mapping: SchemaMapping = build_mappings(schema)
        self.dates = dates or DateCodec()
        self._state = _AdapterState()

    # lifecycle ---------------------------------------------------------------

    def startup(
        self,
        *,
        engine: Engine | None = None,
        database_uri: str | None = None,
        force: bool = False,
    ) -> None:
        """Bind the store to an engine and create the schema's tables.

        A caller-supplied SQLite engine gets the same SAVEPOINT hooks as one
        built by ``create_store_engine``. It must still share its connection
        across threads (``check_same_thread=False``, and a ``StaticPool`` for
        in-memory databases), since merge passes run on a worker thread.
        """

        if self._state.engine is not None and not force:
            raise StartupError("Object store already initialised. Pass force=True to reconfigure.")
        if engine is None and database_uri is None:
            raise StartupError("Either engine or database_uri is required")

        try:
            if engine is None:
                resolved_engine = create_store_engine(cast("str", database_uri))
            else:
                resolved_engine = engine
                if resolved_engine.dialect.name == "sqlite":
                    enable_sqlite_savepoints(resolved_engine)
            create_all_tables(self.mapping, resolved_engine)
        except SQLAlchemyError as exc:
            raise StoreError(exc) from exc
        self._state.engine = resolved_engine
        log.info("Object store started for model %s on %s", self.schema.name, resolved_engine.url)

    def shutdown(self) -> None:
        """Close the main context and dispose the engine."""

        engine = self._state.engine
        self._state.engine = None
        if engine is not None:
            engine.dispose()

    @property
    def is_started(self) -> bool:
        return self._state.engine is not None

    @property
    def engine(self) -> Engine | None:
        return self._state.engine

    # contexts ----------------------------------------------------------------

    def main_context(self) -> SqlAlchemyMainContext:
        return self._state.main_context

    def new_child_context(self) -> SqlAlchemyChildContext:
        return SqlAlchemyChildContext(self._state.main_context.session)

    def save(self, context: PersistenceContext) -> None:
        if not context.has_changes:
            return
        try:
            context.save()
        except SQLAlchemyError as exc:
            context.rollback()
            raise StoreError(exc) from exc

    # schema introspection ----------------------------------------------------

    @property
    def schema(self) -> ModelSchema:
        return self.mapping.schema

    def identifier_attribute(self, entity_name: str) -> str:
        return self.schema.entity(entity_name).identifier_attribute

    def entity_name_of(self, obj: object) -> str:
        return self.mapping.entity_name_of(obj)

    def entity_schema_of(self, obj: object) -> EntitySchema:
        return self.schema.entity(self.entity_name_of(obj))

    def relationships_of(self, obj: object) -> list[RelationshipDescriptor]:
        return list(self.entity_schema_of(obj).relationships.values())

    # reads -------------------------------------------------------------------

    def fetch_by_key(
        self, entity_name: str, identifier: Hashable, context: PersistenceContext
    ) -> StoredObject | None:
        entity_cls = self.mapping.class_for(entity_name)
        key = self._coerce_identifier(entity_name, identifier)
        try:
            return _session_of(context).get(entity_cls, key)
        except SQLAlchemyError as exc:
            raise StoreError(exc) from exc

    def fetch_by_keys(
        self, entity_name: str, identifiers: Iterable[Hashable], context: PersistenceContext
    ) -> list[StoredObject]:
        entity_cls = self.mapping.class_for(entity_name)
        identifier_name = self.identifier_attribute(entity_name)
        keys = [self._coerce_identifier(entity_name, identifier) for identifier in identifiers]
        if not keys:
            return []
        column = self.mapping.tables[entity_name].c[identifier_name]
        stmt = select(entity_cls).where(column.in_(keys))
        try:
            return list(_session_of(context).scalars(stmt))
        except SQLAlchemyError as exc:
            raise StoreError(exc) from exc

    def get_value(self, obj: object, name: str) -> object:
        return getattr(obj, name)

    def identifier_of(self, obj: object) -> Hashable:
        return cast("Hashable", getattr(obj, self.entity_schema_of(obj).identifier_attribute))

    # writes ------------------------------------------------------------------

    def insert_new(self, entity_name: str, context: PersistenceContext) -> StoredObject:
        obj = self.mapping.class_for(entity_name)()
        _session_of(context).add(obj)
        return obj

    def set_attributes(self, obj: object, dictionary: Mapping[str, object]) -> None:
        entity = self.entity_schema_of(obj)
        for attribute in entity.attributes.values():
            if attribute.name in dictionary:
                value = self._coerce(entity.name, attribute, dictionary[attribute.name])
                setattr(obj, attribute.name, value)

    def set_relationship(self, obj: object, name: str, target: object | None) -> None:
        entity = self.entity_schema_of(obj)
        relationship = entity.relationships.get(name)
        if relationship is None or relationship.is_to_many:
            raise BadState(f"{entity.name} has no to-one relationship {name!r}")
        if target is not None:
            target_entity = self.mapping.entity_name_of(target)
            if target_entity != relationship.destination_entity_name:
                raise BadState(
                    f"{entity.name}.{name} expects {relationship.destination_entity_name}, "
                    f"got {target_entity}"
                )
        setattr(obj, name, target)

    # coercion ----------------------------------------------------------------

    def _coerce_identifier(self, entity_name: str, identifier: Hashable) -> object:
        entity = self.schema.entity(entity_name)
        attribute = entity.attributes[entity.identifier_attribute]
        return self._coerce(entity_name, attribute, identifier)

    def _coerce(self, entity_name: str, attribute: AttributeDescriptor, value: object) -> object:
        if value is None:
            return None
        try:
            return _coerce_value(attribute.type, value, self.dates)
        except (TypeError, ValueError) as exc:
            raise BadState(
                f"Cannot store {value!r} in {entity_name}.{attribute.name} ({attribute.type})"
            ) from exc


def _session_of(context: PersistenceContext) -> Session:
    if not isinstance(context, SqlAlchemyMainContext | SqlAlchemyChildContext):
        raise BadState(f"Unsupported persistence context: {type(context).__name__}")
    return context.session


def _coerce_value(attribute_type: AttributeType, value: object, dates: DateCodec) -> object:  # noqa: PLR0911
    if attribute_type == AttributeType.DATE:
        return dates.parse(value)
    if isinstance(value, list | dict):
        raise TypeError("structured values cannot be stored in scalar attributes")
    if attribute_type == AttributeType.STRING:
        if isinstance(value, bool):
            raise TypeError("boolean given for string attribute")
        return value if isinstance(value, str) else str(value)
    if attribute_type == AttributeType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str) and value.lower() in _TRUE_STRINGS | _FALSE_STRINGS:
            return value.lower() in _TRUE_STRINGS
        raise ValueError("not a boolean")
    if isinstance(value, bool):
        raise TypeError("boolean given for numeric attribute")
    if attribute_type == AttributeType.INTEGER:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("fractional value for integer attribute")
        number = int(cast("int | float | str", value))
        if not _INTEGER_MIN <= number <= _INTEGER_MAX:
            raise ValueError("integer out of 64-bit range")
        return number
    return float(cast("int | float | str", value))


if TYPE_CHECKING:
    from jsoncache.domain.ports.store import ObjectStore

    def _conforms_to_port(store: SqlAlchemyObjectStore) -> ObjectStore:
        return store
