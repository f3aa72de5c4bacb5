"""SQLAlchemy mapping metadata built from a ``ModelSchema``.

Every bootstrap gets its own ``orm.registry``: one table and one dynamically
created class per entity, mapped imperatively. The identifier attribute is
the primary key. Each to-one relationship owns a foreign-key column, except
the non-owning side of a one-to-one pair, which reads its partner's column
through ``uselist=False``. Each to-many relationship is mapped as the
``back_populates`` inverse of the to-one side, so collections populate when
the to-one edge is set.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Final

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import relationship

from jsoncache.domain.errors import NoSuchEntity
from jsoncache.domain.schema import AttributeType

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.types import TypeEngine

    from jsoncache.domain.schema import EntitySchema, ModelSchema, RelationshipDescriptor

log = logging.getLogger(__name__)

_CAMEL_BOUNDARY: Final[re.Pattern[str]] = re.compile(r"(?<=[a-z0-9])([A-Z])")

NAMING_CONVENTION: Final[dict[str, str]] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


COLUMN_TYPES: Final[dict[AttributeType, type[TypeEngine[Any]]]] = {
    AttributeType.STRING: String,
    AttributeType.INTEGER: Integer,
    AttributeType.FLOAT: Float,
    AttributeType.BOOLEAN: Boolean,
    AttributeType.DATE: UTCDateTime,
}


class StoredObject:
    """Base class of every dynamically mapped entity class."""

    __entity_name__: ClassVar[str]
    __identifier_attribute__: ClassVar[str]

    def __repr__(self) -> str:
        identifier = getattr(self, self.__identifier_attribute__, None)
        return f"<{self.__entity_name__} {identifier!r}>"


def snake_name(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def foreign_key_attribute(relationship_name: str) -> str:
    return f"_{relationship_name}_key"


@dataclass(frozen=True, slots=True)
class SchemaMapping:
    """Tables and mapped classes for one ``ModelSchema``."""

    schema: ModelSchema
    registry: orm.registry
    classes: dict[str, type[StoredObject]]
    tables: dict[str, Table]

    @property
    def metadata(self) -> MetaData:
        return self.registry.metadata

    def class_for(self, entity_name: str) -> type[StoredObject]:
        try:
            return self.classes[entity_name]
        except KeyError:
            raise NoSuchEntity(entity_name) from None

    def entity_name_of(self, obj: object) -> str:
        if not isinstance(obj, StoredObject) or obj.__entity_name__ not in self.classes:
            raise NoSuchEntity(type(obj).__name__)
        return obj.__entity_name__


def build_mappings(schema: ModelSchema) -> SchemaMapping:
    """Create tables and map one class per entity in a fresh registry."""

    registry = orm.registry()
    registry.metadata.naming_convention = NAMING_CONVENTION

    classes: dict[str, type[StoredObject]] = {
        entity.name: type(
            entity.name,
            (StoredObject,),
            {
                "__entity_name__": entity.name,
                "__identifier_attribute__": entity.identifier_attribute,
            },
        )
        for entity in schema
    }
    tables = {entity.name: _build_table(entity, schema, registry.metadata) for entity in schema}

    for entity in schema:
        properties = {
            rel.name: _build_relationship(entity, rel, schema, classes, tables)
            for rel in entity.relationships.values()
        }
        registry.map_imperatively(classes[entity.name], tables[entity.name], properties=properties)

    registry.configure()
    log.debug("Mapped %d entities for model %s", len(classes), schema.name)
    return SchemaMapping(schema=schema, registry=registry, classes=classes, tables=tables)


def create_all_tables(mapping: SchemaMapping, engine: Engine) -> None:
    mapping.metadata.create_all(engine)


def _build_table(entity: EntitySchema, schema: ModelSchema, metadata: MetaData) -> Table:
    identifier = entity.identifier_attribute
    columns: list[Column[Any]] = [
        Column(
            snake_name(attribute.name),
            COLUMN_TYPES[attribute.type](),
            key=attribute.name,
            primary_key=attribute.name == identifier,
            nullable=attribute.name != identifier,
        )
        for attribute in entity.attributes.values()
    ]

    for rel in entity.to_one_relationships:
        if not schema.owns_foreign_key(entity, rel):
            continue
        destination = schema.entity(rel.destination_entity_name)
        destination_identifier = destination.attribute(destination.identifier_attribute)
        if destination_identifier is None:
            continue
        columns.append(
            Column(
                f"{snake_name(rel.name)}_{snake_name(destination_identifier.name)}",
                COLUMN_TYPES[destination_identifier.type](),
                ForeignKey(
                    f"{snake_name(destination.name)}.{snake_name(destination_identifier.name)}"
                ),
                key=foreign_key_attribute(rel.name),
                nullable=True,
            )
        )

    return Table(snake_name(entity.name), metadata, *columns)


def _build_relationship(
    entity: EntitySchema,
    rel: RelationshipDescriptor,
    schema: ModelSchema,
    classes: dict[str, type[StoredObject]],
    tables: dict[str, Table],
) -> Any:
    target = classes[rel.destination_entity_name]
    if not schema.owns_foreign_key(entity, rel):
        # to-many and non-owning one-to-one sides always declare an inverse
        destination_table = tables[rel.destination_entity_name]
        foreign_key = destination_table.c[foreign_key_attribute(rel.inverse_name or "")]
        return relationship(
            target,
            foreign_keys=[foreign_key],
            back_populates=rel.inverse_name,
            uselist=rel.is_to_many,
        )

    table = tables[entity.name]
    options: dict[str, Any] = {}
    if rel.destination_entity_name == entity.name:
        options["remote_side"] = [table.c[entity.identifier_attribute]]
    return relationship(
        target,
        foreign_keys=[table.c[foreign_key_attribute(rel.name)]],
        back_populates=rel.inverse_name,
        **options,
    )
