"""Explicit description of the entity schema the cache merges into.

The schema is supplied from outside (see ``jsoncache.adapters.model_file``);
the merge engine and the store adapter only consume it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from jsoncache.domain.errors import ModelInitializationError, NoSuchEntity

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

IDENTIFIER_NAME: Final[str] = "id"


class AttributeType(StrEnum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True, slots=True)
class AttributeDescriptor:
    name: str
    type: AttributeType
    is_identifier: bool = False


@dataclass(frozen=True, slots=True)
class RelationshipDescriptor:
    """Directed edge from one entity type to another.

    Only to-one edges are written by the merge engine; a to-many edge is the
    inverse side of a to-one edge declared on its destination entity. Two
    to-one edges may be each other's inverse (one-to-one).
    """

    name: str
    destination_entity_name: str
    is_to_many: bool = False
    inverse_name: str | None = None


@dataclass(frozen=True, slots=True)
class EntitySchema:
    name: str
    attributes: dict[str, AttributeDescriptor] = field(
        default_factory=dict[str, AttributeDescriptor]
    )
    relationships: dict[str, RelationshipDescriptor] = field(
        default_factory=dict[str, RelationshipDescriptor]
    )

    @classmethod
    def build(
        cls,
        name: str,
        attributes: Iterable[AttributeDescriptor],
        relationships: Iterable[RelationshipDescriptor] = (),
    ) -> EntitySchema:
        return cls(
            name=name,
            attributes={attribute.name: attribute for attribute in attributes},
            relationships={relationship.name: relationship for relationship in relationships},
        )

    @property
    def identifier_attribute(self) -> str:
        """Name of the attribute that identifies instances of this entity."""

        candidates = [
            attribute.name
            for attribute in self.attributes.values()
            if attribute.name == IDENTIFIER_NAME or attribute.is_identifier
        ]
        if len(candidates) != 1:
            raise ModelInitializationError(
                self.name,
                f"expected exactly one identifier attribute, found {len(candidates)}",
            )
        return candidates[0]

    @property
    def to_one_relationships(self) -> list[RelationshipDescriptor]:
        return [rel for rel in self.relationships.values() if not rel.is_to_many]

    def attribute(self, name: str) -> AttributeDescriptor | None:
        return self.attributes.get(name)


@dataclass(frozen=True, slots=True)
class ModelSchema:
    """Named collection of entity schemas, validated on construction."""

    name: str
    entities: dict[str, EntitySchema] = field(default_factory=dict[str, EntitySchema])

    def __post_init__(self) -> None:
        for entity in self.entities.values():
            _ = entity.identifier_attribute
            for relationship in entity.relationships.values():
                self._validate_relationship(entity, relationship)

    @classmethod
    def build(cls, name: str, entities: Iterable[EntitySchema]) -> ModelSchema:
        return cls(name=name, entities={entity.name: entity for entity in entities})

    def __iter__(self) -> Iterator[EntitySchema]:
        return iter(self.entities.values())

    def __contains__(self, entity_name: object) -> bool:
        return entity_name in self.entities

    def entity(self, entity_name: str) -> EntitySchema:
        try:
            return self.entities[entity_name]
        except KeyError:
            raise NoSuchEntity(entity_name) from None

    def inverse_of(self, relationship: RelationshipDescriptor) -> RelationshipDescriptor | None:
        if relationship.inverse_name is None:
            return None
        destination = self.entity(relationship.destination_entity_name)
        return destination.relationships.get(relationship.inverse_name)

    def owns_foreign_key(self, entity: EntitySchema, relationship: RelationshipDescriptor) -> bool:
        """Whether ``relationship`` is stored as a foreign key on ``entity``.

        Every to-one edge owns its key, except for one side of a one-to-one
        pair: there the key lives with the side whose ``(entity, relationship)``
        names sort first.
        """

        if relationship.is_to_many:
            return False
        inverse = self.inverse_of(relationship)
        if inverse is None or inverse.is_to_many:
            return True
        return (entity.name, relationship.name) < (
            relationship.destination_entity_name,
            inverse.name,
        )

    def _validate_relationship(
        self, entity: EntitySchema, relationship: RelationshipDescriptor
    ) -> None:
        source = f"{self.name}.{entity.name}.{relationship.name}"
        destination = self.entities.get(relationship.destination_entity_name)
        if destination is None:
            raise ModelInitializationError(
                source, f"unknown destination entity {relationship.destination_entity_name}"
            )
        if relationship.name in entity.attributes:
            raise ModelInitializationError(source, "relationship shadows an attribute")
        if relationship.inverse_name is None:
            if relationship.is_to_many:
                raise ModelInitializationError(source, "to-many relationship requires an inverse")
            return
        inverse = destination.relationships.get(relationship.inverse_name)
        if (
            inverse is None
            or inverse.destination_entity_name != entity.name
            or inverse.inverse_name != relationship.name
        ):
            raise ModelInitializationError(
                source, f"inverse {relationship.inverse_name} does not point back"
            )
        if inverse is relationship:
            raise ModelInitializationError(source, "relationship cannot be its own inverse")
        if relationship.is_to_many and inverse.is_to_many:
            raise ModelInitializationError(source, "many-to-many relationships are not supported")
