"""Port for the persistent object store consumed by the merge engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Mapping, Sequence

    from jsoncache.domain.schema import EntitySchema, ModelSchema, RelationshipDescriptor


@runtime_checkable
class PersistenceContext(Protocol):
    """A scope of uncommitted changes that can be saved or rolled back.

    Contexts are two-level: a child context saves into its parent in memory,
    the main context saves to the durable backing store.
    """

    @property
    def has_changes(self) -> bool: ...

    def save(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class ObjectStore(Protocol):
    """Schema-driven access to stored objects addressed by entity name + identifier."""

    @property
    def schema(self) -> ModelSchema: ...

    def identifier_attribute(self, entity_name: str) -> str:
        """Return the identifier attribute name; raise ``NoSuchEntity`` if unknown."""
        ...

    def entity_name_of(self, obj: object) -> str: ...

    def entity_schema_of(self, obj: object) -> EntitySchema: ...

    def fetch_by_key(
        self, entity_name: str, identifier: Hashable, context: PersistenceContext
    ) -> object | None:
        """Return the stored object or ``None``; raise ``StoreError`` on I/O failure."""
        ...

    def fetch_by_keys(
        self, entity_name: str, identifiers: Iterable[Hashable], context: PersistenceContext
    ) -> Sequence[object]: ...

    def insert_new(self, entity_name: str, context: PersistenceContext) -> object: ...

    def set_attributes(self, obj: object, dictionary: Mapping[str, object]) -> None:
        """Assign every schema attribute present in ``dictionary``; ignore other keys."""
        ...

    def relationships_of(self, obj: object) -> list[RelationshipDescriptor]: ...

    def set_relationship(self, obj: object, name: str, target: object | None) -> None: ...

    def get_value(self, obj: object, name: str) -> object: ...

    def identifier_of(self, obj: object) -> Hashable: ...

    def main_context(self) -> PersistenceContext:
        """Return the process-wide main context; raise ``StoreUnavailable`` if absent."""
        ...

    def new_child_context(self) -> PersistenceContext: ...

    def save(self, context: PersistenceContext) -> None:
        """Save ``context``; roll it back and raise ``StoreError`` on failure."""
        ...
