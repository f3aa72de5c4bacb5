"""Merge engine: upsert staged dictionaries, resolve relationships, commit.

One ``apply`` call is one merge cycle:

1. Upsert - every staged dictionary is matched against the store by
   ``(entity name, identifier)`` and its scalar attributes are written to the
   matched or newly inserted object.
2. Resolve - every to-one relationship of every object touched in the cycle
   is wired, preferring objects staged in the same batch over store lookups.
   This is what lets a batch reference objects regardless of staging order.
3. Commit - the child context is saved on the worker thread, then the main
   context is saved back on the event loop thread.

Any failure aborts the whole cycle: nothing from it is committed and the
drained dictionaries are put back into the staging buffer for a retry.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from jsoncache.domain.errors import BadState, JSONCacheError

if TYPE_CHECKING:
    from jsoncache.domain.ports.store import ObjectStore, PersistenceContext
    from jsoncache.domain.staging import JSONDict, StagedDictionaries, StagingBuffer

log = getLogger(__name__)

type CompositeKey = tuple[str, Hashable]


def composite_key(entity_name: str, identifier: object) -> CompositeKey:
    if not isinstance(identifier, Hashable):
        raise BadState(f"Identifier for {entity_name} is not a scalar: {identifier!r}")
    return (entity_name, identifier)


class MergeState(StrEnum):
    IDLE = "idle"
    UPSERT = "upsert"
    RESOLVE = "resolve"
    COMMIT = "commit"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass(slots=True)
class MergeIndex:
    """Objects and originating dictionaries touched in one merge cycle."""

    objects_by_key: dict[CompositeKey, object] = field(default_factory=dict[CompositeKey, object])
    dictionaries_by_key: dict[CompositeKey, JSONDict] = field(
        default_factory=dict[CompositeKey, "JSONDict"]
    )

    def record(self, key: CompositeKey, obj: object, dictionary: JSONDict) -> None:
        previous = self.dictionaries_by_key.get(key)
        self.objects_by_key[key] = obj
        self.dictionaries_by_key[key] = dictionary if previous is None else previous | dictionary

    def object_for(self, key: CompositeKey) -> object | None:
        return self.objects_by_key.get(key)

    def __len__(self) -> int:
        return len(self.objects_by_key)


@dataclass(slots=True)
class MergeCounters:
    inserted: int = 0
    updated: int = 0
    relationships_set: int = 0
    relationships_cleared: int = 0
    unresolved: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class Committed:
    """Every staged dictionary was merged and both contexts were saved."""

    counters: MergeCounters
    status: Literal[MergeState.COMMITTED] = MergeState.COMMITTED


@dataclass(frozen=True, slots=True, kw_only=True)
class Aborted:
    """The cycle failed at ``failed_in``; nothing from it was committed."""

    error: JSONCacheError
    failed_in: MergeState
    status: Literal[MergeState.ABORTED] = MergeState.ABORTED


type ApplyResult = Committed | Aborted


@dataclass(slots=True)
class _MergeCycle:
    store: ObjectStore
    staged: StagedDictionaries
    index: MergeIndex = field(default_factory=MergeIndex)
    counters: MergeCounters = field(default_factory=MergeCounters)
    stage: MergeState = MergeState.IDLE

    def run(self) -> None:
        """Run upsert, resolve and the child save inside a fresh child context."""

        context = self.store.new_child_context()
        try:
            self.stage = MergeState.UPSERT
            self._upsert(context)
            self.stage = MergeState.RESOLVE
            self._resolve(context)
            self.stage = MergeState.COMMIT
            self.store.save(context)
        except Exception:
            context.rollback()
            raise
        finally:
            context.close()

    def _upsert(self, context: PersistenceContext) -> None:
        for entity_name, dictionaries in self.staged.items():
            identifier_name = self.store.identifier_attribute(entity_name)
            for dictionary in dictionaries:
                if dictionary.get(identifier_name) is None:
                    raise BadState(
                        f"missing identifier {identifier_name!r} in staged {entity_name}"
                    )
                identifier = dictionary[identifier_name]
                key = composite_key(entity_name, identifier)

                obj = self.index.object_for(key)
                if obj is None:
                    obj = self.store.fetch_by_key(entity_name, identifier, context)
                    if obj is None:
                        obj = self.store.insert_new(entity_name, context)
                        self.counters.inserted += 1
                    else:
                        self.counters.updated += 1

                self.index.record(key, obj, dictionary)
                self.store.set_attributes(obj, dictionary)

    def _resolve(self, context: PersistenceContext) -> None:
        for key, obj in self.index.objects_by_key.items():
            dictionary = self.index.dictionaries_by_key[key]
            for relationship in self.store.relationships_of(obj):
                if relationship.is_to_many or relationship.name not in dictionary:
                    continue

                target_identifier = dictionary[relationship.name]
                if target_identifier is None:
                    self.store.set_relationship(obj, relationship.name, None)
                    self.counters.relationships_cleared += 1
                    continue

                destination = relationship.destination_entity_name
                target = self.index.object_for(composite_key(destination, target_identifier))
                if target is None:
                    target = self.store.fetch_by_key(destination, target_identifier, context)
                if target is None:
                    log.debug(
                        "Leaving %s.%s unset for %r: %s %r not found",
                        key[0],
                        relationship.name,
                        key[1],
                        destination,
                        target_identifier,
                    )
                    self.counters.unresolved += 1
                    continue

                self.store.set_relationship(obj, relationship.name, target)
                self.counters.relationships_set += 1


class MergeEngine:
    """Drains a ``StagingBuffer`` into an ``ObjectStore`` one cycle at a time."""

    def __init__(self, store: ObjectStore, staging: StagingBuffer) -> None:
        self.store = store
        self.staging = staging
        self.state = MergeState.IDLE
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    async def apply(self) -> ApplyResult:
        """Merge everything staged so far; never raises a ``JSONCacheError``."""

        async with self._loop_lock():
            return await self._apply()

    def _loop_lock(self) -> asyncio.Lock:
        # locks bind to one event loop and synchronous callers start a new loop per call
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _apply(self) -> ApplyResult:
        try:
            main_context = self.store.main_context()
        except JSONCacheError as exc:
            return self._abort(exc, MergeState.IDLE)

        watermark = self.staging.generation
        staged = self.staging.drain()
        log.info(
            "Applying staged changes: entities=%s, dictionaries=%d",
            sorted(staged),
            sum(len(dictionaries) for dictionaries in staged.values()),
        )

        cycle = _MergeCycle(self.store, staged)
        try:
            await asyncio.to_thread(cycle.run)
            cycle.stage = MergeState.COMMIT
            self.store.save(main_context)
        except JSONCacheError as exc:
            self.staging.restore(staged, since=watermark)
            return self._abort(exc, cycle.stage)
        except Exception:
            self.staging.restore(staged, since=watermark)
            self.state = MergeState.ABORTED
            raise

        self.state = MergeState.COMMITTED
        counters = cycle.counters
        log.info(
            "Committed merge cycle: objects=%d, inserted=%d, updated=%d, "
            "relationships=%d, unresolved=%d",
            len(cycle.index),
            counters.inserted,
            counters.updated,
            counters.relationships_set,
            counters.unresolved,
        )
        return Committed(counters=counters)

    def _abort(self, error: JSONCacheError, failed_in: MergeState) -> Aborted:
        self.state = MergeState.ABORTED
        log.warning("Merge cycle aborted during %s: %s", failed_in, error)
        return Aborted(error=error, failed_in=failed_in)
