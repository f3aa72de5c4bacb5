"""Application facade tying configuration, store, staging and merging together."""

from __future__ import annotations

import asyncio
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from jsoncache.adapters.model_file import load_model
from jsoncache.adapters.sqlalchemy import SqlAlchemyObjectStore
from jsoncache.config import CacheConfig, get_database_config
from jsoncache.domain.errors import StoreUnavailable
from jsoncache.domain.merge import Aborted, MergeEngine
from jsoncache.domain.result import Failure, Success, capture
from jsoncache.domain.serialization import Serializer
from jsoncache.domain.staging import StagingBuffer

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Mapping

    from sqlalchemy.engine import Engine

    from jsoncache.domain.merge import Committed
    from jsoncache.domain.result import Result
    from jsoncache.domain.staging import JSONDict

log = getLogger(__name__)


class JSONCache:
    """Stage JSON payloads, merge them into the store and read objects back.

    One instance owns its configuration, staging buffer and store; several
    instances can coexist (e.g. in tests) without sharing state.
    """

    def __init__(self, config: CacheConfig | None = None) -> None:
        self.config = config or CacheConfig()
        self.staging = StagingBuffer(self.config.converter)
        self._store: SqlAlchemyObjectStore | None = None
        self._engine: MergeEngine | None = None

    # bootstrapping -------------------------------------------------------------

    def bootstrap(
        self,
        model_name: str,
        *,
        model_dir: Path | str,
        in_memory: bool = False,
        database_uri: str | None = None,
        engine: Engine | None = None,
    ) -> Result[None]:
        """Load the model, map it and start the store."""

        def _bootstrap() -> None:
            schema = load_model(model_name, Path(model_dir))
            store = SqlAlchemyObjectStore(schema, dates=self.config.dates)
            uri = database_uri
            if engine is None and uri is None:
                uri = get_database_config(in_memory=in_memory).uri
            self.shutdown()
            store.startup(engine=engine, database_uri=uri)
            self._store = store
            self._engine = MergeEngine(store, self.staging)
            log.info("JSONCache bootstrapped with model %s", schema.name)

        return capture(_bootstrap)

    def shutdown(self) -> None:
        if self._store is not None:
            self._store.shutdown()
        self._store = None
        self._engine = None

    @property
    def store(self) -> SqlAlchemyObjectStore:
        if self._store is None:
            raise StoreUnavailable("JSONCache not bootstrapped")
        return self._store

    @property
    def serializer(self) -> Serializer:
        return Serializer(self.store, self.config.converter, self.config.dates)

    # staging and merging -------------------------------------------------------

    def stage_changes(
        self,
        dictionaries: Mapping[str, object] | Iterable[Mapping[str, object]],
        entity_name: str,
    ) -> None:
        self.staging.stage(dictionaries, entity_name)

    async def apply_changes(self) -> Result[Committed]:
        """Merge everything staged so far in one all-or-nothing cycle."""

        if self._engine is None:
            return Failure(StoreUnavailable("JSONCache not bootstrapped"))
        outcome = await self._engine.apply()
        if isinstance(outcome, Aborted):
            return Failure(outcome.error)
        return Success(outcome)

    def apply_changes_sync(self) -> Result[Committed]:
        return asyncio.run(self.apply_changes())

    # reading -------------------------------------------------------------------

    def fetch_object(self, entity_name: str, identifier: Hashable) -> Result[object | None]:
        return capture(
            lambda: self.store.fetch_by_key(entity_name, identifier, self.store.main_context())
        )

    def fetch_objects(
        self, entity_name: str, identifiers: Iterable[Hashable]
    ) -> Result[list[object]]:
        return capture(
            lambda: list(
                self.store.fetch_by_keys(entity_name, identifiers, self.store.main_context())
            )
        )

    def to_json(self, obj: object) -> JSONDict:
        return self.serializer.to_json(obj)

    def jsonify(self, value: object) -> JSONDict:
        return self.serializer.jsonify(value)
