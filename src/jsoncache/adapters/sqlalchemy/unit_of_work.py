"""Engine lifecycle and the two-level persistence contexts.

The main context owns a ``Session`` and saves to the database. A child
context is a SAVEPOINT on that session: saving it releases the savepoint, so
its changes become part of the main transaction without being durable yet;
rolling it back discards only what happened inside the savepoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jsoncache.domain.errors import StoreUnavailable

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.orm import SessionTransaction


class StartupError(RuntimeError):
    """Raised when the store is started twice without ``force``."""


def create_store_engine(database_uri: str) -> Engine:
    """Create an engine suitable for the worker/main context split.

    SQLite connections are shared across threads; in-memory databases use a
    single static connection so every context sees the same data.
    """

    url = make_url(database_uri)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_uri, future=True)

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(database_uri, future=True, **options)
    enable_sqlite_savepoints(engine)
    return engine


def enable_sqlite_savepoints(engine: Engine) -> None:
    """Make ``begin_nested`` work on a pysqlite engine; safe to call twice.

    Only connections opened after the call are affected.
    """

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit BEGIN ourselves
    if event.contains(engine, "begin", _emit_begin):
        return
    event.listen(engine, "connect", _disable_driver_transactions)
    event.listen(engine, "begin", _emit_begin)


def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
    _ = connection_record
    dbapi_connection.isolation_level = None


def _emit_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


class SqlAlchemyMainContext:
    """Process-wide context; saving commits to the database."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @property
    def has_changes(self) -> bool:
        session = self.session
        return bool(session.new or session.dirty or session.deleted) or session.in_transaction()

    def save(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def close(self) -> None:
        self.session.close()


class SqlAlchemyChildContext:
    """Savepoint-scoped context whose parent is the main context's session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._transaction: SessionTransaction = session.begin_nested()

    @property
    def has_changes(self) -> bool:
        return self._transaction.is_active

    def save(self) -> None:
        if self._transaction.is_active:
            self._transaction.commit()

    def rollback(self) -> None:
        if self._transaction.is_active:
            self._transaction.rollback()

    def close(self) -> None:
        # an unsaved child is discarded
        self.rollback()


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None
    _main_context: SqlAlchemyMainContext | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        if self._main_context is not None:
            self._main_context.close()
        self._main_context = None
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StoreUnavailable(
                "SQLAlchemy store not initialised. Call startup() before using the store."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory

    @property
    def main_context(self) -> SqlAlchemyMainContext:
        if self._main_context is None:
            self._main_context = SqlAlchemyMainContext(self.session_factory())
        return self._main_context
