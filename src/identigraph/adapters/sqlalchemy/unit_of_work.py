"""SQLAlchemy-backed unit of work for the identity graph."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from identigraph.adapters.sqlalchemy.mappings import start_mappers
from identigraph.adapters.sqlalchemy.migrations import upgrade_head
from identigraph.adapters.sqlalchemy.repositories import (
    SqlAlchemyCompanyRepository,
    SqlAlchemyContactRecordRepository,
    SqlAlchemyContactRepository,
    SqlAlchemyIdentityRepository,
    SqlAlchemyOrganizationRepository,
)
from identigraph.config import get_database_config
from identigraph.domain.errors import TransientStoreError
from identigraph.domain.ports.unit_of_work import IdentityRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine

    from identigraph.config import DatabaseConfig


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call identigraph.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _sqlite_on_connect(dbapi_connection: Any, connection_record: object) -> None:
    _ = connection_record
    # let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest properly
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_on_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


def prepare_engine(engine: Engine) -> Engine:
    """Install SQLite connection hooks (foreign keys, savepoints); no-op elsewhere."""

    if engine.dialect.name != "sqlite":
        return engine
    if not event.contains(engine, "connect", _sqlite_on_connect):
        event.listen(engine, "connect", _sqlite_on_connect)
        event.listen(engine, "begin", _sqlite_on_begin)
    return engine


def create_store_engine(config: DatabaseConfig | None = None) -> Engine:
    """Build an engine for ``config`` with the store timeout applied."""

    resolved = config or get_database_config()
    engine = create_engine(resolved.uri, connect_args=resolved.connect_args(), future=True)
    return prepare_engine(engine)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, metadata, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is not None:
        resolved_engine = prepare_engine(engine)
    else:
        config = get_database_config()
        if database_uri is not None:
            config = config.with_uri(database_uri)
        resolved_engine = create_store_engine(config)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Connection loss and lock or pool timeouts leave the context as
    ``TransientStoreError``; everything else propagates unchanged.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        if isinstance(exc_value, OperationalError | PoolTimeoutError):
            raise TransientStoreError(f"Store unavailable: {exc_value}") from exc_value
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyIdentityUnitOfWork(BaseSqlAlchemyUnitOfWork[IdentityRepositories]):
    """Unit of work for resolution, dedup and merge."""

    def _build_repositories(self, session: Session) -> IdentityRepositories:
        return IdentityRepositories(
            organizations=SqlAlchemyOrganizationRepository(session),
            contacts=SqlAlchemyContactRepository(session),
            companies=SqlAlchemyCompanyRepository(session),
            identities=SqlAlchemyIdentityRepository(session),
            records=SqlAlchemyContactRecordRepository(session),
        )


if TYPE_CHECKING:
    from identigraph.domain.ports.unit_of_work import IdentityUnitOfWork

    _uow_check: IdentityUnitOfWork = SqlAlchemyIdentityUnitOfWork()
