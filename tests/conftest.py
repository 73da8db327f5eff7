from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from identigraph.adapters.sqlalchemy import start_mappers
from identigraph.adapters.sqlalchemy.migrations import upgrade_head
from identigraph.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIdentityUnitOfWork,
    prepare_engine,
    shutdown,
    startup,
)
from identigraph.domain.model import Organization

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = prepare_engine(create_engine("sqlite+pysqlite:///:memory:", future=True))
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyIdentityUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyIdentityUnitOfWork:
        return SqlAlchemyIdentityUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def organization(
    sqlite_unit_of_work: Callable[[], SqlAlchemyIdentityUnitOfWork],
) -> Organization:
    tenant = Organization(name="Acme DevRel")
    with sqlite_unit_of_work() as uow:
        uow.repositories.organizations.add(tenant)
        uow.commit()
    return tenant


@pytest.fixture
def other_organization(
    sqlite_unit_of_work: Callable[[], SqlAlchemyIdentityUnitOfWork],
) -> Organization:
    tenant = Organization(name="Globex DevRel")
    with sqlite_unit_of_work() as uow:
        uow.repositories.organizations.add(tenant)
        uow.commit()
    return tenant
