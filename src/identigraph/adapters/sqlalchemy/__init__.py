"""SQLAlchemy adapter package for identigraph."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCompanyRepository,
    SqlAlchemyContactRecordRepository,
    SqlAlchemyContactRepository,
    SqlAlchemyIdentityRepository,
    SqlAlchemyOrganizationRepository,
)

__all__ = [
    "SqlAlchemyCompanyRepository",
    "SqlAlchemyContactRecordRepository",
    "SqlAlchemyContactRepository",
    "SqlAlchemyIdentityRepository",
    "SqlAlchemyOrganizationRepository",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
]
