"""Domain port definitions for adapters."""

from __future__ import annotations

from .cooldown import CooldownCache, pair_key
from .enrichment import GitHubProfile, GitHubProfileSource, ProfileLookupError
from .notifications import Notification, Notifier
from .persistence import (
    CompanyRepository,
    ContactRecordRepository,
    ContactRepository,
    IdentityCollision,
    IdentityRepository,
    OrganizationRepository,
    Repository,
)
from .unit_of_work import (
    IdentityRepositories,
    IdentityUnitOfWork,
    IdentityUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CompanyRepository",
    "ContactRecordRepository",
    "ContactRepository",
    "CooldownCache",
    "GitHubProfile",
    "GitHubProfileSource",
    "IdentityCollision",
    "IdentityRepositories",
    "IdentityRepository",
    "IdentityUnitOfWork",
    "IdentityUnitOfWorkFactory",
    "Notification",
    "Notifier",
    "OrganizationRepository",
    "ProfileLookupError",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
    "pair_key",
]
