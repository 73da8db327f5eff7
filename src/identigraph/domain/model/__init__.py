"""Public domain model surface."""

from __future__ import annotations

from identigraph.domain.model.audit import AutoMergeRecord, SharedIdentity
from identigraph.domain.model.company import Company
from identigraph.domain.model.contact import MERGEABLE_FIELDS, UNKNOWN_FIRST_NAME, Contact
from identigraph.domain.model.entity import Entity, TenantEntity, new_id, utcnow
from identigraph.domain.model.enums import (
    CompanySize,
    EntityType,
    IdentityType,
    ResolutionSource,
    UpsertOutcome,
)
from identigraph.domain.model.identity import Identity, IdentityKey
from identigraph.domain.model.organization import AUTO_MERGE_HISTORY_KEY, Organization
from identigraph.domain.model.records import (
    Activity,
    ContactTag,
    Deal,
    EmailEnrollment,
    Signal,
    Tag,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "TenantEntity",
    "new_id",
    "utcnow",
    # tenant
    "Organization",
    "AUTO_MERGE_HISTORY_KEY",
    # people and accounts
    "Contact",
    "Company",
    "MERGEABLE_FIELDS",
    "UNKNOWN_FIRST_NAME",
    # identity facts
    "Identity",
    "IdentityKey",
    # dependent records
    "Activity",
    "ContactTag",
    "Deal",
    "EmailEnrollment",
    "Signal",
    "Tag",
    # audit
    "AutoMergeRecord",
    "SharedIdentity",
    # enums
    "CompanySize",
    "EntityType",
    "IdentityType",
    "ResolutionSource",
    "UpsertOutcome",
]
