"""Duplicate detection: contacts of one tenant that share an identity value."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from identigraph.config.identity import DEFAULT_DUPLICATE_GROUP_LIMIT
from identigraph.domain.model import SharedIdentity

from .confidence import confidence_for_type

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from identigraph.domain.model import Contact
    from identigraph.domain.ports import (
        IdentityCollision,
        IdentityRepositories,
        IdentityUnitOfWorkFactory,
    )

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DuplicateCandidate:
    contact_id: UUID
    name: str
    email: str | None
    shared_identities: tuple[SharedIdentity, ...]
    overall_confidence: float


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """A primary contact (the oldest) and the contacts that look like it."""

    primary_contact_id: UUID
    primary_name: str
    primary_email: str | None
    duplicates: tuple[DuplicateCandidate, ...]

    @property
    def contact_ids(self) -> frozenset[UUID]:
        return frozenset(
            {self.primary_contact_id, *(candidate.contact_id for candidate in self.duplicates)}
        )


def find_duplicates(
    organization_id: UUID,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    limit: int = DEFAULT_DUPLICATE_GROUP_LIMIT,
) -> list[DuplicateGroup]:
    """Surface candidate duplicate groups for review or merging. Read only."""

    with unit_of_work_factory() as uow:
        return detect_duplicates(uow.repositories, organization_id, limit=limit)


def detect_duplicates(
    repositories: IdentityRepositories,
    organization_id: UUID,
    *,
    limit: int = DEFAULT_DUPLICATE_GROUP_LIMIT,
) -> list[DuplicateGroup]:
    email_groups = [
        group
        for collision in repositories.contacts.list_email_collisions(organization_id, limit=limit)
        if (group := _group_from_collision(collision)) is not None
    ]

    identity_groups: list[DuplicateGroup] = []
    seen: set[frozenset[UUID]] = set()
    offset = 0
    while len(identity_groups) < limit:
        page = repositories.identities.list_identity_collisions(
            organization_id, limit=limit, offset=offset
        )
        for collision in page:
            members = frozenset(contact.id for contact in collision.contacts)
            if members in seen:
                continue
            seen.add(members)
            if _covered_by(members, email_groups):
                continue
            group = _group_from_collision(collision)
            if group is not None:
                identity_groups.append(group)
                if len(identity_groups) == limit:
                    break
        if len(page) < limit:
            break
        offset += limit

    groups = email_groups + identity_groups
    log.info(
        "Found %s duplicate groups in organization %s (%s by email)",
        len(groups),
        organization_id,
        len(email_groups),
    )
    return groups


def _covered_by(members: frozenset[UUID], groups: Iterable[DuplicateGroup]) -> bool:
    """True when some earlier group already pairs two of ``members``."""
    return any(len(members & group.contact_ids) > 1 for group in groups)


def _group_from_collision(collision: IdentityCollision) -> DuplicateGroup | None:
    contacts = _unique_contacts(collision.contacts)
    if len(contacts) < 2:  # noqa: PLR2004
        return None

    score = confidence_for_type(collision.type)
    shared = (SharedIdentity(type=collision.type, value=collision.value, confidence=score),)
    primary, *rest = contacts
    return DuplicateGroup(
        primary_contact_id=primary.id,
        primary_name=primary.display_name,
        primary_email=primary.email,
        duplicates=tuple(
            DuplicateCandidate(
                contact_id=contact.id,
                name=contact.display_name,
                email=contact.email,
                shared_identities=shared,
                overall_confidence=score,
            )
            for contact in rest
        ),
    )


def _unique_contacts(contacts: Iterable[Contact]) -> list[Contact]:
    ordered: list[Contact] = []
    seen: set[UUID] = set()
    for contact in contacts:
        if contact.id in seen:
            continue
        seen.add(contact.id)
        ordered.append(contact)
    return ordered

