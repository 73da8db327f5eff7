"""Read-only view of everything known about one contact's identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from identigraph.domain.errors import NotFoundError

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from identigraph.domain.model import IdentityType
    from identigraph.domain.ports import IdentityUnitOfWorkFactory


@dataclass(frozen=True, slots=True)
class CompanySummary:
    id: UUID
    name: str
    domain: str | None


@dataclass(frozen=True, slots=True)
class IdentityEntry:
    type: IdentityType
    value: str
    verified: bool
    confidence: float
    created_at: datetime


@dataclass(frozen=True, slots=True)
class IdentityGraph:
    contact_id: UUID
    contact_name: str
    contact_email: str | None
    company: CompanySummary | None
    identities: tuple[IdentityEntry, ...]


def get_identity_graph(
    organization_id: UUID,
    contact_id: UUID,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
) -> IdentityGraph:
    """Identities of ``contact_id``, most trusted first, with its company."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        contact = repositories.contacts.get_in_organization(organization_id, contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id, organization_id=organization_id)

        company = None
        if contact.company_id is not None:
            company = repositories.companies.get(contact.company_id)

        identities = sorted(
            repositories.identities.list_for_contact(contact.id),
            key=lambda identity: (-identity.confidence, identity.created_at),
        )
        return IdentityGraph(
            contact_id=contact.id,
            contact_name=contact.display_name,
            contact_email=contact.email,
            company=(
                CompanySummary(id=company.id, name=company.name, domain=company.domain)
                if company is not None
                else None
            ),
            identities=tuple(
                IdentityEntry(
                    type=identity.type,
                    value=identity.value,
                    verified=identity.verified,
                    confidence=identity.confidence,
                    created_at=identity.created_at,
                )
                for identity in identities
            ),
        )
