"""Ports for persisting identity graph aggregates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from identigraph.domain.model import (
    Company,
    Contact,
    Identity,
    IdentityKey,
    IdentityType,
    Organization,
    UpsertOutcome,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class IdentityCollision:
    """Contacts of one tenant that claim the same ``(type, value)``.

    ``contacts`` is ordered oldest first.
    """

    type: IdentityType
    value: str
    contacts: tuple[Contact, ...]


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class OrganizationRepository(Repository[Organization], Protocol):
    def get(self, organization_id: UUID) -> Organization | None: ...


@runtime_checkable
class ContactRepository(Repository[Contact], Protocol):
    """Persistence contract for contacts."""

    def get(self, contact_id: UUID) -> Contact | None: ...

    def get_in_organization(self, organization_id: UUID, contact_id: UUID) -> Contact | None: ...

    def find_by_email(self, organization_id: UUID, email: str) -> Contact | None:
        """Case-insensitive match on the primary email field."""
        ...

    def find_by_github_field(self, organization_id: UUID, login: str) -> Contact | None:
        """Case-insensitive match on the legacy ``github`` field."""
        ...

    def existing_ids(self, contact_ids: Iterable[UUID]) -> set[UUID]:
        """Return the subset of ``contact_ids`` that exist in any organization."""
        ...

    def count_in_company(self, organization_id: UUID, company_id: UUID) -> int: ...

    def delete(self, contact: Contact) -> None: ...

    def list_email_collisions(
        self, organization_id: UUID, *, limit: int
    ) -> Sequence[IdentityCollision]:
        """Groups of contacts sharing a non-empty email, at most ``limit`` groups."""
        ...


@runtime_checkable
class CompanyRepository(Repository[Company], Protocol):
    """Persistence contract for companies."""

    def get(self, company_id: UUID) -> Company | None: ...

    def find_by_domain(self, organization_id: UUID, domain: str) -> Company | None: ...

    def find_by_github_org(self, organization_id: UUID, github_org: str) -> Company | None: ...

    def list_companies(self, organization_id: UUID, *, limit: int) -> Sequence[Company]:
        """First ``limit`` companies of the tenant in creation order."""
        ...

    def try_add(self, company: Company) -> bool:
        """Insert ``company`` unless another writer claimed its domain first.

        Returns ``False`` on a uniqueness conflict; the caller re-reads the winner.
        """
        ...


@runtime_checkable
class IdentityRepository(Protocol):
    """Persistence contract for identity facts."""

    def find_owner(
        self, organization_id: UUID, identity_type: IdentityType, value: str
    ) -> Contact | None:
        """Contact of ``organization_id`` owning ``(identity_type, value)``, if any."""
        ...

    def list_for_contact(self, contact_id: UUID) -> Sequence[Identity]: ...

    def upsert(
        self,
        *,
        contact_id: UUID,
        identity_type: IdentityType,
        value: str,
        confidence: float,
        verified: bool,
    ) -> UpsertOutcome:
        """Assert an identity for a contact.

        A value already owned by another contact is left untouched and reported
        as ``UpsertOutcome.OWNED_BY_OTHER``; that is not an error.
        """
        ...

    def find_overlapping(
        self,
        organization_id: UUID,
        keys: Iterable[IdentityKey],
        *,
        exclude_contact_id: UUID,
    ) -> Sequence[Identity]:
        """Identities matching ``keys`` owned by other contacts of the tenant."""
        ...

    def list_identity_collisions(
        self, organization_id: UUID, *, limit: int, offset: int = 0
    ) -> Sequence[IdentityCollision]:
        """Groups of contacts claiming the same identity, at most ``limit`` groups.

        Groups come in a stable order so ``offset`` pages through them.

        Identity rows and the legacy contact handle fields both count as claims.
        """
        ...

    def move_to(self, *, source_contact_id: UUID, target_contact_id: UUID) -> tuple[int, int]:
        """Repoint identities; drop those the target already owns.

        Returns ``(moved, discarded)``.
        """
        ...


@runtime_checkable
class ContactRecordRepository(Protocol):
    """Records owned by other subsystems that follow a contact through merges."""

    def count_signals(self, contact_id: UUID) -> int: ...

    def reassign_signals(self, *, source_contact_id: UUID, target_contact_id: UUID) -> int: ...

    def reassign_activities(
        self, *, source_contact_id: UUID, target_contact_id: UUID
    ) -> int: ...

    def reassign_deals(self, *, source_contact_id: UUID, target_contact_id: UUID) -> int: ...

    def reassign_email_enrollments(
        self, *, source_contact_id: UUID, target_contact_id: UUID
    ) -> int: ...

    def move_tags(self, *, source_contact_id: UUID, target_contact_id: UUID) -> int:
        """Move tag links, skipping tags the target already carries."""
        ...
