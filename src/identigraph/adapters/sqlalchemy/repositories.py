"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import TYPE_CHECKING, cast

from sqlalchemy import (
    String,
    and_,
    cast as sql_cast,
    delete,
    func,
    literal,
    or_,
    select,
    union_all,
    update,
)
from sqlalchemy.exc import IntegrityError

from identigraph.adapters.sqlalchemy.mappings import (
    activity_table,
    company_table,
    contact_table,
    contact_tag_table,
    deal_table,
    email_enrollment_table,
    identity_table,
    signal_table,
)
from identigraph.domain.model import (
    Company,
    Contact,
    Identity,
    IdentityType,
    Organization,
    UpsertOutcome,
)
from identigraph.domain.ports import IdentityCollision

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import ColumnElement, CursorResult, Subquery, Table
    from sqlalchemy.orm import Session

    from identigraph.domain.model import IdentityKey


def _rowcount(result: object) -> int:
    return cast("CursorResult[object]", result).rowcount


def _sorted_contacts(contacts: Iterable[Contact]) -> tuple[Contact, ...]:
    return tuple(sorted(contacts, key=lambda contact: (contact.created_at, str(contact.id))))


def _handle(column: ColumnElement[str | None]) -> ColumnElement[str]:
    """SQL twin of ``normalize_handle``: trimmed, leading ``@`` dropped, lower-cased."""
    return func.lower(func.ltrim(func.trim(column), "@"))


class SqlAlchemyOrganizationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Organization) -> None:
        self.session.add(entity)

    def get(self, organization_id: uuid.UUID) -> Organization | None:
        return self.session.get(Organization, organization_id)


class SqlAlchemyContactRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Contact) -> None:
        self.session.add(entity)

    def get(self, contact_id: uuid.UUID) -> Contact | None:
        return self.session.get(Contact, contact_id)

    def get_in_organization(
        self, organization_id: uuid.UUID, contact_id: uuid.UUID
    ) -> Contact | None:
        contact = self.session.get(Contact, contact_id)
        if contact is None or not contact.belongs_to(organization_id):
            return None
        return contact

    def find_by_email(self, organization_id: uuid.UUID, email: str) -> Contact | None:
        stmt = (
            select(Contact)
            .where(contact_table.c.organization_id == organization_id)
            .where(func.lower(func.trim(contact_table.c.email)) == email.strip().lower())
            .order_by(contact_table.c.created_at, contact_table.c.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_github_field(self, organization_id: uuid.UUID, login: str) -> Contact | None:
        stmt = (
            select(Contact)
            .where(contact_table.c.organization_id == organization_id)
            .where(_handle(contact_table.c.github) == login.strip().lstrip("@").lower())
            .order_by(contact_table.c.created_at, contact_table.c.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def existing_ids(self, contact_ids: Iterable[uuid.UUID]) -> set[uuid.UUID]:
        wanted = list(contact_ids)
        if not wanted:
            return set()
        stmt = select(contact_table.c.id).where(contact_table.c.id.in_(wanted))
        return set(self.session.execute(stmt).scalars())

    def count_in_company(self, organization_id: uuid.UUID, company_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(contact_table)
            .where(contact_table.c.organization_id == organization_id)
            .where(contact_table.c.company_id == company_id)
        )
        return self.session.execute(stmt).scalar_one()

    def delete(self, contact: Contact) -> None:
        self.session.delete(contact)

    def list_email_collisions(
        self, organization_id: uuid.UUID, *, limit: int
    ) -> Sequence[IdentityCollision]:
        email_key = func.lower(func.trim(contact_table.c.email))
        tenant = and_(
            contact_table.c.organization_id == organization_id,
            contact_table.c.email.is_not(None),
            func.trim(contact_table.c.email) != "",
        )
        groups_stmt = (
            select(email_key.label("email"))
            .where(tenant)
            .group_by(email_key)
            .having(func.count() > 1)
            .order_by(email_key)
            .limit(limit)
        )
        emails = list(self.session.execute(groups_stmt).scalars())
        if not emails:
            return []

        members_stmt = select(Contact).where(tenant).where(email_key.in_(emails))
        by_email: defaultdict[str, list[Contact]] = defaultdict(list)
        for contact in self.session.execute(members_stmt).scalars():
            by_email[(contact.email or "").strip().lower()].append(contact)

        return [
            IdentityCollision(
                type=IdentityType.EMAIL, value=email, contacts=_sorted_contacts(by_email[email])
            )
            for email in emails
        ]


class SqlAlchemyCompanyRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Company) -> None:
        self.session.add(entity)

    def get(self, company_id: uuid.UUID) -> Company | None:
        return self.session.get(Company, company_id)

    def find_by_domain(self, organization_id: uuid.UUID, domain: str) -> Company | None:
        stmt = (
            select(Company)
            .where(company_table.c.organization_id == organization_id)
            .where(company_table.c.domain == domain)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_github_org(self, organization_id: uuid.UUID, github_org: str) -> Company | None:
        stmt = (
            select(Company)
            .where(company_table.c.organization_id == organization_id)
            .where(func.lower(company_table.c.github_org) == github_org.lower())
            .order_by(company_table.c.created_at, company_table.c.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_companies(self, organization_id: uuid.UUID, *, limit: int) -> Sequence[Company]:
        stmt = (
            select(Company)
            .where(company_table.c.organization_id == organization_id)
            .order_by(company_table.c.created_at, company_table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def try_add(self, company: Company) -> bool:
        try:
            with self.session.begin_nested():
                self.session.add(company)
        except IntegrityError:
            return False
        return True


class SqlAlchemyIdentityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_owner(
        self, organization_id: uuid.UUID, identity_type: IdentityType, value: str
    ) -> Contact | None:
        stmt = (
            select(Contact)
            .join(identity_table, identity_table.c.contact_id == contact_table.c.id)
            .where(contact_table.c.organization_id == organization_id)
            .where(identity_table.c.type == identity_type)
            .where(identity_table.c.value == value)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_contact(self, contact_id: uuid.UUID) -> Sequence[Identity]:
        stmt = (
            select(Identity)
            .where(identity_table.c.contact_id == contact_id)
            .order_by(identity_table.c.created_at, identity_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def upsert(
        self,
        *,
        contact_id: uuid.UUID,
        identity_type: IdentityType,
        value: str,
        confidence: float,
        verified: bool,
    ) -> UpsertOutcome:
        existing = self._get(identity_type, value)
        if existing is not None:
            return self._refresh(existing, contact_id, confidence, verified)

        identity = Identity(
            contact_id=contact_id,
            type=identity_type,
            value=value,
            confidence=confidence,
            verified=verified,
        )
        try:
            with self.session.begin_nested():
                self.session.add(identity)
        except IntegrityError:
            # a concurrent writer inserted the same fact first
            winner = self._get(identity_type, value)
            if winner is None:
                raise
            return self._refresh(winner, contact_id, confidence, verified)
        return UpsertOutcome.CREATED

    def find_overlapping(
        self,
        organization_id: uuid.UUID,
        keys: Iterable[IdentityKey],
        *,
        exclude_contact_id: uuid.UUID,
    ) -> Sequence[Identity]:
        matches = [
            and_(identity_table.c.type == identity_type, identity_table.c.value == value)
            for identity_type, value in keys
        ]
        if not matches:
            return []
        stmt = (
            select(Identity)
            .join(contact_table, identity_table.c.contact_id == contact_table.c.id)
            .where(contact_table.c.organization_id == organization_id)
            .where(identity_table.c.contact_id != exclude_contact_id)
            .where(or_(*matches))
            .order_by(identity_table.c.created_at, identity_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_identity_collisions(
        self, organization_id: uuid.UUID, *, limit: int, offset: int = 0
    ) -> Sequence[IdentityCollision]:
        claims = self._claims(organization_id)
        groups_stmt = (
            select(claims.c.type, claims.c.value)
            .group_by(claims.c.type, claims.c.value)
            .having(func.count(claims.c.contact_id.distinct()) > 1)
            .order_by(claims.c.type, claims.c.value)
            .limit(limit)
            .offset(offset)
        )
        groups = [(str(row.type), str(row.value)) for row in self.session.execute(groups_stmt)]
        if not groups:
            return []

        members_stmt = (
            select(claims.c.type, claims.c.value, claims.c.contact_id)
            .where(
                or_(
                    *(
                        and_(claims.c.type == kind, claims.c.value == value)
                        for kind, value in groups
                    )
                )
            )
            .distinct()
        )
        members: defaultdict[tuple[str, str], set[uuid.UUID]] = defaultdict(set)
        for row in self.session.execute(members_stmt):
            members[(str(row.type), str(row.value))].add(row.contact_id)

        contact_ids = set[uuid.UUID]().union(*members.values())
        contacts = {
            contact.id: contact
            for contact in self.session.execute(
                select(Contact).where(contact_table.c.id.in_(contact_ids))
            ).scalars()
        }
        return [
            IdentityCollision(
                type=IdentityType(kind),
                value=value,
                contacts=_sorted_contacts(
                    contacts[contact_id]
                    for contact_id in members[(kind, value)]
                    if contact_id in contacts
                ),
            )
            for kind, value in groups
        ]

    def move_to(
        self, *, source_contact_id: uuid.UUID, target_contact_id: uuid.UUID
    ) -> tuple[int, int]:
        owned = (
            select(identity_table.c.type, identity_table.c.value)
            .where(identity_table.c.contact_id == target_contact_id)
            .subquery()
        )
        conflicting = select(owned.c.value).where(
            owned.c.type == identity_table.c.type, owned.c.value == identity_table.c.value
        )
        discarded = _rowcount(
            self.session.execute(
                delete(identity_table)
                .where(identity_table.c.contact_id == source_contact_id)
                .where(conflicting.exists())
            )
        )
        moved = _rowcount(
            self.session.execute(
                update(identity_table)
                .where(identity_table.c.contact_id == source_contact_id)
                .values(contact_id=target_contact_id)
            )
        )
        return moved, discarded

    def _get(self, identity_type: IdentityType, value: str) -> Identity | None:
        stmt = (
            select(Identity)
            .where(identity_table.c.type == identity_type)
            .where(identity_table.c.value == value)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _refresh(
        existing: Identity, contact_id: uuid.UUID, confidence: float, verified: bool
    ) -> UpsertOutcome:
        if existing.contact_id != contact_id:
            return UpsertOutcome.OWNED_BY_OTHER
        existing.confidence = max(existing.confidence, confidence)
        existing.verified = existing.verified or verified
        return UpsertOutcome.UPDATED

    @staticmethod
    def _claims(organization_id: uuid.UUID) -> Subquery:
        """Every ``(type, value, contact_id)`` claim of the tenant.

        Identity rows plus the legacy handle columns on the contact itself.
        """

        tenant = contact_table.c.organization_id == organization_id
        stored = (
            select(
                sql_cast(identity_table.c.type, String).label("type"),
                identity_table.c.value.label("value"),
                identity_table.c.contact_id.label("contact_id"),
            )
            .join(contact_table, identity_table.c.contact_id == contact_table.c.id)
            .where(tenant)
        )
        legacy = [
            select(
                literal(identity_type.value, String).label("type"),
                normalized.label("value"),
                contact_table.c.id.label("contact_id"),
            ).where(tenant, column.is_not(None), func.trim(column) != "")
            for identity_type, column, normalized in (
                (
                    IdentityType.EMAIL,
                    contact_table.c.email,
                    func.lower(func.trim(contact_table.c.email)),
                ),
                (IdentityType.GITHUB, contact_table.c.github, _handle(contact_table.c.github)),
                (
                    IdentityType.LINKEDIN,
                    contact_table.c.linkedin,
                    func.lower(func.trim(contact_table.c.linkedin)),
                ),
                (IdentityType.TWITTER, contact_table.c.twitter, _handle(contact_table.c.twitter)),
            )
        ]
        return union_all(stored, *legacy).subquery("claims")


class SqlAlchemyContactRecordRepository:
    """Bulk reassignment of rows that reference a contact."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def count_signals(self, contact_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(signal_table)
            .where(signal_table.c.actor_id == contact_id)
        )
        return self.session.execute(stmt).scalar_one()

    def reassign_signals(
        self, *, source_contact_id: uuid.UUID, target_contact_id: uuid.UUID
    ) -> int:
        return self._repoint(signal_table, "actor_id", source_contact_id, target_contact_id)

    def reassign_activities(
        self, *, source_contact_id: uuid.UUID, target_contact_id: uuid.UUID
    ) -> int:
        return self._repoint(activity_table, "contact_id", source_contact_id, target_contact_id)

    def reassign_deals(self, *, source_contact_id: uuid.UUID, target_contact_id: uuid.UUID) -> int:
        return self._repoint(deal_table, "contact_id", source_contact_id, target_contact_id)

    def reassign_email_enrollments(
        self, *, source_contact_id: uuid.UUID, target_contact_id: uuid.UUID
    ) -> int:
        # (sequence_id, contact_id) is unique: enrolling both contacts in one
        # sequence raises IntegrityError and fails the merge of this duplicate
        return self._repoint(
            email_enrollment_table, "contact_id", source_contact_id, target_contact_id
        )

    def move_tags(self, *, source_contact_id: uuid.UUID, target_contact_id: uuid.UUID) -> int:
        target_tags = select(contact_tag_table.c.tag_id).where(
            contact_tag_table.c.contact_id == target_contact_id
        )
        self.session.execute(
            delete(contact_tag_table)
            .where(contact_tag_table.c.contact_id == source_contact_id)
            .where(contact_tag_table.c.tag_id.in_(target_tags))
        )
        return _rowcount(
            self.session.execute(
                update(contact_tag_table)
                .where(contact_tag_table.c.contact_id == source_contact_id)
                .values(contact_id=target_contact_id)
            )
        )

    def _repoint(
        self,
        table: Table,
        column_name: str,
        source_contact_id: uuid.UUID,
        target_contact_id: uuid.UUID,
    ) -> int:
        column = table.c[column_name]
        stmt = (
            update(table)
            .where(column == source_contact_id)
            .values({column_name: target_contact_id})
        )
        return _rowcount(self.session.execute(stmt))


if TYPE_CHECKING:
    from identigraph.domain.ports import (
        CompanyRepository,
        ContactRecordRepository,
        ContactRepository,
        IdentityRepository,
        OrganizationRepository,
    )

    _session_stub = cast("Session", object())
    _organization_repo: OrganizationRepository = SqlAlchemyOrganizationRepository(_session_stub)
    _contact_repo: ContactRepository = SqlAlchemyContactRepository(_session_stub)
    _company_repo: CompanyRepository = SqlAlchemyCompanyRepository(_session_stub)
    _identity_repo: IdentityRepository = SqlAlchemyIdentityRepository(_session_stub)
    _records_repo: ContactRecordRepository = SqlAlchemyContactRecordRepository(_session_stub)
