from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest

from identigraph.domain.errors import NotFoundError
from identigraph.domain.identity import CompanySummary, get_identity_graph
from identigraph.domain.model import Identity, IdentityType
from tests.helpers.contacts import at, save, seed_company, seed_contact

if TYPE_CHECKING:
    from collections.abc import Callable

    from identigraph.adapters.sqlalchemy.unit_of_work import SqlAlchemyIdentityUnitOfWork
    from identigraph.domain.model import Organization

    UnitOfWorkFactory = Callable[[], SqlAlchemyIdentityUnitOfWork]


def test_graph_lists_identities_most_trusted_first(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    company = seed_company(sqlite_unit_of_work, organization.id, "Acme", domain="acme.io")
    contact = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Ada",
        last_name="Lovelace",
        email="ada@acme.io",
        company_id=company.id,
    )
    save(
        sqlite_unit_of_work,
        Identity(
            contact_id=contact.id,
            type=IdentityType.TWITTER,
            value="ada",
            confidence=0.5,
            created_at=at(0),
        ),
        Identity(
            contact_id=contact.id,
            type=IdentityType.GITHUB,
            value="ada-l",
            confidence=0.95,
            verified=True,
            created_at=at(3),
        ),
        Identity(
            contact_id=contact.id,
            type=IdentityType.NPM,
            value="ada",
            confidence=0.95,
            verified=True,
            created_at=at(1),
        ),
        Identity(
            contact_id=contact.id,
            type=IdentityType.EMAIL,
            value="ada@acme.io",
            confidence=1.0,
            verified=True,
            created_at=at(2),
        ),
    )

    graph = get_identity_graph(
        organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work
    )

    assert graph.contact_id == contact.id
    assert graph.contact_name == "Ada Lovelace"
    assert graph.contact_email == "ada@acme.io"
    assert graph.company == CompanySummary(id=company.id, name="Acme", domain="acme.io")
    assert [(entry.type, entry.value) for entry in graph.identities] == [
        (IdentityType.EMAIL, "ada@acme.io"),
        (IdentityType.NPM, "ada"),
        (IdentityType.GITHUB, "ada-l"),
        (IdentityType.TWITTER, "ada"),
    ]
    assert graph.identities[-1].verified is False


def test_graph_without_company_or_identities(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    contact = seed_contact(sqlite_unit_of_work, organization.id, "Grace")

    graph = get_identity_graph(
        organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work
    )

    assert graph.company is None
    assert graph.identities == ()


def test_graph_is_scoped_to_the_tenant(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    other_organization: Organization,
) -> None:
    theirs = seed_contact(sqlite_unit_of_work, other_organization.id, "Theirs")

    with pytest.raises(NotFoundError):
        get_identity_graph(organization.id, theirs.id, unit_of_work_factory=sqlite_unit_of_work)
    with pytest.raises(NotFoundError):
        get_identity_graph(
            organization.id, uuid.uuid4(), unit_of_work_factory=sqlite_unit_of_work
        )
