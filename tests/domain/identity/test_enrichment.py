from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest

from identigraph.domain.errors import NotFoundError
from identigraph.domain.identity import enrich_contact
from identigraph.domain.model import IdentityType
from identigraph.domain.ports import GitHubProfile, ProfileLookupError
from tests.helpers.contacts import seed_company, seed_contact

if TYPE_CHECKING:
    from collections.abc import Callable

    from identigraph.adapters.sqlalchemy.unit_of_work import SqlAlchemyIdentityUnitOfWork
    from identigraph.domain.model import Contact, Identity, Organization

    UnitOfWorkFactory = Callable[[], SqlAlchemyIdentityUnitOfWork]


class FakeProfiles:
    def __init__(self, profile: GitHubProfile | None = None, *, error: str | None = None) -> None:
        self._profile = profile
        self._error = error
        self.requested: list[str] = []

    def fetch_profile(self, login: str) -> GitHubProfile | None:
        self.requested.append(login)
        if self._error is not None:
            raise ProfileLookupError(self._error)
        return self._profile


def _reload(uow_factory: UnitOfWorkFactory, contact_id: uuid.UUID) -> tuple[Contact, list[Identity]]:
    with uow_factory() as uow:
        contact = uow.repositories.contacts.get(contact_id)
        identities = list(uow.repositories.identities.list_for_contact(contact_id))
    assert contact is not None
    return contact, identities


def test_email_adds_identity_and_company(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    contact = seed_contact(sqlite_unit_of_work, organization.id, "Ada", email="Ada@Supabase.com")

    result = enrich_contact(organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work)

    assert result.identities_added == 1
    assert result.company_resolved is True
    assert result.enrichments == [
        "Added email identity: ada@supabase.com",
        "Resolved company from email domain: supabase.com",
    ]
    stored, identities = _reload(sqlite_unit_of_work, contact.id)
    assert stored.company_id is not None
    (identity,) = identities
    assert identity.key == (IdentityType.EMAIL, "ada@supabase.com")
    assert identity.confidence == pytest.approx(1.0)
    assert identity.verified is True


def test_second_enrichment_adds_nothing(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    contact = seed_contact(sqlite_unit_of_work, organization.id, "Ada", email="ada@gmail.com")

    enrich_contact(organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work)
    again = enrich_contact(organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work)

    assert again.identities_added == 0
    assert again.company_resolved is False
    assert again.enrichments == []


def test_github_profile_fills_missing_fields(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    hooli = seed_company(sqlite_unit_of_work, organization.id, "Hooli")
    contact = seed_contact(sqlite_unit_of_work, organization.id, "Unknown", github="@Octocat")
    profiles = FakeProfiles(
        GitHubProfile(
            login="octocat",
            name="Mona Lisa Octocat",
            company="@hooli",
            email="Mona@Example.org",
            avatar_url="https://avatars.example/octocat.png",
            twitter_username="monatheoctocat",
        )
    )

    result = enrich_contact(
        organization.id,
        contact.id,
        unit_of_work_factory=sqlite_unit_of_work,
        profiles=profiles,
    )

    assert profiles.requested == ["@Octocat"]
    assert result.company_resolved is True
    # github, profile email and the twitter handle it surfaced
    assert result.identities_added == 3
    stored, identities = _reload(sqlite_unit_of_work, contact.id)
    assert stored.company_id == hooli.id
    assert stored.avatar == "https://avatars.example/octocat.png"
    assert (stored.first_name, stored.last_name) == ("Mona", "Lisa Octocat")
    assert stored.email == "mona@example.org"
    assert stored.twitter == "monatheoctocat"

    by_key = {identity.key: identity for identity in identities}
    assert set(by_key) == {
        (IdentityType.GITHUB, "octocat"),
        (IdentityType.EMAIL, "mona@example.org"),
        (IdentityType.TWITTER, "monatheoctocat"),
    }
    profile_email = by_key[IdentityType.EMAIL, "mona@example.org"]
    assert profile_email.confidence == pytest.approx(0.75)
    assert profile_email.verified is False


def test_known_name_and_avatar_are_kept(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    contact = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Ada",
        github="ada-l",
        avatar="https://cdn.example/ada.png",
    )
    profiles = FakeProfiles(
        GitHubProfile(login="ada-l", name="Someone Else", avatar_url="https://other.example")
    )

    enrich_contact(
        organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work, profiles=profiles
    )

    stored, _ = _reload(sqlite_unit_of_work, contact.id)
    assert stored.first_name == "Ada"
    assert stored.avatar == "https://cdn.example/ada.png"


def test_profile_lookup_failure_is_skipped(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    caplog: pytest.LogCaptureFixture,
) -> None:
    contact = seed_contact(sqlite_unit_of_work, organization.id, "Ada", github="ada-l")

    result = enrich_contact(
        organization.id,
        contact.id,
        unit_of_work_factory=sqlite_unit_of_work,
        profiles=FakeProfiles(error="rate limited"),
    )

    assert result.enrichments == ["Added GitHub identity: ada-l"]
    assert "rate limited" in caplog.text


def test_social_handles_become_identities(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    contact = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Ada",
        linkedin=" https://LinkedIn.com/in/Ada ",
        twitter="@Ada",
    )

    result = enrich_contact(organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work)

    assert result.identities_added == 2
    _, identities = _reload(sqlite_unit_of_work, contact.id)
    assert {identity.key for identity in identities} == {
        (IdentityType.LINKEDIN, "https://linkedin.com/in/ada"),
        (IdentityType.TWITTER, "ada"),
    }
    assert all(identity.verified is False for identity in identities)


def test_identity_owned_by_someone_else_is_not_counted(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Owner",
        identities=((IdentityType.GITHUB, "ada-l"),),
    )
    contact = seed_contact(
        sqlite_unit_of_work, organization.id, "Ada", created_minute=1, github="ada-l"
    )

    result = enrich_contact(organization.id, contact.id, unit_of_work_factory=sqlite_unit_of_work)

    assert result.identities_added == 0
    _, identities = _reload(sqlite_unit_of_work, contact.id)
    assert identities == []


def test_enrich_unknown_contact(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    with pytest.raises(NotFoundError):
        enrich_contact(organization.id, uuid.uuid4(), unit_of_work_factory=sqlite_unit_of_work)
