from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from identigraph.adapters.cooldown import InMemoryCooldownCache
from identigraph.app import (
    build_auto_merge_controller,
    create_organization,
    ingest_signal_payloads,
    list_duplicate_groups,
    load_auto_merge_stats,
    resolve_contact,
)
from identigraph.config import IdentityConfig
from identigraph.domain.identity import IdentitySignal
from identigraph.domain.model import IdentityType, ResolutionSource
from tests.helpers.contacts import seed_contact, seed_signals

if TYPE_CHECKING:
    from collections.abc import Callable

    from identigraph.adapters.sqlalchemy.unit_of_work import SqlAlchemyIdentityUnitOfWork
    from identigraph.domain.model import Contact, Organization

    UnitOfWorkFactory = Callable[[], SqlAlchemyIdentityUnitOfWork]


def _split_person(
    uow_factory: UnitOfWorkFactory, organization: Organization
) -> tuple[Contact, Contact]:
    """One person known twice: once by GitHub login, once by email."""
    by_github = seed_contact(
        uow_factory,
        organization.id,
        "ada-l",
        identities=((IdentityType.GITHUB, "ada-l"),),
    )
    by_email = seed_contact(
        uow_factory,
        organization.id,
        "Ada",
        created_minute=1,
        identities=((IdentityType.EMAIL, "ada@gmail.com"),),
    )
    seed_signals(uow_factory, by_email, 2)
    return by_github, by_email


def test_create_organization_persists(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    organization = create_organization(
        name="Initech DevRel", unit_of_work_factory=sqlite_unit_of_work
    )

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.organizations.get(organization.id)
    assert stored is not None
    assert stored.name == "Initech DevRel"


def test_resolve_contact_without_auto_merge(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    by_github, _ = _split_person(sqlite_unit_of_work, organization)

    resolved = resolve_contact(
        organization.id,
        IdentitySignal(github_username="ada-l", email="ada@gmail.com"),
        unit_of_work_factory=sqlite_unit_of_work,
        config=IdentityConfig(),
    )

    assert resolved.contact_id == by_github.id
    assert resolved.source is ResolutionSource.GITHUB_IDENTITY


def test_resolve_contact_folds_the_split_person(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    by_github, by_email = _split_person(sqlite_unit_of_work, organization)
    controller = build_auto_merge_controller(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=InMemoryCooldownCache(ttl_seconds=60),
        config=IdentityConfig(),
    )

    resolved = resolve_contact(
        organization.id,
        IdentitySignal(github_username="ada-l", email="ada@gmail.com"),
        unit_of_work_factory=sqlite_unit_of_work,
        auto_merge=controller,
        config=IdentityConfig(),
    )

    assert resolved.contact_id == by_email.id
    assert controller.cooldown.is_on_cooldown(by_github.id, by_email.id)
    stats = load_auto_merge_stats(organization.id, unit_of_work_factory=sqlite_unit_of_work)
    assert stats.total_auto_merges == 1
    assert stats.recent_merges[0].merged == by_github.id


def test_ingest_routes_each_connector(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    by_github, by_email = _split_person(sqlite_unit_of_work, organization)
    known = seed_contact(sqlite_unit_of_work, organization.id, "Known", created_minute=2)
    controller = build_auto_merge_controller(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=InMemoryCooldownCache(ttl_seconds=60),
        config=IdentityConfig(),
    )

    results = ingest_signal_payloads(
        organization.id,
        [
            {
                "source": "github",
                "event": "star",
                "sender_login": "ada-l",
                "sender_email": "ada@gmail.com",
            },
            {"source": "npm", "package": "left-pad", "maintainer": "azer"},
            {"source": "webhook", "type": "app.login", "actor_id": str(known.id)},
            {"source": "posthog", "event": "$pageview", "distinct_id": "anon-1"},
        ],
        unit_of_work_factory=sqlite_unit_of_work,
        auto_merge=controller,
        config=IdentityConfig(),
    )

    github_result, npm_result, webhook_result, posthog_result = results
    assert github_result.actor_id == by_email.id
    assert npm_result.actor_id not in {None, by_github.id, by_email.id}
    assert webhook_result.actor_id == known.id
    assert posthog_result.actor_id is None
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.contacts.get(by_github.id) is None


def test_list_duplicate_groups_uses_configured_limit(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    for index in range(3):
        email = f"dev{index}@acme.io"
        seed_contact(sqlite_unit_of_work, organization.id, f"A{index}", email=email)
        seed_contact(
            sqlite_unit_of_work, organization.id, f"B{index}", created_minute=1, email=email
        )

    groups = list_duplicate_groups(
        organization.id,
        unit_of_work_factory=sqlite_unit_of_work,
        config=IdentityConfig(duplicate_group_limit=1),
    )

    assert len(groups) == 1


def test_ingest_webhook_auto_merges_on_anonymous_id_hints(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level("DEBUG", logger="identigraph.app")
    npm_owner = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "leftpad",
        identities=((IdentityType.NPM, "leftpad"),),
    )
    email_owner = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Ada",
        created_minute=1,
        identities=((IdentityType.EMAIL, "ada@gmail.com"),),
    )
    seed_signals(sqlite_unit_of_work, email_owner, 2)
    controller = build_auto_merge_controller(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=InMemoryCooldownCache(ttl_seconds=60),
        config=IdentityConfig(),
    )

    (result,) = ingest_signal_payloads(
        organization.id,
        [
            {
                "source": "webhook",
                "type": "package.publish",
                "anonymous_id": "npm:leftpad",
                "metadata": {"maintainer_email": "ada@gmail.com"},
            }
        ],
        unit_of_work_factory=sqlite_unit_of_work,
        auto_merge=controller,
        config=IdentityConfig(),
    )

    assert result.actor_id == email_owner.id
    assert "Resolved package.publish signal" in caplog.text
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.contacts.get(npm_owner.id) is None
        assert uow.repositories.contacts.get(email_owner.id) is not None
