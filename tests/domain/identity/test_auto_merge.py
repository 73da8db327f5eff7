from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from identigraph.adapters.cooldown import InMemoryCooldownCache
from identigraph.config import IdentityConfig
from identigraph.domain.errors import NotFoundError, TransientStoreError
from identigraph.domain.identity import (
    AutoMergeController,
    SignalMetadata,
    get_auto_merge_stats,
)
from identigraph.domain.model import AutoMergeRecord, EntityType, IdentityType, SharedIdentity
from tests.helpers.contacts import (
    seed_company,
    seed_contact,
    seed_enrollment,
    seed_signals,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from identigraph.adapters.sqlalchemy.unit_of_work import SqlAlchemyIdentityUnitOfWork
    from identigraph.domain.model import Contact, Organization
    from identigraph.domain.ports import Notification

    UnitOfWorkFactory = Callable[[], SqlAlchemyIdentityUnitOfWork]

MERGED_AT = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)
SIGNAL = SignalMetadata(email="ADA@acme.io", github_username="ada-l")


class RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[tuple[uuid.UUID, Notification]] = []
        self._fail = fail

    def notify(self, organization_id: uuid.UUID, notification: Notification) -> None:
        if self._fail:
            raise RuntimeError("notification backend down")
        self.sent.append((organization_id, notification))


@pytest.fixture
def cooldown() -> InMemoryCooldownCache:
    return InMemoryCooldownCache(ttl_seconds=3600)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def controller(
    sqlite_unit_of_work: UnitOfWorkFactory,
    cooldown: InMemoryCooldownCache,
    notifier: RecordingNotifier,
) -> AutoMergeController:
    return AutoMergeController(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=cooldown,
        notifier=notifier,
        clock=lambda: MERGED_AT,
    )


def _existing_and_resolved(
    uow_factory: UnitOfWorkFactory, organization: Organization, **resolved_fields: object
) -> tuple[Contact, Contact]:
    existing = seed_contact(
        uow_factory,
        organization.id,
        "Ada",
        email="ada@acme.io",
        identities=((IdentityType.EMAIL, "ada@acme.io"),),
    )
    resolved = seed_contact(
        uow_factory,
        organization.id,
        "ada-l",
        created_minute=1,
        identities=((IdentityType.GITHUB, "ada-l"),),
        **resolved_fields,
    )
    return existing, resolved


def _contact_exists(uow_factory: UnitOfWorkFactory, contact_id: uuid.UUID) -> bool:
    with uow_factory() as uow:
        return uow.repositories.contacts.get(contact_id) is not None


def test_high_confidence_overlap_merges_into_the_busier_contact(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
    cooldown: InMemoryCooldownCache,
    notifier: RecordingNotifier,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    seed_signals(sqlite_unit_of_work, existing, 3)

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == existing.id
    assert not _contact_exists(sqlite_unit_of_work, resolved.id)
    assert cooldown.is_on_cooldown(existing.id, resolved.id)

    with sqlite_unit_of_work() as uow:
        keys = {
            identity.key
            for identity in uow.repositories.identities.list_for_contact(existing.id)
        }
        tenant = uow.repositories.organizations.get(organization.id)
    assert keys == {(IdentityType.EMAIL, "ada@acme.io"), (IdentityType.GITHUB, "ada-l")}
    assert tenant is not None
    (record,) = tenant.auto_merge_history
    assert record.primary_id == existing.id
    assert record.merged_id == resolved.id
    assert record.confidence == pytest.approx(1.0)
    assert record.timestamp == MERGED_AT
    assert [shared.label() for shared in record.shared_identities] == ["EMAIL=ada@acme.io"]

    ((notified_org, notification),) = notifier.sent
    assert notified_org == organization.id
    assert notification.type == "auto_merge"
    assert notification.title == "Auto-merged Ada with ada-l (100% confidence)"
    assert notification.body == "Shared identities: EMAIL=ada@acme.io"
    assert notification.entity_type is EntityType.CONTACT
    assert notification.entity_id == existing.id


def test_resolved_contact_survives_when_it_has_more_signals(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    seed_signals(sqlite_unit_of_work, resolved, 2)

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == resolved.id
    assert not _contact_exists(sqlite_unit_of_work, existing.id)


def test_pair_on_cooldown_is_left_alone(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
    cooldown: InMemoryCooldownCache,
    notifier: RecordingNotifier,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    cooldown.set_cooldown(resolved.id, existing.id)

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == resolved.id
    assert _contact_exists(sqlite_unit_of_work, existing.id)
    assert notifier.sent == []


def test_overlap_with_several_contacts_needs_manual_review(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    npm_owner = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Npm",
        created_minute=2,
        identities=((IdentityType.NPM, "ada"),),
    )

    surviving = controller.auto_merge_if_high_confidence(
        resolved.id,
        organization.id,
        SignalMetadata(email="ada@acme.io", npm_username="ada"),
    )

    assert surviving == resolved.id
    assert _contact_exists(sqlite_unit_of_work, existing.id)
    assert _contact_exists(sqlite_unit_of_work, npm_owner.id)


def test_overlap_below_threshold_is_skipped(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    cooldown: InMemoryCooldownCache,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    strict = AutoMergeController(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=cooldown,
        config=IdentityConfig(auto_merge_threshold=1.0),
    )
    github_owner = seed_contact(
        sqlite_unit_of_work,
        organization.id,
        "Octo",
        created_minute=3,
        identities=((IdentityType.GITHUB, "octocat"),),
    )

    surviving = strict.auto_merge_if_high_confidence(
        resolved.id, organization.id, SignalMetadata(github_username="octocat")
    )

    assert surviving == resolved.id
    assert _contact_exists(sqlite_unit_of_work, github_owner.id)
    assert _contact_exists(sqlite_unit_of_work, existing.id)
    assert not cooldown.is_on_cooldown(resolved.id, github_owner.id)


def test_sole_contact_of_a_company_is_never_merged_away(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
    cooldown: InMemoryCooldownCache,
) -> None:
    company = seed_company(sqlite_unit_of_work, organization.id, "Acme", domain="acme.io")
    existing, resolved = _existing_and_resolved(
        sqlite_unit_of_work, organization, company_id=company.id
    )

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == resolved.id
    assert _contact_exists(sqlite_unit_of_work, existing.id)
    assert cooldown.is_on_cooldown(resolved.id, existing.id)


def test_contacts_sharing_a_company_may_merge(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
) -> None:
    company = seed_company(sqlite_unit_of_work, organization.id, "Acme", domain="acme.io")
    seed_contact(
        sqlite_unit_of_work, organization.id, "Colleague", created_minute=5, company_id=company.id
    )
    existing, resolved = _existing_and_resolved(
        sqlite_unit_of_work, organization, company_id=company.id
    )

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == resolved.id
    assert not _contact_exists(sqlite_unit_of_work, existing.id)


def test_contact_without_identities_is_returned_unchanged(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
) -> None:
    lonely = seed_contact(sqlite_unit_of_work, organization.id, "Lonely")

    assert controller.auto_merge_if_high_confidence(lonely.id, organization.id) == lonely.id


def test_failed_merge_sets_cooldown_and_keeps_both(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    controller: AutoMergeController,
    cooldown: InMemoryCooldownCache,
    notifier: RecordingNotifier,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    sequence_id = uuid.uuid4()
    seed_enrollment(sqlite_unit_of_work, existing, sequence_id)
    seed_enrollment(sqlite_unit_of_work, resolved, sequence_id)

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == resolved.id
    assert _contact_exists(sqlite_unit_of_work, existing.id)
    assert _contact_exists(sqlite_unit_of_work, resolved.id)
    assert cooldown.is_on_cooldown(existing.id, resolved.id)
    assert notifier.sent == []


def test_notifier_failure_does_not_undo_the_merge(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    cooldown: InMemoryCooldownCache,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    controller = AutoMergeController(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=cooldown,
        notifier=RecordingNotifier(fail=True),
    )

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == resolved.id
    assert not _contact_exists(sqlite_unit_of_work, existing.id)


def test_history_is_capped(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    record = AutoMergeRecord(
        primary_id=uuid.uuid4(),
        primary_name="A",
        merged_id=uuid.uuid4(),
        merged_name="B",
        confidence=0.95,
        shared_identities=(SharedIdentity(IdentityType.GITHUB, "ada-l", 0.95),),
        timestamp=MERGED_AT,
    )
    with sqlite_unit_of_work() as uow:
        tenant = uow.repositories.organizations.get(organization.id)
        assert tenant is not None
        for _ in range(5):
            tenant.record_auto_merge(record, limit=3)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.organizations.get(organization.id)
    assert stored is not None
    assert len(stored.auto_merge_history) == 3
    assert stored.auto_merge_history[0].shared_identities == record.shared_identities


def test_auto_merge_stats_counts_the_last_day(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    now = datetime(2025, 3, 2, 12, tzinfo=UTC)
    with sqlite_unit_of_work() as uow:
        tenant = uow.repositories.organizations.get(organization.id)
        assert tenant is not None
        for hours_ago in (72, 30, 5, 1):
            tenant.record_auto_merge(
                AutoMergeRecord(
                    primary_id=uuid.uuid4(),
                    primary_name="A",
                    merged_id=uuid.uuid4(),
                    merged_name="B",
                    confidence=1.0,
                    shared_identities=(),
                    timestamp=now - timedelta(hours=hours_ago),
                ),
                limit=100,
            )
        uow.commit()

    stats = get_auto_merge_stats(
        organization.id, unit_of_work_factory=sqlite_unit_of_work, now=now
    )

    assert stats.total_auto_merges == 4
    assert stats.last_24h == 2
    assert [merge.timestamp for merge in stats.recent_merges] == [
        now - timedelta(hours=1),
        now - timedelta(hours=5),
        now - timedelta(hours=30),
        now - timedelta(hours=72),
    ]


def test_auto_merge_stats_unknown_organization(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    with pytest.raises(NotFoundError):
        get_auto_merge_stats(uuid.uuid4(), unit_of_work_factory=sqlite_unit_of_work)


class HistoryFailingController(AutoMergeController):
    def _record_history(self, organization_id: uuid.UUID, record: AutoMergeRecord) -> None:
        raise TransientStoreError("store timeout while writing settings")


def test_history_failure_still_reports_the_merge(
    sqlite_unit_of_work: UnitOfWorkFactory,
    organization: Organization,
    cooldown: InMemoryCooldownCache,
    notifier: RecordingNotifier,
    caplog: pytest.LogCaptureFixture,
) -> None:
    existing, resolved = _existing_and_resolved(sqlite_unit_of_work, organization)
    seed_signals(sqlite_unit_of_work, existing, 2)
    controller = HistoryFailingController(
        unit_of_work_factory=sqlite_unit_of_work,
        cooldown=cooldown,
        notifier=notifier,
        clock=lambda: MERGED_AT,
    )
    caplog.set_level("WARNING", logger="identigraph.domain.identity.auto_merge")

    surviving = controller.auto_merge_if_high_confidence(resolved.id, organization.id, SIGNAL)

    assert surviving == existing.id
    assert not _contact_exists(sqlite_unit_of_work, resolved.id)
    assert cooldown.is_on_cooldown(existing.id, resolved.id)
    assert len(notifier.sent) == 1
    assert "failed to record the auto-merge" in caplog.text


def test_auto_merge_stats_window_is_inclusive_and_reads_naive_timestamps(
    sqlite_unit_of_work: UnitOfWorkFactory, organization: Organization
) -> None:
    now = datetime(2025, 3, 2, 12, tzinfo=UTC)
    entries = [
        {
            "primary": str(uuid.uuid4()),
            "merged": str(uuid.uuid4()),
            "confidence": 1.0,
            "timestamp": timestamp,
        }
        for timestamp in (
            "2025-03-01T12:00:00+00:00",
            "2025-03-02T06:00:00",
            "2025-03-01T11:59:59",
        )
    ]
    with sqlite_unit_of_work() as uow:
        tenant = uow.repositories.organizations.get(organization.id)
        assert tenant is not None
        tenant.settings = {"auto_merge_history": entries}
        uow.commit()

    stats = get_auto_merge_stats(
        organization.id, unit_of_work_factory=sqlite_unit_of_work, now=now
    )

    assert stats.total_auto_merges == 3
    assert stats.last_24h == 2
    assert stats.recent_merges[1].timestamp == datetime(2025, 3, 2, 6, tzinfo=UTC)
