"""Automatic, confidence-gated merging of contacts found to share an identity.

Runs right after a signal was resolved. It only ever merges a single pair, and
only when:

- exactly one other contact shares an identity with the resolved one;
- the shared identity type is trusted enough;
- the pair is not cooling down from an earlier attempt;
- neither contact is the only known person at its company.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Final

from identigraph.config.identity import IdentityConfig
from identigraph.domain.errors import IdentityResolutionError, NotFoundError, TransientStoreError
from identigraph.domain.model import (
    AutoMergeRecord,
    EntityType,
    IdentityType,
    SharedIdentity,
    utcnow,
)
from identigraph.domain.ports import Notification

from .confidence import confidence_for_type
from .merge import merge_contacts
from .normalize import normalize_email, normalize_handle

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime
    from uuid import UUID

    from identigraph.domain.model import Contact, Identity, IdentityKey
    from identigraph.domain.ports import (
        CooldownCache,
        IdentityRepositories,
        IdentityUnitOfWorkFactory,
        Notifier,
    )

    from .cascade import IdentitySignal

log = logging.getLogger(__name__)

AUTO_MERGE_NOTIFICATION_TYPE: Final[str] = "auto_merge"
RECENT_MERGES_LIMIT: Final[int] = 20
STATS_WINDOW: Final[timedelta] = timedelta(hours=24)


@dataclass(frozen=True, slots=True, kw_only=True)
class SignalMetadata:
    """Identity values seen on the triggering signal."""

    email: str | None = None
    github_username: str | None = None
    npm_username: str | None = None

    @classmethod
    def from_signal(cls, signal: IdentitySignal) -> SignalMetadata:
        return cls(
            email=signal.email,
            github_username=signal.github_username,
            npm_username=signal.npm_username,
        )

    def identity_keys(self) -> tuple[IdentityKey, ...]:
        keys: list[IdentityKey] = []
        if self.email and (email := normalize_email(self.email)):
            keys.append((IdentityType.EMAIL, email))
        if self.github_username and (login := normalize_handle(self.github_username)):
            keys.append((IdentityType.GITHUB, login))
        if self.npm_username and (npm := normalize_handle(self.npm_username)):
            keys.append((IdentityType.NPM, npm))
        return tuple(keys)


@dataclass(frozen=True, slots=True)
class RecentAutoMerge:
    primary: UUID
    merged: UUID
    confidence: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class AutoMergeStats:
    total_auto_merges: int
    last_24h: int
    recent_merges: tuple[RecentAutoMerge, ...]


@dataclass(frozen=True, slots=True)
class _MergePlan:
    primary: Contact
    duplicate: Contact
    confidence: float
    shared: tuple[SharedIdentity, ...]


class AutoMergeController:
    """Decides whether a freshly resolved contact should absorb (or be absorbed by) another."""

    def __init__(
        self,
        *,
        unit_of_work_factory: IdentityUnitOfWorkFactory,
        cooldown: CooldownCache,
        notifier: Notifier | None = None,
        config: IdentityConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._cooldown = cooldown
        self._notifier = notifier
        self._config = config or IdentityConfig()
        self._clock = clock

    @property
    def cooldown(self) -> CooldownCache:
        return self._cooldown

    def auto_merge_if_high_confidence(
        self,
        resolved_contact_id: UUID,
        organization_id: UUID,
        signal_metadata: SignalMetadata | None = None,
    ) -> UUID:
        """Return the id that represents the person after any automatic merge."""

        with self._unit_of_work_factory() as uow:
            plan = self._plan(
                uow.repositories,
                resolved_contact_id,
                organization_id,
                signal_metadata or SignalMetadata(),
            )
        if plan is None:
            return resolved_contact_id

        primary, duplicate = plan.primary, plan.duplicate
        try:
            result = merge_contacts(
                organization_id,
                primary.id,
                [duplicate.id],
                unit_of_work_factory=self._unit_of_work_factory,
            )
        except TransientStoreError:
            self._cooldown.set_cooldown(primary.id, duplicate.id)
            raise
        except IdentityResolutionError as exc:
            log.warning("Auto-merge of %s into %s failed: %s", duplicate.id, primary.id, exc)
            self._cooldown.set_cooldown(primary.id, duplicate.id)
            return resolved_contact_id

        # a pair is never retried within the window, whatever the outcome
        self._cooldown.set_cooldown(primary.id, duplicate.id)
        if result.merged != 1:
            log.warning(
                "Auto-merge of %s into %s did not complete: %s",
                duplicate.id,
                primary.id,
                "; ".join(result.errors) or "no merge performed",
            )
            return resolved_contact_id

        record = AutoMergeRecord(
            primary_id=primary.id,
            primary_name=primary.display_name,
            merged_id=duplicate.id,
            merged_name=duplicate.display_name,
            confidence=plan.confidence,
            shared_identities=plan.shared,
            timestamp=self._clock(),
        )
        log.info(
            "Auto-merged %s into %s in organization %s (confidence %.2f, shared %s)",
            duplicate.id,
            primary.id,
            organization_id,
            plan.confidence,
            ", ".join(shared.label() for shared in plan.shared),
        )
        try:
            self._record_history(organization_id, record)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "Merged %s into %s but failed to record the auto-merge: %s",
                duplicate.id,
                primary.id,
                exc,
            )
        self._notify(organization_id, record)
        return primary.id

    def _plan(
        self,
        repositories: IdentityRepositories,
        resolved_contact_id: UUID,
        organization_id: UUID,
        signal_metadata: SignalMetadata,
    ) -> _MergePlan | None:
        keys = _candidate_keys(
            repositories.identities.list_for_contact(resolved_contact_id),
            signal_metadata,
        )
        if not keys:
            return None

        overlapping = repositories.identities.find_overlapping(
            organization_id, keys, exclude_contact_id=resolved_contact_id
        )
        if not overlapping:
            return None

        by_contact: defaultdict[UUID, list[Identity]] = defaultdict(list)
        for identity in overlapping:
            by_contact[identity.contact_id].append(identity)
        if len(by_contact) > 1:
            log.info(
                "Auto-merge skipped for %s: %s other contacts overlap (%s); needs manual review",
                resolved_contact_id,
                len(by_contact),
                ", ".join(str(contact_id) for contact_id in by_contact),
            )
            return None

        ((other_contact_id, shared_rows),) = by_contact.items()
        shared = tuple(
            SharedIdentity(
                type=row.type, value=row.value, confidence=confidence_for_type(row.type)
            )
            for row in shared_rows
        )
        score = max(item.confidence for item in shared)
        if score < self._config.auto_merge_threshold:
            log.debug(
                "Auto-merge skipped for %s/%s: confidence %.2f below %.2f",
                resolved_contact_id,
                other_contact_id,
                score,
                self._config.auto_merge_threshold,
            )
            return None

        if self._cooldown.is_on_cooldown(resolved_contact_id, other_contact_id):
            log.debug(
                "Auto-merge skipped for %s/%s: on cooldown", resolved_contact_id, other_contact_id
            )
            return None

        contacts = repositories.contacts
        resolved = contacts.get_in_organization(organization_id, resolved_contact_id)
        other = contacts.get_in_organization(organization_id, other_contact_id)
        if resolved is None or other is None:
            return None

        for contact in (resolved, other):
            if contact.company_id is None:
                continue
            if contacts.count_in_company(organization_id, contact.company_id) <= 1:
                log.debug(
                    "Auto-merge skipped: contact %s is the only contact of company %s",
                    contact.id,
                    contact.company_id,
                )
                self._cooldown.set_cooldown(resolved_contact_id, other_contact_id)
                return None

        resolved_signals = repositories.records.count_signals(resolved.id)
        other_signals = repositories.records.count_signals(other.id)
        if other_signals > resolved_signals:
            return _MergePlan(primary=other, duplicate=resolved, confidence=score, shared=shared)
        return _MergePlan(primary=resolved, duplicate=other, confidence=score, shared=shared)

    def _record_history(self, organization_id: UUID, record: AutoMergeRecord) -> None:
        with self._unit_of_work_factory() as uow:
            organization = uow.repositories.organizations.get(organization_id)
            if organization is None:
                log.warning("Organization %s vanished; auto-merge not recorded", organization_id)
                return
            organization.record_auto_merge(record, limit=self._config.history_limit)
            uow.commit()

    def _notify(self, organization_id: UUID, record: AutoMergeRecord) -> None:
        if self._notifier is None:
            return
        percent = round(record.confidence * 100)
        notification = Notification(
            type=AUTO_MERGE_NOTIFICATION_TYPE,
            title=(
                f"Auto-merged {record.primary_name} with {record.merged_name} "
                f"({percent}% confidence)"
            ),
            body="Shared identities: "
            + ", ".join(shared.label() for shared in record.shared_identities),
            entity_type=EntityType.CONTACT,
            entity_id=record.primary_id,
        )
        try:
            self._notifier.notify(organization_id, notification)
        except Exception as exc:  # noqa: BLE001
            log.warning("Failed to send auto-merge notification: %s", exc)


def get_auto_merge_stats(
    organization_id: UUID,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    now: datetime | None = None,
) -> AutoMergeStats:
    with unit_of_work_factory() as uow:
        organization = uow.repositories.organizations.get(organization_id)
        if organization is None:
            raise NotFoundError("organization", organization_id)
        history = organization.auto_merge_history

    cutoff = (now or utcnow()) - STATS_WINDOW
    return AutoMergeStats(
        total_auto_merges=len(history),
        last_24h=sum(1 for record in history if record.timestamp >= cutoff),
        recent_merges=tuple(
            RecentAutoMerge(
                primary=record.primary_id,
                merged=record.merged_id,
                confidence=record.confidence,
                timestamp=record.timestamp,
            )
            for record in history[:RECENT_MERGES_LIMIT]
        ),
    )


def _candidate_keys(
    stored: Sequence[Identity],
    signal_metadata: SignalMetadata,
) -> tuple[IdentityKey, ...]:
    keys = [identity.key for identity in stored]
    keys.extend(signal_metadata.identity_keys())
    return tuple(dict.fromkeys(keys))
