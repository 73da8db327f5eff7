"""Merge engine: fold duplicate contacts into a primary without losing data.

Every duplicate is merged in its own unit of work. Inside it, dependent records
are repointed, identities and tags move over, empty fields on the primary are
filled from the duplicate, and the duplicate is deleted. Either all of that is
committed or none of it is. One failing duplicate never undoes its siblings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from identigraph.domain.errors import InvalidMergeRequestError, NotFoundError, TransientStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from identigraph.domain.ports import IdentityRepositories, IdentityUnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeResult:
    merged: int = 0
    errors: list[str] = field(default_factory=list[str])
    merged_ids: list[UUID] = field(default_factory=list["UUID"])


@dataclass(frozen=True, slots=True)
class MergeReport:
    """What moved while folding one duplicate into the primary."""

    primary_id: UUID
    duplicate_id: UUID
    signals: int
    activities: int
    deals: int
    email_enrollments: int
    identities_moved: int
    identities_discarded: int
    tags: int
    adopted_fields: tuple[str, ...]


def merge_contacts(
    organization_id: UUID,
    primary_id: UUID,
    duplicate_ids: Iterable[UUID],
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
) -> MergeResult:
    """Merge ``duplicate_ids`` into ``primary_id``.

    Fails before touching anything when the request is malformed or refers to
    contacts that do not exist. Afterwards each duplicate either merges
    completely or is reported in ``MergeResult.errors``. Store outages
    (``TransientStoreError``) abort the whole call.
    """

    duplicates = list(dict.fromkeys(duplicate_ids))
    if not duplicates:
        raise InvalidMergeRequestError("At least one duplicate contact is required")
    if primary_id in duplicates:
        raise InvalidMergeRequestError(f"Primary contact {primary_id} is listed as a duplicate")

    with unit_of_work_factory() as uow:
        contacts = uow.repositories.contacts
        if contacts.get_in_organization(organization_id, primary_id) is None:
            raise NotFoundError("contact", primary_id, organization_id=organization_id)
        missing = set(duplicates) - contacts.existing_ids(duplicates)
        if missing:
            listed = ", ".join(sorted(str(contact_id) for contact_id in missing))
            raise NotFoundError("contact", listed)

    result = MergeResult()
    for duplicate_id in duplicates:
        try:
            with unit_of_work_factory() as uow:
                report = merge_pair(uow.repositories, organization_id, primary_id, duplicate_id)
                uow.commit()
        except TransientStoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            log.warning("Merging contact %s into %s failed: %s", duplicate_id, primary_id, exc)
            result.errors.append(f"{duplicate_id}: {exc}")
            continue

        result.merged += 1
        result.merged_ids.append(duplicate_id)
        log.info(
            "Merged contact %s into %s: signals=%s, activities=%s, deals=%s, "
            "enrollments=%s, identities=%s (+%s dropped), tags=%s, fields=%s",
            report.duplicate_id,
            report.primary_id,
            report.signals,
            report.activities,
            report.deals,
            report.email_enrollments,
            report.identities_moved,
            report.identities_discarded,
            report.tags,
            ",".join(report.adopted_fields) or "-",
        )

    return result


def merge_pair(
    repositories: IdentityRepositories,
    organization_id: UUID,
    primary_id: UUID,
    duplicate_id: UUID,
) -> MergeReport:
    """Fold one duplicate into the primary inside the caller's unit of work."""

    contacts = repositories.contacts
    primary = contacts.get_in_organization(organization_id, primary_id)
    if primary is None:
        raise NotFoundError("contact", primary_id, organization_id=organization_id)
    duplicate = contacts.get_in_organization(organization_id, duplicate_id)
    if duplicate is None:
        raise NotFoundError("contact", duplicate_id, organization_id=organization_id)

    records = repositories.records
    moves = {"source_contact_id": duplicate_id, "target_contact_id": primary_id}
    signals = records.reassign_signals(**moves)
    activities = records.reassign_activities(**moves)
    deals = records.reassign_deals(**moves)
    enrollments = records.reassign_email_enrollments(**moves)
    identities_moved, identities_discarded = repositories.identities.move_to(**moves)
    tags = records.move_tags(**moves)

    adopted = primary.absorb(duplicate)
    contacts.delete(duplicate)

    return MergeReport(
        primary_id=primary_id,
        duplicate_id=duplicate_id,
        signals=signals,
        activities=activities,
        deals=deals,
        email_enrollments=enrollments,
        identities_moved=identities_moved,
        identities_discarded=identities_discarded,
        tags=tags,
        adopted_fields=adopted,
    )
