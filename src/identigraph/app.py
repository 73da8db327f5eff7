"""Application orchestration entry points."""

from __future__ import annotations

import dataclasses
from logging import getLogger
from typing import TYPE_CHECKING

from identigraph.adapters.cooldown import CooldownSweeper, InMemoryCooldownCache
from identigraph.adapters.github import GitHubClient
from identigraph.adapters.notifications import LoggingNotifier
from identigraph.adapters.signals import (
    GitHubEventPayload,
    NpmEventPayload,
    parse_signal_payload,
    signal_type,
    to_signal_context,
)
from identigraph.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIdentityUnitOfWork,
    is_started,
    startup,
)
from identigraph.config import get_github_config, get_identity_config
from identigraph.domain.identity import (
    AutoMergeController,
    SignalMetadata,
    enrich_contact,
    find_duplicates,
    get_auto_merge_stats,
    get_identity_graph,
    merge_contacts,
    resolve_github_actor,
    resolve_identity,
    resolve_npm_maintainer,
    resolve_signal_identity,
    signal_from_anonymous_id,
)
from identigraph.domain.model import Organization

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from identigraph.config import IdentityConfig
    from identigraph.domain.identity import (
        AutoMergeStats,
        DuplicateGroup,
        EnrichmentResult,
        IdentityGraph,
        IdentitySignal,
        MergeResult,
        ResolvedIdentity,
        SignalResolution,
    )
    from identigraph.domain.ports import (
        CooldownCache,
        GitHubProfileSource,
        IdentityUnitOfWorkFactory,
        Notifier,
    )

log = getLogger(__name__)


def _unit_of_work_factory(
    unit_of_work_factory: IdentityUnitOfWorkFactory | None,
) -> IdentityUnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyIdentityUnitOfWork


def create_organization(
    *,
    name: str,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
) -> Organization:
    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    organization = Organization(name=name)
    with effective_uow() as uow:
        uow.repositories.organizations.add(organization)
        uow.commit()
    log.info("Created organization %s (%s)", organization.id, name)
    return organization


def build_auto_merge_controller(
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
    cooldown: CooldownCache | None = None,
    notifier: Notifier | None = None,
    config: IdentityConfig | None = None,
) -> AutoMergeController:
    effective_config = config or get_identity_config()
    return AutoMergeController(
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        cooldown=cooldown or InMemoryCooldownCache(ttl_seconds=effective_config.cooldown_seconds),
        notifier=notifier or LoggingNotifier(),
        config=effective_config,
    )


def resolve_contact(
    organization_id: UUID,
    signal: IdentitySignal,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
    auto_merge: AutoMergeController | None = None,
    config: IdentityConfig | None = None,
) -> ResolvedIdentity:
    """Resolve ``signal`` and, given a controller, auto-merge the resulting contact."""

    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    effective_config = config or get_identity_config()
    resolved = resolve_identity(
        organization_id, signal, unit_of_work_factory=effective_uow, config=effective_config
    )
    log.info(
        "Resolved signal in organization %s: contact=%s, company=%s, source=%s (%.2f)",
        organization_id,
        resolved.contact_id,
        resolved.company_id,
        resolved.source,
        resolved.confidence,
    )
    if auto_merge is None or resolved.contact_id is None:
        return resolved

    surviving_id = auto_merge.auto_merge_if_high_confidence(
        resolved.contact_id,
        organization_id,
        SignalMetadata.from_signal(signal),
    )
    if surviving_id == resolved.contact_id:
        return resolved
    return dataclasses.replace(resolved, contact_id=surviving_id)


def ingest_signal_payloads(
    organization_id: UUID,
    payloads: Iterable[object],
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
    auto_merge: AutoMergeController | None = None,
    config: IdentityConfig | None = None,
) -> list[SignalResolution]:
    """Resolve actor and account for a batch of raw connector payloads."""

    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    effective_config = config or get_identity_config()
    results: list[SignalResolution] = []
    for raw in payloads:
        payload = parse_signal_payload(raw)
        metadata = SignalMetadata()
        if isinstance(payload, GitHubEventPayload) and payload.sender_login:
            resolution = resolve_github_actor(
                organization_id,
                payload.sender_login,
                unit_of_work_factory=effective_uow,
                email=payload.sender_email,
                company_field=payload.sender_company,
                avatar=payload.sender_avatar,
                config=effective_config,
            )
            metadata = SignalMetadata(
                email=payload.sender_email, github_username=payload.sender_login
            )
        elif isinstance(payload, NpmEventPayload) and payload.maintainer:
            resolution = resolve_npm_maintainer(
                organization_id,
                payload.maintainer,
                unit_of_work_factory=effective_uow,
                email=payload.maintainer_email,
                config=effective_config,
            )
            metadata = SignalMetadata(
                email=payload.maintainer_email, npm_username=payload.maintainer
            )
        else:
            context = to_signal_context(payload)
            resolution = resolve_signal_identity(
                organization_id,
                context,
                unit_of_work_factory=effective_uow,
                config=effective_config,
            )
            if context.anonymous_id:
                metadata = SignalMetadata.from_signal(
                    signal_from_anonymous_id(context.anonymous_id, context.metadata)
                )

        if auto_merge is not None and resolution.actor_id is not None:
            surviving_id = auto_merge.auto_merge_if_high_confidence(
                resolution.actor_id, organization_id, metadata
            )
            resolution = dataclasses.replace(resolution, actor_id=surviving_id)
        log.debug(
            "Resolved %s signal: actor=%s, account=%s",
            signal_type(payload),
            resolution.actor_id,
            resolution.account_id,
        )
        results.append(resolution)

    log.info(
        "Ingested %s signals for organization %s (%s with an actor)",
        len(results),
        organization_id,
        sum(1 for result in results if result.actor_id is not None),
    )
    return results


def start_cooldown_sweeper(
    cooldown: CooldownCache,
    *,
    config: IdentityConfig | None = None,
) -> CooldownSweeper:
    effective_config = config or get_identity_config()
    sweeper = CooldownSweeper(cooldown, interval_seconds=effective_config.cooldown_sweep_seconds)
    sweeper.start()
    return sweeper


def list_duplicate_groups(
    organization_id: UUID,
    *,
    limit: int | None = None,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
    config: IdentityConfig | None = None,
) -> list[DuplicateGroup]:
    effective_config = config or get_identity_config()
    effective_limit = limit if limit is not None else effective_config.duplicate_group_limit
    return find_duplicates(
        organization_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        limit=effective_limit,
    )


def merge_duplicate_contacts(
    organization_id: UUID,
    primary_id: UUID,
    duplicate_ids: Sequence[UUID],
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
) -> MergeResult:
    log.info(
        "Starting merge into %s: duplicates=%s",
        primary_id,
        ", ".join(str(duplicate_id) for duplicate_id in duplicate_ids),
    )
    result = merge_contacts(
        organization_id,
        primary_id,
        duplicate_ids,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
    )
    log.info(
        "Finished merge into %s: merged=%s, errors=%s",
        primary_id,
        result.merged,
        len(result.errors),
    )
    return result


def load_identity_graph(
    organization_id: UUID,
    contact_id: UUID,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
) -> IdentityGraph:
    return get_identity_graph(
        organization_id,
        contact_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
    )


def load_auto_merge_stats(
    organization_id: UUID,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
) -> AutoMergeStats:
    return get_auto_merge_stats(
        organization_id, unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory)
    )


def enrich_contact_profile(
    organization_id: UUID,
    contact_id: UUID,
    *,
    profiles: GitHubProfileSource | None = None,
    unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
    config: IdentityConfig | None = None,
) -> EnrichmentResult:
    """Enrich a contact, looking up its GitHub profile over HTTP by default."""

    effective_profiles = profiles or GitHubClient(config=get_github_config())
    return enrich_contact(
        organization_id,
        contact_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        profiles=effective_profiles,
        config=config or get_identity_config(),
    )
