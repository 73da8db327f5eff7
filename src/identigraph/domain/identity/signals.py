"""Resolve the actor and account of an incoming signal before it is stored.

Connectors hand over whatever they know: an already resolved actor, an
anonymous id such as ``github:octocat`` or ``npm:left-pad``, an email address,
and free-form metadata. This module turns that into cascade input.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

from identigraph.domain.errors import NotFoundError

from .cascade import IdentitySignal, resolve_identity, resolve_with_repositories
from .normalize import extract_company_domain

if TYPE_CHECKING:
    from uuid import UUID

    from identigraph.config.identity import IdentityConfig
    from identigraph.domain.ports import IdentityUnitOfWorkFactory

    from .cascade import ResolvedIdentity

log = logging.getLogger(__name__)

GITHUB_PREFIX: Final[str] = "github:"
NPM_PREFIX: Final[str] = "npm:"

SENDER_LOGIN_KEY: Final[str] = "sender_login"
SENDER_AVATAR_KEY: Final[str] = "sender_avatar"
MAINTAINER_EMAIL_KEY: Final[str] = "maintainer_email"


@dataclass(frozen=True, slots=True, kw_only=True)
class SignalContext:
    actor_id: UUID | None = None
    account_id: UUID | None = None
    anonymous_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True)
class SignalResolution:
    actor_id: UUID | None
    account_id: UUID | None


def resolve_github_actor(
    organization_id: UUID,
    login: str,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    email: str | None = None,
    company_field: str | None = None,
    avatar: str | None = None,
    config: IdentityConfig | None = None,
) -> SignalResolution:
    """Resolve a GitHub user as seen on a webhook or API event.

    A profile company written as ``@stripe`` names both the company and its
    GitHub org.
    """

    company_name: str | None = None
    github_org: str | None = None
    if company_field and (cleaned := company_field.strip()):
        if cleaned.startswith("@"):
            github_org = company_name = cleaned[1:]
        else:
            company_name = cleaned

    signal = IdentitySignal(
        email=email,
        github_username=login,
        company_name=company_name,
        github_org=github_org,
        avatar=avatar,
        company_domain=extract_company_domain(email) if email else None,
    )
    resolved = resolve_identity(
        organization_id, signal, unit_of_work_factory=unit_of_work_factory, config=config
    )
    return _as_resolution(resolved)


def resolve_npm_maintainer(
    organization_id: UUID,
    npm_username: str,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    email: str | None = None,
    config: IdentityConfig | None = None,
) -> SignalResolution:
    signal = IdentitySignal(
        email=email,
        npm_username=npm_username,
        company_domain=extract_company_domain(email) if email else None,
    )
    resolved = resolve_identity(
        organization_id, signal, unit_of_work_factory=unit_of_work_factory, config=config
    )
    return _as_resolution(resolved)


def resolve_signal_identity(
    organization_id: UUID,
    context: SignalContext,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    config: IdentityConfig | None = None,
) -> SignalResolution:
    """Fill in ``actor_id`` and ``account_id`` for a signal where possible.

    Nothing is created unless the anonymous id and metadata together are
    enough to identify a person.
    """

    if context.actor_id is not None and context.account_id is not None:
        return SignalResolution(context.actor_id, context.account_id)

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        if repositories.organizations.get(organization_id) is None:
            raise NotFoundError("organization", organization_id)

        if context.actor_id is not None:
            contact = repositories.contacts.get_in_organization(organization_id, context.actor_id)
            if contact is not None and contact.company_id is not None:
                return SignalResolution(context.actor_id, contact.company_id)
            return SignalResolution(context.actor_id, context.account_id)

        if not context.anonymous_id:
            return SignalResolution(None, context.account_id)

        signal = signal_from_anonymous_id(context.anonymous_id, context.metadata)
        if signal.is_sufficient():
            resolved = resolve_with_repositories(
                repositories, organization_id, signal, config=config
            )
            uow.commit()
            log.debug(
                "Signal %s resolved to contact %s via %s",
                context.anonymous_id,
                resolved.contact_id,
                resolved.source,
            )
            return _as_resolution(resolved)

        if "@" in context.anonymous_id:
            domain = extract_company_domain(context.anonymous_id)
            if domain is not None:
                company = repositories.companies.find_by_domain(organization_id, domain)
                if company is not None:
                    return SignalResolution(None, company.id)

    return SignalResolution(None, context.account_id)


def signal_from_anonymous_id(
    anonymous_id: str, metadata: Mapping[str, Any] | None = None
) -> IdentitySignal:
    """Parse ``github:<login>``, ``npm:<name>`` or an email, plus metadata hints."""

    email: str | None = None
    github_username: str | None = None
    npm_username: str | None = None
    avatar: str | None = None

    if anonymous_id.startswith(GITHUB_PREFIX):
        github_username = anonymous_id.removeprefix(GITHUB_PREFIX) or None
    elif anonymous_id.startswith(NPM_PREFIX):
        npm_username = anonymous_id.removeprefix(NPM_PREFIX) or None
    elif "@" in anonymous_id:
        email = anonymous_id

    hints = metadata or {}
    if github_username is None and hints.get(SENDER_LOGIN_KEY):
        github_username = str(hints[SENDER_LOGIN_KEY])
    if hints.get(SENDER_AVATAR_KEY):
        avatar = str(hints[SENDER_AVATAR_KEY])
    if email is None and hints.get(MAINTAINER_EMAIL_KEY):
        email = str(hints[MAINTAINER_EMAIL_KEY])

    return IdentitySignal(
        email=email,
        github_username=github_username,
        npm_username=npm_username,
        avatar=avatar,
    )


def _as_resolution(resolved: ResolvedIdentity) -> SignalResolution:
    return SignalResolution(resolved.contact_id, resolved.company_id)
