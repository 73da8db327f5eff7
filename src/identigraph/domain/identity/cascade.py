"""Resolution cascade: map partial identity signals to a contact and a company.

The cascade is data. ``CONTACT_STRATEGIES`` and ``COMPANY_STRATEGIES`` list the
rules in priority order; each rule returns a ``Match`` or ``None``. Per target
the first rule that matches wins, and the two targets are folded into one
result that keeps the highest-confidence match. Rule order is therefore
testable without running the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import reduce
from typing import TYPE_CHECKING

from identigraph.config.identity import IdentityConfig
from identigraph.domain.errors import NotFoundError
from identigraph.domain.model import (
    UNKNOWN_FIRST_NAME,
    Company,
    Contact,
    IdentityType,
    ResolutionSource,
    UpsertOutcome,
)

from . import confidence
from .companies import (
    find_company_by_github_org,
    find_or_create_company_by_domain,
    resolve_company_by_name,
)
from .normalize import extract_company_domain, normalize_email, normalize_handle

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from uuid import UUID

    from identigraph.domain.ports import IdentityRepositories, IdentityUnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentitySignal:
    """Whatever a connector knows about the actor behind an event."""

    email: str | None = None
    github_username: str | None = None
    npm_username: str | None = None
    company_name: str | None = None
    company_domain: str | None = None
    github_org: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None

    def is_sufficient(self) -> bool:
        """Enough to justify creating a contact."""
        return bool(self.email or self.github_username or self.npm_username)

    def implied_identities(self) -> tuple[tuple[IdentityType, str, float], ...]:
        """Identity facts asserted by this signal, normalized."""
        implied: list[tuple[IdentityType, str, float]] = []
        if self.email:
            implied.append(
                (IdentityType.EMAIL, normalize_email(self.email), confidence.EXACT_EMAIL)
            )
        if self.github_username:
            implied.append(
                (
                    IdentityType.GITHUB,
                    normalize_handle(self.github_username),
                    confidence.GITHUB_IDENTITY,
                )
            )
        if self.npm_username:
            implied.append(
                (IdentityType.NPM, normalize_handle(self.npm_username), confidence.NPM_IDENTITY)
            )
        if self.company_domain:
            implied.append(
                (
                    IdentityType.DOMAIN,
                    self.company_domain.strip().lower(),
                    confidence.EMAIL_DOMAIN,
                )
            )
        return tuple((kind, value, score) for kind, value, score in implied if value)


@dataclass(frozen=True)
class Match[TTarget]:
    target: TTarget
    confidence: float
    source: ResolutionSource


@dataclass(frozen=True, slots=True)
class ResolvedIdentity:
    contact_id: UUID | None
    company_id: UUID | None
    confidence: float
    source: ResolutionSource
    is_new: bool = False
    identities_stored: int = 0


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    repositories: IdentityRepositories
    organization_id: UUID
    signal: IdentitySignal
    config: IdentityConfig = field(default_factory=IdentityConfig)


@dataclass(frozen=True)
class ResolverStrategy[TTarget]:
    name: str
    resolve: Callable[[ResolutionContext], Match[TTarget] | None]


# Contact rules ---------------------------------------------------------------


def _by_exact_email(context: ResolutionContext) -> Match[Contact] | None:
    email = context.signal.email
    if not email:
        return None
    contact = context.repositories.contacts.find_by_email(
        context.organization_id, normalize_email(email)
    )
    if contact is None:
        return None
    return Match(contact, confidence.EXACT_EMAIL, ResolutionSource.EXACT_EMAIL)


def _by_github_identity(context: ResolutionContext) -> Match[Contact] | None:
    login = context.signal.github_username
    if not login:
        return None
    normalized = normalize_handle(login)
    contact = context.repositories.identities.find_owner(
        context.organization_id, IdentityType.GITHUB, normalized
    )
    if contact is not None:
        return Match(contact, confidence.GITHUB_IDENTITY, ResolutionSource.GITHUB_IDENTITY)

    # contacts created before identity rows existed only carry the plain field
    contact = context.repositories.contacts.find_by_github_field(
        context.organization_id, normalized
    )
    if contact is not None:
        return Match(contact, confidence.GITHUB_IDENTITY, ResolutionSource.GITHUB_FIELD)
    return None


def _by_npm_identity(context: ResolutionContext) -> Match[Contact] | None:
    npm = context.signal.npm_username
    if not npm:
        return None
    contact = context.repositories.identities.find_owner(
        context.organization_id, IdentityType.NPM, normalize_handle(npm)
    )
    if contact is None:
        return None
    return Match(contact, confidence.NPM_IDENTITY, ResolutionSource.NPM_IDENTITY)


def _by_email_identity(context: ResolutionContext) -> Match[Contact] | None:
    email = context.signal.email
    if not email:
        return None
    contact = context.repositories.identities.find_owner(
        context.organization_id, IdentityType.EMAIL, normalize_email(email)
    )
    if contact is None:
        return None
    return Match(contact, confidence.EXACT_EMAIL, ResolutionSource.EMAIL_IDENTITY)


# Company rules ---------------------------------------------------------------


def _by_email_domain(context: ResolutionContext) -> Match[Company] | None:
    email = context.signal.email
    if not email:
        return None
    domain = extract_company_domain(email)
    if domain is None:
        return None
    company = find_or_create_company_by_domain(
        context.repositories.companies, context.organization_id, domain
    )
    if company is None:
        return None
    return Match(company, confidence.EMAIL_DOMAIN, ResolutionSource.EMAIL_DOMAIN)


def _by_company_domain(context: ResolutionContext) -> Match[Company] | None:
    domain = context.signal.company_domain
    if not domain:
        return None
    company = find_or_create_company_by_domain(
        context.repositories.companies, context.organization_id, domain
    )
    if company is None:
        return None
    return Match(company, confidence.EMAIL_DOMAIN, ResolutionSource.COMPANY_DOMAIN)


def _by_github_org(context: ResolutionContext) -> Match[Company] | None:
    github_org = context.signal.github_org
    if not github_org:
        return None
    company = find_company_by_github_org(
        context.repositories.companies, context.organization_id, github_org
    )
    if company is None:
        return None
    return Match(company, confidence.GITHUB_ORG_MEMBERSHIP, ResolutionSource.GITHUB_ORG)


def _by_fuzzy_company_name(context: ResolutionContext) -> Match[Company] | None:
    name = context.signal.company_name
    if not name:
        return None
    found = resolve_company_by_name(
        context.repositories.companies,
        context.organization_id,
        name,
        limit=context.config.fuzzy_company_limit,
        threshold=context.config.fuzzy_company_threshold,
    )
    if found is None:
        return None
    company, _score = found
    return Match(company, confidence.FUZZY_COMPANY_NAME, ResolutionSource.FUZZY_COMPANY_NAME)


CONTACT_STRATEGIES: tuple[ResolverStrategy[Contact], ...] = (
    ResolverStrategy("exact_email", _by_exact_email),
    ResolverStrategy("github_identity", _by_github_identity),
    ResolverStrategy("npm_identity", _by_npm_identity),
    ResolverStrategy("email_identity", _by_email_identity),
)

COMPANY_STRATEGIES: tuple[ResolverStrategy[Company], ...] = (
    ResolverStrategy("email_domain", _by_email_domain),
    ResolverStrategy("company_domain", _by_company_domain),
    ResolverStrategy("github_org", _by_github_org),
    ResolverStrategy("fuzzy_company_name", _by_fuzzy_company_name),
)


def first_match[TTarget](
    strategies: Iterable[ResolverStrategy[TTarget]],
    context: ResolutionContext,
) -> Match[TTarget] | None:
    """Run ``strategies`` in order and stop at the first hit."""

    for strategy in strategies:
        match = strategy.resolve(context)
        if match is not None:
            log.debug("Cascade rule %s matched (%.2f)", strategy.name, match.confidence)
            return match
    return None


def strongest(
    matches: Iterable[Match[Contact] | Match[Company] | None],
) -> Match[Contact] | Match[Company] | None:
    """Fold matches into the one with the highest confidence; earlier wins ties."""

    def keep(
        best: Match[Contact] | Match[Company] | None,
        candidate: Match[Contact] | Match[Company] | None,
    ) -> Match[Contact] | Match[Company] | None:
        if candidate is None:
            return best
        if best is None or candidate.confidence > best.confidence:
            return candidate
        return best

    return reduce(keep, matches, None)


# Entry points ----------------------------------------------------------------


def resolve_with_repositories(
    repositories: IdentityRepositories,
    organization_id: UUID,
    signal: IdentitySignal,
    *,
    config: IdentityConfig | None = None,
) -> ResolvedIdentity:
    """Run the cascade inside an already-open unit of work (no commit)."""

    context = ResolutionContext(
        repositories=repositories,
        organization_id=organization_id,
        signal=signal,
        config=config or IdentityConfig(),
    )

    contact_match = first_match(CONTACT_STRATEGIES, context)
    contact = contact_match.target if contact_match is not None else None
    company_id = contact.company_id if contact is not None else None

    company_match: Match[Company] | None = None
    if company_id is None:
        company_match = first_match(COMPANY_STRATEGIES, context)
        if company_match is not None:
            company_id = company_match.target.id

    best = strongest((contact_match, company_match))
    score = best.confidence if best is not None else 0.0
    source = best.source if best is not None else ResolutionSource.NONE

    is_new = False
    if contact is None and signal.is_sufficient():
        contact = _create_contact(repositories, organization_id, signal, company_id)
        is_new = True
        if score <= 0:
            score, source = confidence.NEW_CONTACT, ResolutionSource.NEW_CONTACT
    elif contact is not None and company_id is not None and contact.company_id is None:
        contact.link_company(company_id)
        log.debug("Linked contact %s to company %s", contact.id, company_id)

    stored = 0
    if contact is not None:
        stored = store_identities(repositories, contact.id, signal.implied_identities())

    return ResolvedIdentity(
        contact_id=contact.id if contact is not None else None,
        company_id=company_id,
        confidence=score,
        source=source,
        is_new=is_new,
        identities_stored=stored,
    )


def resolve_identity(
    organization_id: UUID,
    signal: IdentitySignal,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    config: IdentityConfig | None = None,
) -> ResolvedIdentity:
    """Resolve ``signal`` to a contact and company of ``organization_id``.

    Creates the contact (and a company for an unseen business domain) when
    nothing matches, and records every identity the signal implies.
    """

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        if repositories.organizations.get(organization_id) is None:
            raise NotFoundError("organization", organization_id)
        resolved = resolve_with_repositories(
            repositories, organization_id, signal, config=config
        )
        uow.commit()
    return resolved


def store_identities(
    repositories: IdentityRepositories,
    contact_id: UUID,
    identities: Iterable[tuple[IdentityType, str, float]],
    *,
    verified: bool | None = None,
) -> int:
    """Upsert identity facts for ``contact_id``; return how many were written.

    Facts already owned by another contact are skipped: reconciling them is
    the job of the merge flow.
    """

    stored = 0
    for identity_type, value, score in identities:
        outcome = repositories.identities.upsert(
            contact_id=contact_id,
            identity_type=identity_type,
            value=value,
            confidence=score,
            verified=confidence.is_verified(score) if verified is None else verified,
        )
        if outcome is UpsertOutcome.OWNED_BY_OTHER:
            log.debug(
                "Identity %s=%s already belongs to another contact; not stored for %s",
                identity_type,
                value,
                contact_id,
            )
            continue
        stored += 1
    return stored


def _create_contact(
    repositories: IdentityRepositories,
    organization_id: UUID,
    signal: IdentitySignal,
    company_id: UUID | None,
) -> Contact:
    first_name = (
        signal.first_name or signal.github_username or signal.npm_username or UNKNOWN_FIRST_NAME
    )
    contact = Contact(
        organization_id=organization_id,
        first_name=first_name,
        last_name=signal.last_name or "",
        email=normalize_email(signal.email) if signal.email else None,
        github=signal.github_username or None,
        avatar=signal.avatar or None,
        company_id=company_id,
    )
    repositories.contacts.add(contact)
    log.info("Created contact %s (%s) in organization %s", contact.id, first_name, organization_id)
    return contact
