"""Contact enrichment: derive identities and profile fields for an existing contact."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from identigraph.config.identity import IdentityConfig
from identigraph.domain.errors import NotFoundError
from identigraph.domain.model import UNKNOWN_FIRST_NAME, IdentityType, UpsertOutcome
from identigraph.domain.ports import ProfileLookupError

from . import confidence
from .companies import find_or_create_company_by_domain, resolve_company_by_name
from .normalize import extract_company_domain, normalize_email, normalize_handle

if TYPE_CHECKING:
    from uuid import UUID

    from identigraph.domain.model import Contact
    from identigraph.domain.ports import (
        GitHubProfile,
        GitHubProfileSource,
        IdentityRepositories,
        IdentityUnitOfWorkFactory,
    )

log = logging.getLogger(__name__)


@dataclass(slots=True)
class EnrichmentResult:
    identities_added: int = 0
    company_resolved: bool = False
    enrichments: list[str] = field(default_factory=list[str])


def enrich_contact(
    organization_id: UUID,
    contact_id: UUID,
    *,
    unit_of_work_factory: IdentityUnitOfWorkFactory,
    profiles: GitHubProfileSource | None = None,
    config: IdentityConfig | None = None,
) -> EnrichmentResult:
    """Fill in identities, company and profile fields from what is already known.

    The GitHub profile lookup is best effort: failures are logged and the rest
    of the enrichment still applies. The lookup happens before the write
    transaction is opened.
    """

    effective_config = config or IdentityConfig()
    with unit_of_work_factory() as uow:
        contact = uow.repositories.contacts.get_in_organization(organization_id, contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id, organization_id=organization_id)
        github_login = contact.github

    profile: GitHubProfile | None = None
    if github_login and profiles is not None:
        try:
            profile = profiles.fetch_profile(github_login)
        except ProfileLookupError as exc:
            log.warning("GitHub lookup for %s failed: %s", github_login, exc)

    result = EnrichmentResult()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        contact = repositories.contacts.get_in_organization(organization_id, contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id, organization_id=organization_id)

        _enrich_from_email(repositories, contact, result)
        _enrich_from_github(repositories, contact, profile, result, effective_config)
        _enrich_from_social(repositories, contact, result)
        uow.commit()

    log.info(
        "Enriched contact %s: identities_added=%s, company_resolved=%s",
        contact_id,
        result.identities_added,
        result.company_resolved,
    )
    return result


def _enrich_from_email(
    repositories: IdentityRepositories, contact: Contact, result: EnrichmentResult
) -> None:
    if not contact.email:
        return
    email = normalize_email(contact.email)
    if _add_identity(repositories, contact, IdentityType.EMAIL, email, confidence.EXACT_EMAIL):
        result.identities_added += 1
        result.enrichments.append(f"Added email identity: {email}")

    if contact.company_id is not None:
        return
    domain = extract_company_domain(email)
    if domain is None:
        return
    company = find_or_create_company_by_domain(
        repositories.companies, contact.organization_id, domain
    )
    if company is not None and contact.link_company(company.id):
        result.company_resolved = True
        result.enrichments.append(f"Resolved company from email domain: {domain}")


def _enrich_from_github(
    repositories: IdentityRepositories,
    contact: Contact,
    profile: GitHubProfile | None,
    result: EnrichmentResult,
    config: IdentityConfig,
) -> None:
    if not contact.github:
        return
    login = normalize_handle(contact.github)
    if _add_identity(
        repositories, contact, IdentityType.GITHUB, login, confidence.GITHUB_IDENTITY
    ):
        result.identities_added += 1
        result.enrichments.append(f"Added GitHub identity: {login}")

    if profile is None:
        return

    if profile.company and contact.company_id is None:
        found = resolve_company_by_name(
            repositories.companies,
            contact.organization_id,
            profile.company,
            limit=config.fuzzy_company_limit,
            threshold=config.fuzzy_company_threshold,
        )
        if found is not None and contact.link_company(found[0].id):
            result.company_resolved = True
            result.enrichments.append(f"Resolved company from GitHub profile: {profile.company}")

    if profile.avatar_url and not contact.avatar:
        contact.avatar = profile.avatar_url
        result.enrichments.append("Added avatar from GitHub")

    if profile.name and contact.first_name == UNKNOWN_FIRST_NAME:
        first, _, rest = profile.name.strip().partition(" ")
        contact.first_name = first or contact.first_name
        contact.last_name = rest.strip() or contact.last_name
        result.enrichments.append(f"Updated name from GitHub: {profile.name}")

    if profile.email:
        email = normalize_email(profile.email)
        if _add_identity(
            repositories,
            contact,
            IdentityType.EMAIL,
            email,
            confidence.GITHUB_COMMIT_EMAIL,
            verified=False,
        ):
            result.identities_added += 1
            result.enrichments.append(f"Found email from GitHub: {email}")
            if not contact.email:
                contact.email = email

    if profile.twitter_username and not contact.twitter:
        contact.twitter = profile.twitter_username
        result.enrichments.append(f"Added Twitter from GitHub: @{profile.twitter_username}")

    contact.touch()


def _enrich_from_social(
    repositories: IdentityRepositories, contact: Contact, result: EnrichmentResult
) -> None:
    if contact.linkedin:
        value = contact.linkedin.strip().lower()
        if _add_identity(
            repositories,
            contact,
            IdentityType.LINKEDIN,
            value,
            confidence.LINKED_PROFILE,
            verified=False,
        ):
            result.identities_added += 1
            result.enrichments.append(f"Added LinkedIn identity: {value}")

    if contact.twitter:
        handle = normalize_handle(contact.twitter)
        if handle and _add_identity(
            repositories,
            contact,
            IdentityType.TWITTER,
            handle,
            confidence.LINKED_PROFILE,
            verified=False,
        ):
            result.identities_added += 1
            result.enrichments.append(f"Added Twitter identity: @{handle}")


def _add_identity(
    repositories: IdentityRepositories,
    contact: Contact,
    identity_type: IdentityType,
    value: str,
    score: float,
    *,
    verified: bool = True,
) -> bool:
    """Record a new identity; ``False`` when it already existed anywhere."""
    outcome = repositories.identities.upsert(
        contact_id=contact.id,
        identity_type=identity_type,
        value=value,
        confidence=score,
        verified=verified,
    )
    return outcome is UpsertOutcome.CREATED
