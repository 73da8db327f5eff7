"""Company lookup-or-create by domain, GitHub org and fuzzy name."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from identigraph.config.identity import DEFAULT_FUZZY_COMPANY_LIMIT, DEFAULT_FUZZY_COMPANY_THRESHOLD
from identigraph.domain.errors import TransientStoreError
from identigraph.domain.model import Company

from .normalize import (
    MIN_COMPANY_NAME_LENGTH,
    company_name_similarity,
    domain_to_company_name,
    is_free_email_domain,
    normalize_company_name,
    normalize_domain,
    normalize_handle,
)

if TYPE_CHECKING:
    from uuid import UUID

    from identigraph.domain.ports import CompanyRepository

log = logging.getLogger(__name__)


def find_or_create_company_by_domain(
    companies: CompanyRepository,
    organization_id: UUID,
    domain: str,
) -> Company | None:
    """Return the tenant's company for ``domain``, creating it when absent.

    Free mail domains never map to a company. Two writers racing to create the
    same domain both end up with the single surviving row.
    """

    normalized = normalize_domain(domain)
    if not normalized or "." not in normalized or is_free_email_domain(normalized):
        return None

    existing = companies.find_by_domain(organization_id, normalized)
    if existing is not None:
        return existing

    company = Company(
        organization_id=organization_id,
        name=domain_to_company_name(normalized),
        domain=normalized,
        website=f"https://{normalized}",
    )
    if companies.try_add(company):
        log.info("Created company %s for domain %s", company.name, normalized)
        return company

    winner = companies.find_by_domain(organization_id, normalized)
    if winner is None:
        raise TransientStoreError(
            f"Company for domain {normalized} was claimed concurrently but is not visible yet"
        )
    log.debug("Lost company creation race for %s; reusing %s", normalized, winner.id)
    return winner


def find_company_by_github_org(
    companies: CompanyRepository,
    organization_id: UUID,
    github_org: str,
) -> Company | None:
    normalized = normalize_handle(github_org)
    if not normalized:
        return None
    return companies.find_by_github_org(organization_id, normalized)


def resolve_company_by_name(
    companies: CompanyRepository,
    organization_id: UUID,
    name: str,
    *,
    limit: int = DEFAULT_FUZZY_COMPANY_LIMIT,
    threshold: float = DEFAULT_FUZZY_COMPANY_THRESHOLD,
) -> tuple[Company, float] | None:
    """Best fuzzy match for ``name`` among the tenant's first ``limit`` companies.

    Both the company name and its GitHub org are scored. Companies beyond
    ``limit`` (by creation order) are never considered.
    """

    if len(normalize_company_name(name)) < MIN_COMPANY_NAME_LENGTH:
        return None

    best: Company | None = None
    best_score = 0.0
    for company in companies.list_companies(organization_id, limit=limit):
        score = company_name_similarity(name, company.name)
        if company.github_org:
            score = max(score, company_name_similarity(name, company.github_org))
        if score > best_score:
            best, best_score = company, score
        if best_score >= 1.0:
            break

    if best is None or best_score < threshold:
        return None
    return best, best_score
