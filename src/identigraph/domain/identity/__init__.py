"""Identity resolution and dedup engine.

Flow for an incoming signal:
1) resolve the actor to a contact and company (``cascade``)
2) record every identity fact the signal implies
3) optionally fold the contact into a confidently matching one (``auto_merge``)

Manual dedup goes through ``duplicates`` (detection) and ``merge``.
"""

from __future__ import annotations

from .auto_merge import (
    AutoMergeController,
    AutoMergeStats,
    RecentAutoMerge,
    SignalMetadata,
    get_auto_merge_stats,
)
from .cascade import (
    COMPANY_STRATEGIES,
    CONTACT_STRATEGIES,
    IdentitySignal,
    Match,
    ResolvedIdentity,
    ResolverStrategy,
    resolve_identity,
    resolve_with_repositories,
)
from .companies import (
    find_company_by_github_org,
    find_or_create_company_by_domain,
    resolve_company_by_name,
)
from .duplicates import DuplicateCandidate, DuplicateGroup, find_duplicates
from .enrichment import EnrichmentResult, enrich_contact
from .graph import CompanySummary, IdentityEntry, IdentityGraph, get_identity_graph
from .merge import MergeReport, MergeResult, merge_contacts
from .signals import (
    SignalContext,
    SignalResolution,
    resolve_github_actor,
    resolve_npm_maintainer,
    resolve_signal_identity,
    signal_from_anonymous_id,
)

__all__ = [
    "COMPANY_STRATEGIES",
    "CONTACT_STRATEGIES",
    "AutoMergeController",
    "AutoMergeStats",
    "CompanySummary",
    "DuplicateCandidate",
    "DuplicateGroup",
    "EnrichmentResult",
    "IdentityEntry",
    "IdentityGraph",
    "IdentitySignal",
    "Match",
    "MergeReport",
    "MergeResult",
    "RecentAutoMerge",
    "ResolvedIdentity",
    "ResolverStrategy",
    "SignalContext",
    "SignalMetadata",
    "SignalResolution",
    "enrich_contact",
    "find_company_by_github_org",
    "find_duplicates",
    "find_or_create_company_by_domain",
    "get_auto_merge_stats",
    "get_identity_graph",
    "merge_contacts",
    "resolve_company_by_name",
    "resolve_github_actor",
    "resolve_identity",
    "resolve_npm_maintainer",
    "resolve_signal_identity",
    "resolve_with_repositories",
    "signal_from_anonymous_id",
]
