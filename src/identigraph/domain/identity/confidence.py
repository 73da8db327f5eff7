"""Confidence scores assigned by each matching rule.

Ordering matters more than the absolute numbers: an exact email match always
outranks a GitHub/npm identity match, which outranks domain and org matches,
which outrank a fuzzy company name.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from identigraph.domain.model import IdentityType

if TYPE_CHECKING:
    from collections.abc import Mapping

EXACT_EMAIL: Final[float] = 1.0
GITHUB_IDENTITY: Final[float] = 0.95
NPM_IDENTITY: Final[float] = 0.95
GITHUB_COMPANY_FIELD: Final[float] = 0.9
GITHUB_ORG_MEMBERSHIP: Final[float] = 0.85
EMAIL_DOMAIN: Final[float] = 0.8
GITHUB_COMMIT_EMAIL: Final[float] = 0.75
NPM_MAINTAINER_EMAIL: Final[float] = 0.75
REVERSE_DNS: Final[float] = 0.6
FUZZY_COMPANY_NAME: Final[float] = 0.5

NEW_CONTACT: Final[float] = 0.8
LINKED_PROFILE: Final[float] = 0.95

IDENTITY_TYPE_CONFIDENCE: Final[Mapping[IdentityType, float]] = MappingProxyType(
    {
        IdentityType.EMAIL: EXACT_EMAIL,
        IdentityType.GITHUB: GITHUB_IDENTITY,
        IdentityType.NPM: NPM_IDENTITY,
    }
)


def confidence_for_type(identity_type: IdentityType) -> float:
    """Trust placed in two contacts sharing a value of ``identity_type``."""
    return IDENTITY_TYPE_CONFIDENCE.get(identity_type, FUZZY_COMPANY_NAME)


def is_verified(confidence: float) -> bool:
    return confidence >= GITHUB_IDENTITY
