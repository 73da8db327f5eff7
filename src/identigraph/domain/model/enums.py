"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Discriminator for entities referenced from audit records and notifications."""

    ORGANIZATION = "organization"
    CONTACT = "contact"
    COMPANY = "company"
    IDENTITY = "identity"

    # Records that point at a contact and follow it through merges:
    SIGNAL = "signal"
    ACTIVITY = "activity"
    DEAL = "deal"
    TAG = "tag"
    EMAIL_ENROLLMENT = "email_enrollment"


class IdentityType(StrEnum):
    EMAIL = "EMAIL"
    GITHUB = "GITHUB"
    NPM = "NPM"
    DOMAIN = "DOMAIN"
    LINKEDIN = "LINKEDIN"
    TWITTER = "TWITTER"


class CompanySize(StrEnum):
    STARTUP = "STARTUP"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    ENTERPRISE = "ENTERPRISE"


class ResolutionSource(StrEnum):
    """Which cascade rule produced a resolution."""

    EXACT_EMAIL = "exact_email"
    GITHUB_IDENTITY = "github_identity"
    GITHUB_FIELD = "github_field"
    NPM_IDENTITY = "npm_identity"
    EMAIL_IDENTITY = "email_identity"
    EMAIL_DOMAIN = "email_domain"
    COMPANY_DOMAIN = "company_domain"
    GITHUB_ORG = "github_org"
    FUZZY_COMPANY_NAME = "fuzzy_company_name"
    NEW_CONTACT = "new_contact"
    NONE = "none"


class UpsertOutcome(StrEnum):
    """Result of asserting an identity fact for a contact."""

    CREATED = "created"
    UPDATED = "updated"
    OWNED_BY_OTHER = "owned_by_other"
