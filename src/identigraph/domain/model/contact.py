"""People tracked inside a tenant."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Final

from identigraph.domain.model.entity import TenantEntity, utcnow
from identigraph.domain.model.enums import EntityType

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

# Scalar fields a merge may copy from a duplicate onto the surviving contact.
MERGEABLE_FIELDS: Final[tuple[str, ...]] = (
    "email",
    "phone",
    "mobile",
    "title",
    "linkedin",
    "twitter",
    "github",
    "avatar",
    "address",
    "city",
    "state",
    "country",
)

UNKNOWN_FIRST_NAME: Final[str] = "Unknown"


@dataclass(eq=False, kw_only=True)
class Contact(TenantEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.CONTACT

    first_name: str
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    title: str | None = None
    avatar: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None

    # Legacy denormalized handles; identity rows are the source of truth
    linkedin: str | None = None
    twitter: str | None = None
    github: str | None = None

    company_id: UUID | None = None
    notes: str | None = None
    custom_fields: dict[str, object] = field(default_factory=dict[str, object])

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def link_company(self, company_id: UUID) -> bool:
        """Attach a company only when none is set; never overwrite."""
        if self.company_id is not None:
            return False
        self.company_id = company_id
        self.touch()
        return True

    def absorb(self, duplicate: Contact) -> tuple[str, ...]:
        """Copy fields from ``duplicate`` that are empty here.

        Values already present on this contact always win. Returns the names of
        the adopted fields (``company_id`` included when it was taken over).
        """
        adopted: list[str] = []
        for name in MERGEABLE_FIELDS:
            current = getattr(self, name)
            incoming = getattr(duplicate, name)
            if not current and incoming:
                setattr(self, name, incoming)
                adopted.append(name)
        if self.company_id is None and duplicate.company_id is not None:
            self.company_id = duplicate.company_id
            adopted.append("company_id")
        if adopted:
            self.touch()
        return tuple(adopted)

    def touch(self) -> None:
        self.updated_at = utcnow()
