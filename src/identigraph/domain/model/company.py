"""Accounts (companies) tracked inside a tenant."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from identigraph.domain.model.entity import TenantEntity, utcnow
from identigraph.domain.model.enums import CompanySize, EntityType

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Company(TenantEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.COMPANY

    name: str
    domain: str | None = None
    github_org: str | None = None
    industry: str | None = None
    size: CompanySize | None = None
    website: str | None = None
    logo: str | None = None
    description: str | None = None
    custom_fields: dict[str, object] = field(default_factory=dict[str, object])

    created_at: datetime = field(default_factory=utcnow)
