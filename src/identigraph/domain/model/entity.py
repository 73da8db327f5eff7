"""Base building block: entity identity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from identigraph.domain.model.enums import EntityType


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class Entity:
    """Internal identity exists immediately in the domain."""

    id: UUID = field(default_factory=new_id)

    # class-level discriminator; subclasses must override
    ENTITY_TYPE: ClassVar[EntityType]

    @property
    def entity_type(self) -> EntityType:
        return self.ENTITY_TYPE


@dataclass(eq=False, kw_only=True)
class TenantEntity(Entity):
    """Entity that lives inside exactly one organization (tenant)."""

    organization_id: UUID

    def belongs_to(self, organization_id: UUID) -> bool:
        return self.organization_id == organization_id
