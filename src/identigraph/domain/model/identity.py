"""Identity facts: a (type, value) pair asserted about one contact."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from identigraph.domain.model.entity import Entity, utcnow
from identigraph.domain.model.enums import EntityType, IdentityType

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

type IdentityKey = tuple[IdentityType, str]


@dataclass(eq=False, kw_only=True)
class Identity(Entity):
    """``(type, value)`` is globally unique; ownership cannot be shared."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.IDENTITY

    contact_id: UUID
    type: IdentityType
    value: str
    confidence: float = 1.0
    verified: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> IdentityKey:
        return (self.type, self.value)
