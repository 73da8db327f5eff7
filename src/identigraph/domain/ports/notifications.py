"""Port for telling a tenant's users about automatic decisions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from identigraph.domain.model import EntityType


@dataclass(frozen=True, slots=True)
class Notification:
    type: str
    title: str
    body: str
    entity_type: EntityType | None = None
    entity_id: UUID | None = None


@runtime_checkable
class Notifier(Protocol):
    def notify(self, organization_id: UUID, notification: Notification) -> None: ...
