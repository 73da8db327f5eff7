"""Records owned by other subsystems that reference a contact.

The identity engine never interprets these beyond their contact reference: a
merge repoints them from the losing contact to the surviving one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from identigraph.domain.model.entity import TenantEntity, utcnow
from identigraph.domain.model.enums import EntityType

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class Signal(TenantEntity):
    """An activity event; ``actor_id`` is the contact, ``account_id`` the company."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.SIGNAL

    type: str
    actor_id: UUID | None = None
    account_id: UUID | None = None
    anonymous_id: str | None = None
    payload: dict[str, object] = field(default_factory=dict[str, object])
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class Activity(TenantEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ACTIVITY

    type: str
    contact_id: UUID | None = None
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class Deal(TenantEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DEAL

    title: str
    contact_id: UUID | None = None
    amount: float | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class Tag(TenantEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.TAG

    name: str


@dataclass(eq=False, kw_only=True)
class ContactTag:
    """Link row; ``(contact_id, tag_id)`` is the primary key."""

    contact_id: UUID
    tag_id: UUID


@dataclass(eq=False, kw_only=True)
class EmailEnrollment(TenantEntity):
    """Enrollment of a contact in an email sequence; one per (sequence, contact)."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.EMAIL_ENROLLMENT

    sequence_id: UUID
    contact_id: UUID
    status: str = "active"
    enrolled_at: datetime = field(default_factory=utcnow)
