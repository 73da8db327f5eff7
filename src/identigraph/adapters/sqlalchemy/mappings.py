"""SQLAlchemy mapping metadata for the identigraph domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from identigraph.domain.model import (
    Activity,
    Company,
    CompanySize,
    Contact,
    ContactTag,
    Deal,
    EmailEnrollment,
    Identity,
    IdentityType,
    Organization,
    Signal,
    Tag,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _organization_fk() -> Column[uuid.UUID]:
    return Column(
        "organization_id",
        UUIDColumnType,
        ForeignKey("organization.id", ondelete="CASCADE"),
        nullable=False,
    )


# Tenant and identity graph ---------------------------------------------------

organization_table = Table(
    "organization",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("settings", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
)

company_table = Table(
    "company",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("name", String, nullable=False),
    Column("domain", String, nullable=True),
    Column("github_org", String, nullable=True),
    Column("industry", String, nullable=True),
    Column("size", Enum(CompanySize, native_enum=False), nullable=True),
    Column("website", String, nullable=True),
    Column("logo", String, nullable=True),
    Column("description", Text, nullable=True),
    Column("custom_fields", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("organization_id", "domain"),
)

contact_table = Table(
    "contact",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("first_name", String, nullable=False),
    Column("last_name", String, nullable=False, default=""),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("mobile", String, nullable=True),
    Column("title", String, nullable=True),
    Column("avatar", String, nullable=True),
    Column("address", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("postal_code", String, nullable=True),
    Column("country", String, nullable=True),
    Column("linkedin", String, nullable=True),
    Column("twitter", String, nullable=True),
    Column("github", String, nullable=True),
    Column(
        "company_id",
        UUIDColumnType,
        ForeignKey("company.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("notes", Text, nullable=True),
    Column("custom_fields", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_contact_organization_email", "organization_id", "email"),
    Index("ix_contact_organization_company", "organization_id", "company_id"),
)

identity_table = Table(
    "identity",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "contact_id",
        UUIDColumnType,
        ForeignKey("contact.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("type", Enum(IdentityType, native_enum=False), nullable=False),
    Column("value", String, nullable=False),
    Column("confidence", Float, nullable=False, default=1.0),
    Column("verified", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("type", "value"),
)

# Records that follow a contact through merges --------------------------------

signal_table = Table(
    "signal",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("type", String, nullable=False),
    Column(
        "actor_id",
        UUIDColumnType,
        ForeignKey("contact.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column(
        "account_id",
        UUIDColumnType,
        ForeignKey("company.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("anonymous_id", String, nullable=True),
    Column("payload", JSON, nullable=False, default=dict),
    Column("timestamp", UTCDateTime(), nullable=False),
)

activity_table = Table(
    "activity",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("type", String, nullable=False),
    Column(
        "contact_id",
        UUIDColumnType,
        ForeignKey("contact.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column("description", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

deal_table = Table(
    "deal",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("title", String, nullable=False),
    Column(
        "contact_id",
        UUIDColumnType,
        ForeignKey("contact.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column("amount", Float, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

tag_table = Table(
    "tag",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("name", String, nullable=False),
    UniqueConstraint("organization_id", "name"),
)

contact_tag_table = Table(
    "contact_tag",
    mapper_registry.metadata,
    Column(
        "contact_id",
        UUIDColumnType,
        ForeignKey("contact.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        UUIDColumnType,
        ForeignKey("tag.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

email_enrollment_table = Table(
    "email_enrollment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _organization_fk(),
    Column("sequence_id", UUIDColumnType, nullable=False),
    Column(
        "contact_id",
        UUIDColumnType,
        ForeignKey("contact.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("status", String, nullable=False, default="active"),
    Column("enrolled_at", UTCDateTime(), nullable=False),
    UniqueConstraint("sequence_id", "contact_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Map domain dataclasses onto the tables above (idempotent)."""

    for entity_cls, table in (
        (Organization, organization_table),
        (Company, company_table),
        (Contact, contact_table),
        (Identity, identity_table),
        (Signal, signal_table),
        (Activity, activity_table),
        (Deal, deal_table),
        (Tag, tag_table),
        (ContactTag, contact_tag_table),
        (EmailEnrollment, email_enrollment_table),
    ):
        mapper_registry.map_imperatively(entity_cls, table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
