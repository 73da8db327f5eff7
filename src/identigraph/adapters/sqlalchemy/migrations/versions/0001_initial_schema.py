"""Initial identity graph schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-02-11 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

IDENTITY_TYPES = ("EMAIL", "GITHUB", "NPM", "DOMAIN", "LINKEDIN", "TWITTER")
COMPANY_SIZES = ("STARTUP", "SMALL", "MEDIUM", "LARGE", "ENTERPRISE")


def _timestamp(name: str) -> sa.Column[object]:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False)


def _organization_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["organization_id"],
        ["organization.id"],
        name=op.f(f"fk_{table}_{table}_organization_id_organization"),
        ondelete="CASCADE",
    )


def upgrade() -> None:
    op.create_table(
        "organization",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_organization")),
    )

    op.create_table(
        "company",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("domain", sa.String(), nullable=True),
        sa.Column("github_org", sa.String(), nullable=True),
        sa.Column("industry", sa.String(), nullable=True),
        sa.Column(
            "size", sa.Enum(*COMPANY_SIZES, name="companysize", native_enum=False), nullable=True
        ),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("logo", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("custom_fields", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        _organization_fk("company"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_company")),
        sa.UniqueConstraint(
            "organization_id", "domain", name=op.f("uq_company_company_organization_id")
        ),
    )

    op.create_table(
        "contact",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        *(
            sa.Column(name, sa.String(), nullable=True)
            for name in (
                "email",
                "phone",
                "mobile",
                "title",
                "avatar",
                "address",
                "city",
                "state",
                "postal_code",
                "country",
                "linkedin",
                "twitter",
                "github",
            )
        ),
        sa.Column("company_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("custom_fields", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _organization_fk("contact"),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["company.id"],
            name=op.f("fk_contact_contact_company_id_company"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_contact")),
    )
    op.create_index("ix_contact_organization_email", "contact", ["organization_id", "email"])
    op.create_index(
        "ix_contact_organization_company", "contact", ["organization_id", "company_id"]
    )

    op.create_table(
        "identity",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=False),
        sa.Column(
            "type", sa.Enum(*IDENTITY_TYPES, name="identitytype", native_enum=False), nullable=False
        ),
        sa.Column("value", sa.String(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["contact_id"],
            ["contact.id"],
            name=op.f("fk_identity_identity_contact_id_contact"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_identity")),
        sa.UniqueConstraint("type", "value", name=op.f("uq_identity_identity_type")),
    )
    op.create_index(op.f("ix_identity_contact_id"), "identity", ["contact_id"])

    op.create_table(
        "signal",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("account_id", sa.Uuid(), nullable=True),
        sa.Column("anonymous_id", sa.String(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        _timestamp("timestamp"),
        _organization_fk("signal"),
        sa.ForeignKeyConstraint(
            ["actor_id"],
            ["contact.id"],
            name=op.f("fk_signal_signal_actor_id_contact"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["company.id"],
            name=op.f("fk_signal_signal_account_id_company"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_signal")),
    )
    op.create_index(op.f("ix_signal_actor_id"), "signal", ["actor_id"])

    for table, title_column in (("activity", "type"), ("deal", "title")):
        extra = (
            [sa.Column("description", sa.Text(), nullable=True)]
            if table == "activity"
            else [sa.Column("amount", sa.Float(), nullable=True)]
        )
        op.create_table(
            table,
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column(title_column, sa.String(), nullable=False),
            sa.Column("contact_id", sa.Uuid(), nullable=True),
            *extra,
            _timestamp("created_at"),
            _organization_fk(table),
            sa.ForeignKeyConstraint(
                ["contact_id"],
                ["contact.id"],
                name=op.f(f"fk_{table}_{table}_contact_id_contact"),
                ondelete="SET NULL",
            ),
            sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{table}")),
        )
        op.create_index(op.f(f"ix_{table}_contact_id"), table, ["contact_id"])

    op.create_table(
        "tag",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        _organization_fk("tag"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tag")),
        sa.UniqueConstraint("organization_id", "name", name=op.f("uq_tag_tag_organization_id")),
    )

    op.create_table(
        "contact_tag",
        sa.Column("contact_id", sa.Uuid(), nullable=False),
        sa.Column("tag_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(
            ["contact_id"],
            ["contact.id"],
            name=op.f("fk_contact_tag_contact_tag_contact_id_contact"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["tag_id"],
            ["tag.id"],
            name=op.f("fk_contact_tag_contact_tag_tag_id_tag"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("contact_id", "tag_id", name=op.f("pk_contact_tag")),
    )

    op.create_table(
        "email_enrollment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("sequence_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        _timestamp("enrolled_at"),
        _organization_fk("email_enrollment"),
        sa.ForeignKeyConstraint(
            ["contact_id"],
            ["contact.id"],
            name=op.f("fk_email_enrollment_email_enrollment_contact_id_contact"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_email_enrollment")),
        sa.UniqueConstraint(
            "sequence_id",
            "contact_id",
            name=op.f("uq_email_enrollment_email_enrollment_sequence_id"),
        ),
    )
    op.create_index(
        op.f("ix_email_enrollment_contact_id"), "email_enrollment", ["contact_id"]
    )


def downgrade() -> None:
    for table in (
        "email_enrollment",
        "contact_tag",
        "tag",
        "deal",
        "activity",
        "signal",
        "identity",
        "contact",
        "company",
        "organization",
    ):
        op.drop_table(table)
