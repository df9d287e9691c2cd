"""rolodex schema

Revision ID: 0001_rolodex_schema
Revises:
Create Date: 2026-10-01 00:00:00
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_rolodex_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ROLE_ENUM = postgresql.ENUM("admin", "creator", "participant", name="user_role_enum", create_type=False)
CONTACT_TYPE_ENUM = postgresql.ENUM(
    "Advisor", "Client", "Funder", "Partner", "General", name="contact_type_enum", create_type=False
)
CONTACT_STATUS_ENUM = postgresql.ENUM(
    "Active", "Prospect", "Inactive", "Archived", name="contact_status_enum", create_type=False
)
CONTACT_ATTRIBUTE_ENUM = postgresql.ENUM(
    "Academia",
    "Accessible Education",
    "Startup",
    "Not for Profit",
    "AgeTech",
    "Robotics",
    "AI Solutions",
    "Consumer Products",
    "Disability Services",
    "Disability Community",
    "Investor",
    "Adaptive Sports",
    "Accelerator",
    "Governement",
    name="contact_attribute_enum",
    create_type=False,
)
ENUMS = (ROLE_ENUM, CONTACT_TYPE_ENUM, CONTACT_STATUS_ENUM, CONTACT_ATTRIBUTE_ENUM)

NOW = sa.text("now()")
NEW_UUID = sa.text("gen_random_uuid()")


def _contact_child(name: str, *columns: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Uuid(), server_default=NEW_UUID, nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=False),
        *columns,
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.unique_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(f"{name}_org_idx", name, ["organization_id"], unique=False)
    op.create_index(f"{name}_contact_idx", name, ["contact_id"], unique=False)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), server_default=NEW_UUID, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), server_default=NEW_UUID, nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("role", ROLE_ENUM, server_default="participant", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subject", name="users_subject_key"),
    )
    op.create_index("users_organization_id_idx", "users", ["organization_id"], unique=False)

    op.create_table(
        "contacts",
        sa.Column("unique_id", sa.Uuid(), server_default=NEW_UUID, nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("organization", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=True),
        sa.Column("internal_contact", sa.Text(), nullable=True),
        sa.Column("referred_by", sa.Text(), nullable=True),
        sa.Column("referred_by_contact_id", sa.Uuid(), nullable=True),
        sa.Column("contact_type", CONTACT_TYPE_ENUM, nullable=False),
        sa.Column("status", CONTACT_STATUS_ENUM, server_default="Prospect", nullable=False),
        sa.Column("linkedin_profile_url", sa.Text(), nullable=True),
        sa.Column("linkedin_picture_url", sa.Text(), nullable=True),
        sa.Column("linkedin_company", sa.Text(), nullable=True),
        sa.Column("linkedin_job_title", sa.Text(), nullable=True),
        sa.Column("linkedin_location", sa.Text(), nullable=True),
        sa.Column(
            "attributes",
            postgresql.ARRAY(CONTACT_ATTRIBUTE_ENUM),
            server_default=sa.text("'{}'::contact_attribute_enum[]"),
            nullable=False,
        ),
        sa.Column("billing_address_line1", sa.Text(), nullable=True),
        sa.Column("billing_address_line2", sa.Text(), nullable=True),
        sa.Column("billing_city", sa.Text(), nullable=True),
        sa.Column("billing_state", sa.Text(), nullable=True),
        sa.Column("billing_zip_code", sa.Text(), nullable=True),
        sa.Column("shipping_address_line1", sa.Text(), nullable=True),
        sa.Column("shipping_address_line2", sa.Text(), nullable=True),
        sa.Column("shipping_city", sa.Text(), nullable=True),
        sa.Column("shipping_state", sa.Text(), nullable=True),
        sa.Column("shipping_zip_code", sa.Text(), nullable=True),
        sa.Column("shipping_same_as_billing", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["referred_by_contact_id"], ["contacts.unique_id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("unique_id"),
    )
    op.create_index("contacts_organization_id_idx", "contacts", ["organization_id"], unique=False)
    op.create_index("contacts_last_name_idx", "contacts", ["last_name"], unique=False)
    op.create_index("contacts_contact_type_idx", "contacts", ["contact_type"], unique=False)
    op.create_index("contacts_status_idx", "contacts", ["status"], unique=False)
    op.create_index("contacts_referred_by_contact_id_idx", "contacts", ["referred_by_contact_id"], unique=False)

    _contact_child(
        "contact_phone_numbers",
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.Text(), nullable=False),
    )
    _contact_child(
        "contact_emails",
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=False),
    )
    _contact_child(
        "contact_websites",
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
    )
    _contact_child(
        "linkedin_history",
        sa.Column("snapshot", postgresql.JSONB(), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    )
    _contact_child(
        "contact_comments",
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("archived", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("linkedin_history_captured_at_idx", "linkedin_history", [sa.text("captured_at DESC")])
    op.create_index("contact_comments_created_at_idx", "contact_comments", [sa.text("created_at DESC")])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), server_default=NEW_UUID, nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("actor_user_id", sa.Uuid(), nullable=True),
        sa.Column("actor_subject", sa.Text(), nullable=True),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=True),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("ip", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("audit_log_organization_id_idx", "audit_log", ["organization_id"], unique=False)
    op.create_index("audit_log_created_at_idx", "audit_log", ["created_at"], unique=False)
    op.create_index("audit_log_entity_lookup_idx", "audit_log", ["entity_type", "entity_id"], unique=False)

    op.execute(
        """
        CREATE OR REPLACE FUNCTION set_updated_at() RETURNS trigger
        LANGUAGE plpgsql AS $$
        BEGIN
          NEW.updated_at = now();
          RETURN NEW;
        END;
        $$
        """
    )
    for table in ("users", "contacts"):
        op.execute(
            f"CREATE TRIGGER {table}_set_updated_at BEFORE UPDATE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION set_updated_at()"
        )


def downgrade() -> None:
    for table in ("contacts", "users"):
        op.execute(f"DROP TRIGGER IF EXISTS {table}_set_updated_at ON {table}")
    op.execute("DROP FUNCTION IF EXISTS set_updated_at()")
    for table in (
        "audit_log",
        "contact_comments",
        "linkedin_history",
        "contact_websites",
        "contact_emails",
        "contact_phone_numbers",
        "contacts",
        "users",
        "organizations",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
