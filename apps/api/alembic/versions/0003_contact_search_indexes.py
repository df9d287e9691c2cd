"""contact search indexes

Revision ID: 0003_contact_search_indexes
Revises: 0002_row_level_security
Create Date: 2026-10-01 00:20:00
"""

from typing import Sequence

from alembic import op

revision: str = "0003_contact_search_indexes"
down_revision: str | None = "0002_row_level_security"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TRIGRAM_COLUMNS = (
    ("contact_phone_numbers", "phone_number"),
    ("contact_phone_numbers", "label"),
    ("contact_emails", "email"),
    ("contact_emails", "label"),
    ("contact_websites", "url"),
    ("contact_websites", "label"),
    ("contact_comments", "body"),
)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
    op.execute("CREATE INDEX contacts_attributes_idx ON contacts USING gin (attributes)")
    op.execute(
        "CREATE INDEX contacts_name_lookup_idx ON contacts "
        "(organization_id, lower(first_name), lower(last_name))"
    )
    op.execute(
        "CREATE INDEX contacts_linkedin_lookup_idx ON contacts "
        "(organization_id, lower(trim(linkedin_profile_url)))"
    )
    for table, column in TRIGRAM_COLUMNS:
        op.execute(
            f"CREATE INDEX {table}_{column}_trgm_idx ON {table} "
            f"USING gin (coalesce({column}, '') gin_trgm_ops)"
        )


def downgrade() -> None:
    for table, column in TRIGRAM_COLUMNS:
        op.execute(f"DROP INDEX IF EXISTS {table}_{column}_trgm_idx")
    for name in ("contacts_linkedin_lookup_idx", "contacts_name_lookup_idx", "contacts_attributes_idx"):
        op.execute(f"DROP INDEX IF EXISTS {name}")
