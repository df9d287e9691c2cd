"""row level security

Revision ID: 0002_row_level_security
Revises: 0001_rolodex_schema
Create Date: 2026-10-01 00:10:00
"""

from typing import Sequence

from alembic import op

revision: str = "0002_row_level_security"
down_revision: str | None = "0001_rolodex_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

APP_ROLE = "rolodex_app"

ANY = ("admin", "creator", "participant")
EDITORS = ("admin", "creator")
ADMIN = ("admin",)

# table -> roles allowed for select, insert, update, delete
POLICIES: dict[str, dict[str, tuple[str, ...]]] = {
    "contacts": {"select": ANY, "insert": EDITORS, "update": EDITORS, "delete": ADMIN},
    "contact_phone_numbers": {"select": ANY, "insert": EDITORS, "update": EDITORS, "delete": EDITORS},
    "contact_emails": {"select": ANY, "insert": EDITORS, "update": EDITORS, "delete": EDITORS},
    "contact_websites": {"select": ANY, "insert": EDITORS, "update": EDITORS, "delete": EDITORS},
    "linkedin_history": {"select": ANY, "insert": EDITORS, "update": EDITORS, "delete": ADMIN},
    "contact_comments": {"select": ANY, "insert": ANY, "update": EDITORS, "delete": ADMIN},
    "audit_log": {"select": EDITORS, "insert": ANY},
}

HELPERS = """
CREATE OR REPLACE FUNCTION current_org_id() RETURNS uuid
LANGUAGE sql STABLE AS $$
  SELECT nullif(current_setting('app.current_org_id', true), '')::uuid;
$$;

CREATE OR REPLACE FUNCTION current_app_role() RETURNS text
LANGUAGE sql STABLE AS $$
  SELECT nullif(current_setting('app.current_role', true), '');
$$;

CREATE OR REPLACE FUNCTION current_sub() RETURNS text
LANGUAGE sql STABLE AS $$
  SELECT nullif(current_setting('app.current_sub', true), '');
$$;

CREATE OR REPLACE FUNCTION is_authenticated() RETURNS boolean
LANGUAGE sql STABLE AS $$
  SELECT current_sub() IS NOT NULL AND current_org_id() IS NOT NULL;
$$;
"""

ALL_TABLES = ("organizations", "users", *POLICIES)


def _in_org(column: str, roles: tuple[str, ...]) -> str:
    role_list = ", ".join(f"'{role}'" for role in roles)
    return f"is_authenticated() AND current_app_role() IN ({role_list}) AND {column} = current_org_id()"


def _create_policy(table: str, command: str, predicate: str) -> None:
    name = f"{table}_{command}_policy"
    if command == "insert":
        clause = f"WITH CHECK ({predicate})"
    elif command == "update":
        clause = f"USING ({predicate}) WITH CHECK ({predicate})"
    else:
        clause = f"USING ({predicate})"
    op.execute(f"CREATE POLICY {name} ON {table} FOR {command.upper()} {clause}")


def upgrade() -> None:
    op.execute(HELPERS)
    op.execute(
        f"""
        DO $$
        BEGIN
          IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = '{APP_ROLE}') THEN
            CREATE ROLE {APP_ROLE} NOLOGIN;
          END IF;
        END
        $$
        """
    )
    for table in ALL_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"GRANT SELECT, INSERT, UPDATE, DELETE ON {table} TO {APP_ROLE}")

    _create_policy("organizations", "select", _in_org("id", ANY))
    _create_policy("organizations", "update", _in_org("id", ADMIN))

    _create_policy("users", "select", _in_org("organization_id", ANY))
    # Any caller may create their own application user; admins may create others.
    _create_policy(
        "users",
        "insert",
        f"{_in_org('organization_id', ANY)} AND (subject = current_sub() OR current_app_role() = 'admin')",
    )
    _create_policy("users", "update", _in_org("organization_id", ADMIN))
    _create_policy("users", "delete", _in_org("organization_id", ADMIN))

    for table, commands in POLICIES.items():
        for command, roles in commands.items():
            _create_policy(table, command, _in_org("organization_id", roles))


def downgrade() -> None:
    for command in ("select", "update"):
        op.execute(f"DROP POLICY IF EXISTS organizations_{command}_policy ON organizations")
    for command in ("select", "insert", "update", "delete"):
        op.execute(f"DROP POLICY IF EXISTS users_{command}_policy ON users")
    for table, commands in POLICIES.items():
        for command in commands:
            op.execute(f"DROP POLICY IF EXISTS {table}_{command}_policy ON {table}")
    for table in ALL_TABLES:
        op.execute(f"REVOKE ALL ON {table} FROM {APP_ROLE}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
    for name in ("is_authenticated", "current_sub", "current_app_role", "current_org_id"):
        op.execute(f"DROP FUNCTION IF EXISTS {name}()")
