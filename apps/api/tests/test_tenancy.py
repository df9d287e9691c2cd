from __future__ import annotations

import uuid

import pytest
from sqlalchemy import Select, select

from rolodex_api.errors import ForbiddenError
from rolodex_api.models import Contact, ContactType, Role
from rolodex_api.tenancy import (
    EDITOR_ROLES,
    RequestContext,
    TenantSession,
    bind_request_context,
    org_scoped,
    require_role,
    run_in_tenant_transaction,
)

ORG_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")


class _Dialect:
    def __init__(self, name: str) -> None:
        self.name = name


class _Bind:
    def __init__(self, name: str) -> None:
        self.dialect = _Dialect(name)


class _RecordingSession:
    def __init__(self, dialect: str) -> None:
        self._bind = _Bind(dialect)
        self.statements: list[tuple[str, dict[str, str]]] = []

    def get_bind(self) -> _Bind:
        return self._bind

    def execute(self, statement, params=None):
        self.statements.append((str(statement), params or {}))


def test_org_scoped_helper_filters_by_org_id(make_context) -> None:
    scope = TenantSession(db=None, context=make_context())  # type: ignore[arg-type]
    stmt: Select[tuple[Contact]] = select(Contact)
    scoped_stmt = org_scoped(stmt, scope, Contact)
    compiled = str(scoped_stmt.compile(compile_kwargs={"literal_binds": True}))
    assert str(ORG_ID).replace("-", "") in compiled
    assert "contacts.organization_id" in compiled


def test_require_role() -> None:
    context = RequestContext(subject="s", org_id=ORG_ID, role=Role.PARTICIPANT)

    require_role(context, {Role.PARTICIPANT})
    with pytest.raises(ForbiddenError):
        require_role(context, EDITOR_ROLES)


def test_bind_request_context_sets_transaction_locals_on_postgres(make_context) -> None:
    db = _RecordingSession("postgresql")

    bind_request_context(db, make_context(Role.CREATOR))  # type: ignore[arg-type]

    assert [params for _, params in db.statements] == [
        {"key": "app.current_sub", "value": f"creator-{ORG_ID}"},
        {"key": "app.current_role", "value": "creator"},
        {"key": "app.current_org_id", "value": str(ORG_ID)},
    ]
    assert all("set_config(:key, :value, true)" in sql for sql, _ in db.statements)


def test_bind_request_context_is_noop_elsewhere(make_context) -> None:
    db = _RecordingSession("sqlite")

    bind_request_context(db, make_context())  # type: ignore[arg-type]

    assert db.statements == []


def test_transaction_rolls_back_on_error(session_factory, make_context) -> None:
    context = make_context()

    def _insert_then_fail(scope: TenantSession) -> None:
        scope.db.add(
            Contact(
                organization_id=scope.org_id,
                first_name="Temp",
                last_name="Row",
                contact_type=ContactType.GENERAL,
            )
        )
        scope.db.flush()
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_in_tenant_transaction(session_factory, context, _insert_then_fail)

    count = run_in_tenant_transaction(
        session_factory,
        context,
        lambda scope: len(scope.db.scalars(org_scoped(select(Contact), scope, Contact)).all()),
    )
    assert count == 0
