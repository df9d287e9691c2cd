from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from .errors import ForbiddenError
from .models import Role

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_ROLES: frozenset[Role] = frozenset(Role)
EDITOR_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.CREATOR})
ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})


@dataclass(frozen=True)
class RequestContext:
    """Verified caller identity."""

    subject: str
    org_id: uuid.UUID
    role: Role
    email: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class RequestMeta:
    ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


@dataclass
class TenantSession:
    """A database session bound to one caller for one transaction.

    Repositories receive this object instead of raw organization ids, so the
    tenant filter always comes from the verified identity.
    """

    db: Session
    context: RequestContext
    meta: RequestMeta = field(default_factory=RequestMeta)
    actor_user_id: uuid.UUID | None = None

    @property
    def org_id(self) -> uuid.UUID:
        return self.context.org_id

    @property
    def role(self) -> Role:
        return self.context.role


def org_scoped(stmt: Any, scope: TenantSession, model: Any) -> Any:
    return stmt.where(getattr(model, "organization_id") == scope.org_id)


def require_role(context: RequestContext, allowed: Collection[Role]) -> None:
    if context.role not in allowed:
        raise ForbiddenError("Insufficient role")


def bind_request_context(db: Session, context: RequestContext) -> None:
    """Expose the caller to the row-level security policies for this transaction."""
    if db.get_bind().dialect.name != "postgresql":
        return
    for key, value in (
        ("app.current_sub", context.subject),
        ("app.current_role", context.role.value),
        ("app.current_org_id", str(context.org_id)),
    ):
        db.execute(text("SELECT set_config(:key, :value, true)"), {"key": key, "value": value})


def run_in_tenant_transaction(
    session_factory: sessionmaker[Session],
    context: RequestContext,
    unit_of_work: Callable[[TenantSession], T],
    meta: RequestMeta | None = None,
) -> T:
    with session_factory() as db:
        with db.begin():
            bind_request_context(db, context)
            result = unit_of_work(TenantSession(db=db, context=context, meta=meta or RequestMeta()))
        logger.debug("transaction committed org_id=%s", context.org_id)
        return result
