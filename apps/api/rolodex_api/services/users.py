from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..errors import ForbiddenError, NotFoundError
from ..models import Role, User
from ..schemas import UserResponse, UserRoleUpdateResponse
from ..tenancy import RequestContext, TenantSession, org_scoped
from .audit import record_audit

logger = logging.getLogger(__name__)


_UPSERT_DIALECTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _find_user(db: Session, context: RequestContext) -> User | None:
    return db.scalar(
        select(User).where(User.subject == context.subject, User.organization_id == context.org_id)
    )


def ensure_app_user(db: Session, context: RequestContext) -> User:
    """Return the application user for the caller, creating it on first sight.

    The insert skips on a subject conflict, so a concurrent first write from
    the same caller reuses the winner's row. A subject already bound to
    another organization is refused.
    """
    user = _find_user(db, context)
    if user is not None:
        return user

    values = {
        "organization_id": context.org_id,
        "subject": context.subject,
        "email": context.email,
        "display_name": context.display_name or context.email,
        "role": context.role,
    }
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert is None:
        db.add(User(**values))
        db.flush()
        created = True
    else:
        result = db.execute(insert(User).values(**values).on_conflict_do_nothing(index_elements=[User.subject]))
        created = result.rowcount == 1

    user = _find_user(db, context)
    if user is None:
        logger.warning("subject already bound to another organization org_id=%s", context.org_id)
        raise ForbiddenError("Caller is registered with another organization")
    if created:
        logger.info("created application user id=%s org_id=%s", user.id, context.org_id)
    return user


def find_app_user_id(scope: TenantSession) -> uuid.UUID | None:
    return scope.db.scalar(
        org_scoped(select(User.id).where(User.subject == scope.context.subject), scope, User)
    )


def _serialize_user(row: User) -> UserResponse:
    return UserResponse(
        id=row.id,
        role=row.role,
        org_id=row.organization_id,
        subject=row.subject,
        email=row.email,
        display_name=row.display_name,
    )


def list_users(scope: TenantSession) -> list[UserResponse]:
    rows = scope.db.scalars(
        org_scoped(select(User).order_by(User.display_name, User.email), scope, User)
    ).all()
    return [_serialize_user(row) for row in rows]


def update_user_role(scope: TenantSession, user_id: uuid.UUID, role: Role) -> UserRoleUpdateResponse:
    user = scope.db.scalar(org_scoped(select(User).where(User.id == user_id), scope, User))
    if user is None:
        raise NotFoundError("User not found")

    previous_role = user.role
    user.role = role
    scope.db.flush()

    record_audit(
        scope,
        action="users.updateRole",
        entity_type="user",
        entity_id=user.id,
        metadata={"previousRole": previous_role.value, "role": role.value},
    )
    return UserRoleUpdateResponse(id=user.id, role=user.role, previous_role=previous_role)
