from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, select

from ..models import AuditLogEntry
from ..schemas import AuditLogResponse
from ..tenancy import TenantSession, org_scoped


def record_audit(
    scope: TenantSession,
    action: str,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLogEntry:
    """Append one audit row inside the caller's transaction.

    The flush makes an insert failure raise here, which aborts the
    surrounding transaction together with the mutation being audited.
    """
    entry = AuditLogEntry(
        organization_id=scope.org_id,
        actor_user_id=scope.actor_user_id,
        actor_subject=scope.context.subject,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        ip=scope.meta.ip,
        user_agent=scope.meta.user_agent,
        metadata_json=metadata or {},
    )
    scope.db.add(entry)
    scope.db.flush()
    return entry


def list_audit_entries(scope: TenantSession, limit: int = 20, offset: int = 0) -> list[AuditLogResponse]:
    stmt = org_scoped(
        select(AuditLogEntry)
        .order_by(desc(AuditLogEntry.created_at))
        .limit(limit)
        .offset(offset),
        scope,
        AuditLogEntry,
    )
    rows = scope.db.scalars(stmt).all()
    return [
        AuditLogResponse(
            id=row.id,
            org_id=row.organization_id,
            actor_user_id=row.actor_user_id,
            actor_subject=row.actor_subject,
            action=row.action,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            ip=row.ip,
            user_agent=row.user_agent,
            metadata_json=row.metadata_json,
            created_at=row.created_at,
        )
        for row in rows
    ]
