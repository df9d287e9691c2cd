from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, desc, select

from ..models import Contact, ContactEmail, ContactPhoneNumber, ContactWebsite, LinkedInHistory
from ..schemas import ContactMethodInput
from ..tenancy import TenantSession, org_scoped

MethodModel = type[ContactPhoneNumber] | type[ContactEmail] | type[ContactWebsite]

LINKEDIN_SNAPSHOT_FIELDS = (
    ("profileUrl", "linkedin_profile_url"),
    ("pictureUrl", "linkedin_picture_url"),
    ("company", "linkedin_company"),
    ("jobTitle", "linkedin_job_title"),
    ("location", "linkedin_location"),
)


def replace_contact_methods(
    scope: TenantSession,
    contact_id: uuid.UUID,
    model: MethodModel,
    entries: Sequence[ContactMethodInput],
) -> list[Any]:
    """Make the stored set for one method kind equal the submitted entries."""
    scope.db.execute(
        org_scoped(delete(model).where(model.contact_id == contact_id), scope, model),
        execution_options={"synchronize_session": False},
    )
    rows = []
    for entry in entries:
        value = entry.value.strip()
        if not value:
            continue
        label = entry.label.strip() if entry.label else None
        rows.append(
            model(
                organization_id=scope.org_id,
                contact_id=contact_id,
                label=label or None,
                value=value,
                created_by=scope.actor_user_id,
            )
        )
    scope.db.add_all(rows)
    scope.db.flush()
    return rows


def replace_all_contact_methods(
    scope: TenantSession,
    contact_id: uuid.UUID,
    phones: Sequence[ContactMethodInput],
    emails: Sequence[ContactMethodInput],
    websites: Sequence[ContactMethodInput],
) -> None:
    replace_contact_methods(scope, contact_id, ContactPhoneNumber, phones)
    replace_contact_methods(scope, contact_id, ContactEmail, emails)
    replace_contact_methods(scope, contact_id, ContactWebsite, websites)


def linkedin_snapshot(contact: Contact) -> dict[str, str]:
    snapshot: dict[str, str] = {}
    for key, attr in LINKEDIN_SNAPSHOT_FIELDS:
        value = getattr(contact, attr)
        if value:
            snapshot[key] = value
    return snapshot


def append_linkedin_snapshot(scope: TenantSession, contact: Contact) -> LinkedInHistory | None:
    """Record the contact's LinkedIn fields when they differ from the latest capture."""
    snapshot = linkedin_snapshot(contact)
    if not snapshot:
        return None
    latest = scope.db.scalar(
        org_scoped(
            select(LinkedInHistory.snapshot)
            .where(LinkedInHistory.contact_id == contact.id)
            .order_by(desc(LinkedInHistory.captured_at))
            .limit(1),
            scope,
            LinkedInHistory,
        )
    )
    if latest == snapshot:
        return None
    row = LinkedInHistory(
        organization_id=scope.org_id,
        contact_id=contact.id,
        snapshot=snapshot,
        created_by=scope.actor_user_id,
    )
    scope.db.add(row)
    scope.db.flush()
    return row
