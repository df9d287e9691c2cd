from __future__ import annotations

import uuid

from sqlalchemy import select

from ..errors import NotFoundError
from ..models import ContactComment, utcnow
from ..schemas import CommentArchiveResponse, CommentDeleteResponse, CommentResponse
from ..tenancy import TenantSession, org_scoped
from .audit import record_audit
from .contacts import contact_exists


def _visible_comment(scope: TenantSession, comment_id: uuid.UUID) -> ContactComment:
    comment = scope.db.scalar(
        org_scoped(
            select(ContactComment).where(ContactComment.id == comment_id, ContactComment.deleted_at.is_(None)),
            scope,
            ContactComment,
        )
    )
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def add_comment(scope: TenantSession, contact_id: uuid.UUID, body: str) -> CommentResponse:
    if not contact_exists(scope, contact_id):
        raise NotFoundError("Contact not found")

    comment = ContactComment(
        organization_id=scope.org_id,
        contact_id=contact_id,
        body=body,
        created_by=scope.actor_user_id,
    )
    scope.db.add(comment)
    scope.db.flush()

    record_audit(
        scope,
        action="comments.create",
        entity_type="comment",
        entity_id=comment.id,
        metadata={"contactId": str(contact_id), "length": len(body)},
    )
    return CommentResponse(
        id=comment.id,
        contact_id=comment.contact_id,
        body=comment.body,
        archived=comment.archived,
        created_at=comment.created_at,
        author_display_name=scope.context.display_name or scope.context.email,
    )


def archive_comment(scope: TenantSession, comment_id: uuid.UUID, archived: bool = True) -> CommentArchiveResponse:
    comment = _visible_comment(scope, comment_id)
    comment.archived = archived
    scope.db.flush()

    record_audit(
        scope,
        action="comments.archive" if archived else "comments.unarchive",
        entity_type="comment",
        entity_id=comment.id,
        metadata={"contactId": str(comment.contact_id)},
    )
    return CommentArchiveResponse(id=comment.id, archived=comment.archived)


def delete_comment(scope: TenantSession, comment_id: uuid.UUID) -> CommentDeleteResponse:
    """Soft delete; the row stays for history but disappears from every read."""
    comment = _visible_comment(scope, comment_id)
    comment.deleted_at = utcnow()
    scope.db.flush()

    record_audit(
        scope,
        action="comments.delete",
        entity_type="comment",
        entity_id=comment.id,
        metadata={"contactId": str(comment.contact_id)},
    )
    return CommentDeleteResponse(id=comment.id)
