from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import Text, and_, cast, delete, desc, func, literal, literal_column, or_, select
from sqlalchemy.sql.elements import ColumnElement

from ..errors import DuplicateContactError, NotFoundError, ValidationFailed
from ..models import (
    Contact,
    ContactComment,
    ContactEmail,
    ContactPhoneNumber,
    ContactWebsite,
    LinkedInHistory,
    User,
)
from ..schemas import (
    CommentResponse,
    ContactCreateInput,
    ContactDeleteResponse,
    ContactDetail,
    ContactMethodResponse,
    ContactReference,
    ContactSummary,
    ContactUpdateInput,
    ContactUpsertInput,
    LinkedInSnapshotResponse,
)
from ..settings import settings
from ..tenancy import TenantSession, org_scoped
from .audit import record_audit
from .child_collections import MethodModel, append_linkedin_snapshot, replace_all_contact_methods

logger = logging.getLogger(__name__)

DUPLICATE_SCAN_LIMIT = 25
ADDRESS_PARTS = ("address_line1", "address_line2", "city", "state", "zip_code")


def _entered_by(display_name: str | None, email: str | None) -> str | None:
    return display_name or email


def _serialize_summary(row: Contact, entered_by: str | None = None) -> ContactSummary:
    return ContactSummary(
        id=row.id,
        org_id=row.organization_id,
        first_name=row.first_name,
        last_name=row.last_name,
        company=row.organization,
        role=row.role,
        internal_contact=row.internal_contact,
        referred_by=row.referred_by,
        referred_by_contact_id=row.referred_by_contact_id,
        contact_type=row.contact_type,
        status=row.status,
        linked_in_profile_url=row.linkedin_profile_url,
        linked_in_picture_url=row.linkedin_picture_url,
        linked_in_company=row.linkedin_company,
        linked_in_job_title=row.linkedin_job_title,
        linked_in_location=row.linkedin_location,
        attributes=list(row.attributes or []),
        record_entered_by=entered_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _reference(row: Contact) -> ContactReference:
    return ContactReference(id=row.id, first_name=row.first_name, last_name=row.last_name)


def _contact_with_scope(scope: TenantSession, contact_id: uuid.UUID) -> Contact:
    contact = scope.db.scalar(org_scoped(select(Contact).where(Contact.id == contact_id), scope, Contact))
    if contact is None:
        raise NotFoundError("Contact not found")
    return contact


def contact_exists(scope: TenantSession, contact_id: uuid.UUID) -> bool:
    found = scope.db.scalar(org_scoped(select(Contact.id).where(Contact.id == contact_id), scope, Contact))
    return found is not None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_document() -> ColumnElement[Any]:
    return func.to_tsvector(
        literal_column("'simple'::regconfig"),
        func.concat_ws(
            " ",
            Contact.first_name,
            Contact.last_name,
            Contact.organization,
            Contact.role,
            Contact.internal_contact,
            Contact.referred_by,
            Contact.linkedin_profile_url,
            Contact.linkedin_company,
            Contact.linkedin_job_title,
            Contact.linkedin_location,
            func.array_to_string(Contact.attributes, " "),
        ),
    )


def _search_condition(scope: TenantSession, term: str) -> ColumnElement[bool]:
    pattern = f"%{_escape_like(term)}%"

    def like(column: Any) -> ColumnElement[bool]:
        return column.ilike(pattern, escape="\\")

    def method_match(model: MethodModel) -> ColumnElement[bool]:
        return (
            select(model.id)
            .where(
                model.contact_id == Contact.id,
                model.organization_id == scope.org_id,
                or_(like(model.value), like(model.label)),
            )
            .exists()
        )

    comment_match = (
        select(ContactComment.id)
        .where(
            ContactComment.contact_id == Contact.id,
            ContactComment.organization_id == scope.org_id,
            ContactComment.deleted_at.is_(None),
            like(ContactComment.body),
        )
        .exists()
    )

    conditions: list[ColumnElement[bool]] = [
        like(Contact.first_name),
        like(Contact.last_name),
        like(Contact.first_name + " " + Contact.last_name),
        like(Contact.organization),
        like(Contact.role),
        like(Contact.internal_contact),
        like(Contact.referred_by),
        like(cast(Contact.attributes, Text)),
        method_match(ContactPhoneNumber),
        method_match(ContactEmail),
        method_match(ContactWebsite),
        comment_match,
    ]
    if scope.db.get_bind().dialect.name == "postgresql":
        conditions.insert(
            0,
            _search_document().op("@@")(func.plainto_tsquery(literal_column("'simple'::regconfig"), term)),
        )
    return or_(*conditions)


def list_contacts(scope: TenantSession, search: str | None = None, limit: int | None = None) -> list[ContactSummary]:
    stmt = select(Contact, User.display_name, User.email).outerjoin(User, User.id == Contact.created_by)
    if search:
        stmt = stmt.where(_search_condition(scope, search))
    stmt = org_scoped(
        stmt.order_by(Contact.last_name, Contact.first_name).limit(limit or settings.contact_list_limit),
        scope,
        Contact,
    )
    rows = scope.db.execute(stmt).all()
    return [_serialize_summary(contact, _entered_by(name, email)) for contact, name, email in rows]


def _methods(scope: TenantSession, model: MethodModel, contact_id: uuid.UUID) -> list[ContactMethodResponse]:
    rows = scope.db.scalars(
        org_scoped(
            select(model).where(model.contact_id == contact_id).order_by(model.created_at),
            scope,
            model,
        )
    ).all()
    return [
        ContactMethodResponse(id=row.id, label=row.label, value=row.value, created_at=row.created_at) for row in rows
    ]


def visible_comments(scope: TenantSession, contact_id: uuid.UUID) -> list[CommentResponse]:
    rows = scope.db.execute(
        org_scoped(
            select(ContactComment, User.display_name, User.email)
            .outerjoin(User, User.id == ContactComment.created_by)
            .where(ContactComment.contact_id == contact_id, ContactComment.deleted_at.is_(None))
            .order_by(desc(ContactComment.created_at)),
            scope,
            ContactComment,
        )
    ).all()
    return [
        CommentResponse(
            id=comment.id,
            contact_id=comment.contact_id,
            body=comment.body,
            archived=comment.archived,
            created_at=comment.created_at,
            author_display_name=_entered_by(name, email),
        )
        for comment, name, email in rows
    ]


def get_contact_detail(scope: TenantSession, contact_id: uuid.UUID) -> ContactDetail:
    contact = _contact_with_scope(scope, contact_id)

    entered_by = None
    if contact.created_by is not None:
        author = scope.db.execute(
            org_scoped(select(User.display_name, User.email).where(User.id == contact.created_by), scope, User)
        ).first()
        if author is not None:
            entered_by = _entered_by(author.display_name, author.email)

    referred_by_contact = None
    if contact.referred_by_contact_id is not None:
        referrer = scope.db.scalar(
            org_scoped(select(Contact).where(Contact.id == contact.referred_by_contact_id), scope, Contact)
        )
        if referrer is not None:
            referred_by_contact = _reference(referrer)

    referrals = scope.db.scalars(
        org_scoped(
            select(Contact)
            .where(Contact.referred_by_contact_id == contact.id)
            .order_by(Contact.last_name, Contact.first_name),
            scope,
            Contact,
        )
    ).all()

    history = scope.db.scalars(
        org_scoped(
            select(LinkedInHistory)
            .where(LinkedInHistory.contact_id == contact.id)
            .order_by(desc(LinkedInHistory.captured_at)),
            scope,
            LinkedInHistory,
        )
    ).all()

    summary = _serialize_summary(contact, entered_by)
    return ContactDetail(
        **summary.model_dump(),
        billing_address_line1=contact.billing_address_line1,
        billing_address_line2=contact.billing_address_line2,
        billing_city=contact.billing_city,
        billing_state=contact.billing_state,
        billing_zip_code=contact.billing_zip_code,
        shipping_address_line1=contact.shipping_address_line1,
        shipping_address_line2=contact.shipping_address_line2,
        shipping_city=contact.shipping_city,
        shipping_state=contact.shipping_state,
        shipping_zip_code=contact.shipping_zip_code,
        shipping_same_as_billing=contact.shipping_same_as_billing,
        referred_by_contact=referred_by_contact,
        phones=_methods(scope, ContactPhoneNumber, contact.id),
        emails=_methods(scope, ContactEmail, contact.id),
        websites=_methods(scope, ContactWebsite, contact.id),
        referrals=[_reference(row) for row in referrals],
        comments=visible_comments(scope, contact.id),
        linked_in_history=[
            LinkedInSnapshotResponse(id=row.id, snapshot=row.snapshot, captured_at=row.captured_at) for row in history
        ],
    )


def _folded(value: str) -> ColumnElement[str]:
    # Folded by the database so both sides of a comparison use the same rules.
    return func.lower(cast(literal(value), Text))


def find_duplicates(scope: TenantSession, payload: ContactUpsertInput) -> list[Contact]:
    """Same-organization contacts that look like the submitted one, oldest first.

    A LinkedIn profile URL match, or a first and last name match that also
    agrees on the organization name when one was submitted.
    """
    name_match = and_(
        func.lower(Contact.first_name) == _folded(payload.first_name),
        func.lower(Contact.last_name) == _folded(payload.last_name),
    )
    if payload.company:
        name_match = and_(name_match, func.lower(Contact.organization) == _folded(payload.company))

    conditions: list[ColumnElement[bool]] = [name_match]
    if payload.linked_in_profile_url:
        conditions.append(
            func.lower(func.trim(Contact.linkedin_profile_url)) == _folded(payload.linked_in_profile_url.strip())
        )

    stmt = org_scoped(
        select(Contact).where(or_(*conditions)).order_by(Contact.created_at, Contact.id).limit(DUPLICATE_SCAN_LIMIT),
        scope,
        Contact,
    )
    return list(scope.db.scalars(stmt).all())


def _validate_referrer(
    scope: TenantSession, referrer_id: uuid.UUID | None, contact_id: uuid.UUID | None = None
) -> None:
    if referrer_id is None:
        return
    if contact_id is not None and referrer_id == contact_id:
        raise ValidationFailed("A contact cannot be referred by itself")
    if not contact_exists(scope, referrer_id):
        raise ValidationFailed("Referred-by contact not found")


def _apply_fields(contact: Contact, payload: ContactUpsertInput) -> None:
    contact.first_name = payload.first_name
    contact.last_name = payload.last_name
    contact.organization = payload.company
    contact.role = payload.role
    contact.internal_contact = payload.internal_contact
    contact.referred_by = payload.referred_by
    contact.referred_by_contact_id = payload.referred_by_contact_id
    contact.contact_type = payload.contact_type
    contact.status = payload.status
    contact.linkedin_profile_url = payload.linked_in_profile_url
    contact.linkedin_picture_url = payload.linked_in_picture_url
    contact.linkedin_company = payload.linked_in_company
    contact.linkedin_job_title = payload.linked_in_job_title
    contact.linkedin_location = payload.linked_in_location
    contact.attributes = [attribute.value for attribute in payload.attributes]
    contact.shipping_same_as_billing = payload.shipping_same_as_billing
    for part in ADDRESS_PARTS:
        billing = getattr(payload, f"billing_{part}")
        shipping = billing if payload.shipping_same_as_billing else getattr(payload, f"shipping_{part}")
        setattr(contact, f"billing_{part}", billing)
        setattr(contact, f"shipping_{part}", shipping)


def create_contact(scope: TenantSession, payload: ContactCreateInput) -> ContactDetail:
    if not payload.allow_duplicate:
        matches = find_duplicates(scope, payload)
        if matches:
            existing = matches[0]
            raise DuplicateContactError(
                "A similar contact already exists",
                meta={
                    "existingContactId": str(existing.id),
                    "existingContactName": existing.full_name,
                    "matchCount": len(matches),
                },
            )
    _validate_referrer(scope, payload.referred_by_contact_id)

    contact = Contact(
        organization_id=scope.org_id,
        created_by=scope.actor_user_id,
        updated_by=scope.actor_user_id,
    )
    _apply_fields(contact, payload)
    scope.db.add(contact)
    scope.db.flush()

    replace_all_contact_methods(scope, contact.id, payload.phones, payload.emails, payload.websites)
    append_linkedin_snapshot(scope, contact)
    record_audit(
        scope,
        action="contacts.create",
        entity_type="contact",
        entity_id=contact.id,
        metadata={"contactType": contact.contact_type.value, "allowDuplicate": payload.allow_duplicate},
    )
    logger.info("contact created id=%s org_id=%s", contact.id, scope.org_id)
    return get_contact_detail(scope, contact.id)


def update_contact(scope: TenantSession, payload: ContactUpdateInput) -> ContactDetail:
    contact = _contact_with_scope(scope, payload.id)
    _validate_referrer(scope, payload.referred_by_contact_id, contact.id)

    _apply_fields(contact, payload)
    contact.updated_by = scope.actor_user_id
    scope.db.flush()

    replace_all_contact_methods(scope, contact.id, payload.phones, payload.emails, payload.websites)
    append_linkedin_snapshot(scope, contact)
    record_audit(
        scope,
        action="contacts.update",
        entity_type="contact",
        entity_id=contact.id,
        metadata={
            "phones": len(payload.phones),
            "emails": len(payload.emails),
            "websites": len(payload.websites),
        },
    )
    return get_contact_detail(scope, contact.id)


def delete_contact(scope: TenantSession, contact_id: uuid.UUID) -> ContactDeleteResponse:
    contact = _contact_with_scope(scope, contact_id)
    contact_type = contact.contact_type.value
    scope.db.execute(
        org_scoped(delete(Contact).where(Contact.id == contact.id), scope, Contact),
        execution_options={"synchronize_session": False},
    )
    scope.db.expunge(contact)
    record_audit(
        scope,
        action="contacts.delete",
        entity_type="contact",
        entity_id=contact_id,
        metadata={"contactType": contact_type},
    )
    logger.info("contact deleted id=%s org_id=%s", contact_id, scope.org_id)
    return ContactDeleteResponse(id=contact_id)
