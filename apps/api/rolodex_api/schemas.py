from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import ContactAttribute, ContactStatus, ContactType, Role

MAX_METHODS_PER_KIND = 50


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


def _blank_to_none(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    return value


class ContactMethodInput(ApiModel):
    label: str | None = Field(default=None, max_length=100)
    value: str = Field(default="", max_length=2048)

    @field_validator("label")
    @classmethod
    def normalize_label(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class ContactUpsertInput(ApiModel):
    first_name: str = Field(min_length=1, max_length=200)
    last_name: str = Field(min_length=1, max_length=200)
    company: str | None = Field(default=None, max_length=300)
    role: str | None = Field(default=None, max_length=300)
    internal_contact: str | None = Field(default=None, max_length=300)
    referred_by: str | None = Field(default=None, max_length=300)
    referred_by_contact_id: uuid.UUID | None = None
    contact_type: ContactType
    status: ContactStatus = ContactStatus.PROSPECT

    linked_in_profile_url: str | None = Field(default=None, max_length=2048)
    linked_in_picture_url: str | None = Field(default=None, max_length=2048)
    linked_in_company: str | None = Field(default=None, max_length=300)
    linked_in_job_title: str | None = Field(default=None, max_length=300)
    linked_in_location: str | None = Field(default=None, max_length=300)

    attributes: list[ContactAttribute] = Field(default_factory=list)
    phones: list[ContactMethodInput] = Field(default_factory=list, max_length=MAX_METHODS_PER_KIND)
    emails: list[ContactMethodInput] = Field(default_factory=list, max_length=MAX_METHODS_PER_KIND)
    websites: list[ContactMethodInput] = Field(default_factory=list, max_length=MAX_METHODS_PER_KIND)

    billing_address_line1: str | None = Field(default=None, max_length=300)
    billing_address_line2: str | None = Field(default=None, max_length=300)
    billing_city: str | None = Field(default=None, max_length=120)
    billing_state: str | None = Field(default=None, max_length=120)
    billing_zip_code: str | None = Field(default=None, max_length=20)
    shipping_address_line1: str | None = Field(default=None, max_length=300)
    shipping_address_line2: str | None = Field(default=None, max_length=300)
    shipping_city: str | None = Field(default=None, max_length=120)
    shipping_state: str | None = Field(default=None, max_length=120)
    shipping_zip_code: str | None = Field(default=None, max_length=20)
    shipping_same_as_billing: bool = False

    @field_validator(
        "company",
        "role",
        "internal_contact",
        "referred_by",
        "linked_in_profile_url",
        "linked_in_picture_url",
        "linked_in_company",
        "linked_in_job_title",
        "linked_in_location",
        "billing_address_line1",
        "billing_address_line2",
        "billing_city",
        "billing_state",
        "billing_zip_code",
        "shipping_address_line1",
        "shipping_address_line2",
        "shipping_city",
        "shipping_state",
        "shipping_zip_code",
    )
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    @field_validator("attributes")
    @classmethod
    def dedupe_attributes(cls, value: list[ContactAttribute]) -> list[ContactAttribute]:
        return list(dict.fromkeys(value))


class ContactCreateInput(ContactUpsertInput):
    allow_duplicate: bool = False


class ContactUpdateInput(ContactUpsertInput):
    id: uuid.UUID


class ContactIdInput(ApiModel):
    id: uuid.UUID


class ContactListInput(ApiModel):
    search: str | None = Field(default=None, max_length=200)

    @field_validator("search")
    @classmethod
    def normalize_search(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class CsvImportInput(ApiModel):
    csv_content: str = Field(min_length=1, max_length=5_000_000)


class CommentCreateInput(ApiModel):
    contact_id: uuid.UUID
    body: str = Field(min_length=1, max_length=5000)


class CommentArchiveInput(ApiModel):
    comment_id: uuid.UUID
    archived: bool = True


class CommentDeleteInput(ApiModel):
    comment_id: uuid.UUID


class UserRoleUpdateInput(ApiModel):
    user_id: uuid.UUID
    role: Role


class AuditListInput(ApiModel):
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class EmptyInput(ApiModel):
    pass


class MeResponse(ApiModel):
    id: str
    email: str | None
    display_name: str | None
    role: Role
    org_id: uuid.UUID
    user_id: uuid.UUID | None = None


class UserResponse(ApiModel):
    id: uuid.UUID
    role: Role
    org_id: uuid.UUID
    subject: str
    email: str | None
    display_name: str | None


class UserRoleUpdateResponse(ApiModel):
    id: uuid.UUID
    role: Role
    previous_role: Role
    updated: bool = True


class ContactMethodResponse(ApiModel):
    id: uuid.UUID
    label: str | None
    value: str
    created_at: datetime


class ContactReference(ApiModel):
    id: uuid.UUID
    first_name: str
    last_name: str


class CommentResponse(ApiModel):
    id: uuid.UUID
    contact_id: uuid.UUID
    body: str
    archived: bool
    created_at: datetime
    author_display_name: str | None = None


class LinkedInSnapshotResponse(ApiModel):
    id: uuid.UUID
    snapshot: dict[str, Any]
    captured_at: datetime


class ContactSummary(ApiModel):
    id: uuid.UUID
    org_id: uuid.UUID
    first_name: str
    last_name: str
    company: str | None
    role: str | None
    internal_contact: str | None
    referred_by: str | None
    referred_by_contact_id: uuid.UUID | None
    contact_type: ContactType
    status: ContactStatus
    linked_in_profile_url: str | None
    linked_in_picture_url: str | None
    linked_in_company: str | None
    linked_in_job_title: str | None
    linked_in_location: str | None
    attributes: list[str]
    record_entered_by: str | None = None
    created_at: datetime
    updated_at: datetime


class ContactDetail(ContactSummary):
    billing_address_line1: str | None
    billing_address_line2: str | None
    billing_city: str | None
    billing_state: str | None
    billing_zip_code: str | None
    shipping_address_line1: str | None
    shipping_address_line2: str | None
    shipping_city: str | None
    shipping_state: str | None
    shipping_zip_code: str | None
    shipping_same_as_billing: bool
    referred_by_contact: ContactReference | None = None
    phones: list[ContactMethodResponse] = Field(default_factory=list)
    emails: list[ContactMethodResponse] = Field(default_factory=list)
    websites: list[ContactMethodResponse] = Field(default_factory=list)
    referrals: list[ContactReference] = Field(default_factory=list)
    comments: list[CommentResponse] = Field(default_factory=list)
    linked_in_history: list[LinkedInSnapshotResponse] = Field(default_factory=list)


class ContactDeleteResponse(ApiModel):
    id: uuid.UUID
    deleted: bool = True


class CsvImportResponse(ApiModel):
    inserted_count: int
    inserted_ids: list[uuid.UUID]
    skipped_count: int


class CommentArchiveResponse(ApiModel):
    id: uuid.UUID
    archived: bool


class CommentDeleteResponse(ApiModel):
    id: uuid.UUID
    deleted: bool = True


class CsvExportResponse(ApiModel):
    message: str
    url: str


class AuditLogResponse(ApiModel):
    id: uuid.UUID
    org_id: uuid.UUID
    actor_user_id: uuid.UUID | None
    actor_subject: str | None
    action: str
    entity_type: str | None
    entity_id: uuid.UUID | None
    ip: str | None
    user_agent: str | None
    metadata_json: dict[str, Any] = Field(alias="metadata")
    created_at: datetime
