from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, Text, func
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Uuid


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(UTC)


class Role(str, enum.Enum):
    ADMIN = "admin"
    CREATOR = "creator"
    PARTICIPANT = "participant"


class ContactType(str, enum.Enum):
    ADVISOR = "Advisor"
    CLIENT = "Client"
    FUNDER = "Funder"
    PARTNER = "Partner"
    GENERAL = "General"


class ContactStatus(str, enum.Enum):
    ACTIVE = "Active"
    PROSPECT = "Prospect"
    INACTIVE = "Inactive"
    ARCHIVED = "Archived"


class ContactAttribute(str, enum.Enum):
    ACADEMIA = "Academia"
    ACCESSIBLE_EDUCATION = "Accessible Education"
    STARTUP = "Startup"
    NOT_FOR_PROFIT = "Not for Profit"
    AGETECH = "AgeTech"
    ROBOTICS = "Robotics"
    AI_SOLUTIONS = "AI Solutions"
    CONSUMER_PRODUCTS = "Consumer Products"
    DISABILITY_SERVICES = "Disability Services"
    DISABILITY_COMMUNITY = "Disability Community"
    INVESTOR = "Investor"
    ADAPTIVE_SPORTS = "Adaptive Sports"
    ACCELERATOR = "Accelerator"
    GOVERNMENT = "Governement"


def _values(members: type[enum.Enum]) -> list[str]:
    return [member.value for member in members]


def _pg_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=_values, validate_strings=True)


# Stored as contact_attribute_enum[] in PostgreSQL and as a JSON list elsewhere.
AttributeList = JSON().with_variant(
    postgresql.ARRAY(
        postgresql.ENUM(*_values(ContactAttribute), name="contact_attribute_enum", create_type=False)
    ),
    "postgresql",
)
JsonDocument = JSON().with_variant(postgresql.JSONB(), "postgresql")


class IdMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class TimestampMixin(CreatedAtMixin):
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class OrgOwnedMixin:
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )


class ContactChildMixin(OrgOwnedMixin):
    contact_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("contacts.unique_id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)


class Organization(Base, IdMixin, CreatedAtMixin):
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(Text, nullable=False)


class User(Base, IdMixin, TimestampMixin, OrgOwnedMixin):
    __tablename__ = "users"
    __table_args__ = (Index("users_organization_id_idx", "organization_id"),)

    subject: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[Role] = mapped_column(_pg_enum(Role, "user_role_enum"), nullable=False, default=Role.PARTICIPANT)


class Contact(Base, TimestampMixin, OrgOwnedMixin):
    __tablename__ = "contacts"
    __table_args__ = (
        Index("contacts_organization_id_idx", "organization_id"),
        Index("contacts_last_name_idx", "last_name"),
        Index("contacts_contact_type_idx", "contact_type"),
        Index("contacts_status_idx", "status"),
        Index("contacts_referred_by_contact_id_idx", "referred_by_contact_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column("unique_id", Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    organization: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_contact: Mapped[str | None] = mapped_column(Text, nullable=True)
    referred_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    referred_by_contact_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("contacts.unique_id", ondelete="SET NULL"), nullable=True
    )
    contact_type: Mapped[ContactType] = mapped_column(_pg_enum(ContactType, "contact_type_enum"), nullable=False)
    status: Mapped[ContactStatus] = mapped_column(
        _pg_enum(ContactStatus, "contact_status_enum"), nullable=False, default=ContactStatus.PROSPECT
    )

    linkedin_profile_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_picture_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_company: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_job_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_location: Mapped[str | None] = mapped_column(Text, nullable=True)

    attributes: Mapped[list[str]] = mapped_column(AttributeList, nullable=False, default=list)

    billing_address_line1: Mapped[str | None] = mapped_column(Text, nullable=True)
    billing_address_line2: Mapped[str | None] = mapped_column(Text, nullable=True)
    billing_city: Mapped[str | None] = mapped_column(Text, nullable=True)
    billing_state: Mapped[str | None] = mapped_column(Text, nullable=True)
    billing_zip_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_address_line1: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_address_line2: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_city: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_state: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_zip_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_same_as_billing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ContactPhoneNumber(Base, IdMixin, CreatedAtMixin, ContactChildMixin):
    __tablename__ = "contact_phone_numbers"
    __table_args__ = (
        Index("contact_phone_numbers_org_idx", "organization_id"),
        Index("contact_phone_numbers_contact_idx", "contact_id"),
    )

    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[str] = mapped_column("phone_number", Text, nullable=False)


class ContactEmail(Base, IdMixin, CreatedAtMixin, ContactChildMixin):
    __tablename__ = "contact_emails"
    __table_args__ = (
        Index("contact_emails_org_idx", "organization_id"),
        Index("contact_emails_contact_idx", "contact_id"),
    )

    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[str] = mapped_column("email", Text, nullable=False)


class ContactWebsite(Base, IdMixin, CreatedAtMixin, ContactChildMixin):
    __tablename__ = "contact_websites"
    __table_args__ = (
        Index("contact_websites_org_idx", "organization_id"),
        Index("contact_websites_contact_idx", "contact_id"),
    )

    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[str] = mapped_column("url", Text, nullable=False)


class LinkedInHistory(Base, IdMixin, CreatedAtMixin, ContactChildMixin):
    __tablename__ = "linkedin_history"
    __table_args__ = (
        Index("linkedin_history_org_idx", "organization_id"),
        Index("linkedin_history_contact_idx", "contact_id"),
    )

    snapshot: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class ContactComment(Base, IdMixin, CreatedAtMixin, ContactChildMixin):
    __tablename__ = "contact_comments"
    __table_args__ = (
        Index("contact_comments_org_idx", "organization_id"),
        Index("contact_comments_contact_idx", "contact_id"),
    )

    body: Mapped[str] = mapped_column(Text, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AuditLogEntry(Base, IdMixin, CreatedAtMixin, OrgOwnedMixin):
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("audit_log_organization_id_idx", "organization_id"),
        Index("audit_log_created_at_idx", "created_at"),
        Index("audit_log_entity_lookup_idx", "entity_type", "entity_id"),
    )

    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    actor_subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    ip: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict[str, Any]] = mapped_column("metadata", JsonDocument, nullable=False, default=dict)
