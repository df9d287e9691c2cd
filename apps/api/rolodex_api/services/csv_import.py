from __future__ import annotations

import csv
import io
import logging
import re
import uuid
from dataclasses import dataclass, field

from ..errors import ValidationFailed
from ..models import Contact, ContactAttribute, ContactStatus, ContactType
from ..schemas import ContactMethodInput, CsvImportResponse
from ..settings import settings
from ..tenancy import TenantSession
from .audit import record_audit
from .child_collections import append_linkedin_snapshot, replace_all_contact_methods

logger = logging.getLogger(__name__)

HEADER_ALIASES: dict[str, str] = {
    "firstname": "first_name",
    "first": "first_name",
    "givenname": "first_name",
    "lastname": "last_name",
    "last": "last_name",
    "surname": "last_name",
    "familyname": "last_name",
    "company": "company",
    "organization": "company",
    "organisation": "company",
    "role": "role",
    "title": "role",
    "jobtitle": "role",
    "contacttype": "contact_type",
    "type": "contact_type",
    "status": "status",
    "email": "email",
    "emailaddress": "email",
    "phone": "phone",
    "phonenumber": "phone",
    "website": "website",
    "url": "website",
    "linkedin": "linkedin",
    "linkedinurl": "linkedin",
    "linkedinprofileurl": "linkedin",
    "referredby": "referred_by",
    "internalcontact": "internal_contact",
    "attributes": "attributes",
    "tags": "attributes",
}

_TYPES = {member.value.lower(): member for member in ContactType}
_STATUSES = {member.value.lower(): member for member in ContactStatus}
_ATTRIBUTES = {member.value.lower(): member for member in ContactAttribute}


@dataclass
class CsvRow:
    first_name: str
    last_name: str
    contact_type: ContactType = ContactType.GENERAL
    status: ContactStatus = ContactStatus.PROSPECT
    company: str | None = None
    role: str | None = None
    internal_contact: str | None = None
    referred_by: str | None = None
    linkedin: str | None = None
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    attributes: list[str] = field(default_factory=list)


def normalize_header(header: str) -> str:
    return re.sub(r"[^a-z0-9]", "", header.lower())


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_attributes(raw: str | None) -> list[str]:
    if not raw:
        return []
    parsed: list[str] = []
    for part in re.split(r"[;|]", raw):
        member = _ATTRIBUTES.get(part.strip().lower())
        if member is not None and member.value not in parsed:
            parsed.append(member.value)
    return parsed


def parse_csv(content: str, max_rows: int | None = None) -> tuple[list[CsvRow], int]:
    """Parse CSV text into importable rows, returning them with the skipped count."""
    try:
        return _parse_records(content, max_rows)
    except csv.Error as exc:
        raise ValidationFailed("CSV content is malformed") from exc


def _parse_records(content: str, max_rows: int | None) -> tuple[list[CsvRow], int]:
    max_rows = settings.csv_import_max_rows if max_rows is None else max_rows
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ValidationFailed("CSV content has no header row")

    columns: dict[str, str] = {}
    for header in reader.fieldnames:
        target = HEADER_ALIASES.get(normalize_header(header or ""))
        if target and target not in columns:
            columns[target] = header
    if "first_name" not in columns or "last_name" not in columns:
        raise ValidationFailed("CSV must include first name and last name columns")

    rows: list[CsvRow] = []
    skipped = 0
    for index, record in enumerate(reader):
        if index >= max_rows:
            raise ValidationFailed(f"CSV import is limited to {max_rows} rows")
        values = {target: _clean(record.get(header)) for target, header in columns.items()}
        first_name = values.get("first_name")
        last_name = values.get("last_name")
        if not first_name or not last_name:
            skipped += 1
            continue
        rows.append(
            CsvRow(
                first_name=first_name,
                last_name=last_name,
                contact_type=_TYPES.get((values.get("contact_type") or "").lower(), ContactType.GENERAL),
                status=_STATUSES.get((values.get("status") or "").lower(), ContactStatus.PROSPECT),
                company=values.get("company"),
                role=values.get("role"),
                internal_contact=values.get("internal_contact"),
                referred_by=values.get("referred_by"),
                linkedin=values.get("linkedin"),
                email=values.get("email"),
                phone=values.get("phone"),
                website=values.get("website"),
                attributes=_parse_attributes(values.get("attributes")),
            )
        )
    return rows, skipped


def _methods(value: str | None) -> list[ContactMethodInput]:
    return [ContactMethodInput(value=value)] if value else []


def import_contacts_csv(scope: TenantSession, content: str) -> CsvImportResponse:
    rows, skipped = parse_csv(content)

    inserted_ids: list[uuid.UUID] = []
    for row in rows:
        contact = Contact(
            organization_id=scope.org_id,
            first_name=row.first_name,
            last_name=row.last_name,
            organization=row.company,
            role=row.role,
            internal_contact=row.internal_contact,
            referred_by=row.referred_by,
            contact_type=row.contact_type,
            status=row.status,
            linkedin_profile_url=row.linkedin,
            attributes=row.attributes,
            shipping_same_as_billing=False,
            created_by=scope.actor_user_id,
            updated_by=scope.actor_user_id,
        )
        scope.db.add(contact)
        scope.db.flush()
        replace_all_contact_methods(
            scope, contact.id, _methods(row.phone), _methods(row.email), _methods(row.website)
        )
        append_linkedin_snapshot(scope, contact)
        inserted_ids.append(contact.id)

    record_audit(
        scope,
        action="contacts.importCsv",
        entity_type="contact",
        metadata={"insertedCount": len(inserted_ids), "skippedCount": skipped},
    )
    logger.info("csv import org_id=%s inserted=%s skipped=%s", scope.org_id, len(inserted_ids), skipped)
    return CsvImportResponse(inserted_count=len(inserted_ids), inserted_ids=inserted_ids, skipped_count=skipped)
