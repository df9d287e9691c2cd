"""Action table for the single dispatch endpoint.

Each action names its handler, input model, allowed roles and whether it
writes. Handlers run inside one tenant transaction and return an
ActionResult; they never see raw organization ids from the request.
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Any

from fastapi import status

from .errors import NotFoundError
from .models import Role
from .schemas import (
    ApiModel,
    AuditListInput,
    CommentArchiveInput,
    CommentCreateInput,
    CommentDeleteInput,
    ContactCreateInput,
    ContactIdInput,
    ContactListInput,
    ContactUpdateInput,
    CsvExportResponse,
    CsvImportInput,
    EmptyInput,
    MeResponse,
    UserRoleUpdateInput,
)
from .services import audit, comments, contacts, csv_import, users
from .settings import settings
from .tenancy import ADMIN_ONLY, ALL_ROLES, EDITOR_ROLES, TenantSession


@dataclass(frozen=True)
class ActionResult:
    data: Any = None
    meta: dict[str, Any] | None = None


Handler = Callable[[TenantSession, Any], ActionResult]


@dataclass(frozen=True)
class ActionSpec:
    name: str
    handler: Handler
    input_model: type[ApiModel]
    roles: Collection[Role]
    mutating: bool = False
    status_code: int = status.HTTP_200_OK


def _me(scope: TenantSession, payload: EmptyInput) -> ActionResult:
    context = scope.context
    return ActionResult(
        MeResponse(
            id=context.subject,
            email=context.email,
            display_name=context.display_name,
            role=context.role,
            org_id=context.org_id,
            user_id=users.find_app_user_id(scope),
        )
    )


def _list_users(scope: TenantSession, payload: EmptyInput) -> ActionResult:
    rows = users.list_users(scope)
    return ActionResult(rows, {"count": len(rows)})


def _update_user_role(scope: TenantSession, payload: UserRoleUpdateInput) -> ActionResult:
    return ActionResult(users.update_user_role(scope, payload.user_id, payload.role))


def _list_contacts(scope: TenantSession, payload: ContactListInput) -> ActionResult:
    limit = settings.contact_list_limit
    rows = contacts.list_contacts(scope, search=payload.search, limit=limit)
    return ActionResult(rows, {"count": len(rows), "limit": limit, "search": payload.search})


def _get_contact(scope: TenantSession, payload: ContactIdInput) -> ActionResult:
    return ActionResult(contacts.get_contact_detail(scope, payload.id))


def _create_contact(scope: TenantSession, payload: ContactCreateInput) -> ActionResult:
    return ActionResult(contacts.create_contact(scope, payload))


def _update_contact(scope: TenantSession, payload: ContactUpdateInput) -> ActionResult:
    return ActionResult(contacts.update_contact(scope, payload))


def _delete_contact(scope: TenantSession, payload: ContactIdInput) -> ActionResult:
    return ActionResult(contacts.delete_contact(scope, payload.id))


def _import_csv(scope: TenantSession, payload: CsvImportInput) -> ActionResult:
    return ActionResult(csv_import.import_contacts_csv(scope, payload.csv_content))


def _add_comment(scope: TenantSession, payload: CommentCreateInput) -> ActionResult:
    return ActionResult(comments.add_comment(scope, payload.contact_id, payload.body))


def _archive_comment(scope: TenantSession, payload: CommentArchiveInput) -> ActionResult:
    return ActionResult(comments.archive_comment(scope, payload.comment_id, payload.archived))


def _delete_comment(scope: TenantSession, payload: CommentDeleteInput) -> ActionResult:
    return ActionResult(comments.delete_comment(scope, payload.comment_id))


def _export_csv(scope: TenantSession, payload: EmptyInput) -> ActionResult:
    return ActionResult(
        CsvExportResponse(message="CSV export placeholder", url="/exports/placeholder.csv"),
        {"placeholder": True},
    )


def _list_audit(scope: TenantSession, payload: AuditListInput) -> ActionResult:
    rows = audit.list_audit_entries(scope, limit=payload.limit, offset=payload.offset)
    return ActionResult(rows, {"count": len(rows), "limit": payload.limit, "offset": payload.offset})


ACTIONS: dict[str, ActionSpec] = {
    spec.name: spec
    for spec in (
        ActionSpec("me", _me, EmptyInput, ALL_ROLES),
        ActionSpec("users.list", _list_users, EmptyInput, ADMIN_ONLY),
        ActionSpec("users.updateRole", _update_user_role, UserRoleUpdateInput, ADMIN_ONLY, mutating=True),
        ActionSpec("contact.list", _list_contacts, ContactListInput, ALL_ROLES),
        ActionSpec("contact.get", _get_contact, ContactIdInput, ALL_ROLES),
        ActionSpec(
            "contact.create",
            _create_contact,
            ContactCreateInput,
            EDITOR_ROLES,
            mutating=True,
            status_code=status.HTTP_201_CREATED,
        ),
        ActionSpec("contact.update", _update_contact, ContactUpdateInput, EDITOR_ROLES, mutating=True),
        ActionSpec("contact.delete", _delete_contact, ContactIdInput, ADMIN_ONLY, mutating=True),
        ActionSpec("contact.importCsv", _import_csv, CsvImportInput, EDITOR_ROLES, mutating=True),
        ActionSpec(
            "contact.addComment",
            _add_comment,
            CommentCreateInput,
            ALL_ROLES,
            mutating=True,
            status_code=status.HTTP_201_CREATED,
        ),
        ActionSpec("contact.archiveComment", _archive_comment, CommentArchiveInput, EDITOR_ROLES, mutating=True),
        ActionSpec("contact.deleteComment", _delete_comment, CommentDeleteInput, ADMIN_ONLY, mutating=True),
        ActionSpec("csv.export", _export_csv, EmptyInput, EDITOR_ROLES),
        ActionSpec("audit.list", _list_audit, AuditListInput, EDITOR_ROLES),
    )
}

# Route-style names accepted from older clients.
ACTION_ALIASES: dict[str, str] = {
    "users/list": "users.list",
    "users/update-role": "users.updateRole",
    "entities/list": "contact.list",
    "entities/get": "contact.get",
    "entities/create": "contact.create",
    "entities/update": "contact.update",
    "entities/delete": "contact.delete",
    "csv/import": "contact.importCsv",
    "csv/export": "csv.export",
    "audit/list": "audit.list",
}


def resolve_action(name: str) -> ActionSpec:
    spec = ACTIONS.get(ACTION_ALIASES.get(name, name))
    if spec is None:
        raise NotFoundError("Unknown action")
    return spec


def execute_action(spec: ActionSpec, payload: ApiModel) -> Callable[[TenantSession], ActionResult]:
    """Unit of work for one validated request.

    Writes resolve the acting application user first so created_by and
    audit rows carry it.
    """

    def run(scope: TenantSession) -> ActionResult:
        if spec.mutating:
            scope.actor_user_id = users.ensure_app_user(scope.db, scope.context).id
        return spec.handler(scope, payload)

    return run
