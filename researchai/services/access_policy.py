"""Row access rules shared by the services.

These functions restate the row-level-security policies created by the Alembic
revisions so that the same decisions hold on a service-role connection (which
bypasses RLS) and on databases without RLS.
"""

from __future__ import annotations

import uuid

from researchai.core.security import Principal
from researchai.models.workspace import WRITER_ROLES


class AccessDeniedError(PermissionError):
    pass


class OwnershipMismatchError(AccessDeniedError):
    """Raised when a write names a principal other than the caller."""


def can_view_search_query(principal: Principal, owner_id: uuid.UUID | None) -> bool:
    if principal.is_anonymous:
        return False
    return owner_id is None or owner_id == principal.user_id


def ensure_can_insert_search_query(principal: Principal, owner_id: uuid.UUID | None) -> None:
    if owner_id is None:
        return
    if principal.is_anonymous:
        raise OwnershipMismatchError("anonymous callers may only record unowned search queries")
    if owner_id != principal.user_id:
        raise OwnershipMismatchError("user_id must match the authenticated caller")


def ensure_can_read_search_queries(principal: Principal) -> None:
    if principal.is_anonymous:
        raise AccessDeniedError("anonymous callers may not read search queries")


def ensure_authenticated(principal: Principal) -> uuid.UUID:
    if principal.user_id is None:
        raise AccessDeniedError("authentication required")
    return principal.user_id


def ensure_workspace_member(role: str | None) -> None:
    if role is None:
        raise AccessDeniedError("not a collaborator of this workspace")


def ensure_workspace_writer(role: str | None) -> None:
    ensure_workspace_member(role)
    if role not in WRITER_ROLES:
        raise AccessDeniedError("owner or editor role required")
