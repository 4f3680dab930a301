"""Copy memberships from the legacy workspace_users table.

Older deployments stored memberships in workspace_users (text user ids, roles
admin/member) while newer code wrote to workspace_collaborators. This module
folds the legacy rows into workspace_collaborators so the legacy name can be
dropped instead of kept alive behind a compatibility view.

Those deployments also kept owner and user ids as TEXT, which cannot be
compared with auth.uid(); convert_text_column_to_uuid brings such columns in
line before the policies are recreated.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import MetaData, Table, inspect, select, text
from sqlalchemy.engine import Connection

from researchai.db.rls import drop_policies_referencing, is_postgres
from researchai.models.workspace import WorkspaceCollaborator

logger = logging.getLogger(__name__)

LEGACY_TABLE = "workspace_users"
CANONICAL_TABLE = "workspace_collaborators"

LEGACY_ROLE_MAP = {
    "owner": "owner",
    "admin": "editor",
    "editor": "editor",
    "member": "viewer",
    "viewer": "viewer",
    "commenter": "commenter",
}

# Policies the hand-run SQL scripts created on workspaces. They compare
# owner_id against auth.uid() as text or read workspace_users.
LEGACY_WORKSPACE_POLICY_NAMES = (
    "Only owners can update workspaces",
    "Users can create workspaces",
    "Users can view workspaces they belong to",
    "Users can view workspaces they're members of",
    "Workspace owners can delete their workspaces",
    "Workspace owners can update their workspaces",
)

_UUID_PATTERN = "^[0-9a-f]{8}-?([0-9a-f]{4}-?){3}[0-9a-f]{12}$"


class LegacySchemaError(RuntimeError):
    """Raised when a legacy database cannot be upgraded without manual cleanup."""


def _as_uuid(value: object) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError):
        return None


def legacy_relation_kind(bind: Connection, name: str = LEGACY_TABLE) -> str | None:
    """Return "table", "view" or None for *name* in the default schema."""
    inspector = inspect(bind)
    if name in inspector.get_view_names():
        return "view"
    if inspector.has_table(name):
        return "table"
    return None


def copy_legacy_memberships(bind: Connection) -> int:
    """Insert legacy memberships missing from workspace_collaborators.

    Rows whose user id is not a UUID or whose role has no canonical equivalent
    are skipped and logged. Returns the number of rows inserted.
    """
    if legacy_relation_kind(bind) != "table":
        return 0

    legacy = Table(LEGACY_TABLE, MetaData(), autoload_with=bind)
    canonical = WorkspaceCollaborator.__table__

    existing = {
        (_as_uuid(r.workspace_id), _as_uuid(r.user_id))
        for r in bind.execute(select(canonical.c.workspace_id, canonical.c.user_id))
    }

    has_joined_at = "joined_at" in legacy.c
    has_invited_by = "invited_by" in legacy.c

    inserted = 0
    skipped = 0
    for row in bind.execute(select(legacy)).mappings():
        workspace_id = _as_uuid(row["workspace_id"])
        user_id = _as_uuid(row["user_id"])
        role = LEGACY_ROLE_MAP.get(str(row.get("role") or "viewer").strip().lower())

        if workspace_id is None or user_id is None or role is None:
            skipped += 1
            logger.warning(
                "Skipping legacy membership workspace_id=%s user_id=%s role=%s",
                row["workspace_id"],
                row["user_id"],
                row.get("role"),
            )
            continue

        key = (workspace_id, user_id)
        if key in existing:
            continue

        values = {
            "id": uuid.uuid4(),
            "workspace_id": workspace_id,
            "user_id": user_id,
            "role": role,
        }
        if has_joined_at and row["joined_at"] is not None:
            values["joined_at"] = row["joined_at"]
        if has_invited_by:
            values["invited_by"] = _as_uuid(row["invited_by"])

        bind.execute(canonical.insert().values(**values))
        existing.add(key)
        inserted += 1

    logger.info("Copied legacy workspace memberships inserted=%s skipped=%s", inserted, skipped)
    return inserted


def retire_legacy_table(bind: Connection) -> None:
    """Fold workspace_users into the canonical table and drop it.

    Policies elsewhere that read workspace_users (chart_exports, workspaces)
    are dropped first; later revisions recreate the ones this project owns.
    """
    kind = legacy_relation_kind(bind)
    if kind is None:
        return

    dropped = drop_policies_referencing(bind, LEGACY_TABLE)
    for table, name in dropped:
        logger.warning("Dropped policy %r on %s because it reads %s", name, table, LEGACY_TABLE)

    if kind == "table":
        copy_legacy_memberships(bind)
        bind.execute(text(f"DROP TABLE {LEGACY_TABLE}"))
    else:
        bind.execute(text(f"DROP VIEW {LEGACY_TABLE}"))


def column_data_type(bind: Connection, table: str, column: str) -> str | None:
    row = bind.execute(
        text(
            "SELECT data_type FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = :table AND column_name = :column"
        ),
        {"table": table, "column": column},
    ).first()
    return row[0] if row is not None else None


def convert_text_column_to_uuid(bind: Connection, table: str, column: str) -> bool:
    """Change a legacy TEXT id column to uuid so it compares with auth.uid().

    Aborts with LegacySchemaError when the column holds values that are not
    UUIDs or when policies not dropped beforehand still depend on it. Foreign
    keys on the column point at the old text users table and are dropped.
    Returns True when the column was converted. No-op outside PostgreSQL.
    """
    if not is_postgres(bind):
        return False
    if column_data_type(bind, table, column) not in ("text", "character varying"):
        return False

    invalid = bind.execute(
        text(f"SELECT count(*) FROM {table} WHERE {column} IS NOT NULL AND {column} !~* :pattern"),
        {"pattern": _UUID_PATTERN},
    ).scalar()
    if invalid:
        raise LegacySchemaError(
            f"{table}.{column} holds {invalid} value(s) that are not UUIDs; "
            f"fix or delete those rows, then rerun the upgrade"
        )

    dependents = bind.execute(
        text(
            "SELECT c.relname, p.polname FROM pg_policy p "
            "JOIN pg_class c ON c.oid = p.polrelid "
            "JOIN pg_depend d ON d.classid = 'pg_policy'::regclass AND d.objid = p.oid "
            "JOIN pg_attribute a ON a.attrelid = d.refobjid AND a.attnum = d.refobjsubid "
            "WHERE d.refobjid = CAST(:table AS regclass) AND a.attname = :column "
            "ORDER BY c.relname, p.polname"
        ),
        {"table": table, "column": column},
    ).all()
    if dependents:
        names = ", ".join(f"{row.relname}.{row.polname!r}" for row in dependents)
        raise LegacySchemaError(
            f"cannot convert {table}.{column} to uuid while these policies use it: {names}; "
            f"drop them, then rerun the upgrade"
        )

    foreign_keys = bind.execute(
        text(
            "SELECT con.conname FROM pg_constraint con "
            "JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = ANY(con.conkey) "
            "WHERE con.contype = 'f' AND con.conrelid = CAST(:table AS regclass) AND a.attname = :column"
        ),
        {"table": table, "column": column},
    ).all()
    for row in foreign_keys:
        logger.warning("Dropping foreign key %s on %s.%s", row.conname, table, column)
        bind.execute(text(f'ALTER TABLE {table} DROP CONSTRAINT "{row.conname}"'))

    bind.execute(text(f"ALTER TABLE {table} ALTER COLUMN {column} TYPE uuid USING {column}::uuid"))
    logger.info("Converted %s.%s from text to uuid", table, column)
    return True
