"""Row-level-security helpers for Alembic revisions.

Supabase evaluates these policies with auth.uid() bound to the caller's JWT
subject. Plain PostgreSQL installs have neither the auth schema nor the
anon/authenticated roles, so revisions look them up before emitting grants
or foreign keys into auth.users.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Connection

SUPABASE_ROLES = ("authenticated", "anon")


@dataclass(frozen=True)
class Policy:
    name: str
    command: str
    using: str | None = None
    with_check: str | None = None


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def render_create_policy(table: str, policy: Policy) -> str:
    command = policy.command.upper()
    if command not in {"SELECT", "INSERT", "UPDATE", "DELETE", "ALL"}:
        raise ValueError(f"unsupported policy command: {policy.command}")
    if command == "INSERT" and policy.using:
        raise ValueError("INSERT policies only accept WITH CHECK")
    if command in {"SELECT", "DELETE"} and policy.with_check:
        raise ValueError(f"{command} policies only accept USING")

    sql = f"CREATE POLICY {_quote_ident(policy.name)} ON {table} FOR {command}"
    if policy.using:
        sql += f" USING ({policy.using})"
    if policy.with_check:
        sql += f" WITH CHECK ({policy.with_check})"
    return sql


def render_drop_policy(table: str, policy: Policy) -> str:
    return f"DROP POLICY IF EXISTS {_quote_ident(policy.name)} ON {table}"


def is_postgres(bind: Connection) -> bool:
    return bind.dialect.name == "postgresql"


def has_auth_schema(bind: Connection) -> bool:
    if not is_postgres(bind):
        return False
    row = bind.execute(
        text("SELECT 1 FROM information_schema.schemata WHERE schema_name = 'auth'")
    ).first()
    return row is not None


def existing_roles(bind: Connection, roles: Iterable[str] = SUPABASE_ROLES) -> list[str]:
    if not is_postgres(bind):
        return []
    wanted = list(roles)
    rows = bind.execute(
        text("SELECT rolname FROM pg_roles WHERE rolname = ANY(:roles)"),
        {"roles": wanted},
    ).all()
    found = {r.rolname for r in rows}
    return [role for role in wanted if role in found]


def enable_row_level_security(bind: Connection, table: str, policies: Iterable[Policy]) -> None:
    """Enable RLS on *table* and (re)create *policies*.

    Policies are dropped first so re-running a revision against a database
    that was set up by hand from the SQL editor converges on the same state.
    No-op outside PostgreSQL.
    """
    if not is_postgres(bind):
        return

    bind.execute(text(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY"))
    for policy in policies:
        bind.execute(text(render_drop_policy(table, policy)))
        bind.execute(text(render_create_policy(table, policy)))


def disable_row_level_security(bind: Connection, table: str, policies: Iterable[Policy]) -> None:
    if not is_postgres(bind):
        return

    for policy in policies:
        bind.execute(text(render_drop_policy(table, policy)))
    bind.execute(text(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY"))


def grant_privileges(bind: Connection, table: str, grants: dict[str, str]) -> None:
    """Grant privileges per role, e.g. {"authenticated": "ALL", "anon": "INSERT"}.

    Roles missing from the cluster are skipped.
    """
    present = set(existing_roles(bind, grants.keys()))
    for role, privileges in grants.items():
        if role not in present:
            continue
        bind.execute(text(f"GRANT {privileges} ON {table} TO {role}"))
        bind.execute(text(f"GRANT USAGE, SELECT ON ALL SEQUENCES IN SCHEMA public TO {role}"))


def drop_policies(bind: Connection, table: str, names: Iterable[str]) -> None:
    """Drop policies on *table* by name, ignoring ones that do not exist."""
    if not is_postgres(bind):
        return

    for name in names:
        bind.execute(text(render_drop_policy(table, Policy(name=name, command="ALL"))))


def drop_policies_referencing(bind: Connection, relation: str) -> list[tuple[str, str]]:
    """Drop policies on other tables whose expressions mention *relation*.

    A policy that reads a table in its USING or WITH CHECK clause blocks
    DROP TABLE on it. Returns the dropped (table, policy) pairs so the caller
    can report what has to be recreated.
    """
    if not is_postgres(bind):
        return []

    pattern = "%" + relation.replace("_", "\\_") + "%"
    rows = bind.execute(
        text(
            "SELECT tablename, policyname FROM pg_policies "
            "WHERE schemaname = current_schema() AND tablename <> :relation "
            "AND (coalesce(qual, '') LIKE :pattern OR coalesce(with_check, '') LIKE :pattern) "
            "ORDER BY tablename, policyname"
        ),
        {"relation": relation, "pattern": pattern},
    ).all()

    dropped = [(row.tablename, row.policyname) for row in rows]
    for table, name in dropped:
        bind.execute(text(render_drop_policy(table, Policy(name=name, command="ALL"))))
    return dropped
