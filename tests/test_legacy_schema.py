"""
Upgrading databases built from the hand-run SQL scripts: policies that read
workspace_users and TEXT id columns.
"""

from __future__ import annotations

from collections import namedtuple
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine

from researchai.db import legacy
from researchai.db.legacy import LegacySchemaError, convert_text_column_to_uuid, retire_legacy_table
from researchai.db.rls import drop_policies, drop_policies_referencing

PolicyRow = namedtuple("PolicyRow", "tablename policyname")
DependentRow = namedtuple("DependentRow", "relname polname")
ConstraintRow = namedtuple("ConstraintRow", "conname")


class FakeResult:
    def __init__(self, rows):
        self.rows = list(rows)

    def all(self):
        return self.rows

    def first(self):
        return self.rows[0] if self.rows else None

    def scalar(self):
        return self.rows[0][0] if self.rows else None


class FakePostgres:
    """Connection stand-in that records SQL and answers catalog queries."""

    dialect = SimpleNamespace(name="postgresql")

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.statements: list[str] = []

    def execute(self, statement, params=None):
        sql = str(statement)
        self.statements.append(sql)
        for fragment, rows in self.answers:
            if fragment in sql:
                return FakeResult(rows)
        return FakeResult([])

    def index_of(self, fragment: str) -> int:
        return next(i for i, sql in enumerate(self.statements) if fragment in sql)


@pytest.fixture
def sqlite_conn():
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        yield conn
    engine.dispose()


class TestPolicyCleanup:
    def test_referencing_policies_are_dropped(self):
        bind = FakePostgres(
            [("FROM pg_policies", [PolicyRow("chart_exports", "Users can view workspace chart exports")])]
        )
        dropped = drop_policies_referencing(bind, "workspace_users")

        assert dropped == [("chart_exports", "Users can view workspace chart exports")]
        assert bind.statements[-1] == 'DROP POLICY IF EXISTS "Users can view workspace chart exports" ON chart_exports'

    def test_named_policies_are_dropped(self):
        bind = FakePostgres()
        drop_policies(bind, "workspaces", ["Users can view workspaces they're members of"])
        assert bind.statements == [
            'DROP POLICY IF EXISTS "Users can view workspaces they\'re members of" ON workspaces'
        ]

    def test_noop_outside_postgres(self, sqlite_conn):
        assert drop_policies_referencing(sqlite_conn, "workspace_users") == []
        drop_policies(sqlite_conn, "workspaces", ["anything"])

    def test_dependent_policies_go_before_the_legacy_table(self, monkeypatch):
        copied = []
        monkeypatch.setattr(legacy, "legacy_relation_kind", lambda bind: "table")
        monkeypatch.setattr(legacy, "copy_legacy_memberships", lambda bind: copied.append(len(bind.statements)))
        bind = FakePostgres(
            [("FROM pg_policies", [PolicyRow("chart_exports", "Users can create chart exports")])]
        )

        retire_legacy_table(bind)

        drop_policy = bind.index_of('DROP POLICY IF EXISTS "Users can create chart exports"')
        drop_table = bind.index_of("DROP TABLE workspace_users")
        assert drop_policy < copied[0] <= drop_table

    def test_legacy_view_is_dropped_as_view(self, monkeypatch):
        monkeypatch.setattr(legacy, "legacy_relation_kind", lambda bind: "view")
        bind = FakePostgres()
        retire_legacy_table(bind)
        assert bind.statements[-1] == "DROP VIEW workspace_users"

    def test_nothing_to_retire(self, monkeypatch):
        monkeypatch.setattr(legacy, "legacy_relation_kind", lambda bind: None)
        bind = FakePostgres()
        retire_legacy_table(bind)
        assert bind.statements == []


class TestTextIdConversion:
    def test_text_column_is_converted(self):
        bind = FakePostgres(
            [
                ("information_schema.columns", [("text",)]),
                ("count(*)", [(0,)]),
                ("FROM pg_constraint", [ConstraintRow("chart_exports_user_id_fkey")]),
            ]
        )

        assert convert_text_column_to_uuid(bind, "chart_exports", "user_id") is True
        assert 'ALTER TABLE chart_exports DROP CONSTRAINT "chart_exports_user_id_fkey"' in bind.statements
        assert bind.statements[-1] == "ALTER TABLE chart_exports ALTER COLUMN user_id TYPE uuid USING user_id::uuid"

    def test_uuid_column_is_left_alone(self):
        bind = FakePostgres([("information_schema.columns", [("uuid",)])])
        assert convert_text_column_to_uuid(bind, "workspaces", "owner_id") is False
        assert not any("ALTER TABLE" in sql for sql in bind.statements)

    def test_missing_column_is_left_alone(self):
        bind = FakePostgres()
        assert convert_text_column_to_uuid(bind, "workspaces", "owner_id") is False

    def test_non_uuid_values_abort(self):
        bind = FakePostgres([("information_schema.columns", [("text",)]), ("count(*)", [(2,)])])

        with pytest.raises(LegacySchemaError, match="humanizer_logs.user_id holds 2 value"):
            convert_text_column_to_uuid(bind, "humanizer_logs", "user_id")
        assert not any("ALTER TABLE" in sql for sql in bind.statements)

    def test_remaining_policies_abort_with_their_names(self):
        bind = FakePostgres(
            [
                ("information_schema.columns", [("character varying",)]),
                ("count(*)", [(0,)]),
                ("FROM pg_policy p", [DependentRow("papers", "Owners read papers")]),
            ]
        )

        with pytest.raises(LegacySchemaError, match="papers.'Owners read papers'"):
            convert_text_column_to_uuid(bind, "workspaces", "owner_id")
        assert not any("ALTER TABLE" in sql for sql in bind.statements)

    def test_noop_outside_postgres(self, sqlite_conn):
        assert convert_text_column_to_uuid(sqlite_conn, "workspaces", "owner_id") is False
