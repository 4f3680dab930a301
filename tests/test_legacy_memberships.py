"""
Folding workspace_users into workspace_collaborators.
"""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, select, text

from researchai.db.legacy import copy_legacy_memberships, legacy_relation_kind
from researchai.db.models import Base
from researchai.models.workspace import WorkspaceCollaborator

ROOT = Path(__file__).resolve().parents[1]

WORKSPACE = uuid.uuid4()
OWNER = uuid.uuid4()
ADMIN = uuid.uuid4()
MEMBER = uuid.uuid4()

LEGACY_DDL = "CREATE TABLE workspace_users (workspace_id TEXT, user_id TEXT, role TEXT)"


def _seed_legacy(conn, rows):
    conn.execute(text(LEGACY_DDL))
    for workspace_id, user_id, role in rows:
        conn.execute(
            text("INSERT INTO workspace_users (workspace_id, user_id, role) VALUES (:w, :u, :r)"),
            {"w": workspace_id, "u": user_id, "r": role},
        )


LEGACY_ROWS = [
    (str(WORKSPACE), str(OWNER), "owner"),
    (str(WORKSPACE), str(ADMIN), "admin"),
    (str(WORKSPACE), str(MEMBER), "member"),
    (str(WORKSPACE), "not-a-uuid", "member"),
    (str(WORKSPACE), str(uuid.uuid4()), "superuser"),
]


@pytest.fixture
def engine():
    engine = create_engine("sqlite://")
    yield engine
    engine.dispose()


def _roles(conn) -> dict[uuid.UUID, str]:
    table = WorkspaceCollaborator.__table__
    return {r.user_id: r.role for r in conn.execute(select(table.c.user_id, table.c.role))}


def test_no_legacy_table_is_a_noop(engine):
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
        assert legacy_relation_kind(conn) is None
        assert copy_legacy_memberships(conn) == 0


def test_legacy_view_is_not_copied(engine):
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
        conn.execute(text("CREATE VIEW workspace_users AS SELECT * FROM workspace_collaborators"))
        assert legacy_relation_kind(conn) == "view"
        assert copy_legacy_memberships(conn) == 0


def test_rows_are_copied_with_mapped_roles(engine):
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
        _seed_legacy(conn, LEGACY_ROWS)

        assert copy_legacy_memberships(conn) == 3
        assert _roles(conn) == {OWNER: "owner", ADMIN: "editor", MEMBER: "viewer"}


def test_existing_memberships_are_not_duplicated(engine):
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
        conn.execute(
            WorkspaceCollaborator.__table__.insert().values(
                id=uuid.uuid4(), workspace_id=WORKSPACE, user_id=ADMIN, role="owner"
            )
        )
        _seed_legacy(conn, LEGACY_ROWS)

        assert copy_legacy_memberships(conn) == 2
        roles = _roles(conn)
        assert roles[ADMIN] == "owner"
        assert len(roles) == 3


def test_copy_is_idempotent(engine):
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
        _seed_legacy(conn, LEGACY_ROWS)
        copy_legacy_memberships(conn)
        assert copy_legacy_memberships(conn) == 0


class TestUpgrade:
    @pytest.fixture
    def alembic_config(self, tmp_path) -> Config:
        cfg = Config(str(ROOT / "alembic.ini"))
        cfg.set_main_option("script_location", str(ROOT / "alembic"))
        cfg.set_main_option("sqlalchemy.url", f"sqlite:///{tmp_path / 'migrate.db'}")
        return cfg

    def test_upgrade_creates_every_table(self, alembic_config):
        command.upgrade(alembic_config, "head")

        engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()

        assert {"search_queries", "workspaces", "workspace_collaborators", "chart_exports", "humanizer_logs"} <= tables
        assert "workspace_users" not in tables

    def test_upgrade_retires_legacy_table(self, alembic_config):
        engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
        try:
            with engine.begin() as conn:
                _seed_legacy(conn, LEGACY_ROWS)

            command.upgrade(alembic_config, "head")

            inspector = inspect(engine)
            assert not inspector.has_table("workspace_users")
            assert "workspace_users" not in inspector.get_view_names()
            with engine.connect() as conn:
                assert _roles(conn) == {OWNER: "owner", ADMIN: "editor", MEMBER: "viewer"}
        finally:
            engine.dispose()

    def test_upgrade_replaces_compatibility_view(self, alembic_config):
        engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
        try:
            with engine.begin() as conn:
                _seed_legacy(conn, LEGACY_ROWS[:1])
                conn.execute(text("CREATE VIEW workspace_collaborators AS SELECT * FROM workspace_users"))

            command.upgrade(alembic_config, "head")

            inspector = inspect(engine)
            assert "workspace_collaborators" not in inspector.get_view_names()
            assert inspector.has_table("workspace_collaborators")
            with engine.connect() as conn:
                assert _roles(conn) == {OWNER: "owner"}
        finally:
            engine.dispose()
