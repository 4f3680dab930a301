"""Create workspaces and workspace_collaborators; retire workspace_users.

workspace_collaborators becomes the single membership table. Rows found in a
legacy workspace_users table are copied over and the legacy table (or the
compatibility view that aliased it) is dropped, together with any policy that
still reads it. Hand-made workspaces policies are replaced and TEXT id columns
are converted to uuid; the upgrade aborts if they hold non-UUID values.

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

from researchai.db.legacy import (
    CANONICAL_TABLE,
    LEGACY_WORKSPACE_POLICY_NAMES,
    convert_text_column_to_uuid,
    retire_legacy_table,
)
from researchai.db.rls import (
    Policy,
    disable_row_level_security,
    drop_policies,
    enable_row_level_security,
    grant_privileges,
    is_postgres,
)


revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None

# Policies on these two tables must not reference each other in both
# directions, nor workspace_collaborators itself: Postgres rejects recursive
# policy evaluation.
WORKSPACE_POLICIES = (
    Policy(name="Users can view their workspaces", command="SELECT", using="owner_id = auth.uid()"),
    Policy(name="Users can create their workspaces", command="INSERT", with_check="owner_id = auth.uid()"),
    Policy(
        name="Users can update their workspaces",
        command="UPDATE",
        using="owner_id = auth.uid()",
        with_check="owner_id = auth.uid()",
    ),
    Policy(name="Users can delete their workspaces", command="DELETE", using="owner_id = auth.uid()"),
)

COLLABORATOR_POLICIES = (
    Policy(
        name="Users can view workspace memberships",
        command="SELECT",
        using="user_id = auth.uid() OR workspace_id IN (SELECT id FROM workspaces WHERE owner_id = auth.uid())",
    ),
    Policy(
        name="Workspace owners can manage memberships",
        command="ALL",
        using="workspace_id IN (SELECT id FROM workspaces WHERE owner_id = auth.uid())",
    ),
)


def _uuid_pk(postgres: bool) -> sa.Column:
    return sa.Column(
        "id",
        sa.Uuid(),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()") if postgres else None,
    )


def upgrade() -> None:
    bind = op.get_bind()
    postgres = is_postgres(bind)
    inspector = inspect(bind)

    if not inspector.has_table("workspaces"):
        op.create_table(
            "workspaces",
            _uuid_pk(postgres),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("owner_id", sa.Uuid(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        )
        op.create_index("ix_workspaces_owner_id", "workspaces", ["owner_id"], unique=False)

    # A compatibility view may have been created under the canonical name.
    if CANONICAL_TABLE in inspector.get_view_names():
        op.execute(f"DROP VIEW {CANONICAL_TABLE}")

    if not inspect(bind).has_table(CANONICAL_TABLE):
        op.create_table(
            CANONICAL_TABLE,
            _uuid_pk(postgres),
            sa.Column(
                "workspace_id",
                sa.Uuid(),
                sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("role", sa.Text(), nullable=False),
            sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
            sa.Column("invited_by", sa.Uuid(), nullable=True),
            sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_collaborators_workspace_user"),
            sa.CheckConstraint(
                "role IN ('owner', 'editor', 'viewer', 'commenter')",
                name="ck_workspace_collaborators_role",
            ),
        )
        op.create_index("idx_collaborators_workspace", CANONICAL_TABLE, ["workspace_id"], unique=False)
        op.create_index("idx_collaborators_user", CANONICAL_TABLE, ["user_id"], unique=False)

    drop_policies(bind, "workspaces", LEGACY_WORKSPACE_POLICY_NAMES + tuple(p.name for p in WORKSPACE_POLICIES))
    drop_policies(bind, CANONICAL_TABLE, [p.name for p in COLLABORATOR_POLICIES])
    retire_legacy_table(bind)

    for table, column in (
        ("workspaces", "owner_id"),
        (CANONICAL_TABLE, "user_id"),
        (CANONICAL_TABLE, "invited_by"),
    ):
        convert_text_column_to_uuid(bind, table, column)

    enable_row_level_security(bind, "workspaces", WORKSPACE_POLICIES)
    enable_row_level_security(bind, CANONICAL_TABLE, COLLABORATOR_POLICIES)
    grant_privileges(bind, "workspaces", {"authenticated": "ALL"})
    grant_privileges(bind, CANONICAL_TABLE, {"authenticated": "ALL"})


def downgrade() -> None:
    # Legacy workspace_users is not recreated; its rows live on in the
    # canonical table until this drop.
    bind = op.get_bind()
    disable_row_level_security(bind, CANONICAL_TABLE, COLLABORATOR_POLICIES)
    disable_row_level_security(bind, "workspaces", WORKSPACE_POLICIES)

    op.drop_index("idx_collaborators_user", table_name=CANONICAL_TABLE)
    op.drop_index("idx_collaborators_workspace", table_name=CANONICAL_TABLE)
    op.drop_table(CANONICAL_TABLE)
    op.drop_index("ix_workspaces_owner_id", table_name="workspaces")
    op.drop_table("workspaces")
