"""Create search_queries analytics table with row-level security.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

from researchai.db.rls import (
    Policy,
    disable_row_level_security,
    enable_row_level_security,
    grant_privileges,
    has_auth_schema,
    is_postgres,
)


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

TABLE = "search_queries"

POLICIES = (
    Policy(
        name="Users can view their own search queries",
        command="SELECT",
        using="user_id = auth.uid() OR user_id IS NULL",
    ),
    Policy(
        name="Users can insert their own search queries",
        command="INSERT",
        with_check="user_id = auth.uid() OR user_id IS NULL",
    ),
    Policy(
        name="Anonymous users can insert search queries",
        command="INSERT",
        with_check="user_id IS NULL",
    ),
)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    postgres = is_postgres(bind)

    if not inspector.has_table(TABLE):
        user_fk = []
        if has_auth_schema(bind):
            user_fk.append(sa.ForeignKey("auth.users.id", ondelete="SET NULL"))

        op.create_table(
            TABLE,
            sa.Column(
                "id",
                sa.Uuid(),
                primary_key=True,
                server_default=sa.text("gen_random_uuid()") if postgres else None,
            ),
            sa.Column("user_id", sa.Uuid(), *user_fk, nullable=True),
            sa.Column("namespace", sa.Text(), nullable=False, server_default="default"),
            sa.Column("query_text", sa.Text(), nullable=False),
            sa.Column("search_mode", sa.Text(), nullable=False, server_default="semantic"),
            sa.Column("results_count", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("filter_year", sa.Integer(), nullable=True),
            sa.Column("filter_author", sa.Text(), nullable=True),
            sa.Column("execution_time_ms", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        )

    indexes = {idx["name"] for idx in inspect(bind).get_indexes(TABLE)}
    if "idx_search_queries_user" not in indexes:
        op.create_index("idx_search_queries_user", TABLE, ["user_id"], unique=False)
    if "idx_search_queries_namespace" not in indexes:
        op.create_index("idx_search_queries_namespace", TABLE, ["namespace"], unique=False)
    if "idx_search_queries_created_at" not in indexes:
        op.create_index("idx_search_queries_created_at", TABLE, [sa.text("created_at DESC")], unique=False)
    if "idx_search_queries_search_mode" not in indexes:
        op.create_index("idx_search_queries_search_mode", TABLE, ["search_mode"], unique=False)

    enable_row_level_security(bind, TABLE, POLICIES)
    grant_privileges(bind, TABLE, {"authenticated": "ALL", "anon": "INSERT"})


def downgrade() -> None:
    bind = op.get_bind()
    disable_row_level_security(bind, TABLE, POLICIES)

    op.drop_index("idx_search_queries_search_mode", table_name=TABLE)
    op.drop_index("idx_search_queries_created_at", table_name=TABLE)
    op.drop_index("idx_search_queries_namespace", table_name=TABLE)
    op.drop_index("idx_search_queries_user", table_name=TABLE)
    op.drop_table(TABLE)
