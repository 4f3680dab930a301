"""Create chart_exports and humanizer_logs.

Deployments that created these tables from the SQL editor keep them; their
TEXT user_id columns are converted to uuid before the policies are recreated.

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql

from researchai.db.legacy import convert_text_column_to_uuid
from researchai.db.rls import (
    Policy,
    disable_row_level_security,
    drop_policies,
    enable_row_level_security,
    grant_privileges,
    is_postgres,
)


revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None

_MEMBER_WORKSPACES = "SELECT workspace_id FROM workspace_collaborators WHERE user_id = auth.uid()"

CHART_EXPORT_POLICIES = (
    Policy(
        name="Users can view workspace chart exports",
        command="SELECT",
        using=f"workspace_id IN ({_MEMBER_WORKSPACES})",
    ),
    Policy(
        name="Users can create chart exports",
        command="INSERT",
        with_check=(
            f"user_id = auth.uid() AND workspace_id IN ({_MEMBER_WORKSPACES} AND role IN ('owner', 'editor'))"
        ),
    ),
    Policy(
        name="Users can delete own chart exports",
        command="DELETE",
        using="user_id = auth.uid()",
    ),
)

HUMANIZER_LOG_POLICIES = (
    Policy(name="Users can view own humanizer logs", command="SELECT", using="user_id = auth.uid()"),
    Policy(name="Users can create humanizer logs", command="INSERT", with_check="user_id = auth.uid()"),
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

    if not inspector.has_table("chart_exports"):
        op.create_table(
            "chart_exports",
            _uuid_pk(postgres),
            sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("type", sa.Text(), nullable=False),
            sa.Column("title", sa.Text(), nullable=True),
            sa.Column(
                "params",
                sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
                nullable=False,
                server_default=sa.text("'{}'"),
            ),
            sa.Column("image_url", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
            sa.CheckConstraint(
                "type IN ('bar', 'line', 'pie', 'scatter', 'heatmap', 'network')",
                name="ck_chart_exports_type",
            ),
        )
        op.create_index("idx_chart_exports_workspace", "chart_exports", ["workspace_id"], unique=False)
        op.create_index("idx_chart_exports_user", "chart_exports", ["user_id"], unique=False)
        op.create_index("idx_chart_exports_created", "chart_exports", [sa.text("created_at DESC")], unique=False)

    if not inspector.has_table("humanizer_logs"):
        op.create_table(
            "humanizer_logs",
            _uuid_pk(postgres),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True),
            sa.Column("input_text", sa.Text(), nullable=False),
            sa.Column("output_text", sa.Text(), nullable=False),
            sa.Column("provider", sa.Text(), nullable=False),
            sa.Column("model", sa.Text(), nullable=True),
            sa.Column("input_tokens", sa.Integer(), nullable=True),
            sa.Column("output_tokens", sa.Integer(), nullable=True),
            sa.Column("processing_time_ms", sa.Integer(), nullable=True),
            sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
            sa.CheckConstraint(
                "provider IN ('cerebras', 'huggingface', 'openai', 'anthropic')",
                name="ck_humanizer_logs_provider",
            ),
        )
        op.create_index("idx_humanizer_logs_user", "humanizer_logs", ["user_id"], unique=False)
        op.create_index("idx_humanizer_logs_workspace", "humanizer_logs", ["workspace_id"], unique=False)
        op.create_index("idx_humanizer_logs_created", "humanizer_logs", [sa.text("created_at DESC")], unique=False)
        op.create_index("idx_humanizer_logs_provider", "humanizer_logs", ["provider"], unique=False)

    # Tables created by hand keep user_id as TEXT; their policies share our
    # names and must go before the column type can change.
    for table, policies in (("chart_exports", CHART_EXPORT_POLICIES), ("humanizer_logs", HUMANIZER_LOG_POLICIES)):
        drop_policies(bind, table, [p.name for p in policies])
        convert_text_column_to_uuid(bind, table, "user_id")

    enable_row_level_security(bind, "chart_exports", CHART_EXPORT_POLICIES)
    enable_row_level_security(bind, "humanizer_logs", HUMANIZER_LOG_POLICIES)
    grant_privileges(bind, "chart_exports", {"authenticated": "SELECT, INSERT, DELETE"})
    grant_privileges(bind, "humanizer_logs", {"authenticated": "SELECT, INSERT"})


def downgrade() -> None:
    bind = op.get_bind()
    disable_row_level_security(bind, "humanizer_logs", HUMANIZER_LOG_POLICIES)
    disable_row_level_security(bind, "chart_exports", CHART_EXPORT_POLICIES)

    op.drop_index("idx_humanizer_logs_provider", table_name="humanizer_logs")
    op.drop_index("idx_humanizer_logs_created", table_name="humanizer_logs")
    op.drop_index("idx_humanizer_logs_workspace", table_name="humanizer_logs")
    op.drop_index("idx_humanizer_logs_user", table_name="humanizer_logs")
    op.drop_table("humanizer_logs")

    op.drop_index("idx_chart_exports_created", table_name="chart_exports")
    op.drop_index("idx_chart_exports_user", table_name="chart_exports")
    op.drop_index("idx_chart_exports_workspace", table_name="chart_exports")
    op.drop_table("chart_exports")
