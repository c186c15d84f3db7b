"""initial team report schema

Create `organizations`, `teams`, `generated_reports` and `ai_usage_logs`.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "organizations" not in existing_tables:
        op.create_table(
            "organizations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("org_id", sa.String(length=64), nullable=False),
            sa.Column("org_name", sa.String(length=200), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_organizations_org_id", "organizations", ["org_id"], unique=True)

    if "teams" not in existing_tables:
        op.create_table(
            "teams",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("team_id", sa.String(length=64), nullable=False),
            sa.Column("team_name", sa.String(length=200), nullable=False),
            sa.Column("org_id", sa.String(length=64), nullable=True),
            sa.Column("values_vector", sa.Text(), nullable=True),
            sa.Column("aggregated_narrative", sa.Text(), nullable=True),
            sa.Column("mindset_scores", sa.JSON(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_teams_team_id", "teams", ["team_id"], unique=True)
        op.create_index("ix_teams_org_id", "teams", ["org_id"])

    if "generated_reports" not in existing_tables:
        op.create_table(
            "generated_reports",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("team_id", sa.String(length=64), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("version", sa.String(length=20), nullable=False),
            sa.Column("modules", sa.JSON(), nullable=False),
            sa.Column("markdown", sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_generated_reports_team_created", "generated_reports", ["team_id", "created_at"],
        )

    if "ai_usage_logs" not in existing_tables:
        op.create_table(
            "ai_usage_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("provider", sa.String(length=30), nullable=False),
            sa.Column("model", sa.String(length=80), nullable=False),
            sa.Column("prompt_tokens", sa.Integer(), nullable=True),
            sa.Column("completion_tokens", sa.Integer(), nullable=True),
            sa.Column("total_tokens", sa.Integer(), nullable=True),
            sa.Column("cost_usd", sa.Float(), nullable=True),
            sa.Column("latency_ms", sa.Integer(), nullable=True),
            sa.Column("purpose", sa.String(length=100), nullable=True),
            sa.Column("team_id", sa.String(length=64), nullable=True),
            sa.Column("success", sa.Boolean(), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_ai_usage_logs_team_id", "ai_usage_logs", ["team_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "ai_usage_logs" in existing_tables:
        op.drop_index("ix_ai_usage_logs_team_id", table_name="ai_usage_logs")
        op.drop_table("ai_usage_logs")
    if "generated_reports" in existing_tables:
        op.drop_index("ix_generated_reports_team_created", table_name="generated_reports")
        op.drop_table("generated_reports")
    if "teams" in existing_tables:
        op.drop_index("ix_teams_org_id", table_name="teams")
        op.drop_index("ix_teams_team_id", table_name="teams")
        op.drop_table("teams")
    if "organizations" in existing_tables:
        op.drop_index("ix_organizations_org_id", table_name="organizations")
        op.drop_table("organizations")
