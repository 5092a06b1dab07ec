"""initial_assurance_schema

Create definitions, projects, assessments, ledgers and the standard summary cache.

Revision ID: a1c0f3e2b901
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1c0f3e2b901"
down_revision = None
branch_labels = None
depends_on = None


def _ledger_columns():
    return [
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("changed_by", sa.String(length=150), nullable=False, server_default="Unknown"),
        sa.Column("changes_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "service_standards" not in existing_tables:
        op.create_table(
            "service_standards",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("number", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("number"),
        )
        op.create_index("ix_service_standards_is_active", "service_standards", ["is_active"])

    if "professions" not in existing_tables:
        op.create_table(
            "professions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=60), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )
        op.create_index("ix_professions_is_active", "professions", ["is_active"])

    if "service_standard_history" not in existing_tables:
        op.create_table(
            "service_standard_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("standard_id", sa.Integer(), nullable=False),
            *_ledger_columns(),
            sa.ForeignKeyConstraint(["standard_id"], ["service_standards.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_service_standard_history_standard_id", "service_standard_history", ["standard_id"])
        op.create_index("ix_service_standard_history_timestamp", "service_standard_history", ["timestamp"])
        op.create_index("ix_service_standard_history_archived", "service_standard_history", ["archived"])

    if "profession_history" not in existing_tables:
        op.create_table(
            "profession_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("profession_id", sa.Integer(), nullable=False),
            *_ledger_columns(),
            sa.ForeignKeyConstraint(["profession_id"], ["professions.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_profession_history_profession_id", "profession_history", ["profession_id"])
        op.create_index("ix_profession_history_timestamp", "profession_history", ["timestamp"])
        op.create_index("ix_profession_history_archived", "profession_history", ["archived"])

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="TBC"),
            sa.Column("commentary", sa.Text(), nullable=False, server_default=""),
            sa.Column("phase", sa.String(length=50), nullable=True),
            sa.Column("def_code", sa.String(length=50), nullable=True),
            sa.Column("tags_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("update_date", sa.Date(), nullable=True),
            sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "project_history" not in existing_tables:
        op.create_table(
            "project_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            *_ledger_columns(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_history_project_id", "project_history", ["project_id"])
        op.create_index("ix_project_history_timestamp", "project_history", ["timestamp"])
        op.create_index("ix_project_history_archived", "project_history", ["archived"])
        op.create_index("idx_project_history_scope_ts", "project_history", ["project_id", "timestamp"])

    if "assessments" not in existing_tables:
        op.create_table(
            "assessments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("standard_id", sa.Integer(), nullable=False),
            sa.Column("profession_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("commentary", sa.Text(), nullable=False, server_default=""),
            sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
            sa.Column("changed_by", sa.String(length=150), nullable=False, server_default="Unknown"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["standard_id"], ["service_standards.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["profession_id"], ["professions.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "standard_id", "profession_id", name="uq_assessment_scope"),
        )
        op.create_index("ix_assessments_project_id", "assessments", ["project_id"])
        op.create_index("idx_assessment_project_standard", "assessments", ["project_id", "standard_id"])

    if "assessment_history" not in existing_tables:
        op.create_table(
            "assessment_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("standard_id", sa.Integer(), nullable=False),
            sa.Column("profession_id", sa.Integer(), nullable=False),
            *_ledger_columns(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_assessment_history_timestamp", "assessment_history", ["timestamp"])
        op.create_index("ix_assessment_history_archived", "assessment_history", ["archived"])
        op.create_index(
            "idx_assessment_history_scope_ts",
            "assessment_history",
            ["project_id", "standard_id", "profession_id", "timestamp"],
        )
        op.create_index(
            "idx_assessment_history_project_ts",
            "assessment_history",
            ["project_id", "archived", "timestamp"],
        )

    if "standard_summaries" not in existing_tables:
        op.create_table(
            "standard_summaries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("standard_id", sa.Integer(), nullable=False),
            sa.Column("aggregated_status", sa.String(length=20), nullable=False),
            sa.Column("aggregated_commentary", sa.Text(), nullable=False, server_default=""),
            sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
            sa.Column("professions_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("is_cache", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["standard_id"], ["service_standards.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "standard_id", name="uq_standard_summary_scope"),
        )
        op.create_index("ix_standard_summaries_project_id", "standard_summaries", ["project_id"])


def downgrade():
    existing_tables = set(sa_inspect(op.get_bind()).get_table_names())
    for table in (
        "standard_summaries",
        "assessment_history",
        "assessments",
        "project_history",
        "projects",
        "profession_history",
        "service_standard_history",
        "professions",
        "service_standards",
    ):
        if table in existing_tables:
            op.drop_table(table)
