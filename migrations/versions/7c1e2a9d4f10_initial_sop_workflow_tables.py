"""initial sop workflow tables

Creates the SOP catalog, account and workflow execution tables:
  - clients, locations            account records read by the engine
  - sop_templates                 one row per SOP type (created on first use)
  - sop_task_templates            ordered steps of an SOP
  - sop_task_dependencies         predecessor → successor links (DAG)
  - workflow_instances            tracked SOP runs per location
  - task_instances                tracked steps of a workflow

Tables created conditionally so the revision can run against databases that
already received them via db.create_all() in development.

Revision ID: 7c1e2a9d4f10
Revises:
Create Date: 2026-10-19 09:12:44.210337
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '7c1e2a9d4f10'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=30)


BUSINESS_TYPES = ("TRADITIONAL", "RANK_RENT", "GMB_ONLY")
TASK_STATUSES = ("PENDING", "BLOCKED", "IN_PROGRESS", "COMPLETED", "SKIPPED")


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    # ── Accounts ──────────────────────────────────────────────────────────
    if "clients" not in existing:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("business_type", _enum("ck_client_business_type", *BUSINESS_TYPES),
                      nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "locations" not in existing:
        op.create_table(
            "locations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("client_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("address", sa.String(length=300), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_locations_client_id", "locations", ["client_id"])

    # ── SOP catalog ───────────────────────────────────────────────────────
    if "sop_templates" not in existing:
        op.create_table(
            "sop_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("type", _enum("ck_sop_template_type", "NEW_LOCATION",
                                    "SUSPENSION_RECOVERY", "REBRAND", "MAINTENANCE"),
                      nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("applicable_business_types", sa.JSON(), nullable=False,
                      comment="List of BusinessType values"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("type"),
        )

    if "sop_task_templates" not in existing:
        op.create_table(
            "sop_task_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("sop_template_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("instructions", sa.Text(), nullable=True),
            sa.Column("category", _enum("ck_sop_task_category", "GBP_SETUP",
                                        "GBP_OPTIMIZATION", "WEBSITE", "CITATIONS",
                                        "REVIEWS", "TRACKING", "CONTENT",
                                        "VERIFICATION", "DOCUMENTATION"),
                      nullable=False),
            sa.Column("evidence_type", _enum("ck_sop_task_evidence_type", "NONE", "URL",
                                             "SCREENSHOT", "TEXT", "FILE", "CHECKLIST"),
                      nullable=False),
            sa.Column("estimated_minutes", sa.Integer(), nullable=True),
            sa.Column("is_required", sa.Boolean(), nullable=False),
            sa.Column("requires_owner_approval", sa.Boolean(), nullable=False),
            sa.Column("applicable_business_types", sa.JSON(), nullable=False,
                      comment="List of BusinessType values"),
            sa.Column("order", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["sop_template_id"], ["sop_templates.id"],
                                    ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("sop_template_id", "order", name="uq_sop_task_order"),
        )
        op.create_index("ix_sop_task_templates_sop_template_id",
                        "sop_task_templates", ["sop_template_id"])

    if "sop_task_dependencies" not in existing:
        op.create_table(
            "sop_task_dependencies",
            sa.Column("predecessor_id", sa.Integer(), nullable=False),
            sa.Column("successor_id", sa.Integer(), nullable=False),
            sa.CheckConstraint("predecessor_id != successor_id",
                               name="ck_sop_dep_no_self_loop"),
            sa.ForeignKeyConstraint(["predecessor_id"], ["sop_task_templates.id"],
                                    ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["successor_id"], ["sop_task_templates.id"],
                                    ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("predecessor_id", "successor_id"),
        )

    # ── Workflow execution ────────────────────────────────────────────────
    if "workflow_instances" not in existing:
        op.create_table(
            "workflow_instances",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("location_id", sa.Integer(), nullable=False),
            sa.Column("sop_template_id", sa.Integer(), nullable=False),
            sa.Column("status", _enum("ck_workflow_status", "NOT_STARTED", "IN_PROGRESS",
                                      "BLOCKED", "COMPLETED", "CANCELLED"),
                      nullable=False),
            sa.Column("priority", _enum("ck_workflow_priority", "LOW", "MEDIUM",
                                        "HIGH", "CRITICAL"),
                      nullable=False),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["sop_template_id"], ["sop_templates.id"],
                                    ondelete="RESTRICT"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_workflow_instances_location_id",
                        "workflow_instances", ["location_id"])
        op.create_index("ix_workflow_instances_sop_template_id",
                        "workflow_instances", ["sop_template_id"])
        op.create_index("ix_workflow_instances_status",
                        "workflow_instances", ["status"])

    if "task_instances" not in existing:
        op.create_table(
            "task_instances",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("workflow_id", sa.Integer(), nullable=False),
            sa.Column("task_template_id", sa.Integer(), nullable=False),
            sa.Column("status", _enum("ck_task_instance_status", *TASK_STATUSES),
                      nullable=False),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("assigned_to", sa.String(length=100), nullable=True,
                      comment="External user reference"),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["workflow_id"], ["workflow_instances.id"],
                                    ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["task_template_id"], ["sop_task_templates.id"],
                                    ondelete="RESTRICT"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("workflow_id", "task_template_id",
                                name="uq_task_instance_template"),
        )
        op.create_index("ix_task_instances_workflow_id", "task_instances", ["workflow_id"])
        op.create_index("ix_task_instances_task_template_id",
                        "task_instances", ["task_template_id"])


def downgrade():
    op.drop_table("task_instances")
    op.drop_table("workflow_instances")
    op.drop_table("sop_task_dependencies")
    op.drop_table("sop_task_templates")
    op.drop_table("sop_templates")
    op.drop_table("locations")
    op.drop_table("clients")
