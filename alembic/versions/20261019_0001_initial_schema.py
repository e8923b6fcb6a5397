"""Environments, databases, applications and task history."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "environments",
        sa.Column("env_id", sa.Integer(), primary_key=True),
        sa.Column("env_name", sa.String(), nullable=False),
    )
    op.create_index("ix_environments_env_name", "environments", ["env_name"], unique=True)

    op.create_table(
        "logical_databases",
        sa.Column("logical_id", sa.Integer(), primary_key=True),
        sa.Column(
            "env_id",
            sa.Integer(),
            sa.ForeignKey("environments.env_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("logical_name", sa.String(), nullable=False),
    )
    op.create_index("ix_logical_databases_env_id", "logical_databases", ["env_id"])

    op.create_table(
        "physical_databases",
        sa.Column("physical_id", sa.Integer(), primary_key=True),
        sa.Column(
            "logical_id",
            sa.Integer(),
            sa.ForeignKey("logical_databases.logical_id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("instance_name", sa.String(), nullable=False),
        sa.Column("is_live", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("db_url", sa.String(), nullable=False, server_default=""),
        sa.Column("db_username", sa.String(), nullable=False, server_default=""),
    )

    op.create_table(
        "application_vms",
        sa.Column("vm_id", sa.Integer(), primary_key=True),
        sa.Column(
            "env_id",
            sa.Integer(),
            sa.ForeignKey("environments.env_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("hostname", sa.String(), nullable=False),
        sa.Column("ip_address", sa.String(), nullable=False, server_default=""),
        sa.Column("ec2_instance_id", sa.String(), nullable=False, server_default=""),
    )
    op.create_index("ix_application_vms_env_id", "application_vms", ["env_id"])

    op.create_table(
        "applications",
        sa.Column("application_id", sa.Integer(), primary_key=True),
        sa.Column(
            "vm_id",
            sa.Integer(),
            sa.ForeignKey("application_vms.vm_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("scheme", sa.String(), nullable=False, server_default="http"),
        sa.Column("hostname", sa.String(), nullable=False),
        sa.Column("port", sa.Integer(), nullable=False, server_default=sa.text("80")),
        sa.Column("url_path", sa.String(), nullable=False, server_default=""),
    )
    op.create_index("ix_applications_vm_id", "applications", ["vm_id"])

    op.create_table(
        "task_history",
        sa.Column("task_history_id", sa.Integer(), primary_key=True),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("env_name", sa.String(), nullable=False),
        sa.Column("task_name", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
    )
    op.create_index("ix_task_history_job_id", "task_history", ["job_id"])
    op.create_index("ix_task_history_status", "task_history", ["status"])
    op.create_index(
        "ix_task_history_env_task_start",
        "task_history",
        ["env_name", "task_name", "start_time"],
    )


def downgrade() -> None:
    op.drop_table("task_history")
    op.drop_table("applications")
    op.drop_table("application_vms")
    op.drop_table("physical_databases")
    op.drop_table("logical_databases")
    op.drop_table("environments")
