"""Create tasks and participations tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001_create_tasks_and_participations"
down_revision = None
branch_labels = None
depends_on = None


task_status_enum = sa.Enum(
    "open", "in_progress", "completed", "cancelled", name="task_status"
)


def upgrade() -> None:
    """Apply schema upgrades."""
    bind = op.get_bind()
    task_status_enum.create(bind, checkfirst=True)

    op.create_table(
        "tasks",
        sa.Column(
            "id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("category_id", sa.String(length=64), nullable=True),
        sa.Column("creator_id", sa.String(length=64), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(name="task_status", create_type=False),
            nullable=False,
        ),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("capacity >= 1", name="ck_tasks_capacity_positive"),
        sa.CheckConstraint("version > 0", name="ck_tasks_version_positive"),
        sa.CheckConstraint(
            "(status = 'completed' AND completed_at IS NOT NULL) "
            "OR (status != 'completed' AND completed_at IS NULL)",
            name="ck_tasks_completed_at_matches_status",
        ),
    )
    op.create_index("ix_tasks_creator_id", "tasks", ["creator_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])

    op.create_table(
        "participations",
        sa.Column(
            "id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("volunteer_id", sa.String(length=64), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("left_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "(active AND left_at IS NULL) OR (NOT active AND left_at IS NOT NULL)",
            name="ck_participations_left_at_matches_active",
        ),
    )
    op.create_index(
        "uq_participations_task_volunteer_active",
        "participations",
        ["task_id", "volunteer_id"],
        unique=True,
        postgresql_where=sa.text("active"),
    )
    op.create_index(
        "ix_participations_task_active_joined_at",
        "participations",
        ["task_id", "active", "joined_at"],
    )
    op.create_index(
        "ix_participations_volunteer_id",
        "participations",
        ["volunteer_id"],
    )


def downgrade() -> None:
    """Revert schema upgrades."""
    op.drop_index("ix_participations_volunteer_id", table_name="participations")
    op.drop_index(
        "ix_participations_task_active_joined_at", table_name="participations"
    )
    op.drop_index(
        "uq_participations_task_volunteer_active", table_name="participations"
    )
    op.drop_table("participations")

    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_index("ix_tasks_creator_id", table_name="tasks")
    op.drop_table("tasks")

    task_status_enum.drop(op.get_bind(), checkfirst=True)
