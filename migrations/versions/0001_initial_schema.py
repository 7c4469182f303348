"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Создает таблицы потоков, участников, целей, механизмов, переносов вхождений
и отметок о выполнении.
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ROLE_VALUES = ("lider", "senior", "master_senior", "admin")
FREQUENCY_VALUES = (
    "daily",
    "2x_week",
    "3x_week",
    "4x_week",
    "5x_week",
    "weekly",
    "biweekly",
    "monthly",
    "yearly",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "generations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("pl1_training_date", sa.Date(), nullable=True),
        sa.Column("pl3_training_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_generations"),
    )
    op.create_index("ix_generations_id", "generations", ["id"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum(*ROLE_VALUES, name="user_role_enum"), nullable=False),
        sa.Column("generation_id", sa.Uuid(), nullable=True),
        sa.Column("supervisor_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["generation_id"],
            ["generations.id"],
            name="fk_profiles_generation_id_generations",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["supervisor_id"],
            ["profiles.id"],
            name="fk_profiles_supervisor_id_profiles",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
    )
    op.create_index("ix_profiles_id", "profiles", ["id"])
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_generation_id", "profiles", ["generation_id"])
    op.create_index("ix_profiles_supervisor_id", "profiles", ["supervisor_id"])

    op.create_table(
        "goals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("participation_id", sa.Uuid(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("completed_by_supervisor_id", sa.Uuid(), nullable=True),
        sa.Column("progress_percentage", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], name="fk_goals_user_id_profiles", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["completed_by_supervisor_id"],
            ["profiles.id"],
            name="fk_goals_completed_by_supervisor_id_profiles",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_goals"),
    )
    op.create_index("ix_goals_id", "goals", ["id"])
    op.create_index("ix_goals_user_id", "goals", ["user_id"])
    op.create_index("ix_goals_participation_id", "goals", ["participation_id"])
    op.create_index("ix_goals_completed", "goals", ["completed"])

    op.create_table(
        "mechanisms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("goal_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("frequency", sa.Enum(*FREQUENCY_VALUES, name="mechanism_frequency_enum"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="ck_mechanisms_period_order",
        ),
        sa.ForeignKeyConstraint(["goal_id"], ["goals.id"], name="fk_mechanisms_goal_id_goals", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["profiles.id"], name="fk_mechanisms_user_id_profiles", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_mechanisms"),
    )
    op.create_index("ix_mechanisms_id", "mechanisms", ["id"])
    op.create_index("ix_mechanisms_goal_id", "mechanisms", ["goal_id"])
    op.create_index("ix_mechanisms_user_id", "mechanisms", ["user_id"])

    op.create_table(
        "mechanism_schedule_exceptions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("mechanism_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("original_date", sa.Date(), nullable=False),
        sa.Column("moved_to_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["mechanism_id"],
            ["mechanisms.id"],
            name="fk_mechanism_schedule_exceptions_mechanism_id_mechanisms",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["profiles.id"],
            name="fk_mechanism_schedule_exceptions_user_id_profiles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_mechanism_schedule_exceptions"),
        sa.UniqueConstraint(
            "mechanism_id", "user_id", "original_date", name="uq_schedule_exception_per_occurrence"
        ),
    )
    op.create_index("ix_mechanism_schedule_exceptions_id", "mechanism_schedule_exceptions", ["id"])
    op.create_index(
        "ix_mechanism_schedule_exceptions_mechanism_id", "mechanism_schedule_exceptions", ["mechanism_id"]
    )
    op.create_index("ix_mechanism_schedule_exceptions_user_id", "mechanism_schedule_exceptions", ["user_id"])
    op.create_index(
        "ix_mechanism_schedule_exceptions_moved_to_date", "mechanism_schedule_exceptions", ["moved_to_date"]
    )

    op.create_table(
        "mechanism_completions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("mechanism_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("completed_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["mechanism_id"],
            ["mechanisms.id"],
            name="fk_mechanism_completions_mechanism_id_mechanisms",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["profiles.id"],
            name="fk_mechanism_completions_user_id_profiles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_mechanism_completions"),
        sa.UniqueConstraint("mechanism_id", "user_id", "completed_date", name="uq_mechanism_completion_per_day"),
    )
    op.create_index("ix_mechanism_completions_id", "mechanism_completions", ["id"])
    op.create_index("ix_mechanism_completions_mechanism_id", "mechanism_completions", ["mechanism_id"])
    op.create_index("ix_mechanism_completions_user_id", "mechanism_completions", ["user_id"])
    op.create_index("ix_mechanism_completions_completed_date", "mechanism_completions", ["completed_date"])


def downgrade() -> None:
    op.drop_table("mechanism_completions")
    op.drop_table("mechanism_schedule_exceptions")
    op.drop_table("mechanisms")
    op.drop_table("goals")
    op.drop_table("profiles")
    op.drop_table("generations")

    # Enum типы PostgreSQL не удаляются вместе с таблицами
    sa.Enum(name="mechanism_frequency_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="user_role_enum").drop(op.get_bind(), checkfirst=True)
