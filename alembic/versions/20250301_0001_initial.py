"""initial schema

Revision ID: 20250301_0001
Revises:
Create Date: 2025-03-01 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20250301_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "account",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("email", sa.Text()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "workout",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Text(), sa.ForeignKey("account.id"), nullable=False),
        sa.Column("workout_date", sa.Date(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_workout_user_date_desc",
        "workout",
        ["user_id", sa.text("workout_date DESC")],
    )

    op.create_table(
        "exercise",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workout_id", sa.Uuid(), sa.ForeignKey("workout.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("position", sa.SmallInteger(), nullable=False),
    )
    op.create_index("ix_exercise_workout_position", "exercise", ["workout_id", "position"])
    op.create_index("ix_exercise_name", "exercise", ["name"])

    op.create_table(
        "workout_set",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "exercise_id", sa.Uuid(), sa.ForeignKey("exercise.id"), nullable=False
        ),
        sa.Column("set_index", sa.SmallInteger(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("reps", sa.Integer(), nullable=False),
        sa.CheckConstraint("reps >= 0", name="ck_workout_set_reps_nonnegative"),
        sa.CheckConstraint("weight >= 0", name="ck_workout_set_weight_nonnegative"),
    )
    op.create_index(
        "ix_workout_set_exercise_index", "workout_set", ["exercise_id", "set_index"]
    )


def downgrade() -> None:
    op.drop_index("ix_workout_set_exercise_index", table_name="workout_set")
    op.drop_table("workout_set")
    op.drop_index("ix_exercise_name", table_name="exercise")
    op.drop_index("ix_exercise_workout_position", table_name="exercise")
    op.drop_table("exercise")
    op.drop_index("ix_workout_user_date_desc", table_name="workout")
    op.drop_table("workout")
    op.drop_table("account")
