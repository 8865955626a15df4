"""initial coach schema

Revision ID: 3c8e51a0d2f4
Revises:
Create Date: 2026-03-02 10:15:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c8e51a0d2f4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("auth_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("coach_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("inactive_since", sa.DateTime(), nullable=True),
        sa.Column("starting_weight", sa.Float(), nullable=True),
        sa.Column("current_weight", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["coach_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_auth_id"), "user", ["auth_id"], unique=True)
    op.create_index(op.f("ix_user_coach_id"), "user", ["coach_id"], unique=False)

    op.create_table(
        "meal_plan",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_template", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_meal_plan_user_id"), "meal_plan", ["user_id"], unique=False)

    op.create_table(
        "meal",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meal_plan_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("time", sa.String(length=8), nullable=False),
        sa.Column("sequence_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["meal_plan_id"], ["meal_plan.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_meal_meal_plan_id"), "meal", ["meal_plan_id"], unique=False)

    op.create_table(
        "meal_completion",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("meal_id", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["meal_id"], ["meal.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "meal_id", "completed_at", name="uq_meal_completion_user_meal_date"),
    )
    op.create_index(op.f("ix_meal_completion_user_id"), "meal_completion", ["user_id"], unique=False)

    op.create_table(
        "workout_plan",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_template", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_workout_plan_user_id"), "workout_plan", ["user_id"], unique=False)

    op.create_table(
        "workout_day",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("workout_plan_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("is_rest", sa.Boolean(), nullable=False),
        sa.Column("workout_name", sa.String(length=120), nullable=True),
        sa.ForeignKeyConstraint(["workout_plan_id"], ["workout_plan.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_workout_day_workout_plan_id"), "workout_day", ["workout_plan_id"], unique=False)

    op.create_table(
        "workout_exercise",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("workout_day_id", sa.Integer(), nullable=False),
        sa.Column("sequence_order", sa.Integer(), nullable=False),
        sa.Column("group_type", sa.String(length=40), nullable=False),
        sa.Column("exercise_name", sa.String(length=120), nullable=False),
        sa.Column("exercise_description", sa.String(length=500), nullable=True),
        sa.Column("video_url", sa.String(length=500), nullable=True),
        sa.Column("sets_data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["workout_day_id"], ["workout_day.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_workout_exercise_workout_day_id"), "workout_exercise", ["workout_day_id"], unique=False)

    op.create_table(
        "workout_completion",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Date(), nullable=False),
        sa.Column("completed_groups", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "completed_at", name="uq_workout_completion_user_date"),
    )
    op.create_index(op.f("ix_workout_completion_user_id"), "workout_completion", ["user_id"], unique=False)

    op.create_table(
        "supplement",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("dosage", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_supplement_user_id"), "supplement", ["user_id"], unique=False)

    op.create_table(
        "supplement_completion",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("supplement_id", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["supplement_id"], ["supplement.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "supplement_id", "completed_at", name="uq_supplement_completion_user_supp_date"
        ),
    )
    op.create_index(op.f("ix_supplement_completion_user_id"), "supplement_completion", ["user_id"], unique=False)

    op.create_table(
        "weight_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("logged_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_weight_log_user_id"), "weight_log", ["user_id"], unique=False)


def downgrade():
    op.drop_index(op.f("ix_weight_log_user_id"), table_name="weight_log")
    op.drop_table("weight_log")
    op.drop_index(op.f("ix_supplement_completion_user_id"), table_name="supplement_completion")
    op.drop_table("supplement_completion")
    op.drop_index(op.f("ix_supplement_user_id"), table_name="supplement")
    op.drop_table("supplement")
    op.drop_index(op.f("ix_workout_completion_user_id"), table_name="workout_completion")
    op.drop_table("workout_completion")
    op.drop_index(op.f("ix_workout_exercise_workout_day_id"), table_name="workout_exercise")
    op.drop_table("workout_exercise")
    op.drop_index(op.f("ix_workout_day_workout_plan_id"), table_name="workout_day")
    op.drop_table("workout_day")
    op.drop_index(op.f("ix_workout_plan_user_id"), table_name="workout_plan")
    op.drop_table("workout_plan")
    op.drop_index(op.f("ix_meal_completion_user_id"), table_name="meal_completion")
    op.drop_table("meal_completion")
    op.drop_index(op.f("ix_meal_meal_plan_id"), table_name="meal")
    op.drop_table("meal")
    op.drop_index(op.f("ix_meal_plan_user_id"), table_name="meal_plan")
    op.drop_table("meal_plan")
    op.drop_index(op.f("ix_user_coach_id"), table_name="user")
    op.drop_index(op.f("ix_user_auth_id"), table_name="user")
    op.drop_table("user")
