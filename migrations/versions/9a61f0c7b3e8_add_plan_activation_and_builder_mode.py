"""add plan activation stamps and workout builder mode

Revision ID: 9a61f0c7b3e8
Revises: 3c8e51a0d2f4
Create Date: 2026-03-19 08:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "9a61f0c7b3e8"
down_revision = "3c8e51a0d2f4"
branch_labels = None
depends_on = None


def upgrade():
    # existing plans keep null stamps and count as legacy rows
    with op.batch_alter_table("meal_plan", schema=None) as batch_op:
        batch_op.add_column(sa.Column("activated_at", sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column("deactivated_at", sa.DateTime(), nullable=True))

    with op.batch_alter_table("workout_plan", schema=None) as batch_op:
        batch_op.add_column(sa.Column("activated_at", sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column("deactivated_at", sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column("builder_mode", sa.String(length=10), nullable=False, server_default="week"))
        batch_op.add_column(sa.Column("workout_days_per_week", sa.Integer(), nullable=False, server_default="7"))

    with op.batch_alter_table("workout_plan", schema=None) as batch_op:
        batch_op.alter_column("builder_mode", server_default=None)
        batch_op.alter_column("workout_days_per_week", server_default=None)


def downgrade():
    with op.batch_alter_table("workout_plan", schema=None) as batch_op:
        batch_op.drop_column("workout_days_per_week")
        batch_op.drop_column("builder_mode")
        batch_op.drop_column("deactivated_at")
        batch_op.drop_column("activated_at")

    with op.batch_alter_table("meal_plan", schema=None) as batch_op:
        batch_op.drop_column("deactivated_at")
        batch_op.drop_column("activated_at")
