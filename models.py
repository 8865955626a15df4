from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utc_now():
    return datetime.now(timezone.utc)


# =========================
# Users
# =========================
class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    # subject claim issued by the identity provider
    auth_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(100), nullable=False)

    # "coach" or "client"
    role = db.Column(db.String(20), default="client", nullable=False)

    # client users belong to a coach
    coach_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)

    # "active" or "inactive"
    status = db.Column(db.String(20), default="active", nullable=False)
    inactive_since = db.Column(db.DateTime, nullable=True)

    starting_weight = db.Column(db.Float)
    current_weight = db.Column(db.Float)

    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)


# =========================
# Meal plans
# =========================
class MealPlan(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    title = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    is_template = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=utc_now)
    # null on rows created before activation tracking existed
    activated_at = db.Column(db.DateTime, nullable=True)
    deactivated_at = db.Column(db.DateTime, nullable=True)


class Meal(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    meal_plan_id = db.Column(db.Integer, db.ForeignKey("meal_plan.id"), nullable=False, index=True)

    # option rows (A/B) share name + time
    name = db.Column(db.String(100), nullable=False)
    time = db.Column(db.String(8), nullable=False, default="")
    sequence_order = db.Column(db.Integer, nullable=False, default=0)


class MealCompletion(db.Model):
    __table_args__ = (
        db.UniqueConstraint("user_id", "meal_id", "completed_at", name="uq_meal_completion_user_meal_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    meal_id = db.Column(db.Integer, db.ForeignKey("meal.id"), nullable=False)
    completed_at = db.Column(db.Date, nullable=False)


# =========================
# Workout plans
# =========================
class WorkoutPlan(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    title = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    is_template = db.Column(db.Boolean, default=False, nullable=False)

    # "week" = fixed day-of-week schedule, "day" = flexible templates
    builder_mode = db.Column(db.String(10), default="week", nullable=False)
    workout_days_per_week = db.Column(db.Integer, default=7, nullable=False)

    created_at = db.Column(db.DateTime, default=utc_now)
    activated_at = db.Column(db.DateTime, nullable=True)
    deactivated_at = db.Column(db.DateTime, nullable=True)


class WorkoutDay(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    workout_plan_id = db.Column(db.Integer, db.ForeignKey("workout_plan.id"), nullable=False, index=True)

    day_of_week = db.Column(db.String(10), nullable=False)
    is_rest = db.Column(db.Boolean, default=False, nullable=False)
    workout_name = db.Column(db.String(120))


class WorkoutExercise(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    workout_day_id = db.Column(db.Integer, db.ForeignKey("workout_day.id"), nullable=False, index=True)

    sequence_order = db.Column(db.Integer, nullable=False, default=0)
    group_type = db.Column(db.String(40), nullable=False, default="straight")
    exercise_name = db.Column(db.String(120), nullable=False)
    exercise_description = db.Column(db.String(500))
    video_url = db.Column(db.String(500))
    sets_data = db.Column(db.JSON, default=list)


class WorkoutCompletion(db.Model):
    __table_args__ = (
        db.UniqueConstraint("user_id", "completed_at", name="uq_workout_completion_user_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    completed_at = db.Column(db.Date, nullable=False)

    # exercise-group ids; empty list = rest day taken
    completed_groups = db.Column(db.JSON, default=list, nullable=False)


# =========================
# Supplements / weight
# =========================
class Supplement(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    dosage = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=utc_now)


class SupplementCompletion(db.Model):
    __table_args__ = (
        db.UniqueConstraint("user_id", "supplement_id", "completed_at", name="uq_supplement_completion_user_supp_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    supplement_id = db.Column(db.Integer, db.ForeignKey("supplement.id"), nullable=False)
    completed_at = db.Column(db.Date, nullable=False)


class WeightLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    weight = db.Column(db.Float, nullable=False)
    logged_at = db.Column(db.DateTime, default=utc_now)
