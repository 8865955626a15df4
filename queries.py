"""
Entity fetch layer.

Each ``fetch_*`` function runs one query and returns plain records from
compliance.py, so results can cross threads and outlive the session that
produced them. ``run_concurrently`` fans independent fetches out on a thread
pool and joins them; a fetch that fails is logged and comes back empty.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app

from compliance import (
    ClientActivity,
    MealCompletionRecord,
    MealRecord,
    PlanRecord,
    SupplementCompletionRecord,
    SupplementRecord,
    WeightLogRecord,
    WorkoutCompletionRecord,
    WorkoutDayRecord,
)
from models import (
    Meal,
    MealCompletion,
    MealPlan,
    Supplement,
    SupplementCompletion,
    User,
    WeightLog,
    WorkoutCompletion,
    WorkoutDay,
    WorkoutExercise,
    WorkoutPlan,
)


@dataclass(frozen=True)
class ClientSummary:
    id: int
    name: str
    status: str
    created_on: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class ExerciseRecord:
    id: int
    workout_day_id: int
    sequence_order: int
    group_type: str
    name: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    sets: tuple = ()


# =========================
# Time zone helpers
# =========================
def app_timezone():
    return ZoneInfo(current_app.config.get("APP_TIMEZONE", "America/Denver"))


def to_local_date(value, tz=None):
    if value is None:
        return None
    if isinstance(value, datetime):
        # naive timestamps are stored in UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(tz or app_timezone()).date()
    return value


def local_today(tz=None) -> date:
    return datetime.now(tz or app_timezone()).date()


# =========================
# Row -> record
# =========================
def plan_record(plan, tz=None) -> PlanRecord:
    tz = tz or app_timezone()
    return PlanRecord(
        id=plan.id,
        user_id=plan.user_id,
        is_active=bool(plan.is_active),
        activated_on=to_local_date(plan.activated_at, tz),
        deactivated_on=to_local_date(plan.deactivated_at, tz),
        created_on=to_local_date(plan.created_at, tz),
        title=plan.title or "",
        builder_mode=getattr(plan, "builder_mode", "week") or "week",
        workout_days_per_week=getattr(plan, "workout_days_per_week", 7) or 7,
    )


def _ids(values):
    return sorted({v for v in values if v is not None})


# =========================
# Fetches
# =========================
def fetch_clients(coach_id):
    tz = app_timezone()
    rows = (
        User.query.filter_by(coach_id=coach_id, role="client")
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )
    return tuple(
        ClientSummary(id=u.id, name=u.name, status=u.status or "active", created_on=to_local_date(u.created_at, tz))
        for u in rows
    )


def _fetch_active_plans(model, user_ids):
    user_ids = _ids(user_ids)
    if not user_ids:
        return ()
    tz = app_timezone()
    rows = (
        model.query.filter(model.user_id.in_(user_ids))
        .filter_by(is_active=True, is_template=False)
        .all()
    )
    return tuple(plan_record(p, tz) for p in rows)


def fetch_active_workout_plans(user_ids):
    return _fetch_active_plans(WorkoutPlan, user_ids)


def fetch_active_meal_plans(user_ids):
    return _fetch_active_plans(MealPlan, user_ids)


def fetch_user_plans(model, user_id):
    """All non-template plans of a user, for resolving historical days."""
    tz = app_timezone()
    rows = model.query.filter_by(user_id=user_id, is_template=False).all()
    return tuple(plan_record(p, tz) for p in rows)


def fetch_workout_days(plan_ids):
    plan_ids = _ids(plan_ids)
    if not plan_ids:
        return ()
    rows = WorkoutDay.query.filter(WorkoutDay.workout_plan_id.in_(plan_ids)).all()
    return tuple(
        WorkoutDayRecord(
            plan_id=d.workout_plan_id,
            day_of_week=d.day_of_week,
            is_rest=bool(d.is_rest),
            id=d.id,
            workout_name=d.workout_name,
        )
        for d in rows
    )


def fetch_meals(plan_ids):
    plan_ids = _ids(plan_ids)
    if not plan_ids:
        return ()
    rows = (
        Meal.query.filter(Meal.meal_plan_id.in_(plan_ids))
        .order_by(Meal.sequence_order.asc(), Meal.id.asc())
        .all()
    )
    return tuple(
        MealRecord(id=m.id, plan_id=m.meal_plan_id, name=m.name, time=m.time or "", sequence_order=m.sequence_order or 0)
        for m in rows
    )


def fetch_supplements(user_ids):
    user_ids = _ids(user_ids)
    if not user_ids:
        return ()
    tz = app_timezone()
    rows = Supplement.query.filter(Supplement.user_id.in_(user_ids)).all()
    return tuple(
        SupplementRecord(id=s.id, user_id=s.user_id, created_on=to_local_date(s.created_at, tz), name=s.name)
        for s in rows
    )


def fetch_workout_completions(user_ids, start: date, end: date):
    user_ids = _ids(user_ids)
    if not user_ids:
        return ()
    rows = (
        WorkoutCompletion.query.filter(WorkoutCompletion.user_id.in_(user_ids))
        .filter(WorkoutCompletion.completed_at >= start, WorkoutCompletion.completed_at <= end)
        .all()
    )
    return tuple(
        WorkoutCompletionRecord(
            user_id=c.user_id,
            completed_on=c.completed_at,
            completed_groups=tuple(c.completed_groups or ()),
        )
        for c in rows
    )


def fetch_meal_completions(user_ids, start: date, end: date):
    user_ids = _ids(user_ids)
    if not user_ids:
        return ()
    rows = (
        MealCompletion.query.filter(MealCompletion.user_id.in_(user_ids))
        .filter(MealCompletion.completed_at >= start, MealCompletion.completed_at <= end)
        .all()
    )
    return tuple(MealCompletionRecord(user_id=c.user_id, meal_id=c.meal_id, completed_on=c.completed_at) for c in rows)


def fetch_supplement_completions(user_ids, start: date, end: date):
    user_ids = _ids(user_ids)
    if not user_ids:
        return ()
    rows = (
        SupplementCompletion.query.filter(SupplementCompletion.user_id.in_(user_ids))
        .filter(SupplementCompletion.completed_at >= start, SupplementCompletion.completed_at <= end)
        .all()
    )
    return tuple(
        SupplementCompletionRecord(user_id=c.user_id, supplement_id=c.supplement_id, completed_on=c.completed_at)
        for c in rows
    )


def fetch_weight_logs(user_id):
    rows = WeightLog.query.filter_by(user_id=user_id).order_by(WeightLog.logged_at.asc()).all()
    return tuple(WeightLogRecord(weight=w.weight, logged_at=w.logged_at) for w in rows)


def fetch_workout_exercises(day_ids):
    day_ids = _ids(day_ids)
    if not day_ids:
        return ()
    rows = (
        WorkoutExercise.query.filter(WorkoutExercise.workout_day_id.in_(day_ids))
        .order_by(WorkoutExercise.sequence_order.asc(), WorkoutExercise.id.asc())
        .all()
    )
    return tuple(
        ExerciseRecord(
            id=e.id,
            workout_day_id=e.workout_day_id,
            sequence_order=e.sequence_order,
            group_type=e.group_type,
            name=e.exercise_name,
            description=e.exercise_description,
            video_url=e.video_url,
            sets=tuple(e.sets_data or ()),
        )
        for e in rows
    )


# =========================
# Fan-out / fan-in
# =========================
def run_concurrently(app, jobs, max_workers=None):
    """Run zero-argument callables in parallel and return their results by name.

    Each job gets its own application context (and therefore its own database
    session). A job that raises is logged and its result replaced by ``()``.
    """
    if not jobs:
        return {}
    if max_workers is None:
        max_workers = app.config.get("FETCH_MAX_WORKERS", 6)

    def call(name, job):
        with app.app_context():
            try:
                return job()
            except Exception:
                app.logger.exception("[fetch] %s failed, continuing without it", name)
                return ()

    workers = max(1, min(max_workers, len(jobs)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {name: pool.submit(call, name, job) for name, job in jobs.items()}
        return {name: future.result() for name, future in futures.items()}


def latest_plan_by_user(plans):
    """One plan per user; if several are flagged active, the newest activation wins."""
    chosen = {}
    for plan in plans:
        current = chosen.get(plan.user_id)
        key = (plan.activated_on is not None, plan.activated_on or date.min, plan.id)
        if current is None or key > (current.activated_on is not None, current.activated_on or date.min, current.id):
            chosen[plan.user_id] = plan
    return chosen


def _group(records, attr):
    grouped = {}
    for record in records:
        grouped.setdefault(getattr(record, attr), []).append(record)
    return grouped


def load_client_activities(app, client_ids, start: date, end: date):
    """Fetch plans, plan contents and completions for ``client_ids`` in two fan-outs."""
    client_ids = _ids(client_ids)
    if not client_ids:
        return []

    plans = run_concurrently(app, {
        "workout_plans": lambda: fetch_active_workout_plans(client_ids),
        "meal_plans": lambda: fetch_active_meal_plans(client_ids),
    })
    workout_plan_by_user = latest_plan_by_user(plans["workout_plans"])
    meal_plan_by_user = latest_plan_by_user(plans["meal_plans"])
    workout_plan_ids = [p.id for p in workout_plan_by_user.values()]
    meal_plan_ids = [p.id for p in meal_plan_by_user.values()]

    rows = run_concurrently(app, {
        "workout_days": lambda: fetch_workout_days(workout_plan_ids),
        "meals": lambda: fetch_meals(meal_plan_ids),
        "supplements": lambda: fetch_supplements(client_ids),
        "workout_completions": lambda: fetch_workout_completions(client_ids, start, end),
        "meal_completions": lambda: fetch_meal_completions(client_ids, start, end),
        "supplement_completions": lambda: fetch_supplement_completions(client_ids, start, end),
    })

    days_by_plan = _group(rows["workout_days"], "plan_id")
    meals_by_plan = _group(rows["meals"], "plan_id")
    supplements_by_user = _group(rows["supplements"], "user_id")
    workouts_by_user = _group(rows["workout_completions"], "user_id")
    meal_completions_by_user = _group(rows["meal_completions"], "user_id")
    supplement_completions_by_user = _group(rows["supplement_completions"], "user_id")

    activities = []
    for client_id in client_ids:
        workout_plan = workout_plan_by_user.get(client_id)
        meal_plan = meal_plan_by_user.get(client_id)
        activities.append(ClientActivity(
            client_id=client_id,
            workout_days=tuple(days_by_plan.get(workout_plan.id, ())) if workout_plan else (),
            meals=tuple(meals_by_plan.get(meal_plan.id, ())) if meal_plan else (),
            supplements=tuple(supplements_by_user.get(client_id, ())),
            workout_completions=tuple(workouts_by_user.get(client_id, ())),
            meal_completions=tuple(meal_completions_by_user.get(client_id, ())),
            supplement_completions=tuple(supplement_completions_by_user.get(client_id, ())),
        ))
    return activities
