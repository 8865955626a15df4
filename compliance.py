"""
Client compliance calculations.

Everything here works on already-fetched, immutable records and never touches
the database or the request. Callers (see queries.py and app.py) fetch the
rows, convert them to the records below and pass them in.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# sentinel values used in the per-day week arrays
NOT_APPLICABLE = -1
NOT_ASSIGNED = -2


# =========================
# Records
# =========================
@dataclass(frozen=True)
class PlanRecord:
    id: int
    user_id: int
    is_active: bool
    # local calendar dates; activated_on is None on legacy rows
    activated_on: Optional[date] = None
    deactivated_on: Optional[date] = None
    created_on: Optional[date] = None
    title: str = ""
    builder_mode: str = "week"
    workout_days_per_week: int = 7

    @property
    def is_flexible(self) -> bool:
        return self.builder_mode == "day"


@dataclass(frozen=True)
class WorkoutDayRecord:
    plan_id: int
    day_of_week: str
    is_rest: bool
    id: Optional[int] = None
    workout_name: Optional[str] = None


class MealGroup(NamedTuple):
    """Option rows (A/B) of one meal share a name and a time."""
    name: str
    time: str


def normalize_meal_time(value) -> str:
    value = (value or "").strip()
    # "08:00:00" and "08:00" are the same slot
    if len(value) >= 5 and value[2] == ":":
        return value[:5]
    return value


@dataclass(frozen=True)
class MealRecord:
    id: int
    plan_id: int
    name: str
    time: str = ""
    sequence_order: int = 0

    @property
    def group(self) -> MealGroup:
        return MealGroup(self.name.strip(), normalize_meal_time(self.time))


@dataclass(frozen=True)
class SupplementRecord:
    id: int
    user_id: int
    created_on: Optional[date] = None
    name: str = ""


@dataclass(frozen=True)
class WorkoutCompletionRecord:
    user_id: int
    completed_on: date
    completed_groups: tuple = ()

    @property
    def is_rest_day(self) -> bool:
        return len(self.completed_groups) == 0


@dataclass(frozen=True)
class MealCompletionRecord:
    user_id: int
    meal_id: int
    completed_on: date


@dataclass(frozen=True)
class SupplementCompletionRecord:
    user_id: int
    supplement_id: int
    completed_on: date


@dataclass(frozen=True)
class WeightLogRecord:
    weight: float
    logged_at: datetime


@dataclass(frozen=True)
class ClientActivity:
    """Everything needed to score one client over a window.

    ``workout_days`` and ``meals`` belong to the client's active plans; the
    completion tuples may hold rows outside the window, they are filtered here.
    """
    client_id: int
    workout_days: tuple = ()
    meals: tuple = ()
    supplements: tuple = ()
    workout_completions: tuple = ()
    meal_completions: tuple = ()
    supplement_completions: tuple = ()


# =========================
# Arithmetic
# =========================
def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(completed: int, expected: int) -> Optional[int]:
    """Rounded 0-100 percentage, or None when nothing was expected."""
    if expected <= 0:
        return None
    return round_half_up(Decimal(completed) * 100 / Decimal(expected))


def overall_average(percentages) -> int:
    included = [p for p in percentages if p is not None]
    if not included:
        return 0
    return round_half_up(Decimal(sum(included)) / Decimal(len(included)))


def trailing_window(today: date, days: int = 7):
    """Inclusive (start, end) dates of the ``days`` days ending today."""
    return today - timedelta(days=days - 1), today


def week_days(week_start: date):
    return [week_start + timedelta(days=i) for i in range(7)]


# =========================
# Per-client scoring
# =========================
@dataclass(frozen=True)
class UnitCounts:
    expected: int = 0
    completed: int = 0

    @property
    def percentage(self) -> Optional[int]:
        return percentage(self.completed, self.expected)


@dataclass(frozen=True)
class ClientCompliance:
    client_id: int
    workouts: UnitCounts = field(default_factory=UnitCounts)
    meals: UnitCounts = field(default_factory=UnitCounts)
    supplements: UnitCounts = field(default_factory=UnitCounts)
    rest_days: UnitCounts = field(default_factory=UnitCounts)

    @property
    def expected(self) -> int:
        return self.workouts.expected + self.meals.expected + self.supplements.expected

    @property
    def completed(self) -> int:
        return self.workouts.completed + self.meals.completed + self.supplements.completed

    @property
    def overall(self) -> Optional[int]:
        return percentage(self.completed, self.expected)

    def to_dict(self):
        return {
            "clientId": self.client_id,
            "workoutCompliance": self.workouts.percentage,
            "mealCompliance": self.meals.percentage,
            "supplementCompliance": self.supplements.percentage,
            "restDayCompliance": self.rest_days.percentage,
            "overallCompliance": self.overall,
        }


def group_meals(meals):
    groups = defaultdict(list)
    for meal in sorted(meals, key=lambda m: (m.sequence_order, m.id)):
        groups[meal.group].append(meal)
    return dict(groups)


def _in_window(day: date, start: date, end: date) -> bool:
    return start <= day <= end


def compute_client_compliance(activity: ClientActivity, start: date, end: date) -> ClientCompliance:
    window_days = (end - start).days + 1

    workout_days = [d for d in activity.workout_days if not d.is_rest]
    rest_days = [d for d in activity.workout_days if d.is_rest]
    workout_completions = [c for c in activity.workout_completions if _in_window(c.completed_on, start, end)]
    trained = sum(1 for c in workout_completions if not c.is_rest_day)
    rested = sum(1 for c in workout_completions if c.is_rest_day)

    groups = group_meals(activity.meals)
    group_by_meal_id = {meal.id: key for key, options in groups.items() for meal in options}
    completed_meal_groups = {
        (group_by_meal_id[c.meal_id], c.completed_on)
        for c in activity.meal_completions
        if c.meal_id in group_by_meal_id and _in_window(c.completed_on, start, end)
    }

    supplement_ids = {s.id for s in activity.supplements}
    supplement_completions = [
        c for c in activity.supplement_completions
        if c.supplement_id in supplement_ids and _in_window(c.completed_on, start, end)
    ]

    def capped(expected, completed):
        return UnitCounts(expected=expected, completed=min(completed, expected))

    return ClientCompliance(
        client_id=activity.client_id,
        workouts=capped(len(workout_days), trained),
        rest_days=capped(len(rest_days), rested),
        meals=capped(len(groups) * window_days, len(completed_meal_groups)),
        supplements=capped(len(supplement_ids) * window_days, len(supplement_completions)),
    )


@dataclass(frozen=True)
class ComplianceReport:
    clients: tuple
    overall_average: int

    @property
    def per_client_percentage(self):
        return {c.client_id: c.overall for c in self.clients}

    def ranked(self):
        """Highest overall first; clients with nothing expected go last."""
        return sorted(
            self.clients,
            key=lambda c: (c.overall is None, -(c.overall or 0), c.client_id),
        )


def aggregate_compliance(activities, start: date, end: date) -> ComplianceReport:
    clients = tuple(compute_client_compliance(a, start, end) for a in activities)
    return ComplianceReport(
        clients=clients,
        overall_average=overall_average(c.overall for c in clients),
    )


def compliance_change(current: ComplianceReport, previous: ComplianceReport) -> int:
    return current.overall_average - previous.overall_average


# =========================
# Which plan governs a day
# =========================
def plan_governs(plan: PlanRecord, day: date) -> bool:
    # a plan that was never activated and is not active is a draft
    if not plan.is_active and plan.deactivated_on is None:
        return False
    # plans take effect the day after activation; legacy rows have no stamp
    if plan.activated_on is not None and plan.activated_on >= day:
        return False
    if plan.deactivated_on is not None and plan.deactivated_on < day:
        return False
    return True


def governing_plan(plans, day: date) -> Optional[PlanRecord]:
    candidates = [p for p in plans if plan_governs(p, day)]
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda p: (p.activated_on is not None, p.activated_on or date.min, p.id),
    )


def _activated_on(plans, day: date) -> bool:
    return any(p.activated_on == day for p in plans)


# =========================
# Week views
# =========================
def workout_week_compliance(plans, completions, week_start: date):
    """One value per day: 1 done, 0 missed, NOT_APPLICABLE on an activation day.

    An activation day is NOT_APPLICABLE only when no older plan still governs it;
    otherwise the outgoing plan scores that day.
    """
    done = {c.completed_on for c in completions}
    values = []
    for day in week_days(week_start):
        plan = governing_plan(plans, day)
        if plan is None:
            values.append(NOT_APPLICABLE if _activated_on(plans, day) else 0)
            continue
        values.append(1 if day in done else 0)
    return values


def meal_week_compliance(plans, meals_by_plan, completions, week_start: date, signup_on: Optional[date] = None):
    """Fraction of meal groups completed per day of the week."""
    completed_by_day = defaultdict(set)
    for c in completions:
        completed_by_day[c.completed_on].add(c.meal_id)

    values = []
    for day in week_days(week_start):
        if signup_on is not None and day < signup_on:
            values.append(NOT_APPLICABLE)
            continue

        plan = governing_plan(plans, day)
        if plan is None:
            values.append(NOT_APPLICABLE if _activated_on(plans, day) else 0)
            continue
        if plan.created_on == day:
            values.append(NOT_APPLICABLE)
            continue

        groups = group_meals(meals_by_plan.get(plan.id, ()))
        if not groups:
            values.append(0)
            continue
        done_ids = completed_by_day.get(day, set())
        done = sum(1 for options in groups.values() if any(m.id in done_ids for m in options))
        values.append(done / len(groups))
    return values


def supplement_week_compliance(supplements, completions, week_start: date, today: date):
    """Fraction of assigned supplements taken per day of the week."""
    completed_by_day = defaultdict(set)
    for c in completions:
        completed_by_day[c.completed_on].add(c.supplement_id)

    supplement_ids = {s.id for s in supplements}
    created_days = {s.created_on for s in supplements if s.created_on is not None}

    values = []
    for day in week_days(week_start):
        if not supplement_ids:
            # past days are settled; today and later may still get supplements
            values.append(NOT_ASSIGNED if day < today else 0)
            continue
        if day in created_days:
            values.append(NOT_APPLICABLE)
            continue
        taken = len(supplement_ids & completed_by_day.get(day, set()))
        values.append(taken / len(supplement_ids))
    return values


def exercise_group_id(sequence_order, group_type) -> str:
    return f"{sequence_order}-{group_type}"


def flexible_week_summary(workout_days_per_week: int, templates, completions):
    """Rest-day budget and template completion for a flexible-schedule plan.

    ``templates`` maps a template id to the set of exercise-group ids it
    contains. A template counts as done when a completion holds exactly its
    groups.
    """
    rest_days_allowed = max(7 - workout_days_per_week, 0)
    rest_days_used = sum(1 for c in completions if c.is_rest_day)

    completed_ids = set()
    for c in completions:
        if c.is_rest_day:
            continue
        groups = frozenset(c.completed_groups)
        for template_id, template_groups in templates.items():
            if frozenset(template_groups) == groups:
                completed_ids.add(template_id)

    return {
        "restDaysAllowed": rest_days_allowed,
        "restDaysUsed": rest_days_used,
        "completedTemplateIds": sorted(completed_ids),
        "availableTemplateIds": sorted(t for t in templates if t not in completed_ids),
    }


# =========================
# Dashboard extras
# =========================
def weight_change(logs, starting_weight=None, current_weight=None) -> float:
    """Last logged weight minus the first; falls back to the profile weights."""
    if logs:
        ordered = sorted(logs, key=lambda log: log.logged_at)
        return round(ordered[-1].weight - ordered[0].weight, 1)
    if starting_weight and current_weight:
        return round(current_weight - starting_weight, 1)
    return 0.0


ACTIVITY_LABELS = {
    "workout": "Completed workout",
    "meal": "Logged meals",
    "supplement": "Completed supplements",
}


def recent_activity(client_names, day: date, workout_completions=(), meal_completions=(), supplement_completions=()):
    counts = defaultdict(int)
    for kind, rows in (
        ("workout", workout_completions),
        ("meal", meal_completions),
        ("supplement", supplement_completions),
    ):
        for row in rows:
            if row.completed_on == day:
                counts[(row.user_id, kind)] += 1

    items = []
    for (user_id, kind), count in counts.items():
        action = ACTIVITY_LABELS[kind]
        if count > 1:
            action = f"{action} ({count})"
        items.append({
            "clientId": user_id,
            "clientName": client_names.get(user_id, "Unknown"),
            "kind": kind,
            "action": action,
            "count": count,
        })
    items.sort(key=lambda item: (-item["count"], item["clientName"], item["kind"]))
    return items
