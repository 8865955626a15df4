from flask import Flask, request, session, Response, abort, g, jsonify
from flask_migrate import Migrate
import click
from datetime import date, timedelta
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from functools import wraps
import csv
import hmac
import io
import os
import secrets

from compliance import (
    DAY_NAMES,
    aggregate_compliance,
    compliance_change,
    compute_client_compliance,
    exercise_group_id,
    flexible_week_summary,
    governing_plan,
    meal_week_compliance,
    recent_activity,
    supplement_week_compliance,
    trailing_window,
    weight_change,
    workout_week_compliance,
)
from identity import current_identity, identity_required
from models import (
    db,
    utc_now,
    User,
    Meal,
    MealCompletion,
    MealPlan,
    Supplement,
    SupplementCompletion,
    WeightLog,
    WorkoutCompletion,
    WorkoutPlan,
)
from queries import (
    fetch_clients,
    fetch_meal_completions,
    fetch_meals,
    fetch_supplement_completions,
    fetch_supplements,
    fetch_user_plans,
    fetch_weight_logs,
    fetch_workout_completions,
    fetch_workout_days,
    fetch_workout_exercises,
    load_client_activities,
    local_today,
    run_concurrently,
    to_local_date,
)
from ttl_cache import TTLCache

app = Flask(__name__)
APP_ENV = os.environ.get("COACH_APP_ENV", os.environ.get("FLASK_ENV", "development")).lower()
IS_PROD = APP_ENV == "production"

secret_key = os.environ.get("COACH_APP_SECRET_KEY") or os.environ.get("SECRET_KEY")
if IS_PROD and not secret_key:
    raise RuntimeError("Missing COACH_APP_SECRET_KEY/SECRET_KEY in production.")
app.config["SECRET_KEY"] = secret_key or os.urandom(32)

database_uri = (
    os.environ.get("COACH_DATABASE_URI")
    or os.environ.get("DATABASE_URL")
    or "sqlite:///coach.db"
)
# Hosted Postgres URLs can use postgres://, but SQLAlchemy expects postgresql://.
if database_uri.startswith("postgres://"):
    database_uri = database_uri.replace("postgres://", "postgresql://", 1)
app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
app.config["CSRF_ENABLED"] = True

# Access tokens come from the identity provider; we only verify them.
jwt_secret = os.environ.get("COACH_AUTH_JWT_SECRET")
if IS_PROD and not jwt_secret:
    raise RuntimeError("Missing COACH_AUTH_JWT_SECRET in production.")
app.config["AUTH_JWT_SECRET"] = jwt_secret
app.config["AUTH_JWT_AUDIENCE"] = os.environ.get("COACH_AUTH_JWT_AUDIENCE") or None

app.config["APP_TIMEZONE"] = os.environ.get("APP_TIMEZONE", "America/Denver")
app.config["COMPLIANCE_WINDOW_DAYS"] = int(os.environ.get("COMPLIANCE_WINDOW_DAYS", "7"))
app.config["COMPLIANCE_CACHE_SECONDS"] = float(os.environ.get("COMPLIANCE_CACHE_SECONDS", "30"))
app.config["FETCH_MAX_WORKERS"] = int(os.environ.get("FETCH_MAX_WORKERS", "6"))

# Session cookie hardening (production-safe, dev-friendly)
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SAMESITE"] = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
app.config["SESSION_COOKIE_NAME"] = os.environ.get("SESSION_COOKIE_NAME", "coach_session")
app.config["SESSION_COOKIE_SECURE"] = (
    os.environ.get("SESSION_COOKIE_SECURE", "1" if IS_PROD else "0").lower() in ("1", "true", "yes", "on")
)
app.config["FORCE_HTTPS"] = (
    os.environ.get("FORCE_HTTPS", "1" if IS_PROD else "0").lower() in ("1", "true", "yes", "on")
)
app.config["ENABLE_SECURITY_HEADERS"] = True

if os.environ.get("TRUST_PROXY", "1").lower() in ("1", "true", "yes", "on"):
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

db.init_app(app)
migrate = Migrate(app, db)
app.extensions["compliance_cache"] = TTLCache(app.config["COMPLIANCE_CACHE_SECONDS"])


def compliance_cache() -> TTLCache:
    return app.extensions["compliance_cache"]


def get_csrf_token():
    token = session.get("_csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["_csrf_token"] = token
    return token


def truthy(v: str):
    return (v or "").lower() in ("1", "true", "yes", "on")


def log_security_event(action: str, details: str = ""):
    identity = current_identity()
    user = identity.user_id if identity else None
    role = identity.role if identity else None
    app.logger.info("[security] action=%s user_id=%s role=%s ip=%s details=%s", action, user, role, request.remote_addr, details)


@app.before_request
def csrf_protect():
    if not app.config.get("CSRF_ENABLED", True):
        return
    if request.method != "POST":
        return

    expected = session.get("_csrf_token")
    provided = request.form.get("csrf_token") or request.headers.get("X-CSRF-Token")
    if not expected or not provided or not hmac.compare_digest(expected, provided):
        abort(400, description="Invalid CSRF token.")


@app.before_request
def enforce_https():
    if not app.config.get("FORCE_HTTPS"):
        return
    if app.testing:
        return
    if request.path.startswith("/ping"):
        return
    is_https = request.is_secure or request.headers.get("X-Forwarded-Proto", "").lower() == "https"
    if not is_https:
        return Response(status=301, headers={"Location": request.url.replace("http://", "https://", 1)})


@app.after_request
def apply_security_headers(resp):
    if not app.config.get("ENABLE_SECURITY_HEADERS", True):
        return resp
    resp.headers["X-Frame-Options"] = "DENY"
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
    if app.config.get("SESSION_COOKIE_SECURE"):
        resp.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
    # per-user data must never sit in a shared cache
    if request.path.startswith("/api/") or request.path.startswith("/export/"):
        resp.headers["Cache-Control"] = "no-store"
    return resp


@app.errorhandler(HTTPException)
def json_http_error(exc):
    return jsonify({"error": exc.description}), exc.code


# =========================
# Helpers
# =========================
def coach_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not g.identity.is_coach:
            return forbidden()
        return view(*args, **kwargs)
    return wrapped


def forbidden(message="Forbidden"):
    return jsonify({"error": message}), 403


def bad_request(message):
    return jsonify({"error": message}), 400


def parse_iso_date(s):
    s = (s or "").strip() if isinstance(s, str) else ""
    # expects YYYY-MM-DD, a trailing time part is ignored
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def to_float(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    value = (value or "").strip().replace(",", ".")
    if value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def to_int(value, default=None):
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    value = (value or "").strip() if isinstance(value, str) else ""
    if value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def to_bool(value, default=True):
    # missing or null keeps the default
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return truthy(str(value).strip())


def request_payload():
    payload = request.get_json(silent=True)
    if payload is None:
        return request.form
    if not isinstance(payload, dict):
        abort(400, description="Expected a JSON object.")
    return payload


def get_or_404(model, object_id):
    obj = db.session.get(model, object_id)
    if obj is None:
        abort(404)
    return obj


def check_client_access(user: User):
    """Coaches only reach their own clients (404 otherwise), clients only themselves."""
    identity = g.identity
    if identity.is_coach:
        if user.role != "client" or user.coach_id != identity.user_id:
            abort(404)
    elif user.id != identity.user_id:
        abort(403)


def client_from_args():
    """Client named by ?clientId=, defaulting to the caller for client accounts."""
    client_id = to_int(request.args.get("clientId"))
    if client_id is None:
        if g.identity.is_coach:
            return None
        client_id = g.identity.user_id
    return get_or_404(User, client_id)


def compliance_window(today: date):
    return trailing_window(today, app.config["COMPLIANCE_WINDOW_DAYS"])


def csv_download_response(filename: str, headers: list[str], rows: list[list]):
    output = io.StringIO()
    output.write("﻿")  # UTF-8 BOM for spreadsheet compatibility.
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return Response(
        output.getvalue(),
        mimetype="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


# =========================
# Compliance computations
# =========================
def compute_roster_compliance(coach_id: int, today: date):
    """Per-client compliance for a coach's active clients over the trailing window."""
    clients = fetch_clients(coach_id)
    names = {c.id: c.name for c in clients}
    start, end = compliance_window(today)
    activities = load_client_activities(app, [c.id for c in clients if c.is_active], start, end)
    report = aggregate_compliance(activities, start, end)

    rows = []
    for result in report.ranked():
        row = result.to_dict()
        row["name"] = names.get(result.client_id, "")
        rows.append(row)
    return {
        "complianceClients": rows,
        "overallAverage": report.overall_average,
        "windowStart": start.isoformat(),
        "windowEnd": end.isoformat(),
    }


def roster_compliance(coach_id: int):
    return compliance_cache().get_or_load(
        ("roster", coach_id),
        lambda: compute_roster_compliance(coach_id, local_today()),
    )


def coach_dashboard(coach_id: int, today: date):
    clients = fetch_clients(coach_id)
    active_ids = [c.id for c in clients if c.is_active]
    names = {c.id: c.name for c in clients}

    start, end = compliance_window(today)
    days = (end - start).days + 1
    prev_start, prev_end = start - timedelta(days=days), start - timedelta(days=1)

    # one fetch covers both windows; each report filters to its own dates
    activities = load_client_activities(app, active_ids, prev_start, end)
    current = aggregate_compliance(activities, start, end)
    previous = aggregate_compliance(activities, prev_start, prev_end)

    month_ago = today - timedelta(days=30)
    recent_clients = [
        {"id": c.id, "name": c.name, "createdOn": c.created_on.isoformat()}
        for c in sorted(clients, key=lambda c: c.created_on or date.min, reverse=True)
        if c.created_on and c.created_on >= month_ago
    ]

    return {
        "role": "coach",
        "totalClients": len(clients),
        "activeClients": len(active_ids),
        "inactiveClients": len(clients) - len(active_ids),
        "compliance": current.overall_average,
        "percentChange": compliance_change(current, previous),
        "recentClients": recent_clients,
        "recentActivity": recent_activity(
            names,
            today,
            [c for a in activities for c in a.workout_completions],
            [c for a in activities for c in a.meal_completions],
            [c for a in activities for c in a.supplement_completions],
        ),
    }


def client_dashboard(user: User, today: date):
    start, end = compliance_window(today)
    user_id = user.id
    results = run_concurrently(app, {
        "activities": lambda: load_client_activities(app, [user_id], start, end),
        "weight_logs": lambda: fetch_weight_logs(user_id),
    })
    activities = results["activities"]
    metrics = compute_client_compliance(activities[0], start, end).to_dict() if activities else {}

    data = {
        "role": "client",
        "workoutCompliance": metrics.get("workoutCompliance"),
        "mealCompliance": metrics.get("mealCompliance"),
        "supplementCompliance": metrics.get("supplementCompliance"),
        "restDayCompliance": metrics.get("restDayCompliance"),
        "overallCompliance": metrics.get("overallCompliance"),
        "weightChange": weight_change(results["weight_logs"], user.starting_weight, user.current_weight),
    }
    data.update(workout_for_day(user.id, today))
    return data


def workout_for_day(user_id: int, day: date):
    plan = governing_plan(fetch_user_plans(WorkoutPlan, user_id), day)
    if plan is None:
        return {
            "todaysWorkout": {"id": None, "name": "No Active Plan", "groups": [], "isRest": False},
            "todaysCompletedGroups": [],
        }

    day_name = DAY_NAMES[day.weekday()]
    plan_days = [d for d in fetch_workout_days([plan.id]) if d.day_of_week == day_name]
    if not plan_days or plan_days[0].is_rest:
        return {
            "todaysWorkout": {"id": None, "name": "Rest Day", "groups": [], "isRest": True},
            "todaysCompletedGroups": [],
        }

    workout_day = plan_days[0]
    completion = WorkoutCompletion.query.filter_by(user_id=user_id, completed_at=day).first()
    return {
        "todaysWorkout": {
            "id": workout_day.id,
            "name": workout_day.workout_name or "Today's Workout",
            "planTitle": plan.title,
            "groups": exercise_groups(fetch_workout_exercises([workout_day.id])),
            "isRest": False,
        },
        "todaysCompletedGroups": list(completion.completed_groups or []) if completion else [],
    }


def exercise_groups(exercises):
    groups = {}
    for exercise in exercises:
        group_id = exercise_group_id(exercise.sequence_order, exercise.group_type)
        group = groups.setdefault(group_id, {"id": group_id, "type": exercise.group_type, "exercises": []})
        group["exercises"].append({
            "id": exercise.id,
            "name": exercise.name,
            "description": exercise.description,
            "videoUrl": exercise.video_url,
            "sets": list(exercise.sets),
        })
    return list(groups.values())


# =========================
# CLI
# =========================
@app.cli.command("seed-coach")
@click.option("--auth-id", required=True, help="Subject id issued by the identity provider.")
@click.option("--email", required=True)
@click.option("--name", required=True)
def seed_coach_command(auth_id, email, name):
    """Create a coach account for an existing identity-provider user."""
    if User.query.filter_by(auth_id=auth_id).first():
        click.echo(f"User with auth id {auth_id} already exists")
        return
    db.session.add(User(auth_id=auth_id, email=email, name=name, role="coach"))
    db.session.commit()
    click.echo(f"Created coach: {name} <{email}>")


# =========================
# Compliance routes
# =========================
@app.route("/api/compliance/clients")
@identity_required
@coach_required
def compliance_clients():
    return jsonify(roster_compliance(g.identity.user_id))


@app.route("/api/dashboard")
@identity_required
def dashboard():
    today = local_today()
    if g.identity.is_coach:
        return jsonify(coach_dashboard(g.identity.user_id, today))
    user = get_or_404(User, g.identity.user_id)
    return jsonify(client_dashboard(user, today))


def week_request():
    """Shared argument handling for the per-day week views."""
    week_start = parse_iso_date(request.args.get("weekStart"))
    client = client_from_args()
    if week_start is None or client is None:
        return None, None, bad_request("Missing required parameters")
    check_client_access(client)
    return client, week_start, None


@app.route("/api/compliance/workouts/week")
@identity_required
def workout_compliance_week():
    client, week_start, error = week_request()
    if error:
        return error
    client_id = client.id
    week_end = week_start + timedelta(days=6)
    rows = run_concurrently(app, {
        "plans": lambda: fetch_user_plans(WorkoutPlan, client_id),
        "completions": lambda: fetch_workout_completions([client_id], week_start, week_end),
    })
    values = workout_week_compliance(rows["plans"], rows["completions"], week_start)
    return jsonify({"complianceData": values})


@app.route("/api/compliance/meals/week")
@identity_required
def meal_compliance_week():
    client, week_start, error = week_request()
    if error:
        return error
    client_id = client.id
    week_end = week_start + timedelta(days=6)
    rows = run_concurrently(app, {
        "plans": lambda: fetch_user_plans(MealPlan, client_id),
        "completions": lambda: fetch_meal_completions([client_id], week_start, week_end),
    })
    meals_by_plan = {}
    for meal in fetch_meals([p.id for p in rows["plans"]]):
        meals_by_plan.setdefault(meal.plan_id, []).append(meal)
    values = meal_week_compliance(
        rows["plans"],
        meals_by_plan,
        rows["completions"],
        week_start,
        signup_on=to_local_date(client.created_at),
    )
    return jsonify({"complianceData": values})


@app.route("/api/compliance/supplements/week")
@identity_required
def supplement_compliance_week():
    client, week_start, error = week_request()
    if error:
        return error
    client_id = client.id
    week_end = week_start + timedelta(days=6)
    rows = run_concurrently(app, {
        "supplements": lambda: fetch_supplements([client_id]),
        "completions": lambda: fetch_supplement_completions([client_id], week_start, week_end),
    })
    values = supplement_week_compliance(rows["supplements"], rows["completions"], week_start, local_today())
    return jsonify({"complianceData": values})


@app.route("/export/compliance.csv")
@identity_required
@coach_required
def export_compliance_csv():
    data = roster_compliance(g.identity.user_id)
    rows = data["complianceClients"]
    log_security_event("export_compliance_csv", f"rows={len(rows)}")

    def cell(value):
        return "" if value is None else value

    return csv_download_response(
        "compliance_export.csv",
        ["client_id", "name", "workout", "meal", "supplement", "rest_day", "overall"],
        [
            [
                r["clientId"],
                r["name"],
                cell(r["workoutCompliance"]),
                cell(r["mealCompliance"]),
                cell(r["supplementCompliance"]),
                cell(r["restDayCompliance"]),
                cell(r["overallCompliance"]),
            ]
            for r in rows
        ],
    )


# =========================
# Workout views
# =========================
@app.route("/api/workouts/day")
@identity_required
def workout_day():
    day = parse_iso_date(request.args.get("date"))
    if day is None:
        return bad_request("Date parameter is required")
    client = client_from_args()
    if client is None:
        return bad_request("Missing required parameters")
    check_client_access(client)
    return jsonify(workout_for_day(client.id, day))


@app.route("/api/workouts/week")
@identity_required
def workout_week():
    week_start = parse_iso_date(request.args.get("weekStart"))
    if week_start is None:
        return bad_request("Week start parameter is required")
    client = client_from_args()
    if client is None:
        return bad_request("Missing required parameters")
    check_client_access(client)

    week_end = week_start + timedelta(days=6)
    plans = fetch_user_plans(WorkoutPlan, client.id)
    plan = governing_plan(plans, min(local_today(), week_end))
    completions = fetch_workout_completions([client.id], week_start, week_end)
    completions_by_date = {c.completed_on.isoformat(): list(c.completed_groups) for c in completions}

    if plan is None:
        return jsonify({
            "workouts": {},
            "completions": completions_by_date,
            "isFlexibleSchedule": False,
            "error": "No active workout plan found",
        })

    plan_days = fetch_workout_days([plan.id])
    exercises = fetch_workout_exercises([d.id for d in plan_days if not d.is_rest])
    exercises_by_day = {}
    for exercise in exercises:
        exercises_by_day.setdefault(exercise.workout_day_id, []).append(exercise)

    if plan.is_flexible:
        templates = []
        template_groups = {}
        for d in plan_days:
            if d.is_rest:
                continue
            template_id = f"{plan.id}-{d.day_of_week}"
            groups = exercise_groups(exercises_by_day.get(d.id, []))
            template_groups[template_id] = {group["id"] for group in groups}
            templates.append({
                "id": template_id,
                "name": plan.title,
                "dayLabel": d.workout_name or f"{d.day_of_week} Workout",
                "groups": groups,
            })
        summary = flexible_week_summary(plan.workout_days_per_week, template_groups, completions)
        done = set(summary["completedTemplateIds"])
        for template in templates:
            template["isCompleted"] = template["id"] in done
        return jsonify({
            "workouts": {},
            "completions": completions_by_date,
            "isFlexibleSchedule": True,
            "workoutTemplates": templates,
            "availableTemplates": [t for t in templates if not t["isCompleted"]],
            "restDaysAllowed": summary["restDaysAllowed"],
            "restDaysUsed": summary["restDaysUsed"],
            "workoutDaysPerWeek": plan.workout_days_per_week,
        })

    days_by_name = {d.day_of_week: d for d in plan_days}
    workouts = {}
    for i in range(7):
        day = week_start + timedelta(days=i)
        day_name = DAY_NAMES[day.weekday()]
        plan_day = days_by_name.get(day_name)
        if plan_day is None or plan_day.is_rest:
            workouts[day.isoformat()] = {"id": f"{plan.id}-{day_name}", "name": "Rest Day", "groups": [], "isRest": True}
        else:
            workouts[day.isoformat()] = {
                "id": f"{plan.id}-{day_name}",
                "name": plan_day.workout_name or f"{day_name} Workout",
                "groups": exercise_groups(exercises_by_day.get(plan_day.id, [])),
                "isRest": False,
            }
    return jsonify({
        "workouts": workouts,
        "completions": completions_by_date,
        "isFlexibleSchedule": False,
        "workoutDaysPerWeek": plan.workout_days_per_week,
    })


# =========================
# Client submissions
# =========================
def submitting_client():
    """The caller's own client row, or an error response."""
    if g.identity.is_coach:
        return None, forbidden("Only clients can submit completions.")
    user = get_or_404(User, g.identity.user_id)
    if not g.identity.is_active:
        return None, forbidden("Account is deactivated. Please contact your coach.")
    return user, None


def submission_date(payload):
    raw = payload.get("date")
    day = local_today() if raw in (None, "") else parse_iso_date(raw)
    if day is None or day > local_today():
        return None
    return day


def invalidate_coach_cache(coach_id):
    if coach_id is not None:
        compliance_cache().invalidate(("roster", coach_id))


@app.route("/api/workout-completions", methods=["POST"])
@identity_required
def submit_workout_completion():
    user, error = submitting_client()
    if error:
        return error
    payload = request_payload()
    day = submission_date(payload)
    if day is None:
        return bad_request("Invalid date.")
    groups = payload.get("completedGroups") or []
    if not isinstance(groups, list) or not all(isinstance(x, str) for x in groups):
        return bad_request("completedGroups must be a list of group ids.")

    completion = WorkoutCompletion.query.filter_by(user_id=user.id, completed_at=day).first()
    if completion is None:
        completion = WorkoutCompletion(user_id=user.id, completed_at=day)
        db.session.add(completion)
    completion.completed_groups = sorted(set(groups))
    db.session.commit()
    invalidate_coach_cache(user.coach_id)

    return jsonify({"date": day.isoformat(), "completedGroups": completion.completed_groups, "isRestDay": not groups})


@app.route("/api/meal-completions", methods=["POST"])
@identity_required
def submit_meal_completion():
    user, error = submitting_client()
    if error:
        return error
    payload = request_payload()
    day = submission_date(payload)
    if day is None:
        return bad_request("Invalid date.")
    meal_id = to_int(payload.get("mealId"))
    if meal_id is None:
        return bad_request("mealId is required.")

    meal = get_or_404(Meal, meal_id)
    plan = get_or_404(MealPlan, meal.meal_plan_id)
    if plan.user_id != user.id:
        abort(404)

    completed = to_bool(payload.get("completed"))
    existing = MealCompletion.query.filter_by(user_id=user.id, meal_id=meal.id, completed_at=day).first()
    if completed and existing is None:
        db.session.add(MealCompletion(user_id=user.id, meal_id=meal.id, completed_at=day))
    elif not completed and existing is not None:
        db.session.delete(existing)
    db.session.commit()
    invalidate_coach_cache(user.coach_id)

    return jsonify({"mealId": meal.id, "date": day.isoformat(), "completed": completed})


@app.route("/api/supplement-completions", methods=["POST"])
@identity_required
def submit_supplement_completion():
    user, error = submitting_client()
    if error:
        return error
    payload = request_payload()
    day = submission_date(payload)
    if day is None:
        return bad_request("Invalid date.")
    supplement_id = to_int(payload.get("supplementId"))
    if supplement_id is None:
        return bad_request("supplementId is required.")

    supplement = get_or_404(Supplement, supplement_id)
    if supplement.user_id != user.id:
        abort(404)

    completed = to_bool(payload.get("completed"))
    existing = SupplementCompletion.query.filter_by(
        user_id=user.id, supplement_id=supplement.id, completed_at=day
    ).first()
    if completed and existing is None:
        db.session.add(SupplementCompletion(user_id=user.id, supplement_id=supplement.id, completed_at=day))
    elif not completed and existing is not None:
        db.session.delete(existing)
    db.session.commit()
    invalidate_coach_cache(user.coach_id)

    return jsonify({"supplementId": supplement.id, "date": day.isoformat(), "completed": completed})


@app.route("/api/weight-logs", methods=["POST"])
@identity_required
def add_weight_log():
    user, error = submitting_client()
    if error:
        return error
    weight = to_float(request_payload().get("weight"))
    if weight is None or weight <= 0:
        return bad_request("Enter a valid weight.")

    db.session.add(WeightLog(user_id=user.id, weight=weight))
    if user.starting_weight is None:
        user.starting_weight = weight
    user.current_weight = weight
    db.session.commit()

    return jsonify({"weight": weight, "weightChange": weight_change(fetch_weight_logs(user.id))}), 201


# =========================
# Coach: plans and clients
# =========================
def activate_plan(model, client_id, plan_id):
    client = get_or_404(User, client_id)
    check_client_access(client)
    plan = get_or_404(model, plan_id)
    if plan.user_id != client.id or plan.is_template:
        abort(404)

    now = utc_now()
    # at most one active plan per kind; the previous one keeps its history
    for other in model.query.filter_by(user_id=client.id, is_active=True).all():
        if other.id != plan.id:
            other.is_active = False
            other.deactivated_at = now
    if not plan.is_active:
        plan.is_active = True
        plan.activated_at = now
        plan.deactivated_at = None
    db.session.commit()

    invalidate_coach_cache(client.coach_id)
    log_security_event(f"activate_{model.__tablename__}", f"client_id={client.id} plan_id={plan.id}")
    return jsonify({
        "planId": plan.id,
        "isActive": True,
        "activatedAt": plan.activated_at.isoformat() if plan.activated_at else None,
    })


@app.route("/api/clients/<int:client_id>/workout-plans/<int:plan_id>/activate", methods=["POST"])
@identity_required
@coach_required
def activate_workout_plan(client_id, plan_id):
    return activate_plan(WorkoutPlan, client_id, plan_id)


@app.route("/api/clients/<int:client_id>/meal-plans/<int:plan_id>/activate", methods=["POST"])
@identity_required
@coach_required
def activate_meal_plan(client_id, plan_id):
    return activate_plan(MealPlan, client_id, plan_id)


@app.route("/api/clients/<int:client_id>/deactivate", methods=["POST"])
@identity_required
@coach_required
def deactivate_client(client_id):
    client = get_or_404(User, client_id)
    check_client_access(client)
    if client.status == "inactive":
        return jsonify({"clientId": client.id, "status": client.status, "msg": "Client is already deactivated."})

    client.status = "inactive"
    client.inactive_since = utc_now()
    db.session.commit()
    invalidate_coach_cache(client.coach_id)
    log_security_event("deactivate_client", f"client_id={client.id}")
    return jsonify({"clientId": client.id, "status": client.status, "msg": "Client deactivated."})


@app.route("/api/clients/<int:client_id>/reactivate", methods=["POST"])
@identity_required
@coach_required
def reactivate_client(client_id):
    client = get_or_404(User, client_id)
    check_client_access(client)
    if client.status == "active":
        return jsonify({"clientId": client.id, "status": client.status, "msg": "Client is already active."})

    client.status = "active"
    client.inactive_since = None
    db.session.commit()
    invalidate_coach_cache(client.coach_id)
    log_security_event("reactivate_client", f"client_id={client.id}")
    return jsonify({"clientId": client.id, "status": client.status, "msg": "Client reactivated."})


# =========================
# Misc
# =========================
@app.route("/api/csrf-token")
def csrf_token():
    return jsonify({"csrfToken": get_csrf_token()})


@app.route("/ping")
def ping():
    return "PING OK"


# =========================
# Start
# =========================
if __name__ == "__main__":
    with app.app_context():
        db.create_all()

    debug_mode = truthy(os.environ.get("FLASK_DEBUG", "0")) and not IS_PROD
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5000"))
    app.run(host=host, port=port, debug=debug_mode, use_reloader=debug_mode)
