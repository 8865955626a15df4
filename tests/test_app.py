import base64
import json
import os
import tempfile
import time
import unittest
from datetime import datetime, timedelta, timezone

from jose import jwt

JWT_SECRET = "test-jwt-secret"

# app.py binds the database when imported, so point it at a scratch file first
_fd, TEST_DB_PATH = tempfile.mkstemp(prefix="coach_test_", suffix=".db")
os.close(_fd)
os.environ["COACH_DATABASE_URI"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["COACH_AUTH_JWT_SECRET"] = JWT_SECRET

from app import app, compliance_cache  # noqa: E402
from models import (  # noqa: E402
    db,
    Meal,
    MealCompletion,
    MealPlan,
    Supplement,
    User,
    WeightLog,
    WorkoutCompletion,
    WorkoutDay,
    WorkoutExercise,
    WorkoutPlan,
)
from compliance import DAY_NAMES  # noqa: E402
from queries import local_today  # noqa: E402

AUTH_COOKIE = "sb-testproject-auth-token"


def auth_cookie(auth_id, secret=JWT_SECRET):
    token = jwt.encode({"sub": auth_id, "exp": int(time.time()) + 3600}, secret, algorithm="HS256")
    raw = json.dumps([token, "refresh-token"]).encode("utf-8")
    return "base64-" + base64.b64encode(raw).decode("ascii").rstrip("=")


def days_ago(n):
    return datetime.now(timezone.utc) - timedelta(days=n)


class CoachAppTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        app.config.update(
            TESTING=True,
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            CSRF_ENABLED=False,
            AUTH_JWT_SECRET=JWT_SECRET,
        )

    @classmethod
    def tearDownClass(cls):
        with app.app_context():
            db.session.remove()
            db.engine.dispose()
        if os.path.exists(TEST_DB_PATH):
            os.remove(TEST_DB_PATH)

    def setUp(self):
        self.client = app.test_client()
        compliance_cache().clear()
        with app.app_context():
            db.drop_all()
            db.create_all()

    def tearDown(self):
        with app.app_context():
            db.session.remove()

    # =========================
    # Builders
    # =========================
    def _today(self):
        with app.app_context():
            return local_today()

    def _login_as(self, auth_id):
        self.client.set_cookie(AUTH_COOKIE, auth_cookie(auth_id))

    def _create_user(self, auth_id, name, role="client", coach_id=None, status="active", starting_weight=None):
        with app.app_context():
            u = User(
                auth_id=auth_id,
                email=f"{auth_id}@example.com",
                name=name,
                role=role,
                coach_id=coach_id,
                status=status,
                starting_weight=starting_weight,
                current_weight=starting_weight,
                created_at=days_ago(14),
            )
            db.session.add(u)
            db.session.commit()
            return u.id

    def _create_workout_plan(self, user_id, training_days, is_active=True, title="Plan", workout_name=None,
                             builder_mode="week", workout_days_per_week=7):
        with app.app_context():
            plan = WorkoutPlan(
                user_id=user_id,
                title=title,
                is_active=is_active,
                builder_mode=builder_mode,
                workout_days_per_week=workout_days_per_week,
                created_at=days_ago(20),
            )
            db.session.add(plan)
            db.session.flush()
            for day_name in DAY_NAMES:
                day = WorkoutDay(
                    workout_plan_id=plan.id,
                    day_of_week=day_name,
                    is_rest=day_name not in training_days,
                    workout_name=workout_name,
                )
                db.session.add(day)
                db.session.flush()
                if not day.is_rest:
                    db.session.add(WorkoutExercise(
                        workout_day_id=day.id,
                        sequence_order=1,
                        group_type="straight",
                        exercise_name="Squat",
                        sets_data=[{"reps": 5}],
                    ))
            db.session.commit()
            return plan.id

    def _add_workout_completion(self, user_id, day, groups=("1-straight",)):
        with app.app_context():
            db.session.add(WorkoutCompletion(user_id=user_id, completed_at=day, completed_groups=list(groups)))
            db.session.commit()

    def _create_meal_plan(self, user_id):
        with app.app_context():
            plan = MealPlan(user_id=user_id, title="Meals", is_active=True, created_at=days_ago(10))
            db.session.add(plan)
            db.session.flush()
            meals = [
                Meal(meal_plan_id=plan.id, name="Breakfast", time="08:00", sequence_order=1),
                Meal(meal_plan_id=plan.id, name="Breakfast", time="08:00:00", sequence_order=1),
                Meal(meal_plan_id=plan.id, name="Lunch", time="12:30", sequence_order=2),
            ]
            db.session.add_all(meals)
            db.session.commit()
            return plan.id, [m.id for m in meals]

    def _coach_with_client(self):
        coach_id = self._create_user("coach-1", "Coach", role="coach")
        client_id = self._create_user("client-ann", "Ann", coach_id=coach_id, starting_weight=200.0)
        return coach_id, client_id

    # =========================
    # Identity
    # =========================
    def test_ping(self):
        resp = self.client.get("/ping")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data, b"PING OK")

    def test_requests_without_auth_cookie_are_rejected(self):
        resp = self.client.get("/api/dashboard")
        self.assertEqual(resp.status_code, 401)
        self.assertIn("error", resp.get_json())

    def test_token_signed_with_another_secret_is_rejected(self):
        self._create_user("coach-1", "Coach", role="coach")
        self.client.set_cookie(AUTH_COOKIE, auth_cookie("coach-1", secret="someone-else"))
        resp = self.client.get("/api/dashboard")
        self.assertEqual(resp.status_code, 401)

    def test_unknown_subject_is_rejected(self):
        self._login_as("nobody")
        resp = self.client.get("/api/dashboard")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["error"], "User not found")

    def test_client_cannot_open_coach_roster(self):
        self._coach_with_client()
        self._login_as("client-ann")
        resp = self.client.get("/api/compliance/clients")
        self.assertEqual(resp.status_code, 403)

    # =========================
    # Roster compliance
    # =========================
    def test_roster_compliance_scores_ranks_and_skips_inactive_clients(self):
        coach_id, ann_id = self._coach_with_client()
        ben_id = self._create_user("client-ben", "Ben", coach_id=coach_id)
        cara_id = self._create_user("client-cara", "Cara", coach_id=coach_id, status="inactive")

        today = self._today()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        for i in range(4):
            self._add_workout_completion(ann_id, today - timedelta(days=i))
        self._create_workout_plan(cara_id, DAY_NAMES)
        self._add_workout_completion(cara_id, today)

        self._login_as("coach-1")
        resp = self.client.get("/api/compliance/clients")
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()

        rows = data["complianceClients"]
        self.assertEqual([r["clientId"] for r in rows], [ann_id, ben_id])
        self.assertEqual(rows[0]["name"], "Ann")
        self.assertEqual(rows[0]["workoutCompliance"], 80)
        self.assertEqual(rows[0]["overallCompliance"], 80)
        self.assertIsNone(rows[1]["overallCompliance"])
        self.assertEqual(data["overallAverage"], 80)
        self.assertEqual(data["windowEnd"], today.isoformat())
        self.assertEqual(data["windowStart"], (today - timedelta(days=6)).isoformat())

    def test_roster_compliance_is_cached_per_coach(self):
        _coach_id, ann_id = self._coach_with_client()
        today = self._today()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        self._add_workout_completion(ann_id, today)

        self._login_as("coach-1")
        first = self.client.get("/api/compliance/clients").get_json()
        self.assertEqual(first["overallAverage"], 20)

        self._add_workout_completion(ann_id, today - timedelta(days=1))
        cached = self.client.get("/api/compliance/clients").get_json()
        self.assertEqual(cached["overallAverage"], 20)

        compliance_cache().clear()
        fresh = self.client.get("/api/compliance/clients").get_json()
        self.assertEqual(fresh["overallAverage"], 40)

    def test_client_submission_invalidates_coach_roster(self):
        _coach_id, ann_id = self._coach_with_client()
        today = self._today()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        self._add_workout_completion(ann_id, today)

        self._login_as("coach-1")
        self.assertEqual(self.client.get("/api/compliance/clients").get_json()["overallAverage"], 20)

        self._login_as("client-ann")
        resp = self.client.post(
            "/api/workout-completions",
            json={"date": (today - timedelta(days=1)).isoformat(), "completedGroups": ["1-straight"]},
        )
        self.assertEqual(resp.status_code, 200)

        self._login_as("coach-1")
        self.assertEqual(self.client.get("/api/compliance/clients").get_json()["overallAverage"], 40)

    def test_export_compliance_csv(self):
        _coach_id, ann_id = self._coach_with_client()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        self._add_workout_completion(ann_id, self._today())

        self._login_as("coach-1")
        resp = self.client.get("/export/compliance.csv")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("text/csv", resp.content_type)
        body = resp.data.decode("utf-8-sig")
        self.assertIn("client_id,name,workout,meal,supplement,rest_day,overall", body)
        self.assertIn(f"{ann_id},Ann,20,,,0,20", body)

    # =========================
    # Access control
    # =========================
    def test_coach_cannot_see_another_coachs_client(self):
        _coach_id, ann_id = self._coach_with_client()
        self._create_user("coach-2", "Other Coach", role="coach")

        self._login_as("coach-2")
        resp = self.client.get(
            f"/api/compliance/workouts/week?clientId={ann_id}&weekStart={self._today().isoformat()}"
        )
        self.assertEqual(resp.status_code, 404)

    def test_client_cannot_see_another_client(self):
        coach_id, _ann_id = self._coach_with_client()
        ben_id = self._create_user("client-ben", "Ben", coach_id=coach_id)

        self._login_as("client-ann")
        resp = self.client.get(
            f"/api/compliance/workouts/week?clientId={ben_id}&weekStart={self._today().isoformat()}"
        )
        self.assertEqual(resp.status_code, 403)

    def test_week_view_requires_week_start(self):
        self._coach_with_client()
        self._login_as("client-ann")
        resp = self.client.get("/api/compliance/workouts/week")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "Missing required parameters")

    # =========================
    # Plan activation
    # =========================
    def test_activating_plan_deactivates_previous_one(self):
        _coach_id, ann_id = self._coach_with_client()
        old_id = self._create_workout_plan(ann_id, DAY_NAMES, title="Old")
        new_id = self._create_workout_plan(ann_id, DAY_NAMES[:3], is_active=False, title="New")

        self._login_as("coach-1")
        resp = self.client.post(f"/api/clients/{ann_id}/workout-plans/{new_id}/activate")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.get_json()["isActive"])

        with app.app_context():
            old = db.session.get(WorkoutPlan, old_id)
            new = db.session.get(WorkoutPlan, new_id)
            self.assertFalse(old.is_active)
            self.assertIsNotNone(old.deactivated_at)
            self.assertTrue(new.is_active)
            self.assertIsNotNone(new.activated_at)

    def test_plan_activated_today_governs_from_tomorrow(self):
        _coach_id, ann_id = self._coach_with_client()
        self._create_workout_plan(ann_id, DAY_NAMES, title="Old", workout_name="Old Session")
        new_id = self._create_workout_plan(ann_id, [], is_active=False, title="New")

        self._login_as("coach-1")
        self.client.post(f"/api/clients/{ann_id}/workout-plans/{new_id}/activate")

        today = self._today()
        self._login_as("client-ann")
        today_resp = self.client.get(f"/api/workouts/day?date={today.isoformat()}").get_json()
        self.assertEqual(today_resp["todaysWorkout"]["name"], "Old Session")
        self.assertFalse(today_resp["todaysWorkout"]["isRest"])

        tomorrow = today + timedelta(days=1)
        tomorrow_resp = self.client.get(f"/api/workouts/day?date={tomorrow.isoformat()}").get_json()
        self.assertTrue(tomorrow_resp["todaysWorkout"]["isRest"])

    def test_workout_week_marks_activation_day_not_applicable(self):
        _coach_id, ann_id = self._coach_with_client()
        plan_id = self._create_workout_plan(ann_id, DAY_NAMES, is_active=False)

        self._login_as("coach-1")
        self.client.post(f"/api/clients/{ann_id}/workout-plans/{plan_id}/activate")

        today = self._today()
        resp = self.client.get(f"/api/compliance/workouts/week?clientId={ann_id}&weekStart={today.isoformat()}")
        self.assertEqual(resp.status_code, 200)
        values = resp.get_json()["complianceData"]
        self.assertEqual(len(values), 7)
        self.assertEqual(values[0], -1)
        self.assertEqual(values[1:], [0] * 6)

    def test_activating_another_clients_plan_is_not_found(self):
        coach_id, ann_id = self._coach_with_client()
        ben_id = self._create_user("client-ben", "Ben", coach_id=coach_id)
        ben_plan = self._create_workout_plan(ben_id, DAY_NAMES, is_active=False)

        self._login_as("coach-1")
        resp = self.client.post(f"/api/clients/{ann_id}/workout-plans/{ben_plan}/activate")
        self.assertEqual(resp.status_code, 404)

    def test_deactivate_and_reactivate_client(self):
        _coach_id, ann_id = self._coach_with_client()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        self._add_workout_completion(ann_id, self._today())

        self._login_as("coach-1")
        resp = self.client.post(f"/api/clients/{ann_id}/deactivate")
        self.assertEqual(resp.get_json()["status"], "inactive")
        with app.app_context():
            self.assertIsNotNone(db.session.get(User, ann_id).inactive_since)
        self.assertEqual(self.client.get("/api/compliance/clients").get_json()["complianceClients"], [])

        resp = self.client.post(f"/api/clients/{ann_id}/reactivate")
        self.assertEqual(resp.get_json()["status"], "active")
        rows = self.client.get("/api/compliance/clients").get_json()["complianceClients"]
        self.assertEqual([r["clientId"] for r in rows], [ann_id])

    # =========================
    # Client submissions
    # =========================
    def test_workout_completion_is_upserted_per_day(self):
        _coach_id, ann_id = self._coach_with_client()
        today = self._today().isoformat()

        self._login_as("client-ann")
        self.client.post("/api/workout-completions", json={"date": today, "completedGroups": ["1-straight"]})
        resp = self.client.post("/api/workout-completions", json={"date": today, "completedGroups": []})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.get_json()["isRestDay"])

        with app.app_context():
            rows = WorkoutCompletion.query.filter_by(user_id=ann_id).all()
            self.assertEqual(len(rows), 1)
            self.assertEqual(rows[0].completed_groups, [])

    def test_meal_options_count_once_per_day(self):
        _coach_id, ann_id = self._coach_with_client()
        _plan_id, (option_a, option_b, _lunch) = self._create_meal_plan(ann_id)
        today = self._today()

        self._login_as("client-ann")
        for meal_id in (option_a, option_b):
            resp = self.client.post("/api/meal-completions", json={"mealId": meal_id, "date": today.isoformat()})
            self.assertEqual(resp.status_code, 200)

        resp = self.client.get(f"/api/compliance/meals/week?weekStart={today.isoformat()}")
        self.assertEqual(resp.get_json()["complianceData"][0], 0.5)

    def test_meal_completion_can_be_undone(self):
        _coach_id, ann_id = self._coach_with_client()
        _plan_id, (option_a, _b, _lunch) = self._create_meal_plan(ann_id)
        today = self._today().isoformat()

        self._login_as("client-ann")
        self.client.post("/api/meal-completions", json={"mealId": option_a, "date": today})
        self.client.post("/api/meal-completions", json={"mealId": option_a, "date": today, "completed": False})

        with app.app_context():
            self.assertEqual(MealCompletion.query.filter_by(user_id=ann_id).count(), 0)

    def test_meal_completion_for_someone_elses_meal_is_not_found(self):
        coach_id, _ann_id = self._coach_with_client()
        ben_id = self._create_user("client-ben", "Ben", coach_id=coach_id)
        _plan_id, (ben_meal, _b, _lunch) = self._create_meal_plan(ben_id)

        self._login_as("client-ann")
        resp = self.client.post("/api/meal-completions", json={"mealId": ben_meal})
        self.assertEqual(resp.status_code, 404)

    def test_supplement_week_marks_unassigned_past_days(self):
        self._coach_with_client()
        today = self._today()

        self._login_as("client-ann")
        week_start = today - timedelta(days=3)
        resp = self.client.get(f"/api/compliance/supplements/week?weekStart={week_start.isoformat()}")
        self.assertEqual(resp.get_json()["complianceData"], [-2, -2, -2, 0, 0, 0, 0])

    def test_supplement_completion_counts_for_the_day(self):
        _coach_id, ann_id = self._coach_with_client()
        with app.app_context():
            supplement = Supplement(user_id=ann_id, name="Creatine", dosage="5g", created_at=days_ago(10))
            db.session.add(supplement)
            db.session.commit()
            supplement_id = supplement.id
        today = self._today()

        self._login_as("client-ann")
        resp = self.client.post("/api/supplement-completions", json={"supplementId": supplement_id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["date"], today.isoformat())

        resp = self.client.get(f"/api/compliance/supplements/week?weekStart={today.isoformat()}")
        self.assertEqual(resp.get_json()["complianceData"][0], 1.0)

    def test_weight_log_updates_current_weight(self):
        _coach_id, ann_id = self._coach_with_client()

        self._login_as("client-ann")
        resp = self.client.post("/api/weight-logs", json={"weight": 196.0})
        self.assertEqual(resp.status_code, 201)
        resp = self.client.post("/api/weight-logs", json={"weight": "194,5"})
        self.assertEqual(resp.get_json()["weightChange"], -1.5)

        with app.app_context():
            user = db.session.get(User, ann_id)
            self.assertEqual(user.current_weight, 194.5)
            self.assertEqual(user.starting_weight, 200.0)
            self.assertEqual(WeightLog.query.filter_by(user_id=ann_id).count(), 2)

    def test_invalid_weight_is_rejected(self):
        self._coach_with_client()
        self._login_as("client-ann")
        resp = self.client.post("/api/weight-logs", json={"weight": "heavy"})
        self.assertEqual(resp.status_code, 400)

    def test_non_object_json_body_is_rejected(self):
        self._coach_with_client()
        self._login_as("client-ann")
        resp = self.client.post("/api/weight-logs", json=[180])
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "Expected a JSON object.")

        resp = self.client.post("/api/workout-completions", json="rest")
        self.assertEqual(resp.status_code, 400)

    def test_meal_completion_flag_parsing(self):
        _coach_id, ann_id = self._coach_with_client()
        _plan_id, (option_a, _b, _lunch) = self._create_meal_plan(ann_id)
        today = self._today().isoformat()

        self._login_as("client-ann")
        resp = self.client.post("/api/meal-completions", json={"mealId": float(option_a), "date": today, "completed": None})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.get_json()["completed"])
        with app.app_context():
            self.assertEqual(MealCompletion.query.filter_by(user_id=ann_id).count(), 1)

        resp = self.client.post(
            "/api/meal-completions",
            data={"mealId": str(option_a), "date": today, "completed": "False"},
        )
        self.assertFalse(resp.get_json()["completed"])
        with app.app_context():
            self.assertEqual(MealCompletion.query.filter_by(user_id=ann_id).count(), 0)

    def test_fractional_meal_id_is_rejected(self):
        self._coach_with_client()
        self._login_as("client-ann")
        resp = self.client.post("/api/meal-completions", json={"mealId": 1.5})
        self.assertEqual(resp.status_code, 400)

    def test_inactive_client_cannot_submit(self):
        coach_id = self._create_user("coach-1", "Coach", role="coach")
        self._create_user("client-ann", "Ann", coach_id=coach_id, status="inactive")

        self._login_as("client-ann")
        resp = self.client.post("/api/workout-completions", json={"completedGroups": []})
        self.assertEqual(resp.status_code, 403)

    def test_coach_cannot_submit_completions(self):
        self._coach_with_client()
        self._login_as("coach-1")
        resp = self.client.post("/api/workout-completions", json={"completedGroups": []})
        self.assertEqual(resp.status_code, 403)

    def test_future_dates_are_rejected(self):
        self._coach_with_client()
        future = (self._today() + timedelta(days=2)).isoformat()

        self._login_as("client-ann")
        resp = self.client.post("/api/workout-completions", json={"date": future, "completedGroups": []})
        self.assertEqual(resp.status_code, 400)

    def test_csrf_token_required_when_enabled(self):
        self._coach_with_client()
        self._login_as("client-ann")
        app.config["CSRF_ENABLED"] = True
        try:
            blocked = self.client.post("/api/weight-logs", json={"weight": 190})
            self.assertEqual(blocked.status_code, 400)

            token = self.client.get("/api/csrf-token").get_json()["csrfToken"]
            allowed = self.client.post("/api/weight-logs", json={"weight": 190}, headers={"X-CSRF-Token": token})
            self.assertEqual(allowed.status_code, 201)
        finally:
            app.config["CSRF_ENABLED"] = False

    # =========================
    # Workout views
    # =========================
    def test_workout_day_returns_groups_and_completed_groups(self):
        _coach_id, ann_id = self._coach_with_client()
        today = self._today()
        self._create_workout_plan(ann_id, DAY_NAMES, workout_name="Legs")
        self._add_workout_completion(ann_id, today)

        self._login_as("client-ann")
        data = self.client.get(f"/api/workouts/day?date={today.isoformat()}").get_json()
        workout = data["todaysWorkout"]
        self.assertEqual(workout["name"], "Legs")
        self.assertEqual([g["id"] for g in workout["groups"]], ["1-straight"])
        self.assertEqual(workout["groups"][0]["exercises"][0]["name"], "Squat")
        self.assertEqual(data["todaysCompletedGroups"], ["1-straight"])

    def test_workout_day_without_plan(self):
        self._coach_with_client()
        self._login_as("client-ann")
        data = self.client.get(f"/api/workouts/day?date={self._today().isoformat()}").get_json()
        self.assertEqual(data["todaysWorkout"]["name"], "No Active Plan")

    def test_workout_week_for_fixed_plan(self):
        _coach_id, ann_id = self._coach_with_client()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        today = self._today()

        self._login_as("client-ann")
        data = self.client.get(f"/api/workouts/week?weekStart={today.isoformat()}").get_json()
        self.assertFalse(data["isFlexibleSchedule"])
        self.assertEqual(len(data["workouts"]), 7)
        for offset in range(7):
            day = today + timedelta(days=offset)
            expected_rest = DAY_NAMES[day.weekday()] in ("Saturday", "Sunday")
            self.assertEqual(data["workouts"][day.isoformat()]["isRest"], expected_rest)

    def test_workout_week_for_flexible_plan(self):
        _coach_id, ann_id = self._coach_with_client()
        self._create_workout_plan(
            ann_id, ["Monday", "Wednesday"], builder_mode="day", workout_days_per_week=4
        )
        today = self._today()
        self._add_workout_completion(ann_id, today, groups=())

        self._login_as("client-ann")
        data = self.client.get(f"/api/workouts/week?weekStart={today.isoformat()}").get_json()
        self.assertTrue(data["isFlexibleSchedule"])
        self.assertEqual(data["restDaysAllowed"], 3)
        self.assertEqual(data["restDaysUsed"], 1)
        self.assertEqual(len(data["workoutTemplates"]), 2)
        self.assertEqual(len(data["availableTemplates"]), 2)

    # =========================
    # Dashboard
    # =========================
    def test_coach_dashboard_totals_and_recent_activity(self):
        coach_id, ann_id = self._coach_with_client()
        self._create_user("client-cara", "Cara", coach_id=coach_id, status="inactive")
        today = self._today()
        self._create_workout_plan(ann_id, DAY_NAMES[:5])
        self._add_workout_completion(ann_id, today)

        self._login_as("coach-1")
        data = self.client.get("/api/dashboard").get_json()
        self.assertEqual(data["role"], "coach")
        self.assertEqual(data["totalClients"], 2)
        self.assertEqual(data["activeClients"], 1)
        self.assertEqual(data["inactiveClients"], 1)
        self.assertEqual(data["compliance"], 20)
        self.assertEqual(data["percentChange"], 20)
        self.assertEqual(len(data["recentClients"]), 2)
        self.assertEqual(data["recentActivity"][0]["clientName"], "Ann")
        self.assertEqual(data["recentActivity"][0]["action"], "Completed workout")

    def test_client_dashboard(self):
        _coach_id, ann_id = self._coach_with_client()
        today = self._today()
        self._create_workout_plan(ann_id, DAY_NAMES, workout_name="Full Body")
        self._add_workout_completion(ann_id, today)
        with app.app_context():
            db.session.add(WeightLog(user_id=ann_id, weight=200.0, logged_at=days_ago(5)))
            db.session.add(WeightLog(user_id=ann_id, weight=197.0, logged_at=days_ago(1)))
            db.session.commit()

        self._login_as("client-ann")
        data = self.client.get("/api/dashboard").get_json()
        self.assertEqual(data["role"], "client")
        self.assertEqual(data["workoutCompliance"], 14)
        self.assertIsNone(data["mealCompliance"])
        self.assertEqual(data["weightChange"], -3.0)
        self.assertEqual(data["todaysWorkout"]["name"], "Full Body")


if __name__ == "__main__":
    unittest.main()
