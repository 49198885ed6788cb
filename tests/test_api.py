import os
import sys
import datetime
import tempfile
import unittest
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import FitbaseAPI
from db import to_timestamp
from seed_sample_data import COMMON_PLANS


PLAN_DAYS = [
    {
        "dayName": "Push",
        "notes": "",
        "exercises": [
            {
                "exerciseName": "Bench Press",
                "sets": 3,
                "reps": "8-10",
                "weight": "0",
                "restTime": 120,
            }
        ],
    },
    {
        "dayName": "Legs",
        "exercises": [
            {"exerciseName": "Squat", "sets": 2, "reps": "5", "weight": "0", "restTime": 180}
        ],
    },
]


def logged(session: dict, weight, reps="8", completed=True) -> list[dict]:
    """Return the session's exercises with every set filled in."""
    exercises = []
    for exercise in session["exercises"]:
        performance = [
            {"weight": str(weight), "reps": reps, "completed": completed}
            for _ in exercise["performance"]
        ]
        exercises.append({**exercise, "performance": performance})
    return exercises


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "test_fitbase.db")
        self.yaml_path = os.path.join(self.tmp.name, "test_settings.yaml")
        self.now = datetime.datetime(2024, 3, 15, 12, 0, tzinfo=datetime.timezone.utc)
        self.reset_tokens: list[tuple[str, str]] = []
        self.api = FitbaseAPI(
            db_path=self.db_path,
            yaml_path=self.yaml_path,
            reset_notifier=lambda email, token: self.reset_tokens.append((email, token)),
            clock=lambda: self.now,
            bcrypt_rounds=4,
        )
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def signup(self, email: str = "lifter@example.com", password: str = "secret123") -> dict:
        response = self.client.post("/users", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 201)
        response = self.client.post("/auth/token", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200)
        token = response.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    def create_plan(self, headers: dict) -> str:
        response = self.client.post(
            "/plans",
            json={"description": "Push and legs", "numberOfDays": 2, "days": PLAN_DAYS},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        return response.json()["planId"]

    def start(self, headers: dict, plan_id: str, day_index: int = 0) -> dict:
        response = self.client.post(
            "/sessions", json={"planId": plan_id, "dayIndex": day_index}, headers=headers
        )
        self.assertEqual(response.status_code, 200)
        return response.json()["session"]

    def finish(self, headers: dict, session: dict, weight=100) -> dict:
        response = self.client.post(
            f"/sessions/{session['id']}/finish",
            json={"exercises": logged(session, weight)},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_signup_and_duplicate_email(self) -> None:
        self.signup()
        response = self.client.post(
            "/users", json={"email": "Lifter@Example.com", "password": "secret123"}
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "already-exists")

        response = self.client.post("/users/verify", json={"email": "lifter@example.com"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["exists"])

        response = self.client.post("/users/verify", json={"email": "nobody@example.com"})
        self.assertEqual(response.status_code, 404)

    def test_signup_validation(self) -> None:
        response = self.client.post("/users", json={"email": "not-an-email", "password": "secret123"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid-argument")
        response = self.client.post("/users", json={"email": "a@example.com", "password": "123"})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/users", json={"email": "a@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid-argument")

    def test_requires_authentication(self) -> None:
        response = self.client.get("/dashboard")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "unauthenticated")

        response = self.client.get("/dashboard", headers={"Authorization": "Bearer garbage"})
        self.assertEqual(response.status_code, 401)

        response = self.client.post(
            "/auth/token", json={"email": "ghost@example.com", "password": "secret123"}
        )
        self.assertEqual(response.status_code, 401)

    def test_wrong_password(self) -> None:
        self.signup()
        response = self.client.post(
            "/auth/token", json={"email": "lifter@example.com", "password": "wrongpass"}
        )
        self.assertEqual(response.status_code, 401)

    def test_custom_plan_limit(self) -> None:
        headers = self.signup()
        names = []
        for _ in range(5):
            response = self.client.post(
                "/plans",
                json={"numberOfDays": 2, "days": PLAN_DAYS},
                headers=headers,
            )
            self.assertEqual(response.status_code, 200)
            names.append(response.json()["planName"])
        self.assertEqual(names[0], "Custom Workout 1")
        self.assertEqual(names[-1], "Custom Workout 5")

        response = self.client.post(
            "/plans", json={"numberOfDays": 2, "days": PLAN_DAYS}, headers=headers
        )
        self.assertEqual(response.status_code, 412)
        self.assertEqual(response.json()["code"], "failed-precondition")

        library = self.client.get("/plans", headers=headers).json()
        self.assertEqual(len(library["customWorkouts"]), 5)

    def test_plan_validation(self) -> None:
        headers = self.signup()
        response = self.client.post(
            "/plans", json={"numberOfDays": 0, "days": PLAN_DAYS}, headers=headers
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/plans", json={"numberOfDays": 1, "days": []}, headers=headers
        )
        self.assertEqual(response.status_code, 400)

    def test_plan_crud_and_ownership(self) -> None:
        owner = self.signup()
        other = self.signup("other@example.com")
        plan_id = self.create_plan(owner)

        response = self.client.get(f"/plans/{plan_id}", headers=owner)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["type"], "custom")

        response = self.client.get(f"/plans/{plan_id}", headers=other)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "permission-denied")

        response = self.client.get("/plans/does-not-exist", headers=owner)
        self.assertEqual(response.status_code, 404)

        response = self.client.put(
            f"/plans/{plan_id}",
            json={"planData": {"planName": "Renamed", "description": "New"}},
            headers=owner,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["plan"]["planName"], "Renamed")

        response = self.client.put(
            f"/plans/{plan_id}", json={"planData": {"planName": "Mine"}}, headers=other
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/plans/{plan_id}", headers=other)
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(f"/plans/{plan_id}", headers=owner)
        self.assertEqual(response.status_code, 200)
        response = self.client.get(f"/plans/{plan_id}", headers=owner)
        self.assertEqual(response.status_code, 404)

    def test_common_plans_are_shared_and_read_only(self) -> None:
        headers = self.signup()
        plan_id = self.api.planner.add_common_plan(COMMON_PLANS[0])

        library = self.client.get("/plans", headers=headers).json()
        self.assertEqual([p["id"] for p in library["commonWorkouts"]], [plan_id])

        response = self.client.get(f"/plans/{plan_id}", headers=headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.put(
            f"/plans/{plan_id}", json={"planData": {"planName": "Hacked"}}, headers=headers
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(f"/plans/{plan_id}", headers=headers)
        self.assertEqual(response.status_code, 403)

        session = self.start(headers, plan_id, 2)
        self.assertEqual(session["dayName"], "Day C")

    def test_select_and_delete_active_plan(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        response = self.client.post(f"/plans/{plan_id}/select", headers=headers)
        self.assertEqual(response.status_code, 200)

        dashboard = self.client.get("/dashboard", headers=headers).json()
        self.assertEqual(dashboard["activePlan"]["id"], plan_id)
        self.assertEqual(dashboard["nextWorkout"]["dayIndex"], 0)

        self.client.delete(f"/plans/{plan_id}", headers=headers)
        dashboard = self.client.get("/dashboard", headers=headers).json()
        self.assertIsNone(dashboard["activePlan"])
        self.assertIsNone(dashboard["nextWorkout"])
        self.assertIsNone(dashboard["userData"]["activeWorkoutPlanId"])

    def test_start_session_validation(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        response = self.client.post(
            "/sessions", json={"planId": plan_id, "dayIndex": 5}, headers=headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid day index.")
        response = self.client.post(
            "/sessions", json={"planId": "missing", "dayIndex": 0}, headers=headers
        )
        self.assertEqual(response.status_code, 404)

    def test_weights_prefilled_from_previous_session(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)

        session = self.start(headers, plan_id)
        performance = session["exercises"][0]["performance"]
        self.assertEqual(len(performance), 3)
        self.assertEqual(
            performance[0], {"weight": "0", "reps": "", "completed": False}
        )
        self.assertEqual(session["status"], "in_progress")
        self.finish(headers, session, weight=135)

        session = self.start(headers, plan_id)
        weights = [s["weight"] for s in session["exercises"][0]["performance"]]
        self.assertEqual(weights, ["135", "135", "135"])

        other_day = self.start(headers, plan_id, 1)
        self.assertEqual(other_day["exercises"][0]["performance"][0]["weight"], "0")

    def test_update_then_get_returns_exercises(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        session = self.start(headers, plan_id)
        exercises = logged(session, 60, reps="10", completed=False)
        exercises[0]["performance"][0]["completed"] = True

        response = self.client.put(
            f"/sessions/{session['id']}", json={"exercises": exercises}, headers=headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "revision": 1})

        stored = self.client.get(f"/sessions/{session['id']}", headers=headers).json()
        self.assertEqual(
            stored["exercises"][0]["performance"],
            [
                {"weight": "60", "reps": "10", "completed": True},
                {"weight": "60", "reps": "10", "completed": False},
                {"weight": "60", "reps": "10", "completed": False},
            ],
        )
        self.assertEqual(stored["status"], "in_progress")

    def test_stale_revision_rejected(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        session = self.start(headers, plan_id)
        body = {"exercises": logged(session, 50, completed=False), "expectedRevision": 0}

        response = self.client.put(f"/sessions/{session['id']}", json=body, headers=headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.put(f"/sessions/{session['id']}", json=body, headers=headers)
        self.assertEqual(response.status_code, 412)

    def test_session_ownership(self) -> None:
        owner = self.signup()
        other = self.signup("other@example.com")
        plan_id = self.create_plan(owner)
        session = self.start(owner, plan_id)

        response = self.client.get(f"/sessions/{session['id']}", headers=other)
        self.assertEqual(response.status_code, 403)
        response = self.client.put(
            f"/sessions/{session['id']}",
            json={"exercises": logged(session, 10)},
            headers=other,
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.post(
            f"/sessions/{session['id']}/finish",
            json={"exercises": logged(session, 10)},
            headers=other,
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.post(
            "/sessions", json={"planId": plan_id, "dayIndex": 0}, headers=other
        )
        self.assertEqual(response.status_code, 403)

    def test_finish_updates_stats_once(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        session = self.start(headers, plan_id)

        result = self.finish(headers, session)
        self.assertEqual(result["message"], "Workout completed!")
        self.assertEqual(result["stats"], {"currentStreak": 1, "longestStreak": 1})

        response = self.client.post(
            f"/sessions/{session['id']}/finish",
            json={"exercises": logged(session, 200)},
            headers=headers,
        )
        self.assertEqual(response.status_code, 412)

        user = self.client.get("/dashboard", headers=headers).json()["userData"]
        self.assertEqual(user["stats"]["totalWorkouts"], 1)
        self.assertEqual(user["stats"]["personalRecords"], {"Bench Press": 100})
        self.assertNotIn("hashedPassword", user)

        response = self.client.put(
            f"/sessions/{session['id']}",
            json={"exercises": logged(session, 1)},
            headers=headers,
        )
        self.assertEqual(response.status_code, 412)

    def test_non_finite_set_values_rejected(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        session = self.start(headers, plan_id)
        for weight, reps in [("nan", "8"), ("inf", "8"), ("1e999", "8"), ("100", "inf")]:
            exercises = logged(session, weight, reps=reps)
            response = self.client.post(
                f"/sessions/{session['id']}/finish",
                json={"exercises": exercises},
                headers=headers,
            )
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["code"], "invalid-argument")

        self.finish(headers, session, weight=100)
        self.assertEqual(self.client.get("/dashboard", headers=headers).status_code, 200)
        records = self.client.get("/records", headers=headers).json()
        self.assertEqual(records["personalRecords"], {"Bench Press": 100})
        response = self.client.get("/analytics", params={"period": "week"}, headers=headers)
        self.assertEqual(response.status_code, 200)

    def test_cancelled_session_cannot_finish(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        session = self.start(headers, plan_id)
        response = self.client.post(f"/sessions/{session['id']}/cancel", headers=headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.post(
            f"/sessions/{session['id']}/finish",
            json={"exercises": logged(session, 100)},
            headers=headers,
        )
        self.assertEqual(response.status_code, 412)
        stored = self.client.get(f"/sessions/{session['id']}", headers=headers).json()
        self.assertEqual(stored["status"], "cancelled")

    def test_streak_progression(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)

        self.assertEqual(self.finish(headers, self.start(headers, plan_id))["stats"]["currentStreak"], 1)
        self.now += datetime.timedelta(days=1)
        self.assertEqual(self.finish(headers, self.start(headers, plan_id))["stats"]["currentStreak"], 2)
        self.now += datetime.timedelta(hours=2)
        self.assertEqual(self.finish(headers, self.start(headers, plan_id))["stats"]["currentStreak"], 2)
        self.now += datetime.timedelta(days=3)
        stats = self.finish(headers, self.start(headers, plan_id))["stats"]
        self.assertEqual(stats, {"currentStreak": 1, "longestStreak": 2})

    def test_streak_continues_from_stored_stats(self) -> None:
        headers = self.signup()
        uid = self.api.users.fetch_by_email("lifter@example.com")["id"]
        self.api.users.update(
            uid,
            {
                "stats.currentStreak": 5,
                "stats.longestStreak": 5,
                "stats.lastWorkoutDate": to_timestamp(self.now - datetime.timedelta(days=1)),
            },
        )
        plan_id = self.create_plan(headers)
        stats = self.finish(headers, self.start(headers, plan_id))["stats"]
        self.assertEqual(stats, {"currentStreak": 6, "longestStreak": 6})

    def test_personal_records_never_decrease(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        self.finish(headers, self.start(headers, plan_id), weight=100)
        self.finish(headers, self.start(headers, plan_id), weight=90)

        records = self.client.get("/records", headers=headers).json()
        self.assertEqual(records["personalRecords"], {"Bench Press": 100})
        self.assertEqual(records["exerciseFrequency"], {"Bench Press": 2})
        self.assertEqual(records["volumeByExercise"], {"Bench Press": 100 * 8 * 3 + 90 * 8 * 3})
        self.assertEqual(records["totalWorkouts"], 2)

    def test_next_workout_follows_active_plan(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        other_plan = self.create_plan(headers)
        self.client.post(f"/plans/{plan_id}/select", headers=headers)

        self.finish(headers, self.start(headers, plan_id, 0))
        dashboard = self.client.get("/dashboard", headers=headers).json()
        self.assertEqual(dashboard["nextWorkout"]["dayIndex"], 1)
        self.assertEqual(dashboard["nextWorkout"]["day"]["dayName"], "Legs")

        # sessions of other plans leave the rotation alone
        self.finish(headers, self.start(headers, other_plan, 1))
        dashboard = self.client.get("/dashboard", headers=headers).json()
        self.assertEqual(dashboard["nextWorkout"]["dayIndex"], 1)

        self.finish(headers, self.start(headers, plan_id, 1))
        dashboard = self.client.get("/dashboard", headers=headers).json()
        self.assertEqual(dashboard["nextWorkout"]["dayIndex"], 0)
        self.assertEqual(len(dashboard["recentWorkouts"]), 3)

    def test_history_pagination(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        finished = []
        for _ in range(3):
            session = self.start(headers, plan_id)
            self.finish(headers, session)
            finished.append(session["id"])
            self.now += datetime.timedelta(hours=1)
        self.start(headers, plan_id)

        page = self.client.get("/history", params={"limit": 2}, headers=headers).json()
        self.assertEqual([s["id"] for s in page["sessions"]], finished[:0:-1])
        self.assertTrue(page["hasMore"])

        page = self.client.get(
            "/history",
            params={"limit": 2, "startAfter": page["sessions"][-1]["id"]},
            headers=headers,
        ).json()
        self.assertEqual([s["id"] for s in page["sessions"]], [finished[0]])
        self.assertFalse(page["hasMore"])

        page = self.client.get("/history", params={"limit": 3}, headers=headers).json()
        self.assertEqual(len(page["sessions"]), 3)
        self.assertFalse(page["hasMore"])

        response = self.client.get("/history", params={"limit": 0}, headers=headers)
        self.assertEqual(response.status_code, 400)
        response = self.client.get("/history", params={"startAfter": "nope"}, headers=headers)
        self.assertEqual(response.status_code, 400)

    def test_calendar_events(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        session = self.start(headers, plan_id)
        self.finish(headers, session)

        response = self.client.get(
            "/calendar",
            params={"startDate": "2024-03-01", "endDate": "2024-03-15"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        events = response.json()["events"]
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["id"], session["id"])
        self.assertEqual(events[0]["title"], "Custom Workout 1: Push")
        self.assertEqual(events[0]["dayIndex"], 0)

        response = self.client.get(
            "/calendar",
            params={"startDate": "2024-04-01", "endDate": "2024-04-30"},
            headers=headers,
        )
        self.assertEqual(response.json()["events"], [])

        response = self.client.get(
            "/calendar",
            params={"startDate": "yesterday", "endDate": "2024-04-30"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.get("/calendar", params={"startDate": "2024-04-01"}, headers=headers)
        self.assertEqual(response.status_code, 400)

    def test_analytics(self) -> None:
        headers = self.signup()
        plan_id = self.create_plan(headers)
        self.now -= datetime.timedelta(days=10)
        self.finish(headers, self.start(headers, plan_id), weight=50)
        self.now += datetime.timedelta(days=10)
        self.finish(headers, self.start(headers, plan_id), weight=100)

        week = self.client.get("/analytics", params={"period": "week"}, headers=headers).json()
        self.assertEqual(week["totalWorkouts"], 1)
        self.assertEqual(week["totalSets"], 3)
        self.assertEqual(week["totalVolume"], 2400)
        self.assertEqual(week["averageWorkoutsPerWeek"], 1.0)
        self.assertEqual(week["workoutsByDay"], {"2024-03-15": 1})

        month = self.client.get("/analytics", params={"period": "month"}, headers=headers).json()
        self.assertEqual(month["totalWorkouts"], 2)
        self.assertEqual(month["averageWorkoutsPerWeek"], 0.5)

        response = self.client.get("/analytics", params={"period": "decade"}, headers=headers)
        self.assertEqual(response.status_code, 400)

    def test_profile(self) -> None:
        headers = self.signup()
        profile = self.client.get("/profile", headers=headers).json()
        self.assertEqual(
            profile,
            {
                "email": "lifter@example.com",
                "displayName": "lifter",
                "weightUnit": "kg",
                "timezone": "UTC",
            },
        )
        response = self.client.put(
            "/profile",
            json={"profileData": {"weightUnit": "lbs", "timezone": "Europe/Berlin"}},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["profile"]["weightUnit"], "lbs")

        response = self.client.put(
            "/profile", json={"profileData": {"timezone": "Mars/Olympus"}}, headers=headers
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.put(
            "/profile", json={"profileData": {"stats": {}}}, headers=headers
        )
        self.assertEqual(response.status_code, 400)

    def test_password_reset(self) -> None:
        self.signup()
        response = self.client.post("/auth/password_reset", json={"email": "nobody@example.com"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reset_tokens, [])

        response = self.client.post("/auth/password_reset", json={"email": "lifter@example.com"})
        self.assertEqual(response.status_code, 200)
        email, token = self.reset_tokens[0]
        self.assertEqual(email, "lifter@example.com")

        response = self.client.post(
            "/auth/password_reset/confirm", json={"token": token, "newPassword": "newsecret"}
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.post(
            "/auth/token", json={"email": "lifter@example.com", "password": "newsecret"}
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.post(
            "/auth/token", json={"email": "lifter@example.com", "password": "secret123"}
        )
        self.assertEqual(response.status_code, 401)

        response = self.client.post(
            "/auth/password_reset/confirm", json={"token": token, "newPassword": "another1"}
        )
        self.assertEqual(response.status_code, 400)

    def test_unexpected_error_is_generic(self) -> None:
        headers = self.signup()

        def broken(uid):
            raise RuntimeError("database exploded")

        self.api.statistics.dashboard = broken
        response = self.client.get("/dashboard", headers=headers)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"code": "internal", "detail": "Something went wrong."}
        )


class RateLimitTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.api = FitbaseAPI(
            db_path=os.path.join(self.tmp.name, "rl.db"),
            yaml_path=os.path.join(self.tmp.name, "rl.yaml"),
            rate_limit=2,
        )
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_rate_limit(self) -> None:
        self.assertEqual(self.client.get("/health").status_code, 200)
        self.assertEqual(self.client.get("/health").status_code, 200)
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 429)


if __name__ == "__main__":
    unittest.main()
