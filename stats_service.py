from __future__ import annotations
import calendar
import datetime
from typing import Callable, Dict, Optional

from db import (
    UserRepository,
    WorkoutPlanRepository,
    WorkoutSessionRepository,
    parse_timestamp,
    to_timestamp,
    utc_now,
)
from errors import InvalidArgument, NotFound
from gamification_service import completed_sets, parse_number, parse_reps
from security import public_user


def _months_ago(value: datetime.datetime, months: int) -> datetime.datetime:
    """Return ``value`` shifted back by calendar months, clamping the day."""
    total = value.year * 12 + value.month - 1 - months
    year, month = divmod(total, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class StatisticsService:
    """Compute dashboard, history and analytics views from completed sessions."""

    RECENT_WORKOUTS = 5
    WEEKS_PER_PERIOD = {"week": 1, "month": 4, "year": 52}

    def __init__(
        self,
        session_repo: WorkoutSessionRepository,
        user_repo: UserRepository,
        plan_repo: WorkoutPlanRepository,
        records_scan_limit: int = 50,
        history_max_limit: int = 100,
        clock: Callable[[], datetime.datetime] = utc_now,
    ) -> None:
        self.sessions = session_repo
        self.users = user_repo
        self.plans = plan_repo
        self.records_scan_limit = records_scan_limit
        self.history_max_limit = history_max_limit
        self.clock = clock

    def _fetch_user(self, uid: str) -> dict:
        user = self.users.fetch(uid)
        if user is None:
            raise NotFound("User not found.")
        return user

    @staticmethod
    def next_workout_index(last_completed: Optional[int], total_days: int) -> int:
        """Walk the plan days cyclically, starting over after the last day."""
        if last_completed is None or last_completed >= total_days - 1:
            return 0
        return last_completed + 1

    def dashboard(self, uid: str) -> dict:
        user = self._fetch_user(uid)
        active_plan = None
        if user.get("activeWorkoutPlanId"):
            active_plan = self.plans.fetch(user["activeWorkoutPlanId"])
        recent = self.sessions.fetch_completed(uid, limit=self.RECENT_WORKOUTS)
        next_workout = None
        if active_plan and active_plan.get("days"):
            index = self.next_workout_index(
                user.get("lastCompletedDayIndex"), len(active_plan["days"])
            )
            next_workout = {"dayIndex": index, "day": active_plan["days"][index]}
        return {
            "userData": public_user(user),
            "activePlan": active_plan,
            "recentWorkouts": recent,
            "nextWorkout": next_workout,
        }

    def history(self, uid: str, limit: int = 20, start_after: str | None = None) -> dict:
        """Return a page of completed sessions, newest first.

        One extra row is read so ``hasMore`` is only true when another page
        actually exists.
        """
        if not 1 <= limit <= self.history_max_limit:
            raise InvalidArgument(f"limit must be between 1 and {self.history_max_limit}.")
        try:
            rows = self.sessions.fetch_completed(uid, limit + 1, start_after)
        except ValueError:
            raise InvalidArgument("Unknown history cursor.")
        return {"sessions": rows[:limit], "hasMore": len(rows) > limit}

    @staticmethod
    def _parse_bound(value: str, name: str, end: bool = False) -> str:
        try:
            day = datetime.date.fromisoformat(value)
        except (TypeError, ValueError):
            day = None
        if day is not None:
            moment = datetime.datetime.combine(
                day,
                datetime.time.max if end else datetime.time.min,
                tzinfo=datetime.timezone.utc,
            )
            return to_timestamp(moment)
        try:
            return to_timestamp(parse_timestamp(value))
        except (TypeError, ValueError):
            raise InvalidArgument(f"Invalid date format provided for {name}.")

    def calendar(self, uid: str, start_date: str, end_date: str) -> dict:
        start = self._parse_bound(start_date, "startDate")
        end = self._parse_bound(end_date, "endDate", end=True)
        if start > end:
            raise InvalidArgument("startDate must not be after endDate.")
        events = []
        for session in self.sessions.fetch_completed_between(uid, start, end):
            events.append(
                {
                    "id": session["id"],
                    "title": f"{session.get('planName')}: {session.get('dayName')}",
                    "date": session["dateCompleted"],
                    "planId": session.get("planId"),
                    "dayIndex": session.get("dayIndex"),
                }
            )
        return {"events": events}

    def period_start(self, period: str, now: datetime.datetime) -> datetime.datetime:
        if period == "week":
            return now - datetime.timedelta(days=7)
        if period == "month":
            return _months_ago(now, 1)
        if period == "year":
            return _months_ago(now, 12)
        raise InvalidArgument("period must be one of week, month or year.")

    def analytics(self, uid: str, period: str = "month") -> dict:
        start = self.period_start(period, self.clock())
        sessions = self.sessions.fetch_completed_between(uid, to_timestamp(start))
        workouts_by_day: Dict[str, int] = {}
        total_volume = 0.0
        total_sets = 0
        for session in sessions:
            day = parse_timestamp(session["dateCompleted"]).date().isoformat()
            workouts_by_day[day] = workouts_by_day.get(day, 0) + 1
            for exercise in session.get("exercises", []):
                for entry in completed_sets(exercise):
                    weight = parse_number(entry.get("weight"))
                    reps = parse_reps(entry.get("reps"))
                    if weight is None or reps is None:
                        continue
                    total_volume += weight * reps
                    total_sets += 1
        return {
            "period": period,
            "totalWorkouts": len(sessions),
            "totalVolume": round(total_volume, 2),
            "totalSets": total_sets,
            "averageWorkoutsPerWeek": round(
                len(sessions) / self.WEEKS_PER_PERIOD[period], 1
            ),
            "workoutsByDay": workouts_by_day,
        }

    def personal_records(self, uid: str) -> dict:
        """Return stored records with frequency and volume from recent sessions."""
        user = self._fetch_user(uid)
        stats = user.get("stats") or {}
        frequency: Dict[str, int] = {}
        volume: Dict[str, float] = {}
        for session in self.sessions.fetch_completed(uid, limit=self.records_scan_limit):
            for exercise in session.get("exercises", []):
                name = exercise.get("exerciseName")
                done = list(completed_sets(exercise))
                if not name or not done:
                    continue
                frequency[name] = frequency.get(name, 0) + 1
                for entry in done:
                    weight = parse_number(entry.get("weight"))
                    reps = parse_reps(entry.get("reps"))
                    if weight is None or reps is None:
                        continue
                    volume[name] = round(volume.get(name, 0.0) + weight * reps, 2)
        return {
            "personalRecords": stats.get("personalRecords") or {},
            "exerciseFrequency": frequency,
            "volumeByExercise": volume,
            "totalWorkouts": stats.get("totalWorkouts", 0),
        }
