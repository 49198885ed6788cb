import datetime
import math
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from db import Increment, parse_timestamp, to_timestamp

LEADING_INT = re.compile(r"^\s*[+]?(\d+)")


def parse_number(value) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when it is blank or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    if not math.isfinite(result):
        return None
    return result


def parse_reps(value) -> int | None:
    """Return the leading whole number of ``value``; ``"8-10"`` counts as 8."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    match = LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def completed_sets(exercise: dict):
    for entry in exercise.get("performance") or []:
        if entry.get("completed"):
            yield entry


class GamificationService:
    """Maintain workout streaks and personal records."""

    @staticmethod
    def _zone(timezone: str | None) -> ZoneInfo:
        try:
            return ZoneInfo(timezone or "UTC")
        except (ZoneInfoNotFoundError, ValueError):
            return ZoneInfo("UTC")

    def local_date(self, timestamp: str | datetime.datetime, timezone: str | None) -> datetime.date:
        if isinstance(timestamp, str):
            timestamp = parse_timestamp(timestamp)
        return timestamp.astimezone(self._zone(timezone)).date()

    def workout_streak(
        self,
        stats: dict,
        now: datetime.datetime,
        timezone: str | None = "UTC",
    ) -> dict[str, int]:
        """Return the current and longest streak after a workout at ``now``.

        Days are calendar days in ``timezone``. A second workout on the same
        day keeps the streak, the next day extends it and any longer gap
        starts over at one. A last workout dated after today (clock skew)
        leaves the streak unchanged.
        """
        current = int(stats.get("currentStreak") or 0)
        last = stats.get("lastWorkoutDate")
        if not last:
            current = 1
        else:
            gap = (self.local_date(now, timezone) - self.local_date(last, timezone)).days
            if gap == 1:
                current += 1
            elif gap > 1:
                current = 1
        record = max(current, int(stats.get("longestStreak") or 0))
        return {"currentStreak": current, "longestStreak": record}

    def personal_records(self, records: dict, exercises: list[dict]) -> dict[str, float]:
        """Return ``records`` raised by any heavier completed set in ``exercises``."""
        updated = dict(records or {})
        for exercise in exercises:
            name = exercise.get("exerciseName")
            if not name:
                continue
            for entry in completed_sets(exercise):
                weight = parse_number(entry.get("weight"))
                if weight is None:
                    continue
                best = updated.get(name)
                if best is None or weight > best:
                    updated[name] = weight
        return updated

    def completion_changes(
        self,
        user: dict,
        session: dict,
        exercises: list[dict],
        now: datetime.datetime,
    ) -> dict:
        """Return the user document changes for finishing ``session`` at ``now``."""
        stats = user.get("stats") or {}
        streak = self.workout_streak(stats, now, user.get("timezone"))
        changes = {
            "stats.totalWorkouts": Increment(1),
            "stats.currentStreak": streak["currentStreak"],
            "stats.longestStreak": streak["longestStreak"],
            "stats.lastWorkoutDate": to_timestamp(now),
            "stats.personalRecords": self.personal_records(
                stats.get("personalRecords") or {}, exercises
            ),
        }
        if user.get("activeWorkoutPlanId") == session.get("planId"):
            changes["lastCompletedDayIndex"] = session.get("dayIndex")
        return changes
