from __future__ import annotations
import datetime
from typing import Callable, Optional
from loguru import logger

from db import (
    AsyncWorkoutSessionRepository,
    Increment,
    UserRepository,
    WorkoutSessionRepository,
    WriteConflict,
    to_timestamp,
    utc_now,
)
from errors import FailedPrecondition, InvalidArgument, NotFound
from gamification_service import GamificationService
from planner_service import PlannerService
from security import check_ownership


class SessionService:
    """Runs workout sessions from start to completion.

    Sessions copy the exercise targets of a plan day. Set weights are
    pre-filled from the last completed session of the same plan day, and
    finishing a session updates the owner's streak and personal records in
    the same atomic batch as the session itself.
    """

    def __init__(
        self,
        session_repo: WorkoutSessionRepository,
        async_session_repo: AsyncWorkoutSessionRepository,
        user_repo: UserRepository,
        planner: PlannerService,
        gamification: GamificationService | None = None,
        *,
        enforce_set_sequence: bool = False,
        clock: Callable[[], datetime.datetime] = utc_now,
    ) -> None:
        self.sessions = session_repo
        self.async_sessions = async_session_repo
        self.users = user_repo
        self.planner = planner
        self.gamification = gamification or GamificationService()
        self.enforce_set_sequence = enforce_set_sequence
        self.clock = clock

    @staticmethod
    def build_performance(template: dict, previous: Optional[dict]) -> list[dict]:
        """Return one empty set per target set, weights carried over from ``previous``."""
        previous_sets = (previous or {}).get("performance") or []
        performance = []
        for index in range(int(template.get("sets") or 0)):
            weight = None
            if index < len(previous_sets) and previous_sets[index]:
                weight = previous_sets[index].get("weight")
            performance.append(
                {"weight": str(weight) if weight else "0", "reps": "", "completed": False}
            )
        return performance

    @staticmethod
    def check_set_sequence(exercises: list[dict]) -> None:
        """Reject a completed set that follows an incomplete one."""
        for exercise in exercises:
            pending = False
            for index, entry in enumerate(exercise.get("performance") or []):
                if not entry.get("completed"):
                    pending = True
                elif pending:
                    raise InvalidArgument(
                        f"Set {index + 1} of {exercise.get('exerciseName')} "
                        "was completed before the previous set."
                    )

    def _owned_session(self, uid: str, session_id: str) -> dict:
        return check_ownership(uid, self.sessions.fetch(session_id), "Session")

    def start_session(self, uid: str, plan_id: str, day_index: int) -> dict:
        plan = self.planner.readable_plan(uid, plan_id)
        days = plan.get("days") or []
        if isinstance(day_index, bool) or not 0 <= day_index < len(days):
            raise InvalidArgument("Invalid day index.")
        selected_day = days[day_index]

        last_session = self.sessions.last_completed(uid, plan_id, day_index)
        previous_by_name: dict[str, dict] = {}
        for exercise in (last_session or {}).get("exercises", []):
            previous_by_name.setdefault(exercise.get("exerciseName"), exercise)

        exercises = []
        for template in selected_day.get("exercises", []):
            previous = previous_by_name.get(template.get("exerciseName"))
            exercises.append(
                {**template, "performance": self.build_performance(template, previous)}
            )

        session = {
            "userId": uid,
            "planId": plan_id,
            "planName": plan.get("planName"),
            "dayIndex": day_index,
            "dayName": selected_day.get("dayName"),
            "dateStarted": to_timestamp(self.clock()),
            "status": "in_progress",
            "revision": 0,
            "exercises": exercises,
        }
        session_id = self.sessions.add(session)
        logger.info(f"Started session {session_id} uid={uid} plan={plan_id} day={day_index}")
        return {
            "success": True,
            "sessionId": session_id,
            "session": {"id": session_id, **session},
        }

    def get_session(self, uid: str, session_id: str) -> dict:
        return self._owned_session(uid, session_id)

    async def update_session(
        self,
        uid: str,
        session_id: str,
        exercises: list[dict],
        expected_revision: int | None = None,
    ) -> dict:
        """Overwrite the session's exercises; the last write wins.

        With ``expected_revision`` the write only succeeds when nobody else
        has written the session since that revision was read.
        """
        session = check_ownership(
            uid, await self.async_sessions.fetch(session_id), "Session"
        )
        if session["status"] != "in_progress":
            raise FailedPrecondition(f"Workout session is already {session['status']}.")
        if self.enforce_set_sequence:
            self.check_set_sequence(exercises)
        expect = {"status": "in_progress"}
        if expected_revision is not None:
            expect["revision"] = expected_revision
        try:
            updated = await self.async_sessions.update(
                session_id,
                {
                    "exercises": exercises,
                    "lastUpdated": to_timestamp(self.clock()),
                    "revision": Increment(1),
                },
                expect,
            )
        except WriteConflict as e:
            logger.info(f"Rejected update of session {session_id}: {e}")
            raise FailedPrecondition("Session was modified by another request.")
        return {"success": True, "revision": updated["revision"]}

    def finish_session(
        self,
        uid: str,
        session_id: str,
        exercises: list[dict],
        expected_revision: int | None = None,
    ) -> dict:
        session = self._owned_session(uid, session_id)
        if session["status"] != "in_progress":
            raise FailedPrecondition(f"Workout session is already {session['status']}.")
        if self.users.fetch(uid) is None:
            raise NotFound("User not found.")
        if self.enforce_set_sequence:
            self.check_set_sequence(exercises)

        now = self.clock()
        stats: dict[str, int] = {}

        def user_changes(user: dict) -> dict:
            changes = self.gamification.completion_changes(user, session, exercises, now)
            stats["currentStreak"] = changes["stats.currentStreak"]
            stats["longestStreak"] = changes["stats.longestStreak"]
            return changes

        expect = {"status": "in_progress"}
        if expected_revision is not None:
            expect["revision"] = expected_revision
        batch = self.sessions.batch()
        batch.update(
            self.sessions,
            session_id,
            {
                "status": "completed",
                "dateCompleted": to_timestamp(now),
                "exercises": exercises,
                "revision": Increment(1),
            },
            expect,
        )
        batch.update(self.users, uid, user_changes)
        try:
            batch.commit()
        except WriteConflict as e:
            logger.info(f"Rejected finish of session {session_id}: {e}")
            raise FailedPrecondition("Workout session was already finished or modified.")
        logger.info(f"Finished session {session_id} uid={uid} streak={stats['currentStreak']}")
        return {"success": True, "message": "Workout completed!", "stats": stats}

    def cancel_session(self, uid: str, session_id: str) -> dict:
        session = self._owned_session(uid, session_id)
        if session["status"] != "in_progress":
            raise FailedPrecondition(f"Workout session is already {session['status']}.")
        try:
            self.sessions.update(
                session_id,
                {"status": "cancelled", "dateCancelled": to_timestamp(self.clock())},
                {"status": "in_progress"},
            )
        except WriteConflict:
            raise FailedPrecondition("Workout session was already finished or cancelled.")
        return {"success": True}
