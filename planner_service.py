from __future__ import annotations
from loguru import logger

from db import UserRepository, WorkoutPlanRepository, now_timestamp
from errors import FailedPrecondition, NotFound, PermissionDenied
from security import check_ownership


class PlannerService:
    """Handles workout plan storage and active plan selection."""

    def __init__(
        self,
        plan_repo: WorkoutPlanRepository,
        user_repo: UserRepository,
        custom_plan_limit: int = 5,
    ) -> None:
        self.plans = plan_repo
        self.users = user_repo
        self.custom_plan_limit = custom_plan_limit

    def readable_plan(self, uid: str, plan_id: str) -> dict:
        """Return a common plan or a custom plan owned by ``uid``."""
        plan = self.plans.fetch(plan_id)
        if plan is None:
            raise NotFound("Workout plan not found.")
        if plan.get("type") == "common":
            return plan
        return check_ownership(uid, plan, "Workout plan")

    def _owned_custom_plan(self, uid: str, plan_id: str) -> dict:
        plan = check_ownership(uid, self.plans.fetch(plan_id), "Workout plan")
        if plan.get("type") != "custom":
            raise PermissionDenied("Common workout plans are read-only.")
        return plan

    def library(self, uid: str) -> dict:
        user = self.users.fetch(uid) or {}
        return {
            "commonWorkouts": self.plans.fetch_common(),
            "customWorkouts": self.plans.fetch_by_creator(uid),
            "activePlanId": user.get("activeWorkoutPlanId"),
        }

    def select_plan(self, uid: str, plan_id: str) -> dict:
        self.readable_plan(uid, plan_id)
        # progress restarts with the newly selected plan
        self.users.update(
            uid, {"activeWorkoutPlanId": plan_id, "lastCompletedDayIndex": None}
        )
        return {"success": True, "message": "Workout plan selected successfully."}

    def create_plan(
        self,
        uid: str,
        description: str,
        number_of_days: int,
        days: list[dict],
    ) -> dict:
        existing = self.plans.count_custom(uid)
        if existing >= self.custom_plan_limit:
            raise FailedPrecondition(
                f"You have reached the limit of {self.custom_plan_limit} custom workout plans."
            )
        plan_name = f"Custom Workout {existing + 1}"
        plan_id = self.plans.add(
            {
                "planName": plan_name,
                "description": description or "",
                "numberOfDays": number_of_days,
                "days": days,
                "createdBy": uid,
                "createdAt": now_timestamp(),
                "type": "custom",
            }
        )
        logger.info(f"Created plan {plan_id} for uid={uid}")
        return {"success": True, "planId": plan_id, "planName": plan_name}

    def get_plan(self, uid: str, plan_id: str) -> dict:
        return self.readable_plan(uid, plan_id)

    def update_plan(self, uid: str, plan_id: str, changes: dict) -> dict:
        self._owned_custom_plan(uid, plan_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes:
            changes["updatedAt"] = now_timestamp()
            plan = self.plans.update(plan_id, changes)
        else:
            plan = self.plans.fetch(plan_id)
        return {"success": True, "plan": plan}

    def delete_plan(self, uid: str, plan_id: str) -> dict:
        self._owned_custom_plan(uid, plan_id)
        self.plans.delete(plan_id)
        user = self.users.fetch(uid)
        if user is not None and user.get("activeWorkoutPlanId") == plan_id:
            self.users.update(
                uid, {"activeWorkoutPlanId": None, "lastCompletedDayIndex": None}
            )
        logger.info(f"Deleted plan {plan_id} for uid={uid}")
        return {"success": True}

    def add_common_plan(self, plan: dict) -> str:
        """Store ``plan`` as a shared plan, replacing one with the same name."""
        doc = {
            "planName": plan["planName"],
            "description": plan.get("description", ""),
            "numberOfDays": len(plan["days"]),
            "days": plan["days"],
            "createdBy": None,
            "createdAt": now_timestamp(),
            "type": "common",
        }
        existing = self.plans.fetch_by_name(plan["planName"], "common")
        if existing is not None:
            self.plans.replace(existing["id"], doc)
            return existing["id"]
        return self.plans.add(doc)
