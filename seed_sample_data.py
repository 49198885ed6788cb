from db import UserRepository, WorkoutPlanRepository
from planner_service import PlannerService


def _exercise(name: str, sets: int, reps: str, rest: int) -> dict:
    return {
        "exerciseName": name,
        "sets": sets,
        "reps": reps,
        "weight": "0",
        "restTime": rest,
    }


COMMON_PLANS = [
    {
        "planName": "Full Body Basics",
        "description": "Three full body sessions a week built on the big lifts.",
        "days": [
            {
                "dayName": "Day A",
                "notes": "",
                "exercises": [
                    _exercise("Squat", 3, "8-10", 180),
                    _exercise("Bench Press", 3, "8-10", 180),
                    _exercise("Rows", 3, "8-12", 120),
                ],
            },
            {
                "dayName": "Day B",
                "notes": "",
                "exercises": [
                    _exercise("Deadlift", 3, "5-8", 240),
                    _exercise("Overhead Press", 3, "6-10", 150),
                    _exercise("Pull-ups", 3, "6-12", 120),
                ],
            },
            {
                "dayName": "Day C",
                "notes": "Keep rests short.",
                "exercises": [
                    _exercise("Lunges", 3, "10-12", 90),
                    _exercise("Push-ups", 3, "10-15", 90),
                    _exercise("Bicep Curls", 3, "10-15", 60),
                ],
            },
        ],
    },
    {
        "planName": "Upper / Lower Split",
        "description": "Alternate upper and lower body days.",
        "days": [
            {
                "dayName": "Upper",
                "notes": "",
                "exercises": [
                    _exercise("Bench Press", 4, "6-8", 180),
                    _exercise("Rows", 4, "8-12", 120),
                    _exercise("Overhead Press", 3, "6-10", 150),
                    _exercise("Dips", 3, "8-12", 120),
                ],
            },
            {
                "dayName": "Lower",
                "notes": "",
                "exercises": [
                    _exercise("Squat", 4, "6-8", 180),
                    _exercise("Deadlift", 3, "5-8", 240),
                    _exercise("Lunges", 3, "10-12", 90),
                ],
            },
        ],
    },
]


def seed(db_path: str = "fitbase.db") -> list[str]:
    """Store the shared plans, replacing earlier copies with the same name."""
    planner = PlannerService(WorkoutPlanRepository(db_path), UserRepository(db_path))
    plan_ids = [planner.add_common_plan(plan) for plan in COMMON_PLANS]
    print(f"Seeded {len(plan_ids)} common workout plans")
    return plan_ids


if __name__ == "__main__":
    seed()
