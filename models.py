from __future__ import annotations

import math
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_text(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        raise ValueError("expected a string or number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("must be a finite number")
    if isinstance(value, (int, float)):
        return f"{value:g}" if isinstance(value, float) else str(value)
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        if not math.isfinite(number):
            raise ValueError("must be a finite number")
    return value


class ExerciseTemplate(BaseModel):
    model_config = ConfigDict(extra="allow")

    exerciseName: str = Field(..., min_length=1)
    sets: int = Field(..., ge=0)
    reps: str = ""
    weight: str = ""
    restTime: int = Field(default=0, ge=0)

    coerce_text = field_validator("reps", "weight", mode="before")(_as_text)


class WorkoutDay(BaseModel):
    model_config = ConfigDict(extra="allow")

    dayName: str = Field(..., min_length=1)
    notes: str = ""
    exercises: list[ExerciseTemplate] = Field(default_factory=list)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_text(cls, value):
        return "" if value is None else value


class PerformanceSet(BaseModel):
    model_config = ConfigDict(extra="allow")

    weight: str = ""
    reps: str = ""
    completed: bool = False

    coerce_text = field_validator("reps", "weight", mode="before")(_as_text)


class LoggedExercise(ExerciseTemplate):
    performance: list[PerformanceSet] = Field(default_factory=list)


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: str = Field(..., min_length=1)


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=1)


class CreatePlanRequest(BaseModel):
    description: str = ""
    numberOfDays: int = Field(..., ge=1)
    days: list[WorkoutDay] = Field(..., min_length=1)


class PlanUpdate(BaseModel):
    planName: str | None = Field(default=None, min_length=1)
    description: str | None = None
    numberOfDays: int | None = Field(default=None, ge=1)
    days: list[WorkoutDay] | None = Field(default=None, min_length=1)


class UpdatePlanRequest(BaseModel):
    planData: PlanUpdate


class StartSessionRequest(BaseModel):
    planId: str = Field(..., min_length=1)
    dayIndex: int = Field(..., ge=0)


class SessionExercisesRequest(BaseModel):
    exercises: list[LoggedExercise]
    expectedRevision: int | None = Field(default=None, ge=0)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    displayName: str | None = Field(default=None, min_length=1, max_length=100)
    weightUnit: Literal["kg", "lbs"] | None = None
    timezone: str | None = None


class UpdateProfileRequest(BaseModel):
    profileData: ProfileUpdate


def dump_exercises(exercises: list[BaseModel]) -> list[dict]:
    return [e.model_dump() for e in exercises]
