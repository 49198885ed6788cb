import datetime
import os
import time
from typing import Callable

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from config import APP_VERSION, AppConfig
from db import (
    AsyncWorkoutSessionRepository,
    UserRepository,
    WorkoutPlanRepository,
    WorkoutSessionRepository,
    utc_now,
)
from errors import FitbaseError, Internal, InvalidArgument
from gamification_service import GamificationService
from logger import setup_logger
from models import (
    CreatePlanRequest,
    EmailRequest,
    PasswordResetConfirm,
    SessionExercisesRequest,
    SignUpRequest,
    StartSessionRequest,
    UpdatePlanRequest,
    UpdateProfileRequest,
    dump_exercises,
)
from planner_service import PlannerService
from security import AuthService, bearer_dependency
from session_service import SessionService
from stats_service import StatisticsService


class RateLimiter:
    """Simple in-memory rate limiter."""

    def __init__(self, limit: int = 60, window: int = 60) -> None:
        self.limit = limit
        self.window = window
        self.requests: dict[str, list[float]] = {}

    async def __call__(self, request: Request, call_next):
        ip = request.client.host if request.client else "anon"
        now = time.time()
        history = [t for t in self.requests.get(ip, []) if now - t < self.window]
        if len(history) >= self.limit:
            return JSONResponse(
                status_code=429,
                content={"code": "resource-exhausted", "detail": "rate limit exceeded"},
            )
        history.append(now)
        self.requests[ip] = history
        return await call_next(request)


async def catch_unexpected(request: Request, call_next):
    """Log unexpected failures and answer with a generic internal error."""
    try:
        return await call_next(request)
    except Exception:
        uid = getattr(request.state, "uid", None)
        logger.exception(
            f"Unhandled error on {request.method} {request.url.path} uid={uid}"
        )
        error = Internal("Something went wrong.")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    if first.get("type") == "missing":
        return f"Missing required parameter: {location}"
    return f"Invalid parameter {location}: {first.get('msg')}" if location else first.get("msg", "Invalid request.")


class FitbaseAPI:
    """Provides REST endpoints for plans, workout sessions and progress."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
        *,
        rate_limit: int | None = None,
        rate_window: int | None = None,
        reset_notifier: Callable[[str, str], None] | None = None,
        clock: Callable[[], datetime.datetime] = utc_now,
        **overrides,
    ) -> None:
        self.config = AppConfig(
            yaml_path,
            db_path=db_path,
            rate_limit=rate_limit,
            rate_window=rate_window,
            **overrides,
        )
        self.db_path = self.config.db_path
        self.users = UserRepository(self.db_path)
        self.plans = WorkoutPlanRepository(self.db_path)
        self.sessions = WorkoutSessionRepository(self.db_path)
        self.async_sessions = AsyncWorkoutSessionRepository(self.db_path)
        self.auth = AuthService(self.users, self.config, reset_notifier)
        self.gamification = GamificationService()
        self.planner = PlannerService(
            self.plans, self.users, self.config.custom_plan_limit
        )
        self.session_engine = SessionService(
            self.sessions,
            self.async_sessions,
            self.users,
            self.planner,
            self.gamification,
            enforce_set_sequence=self.config.enforce_set_sequence,
            clock=clock,
        )
        self.statistics = StatisticsService(
            self.sessions,
            self.users,
            self.plans,
            records_scan_limit=self.config.records_scan_limit,
            history_max_limit=self.config.history_max_limit,
            clock=clock,
        )
        self.app = FastAPI(
            title="Fitbase API",
            description="REST API for workout plans, sessions and progress tracking",
            version=APP_VERSION,
        )
        self.app.middleware("http")(catch_unexpected)
        if self.config.rate_limit is not None:
            limiter = RateLimiter(limit=self.config.rate_limit, window=self.config.rate_window)
            self.app.middleware("http")(limiter)
        self._setup_error_handlers()
        self._setup_routes()

    def _setup_error_handlers(self) -> None:
        @self.app.exception_handler(FitbaseError)
        async def fitbase_error(request: Request, exc: FitbaseError):
            if exc.status_code >= 500:
                logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        @self.app.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError):
            error = InvalidArgument(_validation_message(exc))
            return JSONResponse(status_code=error.status_code, content=error.to_dict())

    def _setup_routes(self) -> None:
        current_uid = bearer_dependency(self.auth)

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            self.users.fetch_all("SELECT 1;")
            return {"status": "ok", "version": APP_VERSION}

        # accounts

        @self.app.post("/users", status_code=201, tags=["Accounts"])
        def create_user(payload: SignUpRequest):
            return self.auth.create_user(payload.email, payload.password)

        @self.app.post("/users/verify", tags=["Accounts"])
        def verify_user(payload: EmailRequest):
            return self.auth.verify_user(payload.email)

        @self.app.post("/auth/token", tags=["Accounts"])
        def sign_in(payload: SignUpRequest):
            return self.auth.sign_in(payload.email, payload.password)

        @self.app.post("/auth/password_reset", tags=["Accounts"])
        def initiate_password_reset(payload: EmailRequest):
            return self.auth.initiate_password_reset(payload.email)

        @self.app.post("/auth/password_reset/confirm", tags=["Accounts"])
        def confirm_password_reset(payload: PasswordResetConfirm):
            return self.auth.confirm_password_reset(payload.token, payload.newPassword)

        @self.app.get("/profile", tags=["Accounts"])
        def get_profile(uid: str = Depends(current_uid)):
            return self.auth.get_profile(uid)

        @self.app.put("/profile", tags=["Accounts"])
        def update_profile(payload: UpdateProfileRequest, uid: str = Depends(current_uid)):
            return self.auth.update_profile(
                uid, payload.profileData.model_dump(exclude_unset=True)
            )

        @self.app.get(
            "/dashboard",
            summary="Dashboard",
            description="User data, active plan, recent workouts and the next workout day.",
        )
        def dashboard(uid: str = Depends(current_uid)):
            return self.statistics.dashboard(uid)

        # plans

        @self.app.get("/plans", tags=["Plans"])
        def workout_library(uid: str = Depends(current_uid)):
            return self.planner.library(uid)

        @self.app.post("/plans", tags=["Plans"])
        def create_plan(payload: CreatePlanRequest, uid: str = Depends(current_uid)):
            return self.planner.create_plan(
                uid,
                payload.description,
                payload.numberOfDays,
                [d.model_dump() for d in payload.days],
            )

        @self.app.get("/plans/{plan_id}", tags=["Plans"])
        def get_plan(plan_id: str, uid: str = Depends(current_uid)):
            return self.planner.get_plan(uid, plan_id)

        @self.app.put("/plans/{plan_id}", tags=["Plans"])
        def update_plan(
            plan_id: str,
            payload: UpdatePlanRequest,
            uid: str = Depends(current_uid),
        ):
            return self.planner.update_plan(
                uid, plan_id, payload.planData.model_dump(exclude_unset=True)
            )

        @self.app.delete("/plans/{plan_id}", tags=["Plans"])
        def delete_plan(plan_id: str, uid: str = Depends(current_uid)):
            return self.planner.delete_plan(uid, plan_id)

        @self.app.post("/plans/{plan_id}/select", tags=["Plans"])
        def select_plan(plan_id: str, uid: str = Depends(current_uid)):
            return self.planner.select_plan(uid, plan_id)

        # sessions

        @self.app.post("/sessions", tags=["Sessions"])
        def start_session(payload: StartSessionRequest, uid: str = Depends(current_uid)):
            return self.session_engine.start_session(uid, payload.planId, payload.dayIndex)

        @self.app.get("/sessions/{session_id}", tags=["Sessions"])
        def get_session(session_id: str, uid: str = Depends(current_uid)):
            return self.session_engine.get_session(uid, session_id)

        @self.app.put("/sessions/{session_id}", tags=["Sessions"])
        async def update_session(
            session_id: str,
            payload: SessionExercisesRequest,
            uid: str = Depends(current_uid),
        ):
            return await self.session_engine.update_session(
                uid,
                session_id,
                dump_exercises(payload.exercises),
                payload.expectedRevision,
            )

        @self.app.post("/sessions/{session_id}/finish", tags=["Sessions"])
        def finish_session(
            session_id: str,
            payload: SessionExercisesRequest,
            uid: str = Depends(current_uid),
        ):
            return self.session_engine.finish_session(
                uid,
                session_id,
                dump_exercises(payload.exercises),
                payload.expectedRevision,
            )

        @self.app.post("/sessions/{session_id}/cancel", tags=["Sessions"])
        def cancel_session(session_id: str, uid: str = Depends(current_uid)):
            return self.session_engine.cancel_session(uid, session_id)

        # progress

        @self.app.get("/history", tags=["Progress"])
        def workout_history(
            limit: int = 20,
            startAfter: str | None = None,
            uid: str = Depends(current_uid),
        ):
            return self.statistics.history(uid, limit, startAfter)

        @self.app.get("/calendar", tags=["Progress"])
        def calendar(startDate: str, endDate: str, uid: str = Depends(current_uid)):
            return self.statistics.calendar(uid, startDate, endDate)

        @self.app.get("/analytics", tags=["Progress"])
        def analytics(period: str = "month", uid: str = Depends(current_uid)):
            return self.statistics.analytics(uid, period)

        @self.app.get("/records", tags=["Progress"])
        def personal_records(uid: str = Depends(current_uid)):
            return self.statistics.personal_records(uid)


def create_app(yaml_path: str | None = None) -> FastAPI:
    """Build the application from ``settings.yaml`` (or ``$FITBASE_SETTINGS``)."""
    api = FitbaseAPI(yaml_path=yaml_path or os.environ.get("FITBASE_SETTINGS", "settings.yaml"))
    setup_logger(api.config.log_level, api.config.log_file)
    logger.info(f"Fitbase API {APP_VERSION} using database {api.db_path}")
    return api.app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())
