"""Authentication, ownership checks and account management.

Passwords are hashed with bcrypt through passlib and never logged. Callers
authenticate with a signed JWT whose ``sub`` claim is the user id.
"""

from __future__ import annotations

import datetime
import re
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext

from config import AppConfig
from db import UserRepository, now_timestamp, utc_now
from errors import (
    AlreadyExists,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
SECRET_USER_FIELDS = ("hashedPassword",)


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidArgument("Invalid email format.")
    return email.lower()


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidArgument(f"Unknown timezone: {name}")
    return name


def public_user(doc: dict) -> dict:
    """Return ``doc`` without fields that must never reach a client."""
    return {k: v for k, v in doc.items() if k not in SECRET_USER_FIELDS}


def check_ownership(uid: str, doc: Optional[dict], resource: str) -> dict:
    """Return ``doc`` when it exists and belongs to ``uid``.

    Existence is checked first so a missing document is reported as
    ``NotFound`` regardless of who asks.
    """
    if doc is None:
        raise NotFound(f"{resource} not found.")
    if doc.get("createdBy") != uid and doc.get("userId") != uid:
        raise PermissionDenied("You don't have permission to access this resource.")
    return doc


class PasswordHasher:
    """Hash and verify passwords using bcrypt."""

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password cannot be empty")
        # bcrypt hard limit: 72 bytes
        return self._context.hash(password.encode("utf-8")[:72])

    def verify(self, plain: str, hashed: str) -> bool:
        if not plain or not hashed:
            return False
        return self._context.verify(plain.encode("utf-8")[:72], hashed)


class TokenService:
    """Create and decode signed access and password-reset tokens."""

    ISSUER = "fitbase-backend"

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 60 * 24,
        reset_expire_minutes: int = 30,
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes
        self.reset_expire_minutes = reset_expire_minutes

    def _encode(self, claims: dict, minutes: int) -> str:
        now = utc_now()
        payload = {
            **claims,
            "iat": now,
            "exp": now + datetime.timedelta(minutes=minutes),
            "iss": self.ISSUER,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def _decode(self, token: str, purpose: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.ISSUER,
            )
        except JWTError as e:
            raise ValueError("Invalid or expired token") from e
        if payload.get("purpose") != purpose or not payload.get("sub"):
            raise ValueError("Invalid token")
        return payload

    def create_access_token(self, uid: str) -> str:
        if not uid:
            raise ValueError("uid cannot be empty")
        return self._encode({"sub": uid, "purpose": "access"}, self.expire_minutes)

    def decode_access_token(self, token: str) -> str:
        return str(self._decode(token, "access")["sub"])

    def create_reset_token(self, uid: str, fingerprint: str) -> str:
        return self._encode(
            {"sub": uid, "purpose": "reset", "fp": fingerprint},
            self.reset_expire_minutes,
        )

    def decode_reset_token(self, token: str) -> tuple[str, str]:
        payload = self._decode(token, "reset")
        return str(payload["sub"]), str(payload.get("fp", ""))


def _log_reset_token(email: str, token: str) -> None:
    logger.info(f"Password reset requested for {email}; no mail delivery configured")


class AuthService:
    """Sign-up, sign-in, password reset and profile management."""

    def __init__(
        self,
        users: UserRepository,
        config: AppConfig,
        reset_notifier: Callable[[str, str], None] | None = None,
    ) -> None:
        self.users = users
        self.hasher = PasswordHasher(config.bcrypt_rounds)
        self.tokens = TokenService(
            config.auth_secret_key,
            config.auth_algorithm,
            config.token_expire_minutes,
            config.reset_token_expire_minutes,
        )
        self.reset_notifier = reset_notifier or _log_reset_token

    @staticmethod
    def _fingerprint(hashed: str) -> str:
        return hashed[-16:]

    @staticmethod
    def _check_password(password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgument("Password is too weak.")

    def create_user(self, email: str, password: str) -> dict:
        email = validate_email(email)
        self._check_password(password)
        if self.users.fetch_by_email(email) is not None:
            raise AlreadyExists("Email already in use.")
        timestamp = now_timestamp()
        display_name = email.split("@")[0]
        doc = {
            "email": email,
            "hashedPassword": self.hasher.hash(password),
            "displayName": display_name,
            "createdAt": timestamp,
            "memberSince": timestamp,
            "activeWorkoutPlanId": None,
            "lastCompletedDayIndex": None,
            "weightUnit": "kg",
            "timezone": "UTC",
            "stats": {
                "totalWorkouts": 0,
                "currentStreak": 0,
                "longestStreak": 0,
                "lastWorkoutDate": None,
                "personalRecords": {},
            },
        }
        uid = self.users.add(doc)
        logger.info(f"Created user uid={uid}")
        return {
            "success": True,
            "message": "User created successfully. Please sign in.",
            "uid": uid,
        }

    def verify_user(self, email: str) -> dict:
        doc = self.users.fetch_by_email(validate_email(email))
        if doc is None:
            raise NotFound("User not found.")
        return {"exists": True, "uid": doc["id"]}

    def sign_in(self, email: str, password: str) -> dict:
        doc = self.users.fetch_by_email(email or "")
        if doc is None or not self.hasher.verify(password, doc.get("hashedPassword", "")):
            logger.warning("Sign-in failed: bad credentials")
            raise Unauthenticated("Invalid email or password.")
        return {
            "access_token": self.tokens.create_access_token(doc["id"]),
            "token_type": "bearer",
            "uid": doc["id"],
        }

    def authenticate(self, token: str | None) -> str:
        """Return the uid for a bearer ``token`` or raise ``Unauthenticated``."""
        if not token:
            raise Unauthenticated("You must be logged in.")
        try:
            uid = self.tokens.decode_access_token(token)
        except ValueError as e:
            logger.warning(f"Auth failed: {e}")
            raise Unauthenticated("Invalid authentication credentials.")
        if self.users.fetch(uid) is None:
            logger.warning(f"Auth failed: user not found uid={uid}")
            raise Unauthenticated("User not found.")
        return uid

    def initiate_password_reset(self, email: str) -> dict:
        email = validate_email(email)
        doc = self.users.fetch_by_email(email)
        if doc is not None:
            token = self.tokens.create_reset_token(
                doc["id"], self._fingerprint(doc["hashedPassword"])
            )
            self.reset_notifier(email, token)
        return {"success": True}

    def confirm_password_reset(self, token: str, new_password: str) -> dict:
        try:
            uid, fingerprint = self.tokens.decode_reset_token(token)
        except ValueError:
            raise InvalidArgument("Invalid or expired reset token.")
        doc = self.users.fetch(uid)
        if doc is None or self._fingerprint(doc["hashedPassword"]) != fingerprint:
            raise InvalidArgument("Invalid or expired reset token.")
        self._check_password(new_password)
        self.users.update(uid, {"hashedPassword": self.hasher.hash(new_password)})
        logger.info(f"Password reset for uid={uid}")
        return {"success": True}

    def _fetch_user(self, uid: str) -> dict:
        doc = self.users.fetch(uid)
        if doc is None:
            raise NotFound("User not found.")
        return doc

    def get_profile(self, uid: str) -> dict:
        doc = self._fetch_user(uid)
        return {
            "email": doc["email"],
            "displayName": doc.get("displayName", ""),
            "weightUnit": doc.get("weightUnit", "kg"),
            "timezone": doc.get("timezone", "UTC"),
        }

    def update_profile(self, uid: str, changes: dict) -> dict:
        self._fetch_user(uid)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "timezone" in changes:
            validate_timezone(changes["timezone"])
        if changes:
            self.users.update(uid, changes)
        return {"success": True, "profile": self.get_profile(uid)}


def bearer_dependency(auth: AuthService):
    """Build a FastAPI dependency returning the authenticated caller's uid."""
    scheme = HTTPBearer(auto_error=False)

    def current_uid(
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(scheme),
    ) -> str:
        token = credentials.credentials if credentials is not None else None
        uid = auth.authenticate(token)
        request.state.uid = uid
        return uid

    return current_uid
