import requests
from typing import Optional


class ApiError(Exception):
    """Error response returned by the Fitbase API."""

    def __init__(self, code: str, status: int, detail: str) -> None:
        super().__init__(f"{status} {code}: {detail}")
        self.code = code
        self.status = status
        self.detail = detail


class FitbaseClient:
    """Simple REST client for the Fitbase API.

    When credentials are given the client signs in lazily and, if a request
    is rejected as unauthenticated, signs in again and retries it once.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        email: Optional[str] = None,
        password: Optional[str] = None,
        session=None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.password = password
        self.session = session if session is not None else requests.Session()
        self.token: Optional[str] = None

    @staticmethod
    def _raise_for(resp) -> None:
        if resp.status_code < 400:
            return
        try:
            body = resp.json()
        except ValueError:
            body = {}
        raise ApiError(
            body.get("code", "unknown"),
            resp.status_code,
            body.get("detail", resp.text),
        )

    def sign_in(self, email: Optional[str] = None, password: Optional[str] = None) -> str:
        if email is not None:
            self.email = email
        if password is not None:
            self.password = password
        resp = self.session.post(
            f"{self.base_url}/auth/token",
            json={"email": self.email, "password": self.password},
        )
        self._raise_for(resp)
        self.token = resp.json()["access_token"]
        return self.token

    def _request(self, method: str, path: str, auth: bool = True, **kwargs):
        extra_headers = kwargs.pop("headers", None) or {}
        for attempt in range(2):
            headers = dict(extra_headers)
            if auth:
                if self.token is None and self.email:
                    self.sign_in()
                if self.token:
                    headers["Authorization"] = f"Bearer {self.token}"
            resp = self.session.request(
                method, f"{self.base_url}{path}", headers=headers, **kwargs
            )
            if resp.status_code == 401 and auth and self.email and attempt == 0:
                self.token = None
                continue
            self._raise_for(resp)
            return resp.json()

    # accounts

    def create_user(self, email: str, password: str) -> dict:
        return self._request(
            "POST", "/users", auth=False, json={"email": email, "password": password}
        )

    def verify_user(self, email: str) -> dict:
        return self._request("POST", "/users/verify", auth=False, json={"email": email})

    def request_password_reset(self, email: str) -> dict:
        return self._request(
            "POST", "/auth/password_reset", auth=False, json={"email": email}
        )

    def confirm_password_reset(self, token: str, new_password: str) -> dict:
        return self._request(
            "POST",
            "/auth/password_reset/confirm",
            auth=False,
            json={"token": token, "newPassword": new_password},
        )

    def get_profile(self) -> dict:
        return self._request("GET", "/profile")

    def update_profile(self, **profile_data) -> dict:
        return self._request("PUT", "/profile", json={"profileData": profile_data})

    def dashboard(self) -> dict:
        return self._request("GET", "/dashboard")

    # plans

    def workout_library(self) -> dict:
        return self._request("GET", "/plans")

    def create_plan(self, days: list[dict], description: str = "") -> dict:
        return self._request(
            "POST",
            "/plans",
            json={"description": description, "numberOfDays": len(days), "days": days},
        )

    def get_plan(self, plan_id: str) -> dict:
        return self._request("GET", f"/plans/{plan_id}")

    def update_plan(self, plan_id: str, **plan_data) -> dict:
        return self._request("PUT", f"/plans/{plan_id}", json={"planData": plan_data})

    def delete_plan(self, plan_id: str) -> dict:
        return self._request("DELETE", f"/plans/{plan_id}")

    def select_plan(self, plan_id: str) -> dict:
        return self._request("POST", f"/plans/{plan_id}/select")

    # sessions

    def start_session(self, plan_id: str, day_index: int) -> dict:
        return self._request(
            "POST", "/sessions", json={"planId": plan_id, "dayIndex": day_index}
        )

    def get_session(self, session_id: str) -> dict:
        return self._request("GET", f"/sessions/{session_id}")

    def update_session(
        self, session_id: str, exercises: list[dict], expected_revision: Optional[int] = None
    ) -> dict:
        return self._request(
            "PUT",
            f"/sessions/{session_id}",
            json={"exercises": exercises, "expectedRevision": expected_revision},
        )

    def finish_session(self, session_id: str, exercises: list[dict]) -> dict:
        return self._request(
            "POST", f"/sessions/{session_id}/finish", json={"exercises": exercises}
        )

    def cancel_session(self, session_id: str) -> dict:
        return self._request("POST", f"/sessions/{session_id}/cancel")

    # progress

    def history(self, limit: int = 20, start_after: Optional[str] = None) -> dict:
        params = {"limit": limit}
        if start_after:
            params["startAfter"] = start_after
        return self._request("GET", "/history", params=params)

    def calendar(self, start_date: str, end_date: str) -> dict:
        return self._request(
            "GET", "/calendar", params={"startDate": start_date, "endDate": end_date}
        )

    def analytics(self, period: str = "month") -> dict:
        return self._request("GET", "/analytics", params={"period": period})

    def personal_records(self) -> dict:
        return self._request("GET", "/records")
