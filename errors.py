class FitbaseError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "internal"
    status_code = 500

    def __init__(self, message: str = "Something went wrong.") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.message}


class Unauthenticated(FitbaseError):
    code = "unauthenticated"
    status_code = 401


class InvalidArgument(FitbaseError):
    code = "invalid-argument"
    status_code = 400


class NotFound(FitbaseError):
    code = "not-found"
    status_code = 404


class PermissionDenied(FitbaseError):
    code = "permission-denied"
    status_code = 403


class FailedPrecondition(FitbaseError):
    code = "failed-precondition"
    status_code = 412


class AlreadyExists(FitbaseError):
    code = "already-exists"
    status_code = 409


class Internal(FitbaseError):
    code = "internal"
    status_code = 500

