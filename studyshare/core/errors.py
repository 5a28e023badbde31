"""Error taxonomy shared by services and routes; converted to HTTP responses in main."""

from typing import Any


class StudyShareError(Exception):
    """Base for errors that map to a client-facing HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationFailed(StudyShareError):
    """Malformed or missing input. Carries the structured list of field errors."""

    status_code = 400

    def __init__(
        self, message: str = "Invalid input", errors: list[dict[str, Any]] | None = None
    ) -> None:
        self.errors = errors or []
        super().__init__(message)


class Conflict(StudyShareError):
    """Duplicate identity (email or username already registered)."""

    status_code = 400


class Unauthorized(StudyShareError):
    """Missing, invalid or expired credentials."""

    status_code = 401


class Forbidden(StudyShareError):
    """Authenticated but not allowed (e.g. admin route for a regular user)."""

    status_code = 403


class NotFound(StudyShareError):
    """Note or backing file does not exist."""

    status_code = 404


def field_errors_from_pydantic(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts into [{"field", "message"}] for API clients."""
    out: list[dict[str, Any]] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        out.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return out
