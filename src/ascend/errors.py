"""Error taxonomy raised at the service/HTTP boundary."""

from __future__ import annotations


class AscendError(Exception):
    """Base class for boundary errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AscendError, ValueError):
    """Missing field, out-of-range value or unknown enum member."""

    status_code = 400

    @classmethod
    def from_pydantic(cls, exc, message: str = "Invalid request payload") -> "ValidationError":
        """Collapse a pydantic ValidationError into field -> messages."""

        structured: dict[str, list[str]] = {}
        for error in exc.errors(include_url=False):
            loc = error.get("loc", ())
            key = str(loc[0]) if loc else "__root__"
            structured.setdefault(key, []).append(error.get("msg", "Invalid value"))
        return cls(message, details=structured)


class NotFoundError(AscendError):
    """Referenced record is absent or not owned by the caller."""

    status_code = 404


class StateConflictError(AscendError):
    """Operation attempted from a state that does not allow it."""

    status_code = 400


__all__ = ["AscendError", "NotFoundError", "StateConflictError", "ValidationError"]
