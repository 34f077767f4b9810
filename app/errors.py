"""Error taxonomy for the event pipeline.

Each error carries the HTTP status it maps to; the API layer renders
them as ``{"error": message, "detail": detail}``.
"""

from typing import Any


class PipelineError(Exception):
    """Base class for pipeline errors surfaced to calling services."""

    status_code: int = 500

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class ValidationError(PipelineError):
    """A required request field is missing or empty."""

    status_code = 400


class AuthError(PipelineError):
    """Shared-secret header did not match."""

    status_code = 401


class NotFoundError(PipelineError):
    """Referenced record does not exist."""

    status_code = 404


class StorageError(PipelineError):
    """A persistence call failed. ``detail`` holds the raw driver message."""

    status_code = 500


class ActionError(PipelineError):
    """A single automation action failed.

    Never surfaced over HTTP; the rule engine converts it into a
    per-automation outcome.
    """

    def __init__(self, action_type: str, message: str) -> None:
        super().__init__(message, detail={"action_type": action_type})
        self.action_type = action_type
