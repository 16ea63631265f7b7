"""
Error Taxonomy
Every failure the job layer can report. Each error carries a stable ``code``
that is persisted on failed jobs, and a ``billable`` flag: policy blocks and
model refusals are never charged to the requester.
"""

from typing import Optional


class StudioError(Exception):
    """Base exception for job orchestration errors."""

    code = "internal_error"
    billable = True

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthError(StudioError):
    """Missing or invalid caller identity."""
    code = "auth_error"


class NotFoundError(StudioError):
    """Record missing, or not owned by the caller."""
    code = "not_found"


class ConflictError(StudioError):
    """Job is already running or already finished."""
    code = "conflict"


class ValidationError(StudioError):
    """A required processor input is missing or unusable."""
    code = "validation_error"


class UpstreamSafetyBlock(StudioError):
    """The model blocked the prompt or the generation on policy grounds."""
    code = "safety_blocked"
    billable = False


class UpstreamRefusal(StudioError):
    """The model answered an image request with text only."""
    code = "refused"
    billable = False


class UpstreamMalformed(StudioError):
    """The model answered, but not in the shape we asked for."""
    code = "malformed"


class EmptyResponse(StudioError):
    """The model returned no candidate or no content."""
    code = "empty"


class TransportError(StudioError):
    """Network or API failure talking to the model or to blob storage."""
    code = "transport_error"


class PersistenceError(StudioError):
    """Writing a processor side effect failed."""
    code = "persistence_error"


__all__ = [
    "StudioError",
    "AuthError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "UpstreamSafetyBlock",
    "UpstreamRefusal",
    "UpstreamMalformed",
    "EmptyResponse",
    "TransportError",
    "PersistenceError",
]
