"""
Exception Hierarchy

Every error raised on purpose by the service derives from ChimeraError.
Each subclass carries the HTTP status it maps to; the handlers registered
in ``chimera_sync.main`` render them as ``{"error": message, ...}``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chimera_sync.services.quota import QuotaDenial


class ChimeraError(Exception):
    """
    Base exception for all service errors.

    Args:
        message: Human-readable message returned to the client.
        context: Extra fields merged into the JSON error body.
    """

    status_code: int = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, **self.context}


class AuthenticationError(ChimeraError):
    """Missing, malformed or unverifiable bearer credential."""

    status_code = 401


class ValidationError(ChimeraError):
    """Request payload failed validation."""

    status_code = 400


class InvalidNoteIdError(ValidationError):
    """Note id is not a well-formed identifier."""

    def __init__(self, raw_id: str):
        super().__init__("Invalid note id")
        self.raw_id = raw_id


class NotFoundError(ChimeraError):
    """Requested resource does not exist or is not owned by the caller."""

    status_code = 404


class QuotaExceededError(ChimeraError):
    """A note write would exceed the owner's plan limits."""

    status_code = 403

    def __init__(self, denial: QuotaDenial):
        super().__init__(denial.message, denial.to_payload())
        self.denial = denial


class UpgradeRejectedError(ChimeraError):
    """Upgrade request did not carry an accepted code."""

    status_code = 403


class StoreUnavailableError(ChimeraError):
    """Persistent store is not connected or a store call failed."""

    status_code = 503

    def __init__(self, message: str = "Database unavailable"):
        super().__init__(message)


class AiUnavailableError(ChimeraError):
    """
    No AI candidate produced a reply.

    ``last_error`` keeps the final upstream failure for server-side logs;
    it is never sent to the client.
    """

    status_code = 503

    def __init__(
        self,
        message: str = "AI service unavailable",
        last_error: Exception | None = None,
    ):
        super().__init__(message)
        self.last_error = last_error
