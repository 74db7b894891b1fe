"""Error taxonomy for enrollment operations.

Every failure a caller can see is one of four kinds.  ``ConflictError`` is
the only retryable one; the other three will never succeed on retry with
the same input.

Routers translate these into HTTP responses (see
``enrollment_service.api.errors``); services never raise
``HTTPException`` themselves.
"""

from __future__ import annotations


class EnrollmentError(Exception):
    """Base class: carries a taxonomy kind and a human-readable reason."""

    kind = "error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)

    @property
    def retryable(self) -> bool:
        return False


class NotFoundError(EnrollmentError):
    """Course, content or enrollment absent, or content not published."""

    kind = "not_found"


class ForbiddenError(EnrollmentError):
    """Caller does not own the enrollment, or access is inactive/expired."""

    kind = "forbidden"


class ConflictError(EnrollmentError):
    """Concurrent-mutation retry budget exhausted."""

    kind = "conflict"

    @property
    def retryable(self) -> bool:
        return True


class InvalidError(EnrollmentError):
    """Malformed input (negative duration, out-of-range progress)."""

    kind = "invalid"


# --- Storage-level signals (internal, converted by the service) ---


class VersionConflictError(Exception):
    """The stored record moved past the version the writer read."""


class EnrollmentExistsError(Exception):
    """An enrollment for this (learner, course) pair already exists."""
