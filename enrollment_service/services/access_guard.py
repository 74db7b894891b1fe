"""Access gate for enrollment operations.

Checked on every gated call with the current time; nothing about expiry is
cached on the record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from enrollment_service.core.errors import ForbiddenError
from enrollment_service.models.enrollment import Enrollment

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None


ALLOWED = AccessDecision(allowed=True)


def check(enrollment: Enrollment, now: int) -> AccessDecision:
    if not enrollment.is_active:
        return AccessDecision(allowed=False, reason="access revoked")
    if enrollment.is_expired(now):
        return AccessDecision(allowed=False, reason="access expired")
    return ALLOWED


def ensure_access(enrollment: Enrollment, learner_id: str, now: int) -> None:
    """Raise ForbiddenError unless ``learner_id`` owns an accessible enrollment."""
    if enrollment.learner_id != learner_id:
        logger.warning(
            "Access denied: learner=%s does not own enrollment=%s",
            learner_id,
            enrollment.id,
            extra={"enrollment_id": str(enrollment.id), "learner_id": learner_id},
        )
        raise ForbiddenError("enrollment does not belong to caller")

    decision = check(enrollment, now)
    if not decision.allowed:
        logger.warning(
            "Access denied: enrollment=%s %s",
            enrollment.id,
            decision.reason,
            extra={"enrollment_id": str(enrollment.id), "learner_id": learner_id},
        )
        raise ForbiddenError(decision.reason or "access denied")
