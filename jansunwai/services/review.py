"""Administrative review: department summaries and manual fraud review."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Final

import structlog

from jansunwai.errors import DependencyUnavailable, ValidationError
from jansunwai.models.complaint import Complaint
from jansunwai.models.enums import Role
from jansunwai.models.identity import Actor, SubmitterStanding
from jansunwai.services.classifier import ComplaintClassifier
from jansunwai.services.guards import bounded, ensure_live, require_department, require_role
from jansunwai.services.identity import IdentityDirectory
from jansunwai.services.repository import ComplaintRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

MAX_SUMMARY_LENGTH: Final[int] = 2000
MANUAL_FLAG_PREFIX: Final[str] = "MANUAL FLAG: "


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReviewService:
    """Summaries written by departments and the super admin's fraud desk.

    These writes do not move the complaint's status, but they still go
    through the repository's compare-and-apply so they never land on a
    record that was deleted or moved on after it was read.
    """

    def __init__(
        self,
        repository: ComplaintRepository,
        classifier: ComplaintClassifier,
        *,
        directory: IdentityDirectory | None = None,
        dependency_timeout: float = 10.0,
        high_risk_threshold: float = 70.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._classifier = classifier
        self._directory = directory
        self._timeout = dependency_timeout
        self._high_risk_threshold = high_risk_threshold
        self._clock = clock

    # -- Department side -------------------------------------------------------

    async def set_department_summary(self, complaint_id: str, actor: Actor, summary: str) -> Complaint:
        require_role(actor, Role.DEPARTMENT_ADMIN, Role.SUPER_ADMIN)
        text = (summary or "").strip()
        if not text:
            raise ValidationError("department_summary", "department_summary must not be empty")
        if len(text) > MAX_SUMMARY_LENGTH:
            raise ValidationError(
                "department_summary",
                f"department_summary must be at most {MAX_SUMMARY_LENGTH} characters",
                max_length=MAX_SUMMARY_LENGTH,
            )

        complaint = await self._repository.get(complaint_id)
        ensure_live(complaint)
        require_department(actor, complaint.department)
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.department_summary = text
            working.department_admin_id = actor.actor_id
            working.updated_at = now

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate
        )
        logger.info("review.department_summary_set", complaint_id=complaint_id, admin_id=actor.actor_id)
        return updated

    async def regenerate_summary(self, complaint_id: str, actor: Actor) -> Complaint:
        require_role(actor, Role.DEPARTMENT_ADMIN, Role.SUPER_ADMIN)
        complaint = await self._repository.get(complaint_id)
        ensure_live(complaint)
        require_department(actor, complaint.department)

        summary = await bounded(
            "classifier",
            self._classifier.summarize(complaint.complaint_text),
            timeout=self._timeout,
        )
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.ai_summary = summary or None
            working.updated_at = now

        return await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate
        )

    # -- Fraud desk (super admin) -----------------------------------------------

    async def mark_fake(self, complaint_id: str, actor: Actor, reason: str) -> Complaint:
        """Flag a complaint fake by hand.

        The submitter's standing is not touched; penalties are imposed
        only by the admission gate.
        """
        require_role(actor, Role.SUPER_ADMIN)
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationError("reason", "reason is required to mark a complaint fake")

        complaint = await self._repository.get(complaint_id)
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.is_flagged_fake = True
            working.fake_detection_notes.append(f"{MANUAL_FLAG_PREFIX}{cleaned}")
            working.updated_at = now

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate, allow_deleted=True
        )
        logger.warning("review.marked_fake", complaint_id=complaint_id, admin_id=actor.actor_id)
        return updated

    async def unmark_fake(self, complaint_id: str, actor: Actor) -> Complaint:
        require_role(actor, Role.SUPER_ADMIN)
        complaint = await self._repository.get(complaint_id)
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.is_flagged_fake = False
            working.updated_at = now

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate, allow_deleted=True
        )
        logger.info("review.unmarked_fake", complaint_id=complaint_id, admin_id=actor.actor_id)
        return updated

    async def flagged(self, actor: Actor) -> list[Complaint]:
        require_role(actor, Role.SUPER_ADMIN)
        return await self._repository.flagged()

    async def high_risk(self, actor: Actor, min_risk: float | None = None) -> list[Complaint]:
        require_role(actor, Role.SUPER_ADMIN)
        threshold = self._high_risk_threshold if min_risk is None else min_risk
        if not 0 <= threshold <= 100:
            raise ValidationError("min_risk", "min_risk must be between 0 and 100")
        return await self._repository.high_risk(threshold)

    async def all_complaints(self, actor: Actor, *, include_deleted: bool = False) -> list[Complaint]:
        """Every complaint with its duplicate links, newest first."""
        require_role(actor, Role.SUPER_ADMIN)
        return await self._repository.all(include_deleted=include_deleted)

    async def settle_penalty(self, user_id: str, actor: Actor) -> SubmitterStanding:
        """Record a confirmed penalty payment and lift the submitter's block.

        Payment itself happens outside this service; the super admin
        confirms it here.
        """
        require_role(actor, Role.SUPER_ADMIN)
        if self._directory is None:
            raise DependencyUnavailable("identity", "no identity directory configured")
        standing = await self._directory.get_standing(user_id)
        if not standing.is_blocked and standing.outstanding_penalty == 0:
            raise ValidationError("user_id", f"user_id {user_id} has no outstanding penalty")
        settled = await self._directory.settle_penalty(user_id)
        logger.info("review.penalty_settled", user_id=user_id, admin_id=actor.actor_id)
        return settled
