"""Complaint lifecycle engine.

Each mutating operation reads one snapshot of the complaint, runs every
check against it (ownership, transition table, role matrix, reopen and
delete policy), and only then hands a mutation to
:meth:`ComplaintRepository.apply` together with the status it checked
against.  If the stored status moved on in between, the write is refused
with :class:`~jansunwai.errors.ConcurrentModification`.  The status log
entry is always the last thing a mutation appends.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Final

import structlog

from jansunwai.errors import DeletionNotAllowed, NotFound, ValidationError
from jansunwai.models.complaint import Complaint, InternalNote, ReopenLogEntry
from jansunwai.models.enums import ComplaintStatus, Role, UserResponseStatus
from jansunwai.models.identity import Actor
from jansunwai.models.results import (
    ActorRef,
    DeletionResult,
    ReopenResult,
    StatusChangeResult,
    Timeline,
    TimelineReopen,
    TimelineTransition,
    TimelineUserResponse,
)
from jansunwai.services.guards import (
    ensure_live,
    require_department,
    require_owner,
    require_role,
    require_viewer,
)
from jansunwai.services.identity import IdentityDirectory
from jansunwai.services.lifecycle.permissions import can_user_change_status, permitted_edges
from jansunwai.services.lifecycle.policy import (
    DEFAULT_MAX_REOPENS,
    ensure_can_delete,
    ensure_can_reopen,
)
from jansunwai.services.lifecycle.transitions import is_valid_transition, valid_next_statuses
from jansunwai.services.repository import ComplaintRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

S = ComplaintStatus

MAX_REASON_LENGTH: Final[int] = 500
MAX_NOTES_LENGTH: Final[int] = 1000
MAX_FEEDBACK_LENGTH: Final[int] = 1000
DEFAULT_CLOSE_FEEDBACK: Final[str] = "Complaint resolution accepted"
SUBMIT_REASON: Final[str] = "Submitted by user"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _check_length(field: str, value: str | None, limit: int) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(field, f"{field} must be at most {limit} characters", max_length=limit)


def _status_result(complaint_id: str, old_status: ComplaintStatus, updated: Complaint) -> StatusChangeResult:
    return StatusChangeResult(
        complaint_id=complaint_id,
        old_status=old_status,
        new_status=updated.status,
        logs_count=len(updated.status_logs),
        updated_at=updated.updated_at,
    )


class ComplaintLifecycleEngine:
    """Authorize-then-apply operations on existing complaints."""

    def __init__(
        self,
        repository: ComplaintRepository,
        directory: IdentityDirectory,
        *,
        max_reopens: int = DEFAULT_MAX_REOPENS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._max_reopens = max_reopens
        self._clock = clock

    @property
    def max_reopens(self) -> int:
        return self._max_reopens

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_complaint(self, complaint_id: str, actor: Actor) -> Complaint:
        complaint = await self._repository.get(complaint_id)
        require_viewer(complaint, actor)
        return complaint

    async def list_my_complaints(self, actor: Actor) -> list[Complaint]:
        complaints = await self._repository.list_by_submitter(actor.actor_id)
        return [c for c in complaints if not c.is_deleted]

    async def department_queue(self, department: str, actor: Actor) -> list[Complaint]:
        require_role(actor, Role.DEPARTMENT_ADMIN, Role.SUPER_ADMIN)
        require_department(actor, department)
        return await self._repository.department_queue(department)

    async def next_statuses(self, complaint_id: str, actor: Actor) -> list[ComplaintStatus]:
        """Statuses this actor could move the complaint to right now."""
        complaint = await self.get_complaint(complaint_id, actor)
        if complaint.is_deleted:
            return []
        allowed = permitted_edges(actor.role)
        result = []
        for target in valid_next_statuses(complaint.status):
            if (complaint.status, target) not in allowed:
                continue
            if target == S.REOPENED and complaint.reopen_count >= self._max_reopens:
                continue
            result.append(target)
        return result

    async def timeline(self, complaint_id: str, actor: Actor) -> Timeline:
        """Full ordered history with actor ids resolved to names."""
        complaint = await self._repository.get(complaint_id)
        if actor.role != Role.SUPER_ADMIN:
            require_owner(complaint, actor, "view the timeline of")

        refs: dict[str, ActorRef] = {}

        async def resolve(actor_id: str) -> ActorRef:
            if actor_id not in refs:
                try:
                    found = await self._directory.get_actor(actor_id)
                    refs[actor_id] = ActorRef(
                        actor_id=actor_id,
                        name=found.display_name or actor_id,
                        role=found.role,
                    )
                except NotFound:
                    refs[actor_id] = ActorRef(actor_id=actor_id, name="Unknown")
            return refs[actor_id]

        transitions = [
            TimelineTransition(
                status=entry.status,
                changed_at=entry.changed_at,
                changed_by=await resolve(entry.changed_by),
                reason=entry.reason,
            )
            for entry in complaint.status_logs
        ]
        reopens = [
            TimelineReopen(
                reopened_at=entry.reopened_at,
                reopened_by=await resolve(entry.reopened_by),
                reason=entry.reason,
            )
            for entry in complaint.reopen_logs
        ]
        return Timeline(
            complaint_id=complaint.complaint_id,
            owner=await resolve(complaint.user_id),
            current_status=complaint.status,
            created_at=complaint.created_at,
            updated_at=complaint.updated_at,
            department=complaint.department,
            priority=complaint.priority,
            reopen_count=complaint.reopen_count,
            status_transitions=transitions,
            reopens=reopens,
            user_response=TimelineUserResponse(
                response_status=complaint.user_response.status,
                response_date=complaint.user_response.response_date,
                feedback=complaint.user_response.feedback,
            ),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def submit(self, complaint_id: str, actor: Actor) -> Complaint:
        """Send a ``PENDING`` complaint to its department queue."""
        complaint = await self._repository.get(complaint_id)
        ensure_live(complaint)
        require_owner(complaint, actor, "submit")
        is_valid_transition(complaint.status, S.SUBMITTED)
        if not complaint.images:
            raise ValidationError("images", "At least one image is required to submit")

        assignee = complaint.assigned_admin_id or await self._directory.find_department_admin(
            complaint.department
        )
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.assigned_admin_id = assignee
            working.is_sent = True
            working.submitted_at = now
            working.append_status(S.SUBMITTED, actor.actor_id, SUBMIT_REASON, now)

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate
        )
        logger.info(
            "lifecycle.submitted",
            complaint_id=complaint_id,
            department=updated.department,
            assigned_admin_id=assignee,
        )
        return updated

    async def change_status(
        self,
        complaint_id: str,
        actor: Actor,
        new_status: str,
        *,
        reason: str | None = None,
        notes: str | None = None,
    ) -> StatusChangeResult:
        """Move a complaint along one edge on behalf of *actor*.

        A citizen closing or reopening is routed through :meth:`close` and
        :meth:`reopen` so the user response is recorded the same way.

        Raises
        ------
        ValidationError
            ``reason`` or ``notes`` too long, or no reason given for a reopen.
        Unauthorized
            Wrong department for an admin, or not the owner for a citizen.
        InvalidTransition
            Rejected by the transition table, the role matrix or the
            reopen bound.
        ConcurrentModification
            The complaint changed status after it was read.
        """
        _check_length("reason", reason, MAX_REASON_LENGTH)
        _check_length("notes", notes, MAX_NOTES_LENGTH)

        complaint = await self._repository.get(complaint_id)
        ensure_live(complaint)
        require_department(actor, complaint.department)
        if actor.role == Role.USER:
            require_owner(complaint, actor, "update")

        current = complaint.status
        is_valid_transition(current, new_status)
        can_user_change_status(actor.role, current, new_status)
        target = S(new_status)
        if target == S.REOPENED:
            ensure_can_reopen(complaint.reopen_count, current, self._max_reopens)

        # A citizen answering a resolution goes through the same bookkeeping
        # as close/reopen, whichever endpoint they used.
        if actor.role == Role.USER and target == S.CLOSED:
            updated = await self.close(complaint_id, actor, reason)
            return _status_result(complaint_id, current, updated)
        if actor.role == Role.USER and target == S.REOPENED:
            updated, _ = await self._reopen(complaint_id, actor, reason or "")
            return _status_result(complaint_id, current, updated)
        if target == S.REOPENED and not (reason and reason.strip()):
            raise ValidationError("reason", "reason is required to reopen a complaint")

        log_reason = reason or f"Status changed to {target}"
        now = self._clock()

        def mutate(working: Complaint) -> None:
            if target == S.REOPENED:
                working.reopen_count += 1
                working.reopen_logs.append(
                    ReopenLogEntry(reopened_by=actor.actor_id, reason=log_reason, reopened_at=now)
                )
            if actor.role in (Role.DEPARTMENT_ADMIN, Role.SUPER_ADMIN):
                working.department_admin_id = actor.actor_id
            if notes:
                working.internal_notes.append(
                    InternalNote(note=notes, added_by=actor.actor_id, added_at=now)
                )
            working.append_status(target, actor.actor_id, log_reason, now)

        updated = await self._repository.apply(complaint_id, expected_status=current, mutate=mutate)
        logger.info(
            "lifecycle.status_changed",
            complaint_id=complaint_id,
            actor_id=actor.actor_id,
            role=actor.role,
            old_status=current,
            new_status=target,
        )
        return _status_result(complaint_id, current, updated)

    async def close(self, complaint_id: str, actor: Actor, feedback: str | None = None) -> Complaint:
        """Citizen accepts the resolution."""
        _check_length("feedback", feedback, MAX_FEEDBACK_LENGTH)
        complaint = await self._repository.get(complaint_id)
        ensure_live(complaint)
        require_owner(complaint, actor, "close")
        if complaint.status != S.RESOLVED:
            raise ValidationError(
                "status",
                "Only RESOLVED complaints can be closed",
                current_status=str(complaint.status),
            )
        is_valid_transition(complaint.status, S.CLOSED)

        response_feedback = feedback or DEFAULT_CLOSE_FEEDBACK
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.user_response.status = UserResponseStatus.ACCEPTED
            working.user_response.response_date = now
            working.user_response.feedback = response_feedback
            working.append_status(S.CLOSED, actor.actor_id, "Closed by user", now)

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate
        )
        logger.info("lifecycle.closed", complaint_id=complaint_id, user_id=actor.actor_id)
        return updated

    async def reopen(self, complaint_id: str, actor: Actor, reason: str) -> ReopenResult:
        """Citizen rejects the resolution and sends the complaint back."""
        _, result = await self._reopen(complaint_id, actor, reason)
        return result

    async def _reopen(self, complaint_id: str, actor: Actor, reason: str) -> tuple[Complaint, ReopenResult]:
        complaint = await self._repository.get(complaint_id)
        ensure_live(complaint)
        require_owner(complaint, actor, "reopen")
        if complaint.status != S.RESOLVED:
            raise ValidationError(
                "status",
                "Only RESOLVED complaints can be reopened",
                current_status=str(complaint.status),
            )
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationError("reason", "reason is required to reopen a complaint")
        _check_length("reason", cleaned, MAX_REASON_LENGTH)
        remaining = ensure_can_reopen(complaint.reopen_count, complaint.status, self._max_reopens)
        is_valid_transition(complaint.status, S.REOPENED)

        assignee = await self._directory.find_department_admin(complaint.department)
        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.user_response.status = UserResponseStatus.REJECTED
            working.user_response.response_date = now
            working.user_response.feedback = cleaned
            working.reopen_count += 1
            working.reopen_logs.append(
                ReopenLogEntry(reopened_by=actor.actor_id, reason=cleaned, reopened_at=now)
            )
            if assignee is not None:
                working.assigned_admin_id = assignee
            working.append_status(S.REOPENED, actor.actor_id, f"Reopened by user: {cleaned}", now)

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate
        )
        logger.info(
            "lifecycle.reopened",
            complaint_id=complaint_id,
            reopen_count=updated.reopen_count,
            assigned_admin_id=updated.assigned_admin_id,
        )
        return updated, ReopenResult(
            complaint_id=complaint_id,
            status=updated.status,
            reopen_count=updated.reopen_count,
            remaining_reopens=remaining - 1,
            user_feedback=cleaned,
            reopened_at=now,
        )

    async def soft_delete(self, complaint_id: str, actor: Actor) -> DeletionResult:
        """Mark a complaint deleted.  Status and history are kept."""
        complaint = await self._repository.get(complaint_id)
        if complaint.is_deleted:
            raise DeletionNotAllowed(
                "Complaint is already deleted",
                details={"complaint_id": complaint_id},
            )
        ensure_can_delete(complaint.status)
        if actor.role != Role.SUPER_ADMIN:
            require_owner(complaint, actor, "delete")

        now = self._clock()

        def mutate(working: Complaint) -> None:
            working.is_deleted = True
            working.deleted_by = actor.actor_id
            working.deleted_at = now
            working.updated_at = now

        updated = await self._repository.apply(
            complaint_id, expected_status=complaint.status, mutate=mutate
        )
        logger.info(
            "lifecycle.soft_deleted",
            complaint_id=complaint_id,
            deleted_by=actor.actor_id,
            status=updated.status,
        )
        return DeletionResult(complaint_id=complaint_id, status=updated.status, deleted_at=now)
