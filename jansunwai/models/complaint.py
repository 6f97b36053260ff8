"""Complaint record and its embedded logs.

A complaint moves through the status state machine from ``PENDING``.
The status log is append-only and its last entry always mirrors the
current status once the complaint has left ``PENDING``; the reopen log
grows in step with ``reopen_count``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from jansunwai.models.enums import ComplaintStatus, Priority, UserResponseStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StatusLogEntry(BaseModel):
    model_config = {"frozen": True}

    status: ComplaintStatus
    changed_by: str
    changed_at: datetime = Field(default_factory=_utcnow)
    reason: str = ""


class ReopenLogEntry(BaseModel):
    model_config = {"frozen": True}

    reopened_by: str
    reason: str
    reopened_at: datetime = Field(default_factory=_utcnow)


class InternalNote(BaseModel):
    model_config = {"frozen": True}

    note: str
    added_by: str
    added_at: datetime = Field(default_factory=_utcnow)


class UserResponse(BaseModel):
    """Citizen's verdict on a resolution."""

    status: UserResponseStatus = UserResponseStatus.PENDING_REVIEW
    response_date: datetime | None = None
    feedback: str | None = None


class Complaint(BaseModel):
    """A citizen grievance with evidence, location and workflow state."""

    model_config = {"frozen": False, "validate_assignment": False}

    complaint_id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str

    # -- Content -----------------------------------------------------------
    complaint_text: str = Field(..., min_length=10)
    images: list[str] = Field(default_factory=list)
    video_url: str | None = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    # -- Classification ----------------------------------------------------
    department: str
    confidence: float = 0.0
    ai_summary: str | None = None
    priority: Priority = Priority.MEDIUM

    # -- Lifecycle ---------------------------------------------------------
    status: ComplaintStatus = ComplaintStatus.PENDING
    status_logs: list[StatusLogEntry] = Field(default_factory=list)
    reopen_count: int = 0
    reopen_logs: list[ReopenLogEntry] = Field(default_factory=list)
    user_response: UserResponse = Field(default_factory=UserResponse)
    is_sent: bool = False
    submitted_at: datetime | None = None

    # -- Duplicate linkage -------------------------------------------------
    is_duplicate: bool = False
    duplicate_of: str | None = None
    duplicates: list[str] = Field(default_factory=list)

    # -- Fraud linkage -----------------------------------------------------
    risk_score: float = 0.0
    is_flagged_fake: bool = False
    fake_detection_notes: list[str] = Field(default_factory=list)

    # -- Administrative ----------------------------------------------------
    assigned_admin_id: str | None = None
    department_summary: str | None = None
    department_admin_id: str | None = None
    internal_notes: list[InternalNote] = Field(default_factory=list)
    is_deleted: bool = False
    deleted_by: str | None = None
    deleted_at: datetime | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def append_status(self, status: ComplaintStatus, actor_id: str, reason: str, at: datetime) -> None:
        """Move to *status* and record it.  Callers must have authorized the edge."""
        self.status = status
        self.status_logs.append(
            StatusLogEntry(status=status, changed_by=actor_id, changed_at=at, reason=reason)
        )
        self.updated_at = at
