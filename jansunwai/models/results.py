"""Inputs and outputs of the lifecycle engine operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field

from jansunwai.models.complaint import Complaint
from jansunwai.models.enums import ComplaintStatus, Priority, Role, UserResponseStatus


@dataclass(slots=True)
class SubmissionRequest:
    """A new complaint as received from the upload layer.

    ``flagged_fake`` lets a trusted caller (manual review tooling) mark
    the submission fake up front; otherwise the classifier decides.
    """

    complaint_text: str
    latitude: float
    longitude: float
    images: list[str] = field(default_factory=list)
    video_url: str | None = None
    flagged_fake: bool = False


class DuplicateLink(BaseModel):
    complaint_id: str
    complaint_text: str


class SubmissionResult(BaseModel):
    complaint: Complaint
    duplicate: DuplicateLink | None = None
    outstanding_penalty: float = 0.0


class StatusChangeResult(BaseModel):
    complaint_id: str
    old_status: ComplaintStatus
    new_status: ComplaintStatus
    logs_count: int
    updated_at: datetime


class ReopenResult(BaseModel):
    complaint_id: str
    status: ComplaintStatus
    reopen_count: int
    remaining_reopens: int
    user_feedback: str
    reopened_at: datetime


class DeletionResult(BaseModel):
    complaint_id: str
    status: ComplaintStatus
    deleted_at: datetime


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


class ActorRef(BaseModel):
    actor_id: str
    name: str
    role: Role | None = None


class TimelineTransition(BaseModel):
    status: ComplaintStatus
    changed_at: datetime
    changed_by: ActorRef | None = None
    reason: str = ""


class TimelineReopen(BaseModel):
    reopened_at: datetime
    reopened_by: ActorRef | None = None
    reason: str


class TimelineUserResponse(BaseModel):
    response_status: UserResponseStatus
    response_date: datetime | None = None
    feedback: str | None = None


class Timeline(BaseModel):
    complaint_id: str
    owner: ActorRef
    current_status: ComplaintStatus
    created_at: datetime
    updated_at: datetime
    department: str
    priority: Priority
    reopen_count: int
    status_transitions: list[TimelineTransition] = Field(default_factory=list)
    reopens: list[TimelineReopen] = Field(default_factory=list)
    user_response: TimelineUserResponse
