"""Complaint lifecycle endpoints for JanSunwai v1.

Creation, submission, status changes, citizen close/reopen, soft delete
and the audit timeline.  Every handler is a thin wrapper: the engine
raises :class:`~jansunwai.errors.JanSunwaiError` subclasses, which the
application-level handler renders as ``{status_code, message, details}``.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, Field

from jansunwai.errors import DependencyUnavailable
from jansunwai.middleware.auth import require_actor
from jansunwai.models.complaint import Complaint
from jansunwai.models.enums import ComplaintStatus
from jansunwai.models.identity import Actor
from jansunwai.models.results import (
    DeletionResult,
    ReopenResult,
    StatusChangeResult,
    SubmissionRequest,
    SubmissionResult,
    Timeline,
)
from jansunwai.services.intake import ComplaintIntake
from jansunwai.services.lifecycle import ComplaintLifecycleEngine

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/complaints", tags=["complaints"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class CreateComplaintRequest(BaseModel):
    """Evidence references come from the upload service, not raw files."""

    complaint_text: str
    latitude: float
    longitude: float
    images: list[str] = Field(default_factory=list)
    video_url: str | None = None


class StatusChangeRequest(BaseModel):
    status: str
    reason: str | None = None
    notes: str | None = None


class CloseRequest(BaseModel):
    feedback: str | None = None


class ReopenRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=500)


class ComplaintListResponse(BaseModel):
    complaints: list[Complaint]
    total: int


class NextStatusesResponse(BaseModel):
    complaint_id: str
    current_status: ComplaintStatus
    next_statuses: list[ComplaintStatus]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _engine(request: Request) -> ComplaintLifecycleEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise DependencyUnavailable("engine", "lifecycle engine not initialised")
    return engine


def _intake(request: Request) -> ComplaintIntake:
    intake = getattr(request.app.state, "intake", None)
    if intake is None:
        raise DependencyUnavailable("intake", "complaint intake not initialised")
    return intake


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_complaint(
    body: CreateComplaintRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> dict[str, Any]:
    """File a new complaint.  It starts at ``PENDING`` until the citizen submits it."""
    result: SubmissionResult = await _intake(request).create_complaint(
        actor,
        SubmissionRequest(
            complaint_text=body.complaint_text,
            latitude=body.latitude,
            longitude=body.longitude,
            images=body.images,
            video_url=body.video_url,
        ),
    )
    message = "Complaint created"
    if result.duplicate is not None:
        message = "Complaint created and linked to an earlier similar complaint"
    return {"message": message, **result.model_dump(mode="json")}


@router.get("/mine", response_model=ComplaintListResponse)
async def list_my_complaints(
    request: Request,
    actor: Actor = Depends(require_actor),
) -> ComplaintListResponse:
    complaints = await _engine(request).list_my_complaints(actor)
    return ComplaintListResponse(complaints=complaints, total=len(complaints))


@router.get("/{complaint_id}", response_model=Complaint)
async def get_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Complaint:
    return await _engine(request).get_complaint(complaint_id, actor)


@router.post("/{complaint_id}/submit", response_model=Complaint)
async def submit_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Complaint:
    """Send a pending complaint to its department."""
    return await _engine(request).submit(complaint_id, actor)


@router.put("/{complaint_id}/status", response_model=StatusChangeResult)
async def change_status(
    complaint_id: str,
    body: StatusChangeRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> StatusChangeResult:
    return await _engine(request).change_status(
        complaint_id,
        actor,
        body.status,
        reason=body.reason,
        notes=body.notes,
    )


@router.put("/{complaint_id}/close", response_model=Complaint)
async def close_complaint(
    complaint_id: str,
    request: Request,
    body: CloseRequest | None = Body(default=None),
    actor: Actor = Depends(require_actor),
) -> Complaint:
    """Accept the resolution and close the complaint."""
    feedback = body.feedback if body is not None else None
    return await _engine(request).close(complaint_id, actor, feedback)


@router.put("/{complaint_id}/reopen", response_model=ReopenResult)
async def reopen_complaint(
    complaint_id: str,
    body: ReopenRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> ReopenResult:
    """Reject the resolution and send the complaint back to the department."""
    return await _engine(request).reopen(complaint_id, actor, body.reason)


@router.delete("/{complaint_id}", response_model=DeletionResult)
async def delete_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> DeletionResult:
    return await _engine(request).soft_delete(complaint_id, actor)


@router.get("/{complaint_id}/timeline", response_model=Timeline)
async def get_timeline(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Timeline:
    return await _engine(request).timeline(complaint_id, actor)


@router.get("/{complaint_id}/next-statuses", response_model=NextStatusesResponse)
async def get_next_statuses(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> NextStatusesResponse:
    engine = _engine(request)
    complaint = await engine.get_complaint(complaint_id, actor)
    return NextStatusesResponse(
        complaint_id=complaint_id,
        current_status=complaint.status,
        next_statuses=await engine.next_statuses(complaint_id, actor),
    )
