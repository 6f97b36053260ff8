"""Fraud review desk for super admins.

Manual flags are recorded on the complaint only; penalties are imposed
by the admission gate when a submission is flagged at intake, and lifted
here once the payment is confirmed.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from jansunwai.errors import DependencyUnavailable
from jansunwai.middleware.auth import require_actor
from jansunwai.models.complaint import Complaint
from jansunwai.models.identity import Actor, SubmitterStanding
from jansunwai.services.review import ReviewService

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/fraud", tags=["fraud-review"])


class ReviewListResponse(BaseModel):
    complaints: list[Complaint]
    total: int


class MarkFakeRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


def _review(request: Request) -> ReviewService:
    review = getattr(request.app.state, "review", None)
    if review is None:
        raise DependencyUnavailable("review", "review service not initialised")
    return review


@router.get("/flagged", response_model=ReviewListResponse)
async def list_flagged(
    request: Request,
    actor: Actor = Depends(require_actor),
) -> ReviewListResponse:
    complaints = await _review(request).flagged(actor)
    return ReviewListResponse(complaints=complaints, total=len(complaints))


@router.get("/high-risk", response_model=ReviewListResponse)
async def list_high_risk(
    request: Request,
    min_risk: float | None = Query(default=None, ge=0, le=100, description="Minimum risk score"),
    actor: Actor = Depends(require_actor),
) -> ReviewListResponse:
    """Complaints at or above the risk threshold, highest risk first."""
    complaints = await _review(request).high_risk(actor, min_risk)
    return ReviewListResponse(complaints=complaints, total=len(complaints))


@router.patch("/{complaint_id}/mark-fake", response_model=Complaint)
async def mark_fake(
    complaint_id: str,
    body: MarkFakeRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Complaint:
    return await _review(request).mark_fake(complaint_id, actor, body.reason)


@router.patch("/{complaint_id}/unmark-fake", response_model=Complaint)
async def unmark_fake(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Complaint:
    return await _review(request).unmark_fake(complaint_id, actor)


@router.get("/complaints", response_model=ReviewListResponse)
async def list_all_complaints(
    request: Request,
    include_deleted: bool = Query(default=False),
    actor: Actor = Depends(require_actor),
) -> ReviewListResponse:
    """Every complaint with its duplicate links, newest first."""
    complaints = await _review(request).all_complaints(actor, include_deleted=include_deleted)
    return ReviewListResponse(complaints=complaints, total=len(complaints))


@router.post("/submitters/{user_id}/settle-penalty", response_model=SubmitterStanding)
async def settle_penalty(
    user_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> SubmitterStanding:
    """Confirm an externally paid penalty and lift the submitter's block."""
    return await _review(request).settle_penalty(user_id, actor)
