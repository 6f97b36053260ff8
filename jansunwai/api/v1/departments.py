"""Department-side endpoints: work queue, department summary, AI summary refresh."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from jansunwai.errors import DependencyUnavailable
from jansunwai.middleware.auth import require_actor
from jansunwai.models.complaint import Complaint
from jansunwai.models.identity import Actor
from jansunwai.services.lifecycle import ComplaintLifecycleEngine
from jansunwai.services.review import ReviewService

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["departments"])


class DepartmentQueueResponse(BaseModel):
    department: str
    complaints: list[Complaint]
    total: int


class DepartmentSummaryRequest(BaseModel):
    summary: str = Field(..., min_length=1, max_length=2000)


def _engine(request: Request) -> ComplaintLifecycleEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise DependencyUnavailable("engine", "lifecycle engine not initialised")
    return engine


def _review(request: Request) -> ReviewService:
    review = getattr(request.app.state, "review", None)
    if review is None:
        raise DependencyUnavailable("review", "review service not initialised")
    return review


@router.get("/departments/{department}/complaints", response_model=DepartmentQueueResponse)
async def department_queue(
    department: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> DepartmentQueueResponse:
    """Submitted complaints for one department, newest submission first."""
    complaints = await _engine(request).department_queue(department, actor)
    return DepartmentQueueResponse(department=department, complaints=complaints, total=len(complaints))


@router.patch("/complaints/{complaint_id}/department-summary", response_model=Complaint)
async def set_department_summary(
    complaint_id: str,
    body: DepartmentSummaryRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Complaint:
    return await _review(request).set_department_summary(complaint_id, actor, body.summary)


@router.post("/complaints/{complaint_id}/summary/regenerate", response_model=Complaint)
async def regenerate_summary(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> Complaint:
    """Ask the classifier for a fresh AI summary of the complaint text."""
    return await _review(request).regenerate_summary(complaint_id, actor)
