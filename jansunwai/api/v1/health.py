"""Health check endpoints for JanSunwai API v1.

Liveness and readiness probes for container deployments.  Readiness
confirms the engine and its collaborators were wired at start-up.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]


_REQUIRED_SERVICES = ("repository", "directory", "classifier", "engine", "intake", "review")


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.  Does *not* check collaborators."""
    start_time: float = getattr(request.app.state, "start_time", time.time())
    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(time.time() - start_time, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    checks: dict[str, str] = {}
    all_ok = True

    for name in _REQUIRED_SERVICES:
        if getattr(request.app.state, name, None) is not None:
            checks[name] = "ok"
        else:
            checks[name] = "not_initialised"
            all_ok = False

    repository = getattr(request.app.state, "repository", None)
    if repository is not None:
        checks["complaints_stored"] = str(repository.size)

    classifier = getattr(request.app.state, "classifier", None)
    if classifier is not None:
        checks["classifier_mode"] = "remote" if getattr(request.app.state, "classifier_remote", False) else "keyword"

    status = "ready" if all_ok else "degraded"
    logger.info("health.readiness_check", status=status, checks=checks)
    return ReadinessResponse(status=status, checks=checks)
