"""Caller identity for complaint endpoints.

Token issuance and verification happen upstream (API gateway / identity
service).  Requests reach this service with the authenticated actor id
in the ``X-Actor-Id`` header; the dependency below resolves it through
the identity directory so handlers receive a full :class:`Actor` with
role and department.
"""

from __future__ import annotations

import structlog
from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from jansunwai.errors import DependencyUnavailable, NotFound, Unauthenticated
from jansunwai.models.identity import Actor

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

ACTOR_HEADER = "X-Actor-Id"

_actor_header = APIKeyHeader(name=ACTOR_HEADER, auto_error=False)


async def require_actor(
    request: Request,
    actor_id: str | None = Security(_actor_header),
) -> Actor:
    """FastAPI dependency returning the calling :class:`Actor`.

    Raises :class:`Unauthenticated` (401) when the header is missing or
    names no known actor.

    Usage::

        @router.post("/complaints")
        async def create(actor: Actor = Depends(require_actor)): ...
    """
    if not actor_id or not actor_id.strip():
        logger.warning(
            "auth.missing_actor",
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )
        raise Unauthenticated(f"Missing {ACTOR_HEADER} header", details={"header": ACTOR_HEADER})

    directory = getattr(request.app.state, "directory", None)
    if directory is None:
        raise DependencyUnavailable("identity", "directory not initialised")
    try:
        actor = await directory.get_actor(actor_id.strip())
    except NotFound:
        logger.warning("auth.unknown_actor", path=request.url.path, actor_id=actor_id)
        raise Unauthenticated("Unknown actor", details={"header": ACTOR_HEADER}) from None

    return actor
