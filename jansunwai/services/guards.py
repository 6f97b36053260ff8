"""Shared authorization checks and bounded collaborator calls.

These run before any mutation, against a snapshot of the complaint.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from jansunwai.errors import DependencyUnavailable, NotFound, Unauthorized
from jansunwai.models.complaint import Complaint
from jansunwai.models.enums import Role
from jansunwai.models.identity import Actor

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")


async def bounded(dependency: str, awaitable: Awaitable[T], *, timeout: float) -> T:
    """Await a collaborator call, converting a timeout into :class:`DependencyUnavailable`."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as exc:
        logger.warning("dependency.timeout", dependency=dependency, timeout_seconds=timeout, exc_info=True)
        raise DependencyUnavailable(dependency, f"no response within {timeout}s") from exc


def ensure_live(complaint: Complaint) -> None:
    """Soft-deleted complaints stay readable by id but accept no workflow actions."""
    if complaint.is_deleted:
        raise NotFound("Complaint", complaint.complaint_id)


def require_owner(complaint: Complaint, actor: Actor, action: str) -> None:
    if complaint.user_id != actor.actor_id:
        raise Unauthorized(
            f"Unauthorized: You can only {action} your own complaints",
            details={"actor_id": actor.actor_id, "action": action},
        )


def require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        raise Unauthorized(
            f"Role {actor.role} may not perform this operation",
            details={"role": str(actor.role), "allowed_roles": [str(r) for r in roles]},
        )


def require_department(actor: Actor, department: str) -> None:
    """A department admin may only act inside their own department."""
    if actor.role == Role.DEPARTMENT_ADMIN and actor.department != department:
        raise Unauthorized(
            "Access denied: Not your department",
            details={"actor_department": actor.department, "department": department},
        )


def require_viewer(complaint: Complaint, actor: Actor) -> None:
    """Owner, super admin, or an admin of the complaint's department."""
    if actor.role == Role.SUPER_ADMIN or complaint.user_id == actor.actor_id:
        return
    if actor.role == Role.DEPARTMENT_ADMIN and actor.department == complaint.department:
        return
    raise Unauthorized(
        "Unauthorized: You cannot view this complaint",
        details={"actor_id": actor.actor_id},
    )
