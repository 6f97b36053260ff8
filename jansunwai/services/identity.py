"""Identity collaborator: actors, display names and submitter standing.

Account storage, password hashing, OTP delivery and token issuance live
outside this service.  The engine talks to them through
:class:`IdentityDirectory`; :class:`InMemoryIdentityDirectory` is the
in-process implementation used by the API and the test-suite.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

import structlog

from jansunwai.errors import NotFound
from jansunwai.models.enums import Role
from jansunwai.models.identity import Actor, SubmitterStanding

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@runtime_checkable
class IdentityDirectory(Protocol):
    """Async interface to the identity service."""

    async def get_actor(self, actor_id: str) -> Actor: ...

    async def find_department_admin(self, department: str) -> str | None: ...

    async def get_standing(self, user_id: str) -> SubmitterStanding: ...

    async def save_standing(self, standing: SubmitterStanding) -> None: ...

    async def settle_penalty(self, user_id: str) -> SubmitterStanding: ...


class InMemoryIdentityDirectory:
    """Dict-backed :class:`IdentityDirectory`.

    Standing records are created lazily with every field false/zero, the
    same way a freshly registered account starts.
    """

    __slots__ = ("_actors", "_lock", "_standing")

    def __init__(self, actors: list[Actor] | None = None) -> None:
        self._actors: dict[str, Actor] = {}
        self._standing: dict[str, SubmitterStanding] = {}
        self._lock = asyncio.Lock()
        for actor in actors or []:
            self.register(actor)

    def register(self, actor: Actor) -> Actor:
        self._actors[actor.actor_id] = actor
        return actor

    # -- IdentityDirectory interface -------------------------------------------

    async def get_actor(self, actor_id: str) -> Actor:
        actor = self._actors.get(actor_id)
        if actor is None:
            raise NotFound("Actor", actor_id)
        return actor

    async def find_department_admin(self, department: str) -> str | None:
        """First verified department admin registered for *department*."""
        for actor in self._actors.values():
            if (
                actor.role == Role.DEPARTMENT_ADMIN
                and actor.department == department
                and actor.is_verified
            ):
                return actor.actor_id
        return None

    async def get_standing(self, user_id: str) -> SubmitterStanding:
        async with self._lock:
            standing = self._standing.get(user_id)
            if standing is None:
                standing = SubmitterStanding(user_id=user_id)
                self._standing[user_id] = standing
            return standing.model_copy()

    async def save_standing(self, standing: SubmitterStanding) -> None:
        async with self._lock:
            self._standing[standing.user_id] = standing.model_copy()

    # -- Penalty payment (external action) -------------------------------------

    async def settle_penalty(self, user_id: str) -> SubmitterStanding:
        """Record a completed penalty payment and lift the block."""
        async with self._lock:
            current = self._standing.get(user_id) or SubmitterStanding(user_id=user_id)
            settled = current.model_copy(
                update={
                    "is_blocked": False,
                    "penalty_due": 0.0,
                    "penalty_paid": True,
                    "blocked_reason": None,
                    "blocked_at": None,
                }
            )
            self._standing[user_id] = settled
        logger.info("identity.penalty_settled", user_id=user_id, amount=current.penalty_due)
        return settled.model_copy()
