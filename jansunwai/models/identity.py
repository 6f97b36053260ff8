"""Identity-side data the engine reads: actors and submitter standing.

Accounts, credentials and OTP flows live in the identity service; the
engine only needs who is acting (id, role, department) and whether a
submitter owes a fake-complaint penalty.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from jansunwai.models.enums import Role


class Actor(BaseModel):
    model_config = {"frozen": True}

    actor_id: str
    role: Role
    department: str | None = None
    display_name: str = ""
    is_verified: bool = True


class SubmitterStanding(BaseModel):
    """Penalty state of a submitter, owned by the identity service."""

    user_id: str
    is_blocked: bool = False
    penalty_due: float = 0.0
    penalty_paid: bool = False
    blocked_reason: str | None = None
    blocked_at: datetime | None = None

    @property
    def outstanding_penalty(self) -> float:
        return 0.0 if self.penalty_paid else self.penalty_due
