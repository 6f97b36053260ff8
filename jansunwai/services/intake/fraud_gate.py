"""Fake-complaint penalty gate.

One confirmed fake complaint blocks the submitter and adds a penalty;
nothing more can be filed until the penalty is paid.  The gate runs
before duplicate detection and before any record is created, so a
blocked, unpaid submitter can never get a complaint into the system.

Decision order:

1. Blocked and unpaid: reject with ``BLOCKED_PENDING_PENALTY``.
2. Incoming complaint flagged fake: block, add the penalty, persist the
   standing, reject with ``FLAGGED_FAKE``.
3. Otherwise admit, reporting any outstanding penalty for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Final

import structlog

from jansunwai.errors import PolicyBlocked
from jansunwai.models.enums import GateOutcome

if TYPE_CHECKING:
    from jansunwai.models.identity import SubmitterStanding
    from jansunwai.services.identity import IdentityDirectory

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_PENALTY_AMOUNT: Final[float] = 100.0
BLOCK_REASON: Final[str] = "Fake complaint wastes department officials' time"

_MESSAGES: Final[dict[GateOutcome, str]] = {
    GateOutcome.BLOCKED_PENDING_PENALTY: (
        "You submitted a fake complaint earlier. Pay penalty to continue filing complaints."
    ),
    GateOutcome.FLAGGED_FAKE: (
        "Your complaint was identified as fake. You are temporarily blocked. Pay penalty to continue."
    ),
    GateOutcome.ADMITTED: "Complaint accepted",
}


@dataclass(slots=True, frozen=True)
class GateDecision:
    outcome: GateOutcome
    penalty_amount: float
    message: str
    updated_standing: SubmitterStanding | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GateOutcome.ADMITTED


def evaluate(
    standing: SubmitterStanding,
    *,
    flagged_fake: bool,
    penalty_amount: float,
    now: datetime,
) -> GateDecision:
    """Pure gate decision.  Never mutates *standing*.

    When the submitter must be blocked, the new standing is returned in
    :attr:`GateDecision.updated_standing` for the caller to persist.
    """
    if standing.is_blocked and not standing.penalty_paid:
        return GateDecision(
            outcome=GateOutcome.BLOCKED_PENDING_PENALTY,
            penalty_amount=standing.penalty_due,
            message=_MESSAGES[GateOutcome.BLOCKED_PENDING_PENALTY],
        )

    if flagged_fake:
        blocked = standing.model_copy(
            update={
                "is_blocked": True,
                "penalty_due": (standing.penalty_due or 0.0) + penalty_amount,
                "penalty_paid": False,
                "blocked_reason": BLOCK_REASON,
                "blocked_at": now,
            }
        )
        return GateDecision(
            outcome=GateOutcome.FLAGGED_FAKE,
            penalty_amount=blocked.penalty_due,
            message=_MESSAGES[GateOutcome.FLAGGED_FAKE],
            updated_standing=blocked,
        )

    return GateDecision(
        outcome=GateOutcome.ADMITTED,
        penalty_amount=standing.outstanding_penalty,
        message=_MESSAGES[GateOutcome.ADMITTED],
    )


class FraudGate:
    """Applies :func:`evaluate` against the identity directory.

    Callers serialize calls per submitter so that two fake submissions
    arriving together cannot both read an unblocked standing.
    """

    __slots__ = ("_directory", "_penalty_amount")

    def __init__(
        self,
        directory: IdentityDirectory,
        *,
        penalty_amount: float = DEFAULT_PENALTY_AMOUNT,
    ) -> None:
        self._directory = directory
        self._penalty_amount = penalty_amount

    @property
    def penalty_amount(self) -> float:
        return self._penalty_amount

    async def ensure_not_blocked(self, user_id: str, *, now: datetime) -> SubmitterStanding:
        """Step 1 only: reject a blocked, unpaid submitter before any other work."""
        standing = await self._directory.get_standing(user_id)
        decision = evaluate(
            standing,
            flagged_fake=False,
            penalty_amount=self._penalty_amount,
            now=now,
        )
        self._raise_unless_allowed(user_id, decision)
        return standing

    async def enforce(
        self,
        standing: SubmitterStanding,
        *,
        flagged_fake: bool,
        now: datetime,
    ) -> GateDecision:
        """Run the full decision, persisting the block when one is imposed."""
        decision = evaluate(
            standing,
            flagged_fake=flagged_fake,
            penalty_amount=self._penalty_amount,
            now=now,
        )
        if decision.updated_standing is not None:
            await self._directory.save_standing(decision.updated_standing)
            logger.warning(
                "fraud_gate.blocked",
                user_id=standing.user_id,
                penalty_due=decision.updated_standing.penalty_due,
            )
        self._raise_unless_allowed(standing.user_id, decision)
        return decision

    @staticmethod
    def _raise_unless_allowed(user_id: str, decision: GateDecision) -> None:
        if decision.allowed:
            return
        logger.warning(
            "fraud_gate.rejected",
            user_id=user_id,
            outcome=decision.outcome,
            penalty_amount=decision.penalty_amount,
        )
        raise PolicyBlocked(
            decision.message,
            outcome=decision.outcome,
            penalty_amount=decision.penalty_amount,
        )
