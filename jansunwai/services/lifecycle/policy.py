"""Reopen and delete eligibility rules layered on the transition table.

``RESOLVED -> REOPENED`` is a static edge, but it disappears once a
complaint has used up its reopens.  Deletion is always soft and is
refused while a department is actively handling the complaint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from jansunwai.errors import DeletionNotAllowed, ReopenLimitReached
from jansunwai.models.enums import ComplaintStatus

DEFAULT_MAX_REOPENS: Final[int] = 2

UNDELETABLE_STATUSES: Final[frozenset[ComplaintStatus]] = frozenset({
    ComplaintStatus.SUBMITTED,
    ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.RESOLVED,
    ComplaintStatus.REOPENED,
})


@dataclass(slots=True, frozen=True)
class ReopenEligibility:
    allowed: bool
    remaining: int
    message: str


@dataclass(slots=True, frozen=True)
class DeleteEligibility:
    allowed: bool
    message: str


def can_reopen(reopen_count: int, max_reopens: int = DEFAULT_MAX_REOPENS) -> ReopenEligibility:
    if reopen_count >= max_reopens:
        return ReopenEligibility(
            allowed=False,
            remaining=0,
            message=f"Maximum reopens ({max_reopens}) exceeded",
        )
    return ReopenEligibility(
        allowed=True,
        remaining=max_reopens - reopen_count,
        message="Complaint can be reopened",
    )


def ensure_can_reopen(
    reopen_count: int,
    current: ComplaintStatus,
    max_reopens: int = DEFAULT_MAX_REOPENS,
) -> int:
    """Return the remaining reopens, or raise :class:`ReopenLimitReached`."""
    eligibility = can_reopen(reopen_count, max_reopens)
    if not eligibility.allowed:
        raise ReopenLimitReached(
            eligibility.message,
            current=current,
            requested=ComplaintStatus.REOPENED,
            reopen_attempts_used=reopen_count,
            max_reopens=max_reopens,
        )
    return eligibility.remaining


def can_delete(status: ComplaintStatus) -> DeleteEligibility:
    if status in UNDELETABLE_STATUSES:
        return DeleteEligibility(
            allowed=False,
            message=(
                f"Cannot delete complaint with status: {status}. "
                "Only PENDING or finished complaints can be deleted."
            ),
        )
    return DeleteEligibility(allowed=True, message="Complaint can be deleted")


def ensure_can_delete(status: ComplaintStatus) -> None:
    eligibility = can_delete(status)
    if not eligibility.allowed:
        raise DeletionNotAllowed(eligibility.message, details={"status": str(status)})
