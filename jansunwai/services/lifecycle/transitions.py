"""Static status transition table for complaints.

The table says which status may follow which, independent of who asks.
``PENDING`` is the only initial state; ``REJECTED``, ``DUPLICATE`` and
``CLOSED`` are terminal.  Role policy (:mod:`.permissions`) and the
reopen bound (:mod:`.policy`) only ever narrow this table.

Checks run in a fixed order so the same bad request always produces the
same error: unknown status, then no-op, then edge membership.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from jansunwai.errors import IllegalEdge, InvalidState, NoOpTransition
from jansunwai.models.enums import ComplaintStatus

S = ComplaintStatus

STATUS_TRANSITIONS: Final[Mapping[ComplaintStatus, frozenset[ComplaintStatus]]] = MappingProxyType({
    S.PENDING: frozenset({S.SUBMITTED, S.REJECTED}),
    S.SUBMITTED: frozenset({S.IN_PROGRESS, S.REJECTED, S.DUPLICATE}),
    S.IN_PROGRESS: frozenset({S.RESOLVED, S.REJECTED}),
    S.RESOLVED: frozenset({S.CLOSED, S.REOPENED}),
    S.REOPENED: frozenset({S.IN_PROGRESS, S.REJECTED}),
    S.REJECTED: frozenset(),
    S.DUPLICATE: frozenset(),
    S.CLOSED: frozenset(),
})

INITIAL_STATUS: Final[ComplaintStatus] = S.PENDING

TERMINAL_STATUSES: Final[frozenset[ComplaintStatus]] = frozenset(
    status for status, targets in STATUS_TRANSITIONS.items() if not targets
)

ALL_EDGES: Final[frozenset[tuple[ComplaintStatus, ComplaintStatus]]] = frozenset(
    (current, target) for current, targets in STATUS_TRANSITIONS.items() for target in targets
)


def _coerce(value: str) -> ComplaintStatus | None:
    try:
        return ComplaintStatus(value)
    except ValueError:
        return None


def is_valid_transition(current: str, new: str) -> None:
    """Raise unless ``current -> new`` is an edge of the table.

    Raises
    ------
    InvalidState
        Either value is not a known status.
    NoOpTransition
        ``current == new``.
    IllegalEdge
        ``new`` is not reachable from ``current`` in one step.
    """
    current_status = _coerce(current)
    if current_status is None:
        raise InvalidState(
            f"Invalid current status: {current}",
            current=str(current),
            requested=str(new),
            allowed_statuses=[s.value for s in ComplaintStatus],
        )
    new_status = _coerce(new)
    if new_status is None:
        raise InvalidState(
            f"Invalid new status: {new}",
            current=str(current),
            requested=str(new),
            allowed_statuses=[s.value for s in ComplaintStatus],
        )

    if current_status == new_status:
        raise NoOpTransition(
            "New status must differ from current status",
            current=current_status,
            requested=new_status,
        )

    allowed = STATUS_TRANSITIONS[current_status]
    if new_status not in allowed:
        raise IllegalEdge(
            f"Cannot transition from {current_status} to {new_status}. "
            f"Allowed: {', '.join(sorted(allowed)) or 'none (terminal)'}",
            current=current_status,
            requested=new_status,
            allowed=[s.value for s in sorted(allowed)],
        )


def valid_next_statuses(current: str) -> list[ComplaintStatus]:
    """Statuses reachable in one step; empty for terminal or unknown input."""
    status = _coerce(current)
    if status is None:
        return []
    return sorted(STATUS_TRANSITIONS[status])


def all_statuses() -> list[ComplaintStatus]:
    return list(STATUS_TRANSITIONS)
