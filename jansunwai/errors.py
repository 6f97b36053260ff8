"""Error taxonomy for the complaint lifecycle engine.

Every rejected operation raises one of these and leaves the stored
complaint untouched.  Each error carries an HTTP-style status code, a
human-readable message and an optional ``details`` mapping naming the
exact rule that was violated; :meth:`JanSunwaiError.to_payload` renders
the ``{status_code, message, details}`` shape returned to callers.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class JanSunwaiError(Exception):
    """Base class for all domain errors raised by the engine."""

    status_code: int = 500
    code: str = "internal_error"
    headers: dict[str, str] | None = None

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    def to_payload(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "message": self.message,
            "details": {"rule": self.code, **self.details},
        }


# ---------------------------------------------------------------------------
# Input / lookup / authorization
# ---------------------------------------------------------------------------


class ValidationError(JanSunwaiError):
    """Malformed or missing input.  The message always names the field."""

    status_code = 400
    code = "validation_error"

    def __init__(self, field: str, message: str, **details: Any) -> None:
        super().__init__(message, details={"field": field, **details})
        self.field = field


class Unauthenticated(JanSunwaiError):
    """No caller identity, or one the identity directory does not know."""

    status_code = 401
    code = "unauthenticated"
    headers = {"WWW-Authenticate": "ApiKey"}


class NotFound(JanSunwaiError):
    status_code = 404
    code = "not_found"

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}", details={"kind": kind, "id": identifier})


class Unauthorized(JanSunwaiError):
    """Actor mismatch, or the actor's role may not perform the operation."""

    status_code = 403
    code = "unauthorized"


# ---------------------------------------------------------------------------
# State machine / role matrix
# ---------------------------------------------------------------------------


class InvalidTransition(JanSunwaiError):
    """A state-machine or role-matrix rejection.  Always names the edge."""

    status_code = 400
    code = "invalid_transition"

    def __init__(
        self,
        message: str,
        *,
        current: str,
        requested: str,
        **details: Any,
    ) -> None:
        super().__init__(message, details={"edge": f"{current}->{requested}", **details})
        self.current = current
        self.requested = requested


class InvalidState(InvalidTransition):
    code = "invalid_state"


class NoOpTransition(InvalidTransition):
    code = "no_op_transition"


class IllegalEdge(InvalidTransition):
    code = "illegal_edge"


class ReopenLimitReached(InvalidTransition):
    code = "reopen_limit_reached"


class UnknownRole(InvalidTransition):
    status_code = 403
    code = "unknown_role"


class RoleForbidden(InvalidTransition):
    """The edge is valid but outside the role's allow-list."""

    status_code = 403
    code = "role_forbidden"

    def __init__(
        self,
        message: str,
        *,
        current: str,
        requested: str,
        role: str,
        permitted: Iterable[str],
    ) -> None:
        super().__init__(
            message,
            current=current,
            requested=requested,
            role=role,
            permitted_edges=sorted(permitted),
        )


# ---------------------------------------------------------------------------
# Admission / concurrency / collaborators
# ---------------------------------------------------------------------------


class PolicyBlocked(JanSunwaiError):
    """The fraud gate refused the submission."""

    status_code = 403
    code = "policy_blocked"

    def __init__(self, message: str, *, outcome: str, penalty_amount: float) -> None:
        super().__init__(
            message,
            details={
                "outcome": outcome,
                "penalty_amount": penalty_amount,
                "action_required": "PAY_PENALTY",
            },
        )
        self.outcome = outcome
        self.penalty_amount = penalty_amount


class ConcurrentModification(JanSunwaiError):
    """The stored state moved on after the authorization decision was made."""

    status_code = 409
    code = "concurrent_modification"

    def __init__(self, complaint_id: str, *, expected: str, actual: str) -> None:
        super().__init__(
            f"Complaint {complaint_id} was modified concurrently; expected status {expected}, found {actual}",
            details={"complaint_id": complaint_id, "expected_status": expected, "actual_status": actual},
        )


class DependencyUnavailable(JanSunwaiError):
    """An external collaborator timed out or failed.  Callers should retry."""

    status_code = 503
    code = "dependency_unavailable"

    def __init__(self, dependency: str, reason: str) -> None:
        super().__init__(
            f"{dependency} is unavailable: {reason}",
            details={"dependency": dependency},
        )
        self.dependency = dependency


class DeletionNotAllowed(JanSunwaiError):
    """Soft delete refused while the complaint is under active handling."""

    status_code = 400
    code = "delete_not_allowed"
