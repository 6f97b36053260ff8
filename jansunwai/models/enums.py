from __future__ import annotations

from enum import StrEnum


class ComplaintStatus(StrEnum):
    __slots__ = ()

    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"
    DUPLICATE = "DUPLICATE"
    CLOSED = "CLOSED"
    REOPENED = "REOPENED"


class Role(StrEnum):
    __slots__ = ()

    USER = "USER"
    DEPARTMENT_ADMIN = "DEPARTMENT_ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class Priority(StrEnum):
    __slots__ = ()

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class UserResponseStatus(StrEnum):
    __slots__ = ()

    PENDING_REVIEW = "PENDING_REVIEW"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class GateOutcome(StrEnum):
    """Result of the fraud / penalty admission check."""

    __slots__ = ()

    ADMITTED = "ADMITTED"
    BLOCKED_PENDING_PENALTY = "BLOCKED_PENDING_PENALTY"
    FLAGGED_FAKE = "FLAGGED_FAKE"
