"""Role permission matrix: which role may invoke which transition edge.

``SUPER_ADMIN`` may use every edge of the transition table.  The other
roles get fixed allow-lists.  Scoping to the actor's own complaints or
department is applied by the engine, not here; this matrix is static.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from jansunwai.errors import RoleForbidden, UnknownRole
from jansunwai.models.enums import ComplaintStatus, Role
from jansunwai.services.lifecycle.transitions import ALL_EDGES

S = ComplaintStatus

Edge = tuple[ComplaintStatus, ComplaintStatus]

ROLE_PERMISSIONS: Final[Mapping[Role, frozenset[Edge]]] = MappingProxyType({
    Role.USER: frozenset({
        (S.RESOLVED, S.CLOSED),
        (S.RESOLVED, S.REOPENED),
        (S.PENDING, S.REJECTED),
    }),
    Role.DEPARTMENT_ADMIN: frozenset({
        (S.SUBMITTED, S.IN_PROGRESS),
        (S.SUBMITTED, S.REJECTED),
        (S.IN_PROGRESS, S.RESOLVED),
        (S.IN_PROGRESS, S.REJECTED),
        (S.REOPENED, S.IN_PROGRESS),
        (S.REOPENED, S.REJECTED),
    }),
    Role.SUPER_ADMIN: ALL_EDGES,
})


def _format_edges(edges: frozenset[Edge]) -> list[str]:
    return sorted(f"{a}->{b}" for a, b in edges)


def permitted_edges(role: str) -> frozenset[Edge]:
    """Allow-list for *role*; empty for an unknown role."""
    try:
        return ROLE_PERMISSIONS[Role(role)]
    except ValueError:
        return frozenset()


def can_user_change_status(role: str, current: str, new: str) -> None:
    """Raise unless *role* may move a complaint from *current* to *new*.

    Must only be called after the transition table accepted the edge.
    """
    try:
        known_role = Role(role)
    except ValueError:
        raise UnknownRole(
            f"Unknown role: {role}",
            current=str(current),
            requested=str(new),
            role=str(role),
        ) from None

    allowed = ROLE_PERMISSIONS[known_role]
    if (current, new) not in allowed:
        raise RoleForbidden(
            f"{known_role} cannot change {current} to {new}",
            current=str(current),
            requested=str(new),
            role=known_role,
            permitted=_format_edges(allowed),
        )
