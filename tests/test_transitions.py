"""Tests for the status transition table and the role permission matrix."""

from __future__ import annotations

import itertools

import pytest

from jansunwai.errors import (
    IllegalEdge,
    InvalidState,
    InvalidTransition,
    NoOpTransition,
    RoleForbidden,
    UnknownRole,
)
from jansunwai.models.enums import ComplaintStatus, Role
from jansunwai.services.lifecycle.permissions import (
    ROLE_PERMISSIONS,
    can_user_change_status,
    permitted_edges,
)
from jansunwai.services.lifecycle.transitions import (
    ALL_EDGES,
    INITIAL_STATUS,
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    all_statuses,
    is_valid_transition,
    valid_next_statuses,
)

S = ComplaintStatus

DOCUMENTED_EDGES = {
    (S.PENDING, S.SUBMITTED),
    (S.PENDING, S.REJECTED),
    (S.SUBMITTED, S.IN_PROGRESS),
    (S.SUBMITTED, S.REJECTED),
    (S.SUBMITTED, S.DUPLICATE),
    (S.IN_PROGRESS, S.RESOLVED),
    (S.IN_PROGRESS, S.REJECTED),
    (S.RESOLVED, S.CLOSED),
    (S.RESOLVED, S.REOPENED),
    (S.REOPENED, S.IN_PROGRESS),
    (S.REOPENED, S.REJECTED),
}


# -----------------------------------------------------------------------
# Transition table
# -----------------------------------------------------------------------


class TestTransitionTable:
    def test_edge_set_matches_documented_edges(self) -> None:
        assert ALL_EDGES == DOCUMENTED_EDGES, "table must contain exactly the documented edges"

    def test_initial_and_terminal_states(self) -> None:
        assert INITIAL_STATUS == S.PENDING
        assert TERMINAL_STATUSES == {S.REJECTED, S.DUPLICATE, S.CLOSED}

    def test_every_status_has_an_entry(self) -> None:
        assert set(STATUS_TRANSITIONS) == set(ComplaintStatus)
        assert all_statuses() == list(STATUS_TRANSITIONS)

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            STATUS_TRANSITIONS[S.CLOSED] = frozenset({S.REOPENED})  # type: ignore[index]

    @pytest.mark.parametrize("status", list(ComplaintStatus))
    def test_self_transition_is_noop(self, status: ComplaintStatus) -> None:
        with pytest.raises(NoOpTransition) as exc_info:
            is_valid_transition(status, status)
        assert exc_info.value.details["edge"] == f"{status}->{status}"

    def test_every_non_edge_is_illegal(self) -> None:
        for current, new in itertools.product(ComplaintStatus, repeat=2):
            if current == new or (current, new) in DOCUMENTED_EDGES:
                continue
            with pytest.raises(IllegalEdge):
                is_valid_transition(current, new)

    @pytest.mark.parametrize(("current", "new"), sorted(DOCUMENTED_EDGES))
    def test_every_edge_is_valid(self, current: ComplaintStatus, new: ComplaintStatus) -> None:
        assert is_valid_transition(current, new) is None

    def test_plain_strings_are_accepted(self) -> None:
        is_valid_transition("PENDING", "SUBMITTED")

    def test_unknown_current_status(self) -> None:
        with pytest.raises(InvalidState) as exc_info:
            is_valid_transition("ARCHIVED", "SUBMITTED")
        assert "ARCHIVED" in exc_info.value.message

    def test_unknown_new_status(self) -> None:
        with pytest.raises(InvalidState):
            is_valid_transition("PENDING", "ARCHIVED")

    def test_state_validity_checked_before_noop(self) -> None:
        """Two identical unknown values are an invalid state, not a no-op."""
        with pytest.raises(InvalidState):
            is_valid_transition("ARCHIVED", "ARCHIVED")

    def test_illegal_edge_names_allowed_targets(self) -> None:
        with pytest.raises(IllegalEdge) as exc_info:
            is_valid_transition(S.PENDING, S.CLOSED)
        details = exc_info.value.details
        assert details["edge"] == "PENDING->CLOSED"
        assert details["allowed"] == ["REJECTED", "SUBMITTED"]

    def test_terminal_state_reports_no_targets(self) -> None:
        with pytest.raises(IllegalEdge) as exc_info:
            is_valid_transition(S.CLOSED, S.REOPENED)
        assert "terminal" in exc_info.value.message

    def test_errors_are_invalid_transitions(self) -> None:
        with pytest.raises(InvalidTransition):
            is_valid_transition(S.CLOSED, S.PENDING)

    def test_valid_next_statuses(self) -> None:
        assert valid_next_statuses(S.SUBMITTED) == [S.DUPLICATE, S.IN_PROGRESS, S.REJECTED]
        assert valid_next_statuses(S.CLOSED) == []
        assert valid_next_statuses("BOGUS") == []


# -----------------------------------------------------------------------
# Role permission matrix
# -----------------------------------------------------------------------


class TestRolePermissions:
    def test_super_admin_may_use_every_edge(self) -> None:
        for current, new in DOCUMENTED_EDGES:
            can_user_change_status(Role.SUPER_ADMIN, current, new)

    def test_role_edges_are_subsets_of_the_table(self) -> None:
        for role, edges in ROLE_PERMISSIONS.items():
            assert edges <= ALL_EDGES, f"{role} must not widen the state machine"

    def test_department_admin_allow_list(self) -> None:
        assert permitted_edges(Role.DEPARTMENT_ADMIN) == {
            (S.SUBMITTED, S.IN_PROGRESS),
            (S.SUBMITTED, S.REJECTED),
            (S.IN_PROGRESS, S.RESOLVED),
            (S.IN_PROGRESS, S.REJECTED),
            (S.REOPENED, S.IN_PROGRESS),
            (S.REOPENED, S.REJECTED),
        }

    def test_user_allow_list(self) -> None:
        assert permitted_edges(Role.USER) == {
            (S.RESOLVED, S.CLOSED),
            (S.RESOLVED, S.REOPENED),
            (S.PENDING, S.REJECTED),
        }

    def test_department_admin_cannot_mark_duplicate(self) -> None:
        with pytest.raises(RoleForbidden) as exc_info:
            can_user_change_status(Role.DEPARTMENT_ADMIN, S.SUBMITTED, S.DUPLICATE)
        error = exc_info.value
        assert error.status_code == 403
        assert error.details["edge"] == "SUBMITTED->DUPLICATE"
        assert "SUBMITTED->IN_PROGRESS" in error.details["permitted_edges"], (
            "role rejection must list the permitted edges"
        )

    def test_user_cannot_resolve(self) -> None:
        with pytest.raises(RoleForbidden):
            can_user_change_status(Role.USER, S.IN_PROGRESS, S.RESOLVED)

    def test_unknown_role(self) -> None:
        with pytest.raises(UnknownRole) as exc_info:
            can_user_change_status("AUDITOR", S.SUBMITTED, S.IN_PROGRESS)
        assert exc_info.value.status_code == 403
        assert permitted_edges("AUDITOR") == frozenset()
