"""Status machine, role matrix, reopen/delete policy and the engine that applies them."""

from __future__ import annotations

from jansunwai.services.lifecycle.engine import ComplaintLifecycleEngine
from jansunwai.services.lifecycle.permissions import (
    ROLE_PERMISSIONS,
    can_user_change_status,
    permitted_edges,
)
from jansunwai.services.lifecycle.policy import (
    DEFAULT_MAX_REOPENS,
    can_delete,
    can_reopen,
    ensure_can_delete,
    ensure_can_reopen,
)
from jansunwai.services.lifecycle.transitions import (
    STATUS_TRANSITIONS,
    is_valid_transition,
    valid_next_statuses,
)

__all__ = [
    "DEFAULT_MAX_REOPENS",
    "ROLE_PERMISSIONS",
    "STATUS_TRANSITIONS",
    "ComplaintLifecycleEngine",
    "can_delete",
    "can_reopen",
    "can_user_change_status",
    "ensure_can_delete",
    "ensure_can_reopen",
    "is_valid_transition",
    "permitted_edges",
    "valid_next_statuses",
]
