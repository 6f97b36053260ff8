from jansunwai.models.complaint import (
    Complaint,
    InternalNote,
    ReopenLogEntry,
    StatusLogEntry,
    UserResponse,
)
from jansunwai.models.enums import (
    ComplaintStatus,
    GateOutcome,
    Priority,
    Role,
    UserResponseStatus,
)
from jansunwai.models.identity import Actor, SubmitterStanding
from jansunwai.models.results import (
    ActorRef,
    DeletionResult,
    DuplicateLink,
    ReopenResult,
    StatusChangeResult,
    SubmissionRequest,
    SubmissionResult,
    Timeline,
    TimelineReopen,
    TimelineTransition,
    TimelineUserResponse,
)

__all__ = [
    "Actor",
    "ActorRef",
    "Complaint",
    "ComplaintStatus",
    "DeletionResult",
    "DuplicateLink",
    "GateOutcome",
    "InternalNote",
    "Priority",
    "ReopenLogEntry",
    "ReopenResult",
    "Role",
    "StatusChangeResult",
    "StatusLogEntry",
    "SubmissionRequest",
    "SubmissionResult",
    "SubmitterStanding",
    "Timeline",
    "TimelineReopen",
    "TimelineTransition",
    "TimelineUserResponse",
    "UserResponse",
    "UserResponseStatus",
]
