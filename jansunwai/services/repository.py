"""In-process complaint store with snapshot reads and conditional writes.

Reads always return deep copies, so a caller never sees a record that
another request is halfway through changing.  Writes go through
:meth:`ComplaintRepository.apply`, which checks that the stored status
still equals the one the caller authorized against and only then swaps
in the mutated copy.  A stale caller gets
:class:`~jansunwai.errors.ConcurrentModification` instead of silently
overwriting a newer state.

Production deployments would back this with a database and a
conditional ``UPDATE ... WHERE status = :expected``; the contract is the
same.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from jansunwai.errors import ConcurrentModification, NotFound
from jansunwai.models.complaint import Complaint
from jansunwai.models.enums import ComplaintStatus

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

Mutation = Callable[[Complaint], Any]


class ComplaintRepository:
    """Dict-backed complaint store guarded by a single :class:`asyncio.Lock`.

    Insertion order of the underlying dict is the persisted order used by
    duplicate candidate scans.
    """

    __slots__ = ("_data", "_lock")

    def __init__(self) -> None:
        self._data: dict[str, Complaint] = {}
        self._lock = asyncio.Lock()

    # -- Reads -----------------------------------------------------------------

    async def get(self, complaint_id: str) -> Complaint:
        """Snapshot of one complaint, including soft-deleted ones."""
        async with self._lock:
            stored = self._data.get(complaint_id)
            if stored is None:
                raise NotFound("Complaint", complaint_id)
            return stored.model_copy(deep=True)

    async def recent_by_submitter(self, user_id: str, *, since: datetime) -> list[Complaint]:
        """Duplicate candidate pool: live, canonical complaints filed since *since*."""
        async with self._lock:
            return [
                c.model_copy(deep=True)
                for c in self._data.values()
                if c.user_id == user_id
                and c.created_at >= since
                and not c.is_deleted
                and not c.is_duplicate
            ]

    async def list_by_submitter(self, user_id: str) -> list[Complaint]:
        async with self._lock:
            return [c.model_copy(deep=True) for c in self._data.values() if c.user_id == user_id]

    async def department_queue(self, department: str) -> list[Complaint]:
        """Sent, live complaints of *department*, newest submission first."""
        async with self._lock:
            queue = [
                c.model_copy(deep=True)
                for c in self._data.values()
                if c.department == department and c.is_sent and not c.is_deleted
            ]
        queue.sort(key=lambda c: c.submitted_at or c.created_at, reverse=True)
        return queue

    async def all(self, *, include_deleted: bool = False) -> list[Complaint]:
        """Every complaint, newest first."""
        async with self._lock:
            everything = [
                c.model_copy(deep=True)
                for c in self._data.values()
                if include_deleted or not c.is_deleted
            ]
        everything.sort(key=lambda c: c.created_at, reverse=True)
        return everything

    async def flagged(self) -> list[Complaint]:
        async with self._lock:
            flagged = [c.model_copy(deep=True) for c in self._data.values() if c.is_flagged_fake]
        flagged.sort(key=lambda c: c.created_at, reverse=True)
        return flagged

    async def high_risk(self, min_risk: float) -> list[Complaint]:
        async with self._lock:
            risky = [c.model_copy(deep=True) for c in self._data.values() if c.risk_score >= min_risk]
        risky.sort(key=lambda c: c.risk_score, reverse=True)
        return risky

    # -- Writes ----------------------------------------------------------------

    async def add(self, complaint: Complaint, *, link_to: str | None = None) -> Complaint:
        """Store a new complaint.

        With *link_to*, the canonical complaint's ``duplicates`` list gains
        the new id in the same critical section, so the forward and back
        references appear together.
        """
        async with self._lock:
            if complaint.complaint_id in self._data:
                raise ValueError(f"duplicate complaint id {complaint.complaint_id}")
            canonical: Complaint | None = None
            if link_to is not None:
                stored = self._data.get(link_to)
                if stored is None:
                    raise NotFound("Complaint", link_to)
                canonical = stored.model_copy(deep=True)
                canonical.duplicates.append(complaint.complaint_id)
            self._data[complaint.complaint_id] = complaint.model_copy(deep=True)
            if canonical is not None:
                self._data[canonical.complaint_id] = canonical
            return complaint.model_copy(deep=True)

    async def apply(
        self,
        complaint_id: str,
        *,
        expected_status: ComplaintStatus,
        mutate: Mutation,
        allow_deleted: bool = False,
    ) -> Complaint:
        """Compare-and-apply *mutate* to one complaint.

        *mutate* runs on a private copy; if it raises, nothing is stored.
        A soft-deleted record counts as a changed state unless
        *allow_deleted* is set.
        """
        async with self._lock:
            stored = self._data.get(complaint_id)
            if stored is None:
                raise NotFound("Complaint", complaint_id)
            if stored.status != expected_status or (stored.is_deleted and not allow_deleted):
                logger.warning(
                    "repository.stale_write_rejected",
                    complaint_id=complaint_id,
                    expected_status=expected_status,
                    actual_status=stored.status,
                    is_deleted=stored.is_deleted,
                )
                raise ConcurrentModification(
                    complaint_id,
                    expected=str(expected_status),
                    actual=f"{stored.status} (deleted)" if stored.is_deleted else str(stored.status),
                )
            working = stored.model_copy(deep=True)
            mutate(working)
            self._data[complaint_id] = working
            return working.model_copy(deep=True)

    @property
    def size(self) -> int:
        return len(self._data)
