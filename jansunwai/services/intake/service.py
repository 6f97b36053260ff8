"""Complaint creation: admission gate, duplicate linkage, classification.

Creation for one submitter is serialized on a per-submitter lock that is
held across the fraud gate, the duplicate scan and the insert.  Two fake
submissions sent together therefore see each other's block, and two
identical submissions sent together see each other for duplicate
linkage.  Every external call is bounded; if one fails nothing is stored.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Final

import structlog

from jansunwai.errors import ValidationError
from jansunwai.models.complaint import Complaint
from jansunwai.models.enums import Role
from jansunwai.models.identity import Actor
from jansunwai.models.results import DuplicateLink, SubmissionRequest, SubmissionResult
from jansunwai.services.classifier import ComplaintClassifier
from jansunwai.services.guards import bounded, require_role
from jansunwai.services.intake.duplicates import DuplicateDetector
from jansunwai.services.intake.fraud_gate import FraudGate
from jansunwai.services.repository import ComplaintRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

MIN_TEXT_LENGTH: Final[int] = 10
MAX_IMAGES: Final[int] = 5


def _utcnow() -> datetime:
    return datetime.now(UTC)


def validate_submission(request: SubmissionRequest) -> str:
    """Check the submission input and return the trimmed complaint text."""
    text = (request.complaint_text or "").strip()
    if len(text) < MIN_TEXT_LENGTH:
        raise ValidationError(
            "complaint_text",
            f"complaint_text must be at least {MIN_TEXT_LENGTH} characters",
            min_length=MIN_TEXT_LENGTH,
        )
    if not request.images:
        raise ValidationError("images", "images must contain at least one image reference")
    if len(request.images) > MAX_IMAGES:
        raise ValidationError(
            "images",
            f"images must contain at most {MAX_IMAGES} references",
            max_items=MAX_IMAGES,
        )
    if any(not ref or not ref.strip() for ref in request.images):
        raise ValidationError("images", "images must not contain empty references")
    if request.video_url is not None and not request.video_url.strip():
        raise ValidationError("video_url", "video_url must be non-empty when provided")
    if not -90 <= request.latitude <= 90:
        raise ValidationError("latitude", "latitude must be between -90 and 90")
    if not -180 <= request.longitude <= 180:
        raise ValidationError("longitude", "longitude must be between -180 and 180")
    return text


class ComplaintIntake:
    """Creates complaints at ``PENDING`` for citizens."""

    def __init__(
        self,
        repository: ComplaintRepository,
        classifier: ComplaintClassifier,
        gate: FraudGate,
        detector: DuplicateDetector,
        *,
        dependency_timeout: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._classifier = classifier
        self._gate = gate
        self._detector = detector
        self._timeout = dependency_timeout
        self._clock = clock
        self._submitter_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    @property
    def active_submitters(self) -> int:
        """Submitters with a creation in flight or waiting."""
        return len(self._submitter_locks)

    @asynccontextmanager
    async def _submitter_lock(self, user_id: str) -> AsyncIterator[None]:
        # Entries live only while someone holds or waits on them.
        lock = self._submitter_locks.setdefault(user_id, asyncio.Lock())
        self._lock_users[user_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._submitter_locks[user_id]

    async def create_complaint(self, actor: Actor, request: SubmissionRequest) -> SubmissionResult:
        """Admit, classify and store a new complaint.

        Raises
        ------
        Unauthorized
            The actor is not a citizen.
        ValidationError
            Malformed submission input.
        PolicyBlocked
            The submitter is blocked or this complaint was flagged fake.
        DependencyUnavailable
            The classifier timed out or failed.
        """
        require_role(actor, Role.USER)
        text = validate_submission(request)
        user_id = actor.actor_id

        async with self._submitter_lock(user_id):
            now = self._clock()
            standing = await self._gate.ensure_not_blocked(user_id, now=now)

            risk = await bounded(
                "classifier",
                self._classifier.assess_risk(text, list(request.images), request.latitude, request.longitude),
                timeout=self._timeout,
            )
            decision = await self._gate.enforce(
                standing,
                flagged_fake=request.flagged_fake or risk.flagged_fake,
                now=now,
            )

            match = await self._detector.find(
                text, request.latitude, request.longitude, user_id, now=now
            )

            classification = await bounded(
                "classifier", self._classifier.classify(text), timeout=self._timeout
            )
            summary = await bounded(
                "classifier", self._classifier.summarize(text), timeout=self._timeout
            )

            complaint = Complaint(
                user_id=user_id,
                complaint_text=text,
                images=list(request.images),
                video_url=request.video_url,
                latitude=request.latitude,
                longitude=request.longitude,
                department=classification.department,
                confidence=classification.confidence,
                priority=classification.priority,
                ai_summary=summary or None,
                risk_score=risk.risk_score,
                fake_detection_notes=list(risk.notes),
                created_at=now,
                updated_at=now,
            )
            duplicate: DuplicateLink | None = None
            if match is not None:
                complaint.is_duplicate = True
                complaint.duplicate_of = match.complaint.complaint_id
                duplicate = DuplicateLink(
                    complaint_id=match.complaint.complaint_id,
                    complaint_text=match.complaint.complaint_text,
                )

            stored = await self._repository.add(complaint, link_to=complaint.duplicate_of)

        logger.info(
            "intake.complaint_created",
            complaint_id=stored.complaint_id,
            user_id=user_id,
            department=stored.department,
            priority=stored.priority,
            risk_score=stored.risk_score,
            duplicate_of=stored.duplicate_of,
        )
        return SubmissionResult(
            complaint=stored,
            duplicate=duplicate,
            outstanding_penalty=decision.penalty_amount,
        )
