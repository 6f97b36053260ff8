"""Shared fixtures: an in-process engine wired to a controllable clock."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from jansunwai.models.enums import Role
from jansunwai.models.identity import Actor
from jansunwai.models.results import SubmissionRequest
from jansunwai.services.classifier import KeywordComplaintClassifier
from jansunwai.services.identity import InMemoryIdentityDirectory
from jansunwai.services.intake import ComplaintIntake, DuplicateDetector, FraudGate
from jansunwai.services.lifecycle import ComplaintLifecycleEngine
from jansunwai.services.repository import ComplaintRepository
from jansunwai.services.review import ReviewService

CITIZEN = Actor(actor_id="citizen-1", role=Role.USER, display_name="Asha Devi")
OTHER_CITIZEN = Actor(actor_id="citizen-2", role=Role.USER, display_name="Ravi Kumar")
WATER_ADMIN = Actor(
    actor_id="water-admin",
    role=Role.DEPARTMENT_ADMIN,
    department="Water Supply",
    display_name="Water Officer",
)
ROADS_ADMIN = Actor(
    actor_id="roads-admin",
    role=Role.DEPARTMENT_ADMIN,
    department="Roads",
    display_name="Roads Officer",
)
SUPER_ADMIN = Actor(actor_id="root", role=Role.SUPER_ADMIN, display_name="District Collector")

WATER_TEXT = "Water pipeline leak near the market, water flowing on the street since morning"


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_request(
    text: str = WATER_TEXT,
    *,
    latitude: float = 28.6139,
    longitude: float = 77.2090,
    images: list[str] | None = None,
    **kwargs,
) -> SubmissionRequest:
    return SubmissionRequest(
        complaint_text=text,
        latitude=latitude,
        longitude=longitude,
        images=["uploads/photo-1.jpg"] if images is None else images,
        **kwargs,
    )


class Stack:
    """Everything a test needs to drive complaints end to end."""

    def __init__(self, repository: ComplaintRepository | None = None) -> None:
        self.clock = FakeClock()
        self.repository = repository or ComplaintRepository()
        self.directory = InMemoryIdentityDirectory(
            [CITIZEN, OTHER_CITIZEN, WATER_ADMIN, ROADS_ADMIN, SUPER_ADMIN]
        )
        self.classifier = KeywordComplaintClassifier()
        self.gate = FraudGate(self.directory, penalty_amount=100.0)
        self.detector = DuplicateDetector(self.repository)
        self.intake = ComplaintIntake(
            self.repository,
            self.classifier,
            self.gate,
            self.detector,
            dependency_timeout=1.0,
            clock=self.clock,
        )
        self.engine = ComplaintLifecycleEngine(self.repository, self.directory, clock=self.clock)
        self.review = ReviewService(
            self.repository,
            self.classifier,
            directory=self.directory,
            dependency_timeout=1.0,
            clock=self.clock,
        )

    async def create(self, actor: Actor = CITIZEN, **kwargs) -> str:
        result = await self.intake.create_complaint(actor, make_request(**kwargs))
        return result.complaint.complaint_id

    async def resolved(self, actor: Actor = CITIZEN, **kwargs) -> str:
        """A water complaint walked to RESOLVED by its department admin."""
        complaint_id = await self.create(actor, **kwargs)
        await self.engine.submit(complaint_id, actor)
        await self.engine.change_status(complaint_id, WATER_ADMIN, "IN_PROGRESS")
        await self.engine.change_status(complaint_id, WATER_ADMIN, "RESOLVED")
        return complaint_id


@pytest.fixture
def stack() -> Stack:
    return Stack()
