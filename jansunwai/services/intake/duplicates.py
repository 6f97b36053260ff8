"""Duplicate complaint detection.

A new complaint duplicates an earlier one when the same submitter filed
text that is more than 80% similar within 500 metres during the last
week.  Candidates are scanned in the order they were stored and the
*first* one that satisfies both thresholds wins; there is no best-match
search, so the result depends on that order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Final

import structlog

from jansunwai.services.intake.geo import haversine_distance_m
from jansunwai.services.intake.similarity import similarity

if TYPE_CHECKING:
    from jansunwai.models.complaint import Complaint
    from jansunwai.services.repository import ComplaintRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_LOOKBACK_DAYS: Final[int] = 7
DEFAULT_SIMILARITY_THRESHOLD: Final[float] = 0.80
DEFAULT_MAX_DISTANCE_M: Final[float] = 500.0


@dataclass(slots=True, frozen=True)
class DuplicateMatch:
    complaint: Complaint
    similarity: float
    distance_m: float


def find_duplicate(
    text: str,
    latitude: float,
    longitude: float,
    candidates: Iterable[Complaint],
    *,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    max_distance_m: float = DEFAULT_MAX_DISTANCE_M,
) -> DuplicateMatch | None:
    """Return the first candidate that *text* at the given point duplicates.

    Deleted complaints and complaints that are themselves duplicates are
    never returned, so duplicate links always point at a canonical record.
    """
    for candidate in candidates:
        if candidate.is_duplicate or candidate.is_deleted:
            continue

        score = similarity(candidate.complaint_text, text)
        if score <= similarity_threshold:
            continue

        distance = haversine_distance_m(
            latitude, longitude, candidate.latitude, candidate.longitude
        )
        if distance < max_distance_m:
            return DuplicateMatch(complaint=candidate, similarity=score, distance_m=distance)

    return None


class DuplicateDetector:
    """Looks up a submitter's recent complaints and applies :func:`find_duplicate`."""

    __slots__ = ("_lookback", "_max_distance_m", "_repository", "_similarity_threshold")

    def __init__(
        self,
        repository: ComplaintRepository,
        *,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_distance_m: float = DEFAULT_MAX_DISTANCE_M,
    ) -> None:
        self._repository = repository
        self._lookback = timedelta(days=lookback_days)
        self._similarity_threshold = similarity_threshold
        self._max_distance_m = max_distance_m

    async def find(
        self,
        text: str,
        latitude: float,
        longitude: float,
        user_id: str,
        *,
        now: datetime,
    ) -> DuplicateMatch | None:
        candidates = await self._repository.recent_by_submitter(user_id, since=now - self._lookback)
        match = find_duplicate(
            text,
            latitude,
            longitude,
            candidates,
            similarity_threshold=self._similarity_threshold,
            max_distance_m=self._max_distance_m,
        )
        if match is not None:
            logger.info(
                "intake.duplicate_linked",
                user_id=user_id,
                duplicate_of=match.complaint.complaint_id,
                similarity=round(match.similarity, 3),
                distance_m=round(match.distance_m, 1),
                candidates=len(candidates),
            )
        return match
