"""AI classification collaborator: department routing, summary, fake risk.

Two implementations share the :class:`ComplaintClassifier` protocol:

* :class:`HttpComplaintClassifier` calls the external AI service over
  HTTP with bounded timeouts and tenacity retries on transient failures.
* :class:`KeywordComplaintClassifier` is a dependency-free fallback used
  in development and tests when no service URL is configured.

Any failure of the remote service surfaces as
:class:`~jansunwai.errors.DependencyUnavailable`; callers must reject the
submission rather than persist a half-classified complaint.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Final, Protocol, runtime_checkable

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jansunwai.errors import DependencyUnavailable
from jansunwai.models.enums import Priority

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

GENERAL_DEPARTMENT: Final[str] = "General"


@dataclass(slots=True, frozen=True)
class Classification:
    department: str
    confidence: float
    priority: Priority = Priority.MEDIUM


@dataclass(slots=True, frozen=True)
class RiskAssessment:
    risk_score: float = 0.0
    flagged_fake: bool = False
    notes: list[str] = field(default_factory=list)


@runtime_checkable
class ComplaintClassifier(Protocol):
    async def classify(self, text: str) -> Classification: ...

    async def summarize(self, text: str) -> str: ...

    async def assess_risk(
        self,
        text: str,
        images: list[str],
        latitude: float,
        longitude: float,
    ) -> RiskAssessment: ...


# ---------------------------------------------------------------------------
# Remote AI service
# ---------------------------------------------------------------------------


class _RetryableStatus(Exception):
    """5xx / 429 from the classifier; worth another attempt."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"classifier returned HTTP {status_code}")
        self.status_code = status_code


class HttpComplaintClassifier:
    """Client for the external complaint classification service.

    Parameters
    ----------
    base_url:
        Root URL of the service, e.g. ``https://ai.internal/v1``.
    api_key:
        Optional bearer token sent on every request.
    timeout_seconds:
        Per-request timeout passed to :mod:`httpx`.
    max_attempts:
        Attempts per call for transport errors and 5xx/429 responses.
    transport:
        Optional custom transport (tests pass :class:`httpx.MockTransport`).
    """

    DEPENDENCY_NAME: Final[str] = "classifier"

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        retry_wait_multiplier: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json", "User-Agent": "JanSunwai/0.1"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
        )
        self._max_attempts = max_attempts
        self._retry_wait_multiplier = retry_wait_multiplier

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._retry_wait_multiplier, min=0, max=4),
                reraise=False,
            ):
                with attempt:
                    response = await self._client.post(path, json=payload)
                    if response.status_code == 429 or response.status_code >= 500:
                        raise _RetryableStatus(response.status_code)
                    response.raise_for_status()
                    data = response.json()
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            logger.warning("classifier.retries_exhausted", path=path, error=str(cause), exc_info=cause)
            raise DependencyUnavailable(self.DEPENDENCY_NAME, str(cause)) from cause
        except httpx.HTTPStatusError as exc:
            logger.warning("classifier.http_error", path=path, status=exc.response.status_code, exc_info=True)
            raise DependencyUnavailable(
                self.DEPENDENCY_NAME, f"HTTP {exc.response.status_code}"
            ) from exc
        except ValueError as exc:
            logger.warning("classifier.invalid_json", path=path, exc_info=True)
            raise DependencyUnavailable(self.DEPENDENCY_NAME, "invalid response body") from exc

        if not isinstance(data, dict):
            raise DependencyUnavailable(self.DEPENDENCY_NAME, "unexpected response shape")
        return data

    async def classify(self, text: str) -> Classification:
        data = await self._post("/classify", {"text": text})
        try:
            priority = Priority(str(data.get("priority", Priority.MEDIUM)).upper())
        except ValueError:
            priority = Priority.MEDIUM
        return Classification(
            department=str(data.get("department") or GENERAL_DEPARTMENT),
            confidence=float(data.get("confidence", 0.0)),
            priority=priority,
        )

    async def summarize(self, text: str) -> str:
        data = await self._post("/summarize", {"text": text})
        return str(data.get("summary") or "")

    async def assess_risk(
        self,
        text: str,
        images: list[str],
        latitude: float,
        longitude: float,
    ) -> RiskAssessment:
        data = await self._post(
            "/risk",
            {
                "text": text,
                "images": images,
                "latitude": latitude,
                "longitude": longitude,
            },
        )
        return RiskAssessment(
            risk_score=float(data.get("risk_score", 0.0)),
            flagged_fake=bool(data.get("is_flagged_fake", False)),
            notes=[str(n) for n in data.get("issues", [])],
        )


# ---------------------------------------------------------------------------
# Local keyword fallback
# ---------------------------------------------------------------------------

_DEPARTMENT_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "Water Supply": ("water", "pipeline", "leak", "tap", "sewage", "drainage", "flood"),
    "Electricity": ("electricity", "power", "transformer", "streetlight", "street light", "wire", "outage"),
    "Roads": ("road", "pothole", "footpath", "bridge", "traffic", "signal"),
    "Sanitation": ("garbage", "waste", "trash", "dustbin", "sanitation", "toilet", "dump"),
    "Health": ("hospital", "clinic", "mosquito", "dengue", "medicine", "health"),
}

_CRITICAL_KEYWORDS: Final[tuple[str, ...]] = ("fire", "electrocution", "collapse", "gas leak", "live wire")
_HIGH_KEYWORDS: Final[tuple[str, ...]] = ("urgent", "danger", "accident", "injured", "overflowing")
_SUSPICIOUS_WORDS: Final[frozenset[str]] = frozenset({"test", "testing", "fake", "dummy", "asdf", "lorem"})
_WORD_RE = re.compile(r"[a-z]+")


class KeywordComplaintClassifier:
    """Rule-based routing used when no AI service is configured.

    Never flags a complaint fake on its own: the risk score only orders the
    manual review queue.
    """

    async def classify(self, text: str) -> Classification:
        lowered = text.lower()
        best_department = GENERAL_DEPARTMENT
        best_hits = 0
        for department, keywords in _DEPARTMENT_KEYWORDS.items():
            hits = sum(1 for kw in keywords if kw in lowered)
            if hits > best_hits:
                best_department, best_hits = department, hits

        if any(kw in lowered for kw in _CRITICAL_KEYWORDS):
            priority = Priority.CRITICAL
        elif any(kw in lowered for kw in _HIGH_KEYWORDS):
            priority = Priority.HIGH
        else:
            priority = Priority.MEDIUM

        confidence = min(0.5 + 0.15 * best_hits, 0.95) if best_hits else 0.3
        return Classification(department=best_department, confidence=round(confidence, 2), priority=priority)

    async def summarize(self, text: str) -> str:
        cleaned = " ".join(text.split())
        first_sentence = re.split(r"(?<=[.!?])\s", cleaned, maxsplit=1)[0]
        if len(first_sentence) > 200:
            return first_sentence[:197].rstrip() + "..."
        return first_sentence

    async def assess_risk(
        self,
        text: str,
        images: list[str],
        latitude: float,
        longitude: float,
    ) -> RiskAssessment:
        notes: list[str] = []
        score = 0.0
        words = _WORD_RE.findall(text.lower())

        if len(words) < 4:
            score += 30
            notes.append("Description has very few words")
        if words and len(set(words)) / len(words) < 0.4:
            score += 25
            notes.append("Description is highly repetitive")
        if _SUSPICIOUS_WORDS.intersection(words):
            score += 30
            notes.append("Description contains placeholder or test wording")
        if not images:
            score += 15
            notes.append("No photo evidence attached")
        if latitude == 0.0 and longitude == 0.0:
            score += 20
            notes.append("Location is the null island default")

        return RiskAssessment(risk_score=min(score, 100.0), flagged_fake=False, notes=notes)
