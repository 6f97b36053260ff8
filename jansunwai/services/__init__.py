"""JanSunwai service layer: storage, collaborators, intake, lifecycle and review."""

from __future__ import annotations

from jansunwai.services.classifier import (
    Classification,
    ComplaintClassifier,
    HttpComplaintClassifier,
    KeywordComplaintClassifier,
    RiskAssessment,
)
from jansunwai.services.identity import IdentityDirectory, InMemoryIdentityDirectory
from jansunwai.services.intake import ComplaintIntake, DuplicateDetector, FraudGate
from jansunwai.services.lifecycle import ComplaintLifecycleEngine
from jansunwai.services.repository import ComplaintRepository
from jansunwai.services.review import ReviewService

__all__ = [
    "Classification",
    "ComplaintClassifier",
    "ComplaintIntake",
    "ComplaintLifecycleEngine",
    "ComplaintRepository",
    "DuplicateDetector",
    "FraudGate",
    "HttpComplaintClassifier",
    "IdentityDirectory",
    "InMemoryIdentityDirectory",
    "KeywordComplaintClassifier",
    "ReviewService",
    "RiskAssessment",
]
