"""Admission of new complaints: fraud gate, duplicate detection, creation."""

from __future__ import annotations

from jansunwai.services.intake.duplicates import DuplicateDetector, DuplicateMatch, find_duplicate
from jansunwai.services.intake.fraud_gate import FraudGate, GateDecision, evaluate
from jansunwai.services.intake.geo import haversine_distance_m
from jansunwai.services.intake.service import ComplaintIntake, validate_submission
from jansunwai.services.intake.similarity import similarity

__all__ = [
    "ComplaintIntake",
    "DuplicateDetector",
    "DuplicateMatch",
    "FraudGate",
    "GateDecision",
    "evaluate",
    "find_duplicate",
    "haversine_distance_m",
    "similarity",
    "validate_submission",
]
