"""Tests for the fake-complaint penalty gate."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from jansunwai.errors import PolicyBlocked
from jansunwai.models.enums import GateOutcome
from jansunwai.models.identity import SubmitterStanding
from jansunwai.services.identity import InMemoryIdentityDirectory
from jansunwai.services.intake.fraud_gate import BLOCK_REASON, FraudGate, evaluate

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def _blocked(**kwargs) -> SubmitterStanding:
    return SubmitterStanding(user_id="u1", is_blocked=True, penalty_due=100.0, **kwargs)


class TestEvaluate:
    @pytest.mark.parametrize("flagged", [False, True])
    def test_blocked_unpaid_rejected_regardless_of_flag(self, flagged: bool) -> None:
        decision = evaluate(_blocked(), flagged_fake=flagged, penalty_amount=100.0, now=NOW)
        assert decision.outcome == GateOutcome.BLOCKED_PENDING_PENALTY
        assert decision.penalty_amount == 100.0, "outstanding penalty must be reported"
        assert decision.updated_standing is None, "a blocked submitter's standing is not changed again"
        assert not decision.allowed

    def test_fake_flag_blocks_and_adds_exactly_the_penalty(self) -> None:
        standing = SubmitterStanding(user_id="u1", penalty_due=40.0)
        decision = evaluate(standing, flagged_fake=True, penalty_amount=100.0, now=NOW)
        assert decision.outcome == GateOutcome.FLAGGED_FAKE
        updated = decision.updated_standing
        assert updated is not None
        assert updated.is_blocked is True
        assert updated.penalty_due == 140.0
        assert updated.penalty_paid is False
        assert updated.blocked_reason == BLOCK_REASON
        assert updated.blocked_at == NOW
        assert standing.is_blocked is False, "evaluate must not mutate its input"

    def test_clean_submitter_admitted(self) -> None:
        decision = evaluate(SubmitterStanding(user_id="u1"), flagged_fake=False, penalty_amount=100.0, now=NOW)
        assert decision.allowed
        assert decision.penalty_amount == 0.0

    def test_paid_block_is_admitted(self) -> None:
        standing = _blocked(penalty_paid=True)
        decision = evaluate(standing, flagged_fake=False, penalty_amount=100.0, now=NOW)
        assert decision.outcome == GateOutcome.ADMITTED
        assert decision.penalty_amount == 0.0, "a paid penalty is not outstanding"


class TestFraudGate:
    async def test_ensure_not_blocked_rejects_blocked_submitter(self) -> None:
        directory = InMemoryIdentityDirectory()
        await directory.save_standing(_blocked())
        gate = FraudGate(directory)
        with pytest.raises(PolicyBlocked) as exc_info:
            await gate.ensure_not_blocked("u1", now=NOW)
        error = exc_info.value
        assert error.status_code == 403
        assert error.details["outcome"] == GateOutcome.BLOCKED_PENDING_PENALTY
        assert error.details["penalty_amount"] == 100.0
        assert error.details["action_required"] == "PAY_PENALTY"

    async def test_enforce_persists_block(self) -> None:
        directory = InMemoryIdentityDirectory()
        gate = FraudGate(directory, penalty_amount=250.0)
        standing = await gate.ensure_not_blocked("u1", now=NOW)
        with pytest.raises(PolicyBlocked) as exc_info:
            await gate.enforce(standing, flagged_fake=True, now=NOW)
        assert exc_info.value.outcome == GateOutcome.FLAGGED_FAKE
        stored = await directory.get_standing("u1")
        assert stored.is_blocked is True
        assert stored.penalty_due == 250.0

    async def test_settled_penalty_readmits(self) -> None:
        directory = InMemoryIdentityDirectory()
        await directory.save_standing(_blocked())
        await directory.settle_penalty("u1")
        gate = FraudGate(directory)
        standing = await gate.ensure_not_blocked("u1", now=NOW)
        decision = await gate.enforce(standing, flagged_fake=False, now=NOW)
        assert decision.allowed
        assert gate.penalty_amount == 100.0
