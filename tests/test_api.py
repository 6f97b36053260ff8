"""HTTP tests for the v1 complaint, department, fraud and health endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from uuid import uuid4

import pytest
from conftest import WATER_TEXT
from fastapi.testclient import TestClient

from jansunwai.models.enums import Role
from jansunwai.models.identity import Actor


@dataclass
class Actors:
    citizen: Actor
    other: Actor
    water_admin: Actor
    super_admin: Actor


@pytest.fixture
def client() -> Iterator[TestClient]:
    from jansunwai.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def actors(client: TestClient) -> Actors:
    """Fresh actor ids per test so the per-actor rate limit never carries over."""
    suffix = uuid4().hex[:8]
    directory = client.app.state.directory
    registered = Actors(
        citizen=Actor(actor_id=f"citizen-{suffix}", role=Role.USER, display_name="Asha Devi"),
        other=Actor(actor_id=f"other-{suffix}", role=Role.USER, display_name="Ravi Kumar"),
        water_admin=Actor(
            actor_id=f"water-{suffix}",
            role=Role.DEPARTMENT_ADMIN,
            department="Water Supply",
            display_name="Water Officer",
        ),
        super_admin=Actor(actor_id=f"root-{suffix}", role=Role.SUPER_ADMIN, display_name="Collector"),
    )
    for actor in (registered.citizen, registered.other, registered.water_admin, registered.super_admin):
        directory.register(actor)
    return registered


def _as(actor: Actor) -> dict[str, str]:
    return {"X-Actor-Id": actor.actor_id}


def _create(client: TestClient, actor: Actor, **overrides) -> dict:
    body = {
        "complaint_text": WATER_TEXT,
        "latitude": 28.6139,
        "longitude": 77.2090,
        "images": ["uploads/photo-1.jpg"],
    }
    body.update(overrides)
    response = client.post("/api/v1/complaints", json=body, headers=_as(actor))
    assert response.status_code == 201, response.text
    return response.json()


def _resolved(client: TestClient, actors: Actors) -> str:
    complaint_id = _create(client, actors.citizen)["complaint"]["complaint_id"]
    assert client.post(f"/api/v1/complaints/{complaint_id}/submit", headers=_as(actors.citizen)).status_code == 200
    for status in ("IN_PROGRESS", "RESOLVED"):
        response = client.put(
            f"/api/v1/complaints/{complaint_id}/status",
            json={"status": status},
            headers=_as(actors.water_admin),
        )
        assert response.status_code == 200, response.text
    return complaint_id


# -----------------------------------------------------------------------
# Health / info
# -----------------------------------------------------------------------


class TestHealth:
    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness(self, client: TestClient) -> None:
        data = client.get("/api/v1/health/ready").json()
        assert data["status"] == "ready"
        assert data["checks"]["engine"] == "ok"
        assert data["checks"]["classifier_mode"] == "keyword"

    def test_api_info(self, client: TestClient) -> None:
        data = client.get("/api").json()
        assert data["policy"]["max_reopens"] == 2


# -----------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------


class TestActorHeader:
    def test_missing_header(self, client: TestClient) -> None:
        response = client.get("/api/v1/complaints/mine")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "ApiKey"
        body = response.json()
        assert body["status_code"] == 401
        assert body["message"] == "Missing X-Actor-Id header"
        assert body["details"]["rule"] == "unauthenticated"
        assert "detail" not in body

    def test_unknown_actor(self, client: TestClient) -> None:
        response = client.get("/api/v1/complaints/mine", headers={"X-Actor-Id": "nobody"})
        assert response.status_code == 401
        body = response.json()
        assert body["message"] == "Unknown actor"
        assert body["details"] == {"rule": "unauthenticated", "header": "X-Actor-Id"}

    def test_seeded_actors_are_recognised(self, client: TestClient) -> None:
        assert client.get("/api/v1/complaints/mine", headers={"X-Actor-Id": "citizen-demo"}).status_code == 200
        flagged = client.get("/api/v1/fraud/flagged", headers={"X-Actor-Id": "collector"})
        assert flagged.status_code == 200

    def test_unknown_route_uses_error_shape(self, client: TestClient) -> None:
        response = client.get("/api/v1/no-such-route")
        assert response.status_code == 404
        body = response.json()
        assert body["status_code"] == 404
        assert body["details"]["rule"] == "http_error"
        assert body["details"]["path"] == "/api/v1/no-such-route"


# -----------------------------------------------------------------------
# Complaint lifecycle
# -----------------------------------------------------------------------


class TestComplaintEndpoints:
    def test_create_and_read(self, client: TestClient, actors: Actors) -> None:
        created = _create(client, actors.citizen)
        complaint = created["complaint"]
        assert complaint["status"] == "PENDING"
        assert complaint["department"] == "Water Supply"
        assert created["duplicate"] is None

        mine = client.get("/api/v1/complaints/mine", headers=_as(actors.citizen)).json()
        assert mine["total"] == 1

        response = client.get(f"/api/v1/complaints/{complaint['complaint_id']}", headers=_as(actors.other))
        assert response.status_code == 403
        assert response.json()["details"]["rule"] == "unauthorized"

    def test_duplicate_is_reported(self, client: TestClient, actors: Actors) -> None:
        first = _create(client, actors.citizen)
        second = _create(client, actors.citizen)
        assert second["duplicate"]["complaint_id"] == first["complaint"]["complaint_id"]
        assert second["complaint"]["is_duplicate"] is True

    def test_validation_error_shape(self, client: TestClient, actors: Actors) -> None:
        response = client.post(
            "/api/v1/complaints",
            json={"complaint_text": "short", "latitude": 1, "longitude": 1, "images": ["a.jpg"]},
            headers=_as(actors.citizen),
        )
        assert response.status_code == 400
        body = response.json()
        assert body["status_code"] == 400
        assert body["details"]["field"] == "complaint_text"

    def test_missing_body_field_uses_same_shape(self, client: TestClient, actors: Actors) -> None:
        response = client.post(
            "/api/v1/complaints",
            json={"latitude": 1, "longitude": 1},
            headers=_as(actors.citizen),
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "complaint_text"

    def test_full_workflow(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)

        response = client.put(
            f"/api/v1/complaints/{complaint_id}/reopen",
            json={"reason": "Water still leaking from the joint"},
            headers=_as(actors.citizen),
        )
        assert response.status_code == 200, response.text
        assert response.json()["reopen_count"] == 1
        assert response.json()["remaining_reopens"] == 1

        timeline = client.get(f"/api/v1/complaints/{complaint_id}/timeline", headers=_as(actors.citizen)).json()
        assert [t["status"] for t in timeline["status_transitions"]] == [
            "SUBMITTED",
            "IN_PROGRESS",
            "RESOLVED",
            "REOPENED",
        ]
        assert timeline["status_transitions"][1]["changed_by"]["name"] == "Water Officer"

    def test_reopen_reason_too_short(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)
        response = client.put(
            f"/api/v1/complaints/{complaint_id}/reopen",
            json={"reason": "bad"},
            headers=_as(actors.citizen),
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "reason"

    def test_close_without_body(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)
        response = client.put(f"/api/v1/complaints/{complaint_id}/close", headers=_as(actors.citizen))
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "CLOSED"
        assert data["user_response"]["status"] == "ACCEPTED"

    def test_citizen_close_via_status_records_acceptance(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)
        response = client.put(
            f"/api/v1/complaints/{complaint_id}/status",
            json={"status": "CLOSED"},
            headers=_as(actors.citizen),
        )
        assert response.status_code == 200, response.text
        assert response.json()["old_status"] == "RESOLVED"
        assert response.json()["new_status"] == "CLOSED"

        complaint = client.get(f"/api/v1/complaints/{complaint_id}", headers=_as(actors.citizen)).json()
        assert complaint["user_response"]["status"] == "ACCEPTED"

    def test_admin_reopen_via_status_needs_reason(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)
        response = client.put(
            f"/api/v1/complaints/{complaint_id}/status",
            json={"status": "REOPENED"},
            headers=_as(actors.super_admin),
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "reason"

    def test_role_forbidden_lists_permitted_edges(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _create(client, actors.citizen)["complaint"]["complaint_id"]
        client.post(f"/api/v1/complaints/{complaint_id}/submit", headers=_as(actors.citizen))
        response = client.put(
            f"/api/v1/complaints/{complaint_id}/status",
            json={"status": "DUPLICATE"},
            headers=_as(actors.water_admin),
        )
        assert response.status_code == 403
        details = response.json()["details"]
        assert details["rule"] == "role_forbidden"
        assert details["edge"] == "SUBMITTED->DUPLICATE"
        assert "SUBMITTED->IN_PROGRESS" in details["permitted_edges"]

    def test_next_statuses(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)
        data = client.get(
            f"/api/v1/complaints/{complaint_id}/next-statuses", headers=_as(actors.citizen)
        ).json()
        assert data["current_status"] == "RESOLVED"
        assert data["next_statuses"] == ["CLOSED", "REOPENED"]

    def test_soft_delete(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _create(client, actors.citizen)["complaint"]["complaint_id"]
        response = client.delete(f"/api/v1/complaints/{complaint_id}", headers=_as(actors.citizen))
        assert response.status_code == 200
        assert response.json()["status"] == "PENDING"

        again = client.delete(f"/api/v1/complaints/{complaint_id}", headers=_as(actors.citizen))
        assert again.status_code == 400
        assert again.json()["details"]["rule"] == "delete_not_allowed"

    def test_blocked_submitter(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _create(client, actors.citizen)["complaint"]["complaint_id"]
        directory = client.app.state.directory
        client.portal.call(_block, directory, actors.citizen.actor_id)

        response = client.post(
            "/api/v1/complaints",
            json={
                "complaint_text": "Another complaint about the broken tap",
                "latitude": 28.6,
                "longitude": 77.2,
                "images": ["b.jpg"],
            },
            headers=_as(actors.citizen),
        )
        assert response.status_code == 403
        details = response.json()["details"]
        assert details["outcome"] == "BLOCKED_PENDING_PENALTY"
        assert details["action_required"] == "PAY_PENALTY"
        assert details["penalty_amount"] == 100.0
        assert complaint_id


async def _block(directory, user_id: str) -> None:
    standing = await directory.get_standing(user_id)
    await directory.save_standing(
        standing.model_copy(update={"is_blocked": True, "penalty_due": 100.0})
    )


# -----------------------------------------------------------------------
# Department and fraud review
# -----------------------------------------------------------------------


class TestDepartmentEndpoints:
    def test_queue_and_summary(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _resolved(client, actors)
        queue = client.get(
            "/api/v1/departments/Water Supply/complaints", headers=_as(actors.water_admin)
        ).json()
        assert complaint_id in [c["complaint_id"] for c in queue["complaints"]]

        forbidden = client.get("/api/v1/departments/Roads/complaints", headers=_as(actors.water_admin))
        assert forbidden.status_code == 403

        response = client.patch(
            f"/api/v1/complaints/{complaint_id}/department-summary",
            json={"summary": "Joint resealed and pressure tested"},
            headers=_as(actors.water_admin),
        )
        assert response.status_code == 200
        assert response.json()["department_summary"] == "Joint resealed and pressure tested"

        regenerated = client.post(
            f"/api/v1/complaints/{complaint_id}/summary/regenerate", headers=_as(actors.water_admin)
        )
        assert regenerated.status_code == 200
        assert regenerated.json()["ai_summary"]


class TestFraudEndpoints:
    def test_mark_and_list(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _create(client, actors.citizen)["complaint"]["complaint_id"]

        denied = client.get("/api/v1/fraud/flagged", headers=_as(actors.water_admin))
        assert denied.status_code == 403

        response = client.patch(
            f"/api/v1/fraud/{complaint_id}/mark-fake",
            json={"reason": "Same photo used in three districts"},
            headers=_as(actors.super_admin),
        )
        assert response.status_code == 200
        assert response.json()["is_flagged_fake"] is True

        flagged = client.get("/api/v1/fraud/flagged", headers=_as(actors.super_admin)).json()
        assert complaint_id in [c["complaint_id"] for c in flagged["complaints"]]

        cleared = client.patch(f"/api/v1/fraud/{complaint_id}/unmark-fake", headers=_as(actors.super_admin))
        assert cleared.json()["is_flagged_fake"] is False

    def test_high_risk_query_bounds(self, client: TestClient, actors: Actors) -> None:
        ok = client.get("/api/v1/fraud/high-risk?min_risk=10", headers=_as(actors.super_admin))
        assert ok.status_code == 200
        bad = client.get("/api/v1/fraud/high-risk?min_risk=500", headers=_as(actors.super_admin))
        assert bad.status_code == 400

    def test_all_complaints_and_settlement(self, client: TestClient, actors: Actors) -> None:
        complaint_id = _create(client, actors.citizen)["complaint"]["complaint_id"]

        listing = client.get("/api/v1/fraud/complaints", headers=_as(actors.super_admin)).json()
        assert complaint_id in [c["complaint_id"] for c in listing["complaints"]]
        denied = client.get("/api/v1/fraud/complaints", headers=_as(actors.citizen))
        assert denied.status_code == 403

        client.portal.call(_block, client.app.state.directory, actors.citizen.actor_id)
        settled = client.post(
            f"/api/v1/fraud/submitters/{actors.citizen.actor_id}/settle-penalty",
            headers=_as(actors.super_admin),
        )
        assert settled.status_code == 200, settled.text
        assert settled.json()["is_blocked"] is False
        assert settled.json()["penalty_paid"] is True

        again = client.post(
            f"/api/v1/fraud/submitters/{actors.citizen.actor_id}/settle-penalty",
            headers=_as(actors.super_admin),
        )
        assert again.status_code == 400
        assert again.json()["details"]["field"] == "user_id"
