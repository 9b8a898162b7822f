"""HTTP surface tests via httpx ASGITransport."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings
from src.leadflow.models import MessageDraft
from tests.factories import LeadFactory, generate_uuid, utc_now
from tests.helpers import enrollments_for

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]

WORKFLOW_PAYLOAD = {
    "name": "New lead nurture",
    "trigger": {"type": "status_equals", "value": "new"},
    "steps": [
        {"action": "send_message", "tone": "friendly"},
        {"action": "update_status", "delay_days": 3, "new_status": "attempted"},
    ],
}


async def _create_workflow(client: AsyncClient, owner_id, **overrides) -> dict:
    response = await client.post(
        "/api/v1/workflows",
        json={**WORKFLOW_PAYLOAD, "owner_id": str(owner_id), **overrides},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestWorkflowEndpoints:
    async def test_create_and_list(self, client: AsyncClient):
        owner_id = generate_uuid()
        created = await _create_workflow(client, owner_id)

        assert created["is_active"] is True
        assert created["trigger"] == {"type": "status_equals", "value": "new"}
        assert [s["action"] for s in created["steps"]] == ["send_message", "update_status"]
        assert created["steps"][1]["params"] == {"new_status": "attempted"}

        response = await client.get("/api/v1/workflows", params={"owner_id": str(owner_id)})
        assert response.status_code == 200
        body = response.json()
        assert [w["id"] for w in body["items"]] == [created["id"]]
        assert len(body["items"][0]["steps"]) == 2
        assert body["has_more"] is False

    async def test_list_pages_with_cursor(self, client: AsyncClient):
        owner_id = generate_uuid()
        created = [await _create_workflow(client, owner_id, name=f"W{i}") for i in range(3)]

        first = (
            await client.get(
                "/api/v1/workflows", params={"owner_id": str(owner_id), "limit": 2}
            )
        ).json()
        second = (
            await client.get(
                "/api/v1/workflows",
                params={"owner_id": str(owner_id), "limit": 2, "cursor": first["next_cursor"]},
            )
        ).json()

        assert first["has_more"] is True
        assert second["has_more"] is False
        assert second["next_cursor"] is None
        seen = [w["id"] for w in first["items"] + second["items"]]
        assert sorted(seen) == sorted(w["id"] for w in created)

    async def test_create_rejects_bad_steps(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/workflows",
            json={
                **WORKFLOW_PAYLOAD,
                "owner_id": str(generate_uuid()),
                "steps": [{"action": "update_status"}],
            },
        )

        assert response.status_code == 422

    async def test_replace_steps(self, client: AsyncClient):
        created = await _create_workflow(client, generate_uuid())

        response = await client.put(
            f"/api/v1/workflows/{created['id']}/steps",
            json={"steps": [{"action": "add_note", "text": "Imported"}]},
        )

        assert response.status_code == 200
        steps = response.json()["steps"]
        assert len(steps) == 1
        assert steps[0]["step_order"] == 1
        assert steps[0]["params"] == {"text": "Imported"}

    async def test_deactivate_and_activate(self, client: AsyncClient):
        created = await _create_workflow(client, generate_uuid())

        off = await client.post(f"/api/v1/workflows/{created['id']}/deactivate")
        on = await client.post(f"/api/v1/workflows/{created['id']}/activate")

        assert off.json()["is_active"] is False
        assert on.json()["is_active"] is True

    async def test_unknown_workflow_is_404(self, client: AsyncClient):
        response = await client.post(f"/api/v1/workflows/{generate_uuid()}/activate")

        assert response.status_code == 404
        assert "request_id" in response.json()


class TestEngineEndpoints:
    async def test_run_returns_summary(
        self, client: AsyncClient, db_session: AsyncSession, text_generator
    ):
        lead = LeadFactory.build()
        db_session.add(lead)
        await db_session.commit()
        await _create_workflow(client, lead.owner_id)
        now = utc_now()

        response = await client.post("/api/v1/engine/run", json={"now": now.isoformat()})

        assert response.status_code == 200
        body = response.json()
        assert body["enrolled"] == 1
        assert body["steps_executed"] == 1
        assert set(body["phases"]) == {"enroll", "signals", "inactivity", "tick"}
        assert body["phases"]["tick"]["executed"] == 1
        assert body["errors"] == []
        assert len(text_generator.calls) == 1

        enrollments = await enrollments_for(db_session, lead.id)
        assert enrollments[0].next_action_at == now + timedelta(days=3)

    async def test_run_without_body(self, client: AsyncClient):
        response = await client.post("/api/v1/engine/run")

        assert response.status_code == 200
        assert response.json()["enrolled"] == 0

    async def test_enroll_endpoint(self, client: AsyncClient, db_session: AsyncSession):
        lead = LeadFactory.build()
        db_session.add(lead)
        await db_session.commit()
        await _create_workflow(client, lead.owner_id)

        response = await client.post("/api/v1/engine/enroll")

        assert response.status_code == 200
        assert response.json()["enrolled"] == 1

    async def test_engine_key_required_when_configured(
        self, client: AsyncClient, settings: Settings
    ):
        settings.engine_api_key = "s3cret"

        missing = await client.post("/api/v1/engine/run")
        wrong = await client.post("/api/v1/engine/run", headers={"X-Engine-Key": "nope"})
        ok = await client.post("/api/v1/engine/run", headers={"X-Engine-Key": "s3cret"})

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert ok.status_code == 200


class TestSignalEndpoint:
    async def test_records_known_message(self, client: AsyncClient, db_session: AsyncSession):
        lead = LeadFactory.build()
        db_session.add(lead)
        db_session.add(
            MessageDraft(
                owner_id=lead.owner_id,
                lead_id=lead.id,
                subject="Hello",
                body="Hi",
                status="sent",
                provider_message_id="re_123",
            )
        )
        await db_session.commit()

        response = await client.post(
            "/api/v1/signals",
            json={"type": "email.opened", "data": {"email_id": "re_123"}},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["received"] is True
        assert body["matched"] is True
        assert body["event_type"] == "opened"

    async def test_unknown_message(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/signals",
            json={"type": "email.opened", "data": {"email_id": "re_nobody"}},
        )

        assert response.status_code == 202
        assert response.json() == {
            "received": True,
            "matched": False,
            "signal_id": None,
            "event_type": "opened",
        }


async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "healthy"


async def test_responses_carry_request_id(client: AsyncClient):
    request_id = "6f1c2d3e4b5a4c7d8e9f0a1b2c3d4e5f"
    response = await client.get("/health", headers={"X-Request-ID": request_id})

    assert response.headers["X-Request-ID"] == request_id


class TestEnrollmentEndpoints:
    async def test_cancel_enrollment(self, client: AsyncClient, db_session: AsyncSession):
        lead = LeadFactory.build()
        db_session.add(lead)
        await db_session.commit()
        await _create_workflow(client, lead.owner_id)
        await client.post("/api/v1/engine/enroll")
        enrollment = (await enrollments_for(db_session, lead.id))[0]

        response = await client.post(
            f"/api/v1/enrollments/{enrollment.id}/cancel", json={"reason": "lead asked"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["next_action_at"] is None
        assert body["metadata"]["cancel_reason"] == "lead asked"

    async def test_cancel_unknown_enrollment(self, client: AsyncClient):
        response = await client.post(f"/api/v1/enrollments/{generate_uuid()}/cancel")

        assert response.status_code == 404
