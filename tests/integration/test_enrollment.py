"""Enrollment manager tests: single active enrollment, idempotent matching."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings
from src.leadflow.core.exceptions import AlreadyEnrolledError, WorkflowInactiveError
from src.leadflow.models import Enrollment, EnrollmentStatus
from src.leadflow.services.enrollment_service import EnrollmentService
from tests.factories import LeadFactory, utc_now
from tests.helpers import action_logs_for, create_workflow, enrollments_for, reload

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]

NURTURE_STEPS = [
    {"action": "send_message", "delay_days": 1},
    {"action": "update_status", "delay_days": 3, "new_status": "attempted"},
]


async def _seed(db_session: AsyncSession, trigger=None, steps=None, **lead_kwargs):
    lead = LeadFactory.build(**lead_kwargs)
    db_session.add(lead)
    await db_session.commit()
    definition = await create_workflow(
        db_session,
        lead.owner_id,
        trigger or {"type": "status_equals", "value": "new"},
        steps or NURTURE_STEPS,
    )
    return lead, definition


async def test_enroll_starts_at_step_one(db_session: AsyncSession, settings: Settings):
    lead, definition = await _seed(db_session)
    now = utc_now()

    enrollment = await EnrollmentService(db_session, settings).enroll(
        lead, definition, reason="manual", now=now
    )

    stored = await reload(db_session, Enrollment, enrollment.id)
    assert stored.status == EnrollmentStatus.ACTIVE.value
    assert stored.current_step_order == 1
    assert stored.next_action_at == now + timedelta(days=1)
    assert stored.meta["reason"] == "manual"

    logs = await action_logs_for(db_session, lead.id)
    assert [log.action_type for log in logs] == ["enrolled"]
    assert logs[0].decision["workflow_id"] == str(definition.id)


async def test_second_enroll_is_rejected(db_session: AsyncSession, settings: Settings):
    lead, definition = await _seed(db_session)
    service = EnrollmentService(db_session, settings)
    now = utc_now()

    await service.enroll(lead, definition, reason="manual", now=now)
    with pytest.raises(AlreadyEnrolledError):
        await service.enroll(lead, definition, reason="manual", now=now)

    assert len(await enrollments_for(db_session, lead.id)) == 1


async def test_concurrent_insert_hits_unique_index(
    db_session: AsyncSession, settings: Settings, monkeypatch: pytest.MonkeyPatch
):
    """A lost check-then-insert race surfaces as AlreadyEnrolled, not a crash."""
    lead, definition = await _seed(db_session)
    lead_id = lead.id
    service = EnrollmentService(db_session, settings)
    await service.enroll(lead, definition, reason="manual", now=utc_now())

    async def _no_active(*args, **kwargs):
        return None

    monkeypatch.setattr(service.enrollment_repo, "get_active", _no_active)
    with pytest.raises(AlreadyEnrolledError):
        await service.enroll(lead, definition, reason="race", now=utc_now())

    enrollments = await enrollments_for(db_session, lead_id)
    assert len(enrollments) == 1
    assert enrollments[0].meta["reason"] == "manual"


async def test_inactive_workflow_rejects_enrollment(db_session: AsyncSession, settings: Settings):
    lead, definition = await _seed(db_session)
    definition.workflow.is_active = False

    with pytest.raises(WorkflowInactiveError):
        await EnrollmentService(db_session, settings).enroll(
            lead, definition, reason="manual", now=utc_now()
        )


async def test_enroll_matching_is_idempotent(db_session: AsyncSession, settings: Settings):
    lead, definition = await _seed(db_session)
    lead_id = lead.id
    service = EnrollmentService(db_session, settings)
    now = utc_now()

    first = await service.enroll_matching(now)
    second = await service.enroll_matching(now)

    assert first.succeeded == 1
    assert second.succeeded == 0
    enrollments = await enrollments_for(db_session, lead_id)
    assert len(enrollments) == 1
    assert enrollments[0].workflow_id == definition.id
    assert enrollments[0].meta["reason"] == "trigger_matched"


async def test_enroll_matching_skips_non_matching_leads(
    db_session: AsyncSession, settings: Settings
):
    lead, _ = await _seed(db_session, contact_status="qualified")

    result = await EnrollmentService(db_session, settings).enroll_matching(utc_now())

    assert result.succeeded == 0
    assert await enrollments_for(db_session, lead.id) == []


async def test_completed_workflow_is_not_re_entered(db_session: AsyncSession, settings: Settings):
    lead, definition = await _seed(db_session)
    lead_id = lead.id
    service = EnrollmentService(db_session, settings)
    now = utc_now()

    enrollment = await service.enroll(lead, definition, reason="manual", now=now)
    service.complete(enrollment, now)
    await db_session.commit()

    result = await service.enroll_matching(now + timedelta(days=1))

    assert result.succeeded == 0
    assert len(await enrollments_for(db_session, lead_id)) == 1


async def test_cancelled_enrollment_may_re_enroll(db_session: AsyncSession, settings: Settings):
    lead, definition = await _seed(db_session)
    lead_id = lead.id
    service = EnrollmentService(db_session, settings)
    now = utc_now()

    enrollment = await service.enroll(lead, definition, reason="manual", now=now)
    cancelled = await service.cancel_by_id(enrollment.id, "owner_request", now)
    assert cancelled.meta["cancel_reason"] == "owner_request"

    result = await service.enroll_matching(now)

    assert result.succeeded == 1
    statuses = sorted(e.status for e in await enrollments_for(db_session, lead_id))
    assert statuses == ["active", "cancelled"]


async def test_cancel_unknown_enrollment(db_session: AsyncSession, settings: Settings):
    with pytest.raises(LookupError):
        await EnrollmentService(db_session, settings).cancel_by_id(
            LeadFactory.build().id, "owner_request", utc_now()
        )


async def test_enrolled_log_is_written_once(db_session: AsyncSession, settings: Settings):
    lead, _ = await _seed(db_session)
    service = EnrollmentService(db_session, settings)
    await service.enroll_matching(utc_now())
    await service.enroll_matching(utc_now())

    logs = await action_logs_for(db_session, lead.id)
    assert [log.action_type for log in logs] == ["enrolled"]
