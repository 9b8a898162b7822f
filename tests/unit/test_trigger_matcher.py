"""Tests for trigger predicates and first-match selection."""

from datetime import timedelta

import pytest

from src.leadflow.schemas.workflow import (
    InactiveForDaysTrigger,
    LeadImportedTrigger,
    NicheEqualsTrigger,
    StatusEqualsTrigger,
)
from src.leadflow.services.inactivity_monitor import NEVER_CONTACTED_DAYS, days_inactive
from src.leadflow.services.trigger_matcher import TriggerMatcher, trigger_matches
from src.leadflow.services.workflow_service import build_definition
from tests.factories import LeadFactory, WorkflowFactory, WorkflowStepFactory, utc_now

pytestmark = pytest.mark.unit


def _definition(owner_id, trigger, **kwargs):
    workflow = WorkflowFactory.build(owner_id=owner_id, trigger=trigger, **kwargs)
    step = WorkflowStepFactory.build(workflow_id=workflow.id)
    return build_definition(workflow, [step])


class TestTriggerMatches:
    def test_status_equals(self):
        now = utc_now()
        lead = LeadFactory.build(contact_status="new")

        assert trigger_matches(StatusEqualsTrigger(value="new"), lead, now)
        assert not trigger_matches(StatusEqualsTrigger(value="contacted"), lead, now)

    def test_niche_equals(self):
        now = utc_now()
        lead = LeadFactory.build(niche="dentist")

        assert trigger_matches(NicheEqualsTrigger(value="dentist"), lead, now)
        assert not trigger_matches(NicheEqualsTrigger(value="plumbing"), lead, now)

    def test_lead_imported_matches_only_new_leads(self):
        now = utc_now()

        assert trigger_matches(LeadImportedTrigger(), LeadFactory.build(), now)
        assert not trigger_matches(
            LeadImportedTrigger(), LeadFactory.build(contact_status="contacted"), now
        )

    def test_inactive_for_days_uses_last_contacted_at(self):
        now = utc_now()
        trigger = InactiveForDaysTrigger(value=7)

        assert trigger_matches(trigger, LeadFactory.contacted(10, now=now), now)
        assert trigger_matches(trigger, LeadFactory.contacted(7, now=now), now)
        assert not trigger_matches(trigger, LeadFactory.contacted(3, now=now), now)

    def test_inactive_for_days_never_contacted(self):
        """A never-contacted lead is inactive unless it is brand new."""
        now = utc_now()
        trigger = InactiveForDaysTrigger(value=7)

        assert not trigger_matches(trigger, LeadFactory.build(contact_status="new"), now)
        assert trigger_matches(trigger, LeadFactory.build(contact_status="qualified"), now)


class TestTriggerMatcher:
    def test_first_match_wins_in_priority_order(self):
        owner_id = LeadFactory.build().owner_id
        urgent = _definition(owner_id, {"type": "status_equals", "value": "new"}, priority=1)
        generic = _definition(owner_id, {"type": "lead_imported"}, priority=50)
        lead = LeadFactory.build(owner_id=owner_id)

        matcher = TriggerMatcher([urgent, generic])

        assert matcher.match(lead, utc_now()) is urgent

    def test_excluded_workflow_falls_through_to_next(self):
        owner_id = LeadFactory.build().owner_id
        first = _definition(owner_id, {"type": "status_equals", "value": "new"})
        second = _definition(owner_id, {"type": "lead_imported"})
        lead = LeadFactory.build(owner_id=owner_id)

        matcher = TriggerMatcher([first, second])

        assert matcher.match(lead, utc_now(), exclude={first.id}) is second

    def test_other_owners_workflows_never_match(self):
        definition = _definition(
            LeadFactory.build().owner_id, {"type": "status_equals", "value": "new"}
        )
        lead = LeadFactory.build()

        assert TriggerMatcher([definition]).match(lead, utc_now()) is None

    def test_inactive_workflow_is_ignored(self):
        owner_id = LeadFactory.build().owner_id
        definition = _definition(
            owner_id, {"type": "status_equals", "value": "new"}, is_active=False
        )

        lead = LeadFactory.build(owner_id=owner_id)

        assert TriggerMatcher([definition]).match(lead, utc_now()) is None

    def test_candidate_filters(self):
        owner_id = LeadFactory.build().owner_id
        matcher = TriggerMatcher(
            [
                _definition(owner_id, {"type": "status_equals", "value": "qualified"}),
                _definition(owner_id, {"type": "niche_equals", "value": "dentist"}),
                _definition(owner_id, {"type": "lead_imported"}),
            ]
        )

        statuses, niches = matcher.candidate_filters()

        assert statuses == {"qualified", "new"}
        assert niches == {"dentist"}
        assert matcher.owner_ids == {owner_id}

    def test_candidate_filters_unbounded_with_inactivity_trigger(self):
        owner_id = LeadFactory.build().owner_id
        matcher = TriggerMatcher(
            [
                _definition(owner_id, {"type": "status_equals", "value": "new"}),
                _definition(owner_id, {"type": "inactive_for_days", "value": 7}),
            ]
        )

        assert matcher.candidate_filters() == (None, None)


def test_inactivity_window_boundary():
    now = utc_now()
    lead = LeadFactory.build(
        contact_status="contacted", last_contacted_at=now - timedelta(days=7, seconds=-1)
    )

    assert not trigger_matches(InactiveForDaysTrigger(value=7), lead, now)


def test_days_inactive():
    now = utc_now()

    assert days_inactive(LeadFactory.contacted(10, now=now), now) == 10
    assert days_inactive(LeadFactory.build(last_contacted_at=None), now) == NEVER_CONTACTED_DAYS
