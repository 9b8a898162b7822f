"""Trigger matching: which workflow, if any, a lead should be enrolled in."""

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

from src.leadflow.models import Lead
from src.leadflow.schemas.workflow import (
    InactiveForDaysTrigger,
    LeadImportedTrigger,
    NicheEqualsTrigger,
    StatusEqualsTrigger,
    Trigger,
)
from src.leadflow.services.workflow_service import WorkflowDefinition

NEW_STATUS = "new"


def trigger_matches(trigger: Trigger, lead: Lead, now: datetime) -> bool:
    """Evaluate one trigger predicate against a lead."""
    match trigger:
        case StatusEqualsTrigger(value=value):
            return lead.contact_status == value
        case NicheEqualsTrigger(value=value):
            return lead.niche == value
        case LeadImportedTrigger():
            return lead.contact_status == NEW_STATUS
        case InactiveForDaysTrigger(value=days):
            if lead.last_contacted_at is None:
                # Never contacted counts as inactive unless the lead is brand new
                return lead.contact_status != NEW_STATUS
            return now - lead.last_contacted_at >= timedelta(days=days)
    return False


class TriggerMatcher:
    """First-match trigger evaluation.

    Definitions are evaluated in the order given, which is the repository's
    (priority, created_at, id) order, so the result is deterministic.
    """

    def __init__(self, definitions: list[WorkflowDefinition]):
        self.definitions = definitions

    def match(
        self,
        lead: Lead,
        now: datetime,
        exclude: Iterable[UUID] = (),
    ) -> WorkflowDefinition | None:
        """Return the first active workflow of the lead's owner whose trigger holds.

        Args:
            lead: Lead to evaluate
            now: Evaluation time for time-based predicates
            exclude: Workflow IDs the lead may not be enrolled in again
        """
        excluded = set(exclude)
        for definition in self.definitions:
            workflow = definition.workflow
            if not workflow.is_active or workflow.owner_id != lead.owner_id:
                continue
            if workflow.id in excluded:
                continue
            if trigger_matches(definition.trigger, lead, now):
                return definition
        return None

    def candidate_filters(self) -> tuple[set[str] | None, set[str] | None]:
        """Status and niche values that could possibly match.

        Returns (None, None) when some trigger can match any lead, so the
        lead query must not be narrowed.
        """
        statuses: set[str] = set()
        niches: set[str] = set()
        for definition in self.definitions:
            match definition.trigger:
                case StatusEqualsTrigger(value=value):
                    statuses.add(value)
                case NicheEqualsTrigger(value=value):
                    niches.add(value)
                case LeadImportedTrigger():
                    statuses.add(NEW_STATUS)
                case InactiveForDaysTrigger():
                    return None, None
        return statuses, niches

    @property
    def owner_ids(self) -> set[UUID]:
        return {d.workflow.owner_id for d in self.definitions}
