"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import LeadFactory, WorkflowFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.lead import LeadFactory, OwnerPlanFactory
from tests.factories.workflow import WorkflowFactory, WorkflowStepFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Leads
    "LeadFactory",
    "OwnerPlanFactory",
    # Workflows
    "WorkflowFactory",
    "WorkflowStepFactory",
]
