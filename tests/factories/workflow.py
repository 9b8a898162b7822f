"""Workflow definition factories."""

from polyfactory import Use

from src.leadflow.models import Workflow, WorkflowStep
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class WorkflowFactory(BaseFactory):
    """Factory for generating Workflow rows (trigger defaults to status_equals new)."""

    __model__ = Workflow

    id = Use(generate_uuid)
    owner_id = Use(generate_uuid)
    name = Use(lambda: f"Workflow {generate_uuid().hex[-8:]}")
    trigger = Use(lambda: {"type": "status_equals", "value": "new"})
    priority = 100
    is_active = True
    created_at = Use(utc_now)
    updated_at = Use(utc_now)


class WorkflowStepFactory(BaseFactory):
    """Factory for generating WorkflowStep rows (a wait step by default)."""

    __model__ = WorkflowStep

    id = Use(generate_uuid)
    workflow_id = Use(generate_uuid)
    step_order = 1
    action = "wait"
    delay_days = 0
    params = Use(dict)
    created_at = Use(utc_now)
