"""Lead and owner plan factories."""

from datetime import timedelta

from polyfactory import Use

from src.leadflow.models import Lead, OwnerPlan, PlanTier
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class LeadFactory(BaseFactory):
    """Factory for generating Lead test data."""

    __model__ = Lead

    id = Use(generate_uuid)
    owner_id = Use(generate_uuid)
    business_name = Use(lambda: f"Biz {generate_uuid().hex[-8:]}")
    email = Use(lambda: f"owner-{generate_uuid().hex[-8:]}@example.com")
    niche = "plumbing"
    contact_status = "new"
    last_contacted_at = None
    next_follow_up_at = None
    notes = None
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def contacted(cls, days_ago: int, **kwargs):
        """A lead last contacted the given number of days ago."""
        now = kwargs.pop("now", None) or utc_now()
        return cls.build(
            contact_status=kwargs.pop("contact_status", "contacted"),
            last_contacted_at=now - timedelta(days=days_ago),
            **kwargs,
        )


class OwnerPlanFactory(BaseFactory):
    """Factory for generating OwnerPlan test data."""

    __model__ = OwnerPlan

    owner_id = Use(generate_uuid)
    tier = PlanTier.LITE.value
    updated_at = Use(utc_now)

    @classmethod
    def pro(cls, **kwargs):
        return cls.build(tier=PlanTier.PRO.value, **kwargs)
