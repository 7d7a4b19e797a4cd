"""
recruiterops/models/entitlement.py

Entitlement record: a user's plan tier and subscription status.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Plan(str, Enum):
    """Closed set of plan tiers, cheapest first."""
    STARTER = "starter"
    PRO = "pro"
    AGENCY = "agency"


class SubscriptionStatus(str, Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Columns the payment reconciliation paths may write
SUBSCRIPTION_FIELDS = frozenset({
    "plan",
    "subscription_status",
    "trial_ends_at",
    "gumroad_sale_id",
    "gumroad_subscriber_id",
    "last_event_at",
    "updated_at",
})

# Columns the account owner may edit
PROFILE_FIELDS = frozenset({
    "full_name",
    "webhook_outreach",
    "webhook_calendar",
})


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Case-insensitive comparison key for emails."""
    if email is None:
        return None
    normalized = email.strip().lower()
    return normalized or None


class EntitlementRecord(BaseModel):
    """
    Stored representation of one account's entitlement.

    `plan` and `subscription_status` are kept as plain strings so rows written
    by older code (or by hand) still load; the gate treats unknown plans as
    starter and unknown statuses as inactive.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    plan: str = Plan.STARTER.value
    subscription_status: str = SubscriptionStatus.TRIALING.value
    trial_ends_at: Optional[datetime] = None
    gumroad_sale_id: Optional[str] = None
    gumroad_subscriber_id: Optional[str] = None
    last_event_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    full_name: Optional[str] = None
    webhook_outreach: Optional[str] = None
    webhook_calendar: Optional[str] = None
