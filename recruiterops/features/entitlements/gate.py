"""
Entitlement gate: pure functions of an EntitlementRecord.

Answers "is this account paid up?" and "does its plan include feature X?".
No I/O; callers pass their own clock when it matters.
"""

from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional

from recruiterops.features.entitlements.store import as_utc
from recruiterops.models.entitlement import EntitlementRecord, Plan, SubscriptionStatus

CORE_FEATURES = frozenset({
    "jobs",
    "candidates",
    "pipeline_summary",
})

PRO_FEATURES = CORE_FEATURES | {
    "outreach_drafts",
    "interview_scheduling",
    "stalled_detection",
}

AGENCY_FEATURES = PRO_FEATURES | {
    "team_seats",
    "reporting",
    "custom_branding",
}

PLAN_FEATURES: Dict[str, FrozenSet[str]] = {
    Plan.STARTER.value: CORE_FEATURES,
    Plan.PRO.value: frozenset(PRO_FEATURES),
    Plan.AGENCY.value: frozenset(AGENCY_FEATURES),
}

ALL_FEATURES = PLAN_FEATURES[Plan.AGENCY.value]

# Active (non-archived) job cap per plan; None = unlimited
PLAN_JOB_LIMITS: Dict[str, Optional[int]] = {
    Plan.STARTER.value: 1,
    Plan.PRO.value: 10,
    Plan.AGENCY.value: None,
}


def _plan_key(plan: Optional[str]) -> str:
    # Unknown plans get starter capabilities rather than an error
    return plan if plan in PLAN_FEATURES else Plan.STARTER.value


def is_active(record: Optional[EntitlementRecord], now: Optional[datetime] = None) -> bool:
    """Active subscription, or a trial that ends strictly after `now`."""
    if record is None:
        return False
    if record.subscription_status == SubscriptionStatus.ACTIVE.value:
        return True
    if record.subscription_status == SubscriptionStatus.TRIALING.value and record.trial_ends_at:
        now = as_utc(now) or datetime.now(timezone.utc)
        return as_utc(record.trial_ends_at) > now
    return False


def plan_features(plan: Optional[str]) -> FrozenSet[str]:
    return PLAN_FEATURES[_plan_key(plan)]


def features_for(record: Optional[EntitlementRecord], now: Optional[datetime] = None) -> FrozenSet[str]:
    """Features currently granted; empty when the subscription is not active."""
    if not is_active(record, now):
        return frozenset()
    return plan_features(record.plan)


def has_feature(record: Optional[EntitlementRecord], feature: str, now: Optional[datetime] = None) -> bool:
    return feature in features_for(record, now)


def job_limit(plan: Optional[str]) -> Optional[int]:
    return PLAN_JOB_LIMITS[_plan_key(plan)]
