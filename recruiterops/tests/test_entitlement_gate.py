"""
Tests for the entitlement gate.

Pure functions: no database needed.
"""
from datetime import datetime, timedelta, timezone

from recruiterops.features.entitlements.gate import (
    features_for,
    has_feature,
    is_active,
    job_limit,
    plan_features,
)
from recruiterops.models.entitlement import EntitlementRecord

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_record(**overrides) -> EntitlementRecord:
    values = dict(id="user_1", email="user@x.com", plan="starter", subscription_status="trialing")
    values.update(overrides)
    return EntitlementRecord(**values)


def test_active_status_is_active():
    assert is_active(make_record(subscription_status="active"), NOW)


def test_trial_in_future_is_active():
    assert is_active(make_record(trial_ends_at=NOW + timedelta(hours=1)), NOW)


def test_trial_in_past_is_inactive():
    assert not is_active(make_record(trial_ends_at=NOW - timedelta(seconds=1)), NOW)


def test_trial_ending_exactly_now_is_inactive():
    assert not is_active(make_record(trial_ends_at=NOW), NOW)


def test_trial_without_end_is_inactive():
    assert not is_active(make_record(trial_ends_at=None), NOW)


def test_naive_trial_end_treated_as_utc():
    naive_future = (NOW + timedelta(days=1)).replace(tzinfo=None)
    assert is_active(make_record(trial_ends_at=naive_future), NOW)


def test_cancelled_never_active_regardless_of_other_fields():
    record = make_record(
        subscription_status="cancelled",
        plan="agency",
        trial_ends_at=NOW + timedelta(days=30),
        gumroad_sale_id="sale_1",
    )
    assert not is_active(record, NOW)
    assert features_for(record, NOW) == frozenset()
    assert not has_feature(record, "jobs", NOW)


def test_expired_and_unknown_status_inactive():
    assert not is_active(make_record(subscription_status="expired"), NOW)
    assert not is_active(make_record(subscription_status="inactive"), NOW)


def test_missing_record_inactive():
    assert not is_active(None, NOW)
    assert not has_feature(None, "jobs", NOW)


def test_plan_feature_tiers_are_nested():
    starter = plan_features("starter")
    pro = plan_features("pro")
    agency = plan_features("agency")
    assert {"jobs", "candidates", "pipeline_summary"} == set(starter)
    assert starter < pro < agency
    assert "outreach_drafts" in pro and "outreach_drafts" not in starter
    assert "reporting" in agency and "reporting" not in pro


def test_has_feature_by_plan():
    pro = make_record(subscription_status="active", plan="pro")
    assert has_feature(pro, "stalled_detection", NOW)
    assert not has_feature(pro, "custom_branding", NOW)


def test_unknown_plan_falls_back_to_starter():
    record = make_record(subscription_status="active", plan="professional")
    assert features_for(record, NOW) == plan_features("starter")
    assert job_limit("professional") == 1


def test_job_limits():
    assert job_limit("starter") == 1
    assert job_limit("pro") == 10
    assert job_limit("agency") is None
