"""Tests for the entitlement store (profiles table)."""
from datetime import datetime, timedelta, timezone

import pytest

from recruiterops.core.errors import ConflictError, ValidationError
from recruiterops.features.entitlements.store import as_utc


def test_create_applies_trial_defaults(services):
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    record = services.store.create("user_alice", "Alice@Example.com", full_name="Alice", now=now)

    assert record.email == "alice@example.com"
    assert record.plan == "starter"
    assert record.subscription_status == "trialing"
    assert record.trial_ends_at == now + timedelta(days=14)

    stored = services.store.get("user_alice")
    assert stored.full_name == "Alice"
    assert as_utc(stored.trial_ends_at) == now + timedelta(days=14)


def test_lookup_by_email_is_case_insensitive(services):
    services.store.create("user_alice", "alice@example.com")
    assert services.store.get_by_email("  ALICE@example.COM").id == "user_alice"
    assert services.store.get_by_email("bob@example.com") is None
    assert services.store.get_by_email(None) is None


def test_duplicate_email_conflicts(services):
    services.store.create("user_alice", "alice@example.com")
    with pytest.raises(ConflictError):
        services.store.create("user_other", "ALICE@example.com")


def test_create_requires_email(services):
    with pytest.raises(ValidationError):
        services.store.create("user_alice", "   ")


def test_get_or_create_is_idempotent(services):
    first = services.store.get_or_create("user_alice", "alice@example.com")
    second = services.store.get_or_create("user_alice", "Alice@Example.com")
    assert first.id == second.id == "user_alice"


def test_get_or_create_rejects_mismatched_email(services):
    services.store.create("user_alice", "alice@example.com")
    with pytest.raises(ConflictError):
        services.store.get_or_create("user_alice", "mallory@example.com")


def test_subscription_writer_cannot_touch_profile_fields(services):
    services.store.create("user_alice", "alice@example.com", full_name="Alice")
    with pytest.raises(ValueError):
        services.store.patch_subscription("user_alice", {"subscription_status": "active", "full_name": "Hacked"})
    assert services.store.get("user_alice").full_name == "Alice"
    assert services.store.get("user_alice").subscription_status == "trialing"


def test_profile_writer_cannot_touch_subscription_fields(services):
    services.store.create("user_alice", "alice@example.com")
    with pytest.raises(ValueError):
        services.store.patch_profile("user_alice", {"plan": "agency"})
    assert services.store.get("user_alice").plan == "starter"


def test_profile_and_subscription_writes_do_not_clobber(services):
    services.store.create("user_alice", "alice@example.com", full_name="Alice")

    services.store.patch_subscription("user_alice", {"subscription_status": "active", "plan": "pro"})
    services.store.patch_profile("user_alice", {"full_name": "Alice Recruiter", "webhook_outreach": "https://hook"})

    record = services.store.get("user_alice")
    assert record.subscription_status == "active"
    assert record.plan == "pro"
    assert record.full_name == "Alice Recruiter"
    assert record.webhook_outreach == "https://hook"


def test_patch_subscription_missing_account(services):
    assert services.store.patch_subscription("ghost", {"subscription_status": "active"}) is False
    assert services.store.patch_profile("ghost", {"full_name": "Ghost"}) is None


def test_patch_subscription_refuses_older_events(services):
    services.store.create("user_alice", "alice@example.com")
    newer = datetime(2026, 2, 1, tzinfo=timezone.utc)
    older = newer - timedelta(hours=1)

    assert services.store.patch_subscription(
        "user_alice",
        {"subscription_status": "cancelled", "last_event_at": newer},
        not_newer_than=newer,
    )
    assert not services.store.patch_subscription(
        "user_alice",
        {"subscription_status": "active", "last_event_at": older},
        not_newer_than=older,
    )
    record = services.store.get("user_alice")
    assert record.subscription_status == "cancelled"
    assert as_utc(record.last_event_at) == newer

    # Same timestamp re-applies (retries of the same delivery)
    assert services.store.patch_subscription(
        "user_alice",
        {"subscription_status": "cancelled", "last_event_at": newer},
        not_newer_than=newer,
    )
