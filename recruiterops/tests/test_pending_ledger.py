"""Tests for the pending-purchase ledger."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, func

from recruiterops.core.database import pending_subscriptions


def count_pending(db):
    with db.session() as session:
        return session.execute(select(func.count()).select_from(pending_subscriptions)).scalar_one()


def test_upsert_then_get(services):
    services.ledger.upsert("Buyer@Example.com", "pro", sale_id="sale_1", subscriber_id="sub_1")

    pending = services.ledger.get("buyer@example.com")
    assert pending.plan == "pro"
    assert pending.gumroad_sale_id == "sale_1"
    assert pending.gumroad_subscriber_id == "sub_1"


def test_second_upsert_overwrites(services, db):
    services.ledger.upsert("buyer@example.com", "pro", sale_id="sale_1")
    services.ledger.upsert("BUYER@example.com", "agency", sale_id="sale_2")

    assert count_pending(db) == 1
    pending = services.ledger.get("buyer@example.com")
    assert pending.plan == "agency"
    assert pending.gumroad_sale_id == "sale_2"


def test_delete(services):
    services.ledger.upsert("buyer@example.com", "pro")
    assert services.ledger.delete("Buyer@example.com") is True
    assert services.ledger.get("buyer@example.com") is None
    assert services.ledger.delete("buyer@example.com") is False


def test_upsert_requires_email(services):
    with pytest.raises(ValueError):
        services.ledger.upsert(" ", "pro")


def test_list_older_than(services):
    services.ledger.upsert("old@example.com", "pro")
    cutoff = datetime.now(timezone.utc) + timedelta(minutes=1)
    assert [p.email for p in services.ledger.list_older_than(cutoff)] == ["old@example.com"]
    assert services.ledger.list_older_than(cutoff - timedelta(days=1)) == []
