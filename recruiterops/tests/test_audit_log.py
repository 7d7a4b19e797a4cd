"""Tests for the best-effort audit writer."""
from unittest.mock import patch

from sqlalchemy import select

from recruiterops.core.database import usage_logs, webhook_logs
from recruiterops.features.audit.service import RAW_PAYLOAD_LIMIT


def test_webhook_log_persisted(services, db):
    assert services.audit.record_webhook(
        alert_type="sale", email="a@example.com", sale_id="sale_1", raw_payload="email=a%40example.com"
    )
    with db.session() as session:
        row = session.execute(select(webhook_logs)).first()
    assert row.alert_type == "sale"
    assert row.raw_payload == "email=a%40example.com"
    assert row.received_at is not None


def test_oversized_payload_truncated(services, db):
    services.audit.record_webhook(alert_type="sale", email=None, sale_id=None, raw_payload="x" * (RAW_PAYLOAD_LIMIT + 50))
    with db.session() as session:
        row = session.execute(select(webhook_logs)).first()
    assert row.raw_payload.endswith("...<truncated>")
    assert len(row.raw_payload) < RAW_PAYLOAD_LIMIT + 50


def test_usage_metadata_stringifies_non_scalars(services, db):
    services.audit.record_usage(customer_id="user_1", action="subscription_claimed", metadata={"count": 2, "when": object()})
    with db.session() as session:
        row = session.execute(select(usage_logs)).first()
    metadata = row._mapping["metadata"]
    assert metadata["count"] == 2
    assert isinstance(metadata["when"], str)


def test_failed_write_is_buffered_not_raised(services, caplog):
    with patch("recruiterops.features.audit.service.insert", side_effect=RuntimeError("disk full")):
        ok = services.audit.record_usage(customer_id="user_1", action="subscription_activated")

    assert ok is False
    buffered = services.audit.buffered()
    assert len(buffered) == 1
    assert buffered[0]["table"] == "usage_logs"
    assert buffered[0]["action"] == "subscription_activated"
    assert "disk full" in caplog.text
