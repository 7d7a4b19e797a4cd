"""Tests for liveness/readiness endpoints."""
from unittest.mock import patch

from sqlalchemy import text


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_with_schema(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json() == {"ready": True}


def test_readyz_reports_missing_tables(client, db):
    with db.session() as session:
        session.execute(text("DROP TABLE usage_logs"))

    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["missing_tables"] == ["usage_logs"]


def test_readyz_database_down(client, db):
    with patch.object(db, "check_connection", return_value=False):
        resp = client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["reason"] == "database_unavailable"
