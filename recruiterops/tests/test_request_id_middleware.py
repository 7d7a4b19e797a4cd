import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from recruiterops.core.middleware.request_id import RequestIdMiddleware


def _make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/")
    async def root(request: Request):
        return {"request_id": getattr(request.state, "request_id", None)}

    return app


def test_generates_request_id_when_missing():
    client = TestClient(_make_app())

    resp = client.get("/")
    assert resp.status_code == 200
    rid_header = resp.headers.get("x-request-id")
    body_rid = resp.json().get("request_id")

    assert rid_header
    assert rid_header == body_rid


def test_echoes_provided_request_id():
    client = TestClient(_make_app())

    provided = "test-rid-123"
    resp = client.get("/", headers={"X-Request-Id": provided})

    assert resp.headers.get("x-request-id") == provided
    assert resp.json().get("request_id") == provided


def test_completion_logged_with_request_id(client, caplog):
    with caplog.at_level(logging.INFO, logger="recruiterops"):
        resp = client.get("/healthz")
    rid = resp.headers.get("x-request-id")
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records
    assert any(r.getMessage() == "request.complete" for r in records)


def test_error_response_carries_request_id(client):
    resp = client.get("/api/profile", headers={"X-User-Id": "ghost"})
    assert resp.status_code == 404
    assert resp.json()["error"]["request_id"] == resp.headers.get("x-request-id")
