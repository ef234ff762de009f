"""
backend/tests/test_logging_middleware.py

Purpose:
    Request id propagation and per-request JSON log lines.
"""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from obsada.middleware.logging import REQUEST_ID_HEADER, StructuredLoggingMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


def test_incoming_request_id_is_echoed_and_logged(caplog):
    client = TestClient(_app())

    with caplog.at_level(logging.INFO, logger="obsada.requests"):
        resp = client.get("/ping", headers={REQUEST_ID_HEADER: "gw-123"})

    assert resp.headers[REQUEST_ID_HEADER] == "gw-123"
    record = json.loads(caplog.records[-1].getMessage())
    assert record["request_id"] == "gw-123"
    assert record["path"] == "/ping"
    assert record["status"] == 200


def test_request_id_is_generated_when_missing(caplog):
    client = TestClient(_app())

    with caplog.at_level(logging.INFO, logger="obsada.requests"):
        resp = client.get("/missing")

    assert resp.status_code == 404
    assert len(resp.headers[REQUEST_ID_HEADER]) == 12
    assert caplog.records[-1].levelno == logging.WARNING
