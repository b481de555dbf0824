"""HTTP contract against the SQLAlchemy backend, including database outages."""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.api.deps import get_storage
from app.main import app
from app.storage.sql import SqlTokenStorage


@pytest.fixture
def sql_client(sql_session):
    app.dependency_overrides[get_storage] = lambda: SqlTokenStorage(sql_session)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestSqlFlow:
    def test_waiting_then_finished_then_activate(self, sql_client):
        sql_client.post("/webhook/nowpayments", json={"payment_id": "P1", "payment_status": "waiting"})
        resp = sql_client.get("/token-by-payment/P1")
        assert resp.status_code == 404
        assert resp.json()["status"] == "waiting"

        sql_client.post("/webhook/nowpayments", json={"payment_id": "P1", "payment_status": "finished"})
        token = sql_client.get("/token-by-payment/P1").json()["token"]
        assert len(token) == 32

        replay = sql_client.post("/webhook/nowpayments", json={"payment_id": "P1", "payment_status": "finished"})
        assert replay.status_code == 200
        assert sql_client.get("/token-by-payment/P1").json()["token"] == token

        resp = sql_client.post("/activate", json={"token": token, "tiktokUsername": "alice"})
        assert resp.status_code == 200
        assert resp.json()["ok"] is True

        resp = sql_client.post("/activate", json={"token": token, "tiktokUsername": "bob"})
        assert resp.status_code == 403
        assert resp.json()["ok"] is False


class TestDatabaseOutage:
    def test_check_returns_storage_envelope(self, sql_client, sql_session):
        down = OperationalError("SELECT 1", {}, Exception("down"))
        with patch.object(sql_session, "get", side_effect=down):
            resp = sql_client.post("/check", json={"token": "A" * 32})
        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "error": "Storage unavailable"}

    def test_ready_reports_not_ready(self, sql_client, sql_session):
        down = OperationalError("SELECT 1", {}, Exception("down"))
        with patch.object(sql_session, "execute", side_effect=down):
            resp = sql_client.get("/ready")
        assert resp.status_code == 503
        assert resp.json()["status"] == "not_ready"
