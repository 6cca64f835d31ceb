"""Health endpoint ve ortak hata gövdesi."""
import logging

from fastapi.testclient import TestClient

from app.logging import setup_logging


def test_health_returns_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    j = r.json()
    assert j.get("status") == "ok"
    assert j.get("database") == "ok"
    assert j.get("asaas_configured") is False
    assert j.get("pending_tasks") == 0
    assert r.headers.get("X-Request-ID")


def test_error_body_shape(client: TestClient):
    r = client.get("/admin/orders")
    assert r.status_code == 403
    j = r.json()
    assert j["error"] == "Não autorizado."
    assert j["status_code"] == 403
    assert j["request_id"] == r.headers["X-Request-ID"]


def test_setup_logging_levels():
    setup_logging("debug")
    assert logging.getLogger("checkout").level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    setup_logging("bogus")
    assert logging.getLogger("checkout").level == logging.INFO
    setup_logging(logging.INFO)
