"""Pytest fixtures: test client, test DB (in-memory SQLite), seed helpers."""
import os

import pytest
from fastapi.testclient import TestClient

# Test ortamında in-memory SQLite (app import edilmeden önce set edilmeli)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("ASAAS_WEBHOOK_SECRET", "test-asaas-token")
os.environ.setdefault("CLERK_WEBHOOK_SECRET", "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw")
os.environ.setdefault("ASAAS_API_KEY", "")
os.environ.setdefault("CLERK_SECRET_KEY", "")
# Kuyruk testlerde drain() ile elle boşaltılır
os.environ.setdefault("TASK_WORKER_ENABLED", "false")
# Sipariş rate limit yüksek olsun ki tüm testler geçebilsin
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")

from sqlmodel import Session, SQLModel

import app.models  # noqa: F401
from app.core.database import engine
from app.main import app
from app.models import Coupon, Order, PricingPlan
from app.services.task_queue import task_queue

PRODUCT_ID = "qbank_2026"


@pytest.fixture
def db():
    """Her test temiz tablolarla ve boş kuyrukla başlar."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    task_queue.clear()
    with Session(engine) as session:
        yield session
    task_queue.clear()


@pytest.fixture
def client(db):
    """TestClient; lifespan ile tablolar hazır olur (işçi thread'i kapalı)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def plan(db) -> PricingPlan:
    """Normal fiyat 120.00, PIX fiyatı 100.00."""
    p = PricingPlan(
        product_id=PRODUCT_ID,
        name="Banco de questões 2026",
        category="year_access",
        regular_price_cents=12000,
        pix_price_cents=10000,
        access_years="2026",
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def make_coupon(db):
    def _make(code="DESC10", discount_type="percentage", discount_value=10, **kw) -> Coupon:
        c = Coupon(code=code, discount_type=discount_type, discount_value=discount_value, **kw)
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    return _make


@pytest.fixture
def make_order(db):
    def _make(**kw) -> Order:
        values = {
            "email": "aluno@example.com",
            "tax_id": "52998224725",
            "name": "Maria Silva",
            "product_id": PRODUCT_ID,
            "payment_method": "PIX",
            "original_price_cents": 12000,
            "final_price_cents": 10000,
            "pix_discount_cents": 2000,
        }
        values.update(kw)
        order = Order(**values)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def reload(db):
    """Başka oturumların commit ettiği son durumu okur."""

    def _reload(model, pk):
        db.expire_all()
        return db.get(model, pk)

    return _reload
