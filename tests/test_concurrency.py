"""
Eşzamanlı teslimat: aynı sipariş için paralel onay ve claim'ler.

Thread'ler arasında gerçek satır kilidi için dosya tabanlı SQLite kullanılır;
her çağıran kendi oturumunda çalışır.
"""
import threading

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from app.core.clock import utcnow
from app.models import Coupon, CouponUsage, Order, PricingPlan, UserProduct
from app.schemas.webhooks import AsaasPayment
from app.services import payment_confirmation, reconciler
from app.services.identity_claim import claim_order_by_email
from app.services.payment_confirmation import confirm_payment
from app.services.reconciler import maybe_provision_access
from app.services.task_queue import task_queue

ACCOUNT_ID = "user_2abc"
EMAIL = "aluno@example.com"


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'checkout.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)
    task_queue.clear()
    yield engine
    task_queue.clear()
    engine.dispose()


@pytest.fixture
def seed_order(file_engine):
    """Plan + DESC10 kuponu + 90.00'lık kuponlu PIX siparişi."""

    def _seed(**kw) -> str:
        with Session(file_engine) as s:
            s.add(
                PricingPlan(
                    product_id="qbank_2026",
                    name="Banco de questões 2026",
                    regular_price_cents=12000,
                    pix_price_cents=10000,
                    access_years="2026",
                )
            )
            s.add(Coupon(code="DESC10", discount_type="percentage", discount_value=10))
            values = {
                "email": EMAIL,
                "tax_id": "52998224725",
                "name": "Maria Silva",
                "product_id": "qbank_2026",
                "payment_method": "PIX",
                "original_price_cents": 12000,
                "final_price_cents": 9000,
                "coupon_code": "DESC10",
                "coupon_discount_cents": 1000,
                "pix_discount_cents": 2000,
            }
            values.update(kw)
            order = Order(**values)
            s.add(order)
            s.commit()
            return order.id

    return _seed


def _payment(order_id: str) -> AsaasPayment:
    return AsaasPayment.model_validate({"id": "p1", "status": "CONFIRMED", "value": 90.00, "externalReference": order_id})


def _run_concurrently(engine, jobs) -> list:
    """Her iş kendi oturumunda, ortak bir bariyerden sonra aynı anda başlar."""
    barrier = threading.Barrier(len(jobs))
    results = [None] * len(jobs)
    errors = []

    def worker(index, job):
        try:
            with Session(engine) as session:
                barrier.wait()
                results[index] = job(session)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i, job)) for i, job in enumerate(jobs)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert errors == []
    return results


def _assert_single_fulfillment(engine, order_id):
    with Session(engine) as s:
        order = s.get(Order, order_id)
        assert order.status == "completed"
        assert order.account_id == ACCOUNT_ID
        assert len(s.exec(select(CouponUsage).where(CouponUsage.order_id == order_id)).all()) == 1
        assert s.exec(select(Coupon).where(Coupon.code == "DESC10")).one().current_uses == 1
        assert len(s.exec(select(UserProduct).where(UserProduct.order_id == order_id)).all()) == 1


@pytest.mark.parametrize("run", range(3))
def test_parallel_confirmations_and_claims_fulfill_once(file_engine, seed_order, run):
    order_id = seed_order()
    payment = _payment(order_id)
    jobs = [lambda s: confirm_payment(s, payment) for _ in range(4)]
    jobs += [lambda s: claim_order_by_email(s, EMAIL, ACCOUNT_ID) for _ in range(2)]

    results = _run_concurrently(file_engine, jobs)

    identities, claims = results[:4], results[4:]
    assert all(identity is not None and identity.order_id == order_id for identity in identities)
    assert all(claim.success for claim in claims)
    _assert_single_fulfillment(file_engine, order_id)
    # Fatura görevi sadece kazanan onaydan
    assert task_queue.pending() == 1


def test_confirmation_overtaken_before_update_is_replay(file_engine, seed_order, monkeypatch):
    order_id = seed_order()
    payment = _payment(order_id)
    real_check = payment_confirmation.check_amount
    overtaken = []

    def check_then_lose_race(order, p):
        # Okuma ile koşullu UPDATE arasında aynı olayın başka bir teslimatı biter
        if not overtaken:
            overtaken.append(True)
            with Session(file_engine) as other:
                assert confirm_payment(other, p) is not None
        real_check(order, p)

    monkeypatch.setattr(payment_confirmation, "check_amount", check_then_lose_race)
    with Session(file_engine) as s:
        identity = confirm_payment(s, payment)

    assert identity is not None and identity.order_id == order_id
    with Session(file_engine) as s:
        assert s.get(Order, order_id).status == "paid"
        assert len(s.exec(select(CouponUsage)).all()) == 1
        assert s.exec(select(Coupon)).one().current_uses == 1
    assert task_queue.pending() == 1


def test_reconcile_overtaken_before_update_grants_once(file_engine, seed_order, monkeypatch):
    order_id = seed_order(status="paid", account_id=ACCOUNT_ID, account_email=EMAIL)
    overtaken = []

    def clock_then_lose_race():
        # Guard okundu; UPDATE'ten önce başka bir reconcile çağrısı erişimi verir
        if not overtaken:
            overtaken.append(True)
            with Session(file_engine) as other:
                assert maybe_provision_access(other, order_id) is True
        return utcnow()

    monkeypatch.setattr(reconciler, "utcnow", clock_then_lose_race)
    with Session(file_engine) as s:
        assert maybe_provision_access(s, order_id) is False

    with Session(file_engine) as s:
        assert s.get(Order, order_id).status == "completed"
        assert len(s.exec(select(UserProduct)).all()) == 1
