"""Ödeme onayı: bütünlük kontrolü, tekrar eden olaylar, kupon muhasebesi, fatura izolasyonu."""
from sqlmodel import select

from app.models import Coupon, CouponUsage, Invoice, Order, SecurityLog
from app.schemas.webhooks import AsaasPayment
from app.services import invoice_asaas
from app.services.payment_confirmation import confirm_payment
from app.services.task_queue import task_queue


def _payment(order_id: str, value: float, status: str = "CONFIRMED", payment_id: str = "p1") -> AsaasPayment:
    return AsaasPayment.model_validate(
        {"id": payment_id, "status": status, "value": value, "externalReference": order_id}
    )


def _coupon_order(make_coupon, make_order):
    coupon = make_coupon("DESC10", "percentage", 10)
    order = make_order(coupon_code="DESC10", coupon_discount_cents=1000, final_price_cents=9000)
    return coupon, order


def test_confirm_transitions_pending_to_paid(db, plan, make_order, reload):
    order = make_order()
    identity = confirm_payment(db, _payment(order.id, 100.00))
    assert identity.order_id == order.id
    assert identity.email == "aluno@example.com"
    assert identity.name == "Maria Silva"
    order = reload(Order, order.id)
    assert order.status == "paid"
    assert order.paid_at is not None
    assert order.gateway_payment_id == "p1"


def test_ninety_scenario_single_invoice_and_usage(db, plan, make_coupon, make_order, reload):
    coupon, order = _coupon_order(make_coupon, make_order)
    identity = confirm_payment(db, _payment(order.id, 90.00))
    assert identity is not None
    assert reload(Order, order.id).status == "paid"
    assert task_queue.pending() == 1

    # Fatura görevi kuyruktan işlenir (sağlayıcı yapılandırılmamış: fatura failed olur)
    task_queue.drain()
    invoices = db.exec(select(Invoice).where(Invoice.order_id == order.id)).all()
    assert len(invoices) == 1
    usages = db.exec(select(CouponUsage).where(CouponUsage.order_id == order.id)).all()
    assert len(usages) == 1
    assert usages[0].discount_cents == 1000
    assert reload(Coupon, coupon.id).current_uses == 1


def test_redelivery_is_idempotent(db, plan, make_coupon, make_order, reload):
    coupon, order = _coupon_order(make_coupon, make_order)
    first = confirm_payment(db, _payment(order.id, 90.00))
    task_queue.drain()
    paid_at = reload(Order, order.id).paid_at

    second = confirm_payment(db, _payment(order.id, 90.00))
    assert second == first
    # Tekrar eden olay yeni fatura görevi açmaz
    assert task_queue.pending() == 0
    task_queue.drain()
    assert len(db.exec(select(Invoice)).all()) == 1
    assert len(db.exec(select(CouponUsage)).all()) == 1
    assert reload(Coupon, coupon.id).current_uses == 1
    assert reload(Order, order.id).paid_at == paid_at


def test_amount_within_tolerance(db, plan, make_order, reload):
    order = make_order()
    assert confirm_payment(db, _payment(order.id, 99.98)) is not None
    assert reload(Order, order.id).status == "paid"


def test_amount_mismatch_leaves_order_pending(db, plan, make_order, reload):
    order = make_order()
    assert confirm_payment(db, _payment(order.id, 99.97)) is None
    assert reload(Order, order.id).status == "pending"
    assert task_queue.pending() == 0
    logs = db.exec(select(SecurityLog).where(SecurityLog.event == "payment_amount_mismatch")).all()
    assert len(logs) == 1
    assert logs[0].order_id == order.id


def test_total_value_used_when_value_missing(db, plan, make_order, reload):
    order = make_order()
    payment = AsaasPayment.model_validate(
        {"id": "p1", "status": "RECEIVED", "totalValue": 100.00, "externalReference": order.id}
    )
    assert confirm_payment(db, payment) is not None
    assert reload(Order, order.id).status == "paid"


def test_non_paid_status_ignored(db, plan, make_order, reload):
    order = make_order()
    assert confirm_payment(db, _payment(order.id, 100.00, status="PENDING")) is None
    assert reload(Order, order.id).status == "pending"


def test_unknown_reference_ignored(db, plan):
    assert confirm_payment(db, _payment("nao_existe", 100.00)) is None
    payment = AsaasPayment.model_validate({"id": "p1", "status": "CONFIRMED", "value": 100.00})
    assert confirm_payment(db, payment) is None


def test_expired_order_is_not_confirmed(db, plan, make_order, reload):
    order = make_order(status="expired")
    assert confirm_payment(db, _payment(order.id, 100.00)) is None
    assert reload(Order, order.id).status == "expired"


def test_unconfirmed_coupon_never_counted(db, plan, make_coupon, make_order, reload):
    coupon, order = _coupon_order(make_coupon, make_order)
    confirm_payment(db, _payment(order.id, 50.00))
    assert reload(Coupon, coupon.id).current_uses == 0
    assert db.exec(select(CouponUsage)).all() == []


def test_invoice_provider_failure_does_not_block_payment(db, plan, make_order, reload, monkeypatch):
    class BrokenClient:
        def resolve_fiscal_service(self, description):
            raise RuntimeError("provider down")

    monkeypatch.setattr(invoice_asaas, "get_invoice_client", lambda: BrokenClient())
    order = make_order()
    assert confirm_payment(db, _payment(order.id, 100.00)) is not None
    task_queue.drain()

    assert reload(Order, order.id).status == "paid"
    invoice = db.exec(select(Invoice).where(Invoice.order_id == order.id)).one()
    assert invoice.status == "failed"
    assert "provider down" in invoice.error_message


def test_usage_already_recorded_is_treated_as_replay(db, plan, make_coupon, make_order, reload):
    coupon, order = _coupon_order(make_coupon, make_order)
    # Başka bir teslimatın yazdığı kullanım satırı: unique order_id çakışır
    db.add(
        CouponUsage(
            coupon_id=coupon.id,
            coupon_code=coupon.code,
            order_id=order.id,
            user_email=order.email,
            user_tax_id=order.tax_id,
            discount_cents=1000,
            original_price_cents=12000,
            final_price_cents=9000,
        )
    )
    db.commit()

    identity = confirm_payment(db, _payment(order.id, 90.00))
    assert identity is not None
    assert identity.order_id == order.id
    assert len(db.exec(select(CouponUsage)).all()) == 1
    # Transaction geri alındı: sayaç artmadı, fatura görevi yok
    assert reload(Coupon, coupon.id).current_uses == 0
    assert task_queue.pending() == 0
