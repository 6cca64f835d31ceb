"""
Ödeme onayı: Asaas'tan gelen "para alındı" olayını siparişe işler.

Sıra: durum filtresi -> externalReference ile sipariş -> tutar bütünlüğü ->
tekrar kontrolü -> tek transaction'da pending->paid + kupon kullanımı ->
commit sonrası fatura görevi ve reconciler.
paid geçişi en öncelikli değişmezdir: sonraki hiçbir adımın hatası onu geri alamaz.
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import IntegrityViolation
from app.models import Order
from app.models.order import CONFIRMED_STATUSES, STATUS_PAID, STATUS_PENDING
from app.schemas.payment import OrderIdentity
from app.schemas.webhooks import AsaasPayment
from app.services.coupon import record_coupon_usage
from app.services.invoices import TASK_GENERATE_INVOICE
from app.services.orders import get_order
from app.services.reconciler import maybe_provision_access
from app.services.security_events import record_security_event
from app.services.task_queue import TaskQueue, task_queue

log = logging.getLogger("checkout.payments")


def _identity(order: Order) -> OrderIdentity:
    return OrderIdentity(order_id=order.id, email=order.email, name=order.name)


def check_amount(order: Order, payment: AsaasPayment) -> None:
    """Ödenen tutar sipariş tutarından tolerans (2 cent) kadar sapabilir; fazlası IntegrityViolation."""
    paid = payment.paid_amount_cents
    expected = order.final_price_cents
    if abs(paid - expected) > settings.payment_amount_tolerance_cents:
        raise IntegrityViolation(
            f"order={order.id} payment={payment.id} expected={expected} paid={paid} difference={paid - expected}"
        )


def confirm_payment(
    db: Session,
    payment: AsaasPayment,
    queue: TaskQueue | None = None,
) -> OrderIdentity | None:
    """
    Onaylanan ödemeyi siparişe işler. İşlenemeyen olaylarda None döner (log'lanır,
    çağırana detay verilmez). Tekrar eden olaylarda durum değiştirmeden aynı kimliği döner.
    """
    queue = queue or task_queue
    if not payment.is_paid:
        log.info("Ignoring payment %s with status %s", payment.id, payment.status)
        return None

    order_id = (payment.external_reference or "").strip()
    if not order_id:
        log.error("No externalReference found in payment %s", payment.id)
        return None
    order = get_order(db, order_id)
    if not order:
        log.error("Order not found for payment %s: %s", payment.id, order_id)
        return None

    try:
        check_amount(order, payment)
    except IntegrityViolation as e:
        # Olası sahtecilik: sipariş değişmez, webhook'a genel bir onay döner
        log.error("SECURITY ALERT: payment amount mismatch: %s", e)
        record_security_event(db, "payment_amount_mismatch", endpoint="/webhooks/asaas", order_id=order.id, detail=str(e))
        return None

    if order.status in CONFIRMED_STATUSES:
        log.info("Order %s already processed (status=%s), skipping", order.id, order.status)
        return _identity(order)
    if order.status != STATUS_PENDING:
        log.error("Payment %s received for order %s in status %s; needs manual review", payment.id, order.id, order.status)
        return None

    try:
        result = db.exec(
            update(Order)
            .where(Order.id == order.id, Order.status == STATUS_PENDING)
            .values(status=STATUS_PAID, paid_at=utcnow(), gateway_payment_id=payment.id)
        )
        if result.rowcount != 1:
            # Aynı olayın eşzamanlı teslimatı önce davrandı: tekrar gibi davran
            db.rollback()
            log.info("Order %s confirmed by a concurrent delivery, treating as replay", order.id)
            db.refresh(order)
            return _identity(order)
        db.refresh(order)
        # Kupon kullanımı sadece burada sayılır; terk edilen siparişler kupon harcamaz
        record_coupon_usage(db, order)
        db.commit()
    except IntegrityError:
        db.rollback()
        log.warning("Order %s: concurrent confirmation detected on commit, treating as replay", order_id)
        order = get_order(db, order_id)
        return _identity(order) if order else None

    identity = _identity(order)
    log.info("Payment confirmed for order %s (payment %s)", order.id, payment.id)

    # Commit edildi; bundan sonraki hiçbir hata paid durumunu etkilemez
    try:
        queue.enqueue(TASK_GENERATE_INVOICE, order_id=order.id, gateway_payment_id=payment.id)
    except Exception:
        log.exception("Could not enqueue invoice generation for order %s", order.id)

    maybe_provision_access(db, order.id)
    return identity
