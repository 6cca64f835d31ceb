"""
Provisioning reconciler: ödeme ve hesap sinyallerinin tek birleşme noktası.

Guard her çağrıda aynıdır: status == paid ve account_id dolu ise erişim verilir.
İlk başarılı çalışma durumu paid'den ileri taşıdığı için sonraki her çağrı
(tekrar eden webhook, tekrar eden claim, eşzamanlı teslimat) no-op olur.
Geçiş koşullu UPDATE ile yapılır; aynı anda iki çağıran olsa bile sadece
rowcount == 1 alan taraf erişim verir.
"""
import logging
from typing import Callable

from sqlalchemy import update
from sqlmodel import Session

from app.core.clock import utcnow
from app.models import Order
from app.models.order import STATUS_COMPLETED, STATUS_PAID, STATUS_PROVISIONED
from app.services.access import grant_product_access

log = logging.getLogger("checkout.reconciler")

AccessGranter = Callable[[Session, Order], object]


def maybe_provision_access(
    db: Session,
    order_id: str,
    grant_access: AccessGranter | None = None,
) -> bool:
    """Her iki sinyal de varsa erişimi tam bir kez verir. Erişim bu çağrıda verildiyse True."""
    grant_access = grant_access or grant_product_access
    order = db.get(Order, order_id)
    if not order:
        log.error("Reconcile: order not found: %s", order_id)
        return False
    # Başka bir oturumun commit ettiği son durumu gör
    db.refresh(order)

    if order.status == STATUS_COMPLETED:
        log.info("Reconcile: order %s already completed, skipping", order_id)
        return False

    has_payment = order.status == STATUS_PAID
    has_user = bool(order.account_id)
    if not (has_payment and has_user):
        log.info(
            "Reconcile: order %s not ready (status=%s has_payment=%s has_user=%s)",
            order_id,
            order.status,
            has_payment,
            has_user,
        )
        return False

    now = utcnow()
    try:
        result = db.exec(
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == STATUS_PAID,
                Order.account_id.is_not(None),
            )
            .values(status=STATUS_PROVISIONED, provisioned_at=now)
        )
        if result.rowcount != 1:
            # Eşzamanlı başka bir çağrı kazandı
            db.rollback()
            log.info("Reconcile: order %s provisioned by a concurrent call", order_id)
            return False

        db.refresh(order)
        grant_access(db, order)

        db.exec(
            update(Order)
            .where(Order.id == order_id, Order.status == STATUS_PROVISIONED)
            .values(status=STATUS_COMPLETED, completed_at=utcnow())
        )
        db.commit()
    except Exception:
        # Geri alınır; sipariş paid kalır. Otomatik tekrar yok: tekrar eden sinyal
        # veya /admin/orders/{id}/reconcile yeniden tetikler.
        db.rollback()
        log.exception("Provisioning failed for order %s; order left at status=paid", order_id)
        return False

    log.info("Provisioned access for order %s (account %s)", order_id, order.account_id)
    return True
