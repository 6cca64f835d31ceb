"""Ürün erişimi: provisioning'in yan etkisi. Reconciler'ın transaction'ı içinde çalışır, commit etmez."""
import logging

from sqlmodel import Session

from app.models import Order, UserProduct
from app.services.pricing import get_pricing_plan

log = logging.getLogger("checkout.access")


def grant_product_access(db: Session, order: Order) -> UserProduct:
    plan = get_pricing_plan(db, order.product_id)
    grant = UserProduct(
        account_id=order.account_id,
        order_id=order.id,
        product_id=order.product_id,
        pricing_plan_id=plan.id if plan else None,
        payment_id=order.gateway_payment_id,
        purchase_price_cents=order.final_price_cents,
        coupon_used=order.coupon_code,
        discount_cents=order.coupon_discount_cents or 0,
        access_years=plan.access_years if plan else None,
    )
    db.add(grant)
    # Unique order_id ihlali burada patlasın, reconciler yakalayıp geri alır
    db.flush()
    log.info("Granted %s to account %s (order %s)", order.product_id, order.account_id, order.id)
    return grant
