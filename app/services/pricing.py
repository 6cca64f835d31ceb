"""Fiyat çözümleyici: (ürün, ödeme yöntemi, kupon) -> fiyat dökümü. Veritabanına yazmaz."""
import logging
from typing import NamedTuple

from sqlmodel import Session, select

from app.core.exceptions import ValidationError
from app.models import PricingPlan
from app.models.order import PAYMENT_METHOD_PIX
from app.schemas.payment import PriceBreakdown, cents_to_amount
from app.services.coupon import validate_coupon

log = logging.getLogger("checkout.pricing")


class ResolvedPrice(NamedTuple):
    plan: PricingPlan
    original_price_cents: int
    coupon_code: str | None
    coupon_discount_cents: int
    pix_discount_cents: int
    final_price_cents: int

    def breakdown(self) -> PriceBreakdown:
        return PriceBreakdown(
            original_price=cents_to_amount(self.original_price_cents),
            coupon_discount=cents_to_amount(self.coupon_discount_cents),
            pix_discount=cents_to_amount(self.pix_discount_cents),
            final_price=cents_to_amount(self.final_price_cents),
        )


def get_pricing_plan(db: Session, product_id: str) -> PricingPlan | None:
    return db.exec(select(PricingPlan).where(PricingPlan.product_id == product_id)).first()


def resolve_price(
    db: Session,
    product_id: str,
    payment_method: str,
    coupon_code: str | None,
    tax_id: str,
) -> ResolvedPrice:
    """
    Aktif fiyat planını bulur, ödeme yöntemine göre baz fiyatı seçer, kuponu uygular.
    PIX indirimi (normal - PIX fiyatı) kupondan bağımsız hesaplanır.
    Geçersiz durumlarda ValidationError fırlatır; sipariş oluşturulmaz.
    """
    plan = get_pricing_plan(db, product_id)
    if not plan or not plan.is_active:
        raise ValidationError("Product not found or inactive")

    regular_cents = plan.regular_price_cents or 0
    pix_cents = plan.pix_price_cents or regular_cents
    if regular_cents <= 0 or pix_cents <= 0:
        raise ValidationError("Invalid product price")

    is_pix = payment_method == PAYMENT_METHOD_PIX
    base_cents = pix_cents if is_pix else regular_cents
    final_cents = base_cents
    coupon_discount = 0
    applied_code = None

    if coupon_code and coupon_code.strip():
        result = validate_coupon(db, coupon_code, base_cents, tax_id)
        if not result.is_valid:
            raise ValidationError(result.error_message or "Cupom inválido")
        final_cents = result.final_price_cents
        coupon_discount = result.discount_cents
        applied_code = result.code
        log.info("Applied coupon %s: -%s cents on %s", applied_code, coupon_discount, product_id)

    pix_discount = (regular_cents - pix_cents) if is_pix else 0

    if final_cents <= 0:
        raise ValidationError("Invalid final price")

    return ResolvedPrice(
        plan=plan,
        original_price_cents=regular_cents,
        coupon_code=applied_code,
        coupon_discount_cents=coupon_discount,
        pix_discount_cents=pix_discount,
        final_price_cents=final_cents,
    )
