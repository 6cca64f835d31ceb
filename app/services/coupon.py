"""İndirim kuponu doğrulama, indirim hesaplama ve onaylanmış kullanım kaydı."""
import logging
from typing import NamedTuple

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.core.clock import as_utc, utcnow
from app.models import Coupon, CouponUsage, Order

log = logging.getLogger("checkout.coupon")


class CouponResult(NamedTuple):
    is_valid: bool
    code: str
    discount_cents: int
    final_price_cents: int
    error_message: str | None = None


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def get_coupon_by_code(db: Session, code: str) -> Coupon | None:
    return db.exec(select(Coupon).where(Coupon.code == normalize_code(code))).first()


def _uses_by_tax_id(db: Session, code: str, tax_id: str) -> int:
    stmt = select(func.count()).select_from(CouponUsage).where(
        CouponUsage.coupon_code == code,
        CouponUsage.user_tax_id == tax_id,
    )
    return int(db.exec(stmt).one() or 0)


def _invalid(code: str, base_price_cents: int, message: str) -> CouponResult:
    return CouponResult(False, code, 0, base_price_cents, message)


def validate_coupon(
    db: Session,
    code: str,
    base_price_cents: int,
    tax_id: str,
) -> CouponResult:
    """
    Kuponu seçilen ödeme yönteminin fiyatına göre doğrular.
    Kullanım limitleri sadece onaylanmış ödemeleri sayar (current_uses / CouponUsage),
    bu yüzden burada hiçbir sayaç değişmez.
    """
    code_upper = normalize_code(code)
    if not code_upper:
        return _invalid(code_upper, base_price_cents, "Cupom não informado.")
    coupon = get_coupon_by_code(db, code_upper)
    if not coupon or not coupon.active:
        return _invalid(code_upper, base_price_cents, "Cupom inválido.")

    now = utcnow()
    if coupon.valid_from and now < as_utc(coupon.valid_from):
        return _invalid(code_upper, base_price_cents, "Este cupom ainda não é válido.")
    if coupon.valid_until and now > as_utc(coupon.valid_until):
        return _invalid(code_upper, base_price_cents, "Este cupom expirou.")

    if coupon.max_uses is not None and (coupon.current_uses or 0) >= coupon.max_uses:
        return _invalid(code_upper, base_price_cents, "Este cupom atingiu o limite de usos.")
    if coupon.max_uses_per_user is not None and tax_id:
        if _uses_by_tax_id(db, code_upper, tax_id) >= coupon.max_uses_per_user:
            return _invalid(code_upper, base_price_cents, "Você já utilizou este cupom.")

    if coupon.discount_type == "percentage":
        if not (1 <= coupon.discount_value <= 100):
            return _invalid(code_upper, base_price_cents, "Percentual de desconto inválido.")
        discount_cents = int(round(base_price_cents * coupon.discount_value / 100))
    elif coupon.discount_type == "fixed":
        discount_cents = min(coupon.discount_value, base_price_cents)
    elif coupon.discount_type == "fixed_price":
        discount_cents = max(base_price_cents - coupon.discount_value, 0)
    else:
        return _invalid(code_upper, base_price_cents, "Tipo de cupom inválido.")

    final_cents = base_price_cents - discount_cents
    # Alt fiyat koruması: indirim son fiyatı minimumun altına indiremez
    if coupon.minimum_price_cents is not None and final_cents < coupon.minimum_price_cents:
        final_cents = min(coupon.minimum_price_cents, base_price_cents)
        discount_cents = base_price_cents - final_cents
    return CouponResult(True, code_upper, discount_cents, final_cents, None)


def record_coupon_usage(db: Session, order: Order) -> CouponUsage | None:
    """
    Onaylanmış sipariş için kullanım satırı ekler ve sayacı artırır.
    Commit etmez: ödeme onayı ile aynı transaction içinde çağrılır.
    """
    if not order.coupon_code:
        return None
    coupon = get_coupon_by_code(db, order.coupon_code)
    if not coupon:
        log.warning("Coupon %s of order %s no longer exists; usage not recorded", order.coupon_code, order.id)
        return None
    usage = CouponUsage(
        coupon_id=coupon.id,
        coupon_code=coupon.code,
        order_id=order.id,
        user_email=order.email,
        user_tax_id=order.tax_id,
        discount_cents=order.coupon_discount_cents or 0,
        original_price_cents=order.original_price_cents,
        final_price_cents=order.final_price_cents,
    )
    db.add(usage)
    # Atomik artış: eşzamanlı onaylar sayacı ezmez
    db.exec(
        update(Coupon)
        .where(Coupon.id == coupon.id)
        .values(current_uses=Coupon.current_uses + 1)
    )
    log.info(
        "Confirmed coupon usage: code=%s order=%s (%s/%s)",
        coupon.code,
        order.id,
        (coupon.current_uses or 0) + 1,
        coupon.max_uses if coupon.max_uses is not None else "unlimited",
    )
    return usage
