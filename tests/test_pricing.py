"""Fiyat çözümleyici ve kupon doğrulama."""
from datetime import timedelta

import pytest

from app.core.clock import utcnow
from app.core.exceptions import ValidationError
from app.models import CouponUsage
from app.services.coupon import validate_coupon
from app.services.pricing import resolve_price

PRODUCT_ID = "qbank_2026"
TAX_ID = "52998224725"


def test_pix_price_without_coupon(db, plan):
    price = resolve_price(db, PRODUCT_ID, "PIX", None, TAX_ID)
    assert price.original_price_cents == 12000
    assert price.pix_discount_cents == 2000
    assert price.coupon_discount_cents == 0
    assert price.final_price_cents == 10000
    assert price.coupon_code is None


def test_credit_card_uses_regular_price(db, plan):
    price = resolve_price(db, PRODUCT_ID, "CREDIT_CARD", None, TAX_ID)
    assert price.pix_discount_cents == 0
    assert price.final_price_cents == 12000


def test_percentage_coupon_on_pix_price(db, plan, make_coupon):
    make_coupon("DESC10", "percentage", 10)
    price = resolve_price(db, PRODUCT_ID, "PIX", "desc10", TAX_ID)
    assert price.coupon_code == "DESC10"
    assert price.coupon_discount_cents == 1000
    assert price.final_price_cents == 9000
    breakdown = price.breakdown()
    assert breakdown.final_price == 90.0
    assert breakdown.original_price == 120.0
    assert breakdown.pix_discount == 20.0


def test_fixed_coupon_is_capped_at_base_price(db, plan, make_coupon):
    make_coupon("TUDO", "fixed", 50000)
    # İndirim baz fiyatı sıfıra indirir: sıfır fiyatlı sipariş reddedilir
    with pytest.raises(ValidationError):
        resolve_price(db, PRODUCT_ID, "PIX", "TUDO", TAX_ID)


def test_fixed_price_coupon(db, plan, make_coupon):
    make_coupon("PROMO49", "fixed_price", 4990)
    price = resolve_price(db, PRODUCT_ID, "CREDIT_CARD", "PROMO49", TAX_ID)
    assert price.final_price_cents == 4990
    assert price.coupon_discount_cents == 12000 - 4990


def test_minimum_price_floor(db, plan, make_coupon):
    make_coupon("METADE", "percentage", 50, minimum_price_cents=8000)
    price = resolve_price(db, PRODUCT_ID, "PIX", "METADE", TAX_ID)
    assert price.final_price_cents == 8000
    assert price.coupon_discount_cents == 2000


def test_final_price_equals_base_minus_discount(db, plan, make_coupon):
    make_coupon("DESC33", "percentage", 33)
    for method, base in (("PIX", 10000), ("CREDIT_CARD", 12000)):
        price = resolve_price(db, PRODUCT_ID, method, "DESC33", TAX_ID)
        assert price.final_price_cents == base - price.coupon_discount_cents
        assert price.final_price_cents > 0


def test_unknown_product(db, plan):
    with pytest.raises(ValidationError, match="Product not found"):
        resolve_price(db, "nao_existe", "PIX", None, TAX_ID)


def test_inactive_product(db, plan):
    plan.is_active = False
    db.add(plan)
    db.commit()
    with pytest.raises(ValidationError, match="inactive"):
        resolve_price(db, PRODUCT_ID, "PIX", None, TAX_ID)


def test_invalid_coupon_reason(db, plan):
    with pytest.raises(ValidationError, match="Cupom inválido"):
        resolve_price(db, PRODUCT_ID, "PIX", "NAOEXISTE", TAX_ID)


def test_expired_coupon(db, plan, make_coupon):
    make_coupon("VELHO", valid_until=utcnow() - timedelta(days=1))
    result = validate_coupon(db, "VELHO", 10000, TAX_ID)
    assert not result.is_valid
    assert result.error_message == "Este cupom expirou."


def test_coupon_validity_window(db, plan, make_coupon):
    now = utcnow()
    make_coupon("FUTURO", valid_from=now + timedelta(days=1))
    make_coupon("JANELA", valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=1))
    assert validate_coupon(db, "FUTURO", 10000, TAX_ID).error_message == "Este cupom ainda não é válido."
    assert validate_coupon(db, "JANELA", 10000, TAX_ID).is_valid


def test_coupon_global_limit_uses_confirmed_counter(db, plan, make_coupon):
    make_coupon("LIMITE", max_uses=2, current_uses=2)
    result = validate_coupon(db, "LIMITE", 10000, TAX_ID)
    assert not result.is_valid
    assert "limite" in result.error_message


def test_coupon_per_user_limit(db, plan, make_coupon, make_order):
    coupon = make_coupon("UMAVEZ", max_uses_per_user=1)
    order = make_order(coupon_code="UMAVEZ", coupon_discount_cents=1000, final_price_cents=9000)
    db.add(
        CouponUsage(
            coupon_id=coupon.id,
            coupon_code="UMAVEZ",
            order_id=order.id,
            user_email=order.email,
            user_tax_id=TAX_ID,
            discount_cents=1000,
            original_price_cents=12000,
            final_price_cents=9000,
        )
    )
    db.commit()
    assert not validate_coupon(db, "UMAVEZ", 10000, TAX_ID).is_valid
    assert validate_coupon(db, "UMAVEZ", 10000, "11144477735").is_valid
