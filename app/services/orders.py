"""Sipariş alımı, ödeme bağlama, durum sorgusu ve tek eşleşmeli sipariş aramaları."""
import logging
from datetime import timedelta

from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models import Order
from app.models.order import (
    CONFIRMED_STATUSES,
    STATUS_EXPIRED,
    STATUS_FAILED,
    STATUS_PAID,
    STATUS_PENDING,
)
from app.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    LinkPaymentRequest,
    OrderDetails,
    PaymentStatusResponse,
    PixData,
    cents_to_amount,
)
from app.services.pricing import resolve_price

log = logging.getLogger("checkout.orders")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_order(db: Session, body: CreateOrderRequest) -> CreateOrderResponse:
    """
    Checkout 1. adım: ödemeden önce pending sipariş açar.
    Fiyat burada hesaplanıp sabitlenir; kupon sayacı değişmez (sadece ödeme onayında).
    """
    price = resolve_price(db, body.product_id, body.payment_method, body.coupon_code, body.tax_id)
    now = utcnow()
    order = Order(
        email=normalize_email(body.email),
        tax_id=body.tax_id,
        name=body.name,
        phone=body.phone,
        mobile_phone=body.mobile_phone,
        postal_code=body.postal_code,
        address=body.address,
        address_number=(body.address_number or "").strip() or "SN",
        product_id=body.product_id,
        payment_method=body.payment_method,
        original_price_cents=price.original_price_cents,
        final_price_cents=price.final_price_cents,
        coupon_code=price.coupon_code,
        coupon_discount_cents=price.coupon_discount_cents,
        pix_discount_cents=price.pix_discount_cents,
        status=STATUS_PENDING,
        created_at=now,
        # Yumuşak son kullanma: saklanır, burada uygulanmaz
        expires_at=now + timedelta(days=settings.order_expiry_days),
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    log.info(
        "Created order %s: method=%s original=%s coupon=%s pix=%s final=%s",
        order.id,
        order.payment_method,
        order.original_price_cents,
        order.coupon_discount_cents,
        order.pix_discount_cents,
        order.final_price_cents,
    )
    return CreateOrderResponse(order_id=order.id, price_breakdown=price.breakdown())


def get_order(db: Session, order_id: str | None) -> Order | None:
    if not order_id:
        return None
    return db.get(Order, order_id)


def link_payment(db: Session, order_id: str, body: LinkPaymentRequest) -> Order:
    """Checkout 2. adım: ödeme id ve PIX verisini ekler. Durum değişmez; son yazan kazanır."""
    order = get_order(db, order_id)
    if not order:
        raise NotFoundError("Pedido não encontrado.")
    order.gateway_payment_id = body.gateway_payment_id
    if body.pix_data is not None:
        order.pix_qr_payload = body.pix_data.qr_payload
        order.pix_qr_code_base64 = body.pix_data.qr_code_base64
        order.pix_expiration_date = body.pix_data.expiration_date
    db.add(order)
    db.commit()
    log.info("Linked payment %s to order %s (pix=%s)", body.gateway_payment_id, order_id, body.pix_data is not None)
    return order


def get_payment_status(db: Session, order_id: str) -> PaymentStatusResponse:
    """Ödeme bekleme ekranı için salt okunur görünüm."""
    order = get_order(db, order_id)
    if not order:
        return PaymentStatusResponse(status="failed")
    if order.status in (STATUS_EXPIRED, STATUS_FAILED):
        return PaymentStatusResponse(status="failed")
    details = OrderDetails(
        email=order.email,
        product_id=order.product_id,
        final_price=cents_to_amount(order.final_price_cents),
    )
    pix = None
    if order.pix_qr_payload or order.pix_qr_code_base64:
        pix = PixData(
            qr_payload=order.pix_qr_payload,
            qr_code_base64=order.pix_qr_code_base64,
            expiration_date=order.pix_expiration_date,
        )
    status = "confirmed" if order.status in CONFIRMED_STATUSES else "pending"
    return PaymentStatusResponse(status=status, order_details=details, pix_data=pix)


def find_claimable_order(db: Session, email: str) -> Order | None:
    """
    Tek eşleşme sözleşmesi: e-postaya ait, henüz hesaba bağlanmamış siparişlerden
    önce en yeni 'paid' olanı, yoksa en yeni 'pending' olanı döner. Aynı e-postadaki
    diğer siparişler bilinçli olarak seçilmez.
    """
    email = normalize_email(email)
    for status in (STATUS_PAID, STATUS_PENDING):
        stmt = (
            select(Order)
            .where(Order.email == email, Order.status == status, Order.account_id.is_(None))
            .order_by(Order.created_at.desc())
            .limit(1)
        )
        order = db.exec(stmt).first()
        if order:
            return order
    return None


def find_claimed_paid_order(db: Session, email: str, account_id: str) -> Order | None:
    """Aynı hesabın daha önce sahiplendiği, hâlâ 'paid' bekleyen en yeni sipariş (tekrar eden claim için)."""
    stmt = (
        select(Order)
        .where(
            Order.email == normalize_email(email),
            Order.account_id == account_id,
            Order.status == STATUS_PAID,
        )
        .order_by(Order.created_at.desc())
        .limit(1)
    )
    return db.exec(stmt).first()
