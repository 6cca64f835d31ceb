"""Sipariş: satın alma niyetinden erişim tanımlanana kadar tüm yaşam döngüsü."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

# Durumlar yalnızca ileri gider: pending -> paid -> provisioned -> completed
STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_PROVISIONED = "provisioned"
STATUS_COMPLETED = "completed"
STATUS_EXPIRED = "expired"
STATUS_FAILED = "failed"

# Ödemesi onaylanmış sayılan durumlar (webhook tekrarları bunlarda no-op)
CONFIRMED_STATUSES = (STATUS_PAID, STATUS_PROVISIONED, STATUS_COMPLETED)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_EXPIRED, STATUS_FAILED)

PAYMENT_METHOD_PIX = "PIX"
PAYMENT_METHOD_CREDIT_CARD = "CREDIT_CARD"


def _order_id() -> str:
    return uuid.uuid4().hex


class Order(SQLModel, table=True):
    """id, ödeme geçidinde externalReference olarak taşınır."""

    __tablename__ = "orders"

    id: str = Field(default_factory=_order_id, primary_key=True, max_length=32)
    # Checkout'ta girilen iletişim bilgileri
    email: str = Field(index=True)  # küçük harfe çevrilmiş
    tax_id: str = Field(max_length=14)  # CPF (11) veya CNPJ (14), sadece rakam
    name: str
    # Fatura için adres (opsiyonel)
    phone: str | None = None
    mobile_phone: str | None = None
    postal_code: str | None = None  # CEP, sadece rakam
    address: str | None = None
    address_number: str | None = "SN"  # "Sem Número"

    product_id: str = Field(index=True)
    payment_method: str  # "PIX" | "CREDIT_CARD"
    # Fiyat anlık görüntüsü (cent)
    original_price_cents: int
    final_price_cents: int
    coupon_code: str | None = Field(default=None, max_length=64)
    coupon_discount_cents: int = 0
    pix_discount_cents: int = 0

    status: str = Field(default=STATUS_PENDING, index=True)
    gateway_payment_id: str | None = Field(default=None, index=True)
    # Kimlik sağlayıcı hesabı (claim ile bağlanır)
    account_id: str | None = Field(default=None, index=True)
    account_email: str | None = None

    # PIX QR verisi (ödeme bekleme ekranı için)
    pix_qr_payload: str | None = None
    pix_qr_code_base64: str | None = None
    pix_expiration_date: str | None = None

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime(timezone=True))
    expires_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    paid_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    provisioned_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    completed_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
