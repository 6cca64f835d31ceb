import re
from typing import Literal

from pydantic import BaseModel, EmailStr, field_validator

PaymentMethod = Literal["PIX", "CREDIT_CARD"]


def cents_to_amount(cents: int) -> float:
    return round((cents or 0) / 100, 2)


class QuoteRequest(BaseModel):
    """Sipariş oluşturmadan fiyat önizlemesi (kupon kontrolü)."""
    product_id: str
    payment_method: PaymentMethod
    coupon_code: str | None = None
    tax_id: str = ""

    @field_validator("tax_id")
    @classmethod
    def digits_only(cls, v: str) -> str:
        return re.sub(r"\D", "", v or "")


class CreateOrderRequest(BaseModel):
    """Checkout 1. adım: ödemeden önce sipariş açılır."""
    email: EmailStr
    tax_id: str
    name: str
    product_id: str
    payment_method: PaymentMethod
    coupon_code: str | None = None
    phone: str | None = None
    mobile_phone: str | None = None
    postal_code: str | None = None
    address: str | None = None
    address_number: str | None = None

    @field_validator("tax_id")
    @classmethod
    def tax_id_digits(cls, v: str) -> str:
        digits = re.sub(r"\D", "", v or "")
        if len(digits) not in (11, 14):
            raise ValueError("CPF/CNPJ deve ter 11 ou 14 dígitos.")
        return digits

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Nome obrigatório.")
        return v[:200]

    @field_validator("postal_code")
    @classmethod
    def postal_code_digits(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return re.sub(r"\D", "", v) or None


class PriceBreakdown(BaseModel):
    original_price: float
    coupon_discount: float
    pix_discount: float
    final_price: float


class CreateOrderResponse(BaseModel):
    order_id: str
    price_breakdown: PriceBreakdown


class PixData(BaseModel):
    qr_payload: str | None = None
    qr_code_base64: str | None = None
    expiration_date: str | None = None


class LinkPaymentRequest(BaseModel):
    """Checkout 2. adım: ödeme geçidinde ödeme oluşturulduktan sonra çağrılır."""
    gateway_payment_id: str
    pix_data: PixData | None = None

    @field_validator("gateway_payment_id")
    @classmethod
    def payment_id_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("gateway_payment_id obrigatório.")
        return v


class OrderDetails(BaseModel):
    email: str
    product_id: str
    final_price: float


class PaymentStatusResponse(BaseModel):
    status: Literal["pending", "confirmed", "failed"]
    order_details: OrderDetails | None = None
    pix_data: PixData | None = None


class OrderIdentity(BaseModel):
    """Ödeme onayından dönen kimlik: davetiye gönderimi için."""
    order_id: str
    email: str
    name: str


class ClaimResult(BaseModel):
    success: bool
    message: str
    order_id: str | None = None


class ReconcileResponse(BaseModel):
    order_id: str
    provisioned: bool
    status: str
