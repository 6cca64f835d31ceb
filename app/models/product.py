from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class PricingPlan(SQLModel, table=True):
    """Satılan ürün: fiyatlar ve erişim verdiği yıllar."""

    id: int | None = Field(default=None, primary_key=True)
    product_id: str = Field(unique=True, index=True)  # örn: "qbank_2026", "premium_pack"
    name: str
    category: str | None = None  # "year_access" | "premium_pack" | "addon"
    regular_price_cents: int
    pix_price_cents: int | None = None  # PIX indirimli fiyat; boşsa normal fiyat
    # Erişim verilen yıllar: "2026,2027"
    access_years: str | None = Field(default=None, max_length=128)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class UserProduct(SQLModel, table=True):
    """Hesap-ürün erişimi: provisioning sırasında sipariş başına bir kez yazılır."""

    id: int | None = Field(default=None, primary_key=True)
    account_id: str = Field(index=True)
    order_id: str = Field(foreign_key="orders.id", unique=True, index=True)
    product_id: str = Field(index=True)
    pricing_plan_id: int | None = Field(default=None, foreign_key="pricingplan.id")
    payment_gateway: str = "asaas"
    payment_id: str | None = Field(default=None, index=True)
    purchase_price_cents: int
    coupon_used: str | None = None
    discount_cents: int = 0
    access_years: str | None = None
    has_access: bool = True
    status: str = "active"  # active | expired | suspended | refunded
    access_granted_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
