"""İndirim kuponu ve kullanım defteri."""
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class Coupon(SQLModel, table=True):
    """İndirim kodu: admin tarafından oluşturulur, sipariş oluştururken uygulanır."""

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=64)  # büyük harf saklanır
    discount_type: str = Field(max_length=16)  # "percentage" | "fixed" | "fixed_price"
    # percentage: 1-100, fixed: indirim (cent), fixed_price: son fiyat (cent)
    discount_value: int
    description: str = ""
    active: bool = True
    valid_from: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    valid_until: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    max_uses: int | None = None  # null = sınırsız
    max_uses_per_user: int | None = None  # CPF başına
    # Sadece onaylanmış ödemelerde artar (bkz. CouponUsage)
    current_uses: int = 0
    minimum_price_cents: int | None = None  # İndirim sonrası en düşük fiyat
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class CouponUsage(SQLModel, table=True):
    """Onaylanmış sipariş başına tek satır; sadece eklenir, güncellenmez."""

    id: int | None = Field(default=None, primary_key=True)
    coupon_id: int = Field(foreign_key="coupon.id", index=True)
    coupon_code: str = Field(index=True, max_length=64)
    order_id: str = Field(foreign_key="orders.id", unique=True, index=True)
    user_email: str = Field(index=True)
    user_tax_id: str = Field(index=True)
    discount_cents: int
    original_price_cents: int
    final_price_cents: int
    used_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
