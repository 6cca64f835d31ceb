"""Güvenlik olayları: webhook kimlik doğrulama hataları, ödeme tutarı uyuşmazlıkları, rate limit."""
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class SecurityLog(SQLModel, table=True):
    __tablename__ = "security_logs"
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # webhook_auth_failed, payment_amount_mismatch, rate_limit
    ip: str | None = None
    endpoint: str | None = None
    order_id: str | None = Field(default=None, index=True)
    detail: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
