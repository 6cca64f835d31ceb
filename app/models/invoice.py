from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

INVOICE_PENDING = "pending"
INVOICE_PROCESSING = "processing"
INVOICE_ISSUED = "issued"
INVOICE_FAILED = "failed"


class Invoice(SQLModel, table=True):
    """NFS-e kaydı: sipariş başına en fazla bir tane, ilk onaylanmış ödemede oluşur."""

    id: int | None = Field(default=None, primary_key=True)
    order_id: str = Field(foreign_key="orders.id", unique=True, index=True)
    gateway_payment_id: str = Field(index=True)
    provider_invoice_id: str | None = Field(default=None, index=True)  # Asaas fatura id
    status: str = Field(default=INVOICE_PENDING, index=True)  # pending | processing | issued | failed
    municipal_service_id: str = ""  # İşlem sırasında doldurulur
    service_description: str
    value_cents: int
    # Müşteri anlık görüntüsü
    customer_name: str
    customer_email: str
    customer_tax_id: str
    customer_phone: str | None = None
    customer_mobile_phone: str | None = None
    customer_postal_code: str | None = None
    customer_address: str | None = None
    customer_address_number: str | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    issued_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
