"""
Webhook gövdeleri: dispatch'ten önce sınırda doğrulanan etiketli birleşim (tagged union) tipleri.
Asaas: "event" alanı, Clerk: "type" alanı etiket olarak kullanılır; bilinmeyen olaylar
Ignored* tipine düşer ve 200 ile onaylanır.
"""
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter

# ---------- Asaas (ödeme geçidi) ----------

PAYMENT_EVENTS = ("PAYMENT_CONFIRMED", "PAYMENT_RECEIVED")
# "Para alındı" anlamına gelen ödeme durumları
PAID_STATUSES = ("RECEIVED", "CONFIRMED")


class AsaasPayment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    status: str = ""
    value: float | None = None
    total_value: float | None = Field(default=None, alias="totalValue")
    external_reference: str | None = Field(default=None, alias="externalReference")

    @property
    def paid_amount_cents(self) -> int:
        """value yoksa totalValue; ikisi de yoksa 0."""
        amount = self.value or self.total_value or 0
        return int(round(float(amount) * 100))

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES


class PaymentEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: Literal["PAYMENT_CONFIRMED", "PAYMENT_RECEIVED"]
    payment: AsaasPayment
    checkout: dict[str, Any] | None = None


class IgnoredAsaasEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = ""


def _asaas_kind(v: Any) -> str:
    event = v.get("event") if isinstance(v, dict) else getattr(v, "event", None)
    return "payment" if event in PAYMENT_EVENTS else "ignored"


AsaasWebhookEvent = Annotated[
    Union[
        Annotated[PaymentEvent, Tag("payment")],
        Annotated[IgnoredAsaasEvent, Tag("ignored")],
    ],
    Discriminator(_asaas_kind),
]
asaas_event_adapter: TypeAdapter[AsaasWebhookEvent] = TypeAdapter(AsaasWebhookEvent)


# ---------- Clerk (kimlik sağlayıcı) ----------


class ClerkEmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    email_address: str


class ClerkUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email_addresses: list[ClerkEmailAddress] = []
    primary_email_address_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def primary_email(self) -> str | None:
        """primary_email_address_id ile eşleşen adres; yoksa ilk adres."""
        for item in self.email_addresses:
            if self.primary_email_address_id and item.id == self.primary_email_address_id:
                return item.email_address
        return self.email_addresses[0].email_address if self.email_addresses else None


class UserUpsertEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["user.created", "user.updated"]
    data: ClerkUser


class DeletedObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    deleted: bool = True


class UserDeletedEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["user.deleted"]
    data: DeletedObject


class IgnoredClerkEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""


def _clerk_kind(v: Any) -> str:
    event_type = v.get("type") if isinstance(v, dict) else getattr(v, "type", None)
    if event_type in ("user.created", "user.updated"):
        return "upsert"
    if event_type == "user.deleted":
        return "deleted"
    return "ignored"


ClerkWebhookEvent = Annotated[
    Union[
        Annotated[UserUpsertEvent, Tag("upsert")],
        Annotated[UserDeletedEvent, Tag("deleted")],
        Annotated[IgnoredClerkEvent, Tag("ignored")],
    ],
    Discriminator(_clerk_kind),
]
clerk_event_adapter: TypeAdapter[ClerkWebhookEvent] = TypeAdapter(ClerkWebhookEvent)
