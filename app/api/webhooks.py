"""
Webhook girişleri: Asaas (ödeme) ve Clerk (kimlik).

Her iki kaynak da sırasız ve en az bir kez teslim eder; arkadaki işlemler idempotent
olduğu için beklenmeyen hatada 500 dönülür ve gönderen tekrar dener.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session
from standardwebhooks import Webhook, WebhookVerificationError

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError, ValidationError, WebhookPayloadError
from app.core.rate_limit import client_ip
from app.core.security import verify_shared_secret
from app.schemas.webhooks import (
    PaymentEvent,
    UserDeletedEvent,
    UserUpsertEvent,
    asaas_event_adapter,
    clerk_event_adapter,
)
from app.services.identity_claim import claim_order_by_email
from app.services.identity_provider import TASK_SEND_INVITATION
from app.services.payment_confirmation import confirm_payment
from app.services.security_events import record_security_event
from app.services.task_queue import task_queue

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
log = logging.getLogger("checkout.webhooks")

# Clerk svix başlıkları -> Standard Webhooks başlıkları
_SVIX_HEADERS = {
    "svix-id": "webhook-id",
    "svix-timestamp": "webhook-timestamp",
    "svix-signature": "webhook-signature",
}


def _parse_json(raw: bytes) -> dict:
    try:
        data = json.loads(raw or b"{}")
    except ValueError:
        raise WebhookPayloadError("Invalid JSON body")
    if not isinstance(data, dict):
        raise WebhookPayloadError("Invalid JSON body")
    return data


@router.post("/asaas")
async def asaas_webhook(request: Request, db: Session = Depends(get_db)):
    try:
        verify_shared_secret(request.headers, settings.asaas_webhook_secret)
    except AuthenticationError as e:
        log.warning("Asaas webhook rejected: %s", e)
        if not e.configuration:
            record_security_event(db, "webhook_auth_failed", ip=client_ip(request), endpoint=request.url.path, detail=str(e))
        raise

    data = _parse_json(await request.body())
    try:
        event = asaas_event_adapter.validate_python(data)
    except PydanticValidationError as e:
        log.warning("Asaas webhook malformed payload: %s", e.errors()[:3])
        raise WebhookPayloadError("Invalid webhook payload")

    if not isinstance(event, PaymentEvent):
        log.info("Asaas event ignored: %s", event.event)
        return {"received": True, "message": "Event ignored"}

    log.info("Asaas event %s for payment %s", event.event, event.payment.id)
    identity = confirm_payment(db, event.payment)
    if identity:
        try:
            task_queue.enqueue(
                TASK_SEND_INVITATION,
                email=identity.email,
                order_id=identity.order_id,
                customer_name=identity.name,
            )
        except Exception:
            log.exception("Could not enqueue invitation for order %s", identity.order_id)
    return {"received": True}


def _verify_clerk_signature(db: Session, raw: bytes, request: Request) -> dict:
    secret = settings.clerk_webhook_secret
    if not secret:
        raise AuthenticationError("Clerk webhook secret not configured", configuration=True)
    headers = {target: request.headers.get(source) or "" for source, target in _SVIX_HEADERS.items()}
    try:
        return Webhook(secret).verify(raw, headers)
    except WebhookVerificationError as e:
        log.warning("Clerk webhook signature verification failed: %s", e)
        record_security_event(db, "webhook_auth_failed", ip=client_ip(request), endpoint=request.url.path, detail=str(e))
        raise ValidationError("Invalid signature")


@router.post("/clerk")
async def clerk_webhook(request: Request, db: Session = Depends(get_db)):
    payload = _verify_clerk_signature(db, await request.body(), request)
    try:
        event = clerk_event_adapter.validate_python(payload)
    except PydanticValidationError as e:
        log.warning("Clerk webhook malformed payload: %s", e.errors()[:3])
        raise ValidationError("Invalid webhook payload")

    if isinstance(event, UserUpsertEvent):
        email = event.data.primary_email
        if not email:
            log.warning("Clerk %s for user %s without email", event.type, event.data.id)
            return {"received": True, "message": "No email"}
        result = claim_order_by_email(db, email, event.data.id)
        return {"received": True, **result.model_dump()}
    if isinstance(event, UserDeletedEvent):
        # Hesap silme temizliği bu servisin kapsamı dışında
        log.info("Clerk user deleted: %s", event.data.id)
        return {"received": True}
    log.info("Clerk event ignored: %s", event.type)
    return {"received": True, "message": "Event ignored"}
