"""Clerk davetiyesi: ödeme onayından sonra müşteriye hesap oluşturma daveti gönderir."""
import json
import logging
from urllib.error import HTTPError, URLError
from urllib.request import Request as UrlRequest
from urllib.request import urlopen

from sqlmodel import Session

from app.core.config import settings
from app.services.task_queue import task_queue

log = logging.getLogger("checkout.clerk")

TASK_SEND_INVITATION = "send_invitation"


def is_clerk_configured() -> bool:
    return bool((settings.clerk_secret_key or "").strip())


def send_invitation(email: str, order_id: str, customer_name: str | None = None) -> bool:
    """Tek bir davetiye gönderir. Başarılı ise True; hata log'lanır, fırlatılmaz."""
    if not is_clerk_configured():
        log.warning("CLERK_SECRET_KEY not configured; invitation not sent to %s", email)
        return False
    payload = {
        "email_address": email,
        "public_metadata": {"orderId": order_id, "customerName": customer_name or ""},
    }
    req = UrlRequest(
        f"{settings.clerk_api_url}/invitations",
        data=json.dumps(payload).encode(),
        method="POST",
        headers={
            "Authorization": f"Bearer {settings.clerk_secret_key.strip()}",
            "Content-Type": "application/json",
            "User-Agent": "checkout-api",
        },
    )
    try:
        with urlopen(req, timeout=settings.http_timeout_seconds) as resp:
            resp.read()
        log.info("Invitation sent to %s for order %s", email, order_id)
        return True
    except HTTPError as e:
        # 422: kullanıcı zaten var veya bekleyen davet var; claim yine e-posta ile eşleşir
        log.warning("Invitation to %s failed: HTTP %s", email, e.code)
        return False
    except (URLError, OSError) as e:
        log.warning("Invitation to %s failed: %s", email, e)
        return False


@task_queue.task(TASK_SEND_INVITATION)
def send_invitation_task(db: Session, email: str, order_id: str, customer_name: str | None = None) -> bool:
    return send_invitation(email, order_id, customer_name)
