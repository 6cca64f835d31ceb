"""Paylaşılan sır kontrolleri: ödeme webhook'u (Asaas) ve admin uçları (X-Admin-Secret)."""
import hmac

from fastapi import Header, HTTPException

from .config import settings
from .exceptions import AuthenticationError

# Asaas sırrı bu başlıklardan birinde gelir (öncelik sırasıyla)
ASAAS_TOKEN_HEADERS = ("asaas-access-token", "authorization", "x-asaas-signature")


def constant_time_compare(provided: str | None, expected: str | None) -> bool:
    """Timing-safe karşılaştırma; uzunluk farkı dahil detay sızdırmaz."""
    p = (provided or "").encode("utf-8")
    e = (expected or "").encode("utf-8")
    return hmac.compare_digest(p, e)


def verify_shared_secret(headers, expected: str | None) -> None:
    """
    Webhook paylaşılan sırrını doğrular.
    Sır yapılandırılmamışsa configuration hatası (500), başlık yok/yanlışsa 401.
    """
    if not (expected or "").strip():
        raise AuthenticationError("Webhook secret not configured", configuration=True)
    provided = None
    for name in ASAAS_TOKEN_HEADERS:
        provided = headers.get(name)
        if provided:
            break
    if not provided:
        raise AuthenticationError("Missing authentication header")
    if not constant_time_compare(provided, expected):
        raise AuthenticationError("Invalid webhook token")


def require_admin(x_admin_secret: str | None = Header(None, alias="X-Admin-Secret")) -> None:
    """Admin API: header ile secret kontrolü (constant-time compare)."""
    expected = (settings.admin_secret or "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin não configurado (ADMIN_SECRET ausente).")
    if not constant_time_compare(x_admin_secret, expected):
        raise HTTPException(status_code=403, detail="Não autorizado.")
