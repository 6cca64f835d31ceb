"""IP bazlı rate limiting (SlowAPI); proxy (X-Forwarded-For) destekli."""
from fastapi import Request

from slowapi import Limiter

from .config import settings


def client_ip(request: Request) -> str:
    """Proxy arkasında gerçek istemci IP: X-Forwarded-For'un ilk değeri, yoksa X-Real-IP."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def order_intake_limit() -> str:
    """Sipariş oluşturma limiti; her istekte ayardan okunur."""
    return f"{settings.rate_limit_per_minute}/minute"


limiter = Limiter(key_func=client_ip)
