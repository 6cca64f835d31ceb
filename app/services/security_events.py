"""SecurityLog yazımı: webhook kimlik hataları, tutar uyuşmazlıkları, rate limit."""
import logging

from sqlmodel import Session

from app.models import SecurityLog

log = logging.getLogger("checkout.security")


def record_security_event(
    db: Session,
    event: str,
    *,
    ip: str | None = None,
    endpoint: str | None = None,
    order_id: str | None = None,
    detail: str | None = None,
) -> None:
    """Kendi commit'ini yapar; yazım hatası çağıranı etkilemez."""
    try:
        db.add(
            SecurityLog(
                event=event,
                ip=ip or None,
                endpoint=endpoint,
                order_id=order_id,
                detail=(detail or "")[:500] or None,
            )
        )
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("SecurityLog %s write failed: %s", event, e)
