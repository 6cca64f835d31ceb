from datetime import datetime, timezone


def utcnow() -> datetime:
    """Şu an, UTC (timezone bilgisiyle)."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite gibi sürücüler timezone'u düşürebilir; naive değer UTC kabul edilir."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
