"""
Logging configuration.
Servisler checkout.* altında kendi logger'larını kullanır (checkout.payments,
checkout.reconciler, checkout.claims, checkout.invoices, checkout.tasks, checkout.webhooks).
Seviye LOG_LEVEL ile gelir.
"""
import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# Sağlayıcı ve sürücü logları: sadece uyarılar
QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3", "httpx")


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format=format_string or DEFAULT_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    # Uvicorn access/error aynı seviyede
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "checkout"):
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
