from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env proje kökünde: app/core/config.py -> app/core -> app -> proje kökü
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./checkout.db"
    # CORS: virgülle ayrılmış origin listesi; production'da https://alandiniz.com
    cors_origins: str = "*"
    # IP başına dakikada max istek (rate limit), sipariş oluşturma için
    rate_limit_per_minute: int = 30
    environment: str = "development"
    log_level: str = "INFO"            # checkout.* ve uvicorn logger seviyesi
    admin_secret: str = ""             # POST /admin/orders/{id}/reconcile için (X-Admin-Secret)

    # Asaas (ödeme geçidi): webhook paylaşılan sırrı + fatura API'si
    asaas_webhook_secret: str = ""     # asaas-access-token başlığında gelir; boşsa webhook 500 döner
    asaas_api_key: str = ""
    asaas_api_url: str = "https://sandbox.asaas.com/api/v3"  # canlı: https://api.asaas.com/v3

    # Clerk (kimlik sağlayıcı): davetiye API'si + svix imzalı webhook
    clerk_secret_key: str = ""
    clerk_webhook_secret: str = ""     # whsec_... biçiminde
    clerk_api_url: str = "https://api.clerk.com/v1"

    order_expiry_days: int = 7         # Siparişin yumuşak son kullanma süresi (saklanır, uygulanmaz)
    payment_amount_tolerance_cents: int = 2  # Ödenen tutar / sipariş tutarı yuvarlama payı

    # Fatura (NFS-e): sabit hizmet kodu ve ISS oranı iş kuralıdır, hesaplanmaz
    invoice_service_code: str = "02964"
    invoice_service_description: str = "Acesso à plataforma de questões"
    invoice_iss_rate: float = 2.0

    http_timeout_seconds: int = 20
    # Arka plan görev işçisi (fatura, davetiye). Testlerde kapatılır, kuyruk elle boşaltılır.
    task_worker_enabled: bool = True

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("asaas_webhook_secret", "clerk_webhook_secret", "admin_secret", mode="before")
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Boşluk/yanlış kopya kaynaklı imza hatalarını azaltır."""
        return (v or "").strip()

    @field_validator("asaas_api_url", "clerk_api_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/")


settings = Settings()


def is_asaas_configured() -> bool:
    """Fatura API'si için anahtar tanımlı mı?"""
    return bool((settings.asaas_api_key or "").strip())
