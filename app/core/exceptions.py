"""Uygulama hataları.

Servis katmanı bu sınıfları fırlatır; HTTP karşılıkları app/main.py içindeki
exception handler'larda belirlenir.
"""


class CheckoutError(Exception):
    """Tüm checkout hatalarının tabanı."""

    status_code = 500


class ValidationError(CheckoutError):
    """Bilinmeyen/pasif ürün, geçersiz kupon, sıfır veya negatif fiyat."""

    status_code = 400


class NotFoundError(CheckoutError):
    status_code = 404


class AuthenticationError(CheckoutError):
    """Webhook sırrı eksik, yanlış ya da yapılandırılmamış."""

    status_code = 401

    def __init__(self, message: str, configuration: bool = False) -> None:
        super().__init__(message)
        # Sunucu tarafında eksik ayar: gönderen tekrar denesin diye 500
        self.configuration = configuration
        if configuration:
            self.status_code = 500


class IntegrityViolation(CheckoutError):
    """
    Ödenen tutar sipariş tutarıyla uyuşmuyor (olası sahtecilik).
    Sadece servis içinde kullanılır; confirm_payment yakalar, HTTP katmanına ulaşmaz.
    """


class WebhookPayloadError(CheckoutError):
    """Ödeme webhook gövdesi okunamadı (500, gönderen tekrar dener)."""

    status_code = 500


class ExternalServiceError(CheckoutError):
    """Fatura veya davetiye sağlayıcısı hatası; ödeme akışına asla yayılmaz."""

    status_code = 502
