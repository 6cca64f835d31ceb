from .payment import (
    ClaimResult,
    CreateOrderRequest,
    CreateOrderResponse,
    LinkPaymentRequest,
    OrderIdentity,
    PaymentStatusResponse,
    PriceBreakdown,
    QuoteRequest,
    ReconcileResponse,
)
from .webhooks import AsaasPayment, asaas_event_adapter, clerk_event_adapter

__all__ = [
    "AsaasPayment",
    "ClaimResult",
    "CreateOrderRequest",
    "CreateOrderResponse",
    "LinkPaymentRequest",
    "OrderIdentity",
    "PaymentStatusResponse",
    "PriceBreakdown",
    "QuoteRequest",
    "ReconcileResponse",
    "asaas_event_adapter",
    "clerk_event_adapter",
]
