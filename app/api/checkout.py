from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from app.core.database import get_db
from app.core.rate_limit import limiter, order_intake_limit
from app.schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    LinkPaymentRequest,
    PaymentStatusResponse,
    PriceBreakdown,
    QuoteRequest,
)
from app.services.orders import create_order, get_payment_status, link_payment
from app.services.pricing import resolve_price

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/quote", response_model=PriceBreakdown)
def quote(body: QuoteRequest, db: Session = Depends(get_db)):
    """Kupon önizlemesi: sipariş açmaz, kupon sayacına dokunmaz."""
    price = resolve_price(db, body.product_id, body.payment_method, body.coupon_code, body.tax_id)
    return price.breakdown()


@router.post("/orders", response_model=CreateOrderResponse)
@limiter.limit(order_intake_limit)
def create_checkout_order(request: Request, body: CreateOrderRequest, db: Session = Depends(get_db)):
    return create_order(db, body)


@router.post("/orders/{order_id}/payment")
def link_order_payment(order_id: str, body: LinkPaymentRequest, db: Session = Depends(get_db)):
    order = link_payment(db, order_id, body)
    return {"order_id": order.id, "gateway_payment_id": order.gateway_payment_id, "status": order.status}


@router.get("/orders/{order_id}/status", response_model=PaymentStatusResponse)
def order_status(order_id: str, db: Session = Depends(get_db)):
    """Ödeme bekleme ekranının yokladığı uç (salt okunur)."""
    return get_payment_status(db, order_id)
