"""Admin API: sadece ADMIN_SECRET ile erişilir. Sipariş/fatura listeleri ve elle reconcile."""
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.security import require_admin
from app.models import Invoice, Order
from app.schemas import ReconcileResponse
from app.schemas.payment import cents_to_amount
from app.services.orders import get_order
from app.services.reconciler import maybe_provision_access

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/orders")
def admin_orders(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin),
    limit: int = Query(100, le=300),
    status: str | None = Query(None, description="pending | paid | provisioned | completed | expired | failed"),
):
    """Siparişler. status=paid: ödemesi alınmış ama hesabı bağlanmamış veya erişimi verilememiş siparişler."""
    stmt = select(Order).order_by(Order.created_at.desc()).limit(limit)
    if status:
        stmt = stmt.where(Order.status == status)
    return [
        {
            "id": o.id,
            "email": o.email,
            "product_id": o.product_id,
            "payment_method": o.payment_method,
            "final_price": cents_to_amount(o.final_price_cents),
            "coupon_code": o.coupon_code,
            "status": o.status,
            "gateway_payment_id": o.gateway_payment_id,
            "account_id": o.account_id,
            "created_at": o.created_at.isoformat() if o.created_at else None,
            "paid_at": o.paid_at.isoformat() if o.paid_at else None,
            "completed_at": o.completed_at.isoformat() if o.completed_at else None,
        }
        for o in db.exec(stmt).all()
    ]


@router.post("/orders/{order_id}/reconcile", response_model=ReconcileResponse)
def admin_reconcile(
    order_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin),
):
    """Takılı kalmış sipariş için reconciler'ı elle tetikler (otomatik tekrar yok)."""
    if not get_order(db, order_id):
        raise NotFoundError("Pedido não encontrado.")
    provisioned = maybe_provision_access(db, order_id)
    order = get_order(db, order_id)
    return ReconcileResponse(order_id=order_id, provisioned=provisioned, status=order.status)


@router.get("/invoices")
def admin_invoices(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin),
    limit: int = Query(100, le=300),
    status: str | None = Query(None, description="pending | processing | issued | failed"),
):
    stmt = select(Invoice).order_by(Invoice.id.desc()).limit(limit)
    if status:
        stmt = stmt.where(Invoice.status == status)
    return [
        {
            "id": inv.id,
            "order_id": inv.order_id,
            "status": inv.status,
            "value": cents_to_amount(inv.value_cents),
            "provider_invoice_id": inv.provider_invoice_id,
            "error_message": inv.error_message,
            "created_at": inv.created_at.isoformat() if inv.created_at else None,
            "issued_at": inv.issued_at.isoformat() if inv.issued_at else None,
        }
        for inv in db.exec(stmt).all()
    ]
