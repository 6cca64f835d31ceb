"""
Kimlik sahiplenme: Clerk'te oluşan hesabı e-posta ile bekleyen siparişe bağlar.

Ödeme onayından önce veya sonra gelebilir; her iki durumda da reconciler çağrılır.
Dolu bir account_id asla ezilmez.
"""
import logging

from sqlalchemy import update
from sqlmodel import Session

from app.models import Order
from app.schemas.payment import ClaimResult
from app.services.orders import find_claimable_order, find_claimed_paid_order, normalize_email
from app.services.reconciler import maybe_provision_access

log = logging.getLogger("checkout.claims")

NOTHING_TO_CLAIM = "Nenhum pedido para vincular."


def claim_order_by_email(db: Session, email: str | None, account_id: str) -> ClaimResult:
    """
    Eşleşme yoksa da success=True döner: yeni hesapların çoğunun bekleyen siparişi yoktur.
    success=False sadece siparişin başka bir hesaba bağlı olduğu çakışmada döner.
    """
    email = normalize_email(email)
    if not email or not account_id:
        return ClaimResult(success=True, message=NOTHING_TO_CLAIM)

    order = find_claimable_order(db, email)
    if not order:
        # Tekrar eden claim: hesap zaten bağlı, erişim önceki denemede verilemediyse yeniden dene
        claimed = find_claimed_paid_order(db, email, account_id)
        if claimed:
            maybe_provision_access(db, claimed.id)
            return ClaimResult(success=True, message="Pedido já vinculado a esta conta.", order_id=claimed.id)
        log.info("No claimable order for %s (account %s)", email, account_id)
        return ClaimResult(success=True, message=NOTHING_TO_CLAIM)

    result = db.exec(
        update(Order)
        .where(Order.id == order.id, Order.account_id.is_(None))
        .values(account_id=account_id, account_email=email)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(order)
        if order.account_id != account_id:
            log.warning(
                "Order %s already claimed by account %s; refusing claim by %s",
                order.id,
                order.account_id,
                account_id,
            )
            return ClaimResult(success=False, message="Pedido já vinculado a outra conta.", order_id=order.id)
        log.info("Order %s already claimed by account %s", order.id, account_id)
    else:
        db.commit()
        log.info("Order %s claimed by account %s (status=%s)", order.id, account_id, order.status)

    maybe_provision_access(db, order.id)
    return ClaimResult(success=True, message="Pedido vinculado à conta.", order_id=order.id)
