"""
Fatura (NFS-e) iş akışı: ödeme onayından sonra arka planda, en iyi çaba ile.

generate_invoice: sipariş başına tek kayıt açar (varsa onu kullanır) ve process_invoice'u kuyruğa atar.
process_invoice: Asaas adımlarını yürütür; her hata fatura kaydına yazılır (status=failed),
asla fırlatılmaz ve ödeme onayını etkilemez.

NOT: Asaas hesabında NFS-e özelliği açık ve belediye hizmet kodu geçerli olmalı;
değilse fatura failed olur, ödeme yine paid kalır.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings
from app.models import Invoice
from app.models.invoice import INVOICE_FAILED, INVOICE_ISSUED, INVOICE_PENDING, INVOICE_PROCESSING
from app.schemas.payment import cents_to_amount
from app.services import invoice_asaas
from app.services.invoice_asaas import TaxProfile
from app.services.orders import get_order
from app.services.task_queue import TaskQueue, task_queue

log = logging.getLogger("checkout.invoices")

TASK_GENERATE_INVOICE = "generate_invoice"
TASK_PROCESS_INVOICE = "process_invoice"

# Asaas hizmet adı sınırı
MAX_SERVICE_NAME_LENGTH = 250


def get_invoice_by_order(db: Session, order_id: str) -> Invoice | None:
    """Tek eşleşme sözleşmesi: order_id unique olduğundan en fazla bir fatura vardır."""
    return db.exec(select(Invoice).where(Invoice.order_id == order_id)).first()


def truncate_service_name(name: str) -> str:
    if len(name) > MAX_SERVICE_NAME_LENGTH:
        return name[: MAX_SERVICE_NAME_LENGTH - 3] + "..."
    return name


def build_tax_profile() -> TaxProfile:
    """İş kuralı: sadece ISS, stopaj yok, diğer vergiler sıfır."""
    return TaxProfile(retain_iss=False, iss=settings.invoice_iss_rate)


@task_queue.task(TASK_GENERATE_INVOICE)
def generate_invoice(
    db: Session,
    order_id: str,
    gateway_payment_id: str,
    queue: TaskQueue | None = None,
) -> int | None:
    existing = get_invoice_by_order(db, order_id)
    if existing:
        log.info("Invoice %s already exists for order %s", existing.id, order_id)
        return existing.id
    order = get_order(db, order_id)
    if not order:
        log.error("Invoice: order not found: %s", order_id)
        return None

    invoice = Invoice(
        order_id=order.id,
        gateway_payment_id=gateway_payment_id,
        status=INVOICE_PENDING,
        service_description=settings.invoice_service_description,
        value_cents=order.final_price_cents,
        customer_name=order.name,
        customer_email=order.email,
        customer_tax_id=order.tax_id,
        customer_phone=order.phone,
        customer_mobile_phone=order.mobile_phone,
        customer_postal_code=order.postal_code,
        customer_address=order.address,
        customer_address_number=order.address_number,
    )
    db.add(invoice)
    try:
        db.commit()
    except IntegrityError:
        # Eşzamanlı bir görev aynı sipariş için kaydı önce açtı
        db.rollback()
        existing = get_invoice_by_order(db, order_id)
        return existing.id if existing else None
    db.refresh(invoice)
    log.info("Invoice %s created for order %s", invoice.id, order_id)
    (queue or task_queue).enqueue(TASK_PROCESS_INVOICE, invoice_id=invoice.id)
    return invoice.id


def _mark_failed(db: Session, invoice_id: int, message: str) -> None:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        return
    invoice.status = INVOICE_FAILED
    invoice.error_message = (message or "Unknown error")[:2000]
    db.add(invoice)
    db.commit()
    log.warning("Invoice %s failed: %s", invoice_id, invoice.error_message)


@task_queue.task(TASK_PROCESS_INVOICE)
def process_invoice(db: Session, invoice_id: int, client=None) -> None:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        log.error("Invoice not found: %s", invoice_id)
        return
    if invoice.status != INVOICE_PENDING:
        log.info("Invoice %s is %s, skipping", invoice_id, invoice.status)
        return

    client = client or invoice_asaas.get_invoice_client()
    service_code = settings.invoice_service_code
    try:
        fiscal_service = client.resolve_fiscal_service(service_code)
        if not fiscal_service:
            _mark_failed(
                db,
                invoice_id,
                f"Fiscal service not found for: {service_code}. Check your Asaas fiscal configuration.",
            )
            return

        invoice.municipal_service_id = fiscal_service.id
        invoice.status = INVOICE_PROCESSING
        db.add(invoice)
        db.commit()

        provider_invoice_id = client.schedule_invoice(
            payment_id=invoice.gateway_payment_id,
            service_description=invoice.service_description,
            municipal_service_id=fiscal_service.id,
            municipal_service_name=truncate_service_name(fiscal_service.description),
            value=cents_to_amount(invoice.value_cents),
            observations=f"Pedido: {invoice.order_id}",
            taxes=build_tax_profile(),
        )

        invoice.provider_invoice_id = provider_invoice_id
        invoice.status = INVOICE_ISSUED
        invoice.issued_at = utcnow()
        invoice.error_message = None
        db.add(invoice)
        db.commit()
        log.info("Invoice %s issued (asaas id %s)", invoice_id, provider_invoice_id)
    except Exception as e:
        db.rollback()
        _mark_failed(db, invoice_id, str(e))
