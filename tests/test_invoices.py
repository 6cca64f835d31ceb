"""Fatura iş akışı: Asaas istemcisi sahte nesneyle değiştirilir."""
import pytest
from sqlmodel import select

from app.models import Invoice
from app.services import invoice_asaas
from app.services.invoice_asaas import FiscalService
from app.services.invoices import (
    generate_invoice,
    get_invoice_by_order,
    process_invoice,
    truncate_service_name,
)
from app.services.task_queue import task_queue


class FakeInvoiceClient:
    def __init__(self, service=None, schedule_error=None):
        self.service = service if service is not None else FiscalService(id="svc_1", description="02964 - Ensino")
        self.schedule_error = schedule_error
        self.resolved = []
        self.scheduled = []

    def resolve_fiscal_service(self, description):
        self.resolved.append(description)
        return self.service or None

    def schedule_invoice(self, **kwargs):
        if self.schedule_error:
            raise self.schedule_error
        self.scheduled.append(kwargs)
        return "inv_123"


@pytest.fixture
def fake_client(monkeypatch):
    client = FakeInvoiceClient()
    monkeypatch.setattr(invoice_asaas, "get_invoice_client", lambda: client)
    return client


def test_generate_and_issue(db, plan, make_order, reload, fake_client):
    order = make_order(status="paid", final_price_cents=9000, address="Rua A", postal_code="01001000")
    invoice_id = generate_invoice(db, order.id, "pay_1")
    invoice = reload(Invoice, invoice_id)
    assert invoice.status == "pending"
    assert invoice.value_cents == 9000
    assert invoice.customer_tax_id == order.tax_id
    assert invoice.customer_address == "Rua A"
    assert invoice.customer_address_number == "SN"

    assert task_queue.drain() == 1
    invoice = reload(Invoice, invoice_id)
    assert invoice.status == "issued"
    assert invoice.provider_invoice_id == "inv_123"
    assert invoice.municipal_service_id == "svc_1"
    assert invoice.issued_at is not None
    assert invoice.error_message is None

    assert fake_client.resolved == ["02964"]
    sent = fake_client.scheduled[0]
    assert sent["payment_id"] == "pay_1"
    assert sent["value"] == 90.0
    assert sent["observations"] == f"Pedido: {order.id}"
    assert sent["municipal_service_id"] == "svc_1"
    taxes = sent["taxes"].as_payload()
    assert taxes == {"retainIss": False, "iss": 2.0, "cofins": 0, "csll": 0, "inss": 0, "ir": 0, "pis": 0}


def test_generate_reuses_existing_invoice(db, plan, make_order, fake_client):
    order = make_order(status="paid")
    first = generate_invoice(db, order.id, "pay_1")
    second = generate_invoice(db, order.id, "pay_1")
    assert first == second
    assert len(db.exec(select(Invoice)).all()) == 1
    # Sadece ilk çağrı işleme görevini kuyruğa atar
    assert task_queue.pending() == 1
    assert get_invoice_by_order(db, order.id).id == first


def test_generate_for_unknown_order(db):
    assert generate_invoice(db, "nao_existe", "pay_1") is None
    assert task_queue.pending() == 0


def test_fiscal_service_not_found(db, plan, make_order, reload):
    client = FakeInvoiceClient(service=False)
    order = make_order(status="paid")
    invoice_id = generate_invoice(db, order.id, "pay_1")
    process_invoice(db, invoice_id, client=client)
    invoice = reload(Invoice, invoice_id)
    assert invoice.status == "failed"
    assert "Fiscal service not found" in invoice.error_message
    assert client.scheduled == []


def test_schedule_failure_is_captured(db, plan, make_order, reload):
    client = FakeInvoiceClient(schedule_error=RuntimeError("HTTP 400 invalid municipal service"))
    order = make_order(status="paid")
    invoice_id = generate_invoice(db, order.id, "pay_1")
    process_invoice(db, invoice_id, client=client)
    invoice = reload(Invoice, invoice_id)
    assert invoice.status == "failed"
    assert invoice.municipal_service_id == "svc_1"
    assert "invalid municipal service" in invoice.error_message


def test_process_only_from_pending(db, plan, make_order, reload):
    client = FakeInvoiceClient()
    order = make_order(status="paid")
    invoice_id = generate_invoice(db, order.id, "pay_1")
    process_invoice(db, invoice_id, client=client)
    process_invoice(db, invoice_id, client=client)
    assert len(client.scheduled) == 1
    assert reload(Invoice, invoice_id).status == "issued"


def test_service_name_truncation():
    assert truncate_service_name("a" * 250) == "a" * 250
    long_name = truncate_service_name("b" * 300)
    assert len(long_name) == 250
    assert long_name.endswith("...")
