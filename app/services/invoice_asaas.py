"""Asaas NFS-e API istemcisi: belediye hizmet kodunu çözer ve ödemeye bağlı fatura planlar."""
from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request as UrlRequest
from urllib.request import urlopen

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import ExternalServiceError

log = logging.getLogger("checkout.asaas")


class FiscalService(NamedTuple):
    id: str
    description: str
    iss_tax: float | None = None


class TaxProfile(NamedTuple):
    """Asaas 'taxes' nesnesi (düz yapı). Oranlar yüzde: 2 = %2."""
    retain_iss: bool
    iss: float
    cofins: float = 0
    csll: float = 0
    inss: float = 0
    ir: float = 0
    pis: float = 0

    def as_payload(self) -> dict[str, Any]:
        return {
            "retainIss": self.retain_iss,
            "iss": self.iss,
            "cofins": self.cofins,
            "csll": self.csll,
            "inss": self.inss,
            "ir": self.ir,
            "pis": self.pis,
        }


class AsaasInvoiceClient:
    def __init__(self, api_key: str | None = None, base_url: str | None = None, timeout: int | None = None) -> None:
        self.api_key = (api_key if api_key is not None else settings.asaas_api_key or "").strip()
        self.base_url = (base_url or settings.asaas_api_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    def _request(self, method: str, path: str, payload: dict | None = None, query: dict | None = None) -> dict:
        if not self.api_key:
            raise ExternalServiceError("ASAAS_API_KEY is not configured")
        url = f"{self.base_url}{path}"
        if query:
            url += "?" + urlencode(query)
        data = json.dumps(payload).encode() if payload is not None else None
        req = UrlRequest(
            url,
            data=data,
            method=method,
            headers={
                "access_token": self.api_key,
                "Content-Type": "application/json",
                "User-Agent": "checkout-api",
            },
        )
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode() or "{}"
        except HTTPError as e:
            detail = ""
            try:
                detail = e.read().decode()[:500]
            except OSError:
                pass
            raise ExternalServiceError(f"Asaas {method} {path} failed: HTTP {e.code} {detail}") from e
        except (URLError, OSError) as e:
            raise ExternalServiceError(f"Asaas connection error: {str(e)[:200]}") from e
        try:
            return json.loads(body)
        except ValueError as e:
            raise ExternalServiceError(f"Asaas returned invalid JSON for {path}") from e

    def resolve_fiscal_service(self, description: str) -> FiscalService | None:
        """Hizmet kodu/açıklaması ile belediye hizmetini bulur; yoksa None."""
        result = self._request("GET", "/invoices/municipalServices", query={"description": description})
        items = result.get("data") or []
        if not items:
            return None
        first = items[0]
        return FiscalService(
            id=str(first.get("id") or ""),
            description=str(first.get("description") or ""),
            iss_tax=first.get("issTax"),
        )

    def schedule_invoice(
        self,
        *,
        payment_id: str,
        service_description: str,
        municipal_service_id: str,
        municipal_service_name: str,
        value: float,
        observations: str,
        taxes: TaxProfile,
    ) -> str:
        """Ödemeye bağlı faturayı planlar, Asaas fatura id'sini döner."""
        payload = {
            "payment": payment_id,
            "serviceDescription": service_description,
            "observations": observations,
            "value": value,
            "deductions": 0,
            "effectiveDate": utcnow().strftime("%Y-%m-%d"),
            "municipalServiceId": municipal_service_id,
            "municipalServiceName": municipal_service_name,
            "taxes": taxes.as_payload(),
        }
        result = self._request("POST", "/invoices", payload=payload)
        invoice_id = result.get("id")
        if not invoice_id:
            raise ExternalServiceError("Asaas did not return an invoice id")
        log.info("Asaas invoice scheduled: %s for payment %s", invoice_id, payment_id)
        return str(invoice_id)


def get_invoice_client() -> AsaasInvoiceClient:
    return AsaasInvoiceClient()
