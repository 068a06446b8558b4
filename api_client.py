"""REST API client for the Cliniko practice-management API."""

import base64
import logging
from typing import Any, Optional

import httpx

from config import CLINIKO_API_BASE, REQUEST_TIMEOUT

logger = logging.getLogger("cliniko-mcp")

USER_AGENT = "MCP-Cliniko/1.0"


class ApiError(Exception):
    """Raised when the Cliniko API answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Cliniko API error ({status_code}): {body}")


def _query(**params: Any) -> dict[str, str]:
    """Keep only the parameters the caller supplied, in argument order."""
    query: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


class ClinikoClient:
    """Thin async HTTP client wrapping the Cliniko REST API.

    Every public method is a specialization of ``_request``: it builds the
    query string and JSON body for one resource/verb and hands them over.
    Failures are never retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = CLINIKO_API_BASE,
        timeout: int = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        token = base64.b64encode(f"{api_key}:".encode("utf-8")).decode("ascii")
        self._headers: dict[str, str] = {
            "Authorization": f"Basic {token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    # ------------------------------------------------------------------
    # Request primitive
    # ------------------------------------------------------------------
    async def _request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send one request and decode the response.

        Raises ``ApiError`` on a non-2xx status. A 204 yields ``{}`` without
        touching the body; anything else is parsed as JSON.
        """
        url = f"{self.base_url}{path}"
        merged = {**self._headers, **(headers or {})}
        logger.info("%s %s params=%s", method, url, params)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.request(
                method,
                url,
                headers=merged,
                params=params or None,
                json=body,
            )
        if not resp.is_success:
            logger.error("HTTP %s from %s: %s", resp.status_code, url, resp.text[:500])
            raise ApiError(resp.status_code, resp.text)
        if resp.status_code == 204:
            return {}
        return resp.json()

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------
    async def list_patients(
        self,
        q: Optional[str] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> dict:
        return await self._request("/patients", params=_query(q=q, page=page, per_page=per_page))

    async def get_patient(self, patient_id: int) -> dict:
        return await self._request(f"/patients/{patient_id}")

    async def create_patient(self, patient: dict[str, Any]) -> dict:
        return await self._request("/patients", method="POST", body=patient)

    async def update_patient(self, patient_id: int, patient: dict[str, Any]) -> dict:
        return await self._request(f"/patients/{patient_id}", method="PUT", body=patient)

    async def delete_patient(self, patient_id: int) -> dict:
        return await self._request(f"/patients/{patient_id}", method="DELETE")

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------
    async def list_appointments(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        patient_id: Optional[int] = None,
        practitioner_id: Optional[int] = None,
        business_id: Optional[int] = None,
        starts_at: Optional[str] = None,
        ends_at: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        params = _query(
            page=page,
            per_page=per_page,
            patient_id=patient_id,
            practitioner_id=practitioner_id,
            business_id=business_id,
            starts_at=starts_at,
            ends_at=ends_at,
            status=status,
        )
        return await self._request("/appointments", params=params)

    async def get_appointment(self, appointment_id: int) -> dict:
        return await self._request(f"/appointments/{appointment_id}")

    async def create_appointment(self, appointment: dict[str, Any]) -> dict:
        return await self._request("/appointments", method="POST", body=appointment)

    async def update_appointment(self, appointment_id: int, appointment: dict[str, Any]) -> dict:
        return await self._request(f"/appointments/{appointment_id}", method="PUT", body=appointment)

    async def cancel_appointment(self, appointment_id: int, reason: Optional[str] = None) -> dict:
        return await self._request(
            f"/appointments/{appointment_id}/cancel",
            method="PUT",
            body={"cancellation_reason": reason},
        )

    async def delete_appointment(self, appointment_id: int) -> dict:
        return await self._request(f"/appointments/{appointment_id}", method="DELETE")

    # ------------------------------------------------------------------
    # Practitioners, businesses, appointment types, availability
    # ------------------------------------------------------------------
    async def list_practitioners(self, page: Optional[int] = None, per_page: Optional[int] = None) -> dict:
        return await self._request("/practitioners", params=_query(page=page, per_page=per_page))

    async def get_practitioner(self, practitioner_id: int) -> dict:
        return await self._request(f"/practitioners/{practitioner_id}")

    async def list_businesses(self) -> dict:
        return await self._request("/businesses")

    async def get_business(self, business_id: int) -> dict:
        return await self._request(f"/businesses/{business_id}")

    async def list_appointment_types(self, page: Optional[int] = None, per_page: Optional[int] = None) -> dict:
        return await self._request("/appointment_types", params=_query(page=page, per_page=per_page))

    async def get_appointment_type(self, appointment_type_id: int) -> dict:
        return await self._request(f"/appointment_types/{appointment_type_id}")

    async def get_available_times(
        self,
        business_id: int,
        practitioner_id: int,
        from_date: str,
        to_date: str,
    ) -> list:
        params = _query(
            business_id=business_id,
            practitioner_id=practitioner_id,
            **{"from": from_date, "to": to_date},
        )
        response = await self._request("/available_times", params=params)
        return response.get("available_times", [])

    # ------------------------------------------------------------------
    # Invoices and invoice items
    # ------------------------------------------------------------------
    async def list_invoices(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        patient_id: Optional[int] = None,
        practitioner_id: Optional[int] = None,
        issued_at_from: Optional[str] = None,
        issued_at_to: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        params = _query(
            page=page,
            per_page=per_page,
            patient_id=patient_id,
            practitioner_id=practitioner_id,
            issued_at_from=issued_at_from,
            issued_at_to=issued_at_to,
            status=status,
        )
        return await self._request("/invoices", params=params)

    async def get_invoice(self, invoice_id: int) -> dict:
        return await self._request(f"/invoices/{invoice_id}")

    async def list_appointment_invoices(self, appointment_id: int) -> dict:
        return await self._request(f"/appointments/{appointment_id}/invoices")

    async def create_invoice(self, invoice: dict[str, Any]) -> dict:
        payload = dict(invoice)
        issue_date = payload.get("issue_date")
        # The remote field is date-only; drop the time part of ISO datetimes.
        if isinstance(issue_date, str) and "T" in issue_date:
            payload["issue_date"] = issue_date.split("T")[0]
        return await self._request("/invoices", method="POST", body=payload)

    async def update_invoice(self, invoice_id: int, invoice: dict[str, Any]) -> dict:
        return await self._request(f"/invoices/{invoice_id}", method="PUT", body=invoice)

    async def delete_invoice(self, invoice_id: int) -> dict:
        return await self._request(f"/invoices/{invoice_id}", method="DELETE")

    async def list_invoice_items(self, invoice_id: int) -> dict:
        return await self._request(f"/invoices/{invoice_id}/invoice_items")

    async def create_invoice_item(self, invoice_id: int, item: dict[str, Any]) -> dict:
        return await self._request(f"/invoices/{invoice_id}/invoice_items", method="POST", body=item)

    async def update_invoice_item(self, invoice_id: int, item_id: int, item: dict[str, Any]) -> dict:
        return await self._request(
            f"/invoices/{invoice_id}/invoice_items/{item_id}",
            method="PUT",
            body=item,
        )

    async def delete_invoice_item(self, invoice_id: int, item_id: int) -> dict:
        return await self._request(f"/invoices/{invoice_id}/invoice_items/{item_id}", method="DELETE")

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------
    async def list_payments(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        invoice_id: Optional[int] = None,
        patient_id: Optional[int] = None,
    ) -> dict:
        params = _query(page=page, per_page=per_page, invoice_id=invoice_id, patient_id=patient_id)
        return await self._request("/payments", params=params)

    async def get_payment(self, payment_id: int) -> dict:
        return await self._request(f"/payments/{payment_id}")

    async def create_payment(self, payment: dict[str, Any]) -> dict:
        return await self._request("/payments", method="POST", body=payment)

    async def delete_payment(self, payment_id: int) -> dict:
        return await self._request(f"/payments/{payment_id}", method="DELETE")

    # ------------------------------------------------------------------
    # Products and taxes
    # ------------------------------------------------------------------
    @staticmethod
    def _product_payload(product: dict[str, Any]) -> dict[str, Any]:
        """Cliniko calls the product price ``price``, not ``unit_price``."""
        payload = dict(product)
        if "unit_price" in payload:
            payload["price"] = payload.pop("unit_price")
        return payload

    async def list_products(self, page: Optional[int] = None, per_page: Optional[int] = None) -> dict:
        return await self._request("/products", params=_query(page=page, per_page=per_page))

    async def get_product(self, product_id: int) -> dict:
        return await self._request(f"/products/{product_id}")

    async def create_product(self, product: dict[str, Any]) -> dict:
        return await self._request("/products", method="POST", body=self._product_payload(product))

    async def update_product(self, product_id: int, product: dict[str, Any]) -> dict:
        return await self._request(
            f"/products/{product_id}",
            method="PUT",
            body=self._product_payload(product),
        )

    async def delete_product(self, product_id: int) -> dict:
        return await self._request(f"/products/{product_id}", method="DELETE")

    async def list_taxes(self, page: Optional[int] = None, per_page: Optional[int] = None) -> dict:
        return await self._request("/taxes", params=_query(page=page, per_page=per_page))

    async def create_tax(self, tax: dict[str, Any]) -> dict:
        return await self._request("/taxes", method="POST", body=tax)

    # ------------------------------------------------------------------
    # Patient cases
    # ------------------------------------------------------------------
    async def list_patient_cases(
        self,
        patient_id: int,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> dict:
        return await self._request(
            f"/patients/{patient_id}/cases",
            params=_query(page=page, per_page=per_page),
        )

    async def create_patient_case(self, patient_id: int, case: dict[str, Any]) -> dict:
        return await self._request(f"/patients/{patient_id}/cases", method="POST", body=case)

    async def get_case(self, case_id: int) -> dict:
        return await self._request(f"/cases/{case_id}")

    async def list_case_invoices(self, case_id: int) -> dict:
        return await self._request(f"/cases/{case_id}/invoices")
