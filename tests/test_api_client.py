"""Tests for the Cliniko API client.

HTTP is faked with httpx.MockTransport; each handler records the request
it was given so the test can inspect method, URL, headers and body.
"""

import base64
import json

import httpx
import pytest

from api_client import ApiError, _query


class Recorder:
    """MockTransport handler that answers with a fixed response."""

    def __init__(self, status_code: int = 200, payload=None, text=None):
        self.status_code = status_code
        self.payload = payload
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        if self.payload is None:
            return httpx.Response(self.status_code)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_body(self) -> dict:
        return json.loads(self.last.content)


# --- Query construction ---


def test_query_drops_omitted_fields() -> None:
    assert _query(q=None, page=2, per_page=None) == {"page": "2"}


def test_query_stringifies_values() -> None:
    assert _query(patient_id=7, archived=True, flag=False) == {
        "patient_id": "7",
        "archived": "true",
        "flag": "false",
    }


# --- Request primitive ---


class TestRequest:
    @pytest.mark.asyncio
    async def test_headers_carry_basic_auth(self, make_client) -> None:
        recorder = Recorder(payload={"patients": []})
        client = make_client(recorder)

        await client.list_patients()

        expected = base64.b64encode(b"test-key:").decode("ascii")
        assert recorder.last.headers["Authorization"] == f"Basic {expected}"
        assert recorder.last.headers["Accept"] == "application/json"
        assert recorder.last.headers["User-Agent"] == "MCP-Cliniko/1.0"

    @pytest.mark.asyncio
    async def test_no_content_returns_empty_dict(self, make_client) -> None:
        """A 204 must not be parsed as JSON."""
        recorder = Recorder(status_code=204)
        client = make_client(recorder)

        result = await client.delete_patient(12)

        assert result == {}
        assert recorder.last.method == "DELETE"
        assert recorder.last.url.path == "/v1/patients/12"

    @pytest.mark.asyncio
    async def test_not_found_raises_api_error(self, make_client) -> None:
        client = make_client(Recorder(status_code=404, text="Not Found"))

        with pytest.raises(ApiError) as info:
            await client.get_patient(99)

        assert info.value.status_code == 404
        assert info.value.body == "Not Found"
        assert str(info.value) == "Cliniko API error (404): Not Found"

    @pytest.mark.asyncio
    async def test_extra_headers_override_defaults(self, make_client) -> None:
        recorder = Recorder(payload={})
        client = make_client(recorder)

        await client._request("/patients", headers={"Accept": "text/csv"})

        assert recorder.last.headers["Accept"] == "text/csv"
        assert "Authorization" in recorder.last.headers

    def test_headers_property_is_a_copy(self, make_client) -> None:
        client = make_client(Recorder())
        client.headers["Authorization"] = "tampered"
        assert client.headers["Authorization"].startswith("Basic ")


# --- Patients ---


class TestPatients:
    @pytest.mark.asyncio
    async def test_list_patients_query_string(self, make_client) -> None:
        recorder = Recorder(payload={"patients": [{"id": 1}], "total_entries": 1, "links": {}})
        client = make_client(recorder)

        result = await client.list_patients(q="smith", per_page=10)

        assert recorder.last.method == "GET"
        assert recorder.last.url.path == "/v1/patients"
        assert recorder.last.url.query == b"q=smith&per_page=10"
        assert result["patients"] == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_list_patients_without_filters_has_no_query(self, make_client) -> None:
        recorder = Recorder(payload={"patients": []})
        client = make_client(recorder)

        await client.list_patients()

        assert recorder.last.url.query == b""

    @pytest.mark.asyncio
    async def test_update_patient_sends_put(self, make_client) -> None:
        recorder = Recorder(payload={"id": 3, "email": "a@b.com"})
        client = make_client(recorder)

        await client.update_patient(3, {"email": "a@b.com"})

        assert recorder.last.method == "PUT"
        assert recorder.last_body() == {"email": "a@b.com"}


# --- Appointments ---


class TestAppointments:
    @pytest.mark.asyncio
    async def test_cancel_posts_reason(self, make_client) -> None:
        recorder = Recorder(payload={"id": 5})
        client = make_client(recorder)

        await client.cancel_appointment(5, "Patient unwell")

        assert recorder.last.method == "PUT"
        assert recorder.last.url.path == "/v1/appointments/5/cancel"
        assert recorder.last_body() == {"cancellation_reason": "Patient unwell"}

    @pytest.mark.asyncio
    async def test_available_times_uses_from_and_to(self, make_client) -> None:
        recorder = Recorder(payload={"available_times": [{"appointment_start": "2024-03-15T09:00:00Z"}]})
        client = make_client(recorder)

        times = await client.get_available_times(1, 2, "2024-03-15", "2024-03-16")

        params = recorder.last.url.params
        assert params["from"] == "2024-03-15"
        assert params["to"] == "2024-03-16"
        assert params["business_id"] == "1"
        assert times == [{"appointment_start": "2024-03-15T09:00:00Z"}]

    @pytest.mark.asyncio
    async def test_list_appointments_filters_appear_once(self, make_client) -> None:
        recorder = Recorder(payload={"appointments": []})
        client = make_client(recorder)

        await client.list_appointments(per_page=100, patient_id=4)

        params = recorder.last.url.params
        assert params.get_list("patient_id") == ["4"]
        assert "practitioner_id" not in params
        assert "status" not in params


# --- Invoices ---


class TestInvoices:
    @pytest.mark.asyncio
    async def test_issue_date_time_part_is_dropped(self, make_client) -> None:
        recorder = Recorder(payload={"id": 1})
        client = make_client(recorder)

        await client.create_invoice({"patient_id": 1, "issue_date": "2024-03-15T10:00:00Z"})

        assert recorder.last_body()["issue_date"] == "2024-03-15"

    @pytest.mark.asyncio
    async def test_plain_issue_date_passes_through(self, make_client) -> None:
        recorder = Recorder(payload={"id": 1})
        client = make_client(recorder)

        await client.create_invoice({"patient_id": 1, "issue_date": "2024-03-15"})

        assert recorder.last_body()["issue_date"] == "2024-03-15"

    @pytest.mark.asyncio
    async def test_invoice_item_paths(self, make_client) -> None:
        recorder = Recorder(status_code=204)
        client = make_client(recorder)

        await client.delete_invoice_item(10, 20)

        assert recorder.last.url.path == "/v1/invoices/10/invoice_items/20"


# --- Products ---


class TestProducts:
    @pytest.mark.asyncio
    async def test_create_product_renames_unit_price(self, make_client) -> None:
        recorder = Recorder(payload={"id": 8})
        client = make_client(recorder)

        await client.create_product({"name": "X", "item_code": "C1", "unit_price": 50})

        body = recorder.last_body()
        assert body["price"] == 50
        assert "unit_price" not in body

    @pytest.mark.asyncio
    async def test_update_product_renames_unit_price(self, make_client) -> None:
        recorder = Recorder(payload={"id": 8})
        client = make_client(recorder)

        await client.update_product(8, {"unit_price": 65.5})

        assert recorder.last_body() == {"price": 65.5}


# --- Cases ---


@pytest.mark.asyncio
async def test_case_invoices_path(make_client) -> None:
    recorder = Recorder(payload={"invoices": []})
    client = make_client(recorder)

    await client.list_case_invoices(33)

    assert recorder.last.url.path == "/v1/cases/33/invoices"


@pytest.mark.asyncio
async def test_appointment_invoices_path(make_client) -> None:
    recorder = Recorder(payload={"invoices": []})
    client = make_client(recorder)

    await client.list_appointment_invoices(12)

    assert recorder.last.method == "GET"
    assert recorder.last.url.path == "/v1/appointments/12/invoices"


@pytest.mark.asyncio
async def test_single_record_getters(make_client) -> None:
    recorder = Recorder(payload={"id": 1})
    client = make_client(recorder)

    await client.get_business(1)
    await client.get_appointment_type(2)
    await client.get_payment(3)
    await client.get_product(4)

    assert [r.url.path for r in recorder.requests] == [
        "/v1/businesses/1",
        "/v1/appointment_types/2",
        "/v1/payments/3",
        "/v1/products/4",
    ]


@pytest.mark.asyncio
async def test_malformed_json_on_success_is_a_parse_failure(make_client) -> None:
    client = make_client(Recorder(status_code=200, text="not json"))

    with pytest.raises(json.JSONDecodeError):
        await client.get_patient(1)
