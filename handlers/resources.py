"""Read-only MCP resources backed by Cliniko list and detail endpoints."""

from datetime import datetime, timedelta

from api_client import ApiError, ClinikoClient
from handlers.errors import ResourceReadError
from registry import RegistryBuilder
from response import page_summary, to_json

RESOURCE_PAGE_SIZE = 100


def record_id(params: dict[str, str]) -> int:
    value = params["id"]
    if not value.isdigit():
        raise ResourceReadError(f"Invalid id: {value}")
    return int(value)


def listing(records_key: str, envelope: dict) -> str:
    return to_json(page_summary(records_key, envelope, include_page=False))


def register_resources(registry: RegistryBuilder, client: ClinikoClient) -> None:
    @registry.resource("patient://{id}", "Get patient details by ID")
    async def patient(params):
        try:
            return to_json(await client.get_patient(record_id(params)))
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch patient: {exc}") from exc

    @registry.resource("patients://list", "List all patients")
    async def patients(params):
        try:
            response = await client.list_patients(per_page=RESOURCE_PAGE_SIZE)
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch patients: {exc}") from exc
        return listing("patients", response)

    @registry.resource("appointment://{id}", "Get appointment details by ID")
    async def appointment(params):
        try:
            return to_json(await client.get_appointment(record_id(params)))
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch appointment: {exc}") from exc

    @registry.resource("appointments://list", "List all appointments")
    async def appointments(params):
        try:
            response = await client.list_appointments(per_page=RESOURCE_PAGE_SIZE)
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch appointments: {exc}") from exc
        return listing("appointments", response)

    @registry.resource("appointments://today", "List today's appointments")
    async def appointments_today(params):
        today = datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        try:
            response = await client.list_appointments(
                per_page=RESOURCE_PAGE_SIZE,
                starts_at=today.isoformat(),
                ends_at=tomorrow.isoformat(),
            )
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch today's appointments: {exc}") from exc
        summary = page_summary("appointments", response, include_page=False)
        return to_json({"date": today.date().isoformat(), **summary})

    @registry.resource("practitioners://list", "List all practitioners")
    async def practitioners(params):
        try:
            response = await client.list_practitioners(per_page=RESOURCE_PAGE_SIZE)
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch practitioners: {exc}") from exc
        return listing("practitioners", response)

    @registry.resource("businesses://list", "List all businesses")
    async def businesses(params):
        try:
            response = await client.list_businesses()
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch businesses: {exc}") from exc
        return listing("businesses", response)

    @registry.resource("appointment-types://list", "List all appointment types")
    async def appointment_types(params):
        try:
            response = await client.list_appointment_types(per_page=RESOURCE_PAGE_SIZE)
        except ApiError as exc:
            raise ResourceReadError(f"Failed to fetch appointment types: {exc}") from exc
        return listing("appointment_types", response)
