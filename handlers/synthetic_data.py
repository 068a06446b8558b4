"""Synthetic test data: populate a Cliniko account with fake patients and
appointments, and remove them again.

Every remote call goes through a ``Pacer`` so a batch stays under the API
rate limit.
"""

import logging
import random
from typing import Any, Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from handlers import fake_data
from handlers.pacing import Pacer
from registry import NoArguments, RegistryBuilder
from response import has_more, json_result

logger = logging.getLogger("cliniko-mcp")

CLEANUP_MAX_PAGES = 10


class GenerateTestDataArgs(BaseModel):
    num_patients: int = Field(10, ge=1, le=50, description="Number of patients to create (max 50)")
    num_appointments: int = Field(20, ge=0, le=100, description="Number of appointments to create (max 100)")
    days_ahead: int = Field(7, ge=1, le=30, description="Days ahead to schedule appointments")


async def fetch_reference_data(
    client: ClinikoClient,
    pacer: Pacer,
    per_page: int = 10,
    include_taxes: bool = False,
) -> dict[str, list]:
    """Practitioners, appointment types and businesses needed for booking."""
    practitioners = await pacer.call(client.list_practitioners, per_page=per_page)
    appointment_types = await pacer.call(client.list_appointment_types, per_page=per_page)
    businesses = await pacer.call(client.list_businesses)
    reference = {
        "practitioners": practitioners.get("practitioners") or [],
        "appointment_types": appointment_types.get("appointment_types") or [],
        "businesses": businesses.get("businesses") or [],
    }
    if include_taxes:
        taxes = await pacer.call(client.list_taxes)
        reference["taxes"] = taxes.get("taxes") or []
    return reference


def missing_reference_data(reference: dict[str, list]) -> bool:
    return not (reference["practitioners"] and reference["appointment_types"] and reference["businesses"])


async def collect_patients(client: ClinikoClient, pacer: Pacer, max_pages: int = CLEANUP_MAX_PAGES) -> list[dict]:
    """Page through patients, 100 at a time, stopping after ``max_pages``."""
    patients: list[dict] = []
    page = 1
    while page <= max_pages:
        response = await pacer.call(client.list_patients, page=page, per_page=100)
        patients.extend(response.get("patients") or [])
        if not has_more(response):
            break
        page += 1
    return patients


def register_synthetic_data_tools(
    registry: RegistryBuilder,
    client: ClinikoClient,
    pacer: Optional[Pacer] = None,
    rng: Optional[random.Random] = None,
) -> None:
    pacer = pacer or Pacer()
    rng = rng or random.Random()

    @registry.tool(
        "generate_test_data",
        "Generate synthetic test data for Cliniko (Australian healthcare data)",
        GenerateTestDataArgs,
    )
    async def generate_test_data(args: GenerateTestDataArgs):
        results: dict[str, Any] = {"patients_created": [], "appointments_created": [], "errors": []}

        try:
            reference = await fetch_reference_data(client, pacer)
        except ApiError as exc:
            results["errors"].append(f"Failed to fetch required data: {exc}")
            return json_result(results)

        if missing_reference_data(reference):
            results["errors"].append(
                "No practitioners, appointment types, or businesses found. Please set up these in Cliniko first."
            )
            return json_result(results)

        for _ in range(args.num_patients):
            payload = fake_data.patient(rng)
            name = fake_data.full_name(payload)
            try:
                created = await pacer.call(client.create_patient, payload)
            except ApiError as exc:
                logger.warning("Failed to create patient %s: %s", name, exc)
                results["errors"].append(f"Failed to create patient {name}: {exc}")
                continue
            results["patients_created"].append({"id": created.get("id"), "name": name, "email": payload["email"]})

        if args.num_appointments > 0 and results["patients_created"]:
            for _ in range(args.num_appointments):
                patient = fake_data.pick(rng, results["patients_created"])
                practitioner = fake_data.pick(rng, reference["practitioners"])
                appointment_type = fake_data.pick(rng, reference["appointment_types"])
                business = fake_data.pick(rng, reference["businesses"])
                starts_at = fake_data.future_slot(rng, args.days_ahead, skip_weekends=False)
                if starts_at.weekday() >= 5:
                    continue

                payload = {
                    "starts_at": starts_at.isoformat(),
                    "patient_id": patient["id"],
                    "practitioner_id": practitioner["id"],
                    "appointment_type_id": appointment_type["id"],
                    "business_id": business["id"],
                    "notes": f"Test appointment for {patient['name']}",
                }
                try:
                    appointment = await pacer.call(client.create_appointment, payload)
                except ApiError as exc:
                    # A taken slot is expected noise; anything else is reported.
                    if "not available" not in exc.body:
                        results["errors"].append(f"Failed to create appointment: {exc}")
                    continue
                results["appointments_created"].append(
                    {
                        "id": appointment.get("id"),
                        "patient": patient["name"],
                        "practitioner": fake_data.full_name(practitioner),
                        "starts_at": appointment.get("starts_at", payload["starts_at"]),
                        "type": appointment_type.get("name"),
                    }
                )

        summary = {
            "patients_created": len(results["patients_created"]),
            "appointments_created": len(results["appointments_created"]),
            "errors": len(results["errors"]),
        }
        return json_result({"summary": summary, **results})

    @registry.tool(
        "cleanup_test_data",
        "Delete all test patients (patients with emails ending in @gmail.com, @outlook.com, etc)",
        NoArguments,
    )
    async def cleanup_test_data(args: NoArguments):
        results: dict[str, Any] = {"patients_deleted": [], "errors": []}
        try:
            patients = await collect_patients(client, pacer)
        except ApiError as exc:
            results["errors"].append(f"Failed to list patients: {exc}")
            return json_result({"summary": {"patients_deleted": 0, "errors": 1}, **results})

        test_patients = [
            p for p in patients if p.get("email") and any(p["email"].endswith(d) for d in fake_data.EMAIL_DOMAINS)
        ]
        for patient in test_patients:
            try:
                await pacer.call(client.delete_patient, patient["id"])
            except ApiError as exc:
                logger.warning("Failed to delete patient %s: %s", patient["id"], exc)
                results["errors"].append(f"Failed to delete patient {patient['id']}: {exc}")
                continue
            results["patients_deleted"].append(
                {"id": patient["id"], "name": fake_data.full_name(patient), "email": patient["email"]}
            )

        summary = {"patients_deleted": len(results["patients_deleted"]), "errors": len(results["errors"])}
        return json_result({"summary": summary, **results})
