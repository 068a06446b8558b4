"""Invoice demo: seed a day of appointments for fresh test patients, bill
each patient, and display the invoices issued on a date."""

import logging
import time
from datetime import date, datetime, timedelta
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from handlers import fake_data
from handlers.pacing import Pacer
from handlers.synthetic_data import fetch_reference_data, missing_reference_data
from registry import RegistryBuilder
from response import json_result, text_result

logger = logging.getLogger("cliniko-mcp")

DisplayFormat = Literal["summary", "detailed", "json"]

DEMO_DOMAIN = "test.cliniko.com"
DEMO_MARKER = "_TEST"
DEMO_UNIT_PRICE = 75
DAY_STARTS_AT = 9
SLOT_MINUTES = 30


class DemoInvoiceArgs(BaseModel):
    target_date: Optional[date] = Field(None, description="Target date for appointments (YYYY-MM-DD). Defaults to today")
    num_patients: int = Field(5, ge=1, le=10, description="Number of test patients to generate (max 10 for rate limits)")
    num_appointments: int = Field(10, ge=1, le=20, description="Number of appointments to generate (max 20 for rate limits)")
    clear_existing: bool = Field(True, description="Clear existing test data before generating new data")
    display_format: DisplayFormat = Field("summary", description="How to display the results")


class DisplayInvoicesArgs(BaseModel):
    target_date: date = Field(..., description="Date to display invoices for (YYYY-MM-DD)")
    display_format: DisplayFormat = Field("summary", description="How to display the invoices")


def is_demo_patient(patient: dict[str, Any]) -> bool:
    return f"@{DEMO_DOMAIN}" in (patient.get("email") or "") or DEMO_MARKER in (patient.get("last_name") or "")


def slot_start(day: date, index: int) -> str:
    """The ``index``-th half-hour slot from 9:00 on ``day``, in UTC."""
    starts_at = datetime.combine(day, datetime.min.time()) + timedelta(hours=DAY_STARTS_AT, minutes=index * SLOT_MINUTES)
    return starts_at.strftime("%Y-%m-%dT%H:%M:%SZ")


def invoice_total(invoice: dict[str, Any]) -> float:
    try:
        return float(invoice.get("total") or 0)
    except (TypeError, ValueError):
        return 0.0


def invoice_patient_name(invoice: dict[str, Any]) -> str:
    patient = invoice.get("patient") or {}
    return patient.get("name") or fake_data.full_name(patient) or "Unknown"


def format_invoices(invoices: list[dict], display_format: str) -> str:
    lines = []
    for index, invoice in enumerate(invoices, start=1):
        number = invoice.get("invoice_number") or invoice.get("id")
        if display_format == "summary":
            lines.append(
                f"Invoice {index}: #{number} - {invoice_patient_name(invoice)} - "
                f"${invoice_total(invoice):.2f} ({invoice.get('status')})"
            )
            continue
        lines.extend(
            [
                f"Invoice {index}:",
                f"  Number: #{number}",
                f"  Patient: {invoice_patient_name(invoice)}",
                f"  Practitioner: {(invoice.get('practitioner') or {}).get('name') or 'Unknown'}",
                f"  Issue Date: {invoice.get('issued_at')}",
                f"  Status: {invoice.get('status')}",
                f"  Payment Terms: {invoice.get('payment_terms') or 'Not specified'}",
                f"  Total: ${invoice_total(invoice):.2f}",
            ]
        )
        items = invoice.get("invoice_items") or []
        if items:
            lines.append("  Items:")
            lines.extend(f"    - {item.get('description')}: ${item.get('unit_price')} x {item.get('quantity')}" for item in items)
        if invoice.get("notes"):
            lines.append(f"  Notes: {invoice['notes']}")
    return "\n".join(lines)


def register_demo_invoice_tools(
    registry: RegistryBuilder,
    client: ClinikoClient,
    pacer: Optional[Pacer] = None,
) -> None:
    pacer = pacer or Pacer()

    async def clear_demo_patients(results: dict) -> None:
        try:
            response = await pacer.call(client.list_patients, per_page=100)
        except ApiError as exc:
            logger.warning("Could not list patients to clear: %s", exc)
            results["errors"].append(f"Could not clear test data: {exc}")
            return
        for patient in filter(is_demo_patient, response.get("patients") or []):
            try:
                await pacer.call(client.delete_patient, patient["id"])
            except ApiError as exc:
                logger.warning("Failed to delete patient %s: %s", patient["id"], exc)
                continue
            results["cleared"] += 1
        results["cleared_data"] = True

    @registry.tool(
        "demo_invoice_generation",
        "Demo: generate test patients and appointments for a day, then invoice each patient",
        DemoInvoiceArgs,
    )
    async def demo_invoice_generation(args: DemoInvoiceArgs):
        started = time.monotonic()
        day = args.target_date or date.today()
        target_date = day.isoformat()
        results: dict[str, Any] = {
            "target_date": target_date,
            "cleared_data": False,
            "cleared": 0,
            "generated": {"patients": 0, "appointments": 0, "invoices": 0},
            "invoices": [],
            "errors": [],
        }

        if args.clear_existing:
            logger.info("Clearing existing demo patients")
            await clear_demo_patients(results)

        try:
            reference = await fetch_reference_data(client, pacer, per_page=20)
        except ApiError as exc:
            results["errors"].append(f"Failed to fetch reference data: {exc}")
            return json_result({"success": False, "message": f"Demo failed: {exc}", "results": results})
        if missing_reference_data(reference):
            message = "Missing required data: practitioners, appointment types, or businesses"
            results["errors"].append(message)
            return json_result({"success": False, "message": f"Demo failed: {message}", "results": results})

        logger.info("Generating %d demo patients", args.num_patients)
        patients = []
        for i in range(args.num_patients):
            first_name = fake_data.FIRST_NAMES[i % len(fake_data.FIRST_NAMES)]
            last_name = fake_data.LAST_NAMES[i % len(fake_data.LAST_NAMES)]
            stamp = int(time.time() * 1000)
            payload = {
                "first_name": first_name,
                "last_name": f"{last_name}{DEMO_MARKER}_{stamp}",
                "email": f"{first_name.lower()}.{last_name.lower()}{stamp}@{DEMO_DOMAIN}",
                "date_of_birth": f"1980-01-{i + 1:02d}",
            }
            try:
                patient = await pacer.call(client.create_patient, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create patient {i + 1}: {exc}")
                continue
            patient.setdefault("first_name", payload["first_name"])
            patient.setdefault("last_name", payload["last_name"])
            patients.append(patient)
        results["generated"]["patients"] = len(patients)
        if not patients:
            results["errors"].append("Could not create any test patients")
            return json_result({"success": False, "message": "Demo failed: no test patients created", "results": results})

        logger.info("Generating %d demo appointments for %s", args.num_appointments, target_date)
        business = reference["businesses"][0]
        booked: dict[Any, list] = {}
        for i in range(args.num_appointments):
            patient = patients[i % len(patients)]
            practitioner = reference["practitioners"][i % len(reference["practitioners"])]
            appointment_type = reference["appointment_types"][i % len(reference["appointment_types"])]
            payload = {
                "patient_id": patient["id"],
                "practitioner_id": practitioner["id"],
                "appointment_type_id": appointment_type["id"],
                "business_id": business["id"],
                "starts_at": slot_start(day, i),
                "notes": "Test appointment for invoice demo",
            }
            try:
                appointment = await pacer.call(client.create_appointment, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create appointment {i + 1}: {exc}")
                continue
            booked.setdefault(patient["id"], []).append((appointment, practitioner, appointment_type))
        results["generated"]["appointments"] = sum(len(v) for v in booked.values())

        logger.info("Invoicing %d demo patients", len(booked))
        for patient in patients:
            appointments = booked.get(patient["id"])
            if not appointments:
                continue
            _, practitioner, _ = appointments[0]
            payload = {
                "patient_id": patient["id"],
                "practitioner_id": practitioner["id"],
                "business_id": business["id"],
                "issue_date": target_date,
                "status": "draft",
                "appointment_ids": [appointment["id"] for appointment, _, _ in appointments],
                "invoice_items": [
                    {
                        "description": appointment_type.get("name") or "Consultation",
                        "unit_price": DEMO_UNIT_PRICE,
                        "quantity": 1,
                    }
                    for _, _, appointment_type in appointments
                ],
            }
            try:
                invoice = await pacer.call(client.create_invoice, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create invoice for patient {patient['id']}: {exc}")
                continue
            results["invoices"].append(
                {
                    "id": invoice.get("id"),
                    "invoice_number": invoice.get("invoice_number"),
                    "patient": fake_data.full_name(patient),
                    "appointments": len(appointments),
                    "total": invoice.get("total", DEMO_UNIT_PRICE * len(appointments)),
                    "status": invoice.get("status", "draft"),
                }
            )
        results["generated"]["invoices"] = len(results["invoices"])
        results["execution_time_ms"] = int((time.monotonic() - started) * 1000)

        generated = results["generated"]
        message = (
            f"Demo complete. Created {generated['patients']} patients, {generated['appointments']} appointments "
            f"and {generated['invoices']} invoices for {target_date}."
        )
        if args.display_format == "json":
            return json_result({"success": True, "message": message, "results": results}, data=results)

        lines = [
            message,
            "",
            f"Test data cleared: {'Yes' if results['cleared_data'] else 'No'}",
            f"Patients created: {generated['patients']}/{args.num_patients}",
            f"Appointments created: {generated['appointments']}/{args.num_appointments}",
            f"Invoices created: {generated['invoices']}",
            f"Execution time: {results['execution_time_ms'] / 1000:.2f} seconds",
        ]
        if args.display_format == "detailed":
            lines.append("")
            lines.extend(
                f"- Invoice #{inv['invoice_number'] or inv['id']}: {inv['patient']} - "
                f"{inv['appointments']} appointment(s) - {inv['status']}"
                for inv in results["invoices"]
            )
        if results["errors"]:
            lines.append("")
            lines.append(f"Errors ({len(results['errors'])}):")
            lines.extend(f"- {error}" for error in results["errors"])
        return text_result("\n".join(lines), data=results)

    @registry.tool(
        "display_invoices_for_date",
        "Display all existing invoices issued on a specific date",
        DisplayInvoicesArgs,
    )
    async def display_invoices_for_date(args: DisplayInvoicesArgs):
        target_date = args.target_date.isoformat()
        try:
            response = await client.list_invoices(
                per_page=100, issued_at_from=target_date, issued_at_to=target_date
            )
        except ApiError as exc:
            return text_result(f"Failed to fetch invoices: {exc}")

        invoices = response.get("invoices") or []
        if not invoices:
            return text_result(f"No invoices found for {target_date}.")

        total_value = sum(invoice_total(invoice) for invoice in invoices)
        if args.display_format == "json":
            return json_result(
                {
                    "target_date": target_date,
                    "invoice_count": len(invoices),
                    "total_value": total_value,
                    "invoices": invoices,
                },
                data=response,
            )

        header = f"Found {len(invoices)} invoice(s) for {target_date}:"
        footer = f"Total Invoice Value: ${total_value:.2f}"
        return text_result("\n\n".join([header, format_invoices(invoices, args.display_format), footer]), data=response)
