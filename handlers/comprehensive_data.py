"""Cross-category synthetic data: products, patients, appointments,
invoices and payments, plus a granular cleanup with a dry-run mode.

Test records are recognised by the ``test_domain`` email domain (and the
domains used by ``generate_test_data``), a ``TEST`` marker in names and
codes, or the notes the generator writes.
"""

import logging
import random
import time
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from handlers import fake_data
from handlers.pacing import Pacer
from handlers.synthetic_data import collect_patients, fetch_reference_data, missing_reference_data
from registry import RegistryBuilder
from response import json_result

logger = logging.getLogger("cliniko-mcp")

DEFAULT_TEST_DOMAIN = "test.cliniko.com"
TEST_INVOICE_NOTE = "Test invoice generated for testing purposes"
INVOICE_STATUSES = ["draft", "awaiting_payment", "paid", "part_paid"]
CATEGORIES = ("patients", "appointments", "invoices", "products", "payments")


class ComprehensiveDataArgs(BaseModel):
    num_patients: int = Field(10, ge=0, le=50, description="Number of patients to create")
    num_appointments: int = Field(20, ge=0, le=100, description="Number of future appointments to create")
    num_invoices: int = Field(15, ge=0, le=50, description="Number of invoices to create")
    num_products: int = Field(10, ge=0, le=30, description="Number of products/services to create")
    num_payments: int = Field(15, ge=0, le=50, description="Number of payments to create")
    days_ahead: int = Field(30, ge=1, le=90, description="Days ahead for future appointments")
    days_past: int = Field(90, ge=1, le=365, description="Days in past for historical data")
    test_domain: str = Field(DEFAULT_TEST_DOMAIN, description="Email domain for test data identification")


class CleanupOptionsArgs(BaseModel):
    delete_patients: bool = Field(True, description="Delete test patients")
    delete_appointments: bool = Field(True, description="Delete test appointments")
    delete_invoices: bool = Field(True, description="Delete test invoices")
    delete_products: bool = Field(True, description="Delete test products")
    delete_all_test_data: bool = Field(False, description="Delete ALL test data across all categories")
    test_domain: str = Field(DEFAULT_TEST_DOMAIN, description="Email domain to identify test data")
    dry_run: bool = Field(False, description="Preview what would be deleted without actually deleting")


def is_test_patient(patient: dict[str, Any], test_domain: str) -> bool:
    email = patient.get("email") or ""
    if not email:
        return False
    return test_domain in email or any(email.endswith("@" + domain) for domain in fake_data.EMAIL_DOMAINS)


def is_test_product(product: dict[str, Any]) -> bool:
    return (
        "TEST" in (product.get("name") or "")
        or "TEST" in (product.get("item_code") or "")
        or "Test product" in (product.get("description") or "")
    )


def linked_id(record: dict[str, Any], key: str) -> Optional[int]:
    """ID of a nested record such as ``appointment["patient"]``."""
    linked = record.get(key) or {}
    return linked.get("id")


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def register_comprehensive_data_tools(
    registry: RegistryBuilder,
    client: ClinikoClient,
    pacer: Optional[Pacer] = None,
    rng: Optional[random.Random] = None,
) -> None:
    pacer = pacer or Pacer()
    rng = rng or random.Random()

    async def create_products(count: int, taxes: list, results: dict) -> list[dict]:
        products = []
        stamp = int(time.time() * 1000)
        for i in range(count):
            payload = {
                "name": f"{fake_data.pick(rng, fake_data.PRODUCT_NAMES)} - TEST",
                "item_code": f"TEST-{stamp}-{i}",
                "unit_price": rng.randint(50, 349),
                "description": f"Test product generated on {datetime.now().date().isoformat()}",
            }
            if taxes:
                payload["tax_id"] = fake_data.pick(rng, taxes)["id"]
            try:
                product = await pacer.call(client.create_product, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create product: {exc}")
                continue
            product.setdefault("unit_price", payload["unit_price"])
            products.append(product)
            results["created"]["products"].append(
                {
                    "id": product.get("id"),
                    "name": product.get("name", payload["name"]),
                    "code": payload["item_code"],
                    "price": payload["unit_price"],
                }
            )
        return products

    async def create_patients(count: int, domain: str, results: dict) -> list[dict]:
        patients = []
        for _ in range(count):
            payload = fake_data.patient(rng, domain=domain)
            name = fake_data.full_name(payload)
            try:
                patient = await pacer.call(client.create_patient, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create patient {name}: {exc}")
                continue
            patient.setdefault("first_name", payload["first_name"])
            patient.setdefault("last_name", payload["last_name"])
            patients.append(patient)
            results["created"]["patients"].append({"id": patient.get("id"), "name": name, "email": payload["email"]})
        return patients

    async def create_appointments(count: int, days_ahead: int, patients: list, reference: dict, results: dict):
        for _ in range(count):
            patient = fake_data.pick(rng, patients)
            practitioner = fake_data.pick(rng, reference["practitioners"])
            appointment_type = fake_data.pick(rng, reference["appointment_types"])
            business = fake_data.pick(rng, reference["businesses"])
            starts_at = fake_data.future_slot(rng, days_ahead)
            payload = {
                "starts_at": starts_at.isoformat(),
                "patient_id": patient["id"],
                "practitioner_id": practitioner["id"],
                "appointment_type_id": appointment_type["id"],
                "business_id": business["id"],
                "notes": f"Test appointment - {fake_data.pick(rng, fake_data.TREATMENT_TYPES)}",
            }
            try:
                appointment = await pacer.call(client.create_appointment, payload)
            except ApiError as exc:
                if "not available" not in exc.body:
                    results["errors"].append(f"Failed to create appointment: {exc}")
                continue
            results["created"]["appointments"].append(
                {
                    "id": appointment.get("id"),
                    "patient": fake_data.full_name(patient),
                    "practitioner": fake_data.full_name(practitioner),
                    "starts_at": appointment.get("starts_at", payload["starts_at"]),
                    "type": appointment_type.get("name"),
                }
            )

    async def create_invoices(count: int, days_past: int, patients: list, products: list, reference: dict, results: dict):
        for _ in range(count):
            patient = fake_data.pick(rng, patients)
            practitioner = fake_data.pick(rng, reference["practitioners"])
            business = fake_data.pick(rng, reference["businesses"])
            items = []
            for _ in range(rng.randint(1, 3)):
                product = fake_data.pick(rng, products)
                items.append(
                    {
                        "description": product.get("name"),
                        "unit_price": product.get("unit_price") or 100,
                        "quantity": rng.randint(1, 3),
                    }
                )
            amount = sum(item["unit_price"] * item["quantity"] for item in items)
            status = fake_data.pick(rng, INVOICE_STATUSES)
            payload = {
                "patient_id": patient["id"],
                "practitioner_id": practitioner["id"],
                "business_id": business["id"],
                "issue_date": fake_data.past_slot(rng, min(days_past, 30)).isoformat(),
                "status": status,
                "invoice_items": items,
                "notes": TEST_INVOICE_NOTE,
            }
            try:
                invoice = await pacer.call(client.create_invoice, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create invoice: {exc}")
                continue
            results["created"]["invoices"].append(
                {
                    "id": invoice.get("id"),
                    "patient": fake_data.full_name(patient),
                    "amount": amount,
                    "status": status,
                }
            )

    async def create_payments(count: int, results: dict):
        invoices = results["created"]["invoices"]
        to_pay = rng.sample(invoices, min(count, len(invoices)))
        stamp = int(time.time() * 1000)
        for i, invoice in enumerate(to_pay):
            method = fake_data.pick(rng, fake_data.PAYMENT_METHODS)
            payload = {
                "amount": invoice["amount"],
                "invoice_id": invoice["id"],
                "payment_method": method,
                "reference": f"PAY-TEST-{stamp}-{i}",
                "paid_at": fake_data.past_slot(rng, 7).isoformat(),
            }
            try:
                payment = await pacer.call(client.create_payment, payload)
            except ApiError as exc:
                results["errors"].append(f"Failed to create payment: {exc}")
                continue
            results["created"]["payments"].append(
                {"id": payment.get("id"), "invoice_id": invoice["id"], "amount": invoice["amount"], "method": method}
            )

    @registry.tool(
        "generate_comprehensive_test_data",
        "Generate comprehensive synthetic test data across all Cliniko categories",
        ComprehensiveDataArgs,
    )
    async def generate_comprehensive_test_data(args: ComprehensiveDataArgs):
        started = time.monotonic()
        results: dict[str, Any] = {
            "summary": {"total_created": 0, "total_errors": 0, "execution_time_ms": 0},
            "created": {category: [] for category in CATEGORIES},
            "errors": [],
            "metadata": {"test_domain": args.test_domain, "generated_at": datetime.now().astimezone().isoformat()},
        }

        try:
            reference = await fetch_reference_data(client, pacer, per_page=20, include_taxes=True)
        except ApiError as exc:
            results["errors"].append(f"Failed to fetch required data: {exc}")
            return json_result(results)
        if missing_reference_data(reference):
            results["errors"].append(
                "Missing required data: practitioners, appointment types, or businesses. Please configure Cliniko first."
            )
            return json_result(results)

        # Products first; invoices draw their line items from them.
        products = await create_products(args.num_products, reference["taxes"], results)
        logger.info("Created %d test products", len(products))
        patients = await create_patients(args.num_patients, args.test_domain, results)
        logger.info("Created %d test patients", len(patients))

        if patients:
            await create_appointments(args.num_appointments, args.days_ahead, patients, reference, results)
            if products:
                await create_invoices(args.num_invoices, args.days_past, patients, products, reference, results)
        if args.num_payments > 0 and results["created"]["invoices"]:
            await create_payments(args.num_payments, results)

        summary = results["summary"]
        summary["total_created"] = sum(len(records) for records in results["created"].values())
        summary["total_errors"] = len(results["errors"])
        summary["execution_time_ms"] = elapsed_ms(started)
        return json_result(results)

    async def remove(category: str, record_id: int, info: dict, delete, args: CleanupOptionsArgs, results: dict):
        results["found"][category].append(info)
        if args.dry_run:
            return
        try:
            await pacer.call(delete, record_id)
        except ApiError as exc:
            logger.warning("Failed to delete %s %s: %s", category[:-1], record_id, exc)
            results["errors"].append(f"Failed to delete {category[:-1]} {record_id}: {exc}")
            return
        results["deleted"][category].append(info)

    @registry.tool(
        "cleanup_comprehensive_test_data",
        "Clean up all test data with granular control and dry-run option",
        CleanupOptionsArgs,
    )
    async def cleanup_comprehensive_test_data(args: CleanupOptionsArgs):
        started = time.monotonic()
        everything = args.delete_all_test_data
        results: dict[str, Any] = {
            "summary": {"total_deleted": 0, "total_found": 0, "execution_time_ms": 0, "dry_run": args.dry_run},
            "deleted": {category: [] for category in CATEGORIES},
            "found": {category: [] for category in CATEGORIES},
            "errors": [],
            "metadata": {
                "test_domain": args.test_domain,
                "cleanup_at": datetime.now().astimezone().isoformat(),
                "dry_run": args.dry_run,
            },
        }

        try:
            # Test patients identify the appointments and invoices that hang
            # off them, so they are found first and deleted last.
            test_patients = []
            if args.delete_patients or args.delete_appointments or args.delete_invoices or everything:
                patients = await collect_patients(client, pacer)
                test_patients = [p for p in patients if is_test_patient(p, args.test_domain)]
            patient_ids = {p["id"] for p in test_patients}

            if args.delete_appointments or everything:
                response = await pacer.call(
                    client.list_appointments, per_page=100, starts_at=datetime.now().astimezone().isoformat()
                )
                for appointment in response.get("appointments") or []:
                    notes = appointment.get("notes") or ""
                    if "TEST" in notes or "Test" in notes or linked_id(appointment, "patient") in patient_ids:
                        info = {
                            "id": appointment["id"],
                            "patient": (appointment.get("patient") or {}).get("full_name") or "Unknown",
                            "date": appointment.get("starts_at"),
                        }
                        await remove("appointments", appointment["id"], info, client.delete_appointment, args, results)

            if args.delete_invoices or everything:
                response = await pacer.call(client.list_invoices, per_page=100)
                for invoice in response.get("invoices") or []:
                    if TEST_INVOICE_NOTE in (invoice.get("notes") or "") or linked_id(invoice, "patient") in patient_ids:
                        info = {"id": invoice["id"], "number": invoice.get("invoice_number"), "status": invoice.get("status")}
                        await remove("invoices", invoice["id"], info, client.delete_invoice, args, results)

            if args.delete_products or everything:
                response = await pacer.call(client.list_products, per_page=100)
                for product in response.get("products") or []:
                    if is_test_product(product):
                        info = {"id": product["id"], "name": product.get("name"), "code": product.get("item_code")}
                        await remove("products", product["id"], info, client.delete_product, args, results)

            if args.delete_patients or everything:
                for patient in test_patients:
                    info = {"id": patient["id"], "name": fake_data.full_name(patient), "email": patient.get("email")}
                    await remove("patients", patient["id"], info, client.delete_patient, args, results)
        except ApiError as exc:
            results["errors"].append(f"Critical error: {exc}")

        summary = results["summary"]
        summary["total_found"] = sum(len(records) for records in results["found"].values())
        summary["total_deleted"] = sum(len(records) for records in results["deleted"].values())
        summary["execution_time_ms"] = elapsed_ms(started)
        return json_result(results)
