"""Invoice and invoice-item tools.

These handlers report API failures as an error text block rather than
raising, and attach the raw Cliniko response as ``data``.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from registry import RegistryBuilder
from response import error_result, text_result

InvoiceStatus = Literal["draft", "awaiting_payment", "part_paid", "paid", "void", "write_off"]


class ListInvoicesArgs(BaseModel):
    page: Optional[int] = Field(None, ge=1, description="Page number")
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Results per page")
    patient_id: Optional[int] = Field(None, gt=0, description="Filter by patient ID")
    practitioner_id: Optional[int] = Field(None, gt=0, description="Filter by practitioner ID")
    issued_at_from: Optional[str] = Field(None, description="Filter from date (YYYY-MM-DD)")
    issued_at_to: Optional[str] = Field(None, description="Filter to date (YYYY-MM-DD)")
    status: Optional[InvoiceStatus] = Field(None, description="Filter by status")


class InvoiceIdArgs(BaseModel):
    invoice_id: int = Field(..., gt=0, description="Invoice ID")


class PatientIdArgs(BaseModel):
    patient_id: int = Field(..., gt=0, description="Patient ID")


class AppointmentIdArgs(BaseModel):
    appointment_id: int = Field(..., gt=0, description="Appointment ID")


class InvoiceItemInput(BaseModel):
    description: str = Field(..., description="Line item description")
    unit_price: float = Field(..., ge=0, description="Price per unit")
    quantity: float = Field(1, gt=0, description="Quantity")
    product_id: Optional[int] = Field(None, gt=0, description="Product ID")
    tax_id: Optional[int] = Field(None, gt=0, description="Tax ID")
    discount_percentage: Optional[float] = Field(None, ge=0, le=100, description="Discount percentage")


class CreateInvoiceArgs(BaseModel):
    patient_id: int = Field(..., gt=0, description="Patient ID")
    practitioner_id: int = Field(..., gt=0, description="Practitioner ID")
    business_id: Optional[int] = Field(None, gt=0, description="Business ID")
    issue_date: Optional[str] = Field(None, description="Issue date (YYYY-MM-DD or ISO 8601 datetime)")
    status: Optional[InvoiceStatus] = Field(None, description="Invoice status")
    appointment_ids: Optional[list[int]] = Field(None, description="Appointments this invoice covers")
    invoice_items: Optional[list[InvoiceItemInput]] = Field(None, description="Line items")
    notes: Optional[str] = Field(None, description="Invoice notes")
    payment_terms: Optional[int] = Field(None, ge=0, description="Payment terms in days")


class UpdateInvoiceArgs(BaseModel):
    invoice_id: int = Field(..., gt=0, description="Invoice ID")
    status: Optional[InvoiceStatus] = Field(None, description="Invoice status")
    notes: Optional[str] = Field(None, description="Invoice notes")
    payment_terms: Optional[int] = Field(None, ge=0, description="Payment terms in days")
    due_date: Optional[str] = Field(None, description="Due date (YYYY-MM-DD)")


class CreateInvoiceItemArgs(InvoiceItemInput):
    invoice_id: int = Field(..., gt=0, description="Invoice ID")


class UpdateInvoiceItemArgs(BaseModel):
    invoice_id: int = Field(..., gt=0, description="Invoice ID")
    item_id: int = Field(..., gt=0, description="Invoice item ID")
    description: Optional[str] = Field(None, description="Line item description")
    unit_price: Optional[float] = Field(None, ge=0, description="Price per unit")
    quantity: Optional[float] = Field(None, gt=0, description="Quantity")
    discount_percentage: Optional[float] = Field(None, ge=0, le=100, description="Discount percentage")


class InvoiceItemIdArgs(BaseModel):
    invoice_id: int = Field(..., gt=0, description="Invoice ID")
    item_id: int = Field(..., gt=0, description="Invoice item ID")


def invoice_label(invoice: dict[str, Any]) -> str:
    return f"#{invoice.get('invoice_number') or invoice.get('id')}"


def invoice_line(invoice: dict[str, Any]) -> str:
    patient = (invoice.get("patient") or {}).get("name")
    return f"- Invoice {invoice_label(invoice)}: {patient} - {invoice.get('status')} (${invoice.get('total') or 0})"


def describe_invoice(invoice: dict[str, Any]) -> str:
    items = invoice.get("invoice_items") or []
    return "\n".join(
        [
            f"Invoice {invoice_label(invoice)}:",
            f"- Patient: {(invoice.get('patient') or {}).get('name')}",
            f"- Practitioner: {(invoice.get('practitioner') or {}).get('name')}",
            f"- Status: {invoice.get('status')}",
            f"- Issue Date: {invoice.get('issued_at')}",
            f"- Total: ${invoice.get('total') or 0}",
            f"- Items: {len(items)} items",
        ]
    )


def register_invoice_tools(registry: RegistryBuilder, client: ClinikoClient) -> None:
    @registry.tool("list_invoices", "List invoices with filtering options", ListInvoicesArgs)
    async def list_invoices(args: ListInvoicesArgs):
        try:
            result = await client.list_invoices(**args.model_dump())
        except ApiError as exc:
            return error_result("fetching invoices", exc)
        invoices = result.get("invoices") or []
        total = result.get("total_entries")
        header = f"Found {len(invoices)} invoices" + (f" ({total} total)" if total else "") + ":"
        lines = [invoice_line(inv) for inv in invoices]
        return text_result("\n\n".join([header, "\n".join(lines)]) if lines else header, data=result)

    @registry.tool("get_invoice", "Get details of a specific invoice", InvoiceIdArgs)
    async def get_invoice(args: InvoiceIdArgs):
        try:
            invoice = await client.get_invoice(args.invoice_id)
        except ApiError as exc:
            return error_result("fetching invoice", exc)
        return text_result(describe_invoice(invoice), data=invoice)

    @registry.tool("get_patient_invoices", "Get invoices for a specific patient", PatientIdArgs)
    async def get_patient_invoices(args: PatientIdArgs):
        try:
            result = await client.list_invoices(patient_id=args.patient_id)
        except ApiError as exc:
            return error_result("fetching patient invoices", exc)
        invoices = result.get("invoices") or []
        if not invoices:
            return text_result(f"No invoices found for patient {args.patient_id}.", data=result)
        lines = [
            f"- Invoice {invoice_label(inv)}: {inv.get('issued_at')} - {inv.get('status')} (${inv.get('total') or 0})"
            for inv in invoices
        ]
        header = f"Found {len(invoices)} invoice(s) for patient {args.patient_id}:"
        return text_result(header + "\n\n" + "\n".join(lines), data=result)

    @registry.tool("get_appointment_invoices", "Get invoices for a specific appointment", AppointmentIdArgs)
    async def get_appointment_invoices(args: AppointmentIdArgs):
        try:
            result = await client.list_appointment_invoices(args.appointment_id)
        except ApiError as exc:
            return error_result("fetching appointment invoices", exc)
        invoices = result.get("invoices") or []
        if not invoices:
            return text_result(f"No invoices found for appointment {args.appointment_id}.", data=result)
        lines = [f"- Invoice {invoice_label(inv)}: {inv.get('status')} (${inv.get('total') or 0})" for inv in invoices]
        header = f"Found {len(invoices)} invoice(s) for appointment {args.appointment_id}:"
        return text_result(header + "\n\n" + "\n".join(lines), data=result)

    @registry.tool("create_invoice", "Create a new invoice for a patient", CreateInvoiceArgs)
    async def create_invoice(args: CreateInvoiceArgs):
        try:
            invoice = await client.create_invoice(args.model_dump(exclude_none=True))
        except ApiError as exc:
            return error_result("creating invoice", exc)
        return text_result(f"Created invoice {invoice_label(invoice)}\n\n{describe_invoice(invoice)}", data=invoice)

    @registry.tool("update_invoice", "Update an existing invoice", UpdateInvoiceArgs)
    async def update_invoice(args: UpdateInvoiceArgs):
        changes = args.model_dump(exclude_none=True, exclude={"invoice_id"})
        try:
            invoice = await client.update_invoice(args.invoice_id, changes)
        except ApiError as exc:
            return error_result("updating invoice", exc)
        return text_result(f"Updated invoice {invoice_label(invoice)}\n\n{describe_invoice(invoice)}", data=invoice)

    @registry.tool("delete_invoice", "Delete an invoice", InvoiceIdArgs)
    async def delete_invoice(args: InvoiceIdArgs):
        try:
            await client.delete_invoice(args.invoice_id)
        except ApiError as exc:
            return error_result("deleting invoice", exc)
        return text_result(f"Invoice {args.invoice_id} has been deleted successfully")

    # Invoice items

    @registry.tool("list_invoice_items", "List items in an invoice", InvoiceIdArgs)
    async def list_invoice_items(args: InvoiceIdArgs):
        try:
            result = await client.list_invoice_items(args.invoice_id)
        except ApiError as exc:
            return error_result("fetching invoice items", exc)
        items = result.get("invoice_items") or []
        lines = [
            f"- {item.get('description')}: ${item.get('unit_price')} x {item.get('quantity')} = ${item.get('total')}"
            for item in items
        ]
        header = f"Invoice #{args.invoice_id} has {len(items)} items:"
        return text_result("\n\n".join([header, "\n".join(lines)]) if lines else header, data=result)

    @registry.tool("create_invoice_item", "Add a line item to an invoice", CreateInvoiceItemArgs)
    async def create_invoice_item(args: CreateInvoiceItemArgs):
        item = args.model_dump(exclude_none=True, exclude={"invoice_id"})
        try:
            created = await client.create_invoice_item(args.invoice_id, item)
        except ApiError as exc:
            return error_result("creating invoice item", exc)
        return text_result(f"Added item {created.get('id')} to invoice #{args.invoice_id}", data=created)

    @registry.tool("update_invoice_item", "Update a line item on an invoice", UpdateInvoiceItemArgs)
    async def update_invoice_item(args: UpdateInvoiceItemArgs):
        changes = args.model_dump(exclude_none=True, exclude={"invoice_id", "item_id"})
        try:
            updated = await client.update_invoice_item(args.invoice_id, args.item_id, changes)
        except ApiError as exc:
            return error_result("updating invoice item", exc)
        return text_result(f"Updated item {args.item_id} on invoice #{args.invoice_id}", data=updated)

    @registry.tool("delete_invoice_item", "Remove a line item from an invoice", InvoiceItemIdArgs)
    async def delete_invoice_item(args: InvoiceItemIdArgs):
        try:
            await client.delete_invoice_item(args.invoice_id, args.item_id)
        except ApiError as exc:
            return error_result("deleting invoice item", exc)
        return text_result(f"Item {args.item_id} has been removed from invoice #{args.invoice_id}")
