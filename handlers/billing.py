"""Payments, products, taxes and patient cases."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from registry import RegistryBuilder
from response import error_result, json_result, page_summary, text_result

PaymentMethod = Literal["cash", "credit_card", "eft", "cheque", "other"]


class PageArgs(BaseModel):
    page: Optional[int] = Field(None, ge=1, description="Page number")
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Results per page")


class ListPaymentsArgs(PageArgs):
    invoice_id: Optional[int] = Field(None, gt=0, description="Filter by invoice ID")
    patient_id: Optional[int] = Field(None, gt=0, description="Filter by patient ID")


class CreatePaymentArgs(BaseModel):
    invoice_id: int = Field(..., gt=0, description="Invoice being paid")
    amount: float = Field(..., gt=0, description="Amount paid")
    payment_method: PaymentMethod = Field(..., description="How the payment was made")
    paid_at: Optional[str] = Field(None, description="When the payment was made (ISO 8601)")
    reference: Optional[str] = Field(None, description="Payment reference")


class PaymentIdArgs(BaseModel):
    payment_id: int = Field(..., gt=0, description="Payment ID")


class CreateProductArgs(BaseModel):
    name: str = Field(..., description="Product or service name")
    item_code: str = Field(..., description="Item code")
    unit_price: float = Field(..., ge=0, description="Price per unit")
    description: Optional[str] = Field(None, description="Description")
    tax_id: Optional[int] = Field(None, gt=0, description="Tax applied to this product")


class UpdateProductArgs(BaseModel):
    product_id: int = Field(..., gt=0, description="Product ID")
    name: Optional[str] = Field(None, description="Product or service name")
    item_code: Optional[str] = Field(None, description="Item code")
    unit_price: Optional[float] = Field(None, ge=0, description="Price per unit")
    description: Optional[str] = Field(None, description="Description")
    tax_id: Optional[int] = Field(None, gt=0, description="Tax applied to this product")


class ProductIdArgs(BaseModel):
    product_id: int = Field(..., gt=0, description="Product ID")


class CreateTaxArgs(BaseModel):
    name: str = Field(..., description="Tax name (e.g. GST)")
    rate: float = Field(..., ge=0, le=100, description="Tax rate as a percentage")


class PatientCasesArgs(PageArgs):
    patient_id: int = Field(..., gt=0, description="Patient ID")


class CreatePatientCaseArgs(BaseModel):
    patient_id: int = Field(..., gt=0, description="Patient ID")
    name: str = Field(..., description="Case name")
    notes: Optional[str] = Field(None, description="Case notes")
    issue_date: Optional[str] = Field(None, description="Date the case was opened (YYYY-MM-DD)")


class CaseIdArgs(BaseModel):
    case_id: int = Field(..., gt=0, description="Patient case ID")


def register_billing_tools(registry: RegistryBuilder, client: ClinikoClient) -> None:
    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------
    @registry.tool("list_payments", "List payments, optionally filtered by invoice or patient", ListPaymentsArgs)
    async def list_payments(args: ListPaymentsArgs):
        try:
            result = await client.list_payments(**args.model_dump())
        except ApiError as exc:
            return error_result("fetching payments", exc)
        return json_result(page_summary("payments", result, args.page), data=result)

    @registry.tool("create_payment", "Record a payment against an invoice", CreatePaymentArgs)
    async def create_payment(args: CreatePaymentArgs):
        try:
            payment = await client.create_payment(args.model_dump(exclude_none=True))
        except ApiError as exc:
            return error_result("creating payment", exc)
        return text_result(
            f"Recorded payment {payment.get('id')} of ${args.amount} ({args.payment_method}) "
            f"against invoice {args.invoice_id}",
            data=payment,
        )

    @registry.tool("get_payment", "Get a specific payment by ID", PaymentIdArgs)
    async def get_payment(args: PaymentIdArgs):
        try:
            payment = await client.get_payment(args.payment_id)
        except ApiError as exc:
            return error_result("fetching payment", exc)
        return json_result(payment, data=payment)

    @registry.tool("delete_payment", "Delete a payment", PaymentIdArgs)
    async def delete_payment(args: PaymentIdArgs):
        try:
            await client.delete_payment(args.payment_id)
        except ApiError as exc:
            return error_result("deleting payment", exc)
        return text_result(f"Payment {args.payment_id} has been deleted successfully")

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    @registry.tool("list_products", "List products and services", PageArgs)
    async def list_products(args: PageArgs):
        try:
            result = await client.list_products(page=args.page, per_page=args.per_page)
        except ApiError as exc:
            return error_result("fetching products", exc)
        return json_result(page_summary("products", result, args.page), data=result)

    @registry.tool("get_product", "Get a specific product or service by ID", ProductIdArgs)
    async def get_product(args: ProductIdArgs):
        try:
            product = await client.get_product(args.product_id)
        except ApiError as exc:
            return error_result("fetching product", exc)
        return json_result(product, data=product)

    @registry.tool("create_product", "Create a product or service", CreateProductArgs)
    async def create_product(args: CreateProductArgs):
        try:
            product = await client.create_product(args.model_dump(exclude_none=True))
        except ApiError as exc:
            return error_result("creating product", exc)
        return json_result(product, data=product)

    @registry.tool("update_product", "Update a product or service", UpdateProductArgs)
    async def update_product(args: UpdateProductArgs):
        changes = args.model_dump(exclude_none=True, exclude={"product_id"})
        try:
            product = await client.update_product(args.product_id, changes)
        except ApiError as exc:
            return error_result("updating product", exc)
        return json_result(product, data=product)

    @registry.tool("delete_product", "Delete a product or service", ProductIdArgs)
    async def delete_product(args: ProductIdArgs):
        try:
            await client.delete_product(args.product_id)
        except ApiError as exc:
            return error_result("deleting product", exc)
        return text_result(f"Product {args.product_id} has been deleted successfully")

    # ------------------------------------------------------------------
    # Taxes
    # ------------------------------------------------------------------
    @registry.tool("list_taxes", "List configured taxes", PageArgs)
    async def list_taxes(args: PageArgs):
        try:
            result = await client.list_taxes(page=args.page, per_page=args.per_page)
        except ApiError as exc:
            return error_result("fetching taxes", exc)
        return json_result(page_summary("taxes", result, args.page), data=result)

    @registry.tool("create_tax", "Create a tax", CreateTaxArgs)
    async def create_tax(args: CreateTaxArgs):
        try:
            tax = await client.create_tax(args.model_dump())
        except ApiError as exc:
            return error_result("creating tax", exc)
        return json_result(tax, data=tax)

    # ------------------------------------------------------------------
    # Patient cases
    # ------------------------------------------------------------------
    @registry.tool("list_patient_cases", "List the cases opened for a patient", PatientCasesArgs)
    async def list_patient_cases(args: PatientCasesArgs):
        try:
            result = await client.list_patient_cases(args.patient_id, page=args.page, per_page=args.per_page)
        except ApiError as exc:
            return error_result("fetching patient cases", exc)
        return json_result(page_summary("patient_cases", result, args.page), data=result)

    @registry.tool("create_patient_case", "Open a new case for a patient", CreatePatientCaseArgs)
    async def create_patient_case(args: CreatePatientCaseArgs):
        case = args.model_dump(exclude_none=True, exclude={"patient_id"})
        try:
            created = await client.create_patient_case(args.patient_id, case)
        except ApiError as exc:
            return error_result("creating patient case", exc)
        return json_result(created, data=created)

    @registry.tool("get_case", "Get a specific patient case by ID", CaseIdArgs)
    async def get_case(args: CaseIdArgs):
        try:
            case = await client.get_case(args.case_id)
        except ApiError as exc:
            return error_result("fetching patient case", exc)
        return json_result(case, data=case)

    @registry.tool("list_case_invoices", "List the invoices billed against a patient case", CaseIdArgs)
    async def list_case_invoices(args: CaseIdArgs):
        try:
            result = await client.list_case_invoices(args.case_id)
        except ApiError as exc:
            return error_result("fetching case invoices", exc)
        return json_result(page_summary("invoices", result, include_page=False), data=result)
