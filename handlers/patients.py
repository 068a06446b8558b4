"""Patient tools: list, get, create, update and archive."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from handlers.errors import ToolExecutionError
from registry import RegistryBuilder
from response import json_result, page_summary, text_result

# Top-level patient fields copied as-is when supplied.
PATIENT_FIELDS = (
    "first_name",
    "last_name",
    "title",
    "preferred_name",
    "date_of_birth",
    "sex",
    "email",
    "medicare_number",
    "medicare_reference_number",
)

# Flat tool argument -> key inside the nested ``address`` object.
ADDRESS_FIELDS = {
    "address_line_1": "line_1",
    "address_line_2": "line_2",
    "suburb": "suburb",
    "postcode": "postcode",
    "state": "state",
    "country": "country",
}


class ListPatientsArgs(BaseModel):
    q: Optional[str] = Field(None, description="Search query (searches name, email, phone)")
    page: Optional[int] = Field(None, ge=1, description="Page number")
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Results per page (max 100)")


class PatientIdArgs(BaseModel):
    patient_id: int = Field(..., gt=0, description="Patient ID")


class PatientFields(BaseModel):
    title: Optional[str] = Field(None, description="Title (Mr, Ms, Dr, etc)")
    preferred_name: Optional[str] = Field(None, description="Preferred name")
    date_of_birth: Optional[str] = Field(None, description="Date of birth (YYYY-MM-DD)")
    sex: Optional[Literal["Male", "Female", "Other"]] = Field(None, description="Biological sex")
    email: Optional[str] = Field(None, description="Email address")
    phone_number: Optional[str] = Field(None, description="Primary phone number")
    address_line_1: Optional[str] = Field(None, description="Address line 1")
    address_line_2: Optional[str] = Field(None, description="Address line 2")
    suburb: Optional[str] = Field(None, description="Suburb/City")
    postcode: Optional[str] = Field(None, description="Postcode")
    state: Optional[str] = Field(None, description="State/Province")
    country: Optional[str] = Field(None, description="Country")
    medicare_number: Optional[str] = Field(None, description="Medicare number")
    medicare_reference_number: Optional[str] = Field(None, description="Medicare reference number")


class CreatePatientArgs(PatientFields):
    first_name: str = Field(..., description="Patient first name")
    last_name: str = Field(..., description="Patient last name")


class UpdatePatientArgs(PatientFields):
    patient_id: int = Field(..., gt=0, description="Patient ID")
    first_name: Optional[str] = Field(None, description="Patient first name")
    last_name: Optional[str] = Field(None, description="Patient last name")


def build_patient_payload(args: BaseModel) -> dict[str, Any]:
    """Map flat tool arguments onto Cliniko's patient shape.

    Every declared field is independently optional; only supplied values
    are sent, and ``address`` exists only if one of its parts was given.
    """
    values = args.model_dump()
    payload: dict[str, Any] = {}
    for name in PATIENT_FIELDS:
        if values.get(name) is not None:
            payload[name] = values[name]

    if values.get("phone_number") is not None:
        payload["phone_numbers"] = [{"number": values["phone_number"], "type": "Mobile"}]

    address = {
        target: values[source]
        for source, target in ADDRESS_FIELDS.items()
        if values.get(source) is not None
    }
    if address:
        payload["address"] = address
    return payload


def register_patient_tools(registry: RegistryBuilder, client: ClinikoClient) -> None:
    @registry.tool("list_patients", "List or search for patients", ListPatientsArgs)
    async def list_patients(args: ListPatientsArgs):
        try:
            response = await client.list_patients(q=args.q, page=args.page, per_page=args.per_page)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to list patients: {exc}") from exc
        return json_result(page_summary("patients", response, args.page))

    @registry.tool("get_patient", "Get a specific patient by ID", PatientIdArgs)
    async def get_patient(args: PatientIdArgs):
        try:
            patient = await client.get_patient(args.patient_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to get patient: {exc}") from exc
        return json_result(patient)

    @registry.tool("create_patient", "Create a new patient", CreatePatientArgs)
    async def create_patient(args: CreatePatientArgs):
        try:
            patient = await client.create_patient(build_patient_payload(args))
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to create patient: {exc}") from exc
        return json_result(patient)

    @registry.tool("update_patient", "Update an existing patient", UpdatePatientArgs)
    async def update_patient(args: UpdatePatientArgs):
        try:
            patient = await client.update_patient(args.patient_id, build_patient_payload(args))
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to update patient: {exc}") from exc
        return json_result(patient)

    @registry.tool("delete_patient", "Delete (archive) a patient", PatientIdArgs)
    async def delete_patient(args: PatientIdArgs):
        try:
            await client.delete_patient(args.patient_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to delete patient: {exc}") from exc
        return text_result(f"Patient {args.patient_id} has been archived successfully")
