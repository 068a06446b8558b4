"""Appointment tools plus the reference data needed to book one."""

from typing import Optional

from pydantic import BaseModel, Field

from api_client import ApiError, ClinikoClient
from handlers.errors import ToolExecutionError
from registry import NoArguments, RegistryBuilder
from response import json_result, page_summary, text_result


class ListAppointmentsArgs(BaseModel):
    patient_id: Optional[int] = Field(None, gt=0, description="Filter by patient ID")
    practitioner_id: Optional[int] = Field(None, gt=0, description="Filter by practitioner ID")
    business_id: Optional[int] = Field(None, gt=0, description="Filter by business ID")
    starts_at: Optional[str] = Field(None, description="Filter appointments starting from (ISO 8601)")
    ends_at: Optional[str] = Field(None, description="Filter appointments ending before (ISO 8601)")
    status: Optional[str] = Field(None, description="Filter by status (Active, Cancelled, Did not arrive)")
    page: Optional[int] = Field(None, ge=1, description="Page number")
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Results per page (max 100)")


class AppointmentIdArgs(BaseModel):
    appointment_id: int = Field(..., gt=0, description="Appointment ID")


class CreateAppointmentArgs(BaseModel):
    starts_at: str = Field(..., description="Appointment start time (ISO 8601)")
    patient_id: Optional[int] = Field(None, gt=0, description="Patient ID (optional for walk-ins)")
    practitioner_id: int = Field(..., gt=0, description="Practitioner ID")
    appointment_type_id: int = Field(..., gt=0, description="Appointment type ID")
    business_id: int = Field(..., gt=0, description="Business ID")
    notes: Optional[str] = Field(None, description="Appointment notes")


class UpdateAppointmentArgs(BaseModel):
    appointment_id: int = Field(..., gt=0, description="Appointment ID")
    starts_at: Optional[str] = Field(None, description="New start time (ISO 8601)")
    notes: Optional[str] = Field(None, description="Updated notes")
    patient_id: Optional[int] = Field(None, gt=0, description="New patient ID")


class CancelAppointmentArgs(BaseModel):
    appointment_id: int = Field(..., gt=0, description="Appointment ID")
    cancellation_reason: Optional[str] = Field(None, description="Reason for cancellation")


class AvailableTimesArgs(BaseModel):
    business_id: int = Field(..., gt=0, description="Business ID")
    practitioner_id: int = Field(..., gt=0, description="Practitioner ID")
    from_date: str = Field(..., alias="from", description="Start date for availability check (YYYY-MM-DD)")
    to_date: str = Field(..., alias="to", description="End date for availability check (YYYY-MM-DD)")


class PageArgs(BaseModel):
    page: Optional[int] = Field(None, ge=1, description="Page number")
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Results per page")


class PractitionerIdArgs(BaseModel):
    practitioner_id: int = Field(..., gt=0, description="Practitioner ID")


class AppointmentTypeIdArgs(BaseModel):
    appointment_type_id: int = Field(..., gt=0, description="Appointment type ID")


class BusinessIdArgs(BaseModel):
    business_id: int = Field(..., gt=0, description="Business ID")


def register_appointment_tools(registry: RegistryBuilder, client: ClinikoClient) -> None:
    @registry.tool("list_appointments", "List or search for appointments", ListAppointmentsArgs)
    async def list_appointments(args: ListAppointmentsArgs):
        try:
            response = await client.list_appointments(
                page=args.page,
                per_page=args.per_page,
                patient_id=args.patient_id,
                practitioner_id=args.practitioner_id,
                business_id=args.business_id,
                starts_at=args.starts_at,
                ends_at=args.ends_at,
                status=args.status,
            )
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to list appointments: {exc}") from exc
        return json_result(page_summary("appointments", response, args.page))

    @registry.tool("get_appointment", "Get a specific appointment by ID", AppointmentIdArgs)
    async def get_appointment(args: AppointmentIdArgs):
        try:
            appointment = await client.get_appointment(args.appointment_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to get appointment: {exc}") from exc
        return json_result(appointment)

    @registry.tool("create_appointment", "Create a new appointment", CreateAppointmentArgs)
    async def create_appointment(args: CreateAppointmentArgs):
        try:
            appointment = await client.create_appointment(args.model_dump(exclude_none=True))
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to create appointment: {exc}") from exc
        return json_result(appointment)

    @registry.tool("update_appointment", "Update an existing appointment", UpdateAppointmentArgs)
    async def update_appointment(args: UpdateAppointmentArgs):
        changes = args.model_dump(exclude_none=True, exclude={"appointment_id"})
        try:
            appointment = await client.update_appointment(args.appointment_id, changes)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to update appointment: {exc}") from exc
        return json_result(appointment)

    @registry.tool("cancel_appointment", "Cancel an appointment", CancelAppointmentArgs)
    async def cancel_appointment(args: CancelAppointmentArgs):
        try:
            appointment = await client.cancel_appointment(args.appointment_id, args.cancellation_reason)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to cancel appointment: {exc}") from exc
        return json_result(appointment)

    @registry.tool("delete_appointment", "Delete an appointment completely", AppointmentIdArgs)
    async def delete_appointment(args: AppointmentIdArgs):
        try:
            await client.delete_appointment(args.appointment_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to delete appointment: {exc}") from exc
        return text_result(f"Appointment {args.appointment_id} has been deleted successfully")

    @registry.tool(
        "get_available_times",
        "Get available appointment times for a practitioner",
        AvailableTimesArgs,
    )
    async def get_available_times(args: AvailableTimesArgs):
        try:
            times = await client.get_available_times(
                args.business_id,
                args.practitioner_id,
                args.from_date,
                args.to_date,
            )
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to get available times: {exc}") from exc
        return json_result(
            {
                "available_times": times,
                "total": len(times),
                **args.model_dump(by_alias=True),
            }
        )

    # Reference data used when booking.

    @registry.tool("list_practitioners", "List all practitioners", PageArgs)
    async def list_practitioners(args: PageArgs):
        try:
            response = await client.list_practitioners(page=args.page, per_page=args.per_page)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to list practitioners: {exc}") from exc
        return json_result(page_summary("practitioners", response, args.page))

    @registry.tool("get_practitioner", "Get a specific practitioner by ID", PractitionerIdArgs)
    async def get_practitioner(args: PractitionerIdArgs):
        try:
            practitioner = await client.get_practitioner(args.practitioner_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to get practitioner: {exc}") from exc
        return json_result(practitioner)

    @registry.tool("list_appointment_types", "List all appointment types", PageArgs)
    async def list_appointment_types(args: PageArgs):
        try:
            response = await client.list_appointment_types(page=args.page, per_page=args.per_page)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to list appointment types: {exc}") from exc
        return json_result(page_summary("appointment_types", response, args.page))

    @registry.tool("list_businesses", "List all businesses", NoArguments)
    async def list_businesses(args: NoArguments):
        try:
            response = await client.list_businesses()
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to list businesses: {exc}") from exc
        return json_result(
            {"businesses": response.get("businesses") or [], "total_entries": response.get("total_entries")}
        )

    @registry.tool("get_appointment_type", "Get a specific appointment type by ID", AppointmentTypeIdArgs)
    async def get_appointment_type(args: AppointmentTypeIdArgs):
        try:
            appointment_type = await client.get_appointment_type(args.appointment_type_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to get appointment type: {exc}") from exc
        return json_result(appointment_type)

    @registry.tool("get_business", "Get a specific business by ID", BusinessIdArgs)
    async def get_business(args: BusinessIdArgs):
        try:
            business = await client.get_business(args.business_id)
        except ApiError as exc:
            raise ToolExecutionError(f"Failed to get business: {exc}") from exc
        return json_result(business)
