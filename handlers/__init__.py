"""Tool and resource handlers, grouped by Cliniko area."""

from typing import Optional

from api_client import ClinikoClient
from handlers.appointments import register_appointment_tools
from handlers.billing import register_billing_tools
from handlers.comprehensive_data import register_comprehensive_data_tools
from handlers.demo_invoices import register_demo_invoice_tools
from handlers.invoices import register_invoice_tools
from handlers.pacing import Pacer
from handlers.patients import register_patient_tools
from handlers.resources import register_resources
from handlers.synthetic_data import register_synthetic_data_tools
from registry import Registry, RegistryBuilder


def build_registry(client: ClinikoClient, pacer: Optional[Pacer] = None) -> Registry:
    """Register every tool and resource against ``client`` and freeze the result."""
    pacer = pacer or Pacer()
    builder = RegistryBuilder()
    register_patient_tools(builder, client)
    register_appointment_tools(builder, client)
    register_invoice_tools(builder, client)
    register_billing_tools(builder, client)
    register_synthetic_data_tools(builder, client, pacer)
    register_comprehensive_data_tools(builder, client, pacer)
    register_demo_invoice_tools(builder, client, pacer)
    register_resources(builder, client)
    return builder.build()
