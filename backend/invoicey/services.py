"""
Wiring used by the CLI and the API.

build_services() puts together the client service, invoice service and
sequencer for one tenant, sharing one storage adapter. load_dashboard()
is what the dashboard screen calls: flag overdue invoices, then compute
metrics and recent items from the refreshed data.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from pydantic import BaseModel

from .clients import ClientService
from .config import Settings, get_settings
from .invoices import InvoiceService
from .metrics import calculate_metrics
from .models import Client, Invoice, Metrics
from .numbering import InvoiceNumberSequencer
from .recent import get_recent_clients, get_recent_invoices
from .storage import StorageAdapter, create_storage, validate_tenant
from .utils import today


@dataclass
class TenantServices:
    tenant: str
    storage: StorageAdapter
    clients: ClientService
    invoices: InvoiceService
    sequencer: InvoiceNumberSequencer


class Dashboard(BaseModel):
    metrics: Metrics
    recent_invoices: List[Invoice]
    recent_clients: List[Client]


def build_services(
    tenant: str,
    storage: Optional[StorageAdapter] = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], date] = today,
) -> TenantServices:
    settings = settings or get_settings()
    validate_tenant(tenant)
    storage = storage or create_storage(settings)
    sequencer = InvoiceNumberSequencer(
        storage, number_format=settings.invoice_number_format, clock=clock
    )
    return TenantServices(
        tenant=tenant,
        storage=storage,
        clients=ClientService(storage, tenant, clock=clock),
        invoices=InvoiceService(
            storage, tenant, sequencer=sequencer, tax_rate=settings.tax_rate, clock=clock
        ),
        sequencer=sequencer,
    )


def load_dashboard(services: TenantServices) -> Dashboard:
    invoices = services.invoices.check_overdue()
    clients = services.clients.list()
    return Dashboard(
        metrics=calculate_metrics(invoices, clients),
        recent_invoices=get_recent_invoices(invoices),
        recent_clients=get_recent_clients(clients),
    )
