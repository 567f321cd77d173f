"""
FastAPI server for Invoicey.

The tenant comes from the X-Tenant-ID header (set by whatever sits in front
of this service and handles auth); without it the configured default tenant
is used.

Main endpoints:
- GET    /health
- GET    /clients, POST /clients, GET/PUT/DELETE /clients/{id}
- GET    /clients/{id}/has-invoices
- GET    /invoices (?q=&status=), POST /invoices, GET/PUT/DELETE /invoices/{id}
- POST   /invoices/{id}/send | /pay | /duplicate
- GET    /invoices/{id}/pdf
- POST   /invoices/check-overdue
- GET    /dashboard
"""

from typing import List, Optional
from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI, Header, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invoicey import __version__
from invoicey.config import get_settings
from invoicey.errors import InvoiceyError, NotFoundError, StorageError, ValidationError
from invoicey.models import Client, ClientInput, Invoice, InvoiceInput, ValidationResult
from invoicey.pdf import render_invoice_pdf
from invoicey.services import Dashboard, TenantServices, build_services, load_dashboard
from invoicey.storage import StorageAdapter, create_storage
from invoicey.validator import ClientValidator

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoicey API",
    description="Clients, invoices, invoice numbering and dashboard metrics",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_storage: Optional[StorageAdapter] = None


# ----------------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------------
def get_storage() -> StorageAdapter:
    """One adapter per process so every request shares the tenant locks."""
    global _storage
    if _storage is None:
        _storage = create_storage(settings)
    return _storage


def get_services(
    x_tenant_id: Optional[str] = Header(None),
    storage: StorageAdapter = Depends(get_storage),
) -> TenantServices:
    tenant = x_tenant_id or settings.default_tenant
    try:
        return build_services(tenant, storage=storage, settings=settings)
    except ValueError as exc:
        raise ValidationError({"tenant": str(exc)})


# ----------------------------------------------------------------------
# Error handling
# ----------------------------------------------------------------------
def create_error_response(
    status_code: int, message: str, error_code: str, details: Optional[dict] = None
) -> JSONResponse:
    """
    Format:
    {"error": {"code": "ERROR_CODE", "message": "...", "details": {...}}}
    """
    content = {"error": {"code": error_code, "message": message}}
    if details:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Validation failed on %s: %s", request.url.path, exc.fields)
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        exc.error_code,
        details={"fields": exc.fields},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return create_error_response(
        status.HTTP_404_NOT_FOUND, f"{exc.entity} not found", exc.error_code,
        details={"entity": exc.entity, "id": exc.identifier},
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s: %s", request.url.path, exc.message)
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Storage temporarily unavailable. Please try again.",
        exc.error_code,
    )


@app.exception_handler(InvoiceyError)
async def invoicey_error_handler(request: Request, exc: InvoiceyError):
    logger.warning("Invoicey error on %s: %s", request.url.path, exc.message)
    return create_error_response(
        status.HTTP_400_BAD_REQUEST, exc.message, exc.error_code
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": " -> ".join(str(loc) for loc in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        details={"errors": errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler to avoid leaking stack traces."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


# ----------------------------------------------------------------------
# Basic endpoints
# ----------------------------------------------------------------------
@app.get("/health")
async def health():
    """Simple health check used by tests/monitoring."""
    return {
        "status": "ok",
        "service": "invoicey",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ----------------------------------------------------------------------
# Clients
# ----------------------------------------------------------------------
@app.get("/clients", response_model=List[Client])
def list_clients(q: str = "", services: TenantServices = Depends(get_services)):
    return services.clients.search(q)


@app.post("/clients/validate", response_model=ValidationResult)
def validate_client(body: ClientInput):
    """Field-level feedback for the client form, without saving anything."""
    return ClientValidator().validate_strict(body)


@app.post("/clients", response_model=Client, status_code=201)
def create_client(body: ClientInput, services: TenantServices = Depends(get_services)):
    result = ClientValidator().validate_strict(body)
    if not result.valid:
        raise ValidationError(result.errors)
    return services.clients.create(body)


@app.get("/clients/{client_id}", response_model=Client)
def get_client(client_id: str, services: TenantServices = Depends(get_services)):
    client = services.clients.get(client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


@app.put("/clients/{client_id}", response_model=Client)
def update_client(
    client_id: str, body: ClientInput, services: TenantServices = Depends(get_services)
):
    result = ClientValidator().validate_strict(body)
    if not result.valid:
        raise ValidationError(result.errors)
    return services.clients.update(client_id, body)


@app.get("/clients/{client_id}/has-invoices")
def client_has_invoices(client_id: str, services: TenantServices = Depends(get_services)):
    """Ask before deleting: the UI shows a warning when this is true."""
    return {"has_invoices": services.clients.has_dependent_invoices(client_id)}


@app.delete("/clients/{client_id}", status_code=204)
def delete_client(client_id: str, services: TenantServices = Depends(get_services)):
    services.clients.delete(client_id)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Invoices
# ----------------------------------------------------------------------
@app.get("/invoices", response_model=List[Invoice])
def list_invoices(
    q: str = "",
    status_filter: str = Query("all", alias="status"),
    services: TenantServices = Depends(get_services),
):
    invoices = services.invoices.search(q)
    return services.invoices.filter_by_status(status_filter, invoices)


@app.post("/invoices/validate", response_model=ValidationResult)
def validate_invoice(body: InvoiceInput, services: TenantServices = Depends(get_services)):
    return services.invoices.validate(body)


@app.post("/invoices/check-overdue", response_model=List[Invoice])
def check_overdue(services: TenantServices = Depends(get_services)):
    return services.invoices.check_overdue()


@app.post("/invoices", response_model=Invoice, status_code=201)
def create_invoice(body: InvoiceInput, services: TenantServices = Depends(get_services)):
    return services.invoices.create(body, services.clients.list())


@app.get("/invoices/{invoice_id}", response_model=Invoice)
def get_invoice(invoice_id: str, services: TenantServices = Depends(get_services)):
    invoice = services.invoices.get(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


@app.put("/invoices/{invoice_id}", response_model=Invoice)
def update_invoice(
    invoice_id: str, body: InvoiceInput, services: TenantServices = Depends(get_services)
):
    return services.invoices.update(invoice_id, body, services.clients.list())


@app.delete("/invoices/{invoice_id}", status_code=204)
def delete_invoice(invoice_id: str, services: TenantServices = Depends(get_services)):
    services.invoices.delete(invoice_id)
    return Response(status_code=204)


@app.post("/invoices/{invoice_id}/send", response_model=Invoice)
def send_invoice(invoice_id: str, services: TenantServices = Depends(get_services)):
    return services.invoices.mark_as_sent(invoice_id)


@app.post("/invoices/{invoice_id}/pay", response_model=Invoice)
def pay_invoice(invoice_id: str, services: TenantServices = Depends(get_services)):
    """Cosmetic "pay" flow: no money moves, the status just becomes paid."""
    return services.invoices.mark_as_paid(invoice_id)


@app.post("/invoices/{invoice_id}/duplicate", response_model=Invoice, status_code=201)
def duplicate_invoice(invoice_id: str, services: TenantServices = Depends(get_services)):
    return services.invoices.duplicate(invoice_id, services.clients.list())


@app.get("/invoices/{invoice_id}/pdf")
def invoice_pdf(invoice_id: str, services: TenantServices = Depends(get_services)):
    invoice = services.invoices.get(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    return Response(
        content=render_invoice_pdf(invoice),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'
        },
    )


# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------
@app.get("/dashboard", response_model=Dashboard)
def dashboard(services: TenantServices = Depends(get_services)):
    """Flags overdue invoices first, then returns metrics and recent items."""
    return load_dashboard(services)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
