"""
Data models for Invoicey.

I kept the schema close to what the invoice editor and dashboard need:
- clients that invoices are billed to
- invoices with line items and computed totals
- the per-tenant counter used for invoice numbers
- a couple of derived shapes (totals, metrics, validation results)

Input models are deliberately loose (empty strings / empty lists are allowed)
so the validator can report field-level problems instead of pydantic
rejecting the whole payload.
"""

from typing import Optional, List, Dict
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InvoiceStatus(str, Enum):
    """Lifecycle states of an invoice."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


# ----------------------------------------------------------------------
# Clients
# ----------------------------------------------------------------------
class ClientInput(BaseModel):
    """What the user types into the client form."""

    name: str = ""
    email: str = ""
    company: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Jane Cooper",
                "email": "jane@acme.test",
                "company": "Acme Corp",
                "phone": "+1 555 0100",
                "address": "1 Main Street, Springfield",
            }
        }
    )


class Client(BaseModel):
    """
    A client owned by one tenant.

    `id` and `created_at` are assigned on creation and never change.
    """

    id: str = Field(..., description="Stable client identifier")
    name: str
    email: str
    company: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: date = Field(..., description="Day the client was created")
    updated_at: Optional[datetime] = None


# ----------------------------------------------------------------------
# Line items
# ----------------------------------------------------------------------
class LineItemInput(BaseModel):
    """One billable row as entered in the editor."""

    description: str = ""
    quantity: float = 0
    rate: float = 0


class LineItem(BaseModel):
    """
    Single line item on a stored invoice.

    Fields:
    - description: what was billed
    - quantity: how many units
    - rate: price per unit
    - amount: quantity * rate rounded to cents (always recomputed, never
      taken from caller input)
    """

    id: str
    description: str
    quantity: float
    rate: float
    amount: float


# ----------------------------------------------------------------------
# Invoices
# ----------------------------------------------------------------------
class InvoiceInput(BaseModel):
    """Payload for creating or updating an invoice."""

    client_id: str = ""
    issue_date: date
    due_date: date
    line_items: List[LineItemInput] = Field(default_factory=list)
    notes: Optional[str] = None
    status: Optional[InvoiceStatus] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "client_id": "client_3f2a9c",
                "issue_date": "2026-01-15",
                "due_date": "2026-02-14",
                "line_items": [
                    {"description": "Website redesign", "quantity": 1, "rate": 2500.0},
                    {"description": "Hosting (months)", "quantity": 12, "rate": 20.0},
                ],
                "notes": "Thanks for your business",
            }
        }
    )


class Invoice(BaseModel):
    """
    Main invoice model used by the services, the CLI and the API.

    Breakdown of the fields:

    1) Identifiers
       - id: internal identifier
       - invoice_number: human-readable number, assigned once

    2) Client
       - client_id: the authoritative reference
       - client: denormalized snapshot of the client, refreshed when the
         client is edited (not a live join, may be stale between edits)

    3) Lifecycle
       - status: draft / sent / paid / overdue
       - issue_date / due_date

    4) Money fields
       - line_items, subtotal, tax, total (all rounded to cents)
    """

    id: str
    invoice_number: str
    client_id: str
    client: Optional[Client] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: date
    due_date: date
    line_items: List[LineItem] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    notes: Optional[str] = None
    created_at: date
    updated_at: Optional[datetime] = None


class SequenceCounter(BaseModel):
    """Per-tenant state behind invoice numbering."""

    year: int
    sequence: int = 0


# ----------------------------------------------------------------------
# Derived shapes
# ----------------------------------------------------------------------
class Totals(BaseModel):
    subtotal: float
    tax: float
    total: float


class Metrics(BaseModel):
    """Dashboard summary. Always recomputed, never stored."""

    total_revenue: float = 0.0
    pending_amount: float = 0.0
    overdue_amount: float = 0.0
    total_clients: int = 0
    paid_invoices: int = 0
    pending_invoices: int = 0
    overdue_invoices: int = 0
    draft_invoices: int = 0

    @classmethod
    def empty(cls) -> "Metrics":
        return cls()


class ValidationResult(BaseModel):
    """Outcome of validating a client or invoice input."""

    valid: bool = Field(..., description="True when no field has an error")
    errors: Dict[str, str] = Field(
        default_factory=dict, description="Field name -> human-readable message"
    )
