"""Most-recent views for the dashboard. Inputs are never mutated."""

from typing import List

from .models import Client, Invoice


def get_recent_invoices(invoices: List[Invoice], limit: int = 5) -> List[Invoice]:
    """Newest first by created_at. Ties keep their input order (stable sort)."""
    return sorted(invoices, key=lambda inv: inv.created_at, reverse=True)[:limit]


def get_recent_clients(clients: List[Client], limit: int = 4) -> List[Client]:
    return sorted(clients, key=lambda c: c.created_at, reverse=True)[:limit]
