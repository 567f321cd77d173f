"""
Dashboard metrics.

- total_revenue   = sum of totals of paid invoices
- pending_amount  = sum of totals of sent invoices
- overdue_amount  = sum of totals of overdue invoices
- total_clients   = number of clients
- *_invoices      = invoice counts per status

Amounts are summed raw and rounded to cents once at the end.
"""

import logging
from typing import List

from .models import Client, Invoice, InvoiceStatus, Metrics
from .utils import round2

logger = logging.getLogger(__name__)


def calculate_metrics(invoices: List[Invoice], clients: List[Client]) -> Metrics:
    total_revenue = 0.0
    pending_amount = 0.0
    overdue_amount = 0.0
    counts = {status: 0 for status in InvoiceStatus}

    for inv in invoices:
        if inv.status == InvoiceStatus.PAID:
            total_revenue += inv.total
        elif inv.status == InvoiceStatus.SENT:
            pending_amount += inv.total
        elif inv.status == InvoiceStatus.OVERDUE:
            overdue_amount += inv.total
        elif inv.status != InvoiceStatus.DRAFT:
            # records built with model_construct() or old data can carry junk
            logger.warning(
                "Invoice %s has unknown status %r; left out of metrics",
                inv.id,
                inv.status,
            )
            continue
        counts[InvoiceStatus(inv.status)] += 1

    return Metrics(
        total_revenue=round2(total_revenue),
        pending_amount=round2(pending_amount),
        overdue_amount=round2(overdue_amount),
        total_clients=len(clients),
        paid_invoices=counts[InvoiceStatus.PAID],
        pending_invoices=counts[InvoiceStatus.SENT],
        overdue_invoices=counts[InvoiceStatus.OVERDUE],
        draft_invoices=counts[InvoiceStatus.DRAFT],
    )
