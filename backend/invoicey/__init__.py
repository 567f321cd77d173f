"""Invoicey: clients, invoices, numbering and dashboard metrics."""

__version__ = "1.0.0"
