"""
PDF export for invoices (fpdf2).

This is a pure projection: it reads a finished Invoice (with its client
snapshot) and returns PDF bytes. Nothing is written back to storage.
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Union

from fpdf import FPDF

from .config import Settings, get_settings
from .models import Invoice, InvoiceStatus

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    InvoiceStatus.PAID: (16, 185, 129),
    InvoiceStatus.SENT: (59, 130, 246),
    InvoiceStatus.OVERDUE: (239, 68, 68),
    InvoiceStatus.DRAFT: (100, 116, 139),
}
TEXT = (30, 41, 59)
TEXT_LIGHT = (100, 116, 139)
BRAND = (79, 70, 229)


@dataclass
class CompanyInfo:
    name: str
    email: str
    phone: str
    address: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompanyInfo":
        return cls(
            name=settings.company_name,
            email=settings.company_email,
            phone=settings.company_phone,
            address=settings.company_address,
        )


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_date(value: date) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def _latin1(text: str) -> str:
    # core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def render_invoice_pdf(invoice: Invoice, company: Optional[CompanyInfo] = None) -> bytes:
    """Lay out one invoice on A4 and return the PDF as bytes."""
    company = company or CompanyInfo.from_settings(get_settings())

    pdf = FPDF()
    pdf.set_title(_latin1(f"Invoice {invoice.invoice_number}"))
    pdf.add_page()
    pdf.set_auto_page_break(auto=True, margin=15)

    # --- Header ---
    pdf.set_fill_color(*BRAND)
    pdf.rect(pdf.l_margin, pdf.t_margin, 10, 10, style="F")
    pdf.set_x(pdf.l_margin + 14)
    pdf.set_text_color(*TEXT)
    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(90, 10, _latin1(company.name))
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, _latin1(invoice.invoice_number), align="R", new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "", 9)
    pdf.set_text_color(*TEXT_LIGHT)
    pdf.cell(120, 5, _latin1(company.email))
    pdf.set_font("Helvetica", "B", 10)
    pdf.set_text_color(*STATUS_COLORS.get(invoice.status, TEXT_LIGHT))
    pdf.cell(0, 5, invoice.status.value.upper(), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    pdf.set_text_color(*TEXT_LIGHT)
    pdf.cell(0, 5, _latin1(company.phone), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, _latin1(company.address), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(6)

    # --- Dates ---
    pdf.set_font("Helvetica", "B", 8)
    pdf.cell(60, 5, "ISSUE DATE")
    pdf.cell(0, 5, "DUE DATE", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(*TEXT)
    pdf.cell(60, 6, format_date(invoice.issue_date))
    pdf.cell(0, 6, format_date(invoice.due_date), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # --- Bill to ---
    pdf.set_font("Helvetica", "B", 8)
    pdf.set_text_color(*TEXT_LIGHT)
    pdf.cell(0, 5, "BILL TO", new_x="LMARGIN", new_y="NEXT")

    client = invoice.client
    if client is not None:
        bill_to = [client.name, client.company, client.email, client.phone, client.address]
    else:
        bill_to = [f"Client {invoice.client_id}"]

    pdf.set_text_color(*TEXT)
    for i, line in enumerate(entry for entry in bill_to if entry):
        pdf.set_font("Helvetica", "B" if i == 0 else "", 10)
        pdf.cell(0, 5, _latin1(line), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(6)

    # --- Line items ---
    pdf.set_fill_color(248, 250, 252)
    pdf.set_font("Helvetica", "B", 9)
    pdf.set_text_color(*TEXT_LIGHT)
    pdf.cell(90, 7, "  DESCRIPTION", border="B", fill=True)
    pdf.cell(25, 7, "QTY", border="B", align="C", fill=True)
    pdf.cell(35, 7, "RATE", border="B", align="R", fill=True)
    pdf.cell(0, 7, "AMOUNT", border="B", align="R", fill=True, new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(*TEXT)
    for item in invoice.line_items:
        pdf.cell(90, 7, _latin1(f"  {item.description}"))
        pdf.cell(25, 7, f"{item.quantity:g}", align="C")
        pdf.cell(35, 7, format_currency(item.rate), align="R")
        pdf.cell(0, 7, format_currency(item.amount), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # --- Totals ---
    for label, value in (("Subtotal", invoice.subtotal), ("Tax", invoice.tax)):
        pdf.cell(120, 6, "")
        pdf.cell(30, 6, label)
        pdf.cell(0, 6, format_currency(value), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(120, 8, "")
    pdf.cell(30, 8, "Total")
    pdf.cell(0, 8, format_currency(invoice.total), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # --- Notes ---
    if invoice.notes:
        pdf.set_font("Helvetica", "B", 8)
        pdf.set_text_color(*TEXT_LIGHT)
        pdf.cell(0, 6, "NOTES", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "", 10)
        pdf.set_text_color(*TEXT)
        pdf.multi_cell(0, 5, _latin1(invoice.notes))
        pdf.ln(4)

    # --- Footer ---
    pdf.ln(6)
    pdf.set_font("Helvetica", "I", 9)
    pdf.set_text_color(*TEXT_LIGHT)
    pdf.cell(0, 5, _latin1(f"Thank you for your business! - {company.name}"), align="C")

    return bytes(pdf.output())


def write_invoice_pdf(
    invoice: Invoice,
    path: Union[str, Path],
    company: Optional[CompanyInfo] = None,
) -> Path:
    """Render and save to `path`. Returns the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(render_invoice_pdf(invoice, company))
    logger.info("Wrote PDF for %s to %s", invoice.invoice_number, path)
    return path
