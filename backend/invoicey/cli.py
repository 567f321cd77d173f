"""
CLI entrypoint for Invoicey.

Commands:
- client    → add / list / update / delete clients
- invoice   → create / list / show / update / send / pay / duplicate / delete /
              next-number / pdf
- dashboard → flag overdue invoices, then show metrics and recent items
"""

import logging
from datetime import date, timedelta
from functools import wraps
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .clients import search_clients
from .config import get_settings
from .errors import InvoiceyError, NotFoundError, ValidationError
from .invoices import filter_by_status, search_invoices
from .models import ClientInput, Invoice, InvoiceInput, InvoiceStatus, LineItemInput
from .pdf import write_invoice_pdf
from .services import TenantServices, build_services, load_dashboard
from .validator import ClientValidator

app = typer.Typer(help="Invoicey - manage clients and invoices from the terminal")
client_app = typer.Typer(help="Manage clients")
invoice_app = typer.Typer(help="Manage invoices")
app.add_typer(client_app, name="client")
app.add_typer(invoice_app, name="invoice")

console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    InvoiceStatus.DRAFT: "dim",
    InvoiceStatus.SENT: "blue",
    InvoiceStatus.PAID: "green",
    InvoiceStatus.OVERDUE: "red",
}


# ----------------------------------------------------------------------
# Helper functions
# ----------------------------------------------------------------------
def _services(ctx: typer.Context) -> TenantServices:
    return ctx.obj


def _handle_errors(func):
    """Turn service errors into a red message and exit code 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationError as exc:
            console.print("[red]✗ Validation failed:[/red]")
            for field, message in exc.fields.items():
                console.print(f"  • {field}: {message}")
            raise typer.Exit(code=1)
        except InvoiceyError as exc:
            console.print(f"[red]✗ {exc.message}[/red]")
            raise typer.Exit(code=1)

    return wrapper


def _parse_item(raw: str) -> LineItemInput:
    """'Logo design:2:150' → LineItemInput. The description may contain colons."""
    try:
        description, quantity, rate = raw.rsplit(":", 2)
        return LineItemInput(description=description, quantity=float(quantity), rate=float(rate))
    except ValueError:
        raise typer.BadParameter(
            f"Expected DESCRIPTION:QUANTITY:RATE, got {raw!r}", param_hint="--item"
        )


def _parse_date(raw: Optional[str], option: str) -> Optional[date]:
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {raw!r}", param_hint=option)


def _money(amount: float) -> str:
    return f"${amount:,.2f}"


def _status(status: InvoiceStatus) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value}[/{style}]"


def _invoice_table(invoices: List[Invoice], title: Optional[str] = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Number", style="cyan")
    table.add_column("Client")
    table.add_column("Status")
    table.add_column("Issued")
    table.add_column("Due")
    table.add_column("Total", justify="right")
    table.add_column("ID", style="dim")

    for inv in invoices:
        client_name = inv.client.name if inv.client else inv.client_id
        table.add_row(
            inv.invoice_number,
            client_name,
            _status(inv.status),
            inv.issue_date.isoformat(),
            inv.due_date.isoformat(),
            _money(inv.total),
            inv.id,
        )
    return table


# ----------------------------------------------------------------------
# Root options
# ----------------------------------------------------------------------
@app.callback()
def main(
    ctx: typer.Context,
    tenant: Optional[str] = typer.Option(None, "--tenant", help="Tenant to work on"),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", help="Override the JSON storage directory"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Invoicey command line."""
    settings = get_settings()
    if data_dir is not None:
        settings = settings.model_copy(
            update={"data_dir": str(data_dir), "storage_backend": "json"}
        )

    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level)
    try:
        ctx.obj = build_services(tenant or settings.default_tenant, settings=settings)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--tenant")


# ----------------------------------------------------------------------
# Client commands
# ----------------------------------------------------------------------
@client_app.command("add")
@_handle_errors
def client_add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Client name"),
    email: str = typer.Option(..., "--email", help="Client email"),
    company: Optional[str] = typer.Option(None, "--company"),
    phone: Optional[str] = typer.Option(None, "--phone"),
    address: Optional[str] = typer.Option(None, "--address"),
):
    """
    Add a client.

    Example:
      invoicey client add --name "Jane Cooper" --email jane@acme.test --company Acme
    """
    data = ClientInput(name=name, email=email, company=company, phone=phone, address=address)
    result = ClientValidator().validate_strict(data)
    if not result.valid:
        raise ValidationError(result.errors)

    client = _services(ctx).clients.create(data)
    console.print(f"[green]✓ Added client {client.name}[/green] [dim]({client.id})[/dim]")


@client_app.command("list")
@_handle_errors
def client_list(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Filter by name, email or company"),
):
    """List clients."""
    clients = search_clients(search, _services(ctx).clients.list())

    table = Table(title="Clients", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Company")
    table.add_column("Created")
    table.add_column("ID", style="dim")
    for c in clients:
        table.add_row(c.name, c.email, c.company or "", c.created_at.isoformat(), c.id)

    console.print(table)


@client_app.command("update")
@_handle_errors
def client_update(
    ctx: typer.Context,
    client_id: str = typer.Argument(..., help="Client ID"),
    name: Optional[str] = typer.Option(None, "--name"),
    email: Optional[str] = typer.Option(None, "--email"),
    company: Optional[str] = typer.Option(None, "--company"),
    phone: Optional[str] = typer.Option(None, "--phone"),
    address: Optional[str] = typer.Option(None, "--address"),
):
    """Change a client. Options left out keep their current value."""
    services = _services(ctx)
    existing = services.clients.get(client_id)
    if existing is None:
        raise NotFoundError("Client", client_id)

    data = ClientInput(
        name=existing.name if name is None else name,
        email=existing.email if email is None else email,
        company=existing.company if company is None else company,
        phone=existing.phone if phone is None else phone,
        address=existing.address if address is None else address,
    )
    result = ClientValidator().validate_strict(data)
    if not result.valid:
        raise ValidationError(result.errors)

    client = services.clients.update(client_id, data)
    console.print(f"[green]✓ Updated client {client.name}[/green]")


@client_app.command("delete")
@_handle_errors
def client_delete(
    ctx: typer.Context,
    client_id: str = typer.Argument(..., help="Client ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Delete a client (its invoices are kept)."""
    services = _services(ctx)
    if services.clients.has_dependent_invoices(client_id):
        console.print(
            "[yellow]! This client still has invoices. They will keep the old client details.[/yellow]"
        )
        if not yes and not typer.confirm("Delete anyway?"):
            raise typer.Exit(code=1)

    services.clients.delete(client_id)
    console.print(f"[green]✓ Deleted client {client_id}[/green]")


# ----------------------------------------------------------------------
# Invoice commands
# ----------------------------------------------------------------------
@invoice_app.command("create")
@_handle_errors
def invoice_create(
    ctx: typer.Context,
    client_id: str = typer.Option(..., "--client", help="Client ID"),
    items: List[str] = typer.Option(
        ..., "--item", help="Line item as DESCRIPTION:QUANTITY:RATE (repeatable)"
    ),
    issue_date: Optional[str] = typer.Option(None, "--issue-date", help="YYYY-MM-DD, default today"),
    due_date: Optional[str] = typer.Option(None, "--due-date", help="YYYY-MM-DD, default +30 days"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    status: Optional[InvoiceStatus] = typer.Option(None, "--status"),
):
    """
    Create an invoice.

    Example:
      invoicey invoice create --client client_1 --item "Design:2:100" --item "Hosting:1:50"
    """
    services = _services(ctx)
    issued = _parse_date(issue_date, "--issue-date") or services.invoices.clock()
    due = _parse_date(due_date, "--due-date") or issued + timedelta(days=30)

    data = InvoiceInput(
        client_id=client_id,
        issue_date=issued,
        due_date=due,
        line_items=[_parse_item(raw) for raw in items],
        notes=notes,
        status=status,
    )
    invoice = services.invoices.create(data, services.clients.list())
    console.print(
        f"[green]✓ Created {invoice.invoice_number}[/green] "
        f"total {_money(invoice.total)} [dim]({invoice.id})[/dim]"
    )


@invoice_app.command("list")
@_handle_errors
def invoice_list(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Match number, client or company"),
    status: str = typer.Option("all", "--status", help="draft, sent, paid, overdue or all"),
):
    """List invoices."""
    invoices = _services(ctx).invoices.list()
    invoices = filter_by_status(status, search_invoices(search, invoices))
    console.print(_invoice_table(invoices, title="Invoices"))


@invoice_app.command("show")
@_handle_errors
def invoice_show(
    ctx: typer.Context,
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
):
    """Show one invoice with its line items."""
    invoice = _services(ctx).invoices.get(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)

    console.print(f"\n[bold cyan]{invoice.invoice_number}[/bold cyan]  {_status(invoice.status)}")
    if invoice.client:
        company = f" ({invoice.client.company})" if invoice.client.company else ""
        console.print(f"Bill to: {invoice.client.name}{company} <{invoice.client.email}>")
    console.print(f"Issued {invoice.issue_date}  ·  Due {invoice.due_date}\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Description")
    table.add_column("Qty", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    for item in invoice.line_items:
        table.add_row(item.description, f"{item.quantity:g}", _money(item.rate), _money(item.amount))
    console.print(table)

    console.print(f"  Subtotal: {_money(invoice.subtotal)}")
    console.print(f"  Tax:      {_money(invoice.tax)}")
    console.print(f"  [bold]Total:    {_money(invoice.total)}[/bold]")
    if invoice.notes:
        console.print(f"\n[dim]{invoice.notes}[/dim]")


@invoice_app.command("update")
@_handle_errors
def invoice_update(
    ctx: typer.Context,
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    client_id: Optional[str] = typer.Option(None, "--client"),
    items: Optional[List[str]] = typer.Option(
        None, "--item", help="Replaces ALL line items when given"
    ),
    issue_date: Optional[str] = typer.Option(None, "--issue-date"),
    due_date: Optional[str] = typer.Option(None, "--due-date"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    status: Optional[InvoiceStatus] = typer.Option(None, "--status"),
):
    """Edit an invoice. Options left out keep their current value."""
    services = _services(ctx)
    existing = services.invoices.get(invoice_id)
    if existing is None:
        raise NotFoundError("Invoice", invoice_id)

    if items:
        line_items = [_parse_item(raw) for raw in items]
    else:
        line_items = [
            LineItemInput(description=i.description, quantity=i.quantity, rate=i.rate)
            for i in existing.line_items
        ]

    data = InvoiceInput(
        client_id=client_id or existing.client_id,
        issue_date=_parse_date(issue_date, "--issue-date") or existing.issue_date,
        due_date=_parse_date(due_date, "--due-date") or existing.due_date,
        line_items=line_items,
        notes=existing.notes if notes is None else notes,
        status=status,
    )
    invoice = services.invoices.update(invoice_id, data, services.clients.list())
    console.print(f"[green]✓ Updated {invoice.invoice_number}[/green] total {_money(invoice.total)}")


@invoice_app.command("send")
@_handle_errors
def invoice_send(ctx: typer.Context, invoice_id: str = typer.Argument(...)):
    """Mark an invoice as sent."""
    invoice = _services(ctx).invoices.mark_as_sent(invoice_id)
    console.print(f"[blue]✓ {invoice.invoice_number} marked as sent[/blue]")


@invoice_app.command("pay")
@_handle_errors
def invoice_pay(ctx: typer.Context, invoice_id: str = typer.Argument(...)):
    """Mark an invoice as paid."""
    invoice = _services(ctx).invoices.mark_as_paid(invoice_id)
    console.print(f"[green]✓ {invoice.invoice_number} marked as paid[/green]")


@invoice_app.command("duplicate")
@_handle_errors
def invoice_duplicate(ctx: typer.Context, invoice_id: str = typer.Argument(...)):
    """Copy an invoice as a new draft dated today."""
    services = _services(ctx)
    invoice = services.invoices.duplicate(invoice_id, services.clients.list())
    console.print(f"[green]✓ Created draft {invoice.invoice_number}[/green] [dim]({invoice.id})[/dim]")


@invoice_app.command("delete")
@_handle_errors
def invoice_delete(ctx: typer.Context, invoice_id: str = typer.Argument(...)):
    """Delete an invoice."""
    _services(ctx).invoices.delete(invoice_id)
    console.print(f"[green]✓ Deleted invoice {invoice_id}[/green]")


@invoice_app.command("next-number")
@_handle_errors
def invoice_next_number(ctx: typer.Context):
    """Preview the number the next invoice will get."""
    services = _services(ctx)
    console.print(services.sequencer.peek(services.tenant))


@invoice_app.command("pdf")
@_handle_errors
def invoice_pdf(
    ctx: typer.Context,
    invoice_id: str = typer.Argument(...),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to save the PDF"),
):
    """Export an invoice as PDF."""
    invoice = _services(ctx).invoices.get(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)

    path = write_invoice_pdf(invoice, output or Path(f"{invoice.invoice_number}.pdf"))
    console.print(f"[green]✓ PDF saved to {path}[/green]")


# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------
@app.command()
@_handle_errors
def dashboard(ctx: typer.Context):
    """Show business metrics and the most recent invoices and clients."""
    data = load_dashboard(_services(ctx))
    m = data.metrics

    console.print("\n[bold cyan]=== Dashboard ===[/bold cyan]\n")
    console.print(f"  [green]Revenue:  {_money(m.total_revenue)}[/green]  ({m.paid_invoices} paid)")
    console.print(f"  [blue]Pending:  {_money(m.pending_amount)}[/blue]  ({m.pending_invoices} sent)")
    console.print(f"  [red]Overdue:  {_money(m.overdue_amount)}[/red]  ({m.overdue_invoices} overdue)")
    console.print(f"  Drafts:   {m.draft_invoices}")
    console.print(f"  Clients:  {m.total_clients}\n")

    console.print(_invoice_table(data.recent_invoices, title="Recent invoices"))

    if data.recent_clients:
        console.print("\n[bold]Recent clients:[/bold]")
        for c in data.recent_clients:
            console.print(f"  • {c.name} <{c.email}> [dim]{c.created_at}[/dim]")


if __name__ == "__main__":
    app()
