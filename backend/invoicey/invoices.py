"""
Invoice service: the calculation engine and lifecycle rules.

Lifecycle:  draft → sent → paid
                     └──→ overdue → paid

- draft → sent      mark_as_sent()
- sent → paid       mark_as_paid()
- sent → overdue    check_overdue(), once the due date has passed
- overdue → paid    mark_as_paid()
Nothing ever moves back to draft. An invoice can also be created directly
as "sent".

Totals are rounded to cents independently:
    subtotal = round2(sum(quantity * rate))
    tax      = round2(subtotal * tax_rate / 100)
    total    = round2(subtotal + tax)
so subtotal can differ by up to a cent from the sum of the already rounded
line amounts. That is a known approximation and is kept as is.
"""

import logging
from datetime import date
from typing import Callable, List, Optional, Sequence

from .errors import NotFoundError, StorageError, ValidationError
from .models import (
    Client,
    Invoice,
    InvoiceInput,
    InvoiceStatus,
    LineItem,
    LineItemInput,
    Totals,
    ValidationResult,
)
from .numbering import InvoiceNumberSequencer
from .storage import StorageAdapter
from .utils import generate_id, round2, today, utcnow
from .validator import InvoiceValidator

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = 10.0


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------
def calculate_totals(
    line_items: Sequence[LineItemInput], tax_rate: float = DEFAULT_TAX_RATE
) -> Totals:
    subtotal = sum(item.quantity * item.rate for item in line_items)
    tax = subtotal * (tax_rate / 100)
    total = subtotal + tax

    return Totals(subtotal=round2(subtotal), tax=round2(tax), total=round2(total))


def build_line_item(data: LineItemInput) -> LineItem:
    return LineItem(
        id=generate_id("item"),
        description=data.description,
        quantity=data.quantity,
        rate=data.rate,
        amount=round2(data.quantity * data.rate),
    )


def search_invoices(query: str, invoices: List[Invoice]) -> List[Invoice]:
    """Match on invoice number, client name or client company (case-insensitive)."""
    if not query or not query.strip():
        return invoices

    needle = query.strip().lower()

    def matches(inv: Invoice) -> bool:
        if needle in inv.invoice_number.lower():
            return True
        if inv.client is None:
            return False
        if needle in inv.client.name.lower():
            return True
        return inv.client.company is not None and needle in inv.client.company.lower()

    return [inv for inv in invoices if matches(inv)]


def filter_by_status(status: Optional[str], invoices: List[Invoice]) -> List[Invoice]:
    """"all" or an empty status keeps everything."""
    if not status or status == "all":
        return invoices
    return [inv for inv in invoices if inv.status == status]


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------
class InvoiceService:
    def __init__(
        self,
        storage: StorageAdapter,
        tenant: str,
        sequencer: Optional[InvoiceNumberSequencer] = None,
        tax_rate: float = DEFAULT_TAX_RATE,
        clock: Callable[[], date] = today,
    ):
        self.storage = storage
        self.tenant = tenant
        self.sequencer = sequencer or InvoiceNumberSequencer(storage, clock=clock)
        self.tax_rate = tax_rate
        self.clock = clock
        self.validator = InvoiceValidator()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self) -> List[Invoice]:
        return self.storage.get_invoices(self.tenant)

    def get(self, invoice_id: str) -> Optional[Invoice]:
        return next((inv for inv in self.list() if inv.id == invoice_id), None)

    def validate(self, data: InvoiceInput) -> ValidationResult:
        return self.validator.validate(data)

    def calculate_totals(self, line_items: Sequence[LineItemInput]) -> Totals:
        return calculate_totals(line_items, self.tax_rate)

    def search(self, query: str, invoices: Optional[List[Invoice]] = None) -> List[Invoice]:
        return search_invoices(query, self.list() if invoices is None else invoices)

    def filter_by_status(
        self, status: Optional[str], invoices: Optional[List[Invoice]] = None
    ) -> List[Invoice]:
        return filter_by_status(status, self.list() if invoices is None else invoices)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_valid(self, data: InvoiceInput) -> None:
        result = self.validate(data)
        if not result.valid:
            raise ValidationError(result.errors)

    @staticmethod
    def _resolve_client(client_id: str, clients: List[Client]) -> Client:
        client = next((c for c in clients if c.id == client_id), None)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client.model_copy()

    @staticmethod
    def _index_of(invoices: List[Invoice], invoice_id: str) -> int:
        for i, inv in enumerate(invoices):
            if inv.id == invoice_id:
                return i
        raise NotFoundError("Invoice", invoice_id)

    def _append_with_number(self, build: Callable[[str], Invoice]) -> Invoice:
        """
        Take the next invoice number, build the invoice with it, and append
        it to the stored collection. If the invoice write fails the counter
        is put back so no number is burned and stored state is unchanged.
        """
        with self.storage.lock(self.tenant):
            invoices = self.storage.get_invoices(self.tenant)
            previous_counter = self.storage.get_sequence_counter(self.tenant)
            invoice = build(self.sequencer.next_number(self.tenant))
            invoices.append(invoice)
            try:
                self.storage.set_invoices(self.tenant, invoices)
            except StorageError:
                logger.error(
                    "Saving invoice %s failed, restoring sequence counter",
                    invoice.invoice_number,
                )
                self.storage.set_sequence_counter(self.tenant, previous_counter)
                raise
        return invoice

    def _set_status(self, invoice_id: str, status: InvoiceStatus) -> Invoice:
        with self.storage.lock(self.tenant):
            invoices = self.storage.get_invoices(self.tenant)
            index = self._index_of(invoices, invoice_id)
            updated = invoices[index].model_copy(
                update={"status": status, "updated_at": utcnow()}
            )
            invoices[index] = updated
            self.storage.set_invoices(self.tenant, invoices)

        logger.info("Invoice %s marked as %s", updated.invoice_number, status.value)
        return updated

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def create(self, data: InvoiceInput, clients: List[Client]) -> Invoice:
        """
        Validate, resolve the client from `clients`, compute line amounts and
        totals, assign a number and store the new invoice.

        An unknown client id is a caller error (NotFoundError), not a
        validation failure.
        """
        self._ensure_valid(data)
        client = self._resolve_client(data.client_id, clients)
        line_items = [build_line_item(item) for item in data.line_items]
        totals = self.calculate_totals(data.line_items)

        def build(number: str) -> Invoice:
            return Invoice(
                id=generate_id("invoice"),
                invoice_number=number,
                client_id=data.client_id,
                client=client,
                status=data.status or InvoiceStatus.DRAFT,
                issue_date=data.issue_date,
                due_date=data.due_date,
                line_items=line_items,
                subtotal=totals.subtotal,
                tax=totals.tax,
                total=totals.total,
                notes=data.notes,
                created_at=self.clock(),
            )

        invoice = self._append_with_number(build)
        logger.info(
            "Created invoice %s for client %s (total %.2f)",
            invoice.invoice_number,
            invoice.client_id,
            invoice.total,
        )
        return invoice

    def update(self, invoice_id: str, data: InvoiceInput, clients: List[Client]) -> Invoice:
        """
        Full replace of the editable fields. `id`, `invoice_number` and
        `created_at` always come from the stored record; line items and
        totals are rebuilt from the input; a missing status keeps the
        current one.
        """
        self._ensure_valid(data)

        with self.storage.lock(self.tenant):
            invoices = self.storage.get_invoices(self.tenant)
            index = self._index_of(invoices, invoice_id)
            client = self._resolve_client(data.client_id, clients)
            existing = invoices[index]
            totals = self.calculate_totals(data.line_items)

            updated = Invoice(
                id=existing.id,
                invoice_number=existing.invoice_number,
                created_at=existing.created_at,
                client_id=data.client_id,
                client=client,
                status=data.status or existing.status,
                issue_date=data.issue_date,
                due_date=data.due_date,
                line_items=[build_line_item(item) for item in data.line_items],
                subtotal=totals.subtotal,
                tax=totals.tax,
                total=totals.total,
                notes=data.notes,
                updated_at=utcnow(),
            )
            invoices[index] = updated
            self.storage.set_invoices(self.tenant, invoices)

        logger.info("Updated invoice %s", updated.invoice_number)
        return updated

    def delete(self, invoice_id: str) -> None:
        with self.storage.lock(self.tenant):
            invoices = self.storage.get_invoices(self.tenant)
            index = self._index_of(invoices, invoice_id)
            removed = invoices.pop(index)
            self.storage.set_invoices(self.tenant, invoices)

        logger.info("Deleted invoice %s", removed.invoice_number)

    # ------------------------------------------------------------------
    # Status management
    # ------------------------------------------------------------------
    def mark_as_paid(self, invoice_id: str) -> Invoice:
        return self._set_status(invoice_id, InvoiceStatus.PAID)

    def mark_as_sent(self, invoice_id: str) -> Invoice:
        return self._set_status(invoice_id, InvoiceStatus.SENT)

    def check_overdue(self, invoices: Optional[List[Invoice]] = None) -> List[Invoice]:
        """
        Batch scan: every "sent" invoice whose due date is before today
        becomes "overdue". Must be called explicitly (e.g. when the
        dashboard loads).

        `invoices` limits the scan to those records and the same list comes
        back with the transitions applied. The stored collection is always
        the one that gets updated (matched by id), and it is saved only when
        something changed. Invoices outside `invoices` are never touched.
        """
        current_day = self.clock()

        def is_overdue(inv: Invoice) -> bool:
            return inv.status == InvoiceStatus.SENT and inv.due_date < current_day

        def mark(inv: Invoice) -> Invoice:
            return inv.model_copy(update={"status": InvoiceStatus.OVERDUE})

        with self.storage.lock(self.tenant):
            stored = self.storage.get_invoices(self.tenant)
            source = stored if invoices is None else invoices
            due_ids = {inv.id for inv in source if is_overdue(inv)}

            changed = 0
            for i, inv in enumerate(stored):
                if inv.id in due_ids and is_overdue(inv):
                    stored[i] = mark(inv)
                    changed += 1

            if changed:
                self.storage.set_invoices(self.tenant, stored)
                logger.info("%d invoice(s) became overdue for tenant %s", changed, self.tenant)

        if invoices is None:
            return stored
        return [mark(inv) if inv.id in due_ids else inv for inv in invoices]

    # ------------------------------------------------------------------
    # Duplication
    # ------------------------------------------------------------------
    def duplicate(self, invoice_id: str, clients: List[Client]) -> Invoice:
        """
        Copy an invoice as a new draft dated today.

        The client snapshot is taken from the current client list, line items
        get new ids, totals and notes are copied as they are. The due date is
        carried over unchanged (not shifted relative to the new issue date).
        """
        original = self.get(invoice_id)
        if original is None:
            raise NotFoundError("Invoice", invoice_id)

        client = self._resolve_client(original.client_id, clients)
        current_day = self.clock()
        line_items = [
            item.model_copy(update={"id": generate_id("item")})
            for item in original.line_items
        ]

        def build(number: str) -> Invoice:
            return Invoice(
                id=generate_id("invoice"),
                invoice_number=number,
                client_id=original.client_id,
                client=client,
                status=InvoiceStatus.DRAFT,
                issue_date=current_day,
                due_date=original.due_date,
                line_items=line_items,
                subtotal=original.subtotal,
                tax=original.tax,
                total=original.total,
                notes=original.notes,
                created_at=current_day,
            )

        invoice = self._append_with_number(build)
        logger.info(
            "Duplicated invoice %s as %s", original.invoice_number, invoice.invoice_number
        )
        return invoice
