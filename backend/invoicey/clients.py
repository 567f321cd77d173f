"""
Client service: CRUD and search for one tenant's clients.

Deleting a client never touches invoices. Callers are expected to ask
has_dependent_invoices() first and warn the user; the delete itself always
goes through when the client exists.
"""

import logging
from datetime import date
from typing import Callable, List, Optional, Tuple

from .errors import NotFoundError, StorageError, ValidationError
from .models import Client, ClientInput, Invoice, ValidationResult
from .storage import StorageAdapter
from .utils import generate_id, today, utcnow
from .validator import ClientValidator

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim optional text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _with_snapshot(invoices: List[Invoice], client: Client) -> Tuple[List[Invoice], int]:
    """Copy of `invoices` with `client` as the snapshot on its invoices."""
    result: List[Invoice] = []
    count = 0
    for inv in invoices:
        if inv.client_id == client.id:
            inv = inv.model_copy(update={"client": client.model_copy()})
            count += 1
        result.append(inv)
    return result, count


def search_clients(query: str, clients: List[Client]) -> List[Client]:
    """Case-insensitive substring match on name, email and company."""
    if not query or not query.strip():
        return clients

    needle = query.strip().lower()
    return [
        c
        for c in clients
        if needle in c.name.lower()
        or needle in c.email.lower()
        or (c.company is not None and needle in c.company.lower())
    ]


class ClientService:
    def __init__(
        self,
        storage: StorageAdapter,
        tenant: str,
        clock: Callable[[], date] = today,
    ):
        self.storage = storage
        self.tenant = tenant
        self.clock = clock
        self.validator = ClientValidator()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self) -> List[Client]:
        return self.storage.get_clients(self.tenant)

    def get(self, client_id: str) -> Optional[Client]:
        return next((c for c in self.list() if c.id == client_id), None)

    def validate(self, data: ClientInput) -> ValidationResult:
        return self.validator.validate(data)

    def has_dependent_invoices(self, client_id: str) -> bool:
        """True when any invoice still points at this client."""
        return any(
            inv.client_id == client_id
            for inv in self.storage.get_invoices(self.tenant)
        )

    def search(self, query: str, clients: Optional[List[Client]] = None) -> List[Client]:
        return search_clients(query, self.list() if clients is None else clients)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _ensure_valid(self, data: ClientInput) -> None:
        result = self.validate(data)
        if not result.valid:
            raise ValidationError(result.errors)

    def create(self, data: ClientInput) -> Client:
        self._ensure_valid(data)

        client = Client(
            id=generate_id("client"),
            name=data.name.strip(),
            email=data.email.strip(),
            company=_clean(data.company),
            phone=_clean(data.phone),
            address=_clean(data.address),
            created_at=self.clock(),
        )

        with self.storage.lock(self.tenant):
            clients = self.storage.get_clients(self.tenant)
            clients.append(client)
            self.storage.set_clients(self.tenant, clients)

        logger.info("Created client %s for tenant %s", client.id, self.tenant)
        return client

    def update(self, client_id: str, data: ClientInput) -> Client:
        """
        Overwrite a client's editable fields. `id` and `created_at` are kept
        from the stored record whatever the input says.

        Invoices keep a snapshot of their client, so every invoice pointing
        at this client gets the fresh snapshot too. The invoices are written
        first; if the client write then fails they are put back, so a failed
        update leaves both collections as they were.
        """
        self._ensure_valid(data)

        with self.storage.lock(self.tenant):
            clients = self.storage.get_clients(self.tenant)
            index = next(
                (i for i, c in enumerate(clients) if c.id == client_id), None
            )
            if index is None:
                raise NotFoundError("Client", client_id)

            existing = clients[index]
            updated = Client(
                id=existing.id,
                created_at=existing.created_at,
                name=data.name.strip(),
                email=data.email.strip(),
                company=_clean(data.company),
                phone=_clean(data.phone),
                address=_clean(data.address),
                updated_at=utcnow(),
            )
            clients[index] = updated

            previous_invoices = self.storage.get_invoices(self.tenant)
            invoices, refreshed = _with_snapshot(previous_invoices, updated)
            if refreshed:
                self.storage.set_invoices(self.tenant, invoices)

            try:
                self.storage.set_clients(self.tenant, clients)
            except StorageError:
                if refreshed:
                    logger.error(
                        "Saving client %s failed, restoring invoice snapshots", client_id
                    )
                    self.storage.set_invoices(self.tenant, previous_invoices)
                raise

        logger.info(
            "Updated client %s (%d invoice snapshots refreshed)", client_id, refreshed
        )
        return updated

    def delete(self, client_id: str) -> None:
        with self.storage.lock(self.tenant):
            clients = self.storage.get_clients(self.tenant)
            remaining = [c for c in clients if c.id != client_id]
            if len(remaining) == len(clients):
                raise NotFoundError("Client", client_id)
            self.storage.set_clients(self.tenant, remaining)

        logger.info("Deleted client %s for tenant %s", client_id, self.tenant)
