"""
Persistence adapters for Invoicey.

The services only need a small contract: load / save the full client list,
the full invoice list and the invoice-number counter for one tenant. Every
operation is a whole-collection read-modify-write, so each adapter also hands
out a per-tenant lock that the services hold around those cycles.

Two adapters ship here:
- InMemoryStorage  → tests and throwaway sessions
- JSONFileStorage  → one folder per tenant with plain JSON files

A hosted database adapter would implement the same StorageAdapter methods.
"""

import copy
import json
import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .errors import StorageError
from .models import Client, Invoice, SequenceCounter

logger = logging.getLogger(__name__)

TENANT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def validate_tenant(tenant: str) -> str:
    """Tenant ids are used as partition keys and folder names."""
    if not tenant or not TENANT_PATTERN.match(tenant) or tenant in (".", ".."):
        raise ValueError(f"Invalid tenant identifier: {tenant!r}")
    return tenant


class StorageAdapter(ABC):
    """Contract every backend implements. All reads return fresh objects."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def lock(self, tenant: str) -> threading.RLock:
        """Re-entrant lock serializing writes for one tenant."""
        with self._locks_guard:
            if tenant not in self._locks:
                self._locks[tenant] = threading.RLock()
            return self._locks[tenant]

    @abstractmethod
    def get_clients(self, tenant: str) -> List[Client]: ...

    @abstractmethod
    def set_clients(self, tenant: str, clients: List[Client]) -> None: ...

    @abstractmethod
    def get_invoices(self, tenant: str) -> List[Invoice]: ...

    @abstractmethod
    def set_invoices(self, tenant: str, invoices: List[Invoice]) -> None: ...

    @abstractmethod
    def get_sequence_counter(self, tenant: str) -> Optional[SequenceCounter]: ...

    @abstractmethod
    def set_sequence_counter(
        self, tenant: str, counter: Optional[SequenceCounter]
    ) -> None:
        """Persist the counter. ``None`` removes it."""

    @abstractmethod
    def clear(self, tenant: str) -> None:
        """Drop all data for a tenant."""


# ----------------------------------------------------------------------
# In-memory adapter
# ----------------------------------------------------------------------
class InMemoryStorage(StorageAdapter):
    """Dict-backed adapter. Values are deep-copied in and out."""

    def __init__(self) -> None:
        super().__init__()
        self._clients: Dict[str, List[Client]] = {}
        self._invoices: Dict[str, List[Invoice]] = {}
        self._counters: Dict[str, SequenceCounter] = {}

    def get_clients(self, tenant: str) -> List[Client]:
        return copy.deepcopy(self._clients.get(validate_tenant(tenant), []))

    def set_clients(self, tenant: str, clients: List[Client]) -> None:
        self._clients[validate_tenant(tenant)] = copy.deepcopy(list(clients))

    def get_invoices(self, tenant: str) -> List[Invoice]:
        return copy.deepcopy(self._invoices.get(validate_tenant(tenant), []))

    def set_invoices(self, tenant: str, invoices: List[Invoice]) -> None:
        self._invoices[validate_tenant(tenant)] = copy.deepcopy(list(invoices))

    def get_sequence_counter(self, tenant: str) -> Optional[SequenceCounter]:
        counter = self._counters.get(validate_tenant(tenant))
        return counter.model_copy() if counter else None

    def set_sequence_counter(
        self, tenant: str, counter: Optional[SequenceCounter]
    ) -> None:
        tenant = validate_tenant(tenant)
        if counter is None:
            self._counters.pop(tenant, None)
        else:
            self._counters[tenant] = counter.model_copy()

    def clear(self, tenant: str) -> None:
        tenant = validate_tenant(tenant)
        self._clients.pop(tenant, None)
        self._invoices.pop(tenant, None)
        self._counters.pop(tenant, None)


# ----------------------------------------------------------------------
# JSON file adapter
# ----------------------------------------------------------------------
class JSONFileStorage(StorageAdapter):
    """
    Stores each tenant under ``<data_dir>/<tenant>/``:

        clients.json    list of clients
        invoices.json   list of invoices (line items embedded)
        sequence.json   {"year": ..., "sequence": ...}

    Writes go to a temp file in the same folder and are moved into place,
    so a crash mid-write never leaves a half-written file behind.
    """

    CLIENTS_FILE = "clients.json"
    INVOICES_FILE = "invoices.json"
    SEQUENCE_FILE = "sequence.json"

    def __init__(self, data_dir: str) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)

    def _tenant_dir(self, tenant: str) -> Path:
        return self.data_dir / validate_tenant(tenant)

    def _read(self, tenant: str, filename: str):
        path = self._tenant_dir(tenant) / filename
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Failed to read %s", path)
            raise StorageError(f"Could not read {path}", cause=exc) from exc

    def _write(self, tenant: str, filename: str, payload) -> None:
        folder = self._tenant_dir(tenant)
        path = folder / filename
        try:
            folder.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=folder, prefix=f".{filename}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, default=str)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.exception("Failed to write %s", path)
            raise StorageError(f"Could not write {path}", cause=exc) from exc

    def _parse(self, model, raw: list, path_hint: str) -> list:
        try:
            return [model(**item) for item in raw]
        except (TypeError, PydanticValidationError) as exc:
            logger.exception("Stored data in %s is not valid", path_hint)
            raise StorageError(f"Stored data in {path_hint} is corrupt", cause=exc) from exc

    def get_clients(self, tenant: str) -> List[Client]:
        raw = self._read(tenant, self.CLIENTS_FILE) or []
        return self._parse(Client, raw, self.CLIENTS_FILE)

    def set_clients(self, tenant: str, clients: List[Client]) -> None:
        self._write(
            tenant, self.CLIENTS_FILE, [c.model_dump(mode="json") for c in clients]
        )

    def get_invoices(self, tenant: str) -> List[Invoice]:
        raw = self._read(tenant, self.INVOICES_FILE) or []
        return self._parse(Invoice, raw, self.INVOICES_FILE)

    def set_invoices(self, tenant: str, invoices: List[Invoice]) -> None:
        self._write(
            tenant, self.INVOICES_FILE, [i.model_dump(mode="json") for i in invoices]
        )

    def get_sequence_counter(self, tenant: str) -> Optional[SequenceCounter]:
        raw = self._read(tenant, self.SEQUENCE_FILE)
        if raw is None:
            return None
        return self._parse(SequenceCounter, [raw], self.SEQUENCE_FILE)[0]

    def set_sequence_counter(
        self, tenant: str, counter: Optional[SequenceCounter]
    ) -> None:
        if counter is None:
            path = self._tenant_dir(tenant) / self.SEQUENCE_FILE
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Could not remove {path}", cause=exc) from exc
            return
        self._write(tenant, self.SEQUENCE_FILE, counter.model_dump(mode="json"))

    def clear(self, tenant: str) -> None:
        for filename in (self.CLIENTS_FILE, self.INVOICES_FILE, self.SEQUENCE_FILE):
            path = self._tenant_dir(tenant) / filename
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Could not remove {path}", cause=exc) from exc


def create_storage(settings: Settings) -> StorageAdapter:
    """Pick the adapter named in settings."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend == "json":
        return JSONFileStorage(settings.data_dir)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
