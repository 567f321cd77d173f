"""Invoice number generation.

Numbers come from a per-tenant counter stored through the storage adapter
(never an in-process global), formatted from a template.

Format tokens:
  {year}   → current four-digit year
  {seq:N}  → zero-padded sequence number, N digits

Named formats:
  yearly:   INV-{year}-{seq:3}   sequence resets to 1 every January
  lifetime: INV-{seq:4}          sequence never resets

Any other value is treated as a custom template. A template that contains
{year} resets yearly; one without it keeps counting forever.
"""

import logging
import re
from datetime import date
from typing import Callable, Optional

from .models import SequenceCounter
from .storage import StorageAdapter
from .utils import today

logger = logging.getLogger(__name__)

NAMED_FORMATS = {
    "yearly": "INV-{year}-{seq:3}",
    "lifetime": "INV-{seq:4}",
}

_SEQ_TOKEN = re.compile(r"\{seq:(\d+)\}")


def resolve_format(number_format: str) -> str:
    """Map a named format to its template, or validate a custom one."""
    template = NAMED_FORMATS.get(number_format, number_format)
    if not _SEQ_TOKEN.search(template):
        raise ValueError(f"Invoice number format needs a {{seq:N}} token: {template!r}")
    return template


def format_number(template: str, year: int, sequence: int) -> str:
    """Render a template, e.g. ("INV-{year}-{seq:3}", 2026, 7) → "INV-2026-007"."""
    code = template.replace("{year}", str(year))
    return _SEQ_TOKEN.sub(lambda m: f"{sequence:0{int(m.group(1))}d}", code)


class InvoiceNumberSequencer:
    """Hands out strictly increasing invoice numbers for each tenant."""

    def __init__(
        self,
        storage: StorageAdapter,
        number_format: str = "yearly",
        clock: Callable[[], date] = today,
    ):
        self.storage = storage
        self.template = resolve_format(number_format)
        self.clock = clock

    @property
    def resets_yearly(self) -> bool:
        return "{year}" in self.template

    def _next_sequence(self, counter: Optional[SequenceCounter], year: int) -> int:
        if counter is None:
            return 1
        if self.resets_yearly and counter.year != year:
            return 1
        return counter.sequence + 1

    def peek(self, tenant: str) -> str:
        """The number the next call to next_number() would hand out."""
        year = self.clock().year
        counter = self.storage.get_sequence_counter(tenant)
        return format_number(self.template, year, self._next_sequence(counter, year))

    def next_number(self, tenant: str) -> str:
        """Advance the tenant's counter, persist it, and return the formatted number."""
        with self.storage.lock(tenant):
            year = self.clock().year
            counter = self.storage.get_sequence_counter(tenant)
            sequence = self._next_sequence(counter, year)
            self.storage.set_sequence_counter(
                tenant, SequenceCounter(year=year, sequence=sequence)
            )

        number = format_number(self.template, year, sequence)
        logger.debug("Assigned invoice number %s for tenant %s", number, tenant)
        return number

    def reset(self, tenant: str) -> None:
        """Forget the counter; the next number starts again at 1."""
        with self.storage.lock(tenant):
            self.storage.set_sequence_counter(tenant, None)
