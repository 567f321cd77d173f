"""Small helpers shared by the services: ids, dates and cent rounding."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP


def generate_id(prefix: str) -> str:
    """Return a unique id such as ``invoice_9f1c...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


def today() -> date:
    return date.today()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round2(value: float) -> float:
    """
    Round to cents the way ``round(x * 100) / 100`` does, with ties going
    away from zero (Python's built-in round() would go to even).
    """
    cents = Decimal(repr(value * 100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(cents) / 100
