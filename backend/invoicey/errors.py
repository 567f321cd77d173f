"""Exception types raised by the Invoicey services.

Validation problems, missing records and storage failures are separate
classes so callers (CLI, API) can branch on the type instead of parsing
messages.
"""

from typing import Dict, Optional


class InvoiceyError(Exception):
    """Base exception for Invoicey errors."""

    def __init__(self, message: str, error_code: str = "INTERNAL_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(InvoiceyError):
    """User input failed validation. `fields` maps field name to message."""

    def __init__(self, fields: Dict[str, str]):
        self.fields = dict(fields)
        summary = ", ".join(f"{k}: {v}" for k, v in self.fields.items())
        super().__init__(
            message=f"Validation failed ({summary})",
            error_code="VALIDATION_ERROR",
        )


class NotFoundError(InvoiceyError):
    """A referenced record does not exist for this tenant."""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            message=f'{entity} with ID "{identifier}" not found',
            error_code="RESOURCE_NOT_FOUND",
        )


class StorageError(InvoiceyError):
    """The persistence adapter failed to read or write."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message=message, error_code="STORAGE_ERROR")
