"""
Validator module for Invoicey.

This holds the input checks used by:
- the client and invoice services (before every create / update)
- the CLI and the API, which call validate() first to show field errors

Validators never raise for bad input. They return a ValidationResult whose
`errors` dict is keyed by the form field that needs fixing.
"""

import re
from typing import Dict, List, Optional

from .models import ClientInput, InvoiceInput, LineItemInput, ValidationResult

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def is_valid_email(email: str) -> bool:
    """Format check done at the edges (CLI / API) on top of the presence check."""
    return bool(EMAIL_PATTERN.match((email or "").strip()))


class ClientValidator:
    """Presence checks for the client form."""

    def validate(self, data: ClientInput) -> ValidationResult:
        errors: Dict[str, str] = {}

        if _is_blank(data.name):
            errors["name"] = "Name is required"

        if _is_blank(data.email):
            errors["email"] = "Email is required"

        return ValidationResult(valid=not errors, errors=errors)

    def validate_strict(self, data: ClientInput) -> ValidationResult:
        """Presence checks plus the email format check."""
        result = self.validate(data)
        if "email" not in result.errors and not is_valid_email(data.email):
            result.errors["email"] = "Please enter a valid email address"
            result.valid = False
        return result


class InvoiceValidator:
    """
    Checks for the invoice editor.

    Rough grouping:
    - client: an invoice must name a client
    - line items: at least one row, and at least one row with a description

    Negative quantities and rates are allowed (discount rows).
    """

    def validate(self, data: InvoiceInput) -> ValidationResult:
        errors: Dict[str, str] = {}

        errors.update(self._check_client(data))
        errors.update(self._check_line_items(data.line_items))

        return ValidationResult(valid=not errors, errors=errors)

    # ------------------------------------------------------------------
    # Individual rule implementations
    # ------------------------------------------------------------------
    def _check_client(self, data: InvoiceInput) -> Dict[str, str]:
        if _is_blank(data.client_id):
            return {"client_id": "Please select a client"}
        return {}

    def _check_line_items(self, items: List[LineItemInput]) -> Dict[str, str]:
        if not items:
            return {"line_items": "At least one line item is required"}

        if not any(not _is_blank(item.description) for item in items):
            return {"line_items": "At least one line item must have a description"}

        return {}
