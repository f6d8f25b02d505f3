from decimal import Decimal
from typing import Dict, Optional

from backoffice.core.errors import ValidationFailed
from backoffice.utils.text_cleaner import is_valid_email, normalize_currency, normalize_whitespace


class FieldErrors:
    """Collects per-field messages so one response can report all of them."""

    def __init__(self) -> None:
        self.errors: Dict[str, str] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def check(self, condition: bool, field: str, message: str) -> None:
        if not condition:
            self.add(field, message)

    def non_negative(self, value: Optional[Decimal], field: str) -> None:
        if value is None:
            self.add(field, "This field is required.")
        elif value < 0:
            self.add(field, "Must be zero or greater.")

    def max_length(self, value: Optional[str], field: str, limit: int) -> None:
        if value is not None and len(value) > limit:
            self.add(field, f"May not be greater than {limit} characters.")

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationFailed(self.errors)


def resolve_currency(value: Optional[str], default: str, errors: FieldErrors) -> str:
    currency = normalize_currency(value) or default
    errors.check(len(currency) == 3 and currency.isalpha(), "currency", "Currency must be a 3-letter code.")
    return currency


def validate_party(payload, errors: FieldErrors) -> None:
    """Shared rules for supplier and investor contact details."""
    errors.check(bool(normalize_whitespace(payload.name)), "name", "Name is required.")
    errors.max_length(payload.name, "name", 255)
    email = normalize_whitespace(payload.email)
    if email:
        errors.check(is_valid_email(email), "email", "The email must be a valid email address.")
        errors.max_length(email, "email", 255)
    errors.max_length(payload.phone, "phone", 30)
    errors.max_length(payload.address, "address", 255)
