import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_whitespace(text: Optional[str]) -> str:
    if not text:
        return ""
    text = str(text).strip()
    text = re.sub(r"\s+", " ", text)
    return text


def clean_optional(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace; blank strings become None."""
    return normalize_whitespace(text) or None


def normalize_barcode(text: Optional[str]) -> str:
    """
    Barcodes as string, no spaces.
    """
    if text is None:
        return ""
    text = str(text).strip()
    text = text.replace(" ", "")
    return text


def normalize_currency(text: Optional[str]) -> str:
    return normalize_whitespace(text).upper()


def is_valid_email(text: str) -> bool:
    return bool(EMAIL_RE.match(text))
