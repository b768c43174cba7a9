"""Utility helper functions."""

import base64
import hashlib
import secrets
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any


def generate_uuid() -> str:
    """Generate a random UUID4 (backed by the OS CSPRNG)."""
    return str(uuid.uuid4())


def generate_pkce_pair() -> tuple[str, str]:
    """Return a PKCE ``(code_verifier, code_challenge)`` pair using S256."""
    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def coerce_number(value: Any) -> Any:
    """Normalize a wide numeric value (bigint string, Decimal) to int or float.

    Values that are not numeric are returned unchanged so callers can let
    model validation report them.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            parsed = Decimal(stripped)
        except (InvalidOperation, ValueError):
            return value
        if "." not in stripped and "e" not in stripped.lower():
            return int(parsed)
        return float(parsed)
    return value


def capitalize_category(category: str) -> str:
    """Canonical category casing: first letter upper, remainder lower."""
    category = category.strip()
    return category[:1].upper() + category[1:].lower()


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate text to maximum length."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix
