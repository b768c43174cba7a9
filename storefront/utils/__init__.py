"""Utilities package."""

from storefront.utils.helpers import (
    capitalize_category,
    coerce_number,
    generate_pkce_pair,
    generate_uuid,
    truncate_text,
)
from storefront.utils.logger import setup_logging

__all__ = [
    "setup_logging",
    "generate_uuid",
    "generate_pkce_pair",
    "coerce_number",
    "capitalize_category",
    "truncate_text",
]
