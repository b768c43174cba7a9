"""Storefront backend: guest/user carts and the store assistant."""

__version__ = "1.0.0"
