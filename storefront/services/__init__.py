"""Services package."""

from storefront.services.auth_service import AuthService
from storefront.services.cart_service import CartService, CartStore
from storefront.services.catalog_service import CatalogService
from storefront.services.chatbot_service import ChatbotService
from storefront.services.identity_service import IdentityResolver
from storefront.services.response_formatter import format_response

__all__ = [
    "AuthService",
    "CartService",
    "CartStore",
    "CatalogService",
    "ChatbotService",
    "IdentityResolver",
    "format_response",
]
