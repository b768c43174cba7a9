"""Data models package."""

from storefront.models.auth import AuthSession, AuthUser, SignUpResult
from storefront.models.cart import CartDebugInfo, CartLine, CartSummary, CartView
from storefront.models.owner import Owner, OwnerKind, ResolveMode
from storefront.models.product import Product, ProductSearchParams
from storefront.models.request import (
    AddToCartRequest,
    ChatRequest,
    ChatResponse,
    ConversationTurn,
    ErrorResponse,
    HealthResponse,
    RenderableDocument,
    RenderNode,
    ShopResponse,
    ToolCallRecord,
    ToolResultRecord,
)

__all__ = [
    # Identity models
    "AuthUser",
    "AuthSession",
    "SignUpResult",
    "Owner",
    "OwnerKind",
    "ResolveMode",
    # Catalog models
    "Product",
    "ProductSearchParams",
    # Cart models
    "CartLine",
    "CartSummary",
    "CartView",
    "CartDebugInfo",
    # Conversation models
    "ConversationTurn",
    "ToolCallRecord",
    "ToolResultRecord",
    "RenderNode",
    "RenderableDocument",
    # Request/Response models
    "AddToCartRequest",
    "ChatRequest",
    "ChatResponse",
    "ShopResponse",
    "HealthResponse",
    "ErrorResponse",
]
