"""API request and response models."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from storefront.models.auth import AuthUser
from storefront.models.cart import CartView
from storefront.models.product import Product


class ToolCallRecord(BaseModel):
    """A structured tool invocation emitted by the model."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultRecord(BaseModel):
    """The result of a tool invocation, fed back to the model."""

    name: str
    response: dict[str, Any] = Field(default_factory=dict)


class ConversationTurn(BaseModel):
    """One entry of the client-held chat history.

    Also accepts the Gemini-style ``{"role", "parts": [...]}`` shape the chat
    widget sends, where a part is ``{"text"}``, ``{"functionCall"}`` or
    ``{"functionResponse"}``.
    """

    role: Literal["user", "model"]
    text: str = ""
    toolCall: Optional[ToolCallRecord] = None
    toolResult: Optional[ToolResultRecord] = None

    @model_validator(mode="before")
    @classmethod
    def from_parts(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "parts" not in data:
            return data

        texts: list[str] = []
        turn: dict[str, Any] = {"role": data.get("role")}
        for part in data.get("parts") or []:
            if not isinstance(part, dict):
                continue
            if part.get("text"):
                texts.append(str(part["text"]))
            if part.get("functionCall") and "toolCall" not in turn:
                turn["toolCall"] = part["functionCall"]
            if part.get("functionResponse") and "toolResult" not in turn:
                turn["toolResult"] = part["functionResponse"]
        turn["text"] = "\n".join(texts)
        return turn


class ChatRequest(BaseModel):
    """Chat request model."""

    message: str = Field(..., min_length=1, max_length=2000, description="User's chat message")
    history: list[ConversationTurn] = Field(
        default_factory=list, description="Prior turns of this conversation, oldest first"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "show me electronics under $50",
                "history": [
                    {"role": "user", "text": "hi"},
                    {"role": "model", "text": "Hello! What are you shopping for today?"},
                ],
            }
        }
    }


class RenderNode(BaseModel):
    """Node of a compiled chat reply (paragraph, list, strong, text, ...)."""

    type: str
    tag: Optional[str] = None
    content: Optional[str] = None
    attrs: dict[str, Any] = Field(default_factory=dict)
    children: list["RenderNode"] = Field(default_factory=list)


class RenderableDocument(BaseModel):
    """Chat reply compiled for the widget: HTML plus the node tree it came from."""

    html: str
    nodes: list[RenderNode] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Chat response model."""

    role: Literal["model"] = "model"
    content: str = Field(..., description="Assistant reply as plain markdown text")
    renderable: RenderableDocument


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str


class AddToCartRequest(BaseModel):
    """Add-to-cart request model."""

    productId: int = Field(..., gt=0, description="Catalog product id")


class ShopResponse(BaseModel):
    """Everything the shop page needs on first render."""

    user: Optional[AuthUser] = None
    products: list[Product] = Field(default_factory=list)
    cart: CartView = Field(default_factory=CartView)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    services: dict[str, str]
