"""Cart data models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from storefront.models.owner import OwnerKind
from storefront.models.product import Product
from storefront.utils.helpers import coerce_number


class CartLine(BaseModel):
    """One row of ``cart_items`` with its product embedded."""

    id: int = Field(..., description="Cart line id (row id)")
    productId: int
    ownerId: str
    ownerKind: OwnerKind
    quantity: int = Field(default=1, ge=1)
    createdAt: Optional[datetime] = None
    product: Optional[Product] = None

    @field_validator("id", "productId", "quantity", mode="before")
    @classmethod
    def normalize_wide_numbers(cls, v: Any) -> Any:
        return coerce_number(v)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CartLine":
        """Build a line from a PostgREST row selected as ``*, product(*)``."""
        if row.get("user_id"):
            owner_kind, owner_id = OwnerKind.USER, row["user_id"]
        else:
            owner_kind, owner_id = OwnerKind.GUEST, row.get("guest_id")

        product = row.get("product")
        return cls(
            id=row["id"],
            productId=row["product_id"],
            ownerId=owner_id,
            ownerKind=owner_kind,
            quantity=row.get("quantity") or 1,
            createdAt=row.get("created_at"),
            product=Product.model_validate(product) if product else None,
        )

    @property
    def line_total(self) -> float:
        if self.product is None:
            return 0.0
        return round(self.product.price * self.quantity, 2)


class CartSummary(BaseModel):
    """Totals shown next to the cart."""

    itemCount: int = 0
    subtotal: float = 0.0


class CartView(BaseModel):
    """Cart as returned to the presentation layer."""

    items: list[CartLine] = Field(default_factory=list)
    summary: CartSummary = Field(default_factory=CartSummary)

    @classmethod
    def from_lines(cls, lines: list[CartLine]) -> "CartView":
        return cls(
            items=lines,
            summary=CartSummary(
                itemCount=sum(line.quantity for line in lines),
                subtotal=round(sum(line.line_total for line in lines), 2),
            ),
        )


class CartDebugInfo(BaseModel):
    """Snapshot used to diagnose cart ownership problems."""

    serverGuestCookie: str
    serverUserId: str
    cartItemsSnapshot: list[dict[str, Any]] = Field(default_factory=list)
