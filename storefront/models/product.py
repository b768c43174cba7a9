"""Product data models."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from storefront.utils.helpers import coerce_number


class Product(BaseModel):
    """Catalog product, read-only from the storefront's point of view.

    Accepts both the ``product`` table's column names (``i_id``,
    ``product_name``, ``image_url``) and the API field names.
    """

    id: int = Field(..., validation_alias=AliasChoices("i_id", "id"))
    name: str = Field(..., validation_alias=AliasChoices("product_name", "name"))
    price: float = Field(..., ge=0)
    category: str
    imageUrl: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("image_url", "imageUrl")
    )

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": 42,
                "name": "Ergonomic Steel Keyboard",
                "price": 49.99,
                "category": "Electronics",
                "imageUrl": "https://images.unsplash.com/photo-1526738549149-8e07eca6c147",
            }
        },
    )

    @field_validator("id", "price", mode="before")
    @classmethod
    def normalize_wide_numbers(cls, v: Any) -> Any:
        # bigint ids and numeric prices can arrive as strings or Decimals
        return coerce_number(v)

    @field_validator("price")
    @classmethod
    def round_price(cls, v: float) -> float:
        return round(v, 2)


class ProductSearchParams(BaseModel):
    """Arguments of the ``search_products`` tool. Every field is optional."""

    query: Optional[str] = Field(
        default=None, description="Case-insensitive text matched against product names"
    )
    category: Optional[str] = Field(
        default=None, description="Category such as Electronics, Shoes, Cloths or Toys"
    )
    minPrice: Optional[float] = Field(default=None, description="Lowest price, inclusive")
    maxPrice: Optional[float] = Field(default=None, description="Highest price, inclusive")
    sort: Optional[str] = Field(
        default=None, description="'asc' or 'desc' to order by price; omit for catalog order"
    )
