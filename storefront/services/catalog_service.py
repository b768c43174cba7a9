"""Product catalog reads for the shop page."""

import logging

from storefront.database.supabase import SupabaseClient, SupabaseError
from storefront.models.product import Product

logger = logging.getLogger(__name__)


class CatalogService:
    """Read-only access to the ``product`` table."""

    def __init__(self, supabase: SupabaseClient) -> None:
        self.supabase = supabase

    async def list_products(self) -> list[Product]:
        """All products in catalog order. Filtering and sorting happen client-side."""
        try:
            rows = await self.supabase.select("product", order="i_id.asc")
        except SupabaseError as e:
            logger.error("Catalog read failed: %s", e.message)
            return []

        products: list[Product] = []
        for row in rows:
            try:
                products.append(Product.model_validate(row))
            except ValueError as e:
                logger.warning("Skipping malformed product %s: %s", row.get("i_id"), e)
        return products
