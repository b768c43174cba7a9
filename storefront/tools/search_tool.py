"""Search products tool for the store assistant.

The tool returns plain product dicts (ids and prices already normalized to
JSON numbers) so the result can be handed straight back to the model.
"""

import logging
from typing import Any, Optional

from langchain_core.tools import BaseTool, StructuredTool

from storefront.database.supabase import SupabaseClient, SupabaseError
from storefront.models.product import Product, ProductSearchParams
from storefront.utils.helpers import capitalize_category

logger = logging.getLogger(__name__)

PRODUCT_TABLE = "product"
DEFAULT_ORDER = "i_id.asc"

TOOL_DESCRIPTION = (
    "Search the store's product catalog. Use it whenever the user asks about "
    "products, availability, prices or recommendations. All arguments are "
    "optional: 'query' matches product names, 'category' is one of "
    "Electronics, Shoes, Cloths or Toys, 'minPrice'/'maxPrice' are inclusive "
    "bounds, 'sort' is 'asc' or 'desc' by price. Returns at most 5 products."
)


def build_filters(params: ProductSearchParams) -> list[tuple[str, str]]:
    """Translate tool arguments into PostgREST filters."""
    filters: list[tuple[str, str]] = []
    if params.query:
        filters.append(("product_name", f"ilike.*{params.query.strip()}*"))
    if params.category and params.category.strip():
        filters.append(("category", f"eq.{capitalize_category(params.category)}"))
    if params.minPrice is not None:
        filters.append(("price", f"gte.{params.minPrice}"))
    if params.maxPrice is not None:
        filters.append(("price", f"lte.{params.maxPrice}"))
    return filters


def build_order(sort: Optional[str]) -> str:
    direction = (sort or "").strip().lower()
    if direction in ("asc", "desc"):
        return f"price.{direction}"
    return DEFAULT_ORDER


async def search_products(
    supabase: SupabaseClient,
    params: ProductSearchParams,
    limit: int = 5,
) -> list[dict[str, Any]]:
    """Run a catalog search. No matches, or a storage error, yields ``[]``."""
    logger.info("search_products called with %s", params.model_dump(exclude_none=True))
    try:
        rows = await supabase.select(
            PRODUCT_TABLE,
            filters=build_filters(params),
            order=build_order(params.sort),
            limit=limit,
            service=True,
        )
    except SupabaseError as e:
        logger.error("Product search failed: %s", e.message)
        return []

    products = [Product.model_validate(row).model_dump() for row in rows[:limit]]
    logger.info("search_products returning %d product(s)", len(products))
    return products


def create_search_products_tool(supabase: SupabaseClient, limit: int = 5) -> BaseTool:
    """Create the ``search_products`` tool bound to a Supabase client.

    Args:
        supabase: Connected client; the search runs with the service-role key
            when one is configured.
        limit: Maximum number of products fed back to the model.

    Returns:
        A LangChain tool whose argument schema is :class:`ProductSearchParams`.
    """

    async def _search(
        query: Optional[str] = None,
        category: Optional[str] = None,
        minPrice: Optional[float] = None,
        maxPrice: Optional[float] = None,
        sort: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        params = ProductSearchParams(
            query=query, category=category, minPrice=minPrice, maxPrice=maxPrice, sort=sort
        )
        return await search_products(supabase, params, limit=limit)

    return StructuredTool.from_function(
        coroutine=_search,
        name="search_products",
        description=TOOL_DESCRIPTION,
        args_schema=ProductSearchParams,
    )
