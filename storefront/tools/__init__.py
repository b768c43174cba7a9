"""Tools the store assistant can invoke.

- search_products: search the product catalog by name, category, price range
"""

from storefront.tools.registry import ToolRegistry
from storefront.tools.search_tool import create_search_products_tool, search_products

__all__ = [
    "ToolRegistry",
    "create_search_products_tool",
    "search_products",
]
