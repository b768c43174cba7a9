"""Product catalog seeding script.

Inserts randomly generated products into the Supabase ``product`` table.
Uses the service-role key, which bypasses row-level security; set
SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in the environment or ``.env``.

Usage:
    python -m scripts.seed_products              # 100 products
    python -m scripts.seed_products --count 20   # fewer products
    python -m scripts.seed_products --seed 7     # reproducible catalog
"""

import argparse
import asyncio
import logging
from typing import Any

from faker import Faker
from faker.providers import BaseProvider

from storefront.config import get_settings
from storefront.database.supabase import SupabaseClient
from storefront.tools.search_tool import PRODUCT_TABLE
from storefront.utils.logger import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

CATEGORIES = ["Electronics", "Shoes", "Cloths", "Toys"]

CATEGORY_IMAGES = {
    "Electronics": "https://images.unsplash.com/photo-1526738549149-8e07eca6c147?auto=format&fit=crop&w=500&q=60",
    "Shoes": "https://images.unsplash.com/photo-1542291026-7eec264c27ff?auto=format&fit=crop&w=500&q=60",
    "Cloths": "https://images.unsplash.com/photo-1523381210434-271e8be1f52b?auto=format&fit=crop&w=500&q=60",
    "Toys": "https://images.unsplash.com/photo-1566576912321-d58ddd7a6088?auto=format&fit=crop&w=500&q=60",
}
FALLBACK_IMAGE = "https://via.placeholder.com/500"

ADJECTIVES = [
    "Awesome", "Elegant", "Ergonomic", "Fantastic", "Generic", "Handcrafted",
    "Incredible", "Intelligent", "Licensed", "Luxurious", "Modern", "Practical",
    "Refined", "Rustic", "Sleek", "Small", "Tasty", "Unbranded",
]
MATERIALS = [
    "Bamboo", "Bronze", "Ceramic", "Concrete", "Cotton", "Frozen", "Granite",
    "Leather", "Metal", "Plastic", "Rubber", "Soft", "Steel", "Wooden",
]
NOUNS = {
    "Electronics": ["Keyboard", "Mouse", "Headphones", "Speaker", "Monitor", "Charger", "Camera"],
    "Shoes": ["Sneakers", "Boots", "Sandals", "Loafers", "Running Shoes", "Slippers"],
    "Cloths": ["Shirt", "Hoodie", "Jacket", "Jeans", "Scarf", "Gloves", "Hat"],
    "Toys": ["Ball", "Puzzle", "Robot", "Car", "Teddy Bear", "Building Set", "Kite"],
}


class CommerceProvider(BaseProvider):
    """Product names and prices in the style of faker-js's ``commerce`` module."""

    def product_category(self) -> str:
        return self.random_element(CATEGORIES)

    def product_name(self, category: str) -> str:
        return " ".join(
            (
                self.random_element(ADJECTIVES),
                self.random_element(MATERIALS),
                self.random_element(NOUNS[category]),
            )
        )

    def price(self, min_price: int = 10, max_price: int = 500) -> float:
        cents = self.random_int(min_price * 100, max_price * 100)
        return cents / 100


def make_faker(seed: int | None = None) -> Faker:
    fake = Faker()
    fake.add_provider(CommerceProvider)
    if seed is not None:
        fake.seed_instance(seed)
    return fake


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the product catalog in Supabase")
    parser.add_argument("--count", type=int, default=100, help="Number of products to insert")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a repeatable catalog")
    return parser.parse_args()


def image_for_category(category: str) -> str:
    return CATEGORY_IMAGES.get(category, FALLBACK_IMAGE)


def generate_products(count: int, fake: Faker) -> list[dict[str, Any]]:
    """Build ``count`` product rows ready for insertion."""
    products = []
    for i in range(count):
        category = fake.product_category()
        products.append(
            {
                "product_name": fake.product_name(category),
                "price": fake.price(),
                "category": category,
                # Distinct URLs so browsers don't show one cached image per category
                "image_url": f"{image_for_category(category)}&random={i}",
            }
        )
    return products


async def seed_products(*, count: int = 100, seed: int | None = None) -> None:
    settings = get_settings()
    if not settings.supabase_service_role_key:
        logger.error("SUPABASE_SERVICE_ROLE_KEY is required to seed products")
        return

    supabase = SupabaseClient(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key,
        timeout=settings.supabase_timeout,
    )
    try:
        logger.info("Seeding %d products...", count)
        await supabase.connect()

        products = generate_products(count, make_faker(seed))
        created = await supabase.insert(PRODUCT_TABLE, products, service=True)

        logger.info("Successfully added %d products", len(created))

    except Exception as e:
        logger.error("Error seeding products: %s", e)
        raise
    finally:
        await supabase.disconnect()


if __name__ == "__main__":
    args = _parse_args()
    asyncio.run(seed_products(count=args.count, seed=args.seed))
