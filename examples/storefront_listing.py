"""
storefront_listing.py — Product listing with the consent-gated cache.

Demonstrates the storefront read path: check the cache, fetch on a miss, then
store the result for the next hour.

Usage:
    export PRODUCTCACHE_FLAT_PATH=/tmp/productcache.json
    export PRODUCTCACHE_REDIS_URL=redis://localhost:6379/0   # optional
    python examples/storefront_listing.py shirts
"""

import sys

from productcache import (
    get_cached_products,
    get_product_cache,
    set_cache_permission,
    set_cached_products,
    should_show_permission_dialog,
)


async def fetch_products(category: str) -> list[dict]:
    return [
        {"id": 1, "name": f"Basic {category}", "price": 25.0, "discount": 0},
        {"id": 2, "name": f"Premium {category}", "price": 80.0, "discount": 15},
    ]


async def main(category: str) -> None:
    if should_show_permission_dialog():
        set_cache_permission("accepted")

    products = await get_cached_products(category)
    source = "cache"
    if products is None:
        products = await fetch_products(category)
        await set_cached_products(category, products)
        source = "network"

    print(f"{len(products)} {category} from {source}")
    await get_product_cache().aclose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "shirts"))
