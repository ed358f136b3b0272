"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Operator command line for the product cache.

Usage examples:
  productcache clear
  productcache consent accept
  PRODUCTCACHE_FLAT_PATH=~/.productcache.json productcache get shirts
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from .api import get_product_cache
from .cache import ProductCache


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="productcache", description="Product cache utility")
    parser.add_argument("-v", "--verbose", action="store_true", help="log cache activity")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("clear", help="clear every cached product list")
    sub.add_parser("sweep", help="delete expired entries")

    consent = sub.add_parser("consent", help="show or record caching consent")
    consent.add_argument("action", choices=("show", "accept", "reject"))

    get = sub.add_parser("get", help="print one cached product list as JSON")
    get.add_argument("key")
    return parser.parse_args(argv)


async def _run_async(cache: ProductCache, args: argparse.Namespace) -> int:
    try:
        if args.command == "clear":
            await cache.clear_product_cache()
            print("All product caches cleared")
            return 0
        if args.command == "sweep":
            removed = await cache.purge_expired()
            print(f"Removed {removed} expired entries")
            return 0
        data = await cache.get(args.key)
        if data is None:
            print(f"No cached products for {args.key!r}", file=sys.stderr)
            return 1
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return 0
    finally:
        await cache.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    cache = get_product_cache()
    if args.command == "consent":
        if args.action == "show":
            print(cache.consent.get_permission() or "unset")
            return 0
        cache.consent.set_permission("accepted" if args.action == "accept" else "rejected")
        if cache.consent.get_permission() is None:
            print("Could not record consent", file=sys.stderr)
            return 1
        # Rejection leaves the structured purge pending until a loop runs it.
        if args.action == "reject":
            asyncio.run(_run_async(cache, argparse.Namespace(command="clear")))
        return 0
    return asyncio.run(_run_async(cache, args))


if __name__ == "__main__":
    raise SystemExit(main())
