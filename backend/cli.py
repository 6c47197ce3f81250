"""Maintenance commands for the cache collections.

    python cli.py purge-trends [--all-trends]
    python cli.py seed-options
"""

import argparse
import asyncio
import logging

from config import settings
from errors import AppError
from services.context import ServiceContext, build_context
from services.inspiration_cache import TRENDING_SCOPES, CacheScope

logger = logging.getLogger(__name__)


async def purge_trends(context: ServiceContext, all_trends: bool = False) -> int:
    """Delete cached trending keyword entries so the next request refetches them."""
    scopes = list(TRENDING_SCOPES)
    if all_trends:
        scopes.append(CacheScope.TIME_SERIES)
    deleted = await context.inspiration_cache.purge(scopes)
    print(f"[done] cleared {deleted} cached trending entries")
    return 0


async def seed_options(context: ServiceContext) -> int:
    """Force-refresh categories and geographic options. Each is attempted independently."""
    await context.trends.initialize()
    if not context.trends.is_ready():
        print("[error] Google Trends service is not configured (set RAPIDAPI_KEY)")
        return 1

    try:
        categories = await context.trends.get_categories(force_refresh=True)
        print(f"[done] cached {len(categories)} categories, e.g. {', '.join(map(str, categories[:5]))}")
    except AppError as e:
        print(f"[error] failed to fetch categories: {e}")

    try:
        geo = await context.trends.get_geographic(force_refresh=True)
        countries = list(geo["countries"])
        print(f"[done] cached {len(countries)} countries, e.g. {', '.join(countries[:5])}")
    except AppError as e:
        print(f"[error] failed to fetch geographic options: {e}")

    return 0


async def _run(args: argparse.Namespace, context: ServiceContext | None = None) -> int:
    context = context or build_context(settings)
    try:
        await context.inspiration_cache.setup()
        await context.options.setup()
        if args.command == "purge-trends":
            return await purge_trends(context, all_trends=args.all_trends)
        return await seed_options(context)
    finally:
        await context.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspiration API cache maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    purge = sub.add_parser("purge-trends", help="Delete cached trending keyword entries")
    purge.add_argument(
        "--all-trends",
        action="store_true",
        help="Also delete cached keyword analytics (interest over time, related queries, ...)",
    )

    sub.add_parser("seed-options", help="Fetch and cache trends categories and geographic options")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
