"""
Rebuild the referral closure table from users.referrer_ref.

Reads every user's referrer link, derives closure rows up to the
visibility cap and replaces the table contents in one transaction.
Chains that loop are truncated and logged.

Usage:
    python scripts/backfill_closure_table.py
    python scripts/backfill_closure_table.py --dry-run
"""

import argparse
import asyncio
import sys
from collections import Counter
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from referral_hierarchy.config.constants import LISTING_CACHE_PREFIXES, VISIBILITY_CAP
from referral_hierarchy.config.database import async_session_maker, engine
from referral_hierarchy.config.settings import settings
from referral_hierarchy.initialization import setup_logging
from referral_hierarchy.repositories.closure_repository import ClosureRepository
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.cache import ResultCache
from referral_hierarchy.services.hierarchy.closure_maintainer import (
    build_closure_rows,
)
from referral_hierarchy.utils.redis_utils import get_redis_client, get_redis_url_masked


async def flush_listing_cache() -> int:
    """Drop every cached listing; all of them may be stale after a rebuild."""
    redis_client = get_redis_client()
    cache = ResultCache(redis_client, settings.referral_cache_ttl_seconds)
    logger.info(f"Flushing listing cache at {get_redis_url_masked()}")
    deleted = 0
    try:
        for prefix in LISTING_CACHE_PREFIXES:
            deleted += await cache.delete_pattern(f"{prefix}:*")
    finally:
        await redis_client.aclose()
    return deleted


async def run_backfill(dry_run: bool = False) -> None:
    """Rebuild the closure table."""
    logger.info("Starting closure backfill...")

    try:
        async with async_session_maker() as session:
            parent_by_ref = await UserRepository(session).get_referrer_map()
            logger.info(f"Loaded {len(parent_by_ref)} users")

            rows = build_closure_rows(parent_by_ref, VISIBILITY_CAP)
            by_depth = Counter(row["depth"] for row in rows)
            logger.info(
                f"Derived {len(rows)} closure rows "
                f"(depth 1: {by_depth[1]}, depth 2: {by_depth[2]})"
            )

            if dry_run:
                logger.info("Dry run, nothing written")
                return

            closure_repo = ClosureRepository(session)
            try:
                written = await closure_repo.replace_all(rows)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

            total = await closure_repo.count_rows()
            logger.success(
                f"Closure table rebuilt: {written} rows written, {total} in table"
            )
    finally:
        await engine.dispose()

    deleted = await flush_listing_cache()
    logger.info(f"Dropped {deleted} cached listings")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute rows without writing them",
    )
    args = parser.parse_args()
    setup_logging()
    asyncio.run(run_backfill(dry_run=args.dry_run))
