"""
Cache invalidation utilities.

Provides functions to invalidate cached referral listings when users or
the referral forest change. Invalidation is best effort and never raises.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING

from loguru import logger

from referral_hierarchy.config.constants import LISTING_CACHE_PREFIXES

if TYPE_CHECKING:
    from referral_hierarchy.services.cache.result_cache import ResultCache


def referral_cache_patterns(reference_code: str) -> list[str]:
    """
    Patterns covering every listing keyed by a reference.

    Matches listings where the reference is the target (first segment)
    and listings where it is the viewer (second segment).

    Args:
        reference_code: User reference code

    Returns:
        List of Redis glob patterns
    """
    patterns = []
    for prefix in LISTING_CACHE_PREFIXES:
        patterns.append(f"{prefix}:{reference_code}:*")
        patterns.append(f"{prefix}:*:{reference_code}:*")
    return patterns


async def invalidate_referral_cache(
    cache: "ResultCache | None", reference_code: str
) -> int:
    """
    Invalidate cached listings for one user reference.

    Args:
        cache: Result cache (None skips invalidation)
        reference_code: User reference code

    Returns:
        Number of keys deleted

    Example:
        >>> await invalidate_referral_cache(cache, "vn-3f9a1c2b")
    """
    if cache is None:
        logger.warning(
            "Result cache not provided, skipping referral cache invalidation"
        )
        return 0

    deleted = 0
    for pattern in referral_cache_patterns(reference_code):
        deleted += await cache.delete_pattern(pattern)

    if deleted:
        logger.debug(
            f"Invalidated {deleted} referral cache keys for {reference_code}",
            extra={"reference_code": reference_code},
        )
    return deleted


async def invalidate_referral_caches(
    cache: "ResultCache | None", reference_codes: Iterable[str]
) -> int:
    """
    Invalidate cached listings for several references.

    Args:
        cache: Result cache (None skips invalidation)
        reference_codes: User reference codes

    Returns:
        Total number of keys deleted
    """
    total = 0
    for reference_code in dict.fromkeys(reference_codes):
        total += await invalidate_referral_cache(cache, reference_code)
    return total
