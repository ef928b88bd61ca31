"""Unit tests for listing cache invalidation."""

from unittest.mock import AsyncMock

import pytest

from referral_hierarchy.utils.cache_invalidation import (
    invalidate_referral_cache,
    invalidate_referral_caches,
    referral_cache_patterns,
)


def test_patterns_cover_target_and_viewer_positions():
    assert referral_cache_patterns("vn-a") == [
        "referrals:vn-a:*",
        "referrals:*:vn-a:*",
        "sub-referrals:vn-a:*",
        "sub-referrals:*:vn-a:*",
    ]


@pytest.mark.asyncio
async def test_missing_cache_is_skipped():
    assert await invalidate_referral_cache(None, "vn-a") == 0


@pytest.mark.asyncio
async def test_every_pattern_deleted():
    cache = AsyncMock()
    cache.delete_pattern = AsyncMock(return_value=2)

    deleted = await invalidate_referral_cache(cache, "vn-a")

    assert deleted == 8
    assert cache.delete_pattern.await_count == 4


@pytest.mark.asyncio
async def test_duplicate_references_invalidated_once():
    cache = AsyncMock()
    cache.delete_pattern = AsyncMock(return_value=0)

    await invalidate_referral_caches(cache, ["vn-a", "vn-b", "vn-a"])

    patterns = [call.args[0] for call in cache.delete_pattern.await_args_list]
    assert patterns.count("referrals:vn-a:*") == 1
    assert patterns.count("referrals:vn-b:*") == 1
